"""Validation of sketches and solids.

``validate`` is the only way to obtain a ``Validated`` certificate. Checks run
in a fixed order: closure, overlap, join, self-intersection. Closure and
join failures are hard and raise immediately; overlap and self-intersection
findings are collected and raised together once all checks have run.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Generic, Iterable, List, Mapping, Set, Tuple, TypeVar

import structlog

from .geometry import curve_point_from_local, curve_point_to_local, curve_tangent, curves_coincide
from .intersection import cycle_contains_point, edge_edge
from .linalg import Point
from .objects import Cycle, Edge, FaceBRep, Solid, VertexHandle, _FaceSet
from .tolerance import DEFAULT_TOLERANCE, Tolerance

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class ValidationCheck(str, Enum):
    """Individual validation checks, in execution order."""

    CLOSURE = "closure"
    OVERLAP = "overlap"
    JOIN = "join"
    SELF_INTERSECTION = "self_intersection"


_CONFIG_KEYS = {"tolerance", "checks"}


@dataclass(frozen=True)
class ValidationConfig:
    """Tolerance and enabled checks for ``validate``."""

    tolerance: Tolerance
    checks: FrozenSet[ValidationCheck] = field(default_factory=lambda: frozenset(ValidationCheck))

    def __post_init__(self) -> None:
        object.__setattr__(self, "tolerance", Tolerance.from_scalar(self.tolerance))
        object.__setattr__(self, "checks", frozenset(ValidationCheck(c) for c in self.checks))

    @classmethod
    def default(cls) -> "ValidationConfig":
        return cls(Tolerance(DEFAULT_TOLERANCE))

    @classmethod
    def from_dict(cls, data: Mapping) -> "ValidationConfig":
        """Build a config from a plain mapping.

        Args:
            data: Mapping with optional ``tolerance`` (float) and ``checks``
                (list of check names) keys

        Raises:
            ValueError: On unknown keys or check names
        """
        unknown = set(data) - _CONFIG_KEYS
        if unknown:
            raise ValueError(f"Unknown validation config keys: {sorted(unknown)}")
        tolerance = data.get("tolerance", DEFAULT_TOLERANCE)
        checks = data.get("checks")
        if checks is None:
            return cls(tolerance)
        return cls(tolerance, frozenset(ValidationCheck(name) for name in checks))

    def with_checks(self, *checks) -> "ValidationConfig":
        return dataclasses.replace(self, checks=frozenset(ValidationCheck(c) for c in checks))

    def to_dict(self) -> dict:
        return {
            "tolerance": self.tolerance.value,
            "checks": sorted(check.value for check in self.checks),
        }


@dataclass(frozen=True)
class ValidationFinding:
    """A single problem found during validation."""

    kind: ValidationCheck
    message: str
    entities: Tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "message": self.message, "entities": list(self.entities)}


class ValidationError(Exception):
    """Validation failed; ``findings`` lists every problem found."""

    def __init__(self, findings: Iterable[ValidationFinding]) -> None:
        self.findings: Tuple[ValidationFinding, ...] = tuple(findings)
        if not self.findings:
            raise ValueError("ValidationError requires at least one finding")
        self.kind = self.findings[0].kind
        super().__init__(
            f"{self.kind.value}: {self.findings[0].message}"
            + (f" (+{len(self.findings) - 1} more)" if len(self.findings) > 1 else "")
        )


class Validated(Generic[T]):
    """Certificate that a shape passed ``validate`` under ``config``."""

    __slots__ = ("_inner", "_config")

    def __init__(self, inner: T, config: ValidationConfig, *, _token: object = None) -> None:
        if _token is not _CERTIFY:
            raise TypeError("Validated objects are only created by validate()")
        self._inner = inner
        self._config = config

    @property
    def inner(self) -> T:
        return self._inner

    @property
    def config(self) -> ValidationConfig:
        return self._config

    def into_inner(self) -> T:
        return self._inner

    def __repr__(self) -> str:
        return f"Validated({self._inner!r})"


_CERTIFY = object()


def validate(shape: T, config: ValidationConfig) -> Validated[T]:
    """Run the configured checks and certify ``shape``.

    Args:
        shape: A ``Sketch`` or ``Solid``
        config: Tolerance and enabled checks

    Returns:
        The certified shape

    Raises:
        ValidationError: If any check fails
        TypeError: If ``shape`` is not a sketch or solid
    """
    if not isinstance(shape, _FaceSet):
        raise TypeError(f"Cannot validate {type(shape).__name__}")

    eps = config.tolerance.value
    log = logger.bind(kind=type(shape).__name__, faces=len(shape))
    soft: List[ValidationFinding] = []

    if ValidationCheck.CLOSURE in config.checks:
        hard = _check_closure(shape, eps)
        if hard:
            log.info("Validation failed", check="closure", findings=len(hard))
            raise ValidationError(hard + soft)

    if ValidationCheck.OVERLAP in config.checks:
        soft.extend(_check_overlap(shape, eps))

    if ValidationCheck.JOIN in config.checks and isinstance(shape, Solid):
        hard = _check_join(shape, eps)
        if hard:
            log.info("Validation failed", check="join", findings=len(hard))
            raise ValidationError(hard + soft)

    if ValidationCheck.SELF_INTERSECTION in config.checks:
        soft.extend(_check_self_intersection(shape, eps))

    if soft:
        log.info("Validation failed", findings=len(soft), kinds=sorted({f.kind.value for f in soft}))
        raise ValidationError(soft)

    log.info("Validated shape", checks=sorted(check.value for check in config.checks))
    return Validated(shape, config, _token=_CERTIFY)


def _edge_id(face_index: int, cycle_index: int, edge_index: int) -> str:
    return f"face[{face_index}].cycle[{cycle_index}].edge[{edge_index}]"


# -----------------------------------------------------------------------------
# Closure
# -----------------------------------------------------------------------------


def _check_closure(shape: _FaceSet, eps: float) -> List[ValidationFinding]:
    findings = []
    for face_index, face in shape.brep_faces():
        for cycle_index, cycle in enumerate(face.all_cycles()):
            edges = cycle.edges
            if not edges:
                findings.append(
                    ValidationFinding(
                        ValidationCheck.CLOSURE,
                        "Cycle has no edges",
                        (f"face[{face_index}].cycle[{cycle_index}]",),
                    )
                )
                continue

            for edge_index, edge in enumerate(edges):
                entity = _edge_id(face_index, cycle_index, edge_index)
                if edge.is_closed:
                    if len(edges) > 1:
                        findings.append(
                            ValidationFinding(
                                ValidationCheck.CLOSURE,
                                "Closed edge shares its cycle with other edges",
                                (entity,),
                            )
                        )
                    continue

                for vertex in edge.vertices:
                    on_curve = curve_point_from_local(edge.curve.global_form(), vertex.position.x)
                    if on_curve.distance_to(vertex.global_vertex.position) > eps:
                        findings.append(
                            ValidationFinding(
                                ValidationCheck.CLOSURE,
                                "Vertex does not lie on its edge's curve",
                                (entity, str(vertex.handle)),
                            )
                        )

                following = edges[(edge_index + 1) % len(edges)]
                if following.is_closed:
                    continue
                gap = edge.end().distance_to(following.start())
                if gap > eps:
                    findings.append(
                        ValidationFinding(
                            ValidationCheck.CLOSURE,
                            f"Edge ends {gap:.3g} away from where the next edge starts",
                            (entity, _edge_id(face_index, cycle_index, (edge_index + 1) % len(edges))),
                        )
                    )
    return findings


# -----------------------------------------------------------------------------
# Overlap between the cycles of a face
# -----------------------------------------------------------------------------


def _check_overlap(shape: _FaceSet, eps: float) -> List[ValidationFinding]:
    findings = []
    for face_index, face in shape.brep_faces():
        cycles = face.all_cycles()
        touching = set()
        for i in range(len(cycles)):
            for j in range(i + 1, len(cycles)):
                for ei, edge_a in enumerate(cycles[i].edges):
                    for ej, edge_b in enumerate(cycles[j].edges):
                        if edge_edge(edge_a, edge_b, eps).is_empty:
                            continue
                        touching.add((i, j))
                        findings.append(
                            ValidationFinding(
                                ValidationCheck.OVERLAP,
                                "Boundary cycles of a face touch or cross",
                                (_edge_id(face_index, i, ei), _edge_id(face_index, j, ej)),
                            )
                        )
        findings.extend(_check_nesting(face_index, face, touching, eps))
    return findings


def _check_nesting(
    face_index: int, face: FaceBRep, touching: Set[Tuple[int, int]], eps: float
) -> List[ValidationFinding]:
    """Region checks for cycles whose boundaries stay apart.

    Exteriors must not enclose each other, interiors must not enclose each
    other, and every interior must lie inside an exterior.
    """
    cycles = face.all_cycles()
    if not all(cycle.edges for cycle in cycles):
        return []
    first_interior = len(face.exteriors)
    samples = [_sample_point(cycle) for cycle in cycles]

    def encloses(i: int, j: int) -> bool:
        return cycle_contains_point(cycles[i], samples[j], eps)

    findings = []
    for i in range(len(cycles)):
        for j in range(i + 1, len(cycles)):
            same_kind = (i < first_interior) == (j < first_interior)
            if not same_kind or (i, j) in touching:
                continue
            if encloses(i, j) or encloses(j, i):
                kind = "Exterior" if i < first_interior else "Interior"
                findings.append(
                    ValidationFinding(
                        ValidationCheck.OVERLAP,
                        f"{kind} cycles of a face are nested",
                        (_cycle_id(face_index, i), _cycle_id(face_index, j)),
                    )
                )

    for j in range(first_interior, len(cycles)):
        exteriors = range(first_interior)
        if any((i, j) in touching for i in exteriors):
            continue
        if not any(encloses(i, j) for i in exteriors):
            findings.append(
                ValidationFinding(
                    ValidationCheck.OVERLAP,
                    "Interior cycle lies outside every exterior cycle",
                    (_cycle_id(face_index, j),),
                )
            )
    return findings


def _sample_point(cycle: Cycle) -> Point:
    edge = cycle.edges[0]
    return edge.local_point(edge.param_range()[0])


def _cycle_id(face_index: int, cycle_index: int) -> str:
    return f"face[{face_index}].cycle[{cycle_index}]"


# -----------------------------------------------------------------------------
# Join (solids only)
# -----------------------------------------------------------------------------


EdgeUse = Tuple[T, Edge]


def group_coincident_edges(uses: Iterable[EdgeUse], eps: float) -> List[List[EdgeUse]]:
    """Group edges that bound the same stretch of curve.

    Bounded edges match when they run between the same two vertex handles,
    closed edges when their global curves coincide.
    """
    bounded: Dict[Tuple[VertexHandle, VertexHandle], List[EdgeUse]] = {}
    closed: List[List[EdgeUse]] = []
    for key, edge in uses:
        if not edge.is_closed:
            handles = tuple(sorted(v.handle for v in edge.vertices))
            bounded.setdefault(handles, []).append((key, edge))
            continue
        for group in closed:
            if curves_coincide(group[0][1].curve.global_form(), edge.curve.global_form(), eps):
                group.append((key, edge))
                break
        else:
            closed.append([(key, edge)])
    return list(bounded.values()) + closed


def _check_join(shape: Solid, eps: float) -> List[ValidationFinding]:
    uses = (
        (_edge_id(face_index, cycle_index, edge_index), edge)
        for face_index, cycle_index, edge_index, edge in shape.iter_edges()
    )
    findings = []
    for group in group_coincident_edges(uses, eps):
        findings.extend(_check_uses(group))
    return findings


def _check_uses(uses: List[EdgeUse]) -> List[ValidationFinding]:
    entities = tuple(entity for entity, _ in uses)
    if len(uses) != 2:
        return [
            ValidationFinding(
                ValidationCheck.JOIN,
                f"Edge is used by {len(uses)} face boundaries instead of 2",
                entities,
            )
        ]
    if edges_same_direction(uses[0][1], uses[1][1]):
        return [
            ValidationFinding(
                ValidationCheck.JOIN,
                "Shared edge is traversed in the same direction by both faces",
                entities,
            )
        ]
    return []


def edges_same_direction(a: Edge, b: Edge) -> bool:
    """Whether two edges bounding the same stretch of curve run the same way.

    Bounded edges are compared by the handle they start at, closed edges by
    their tangents at a common point.
    """
    if a.is_closed or b.is_closed:
        return _same_direction_closed(a, b)
    return _same_direction_bounded(a, b)


def _same_direction_bounded(a: Edge, b: Edge) -> bool:
    start_a, _ = a.traversal_vertices()
    start_b, _ = b.traversal_vertices()
    return start_a.handle == start_b.handle


def _same_direction_closed(a: Edge, b: Edge) -> bool:
    point = a.start()
    curve_a = a.curve.global_form()
    curve_b = b.curve.global_form()
    tangent_a = curve_tangent(curve_a, curve_point_to_local(curve_a, point))
    tangent_b = curve_tangent(curve_b, curve_point_to_local(curve_b, point))
    if a.reverse:
        tangent_a = -tangent_a
    if b.reverse:
        tangent_b = -tangent_b
    return tangent_a.dot(tangent_b) > 0.0


# -----------------------------------------------------------------------------
# Self-intersection of a cycle
# -----------------------------------------------------------------------------


def _check_self_intersection(shape: _FaceSet, eps: float) -> List[ValidationFinding]:
    findings = []
    for face_index, face in shape.brep_faces():
        for cycle_index, cycle in enumerate(face.all_cycles()):
            edges = cycle.edges
            count = len(edges)
            for i in range(count):
                for j in range(i + 1, count):
                    adjacent = j == i + 1 or (i == 0 and j == count - 1)
                    if _edges_cross(edges[i], edges[j], adjacent, eps):
                        findings.append(
                            ValidationFinding(
                                ValidationCheck.SELF_INTERSECTION,
                                "Cycle boundary crosses itself",
                                (
                                    _edge_id(face_index, cycle_index, i),
                                    _edge_id(face_index, cycle_index, j),
                                ),
                            )
                        )
    return findings


def _edges_cross(a: Edge, b: Edge, adjacent: bool, eps: float) -> bool:
    """Whether two edges of a cycle meet anywhere they should not.

    Only neighbours in the cycle may touch, and only at the vertex they
    share. Any contact between other edges is a crossing, even at a
    repeated vertex.
    """
    hit = edge_edge(a, b, eps)
    if not adjacent or hit.overlap:
        return not hit.is_empty
    if not hit.points:
        return False
    if a.is_closed or b.is_closed:
        return True

    shared = [
        p for p in a.local_segment() if any(p.is_close(q, eps) for q in b.local_segment())
    ]
    return any(not any(point.is_close(s, eps) for s in shared) for point in hit.points)
