"""Intersection algorithms.

All functions take an explicit tolerance used for both coincidence and
parallelism tests. Degenerate configurations (parallel lines, coincident
curves, zero-length segments) are ordinary outcomes: ``None``, an overlap
marker or an empty list, never an exception.

* ``line_segment``: two bounded segments, 2D or 3D
* ``curve_curve`` / ``edge_edge``: unbounded and bounded curves in surface
  coordinates
* ``CurveFaceIntersectionList``: where a curve runs inside a face
* ``surface_surface``: the curves shared by two surfaces
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple, Union

import numpy as np
import structlog

from .geometry import (
    TAU,
    Circle,
    Curve,
    Line,
    Surface,
    SweptCurve,
    UnsupportedGeometry,
    curve_point_from_local,
    curve_point_to_local,
    curves_coincide,
    surface_is_planar,
    surface_normal,
    surface_point_from_local,
    surface_point_to_local,
)
from .linalg import Point, Vector
from .objects import Cycle, Edge, FaceBRep
from .tolerance import Tolerance, ToleranceLike

logger = structlog.get_logger(__name__)

Segment = Tuple[Point, Point]


# -----------------------------------------------------------------------------
# Line segment / line segment
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class SegmentPoint:
    """The segments meet in a single point, at ``t_a`` and ``t_b`` in ``[0, 1]``."""

    point: Point
    t_a: float
    t_b: float


@dataclass(frozen=True)
class SegmentOverlap:
    """The segments are collinear and share the stretch from ``start`` to ``end``."""

    start: Point
    end: Point


LineSegmentIntersection = Union[SegmentPoint, SegmentOverlap]


def line_segment(
    segment_a: Segment, segment_b: Segment, tolerance: ToleranceLike
) -> Optional[LineSegmentIntersection]:
    """Intersect two bounded line segments.

    Solves ``p + d1 * t = r + d2 * s`` for ``t`` and ``s``. Parallelism is
    decided by comparing the cross product of the directions, scaled to a
    distance, against the tolerance.

    Args:
        segment_a: Start and end point of the first segment
        segment_b: Start and end point of the second segment
        tolerance: Distance below which points count as coincident

    Returns:
        ``None`` if the segments do not meet, ``SegmentPoint`` for a unique
        intersection, ``SegmentOverlap`` for collinear overlapping segments
    """
    eps = Tolerance.from_scalar(tolerance).value
    dim = segment_a[0].dim
    p, q = (pt.to_xyz() for pt in segment_a)
    r, s = (pt.to_xyz() for pt in segment_b)
    d1 = q - p
    d2 = s - r
    len1 = d1.magnitude()
    len2 = d2.magnitude()

    if len1 <= eps or len2 <= eps:
        return _degenerate_segments(p, d1, len1, r, d2, len2, eps, dim)

    n = d1.cross(d2)
    if n.magnitude() / max(len1, len2) <= eps:
        return _parallel_segments(p, q, d1, len1, r, s, d2, eps, dim)

    w = r - p
    nn = n.dot(n)
    t = w.cross(d2).dot(n) / nn
    u = w.cross(d1).dot(n) / nn

    slack_a = eps / len1
    slack_b = eps / len2
    if not (-slack_a <= t <= 1.0 + slack_a and -slack_b <= u <= 1.0 + slack_b):
        return None

    t = min(max(t, 0.0), 1.0)
    u = min(max(u, 0.0), 1.0)
    on_a = p + d1 * t
    on_b = r + d2 * u
    if on_a.distance_to(on_b) > eps:
        # Skew segments in 3D
        return None
    return SegmentPoint(_project_dim(_midpoint(on_a, on_b), dim), t, u)


def _parallel_segments(p, q, d1, len1, r, s, d2, eps, dim) -> Optional[LineSegmentIntersection]:
    # Symmetric collinearity test: every endpoint must lie on the other line.
    if max(
        _distance_to_segment_line(r, p, d1),
        _distance_to_segment_line(s, p, d1),
        _distance_to_segment_line(p, r, d2),
        _distance_to_segment_line(q, r, d2),
    ) > eps:
        return None

    tr = (r - p).dot(d1) / (len1 * len1)
    ts = (s - p).dot(d1) / (len1 * len1)
    lo = max(0.0, min(tr, ts))
    hi = min(1.0, max(tr, ts))
    length = (hi - lo) * len1
    if length < -eps:
        return None

    start = p + d1 * lo
    end = p + d1 * hi
    if length <= eps:
        point = _midpoint(start, end)
        u = (point - r).dot(d2) / d2.dot(d2)
        return SegmentPoint(_project_dim(point, dim), lo, min(max(u, 0.0), 1.0))

    start, end = sorted((start, end), key=lambda pt: pt.coords)
    return SegmentOverlap(_project_dim(start, dim), _project_dim(end, dim))


def _degenerate_segments(p, d1, len1, r, d2, len2, eps, dim) -> Optional[SegmentPoint]:
    if len1 <= eps and len2 <= eps:
        if p.distance_to(r) <= eps:
            return SegmentPoint(_project_dim(_midpoint(p, r), dim), 0.0, 0.0)
        return None
    if len1 <= eps:
        u = min(max((p - r).dot(d2) / d2.dot(d2), 0.0), 1.0)
        on_b = r + d2 * u
        if p.distance_to(on_b) <= eps:
            return SegmentPoint(_project_dim(_midpoint(p, on_b), dim), 0.0, u)
        return None

    t = min(max((r - p).dot(d1) / d1.dot(d1), 0.0), 1.0)
    on_a = p + d1 * t
    if r.distance_to(on_a) <= eps:
        return SegmentPoint(_project_dim(_midpoint(on_a, r), dim), t, 0.0)
    return None


def _distance_to_segment_line(point: Point, origin: Point, direction: Vector) -> float:
    t = (point - origin).dot(direction) / direction.dot(direction)
    return point.distance_to(origin + direction * t)


def _midpoint(a: Point, b: Point) -> Point:
    return Point(*((x + y) / 2.0 for x, y in zip(a.coords, b.coords)))


def _project_dim(point: Point, dim: int) -> Point:
    return Point(*point.coords[:dim])


# -----------------------------------------------------------------------------
# Curve / curve (surface coordinates)
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class CurveCurvePoint:
    """An intersection point with its parameter on each curve."""

    point: Point
    t_a: float
    t_b: float


def curve_curve(curve_a: Curve, curve_b: Curve, tolerance: ToleranceLike) -> List[CurveCurvePoint]:
    """Intersect two unbounded 2D curves.

    Parallel lines and coincident circles yield no points; use
    ``curves_coincide`` to tell those apart from disjoint curves.
    """
    eps = Tolerance.from_scalar(tolerance).value
    if curve_a.dim != 2 or curve_b.dim != 2:
        raise ValueError("curve_curve works on curves in surface coordinates")

    if isinstance(curve_a, Line) and isinstance(curve_b, Line):
        return _line_line(curve_a, curve_b, eps)
    if isinstance(curve_a, Line) and isinstance(curve_b, Circle):
        return _line_circle(curve_a, curve_b, eps)
    if isinstance(curve_a, Circle) and isinstance(curve_b, Line):
        return [
            CurveCurvePoint(hit.point, hit.t_b, hit.t_a)
            for hit in _line_circle(curve_b, curve_a, eps)
        ]
    if isinstance(curve_a, Circle) and isinstance(curve_b, Circle):
        return _circle_circle(curve_a, curve_b, eps)
    raise TypeError(f"Cannot intersect {curve_a!r} with {curve_b!r}")


def _line_line(a: Line, b: Line, eps: float) -> List[CurveCurvePoint]:
    det = a.direction.cross(b.direction)
    if abs(det) / max(a.direction.magnitude(), b.direction.magnitude()) <= eps:
        return []
    w = b.origin - a.origin
    t = w.cross(b.direction) / det
    u = w.cross(a.direction) / det
    return [CurveCurvePoint(curve_point_from_local(a, t), t, u)]


def _line_circle(line: Line, circle: Circle, eps: float) -> List[CurveCurvePoint]:
    d = line.direction
    f = line.origin - circle.center
    dd = d.dot(d)
    t_closest = -f.dot(d) / dd
    closest = curve_point_from_local(line, t_closest)
    distance = closest.distance_to(circle.center)
    radius = circle.radius

    if distance > radius + eps:
        return []
    if abs(distance - radius) <= eps:
        params = [t_closest]
    else:
        half = math.sqrt(max(radius * radius - distance * distance, 0.0) / dd)
        params = [t_closest - half, t_closest + half]

    hits = []
    for t in params:
        point = curve_point_from_local(line, t)
        hits.append(CurveCurvePoint(point, t, curve_point_to_local(circle, point)))
    return hits


def _circle_circle(a: Circle, b: Circle, eps: float) -> List[CurveCurvePoint]:
    offset = b.center - a.center
    d = offset.magnitude()
    r1, r2 = a.radius, b.radius

    if d <= eps:
        # Concentric: either coincident or disjoint, no isolated points
        return []
    if d > r1 + r2 + eps or d < abs(r1 - r2) - eps:
        return []

    along = (d * d + r1 * r1 - r2 * r2) / (2.0 * d)
    h = math.sqrt(max(r1 * r1 - along * along, 0.0))
    base = a.center + offset * (along / d)
    perp = Vector(-offset.y, offset.x) / d

    points = [base] if h <= eps else [base + perp * h, base - perp * h]
    return [
        CurveCurvePoint(p, curve_point_to_local(a, p), curve_point_to_local(b, p)) for p in points
    ]


# -----------------------------------------------------------------------------
# Edge / edge (bounded curves in surface coordinates)
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class EdgeEdgeIntersection:
    """Points where two edges meet, or a flag for overlapping stretches."""

    points: Tuple[Point, ...] = ()
    overlap: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.points and not self.overlap


def edge_edge(edge_a: Edge, edge_b: Edge, tolerance: ToleranceLike) -> EdgeEdgeIntersection:
    """Intersect two edges drawn on the same surface."""
    eps = Tolerance.from_scalar(tolerance).value
    curve_a = edge_a.curve.local()
    curve_b = edge_b.curve.local()

    if isinstance(curve_a, Line) and isinstance(curve_b, Line) and not (
        edge_a.is_closed or edge_b.is_closed
    ):
        hit = line_segment(edge_a.local_segment(), edge_b.local_segment(), eps)
        if hit is None:
            return EdgeEdgeIntersection()
        if isinstance(hit, SegmentOverlap):
            return EdgeEdgeIntersection((hit.start, hit.end), overlap=True)
        return EdgeEdgeIntersection((hit.point,))

    if curves_coincide(curve_a, curve_b, eps):
        return EdgeEdgeIntersection(overlap=_ranges_overlap(edge_a, edge_b, eps))

    points = tuple(
        hit.point
        for hit in curve_curve(curve_a, curve_b, eps)
        if _param_in_edge(edge_a, hit.t_a, eps) and _param_in_edge(edge_b, hit.t_b, eps)
    )
    return EdgeEdgeIntersection(points)


def _param_slack(curve: Curve, eps: float) -> float:
    if isinstance(curve, Line):
        return eps / curve.direction.magnitude()
    return eps / curve.radius


def _param_in_edge(edge: Edge, t: float, eps: float, strict: bool = False) -> bool:
    """Whether curve parameter ``t`` falls inside the edge's bounds."""
    curve = edge.curve.local()
    slack = _param_slack(curve, eps)
    if strict:
        slack = -slack
    t0, t1 = edge.param_range()
    if isinstance(curve, Circle):
        if edge.is_closed:
            return True
        t = t0 + (t - t0) % TAU
        if strict:
            return t0 - slack <= t <= t1 + slack
        return t <= t1 + slack or t >= t0 + TAU - slack
    lo, hi = min(t0, t1), max(t0, t1)
    return lo - slack <= t <= hi + slack


def _ranges_overlap(edge_a: Edge, edge_b: Edge, eps: float) -> bool:
    if edge_a.is_closed or edge_b.is_closed:
        return True
    for edge, other in ((edge_a, edge_b), (edge_b, edge_a)):
        t0, t1 = other.param_range()
        for t in (t0, (t0 + t1) / 2.0, t1):
            point = other.local_point(t)
            param = curve_point_to_local(edge.curve.local(), point)
            if _param_in_edge(edge, param, eps, strict=True):
                return True
    return False


# -----------------------------------------------------------------------------
# Point containment
# -----------------------------------------------------------------------------


def face_contains_point(face: FaceBRep, point: Point, tolerance: ToleranceLike) -> bool:
    """Whether a point in surface coordinates lies in the face's closed region.

    The point must be inside an exterior cycle and outside every interior
    cycle; points on a boundary count as contained.
    """
    eps = Tolerance.from_scalar(tolerance).value
    if any(_on_cycle(cycle, point, eps) for cycle in face.all_cycles()):
        return True
    if not any(cycle_contains_point(cycle, point, eps) for cycle in face.exteriors):
        return False
    return not any(cycle_contains_point(cycle, point, eps) for cycle in face.interiors)


def cycle_contains_point(cycle: Cycle, point: Point, tolerance: ToleranceLike) -> bool:
    """Even-odd test of a surface-coordinate point against a cycle."""
    eps = Tolerance.from_scalar(tolerance).value
    if _on_cycle(cycle, point, eps):
        return True
    crossings = sum(_ray_crossings(edge, point, eps) for edge in cycle.edges)
    return crossings % 2 == 1


def _on_cycle(cycle: Cycle, point: Point, eps: float) -> bool:
    return any(_distance_to_edge(edge, point) <= eps for edge in cycle.edges)


def _distance_to_edge(edge: Edge, point: Point) -> float:
    curve = edge.curve.local()
    t = curve_point_to_local(curve, point)
    if _param_in_edge(edge, t, 0.0) or edge.is_closed:
        return point.distance_to(curve_point_from_local(curve, t))
    t0, t1 = edge.param_range()
    return min(point.distance_to(edge.local_point(t0)), point.distance_to(edge.local_point(t1)))


def _ray_crossings(edge: Edge, point: Point, eps: float) -> int:
    """Crossings of the ray from ``point`` towards +u with ``edge``.

    Uses the half-open rule on ``v`` so shared endpoints count once.
    """
    curve = edge.curve.local()
    t0, t1 = edge.param_range()
    if isinstance(curve, Line):
        a = edge.local_point(t0)
        b = edge.local_point(t1)
        return int(_segment_crosses_ray(a, b, point))

    # Split the arc into pieces that are monotonic in v, so each piece crosses
    # any horizontal line at most once.
    amplitude = math.hypot(curve.a.y, curve.b.y)
    phase = math.atan2(curve.b.y, curve.a.y)
    breaks = [t0]
    k = math.floor((t0 - phase) / math.pi) + 1
    while phase + k * math.pi < t1:
        breaks.append(phase + k * math.pi)
        k += 1
    breaks.append(t1)

    count = 0
    for start, end in zip(breaks, breaks[1:]):
        a = curve_point_from_local(curve, start)
        b = curve_point_from_local(curve, end)
        if (a.y > point.y) == (b.y > point.y):
            continue
        cos_value = min(max((point.y - curve.center.y) / amplitude, -1.0), 1.0)
        alpha = math.acos(cos_value)
        for candidate in (phase + alpha, phase - alpha):
            t = start + (candidate - start) % TAU
            if t <= end + _param_slack(curve, eps):
                if curve_point_from_local(curve, t).x > point.x:
                    count += 1
                break
    return count


def _segment_crosses_ray(a: Point, b: Point, point: Point) -> bool:
    if (a.y > point.y) == (b.y > point.y):
        return False
    x = a.x + (point.y - a.y) * (b.x - a.x) / (b.y - a.y)
    return x > point.x


# -----------------------------------------------------------------------------
# Curve / face
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class CurveFaceIntersectionList:
    """Ordered curve-parameter intervals where a curve lies within a face.

    A zero-length interval ``(t, t)`` marks a curve touching the face in a
    single point.
    """

    intervals: Tuple[Tuple[float, float], ...] = ()

    @classmethod
    def compute(
        cls, curve: Curve, face: FaceBRep, tolerance: ToleranceLike
    ) -> "CurveFaceIntersectionList":
        """Intersect a curve in the face's surface coordinates with the face.

        The curve is tested against every edge of every cycle; the resulting
        parameters split the curve into pieces whose midpoints are classified
        against the face, so holes are excluded even when the piece lies
        inside an exterior cycle.
        """
        eps = Tolerance.from_scalar(tolerance).value
        slack = _param_slack(curve, eps)

        params = []
        for cycle in face.all_cycles():
            for edge in cycle.edges:
                params.extend(_curve_edge_params(curve, edge, eps))
        params = _dedupe(sorted(params), slack)

        if isinstance(curve, Circle):
            intervals = _circle_intervals(curve, face, params, eps)
        else:
            intervals = _line_intervals(curve, face, params, eps)

        logger.debug(
            "Computed curve/face intersection",
            curve=type(curve).__name__,
            crossings=len(params),
            intervals=len(intervals),
        )
        return cls(tuple(intervals))

    def __iter__(self) -> Iterator[Tuple[float, float]]:
        return iter(self.intervals)

    def __len__(self) -> int:
        return len(self.intervals)

    @property
    def is_empty(self) -> bool:
        return not self.intervals

    def merge(self, other: "CurveFaceIntersectionList") -> "CurveFaceIntersectionList":
        """Intervals covered by both lists (for the same curve)."""
        merged = []
        for a0, a1 in self.intervals:
            for b0, b1 in other.intervals:
                lo, hi = max(a0, b0), min(a1, b1)
                if lo <= hi:
                    merged.append((lo, hi))
        return CurveFaceIntersectionList(tuple(sorted(merged)))


def _curve_edge_params(curve: Curve, edge: Edge, eps: float) -> List[float]:
    edge_curve = edge.curve.local()
    if curves_coincide(curve, edge_curve, eps):
        if edge.is_closed:
            return []
        t0, t1 = edge.param_range()
        return [
            curve_point_to_local(curve, edge.local_point(t0)),
            curve_point_to_local(curve, edge.local_point(t1)),
        ]
    return [
        hit.t_a for hit in curve_curve(curve, edge_curve, eps) if _param_in_edge(edge, hit.t_b, eps)
    ]


def _dedupe(params: List[float], slack: float) -> List[float]:
    result: List[float] = []
    for t in params:
        if not result or t - result[-1] > slack:
            result.append(t)
    return result


def _line_intervals(curve: Line, face: FaceBRep, params: List[float], eps: float):
    kept = []
    for start, end in zip(params, params[1:]):
        mid = curve_point_from_local(curve, (start + end) / 2.0)
        if face_contains_point(face, mid, eps):
            if kept and kept[-1][1] == start:
                kept[-1] = (kept[-1][0], end)
            else:
                kept.append((start, end))

    covered = [t for t in params if any(lo <= t <= hi for lo, hi in kept)]
    touches = [(t, t) for t in params if t not in covered]
    return sorted(kept + touches)


def _circle_intervals(curve: Circle, face: FaceBRep, params: List[float], eps: float):
    params = [t % TAU for t in params]
    params = sorted(params)
    if not params:
        if face_contains_point(face, curve_point_from_local(curve, 0.0), eps):
            return [(0.0, TAU)]
        return []

    kept = []
    bounds = params + [params[0] + TAU]
    for start, end in zip(bounds, bounds[1:]):
        mid = curve_point_from_local(curve, (start + end) / 2.0)
        if face_contains_point(face, mid, eps):
            if kept and kept[-1][1] == start:
                kept[-1] = (kept[-1][0], end)
            else:
                kept.append((start, end))
    if not kept:
        return [(t, t) for t in params]
    return kept


# -----------------------------------------------------------------------------
# Surface / surface
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class SurfaceSurfaceIntersection:
    """A curve shared by two surfaces, globally and in each surface's coordinates."""

    global_curve: Curve
    local_curves: Tuple[Curve, Curve]


def surface_surface(
    surface_a: Surface, surface_b: Surface, tolerance: ToleranceLike
) -> List[SurfaceSurfaceIntersection]:
    """Intersect two swept-curve surfaces.

    Two planes meet in a line unless they are parallel. Surfaces swept along
    parallel paths meet along rulings through the intersections of their
    generating curves. Other combinations raise ``UnsupportedGeometry``.
    """
    eps = Tolerance.from_scalar(tolerance).value
    if not (isinstance(surface_a, SweptCurve) and isinstance(surface_b, SweptCurve)):
        raise TypeError("surface_surface expects swept-curve surfaces")

    if surface_is_planar(surface_a) and surface_is_planar(surface_b):
        return _plane_plane(surface_a, surface_b, eps)

    pa, pb = surface_a.path, surface_b.path
    if pa.cross(pb).magnitude() / (pa.magnitude() * pb.magnitude()) <= eps:
        return _parallel_sweeps(surface_a, surface_b, eps)

    raise UnsupportedGeometry("Intersection of non-planar sweeps along different paths")


def _plane_plane(a: SweptCurve, b: SweptCurve, eps: float) -> List[SurfaceSurfaceIntersection]:
    n1 = surface_normal(a)
    n2 = surface_normal(b)
    direction = n1.cross(n2)
    if direction.magnitude() <= eps:
        logger.debug("Planes are parallel, no intersection curve")
        return []

    origin_a = surface_point_from_local(a, Point(0.0, 0.0))
    origin_b = surface_point_from_local(b, Point(0.0, 0.0))
    matrix = np.array([n1.coords, n2.coords, direction.coords])
    rhs = np.array(
        [n1.dot(origin_a.to_vector()), n2.dot(origin_b.to_vector()), direction.dot(origin_a.to_vector())]
    )
    origin = Point(*np.linalg.solve(matrix, rhs))
    line = Line(origin, direction.normalize())
    return [_shared_curve(line, a, b)]


def _shared_curve(line: Line, a: SweptCurve, b: SweptCurve) -> SurfaceSurfaceIntersection:
    p0 = curve_point_from_local(line, 0.0)
    p1 = curve_point_from_local(line, 1.0)
    local_a = Line.from_points(surface_point_to_local(a, p0), surface_point_to_local(a, p1))
    local_b = Line.from_points(surface_point_to_local(b, p0), surface_point_to_local(b, p1))
    return SurfaceSurfaceIntersection(line, (local_a, local_b))


def _parallel_sweeps(a: SweptCurve, b: SweptCurve, eps: float) -> List[SurfaceSurfaceIntersection]:
    axis = a.path.normalize()
    helper = Vector(1.0, 0.0, 0.0) if abs(axis.x) < 0.9 else Vector(0.0, 1.0, 0.0)
    e1 = axis.cross(helper).normalize()
    e2 = axis.cross(e1)
    origin = surface_point_from_local(a, Point(0.0, 0.0))

    def to_plane(point: Point) -> Point:
        offset = point - origin
        return Point(offset.dot(e1), offset.dot(e2))

    def project(curve: Curve) -> Curve:
        if isinstance(curve, Line):
            direction = Vector(curve.direction.dot(e1), curve.direction.dot(e2))
            if direction.magnitude() <= eps:
                raise UnsupportedGeometry("Generating line parallel to the sweep path")
            return Line(to_plane(curve.origin), direction)
        projected = Circle(
            to_plane(curve.center),
            Vector(curve.a.dot(e1), curve.a.dot(e2)),
            Vector(curve.b.dot(e1), curve.b.dot(e2)),
        )
        if abs(projected.radius - curve.radius) > eps:
            raise UnsupportedGeometry("Generating circle is not perpendicular to the sweep path")
        return projected

    results = []
    for hit in curve_curve(project(a.curve), project(b.curve), eps):
        point = origin + e1 * hit.point.x + e2 * hit.point.y
        line = Line(point, a.path)
        ua, va = surface_point_to_local(a, point).coords
        ub, vb = surface_point_to_local(b, point).coords
        scale = a.path.dot(b.path) / b.path.dot(b.path)
        results.append(
            SurfaceSurfaceIntersection(
                line,
                (Line(Point(ua, va), Vector(0.0, 1.0)), Line(Point(ub, vb), Vector(0.0, scale))),
            )
        )
    logger.debug("Intersected parallel sweeps", curves=len(results))
    return results
