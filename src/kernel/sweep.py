"""Sweep a validated sketch along a path into a solid.

Every face of the sketch becomes a bottom cap, a top cap (the face translated
by the path) and one side face per boundary edge. An edge shared by two
sketch faces lies inside the swept region and gets no side face. All faces
draw their vertices from a single ``VertexArena``, so coincident corners
share one global vertex and each edge of the result is bounded by the same
handles in both faces that use it.
"""

from __future__ import annotations

from typing import List, Set, Tuple

import structlog

from .geometry import (
    TAU,
    Circle,
    Line,
    SweptCurve,
    UnsupportedGeometry,
    curve_point_to_local,
    curve_reversed,
    surface_normal,
)
from .linalg import Point, Vector
from .objects import (
    DEFAULT_COLOR,
    Color,
    Cycle,
    Edge,
    FaceBRep,
    Sketch,
    Solid,
    VertexArena,
    face_reversed,
)
from .tolerance import Tolerance, ToleranceLike
from .transform import translate
from .validation import Validated, edges_same_direction, group_coincident_edges

logger = structlog.get_logger(__name__)


class DegenerateSweep(ValueError):
    """Raised when the sweep path lies in the plane of a sketch face."""

    pass


def sweep(
    sketch: Validated[Sketch],
    path,
    tolerance: ToleranceLike,
    color: Color = DEFAULT_COLOR,
) -> Solid:
    """Sweep ``sketch`` along ``path``.

    Args:
        sketch: A validated sketch
        path: Sweep direction and distance (3D vector)
        tolerance: Used to merge coincident vertices and to reject degenerate paths
        color: Color of every face of the result

    Returns:
        The swept solid. Faces point outwards regardless of whether ``path``
        runs along or against the sketch normal.

    Raises:
        DegenerateSweep: If ``path`` is parallel to a sketch face
        TypeError: If ``sketch`` is not a validated sketch
    """
    if not isinstance(sketch, Validated) or not isinstance(sketch.inner, Sketch):
        raise TypeError("sweep() requires a Validated[Sketch]")

    eps = Tolerance.from_scalar(tolerance).value
    path = path if isinstance(path, Vector) else Vector(*path)
    if path.dim != 3:
        raise ValueError("Sweep path must be a 3D vector")

    arena = VertexArena()
    homed = []
    for face in sketch.inner.faces:
        if not isinstance(face, FaceBRep):
            raise UnsupportedGeometry("Only B-rep faces can be swept")
        along = surface_normal(face.surface).dot(path)
        if abs(along) <= eps:
            raise DegenerateSweep("Sweep path lies in the plane of the sketch")
        homed.append((_rehome_face(face, arena, eps, color), face, along < 0))

    shared = _shared_edges([original for original, _, _ in homed], eps)
    faces = []
    for face_index, (original, face, against_normal) in enumerate(homed):
        translated = _rehome_face(translate(face, path), arena, eps, color)
        if against_normal:
            faces.extend([original, face_reversed(translated)])
        else:
            faces.extend([face_reversed(original), translated])

        sides = [
            _side_face(edge, path, against_normal, arena, eps, color)
            for cycle_index, cycle in enumerate(original.all_cycles())
            for edge_index, edge in enumerate(cycle.edges)
            if (face_index, cycle_index, edge_index) not in shared
        ]
        faces.extend(sides)
        logger.debug("Swept face", sides=len(sides), against_normal=against_normal)

    logger.info(
        "Swept sketch",
        sketch_faces=len(sketch.inner),
        solid_faces=len(faces),
        vertices=len(arena),
        skipped_walls=len(shared),
        path=list(path.coords),
    )
    return Solid.from_faces(faces)


def _shared_edges(faces: List[FaceBRep], eps: float) -> Set[Tuple[int, int, int]]:
    """Edges where two sketch faces meet, as (face, cycle, edge) indices.

    Such an edge lies inside the swept region, so it gets no side face. The
    caps on either side of it join each other instead.
    """
    uses = (
        ((face_index, cycle_index, edge_index), edge)
        for face_index, face in enumerate(faces)
        for cycle_index, cycle in enumerate(face.all_cycles())
        for edge_index, edge in enumerate(cycle.edges)
    )
    shared = set()
    for group in group_coincident_edges(uses, eps):
        if len(group) != 2:
            continue
        (key_a, edge_a), (key_b, edge_b) = group
        if key_a[0] != key_b[0] and not edges_same_direction(edge_a, edge_b):
            shared.update((key_a, key_b))
    if shared:
        logger.debug("Faces share edges", edges=sorted(shared))
    return shared


def _rehome_face(face: FaceBRep, arena: VertexArena, eps: float, color: Color) -> FaceBRep:
    return FaceBRep(
        face.surface,
        tuple(_rehome_cycle(cycle, face.surface, arena, eps) for cycle in face.exteriors),
        tuple(_rehome_cycle(cycle, face.surface, arena, eps) for cycle in face.interiors),
        color,
    )


def _rehome_cycle(cycle: Cycle, surface, arena: VertexArena, eps: float) -> Cycle:
    edges = []
    for edge in cycle.edges:
        global_vertices = None
        if edge.vertices is not None:
            global_vertices = tuple(
                arena.insert(vertex.global_vertex.position, eps) for vertex in edge.vertices
            )
        edges.append(
            Edge.build(surface, edge.curve.local(), global_vertices, edge.reverse, tolerance=eps)
        )
    return Cycle(tuple(edges))


def _side_face(
    edge: Edge, path: Vector, flip: bool, arena: VertexArena, eps: float, color: Color
) -> FaceBRep:
    # The generator runs along the traversal of the edge, or against it when
    # sweeping against the normal, so the side face normal points outwards.
    generator = edge.curve.global_form()
    if edge.reverse != flip:
        generator = curve_reversed(generator)
    surface = SweptCurve(generator, path)

    if edge.is_closed:
        bottom = Edge.build(surface, Line(Point(0.0, 0.0), Vector(1.0, 0.0)), tolerance=eps)
        top = Edge.build(
            surface, Line(Point(0.0, 1.0), Vector(1.0, 0.0)), reverse=True, tolerance=eps
        )
        return FaceBRep(surface, (Cycle((bottom,)), Cycle((top,))), color=color)

    start, end = edge.traversal_vertices()
    a, b = start.global_vertex, end.global_vertex
    if flip:
        a, b = b, a
    a_top = arena.insert(a.position + path, eps)
    b_top = arena.insert(b.position + path, eps)

    s0 = curve_point_to_local(generator, a.position)
    s1 = curve_point_to_local(generator, b.position)
    if isinstance(generator, Circle):
        while s1 <= s0:
            s1 += TAU

    edges = (
        Edge.build(surface, Line(Point(0.0, 0.0), Vector(1.0, 0.0)), (a, b), tolerance=eps),
        Edge.build(surface, Line(Point(s1, 0.0), Vector(0.0, 1.0)), (b, b_top), tolerance=eps),
        Edge.build(
            surface,
            Line(Point(0.0, 1.0), Vector(1.0, 0.0)),
            (a_top, b_top),
            reverse=True,
            tolerance=eps,
        ),
        Edge.build(
            surface, Line(Point(s0, 0.0), Vector(0.0, 1.0)), (a, a_top), reverse=True, tolerance=eps
        ),
    )
    return FaceBRep(surface, (Cycle(edges),), color=color)
