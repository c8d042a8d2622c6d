"""Apply affine transforms uniformly to geometry and topology.

``transform`` is a single dispatch function with one branch per object kind.
It never mutates its input; every branch rebuilds the object from its
transformed parts. ``translate`` and ``rotate`` only build the corresponding
``Transform`` and defer to ``transform``.
"""

from __future__ import annotations

from typing import Iterable, List, Optional

import structlog

from .geometry import Circle, Curve, Line, SweptCurve, curve_transform, surface_transform
from .linalg import Point, Transform, Triangle, Vector
from .local import Local
from .objects import (
    Cycle,
    Edge,
    Face,
    FaceBRep,
    FaceTriangles,
    GlobalVertex,
    Sketch,
    Solid,
    Vertex,
)

logger = structlog.get_logger(__name__)


def transform(obj, transform: Transform, *, curve: Optional[Curve] = None):
    """Return ``obj`` transformed by ``transform``.

    Args:
        obj: Any geometry or topology object
        transform: The affine transform to apply
        curve: For a bare ``Vertex`` only, the already transformed curve the
            vertex lies on; its curve coordinate is recomputed against it

    Returns:
        A new object of the same kind
    """
    if isinstance(obj, Point):
        return transform.transform_point(obj)
    if isinstance(obj, Vector):
        return transform.transform_vector(obj)
    if isinstance(obj, (Line, Circle)):
        return curve_transform(obj, transform)
    if isinstance(obj, SweptCurve):
        return surface_transform(obj, transform)
    if isinstance(obj, Triangle):
        return transform.transform_triangle(obj)
    if isinstance(obj, Local):
        return obj.transform(transform)
    if isinstance(obj, GlobalVertex):
        return _transform_global_vertex(obj, transform)
    if isinstance(obj, Vertex):
        return _transform_vertex(obj, transform, curve)
    if isinstance(obj, Edge):
        return _transform_edge(obj, transform)
    if isinstance(obj, Cycle):
        return _transform_cycle(obj, transform)
    if isinstance(obj, (FaceBRep, FaceTriangles)):
        return _transform_face(obj, transform)
    if isinstance(obj, (Sketch, Solid)):
        logger.debug("Transforming face set", kind=type(obj).__name__, faces=len(obj))
        return type(obj).from_faces(transform_faces(obj.faces, transform))
    raise TypeError(f"Cannot transform object of type {type(obj).__name__}")


def translate(obj, offset):
    """Translate ``obj`` by ``offset``."""
    return transform(obj, Transform.translation(offset))


def rotate(obj, axis_angle):
    """Rotate ``obj`` about the origin; the magnitude of ``axis_angle`` is the angle."""
    return transform(obj, Transform.rotation(axis_angle))


def transform_faces(faces: Iterable[Face], transform: Transform) -> List[Face]:
    return [_transform_face(face, transform) for face in faces]


def _transform_global_vertex(vertex: GlobalVertex, transform: Transform) -> GlobalVertex:
    # Rebuilt from the mapped position; the handle carries identity across.
    return GlobalVertex(vertex.handle, transform.transform_point(vertex.position))


def _transform_vertex(vertex: Vertex, transform: Transform, curve: Optional[Curve]) -> Vertex:
    global_vertex = _transform_global_vertex(vertex.global_vertex, transform)
    if curve is None:
        return Vertex(vertex.position, global_vertex)
    return Vertex.on_curve(curve, global_vertex)


def _transform_edge(edge: Edge, transform: Transform) -> Edge:
    curve = edge.curve.transform(transform)
    vertices = None
    if edge.vertices is not None:
        vertices = tuple(
            _transform_vertex(vertex, transform, curve.global_form()) for vertex in edge.vertices
        )
    return Edge(curve, vertices, edge.reverse)


def _transform_face(face: Face, transform: Transform) -> Face:
    if isinstance(face, FaceBRep):
        return FaceBRep(
            surface_transform(face.surface, transform),
            tuple(_transform_cycle(cycle, transform) for cycle in face.exteriors),
            tuple(_transform_cycle(cycle, transform) for cycle in face.interiors),
            face.color,
        )
    if isinstance(face, FaceTriangles):
        return FaceTriangles(
            tuple((transform.transform_triangle(t), color) for t, color in face.triangles)
        )
    raise TypeError(f"Not a face: {face!r}")


def _transform_cycle(cycle: Cycle, transform: Transform) -> Cycle:
    return Cycle(tuple(_transform_edge(edge, transform) for edge in cycle.edges))
