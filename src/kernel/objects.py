"""Topological objects: vertices, edges, cycles, faces, sketches and solids.

Objects are immutable once constructed. Global vertices live in a
``VertexArena`` while a shape is being assembled; every object that touches
the same position holds the same ``GlobalVertex`` (same handle), which is what
lets validation tell that two faces share an edge.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, Union

from .geometry import (
    TAU,
    Circle,
    Curve,
    Line,
    Surface,
    curve_bounding_points,
    curve_point_from_local,
    curve_point_to_local,
    surface_point_from_local,
    surface_reversed,
)
from .linalg import Aabb, Point, Triangle
from .local import Local
from .tolerance import Tolerance, ToleranceLike

Color = Tuple[int, int, int, int]

DEFAULT_COLOR: Color = (255, 0, 0, 255)

# Segments used to approximate circular edges when computing signed areas.
_AREA_SEGMENTS = 64

_arena_ids = itertools.count()


@dataclass(frozen=True, order=True)
class VertexHandle:
    """Stable identity of a global vertex inside its arena."""

    arena: int
    index: int

    def __str__(self) -> str:
        return f"v{self.arena}.{self.index}"


@dataclass(frozen=True)
class GlobalVertex:
    """A vertex in global space. The authority for a vertex position."""

    handle: VertexHandle
    position: Point

    def __post_init__(self) -> None:
        if self.position.dim != 3:
            raise ValueError("Global vertex positions must be 3D")


class VertexArena:
    """Store of global vertices that deduplicates coincident positions."""

    def __init__(self) -> None:
        self._id = next(_arena_ids)
        self._vertices: List[GlobalVertex] = []

    def __len__(self) -> int:
        return len(self._vertices)

    def __iter__(self) -> Iterator[GlobalVertex]:
        return iter(self._vertices)

    def insert(self, position: Point, tolerance: ToleranceLike) -> GlobalVertex:
        """Return the vertex at ``position``, creating it if none is close enough."""
        eps = Tolerance.from_scalar(tolerance).value
        for vertex in self._vertices:
            if vertex.position.distance_to(position) <= eps:
                return vertex

        vertex = GlobalVertex(VertexHandle(self._id, len(self._vertices)), position)
        self._vertices.append(vertex)
        return vertex

    def resolve(self, handle: VertexHandle) -> GlobalVertex:
        if handle.arena != self._id:
            raise KeyError(f"Handle {handle} belongs to another arena")
        return self._vertices[handle.index]


@dataclass(frozen=True)
class Vertex:
    """A global vertex seen from a curve, at curve coordinate ``position``."""

    position: Point
    global_vertex: GlobalVertex

    @classmethod
    def on_curve(cls, curve: Curve, global_vertex: GlobalVertex) -> "Vertex":
        """Compute the curve coordinate of ``global_vertex`` on ``curve``."""
        t = curve_point_to_local(curve, global_vertex.position)
        return cls(Point(t), global_vertex)

    @property
    def handle(self) -> VertexHandle:
        return self.global_vertex.handle


@dataclass(frozen=True)
class Edge:
    """Segment of a curve, bounded by two vertices or closed on itself.

    ``reverse`` flips the traversal direction relative to the curve's
    parametrization.
    """

    curve: Local
    vertices: Optional[Tuple[Vertex, Vertex]] = None
    reverse: bool = False

    @classmethod
    def build(
        cls,
        surface: Surface,
        local_curve: Curve,
        global_vertices: Optional[Tuple[GlobalVertex, GlobalVertex]] = None,
        reverse: bool = False,
        *,
        tolerance: ToleranceLike,
    ) -> "Edge":
        curve = Local.lift(local_curve, surface, tolerance)
        vertices = None
        if global_vertices is not None:
            start, end = global_vertices
            vertices = (
                Vertex.on_curve(curve.global_form(), start),
                Vertex.on_curve(curve.global_form(), end),
            )
        return cls(curve, vertices, reverse)

    @classmethod
    def line_segment(
        cls,
        surface: Surface,
        points: Tuple[Point, Point],
        global_vertices: Tuple[GlobalVertex, GlobalVertex],
        tolerance: ToleranceLike,
    ) -> "Edge":
        """Straight edge between two points given in surface coordinates."""
        a, b = points
        return cls.build(surface, Line.from_points(a, b), global_vertices, tolerance=tolerance)

    @classmethod
    def circle(
        cls, surface: Surface, center: Point, radius: float, tolerance: ToleranceLike
    ) -> "Edge":
        """Closed circular edge, counter-clockwise in surface coordinates."""
        return cls.build(surface, Circle.from_radius(center, radius), tolerance=tolerance)

    @property
    def is_closed(self) -> bool:
        return self.vertices is None

    def reversed(self) -> "Edge":
        return Edge(self.curve, self.vertices, not self.reverse)

    def param_range(self) -> Tuple[float, float]:
        """Curve parameters covered by the edge, in curve direction."""
        if self.vertices is None:
            return (0.0, TAU)
        t0 = self.vertices[0].position.x
        t1 = self.vertices[1].position.x
        if isinstance(self.curve.global_form(), Circle):
            while t1 <= t0:
                t1 += TAU
        return (t0, t1)

    def traversal_params(self) -> Tuple[float, float]:
        t0, t1 = self.param_range()
        return (t1, t0) if self.reverse else (t0, t1)

    def traversal_vertices(self) -> Optional[Tuple[Vertex, Vertex]]:
        if self.vertices is None:
            return None
        start, end = self.vertices
        return (end, start) if self.reverse else (start, end)

    def start(self) -> Point:
        """Global position where traversal of the edge begins."""
        vertices = self.traversal_vertices()
        if vertices is not None:
            return vertices[0].global_vertex.position
        return curve_point_from_local(self.curve.global_form(), 0.0)

    def end(self) -> Point:
        vertices = self.traversal_vertices()
        if vertices is not None:
            return vertices[1].global_vertex.position
        return curve_point_from_local(self.curve.global_form(), 0.0)

    def local_point(self, t: float) -> Point:
        return curve_point_from_local(self.curve.local(), t)

    def local_segment(self) -> Tuple[Point, Point]:
        """Surface-coordinate end points, in curve direction."""
        if self.vertices is None:
            raise ValueError("A closed edge has no end points")
        t0, t1 = self.param_range()
        return (self.local_point(t0), self.local_point(t1))

    def local_polyline(self, segments: int) -> List[Point]:
        """Surface-coordinate points along the traversal, end point excluded."""
        t0, t1 = self.traversal_params()
        if isinstance(self.curve.local(), Line):
            return [self.local_point(t0)]
        return [self.local_point(t0 + (t1 - t0) * i / segments) for i in range(segments)]

    def bounding_points(self) -> List[Point]:
        t0, t1 = self.param_range()
        if t1 < t0:
            t0, t1 = t1, t0
        return curve_bounding_points(self.curve.global_form(), t0, t1)


@dataclass(frozen=True)
class Cycle:
    """Closed loop of edges; each edge ends where the next one starts."""

    edges: Tuple[Edge, ...]

    @classmethod
    def polygon(
        cls,
        surface: Surface,
        points: Sequence[Point],
        arena: VertexArena,
        tolerance: ToleranceLike,
    ) -> "Cycle":
        """Polygon through ``points`` (surface coordinates), closed automatically."""
        points = [p if isinstance(p, Point) else Point(*p) for p in points]
        if len(points) < 3:
            raise ValueError("A polygon needs at least three points")

        vertices = [
            arena.insert(surface_point_from_local(surface, p), tolerance) for p in points
        ]
        edges = []
        for i in range(len(points)):
            j = (i + 1) % len(points)
            edges.append(
                Edge.line_segment(
                    surface, (points[i], points[j]), (vertices[i], vertices[j]), tolerance
                )
            )
        return cls(tuple(edges))

    def reversed(self) -> "Cycle":
        return Cycle(tuple(edge.reversed() for edge in reversed(self.edges)))

    def signed_area(self) -> float:
        """Signed area in surface coordinates; positive when counter-clockwise."""
        points = [p for edge in self.edges for p in edge.local_polyline(_AREA_SEGMENTS)]
        area = 0.0
        for i, p in enumerate(points):
            q = points[(i + 1) % len(points)]
            area += p.x * q.y - q.x * p.y
        return area / 2.0

    def is_counter_clockwise(self) -> bool:
        return self.signed_area() > 0.0


@dataclass(frozen=True)
class FaceBRep:
    """Face bounded by cycles on a surface.

    Exterior cycles run counter-clockwise around the surface normal, interior
    cycles (holes) clockwise, so the face is always left of its edges.
    """

    surface: Surface
    exteriors: Tuple[Cycle, ...]
    interiors: Tuple[Cycle, ...] = ()
    color: Color = DEFAULT_COLOR

    @classmethod
    def polygon(
        cls,
        surface: Surface,
        exterior: Sequence[Point],
        interiors: Sequence[Sequence[Point]] = (),
        *,
        arena: VertexArena,
        tolerance: ToleranceLike,
        color: Color = DEFAULT_COLOR,
    ) -> "FaceBRep":
        """Polygonal face, with cycle orientation normalized."""
        outer = Cycle.polygon(surface, exterior, arena, tolerance)
        if not outer.is_counter_clockwise():
            outer = outer.reversed()
        holes = []
        for points in interiors:
            hole = Cycle.polygon(surface, points, arena, tolerance)
            if hole.is_counter_clockwise():
                hole = hole.reversed()
            holes.append(hole)
        return cls(surface, (outer,), tuple(holes), color)

    def all_cycles(self) -> Tuple[Cycle, ...]:
        return self.exteriors + self.interiors


@dataclass(frozen=True)
class FaceTriangles:
    """Already tessellated face: a list of triangles with per-triangle color."""

    triangles: Tuple[Tuple[Triangle, Color], ...]


Face = Union[FaceBRep, FaceTriangles]


def face_reversed(face: Face) -> Face:
    """The same face seen from the other side."""
    if isinstance(face, FaceBRep):
        surface = surface_reversed(face.surface)
        return FaceBRep(
            surface,
            tuple(_mirror_cycle(cycle) for cycle in face.exteriors),
            tuple(_mirror_cycle(cycle) for cycle in face.interiors),
            face.color,
        )
    if isinstance(face, FaceTriangles):
        return FaceTriangles(
            tuple((Triangle(t.a, t.c, t.b), color) for t, color in face.triangles)
        )
    raise TypeError(f"Not a face: {face!r}")


def _mirror_cycle(cycle: Cycle) -> Cycle:
    edges = [Edge(edge.curve.mirrored(), edge.vertices, edge.reverse) for edge in cycle.edges]
    # Mirroring the surface coordinates flipped the local orientation, reversing
    # restores "face on the left" for the flipped normal.
    return Cycle(tuple(edges)).reversed()


class _FaceSet:
    """Shared behaviour of sketches and solids."""

    __slots__ = ("_faces",)

    def __init__(self, faces: Iterable[Face] = ()) -> None:
        self._faces: Tuple[Face, ...] = tuple(faces)

    @classmethod
    def from_faces(cls, faces: Iterable[Face]):
        return cls(faces)

    @property
    def faces(self) -> Tuple[Face, ...]:
        return self._faces

    def into_faces(self) -> List[Face]:
        return list(self._faces)

    def brep_faces(self) -> List[Tuple[int, FaceBRep]]:
        return [(i, f) for i, f in enumerate(self._faces) if isinstance(f, FaceBRep)]

    def iter_edges(self) -> Iterator[Tuple[int, int, int, Edge]]:
        """Yield ``(face_index, cycle_index, edge_index, edge)`` for B-rep faces."""
        for face_index, face in self.brep_faces():
            for cycle_index, cycle in enumerate(face.all_cycles()):
                for edge_index, edge in enumerate(cycle.edges):
                    yield face_index, cycle_index, edge_index, edge

    def edges(self) -> List[Edge]:
        return [edge for _, _, _, edge in self.iter_edges()]

    def global_vertices(self) -> Dict[VertexHandle, GlobalVertex]:
        result: Dict[VertexHandle, GlobalVertex] = {}
        for _, _, _, edge in self.iter_edges():
            if edge.vertices is not None:
                for vertex in edge.vertices:
                    result[vertex.handle] = vertex.global_vertex
        return result

    def __eq__(self, other) -> bool:
        return type(self) is type(other) and self._faces == other._faces

    def __hash__(self) -> int:
        return hash((type(self).__name__, self._faces))

    def __len__(self) -> int:
        return len(self._faces)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(faces={len(self._faces)})"


class Sketch(_FaceSet):
    """Faces in a shared 2D context, with no notion of inside or outside."""

    __slots__ = ()


class Solid(_FaceSet):
    """Faces that together bound a closed 3D region."""

    __slots__ = ()


def bounding_volume(obj) -> Aabb:
    """Exact axis-aligned box of an edge, cycle, face, sketch or solid."""
    return Aabb.from_points(_bounding_points(obj))


def _bounding_points(obj) -> List:
    if isinstance(obj, Edge):
        return obj.bounding_points()
    if isinstance(obj, Cycle):
        return [p for edge in obj.edges for p in edge.bounding_points()]
    if isinstance(obj, FaceBRep):
        return [p for cycle in obj.exteriors for p in _bounding_points(cycle)]
    if isinstance(obj, FaceTriangles):
        return [p for triangle, _ in obj.triangles for p in triangle.points]
    if isinstance(obj, _FaceSet):
        return [p for face in obj.faces for p in _bounding_points(face)]
    raise TypeError(f"Cannot compute bounding volume of {obj!r}")
