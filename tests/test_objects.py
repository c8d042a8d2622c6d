"""Tests for topological objects."""

from __future__ import annotations

import math

import pytest

from kernel.geometry import Circle, Line, SweptCurve
from kernel.linalg import Aabb, Point, Triangle
from kernel.local import Local
from kernel.objects import (
    Cycle,
    Edge,
    FaceBRep,
    FaceTriangles,
    Sketch,
    Solid,
    VertexArena,
    bounding_volume,
    face_reversed,
)

EPS = 1e-9


class TestLocal:
    """Test cases for local/global curve pairs."""

    def test_direct_construction_rejected(self):
        """Test that pairs can only be created through lift."""
        line = Line(Point(0.0, 0.0), Point(1.0, 0.0) - Point(0.0, 0.0))
        with pytest.raises(TypeError):
            Local(line, line)

    def test_lift_keeps_both_forms(self, xy_plane, tolerance):
        """Test that a lifted pair exposes the local and the global curve."""
        local = Line.from_points(Point(0.0, 0.0), Point(1.0, 0.0))
        pair = Local.lift(local, xy_plane, tolerance)
        assert pair.local() == local
        assert pair.global_form() == Line.from_points(
            Point(0.0, 0.0, 0.0), Point(1.0, 0.0, 0.0)
        )


class TestVertexArena:
    """Test cases for the vertex store."""

    def test_deduplicates_within_tolerance(self, arena, tolerance):
        """Test that coincident positions share one vertex."""
        a = arena.insert(Point(0.0, 0.0, 0.0), tolerance)
        b = arena.insert(Point(1e-12, 0.0, 0.0), tolerance)
        c = arena.insert(Point(1.0, 0.0, 0.0), tolerance)
        assert a is b
        assert a.handle != c.handle
        assert len(arena) == 2

    def test_resolve(self, arena, tolerance):
        """Test resolving a handle back to its vertex."""
        vertex = arena.insert(Point(1.0, 2.0, 3.0), tolerance)
        assert arena.resolve(vertex.handle) is vertex

    def test_foreign_handle(self, arena, tolerance):
        """Test that handles from another arena are rejected."""
        vertex = VertexArena().insert(Point(0.0, 0.0, 0.0), tolerance)
        with pytest.raises(KeyError):
            arena.resolve(vertex.handle)

    def test_handle_string(self, arena, tolerance):
        """Test the printable form of a handle."""
        vertex = arena.insert(Point(0.0, 0.0, 0.0), tolerance)
        assert str(vertex.handle).startswith("v")
        assert str(vertex.handle).endswith(".0")


class TestEdge:
    """Test cases for edges."""

    def test_line_segment(self, xy_plane, arena, tolerance):
        """Test a bounded straight edge."""
        a = arena.insert(Point(0.0, 0.0, 0.0), tolerance)
        b = arena.insert(Point(2.0, 0.0, 0.0), tolerance)
        edge = Edge.line_segment(xy_plane, (Point(0.0, 0.0), Point(2.0, 0.0)), (a, b), EPS)

        assert not edge.is_closed
        assert edge.param_range() == pytest.approx((0.0, 1.0))
        assert edge.start() == Point(0.0, 0.0, 0.0)
        assert edge.end() == Point(2.0, 0.0, 0.0)
        assert edge.local_segment() == (Point(0.0, 0.0), Point(2.0, 0.0))

    def test_reversed_edge(self, xy_plane, arena, tolerance):
        """Test that reversing swaps the traversal end points."""
        a = arena.insert(Point(0.0, 0.0, 0.0), tolerance)
        b = arena.insert(Point(2.0, 0.0, 0.0), tolerance)
        edge = Edge.line_segment(xy_plane, (Point(0.0, 0.0), Point(2.0, 0.0)), (a, b), EPS).reversed()

        assert edge.reverse
        assert edge.start() == Point(2.0, 0.0, 0.0)
        assert edge.end() == Point(0.0, 0.0, 0.0)
        assert edge.traversal_params() == pytest.approx((1.0, 0.0))

    def test_closed_circle(self, xy_plane):
        """Test a closed circular edge."""
        edge = Edge.circle(xy_plane, Point(0.0, 0.0), 1.0, EPS)
        assert edge.is_closed
        assert edge.param_range() == (0.0, 2.0 * math.pi)
        assert edge.start() == edge.end()
        assert isinstance(edge.curve.global_form(), Circle)
        with pytest.raises(ValueError):
            edge.local_segment()

    def test_arc_param_range_wraps(self, xy_plane, arena, tolerance):
        """Test that an arc crossing parameter zero gets an increasing range."""
        start = arena.insert(Point(0.0, -1.0, 0.0), tolerance)
        end = arena.insert(Point(0.0, 1.0, 0.0), tolerance)
        edge = Edge.build(
            xy_plane, Circle.from_radius(Point(0.0, 0.0), 1.0), (start, end), tolerance=tolerance
        )

        t0, t1 = edge.param_range()
        assert t0 == pytest.approx(1.5 * math.pi)
        assert t1 == pytest.approx(2.5 * math.pi)
        box = bounding_volume(edge)
        assert box.max.x == pytest.approx(1.0)
        assert box.min.x == pytest.approx(0.0, abs=1e-12)


class TestCycle:
    """Test cases for cycles."""

    def test_polygon_is_connected(self, xy_plane, arena, tolerance):
        """Test that each edge ends where the next begins."""
        cycle = Cycle.polygon(
            xy_plane, [Point(0.0, 0.0), Point(1.0, 0.0), Point(0.0, 1.0)], arena, tolerance
        )
        assert len(cycle.edges) == 3
        for edge, following in zip(cycle.edges, cycle.edges[1:] + cycle.edges[:1]):
            assert edge.end() == following.start()

    def test_too_few_points(self, xy_plane, arena, tolerance):
        """Test that a polygon needs three points."""
        with pytest.raises(ValueError):
            Cycle.polygon(xy_plane, [Point(0.0, 0.0), Point(1.0, 0.0)], arena, tolerance)

    def test_signed_area(self, unit_square):
        """Test signed area and orientation."""
        cycle = unit_square.exteriors[0]
        assert cycle.signed_area() == pytest.approx(1.0)
        assert cycle.is_counter_clockwise()
        assert cycle.reversed().signed_area() == pytest.approx(-1.0)

    def test_circle_area(self, xy_plane):
        """Test the approximate area of a circular cycle."""
        cycle = Cycle((Edge.circle(xy_plane, Point(0.0, 0.0), 1.0, EPS),))
        assert cycle.signed_area() == pytest.approx(math.pi, rel=1e-2)


class TestFace:
    """Test cases for faces."""

    def test_orientation_is_normalized(self, xy_plane, arena, tolerance):
        """Test that exteriors become counter-clockwise and holes clockwise."""
        face = FaceBRep.polygon(
            xy_plane,
            [Point(0.0, 0.0), Point(0.0, 4.0), Point(4.0, 4.0), Point(4.0, 0.0)],
            [[Point(1.0, 1.0), Point(3.0, 1.0), Point(3.0, 3.0), Point(1.0, 3.0)]],
            arena=arena,
            tolerance=tolerance,
        )
        assert face.exteriors[0].is_counter_clockwise()
        assert not face.interiors[0].is_counter_clockwise()
        assert len(face.all_cycles()) == 2

    def test_reversed_face(self, unit_square):
        """Test that a reversed face keeps its vertices and stays counter-clockwise."""
        flipped = face_reversed(unit_square)
        assert flipped.exteriors[0].is_counter_clockwise()

        original = {v.handle for e in unit_square.exteriors[0].edges for v in e.vertices}
        mirrored = {v.handle for e in flipped.exteriors[0].edges for v in e.vertices}
        assert original == mirrored

        # Global traversal direction is reversed
        starts = [e.start() for e in unit_square.exteriors[0].edges]
        ends = [e.end() for e in flipped.exteriors[0].edges]
        assert sorted(starts, key=lambda p: p.coords) == sorted(ends, key=lambda p: p.coords)
        assert face_reversed(flipped).surface == unit_square.surface

    def test_reversed_triangles(self):
        """Test that reversing a triangle face flips the winding."""
        triangle = Triangle((0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (0.0, 1.0, 0.0))
        face = FaceTriangles(((triangle, (255, 0, 0, 255)),))
        flipped = face_reversed(face)
        assert flipped.triangles[0][0].normal() == -triangle.normal()


class TestFaceSets:
    """Test cases for sketches and solids."""

    def test_sketch_queries(self, unit_square_sketch):
        """Test edge and vertex queries on a sketch."""
        assert len(unit_square_sketch) == 1
        assert len(unit_square_sketch.edges()) == 4
        assert len(unit_square_sketch.global_vertices()) == 4
        assert unit_square_sketch.into_faces() == list(unit_square_sketch.faces)

    def test_equality_depends_on_kind(self, unit_square):
        """Test that a sketch never equals a solid with the same faces."""
        assert Sketch([unit_square]) == Sketch.from_faces([unit_square])
        assert Sketch([unit_square]) != Solid([unit_square])

    def test_bounding_volume(self, unit_square_sketch):
        """Test the bounding box of a sketch."""
        box = bounding_volume(unit_square_sketch)
        assert box == Aabb(Point(0.0, 0.0, 0.0), Point(1.0, 1.0, 0.0))

    def test_bounding_volume_of_circle_face(self, xy_plane):
        """Test the bounding box of a disc."""
        face = FaceBRep(xy_plane, (Cycle((Edge.circle(xy_plane, Point(2.0, 0.0), 1.0, EPS),)),))
        box = bounding_volume(Sketch([face]))
        assert box.is_close(Aabb(Point(1.0, -1.0, 0.0), Point(3.0, 1.0, 0.0)), 1e-12)

    def test_bounding_volume_rejects_unknown(self):
        """Test that only topological objects have a bounding volume."""
        with pytest.raises(TypeError):
            bounding_volume("not a shape")

    def test_triangle_face_bounds(self):
        """Test bounding a tessellated face."""
        face = FaceTriangles(
            ((Triangle((0.0, 0.0, 0.0), (1.0, 0.0, 2.0), (0.0, 1.0, 0.0)), (0, 0, 0, 255)),)
        )
        assert bounding_volume(Solid([face])) == Aabb(
            Point(0.0, 0.0, 0.0), Point(1.0, 1.0, 2.0)
        )

    def test_polygon_on_xz_plane(self):
        """Test that polygon vertices land on the plane in global space."""
        plane = SweptCurve.xz_plane()
        arena = VertexArena()
        cycle = Cycle.polygon(
            plane, [Point(0.0, 0.0), Point(1.0, 0.0), Point(0.0, 1.0)], arena, 1e-9
        )
        assert {v.position for v in arena} == {
            Point(0.0, 0.0, 0.0), Point(1.0, 0.0, 0.0), Point(0.0, 0.0, 1.0)
        }
        assert len(cycle.edges) == 3
