"""Tests for curve and surface primitives."""

from __future__ import annotations

import math

import pytest

from kernel.geometry import (
    Circle,
    Line,
    SweptCurve,
    UnsupportedGeometry,
    curve_bounding_points,
    curve_point_from_local,
    curve_point_to_local,
    curve_reversed,
    curve_tangent,
    curves_coincide,
    mirror_local_curve,
    surface_curve_from_local,
    surface_is_planar,
    surface_normal,
    surface_point_from_local,
    surface_point_to_local,
    surface_reversed,
    surface_transform,
)
from kernel.linalg import Aabb, Point, Transform, Vector

EPS = 1e-9


class TestCurves:
    """Test cases for lines and circles."""

    def test_line_round_trip(self):
        """Test mapping a point to line coordinates and back."""
        line = Line.from_points(Point(1.0, 1.0, 0.0), Point(3.0, 1.0, 0.0))
        assert curve_point_from_local(line, 0.5) == Point(2.0, 1.0, 0.0)
        assert curve_point_to_local(line, Point(2.0, 5.0, 0.0)) == pytest.approx(0.5)

    def test_circle_parameters(self):
        """Test circle evaluation and normalized parameters."""
        circle = Circle.from_radius(Point(0.0, 0.0), 2.0)
        assert circle.radius == 2.0
        p = curve_point_from_local(circle, math.pi / 2)
        assert p.coords == pytest.approx((0.0, 2.0), abs=1e-12)
        assert curve_point_to_local(circle, Point(0.0, -2.0)) == pytest.approx(1.5 * math.pi)

    def test_circle_normal(self):
        """Test that an XY circle has a +Z normal."""
        circle = Circle.from_radius(Point(0.0, 0.0, 0.0), 1.0)
        assert circle.normal() == Vector(0.0, 0.0, 1.0)

    def test_reversed_line(self):
        """Test that a reversed curve at t equals the curve at -t."""
        line = Line(Point(0.0, 0.0), Vector(1.0, 2.0))
        rev = curve_reversed(line)
        assert curve_point_from_local(rev, 0.25) == curve_point_from_local(line, -0.25)

    def test_reversed_circle(self):
        """Test that reversing a circle flips its direction."""
        circle = Circle.from_radius(Point(0.0, 0.0), 1.0)
        rev = curve_reversed(circle)
        a = curve_point_from_local(rev, 0.3)
        b = curve_point_from_local(circle, -0.3)
        assert a.is_close(b, 1e-12)
        assert curve_tangent(rev, 0.0) == -curve_tangent(circle, 0.0)

    def test_circle_bounding_points(self):
        """Test that a full circle's bounding points cover its extremes."""
        circle = Circle.from_radius(Point(0.0, 0.0, 0.0), 1.0)
        box = Aabb.from_points(curve_bounding_points(circle, 0.0, 2.0 * math.pi))
        assert box.is_close(Aabb(Point(-1.0, -1.0, 0.0), Point(1.0, 1.0, 0.0)), 1e-12)

    def test_quarter_arc_bounding_points(self):
        """Test that a quarter arc's box does not include the other quadrants."""
        circle = Circle.from_radius(Point(0.0, 0.0, 0.0), 1.0)
        box = Aabb.from_points(curve_bounding_points(circle, 0.0, math.pi / 2))
        assert box.is_close(Aabb(Point(0.0, 0.0, 0.0), Point(1.0, 1.0, 0.0)), 1e-12)

    def test_curves_coincide(self):
        """Test coincidence ignores direction and parametrization."""
        a = Line(Point(0.0, 0.0), Vector(1.0, 0.0))
        b = Line(Point(5.0, 0.0), Vector(-3.0, 0.0))
        c = Line(Point(0.0, 1.0), Vector(1.0, 0.0))
        assert curves_coincide(a, b, 1e-9)
        assert not curves_coincide(a, c, 1e-9)

        circle = Circle.from_radius(Point(0.0, 0.0), 1.0)
        assert curves_coincide(circle, curve_reversed(circle), 1e-9)
        assert not curves_coincide(circle, Circle.from_radius(Point(0.0, 0.0), 2.0), 1e-9)
        assert not curves_coincide(a, circle, 1e-9)


class TestSurfaces:
    """Test cases for swept-curve surfaces."""

    def test_plane_round_trip(self):
        """Test mapping between plane coordinates and global points."""
        plane = SweptCurve.xz_plane()
        assert surface_is_planar(plane)
        global_point = surface_point_from_local(plane, Point(2.0, 3.0))
        assert global_point == Point(2.0, 0.0, 3.0)
        assert surface_point_to_local(plane, global_point).coords == pytest.approx((2.0, 3.0))

    def test_plane_normal(self):
        """Test the normal of the XY plane."""
        assert surface_normal(SweptCurve.xy_plane()) == Vector(0.0, 0.0, 1.0)

    def test_cylinder_round_trip(self):
        """Test mapping between cylinder coordinates and global points."""
        cylinder = SweptCurve(
            Circle.from_radius(Point(0.0, 0.0, 0.0), 1.0), Vector(0.0, 0.0, 2.0)
        )
        assert not surface_is_planar(cylinder)
        global_point = surface_point_from_local(cylinder, Point(math.pi / 2, 0.5))
        assert global_point.coords == pytest.approx((0.0, 1.0, 1.0), abs=1e-12)
        local = surface_point_to_local(cylinder, global_point)
        assert local.coords == pytest.approx((math.pi / 2, 0.5))

    def test_cylinder_normal_points_outward(self):
        """Test that an XY circle swept along +Z has outward normals."""
        cylinder = SweptCurve(
            Circle.from_radius(Point(0.0, 0.0, 0.0), 1.0), Vector(0.0, 0.0, 1.0)
        )
        normal = surface_normal(cylinder, Point(0.0, 0.0))
        assert normal.coords == pytest.approx((1.0, 0.0, 0.0), abs=1e-12)

    def test_reversed_surface(self):
        """Test that reversing a surface flips the normal and mirrors v."""
        plane = SweptCurve.xy_plane()
        rev = surface_reversed(plane)
        assert surface_normal(rev) == -surface_normal(plane)
        p = surface_point_from_local(plane, Point(0.3, 0.7))
        assert surface_point_from_local(rev, Point(0.3, -0.7)) == p

    def test_mirror_local_curve(self):
        """Test mirroring a local line through the u axis."""
        line = Line(Point(1.0, 2.0), Vector(0.0, 1.0))
        assert mirror_local_curve(line) == Line(Point(1.0, -2.0), Vector(0.0, -1.0))

    def test_surface_transform(self):
        """Test translating a plane."""
        plane = surface_transform(
            SweptCurve.xy_plane(), Transform.translation((0.0, 0.0, 5.0))
        )
        assert surface_point_from_local(plane, Point(0.0, 0.0)) == Point(0.0, 0.0, 5.0)


class TestLifting:
    """Test cases for lifting local curves into global space."""

    def test_line_onto_plane(self):
        """Test that a lifted line keeps the local parametrization."""
        plane = SweptCurve.xz_plane()
        local = Line.from_points(Point(0.0, 0.0), Point(1.0, 1.0))
        lifted = surface_curve_from_local(plane, local, EPS)
        assert curve_point_from_local(lifted, 1.0) == Point(1.0, 0.0, 1.0)

    def test_circle_onto_plane(self):
        """Test lifting a circle onto an orthonormal plane."""
        local = Circle.from_radius(Point(1.0, 1.0), 0.5)
        lifted = surface_curve_from_local(SweptCurve.xy_plane(), local, EPS)
        assert isinstance(lifted, Circle)
        assert lifted.center == Point(1.0, 1.0, 0.0)
        assert lifted.radius == pytest.approx(0.5)

    def test_circle_onto_skewed_plane(self):
        """Test that lifting onto a non-uniform plane is rejected."""
        plane = SweptCurve.plane_from_points(
            Point(0.0, 0.0, 0.0), Point(2.0, 0.0, 0.0), Point(0.0, 1.0, 0.0)
        )
        with pytest.raises(UnsupportedGeometry):
            surface_curve_from_local(plane, Circle.from_radius(Point(0.0, 0.0), 1.0), EPS)

    def test_circle_plane_check_uses_tolerance(self):
        """Test that near-orthonormal plane axes are accepted only within the tolerance."""
        plane = SweptCurve.plane_from_points(
            Point(0.0, 0.0, 0.0), Point(1.0 + 1e-7, 0.0, 0.0), Point(0.0, 1.0, 0.0)
        )
        circle = Circle.from_radius(Point(0.0, 0.0), 1.0)
        with pytest.raises(UnsupportedGeometry):
            surface_curve_from_local(plane, circle, EPS)
        lifted = surface_curve_from_local(plane, circle, 1e-6)
        assert isinstance(lifted, Circle)

    def test_ruling_onto_cylinder(self):
        """Test that a v-line on a cylinder lifts to a ruling line."""
        cylinder = SweptCurve(
            Circle.from_radius(Point(0.0, 0.0, 0.0), 1.0), Vector(0.0, 0.0, 2.0)
        )
        lifted = surface_curve_from_local(cylinder, Line(Point(0.0, 0.0), Vector(0.0, 1.0)), EPS)
        assert isinstance(lifted, Line)
        assert curve_point_from_local(lifted, 1.0) == Point(1.0, 0.0, 2.0)

    @pytest.mark.parametrize("du", [1.0, -1.0])
    def test_u_line_onto_cylinder(self, du):
        """Test that a u-line on a cylinder lifts to a circle with the same parametrization."""
        cylinder = SweptCurve(
            Circle.from_radius(Point(0.0, 0.0, 0.0), 1.0), Vector(0.0, 0.0, 2.0)
        )
        local = Line(Point(0.4, 0.5), Vector(du, 0.0))
        lifted = surface_curve_from_local(cylinder, local, EPS)
        assert isinstance(lifted, Circle)
        for t in (0.0, 0.7, 2.0):
            expected = surface_point_from_local(cylinder, curve_point_from_local(local, t))
            assert curve_point_from_local(lifted, t).is_close(expected, 1e-12)

    def test_diagonal_onto_cylinder(self):
        """Test that a helix-like line cannot be lifted."""
        cylinder = SweptCurve(
            Circle.from_radius(Point(0.0, 0.0, 0.0), 1.0), Vector(0.0, 0.0, 1.0)
        )
        with pytest.raises(UnsupportedGeometry):
            surface_curve_from_local(cylinder, Line(Point(0.0, 0.0), Vector(1.0, 1.0)), EPS)

    def test_3d_curve_rejected(self):
        """Test that only local curves can be lifted."""
        with pytest.raises(ValueError):
            surface_curve_from_local(
                SweptCurve.xy_plane(), Line(Point(0.0, 0.0, 0.0), Vector(1.0, 0.0, 0.0)), EPS
            )
