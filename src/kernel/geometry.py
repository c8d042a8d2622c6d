"""Curve and surface primitives.

Curves and surfaces are tagged unions of plain frozen dataclasses. Every
operation is a dispatch function with one branch per variant, so adding a
kind means adding a dataclass and a branch in each function below.

A curve maps a 1D parameter to a point in its embedding space, which is
either global 3D space or the 2D parameter space of a surface. A swept-curve
surface maps ``(u, v)`` to ``curve(u) + path * v``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional, Union

import numpy as np

from .linalg import Point, Transform, Vector
from .tolerance import Tolerance, ToleranceLike

TAU = 2.0 * math.pi


class UnsupportedGeometry(NotImplementedError):
    """Raised when an operation is not defined for a combination of geometry."""

    pass


@dataclass(frozen=True)
class Line:
    """Infinite line ``origin + direction * t``."""

    origin: Point
    direction: Vector

    @classmethod
    def from_points(cls, a: Point, b: Point) -> "Line":
        """Line through ``a`` (t = 0) and ``b`` (t = 1)."""
        return cls(a, b - a)

    @property
    def dim(self) -> int:
        return self.origin.dim


@dataclass(frozen=True)
class Circle:
    """Circle ``center + a * cos(t) + b * sin(t)``.

    ``a`` and ``b`` are orthogonal and their length is the radius.
    """

    center: Point
    a: Vector
    b: Vector

    @classmethod
    def from_radius(cls, center: Point, radius: float) -> "Circle":
        """Circle in the XY plane (or the plane of 2D coordinates)."""
        if center.dim == 2:
            return cls(center, Vector(radius, 0.0), Vector(0.0, radius))
        return cls(center, Vector(radius, 0.0, 0.0), Vector(0.0, radius, 0.0))

    @property
    def dim(self) -> int:
        return self.center.dim

    @property
    def radius(self) -> float:
        return self.a.magnitude()

    def normal(self) -> Vector:
        return self.a.cross(self.b).normalize()


Curve = Union[Line, Circle]


def curve_point_from_local(curve: Curve, t: float) -> Point:
    """Point at parameter ``t``."""
    if isinstance(curve, Line):
        return curve.origin + curve.direction * t
    if isinstance(curve, Circle):
        return curve.center + curve.a * math.cos(t) + curve.b * math.sin(t)
    raise TypeError(f"Not a curve: {curve!r}")


def curve_point_to_local(curve: Curve, point: Point) -> float:
    """Parameter of the projection of ``point`` onto ``curve``.

    Circle parameters are normalized to ``[0, 2*pi)``.
    """
    if isinstance(curve, Line):
        d = curve.direction
        return (point - curve.origin).dot(d) / d.dot(d)
    if isinstance(curve, Circle):
        v = point - curve.center
        cos_t = v.dot(curve.a) / curve.a.dot(curve.a)
        sin_t = v.dot(curve.b) / curve.b.dot(curve.b)
        return math.atan2(sin_t, cos_t) % TAU
    raise TypeError(f"Not a curve: {curve!r}")


def curve_tangent(curve: Curve, t: float) -> Vector:
    if isinstance(curve, Line):
        return curve.direction
    if isinstance(curve, Circle):
        return curve.b * math.cos(t) - curve.a * math.sin(t)
    raise TypeError(f"Not a curve: {curve!r}")


def curve_reversed(curve: Curve) -> Curve:
    """Same point set, opposite direction; ``reversed(t)`` equals ``curve(-t)``."""
    if isinstance(curve, Line):
        return Line(curve.origin, -curve.direction)
    if isinstance(curve, Circle):
        return Circle(curve.center, curve.a, -curve.b)
    raise TypeError(f"Not a curve: {curve!r}")


def curve_transform(curve: Curve, transform: Transform) -> Curve:
    if isinstance(curve, Line):
        return Line(
            transform.transform_point(curve.origin),
            transform.transform_vector(curve.direction),
        )
    if isinstance(curve, Circle):
        return Circle(
            transform.transform_point(curve.center),
            transform.transform_vector(curve.a),
            transform.transform_vector(curve.b),
        )
    raise TypeError(f"Not a curve: {curve!r}")


def curve_bounding_points(curve: Curve, t0: float, t1: float) -> List[Point]:
    """Points whose bounding box equals the box of ``curve`` over ``[t0, t1]``.

    For circles this adds the per-axis extremes that fall inside the range.
    """
    points = [curve_point_from_local(curve, t0), curve_point_from_local(curve, t1)]
    if isinstance(curve, Circle):
        for i in range(curve.dim):
            extreme = math.atan2(curve.b[i], curve.a[i])
            for candidate in (extreme, extreme + math.pi):
                # Shift the candidate into [t0, t0 + 2*pi)
                t = t0 + (candidate - t0) % TAU
                if t <= t1:
                    points.append(curve_point_from_local(curve, t))
    return points


def curves_coincide(a: Curve, b: Curve, tolerance: float) -> bool:
    """Whether two curves describe the same point set, ignoring direction."""
    if isinstance(a, Line) and isinstance(b, Line):
        if _distance_to_line(b.origin, a) > tolerance:
            return False
        far = b.origin + b.direction.normalize()
        return _distance_to_line(far, a) <= tolerance
    if isinstance(a, Circle) and isinstance(b, Circle):
        if not a.center.is_close(b.center, tolerance):
            return False
        if abs(a.radius - b.radius) > tolerance:
            return False
        if a.dim == 3:
            return abs(abs(a.normal().dot(b.normal())) - 1.0) <= tolerance
        return True
    return False


def _distance_to_line(point: Point, line: Line) -> float:
    t = curve_point_to_local(line, point)
    return point.distance_to(curve_point_from_local(line, t))


@dataclass(frozen=True)
class SweptCurve:
    """Surface created by sweeping ``curve`` along ``path``."""

    curve: Curve
    path: Vector

    @classmethod
    def plane_from_points(cls, a: Point, b: Point, c: Point) -> "SweptCurve":
        """Plane with ``u`` running from ``a`` to ``b`` and ``v`` from ``a`` to ``c``."""
        return cls(Line.from_points(a, b), c - a)

    @classmethod
    def xy_plane(cls) -> "SweptCurve":
        return cls.plane_from_points(
            Point(0.0, 0.0, 0.0), Point(1.0, 0.0, 0.0), Point(0.0, 1.0, 0.0)
        )

    @classmethod
    def xz_plane(cls) -> "SweptCurve":
        return cls.plane_from_points(
            Point(0.0, 0.0, 0.0), Point(1.0, 0.0, 0.0), Point(0.0, 0.0, 1.0)
        )

    @classmethod
    def yz_plane(cls) -> "SweptCurve":
        return cls.plane_from_points(
            Point(0.0, 0.0, 0.0), Point(0.0, 1.0, 0.0), Point(0.0, 0.0, 1.0)
        )


Surface = Union[SweptCurve]


def surface_is_planar(surface: Surface) -> bool:
    if isinstance(surface, SweptCurve):
        return isinstance(surface.curve, Line)
    raise TypeError(f"Not a surface: {surface!r}")


def surface_point_from_local(surface: Surface, point: Point) -> Point:
    if isinstance(surface, SweptCurve):
        u, v = point.coords
        return curve_point_from_local(surface.curve, u) + surface.path * v
    raise TypeError(f"Not a surface: {surface!r}")


def surface_point_to_local(surface: Surface, point: Point) -> Point:
    """Surface coordinates of the projection of ``point`` onto ``surface``."""
    if not isinstance(surface, SweptCurve):
        raise TypeError(f"Not a surface: {surface!r}")

    curve = surface.curve
    if isinstance(curve, Line):
        basis = np.column_stack([curve.direction.to_array(), surface.path.to_array()])
        rhs = (point - curve.origin).to_array()
        (u, v), *_ = np.linalg.lstsq(basis, rhs, rcond=None)
        return Point(u, v)

    normal = curve.a.cross(curve.b)
    along = surface.path.dot(normal)
    if along == 0.0:
        raise UnsupportedGeometry("Swept circle with a path in the circle's plane")
    v = (point - curve.center).dot(normal) / along
    u = curve_point_to_local(curve, point - surface.path * v)
    return Point(u, v)


def surface_normal(surface: Surface, point: Optional[Point] = None) -> Vector:
    """Unit normal at surface coordinates ``point`` (ignored for planes)."""
    if isinstance(surface, SweptCurve):
        u = point.x if point is not None else 0.0
        return curve_tangent(surface.curve, u).cross(surface.path).normalize()
    raise TypeError(f"Not a surface: {surface!r}")


def surface_reversed(surface: Surface) -> Surface:
    """Flip the normal; surface coordinates map ``(u, v) -> (u, -v)``."""
    if isinstance(surface, SweptCurve):
        return SweptCurve(surface.curve, -surface.path)
    raise TypeError(f"Not a surface: {surface!r}")


def surface_transform(surface: Surface, transform: Transform) -> Surface:
    if isinstance(surface, SweptCurve):
        return SweptCurve(
            curve_transform(surface.curve, transform),
            transform.transform_vector(surface.path),
        )
    raise TypeError(f"Not a surface: {surface!r}")


def mirror_local_curve(curve: Curve) -> Curve:
    """Map a surface-local curve through ``(u, v) -> (u, -v)``."""
    if isinstance(curve, Line):
        return Line(_mirror(curve.origin), _mirror(curve.direction))
    if isinstance(curve, Circle):
        return Circle(_mirror(curve.center), _mirror(curve.a), _mirror(curve.b))
    raise TypeError(f"Not a curve: {curve!r}")


def _mirror(value):
    return type(value)(value.x, -value.y)


def surface_curve_from_local(surface: Surface, curve: Curve, tolerance: ToleranceLike) -> Curve:
    """Lift a curve in surface coordinates into global space.

    The lifted curve keeps the parametrization of the local curve.
    ``tolerance`` decides when a lifted circle is still a circle, and when a
    line on a cylinder runs along a ruling or around the axis.
    """
    if not isinstance(surface, SweptCurve):
        raise TypeError(f"Not a surface: {surface!r}")
    if curve.dim != 2:
        raise ValueError("Only 2D curves can be lifted onto a surface")
    eps = Tolerance.from_scalar(tolerance).value

    generator = surface.curve
    if isinstance(generator, Line):
        return _lift_onto_plane(surface, generator, curve, eps)

    if isinstance(curve, Line):
        du, dv = curve.direction.coords
        u0, v0 = curve.origin.coords
        if abs(du) <= eps:
            return Line(surface_point_from_local(surface, curve.origin), surface.path * dv)
        if abs(dv) <= eps and abs(abs(du) - 1.0) <= eps:
            cos_u, sin_u = math.cos(u0), math.sin(u0)
            a = generator.a * cos_u + generator.b * sin_u
            b = generator.b * cos_u - generator.a * sin_u
            lifted = Circle(generator.center + surface.path * v0, a, b)
            return lifted if du > 0 else curve_reversed(lifted)
    raise UnsupportedGeometry(
        f"Cannot lift {type(curve).__name__} onto a swept {type(generator).__name__}"
    )


def _lift_onto_plane(surface: SweptCurve, generator: Line, curve: Curve, eps: float) -> Curve:
    def linear(vector: Vector) -> Vector:
        return generator.direction * vector.x + surface.path * vector.y

    if isinstance(curve, Line):
        return Line(surface_point_from_local(surface, curve.origin), linear(curve.direction))

    a, b = linear(curve.a), linear(curve.b)
    # Unequal radii, or a projection of one axis onto the other, would make an ellipse
    if abs(a.magnitude() - b.magnitude()) > eps or abs(a.dot(b)) > eps * b.magnitude():
        raise UnsupportedGeometry("Circle lifted onto a skewed plane is not a circle")
    return Circle(surface_point_from_local(surface, curve.center), a, b)
