"""Points, vectors, affine transforms and bounding boxes.

Points and vectors are small immutable float tuples of dimension 1 (curve
coordinates), 2 (surface coordinates) or 3 (global space). Transforms are
4x4 homogeneous matrices backed by numpy.
"""

from __future__ import annotations

import itertools
import math
from typing import Iterable, Iterator, List, Sequence, Tuple, Union

import numpy as np

from .tolerance import Tolerance, ToleranceLike

Scalar = Union[int, float]


def _to_coords(values: Sequence) -> Tuple[float, ...]:
    if len(values) == 1 and not isinstance(values[0], (int, float)):
        values = tuple(values[0])
    if not 1 <= len(values) <= 3:
        raise ValueError(f"Expected 1 to 3 coordinates, got {len(values)}")
    return tuple(float(v) for v in values)


class _Coordinates:
    """Shared storage and comparison for points and vectors."""

    __slots__ = ("coords",)

    def __init__(self, *values) -> None:
        object.__setattr__(self, "coords", _to_coords(values))

    def __setattr__(self, name, value):
        raise AttributeError(f"{type(self).__name__} is immutable")

    @property
    def dim(self) -> int:
        return len(self.coords)

    @property
    def x(self) -> float:
        return self.coords[0]

    @property
    def y(self) -> float:
        return self.coords[1]

    @property
    def z(self) -> float:
        return self.coords[2]

    def __iter__(self) -> Iterator[float]:
        return iter(self.coords)

    def __len__(self) -> int:
        return len(self.coords)

    def __getitem__(self, index: int) -> float:
        return self.coords[index]

    def __eq__(self, other) -> bool:
        return type(self) is type(other) and self.coords == other.coords

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.coords))

    def __repr__(self) -> str:
        return f"{type(self).__name__}{self.coords}"

    def to_array(self) -> np.ndarray:
        return np.array(self.coords, dtype=float)

    def to_xyz(self):
        """Pad to three dimensions with zeros."""
        return type(self)(*(self.coords + (0.0,) * (3 - self.dim)))

    def _check_dim(self, other: "_Coordinates") -> None:
        if self.dim != other.dim:
            raise ValueError(f"Dimension mismatch: {self.dim} vs {other.dim}")


class Vector(_Coordinates):
    """Displacement in 1, 2 or 3 dimensions."""

    __slots__ = ()

    @classmethod
    def zero(cls, dim: int = 3) -> "Vector":
        return cls(*([0.0] * dim))

    @classmethod
    def unit_x(cls) -> "Vector":
        return cls(1.0, 0.0, 0.0)

    @classmethod
    def unit_y(cls) -> "Vector":
        return cls(0.0, 1.0, 0.0)

    @classmethod
    def unit_z(cls) -> "Vector":
        return cls(0.0, 0.0, 1.0)

    def __add__(self, other: "Vector") -> "Vector":
        self._check_dim(other)
        return Vector(*(a + b for a, b in zip(self.coords, other.coords)))

    def __sub__(self, other: "Vector") -> "Vector":
        self._check_dim(other)
        return Vector(*(a - b for a, b in zip(self.coords, other.coords)))

    def __mul__(self, scalar: Scalar) -> "Vector":
        return Vector(*(a * scalar for a in self.coords))

    __rmul__ = __mul__

    def __truediv__(self, scalar: Scalar) -> "Vector":
        return Vector(*(a / scalar for a in self.coords))

    def __neg__(self) -> "Vector":
        return Vector(*(-a for a in self.coords))

    def dot(self, other: "Vector") -> float:
        self._check_dim(other)
        return sum(a * b for a, b in zip(self.coords, other.coords))

    def cross(self, other: "Vector"):
        """Cross product; a scalar for 2D vectors, a vector for 3D vectors."""
        self._check_dim(other)
        if self.dim == 2:
            return self.x * other.y - self.y * other.x
        if self.dim == 3:
            return Vector(
                self.y * other.z - self.z * other.y,
                self.z * other.x - self.x * other.z,
                self.x * other.y - self.y * other.x,
            )
        raise ValueError("Cross product requires 2D or 3D vectors")

    def magnitude(self) -> float:
        return math.sqrt(self.dot(self))

    def normalize(self) -> "Vector":
        length = self.magnitude()
        if length == 0.0:
            raise ValueError("Cannot normalize a zero-length vector")
        return self / length

    def is_close(self, other: "Vector", tolerance: ToleranceLike) -> bool:
        return (self - other).magnitude() <= Tolerance.from_scalar(tolerance).value


class Point(_Coordinates):
    """Position in 1, 2 or 3 dimensions."""

    __slots__ = ()

    @classmethod
    def origin(cls, dim: int = 3) -> "Point":
        return cls(*([0.0] * dim))

    def __add__(self, other: Vector) -> "Point":
        if not isinstance(other, Vector):
            return NotImplemented
        self._check_dim(other)
        return Point(*(a + b for a, b in zip(self.coords, other.coords)))

    def __sub__(self, other):
        self._check_dim(other)
        if isinstance(other, Point):
            return Vector(*(a - b for a, b in zip(self.coords, other.coords)))
        if isinstance(other, Vector):
            return Point(*(a - b for a, b in zip(self.coords, other.coords)))
        return NotImplemented

    def to_vector(self) -> Vector:
        return Vector(*self.coords)

    def distance_to(self, other: "Point") -> float:
        return (self - other).magnitude()

    def is_close(self, other: "Point", tolerance: ToleranceLike) -> bool:
        return self.distance_to(other) <= Tolerance.from_scalar(tolerance).value


class Transform:
    """Affine transform as a 4x4 homogeneous matrix.

    ``t2 * t1`` is the transform that applies ``t1`` first, then ``t2``.
    """

    __slots__ = ("_matrix",)

    def __init__(self, matrix) -> None:
        m = np.array(matrix, dtype=float)
        if m.shape != (4, 4):
            raise ValueError(f"Transform matrix must be 4x4, got shape {m.shape}")
        m.setflags(write=False)
        self._matrix = m

    @classmethod
    def identity(cls) -> "Transform":
        return cls(np.identity(4))

    @classmethod
    def from_matrix(cls, matrix) -> "Transform":
        return cls(matrix)

    @classmethod
    def translation(cls, offset) -> "Transform":
        offset = _as_vector3(offset)
        m = np.identity(4)
        m[:3, 3] = offset.coords
        return cls(m)

    @classmethod
    def rotation(cls, axis_angle) -> "Transform":
        """Rotation about ``axis_angle``; its magnitude is the angle in radians."""
        axis_angle = _as_vector3(axis_angle)
        angle = axis_angle.magnitude()
        m = np.identity(4)
        if angle == 0.0:
            return cls(m)

        kx, ky, kz = (axis_angle / angle).coords
        k = np.array([[0.0, -kz, ky], [kz, 0.0, -kx], [-ky, kx, 0.0]])
        m[:3, :3] = np.identity(3) + math.sin(angle) * k + (1.0 - math.cos(angle)) * (k @ k)
        return cls(m)

    @property
    def matrix(self) -> np.ndarray:
        return self._matrix.copy()

    def __mul__(self, other: "Transform") -> "Transform":
        if not isinstance(other, Transform):
            return NotImplemented
        return Transform(self._matrix @ other._matrix)

    def __repr__(self) -> str:
        return f"Transform({self._matrix.tolist()})"

    def inverse(self) -> "Transform":
        return Transform(np.linalg.inv(self._matrix))

    def transform_point(self, point: Point) -> Point:
        if point.dim != 3:
            raise ValueError("Only 3D points can be transformed")
        h = self._matrix @ np.array([point.x, point.y, point.z, 1.0])
        return Point(*h[:3])

    def transform_vector(self, vector: Vector) -> Vector:
        if vector.dim != 3:
            raise ValueError("Only 3D vectors can be transformed")
        return Vector(*(self._matrix[:3, :3] @ vector.to_array()))

    def transform_triangle(self, triangle: "Triangle") -> "Triangle":
        return Triangle(*(self.transform_point(p) for p in triangle.points))

    def is_close(self, other: "Transform", tolerance: ToleranceLike) -> bool:
        eps = Tolerance.from_scalar(tolerance).value
        return bool(np.all(np.abs(self._matrix - other._matrix) <= eps))


def _as_vector3(value) -> Vector:
    if isinstance(value, Vector):
        vector = value
    elif isinstance(value, Point):
        vector = value.to_vector()
    else:
        vector = Vector(*value)
    if vector.dim != 3:
        raise ValueError(f"Expected a 3D vector, got {vector!r}")
    return vector


class Aabb:
    """Axis-aligned bounding box."""

    __slots__ = ("min", "max")

    def __init__(self, min: Point, max: Point) -> None:
        if min.dim != max.dim:
            raise ValueError("Bounding box corners must have the same dimension")
        self.min = min
        self.max = max

    @classmethod
    def from_points(cls, points: Iterable[Point]) -> "Aabb":
        points = list(points)
        if not points:
            raise ValueError("Cannot compute bounding box of zero points")
        dim = points[0].dim
        lower = [min(p[i] for p in points) for i in range(dim)]
        upper = [max(p[i] for p in points) for i in range(dim)]
        return cls(Point(*lower), Point(*upper))

    def __repr__(self) -> str:
        return f"Aabb(min={self.min!r}, max={self.max!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Aabb) and self.min == other.min and self.max == other.max

    def merged(self, other: "Aabb") -> "Aabb":
        return Aabb.from_points([self.min, self.max, other.min, other.max])

    def translated(self, offset: Vector) -> "Aabb":
        return Aabb(self.min + offset, self.max + offset)

    def vertices(self) -> List[Point]:
        """All corner points of the box."""
        ranges = [(self.min[i], self.max[i]) for i in range(self.min.dim)]
        return [Point(*corner) for corner in itertools.product(*ranges)]

    def size(self) -> Vector:
        return self.max - self.min

    def center(self) -> Point:
        return self.min + self.size() / 2

    def contains(self, point: Point, tolerance: ToleranceLike) -> bool:
        eps = Tolerance.from_scalar(tolerance).value
        return all(
            lo - eps <= c <= hi + eps for lo, c, hi in zip(self.min, point, self.max)
        )

    def is_close(self, other: "Aabb", tolerance: ToleranceLike) -> bool:
        return self.min.is_close(other.min, tolerance) and self.max.is_close(other.max, tolerance)

    def to_dict(self) -> dict:
        names = "xyz"
        result = {}
        for i in range(self.min.dim):
            result[f"min_{names[i]}"] = self.min[i]
            result[f"max_{names[i]}"] = self.max[i]
        return result


class Triangle:
    """A triangle in global space, used by already-tessellated faces."""

    __slots__ = ("a", "b", "c")

    def __init__(self, a, b, c) -> None:
        self.a, self.b, self.c = (p if isinstance(p, Point) else Point(*p) for p in (a, b, c))
        for p in (self.a, self.b, self.c):
            if p.dim != 3:
                raise ValueError("Triangle points must be 3D")

    @classmethod
    def from_array(cls, array: Sequence[Sequence[float]]) -> "Triangle":
        a, b, c = array
        return cls(a, b, c)

    @property
    def points(self) -> Tuple[Point, Point, Point]:
        return (self.a, self.b, self.c)

    def to_array(self) -> List[List[float]]:
        return [list(p.coords) for p in self.points]

    def normal(self) -> Vector:
        return (self.b - self.a).cross(self.c - self.a).normalize()

    def __eq__(self, other) -> bool:
        return isinstance(other, Triangle) and self.points == other.points

    def __hash__(self) -> int:
        return hash(self.points)

    def __repr__(self) -> str:
        return f"Triangle({self.a!r}, {self.b!r}, {self.c!r})"
