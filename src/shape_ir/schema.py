"""Shape interchange schema with versioning support.

This module defines the declarative shape definitions a model produces, the
string parameters a model is called with, and the request/result records
passed between a model host and the kernel.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Union

# Schema versioning
SCHEMA_VERSION = "0.1.0"

Color = Tuple[int, int, int, int]

DEFAULT_COLOR: Color = (255, 0, 0, 255)

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


class ParameterError(ValueError):
    """Raised when a model parameter is missing or cannot be parsed."""

    pass


class Parameters:
    """String parameters passed to a model.

    Values are stored as strings; the model parses them with the typed
    getters. ``insert`` returns the instance so calls can be chained.
    """

    def __init__(self, values: Optional[Mapping[str, Any]] = None) -> None:
        self._values: Dict[str, str] = {k: str(v) for k, v in (values or {}).items()}

    @classmethod
    def empty(cls) -> "Parameters":
        return cls()

    def insert(self, key: str, value: Any) -> "Parameters":
        """Insert or replace a parameter."""
        self._values[key] = str(value)
        return self

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._values.get(key, default)

    def _raw(self, key: str, default: Any) -> Optional[str]:
        raw = self._values.get(key)
        if raw is None:
            if default is None:
                raise ParameterError(f"Missing parameter '{key}'")
            return None
        return raw

    def get_float(self, key: str, default: Optional[float] = None) -> float:
        """Parse a parameter as float.

        Raises:
            ParameterError: If the key is missing without a default, or the
                value is not a number
        """
        raw = self._raw(key, default)
        if raw is None:
            return float(default)
        try:
            return float(raw)
        except ValueError as e:
            raise ParameterError(f"Parameter '{key}' is not a number: {raw!r}") from e

    def get_int(self, key: str, default: Optional[int] = None) -> int:
        raw = self._raw(key, default)
        if raw is None:
            return int(default)
        try:
            return int(raw)
        except ValueError as e:
            raise ParameterError(f"Parameter '{key}' is not an integer: {raw!r}") from e

    def get_bool(self, key: str, default: Optional[bool] = None) -> bool:
        raw = self._raw(key, default)
        if raw is None:
            return bool(default)
        lowered = raw.strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
        raise ParameterError(f"Parameter '{key}' is not a boolean: {raw!r}")

    def to_dict(self) -> Dict[str, str]:
        return dict(sorted(self._values.items()))

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._values))

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other) -> bool:
        return isinstance(other, Parameters) and self._values == other._values

    def __repr__(self) -> str:
        return f"Parameters({self.to_dict()!r})"


# Shape definitions


@dataclass(frozen=True)
class SketchDef:
    """Closed polygon in the XY plane."""

    points: Tuple[Tuple[float, float], ...]
    color: Color = DEFAULT_COLOR

    def __post_init__(self) -> None:
        if len(self.points) < 3:
            raise ValueError("A sketch needs at least three points")


@dataclass(frozen=True)
class CircleDef:
    """Circle around the origin of the XY plane."""

    radius: float
    color: Color = DEFAULT_COLOR

    def __post_init__(self) -> None:
        if self.radius <= 0:
            raise ValueError("Circle radius must be positive")


@dataclass(frozen=True)
class Difference2dDef:
    """2D shape with the exterior of ``interior`` cut out as holes."""

    exterior: "Shape2dDef"
    interior: "Shape2dDef"

    @property
    def color(self) -> Color:
        return self.exterior.color


@dataclass(frozen=True)
class SweepDef:
    """2D shape swept along ``path`` into a solid."""

    shape: "Shape2dDef"
    path: Tuple[float, float, float]

    @property
    def color(self) -> Color:
        return self.shape.color


@dataclass(frozen=True)
class TransformDef:
    """Rotation about ``axis`` by ``angle`` radians, followed by a translation."""

    shape: "ShapeDef"
    axis: Tuple[float, float, float] = (0.0, 0.0, 1.0)
    angle: float = 0.0
    offset: Tuple[float, float, float] = (0.0, 0.0, 0.0)


@dataclass(frozen=True)
class GroupDef:
    """Two shapes side by side, without any boolean combination."""

    a: "ShapeDef"
    b: "ShapeDef"


Shape2dDef = Union[SketchDef, CircleDef, Difference2dDef]
ShapeDef = Union[SketchDef, CircleDef, Difference2dDef, SweepDef, TransformDef, GroupDef]


def is_2d(shape: ShapeDef) -> bool:
    """Whether a shape definition produces a sketch rather than a solid."""
    if isinstance(shape, (SketchDef, CircleDef, Difference2dDef)):
        return True
    if isinstance(shape, TransformDef):
        return is_2d(shape.shape)
    if isinstance(shape, GroupDef):
        return is_2d(shape.a)
    return False


# Build requests and results


@dataclass
class BoundingBox:
    """3D bounding box representation."""

    min_x: float
    min_y: float
    min_z: float
    max_x: float
    max_y: float
    max_z: float

    @property
    def volume(self) -> float:
        """Calculate bounding box volume."""
        return (self.max_x - self.min_x) * (self.max_y - self.min_y) * (self.max_z - self.min_z)

    @property
    def center(self) -> Tuple[float, float, float]:
        """Calculate bounding box center point."""
        return (
            (self.min_x + self.max_x) / 2,
            (self.min_y + self.max_y) / 2,
            (self.min_z + self.max_z) / 2,
        )


@dataclass
class BuildRequest:
    """Everything needed to build a model once."""

    model: str
    parameters: Parameters = field(default_factory=Parameters)
    tolerance: float = 1e-9
    checks: Optional[Tuple[str, ...]] = None
    schema_version: str = SCHEMA_VERSION

    def __post_init__(self) -> None:
        if not self.model:
            raise ValueError("Build request needs a model name")
        if self.checks is not None:
            self.checks = tuple(sorted(self.checks))


@dataclass
class BuildResult:
    """Outcome of building a model: topology summary or validation findings."""

    model: str
    ok: bool
    kind: Optional[str] = None
    face_count: int = 0
    bounding_box: Optional[BoundingBox] = None
    findings: List[Dict[str, Any]] = field(default_factory=list)
    triangles: List[List[List[float]]] = field(default_factory=list)
    error: Optional[str] = None
    schema_version: str = SCHEMA_VERSION
