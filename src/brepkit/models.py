"""Built-in models.

A model is a function from ``Parameters`` to a shape definition. Models read
their parameters with the typed getters and fall back to defaults for any
parameter that was not given.
"""

from __future__ import annotations

import math
from typing import Callable, Dict, List, Tuple

import structlog

from shape_ir.schema import (
    CircleDef,
    Difference2dDef,
    ParameterError,
    Parameters,
    ShapeDef,
    SketchDef,
    SweepDef,
)

logger = structlog.get_logger(__name__)

ModelFn = Callable[[Parameters], ShapeDef]


class UnknownModel(KeyError):
    """Raised when a model name is not in the registry."""

    pass


def _positive(params: Parameters, key: str, default: float) -> float:
    value = params.get_float(key, default)
    if value <= 0:
        raise ParameterError(f"Parameter '{key}' must be positive, got {value}")
    return value


def cuboid(params: Parameters) -> ShapeDef:
    """Box of size ``x`` by ``y`` by ``z``, centered on the Z axis."""
    x = _positive(params, "x", 3.0)
    y = _positive(params, "y", 2.0)
    z = _positive(params, "z", 1.0)

    rectangle = SketchDef(
        ((-x / 2, -y / 2), (x / 2, -y / 2), (x / 2, y / 2), (-x / 2, y / 2)),
        color=(100, 255, 0, 200),
    )
    return SweepDef(rectangle, (0.0, 0.0, z))


def spacer(params: Parameters) -> ShapeDef:
    """Ring with ``outer`` and ``inner`` radius, ``height`` tall."""
    outer = _positive(params, "outer", 1.0)
    inner = _positive(params, "inner", 0.5)
    height = _positive(params, "height", 1.0)
    if inner >= outer:
        raise ParameterError("Inner radius must be smaller than outer radius")

    ring = Difference2dDef(CircleDef(outer), CircleDef(inner))
    return SweepDef(ring, (0.0, 0.0, height))


def star(params: Parameters) -> ShapeDef:
    """Star prism with a star-shaped hole.

    ``num_points`` tips alternate between radius ``r1`` and ``r2``; the hole
    is the same star at half the size.
    """
    num_points = params.get_int("num_points", 5)
    if num_points < 3:
        raise ParameterError(f"A star needs at least 3 points, got {num_points}")
    r1 = _positive(params, "r1", 1.0)
    r2 = _positive(params, "r2", 2.0)
    h = _positive(params, "h", 1.0)

    outer = SketchDef(_star_points(num_points, r1, r2))
    inner = SketchDef(_star_points(num_points, r1 / 2, r2 / 2))
    return SweepDef(Difference2dDef(outer, inner), (0.0, 0.0, h))


def _star_points(num_points: int, r1: float, r2: float) -> Tuple[Tuple[float, float], ...]:
    num_vertices = num_points * 2
    points: List[Tuple[float, float]] = []
    for i in range(num_vertices):
        angle = 2.0 * math.pi / num_vertices * i
        radius = r1 if i % 2 == 0 else r2
        points.append((math.cos(angle) * radius, math.sin(angle) * radius))
    return tuple(points)


MODELS: Dict[str, ModelFn] = {
    "cuboid": cuboid,
    "spacer": spacer,
    "star": star,
}


def get_model(name: str) -> ModelFn:
    """Look up a model by name.

    Raises:
        UnknownModel: If no model of that name is registered
    """
    try:
        return MODELS[name]
    except KeyError as e:
        raise UnknownModel(f"Unknown model '{name}', available: {sorted(MODELS)}") from e


def run_model(name: str, params: Parameters) -> ShapeDef:
    """Call a registered model with ``params``."""
    model = get_model(name)
    logger.debug("Running model", model=name, parameters=params.to_dict())
    return model(params)
