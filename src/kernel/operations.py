"""Turn declarative shape definitions into validated B-rep objects.

Each definition kind has two operations: ``compute_brep`` builds and
validates the topology, ``bounding_volume`` predicts its axis-aligned box
from the definition alone, without building anything.
"""

from __future__ import annotations

from typing import Union

import structlog

from shape_ir.schema import (
    CircleDef,
    Difference2dDef,
    GroupDef,
    ShapeDef,
    SketchDef,
    SweepDef,
    TransformDef,
)

from .geometry import SweptCurve, UnsupportedGeometry
from .linalg import Aabb, Point, Transform, Vector
from .objects import Cycle, Edge, FaceBRep, Sketch, Solid, VertexArena
from .sweep import sweep
from .tolerance import Tolerance, ToleranceLike
from .transform import transform
from .validation import Validated, ValidationConfig, validate

logger = structlog.get_logger(__name__)

Shape = Union[Sketch, Solid]


def compute_brep(
    shape: ShapeDef, config: ValidationConfig, tolerance: ToleranceLike
) -> Validated[Shape]:
    """Build the B-rep for a shape definition and validate it.

    Args:
        shape: Any shape definition
        config: Validation settings applied to the result and every intermediate
        tolerance: Used for vertex merging and geometric tests while building

    Returns:
        The validated sketch (2D definitions) or solid (3D definitions)

    Raises:
        ValidationError: If the result or an intermediate shape is invalid
        UnsupportedGeometry: If the definition needs geometry the kernel lacks
    """
    tolerance = Tolerance.from_scalar(tolerance)
    result = _compute(shape, config, tolerance)
    logger.info(
        "Computed B-rep",
        shape=type(shape).__name__,
        kind=type(result.inner).__name__,
        faces=len(result.inner),
    )
    return result


def _compute(shape: ShapeDef, config: ValidationConfig, tolerance: Tolerance) -> Validated[Shape]:
    if isinstance(shape, SketchDef):
        arena = VertexArena()
        face = FaceBRep.polygon(
            SweptCurve.xy_plane(),
            [Point(x, y) for x, y in shape.points],
            arena=arena,
            tolerance=tolerance,
            color=shape.color,
        )
        return validate(Sketch([face]), config)

    if isinstance(shape, CircleDef):
        surface = SweptCurve.xy_plane()
        edge = Edge.circle(surface, Point(0.0, 0.0), shape.radius, tolerance)
        return validate(Sketch([FaceBRep(surface, (Cycle((edge,)),), color=shape.color)]), config)

    if isinstance(shape, Difference2dDef):
        return _difference_2d(shape, config, tolerance)

    if isinstance(shape, SweepDef):
        sketch = _compute(shape.shape, config, tolerance)
        if not isinstance(sketch.inner, Sketch):
            raise TypeError("Only 2D shapes can be swept")
        return validate(sweep(sketch, shape.path, tolerance, shape.color), config)

    if isinstance(shape, TransformDef):
        inner = _compute(shape.shape, config, tolerance).into_inner()
        return validate(transform(inner, _transform_of(shape)), config)

    if isinstance(shape, GroupDef):
        a = _compute(shape.a, config, tolerance).into_inner()
        b = _compute(shape.b, config, tolerance).into_inner()
        if type(a) is not type(b):
            raise TypeError("Cannot group a sketch with a solid")
        return validate(type(a).from_faces(a.faces + b.faces), config)

    raise TypeError(f"Not a shape definition: {shape!r}")


def _difference_2d(
    shape: Difference2dDef, config: ValidationConfig, tolerance: Tolerance
) -> Validated[Sketch]:
    exterior = _compute(shape.exterior, config, tolerance).into_inner()
    interior = _compute(shape.interior, config, tolerance).into_inner()

    faces = []
    for face in exterior.faces:
        holes = []
        for cut in interior.faces:
            if cut.surface != face.surface:
                raise UnsupportedGeometry("Difference of sketches on different surfaces")
            holes.extend(cycle.reversed() for cycle in cut.exteriors)
        faces.append(
            FaceBRep(face.surface, face.exteriors, face.interiors + tuple(holes), shape.color)
        )
    logger.debug("Cut holes into sketch", faces=len(faces), holes=len(interior))
    return validate(Sketch(faces), config)


def _transform_of(shape: TransformDef) -> Transform:
    axis_angle = Vector.zero()
    if shape.angle != 0.0:
        axis_angle = Vector(*shape.axis).normalize() * shape.angle
    return Transform.translation(shape.offset) * Transform.rotation(axis_angle)


def bounding_volume(shape: ShapeDef) -> Aabb:
    """Axis-aligned box of a shape definition, computed from the definition alone."""
    if isinstance(shape, SketchDef):
        return Aabb.from_points(Point(x, y, 0.0) for x, y in shape.points)
    if isinstance(shape, CircleDef):
        r = shape.radius
        return Aabb(Point(-r, -r, 0.0), Point(r, r, 0.0))
    if isinstance(shape, Difference2dDef):
        return bounding_volume(shape.exterior)
    if isinstance(shape, SweepDef):
        box = bounding_volume(shape.shape)
        path = Vector(*shape.path)
        return box.merged(Aabb.from_points(v + path for v in box.vertices()))
    if isinstance(shape, TransformDef):
        t = _transform_of(shape)
        return Aabb.from_points(t.transform_point(v) for v in bounding_volume(shape.shape).vertices())
    if isinstance(shape, GroupDef):
        return bounding_volume(shape.a).merged(bounding_volume(shape.b))
    raise TypeError(f"Not a shape definition: {shape!r}")
