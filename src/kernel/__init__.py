"""Kernel package for boundary-representation geometry.

This package provides the math primitives, curve and surface geometry, the
topology graph (vertices, edges, cycles, faces, sketches, solids) and the
algorithms that operate on it: transform, intersection, sweep and validation.
"""

from .geometry import Circle, Line, SweptCurve, UnsupportedGeometry
from .linalg import Aabb, Point, Transform, Triangle, Vector
from .local import Local
from .objects import (
    Cycle,
    Edge,
    FaceBRep,
    FaceTriangles,
    GlobalVertex,
    Sketch,
    Solid,
    Vertex,
    VertexArena,
    VertexHandle,
    bounding_volume,
    face_reversed,
)
from .operations import compute_brep
from .sweep import DegenerateSweep, sweep
from .tolerance import DEFAULT_TOLERANCE, InvalidTolerance, Tolerance
from .transform import rotate, transform, translate
from .validation import (
    Validated,
    ValidationCheck,
    ValidationConfig,
    ValidationError,
    ValidationFinding,
    validate,
)

__version__ = "0.1.0"
__all__ = [
    "Circle", "Line", "SweptCurve", "UnsupportedGeometry",
    "Aabb", "Point", "Transform", "Triangle", "Vector",
    "Local",
    "Cycle", "Edge", "FaceBRep", "FaceTriangles", "GlobalVertex", "Sketch", "Solid",
    "Vertex", "VertexArena", "VertexHandle", "bounding_volume", "face_reversed",
    "compute_brep",
    "DegenerateSweep", "sweep",
    "DEFAULT_TOLERANCE", "InvalidTolerance", "Tolerance",
    "rotate", "transform", "translate",
    "Validated", "ValidationCheck", "ValidationConfig", "ValidationError",
    "ValidationFinding", "validate",
]
