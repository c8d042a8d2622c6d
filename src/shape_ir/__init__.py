"""Shape interchange package.

This package provides the declarative shape definitions, model parameters
and build request/result records, plus their deterministic serialization.
"""

from .schema import (
    SCHEMA_VERSION,
    BoundingBox,
    BuildRequest,
    BuildResult,
    CircleDef,
    Difference2dDef,
    GroupDef,
    ParameterError,
    Parameters,
    ShapeDef,
    SketchDef,
    SweepDef,
    TransformDef,
)
from .serialize import (
    InterchangeError,
    decode_request,
    decode_result,
    decode_shape,
    dump_jsonl,
    encode_request,
    encode_result,
    encode_shape,
    from_json_dict,
    load_jsonl,
    to_json_dict,
)

__version__ = "0.1.0"
__all__ = [
    "SCHEMA_VERSION",
    "BoundingBox",
    "BuildRequest",
    "BuildResult",
    "CircleDef",
    "Difference2dDef",
    "GroupDef",
    "ParameterError",
    "Parameters",
    "ShapeDef",
    "SketchDef",
    "SweepDef",
    "TransformDef",
    "InterchangeError",
    "decode_request",
    "decode_result",
    "decode_shape",
    "dump_jsonl",
    "encode_request",
    "encode_result",
    "encode_shape",
    "from_json_dict",
    "load_jsonl",
    "to_json_dict",
]
