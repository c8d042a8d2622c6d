"""Deterministic serialization for the shape interchange.

This module provides deterministic JSON serialization with stable ordering,
so the same request or result always encodes to the same bytes. Shape
definitions are tagged with a ``type`` field.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Iterator, Union

import orjson

from .schema import (
    SCHEMA_VERSION,
    BoundingBox,
    BuildRequest,
    BuildResult,
    CircleDef,
    Difference2dDef,
    GroupDef,
    Parameters,
    ShapeDef,
    SketchDef,
    SweepDef,
    TransformDef,
)


class InterchangeError(ValueError):
    """Raised when an interchange payload cannot be decoded."""

    pass


def _sort_dict_recursive(obj: Any) -> Any:
    """Recursively sort dictionaries for deterministic output."""
    if isinstance(obj, dict):
        return {k: _sort_dict_recursive(v) for k, v in sorted(obj.items())}
    elif isinstance(obj, list):
        return [_sort_dict_recursive(item) for item in obj]
    else:
        return obj


def _vec(values) -> list:
    return [float(v) for v in values]


def _color(values) -> tuple:
    color = tuple(int(v) for v in values)
    if len(color) != 4:
        raise InterchangeError(f"Color must have 4 components, got {len(color)}")
    return color


def to_json_dict(shape: ShapeDef) -> Dict[str, Any]:
    """Convert a shape definition to a JSON-serializable dictionary.

    Args:
        shape: The shape definition to serialize

    Returns:
        Dictionary with a ``type`` tag and the definition's fields
    """
    if isinstance(shape, SketchDef):
        return {
            "type": "sketch",
            "points": [_vec(p) for p in shape.points],
            "color": list(shape.color),
        }
    if isinstance(shape, CircleDef):
        return {"type": "circle", "radius": float(shape.radius), "color": list(shape.color)}
    if isinstance(shape, Difference2dDef):
        return {
            "type": "difference_2d",
            "exterior": to_json_dict(shape.exterior),
            "interior": to_json_dict(shape.interior),
        }
    if isinstance(shape, SweepDef):
        return {"type": "sweep", "shape": to_json_dict(shape.shape), "path": _vec(shape.path)}
    if isinstance(shape, TransformDef):
        return {
            "type": "transform",
            "shape": to_json_dict(shape.shape),
            "axis": _vec(shape.axis),
            "angle": float(shape.angle),
            "offset": _vec(shape.offset),
        }
    if isinstance(shape, GroupDef):
        return {"type": "group", "a": to_json_dict(shape.a), "b": to_json_dict(shape.b)}
    raise TypeError(f"Not a shape definition: {shape!r}")


def from_json_dict(data: Dict[str, Any]) -> ShapeDef:
    """Convert a dictionary back to a shape definition.

    Raises:
        InterchangeError: On unknown types, missing fields or invalid values
    """
    if not isinstance(data, dict):
        raise InterchangeError(f"Shape definition must be an object, got {type(data).__name__}")
    kind = data.get("type")
    decoder = _SHAPE_DECODERS.get(kind)
    if decoder is None:
        raise InterchangeError(f"Unknown shape type: {kind!r}")
    try:
        return decoder(data)
    except InterchangeError:
        raise
    except KeyError as e:
        raise InterchangeError(f"Shape '{kind}' is missing field {e}") from e
    except (TypeError, ValueError) as e:
        raise InterchangeError(f"Invalid '{kind}' shape: {e}") from e


_SHAPE_DECODERS: Dict[str, Callable[[Dict[str, Any]], ShapeDef]] = {
    "sketch": lambda d: SketchDef(
        tuple((float(x), float(y)) for x, y in d["points"]), _color(d["color"])
    ),
    "circle": lambda d: CircleDef(float(d["radius"]), _color(d["color"])),
    "difference_2d": lambda d: Difference2dDef(
        from_json_dict(d["exterior"]), from_json_dict(d["interior"])
    ),
    "sweep": lambda d: SweepDef(from_json_dict(d["shape"]), tuple(_vec(d["path"]))),
    "transform": lambda d: TransformDef(
        from_json_dict(d["shape"]),
        tuple(_vec(d["axis"])),
        float(d["angle"]),
        tuple(_vec(d["offset"])),
    ),
    "group": lambda d: GroupDef(from_json_dict(d["a"]), from_json_dict(d["b"])),
}


def request_to_dict(request: BuildRequest) -> Dict[str, Any]:
    return _sort_dict_recursive(
        {
            "schema_version": request.schema_version,
            "model": request.model,
            "parameters": request.parameters.to_dict(),
            "tolerance": float(request.tolerance),
            "checks": list(request.checks) if request.checks is not None else None,
        }
    )


def result_to_dict(result: BuildResult) -> Dict[str, Any]:
    data = {
        "schema_version": result.schema_version,
        "model": result.model,
        "ok": result.ok,
        "kind": result.kind,
        "face_count": result.face_count,
        "findings": [_sort_dict_recursive(f) for f in result.findings],
        "triangles": result.triangles,
        "error": result.error,
    }

    # Add optional fields if present
    if result.bounding_box:
        data["bounding_box"] = {
            "min_x": result.bounding_box.min_x,
            "min_y": result.bounding_box.min_y,
            "min_z": result.bounding_box.min_z,
            "max_x": result.bounding_box.max_x,
            "max_y": result.bounding_box.max_y,
            "max_z": result.bounding_box.max_z,
        }
    return _sort_dict_recursive(data)


def _decode(payload: bytes) -> Dict[str, Any]:
    try:
        data = orjson.loads(payload)
    except orjson.JSONDecodeError as e:
        raise InterchangeError(f"Malformed payload: {e}") from e
    if not isinstance(data, dict):
        raise InterchangeError("Payload must be a JSON object")
    version = data.get("schema_version")
    if version != SCHEMA_VERSION:
        raise InterchangeError(
            f"Unsupported schema version {version!r}, expected {SCHEMA_VERSION!r}"
        )
    return data


def encode_request(request: BuildRequest) -> bytes:
    """Encode a build request to canonical JSON bytes."""
    return orjson.dumps(request_to_dict(request), option=orjson.OPT_SORT_KEYS)


def decode_request(payload: bytes) -> BuildRequest:
    """Decode a build request.

    Raises:
        InterchangeError: If the payload is malformed or from another schema version
    """
    data = _decode(payload)
    try:
        checks = data.get("checks")
        return BuildRequest(
            model=data["model"],
            parameters=Parameters(data.get("parameters", {})),
            tolerance=float(data["tolerance"]),
            checks=tuple(checks) if checks is not None else None,
        )
    except KeyError as e:
        raise InterchangeError(f"Build request is missing field {e}") from e
    except (TypeError, ValueError) as e:
        raise InterchangeError(f"Invalid build request: {e}") from e


def encode_shape(shape: ShapeDef) -> bytes:
    """Encode a shape definition to canonical JSON bytes."""
    data = {"schema_version": SCHEMA_VERSION, "shape": to_json_dict(shape)}
    return orjson.dumps(data, option=orjson.OPT_SORT_KEYS)


def decode_shape(payload: bytes) -> ShapeDef:
    """Decode a shape definition.

    Raises:
        InterchangeError: If the payload is malformed or from another schema version
    """
    data = _decode(payload)
    if "shape" not in data:
        raise InterchangeError("Shape payload is missing field 'shape'")
    return from_json_dict(data["shape"])


def encode_result(result: BuildResult) -> bytes:
    """Encode a build result to canonical JSON bytes."""
    return orjson.dumps(result_to_dict(result), option=orjson.OPT_SORT_KEYS)


def decode_result(payload: Union[bytes, str]) -> BuildResult:
    """Decode a build result.

    Raises:
        InterchangeError: If the payload is malformed or from another schema version
    """
    data = _decode(payload)
    return _dict_to_result(data)


def _dict_to_result(data: Dict[str, Any]) -> BuildResult:
    """Convert dictionary back to a BuildResult."""
    try:
        return _build_result(data)
    except KeyError as e:
        raise InterchangeError(f"Build result is missing field {e}") from e


def _build_result(data: Dict[str, Any]) -> BuildResult:
    bbox = None
    if data.get("bounding_box"):
        bbox_data = data["bounding_box"]
        bbox = BoundingBox(
            min_x=bbox_data["min_x"],
            min_y=bbox_data["min_y"],
            min_z=bbox_data["min_z"],
            max_x=bbox_data["max_x"],
            max_y=bbox_data["max_y"],
            max_z=bbox_data["max_z"],
        )

    return BuildResult(
        model=data["model"],
        ok=bool(data["ok"]),
        kind=data.get("kind"),
        face_count=int(data.get("face_count", 0)),
        bounding_box=bbox,
        findings=list(data.get("findings", [])),
        triangles=list(data.get("triangles", [])),
        error=data.get("error"),
    )


def to_json_string(result: BuildResult, pretty: bool = False) -> str:
    """Convert a build result to a JSON string.

    Args:
        result: The result to serialize
        pretty: If True, format JSON with indentation

    Returns:
        JSON string representation
    """
    data = result_to_dict(result)

    if pretty:
        return json.dumps(data, indent=2, ensure_ascii=False)
    else:
        return orjson.dumps(data, option=orjson.OPT_SORT_KEYS).decode("utf-8")


def dump_jsonl(results: Iterable[BuildResult], path: Union[str, Path]) -> None:
    """Write build results to a JSONL file (one JSON object per line).

    Args:
        results: Results to serialize
        path: Output file path
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "wb") as f:
        for result in results:
            f.write(encode_result(result))
            f.write(b"\n")


def load_jsonl(path: Union[str, Path]) -> Iterator[BuildResult]:
    """Load build results from a JSONL file.

    Args:
        path: Input file path

    Yields:
        Results loaded from the file

    Raises:
        FileNotFoundError: If the file doesn't exist
        InterchangeError: If a line cannot be decoded
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"JSONL file not found: {path}")

    with open(path, "rb") as f:
        for line_num, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue

            try:
                yield decode_result(line)
            except InterchangeError as e:
                raise InterchangeError(f"Failed to parse line {line_num}: {e}") from e
