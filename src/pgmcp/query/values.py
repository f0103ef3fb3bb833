"""Value normalization and JSON encoding for query results."""

from __future__ import annotations

import json
from typing import Any, Sequence

from pgmcp.core.errors import MarshalError


def bytes_to_text(raw: bytes) -> str:
    """Render a byte sequence as text: UTF-8 when it decodes, PostgreSQL hex form otherwise."""
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return "\\x" + raw.hex()


def normalize_value(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes_to_text(bytes(value))
    # Arrays come back as lists; bytea[] elements need the same treatment.
    if isinstance(value, (list, tuple)):
        return [normalize_value(v) for v in value]
    return value


def normalize_row(columns: Sequence[str], record: Sequence[Any]) -> dict[str, Any]:
    return {name: normalize_value(record[i]) for i, name in enumerate(columns)}


def to_json(payload: Any) -> str:
    """Serialize a response; non-finite floats and unencodable objects raise MarshalError."""
    try:
        return json.dumps(payload, default=str, allow_nan=False)
    except (TypeError, ValueError) as e:
        raise MarshalError(f"failed to serialize response: {e}") from e
