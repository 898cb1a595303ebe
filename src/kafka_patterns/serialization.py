"""JSON encoding of message values."""

from __future__ import annotations

import json
from typing import Any

from .exceptions import MessagingSerializationError


def _json_serializer(obj: Any) -> Any:
    """Serialize pydantic models, datetimes and other non-JSON types."""
    if hasattr(obj, "model_dump"):
        return obj.model_dump(mode="json", by_alias=True)
    if hasattr(obj, "isoformat"):
        return obj.isoformat()
    if isinstance(obj, (bytes, bytearray)):
        return bytes(obj).decode("utf-8", errors="replace")
    if isinstance(obj, (set, frozenset)):
        return list(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def encode_value(message: Any) -> bytes:
    """Encode a message body to JSON bytes."""
    try:
        return json.dumps(message, default=_json_serializer).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise MessagingSerializationError(str(e)) from e


def decode_value(raw: bytes | str) -> Any:
    """Decode JSON bytes (or text) to Python objects."""
    try:
        if isinstance(raw, (bytes, bytearray)):
            raw = bytes(raw).decode("utf-8")
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError, TypeError) as e:
        raise MessagingSerializationError(str(e)) from e
