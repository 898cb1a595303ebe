"""Tests for JSON value encoding."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from kafka_patterns.envelope import ErrorResponse
from kafka_patterns.exceptions import MessagingSerializationError
from kafka_patterns.serialization import decode_value, encode_value


def test_encode_handles_datetime_and_models() -> None:
    ts = datetime(2024, 1, 2, tzinfo=timezone.utc)
    body = decode_value(encode_value({"at": ts, "err": ErrorResponse(timestamp=1)}))
    assert body["at"] == "2024-01-02T00:00:00+00:00"
    assert body["err"]["statusCode"] == 500
    assert body["err"]["success"] is False


def test_encode_unserializable_raises() -> None:
    with pytest.raises(MessagingSerializationError):
        encode_value({"x": object()})


def test_decode_invalid_json_raises_with_cause() -> None:
    with pytest.raises(MessagingSerializationError) as exc_info:
        decode_value(b"{not json")
    assert exc_info.value.__cause__ is not None


def test_decode_accepts_text() -> None:
    assert decode_value('{"a": 1}') == {"a": 1}
