"""Header codec: normalize transport headers to ``str -> str`` and back.

Transport headers arrive as a mapping or as aiokafka-style ``(key, value)``
pairs, where each value may be bytes, str, a list of either, or ``None``.
Everything past ingress works on the normalized ``dict[str, str]`` form.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from typing import Union

# Well-known header names, written with this exact casing.
CORRELATION_ID = "correlation-id"
REPLY_TO = "reply-to"
MESSAGE_TYPE = "message-type"
MESSAGE_ID = "message-id"
TIMESTAMP = "timestamp"
RETRY_COUNT = "retry-count"
RETRY_TIMESTAMP = "retry-timestamp"
LAST_ERROR = "last-error"
ORIGINAL_TOPIC = "original-topic"
ERROR = "error"
ERROR_STACK = "error-stack"
FAILED_AT = "failed-at"
TOTAL_RETRIES = "total-retries"

FIRE_AND_FORGET = "fire-and-forget"
REQUEST_REPLY = "request-reply"

RawHeaderValue = Union[bytes, bytearray, str, list, tuple, None, object]
RawHeaders = Union[Mapping[str, RawHeaderValue], Iterable[tuple[str, RawHeaderValue]]]

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _items(raw: RawHeaders | None) -> Iterable[tuple[str, RawHeaderValue]]:
    if raw is None:
        return ()
    if isinstance(raw, Mapping):
        return raw.items()
    return raw


def normalize_value(value: RawHeaderValue) -> str | None:
    """Collapse a single raw header value to a string, or ``None`` if absent.

    Lists and tuples are reduced to their first element. ``None``, empty
    lists and empty byte strings are absent; an empty ``str`` is kept.
    """
    if isinstance(value, (list, tuple)):
        if not value:
            return None
        value = value[0]
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        if not value:
            return None
        return bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, str):
        return value
    return str(value)


def normalize(raw: RawHeaders | None) -> dict[str, str]:
    """Return plain ``key -> str`` headers, dropping absent values."""
    result: dict[str, str] = {}
    seen: set[str] = set()
    for key, value in _items(raw):
        key = str(key)
        # A repeated key is a multi-valued header; the first value wins.
        if key.lower() in seen:
            continue
        seen.add(key.lower())
        text = normalize_value(value)
        if text is not None:
            result[key] = text
    return result


def denormalize(headers: Mapping[str, str] | None) -> list[tuple[str, bytes]]:
    """Encode normalized headers in the aiokafka wire shape."""
    if not headers:
        return []
    return [(key, value.encode("utf-8")) for key, value in headers.items()]


def find_header(
    headers: Mapping[str, str] | None, name: str
) -> tuple[str, str] | None:
    """Case-insensitive lookup. Returns the stored ``(key, value)`` pair."""
    if not headers:
        return None
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return key, value
    return None


def get_header(headers: Mapping[str, str] | None, name: str) -> str | None:
    found = find_header(headers, name)
    return found[1] if found is not None else None


def has_value(value: RawHeaderValue) -> bool:
    """Return True unless the raw value is ``None`` or an empty str/bytes/list."""
    if value is None:
        return False
    if isinstance(value, (str, bytes, bytearray, list, tuple)):
        return len(value) > 0
    return True


def find_raw_header(raw: RawHeaders | None, name: str) -> RawHeaderValue:
    """Case-insensitive lookup over un-normalized headers."""
    wanted = name.lower()
    for key, value in _items(raw):
        if str(key).lower() == wanted:
            return value
    return None


def merge_headers(
    base: Mapping[str, str] | None, overrides: Mapping[str, str]
) -> dict[str, str]:
    """Copy ``base`` and apply ``overrides`` with their canonical casing.

    Any base key matching an override case-insensitively is replaced rather
    than kept alongside it.
    """
    lowered = {key.lower() for key in overrides}
    merged = {k: v for k, v in (base or {}).items() if k.lower() not in lowered}
    merged.update(overrides)
    return merged


def parse_int(value: str | None) -> int | None:
    """Parse the leading integer of ``value``; ``None`` if there is none."""
    if value is None:
        return None
    match = _LEADING_INT.match(value)
    if match is None:
        return None
    return int(match.group(1))
