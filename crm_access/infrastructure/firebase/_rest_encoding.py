"""Firestore REST "fields" codec for credential records.

Records only hold strings, booleans, ints and UTC timestamps, but the full
value set is supported so reads of hand-edited documents do not fail.
"""

import base64
import re
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

# Firestore returns up to nanosecond precision; datetime keeps microseconds.
_FRACTION = re.compile(r"\.(\d{6})\d*")


def encode_value(value: Any) -> dict:
    """One Python value as a Firestore Value. Aware datetimes are sent as UTC."""
    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(UTC)
        return {"timestampValue": value.strftime("%Y-%m-%dT%H:%M:%S.%fZ")}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, bytes):
        return {"bytesValue": base64.standard_b64encode(value).decode("ascii")}
    if isinstance(value, list):
        return {"arrayValue": {"values": [encode_value(x) for x in value]}}
    if isinstance(value, dict):
        return {"mapValue": encode_document(value)}
    raise TypeError(f"Unsupported Firestore value type: {type(value)}")


def encode_document(data: dict[str, Any]) -> dict:
    """{"fields": ...} body for a create or patch."""
    return {"fields": {key: encode_value(value) for key, value in data.items()}}


def _decode_timestamp(raw: str) -> datetime:
    text = _FRACTION.sub(lambda m: "." + m.group(1), raw.replace("Z", "+00:00"))
    return datetime.fromisoformat(text).astimezone(UTC)


def _decode_fields(fields: dict | None) -> dict[str, Any]:
    return {key: decode_value(value) for key, value in (fields or {}).items()}


_DECODERS: dict[str, Callable[[Any], Any]] = {
    "nullValue": lambda raw: None,
    "booleanValue": bool,
    "integerValue": int,
    "doubleValue": float,
    "timestampValue": _decode_timestamp,
    "stringValue": str,
    "bytesValue": base64.standard_b64decode,
    "arrayValue": lambda raw: [decode_value(x) for x in (raw or {}).get("values") or []],
    "mapValue": lambda raw: _decode_fields((raw or {}).get("fields")),
}


def decode_value(value: dict) -> Any:
    """Python value of a Firestore Value; unknown kinds decode to None."""
    for kind, raw in value.items():
        decoder = _DECODERS.get(kind)
        if decoder is not None:
            return decoder(raw)
    return None


def decode_document(document: dict | None) -> dict[str, Any]:
    """Field values of a Firestore Document; name and timestamps are dropped."""
    if not document:
        return {}
    return _decode_fields(document.get("fields"))
