"""Payload serialization for webhook messages.

Converts the two field types callers most often get wrong before sending:

- ``timestamp``: datetimes and Unix epoch numbers become ISO 8601 UTC strings
- ``color``: ``"#RRGGBB"``, ``"RRGGBB"`` and ``(r, g, b)`` become integers

Conversion is applied at any depth (embeds, fields, ...). Nothing else about
the payload is checked or changed.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel
from pydantic_core import to_json


def prepare_payload(payload: Mapping[str, Any] | BaseModel) -> bytes:
    """Serialize a payload to compact JSON bytes.

    Args:
        payload: Mapping or pydantic model. Models are dumped with
            ``exclude_none`` so optional fields are omitted.

    Returns:
        UTF-8 encoded JSON.

    Raises:
        ValueError: If a color value cannot be converted.
    """
    if isinstance(payload, BaseModel):
        data: Any = payload.model_dump(mode="python", exclude_none=True)
    else:
        data = dict(payload)
    return to_json(_normalize(data))


def normalize_timestamp(value: datetime | int | float | str) -> str:
    """Return ``value`` as an ISO 8601 string in UTC.

    Naive datetimes are taken to be UTC. Strings are passed through.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, datetime):
        dt = value if value.tzinfo else value.replace(tzinfo=UTC)
    else:
        dt = datetime.fromtimestamp(value, tz=UTC)
    return dt.astimezone(UTC).isoformat()


def normalize_color(value: int | str | tuple[int, int, int] | list[int]) -> int:
    """Return ``value`` as a 24-bit RGB integer.

    Raises:
        ValueError: If the value is not a valid color.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid color: {value!r}")
    if isinstance(value, int):
        color = value
    elif isinstance(value, str):
        hex_value = value.strip().removeprefix("#").removeprefix("0x")
        if len(hex_value) != 6:
            raise ValueError(f"Invalid color: {value!r}")
        try:
            color = int(hex_value, 16)
        except ValueError as e:
            raise ValueError(f"Invalid color: {value!r}") from e
    elif isinstance(value, tuple | list) and len(value) == 3:
        r, g, b = value
        if not all(isinstance(c, int) and 0 <= c <= 255 for c in (r, g, b)):
            raise ValueError(f"Invalid color: {value!r}")
        color = (r << 16) | (g << 8) | b
    else:
        raise ValueError(f"Invalid color: {value!r}")

    if not 0 <= color <= 0xFFFFFF:
        raise ValueError(f"Color out of range: {value!r}")
    return color


def _normalize(value: Any) -> Any:
    if isinstance(value, Mapping):
        result: dict[str, Any] = {}
        for key, item in value.items():
            if key == "timestamp" and item is not None:
                result[key] = normalize_timestamp(item)
            elif key == "color" and item is not None:
                result[key] = normalize_color(item)
            else:
                result[key] = _normalize(item)
        return result
    if isinstance(value, list | tuple):
        return [_normalize(item) for item in value]
    return value


__all__ = [
    "normalize_color",
    "normalize_timestamp",
    "prepare_payload",
]
