"""Input normalization: JSON pre-pass and conversion of foreign containers."""

import dataclasses
import datetime
import logging
from collections.abc import Iterable, Mapping
from typing import Any, Protocol, runtime_checkable

import orjson

from .types import JsonValue

logger = logging.getLogger(__name__)


@runtime_checkable
class ToonConvertible(Protocol):
    """Objects that know how to turn themselves into a plain value tree."""

    def to_toon_value(self) -> Any: ...


def looks_like_json(text: str) -> bool:
    """Check if a string looks like a JSON object or array."""
    stripped = text.strip()
    return stripped.startswith(("{", "["))


def normalize_input(value: Any) -> JsonValue:
    """
    Prepare a top-level value for encoding.

    A string that looks like a JSON object or array is parsed first; if it
    is not valid JSON it is encoded as a plain string.

    Args:
        value: The caller's value.

    Returns:
        A value tree made of dicts, lists and scalars.
    """
    if isinstance(value, str) and looks_like_json(value):
        try:
            parsed = orjson.loads(value)
        except orjson.JSONDecodeError:
            logger.debug("Input looks like JSON but does not parse; encoding as string")
        else:
            if isinstance(parsed, (dict, list)):
                value = parsed
    return normalize_value(value)


def normalize_value(value: Any) -> JsonValue:
    """
    Normalize a value for JSON compatibility.

    Converts:
    - Objects implementing ``to_toon_value()``
    - Pydantic-style models (``model_dump()``), dataclasses, named tuples
    - Mappings to dicts with string keys
    - Tuples, sets and other iterables to lists

    Dates and datetimes are kept; the scalar codec renders them.

    Args:
        value: The value to normalize.

    Returns:
        A JSON-compatible value.
    """
    if value is None or isinstance(value, (bool, int, float, str)):
        return value

    if isinstance(value, (datetime.date, datetime.datetime)):
        return value

    if isinstance(value, ToonConvertible):
        return normalize_value(value.to_toon_value())

    if isinstance(value, dict):
        return {str(k): normalize_value(v) for k, v in value.items()}

    if isinstance(value, list):
        return [normalize_value(v) for v in value]

    if hasattr(value, "model_dump") and callable(value.model_dump):
        return normalize_value(value.model_dump())

    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return normalize_value(dataclasses.asdict(value))

    if isinstance(value, tuple) and hasattr(value, "_asdict"):
        return normalize_value(value._asdict())

    if isinstance(value, Mapping):
        return {str(k): normalize_value(v) for k, v in value.items()}

    if isinstance(value, (set, frozenset)):
        return [normalize_value(v) for v in sorted(value, key=str)]

    if isinstance(value, (bytes, bytearray)):
        return value.decode("utf-8", errors="replace")

    if isinstance(value, Iterable):
        return [normalize_value(v) for v in value]

    # Last resort: string conversion
    return str(value)
