"""Helpers built on the encoder: size comparison with JSON and key filtering."""

from collections.abc import Iterable
from typing import Any

import orjson

from .encode import encode
from .normalize import normalize_input
from .types import EncodeOptions, JsonValue


def diff(data: Any, options: EncodeOptions | None = None) -> dict[str, int | float]:
    """
    Compare the size of compact JSON and TOON renderings of ``data``.

    Args:
        data: The value to measure (anything ``encode`` accepts).
        options: Encoding options for the TOON side.

    Returns:
        A dict with ``json_chars``, ``toon_chars``, ``saved_chars`` and
        ``savings_percent`` (rounded to two decimals, 0.0 for empty JSON).
    """
    value = normalize_input(data)
    json_chars = len(orjson.dumps(value).decode())
    toon_chars = len(encode(value, options))
    saved = json_chars - toon_chars
    percent = round(saved / json_chars * 100, 2) if json_chars else 0.0
    return {
        "json_chars": json_chars,
        "toon_chars": toon_chars,
        "saved_chars": saved,
        "savings_percent": percent,
    }


def only(data: Any, keys: Iterable[str], options: EncodeOptions | None = None) -> str:
    """
    Encode ``data`` keeping just the given keys.

    Works on a single object or on a list of objects; keys come out in the
    order given, and keys missing from an object are skipped. Other values
    are encoded unchanged.
    """
    wanted = list(keys)
    value = normalize_input(data)

    if isinstance(value, dict):
        value = _pick(value, wanted)
    elif isinstance(value, list):
        value = [_pick(item, wanted) if isinstance(item, dict) else item for item in value]

    return encode(value, options)


def _pick(obj: dict[str, JsonValue], keys: list[str]) -> dict[str, JsonValue]:
    return {key: obj[key] for key in keys if key in obj}
