"""Primitive value encoding and parsing for TOON."""

import datetime
import math
import re
from decimal import Decimal
from typing import TYPE_CHECKING, Any

import orjson

from .errors import MissingSyntax, UnterminatedString
from .string_utils import (
    LEADING_ZERO_PATTERN,
    NUMBER_PATTERN,
    key_needs_quoting,
    needs_quoting,
    quote_string,
    unescape_legacy,
    unescape_string,
)
from .types import QuotedKey

if TYPE_CHECKING:
    from .types import Delimiter, EncodeOptions, JsonPrimitive

ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}([T\s]\d{2}:\d{2}(:\d{2})?)?")

ELLIPSIS = "..."


def encode_primitive(value: Any, options: "EncodeOptions") -> str:
    """
    Encode a scalar value to TOON format.

    Args:
        value: None, bool, int, float, str, date or datetime. Dicts and lists
            that reach this point (table cells past the flatten depth) are
            embedded as JSON text.
        options: Encoding options (delimiter, dates, truncation, precision).

    Returns:
        The encoded string representation.
    """
    if value is None:
        return "null"

    if isinstance(value, bool):
        return "true" if value else "false"

    if isinstance(value, (datetime.date, datetime.datetime)):
        return encode_string_literal(_format_date(value, options.date_format), options)

    if isinstance(value, float):
        return encode_float(value, options.number_precision)

    if isinstance(value, int):
        return str(value)

    if isinstance(value, str):
        return encode_string_literal(value, options)

    if isinstance(value, (dict, list)):
        return encode_string_literal(orjson.dumps(value).decode(), options)

    raise TypeError(f"Cannot encode value of type {type(value).__name__}")


def encode_float(value: float, precision: int | None = None) -> str:
    """Encode a float to TOON format."""
    if math.isnan(value) or math.isinf(value):
        return "null"

    # Normalize -0 to 0
    if value == 0.0:
        value = 0.0

    if precision is not None:
        return f"{value:.{precision}f}"

    if value.is_integer() and abs(value) < 1e15:
        return str(int(value))

    # repr gives the shortest round-tripping form; avoid exponent notation
    s = repr(value)
    if "e" in s or "E" in s:
        s = format(Decimal(s), "f")
    return s


def encode_string_literal(value: str, options: "EncodeOptions") -> str:
    """
    Encode a string value, with or without quotes.

    Applies date reformatting and truncation before the quoting test.

    Args:
        value: The string to encode.
        options: Encoding options.

    Returns:
        The encoded string (quoted if necessary).
    """
    if options.date_format is not None and ISO_DATE_PATTERN.match(value):
        value = _reformat_iso_string(value, options.date_format)

    if options.truncate_strings is not None and len(value) > options.truncate_strings:
        value = value[: options.truncate_strings] + ELLIPSIS

    if needs_quoting(value, options.delimiter):
        return quote_string(value)
    return value


def _format_date(value: datetime.date, date_format: str | None) -> str:
    if isinstance(value, datetime.datetime) and value.tzinfo is None:
        value = value.replace(tzinfo=datetime.timezone.utc)
    if date_format is not None:
        return value.strftime(date_format)
    if isinstance(value, datetime.datetime):
        return value.isoformat(timespec="seconds")
    return value.isoformat()


def _reformat_iso_string(value: str, date_format: str) -> str:
    try:
        parsed = datetime.datetime.fromisoformat(value)
    except ValueError:
        return value
    return parsed.strftime(date_format)


def encode_key(key: str, aliases: dict[str, str] | None = None) -> str:
    """
    Encode an object key for TOON format.

    Args:
        key: The key string.
        aliases: Replacement text for keys, applied before the quoting test.

    Returns:
        The encoded key (quoted if necessary).
    """
    if aliases:
        key = aliases.get(key, key)
    if key_needs_quoting(key):
        return quote_string(key)
    return key


def length_marker(length: int, delimiter: "Delimiter") -> str:
    """Format the count inside an array header; non-comma delimiters are appended."""
    if delimiter == ",":
        return str(length)
    return f"{length}{delimiter}"


def format_array_header(
    length: int,
    key: str = "",
    fields: list[str] | None = None,
    delimiter: "Delimiter" = ",",
) -> str:
    """
    Format an array header line.

    Args:
        length: The array length.
        key: Already-encoded key text ("" for keyless headers).
        fields: Already-encoded field names for tabular format.
        delimiter: The delimiter (included in bracket if not comma).

    Returns:
        The formatted header string.
    """
    fields_part = ""
    if fields:
        fields_part = "{" + delimiter.join(fields) + "}"
    return f"{key}[{length_marker(length, delimiter)}]{fields_part}:"


def parse_primitive(
    token: str, strict: bool = True, line: int | None = None
) -> "JsonPrimitive":
    """
    Parse a primitive token to a Python value.

    Handles: null, true, false, numbers, quoted strings, unquoted strings.

    Args:
        token: The token string.
        strict: Reject unknown escape sequences.
        line: Line number used in error messages.

    Returns:
        The parsed Python value. A blank token is None.

    Raises:
        UnterminatedString: For a quoted string with no closing quote.
    """
    token = token.strip(" \t")
    if not token:
        return None

    # Quoted string
    if token.startswith('"'):
        end = find_closing_quote(token, 0)
        if end == -1:
            raise UnterminatedString(line)
        if end == len(token) - 1:
            return unescape_string(token[1:-1], strict, line)
        if strict:
            raise MissingSyntax("delimiter after quoted value", line)
        return token

    # Literals
    if token == "null":
        return None
    if token == "true":
        return True
    if token == "false":
        return False

    number = _try_parse_number(token)
    if number is not None:
        return number

    # Unquoted string
    return unescape_legacy(token)


def parse_key(
    key: str, strict: bool = True, line: int | None = None, mark_quoted: bool = False
) -> str:
    """
    Parse a key, handling quoted keys.

    Args:
        key: The key string (possibly quoted).
        strict: Reject unknown escape sequences.
        line: Line number used in error messages.
        mark_quoted: Return quoted keys as QuotedKey so later stages can
            tell them apart from dotted paths.

    Returns:
        The parsed key.
    """
    key = key.strip(" \t")
    if len(key) >= 2 and key.startswith('"') and key.endswith('"'):
        parsed = unescape_string(key[1:-1], strict, line)
        return QuotedKey(parsed) if mark_quoted else parsed
    return key


def find_closing_quote(s: str, start: int) -> int:
    """
    Find the closing quote in a string.

    Args:
        s: The string to search.
        start: The position of the opening quote.

    Returns:
        Index of the closing quote, or -1 if not found.
    """
    i = start + 1
    while i < len(s):
        char = s[i]
        if char == "\\":
            # Skip escape sequence
            i += 2
            continue
        elif char == '"':
            return i
        i += 1
    return -1


def _try_parse_number(token: str) -> int | float | None:
    """
    Try to parse a token as a number.

    Returns None if it's not a valid number.
    """
    if not NUMBER_PATTERN.match(token) or LEADING_ZERO_PATTERN.match(token):
        return None

    if "." not in token and "e" not in token.lower():
        return int(token)

    value = float(token)
    # Normalize -0.0 to 0.0
    if value == 0.0:
        return 0.0
    return value
