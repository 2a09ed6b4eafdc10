"""String utilities for TOON encoding/decoding."""

import re
from typing import TYPE_CHECKING

from .errors import InvalidEscapeSequence, UnterminatedString

if TYPE_CHECKING:
    from .types import Delimiter

# TOON only allows these 5 escape sequences
ESCAPE_MAP = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}

UNESCAPE_MAP = {
    "\\": "\\",
    '"': '"',
    "n": "\n",
    "r": "\r",
    "t": "\t",
}

# Escapes accepted in unquoted values written by older encoders
LEGACY_UNESCAPE_MAP = {
    "n": "\n",
    ",": ",",
    ":": ":",
    "\\": "\\",
}

LEGACY_ESCAPE_PATTERN = re.compile(r"\\(.)")

# Reserved literals that can't be unquoted strings
RESERVED_LITERALS = {"true", "false", "null"}

# Characters that force quoting anywhere in a value
STRUCTURAL_CHARS_PATTERN = re.compile(r'[:"\\{}\x00-\x1f]')

NUMBER_PATTERN = re.compile(r"^-?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?$")

# Integer parts like 007 are strings, not numbers
LEADING_ZERO_PATTERN = re.compile(r"^-?0\d")

KEY_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_.]*$")

# Pattern for valid identifier segments (used in key folding/path expansion)
IDENTIFIER_SEGMENT_PATTERN = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


def escape_string(value: str) -> str:
    """
    Escape a string for use in TOON quoted strings.

    Only the 5 valid TOON escape sequences are produced:
    - \\\\ (backslash)
    - \\" (double quote)
    - \\n (newline)
    - \\r (carriage return)
    - \\t (tab)

    Args:
        value: The string to escape.

    Returns:
        The escaped string (without surrounding quotes).
    """
    return "".join(ESCAPE_MAP.get(char, char) for char in value)


def quote_string(value: str) -> str:
    """Wrap a string in double quotes, escaping its content."""
    return f'"{escape_string(value)}"'


def unescape_string(value: str, strict: bool = True, line: int | None = None) -> str:
    """
    Unescape a TOON string that was inside quotes.

    Args:
        value: The string content (without surrounding quotes).
        strict: Raise on unknown escapes instead of keeping the escaped char.
        line: Line number used in error messages.

    Returns:
        The unescaped string.

    Raises:
        InvalidEscapeSequence: In strict mode, for an unknown escape sequence.
    """
    if "\\" not in value:
        return value

    result = []
    i = 0
    while i < len(value):
        char = value[i]
        if char != "\\":
            result.append(char)
            i += 1
            continue

        if i + 1 >= len(value):
            if strict:
                raise InvalidEscapeSequence("", line)
            result.append(char)
            break

        next_char = value[i + 1]
        if next_char in UNESCAPE_MAP:
            result.append(UNESCAPE_MAP[next_char])
        elif strict:
            raise InvalidEscapeSequence(next_char, line)
        else:
            result.append(next_char)
        i += 2
    return "".join(result)


def unescape_legacy(value: str) -> str:
    """Decode the backslash escapes older encoders wrote into unquoted values."""
    if "\\" not in value:
        return value
    return LEGACY_ESCAPE_PATTERN.sub(
        lambda m: LEGACY_UNESCAPE_MAP.get(m.group(1), m.group(0)), value
    )


def looks_like_number(value: str) -> bool:
    """Check if a string would be read back as a number (or is a leading-zero run)."""
    return NUMBER_PATTERN.match(value) is not None


def needs_quoting(value: str, delimiter: "Delimiter" = ",") -> bool:
    """
    Check if a string value needs to be quoted.

    A string must be quoted if it is:
    - empty, or starts or ends with whitespace (including non-ASCII spaces)
    - a boolean/null literal, a lone "-" or starts with "- " (list marker)
    - number-like, including leading-zero runs such as "007"
    - contains a colon, quote, backslash, brace or control character
    - starts with "[" or contains the active delimiter

    Args:
        value: The string to check.
        delimiter: The active delimiter character.

    Returns:
        True if the string needs quotes.
    """
    if not value:
        return True

    if value[0].isspace() or value[-1].isspace():
        return True

    if value in RESERVED_LITERALS:
        return True

    if value == "-" or value.startswith("- "):
        return True

    if looks_like_number(value):
        return True

    if STRUCTURAL_CHARS_PATTERN.search(value):
        return True

    if value.startswith("["):
        return True

    return delimiter in value


def key_needs_quoting(key: str) -> bool:
    """Check if an object key must be quoted."""
    return not KEY_PATTERN.match(key)


def is_valid_identifier_segment(segment: str) -> bool:
    """
    Check if a string is a valid identifier segment for folding/expansion.

    Valid segments start with a letter or underscore and contain only
    letters, digits and underscores.
    """
    return bool(IDENTIFIER_SEGMENT_PATTERN.match(segment))


def is_expandable_path(key: str) -> bool:
    """Check if a key is a dotted path whose segments are all identifiers."""
    if "." not in key:
        return False
    return all(is_valid_identifier_segment(seg) for seg in key.split("."))


def find_key_value_separator(line: str) -> int:
    """
    Find the first unquoted ": " in a line.

    Args:
        line: The line content.

    Returns:
        Index of the colon, or -1 if not found.
    """
    if ": " not in line:
        return -1

    in_quotes = False
    i = 0
    while i < len(line):
        char = line[i]
        if char == "\\":
            # Skip escape sequence
            i += 2
            continue
        if char == '"':
            in_quotes = not in_quotes
        elif char == ":" and not in_quotes and line[i + 1 : i + 2] == " ":
            return i
        i += 1
    return -1


def split_row(value: str, delimiter: "Delimiter", line: int | None = None) -> list[str]:
    """
    Split a row by delimiter, respecting quoted sections.

    Args:
        value: The row text.
        delimiter: The delimiter character.
        line: Line number used in error messages.

    Returns:
        List of trimmed cells (still containing quotes if originally quoted).

    Raises:
        UnterminatedString: If a quoted cell is never closed.
    """
    result = []
    current = []
    in_quotes = False
    i = 0

    while i < len(value):
        char = value[i]
        if char == "\\" and i + 1 < len(value):
            # Keep escape sequence intact for parse_primitive
            current.append(value[i : i + 2])
            i += 2
            continue
        if char == '"':
            in_quotes = not in_quotes
            current.append(char)
        elif char == delimiter and not in_quotes:
            result.append("".join(current).strip(" \t"))
            current = []
        else:
            current.append(char)
        i += 1

    if in_quotes:
        raise UnterminatedString(line)

    result.append("".join(current).strip(" \t"))
    return result
