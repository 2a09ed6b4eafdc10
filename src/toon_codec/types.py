"""Type definitions for TOON encoder/decoder."""

from dataclasses import dataclass, field
from typing import Literal

# JSON type aliases
JsonPrimitive = str | int | float | bool | None
JsonArray = list["JsonValue"]
JsonObject = dict[str, "JsonValue"]
JsonValue = JsonPrimitive | JsonArray | JsonObject

# Delimiter options
Delimiter = Literal[",", "\t", "|"]

DELIMITERS: dict[str, Delimiter] = {
    "comma": ",",
    "tab": "\t",
    "pipe": "|",
}

OMIT_CHOICES = frozenset({"null", "empty", "false", "all"})


def _resolve_delimiter(value: str) -> Delimiter:
    resolved = DELIMITERS.get(value, value)
    if resolved not in DELIMITERS.values():
        raise ValueError(f"Unsupported delimiter: {value!r}")
    return resolved


@dataclass
class EncodeOptions:
    """Options for TOON encoding."""

    min_rows_for_table: int = 2
    """Arrays of uniform objects shorter than this use list format."""

    max_flatten_depth: int = 3
    """How many levels of nested objects are flattened into dotted columns."""

    indent: int = 2
    """Number of spaces per indentation level."""

    delimiter: Delimiter = ","
    """Delimiter for inline arrays and tabular rows."""

    strict: bool = True
    """Raise on output that could not be decoded back unambiguously."""

    omit: frozenset[str] = frozenset()
    """Value kinds dropped from object fields: null, empty, false or all."""

    omit_keys: frozenset[str] = frozenset()
    """Keys that are never emitted."""

    key_aliases: dict[str, str] = field(default_factory=dict)
    """Replacement text for keys, applied to fields and table headers."""

    date_format: str | None = None
    """strftime format for dates. None renders ISO-8601."""

    truncate_strings: int | None = None
    """Maximum string length before truncation with '...'."""

    number_precision: int | None = None
    """Fixed number of decimals for floats."""

    key_folding: Literal["off", "safe"] = "off"
    """Whether to fold single-key object chains into dotted paths."""

    key_folding_depth: int | None = None
    """Maximum number of segments in a folded key. None means unlimited."""

    def __post_init__(self) -> None:
        self.delimiter = _resolve_delimiter(self.delimiter)
        self.omit = frozenset(self.omit)
        self.omit_keys = frozenset(self.omit_keys)
        unknown = self.omit - OMIT_CHOICES
        if unknown:
            raise ValueError(f"Unsupported omit values: {sorted(unknown)}")
        if self.indent < 1:
            raise ValueError("indent must be at least 1")
        if self.key_folding not in ("off", "safe"):
            raise ValueError(f"Unsupported key_folding mode: {self.key_folding!r}")


@dataclass
class DecodeOptions:
    """Options for TOON decoding."""

    indent: int = 2
    """Expected indentation size (for strict mode validation)."""

    strict: bool = True
    """Enable strict validation (count mismatches, blank lines, etc.)."""

    expand_paths: Literal["off", "safe"] = "off"
    """Expand dotted keys into nested objects."""

    max_depth: int = 256
    """Deepest block nesting accepted before decoding is aborted."""

    def __post_init__(self) -> None:
        if self.indent < 1:
            raise ValueError("indent must be at least 1")
        if self.expand_paths not in ("off", "safe"):
            raise ValueError(f"Unsupported expand_paths mode: {self.expand_paths!r}")


class QuotedKey(str):
    """A key that was written in quoted form and must be taken literally."""

    __slots__ = ()


@dataclass
class ParsedLine:
    """A parsed line with indentation info."""

    raw: str
    """Original line content."""

    content: str
    """Content after stripping indentation."""

    indent: int
    """Number of leading whitespace characters."""

    line_number: int
    """1-based line number."""

    @property
    def is_blank(self) -> bool:
        return not self.content


@dataclass
class ArrayHeaderInfo:
    """Parsed array header information."""

    key: str | None
    """Key the array is stored under (None for keyless headers)."""

    length: int
    """Declared array length."""

    delimiter: Delimiter = ","
    """Delimiter for this array's values."""

    fields: list[str] = field(default_factory=list)
    """Field names for tabular format (empty for non-tabular)."""

    inline: str = ""
    """Values following the colon on the header line."""
