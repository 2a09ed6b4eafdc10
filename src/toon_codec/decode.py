"""TOON decoder implementation."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .errors import (
    ArrayLengthMismatch,
    BlankLineInArrayBlock,
    DelimiterMismatch,
    InvalidIndentation,
    InvalidRootStructure,
    MissingSyntax,
    NestingTooDeep,
    PathConflict,
    RowWidthMismatch,
    TabInIndentation,
)
from .flatten import unflatten
from .primitives import parse_key, parse_primitive
from .string_utils import find_key_value_separator, is_expandable_path, split_row
from .types import (
    ArrayHeaderInfo,
    DecodeOptions,
    Delimiter,
    JsonObject,
    JsonValue,
    ParsedLine,
    QuotedKey,
)

if TYPE_CHECKING:
    from collections.abc import Generator

logger = logging.getLogger(__name__)

# Pattern for array header: key[N<delim?>]{fields}:
ARRAY_HEADER_PATTERN = re.compile(
    r'^(?P<key>[A-Za-z_][A-Za-z0-9_.]*|"(?:[^"\\]|\\.)*")?'  # Optional key (possibly quoted)
    r"\[(?P<length>\d+)(?P<delim>[\t|t])?\]"  # [N<delim?>]
    r'(?:\{(?P<fields>(?:[^}"\\]|"(?:[^"\\]|\\.)*")*)\})?'  # Optional {fields}
    r":(?P<rest>.*)$"  # Colon and rest
)

_DELIMITER_CANDIDATES: tuple[Delimiter, ...] = (",", "\t", "|")


def decode(text: str, options: DecodeOptions | None = None) -> JsonValue:
    """
    Decode TOON text to a Python value.

    Args:
        text: The TOON-formatted string.
        options: Decoding options.

    Returns:
        The decoded Python value. A document without content decodes to {}.
        Only a document made of a single bare scalar line decodes to that
        scalar; a root header such as ``[1]: x`` stays a one-element list,
        so single-element arrays survive an encode/decode round trip.

    Raises:
        ToonError: For malformed input. In strict mode this includes length,
            width, indentation and escape violations.
    """
    opts = options or DecodeOptions()
    return decode_lines(text.split("\n"), opts)


def decode_lines(lines: Iterable[str], options: DecodeOptions | None = None) -> JsonValue:
    """
    Decode TOON from pre-split lines.

    Args:
        lines: Iterable of line strings.
        options: Decoding options.

    Returns:
        The decoded Python value.
    """
    opts = options or DecodeOptions()
    parsed_lines = list(_parse_lines(lines, opts.indent, opts.strict))

    cursor = _Cursor(parsed_lines, opts)
    if cursor.peek() is None:
        return {}

    result = _parse_root(cursor)

    if opts.expand_paths == "safe":
        result = _expand_paths(result, opts.strict)

    return result


class _Cursor:
    """Cursor for iterating through parsed lines."""

    def __init__(self, lines: list[ParsedLine], options: DecodeOptions):
        self.lines = lines
        self.options = options
        self.pos = 0

    @property
    def strict(self) -> bool:
        return self.options.strict

    @property
    def step(self) -> int:
        return self.options.indent

    @property
    def mark_quoted(self) -> bool:
        """Whether to mark quoted keys (for path expansion)."""
        return self.options.expand_paths == "safe"

    def peek(self) -> ParsedLine | None:
        """Look at the next non-blank line without consuming anything."""
        pos = self.pos
        while pos < len(self.lines):
            line = self.lines[pos]
            if not line.is_blank:
                return line
            pos += 1
        return None

    def blank_ahead(self) -> ParsedLine | None:
        """The blank line at the cursor, if there is one."""
        if self.pos < len(self.lines) and self.lines[self.pos].is_blank:
            return self.lines[self.pos]
        return None

    def advance(self) -> ParsedLine | None:
        """Consume up to and including the next non-blank line."""
        line = self.peek()
        if line is not None:
            self.pos = line.line_number
        return line


@dataclass
class _Block:
    """Content collected while parsing one indentation block."""

    fields: JsonObject = field(default_factory=dict)
    items: list[JsonValue] = field(default_factory=list)
    is_sequence: bool = False
    bare_count: int = 0
    first_bare_line: int | None = None


def _parse_lines(
    lines: Iterable[str], indent_size: int, strict: bool
) -> Generator[ParsedLine, None, None]:
    """Parse raw lines into ParsedLine objects."""
    for i, raw in enumerate(lines, start=1):
        raw = raw.rstrip("\r\n")
        # Count leading spaces
        stripped = raw.lstrip(" ")
        indent = len(raw) - len(stripped)
        content = stripped.rstrip(" ") if stripped.strip(" \t") else ""

        # Strict mode: check indent is multiple of indent_size
        if strict and content and indent % indent_size != 0:
            raise InvalidIndentation(indent, indent_size, i)

        yield ParsedLine(raw=raw, content=content, indent=indent, line_number=i)


def _structural_content(line: ParsedLine, cursor: _Cursor) -> str:
    """
    Content of a line read as structure rather than as a table row.

    Tabs are only legal at the start of a tab-delimited row, so this is
    where tab indentation is caught.
    """
    content = line.content
    if content.startswith("\t"):
        if cursor.strict:
            raise TabInIndentation(line.line_number)
        content = content.lstrip(" \t")
    return content


def _is_list_item(content: str) -> bool:
    return content == "-" or content.startswith("- ")


def _check_depth(cursor: _Cursor, depth: int, line: ParsedLine | None) -> None:
    if depth > cursor.options.max_depth:
        raise NestingTooDeep(
            cursor.options.max_depth, line.line_number if line else None
        )


def _parse_root(cursor: _Cursor) -> JsonValue:
    """Decode the root block, unwrapping a single bare value."""
    block = _collect_block(cursor, -1, 0)

    if block.bare_count and (block.fields or block.is_sequence):
        if cursor.strict:
            raise InvalidRootStructure(block.first_bare_line)
    elif block.bare_count == 1 and len(block.items) == 1:
        # Single primitive
        return block.items[0]

    return _finish_block(block, cursor, root=True)


def _parse_block(cursor: _Cursor, floor: int, depth: int) -> JsonValue:
    """Decode all lines indented deeper than ``floor``."""
    return _finish_block(_collect_block(cursor, floor, depth), cursor, root=False)


def _collect_block(cursor: _Cursor, floor: int, depth: int) -> _Block:
    _check_depth(cursor, depth, cursor.peek())
    block = _Block()

    while True:
        line = cursor.peek()
        if line is None or line.indent <= floor:
            break

        content = _structural_content(line, cursor)

        if _is_list_item(content):
            cursor.advance()
            block.items.append(_parse_list_item(cursor, line, content, depth + 1))
            block.is_sequence = True
            continue

        match = ARRAY_HEADER_PATTERN.match(content)
        if match and match.group("key") is None:
            # Keyless header: its elements belong to this block's sequence
            cursor.advance()
            header = _parse_header(match, line, cursor)
            block.items.extend(_read_array(cursor, header, line, line.indent, depth + 1))
            block.is_sequence = True
            continue

        if _parse_field(cursor, line, content, block.fields, depth):
            continue

        # Bare scalar line
        cursor.advance()
        if cursor.strict and floor >= 0:
            raise MissingSyntax("key-value separator", line.line_number)
        block.items.append(parse_primitive(content, cursor.strict, line.line_number))
        block.bare_count += 1
        if block.first_bare_line is None:
            block.first_bare_line = line.line_number

    return block


def _finish_block(block: _Block, cursor: _Cursor, root: bool) -> JsonValue:
    if block.fields and block.items:
        if cursor.strict:
            line = block.first_bare_line
            if root:
                raise InvalidRootStructure(line)
            raise MissingSyntax("key for sequence element", line)
        logger.debug("Block mixes fields and sequence elements; keying elements by index")
        merged = dict(block.fields)
        for i, item in enumerate(block.items):
            merged.setdefault(str(i), item)
        return merged

    if block.items or block.is_sequence:
        return block.items
    return block.fields


def _parse_field(
    cursor: _Cursor, line: ParsedLine, content: str, target: JsonObject, depth: int
) -> bool:
    """
    Parse a keyed line (array header, nested opener or key: value) into target.

    Returns False, without consuming the line, when the line is none of these.
    """
    strict = cursor.strict
    number = line.line_number

    match = ARRAY_HEADER_PATTERN.match(content)
    if match and match.group("key") is not None:
        cursor.advance()
        header = _parse_header(match, line, cursor)
        target[header.key] = _read_array(cursor, header, line, line.indent, depth + 1)
        return True

    sep = find_key_value_separator(content)

    if sep == -1 and content.endswith(":"):
        # Nested object
        cursor.advance()
        key = _parse_key(content[:-1], cursor, number)
        target[key] = _parse_block(cursor, line.indent, depth + 1)
        return True

    if sep != -1:
        cursor.advance()
        key = _parse_key(content[:sep], cursor, number)
        target[key] = parse_primitive(content[sep + 2 :], strict, number)
        return True

    return False


def _parse_key(text: str, cursor: _Cursor, line: int) -> str:
    if cursor.strict and not text.strip(" \t"):
        raise MissingSyntax("key", line)
    return parse_key(text, cursor.strict, line, cursor.mark_quoted)


def _parse_list_item(
    cursor: _Cursor, line: ParsedLine, content: str, depth: int
) -> JsonValue:
    """Decode a single list item."""
    _check_depth(cursor, depth, line)
    item_indent = line.indent
    number = line.line_number

    # Remove "- " prefix
    body = content[2:].strip(" ") if content != "-" else ""

    if not body:
        # Bare hyphen is an empty object
        return {}

    match = ARRAY_HEADER_PATTERN.match(body)
    if match:
        header = _parse_header(match, line, cursor)
        if header.key is None:
            # Bare array as list item
            return _read_array(cursor, header, line, item_indent, depth)
        # Object with array as first field
        obj: JsonObject = {
            header.key: _read_array(cursor, header, line, item_indent + cursor.step, depth)
        }
        return _parse_object_fields(cursor, obj, item_indent, depth)

    sep = find_key_value_separator(body)
    if sep != -1:
        # Object with first field on hyphen line
        key = _parse_key(body[:sep], cursor, number)
        obj = {key: parse_primitive(body[sep + 2 :], cursor.strict, number)}
        return _parse_object_fields(cursor, obj, item_indent, depth)

    if body.endswith(":"):
        key = _parse_key(body[:-1], cursor, number)
        obj = {key: _parse_block(cursor, item_indent + cursor.step, depth + 1)}
        return _parse_object_fields(cursor, obj, item_indent, depth)

    # Primitive value
    return parse_primitive(body, cursor.strict, number)


def _parse_object_fields(
    cursor: _Cursor, obj: JsonObject, item_indent: int, depth: int
) -> JsonObject:
    """Read the remaining fields of a list item object, one level below the hyphen."""
    while True:
        line = cursor.peek()
        if line is None or line.indent <= item_indent:
            break
        content = _structural_content(line, cursor)
        if _is_list_item(content):
            break
        if not _parse_field(cursor, line, content, obj, depth):
            if cursor.strict:
                raise MissingSyntax("key-value separator", line.line_number)
            break
    return obj


def _parse_header(match: re.Match, line: ParsedLine, cursor: _Cursor) -> ArrayHeaderInfo:
    """Parse ArrayHeaderInfo from a regex match."""
    number = line.line_number
    marker = match.group("delim")
    delimiter: Delimiter = "\t" if marker in ("\t", "t") else (marker or ",")

    key_text = match.group("key")
    key = _parse_key(key_text, cursor, number) if key_text is not None else None

    fields: list[str] = []
    fields_text = match.group("fields")
    if fields_text:
        # Quoted column names are kept as QuotedKey so they are never unflattened
        fields = [
            parse_key(name, cursor.strict, number, mark_quoted=True)
            for name in split_row(fields_text, delimiter, number)
        ]

    return ArrayHeaderInfo(
        key=key,
        length=int(match.group("length")),
        delimiter=delimiter,
        fields=fields,
        inline=match.group("rest").strip(" "),
    )


def _read_array(
    cursor: _Cursor, header: ArrayHeaderInfo, line: ParsedLine, floor: int, depth: int
) -> list:
    """Read the body of an array header; rows and items must sit deeper than ``floor``."""
    if header.fields:
        return _read_tabular_rows(cursor, header, line, floor)
    if header.inline:
        return _read_inline_values(header, line, cursor.strict)

    next_line = cursor.peek()
    if (
        next_line is not None
        and next_line.indent > floor
        and _is_list_item(next_line.content.lstrip(" \t"))
    ):
        return _read_list_items(cursor, header, line, floor, depth)
    return _read_plain_rows(cursor, header, line, floor)


def _read_inline_values(header: ArrayHeaderInfo, line: ParsedLine, strict: bool) -> list:
    """Decode inline primitive array values."""
    number = line.line_number
    cells = split_row(header.inline, header.delimiter, number)
    values = [parse_primitive(cell, strict, number) for cell in cells]

    if len(values) != header.length:
        if strict:
            other = _other_delimiter(header.inline, header.delimiter, header.length)
            if other is not None:
                raise DelimiterMismatch(header.delimiter, other, number)
            raise ArrayLengthMismatch(header.length, len(values), number)
        values.extend([None] * (header.length - len(values)))

    return values


def _read_tabular_rows(
    cursor: _Cursor, header: ArrayHeaderInfo, line: ParsedLine, floor: int
) -> list[JsonObject]:
    """Decode tabular array rows."""
    strict = cursor.strict
    width = len(header.fields)
    rows: list[list[JsonValue]] = []

    while len(rows) < header.length:
        row_line = _next_in_array(cursor, floor)
        if row_line is None:
            break
        cursor.advance()
        number = row_line.line_number
        cells = split_row(row_line.content, header.delimiter, number)

        if len(cells) != width:
            if strict:
                other = _other_delimiter(row_line.content, header.delimiter, width)
                if other is not None:
                    raise DelimiterMismatch(header.delimiter, other, number)
                raise RowWidthMismatch(width, len(cells), number)
            if len(cells) > width:
                logger.warning(
                    "Line %d: dropping %d cells beyond the %d declared columns",
                    number,
                    len(cells) - width,
                    width,
                )
                cells = cells[:width]
            else:
                cells.extend([""] * (width - len(cells)))

        rows.append([parse_primitive(cell, strict, number) for cell in cells])

    _check_count(cursor, header, line, len(rows), floor)

    columns = header.fields
    if any("." in column and not isinstance(column, QuotedKey) for column in columns):
        return unflatten(rows, columns)

    keys = [column if cursor.mark_quoted else str(column) for column in columns]
    return [dict(zip(keys, row)) for row in rows]


def _read_list_items(
    cursor: _Cursor, header: ArrayHeaderInfo, line: ParsedLine, floor: int, depth: int
) -> list:
    """Decode list items (lines starting with -)."""
    result = []

    while len(result) < header.length:
        item_line = _next_in_array(cursor, floor)
        if item_line is None:
            break
        content = _structural_content(item_line, cursor)
        if not _is_list_item(content):
            break
        cursor.advance()
        result.append(_parse_list_item(cursor, item_line, content, depth + 1))

    _check_count(cursor, header, line, len(result), floor)
    return result


def _read_plain_rows(
    cursor: _Cursor, header: ArrayHeaderInfo, line: ParsedLine, floor: int
) -> list:
    """Decode rows of a header without columns; one-cell rows become scalars."""
    strict = cursor.strict
    rows: list[list[JsonValue]] = []

    while len(rows) < header.length:
        row_line = _next_in_array(cursor, floor)
        if row_line is None:
            break
        cursor.advance()
        number = row_line.line_number
        cells = split_row(row_line.content, header.delimiter, number)
        rows.append([parse_primitive(cell, strict, number) for cell in cells])

    _check_count(cursor, header, line, len(rows), floor)

    if all(len(row) == 1 for row in rows):
        return [row[0] for row in rows]
    return rows


def _next_in_array(cursor: _Cursor, floor: int) -> ParsedLine | None:
    """Peek at the next row or item of an array block."""
    line = cursor.peek()
    if line is None or line.indent <= floor:
        return None
    blank = cursor.blank_ahead()
    if blank is not None and cursor.strict:
        raise BlankLineInArrayBlock(blank.line_number)
    return line


def _check_count(
    cursor: _Cursor, header: ArrayHeaderInfo, line: ParsedLine, actual: int, floor: int
) -> None:
    """Strict-mode reconciliation of the declared length with what was read."""
    if not cursor.strict:
        return
    if actual < header.length:
        raise ArrayLengthMismatch(header.length, actual, line.line_number)
    next_line = cursor.peek()
    if next_line is not None and next_line.indent > floor:
        # Another row or item continues the block
        raise ArrayLengthMismatch(header.length, header.length + 1, next_line.line_number)


def _other_delimiter(text: str, delimiter: Delimiter, expected: int) -> Delimiter | None:
    """Find another delimiter that would split ``text`` into ``expected`` cells."""
    if expected < 2:
        return None
    for candidate in _DELIMITER_CANDIDATES:
        if candidate != delimiter and len(split_row(text, candidate)) == expected:
            return candidate
    return None


def _expand_paths(value: JsonValue, strict: bool) -> JsonValue:
    """
    Expand dotted keys into nested objects.

    Keys that were quoted in the source are taken literally.

    Args:
        value: The value to expand.
        strict: Whether to raise on conflicts.

    Returns:
        The expanded value, with plain str keys throughout.
    """
    if isinstance(value, list):
        return [_expand_paths(v, strict) for v in value]
    if not isinstance(value, dict):
        return value

    result: JsonObject = {}
    for key, val in value.items():
        expanded = _expand_paths(val, strict)
        key_str = str(key)

        if not isinstance(key, QuotedKey) and is_expandable_path(key_str):
            head, *rest = key_str.split(".")
            for segment in reversed(rest):
                expanded = {segment: expanded}
            key_str = head

        if key_str in result:
            result[key_str] = merge_value(result[key_str], expanded, strict, key_str)
        else:
            result[key_str] = expanded
    return result


def merge_value(
    existing: JsonValue, new: JsonValue, strict: bool, path: str = ""
) -> JsonValue:
    """
    Deep-merge two values produced by path expansion.

    Objects are merged key by key. Any other pair conflicts: strict mode
    raises PathConflict, otherwise the new value wins.
    """
    if isinstance(existing, dict) and isinstance(new, dict):
        merged = dict(existing)
        for key, val in new.items():
            if key in merged:
                merged[key] = merge_value(merged[key], val, strict, f"{path}.{key}")
            else:
                merged[key] = val
        return merged
    if strict:
        raise PathConflict(path)
    return new
