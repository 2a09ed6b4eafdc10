"""TOON encoder implementation."""

import logging
from collections.abc import Generator, Iterator
from dataclasses import dataclass
from typing import Any

from .errors import PathConflict
from .flatten import flatten, has_nested_objects
from .normalize import normalize_input
from .primitives import encode_key, encode_primitive, format_array_header
from .string_utils import is_valid_identifier_segment, key_needs_quoting, quote_string
from .types import EncodeOptions, JsonObject, JsonValue

logger = logging.getLogger(__name__)


def encode(value: Any, options: EncodeOptions | None = None) -> str:
    """
    Encode a Python value to TOON format.

    Args:
        value: The value to encode (dict, list, primitive, JSON text or any
            container understood by ``normalize_value``).
        options: Encoding options.

    Returns:
        The TOON-formatted string.

    Raises:
        PathConflict: In strict mode, when two keys of one object encode to
            the same text (for example through ``key_aliases``).
    """
    opts = options or EncodeOptions()
    return "\n".join(encode_lines(value, opts))


def encode_lines(
    value: Any, options: EncodeOptions | None = None
) -> Generator[str, None, None]:
    """
    Encode a Python value to TOON format, yielding lines.

    Args:
        value: The value to encode.
        options: Encoding options.

    Yields:
        Lines of TOON output.
    """
    opts = options or EncodeOptions()
    normalized = normalize_input(value)

    ctx = _Context(opts)
    if isinstance(normalized, dict):
        # An empty root object is an empty document
        yield from _encode_object_lines(
            normalized, ctx, 0, fold=opts.key_folding == "safe"
        )
    elif isinstance(normalized, list):
        yield from _encode_array("", normalized, ctx, 0)
    else:
        yield encode_primitive(normalized, opts)


@dataclass
class _Context:
    """Per-call encoding state."""

    options: EncodeOptions

    def indent(self, depth: int) -> str:
        return " " * (self.options.indent * depth)

    def key(self, key: str) -> str:
        return encode_key(key, self.options.key_aliases)

    def omits_value(self, value: JsonValue) -> bool:
        """Whether a value's kind is listed in the omit option."""
        if value is None:
            kind = "null"
        elif value is False:
            kind = "false"
        elif isinstance(value, str) and not value:
            kind = "empty"
        else:
            return False
        return "all" in self.options.omit or kind in self.options.omit

    def should_omit(self, key: str, value: JsonValue) -> bool:
        return key in self.options.omit_keys or self.omits_value(value)


def _iter_fields(obj: JsonObject, ctx: _Context) -> Iterator[tuple[str, str, JsonValue]]:
    """Yield (key, encoded key, value) for the fields of an object that are emitted."""
    seen: set[str] = set()
    for key, value in obj.items():
        if ctx.should_omit(key, value):
            continue
        encoded_key = ctx.key(key)
        if encoded_key in seen:
            if ctx.options.strict:
                raise PathConflict(key)
            logger.warning("Key %r is emitted twice after aliasing", encoded_key)
        seen.add(encoded_key)
        yield key, encoded_key, value


def _encode_object_lines(
    obj: JsonObject, ctx: _Context, depth: int, fold: bool = False
) -> Generator[str, None, None]:
    """
    Encode an object's key-value pairs.

    With ``fold`` set, single-key chains are folded into dotted keys here and
    in nested objects. A chain that collides with a dotted sibling key is
    written unfolded, and folding stays off for everything below it.
    """
    aliases = ctx.options.key_aliases
    siblings = frozenset(obj)

    for key, encoded_key, value in _iter_fields(obj, ctx):
        if fold and key not in aliases and not key_needs_quoting(key):
            folded = _try_fold_key(key, value, ctx, 1, siblings)
            if folded is not None:
                folded_key, folded_value = folded
                yield from _encode_field(folded_key, folded_value, ctx, depth, fold=True)
                continue
            logger.debug("Not folding %r: collides with a dotted sibling key", key)
            yield from _encode_field(encoded_key, value, ctx, depth)
            continue

        yield from _encode_field(encoded_key, value, ctx, depth, fold=fold)


def _encode_field(
    encoded_key: str,
    value: JsonValue,
    ctx: _Context,
    depth: int,
    lead: str = "",
    fold: bool = False,
) -> Generator[str, None, None]:
    """
    Encode one object field.

    ``lead`` is "- " when the field sits on a list item's hyphen line; its
    nested content then goes two levels deeper instead of one.
    """
    indent = ctx.indent(depth)
    child_depth = depth + 2 if lead else depth + 1

    if isinstance(value, dict):
        yield f"{indent}{lead}{encoded_key}:"
        if value:
            yield from _encode_object_lines(value, ctx, child_depth, fold)
    elif isinstance(value, list):
        yield from _encode_array(encoded_key, value, ctx, depth, lead, child_depth)
    else:
        yield f"{indent}{lead}{encoded_key}: {encode_primitive(value, ctx.options)}"


def _encode_array(
    encoded_key: str,
    arr: list,
    ctx: _Context,
    depth: int,
    lead: str = "",
    child_depth: int | None = None,
) -> Generator[str, None, None]:
    """Encode an array with the best format."""
    opts = ctx.options
    prefix = ctx.indent(depth) + lead
    if child_depth is None:
        child_depth = depth + 1

    if not arr:
        yield prefix + format_array_header(0, encoded_key)
    elif all(_is_primitive(v) for v in arr):
        # Inline primitive array
        values = opts.delimiter.join(encode_primitive(v, opts) for v in arr)
        header = format_array_header(len(arr), encoded_key, delimiter=opts.delimiter)
        yield f"{prefix}{header} {values}"
    else:
        table = _tabular_layout(arr, ctx)
        if table is not None:
            fields, rows = table
            yield prefix + format_array_header(len(rows), encoded_key, fields, opts.delimiter)
            row_indent = ctx.indent(child_depth)
            for row in rows:
                yield row_indent + _encode_row(row, ctx)
        else:
            # List format
            yield prefix + format_array_header(len(arr), encoded_key, delimiter=opts.delimiter)
            for item in arr:
                yield from _encode_list_item(item, ctx, child_depth)


def _encode_list_item(
    item: JsonValue, ctx: _Context, depth: int
) -> Generator[str, None, None]:
    """Encode a list item (after the - marker)."""
    indent = ctx.indent(depth)

    if isinstance(item, dict):
        fields = list(_iter_fields(item, ctx))
        if not fields:
            # Empty object as list item
            yield f"{indent}-"
            return
        # First field on the hyphen line, the rest one level deeper
        _, first_key, first_value = fields[0]
        yield from _encode_field(first_key, first_value, ctx, depth, lead="- ")
        for _, encoded_key, value in fields[1:]:
            yield from _encode_field(encoded_key, value, ctx, depth + 1)
    elif isinstance(item, list):
        yield from _encode_array("", item, ctx, depth, lead="- ")
    else:
        yield f"{indent}- {encode_primitive(item, ctx.options)}"


def _tabular_layout(
    arr: list, ctx: _Context
) -> tuple[list[str], list[list[JsonValue]]] | None:
    """
    Work out header fields and rows for a tabular array.

    Returns None when the array has to use list format.
    """
    opts = ctx.options
    if not _is_uniform_objects(arr, opts.min_rows_for_table):
        return None

    if has_nested_objects(arr):
        if any(_has_dotted_key(item) for item in arr):
            # A literal dot would be read back as a path separator
            return None
        columns, rows = flatten(arr, opts.max_flatten_depth)
        if any(_breaks_table(cell) for row in rows for cell in row):
            return None
        keep = [
            i for i, column in enumerate(columns)
            if not opts.omit_keys.intersection(column.split("."))
        ]
        fields = [ctx.key(columns[i]) for i in keep]
    else:
        if not all(_is_primitive(v) for item in arr for v in item.values()):
            return None
        columns = [key for key in arr[0] if key not in opts.omit_keys]
        rows = [[item[key] for key in columns] for item in arr]
        keep = list(range(len(columns)))
        fields = [_literal_column(column, ctx) for column in columns]

    if not fields:
        return None
    return fields, [[row[i] for i in keep] for row in rows]


def _literal_column(column: str, ctx: _Context) -> str:
    """Encode a plain column name so the decoder never splits it on dots."""
    text = ctx.options.key_aliases.get(column, column)
    if "." in text or key_needs_quoting(text):
        return quote_string(text)
    return text


def _encode_row(row: list[JsonValue], ctx: _Context) -> str:
    """Encode a single tabular row."""
    opts = ctx.options
    cells = ["" if ctx.omits_value(v) else encode_primitive(v, opts) for v in row]
    if not any(cells):
        # An all-empty row would read back as a blank line
        cells = [encode_primitive(v, opts) for v in row]
    return opts.delimiter.join(cells)


def _try_fold_key(
    prefix: str,
    value: JsonValue,
    ctx: _Context,
    segments: int,
    siblings: frozenset[str],
) -> tuple[str, JsonValue] | None:
    """
    Collapse a chain of single-key objects into a dotted key.

    Returns the folded key and the value left at the end of the chain, or
    None when the path collides with a literal dotted key among ``siblings``.
    """
    if _has_key_collision(prefix, siblings):
        return None

    limit = ctx.options.key_folding_depth
    if not isinstance(value, dict) or len(value) != 1:
        return prefix, value
    if limit is not None and segments >= limit:
        return prefix, value

    inner_key, inner_value = next(iter(value.items()))
    if (
        not is_valid_identifier_segment(inner_key)
        or inner_key in ctx.options.key_aliases
        or ctx.should_omit(inner_key, inner_value)
    ):
        return prefix, value

    folded_key = f"{prefix}.{inner_key}"
    if folded_key in siblings:
        return None

    return _try_fold_key(folded_key, inner_value, ctx, segments + 1, siblings)


def _has_key_collision(path: str, siblings: frozenset[str]) -> bool:
    """Check for a literal sibling key that extends ``path`` with more segments."""
    prefix = f"{path}."
    return any(key != path and key.startswith(prefix) for key in siblings)


def _is_uniform_objects(arr: list, min_rows: int) -> bool:
    """
    Check if every element is a non-empty object with the same keys, and
    each key holds a primitive in all of them or a composite in all of them.
    """
    if len(arr) < min_rows:
        return False

    first_shape = None
    for item in arr:
        if not isinstance(item, dict) or not item:
            return False
        shape = sorted((key, _is_primitive(v)) for key, v in item.items())
        if first_shape is None:
            first_shape = shape
        elif shape != first_shape:
            return False
    return True


def _has_dotted_key(obj: JsonObject) -> bool:
    """Check an object and the objects nested in it for keys containing a dot."""
    return any(
        "." in key or (isinstance(value, dict) and _has_dotted_key(value))
        for key, value in obj.items()
    )


def _breaks_table(cell: JsonValue) -> bool:
    """Lists and empty objects left after flattening can't live in a cell."""
    return isinstance(cell, list) or cell == {}


def _is_primitive(value: JsonValue) -> bool:
    """Check if value is a primitive (not dict or list)."""
    return not isinstance(value, (dict, list))
