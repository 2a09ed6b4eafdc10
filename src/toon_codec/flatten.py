"""Dot-path flattening of uniform nested objects for tabular arrays."""

from typing import Any

from .types import JsonObject, JsonValue, QuotedKey


def has_nested_objects(items: list[Any]) -> bool:
    """Check whether any object in the list has a field holding an object."""
    for item in items:
        if not isinstance(item, dict):
            continue
        if any(isinstance(value, dict) for value in item.values()):
            return True
    return False


def flatten(
    items: list[JsonObject], max_depth: int = 3
) -> tuple[list[str], list[list[JsonValue]]]:
    """
    Flatten a list of objects into dotted columns and rows.

    Columns are collected depth-first in the order they are first seen
    across all items. Objects nested ``max_depth`` levels deep are not
    descended into and end up as a single cell.

    Args:
        items: The objects to flatten.
        max_depth: Maximum number of object levels to descend into.

    Returns:
        A ``(columns, rows)`` pair. Paths missing from an item read as None.
    """
    columns: dict[str, None] = {}
    for item in items:
        _collect_columns(item, "", columns, 0, max_depth)

    paths = list(columns)
    rows = [[_get_by_path(item, path) for path in paths] for item in items]
    return paths, rows


def unflatten(rows: list[list[JsonValue]], columns: list[str]) -> list[JsonObject]:
    """
    Rebuild objects from dotted columns and rows.

    Columns given as QuotedKey are literal names and are not split.

    Args:
        rows: Row cells, aligned with ``columns``.
        columns: Column paths.

    Returns:
        One object per row.
    """
    result = []
    for row in rows:
        item: JsonObject = {}
        for i, column in enumerate(columns):
            value = row[i] if i < len(row) else None
            if isinstance(column, QuotedKey):
                item[str(column)] = value
            else:
                _set_by_path(item, column.split("."), value)
        result.append(item)
    return result


def _collect_columns(
    item: JsonObject, prefix: str, columns: dict[str, None], depth: int, max_depth: int
) -> None:
    for key, value in item.items():
        path = f"{prefix}.{key}" if prefix else key
        if isinstance(value, dict) and value and depth < max_depth:
            _collect_columns(value, path, columns, depth + 1, max_depth)
        else:
            columns.setdefault(path, None)


def _get_by_path(data: JsonObject, path: str) -> JsonValue:
    current: Any = data
    for segment in path.split("."):
        if not isinstance(current, dict) or segment not in current:
            return None
        current = current[segment]
    return current


def _set_by_path(data: JsonObject, segments: list[str], value: JsonValue) -> None:
    for segment in segments[:-1]:
        child = data.get(segment)
        if not isinstance(child, dict):
            child = data[segment] = {}
        data = child
    data[segments[-1]] = value
