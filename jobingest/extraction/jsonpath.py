"""Minimal JSONPath-like traversal over parsed JSON (dicts, lists, scalars).

Supported: ``$.foo``, ``$.foo.bar``, ``$.foo[0]``, ``$[1].name``,
``$.data[0][1]``; the ``$`` prefix is optional and an empty path is the root.
Wildcards, recursive descent and filters are not supported.
"""

import re
from collections.abc import Callable, Iterator
from typing import Any

_SEGMENT = re.compile(r"\[(\d+)\]|([^.\[\]]+)")

# Marker for "no value at this path"; None is a legitimate JSON null.
_MISSING = object()


def parse_path(path: str) -> list[str | int]:
    """Split a path into property names (str) and array indices (int)."""
    normalized = path.strip()
    if normalized.startswith("$"):
        normalized = normalized[1:]
    if normalized.startswith("."):
        normalized = normalized[1:]
    segments: list[str | int] = []
    for match in _SEGMENT.finditer(normalized):
        index, name = match.groups()
        segments.append(int(index) if index is not None else name)
    return segments


def _lookup(value: Any, path: str) -> Any:
    current = value
    for segment in parse_path(path):
        if isinstance(segment, int):
            if not isinstance(current, list) or segment >= len(current):
                return _MISSING
            current = current[segment]
        else:
            if not isinstance(current, dict) or segment not in current:
                return _MISSING
            current = current[segment]
    return current


def get(value: Any, path: str) -> Any | None:
    """Return the value at ``path``, or None if any segment is missing."""
    found = _lookup(value, path)
    return None if found is _MISSING else found


def get_string(value: Any, path: str) -> str | None:
    found = get(value, path)
    return found if isinstance(found, str) else None


def get_number(value: Any, path: str) -> float | None:
    found = get(value, path)
    if isinstance(found, bool) or not isinstance(found, int | float):
        return None
    return float(found)


def get_int(value: Any, path: str) -> int | None:
    number = get_number(value, path)
    return int(number) if number is not None else None


def get_array(value: Any, path: str) -> list[Any] | None:
    found = get(value, path)
    return found if isinstance(found, list) else None


def format_path(segments: list[str | int]) -> str:
    """Inverse of ``parse_path``: ``["a", 0, "b"]`` -> ``$.a[0].b``."""
    out = "$"
    for segment in segments:
        out += f"[{segment}]" if isinstance(segment, int) else f".{segment}"
    return out


def find_paths(value: Any, predicate: Callable[[Any], bool]) -> Iterator[str]:
    """Yield paths (depth first, document order) of nodes satisfying ``predicate``.

    A node that satisfies the predicate is not descended into.
    """

    def walk(node: Any, trail: list[str | int]) -> Iterator[str]:
        if trail and predicate(node):
            yield format_path(trail)
            return
        if isinstance(node, dict):
            for key, child in node.items():
                if not isinstance(key, str) or not _SEGMENT.fullmatch(key):
                    continue
                yield from walk(child, [*trail, key])
        elif isinstance(node, list):
            for idx, child in enumerate(node):
                yield from walk(child, [*trail, idx])

    yield from walk(value, [])
