# pylitedoc/paths.py
"""Dotted-path access into nested documents.

Paths are dot-separated keys (``"address.city"``). Mappings are traversed by
key and sequences by a non-negative integer segment (``"tags.0"``). None of
the helpers here perform I/O.
"""
import json
from typing import Any, List

from .errors import InvalidPathError


class _Missing:
    """Marker for a path that resolves to nothing."""

    def __repr__(self):
        return "MISSING"

    def __bool__(self):
        return False


MISSING: Any = _Missing()


def split_path(dotted_key: str) -> List[str]:
    if not isinstance(dotted_key, str) or not dotted_key:
        raise InvalidPathError(f"Field path must be a non-empty string, got {dotted_key!r}")
    parts = dotted_key.split(".")
    if any(p == "" for p in parts):
        raise InvalidPathError(f"Field path has an empty segment: {dotted_key!r}")
    return parts


def _index(container: list, key: str):
    if key.isdigit():
        idx = int(key)
        if idx < len(container):
            return idx
    return None


def _child(cur, key: str):
    if isinstance(cur, dict):
        return cur.get(key, MISSING)
    if isinstance(cur, list):
        idx = _index(cur, key)
        return MISSING if idx is None else cur[idx]
    return MISSING


def _can_descend(node, key: str) -> bool:
    if isinstance(node, dict):
        return True
    return isinstance(node, list) and _index(node, key) is not None


def _assign(cur, key: str, value):
    if isinstance(cur, list):
        cur[_index(cur, key)] = value
    else:
        cur[key] = value


def deep_get(doc: dict, dotted_key: str, default=MISSING):
    """Return the value at ``dotted_key`` or ``default`` if any hop is absent."""
    cur = doc
    for p in split_path(dotted_key):
        cur = _child(cur, p)
        if cur is MISSING:
            return default
    return cur


def has_path(doc: dict, dotted_key: str) -> bool:
    return deep_get(doc, dotted_key) is not MISSING


def deep_set(doc: dict, dotted_key: str, value) -> dict:
    """Set ``value`` at ``dotted_key``, creating or replacing intermediate nodes.

    An intermediate value that cannot hold the next segment (a scalar, or an
    array indexed out of range) is overwritten with a new mapping.
    """
    parts = split_path(dotted_key)
    cur = doc
    for p, nxt in zip(parts[:-1], parts[1:]):
        child = _child(cur, p)
        if not _can_descend(child, nxt):
            child = {}
            _assign(cur, p, child)
        cur = child
    _assign(cur, parts[-1], value)
    return doc


def deep_unset(doc: dict, dotted_key: str) -> dict:
    """Remove the terminal key of ``dotted_key``; missing intermediates are a no-op.

    Array elements are nulled rather than removed so sibling positions hold.
    """
    parts = split_path(dotted_key)
    cur = doc
    for p in parts[:-1]:
        cur = _child(cur, p)
        if cur is MISSING:
            return doc
    last = parts[-1]
    if isinstance(cur, dict):
        cur.pop(last, None)
    elif isinstance(cur, list):
        idx = _index(cur, last)
        if idx is not None:
            cur[idx] = None
    return doc


def is_array(x) -> bool:
    return isinstance(x, list)


def is_number(x) -> bool:
    return isinstance(x, (int, float)) and not isinstance(x, bool)


def values_equal(a, b) -> bool:
    """Deep structural equality that keeps booleans apart from numbers."""
    if isinstance(a, bool) or isinstance(b, bool):
        return type(a) is type(b) and a == b
    if isinstance(a, dict) and isinstance(b, dict):
        if a.keys() != b.keys():
            return False
        return all(values_equal(a[k], b[k]) for k in a)
    if isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
        return len(a) == len(b) and all(values_equal(x, y) for x, y in zip(a, b))
    if is_number(a) and is_number(b):
        return a == b
    return type(a) is type(b) and a == b


def contains_value(items, value) -> bool:
    return any(values_equal(item, value) for item in items)


def deep_copy(doc):
    # documents are JSON trees; a JSON round trip is the copy
    return json.loads(json.dumps(doc))
