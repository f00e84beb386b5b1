"""
Structural equality for schema values.

Two values are equal when their canonical JSON forms would be identical:
mappings compare by key set regardless of insertion order, sequences compare
element-wise in order, and booleans never equal numbers. ``None`` equals only
``None``, never an empty mapping or list.
"""

from collections.abc import Mapping
from typing import Any, Iterable, Optional


def structurally_equal(left: Any, right: Any) -> bool:
    """Deep, key-order-independent equality over JSON-like values."""
    if isinstance(left, Mapping) and isinstance(right, Mapping):
        if set(left.keys()) != set(right.keys()):
            return False
        return all(structurally_equal(left[k], right[k]) for k in left)

    if isinstance(left, (list, tuple)) and isinstance(right, (list, tuple)):
        if len(left) != len(right):
            return False
        return all(structurally_equal(a, b) for a, b in zip(left, right))

    if isinstance(left, (Mapping, list, tuple)) or isinstance(right, (Mapping, list, tuple)):
        return False

    # bool is an int subclass; True must not equal 1
    if isinstance(left, bool) or isinstance(right, bool):
        return type(left) is type(right) and left == right

    return left == right


def omit_keys(value: Optional[Mapping], keys: Iterable[str]) -> Optional[dict]:
    """Return a copy of ``value`` without ``keys``; ``None`` passes through."""
    if value is None:
        return None
    excluded = set(keys)
    return {k: v for k, v in value.items() if k not in excluded}
