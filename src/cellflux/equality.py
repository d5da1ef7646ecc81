"""Equality policy — decides whether a write is a change worth notifying."""

from __future__ import annotations

from typing import Any, Callable

EqualityFn = Callable[[Any, Any], bool]


def default_equals(old: Any, new: Any) -> bool:
    """Identity first, then ``==``.

    Values whose comparison raises or yields something without a truth value
    (numpy arrays, for instance) are treated as changed.
    """
    if old is new:
        return True
    try:
        return bool(old == new)
    except (TypeError, ValueError):
        return False
