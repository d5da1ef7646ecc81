"""Signals — mutable cells that track their readers.

When a Signal is read inside a Computed or Effect evaluation, the dependency
is registered automatically. When the Signal changes, dependent Computeds are
marked dirty and dependent Effects are queued for the next flush.

All state lives in _anchor — instances are thin handles holding an _id.
"""

from __future__ import annotations

import weakref
from typing import Callable, Generic, TypeVar

from cellflux import _anchor
from cellflux._graph import propagate, track
from cellflux.equality import EqualityFn, default_equals

T = TypeVar("T")


class Signal(Generic[T]):
    """A single mutable value with automatic dependency tracking."""

    __slots__ = ("_id", "_equals", "__weakref__")

    def __init__(self, value: T, *, equals: EqualityFn = default_equals) -> None:
        self._id = _anchor.new_id()
        self._equals = equals
        _anchor.values[self._id] = value
        _anchor.subscribers[self._id] = weakref.WeakKeyDictionary()
        _anchor.register(self)

    def get(self) -> T:
        """Read the value. If inside a derivation, registers the dependency."""
        track(self)
        return _anchor.values[self._id]

    __call__ = get

    def peek(self) -> T:
        """Read the value without registering a dependency."""
        return _anchor.values[self._id]

    def set(self, value: T) -> None:
        """Write a new value. Equal writes are ignored."""
        if self._equals(_anchor.values[self._id], value):
            return
        _anchor.values[self._id] = value
        propagate(self)

    def __repr__(self) -> str:
        return f"Signal({_anchor.values[self._id]!r})"


def signal(
    initial: T, *, equals: EqualityFn = default_equals
) -> tuple[Callable[[], T], Callable[[T], None]]:
    """Create a Signal and return its ``(read, write)`` pair.

    Usage:
        count, set_count = signal(0)

        count()       # 0
        set_count(5)
        count()       # 5
    """
    s = Signal(initial, equals=equals)
    return s.get, s.set
