"""Computed values — derived state with automatic dependency tracking.

A Computed wraps a function. When evaluated, it tracks which signals and
computeds the function reads and caches the result. When any dependency
changes, the cached value is marked dirty. On next read, it re-evaluates.

Computed values are lazy — they only recompute when read. A dirty Computed
keeps propagating to its readers even if its next value turns out equal to
the old one; there is no equality short-circuit after recomputation.

All state lives in _anchor — instances are thin handles holding an _id.
"""

from __future__ import annotations

import weakref
from typing import Callable, Generic, TypeVar

from cellflux import _anchor
from cellflux._graph import track, unlink_all
from cellflux._tracking import evaluating, untracked
from cellflux.errors import CircularDependencyError

T = TypeVar("T")

_UNSET = object()


class Computed(Generic[T]):
    """A derived value that auto-tracks dependencies and caches the result."""

    __slots__ = ("_id", "__weakref__")

    def __init__(self, fn: Callable[[], T]) -> None:
        self._id = _anchor.new_id()
        _anchor.derivation_fns[self._id] = fn
        _anchor.cached_values[self._id] = _UNSET
        _anchor.dirty_flags[self._id] = True
        _anchor.evaluating[self._id] = False
        _anchor.dependencies[self._id] = {}
        _anchor.subscribers[self._id] = weakref.WeakKeyDictionary()
        _anchor.register(self)

    @property
    def _fn(self) -> Callable[[], T]:
        return _anchor.derivation_fns[self._id]

    @property
    def dirty(self) -> bool:
        return _anchor.dirty_flags[self._id]

    def get(self) -> T:
        """Read the computed value. Recomputes if dirty."""
        if _anchor.dirty_flags[self._id]:
            self._recompute()
        track(self)
        return _anchor.cached_values[self._id]

    __call__ = get

    def peek(self) -> T:
        """Read the value (recomputing if needed) without registering a dependency."""
        with untracked():
            return self.get()

    def _recompute(self) -> None:
        """Re-evaluate the function, tracking dependencies.

        If the function raises, the dependencies read so far are dropped and
        the node stays dirty, so the next read starts over.
        """
        if _anchor.evaluating[self._id]:
            raise CircularDependencyError(self)

        _anchor.evaluating[self._id] = True
        unlink_all(self)
        try:
            with evaluating(self):
                value = self._fn()
        except BaseException:
            unlink_all(self)
            raise
        finally:
            _anchor.evaluating[self._id] = False

        _anchor.cached_values[self._id] = value
        _anchor.dirty_flags[self._id] = False

    def _on_source_changed(self) -> bool:
        """Called during propagation when a dependency changed.

        Marks dirty and asks the walk to continue to our readers. We don't
        recompute eagerly — that happens on next .get().
        """
        if _anchor.dirty_flags[self._id]:
            return False
        _anchor.dirty_flags[self._id] = True
        return True

    def dispose(self) -> None:
        """Disconnect from all dependencies and readers. The next read re-evaluates."""
        unlink_all(self)
        readers = _anchor.subscribers[self._id]
        for reader in list(readers):
            deps = _anchor.dependencies.get(reader._id)
            if deps is not None:
                deps.pop(self, None)
        readers.clear()
        _anchor.dirty_flags[self._id] = True
        _anchor.cached_values[self._id] = _UNSET

    def __repr__(self) -> str:
        dirty = _anchor.dirty_flags[self._id]
        val = _anchor.cached_values[self._id]
        state = "dirty" if dirty else f"cached={val!r}"
        name = getattr(self._fn, "__name__", "fn")
        return f"Computed({name}, {state})"


def computed(fn: Callable[[], T]) -> Computed[T]:
    """Decorator/factory to create a Computed from a function.

    Usage:
        count, set_count = signal(0)

        @computed
        def doubled():
            return count() * 2

        doubled()  # 0
        set_count(5)
        doubled()  # 10
    """
    return Computed(fn)
