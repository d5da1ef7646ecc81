"""Tracking context — which node is collecting dependencies right now.

Uses contextvars to remember the currently-evaluating derivation (computed or
effect). Any Signal/Computed read while a derivation is current registers an
edge to it. ``untrack`` pushes a marker that suspends registration.

The active EffectScope is tracked the same way, so effects created inside a
scope's callback can find their owner.

Every push is paired with a token reset in a ``finally`` block, so the
context is restored on exceptional paths too.
"""

from __future__ import annotations

import contextvars
from contextlib import contextmanager
from typing import TYPE_CHECKING, Callable, TypeVar

if TYPE_CHECKING:
    from cellflux.computed import Computed
    from cellflux.effect import Effect
    from cellflux.scope import EffectScope

    Derivation = Computed | Effect

T = TypeVar("T")


class _Untracked:
    """Frame marker: reads below it register no dependencies."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "<untracked>"


UNTRACKED = _Untracked()

# The currently-evaluating derivation, UNTRACKED, or None at top level.
current_derivation: contextvars.ContextVar[Derivation | _Untracked | None] = contextvars.ContextVar(
    "current_derivation", default=None
)

# The scope that effects created right now register into.
current_scope: contextvars.ContextVar[EffectScope | None] = contextvars.ContextVar(
    "current_scope", default=None
)


def tracking_frame() -> Derivation | None:
    """The derivation that should record a read, or None if nothing is tracking."""
    frame = current_derivation.get()
    if frame is None or frame is UNTRACKED:
        return None
    return frame


@contextmanager
def evaluating(derivation: Derivation):
    """Make ``derivation`` the current tracking frame for the block."""
    token = current_derivation.set(derivation)
    try:
        yield derivation
    finally:
        current_derivation.reset(token)


@contextmanager
def active_scope(scope: EffectScope | None):
    """Make ``scope`` the scope new effects register into for the block."""
    token = current_scope.set(scope)
    try:
        yield scope
    finally:
        current_scope.reset(token)


@contextmanager
def untracked():
    """Context manager: reads inside the block register no dependencies.

    Usage:
        with untracked():
            total = count.get()  # enclosing effect won't re-run on count
    """
    token = current_derivation.set(UNTRACKED)
    try:
        yield
    finally:
        current_derivation.reset(token)


def untrack(fn: Callable[[], T]) -> T:
    """Call fn with dependency tracking suspended and return its result.

    Usage:
        a = Signal(1)
        b = Signal(2)

        def show():
            print(a.get(), untrack(b.get))

        effect(show)
        b.set(3)  # no re-run: b was read untracked
        a.set(4)  # re-runs, prints "4 3"
    """
    with untracked():
        return fn()
