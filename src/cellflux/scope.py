"""Effect scopes — stop a group of effects together.

An EffectScope owns every Effect created while it is the active scope: during
``run(fn)``, and during later re-runs of effects it already owns. A scope
created while another scope is active is owned by that parent, so stopping
the parent stops it too.

Usage:
    count, set_count = signal(0)

    def setup():
        effect(lambda: print("a", count()))
        effect(lambda: print("b", count()))

    stop = effect_scope(setup)
    stop()  # both effects stopped
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, TypeVar

from cellflux._tracking import active_scope, current_scope

if TYPE_CHECKING:
    from cellflux.effect import Effect

T = TypeVar("T")


class EffectScope:
    """A disposal group for effects and nested scopes."""

    __slots__ = ("_effects", "_children", "_parent", "_active", "__weakref__")

    def __init__(self) -> None:
        self._effects: dict[Effect, None] = {}
        self._children: dict[EffectScope, None] = {}
        self._active = True
        parent = current_scope.get()
        if parent is not None and parent.active:
            parent._children[self] = None
            self._parent = parent
        else:
            self._parent = None

    @property
    def active(self) -> bool:
        return self._active

    @property
    def effects(self) -> tuple[Effect, ...]:
        return tuple(self._effects)

    def run(self, fn: Callable[[], T]) -> T:
        """Call fn with this scope active. The scope is deactivated again on any exit."""
        with active_scope(self):
            return fn()

    def _adopt(self, effect: Effect) -> None:
        self._effects[effect] = None

    def _forget(self, effect: Effect) -> None:
        self._effects.pop(effect, None)

    def stop(self) -> None:
        """Stop every owned effect and nested scope. Idempotent."""
        if not self._active:
            return
        for effect in list(self._effects):
            effect.stop()
        for child in list(self._children):
            child.stop()
        self._effects.clear()
        self._children.clear()
        self._active = False
        if self._parent is not None:
            self._parent._children.pop(self, None)
            self._parent = None

    def __repr__(self) -> str:
        state = "active" if self._active else "stopped"
        return f"EffectScope({len(self._effects)} effects, {state})"


def effect_scope(callback: Callable[[], object] | None = None) -> Callable[[], None]:
    """Create a scope, run callback inside it, and return the scope's stop function.

    Without a callback the scope captures nothing: later effect() calls are
    not attached to it. If the callback raises, the exception propagates and
    the effects created before the raise stay owned by the scope, but the
    stop function is not returned; use EffectScope directly to keep it.
    """
    scope = EffectScope()
    if callback is not None:
        scope.run(callback)
    return scope.stop
