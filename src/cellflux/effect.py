"""Effects — side effects that re-run when the state they read changes.

Unlike Computed (which is lazy and only evaluates on read), an Effect runs
once immediately and then re-runs from the scheduler after any dependency
changes. Several writes in one turn produce a single re-run.

Each run starts from a clean slate: old dependency edges are dropped and only
what this run reads is re-linked. A signal read on a branch that is no longer
taken therefore stops triggering the effect.

Effects created inside another effect are independent. Re-running the outer
effect creates a new inner one and leaves the previous ones running; group
them in an EffectScope to stop them together.

All state lives in _anchor — instances are thin handles holding an _id.
"""

from __future__ import annotations

from typing import Callable

from cellflux import _anchor
from cellflux._graph import unlink_all
from cellflux._tracking import active_scope, current_scope, evaluating
from cellflux.scheduler import queue


class Effect:
    """A reactive side effect. Registers with the active EffectScope, if any."""

    __slots__ = ("_id", "__weakref__")

    def __init__(self, fn: Callable[[], None]) -> None:
        self._id = _anchor.new_id()
        _anchor.derivation_fns[self._id] = fn
        _anchor.dependencies[self._id] = {}
        _anchor.active[self._id] = True
        _anchor.run_counts[self._id] = 0
        _anchor.live_effects[self] = None
        _anchor.register(self)

        scope = current_scope.get()
        if scope is not None and scope.active:
            scope._adopt(self)
            _anchor.owner_scopes[self._id] = scope
        else:
            _anchor.owner_scopes[self._id] = None

    @property
    def _fn(self) -> Callable[[], None]:
        return _anchor.derivation_fns[self._id]

    @property
    def active(self) -> bool:
        return _anchor.active[self._id]

    @property
    def runs(self) -> int:
        """How many times the body has been invoked."""
        return _anchor.run_counts[self._id]

    @property
    def scope(self):
        return _anchor.owner_scopes[self._id]

    def _run(self) -> None:
        """Re-evaluate the effect function, re-tracking dependencies.

        Runs with the owning scope active, so effects created on a re-run are
        captured by the same scope as the first run's.
        """
        if not _anchor.active[self._id]:
            return

        unlink_all(self)
        _anchor.run_counts[self._id] += 1
        try:
            with active_scope(_anchor.owner_scopes[self._id]), evaluating(self):
                self._fn()
        finally:
            # Stopped mid-run: drop whatever was read after the stop.
            if not _anchor.active[self._id]:
                unlink_all(self)

    def _on_source_changed(self) -> bool:
        if _anchor.active[self._id]:
            queue.enqueue(self)
        return False

    def stop(self) -> None:
        """Stop this effect. Disconnects from all dependencies. Idempotent."""
        if not _anchor.active[self._id]:
            return
        _anchor.active[self._id] = False
        unlink_all(self)
        queue.discard(self)
        _anchor.live_effects.pop(self, None)
        scope = _anchor.owner_scopes[self._id]
        if scope is not None:
            scope._forget(self)

    def __repr__(self) -> str:
        state = "active" if _anchor.active[self._id] else "stopped"
        name = getattr(self._fn, "__name__", "fn")
        return f"Effect({name}, {state})"


def effect(fn: Callable[[], None]) -> Callable[[], None]:
    """Run fn immediately, then re-run whenever anything it read changes.

    Returns the stop function. If the first run raises, the effect is stopped
    and the exception propagates to the caller.

    Usage:
        count, set_count = signal(0)
        log = []

        stop = effect(lambda: log.append(count()))
        # log == [0] — ran immediately

        set_count(1)
        await asyncio.sleep(0)
        # log == [0, 1] — re-ran on the next loop turn

        stop()
        set_count(2)
        await asyncio.sleep(0)
        # log == [0, 1] — stopped
    """
    e = Effect(fn)
    try:
        e._run()  # Initial run to establish dependencies
    except BaseException:
        e.stop()
        raise
    return e.stop
