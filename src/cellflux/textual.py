"""Textual integration for cellflux. Opt-in — requires textual.

Binds widgets to reactive state: guarded effects that stay quiet while the
widget tree is being replaced, a scheduler hook that flushes on the app's
message loop, and a per-widget scope to stop on unmount.

Usage:
    class Counter(Static):
        def on_mount(self):
            self._bindings = WidgetScope()
            self._bindings.setup(lambda: stx.effect(self.app, self._render_count))

        def on_unmount(self):
            self._bindings.teardown()
"""

from __future__ import annotations

import contextvars
import threading
import weakref
from contextlib import contextmanager
from typing import Callable, TypeVar

from textual.css.query import NoMatches

from cellflux.effect import effect as _effect
from cellflux.scheduler import set_scheduler
from cellflux.scope import EffectScope
from cellflux.signal import Signal

T = TypeVar("T")

# Module-owned pause state — keyed by id(app) so multiple apps work in tests.
_paused_apps: set[int] = set()

# One counter per app, bumped when the app may have become safe again.
# Guarded effects read it, so they re-run after a pause ends. Entries go away
# with the app.
_resume_ticks: weakref.WeakKeyDictionary = weakref.WeakKeyDictionary()


def _resume_tick(app) -> Signal[int]:
    tick = _resume_ticks.get(app)
    if tick is None:
        tick = _resume_ticks[app] = Signal(0)
    return tick


def resume(app) -> None:
    """Re-run guarded effects that were skipped (e.g. call from App.on_mount)."""
    tick = _resume_tick(app)
    tick.set(tick.peek() + 1)


@contextmanager
def pause(app):
    """Suspend guarded effects during widget replacement."""
    key = id(app)
    _paused_apps.add(key)
    try:
        yield
    finally:
        _paused_apps.discard(key)
        resume(app)


def is_safe(app) -> bool:
    """Is the widget tree in a queryable state?"""
    return app.is_running and id(app) not in _paused_apps


def effect(app, fn: Callable[[], None]) -> Callable[[], None]:
    """effect() that safely bridges to Textual widgets.

    Skips the body while the app is paused or not running, and swallows
    NoMatches from widget queries. Runs triggered from another thread are
    marshalled to the app thread with app.call_from_thread. Returns the stop
    function.
    """
    tick = _resume_tick(app)
    _main = threading.get_ident()

    def _guarded():
        tick.get()
        if not is_safe(app):
            return
        if threading.get_ident() != _main:
            # Carry the tracking frame over so reads still link to this effect.
            app.call_from_thread(contextvars.copy_context().run, _safe)
        else:
            _safe()

    def _safe():
        try:
            fn()
        except NoMatches:
            pass

    return _effect(_guarded)


def use_app_scheduler(app) -> None:
    """Flush effects from the app's message loop instead of the raw asyncio loop."""
    set_scheduler(app.call_next)


class WidgetScope:
    """EffectScope holder tied to a widget's mount/unmount lifecycle."""

    __slots__ = ("_scope",)

    def __init__(self) -> None:
        self._scope: EffectScope | None = None

    @property
    def active(self) -> bool:
        return self._scope is not None and self._scope.active

    def setup(self, fn: Callable[[], T]) -> T:
        """Run fn in a fresh scope, stopping whatever the previous setup created."""
        self.teardown()
        self._scope = EffectScope()
        return self._scope.run(fn)

    def teardown(self) -> None:
        if self._scope is not None:
            self._scope.stop()
            self._scope = None
