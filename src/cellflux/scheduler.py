"""Job queue — batches effect re-runs to the next event-loop turn.

Writes never run effects directly. Propagation enqueues every affected effect
here (deduplicated, in first-enqueue order) and requests a single flush. All
writes made before that flush coalesce into one re-run per effect.

Where the flush runs:
- the hook installed with ``set_scheduler(fn)``, if any: ``fn(callback)``
  must arrange for ``callback()`` to be called later;
- otherwise ``loop.call_soon`` on the running asyncio loop;
- otherwise nowhere: jobs wait until ``flush_effects()`` is called.

An effect that raises during a flush does not stop the rest of the batch. The
error is wrapped in EvaluatorError and handed to the error handler (default:
logged on the ``cellflux.scheduler`` logger).
"""

from __future__ import annotations

import asyncio
import contextvars
import logging
from typing import TYPE_CHECKING, Callable

from cellflux.errors import EvaluatorError

if TYPE_CHECKING:
    from cellflux.effect import Effect

logger = logging.getLogger("cellflux.scheduler")

ErrorHandler = Callable[[EvaluatorError], None]

_scheduler: Callable[[Callable[[], None]], object] | None = None
_error_handler: ErrorHandler | None = None


def set_scheduler(scheduler: Callable[[Callable[[], None]], object] | None) -> None:
    """Install the function used to defer flushes. None restores the asyncio default.

    Usage:
        cellflux.set_scheduler(app.call_next)
    """
    global _scheduler
    _scheduler = scheduler


def set_error_handler(handler: ErrorHandler | None) -> None:
    """Install a callback for effects that fail during a flush. None restores logging."""
    global _error_handler
    _error_handler = handler


class JobQueue:
    """Pending effects plus at most one outstanding flush request."""

    def __init__(self) -> None:
        self._pending: dict[Effect, None] = {}
        self._flush_scheduled = False
        self._loop: asyncio.AbstractEventLoop | None = None
        self._handle: asyncio.Handle | None = None

    def __len__(self) -> int:
        return len(self._pending)

    @property
    def flush_scheduled(self) -> bool:
        return self._flush_scheduled

    def enqueue(self, effect: Effect) -> None:
        self._pending[effect] = None
        if self._flush_scheduled and not self._request_is_stale():
            return
        self._request_flush()

    def discard(self, effect: Effect) -> None:
        self._pending.pop(effect, None)

    def _request_is_stale(self) -> bool:
        """A request made on a loop that has since closed or been replaced."""
        if self._loop is None:
            return False
        if self._loop.is_closed():
            return True
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            return False
        return running is not self._loop

    def _request_flush(self) -> None:
        self._cancel_request()
        if _scheduler is not None:
            self._flush_scheduled = True
            _scheduler(self._flush_in_fresh_context)
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; %d effect(s) wait for flush_effects()", len(self))
            return
        self._flush_scheduled = True
        self._loop = loop
        # Fresh context: no tracking frame or scope from the writer leaks into the flush.
        self._handle = loop.call_soon(self.flush, context=contextvars.Context())

    def _cancel_request(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._handle = None
        self._loop = None
        self._flush_scheduled = False

    def _flush_in_fresh_context(self) -> None:
        contextvars.Context().run(self.flush)

    def flush(self) -> int:
        """Run every pending effect once. Returns how many effects ran."""
        batch = list(self._pending)
        self._pending.clear()
        self._cancel_request()

        ran = 0
        for effect in batch:
            if not effect.active:
                continue
            ran += 1
            try:
                effect._run()
            except Exception as exc:
                _report(EvaluatorError(effect, exc))
        if batch:
            logger.debug("Flushed %d of %d queued effect(s)", ran, len(batch))
        return ran

    def clear(self) -> None:
        """Drop all pending work and any outstanding flush request."""
        self._pending.clear()
        self._cancel_request()


def _report(error: EvaluatorError) -> None:
    handler = _error_handler
    if handler is None:
        logger.error("Effect failed during flush: %s", error, exc_info=error.__cause__)
        return
    try:
        handler(error)
    except Exception:
        logger.exception("Error handler raised while reporting %s", error)


queue = JobQueue()


def flush_effects() -> int:
    """Run pending effects now instead of waiting for the next loop turn.

    Needed when no event loop is running. Runs one batch; effects queued by
    that batch wait for the next flush.
    """
    return queue.flush()


def get_pending_count() -> int:
    """Number of effects waiting to run. Useful for testing."""
    return len(queue)
