"""Dependency graph — edges between sources and the derivations reading them.

Sources are Signals and Computeds; readers are Computeds and Effects. Edges
are rebuilt on every evaluation: the reader drops all of its old edges first
(``unlink_all``) and re-links whatever it reads this time (``track``). There
is no diffing of old against new dependencies.
"""

from __future__ import annotations

from collections import deque

from cellflux import _anchor
from cellflux._tracking import tracking_frame


def link(reader, source) -> None:
    _anchor.subscribers[source._id][reader] = None
    _anchor.dependencies[reader._id][source] = None


def unlink_all(reader) -> None:
    """Remove every edge from ``reader`` to its sources."""
    deps = _anchor.dependencies[reader._id]
    for source in deps:
        subs = _anchor.subscribers.get(source._id)
        if subs is not None:
            subs.pop(reader, None)
    deps.clear()


def track(source) -> None:
    """Register a read of ``source`` with the current tracking frame, if any."""
    reader = tracking_frame()
    if reader is not None:
        link(reader, source)


def subscribers_of(source) -> list:
    return list(_anchor.subscribers[source._id])


def propagate(source) -> None:
    """Walk everything downstream of a changed source.

    Each reader handles the notification in ``_on_source_changed``: a clean
    Computed marks itself dirty and returns True so its own readers are
    visited; an already-dirty Computed returns False; an active Effect
    enqueues itself on the scheduler and returns False. A node is processed
    at most once per walk, however many paths reach it, which is what makes a
    diamond-shaped graph wake its effect only once.
    """
    visited: set[int] = set()
    queue = deque(subscribers_of(source))
    while queue:
        node = queue.popleft()
        if node._id in visited:
            continue
        visited.add(node._id)
        if node._on_source_changed():
            queue.extend(subscribers_of(node))
