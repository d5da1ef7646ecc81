"""Data anchor — plain Python structures that hold all reactive state.

Every Signal, Computed and Effect is a thin handle holding an ``_id``; the
state behind it lives in the tables below, keyed by that id.

Edges are asymmetric: ``dependencies`` (reader -> source) are strong, while
``subscribers`` (source -> reader) are weak, so a source never keeps a
reader alive. Active effects are owned by ``live_effects`` until stopped.
"""

import itertools
import weakref

# Signal state
values: dict[int, object] = {}

# Source state (Signal + Computed): source_id -> ordered weak set of readers
subscribers: dict[int, weakref.WeakKeyDictionary] = {}

# Reader state (Computed + Effect): reader_id -> ordered set of sources
dependencies: dict[int, dict] = {}
derivation_fns: dict[int, object] = {}

# Computed state
dirty_flags: dict[int, bool] = {}
cached_values: dict[int, object] = {}
evaluating: dict[int, bool] = {}

# Effect state
active: dict[int, bool] = {}
owner_scopes: dict[int, object] = {}
run_counts: dict[int, int] = {}

# Root holder: every active effect, in creation order
live_effects: dict = {}

# ID generation — itertools.count is thread-safe (C-level GIL atomic)
_id_counter = itertools.count(1)

_TABLES = (
    values,
    subscribers,
    dependencies,
    derivation_fns,
    dirty_flags,
    cached_values,
    evaluating,
    active,
    owner_scopes,
    run_counts,
)


def new_id() -> int:
    return next(_id_counter)


def register(handle) -> None:
    """Release the handle's rows once the handle is garbage-collected."""
    weakref.finalize(handle, release, handle._id)


def release(node_id: int) -> None:
    for table in _TABLES:
        table.pop(node_id, None)
