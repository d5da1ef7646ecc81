"""cellflux: fine-grained reactive signals, computeds and effects for Python."""

from importlib.metadata import version as _version

__version__ = _version("cellflux")

from cellflux._tracking import untrack, untracked
from cellflux.equality import default_equals
from cellflux.errors import CellfluxError, CircularDependencyError, EvaluatorError
from cellflux.signal import Signal, signal
from cellflux.computed import Computed, computed
from cellflux.effect import Effect, effect
from cellflux.scope import EffectScope, effect_scope
from cellflux.scheduler import flush_effects, get_pending_count, set_error_handler, set_scheduler
# textual NOT auto-imported — opt-in only

__all__ = [
    "Signal",
    "signal",
    "Computed",
    "computed",
    "Effect",
    "effect",
    "EffectScope",
    "effect_scope",
    "untrack",
    "untracked",
    "default_equals",
    "CellfluxError",
    "CircularDependencyError",
    "EvaluatorError",
    "flush_effects",
    "get_pending_count",
    "set_scheduler",
    "set_error_handler",
]
