"""Exception hierarchy for cellflux."""

from __future__ import annotations


class CellfluxError(Exception):
    """Base class for all cellflux-specific exceptions."""


class CircularDependencyError(CellfluxError):
    """Raised when a computed re-enters its own evaluation.

    This always reaches the caller of the read that closed the cycle. It is a
    programming error, never retried.
    """

    def __init__(self, node):
        self.node = node
        super().__init__(f"Circular dependency detected while evaluating {node!r}")


class EvaluatorError(CellfluxError):
    """An effect body raised during a scheduled flush.

    The original exception is chained as ``__cause__``. Instances are handed
    to the scheduler's error handler rather than raised, so one failing effect
    does not stop the rest of the batch.
    """

    def __init__(self, node, cause: BaseException):
        self.node = node
        super().__init__(f"{node!r} raised {type(cause).__name__}: {cause}")
        self.__cause__ = cause
