"""Error types raised by the fixed-lease optimizer.

Validation and complexity errors are raised before any solve process is
started. Infeasible models and execution failures are normal outcomes and are
returned on SolveOutcome; the exceptions for them exist for callers that want
to escalate (SolveOutcome.raise_for_status) and for the result compiler.
"""

from enum import Enum
from typing import Optional


class OptimizationError(Exception):
    """Base class for optimizer errors."""


class PlanningValidationError(OptimizationError, ValueError):
    """Raised when inputs are contradictory, before the model is built."""


class ComplexityExceededError(OptimizationError):
    """Raised when a model breaches a complexity ceiling.

    Attributes:
        ceiling: Name of the breached ceiling ('variables', 'constraints',
            'coefficients' or 'serialized_mb')
        limit: Configured ceiling
        actual: Measured value
        excess: actual - limit
    """

    def __init__(self, ceiling: str, limit: float, actual: float):
        self.ceiling = ceiling
        self.limit = limit
        self.actual = actual
        self.excess = actual - limit
        super().__init__(
            f"Model too complex: {ceiling} {_fmt(actual)} > {_fmt(limit)} "
            f"(exceeded by {_fmt(self.excess)}). Reduce sites, destinations or years."
        )


class InfeasibleSolutionError(OptimizationError):
    """Raised when decoding is requested for a solve that found no feasible solution."""


class FailureKind(str, Enum):
    """Classification of an isolated solve that did not return."""
    TIMEOUT = "timeout"
    MEMORY_LIMIT = "memory_limit"
    SOLVER_ERROR = "solver_error"
    PROCESS_EXIT = "process_exit"


class ExecutionFailureError(OptimizationError):
    """Raised for a timed out, memory-killed or crashed solve.

    This is the only failure kind worth retrying, e.g. with relaxed
    constraints or a smaller network.
    """

    def __init__(self, message: str, kind: FailureKind, duration_seconds: Optional[float] = None):
        self.kind = kind
        self.duration_seconds = duration_seconds
        super().__init__(message)


class SolverUnavailableError(OptimizationError):
    """Raised when the HiGHS backend cannot be used."""


def _fmt(number: float) -> str:
    if float(number).is_integer():
        return f"{int(number):,}"
    return f"{number:,.2f}"
