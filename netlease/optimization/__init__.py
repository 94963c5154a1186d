"""Optimization module for fixed-lease network planning.

This module provides the Pyomo-based multi-year facility location model and
the machinery around it: demand scaling, pre-solve complexity guarding,
isolated resource-bounded solving with HiGHS, and result decoding.

The primary model is FixedLeaseModel, which decides one set of leased
facilities for the whole horizon and the destination assignments of every
year in a single joint solve.
"""

from .exceptions import (
    OptimizationError,
    PlanningValidationError,
    ComplexityExceededError,
    InfeasibleSolutionError,
    ExecutionFailureError,
    SolverUnavailableError,
    FailureKind,
)
from .demand_scaler import (
    build_demand_by_year,
    scale_demand_from_baseline,
)
from .complexity_guard import (
    ComplexityGuard,
    ComplexityLimits,
    ModelComplexity,
)
from .solver_adapter import (
    BaseSolverAdapter,
    HighsSolverAdapter,
    SolverOutput,
    load_solution,
)
from .supervisor import (
    ExecutionSupervisor,
    SupervisorConfig,
    ExecutionReport,
    ExecutionTelemetry,
)
from .result_schema import (
    AssignmentResult,
    FacilityMetrics,
    NetworkMetrics,
    OptimizationSummary,
    OptimizationResult,
    MultiYearTotals,
    MultiYearResult,
)
from .result_compiler import ResultCompiler
from .aggregator import aggregate_years
from .base_model import (
    BaseOptimizationModel,
    SolveOutcome,
    SolveStatus,
)
from .fixed_lease_model import (
    FixedLeaseModel,
    optimize_fixed_lease,
)

__all__ = [
    # Errors
    "OptimizationError",
    "PlanningValidationError",
    "ComplexityExceededError",
    "InfeasibleSolutionError",
    "ExecutionFailureError",
    "SolverUnavailableError",
    "FailureKind",
    # Demand
    "build_demand_by_year",
    "scale_demand_from_baseline",
    # Guard
    "ComplexityGuard",
    "ComplexityLimits",
    "ModelComplexity",
    # Solver
    "BaseSolverAdapter",
    "HighsSolverAdapter",
    "SolverOutput",
    "load_solution",
    # Supervisor
    "ExecutionSupervisor",
    "SupervisorConfig",
    "ExecutionReport",
    "ExecutionTelemetry",
    # Results
    "AssignmentResult",
    "FacilityMetrics",
    "NetworkMetrics",
    "OptimizationSummary",
    "OptimizationResult",
    "MultiYearTotals",
    "MultiYearResult",
    "ResultCompiler",
    "aggregate_years",
    # Models
    "BaseOptimizationModel",
    "SolveOutcome",
    "SolveStatus",
    "FixedLeaseModel",
    "optimize_fixed_lease",
]
