"""Base class for optimization models.

This module provides an abstract base class that the optimization models
inherit from, providing the common build -> guard -> isolated solve -> decode
workflow.

IMPORTANT: Models must return a validated MultiYearResult (Pydantic) from
extract_solution(). This keeps the interface strict and fails fast at the
boundary to callers.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional
import logging
import time

from pyomo.environ import ConcreteModel
from pydantic import ValidationError

from .complexity_guard import ComplexityGuard, ComplexityLimits, ModelComplexity
from .exceptions import ExecutionFailureError, FailureKind, InfeasibleSolutionError
from .result_schema import MultiYearResult
from .solver_adapter import BaseSolverAdapter, HighsSolverAdapter, SolverOutput, load_solution
from .supervisor import ExecutionSupervisor, ExecutionTelemetry, SupervisorConfig

logger = logging.getLogger(__name__)


class SolveStatus(str, Enum):
    OPTIMAL = "optimal"
    FEASIBLE = "feasible"
    INFEASIBLE = "infeasible"
    EXECUTION_FAILED = "execution_failed"


@dataclass
class SolveOutcome:
    """
    Result of one optimization run.

    Attributes:
        success: Whether a feasible solution was found and decoded
        status: OPTIMAL, FEASIBLE, INFEASIBLE or EXECUTION_FAILED
        solution: Decoded MultiYearResult (None unless success)
        objective_value: Objective of the joint multi-year solve
        message: Human-readable explanation for non-successful runs
        failure_kind: Classification of an execution failure
        solve_time_seconds: Time spent inside the solver
        telemetry: Timing and memory of the isolated solve
        complexity: Model size measured by the complexity guard
        num_variables: Number of decision variables
        num_constraints: Number of constraints
        num_integer_vars: Number of binary variables
        metadata: Additional run metadata
    """
    success: bool
    status: SolveStatus
    solution: Optional[MultiYearResult] = None
    objective_value: Optional[float] = None
    message: Optional[str] = None
    failure_kind: Optional[FailureKind] = None
    solve_time_seconds: Optional[float] = None
    telemetry: Optional[ExecutionTelemetry] = None
    complexity: Optional[ModelComplexity] = None
    num_variables: int = 0
    num_constraints: int = 0
    num_integer_vars: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)

    def is_optimal(self) -> bool:
        """Check if solution is optimal."""
        return self.success and self.status == SolveStatus.OPTIMAL

    def is_feasible(self) -> bool:
        """Check if a usable solution exists (optimal, or time-limited incumbent)."""
        return self.success and self.status in (SolveStatus.OPTIMAL, SolveStatus.FEASIBLE)

    def is_infeasible(self) -> bool:
        """Check if model is infeasible."""
        return self.status == SolveStatus.INFEASIBLE

    def raise_for_status(self) -> "SolveOutcome":
        """
        Escalate a non-successful outcome to an exception.

        Raises:
            InfeasibleSolutionError: The model has no feasible solution
            ExecutionFailureError: The solve timed out, ran out of memory or crashed
        """
        if self.status == SolveStatus.INFEASIBLE:
            raise InfeasibleSolutionError(self.message or "No feasible solution")
        if self.status == SolveStatus.EXECUTION_FAILED:
            raise ExecutionFailureError(
                self.message or "Optimization failed",
                kind=self.failure_kind or FailureKind.PROCESS_EXIT,
                duration_seconds=self.telemetry.duration_seconds if self.telemetry else None,
            )
        return self

    def __str__(self) -> str:
        """String representation."""
        result = f"SolveOutcome: {self.status.value.upper()}"
        if self.objective_value is not None:
            result += f", objective = {self.objective_value:,.2f}"
        if self.solve_time_seconds is not None:
            result += f", time = {self.solve_time_seconds:.2f}s"
        if self.message and not self.success:
            result += f" ({self.message})"
        return result


class BaseOptimizationModel(ABC):
    """
    Abstract base class for optimization models.

    Subclasses implement:
    - build_model(): Construct the Pyomo model
    - extract_solution(): Decode the solved model into a MultiYearResult

    This base class provides:
    - Complexity guarding before any process is spawned
    - Isolated, resource-bounded solving through the supervisor
    - Result envelope and diagnostics

    Example:
        model = FixedLeaseModel(params, matrix, forecast)
        outcome = model.solve()
        if outcome.is_feasible():
            print(outcome.solution.open_facilities)
    """

    def __init__(
        self,
        solver: Optional[BaseSolverAdapter] = None,
        limits: Optional[ComplexityLimits] = None,
        supervisor_config: Optional[SupervisorConfig] = None,
    ):
        """
        Initialize optimization model.

        Args:
            solver: Solver adapter (default: HiGHS)
            limits: Complexity ceilings (default: ComplexityLimits())
            supervisor_config: Isolated solve limits (default: SupervisorConfig())
        """
        self.solver = solver or HighsSolverAdapter()
        self.guard = ComplexityGuard(limits)
        self.supervisor = ExecutionSupervisor(supervisor_config)
        self.model: Optional[ConcreteModel] = None
        self.outcome: Optional[SolveOutcome] = None
        self.solution: Optional[MultiYearResult] = None
        self._build_time: Optional[float] = None

    @abstractmethod
    def build_model(self) -> ConcreteModel:
        """
        Build and return the Pyomo optimization model.

        Returns:
            ConcreteModel: Pyomo model with variables, constraints, and objective
        """
        raise NotImplementedError("Subclass must implement build_model()")

    @abstractmethod
    def extract_solution(self, model: ConcreteModel, output: SolverOutput) -> MultiYearResult:
        """
        Decode the solved model.

        Args:
            model: Model with solver values loaded
            output: Raw solver output

        Returns:
            MultiYearResult: Validated solution (Pydantic model)
        """
        raise NotImplementedError("Subclass must implement extract_solution()")

    def solve(self) -> SolveOutcome:
        """
        Build, check and solve the model in an isolated process.

        Returns:
            SolveOutcome; INFEASIBLE and EXECUTION_FAILED are returned, not raised

        Raises:
            PlanningValidationError: Contradictory inputs
            ComplexityExceededError: Model breaches a complexity ceiling
        """
        build_start = time.time()
        self.model = self.build_model()
        self._build_time = time.time() - build_start
        logger.info(f"Model built in {self._build_time:.2f}s")

        complexity = self.guard.check(self.model)
        counts = dict(
            complexity=complexity,
            num_variables=complexity.num_variables,
            num_constraints=complexity.num_constraints,
            num_integer_vars=complexity.num_integer_vars,
        )

        report = self.supervisor.run(self.model, self.solver)
        if not report.success:
            self.outcome = SolveOutcome(
                success=False,
                status=SolveStatus.EXECUTION_FAILED,
                message=report.error,
                failure_kind=report.failure_kind,
                telemetry=report.telemetry,
                metadata=dict(report.metadata),
                **counts,
            )
            logger.warning(str(self.outcome))
            return self.outcome

        output = report.output
        if not output.feasible:
            self.outcome = SolveOutcome(
                success=False,
                status=SolveStatus.INFEASIBLE,
                message=self.infeasibility_message(output),
                solve_time_seconds=output.solve_time_seconds,
                telemetry=report.telemetry,
                metadata={'termination': output.termination},
                **counts,
            )
            logger.warning(str(self.outcome))
            return self.outcome

        load_solution(self.model, output)
        try:
            self.solution = self.extract_solution(self.model, output)
        except ValidationError as ve:
            # A schema violation here is a decoding bug, never a data problem
            logger.error(f"CRITICAL: Decoded solution violates result schema: {ve}")
            raise

        self.outcome = SolveOutcome(
            success=True,
            status=SolveStatus.OPTIMAL if output.is_optimal() else SolveStatus.FEASIBLE,
            solution=self.solution,
            objective_value=output.objective,
            solve_time_seconds=output.solve_time_seconds,
            telemetry=report.telemetry,
            metadata={'termination': output.termination, 'gap': output.gap},
            **counts,
        )
        logger.info(str(self.outcome))
        return self.outcome

    def infeasibility_message(self, output: SolverOutput) -> str:
        """Explain an infeasible solve; subclasses may add domain detail."""
        return f"No feasible solution found (termination: {output.termination})"
