"""Solver adapters: the black-box MIP primitive behind the optimizer.

An adapter takes a built Pyomo model and returns a SolverOutput: a
feasibility flag, variable values keyed by variable name, and the objective.
Infeasibility is a normal return value, never an exception.

Adapters are executed inside the isolated solve process, so they must be
picklable: keep configuration in plain attributes and import solver
libraries inside solve().
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Optional
import logging
import time

from pyomo.environ import ConcreteModel, Var

from .exceptions import SolverUnavailableError

logger = logging.getLogger(__name__)


@dataclass
class SolverOutput:
    """
    Raw result of one solve.

    Attributes:
        feasible: Whether a feasible (integer) solution was found
        values: Variable values keyed by Pyomo variable name
        objective: Objective value of the returned solution
        termination: Solver termination condition name
        solve_time_seconds: Time spent inside the solver
        solver_name: Name of the backend
        gap: Relative MIP gap, when the solver reports bounds
    """
    feasible: bool
    values: Dict[str, float] = field(default_factory=dict)
    objective: Optional[float] = None
    termination: str = "unknown"
    solve_time_seconds: float = 0.0
    solver_name: str = ""
    gap: Optional[float] = None

    def is_optimal(self) -> bool:
        return self.feasible and self.termination == "optimal"

    def __str__(self) -> str:
        """String representation."""
        result = f"SolverOutput: {self.termination.upper()}"
        if self.objective is not None:
            result += f", objective = {self.objective:,.2f}"
        result += f", time = {self.solve_time_seconds:.2f}s"
        return result


class BaseSolverAdapter(ABC):
    """
    Contract for MIP/LP backends.

    Any conforming solver may be substituted:

        class MySolver(BaseSolverAdapter):
            name = "my_solver"

            def solve(self, model):
                ...
                return SolverOutput(feasible=True, values={...}, objective=...)
    """

    name = "base"

    @abstractmethod
    def solve(self, model: ConcreteModel) -> SolverOutput:
        """
        Solve the model.

        Args:
            model: Built Pyomo ConcreteModel with one active objective

        Returns:
            SolverOutput; feasible=False when no feasible solution exists
        """
        raise NotImplementedError("Subclass must implement solve()")


class HighsSolverAdapter(BaseSolverAdapter):
    """
    HiGHS through Pyomo's APPSI interface (requires the highspy package).

    Args:
        time_limit_seconds: Solver-side time limit (None = no limit; the
            supervisor's wall-clock timeout still applies)
        mip_gap: Relative MIP gap tolerance
        threads: HiGHS thread count (None = HiGHS default)
        tee: Stream solver output
    """

    name = "appsi_highs"

    def __init__(
        self,
        time_limit_seconds: Optional[float] = None,
        mip_gap: Optional[float] = None,
        threads: Optional[int] = None,
        tee: bool = False,
    ):
        self.time_limit_seconds = time_limit_seconds
        self.mip_gap = mip_gap
        self.threads = threads
        self.tee = tee

    def is_available(self) -> bool:
        """Check whether HiGHS can be used in this interpreter."""
        try:
            from pyomo.contrib.appsi.solvers import Highs
        except ImportError:
            return False
        return bool(Highs().available())

    def solve(self, model: ConcreteModel) -> SolverOutput:
        from pyomo.contrib.appsi.solvers import Highs
        from pyomo.contrib.appsi.base import TerminationCondition as AppsiTC

        solver = Highs()
        if not solver.available():
            raise SolverUnavailableError(
                "HiGHS solver is not available. Install 'highspy' to run MIP optimizations."
            )

        # Infeasible results must come back as data, not as a load error
        solver.config.load_solution = False
        if self.time_limit_seconds:
            solver.config.time_limit = self.time_limit_seconds
        if self.mip_gap is not None:
            solver.config.mip_gap = self.mip_gap
        if self.tee:
            solver.config.stream_solver = True

        solver.highs_options['presolve'] = 'on'
        if self.threads:
            solver.highs_options['threads'] = self.threads

        solve_start = time.time()
        results = solver.solve(model)
        solve_time = time.time() - solve_start

        termination = results.termination_condition
        best_objective = getattr(results, 'best_feasible_objective', None)
        if termination == AppsiTC.optimal:
            feasible = True
        elif termination == AppsiTC.maxTimeLimit:
            # Hit time limit - usable only if an incumbent exists
            feasible = best_objective is not None
        else:
            feasible = False

        values: Dict[str, float] = {}
        if feasible:
            results.solution_loader.load_vars()
            values = {
                var.name: float(var.value)
                for var in model.component_data_objects(Var, descend_into=True)
                if var.value is not None
            }

        gap = None
        bound = getattr(results, 'best_objective_bound', None)
        if feasible and bound is not None and best_objective is not None and abs(best_objective) > 1e-10:
            gap = abs((best_objective - bound) / best_objective)

        output = SolverOutput(
            feasible=feasible,
            values=values,
            objective=best_objective if feasible else None,
            termination=termination.name,
            solve_time_seconds=solve_time,
            solver_name=self.name,
            gap=gap,
        )
        logger.info(f"HiGHS finished: {output}")
        return output


def load_solution(model: ConcreteModel, output: SolverOutput) -> int:
    """
    Write solver values back into a model.

    The model may be a different copy of the solved model (the solve runs in
    another process); variables are matched by name.

    Args:
        model: Model to update
        output: Output returned by an adapter

    Returns:
        Number of variables that received a value
    """
    loaded = 0
    for var in model.component_data_objects(Var, descend_into=True):
        solved_value = output.values.get(var.name)
        if solved_value is None:
            continue
        var.set_value(solved_value, skip_validation=True)
        loaded += 1
    return loaded
