"""Pre-solve model complexity guard.

Rejects oversized models before any solve process is started: variable and
constraint counts, nonzero coefficients and the pickled size of the model
(what gets shipped to the isolated solve process) are checked against
configurable ceilings.
"""

from dataclasses import dataclass
from typing import List, Optional
import logging
import pickle

from pyomo.environ import ConcreteModel, Constraint, Objective, Var
from pyomo.core.expr.visitor import identify_variables

from .. import constants
from .exceptions import ComplexityExceededError, PlanningValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ComplexityLimits:
    """Complexity ceilings for one invocation.

    Attributes:
        max_variables: Maximum decision variables
        max_constraints: Maximum constraints
        max_coefficients: Maximum nonzeros across objective and constraints
        max_serialized_mb: Maximum pickled model size (MB)
    """
    max_variables: int = constants.MAX_MODEL_VARIABLES
    max_constraints: int = constants.MAX_MODEL_CONSTRAINTS
    max_coefficients: int = constants.MAX_MODEL_COEFFICIENTS
    max_serialized_mb: float = constants.MAX_MODEL_SIZE_MB

    def __post_init__(self):
        """Validate configuration."""
        for name in ('max_variables', 'max_constraints', 'max_coefficients', 'max_serialized_mb'):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be > 0, got {getattr(self, name)}")


@dataclass(frozen=True)
class ModelComplexity:
    """Measured size of a model."""
    num_variables: int
    num_integer_vars: int
    num_constraints: int
    num_coefficients: int
    serialized_mb: Optional[float] = None

    def __str__(self) -> str:
        """String representation."""
        size = f", {self.serialized_mb:.2f}MB" if self.serialized_mb is not None else ""
        return (
            f"{self.num_variables:,} vars ({self.num_integer_vars:,} integer), "
            f"{self.num_constraints:,} constraints, {self.num_coefficients:,} coefficients{size}"
        )


def serialized_size_mb(model: ConcreteModel) -> float:
    """Size of the pickled model in MB."""
    return len(pickle.dumps(model, protocol=pickle.HIGHEST_PROTOCOL)) / 1024 / 1024


def count_coefficients(model: ConcreteModel) -> int:
    """Count variable references in the active objective(s) and constraints."""
    total = 0
    for objective in model.component_data_objects(Objective, active=True):
        total += sum(1 for _ in identify_variables(objective.expr, include_fixed=True))
    for constraint in model.component_data_objects(Constraint, active=True):
        total += sum(1 for _ in identify_variables(constraint.body, include_fixed=True))
    return total


class ComplexityGuard:
    """
    Stateless pre-solve check.

    Example:
        guard = ComplexityGuard(ComplexityLimits(max_variables=5_000))
        complexity = guard.check(model)   # raises ComplexityExceededError
    """

    def __init__(self, limits: Optional[ComplexityLimits] = None):
        self.limits = limits or ComplexityLimits()

    def measure(self, model: ConcreteModel) -> ModelComplexity:
        """Measure counts without the (more expensive) serialization."""
        variables = list(model.component_data_objects(Var, descend_into=True))
        return ModelComplexity(
            num_variables=len(variables),
            num_integer_vars=sum(1 for var in variables if var.is_integer() or var.is_binary()),
            num_constraints=sum(1 for _ in model.component_data_objects(Constraint, active=True)),
            num_coefficients=count_coefficients(model),
        )

    def check(self, model: ConcreteModel) -> ModelComplexity:
        """
        Check a model against the ceilings.

        Args:
            model: Built Pyomo model

        Returns:
            ModelComplexity including the serialized size

        Raises:
            ComplexityExceededError: First breached ceiling, with limit and excess
            PlanningValidationError: Model has no objective or an empty constraint
        """
        complexity = self.measure(model)
        limits = self.limits

        if complexity.num_variables > limits.max_variables:
            self._reject('variables', limits.max_variables, complexity.num_variables)
        if complexity.num_constraints > limits.max_constraints:
            self._reject('constraints', limits.max_constraints, complexity.num_constraints)
        if complexity.num_coefficients > limits.max_coefficients:
            self._reject('coefficients', limits.max_coefficients, complexity.num_coefficients)

        size_mb = serialized_size_mb(model)
        if size_mb > limits.max_serialized_mb:
            self._reject('serialized_mb', limits.max_serialized_mb, round(size_mb, 2))

        problems = self.structure_problems(model)
        if problems:
            raise PlanningValidationError("Invalid model: " + "; ".join(problems))

        complexity = ModelComplexity(
            num_variables=complexity.num_variables,
            num_integer_vars=complexity.num_integer_vars,
            num_constraints=complexity.num_constraints,
            num_coefficients=complexity.num_coefficients,
            serialized_mb=size_mb,
        )
        logger.info(f"Model complexity check passed: {complexity}")
        return complexity

    @staticmethod
    def structure_problems(model: ConcreteModel) -> List[str]:
        """List structural defects: objective count and constraints without variables."""
        problems = []
        objectives = list(model.component_data_objects(Objective, active=True))
        if len(objectives) != 1:
            problems.append(f"expected exactly one active objective, found {len(objectives)}")
        empty = [
            constraint.name
            for constraint in model.component_data_objects(Constraint, active=True)
            if next(identify_variables(constraint.body, include_fixed=True), None) is None
        ]
        if empty:
            problems.append(f"{len(empty)} constraint(s) reference no variables, e.g. {empty[:3]}")
        return problems

    def _reject(self, ceiling: str, limit: float, actual: float):
        error = ComplexityExceededError(ceiling, limit, actual)
        logger.warning(str(error))
        raise error
