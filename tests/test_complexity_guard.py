"""Tests for the pre-solve complexity guard."""

import multiprocessing

import pytest
from pyomo.environ import Binary, ConcreteModel, Constraint, Objective, Var, minimize

from netlease.models import FacilityParams, Forecast
from netlease.optimization import (
    ComplexityExceededError,
    ComplexityGuard,
    ComplexityLimits,
    FixedLeaseModel,
    PlanningValidationError,
)
from netlease.optimization.complexity_guard import count_coefficients, serialized_size_mb
from tests.fixtures.solver_mocks import create_never_called_solver


def _small_model():
    model = ConcreteModel()
    model.x = Var([1, 2, 3], within=Binary)
    model.obj = Objective(expr=model.x[1] + 2 * model.x[2] + 3 * model.x[3], sense=minimize)
    model.pick = Constraint(expr=model.x[1] + model.x[2] + model.x[3] >= 1)
    model.exclusive = Constraint(expr=model.x[1] + model.x[2] <= 1)
    return model


class TestComplexityLimits:
    """Tests for ComplexityLimits configuration."""

    def test_defaults(self):
        """Test the default ceilings."""
        limits = ComplexityLimits()
        assert limits.max_variables == 1000
        assert limits.max_constraints == 500
        assert limits.max_coefficients == 100_000
        assert limits.max_serialized_mb == 50.0

    def test_non_positive_rejected(self):
        """Test that ceilings must be positive."""
        with pytest.raises(ValueError, match="max_constraints"):
            ComplexityLimits(max_constraints=0)


class TestComplexityGuard:
    """Tests for ComplexityGuard.check()."""

    def test_measure_small_model(self):
        """Test counts on a hand-built model."""
        model = _small_model()
        complexity = ComplexityGuard().check(model)
        assert complexity.num_variables == 3
        assert complexity.num_integer_vars == 3
        assert complexity.num_constraints == 2
        assert complexity.num_coefficients == 8
        assert count_coefficients(model) == 8
        assert complexity.serialized_mb == pytest.approx(serialized_size_mb(model))
        assert complexity.serialized_mb > 0

    @pytest.mark.parametrize("limits,ceiling,limit,actual", [
        (ComplexityLimits(max_variables=2), "variables", 2, 3),
        (ComplexityLimits(max_constraints=1), "constraints", 1, 2),
        (ComplexityLimits(max_coefficients=5), "coefficients", 5, 8),
    ])
    def test_ceiling_breaches(self, limits, ceiling, limit, actual):
        """Test that each count ceiling reports limit, actual and excess."""
        with pytest.raises(ComplexityExceededError) as exc_info:
            ComplexityGuard(limits).check(_small_model())
        error = exc_info.value
        assert error.ceiling == ceiling
        assert error.limit == limit
        assert error.actual == actual
        assert error.excess == actual - limit
        assert "Model too complex" in str(error)

    def test_serialized_size_breach(self):
        """Test the pickled size ceiling."""
        with pytest.raises(ComplexityExceededError) as exc_info:
            ComplexityGuard(ComplexityLimits(max_serialized_mb=1e-6)).check(_small_model())
        assert exc_info.value.ceiling == "serialized_mb"

    def test_at_limit_allowed(self):
        """Test that reaching a ceiling exactly is not a breach."""
        limits = ComplexityLimits(max_variables=3, max_constraints=2, max_coefficients=8)
        assert ComplexityGuard(limits).check(_small_model()).num_variables == 3

    def test_missing_objective_rejected(self):
        """Test that a model without an objective is structurally invalid."""
        model = ConcreteModel()
        model.x = Var(within=Binary)
        model.c = Constraint(expr=model.x <= 1)
        with pytest.raises(PlanningValidationError, match="exactly one active objective"):
            ComplexityGuard().check(model)


class TestOversizedFixedLeaseModel:
    """A 2000-binary model must be rejected before any solve is attempted."""

    def test_rejected_without_invoking_solver(self, large_matrix):
        """20 sites x 100 destinations x 1 year = 2020 binaries > 1000."""
        solver = create_never_called_solver()
        model = FixedLeaseModel(
            params=FacilityParams(),
            cost_matrix=large_matrix,
            forecast=Forecast.from_totals({2025: 10_000.0}),
            solver=solver,
        )

        with pytest.raises(ComplexityExceededError) as exc_info:
            model.solve()

        error = exc_info.value
        assert error.ceiling == "variables"
        assert error.limit == 1000
        assert error.actual == 2020
        assert error.excess == 1020
        solver.solve.assert_not_called()
        assert multiprocessing.active_children() == []
        assert model.outcome is None

    def test_raised_limits_admit_the_model(self, large_matrix):
        """Test that the same model passes the guard with raised ceilings."""
        model = FixedLeaseModel(
            params=FacilityParams(),
            cost_matrix=large_matrix,
            forecast=Forecast.from_totals({2025: 10_000.0}),
            solver=create_never_called_solver(),
        )
        built = model.build_model()
        complexity = ComplexityGuard(ComplexityLimits(max_variables=5_000, max_constraints=5_000)).check(built)
        assert complexity.num_variables == 2020
        # 1 count + 100 serve-once + 2000 open-link + 20 capacity + 1 service level
        assert complexity.num_constraints == 2122
