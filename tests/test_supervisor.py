"""Tests for the isolated execution supervisor.

These tests start real solve processes (spawn context) using the picklable
solver mocks from tests.fixtures.
"""

import multiprocessing
import time

import pytest
from pyomo.environ import Binary, ConcreteModel, Constraint, Objective, Var, minimize

from netlease.optimization import (
    ExecutionSupervisor,
    FailureKind,
    SolverOutput,
    SupervisorConfig,
)
from tests.fixtures.solver_mocks import (
    CrashingSolver,
    ExitingSolver,
    FixedOutputSolver,
    HangingSolver,
    MemoryHogSolver,
)


def _tiny_model():
    model = ConcreteModel()
    model.x = Var(within=Binary)
    model.obj = Objective(expr=model.x, sense=minimize)
    model.c = Constraint(expr=model.x >= 0)
    return model


class TestSupervisorConfig:
    """Tests for SupervisorConfig validation."""

    def test_defaults(self):
        """Test default limits."""
        config = SupervisorConfig()
        assert config.timeout_seconds is None
        assert config.memory_limit_mb == 2048.0
        assert config.start_method == "spawn"

    @pytest.mark.parametrize("kwargs", [
        {"timeout_seconds": 0},
        {"memory_limit_mb": -1},
        {"poll_interval_seconds": 0},
        {"start_method": "teleport"},
    ])
    def test_invalid_values_rejected(self, kwargs):
        """Test that invalid limits are rejected on construction."""
        with pytest.raises(ValueError):
            SupervisorConfig(**kwargs)

    def test_timeout_derived_from_model_size(self):
        """Test that a missing timeout uses the clamped size-based formula."""
        supervisor = ExecutionSupervisor(SupervisorConfig())
        assert supervisor.resolve_timeout(_tiny_model()) == 120.0

    def test_explicit_timeout_wins(self):
        """Test that an explicit timeout is used as-is."""
        supervisor = ExecutionSupervisor(SupervisorConfig(timeout_seconds=7.5))
        assert supervisor.resolve_timeout(_tiny_model()) == 7.5


class TestExecutionSupervisor:
    """Tests for ExecutionSupervisor.run()."""

    def test_success_returns_output_and_telemetry(self):
        """Test a solver that returns immediately."""
        prepared = SolverOutput(feasible=True, values={"x": 0.0}, objective=0.0, termination="optimal")
        report = ExecutionSupervisor(SupervisorConfig(timeout_seconds=60)).run(
            _tiny_model(), FixedOutputSolver(prepared)
        )

        assert report.success
        assert report.failure_kind is None
        assert report.output.feasible
        assert report.output.values == {"x": 0.0}
        assert report.telemetry.timeout_seconds == 60
        assert report.telemetry.memory_limit_mb == 2048.0
        assert report.telemetry.peak_memory_mb > 0
        assert report.telemetry.exit_code == 0
        assert multiprocessing.active_children() == []

    def test_infeasible_output_is_success(self):
        """Test that an infeasible solve is a normal return, not a failure."""
        prepared = SolverOutput(feasible=False, termination="infeasible")
        report = ExecutionSupervisor(SupervisorConfig(timeout_seconds=60)).run(
            _tiny_model(), FixedOutputSolver(prepared)
        )
        assert report.success
        assert not report.output.feasible

    @pytest.mark.slow
    def test_hanging_solver_times_out(self):
        """A solver that never returns is terminated within the timeout plus 0.5s."""
        supervisor = ExecutionSupervisor(SupervisorConfig(timeout_seconds=2.0))

        start = time.monotonic()
        report = supervisor.run(_tiny_model(), HangingSolver())
        elapsed = time.monotonic() - start

        assert not report.success
        assert report.failure_kind == FailureKind.TIMEOUT
        assert "timeout" in report.error.lower()
        assert 2.0 <= report.telemetry.duration_seconds < 2.5
        assert elapsed < 2.5
        assert multiprocessing.active_children() == []

    def test_solver_exception_is_reported(self):
        """Test that an exception in the solve process comes back as data."""
        report = ExecutionSupervisor(SupervisorConfig(timeout_seconds=60)).run(_tiny_model(), CrashingSolver())

        assert not report.success
        assert report.failure_kind == FailureKind.SOLVER_ERROR
        assert "RuntimeError: boom" in report.error
        assert "Traceback" in report.metadata['traceback']

    def test_process_exit_is_reported(self):
        """Test a solve process that dies without reporting back."""
        report = ExecutionSupervisor(SupervisorConfig(timeout_seconds=60)).run(_tiny_model(), ExitingSolver(3))

        assert not report.success
        assert report.failure_kind == FailureKind.PROCESS_EXIT
        assert report.telemetry.exit_code == 3
        assert "exited with code 3" in report.error

    @pytest.mark.slow
    def test_memory_ceiling_terminates_process(self):
        """Test that exceeding the memory ceiling kills the solve process."""
        config = SupervisorConfig(timeout_seconds=60, memory_limit_mb=400)
        report = ExecutionSupervisor(config).run(_tiny_model(), MemoryHogSolver(max_mb=1500))

        assert not report.success
        assert report.failure_kind == FailureKind.MEMORY_LIMIT
        assert report.telemetry.peak_memory_mb > 400
        assert report.telemetry.duration_seconds < 60
        assert multiprocessing.active_children() == []

    @pytest.mark.solver_required
    def test_self_test_passes_with_highs(self):
        """Test the end-to-end isolated solve self-test."""
        assert ExecutionSupervisor(SupervisorConfig(timeout_seconds=120)).self_test()
