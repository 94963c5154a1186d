"""Isolated execution supervisor for solver runs.

The solve runs in a separate OS process so a runaway or memory-hungry solve
cannot block or crash the caller. The supervisor owns the per-invocation
limits:

- Wall-clock timeout (explicit, or derived from model size)
- Resident memory ceiling, enforced by sampling the child with psutil

On a breach the child is terminated (SIGTERM, then SIGKILL) and a failure
report is returned with the elapsed time and a FailureKind. Exceptions in the
child are sent back as data; nothing raised in the child reaches the caller.
At most one child exists per run() call and it is reaped on every exit path.
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Tuple
import logging
import multiprocessing
import time
import traceback

import psutil
from pyomo.environ import ConcreteModel, Constraint, NonNegativeIntegers, Objective, Var, minimize

from .. import constants
from .exceptions import FailureKind
from .solver_adapter import BaseSolverAdapter, HighsSolverAdapter, SolverOutput

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SupervisorConfig:
    """Resource limits for one supervised solve.

    Attributes:
        timeout_seconds: Wall-clock limit (None = derive from model size)
        memory_limit_mb: Resident memory ceiling of the solve process
        poll_interval_seconds: Sampling period for results and memory
        start_method: multiprocessing start method ('spawn', 'forkserver', 'fork')
        terminate_grace_seconds: Wait after SIGTERM before SIGKILL
    """
    timeout_seconds: Optional[float] = None
    memory_limit_mb: float = constants.DEFAULT_MEMORY_LIMIT_MB
    poll_interval_seconds: float = constants.DEFAULT_POLL_INTERVAL_SECONDS
    start_method: str = "spawn"
    terminate_grace_seconds: float = constants.TERMINATE_GRACE_SECONDS

    def __post_init__(self):
        """Validate configuration."""
        if self.timeout_seconds is not None and self.timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be > 0, got {self.timeout_seconds}")
        if self.memory_limit_mb <= 0:
            raise ValueError(f"memory_limit_mb must be > 0, got {self.memory_limit_mb}")
        if self.poll_interval_seconds <= 0:
            raise ValueError(f"poll_interval_seconds must be > 0, got {self.poll_interval_seconds}")
        if self.start_method not in multiprocessing.get_all_start_methods():
            raise ValueError(
                f"start_method '{self.start_method}' is not supported here; "
                f"choose from {multiprocessing.get_all_start_methods()}"
            )


@dataclass
class ExecutionTelemetry:
    """Timing and memory observed for one supervised solve."""
    duration_seconds: float
    timeout_seconds: float
    memory_limit_mb: float
    peak_memory_mb: float = 0.0
    exit_code: Optional[int] = None
    pid: Optional[int] = None


@dataclass
class ExecutionReport:
    """
    Outcome of a supervised solve.

    Attributes:
        success: The solver returned (feasible or not)
        output: Solver output when success is True
        failure_kind: Classification when success is False
        error: Human-readable failure explanation
        telemetry: Timing and memory figures
    """
    success: bool
    telemetry: ExecutionTelemetry
    output: Optional[SolverOutput] = None
    failure_kind: Optional[FailureKind] = None
    error: Optional[str] = None
    metadata: dict = field(default_factory=dict)

    def __str__(self) -> str:
        """String representation."""
        if self.success:
            return f"ExecutionReport: OK ({self.output}), {self.telemetry.duration_seconds:.2f}s"
        return (
            f"ExecutionReport: {self.failure_kind.value.upper()} after "
            f"{self.telemetry.duration_seconds:.2f}s - {self.error}"
        )


def _current_rss_mb(process: psutil.Process) -> float:
    return process.memory_info().rss / 1024 / 1024


def _solve_in_child(solver: BaseSolverAdapter, model: ConcreteModel, connection) -> None:
    """Entry point of the solve process; reports back through the pipe."""
    me = psutil.Process()
    try:
        output = solver.solve(model)
        connection.send(("ok", output, _current_rss_mb(me)))
    except Exception as exc:
        connection.send((
            "error",
            f"{type(exc).__name__}: {exc}",
            traceback.format_exc(),
        ))
    finally:
        connection.close()


class ExecutionSupervisor:
    """
    Runs a solver adapter on a model inside a resource-bounded process.

    Example:
        supervisor = ExecutionSupervisor(SupervisorConfig(timeout_seconds=300))
        report = supervisor.run(model, HighsSolverAdapter())
        if report.success and report.output.feasible:
            load_solution(model, report.output)
    """

    def __init__(self, config: Optional[SupervisorConfig] = None):
        self.config = config or SupervisorConfig()

    def resolve_timeout(self, model: ConcreteModel) -> float:
        """Explicit timeout, or the size-based recommendation."""
        if self.config.timeout_seconds is not None:
            return self.config.timeout_seconds
        num_vars = sum(1 for _ in model.component_data_objects(Var, descend_into=True))
        num_cons = sum(1 for _ in model.component_data_objects(Constraint, active=True))
        return constants.recommended_timeout(num_vars, num_cons)

    def run(self, model: ConcreteModel, solver: BaseSolverAdapter) -> ExecutionReport:
        """
        Solve the model in an isolated process.

        Args:
            model: Built model (pickled into the child)
            solver: Picklable solver adapter

        Returns:
            ExecutionReport; never raises for timeouts, memory breaches or
            solver crashes
        """
        timeout = self.resolve_timeout(model)
        memory_limit = self.config.memory_limit_mb
        context = multiprocessing.get_context(self.config.start_method)
        receiver, sender = context.Pipe(duplex=False)
        process = context.Process(
            target=_solve_in_child,
            args=(solver, model, sender),
            name=f"netlease-solve-{getattr(solver, 'name', 'solver')}",
            daemon=True,
        )

        start = time.monotonic()
        peak_mb = 0.0
        message: Optional[Tuple[Any, ...]] = None
        failure: Optional[Tuple[FailureKind, str]] = None

        logger.info(
            f"Starting isolated solve (timeout={timeout:.1f}s, memory limit={memory_limit:,.0f}MB)"
        )
        try:
            process.start()
            sender.close()
            monitor = psutil.Process(process.pid)

            while message is None and failure is None:
                remaining = timeout - (time.monotonic() - start)
                if remaining <= 0:
                    failure = (
                        FailureKind.TIMEOUT,
                        f"Optimization timeout after {timeout:.1f} seconds. Model may be too complex.",
                    )
                    break

                if receiver.poll(min(self.config.poll_interval_seconds, remaining)):
                    try:
                        message = receiver.recv()
                    except EOFError:
                        failure = (
                            FailureKind.PROCESS_EXIT,
                            f"Solve process exited with code {self._wait_exit_code(process)} "
                            f"without returning a result",
                        )
                    break

                try:
                    rss_mb = _current_rss_mb(monitor)
                except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                    rss_mb = 0.0
                peak_mb = max(peak_mb, rss_mb)
                if rss_mb > memory_limit:
                    failure = (
                        FailureKind.MEMORY_LIMIT,
                        f"Memory limit exceeded: {rss_mb:,.1f}MB > {memory_limit:,.0f}MB",
                    )
                    break

                if not process.is_alive() and not receiver.poll(0):
                    failure = (
                        FailureKind.PROCESS_EXIT,
                        f"Solve process exited with code {process.exitcode} without returning a result",
                    )
        except Exception as exc:
            failure = (FailureKind.PROCESS_EXIT, f"Failed to run solve process: {type(exc).__name__}: {exc}")
        finally:
            self._shutdown(process, reported=message is not None)
            receiver.close()

        duration = time.monotonic() - start
        telemetry = ExecutionTelemetry(
            duration_seconds=duration,
            timeout_seconds=timeout,
            memory_limit_mb=memory_limit,
            peak_memory_mb=peak_mb,
            exit_code=process.exitcode,
            pid=process.pid,
        )

        if message is not None and message[0] == "ok":
            _, output, child_rss_mb = message
            telemetry.peak_memory_mb = max(peak_mb, child_rss_mb)
            report = ExecutionReport(success=True, telemetry=telemetry, output=output)
            logger.info(str(report))
            return report

        if message is not None:
            _, error, child_traceback = message
            report = ExecutionReport(
                success=False,
                telemetry=telemetry,
                failure_kind=FailureKind.SOLVER_ERROR,
                error=f"Solver error: {error}",
                metadata={'traceback': child_traceback},
            )
        else:
            kind, error = failure
            report = ExecutionReport(success=False, telemetry=telemetry, failure_kind=kind, error=error)

        logger.warning(str(report))
        return report

    def self_test(self, solver: Optional[BaseSolverAdapter] = None) -> bool:
        """
        Solve a tiny known model through the isolated path.

        Returns:
            True when the solve process returns the expected optimum
        """
        model = ConcreteModel(name="SupervisorSelfTest")
        model.x = Var(within=NonNegativeIntegers, bounds=(0, 10), initialize=0)
        model.y = Var(bounds=(0, 10))
        model.obj = Objective(expr=3 * model.x + 2 * model.y, sense=minimize)
        model.demand = Constraint(expr=model.x + model.y >= 4)
        model.mix = Constraint(expr=model.x >= 1)

        report = self.run(model, solver or HighsSolverAdapter())
        if not (report.success and report.output.feasible):
            logger.error(f"Supervisor self-test failed: {report}")
            return False
        passed = abs(report.output.objective - 9.0) < 1e-6
        if not passed:
            logger.error(f"Supervisor self-test returned objective {report.output.objective}, expected 9.0")
        return passed

    def _wait_exit_code(self, process) -> Optional[int]:
        process.join(self.config.terminate_grace_seconds)
        return process.exitcode

    def _shutdown(self, process, reported: bool = False) -> None:
        """Reap the child, escalating from SIGTERM to SIGKILL."""
        if process.pid is None:
            return
        if reported:
            # Result is in hand; let the child exit on its own first
            process.join(self.config.terminate_grace_seconds)
        if process.is_alive():
            process.terminate()
            process.join(self.config.terminate_grace_seconds)
        if process.is_alive():
            logger.warning(f"Solve process {process.pid} ignored SIGTERM, killing")
            process.kill()
            process.join()
        else:
            process.join()
