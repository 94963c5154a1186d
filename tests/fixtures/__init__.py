"""Test fixtures for optimization model testing."""

from .solver_mocks import (
    HangingSolver,
    FixedOutputSolver,
    InfeasibleSolver,
    CrashingSolver,
    ExitingSolver,
    MemoryHogSolver,
    FirstSiteSolver,
    create_never_called_solver,
)

__all__ = [
    'HangingSolver',
    'FixedOutputSolver',
    'InfeasibleSolver',
    'CrashingSolver',
    'ExitingSolver',
    'MemoryHogSolver',
    'FirstSiteSolver',
    'create_never_called_solver',
]
