"""Pytest configuration and shared fixtures."""

import multiprocessing

import pytest

from netlease.models import (
    CostMatrix,
    FacilityParams,
    Forecast,
    UNREACHABLE_COST,
)
from netlease.optimization import HighsSolverAdapter


def pytest_collection_modifyitems(config, items):
    """Skip solver_required tests when HiGHS is not installed."""
    if HighsSolverAdapter().is_available():
        return
    skip_solver = pytest.mark.skip(reason="HiGHS solver (highspy) not available")
    for item in items:
        if "solver_required" in item.keywords:
            item.add_marker(skip_solver)


@pytest.fixture(autouse=True)
def no_leaked_solve_processes():
    """Every test must leave no live solve process behind."""
    yield
    assert multiprocessing.active_children() == []


@pytest.fixture
def three_by_four_matrix():
    """Three candidate sites, four destinations; C cannot reach D4.

    Distances derived at $2.50/mile:
        A: 0.4, 0.8, 1.2, 1.2
        B: 1.6, 1.2, 0.8, 0.4
        C: 0.8, 0.8, 0.8, -
    """
    return CostMatrix(
        rows=["A", "B", "C"],
        cols=["D1", "D2", "D3", "D4"],
        cost=[
            [1.0, 2.0, 3.0, 3.0],
            [4.0, 3.0, 2.0, 1.0],
            [2.0, 2.0, 2.0, UNREACHABLE_COST],
        ],
    )


@pytest.fixture
def three_year_forecast():
    """Three-year horizon: 1000, 1100, 1200 units."""
    return Forecast.from_totals({2025: 1000.0, 2026: 1100.0, 2027: 1200.0}, name="Test horizon")


@pytest.fixture
def even_baseline():
    """Equal baseline shares across the four destinations."""
    return {"D1": 25.0, "D2": 25.0, "D3": 25.0, "D4": 25.0}


@pytest.fixture
def default_params():
    """Default facility parameters."""
    return FacilityParams()


@pytest.fixture
def large_matrix():
    """20 sites x 100 destinations, every pair reachable."""
    sites = [f"S{i:02d}" for i in range(20)]
    dests = [f"D{j:03d}" for j in range(100)]
    return CostMatrix(
        rows=sites,
        cols=dests,
        cost=[[1.0 + ((i * 7 + j * 3) % 11) for j in range(len(dests))] for i in range(len(sites))],
    )
