"""Tests for DataFrame views of results."""

import pytest

from netlease.analysis import assignments_table, facility_metrics_table, yearly_summary_table
from netlease.analysis.result_tables import ASSIGNMENT_COLUMNS, SUMMARY_COLUMNS
from netlease.models import FacilityParams
from netlease.optimization import FixedLeaseModel, SolverOutput
from tests.fixtures.solver_mocks import create_never_called_solver


@pytest.fixture
def solution(three_by_four_matrix, three_year_forecast, even_baseline):
    """Decoded solution with every destination served from A."""
    fixed_lease = FixedLeaseModel(
        params=FacilityParams(),
        cost_matrix=three_by_four_matrix,
        forecast=three_year_forecast,
        baseline_demand=even_baseline,
        solver=create_never_called_solver(),
    )
    model = fixed_lease.build_model()
    for site in model.facilities:
        model.open[site].set_value(1 if site == "A" else 0)
    for (site, dest, year) in model.assignment_index:
        model.assign[site, dest, year].set_value(1 if site == "A" else 0)
    return fixed_lease.extract_solution(model, SolverOutput(feasible=True, objective=0.0, termination="optimal"))


class TestResultTables:
    """Tests for the result table builders."""

    def test_assignments_table(self, solution):
        """Test one row per destination and year."""
        df = assignments_table(solution)
        assert list(df.columns) == ASSIGNMENT_COLUMNS
        assert len(df) == 12
        assert set(df['Facility']) == {"A"}
        assert df.loc[df['Year'] == 2027, 'Demand'].sum() == pytest.approx(1200.0)

    def test_facility_metrics_table(self, solution):
        """Test one row per open facility and year."""
        df = facility_metrics_table(solution)
        assert len(df) == 3
        assert list(df['Destinations Served']) == [4, 4, 4]

    def test_yearly_summary_with_totals(self, solution):
        """Test yearly rows plus the horizon total row."""
        df = yearly_summary_table(solution)
        assert list(df.columns) == SUMMARY_COLUMNS
        assert list(df['Year']) == [2025, 2026, 2027, 'Total']

        total = df.iloc[-1]
        assert total['Transportation Cost'] == pytest.approx(7425.0)
        assert total['Fixed Cost'] == pytest.approx(300_000.0)
        assert total['Demand Served'] == pytest.approx(3300.0)
        assert total['Service Level'] == pytest.approx(1.0)

    def test_yearly_summary_without_totals(self, solution):
        """Test that the total row is optional."""
        df = yearly_summary_table(solution, include_totals=False)
        assert len(df) == 3
