"""Tests for per-year demand scaling."""

import math

import pytest

from netlease.models import Forecast
from netlease.optimization import (
    PlanningValidationError,
    build_demand_by_year,
    scale_demand_from_baseline,
)

DESTINATIONS = ["D1", "D2", "D3", "D4"]


class TestScaleDemandFromBaseline:
    """Tests for baseline share redistribution."""

    def test_keeps_baseline_shares(self):
        """Test that shares are preserved and the total matches."""
        demand = scale_demand_from_baseline({"D1": 10.0, "D2": 30.0, "D3": 60.0, "D4": 0.0}, 500.0, DESTINATIONS)
        assert demand == pytest.approx({"D1": 50.0, "D2": 150.0, "D3": 300.0, "D4": 0.0})
        assert sum(demand.values()) == pytest.approx(500.0, rel=1e-6)

    def test_missing_destination_gets_zero(self):
        """Test that destinations absent from the baseline get no demand."""
        demand = scale_demand_from_baseline({"D1": 1.0, "D2": 1.0}, 100.0, DESTINATIONS)
        assert demand["D3"] == 0.0
        assert demand["D4"] == 0.0
        assert set(demand) == set(DESTINATIONS)

    def test_even_split_without_baseline(self):
        """Test the even split when no baseline is given."""
        demand = scale_demand_from_baseline(None, 1000.0, DESTINATIONS)
        assert demand == pytest.approx({dest: 250.0 for dest in DESTINATIONS})

    def test_even_split_for_zero_baseline(self):
        """Test the even split when the baseline totals zero."""
        demand = scale_demand_from_baseline({"D1": 0.0, "D2": 0.0}, 100.0, DESTINATIONS)
        assert demand == pytest.approx({dest: 25.0 for dest in DESTINATIONS})

    def test_zero_total(self):
        """Test that a zero forecast gives zero demand everywhere."""
        demand = scale_demand_from_baseline({"D1": 5.0}, 0.0, DESTINATIONS)
        assert all(qty == 0.0 for qty in demand.values())

    def test_negative_baseline_rejected(self):
        """Test that negative baseline demand is rejected."""
        with pytest.raises(PlanningValidationError, match="negative"):
            scale_demand_from_baseline({"D1": -5.0, "D2": 10.0}, 100.0, DESTINATIONS)

    @pytest.mark.parametrize("qty", [math.nan, math.inf])
    def test_non_finite_baseline_rejected(self, qty):
        """Test that a NaN or infinite baseline value cannot poison the shares."""
        with pytest.raises(PlanningValidationError, match="non-finite"):
            scale_demand_from_baseline({"D1": qty, "D2": 1.0}, 100.0, DESTINATIONS)

    def test_non_finite_total_rejected(self):
        """Test that the year total must be finite."""
        with pytest.raises(PlanningValidationError, match="finite"):
            scale_demand_from_baseline(None, math.inf, DESTINATIONS)

    def test_unknown_destination_rejected(self):
        """Test that baseline destinations must exist in the cost matrix."""
        with pytest.raises(PlanningValidationError, match="missing from the cost matrix"):
            scale_demand_from_baseline({"D9": 5.0}, 100.0, DESTINATIONS)

    def test_no_destinations(self):
        """Test positive demand with nowhere to put it."""
        with pytest.raises(PlanningValidationError, match="no destinations"):
            scale_demand_from_baseline(None, 100.0, [])
        assert scale_demand_from_baseline(None, 0.0, []) == {}


class TestBuildDemandByYear:
    """Tests for the per-year demand maps."""

    def test_every_year_matches_forecast_total(self, three_year_forecast):
        """Test that each scaled year sums to its forecast total."""
        baseline = {"D1": 3.0, "D2": 1.0, "D3": 4.0, "D4": 1.5}
        result = build_demand_by_year(three_year_forecast, DESTINATIONS, baseline_demand=baseline)

        assert list(result) == [2025, 2026, 2027]
        for row in three_year_forecast.years:
            assert sum(result[row.year].values()) == pytest.approx(row.annual_demand_units, rel=1e-6)
            assert all(qty >= 0 for qty in result[row.year].values())

    def test_override_takes_precedence(self, three_year_forecast):
        """Test that an explicit map replaces the scaled one for its year only."""
        result = build_demand_by_year(
            three_year_forecast,
            DESTINATIONS,
            baseline_demand={"D1": 1.0, "D2": 1.0, "D3": 1.0, "D4": 1.0},
            demand_by_year={2026: {"D1": 7.0, "D4": 3.0}},
        )
        assert result[2026] == {"D1": 7.0, "D2": 0.0, "D3": 0.0, "D4": 3.0}
        assert result[2025] == pytest.approx({dest: 250.0 for dest in DESTINATIONS})

    def test_override_validated(self, three_year_forecast):
        """Test that overrides are checked like baselines."""
        with pytest.raises(PlanningValidationError, match="demand override for 2025"):
            build_demand_by_year(three_year_forecast, DESTINATIONS, demand_by_year={2025: {"D1": -1.0}})

    def test_nan_baseline_rejected(self):
        """Test that a NaN baseline entry is rejected instead of scaling every share to NaN."""
        forecast = Forecast.from_totals({2025: 100.0})
        with pytest.raises(PlanningValidationError, match="non-finite"):
            build_demand_by_year(forecast, ["D1", "D2"], baseline_demand={"D1": math.nan, "D2": 1.0})

    def test_nan_override_rejected(self, three_year_forecast):
        """Test that explicit maps must hold finite demand."""
        with pytest.raises(PlanningValidationError, match="demand override for 2026"):
            build_demand_by_year(three_year_forecast, DESTINATIONS, demand_by_year={2026: {"D1": math.nan}})

    def test_override_outside_horizon_ignored(self, caplog):
        """Test that overrides for unknown years are ignored with a warning."""
        forecast = Forecast.from_totals({2025: 40.0})
        with caplog.at_level("WARNING"):
            result = build_demand_by_year(forecast, DESTINATIONS, demand_by_year={2030: {"D1": 1.0}})
        assert list(result) == [2025]
        assert "2030" in caplog.text
