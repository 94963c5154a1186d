"""Reduce per-year results to horizon totals."""

from typing import Sequence
import logging

from .result_schema import MultiYearResult, MultiYearTotals, OptimizationResult

logger = logging.getLogger(__name__)


def aggregate_years(open_facilities: Sequence[str], year_results: Sequence[OptimizationResult]) -> MultiYearResult:
    """
    Combine per-year results into a MultiYearResult.

    Service level is demand-weighted across years:
    sum_t(service_t * served_t) / sum_t(served_t). Average cost per unit is
    transportation cost over demand served; fixed facility cost is reported
    separately in total_fixed_cost.

    Args:
        open_facilities: Sites open for the whole horizon
        year_results: Per-year results in horizon order

    Returns:
        MultiYearResult (validated: identical open set every year)
    """
    transport = sum(r.network_metrics.total_transportation_cost for r in year_results)
    fixed = sum(r.network_metrics.fixed_facility_cost for r in year_results)
    served = sum(r.network_metrics.total_demand_served for r in year_results)
    weighted_service = sum(
        r.network_metrics.service_level_achievement * r.network_metrics.total_demand_served
        for r in year_results
    )

    totals = MultiYearTotals(
        total_transportation_cost=transport,
        total_fixed_cost=fixed,
        total_cost=transport + fixed,
        total_demand=served,
        weighted_service_level=min(weighted_service / served, 1.0) if served > 0 else 0.0,
        avg_cost_per_unit=transport / served if served > 0 else 0.0,
    )
    logger.info(
        f"Horizon totals: {len(year_results)} years, {served:,.0f} units, "
        f"${totals.total_cost:,.2f} total cost"
    )
    return MultiYearResult(
        open_facilities=list(open_facilities),
        per_year=list(year_results),
        totals=totals,
    )
