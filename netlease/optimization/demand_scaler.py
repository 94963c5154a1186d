"""Per-year demand maps from a baseline distribution and a forecast of totals.

Each scaled year keeps the baseline's relative destination shares and sums to
that year's forecast total. Without a usable baseline the total is split
evenly across the known destinations. Explicit per-year maps win over both.
"""

import logging
import math
from typing import Dict, Mapping, Optional, Sequence

from ..models.cost_matrix import DemandMap
from ..models.forecast import Forecast
from .exceptions import PlanningValidationError

logger = logging.getLogger(__name__)


def _check_demand_map(demand: Mapping[str, float], destinations: Sequence[str], label: str) -> None:
    known = set(destinations)
    unknown = sorted(dest for dest in demand if dest not in known)
    if unknown:
        raise PlanningValidationError(
            f"{label} references destinations missing from the cost matrix: {unknown[:5]}"
        )
    invalid = sorted(dest for dest, qty in demand.items() if not math.isfinite(qty) or qty < 0)
    if invalid:
        raise PlanningValidationError(
            f"{label} has negative or non-finite demand for destinations: {invalid[:5]}"
        )


def scale_demand_from_baseline(
    baseline: Optional[Mapping[str, float]],
    total_units: float,
    destinations: Sequence[str],
) -> DemandMap:
    """Redistribute baseline shares so they sum to total_units.

    Args:
        baseline: Baseline demand by destination (None = no baseline)
        total_units: Forecast total for the year
        destinations: Known destinations, in cost-matrix column order

    Returns:
        Demand by destination for every known destination

    Raises:
        PlanningValidationError: If demand is negative or there is nowhere to put it
    """
    if not math.isfinite(total_units) or total_units < 0:
        raise PlanningValidationError(f"forecast total must be finite and non-negative, got {total_units}")
    if not destinations:
        if total_units > 0:
            raise PlanningValidationError(
                f"cannot distribute {total_units:,.0f} units: no destinations are known"
            )
        return {}

    baseline_total = 0.0
    if baseline:
        _check_demand_map(baseline, destinations, "baseline demand")
        baseline_total = sum(baseline.values())

    if baseline_total <= 0:
        even_share = total_units / len(destinations)
        return {dest: even_share for dest in destinations}

    return {
        dest: baseline.get(dest, 0.0) / baseline_total * total_units
        for dest in destinations
    }


def build_demand_by_year(
    forecast: Forecast,
    destinations: Sequence[str],
    baseline_demand: Optional[Mapping[str, float]] = None,
    demand_by_year: Optional[Mapping[int, Mapping[str, float]]] = None,
) -> Dict[int, DemandMap]:
    """Build the demand map for every forecast year.

    Args:
        forecast: Horizon and annual totals
        destinations: Known destinations, in cost-matrix column order
        baseline_demand: Optional baseline distribution used for shares
        demand_by_year: Optional explicit maps keyed by year (take precedence)

    Returns:
        {year: {destination: demand}} in horizon order
    """
    overrides = demand_by_year or {}
    result: Dict[int, DemandMap] = {}

    for row in forecast.years:
        override = overrides.get(row.year)
        if override is not None:
            _check_demand_map(override, destinations, f"demand override for {row.year}")
            result[row.year] = {dest: float(override.get(dest, 0.0)) for dest in destinations}
            logger.debug(f"Year {row.year}: using explicit demand map ({sum(override.values()):,.0f} units)")
            continue

        result[row.year] = scale_demand_from_baseline(
            baseline_demand, row.annual_demand_units, destinations
        )
        logger.debug(
            f"Year {row.year}: scaled demand to {row.annual_demand_units:,.0f} units "
            f"across {len(destinations)} destinations"
        )

    unused = sorted(set(overrides) - set(forecast.year_numbers))
    if unused:
        logger.warning(f"Ignoring demand overrides for years outside the forecast: {unused}")

    return result
