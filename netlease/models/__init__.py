"""Input data models for the fixed-lease network optimizer."""

from .forecast import Forecast, ForecastYear
from .cost_matrix import CostMatrix, DemandMap, CapacityMap, UNREACHABLE_COST
from .facility_params import FacilityParams

__all__ = [
    # Demand
    "Forecast",
    "ForecastYear",
    "DemandMap",
    # Network
    "CostMatrix",
    "CapacityMap",
    "UNREACHABLE_COST",
    # Parameters
    "FacilityParams",
]
