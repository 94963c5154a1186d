"""Pydantic schemas for fixed-lease optimization results.

This module defines the contract between the optimizer and its callers.
Results are frozen once compiled; callers serialize them with
model_dump(mode="json") or flatten them with netlease.analysis.result_tables.

Design Principles:
1. Fail Fast: inconsistent results raise ValidationError at construction
2. Immutable: compiled results cannot be edited by callers
3. Cost vocabulary: "transportation cost" is unit_cost x demand; fixed
   facility cost is reported separately and total_cost is their sum
"""

from __future__ import annotations

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator


# ============================================================================
# Per-year structures
# ============================================================================

class AssignmentResult(BaseModel):
    """Demand of one destination served by one facility in one year."""
    facility: str = Field(..., description="Serving facility site id")
    destination: str = Field(..., description="Destination id")
    year: int = Field(..., description="Planning year")
    demand: float = Field(..., ge=0, description="Units shipped")
    unit_cost: float = Field(..., ge=0, description="Cost per unit ($/unit)")
    distance: float = Field(..., ge=0, description="Distance (miles), measured or approximated")
    cost: float = Field(..., ge=0, description="unit_cost x demand ($)")
    within_service_limit: bool = Field(..., description="distance <= max_distance_miles")

    model_config = ConfigDict(frozen=True)


class FacilityMetrics(BaseModel):
    """Aggregates for one open facility in one year."""
    facility: str
    destinations_served: int = Field(..., ge=0)
    demand_served: float = Field(..., ge=0, description="Units shipped from this facility")
    capacity: float = Field(..., ge=0, description="Annual capacity (units)")
    utilization: float = Field(..., ge=0, description="demand_served / capacity")
    average_distance: float = Field(..., ge=0, description="Mean distance over destinations served")
    total_cost: float = Field(..., ge=0, description="Transportation cost ($)")
    cost_per_unit: float = Field(..., ge=0)

    model_config = ConfigDict(frozen=True)


class NetworkMetrics(BaseModel):
    """Network-wide aggregates for one year."""
    service_level_achievement: float = Field(..., ge=0, le=1, description="Demand share within service distance")
    weighted_avg_distance: float = Field(..., ge=0, description="Demand-weighted mean distance (miles)")
    avg_facility_utilization: float = Field(..., ge=0)
    network_utilization: float = Field(..., ge=0, description="Demand served / open capacity")
    avg_cost_per_unit: float = Field(..., ge=0)
    destinations_per_facility: float = Field(..., ge=0)
    total_transportation_cost: float = Field(..., ge=0)
    fixed_facility_cost: float = Field(..., ge=0, description="Open facilities x fixed cost")
    total_cost: float = Field(..., ge=0, description="Transportation + fixed facility cost")
    demand_within_service_limit: float = Field(..., ge=0)
    total_demand_served: float = Field(..., ge=0)
    facilities_opened: int = Field(..., ge=0)
    total_capacity_available: float = Field(..., ge=0)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode='after')
    def validate_total_cost(self):
        """Validate that total_cost equals transportation + fixed cost."""
        component_sum = self.total_transportation_cost + self.fixed_facility_cost
        if abs(self.total_cost - component_sum) > 1e-6 * max(1.0, component_sum):
            raise ValueError(
                f"total_cost ({self.total_cost:.2f}) does not match sum of components ({component_sum:.2f})"
            )
        return self


class OptimizationSummary(BaseModel):
    """Solver-level summary attached to each year."""
    status: str = Field(..., description="'optimal' or 'feasible'")
    objective_value: Optional[float] = Field(None, description="Objective of the joint multi-year solve")
    solve_time_seconds: float = Field(default=0.0, ge=0)
    facilities_opened: int = Field(..., ge=0)
    total_demand_served: float = Field(..., ge=0)
    total_transportation_cost: float = Field(..., ge=0)

    model_config = ConfigDict(frozen=True)


class OptimizationResult(BaseModel):
    """Decoded solution for one planning year."""
    year: int
    open_facilities: List[str] = Field(..., description="Open sites (identical for every year)")
    assignments: List[AssignmentResult] = Field(default_factory=list)
    facility_metrics: List[FacilityMetrics] = Field(default_factory=list)
    network_metrics: NetworkMetrics
    summary: OptimizationSummary

    model_config = ConfigDict(frozen=True)

    @model_validator(mode='after')
    def validate_assignments_use_open_facilities(self):
        """Every assignment must come from an open facility in this year."""
        open_set = set(self.open_facilities)
        for assignment in self.assignments:
            if assignment.facility not in open_set:
                raise ValueError(
                    f"assignment {assignment.destination} <- {assignment.facility} uses a closed facility"
                )
            if assignment.year != self.year:
                raise ValueError(
                    f"assignment for {assignment.destination} is for year {assignment.year}, not {self.year}"
                )
        return self

    def demand_by_facility(self) -> dict:
        return {metric.facility: metric.demand_served for metric in self.facility_metrics}


# ============================================================================
# Horizon structures
# ============================================================================

class MultiYearTotals(BaseModel):
    """Horizon totals across all years."""
    total_transportation_cost: float = Field(..., ge=0)
    total_fixed_cost: float = Field(..., ge=0)
    total_cost: float = Field(..., ge=0)
    total_demand: float = Field(..., ge=0)
    weighted_service_level: float = Field(..., ge=0, le=1, description="Demand-weighted across years")
    avg_cost_per_unit: float = Field(..., ge=0, description="total_transportation_cost / total_demand")

    model_config = ConfigDict(frozen=True)


class MultiYearResult(BaseModel):
    """Complete fixed-lease solution over the planning horizon."""
    open_facilities: List[str]
    per_year: List[OptimizationResult]
    totals: MultiYearTotals

    model_config = ConfigDict(frozen=True)

    @model_validator(mode='after')
    def validate_fixed_lease(self):
        """Open facilities are identical in every year and years increase."""
        expected = sorted(self.open_facilities)
        for result in self.per_year:
            if sorted(result.open_facilities) != expected:
                raise ValueError(
                    f"year {result.year} opens {sorted(result.open_facilities)}, "
                    f"horizon opens {expected}"
                )
        years = [result.year for result in self.per_year]
        if years != sorted(set(years)):
            raise ValueError(f"per-year results must be in strictly increasing year order, got {years}")
        return self

    @property
    def years(self) -> List[int]:
        return [result.year for result in self.per_year]

    def for_year(self, year: int) -> OptimizationResult:
        """Result for one year.

        Raises:
            KeyError: If the year was not optimized
        """
        for result in self.per_year:
            if result.year == year:
                return result
        raise KeyError(f"no result for year {year}")
