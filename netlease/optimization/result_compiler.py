"""Decode a solved fixed-lease model into per-year results."""

from typing import Dict, List, Mapping, Optional
import logging

from pyomo.environ import ConcreteModel, value

from .. import constants
from ..models.cost_matrix import CostMatrix
from ..models.facility_params import FacilityParams
from .exceptions import InfeasibleSolutionError
from .result_schema import (
    AssignmentResult,
    FacilityMetrics,
    NetworkMetrics,
    OptimizationResult,
    OptimizationSummary,
)
from .solver_adapter import SolverOutput

logger = logging.getLogger(__name__)


def _is_active(var) -> bool:
    return var.value is not None and var.value > constants.BINARY_ACTIVE_THRESHOLD


class ResultCompiler:
    """
    Turns solver values loaded into a model into OptimizationResult records.

    Binary values above 0.5 are read as active. Demand is read from the
    model's demand parameter so results match exactly what was optimized.
    """

    def __init__(
        self,
        model: ConcreteModel,
        params: FacilityParams,
        cost_matrix: CostMatrix,
        capacity: Optional[Mapping[str, float]] = None,
    ):
        self.model = model
        self.params = params
        self.cost_matrix = cost_matrix
        self.capacity = dict(capacity or {})

    def open_facilities(self) -> List[str]:
        """Open sites in candidate order."""
        return [site for site in self.model.facilities if _is_active(self.model.open[site])]

    def compile_year(self, output: SolverOutput, year: int) -> OptimizationResult:
        """
        Decode one planning year.

        Args:
            output: Solver output the model values were loaded from
            year: Planning year to decode

        Returns:
            OptimizationResult for the year

        Raises:
            InfeasibleSolutionError: If the solver found no feasible solution
        """
        if not output.feasible:
            raise InfeasibleSolutionError(
                f"Cannot decode year {year}: solver returned no feasible solution "
                f"(termination: {output.termination})"
            )
        if year not in self.model.years:
            raise KeyError(f"year {year} is not part of the model horizon")

        model = self.model
        params = self.params
        matrix = self.cost_matrix
        open_sites = self.open_facilities()

        assignments: List[AssignmentResult] = []
        served_by: Dict[str, List[AssignmentResult]] = {site: [] for site in open_sites}
        served = 0.0
        within = 0.0
        distance_weighted = 0.0
        transport_cost = 0.0

        for (site, dest) in model.arcs:
            if not _is_active(model.assign[site, dest, year]):
                continue
            demand = value(model.demand[dest, year])
            unit_cost = matrix.unit_cost(site, dest)
            distance = matrix.distance(site, dest, params.cost_per_mile)
            within_limit = distance <= params.max_distance_miles

            assignment = AssignmentResult(
                facility=site,
                destination=dest,
                year=year,
                demand=demand,
                unit_cost=unit_cost,
                distance=distance,
                cost=unit_cost * demand,
                within_service_limit=within_limit,
            )
            assignments.append(assignment)
            served_by.setdefault(site, []).append(assignment)

            served += demand
            transport_cost += assignment.cost
            distance_weighted += distance * demand
            if within_limit:
                within += demand

        facility_metrics = [self._facility_metrics(site, served_by[site]) for site in open_sites]
        total_capacity = sum(metric.capacity for metric in facility_metrics)
        n_open = len(open_sites)
        fixed_cost = params.fixed_cost_per_facility * n_open

        network_metrics = NetworkMetrics(
            service_level_achievement=min(within / served, 1.0) if served > 0 else 0.0,
            weighted_avg_distance=distance_weighted / served if served > 0 else 0.0,
            avg_facility_utilization=(
                sum(metric.utilization for metric in facility_metrics) / n_open if n_open else 0.0
            ),
            network_utilization=served / total_capacity if total_capacity > 0 else 0.0,
            avg_cost_per_unit=transport_cost / served if served > 0 else 0.0,
            destinations_per_facility=len(assignments) / n_open if n_open else 0.0,
            total_transportation_cost=transport_cost,
            fixed_facility_cost=fixed_cost,
            total_cost=transport_cost + fixed_cost,
            demand_within_service_limit=within,
            total_demand_served=served,
            facilities_opened=n_open,
            total_capacity_available=total_capacity,
        )

        summary = OptimizationSummary(
            status="optimal" if output.is_optimal() else "feasible",
            objective_value=output.objective,
            solve_time_seconds=output.solve_time_seconds,
            facilities_opened=n_open,
            total_demand_served=served,
            total_transportation_cost=transport_cost,
        )

        logger.debug(
            f"Year {year}: {len(assignments)} assignments, {served:,.0f} units, "
            f"service {network_metrics.service_level_achievement:.1%}"
        )
        return OptimizationResult(
            year=year,
            open_facilities=open_sites,
            assignments=assignments,
            facility_metrics=facility_metrics,
            network_metrics=network_metrics,
            summary=summary,
        )

    def _facility_metrics(self, site: str, served: List[AssignmentResult]) -> FacilityMetrics:
        demand = sum(a.demand for a in served)
        cost = sum(a.cost for a in served)
        capacity = self.params.capacity_for(site, self.capacity)
        return FacilityMetrics(
            facility=site,
            destinations_served=len(served),
            demand_served=demand,
            capacity=capacity,
            utilization=demand / capacity if capacity > 0 else 0.0,
            average_distance=sum(a.distance for a in served) / len(served) if served else 0.0,
            total_cost=cost,
            cost_per_unit=cost / demand if demand > 0 else 0.0,
        )
