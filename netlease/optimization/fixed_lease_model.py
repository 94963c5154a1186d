"""Multi-year fixed-lease facility location and assignment model.

Decides which candidate sites to lease for the whole planning horizon and how
every destination's demand is assigned to an open site in every year.

Decision variables:
- open[i]: 1 if site i is leased (shared by every year)
- assign[i, j, t]: 1 if destination j is served from site i in year t
  (only for reachable pairs; unreachable pairs have no variable)

Objective (minimize):
    sum_i   w_cost * fixed_cost * |years| * open[i]
  + sum_ijt w_cost * unit_cost[i,j] * demand[j,t] * assign[i,j,t]
  + sum_ijt w_service * penalty_rate * max(0, dist[i,j] - max_dist) * demand[j,t] * assign[i,j,t]

Constraints:
1. facility_count: min_facilities <= sum_i open[i] <= max_facilities
2. serve_once: sum_i assign[i,j,t] == 1 for every (j, t)
3. open_link: assign[i,j,t] <= open[i]
4. capacity: sum_j demand[j,t] * assign[i,j,t] <= capacity[i] * open[i]
5. service_level: demand assigned within max_dist over the whole horizon
   >= service_level_requirement * total horizon demand
6. mandatory_open: open[i] == 1 for mandatory sites

Rules are module-level functions that only read model Params, so a built
model pickles into the isolated solve process. Coefficient Params are mutable
so terms with a zero coefficient stay in the expression instead of folding a
constraint into a constant.
"""

from typing import Dict, List, Mapping, Optional
import logging

from pyomo.environ import (
    Binary,
    ConcreteModel,
    Constraint,
    NonNegativeIntegers,
    NonNegativeReals,
    Objective,
    Param,
    Set,
    Var,
    minimize,
)

from ..models.cost_matrix import CapacityMap, CostMatrix, DemandMap
from ..models.facility_params import FacilityParams
from ..models.forecast import Forecast
from .aggregator import aggregate_years
from .base_model import BaseOptimizationModel
from .complexity_guard import ComplexityLimits
from .demand_scaler import build_demand_by_year
from .exceptions import PlanningValidationError
from .result_compiler import ResultCompiler
from .result_schema import MultiYearResult
from .solver_adapter import BaseSolverAdapter, SolverOutput
from .supervisor import SupervisorConfig

logger = logging.getLogger(__name__)


# ============================================================================
# Model rules
# ============================================================================

def _facility_count_rule(m):
    return (m.min_facilities, sum(m.open[i] for i in m.facilities), m.max_facilities)


def _serve_once_rule(m, j, t):
    if len(m.sources[j]) == 0:
        # Unreachable destination; validation guarantees it has no demand
        return Constraint.Skip
    return sum(m.assign[i, j, t] for i in m.sources[j]) == 1


def _open_link_rule(m, i, j, t):
    return m.assign[i, j, t] <= m.open[i]


def _capacity_rule(m, i, t):
    if len(m.reachable[i]) == 0:
        return Constraint.Skip
    return sum(m.demand[j, t] * m.assign[i, j, t] for j in m.reachable[i]) <= m.capacity[i] * m.open[i]


def _service_level_rule(m):
    within = sum(
        m.demand[j, t] * m.within_service[i, j] * m.assign[i, j, t]
        for (i, j, t) in m.assignment_index
    )
    return within >= m.required_service_volume


def _mandatory_open_rule(m, i):
    return m.open[i] == 1


def _objective_rule(m):
    fixed = sum(m.fixed_charge * m.open[i] for i in m.facilities)
    variable = sum(m.assign_cost[i, j, t] * m.assign[i, j, t] for (i, j, t) in m.assignment_index)
    return fixed + variable


# ============================================================================
# Model
# ============================================================================

class FixedLeaseModel(BaseOptimizationModel):
    """
    Fixed-lease network design over a multi-year horizon.

    All years are solved jointly as one model because they share the open
    decision.

    Example:
        model = FixedLeaseModel(
            params=FacilityParams(max_facilities=3),
            cost_matrix=matrix,
            forecast=Forecast.from_totals({2025: 1000, 2026: 1200}),
            baseline_demand={"D1": 400, "D2": 600},
        )
        outcome = model.solve()
        if outcome.is_feasible():
            print(outcome.solution.open_facilities)
    """

    def __init__(
        self,
        params: FacilityParams,
        cost_matrix: CostMatrix,
        forecast: Forecast,
        baseline_demand: Optional[Mapping[str, float]] = None,
        demand_by_year: Optional[Mapping[int, Mapping[str, float]]] = None,
        capacity: Optional[CapacityMap] = None,
        solver: Optional[BaseSolverAdapter] = None,
        limits: Optional[ComplexityLimits] = None,
        supervisor_config: Optional[SupervisorConfig] = None,
    ):
        """
        Initialize fixed-lease model.

        Args:
            params: Facility parameters
            cost_matrix: Unit costs between candidate sites and destinations
            forecast: Planning horizon with annual demand totals
            baseline_demand: Baseline distribution used to spread forecast totals
            demand_by_year: Explicit per-year demand maps (take precedence)
            capacity: Annual capacity by site (params default for missing sites)
            solver: Solver adapter (default: HiGHS)
            limits: Complexity ceilings
            supervisor_config: Isolated solve limits

        Raises:
            PlanningValidationError: If demand inputs are inconsistent
        """
        super().__init__(solver=solver, limits=limits, supervisor_config=supervisor_config)
        self.params = params
        self.cost_matrix = cost_matrix
        self.forecast = forecast
        self.capacity = dict(capacity or {})

        self.sites: List[str] = list(cost_matrix.rows)
        self.destinations: List[str] = list(cost_matrix.cols)
        self.years: List[int] = forecast.year_numbers
        self.demand_by_year: Dict[int, DemandMap] = build_demand_by_year(
            forecast,
            self.destinations,
            baseline_demand=baseline_demand,
            demand_by_year=demand_by_year,
        )

        unknown_sites = sorted(site for site in self.capacity if site not in set(self.sites))
        if unknown_sites:
            raise PlanningValidationError(
                f"capacity map references sites missing from the cost matrix: {unknown_sites[:5]}"
            )

    def site_capacity(self, site: str) -> float:
        return self.params.capacity_for(site, self.capacity)

    def validate_inputs(self) -> None:
        """
        Fail fast on contradictory inputs before any model construction.

        Raises:
            PlanningValidationError: With an explanation that guides relaxation
        """
        params = self.params
        n_sites = len(self.sites)

        if params.min_facilities > n_sites:
            raise PlanningValidationError(
                f"infeasible: min_facilities={params.min_facilities} exceeds {n_sites} candidate sites"
            )

        unknown = sorted(params.mandatory_facility_ids - set(self.sites))
        if unknown:
            raise PlanningValidationError(
                f"mandatory facilities are not candidate sites: {unknown}"
            )

        for dest in self.destinations:
            if self.cost_matrix.reachable_sites(dest):
                continue
            years_with_demand = [t for t in self.years if self.demand_by_year[t][dest] > 0]
            if years_with_demand:
                raise PlanningValidationError(
                    f"infeasible: destination '{dest}' has demand in {years_with_demand} "
                    f"but no candidate site can reach it"
                )

    def build_model(self) -> ConcreteModel:
        """
        Build the joint multi-year Pyomo model.

        Returns:
            ConcreteModel with open/assign binaries, constraints and objective
        """
        self.validate_inputs()
        params = self.params
        matrix = self.cost_matrix

        arcs = [
            (site, dest)
            for site in self.sites
            for dest in self.destinations
            if matrix.is_reachable(site, dest)
        ]
        assignment_index = [(site, dest, t) for (site, dest) in arcs for t in self.years]

        distance = {(site, dest): matrix.distance(site, dest, params.cost_per_mile) for (site, dest) in arcs}
        total_demand = sum(sum(demand.values()) for demand in self.demand_by_year.values())

        assign_cost = {}
        for (site, dest, t) in assignment_index:
            demand = self.demand_by_year[t][dest]
            excess_miles = max(0.0, distance[site, dest] - params.max_distance_miles)
            assign_cost[site, dest, t] = (
                params.weight_cost * matrix.unit_cost(site, dest) * demand
                + params.weight_service_level * params.service_penalty_rate * excess_miles * demand
            )

        model = ConcreteModel(name="FixedLeaseNetwork")

        # Sets
        model.facilities = Set(initialize=self.sites, ordered=True)
        model.destinations = Set(initialize=self.destinations, ordered=True)
        model.years = Set(initialize=self.years, ordered=True)
        model.arcs = Set(dimen=2, initialize=arcs, ordered=True)
        model.assignment_index = Set(dimen=3, initialize=assignment_index, ordered=True)
        model.sources = Set(
            model.destinations,
            initialize={dest: [s for (s, d) in arcs if d == dest] for dest in self.destinations},
        )
        model.reachable = Set(
            model.facilities,
            initialize={site: [d for (s, d) in arcs if s == site] for site in self.sites},
        )
        model.mandatory = Set(
            initialize=[site for site in self.sites if site in params.mandatory_facility_ids],
            ordered=True,
        )

        # Parameters
        model.demand = Param(
            model.destinations, model.years,
            initialize={(dest, t): self.demand_by_year[t][dest] for dest in self.destinations for t in self.years},
            within=NonNegativeReals,
            mutable=True,
        )
        model.capacity = Param(
            model.facilities,
            initialize={site: self.site_capacity(site) for site in self.sites},
            within=NonNegativeReals,
            mutable=True,
        )
        model.within_service = Param(
            model.arcs,
            initialize={arc: int(distance[arc] <= params.max_distance_miles) for arc in arcs},
            within=Binary,
            mutable=True,
        )
        model.assign_cost = Param(
            model.assignment_index, initialize=assign_cost, within=NonNegativeReals, mutable=True
        )
        model.fixed_charge = Param(
            initialize=params.weight_cost * params.fixed_cost_per_facility * len(self.years),
            within=NonNegativeReals,
            mutable=True,
        )
        model.required_service_volume = Param(
            initialize=params.service_level_requirement * total_demand,
            within=NonNegativeReals,
            mutable=True,
        )
        model.min_facilities = Param(initialize=params.min_facilities, within=NonNegativeIntegers)
        model.max_facilities = Param(initialize=params.max_facilities, within=NonNegativeIntegers)

        # Variables
        model.open = Var(model.facilities, within=Binary, initialize=0)
        model.assign = Var(model.assignment_index, within=Binary, initialize=0)

        # Constraints
        model.facility_count = Constraint(rule=_facility_count_rule)
        model.serve_once = Constraint(model.destinations, model.years, rule=_serve_once_rule)
        model.open_link = Constraint(model.assignment_index, rule=_open_link_rule)
        model.capacity_limit = Constraint(model.facilities, model.years, rule=_capacity_rule)
        model.service_level = Constraint(rule=_service_level_rule)
        model.mandatory_open = Constraint(model.mandatory, rule=_mandatory_open_rule)

        model.obj = Objective(rule=_objective_rule, sense=minimize)

        logger.debug(
            f"Built fixed-lease model: {len(self.sites)} sites, {len(self.destinations)} destinations, "
            f"{len(self.years)} years, {len(arcs)} reachable pairs, {len(assignment_index)} assign variables"
        )
        return model

    def extract_solution(self, model: ConcreteModel, output: SolverOutput) -> MultiYearResult:
        """Decode every year and reduce to horizon totals."""
        compiler = ResultCompiler(
            model=model,
            params=self.params,
            cost_matrix=self.cost_matrix,
            capacity=self.capacity,
        )
        per_year = [compiler.compile_year(output, t) for t in self.years]
        return aggregate_years(compiler.open_facilities(), per_year)

    def infeasibility_message(self, output: SolverOutput) -> str:
        """Explain an infeasible solve with the most likely binding limit."""
        params = self.params
        largest = sorted((self.site_capacity(site) for site in self.sites), reverse=True)
        usable_capacity = sum(largest[:params.max_facilities])

        for t in self.years:
            year_demand = sum(self.demand_by_year[t].values())
            if year_demand > usable_capacity:
                return (
                    f"infeasible: {t} demand of {year_demand:,.0f} units exceeds the capacity of "
                    f"the {min(params.max_facilities, len(self.sites))} largest sites "
                    f"({usable_capacity:,.0f} units). Increase max_facilities or capacity."
                )

        return (
            f"infeasible: no facility set satisfies capacity, facility count "
            f"({params.min_facilities}-{params.max_facilities}) and the "
            f"{params.service_level_requirement:.0%} service level within "
            f"{params.max_distance_miles:,.0f} miles (termination: {output.termination}). "
            f"Relax service_level_requirement, max_distance_miles or capacity."
        )

    def get_solution_summary(self) -> str:
        """Human-readable summary of the last solve."""
        if self.outcome is None:
            return "Model has not been solved"
        if not self.outcome.success:
            return str(self.outcome)

        solution = self.solution
        lines = [
            str(self.outcome),
            f"Open facilities: {', '.join(solution.open_facilities)}",
        ]
        for result in solution.per_year:
            metrics = result.network_metrics
            lines.append(
                f"  {result.year}: demand {metrics.total_demand_served:,.0f}, "
                f"transport ${metrics.total_transportation_cost:,.2f}, "
                f"service {metrics.service_level_achievement:.1%}"
            )
        totals = solution.totals
        lines.append(
            f"Horizon: ${totals.total_cost:,.2f} total, "
            f"{totals.weighted_service_level:.1%} weighted service level"
        )
        return "\n".join(lines)


def optimize_fixed_lease(
    params: FacilityParams,
    cost_matrix: CostMatrix,
    forecast: Forecast,
    baseline_demand: Optional[Mapping[str, float]] = None,
    demand_by_year: Optional[Mapping[int, Mapping[str, float]]] = None,
    capacity: Optional[CapacityMap] = None,
    solver: Optional[BaseSolverAdapter] = None,
    limits: Optional[ComplexityLimits] = None,
    supervisor_config: Optional[SupervisorConfig] = None,
):
    """
    Build and solve a fixed-lease model in one call.

    Returns:
        SolveOutcome; see FixedLeaseModel.solve()
    """
    model = FixedLeaseModel(
        params=params,
        cost_matrix=cost_matrix,
        forecast=forecast,
        baseline_demand=baseline_demand,
        demand_by_year=demand_by_year,
        capacity=capacity,
        solver=solver,
        limits=limits,
        supervisor_config=supervisor_config,
    )
    return model.solve()
