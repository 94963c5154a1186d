"""Site-to-destination unit cost matrix."""

import math
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

#: Cost value marking a site that cannot serve a destination
UNREACHABLE_COST = math.inf

#: Mapping destination -> demand (units) for one year
DemandMap = Dict[str, float]

#: Mapping facility site -> maximum annual throughput (units)
CapacityMap = Dict[str, float]


class CostMatrix(BaseModel):
    """
    Dense unit-cost table between candidate sites (rows) and destinations (cols).

    cost[i][j] is the $/unit cost of serving cols[j] from rows[i]. A non-finite
    entry (UNREACHABLE_COST) marks a pair that cannot be used.

    distances is optional. When it is missing, distance is approximated from
    cost as unit_cost / cost_per_mile; this is an approximation, not a
    measurement, and is only as good as cost_per_mile is representative.
    """
    rows: List[str] = Field(..., description="Candidate facility site ids")
    cols: List[str] = Field(..., description="Destination ids")
    cost: List[List[float]] = Field(..., description="Unit cost table, rows x cols")
    distances: Optional[List[List[float]]] = Field(
        None, description="Optional measured distances (miles), rows x cols"
    )

    model_config = ConfigDict(frozen=True)

    @field_validator('rows', 'cols')
    @classmethod
    def ids_must_be_unique(cls, v, info):
        if not v:
            raise ValueError(f"{info.field_name} must not be empty")
        duplicates = sorted({item for item in v if v.count(item) > 1})
        if duplicates:
            raise ValueError(f"{info.field_name} contains duplicate ids: {duplicates}")
        return v

    @model_validator(mode='after')
    def tables_must_be_rectangular(self):
        """Validate cost (and distance) tables against the row/column lists."""
        for table_name in ('cost', 'distances'):
            table = getattr(self, table_name)
            if table is None:
                continue
            if len(table) != len(self.rows):
                raise ValueError(
                    f"{table_name} has {len(table)} rows but {len(self.rows)} sites were given"
                )
            for site, line in zip(self.rows, table):
                if len(line) != len(self.cols):
                    raise ValueError(
                        f"{table_name} row for site '{site}' has {len(line)} entries, "
                        f"expected {len(self.cols)}"
                    )
                for value in line:
                    if math.isnan(value):
                        raise ValueError(f"{table_name} row for site '{site}' contains NaN")
                    if math.isfinite(value) and value < 0:
                        raise ValueError(
                            f"{table_name} row for site '{site}' contains negative value {value}"
                        )
        if self.distances is not None:
            for site, cost_line, distance_line in zip(self.rows, self.cost, self.distances):
                for dest, unit_cost, miles in zip(self.cols, cost_line, distance_line):
                    if math.isfinite(unit_cost) and not math.isfinite(miles):
                        raise ValueError(
                            f"distances for reachable pair ('{site}', '{dest}') must be finite, got {miles}"
                        )
        return self

    @property
    def shape(self):
        return len(self.rows), len(self.cols)

    def unit_cost(self, site: str, destination: str) -> float:
        """Unit cost for a (site, destination) pair."""
        return self.cost[self.rows.index(site)][self.cols.index(destination)]

    def is_reachable(self, site: str, destination: str) -> bool:
        return math.isfinite(self.unit_cost(site, destination))

    def distance(self, site: str, destination: str, cost_per_mile: float) -> float:
        """
        Distance in miles for a (site, destination) pair.

        Uses the measured distance table when supplied, otherwise
        unit_cost / cost_per_mile (unit_cost itself when cost_per_mile <= 0).
        """
        i = self.rows.index(site)
        j = self.cols.index(destination)
        if self.distances is not None:
            return self.distances[i][j]
        unit_cost = self.cost[i][j]
        if cost_per_mile > 0:
            return unit_cost / cost_per_mile
        return unit_cost

    def reachable_sites(self, destination: str) -> List[str]:
        """Sites with a finite cost to the destination, in row order."""
        j = self.cols.index(destination)
        return [site for site, line in zip(self.rows, self.cost) if math.isfinite(line[j])]

    def __str__(self) -> str:
        """String representation."""
        n_rows, n_cols = self.shape
        return f"CostMatrix {n_rows} sites x {n_cols} destinations"
