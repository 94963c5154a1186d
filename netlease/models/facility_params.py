"""Facility network parameters for the fixed-lease optimizer."""

from typing import FrozenSet
from pydantic import BaseModel, ConfigDict, Field, model_validator

from .. import constants


class FacilityParams(BaseModel):
    """
    Configuration of the facility-location problem.

    Every field has a default, so partial configuration is valid.

    Attributes:
        fixed_cost_per_facility: Fixed lease cost per open facility per year ($)
        cost_per_mile: Transport $/mile used to approximate distance from cost
        service_level_requirement: Share of demand that must lie within max_distance_miles
        max_distance_miles: Service distance threshold (miles)
        min_facilities: Minimum number of open facilities
        max_facilities: Maximum number of open facilities
        max_capacity_per_facility: Capacity used for sites missing from the capacity map
        mandatory_facility_ids: Sites that must be open
        weight_cost: Objective weight on fixed + transport cost
        weight_service_level: Objective weight on the distance penalty
        service_penalty_rate: Penalty per mile beyond max_distance_miles per unit
    """

    fixed_cost_per_facility: float = Field(
        default=constants.DEFAULT_FIXED_COST_PER_FACILITY,
        description="Fixed cost per open facility per planning year ($)",
        ge=0
    )
    cost_per_mile: float = Field(
        default=constants.DEFAULT_COST_PER_MILE,
        description="Cost per mile, used to derive distance from unit cost ($/mile)",
        ge=0
    )
    service_level_requirement: float = Field(
        default=constants.DEFAULT_SERVICE_LEVEL_REQUIREMENT,
        description="Required share of demand within the service distance",
        ge=0,
        le=1
    )
    max_distance_miles: float = Field(
        default=constants.DEFAULT_MAX_DISTANCE_MILES,
        description="Service distance threshold (miles)",
        ge=0
    )
    min_facilities: int = Field(
        default=constants.DEFAULT_MIN_FACILITIES,
        description="Minimum facilities to open",
        ge=0
    )
    max_facilities: int = Field(
        default=constants.DEFAULT_MAX_FACILITIES,
        description="Maximum facilities to open",
        ge=0
    )
    max_capacity_per_facility: float = Field(
        default=constants.DEFAULT_CAPACITY_PER_FACILITY,
        description="Default annual capacity for sites absent from the capacity map (units)",
        ge=0
    )
    mandatory_facility_ids: FrozenSet[str] = Field(
        default_factory=frozenset,
        description="Sites that must be opened"
    )
    weight_cost: float = Field(
        default=constants.DEFAULT_WEIGHT_COST,
        description="Objective weight on cost terms",
        ge=0
    )
    weight_service_level: float = Field(
        default=constants.DEFAULT_WEIGHT_SERVICE_LEVEL,
        description="Objective weight on the service distance penalty",
        ge=0
    )
    service_penalty_rate: float = Field(
        default=constants.SERVICE_PENALTY_RATE,
        description="Penalty per excess mile per unit shipped",
        ge=0
    )

    model_config = ConfigDict(frozen=True)

    @model_validator(mode='after')
    def validate_facility_bounds(self):
        """Reject contradictory facility-count settings."""
        if self.min_facilities > self.max_facilities:
            raise ValueError(
                f"min_facilities ({self.min_facilities}) exceeds max_facilities ({self.max_facilities})"
            )
        if len(self.mandatory_facility_ids) > self.max_facilities:
            raise ValueError(
                f"{len(self.mandatory_facility_ids)} mandatory facilities exceed "
                f"max_facilities ({self.max_facilities})"
            )
        return self

    def capacity_for(self, site: str, capacity_map=None) -> float:
        """Capacity of a site, falling back to max_capacity_per_facility."""
        if capacity_map and site in capacity_map:
            return float(capacity_map[site])
        return self.max_capacity_per_facility

    def __str__(self) -> str:
        """String representation."""
        return (
            f"FacilityParams(facilities {self.min_facilities}-{self.max_facilities}, "
            f"service {self.service_level_requirement:.0%} within {self.max_distance_miles:,.0f} mi)"
        )
