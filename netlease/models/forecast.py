"""Forecast data model for multi-year demand planning."""

from typing import Dict, List
from pydantic import BaseModel, ConfigDict, Field, field_validator


class ForecastYear(BaseModel):
    """
    Forecasted network-wide demand for one planning year.

    Attributes:
        year: Calendar year of the forecast
        annual_demand_units: Total demand across all destinations (units)
    """
    year: int = Field(..., description="Planning year")
    annual_demand_units: float = Field(
        ..., description="Total forecast demand (units)", ge=0, allow_inf_nan=False
    )

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        """String representation."""
        return f"{self.year}: {self.annual_demand_units:,.0f} units"


class Forecast(BaseModel):
    """
    Ordered demand trajectory over the planning horizon.

    Attributes:
        name: Name of the forecast (e.g., "Base case 2025-2029")
        years: Forecast rows with strictly increasing years
    """
    name: str = Field(default="Forecast", description="Forecast name")
    years: List[ForecastYear] = Field(..., description="Forecast rows, one per planning year")

    model_config = ConfigDict(frozen=True)

    @field_validator('years')
    @classmethod
    def years_must_increase(cls, v):
        """Validate that the horizon is non-empty and strictly increasing."""
        if not v:
            raise ValueError("forecast must contain at least one year")
        for previous, current in zip(v, v[1:]):
            if current.year <= previous.year:
                raise ValueError(
                    f"forecast years must be strictly increasing, got {previous.year} then {current.year}"
                )
        return v

    @classmethod
    def from_totals(cls, totals: Dict[int, float], name: str = "Forecast") -> "Forecast":
        """Build a forecast from a {year: annual_units} mapping."""
        return cls(
            name=name,
            years=[
                ForecastYear(year=year, annual_demand_units=units)
                for year, units in sorted(totals.items())
            ],
        )

    @property
    def year_numbers(self) -> List[int]:
        """Planning years in horizon order."""
        return [row.year for row in self.years]

    @property
    def horizon_length(self) -> int:
        return len(self.years)

    def total_for(self, year: int) -> float:
        """
        Get the forecast total for a year.

        Raises:
            KeyError: If the year is not part of the horizon
        """
        for row in self.years:
            if row.year == year:
                return row.annual_demand_units
        raise KeyError(f"year {year} is not in forecast '{self.name}'")

    def __str__(self) -> str:
        """String representation."""
        return f"Forecast '{self.name}' covering {self.horizon_length} years"
