"""Tabular views of fixed-lease optimization results.

Flattens a MultiYearResult into pandas DataFrames for table-style consumers
(reports, spreadsheets, dashboards).
"""

import pandas as pd

from ..optimization.result_schema import MultiYearResult

ASSIGNMENT_COLUMNS = [
    'Year', 'Facility', 'Destination', 'Demand', 'Unit Cost', 'Distance', 'Cost', 'Within Service Limit',
]
FACILITY_COLUMNS = [
    'Year', 'Facility', 'Destinations Served', 'Demand Served', 'Capacity', 'Utilization',
    'Average Distance', 'Total Cost', 'Cost Per Unit',
]
SUMMARY_COLUMNS = [
    'Year', 'Facilities Opened', 'Demand Served', 'Transportation Cost', 'Fixed Cost', 'Total Cost',
    'Service Level', 'Weighted Avg Distance', 'Network Utilization', 'Avg Cost Per Unit',
]


def assignments_table(result: MultiYearResult) -> pd.DataFrame:
    """One row per (year, destination) assignment."""
    rows = [
        {
            'Year': r.year,
            'Facility': a.facility,
            'Destination': a.destination,
            'Demand': a.demand,
            'Unit Cost': a.unit_cost,
            'Distance': a.distance,
            'Cost': a.cost,
            'Within Service Limit': a.within_service_limit,
        }
        for r in result.per_year
        for a in r.assignments
    ]
    return pd.DataFrame(rows, columns=ASSIGNMENT_COLUMNS)


def facility_metrics_table(result: MultiYearResult) -> pd.DataFrame:
    """One row per (year, open facility)."""
    rows = [
        {
            'Year': r.year,
            'Facility': m.facility,
            'Destinations Served': m.destinations_served,
            'Demand Served': m.demand_served,
            'Capacity': m.capacity,
            'Utilization': m.utilization,
            'Average Distance': m.average_distance,
            'Total Cost': m.total_cost,
            'Cost Per Unit': m.cost_per_unit,
        }
        for r in result.per_year
        for m in r.facility_metrics
    ]
    return pd.DataFrame(rows, columns=FACILITY_COLUMNS)


def yearly_summary_table(result: MultiYearResult, include_totals: bool = True) -> pd.DataFrame:
    """
    One row per planning year, optionally followed by a 'Total' row.

    Args:
        result: Multi-year optimization result
        include_totals: Append a horizon total row

    Returns:
        DataFrame with SUMMARY_COLUMNS
    """
    rows = []
    for r in result.per_year:
        n = r.network_metrics
        rows.append({
            'Year': r.year,
            'Facilities Opened': n.facilities_opened,
            'Demand Served': n.total_demand_served,
            'Transportation Cost': n.total_transportation_cost,
            'Fixed Cost': n.fixed_facility_cost,
            'Total Cost': n.total_cost,
            'Service Level': n.service_level_achievement,
            'Weighted Avg Distance': n.weighted_avg_distance,
            'Network Utilization': n.network_utilization,
            'Avg Cost Per Unit': n.avg_cost_per_unit,
        })

    df = pd.DataFrame(rows, columns=SUMMARY_COLUMNS)
    if include_totals and rows:
        totals = result.totals
        total_row = {
            'Year': 'Total',
            'Facilities Opened': len(result.open_facilities),
            'Demand Served': totals.total_demand,
            'Transportation Cost': totals.total_transportation_cost,
            'Fixed Cost': totals.total_fixed_cost,
            'Total Cost': totals.total_cost,
            'Service Level': totals.weighted_service_level,
            'Weighted Avg Distance': (
                (df['Weighted Avg Distance'] * df['Demand Served']).sum() / totals.total_demand
                if totals.total_demand > 0 else 0.0
            ),
            'Network Utilization': df['Network Utilization'].mean(),
            'Avg Cost Per Unit': totals.avg_cost_per_unit,
        }
        df = pd.concat([df, pd.DataFrame([total_row], columns=SUMMARY_COLUMNS)], ignore_index=True)
    return df
