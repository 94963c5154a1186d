"""Analysis module for fixed-lease optimization results.

This module flattens results into pandas DataFrames:
- Assignments by year
- Facility metrics by year
- Yearly summary with horizon totals
"""

from .result_tables import (
    assignments_table,
    facility_metrics_table,
    yearly_summary_table,
)

__all__ = [
    "assignments_table",
    "facility_metrics_table",
    "yearly_summary_table",
]
