"""Bills list and report query package."""

from billbook.queries.filters import (
    UNKNOWN_BILLER,
    available_months,
    filter_bills,
    group_by_biller,
    matches_month,
    matches_search,
    matches_status,
)
from billbook.queries.reports import (
    available_billers,
    available_years,
    build_chart_data,
    chart_title,
    record_year,
)

__all__ = [
    "UNKNOWN_BILLER",
    "available_billers",
    "available_months",
    "available_years",
    "build_chart_data",
    "chart_title",
    "filter_bills",
    "group_by_biller",
    "matches_month",
    "matches_search",
    "matches_status",
    "record_year",
]
