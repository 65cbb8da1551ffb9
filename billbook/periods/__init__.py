"""Billing period resolution package."""

from billbook.periods.resolver import (
    FULL_MONTHS,
    MONTH_ORDER,
    SHORT_MONTHS,
    UNKNOWN_MONTH_RANK,
    extract_year,
    month_name,
    month_rank,
    parse_period_label,
    period_key,
    resolve_period_key,
    sort_chronologically,
    sort_most_recent_first,
    strip_year,
)

__all__ = [
    "FULL_MONTHS",
    "MONTH_ORDER",
    "SHORT_MONTHS",
    "UNKNOWN_MONTH_RANK",
    "extract_year",
    "month_name",
    "month_rank",
    "parse_period_label",
    "period_key",
    "resolve_period_key",
    "sort_chronologically",
    "sort_most_recent_first",
    "strip_year",
]
