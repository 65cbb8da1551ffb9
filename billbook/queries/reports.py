"""
Spending Report Queries

Aggregates bill amounts into chart buckets for the report dashboard.

Buckets by period use the same canonical key as the bills list:
- all years: "Oct 2023" labels, sorted chronologically
- one year:  "Oct" labels, sorted January to December
Buckets by biller are sorted by total, highest first.
"""

from decimal import Decimal
from typing import Iterable

from billbook.models.bill import (
    BillRecord,
    ChartPoint,
    ReportGroupBy,
    ReportQuery,
    safe_amount,
)
from billbook.periods import (
    extract_year,
    month_name,
    month_rank,
    period_key,
    sort_chronologically,
    strip_year,
)
from billbook.queries.filters import UNKNOWN_BILLER


def record_year(record: BillRecord) -> str:
    """Year of a record's canonical period key."""
    return extract_year(period_key(record))


def available_billers(records: Iterable[BillRecord]) -> list[str]:
    """Distinct non-empty biller names, alphabetical."""
    return sorted({record.bill_name for record in records if record.bill_name})


def available_years(records: Iterable[BillRecord]) -> list[str]:
    """Distinct period years, newest first."""
    return sorted({record_year(record) for record in records}, reverse=True)


def _matches_query(record: BillRecord, query: ReportQuery) -> bool:
    if query.biller is not None and record.bill_name != query.biller:
        return False
    if query.year is not None and record_year(record) != query.year:
        return False
    return True


def _bucket_key(record: BillRecord, query: ReportQuery) -> str:
    if query.effective_group_by == ReportGroupBy.BILLER:
        return record.bill_name or UNKNOWN_BILLER
    key = period_key(record)
    if query.year is not None:
        return strip_year(key)
    return key


def build_chart_data(
    records: Iterable[BillRecord],
    query: ReportQuery,
) -> list[ChartPoint]:
    """
    Sum amounts per bucket and order the buckets for the chart.
    
    Returns an empty list when nothing matches.
    """
    totals: dict[str, Decimal] = {}
    for record in records:
        if not _matches_query(record, query):
            continue
        key = _bucket_key(record, query)
        totals[key] = totals.get(key, Decimal("0")) + safe_amount(record.amount)
    
    if query.effective_group_by == ReportGroupBy.BILLER:
        names = sorted(totals, key=lambda name: totals[name], reverse=True)
    elif query.year is not None:
        names = sorted(totals, key=lambda name: month_rank(month_name(name)))
    else:
        names = sort_chronologically(totals)
    
    return [ChartPoint(name=name, value=totals[name]) for name in names]


def chart_title(query: ReportQuery) -> str:
    if query.biller is not None:
        return f"{query.biller} Analysis"
    return "Total Spending"
