"""
Bills List Queries

Filtering, the month dropdown and grouping by biller.

All functions are pure: they take the current record collection and
return fresh results, so re-deriving after an optimistic update or
delete always matches the current state.
"""

from decimal import Decimal
from typing import Iterable, Optional

from billbook.models.bill import (
    BillerGroup,
    BillFilter,
    BillRecord,
    StatusFilter,
    safe_amount,
)
from billbook.periods import period_key, sort_most_recent_first


UNKNOWN_BILLER = "Unknown"


def matches_search(record: BillRecord, term: str) -> bool:
    """Case-insensitive substring match on bill name or summary."""
    needle = (term or "").lower()
    if needle in record.bill_name.lower():
        return True
    return bool(record.summary) and needle in record.summary.lower()


def matches_status(record: BillRecord, status: StatusFilter) -> bool:
    if status == StatusFilter.ALL:
        return True
    return record.status.value == status.value


def matches_month(record: BillRecord, month: Optional[str]) -> bool:
    """Exact match on the canonical period key; None means all months."""
    if month is None:
        return True
    return period_key(record) == month


def filter_bills(
    records: Iterable[BillRecord],
    bill_filter: BillFilter,
) -> list[BillRecord]:
    """Apply search, status and month filters (logical AND), keeping order."""
    return [
        record
        for record in records
        if matches_search(record, bill_filter.search)
        and matches_status(record, bill_filter.status)
        and matches_month(record, bill_filter.month)
    ]


def available_months(records: Iterable[BillRecord]) -> list[str]:
    """Distinct period keys for the month dropdown, most recent first."""
    keys = list(dict.fromkeys(period_key(record) for record in records))
    return sort_most_recent_first(keys)


def group_by_biller(records: Iterable[BillRecord]) -> list[BillerGroup]:
    """
    Group bills by biller name.
    
    Totals are raw sums of amounts regardless of currency. Groups are
    ordered by their most recent bill, newest first.
    """
    groups: dict[str, BillerGroup] = {}
    
    for record in records:
        name = record.bill_name or UNKNOWN_BILLER
        if name not in groups:
            groups[name] = BillerGroup(name=name, total=Decimal("0"), latest=0)
        group = groups[name]
        group.items.append(record)
        group.total += safe_amount(record.amount)
        group.latest = max(group.latest, record.created_at or 0)
    
    return sorted(groups.values(), key=lambda g: g.latest, reverse=True)
