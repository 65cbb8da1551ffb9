"""
Billing Period Resolver

Turns the free-form "period" text an extraction model produced into a
canonical "Mon YYYY" key (e.g. "Oct 2023").

DESIGN DECISION: There is exactly ONE implementation of the key. The bills
list, the month filter dropdown, filter matching and the report buckets
all call period_key(), so a bill can never show up under one month in the
list and another month in the chart.

The key is derived, never stored. resolve_period_key() is pure: the same
inputs always give the same key, and it never raises - malformed input
degrades to the upload month instead of blocking a bill.

Resolution order (first match wins):
1. Numeric date in the period text, read as DD/MM/YYYY
2. Month name plus a 2020-2039 year anywhere in period + due date text
   (year falls back to the upload year)
3. Generic date parse of the period text (year must be after 2000)
4. Upload month (created_at)
"""

import re
from datetime import datetime, timezone
from typing import Iterable, Optional

from dateutil import parser as date_parser

from billbook.models.bill import BillRecord


SHORT_MONTHS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)

FULL_MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)

# Month name -> rank, for ordering bare month labels within one year
MONTH_ORDER: dict[str, int] = {}
for _rank, (_short, _full) in enumerate(zip(SHORT_MONTHS, FULL_MONTHS)):
    MONTH_ORDER[_short.lower()] = _rank
    MONTH_ORDER[_full.lower()] = _rank

UNKNOWN_MONTH_RANK = 99

_NUMERIC_DATE = re.compile(r"(\d{1,2})[/\-.](\d{1,2})[/\-.](\d{4})")
_BILLING_YEAR = re.compile(r"20[2-3]\d")
_ANY_YEAR = re.compile(r"20\d{2}")
_MONTH_NAME = re.compile(
    "(" + "|".join(SHORT_MONTHS + FULL_MONTHS) + ")",
    re.IGNORECASE,
)
_NON_LETTERS = re.compile(r"[^a-zA-Z]")

# Missing date parts are filled from here, never from "today"
_PARSE_DEFAULT = datetime(2000, 1, 1)
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _format_key(month_index: int, year: int) -> str:
    return f"{SHORT_MONTHS[month_index]} {year}"


def _created_at_utc(created_at: Optional[int]) -> datetime:
    try:
        return datetime.fromtimestamp((created_at or 0) / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return _EPOCH


def _from_numeric_date(date_of_period: str) -> Optional[str]:
    match = _NUMERIC_DATE.search(date_of_period)
    if not match:
        return None
    month = int(match.group(2))
    if 1 <= month <= 12:
        return _format_key(month - 1, int(match.group(3)))
    return None


def _from_month_name(text: str, fallback_year: int) -> Optional[str]:
    year_match = _BILLING_YEAR.search(text)
    year = int(year_match.group()) if year_match else fallback_year
    
    month_match = _MONTH_NAME.search(text)
    if not month_match:
        return None
    
    abbrev = month_match.group()[:3].capitalize()
    if abbrev in SHORT_MONTHS:
        return f"{abbrev} {year}"
    return None


def parse_period_label(label: Optional[str]) -> Optional[datetime]:
    """
    Parse a period label as a generic calendar date.
    
    Returns a naive datetime, or None if the label is not a date.
    Missing parts default to 2000-01-01 so results are reproducible.
    """
    if not label or not label.strip():
        return None
    try:
        return date_parser.parse(label, default=_PARSE_DEFAULT, ignoretz=True)
    except (ValueError, OverflowError):
        return None


def _from_generic_parse(date_of_period: str) -> Optional[str]:
    parsed = parse_period_label(date_of_period)
    if parsed is not None and parsed.year > 2000:
        return _format_key(parsed.month - 1, parsed.year)
    return None


def resolve_period_key(
    date_of_period: Optional[str],
    due_date: Optional[str],
    created_at: Optional[int],
) -> str:
    """
    Derive the canonical "Mon YYYY" key of a bill.
    
    Args:
        date_of_period: Period text from the extractor (untrusted)
        due_date: Due date text, may be None or empty
        created_at: Creation time in epoch milliseconds
        
    Returns:
        e.g. "Oct 2023". Always a valid key; never raises.
    """
    date_of_period = date_of_period or ""
    created = _created_at_utc(created_at)
    
    key = _from_numeric_date(date_of_period)
    if key:
        return key
    
    key = _from_month_name(f"{date_of_period} {due_date or ''}", created.year)
    if key:
        return key
    
    key = _from_generic_parse(date_of_period)
    if key:
        return key
    
    return _format_key(created.month - 1, created.year)


def period_key(record: BillRecord) -> str:
    """Canonical period key of a record. Every view goes through here."""
    return resolve_period_key(record.date_of_period, record.due_date, record.created_at)


# =============================================================================
# DERIVED HELPERS
# =============================================================================

def extract_year(period: Optional[str]) -> str:
    """First "20xx" in a key or raw period string, else "Unknown"."""
    match = _ANY_YEAR.search(period or "")
    return match.group() if match else "Unknown"


def month_name(period: Optional[str]) -> str:
    """Bare lower-case month name: "Oct 2023" -> "oct"."""
    return _NON_LETTERS.sub("", period or "").lower()


def month_rank(name: Optional[str]) -> int:
    """0 for January ... 11 for December, 99 for anything else."""
    return MONTH_ORDER.get((name or "").lower(), UNKNOWN_MONTH_RANK)


def strip_year(key: str) -> str:
    """Month part of a canonical key: "Oct 2023" -> "Oct"."""
    parts = key.split()
    return parts[0] if parts else key


def sort_chronologically(labels: Iterable[str]) -> list[str]:
    """
    Oldest first. Labels that don't parse as dates go last, in their
    original order.
    """
    labels = list(labels)
    parsed = {label: parse_period_label(label) for label in labels}
    return sorted(
        labels,
        key=lambda label: (parsed[label] is None, parsed[label] or _PARSE_DEFAULT),
    )


def sort_most_recent_first(labels: Iterable[str]) -> list[str]:
    """Newest first. Unparseable labels go last, in their original order."""
    labels = list(labels)
    parsed = {label: parse_period_label(label) for label in labels}
    dated = sorted(
        (label for label in labels if parsed[label] is not None),
        key=lambda label: parsed[label],
        reverse=True,
    )
    undated = [label for label in labels if parsed[label] is None]
    return dated + undated
