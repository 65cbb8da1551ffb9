"""
Tests for the billing period resolver.

Every view depends on period_key(), so these cover each resolution layer
and the helpers built on the canonical key.
"""

import re
import warnings

import pytest
from datetime import datetime

from billbook.periods import (
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


KEY_PATTERN = re.compile(r"^(" + "|".join(SHORT_MONTHS) + r") \d{4}$")


class TestResolvePeriodKey:
    """Resolution order: numeric date, month name, generic parse, upload month."""

    def test_numeric_date_is_read_day_first(self, millis):
        """15/10/2023 is the 15th of October, not a 15th month."""
        assert resolve_period_key("15/10/2023", None, millis(2024, 3, 5)) == "Oct 2023"

    def test_numeric_date_other_separators(self, millis):
        assert resolve_period_key("01-02-2024", None, millis(2024, 3, 5)) == "Feb 2024"
        assert resolve_period_key("1.12.2023", None, millis(2024, 3, 5)) == "Dec 2023"

    def test_numeric_date_inside_a_range(self, millis):
        """The first date of a range wins."""
        key = resolve_period_key("01/10/2023 - 31/10/2023", None, millis(2024, 3, 5))
        assert key == "Oct 2023"

    def test_month_name_in_prose(self, millis):
        key = resolve_period_key("Billing for October 2023", None, millis(2024, 3, 5))
        assert key == "Oct 2023"

    def test_month_name_is_case_insensitive(self, millis):
        assert resolve_period_key("SEPTEMBER 2022", None, millis(2024, 3, 5)) == "Sep 2022"

    def test_month_name_without_year_uses_upload_year(self, millis):
        assert resolve_period_key("October", None, millis(2024, 3, 5)) == "Oct 2024"

    def test_due_date_supplies_the_month(self, millis):
        """An empty period still resolves from the due date text."""
        key = resolve_period_key("", "Nov 15, 2023", millis(2024, 3, 5))
        assert key == "Nov 2023"

    def test_generic_parse_of_iso_date(self, millis):
        assert resolve_period_key("2023-10-05", None, millis(2024, 3, 5)) == "Oct 2023"

    def test_generic_parse_rejects_old_years(self, millis):
        """Years up to 2000 are not believable billing periods."""
        assert resolve_period_key("1999-05-01", None, millis(2024, 3, 5)) == "Mar 2024"

    def test_no_signal_falls_back_to_upload_month(self, millis):
        assert resolve_period_key("", None, millis(2024, 3, 5)) == "Mar 2024"
        assert resolve_period_key(None, None, millis(2024, 3, 5)) == "Mar 2024"
        assert resolve_period_key("unknown", "", millis(2024, 3, 5)) == "Mar 2024"

    def test_upload_month_is_utc(self):
        """1709596800000 is 2024-03-05T00:00:00Z."""
        assert resolve_period_key("", None, 1709596800000) == "Mar 2024"

    def test_missing_created_at_uses_epoch(self):
        assert resolve_period_key("", None, None) == "Jan 1970"

    @pytest.mark.parametrize("key", ["Jan 2023", "Oct 2023", "Sep 2024", "Dec 2030"])
    def test_canonical_key_resolves_to_itself(self, key, millis):
        assert resolve_period_key(key, None, millis(2024, 3, 5)) == key

    def test_period_key_of_record(self, make_record, millis):
        record = make_record("October 2023", created_at=millis(2024, 1, 2))
        assert period_key(record) == "Oct 2023"

    @pytest.mark.parametrize("date_of_period,due_date", [
        ("15/10/2023", None),
        ("Billing for October 2023", None),
        ("", "Nov 15, 2023"),
        ("2023-10-05", None),
        ("unknown", None),
    ])
    def test_resolution_is_idempotent(self, date_of_period, due_date, millis):
        """Same inputs give the same key, and a key resolves to itself."""
        created_at = millis(2024, 3, 5)
        key = resolve_period_key(date_of_period, due_date, created_at)
        assert resolve_period_key(date_of_period, due_date, created_at) == key
        assert resolve_period_key(key, None, created_at) == key

    @pytest.mark.parametrize("junk", [
        "0/0/0",
        "32/13/2023",
        "9" * 30,
        "\x00",
        "2023-02-30",
        "Summary of charges",
        "31/02/2023 - ??",
        "   ",
    ])
    @pytest.mark.parametrize("created_at", [None, 0, -1, 10 ** 20])
    def test_never_raises_on_junk(self, junk, created_at):
        key = resolve_period_key(junk, junk, created_at)
        assert KEY_PATTERN.match(key), key


class TestParsePeriodLabel:
    """Generic date parsing used for sorting."""

    def test_parses_canonical_key(self):
        assert parse_period_label("Oct 2023") == datetime(2023, 10, 1)

    def test_returns_naive_datetime(self):
        parsed = parse_period_label("2023-10-05T10:00:00+05:30")
        assert parsed.tzinfo is None

    def test_timezone_tokens_are_ignored(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            parsed = parse_period_label("3 OJ")
        assert parsed is None or parsed.tzinfo is None

    @pytest.mark.parametrize("label", ["", "   ", None, "Unknown"])
    def test_unparseable_labels(self, label):
        assert parse_period_label(label) is None


class TestDerivedHelpers:
    """Year, month name and month rank helpers."""

    def test_extract_year(self):
        assert extract_year("Oct 2023") == "2023"
        assert extract_year("Billing for 2021 period") == "2021"

    def test_extract_year_unknown(self):
        assert extract_year("October") == "Unknown"
        assert extract_year(None) == "Unknown"

    def test_month_name_strips_everything_but_letters(self):
        assert month_name("Oct 2023") == "oct"
        assert month_name("Oct") == "oct"

    def test_month_rank(self):
        assert month_rank("jan") == 0
        assert month_rank("Oct") == 9
        assert month_rank("december") == 11

    def test_month_rank_unknown(self):
        assert month_rank("foo") == UNKNOWN_MONTH_RANK == 99
        assert month_rank("") == 99

    def test_strip_year(self):
        assert strip_year("Oct 2023") == "Oct"


class TestSorting:
    """Chronological and most-recent-first ordering of labels."""

    def test_sort_chronologically(self):
        labels = ["Oct 2023", "Mar 2024", "Jan 2023"]
        assert sort_chronologically(labels) == ["Jan 2023", "Oct 2023", "Mar 2024"]

    def test_sort_chronologically_puts_unparseable_last(self):
        labels = ["Unknown", "Mar 2024", "Jan 2023"]
        assert sort_chronologically(labels) == ["Jan 2023", "Mar 2024", "Unknown"]

    def test_sort_most_recent_first(self):
        labels = ["Oct 2023", "Mar 2024", "Jan 2023"]
        assert sort_most_recent_first(labels) == ["Mar 2024", "Oct 2023", "Jan 2023"]

    def test_sort_most_recent_first_keeps_unparseable_order(self):
        labels = ["zzz", "Oct 2023", "Unknown", "Mar 2024"]
        assert sort_most_recent_first(labels) == ["Mar 2024", "Oct 2023", "zzz", "Unknown"]
