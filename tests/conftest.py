"""Shared fixtures: record factories with fixed UTC timestamps."""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from billbook.models.bill import BillRecord, BillStatus


def millis(year: int, month: int, day: int) -> int:
    """Epoch milliseconds of midnight UTC on the given day."""
    return int(datetime(year, month, day, tzinfo=timezone.utc).timestamp() * 1000)


@pytest.fixture
def make_record():
    """Factory for BillRecords; everything but the period is optional."""
    def _make(
        date_of_period: str = "",
        bill_name: str = "City Power",
        amount="10",
        created_at: int = None,
        status: BillStatus = BillStatus.UNPAID,
        due_date: str = None,
        summary: str = None,
        currency: str = "$",
        id: str = None,
    ) -> BillRecord:
        return BillRecord(
            id=id or str(uuid4()),
            created_at=created_at if created_at is not None else millis(2024, 3, 5),
            bill_name=bill_name,
            date_of_period=date_of_period,
            due_date=due_date,
            amount=Decimal(str(amount)),
            currency=currency,
            summary=summary,
            status=status,
        )
    return _make


@pytest.fixture(name="millis")
def millis_fixture():
    return millis
