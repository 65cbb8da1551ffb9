"""
In-Memory Record Store

Used for tests and for running the app without Google Sheets
(STORAGE_BACKEND=memory). Data lives only as long as the process.
"""

import time
from typing import Optional
from uuid import uuid4

from billbook.models.bill import BillData, BillRecord, BillStatus
from billbook.services.storage.interface import (
    BillStoreInterface,
    ColumnMissingError,
    NotFoundError,
    TableMissingError,
)


class InMemoryBillStore(BillStoreInterface):
    """
    Dict-backed bill store.
    
    table_missing / missing_column let tests reproduce the two store
    failure modes the app has to tell apart.
    """
    
    def __init__(
        self,
        records: Optional[list[BillRecord]] = None,
        table_missing: bool = False,
        missing_column: Optional[str] = None,
    ):
        self._records: dict[str, BillRecord] = {r.id: r for r in records or []}
        self.table_missing = table_missing
        self.missing_column = missing_column
    
    def _check_schema(self) -> None:
        if self.table_missing:
            raise TableMissingError("Could not find the table 'bills' in the store")
        if self.missing_column:
            raise ColumnMissingError(
                f"Could not find the '{self.missing_column}' column of 'bills'"
            )
    
    async def create_bill(self, data: BillData) -> BillRecord:
        self._check_schema()
        record = BillRecord(
            **data.model_dump(),
            id=str(uuid4()),
            created_at=int(time.time() * 1000),
            status=BillStatus.UNPAID,
        )
        self._records[record.id] = record
        return record
    
    async def list_bills(self) -> list[BillRecord]:
        if self.table_missing:
            raise TableMissingError("Could not find the table 'bills' in the store")
        return sorted(self._records.values(), key=lambda r: r.created_at, reverse=True)
    
    async def update_status(self, bill_id: str, status: BillStatus) -> None:
        self._check_schema()
        if bill_id not in self._records:
            raise NotFoundError(f"Bill not found: {bill_id}")
        self._records[bill_id] = self._records[bill_id].with_status(status)
    
    async def delete_bill(self, bill_id: str) -> None:
        self._check_schema()
        if self._records.pop(bill_id, None) is None:
            raise NotFoundError(f"Bill not found: {bill_id}")
