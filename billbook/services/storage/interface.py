"""
Abstract Record Store Interface

DESIGN DECISION: Bill persistence goes through a small abstract interface.
This allows us to:
1. Use Google Sheets as the backing store
2. Use in-memory storage for testing and local-only runs
3. Keep the flows and views decoupled from the backend

The interface is just the four operations the app needs.
"""

import re
from abc import ABC, abstractmethod

from billbook.models.bill import BillData, BillRecord, BillStatus


class BillStoreInterface(ABC):
    """
    Abstract interface for bill record storage.
    
    Any store implementation must implement these methods.
    """
    
    @abstractmethod
    async def create_bill(self, data: BillData) -> BillRecord:
        """
        Persist extracted bill data as a new record.
        
        The store assigns the id and creation time. New records are unpaid.
        
        Raises:
            StorageError: If the save fails
            TableMissingError: If the bills table does not exist
            ColumnMissingError: If a required column is missing
        """
        pass
    
    @abstractmethod
    async def list_bills(self) -> list[BillRecord]:
        """
        List all records, newest first.
        
        Raises:
            StorageError: If the records cannot be read
        """
        pass
    
    @abstractmethod
    async def update_status(self, bill_id: str, status: BillStatus) -> None:
        """
        Set the payment status of a record.
        
        Raises:
            StorageError: If the update fails
            NotFoundError: If the record doesn't exist
        """
        pass
    
    @abstractmethod
    async def delete_bill(self, bill_id: str) -> None:
        """
        Delete a record by id.
        
        Raises:
            StorageError: If the delete fails
            NotFoundError: If the record doesn't exist
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class TableMissingError(StorageError):
    """The bills table (spreadsheet or worksheet) does not exist."""
    pass


class ColumnMissingError(StorageError):
    """The bills table exists but lacks a required column."""
    pass


class NotFoundError(StorageError):
    """Record not found in storage."""
    pass


_TABLE_MISSING_MARKERS = (
    "could not find the table",
    "worksheet not found",
    "spreadsheet not found",
)

_COLUMN_MISSING_MARKERS = (
    "column",
    "due_date",
)

# e.g. relation "public.bills" does not exist
_MISSING_RELATION = re.compile(r'relation "[^"]+" does not exist')


def classify_storage_error(message: str) -> StorageError:
    """
    Map backend error text to the matching StorageError subclass.
    
    Column markers are checked first: 'column "due_date" of relation
    "bills" does not exist' is an outdated schema, not a missing table.
    """
    lowered = (message or "").lower()
    if any(marker in lowered for marker in _COLUMN_MISSING_MARKERS):
        return ColumnMissingError(message)
    if any(marker in lowered for marker in _TABLE_MISSING_MARKERS):
        return TableMissingError(message)
    if _MISSING_RELATION.search(lowered):
        return TableMissingError(message)
    return StorageError(message)
