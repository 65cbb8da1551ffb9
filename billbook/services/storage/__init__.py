"""
Storage Services Package

Provides the record store interface and its implementations:
Google Sheets for real use, in-memory for tests and local-only runs.
"""

from billbook.services.storage.interface import (
    BillStoreInterface,
    ColumnMissingError,
    NotFoundError,
    StorageError,
    TableMissingError,
    classify_storage_error,
)
from billbook.services.storage.memory import InMemoryBillStore
from billbook.services.storage.google_sheets import (
    BILL_COLUMNS,
    GoogleSheetsBillStore,
    GoogleSheetsClient,
)

__all__ = [
    # Interface
    "BillStoreInterface",
    "classify_storage_error",
    # Exceptions
    "ColumnMissingError",
    "NotFoundError",
    "StorageError",
    "TableMissingError",
    # Implementations
    "BILL_COLUMNS",
    "GoogleSheetsBillStore",
    "GoogleSheetsClient",
    "InMemoryBillStore",
]
