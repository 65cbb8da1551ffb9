"""Services package."""

from billbook.services.extraction import (
    BillExtractorInterface,
    ExtractionError,
    GeminiBillExtractor,
    UnsupportedDocumentError,
)
from billbook.services.storage import (
    BillStoreInterface,
    ColumnMissingError,
    GoogleSheetsBillStore,
    GoogleSheetsClient,
    InMemoryBillStore,
    NotFoundError,
    StorageError,
    TableMissingError,
)

__all__ = [
    # Extraction
    "BillExtractorInterface",
    "ExtractionError",
    "GeminiBillExtractor",
    "UnsupportedDocumentError",
    # Storage
    "BillStoreInterface",
    "ColumnMissingError",
    "GoogleSheetsBillStore",
    "GoogleSheetsClient",
    "InMemoryBillStore",
    "NotFoundError",
    "StorageError",
    "TableMissingError",
]
