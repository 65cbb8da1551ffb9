"""Bill extraction package."""

from billbook.services.extraction.gemini_extractor import (
    BILL_RESPONSE_SCHEMA,
    BillExtractorInterface,
    ExtractionError,
    GeminiBillExtractor,
    UnsupportedDocumentError,
    parse_bill_json,
)

__all__ = [
    "BILL_RESPONSE_SCHEMA",
    "BillExtractorInterface",
    "ExtractionError",
    "GeminiBillExtractor",
    "UnsupportedDocumentError",
    "parse_bill_json",
]
