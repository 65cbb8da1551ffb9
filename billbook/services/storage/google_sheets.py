"""
Google Sheets Record Store

DESIGN DECISION: Google Sheets is the record store because:
1. Users can look at (and fix) their bills directly in the sheet
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (fine for a household's bills)
- No transactions
- Filtering happens in Python

Columns are located by header name, so the sheet's column order is free.
A sheet created before the due_date column existed still lists fine, but
saving into it raises ColumnMissingError until the header is added.
"""

import time
from datetime import datetime
from typing import Optional
from uuid import uuid4

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from billbook.config import GoogleSheetsSettings, get_settings
from billbook.models.bill import BillData, BillRecord, BillStatus
from billbook.services.storage.interface import (
    BillStoreInterface,
    ColumnMissingError,
    NotFoundError,
    StorageError,
    TableMissingError,
    classify_storage_error,
)


# Header row of the Bills sheet
BILL_COLUMNS = [
    "id",
    "created_at",
    "bill_name",
    "date_of_period",
    "due_date",
    "amount",
    "currency",
    "summary",
    "status",
]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.
    
    Handles authentication and provides retry logic for API calls.
    """
    
    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets
    
    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(gspread.exceptions.APIError),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.
        
        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise StorageError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
        
        return self._client
    
    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(self._settings.spreadsheet_id)
            except gspread.SpreadsheetNotFound:
                raise TableMissingError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet
    
    def get_bills_sheet(self) -> gspread.Worksheet:
        """
        Get the Bills worksheet.
        
        Creates it with headers when auto_create_sheet is set,
        otherwise a missing worksheet is a missing table.
        """
        spreadsheet = self.get_spreadsheet()
        name = self._settings.bills_sheet_name
        try:
            return spreadsheet.worksheet(name)
        except gspread.WorksheetNotFound:
            if not self._settings.auto_create_sheet:
                raise TableMissingError(
                    f"Could not find the table '{name}' (worksheet not found)"
                )
        sheet = spreadsheet.add_worksheet(
            title=name,
            rows=1000,
            cols=len(BILL_COLUMNS),
        )
        sheet.append_row(BILL_COLUMNS)
        return sheet


def _parse_created_at(value: str) -> int:
    """Epoch millis, or an ISO timestamp typed in by hand."""
    try:
        return int(float(value))
    except ValueError:
        return int(datetime.fromisoformat(value).timestamp() * 1000)


class GoogleSheetsBillStore(BillStoreInterface):
    """
    Google Sheets implementation of the record store.
    
    One bill per row. The first row is the header.
    """
    
    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
    
    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(gspread.exceptions.APIError),
        reraise=True,
    )
    def _read_rows(self) -> tuple[gspread.Worksheet, list[str], list[list[str]]]:
        """Return (sheet, header, data rows)."""
        sheet = self._client.get_bills_sheet()
        rows = sheet.get_all_values()
        if not rows:
            return sheet, [], []
        return sheet, [name.strip() for name in rows[0]], rows[1:]
    
    @staticmethod
    def _require_columns(header: list[str], sheet_title: str) -> dict[str, int]:
        columns = {name: idx for idx, name in enumerate(header)}
        for name in BILL_COLUMNS:
            if name not in columns:
                raise ColumnMissingError(
                    f"Could not find the '{name}' column of '{sheet_title}'"
                )
        return columns
    
    def _record_to_row(self, record: BillRecord, header: list[str]) -> list[str]:
        """Convert a BillRecord to a row in the sheet's own column order."""
        values = {
            "id": record.id,
            "created_at": str(record.created_at),
            "bill_name": record.bill_name,
            "date_of_period": record.date_of_period,
            "due_date": record.due_date or "",
            "amount": str(record.amount),
            "currency": record.currency,
            "summary": record.summary or "",
            "status": record.status.value,
        }
        return [values.get(name, "") for name in header]
    
    def _row_to_record(self, row: list[str], columns: dict[str, int]) -> BillRecord:
        """Convert a sheet row to a BillRecord. Absent columns read as blank."""
        def safe_get(name: str) -> str:
            idx = columns.get(name)
            if idx is None or idx >= len(row):
                return ""
            return row[idx]
        
        return BillRecord(
            id=safe_get("id"),
            created_at=_parse_created_at(safe_get("created_at")),
            bill_name=safe_get("bill_name"),
            date_of_period=safe_get("date_of_period"),
            due_date=safe_get("due_date") or None,
            amount=safe_get("amount"),
            currency=safe_get("currency"),
            summary=safe_get("summary") or None,
            status=BillStatus(safe_get("status") or BillStatus.UNPAID.value),
        )
    
    def _find_row(self, rows: list[list[str]], columns: dict[str, int], bill_id: str) -> int:
        """1-based sheet row number of a bill (row 1 is the header)."""
        id_idx = columns["id"]
        for row_number, row in enumerate(rows, start=2):
            if len(row) > id_idx and row[id_idx] == bill_id:
                return row_number
        raise NotFoundError(f"Bill not found: {bill_id}")
    
    async def create_bill(self, data: BillData) -> BillRecord:
        """Append a new unpaid bill to the sheet."""
        try:
            sheet, header, _ = self._read_rows()
            self._require_columns(header, sheet.title)
            
            record = BillRecord(
                **data.model_dump(),
                id=str(uuid4()),
                created_at=int(time.time() * 1000),
                status=BillStatus.UNPAID,
            )
            sheet.append_row(self._record_to_row(record, header), value_input_option="RAW")
            return record
        except StorageError:
            raise
        except Exception as e:
            raise classify_storage_error(f"Failed to save bill: {e}") from e
    
    async def list_bills(self) -> list[BillRecord]:
        """All bills, newest first. Malformed rows are skipped."""
        try:
            sheet, header, rows = self._read_rows()
            columns = {name: idx for idx, name in enumerate(header)}
            if "id" not in columns:
                raise ColumnMissingError(f"Could not find the 'id' column of '{sheet.title}'")
            
            bills = []
            for row in rows:
                if not row or not any(cell.strip() for cell in row):
                    continue
                try:
                    bills.append(self._row_to_record(row, columns))
                except ValueError:
                    continue
            
            bills.sort(key=lambda b: b.created_at, reverse=True)
            return bills
        except StorageError:
            raise
        except Exception as e:
            raise classify_storage_error(f"Failed to list bills: {e}") from e
    
    async def update_status(self, bill_id: str, status: BillStatus) -> None:
        """Write the status cell of one bill."""
        try:
            sheet, header, rows = self._read_rows()
            columns = self._require_columns(header, sheet.title)
            row_number = self._find_row(rows, columns, bill_id)
            sheet.update_cell(row_number, columns["status"] + 1, status.value)
        except StorageError:
            raise
        except Exception as e:
            raise classify_storage_error(f"Failed to update bill: {e}") from e
    
    async def delete_bill(self, bill_id: str) -> None:
        """Delete the row of one bill."""
        try:
            sheet, header, rows = self._read_rows()
            columns = {name: idx for idx, name in enumerate(header)}
            if "id" not in columns:
                raise ColumnMissingError(f"Could not find the 'id' column of '{sheet.title}'")
            row_number = self._find_row(rows, columns, bill_id)
            sheet.delete_rows(row_number)
        except StorageError:
            raise
        except Exception as e:
            raise classify_storage_error(f"Failed to delete bill: {e}") from e
