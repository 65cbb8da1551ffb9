"""
Main Orchestrator for BillBook

Ties the record store, the extractor and the audit log together and owns
the application state the UI renders from.

Flows:
1. Load    (store → records)
2. Upload  (document → extract → save, or keep locally if the store fails)
3. Toggle  (optimistic paid/unpaid flip, reverted if the store fails)
4. Delete  (optimistic removal, reverted if the store fails)

DESIGN DECISION: State is an explicit AppState object, not module globals.
Views (filtered list, month dropdown, biller groups, chart) are recomputed
from state.records on every call, so they always reflect the latest
optimistic update.
"""

import time
from typing import Optional
from uuid import UUID, uuid4

import structlog
from pydantic import BaseModel, Field

from billbook.audit import AuditLogger, configure_logging, create_correlation_id
from billbook.config import get_settings
from billbook.models.bill import (
    BillData,
    BillerGroup,
    BillFilter,
    BillRecord,
    BillStatus,
    ChartPoint,
    ReportQuery,
    SaveOutcome,
    SaveResult,
    UploadedDocument,
)
from billbook.queries import (
    available_billers,
    available_months,
    available_years,
    build_chart_data,
    filter_bills,
    group_by_biller,
)
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
    StorageError,
    TableMissingError,
)


logger = structlog.get_logger("billbook.orchestrator")

SHEET_SETUP_HINT = (
    "Create a worksheet named 'Bills' whose first row is:\n"
    "id | created_at | bill_name | date_of_period | due_date | amount | currency | summary | status"
)

SHEET_UPDATE_HINT = (
    "Add a 'due_date' column to the header row of the 'Bills' worksheet."
)


class AppState(BaseModel):
    """Everything the UI renders from."""
    
    records: list[BillRecord] = Field(default_factory=list)
    local_record_ids: set[str] = Field(
        default_factory=set,
        description="Bills kept only in memory because the store failed"
    )
    store_missing: bool = False
    schema_outdated: bool = False
    error_message: Optional[str] = None
    
    def find(self, bill_id: str) -> Optional[BillRecord]:
        for record in self.records:
            if record.id == bill_id:
                return record
        return None


def _now_millis() -> int:
    return int(time.time() * 1000)


class BillBookFlow:
    """
    Orchestrates loading, uploading and changing bills.
    
    The store is optional: without one (or while its table is missing)
    every new bill is kept locally for the session.
    """
    
    def __init__(
        self,
        extractor: Optional[BillExtractorInterface] = None,
        bill_store: Optional[BillStoreInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        state: Optional[AppState] = None,
    ):
        self._extractor = extractor
        self._bill_store = bill_store
        self._audit_logger = audit_logger or AuditLogger()
        self.state = state or AppState()
    
    @property
    def _can_persist(self) -> bool:
        return self._bill_store is not None and not self.state.store_missing
    
    def _uses_store(self, bill_id: str) -> bool:
        return self._can_persist and bill_id not in self.state.local_record_ids
    
    # -------------------------------------------------------------------------
    # Load
    # -------------------------------------------------------------------------
    
    async def load_bills(self) -> list[BillRecord]:
        """
        Replace the in-memory records with the store's.
        
        Store problems are recorded on the state, not raised. The records
        are left unchanged when loading fails.
        """
        if self._bill_store is None:
            return self.state.records
        
        try:
            records = await self._bill_store.list_bills()
        except TableMissingError as e:
            self.state.store_missing = True
            await self._audit_logger.log_store_table_missing(str(e))
            return self.state.records
        except StorageError as e:
            self.state.error_message = f"Failed to load bills: {e}"
            await self._audit_logger.log_error("load_failed", str(e))
            return self.state.records
        
        local = [r for r in self.state.records if r.id in self.state.local_record_ids]
        self.state.records = local + records
        self.state.store_missing = False
        self.state.error_message = None
        await self._audit_logger.log_bills_loaded(len(records))
        return self.state.records
    
    # -------------------------------------------------------------------------
    # Upload
    # -------------------------------------------------------------------------
    
    def validate_document(self, document: UploadedDocument) -> None:
        """
        Check media type and size before calling the extractor.
        
        Raises:
            UnsupportedDocumentError: If the document is not accepted
        """
        app_settings = get_settings().app
        if document.media_type not in app_settings.supported_media_types_list:
            raise UnsupportedDocumentError(
                f"Unsupported document type: {document.media_type}. "
                f"Allowed: {', '.join(app_settings.supported_media_types_list)}"
            )
        if document.size_bytes > app_settings.max_upload_size_bytes:
            raise UnsupportedDocumentError(
                f"Document is too large ({document.size_bytes} bytes). "
                f"Maximum is {app_settings.max_upload_size_mb} MB."
            )
    
    async def upload_bill(
        self,
        document_bytes: bytes,
        filename: str,
        media_type: str,
        correlation_id: Optional[UUID] = None,
    ) -> SaveResult:
        """
        Extract a bill from a document and add it to the collection.
        
        Extraction failures are raised. Store failures are not: the bill
        is kept locally and the result says so.
        
        Raises:
            ExtractionError: If the document is rejected or extraction fails
        """
        correlation_id = correlation_id or create_correlation_id()
        
        document = UploadedDocument(
            filename=filename,
            media_type=media_type,
            size_bytes=len(document_bytes),
        )
        
        try:
            self.validate_document(document)
            if self._extractor is None:
                raise ExtractionError("Bill extraction is not configured.")
            data = await self._extractor.extract(document_bytes, document.media_type)
        except ExtractionError as e:
            await self._audit_logger.log_extraction_failed(str(e), correlation_id)
            raise
        
        await self._audit_logger.log_extraction_completed(
            data.bill_name, data.date_of_period, correlation_id
        )
        
        result = await self._save(data, correlation_id)
        self.state.records.insert(0, result.record)
        return result
    
    async def _save(self, data: BillData, correlation_id: UUID) -> SaveResult:
        if not self._can_persist:
            reason = (
                "Bills table is missing" if self.state.store_missing
                else "Record store is not configured"
            )
            return await self._keep_locally(data, reason, correlation_id)
        
        try:
            record = await self._bill_store.create_bill(data)
        except StorageError as e:
            if isinstance(e, ColumnMissingError):
                self.state.schema_outdated = True
                await self._audit_logger.log_store_schema_outdated(str(e), correlation_id)
            elif isinstance(e, TableMissingError):
                self.state.store_missing = True
                await self._audit_logger.log_store_table_missing(str(e))
            return await self._keep_locally(data, str(e), correlation_id)
        
        await self._audit_logger.log_bill_saved(record.id, str(record.amount), correlation_id)
        return SaveResult(record=record, outcome=SaveOutcome.PERSISTED)
    
    async def _keep_locally(
        self,
        data: BillData,
        reason: str,
        correlation_id: UUID,
    ) -> SaveResult:
        record = BillRecord(
            **data.model_dump(),
            id=str(uuid4()),
            created_at=_now_millis(),
            status=BillStatus.UNPAID,
        )
        self.state.local_record_ids.add(record.id)
        await self._audit_logger.log_local_fallback(record.id, reason, correlation_id)
        return SaveResult(record=record, outcome=SaveOutcome.LOCAL_FALLBACK, error=reason)
    
    # -------------------------------------------------------------------------
    # Toggle / delete
    # -------------------------------------------------------------------------
    
    def _replace(self, updated: BillRecord) -> None:
        self.state.records = [
            updated if record.id == updated.id else record
            for record in self.state.records
        ]
    
    async def toggle_status(self, bill_id: str) -> BillRecord:
        """
        Flip a bill between paid and unpaid.
        
        The change is applied before the store call and reverted if the
        store call fails.
        
        Raises:
            KeyError: If the bill is not in the collection
            StorageError: If the store rejected the update (after reverting)
        """
        current = self.state.find(bill_id)
        if current is None:
            raise KeyError(bill_id)
        
        updated = current.with_status(current.status.toggled())
        self._replace(updated)
        
        if self._uses_store(bill_id):
            try:
                await self._bill_store.update_status(bill_id, updated.status)
            except StorageError as e:
                self._replace(current)
                await self._audit_logger.log_status_reverted(bill_id, str(e))
                raise
        
        await self._audit_logger.log_status_updated(bill_id, updated.status.value)
        return updated
    
    async def delete_bill(self, bill_id: str) -> None:
        """
        Remove a bill from the collection and the store.
        
        Raises:
            StorageError: If the store rejected the delete (after restoring)
        """
        previous = list(self.state.records)
        self.state.records = [r for r in previous if r.id != bill_id]
        
        if self._uses_store(bill_id):
            try:
                await self._bill_store.delete_bill(bill_id)
            except StorageError as e:
                self.state.records = previous
                await self._audit_logger.log_delete_reverted(bill_id, str(e))
                raise
        
        self.state.local_record_ids.discard(bill_id)
        await self._audit_logger.log_bill_deleted(bill_id)
    
    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------
    
    def filtered_bills(self, bill_filter: BillFilter) -> list[BillRecord]:
        return filter_bills(self.state.records, bill_filter)
    
    def month_options(self) -> list[str]:
        return available_months(self.state.records)
    
    def biller_groups(self, bill_filter: Optional[BillFilter] = None) -> list[BillerGroup]:
        return group_by_biller(self.filtered_bills(bill_filter or BillFilter()))
    
    def biller_options(self) -> list[str]:
        return available_billers(self.state.records)
    
    def year_options(self) -> list[str]:
        return available_years(self.state.records)
    
    def chart_data(self, query: ReportQuery) -> list[ChartPoint]:
        return build_chart_data(self.state.records, query)


def create_app_components(
    use_storage: bool = True,
) -> tuple[BillBookFlow, Optional[GoogleSheetsClient]]:
    """
    Factory function to create the application components.
    
    Args:
        use_storage: Whether to initialize the record store.
                    Set to False to run local-only.
                    
    Returns:
        (flow, sheets_client)
    """
    settings = get_settings()
    configure_logging(settings.app)
    audit_logger = AuditLogger()
    
    sheets_client = None
    bill_store: Optional[BillStoreInterface] = None
    
    if use_storage:
        if settings.app.storage_backend == "memory":
            bill_store = InMemoryBillStore()
        else:
            try:
                sheets_client = GoogleSheetsClient()
                bill_store = GoogleSheetsBillStore(sheets_client)
            except Exception as e:
                # Storage not configured - continue local-only
                logger.warning("storage_not_configured", error=str(e))
                sheets_client = None
                bill_store = None
    
    extractor: Optional[BillExtractorInterface] = None
    try:
        extractor = GeminiBillExtractor()
    except Exception as e:
        logger.warning("extractor_not_configured", error=str(e))
    
    flow = BillBookFlow(
        extractor=extractor,
        bill_store=bill_store,
        audit_logger=audit_logger,
    )
    logger.info(
        "app_components_created",
        environment=settings.app.app_environment,
        storage_backend=settings.app.storage_backend if bill_store is not None else "none",
        extractor_configured=extractor is not None,
    )
    return flow, sheets_client
