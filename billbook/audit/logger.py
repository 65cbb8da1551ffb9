"""
Audit Logger

Every significant action on bills is written to a structured log:
extraction, save, local fallback, status changes and deletes, plus the
store problems the UI has to warn about.

The audit logger:
- Never raises into the calling flow
- Supports correlation IDs to trace the events of one upload
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from billbook.config import AppSettings, get_settings
from billbook.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(app_settings: Optional[AppSettings] = None) -> int:
    """
    Route structlog output through stdlib logging at the configured level.
    
    DEBUG_MODE=true lowers the level to DEBUG; otherwise INFO, so audit
    events are visible. Returns the level that was set.
    """
    app_settings = app_settings or get_settings().app
    level = logging.DEBUG if app_settings.debug_mode else logging.INFO
    logging.basicConfig(format="%(message)s", level=level)
    logging.getLogger("billbook").setLevel(level)
    return level


class AuditLogger:
    """
    Central audit logging service.
    
    Keeps the events of the current session in memory (newest last) so
    the UI can show recent activity.
    """
    
    def __init__(self, max_events: int = 200):
        self._logger = structlog.get_logger("billbook.audit")
        self._max_events = max_events
        self._events: list[AuditEvent] = []
    
    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)
    
    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.
        
        Returns False if the event could not be written.
        """
        self._events.append(event)
        del self._events[:-self._max_events]
        
        log_dict = event.to_log_dict()
        try:
            if event.severity == AuditSeverity.ERROR:
                self._logger.error("audit_event", **log_dict)
            elif event.severity == AuditSeverity.WARNING:
                self._logger.warning("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception:
            return False
        return True
    
    async def log_bills_loaded(self, count: int) -> None:
        await self.log(AuditEventBuilder.bills_loaded(count))
    
    async def log_store_table_missing(self, error_message: str) -> None:
        await self.log(AuditEventBuilder.store_table_missing(error_message))
    
    async def log_store_schema_outdated(
        self,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.store_schema_outdated(error_message, correlation_id))
    
    async def log_extraction_completed(
        self,
        bill_name: str,
        date_of_period: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(
            AuditEventBuilder.extraction_completed(bill_name, date_of_period, correlation_id)
        )
    
    async def log_extraction_failed(self, error_message: str, correlation_id: UUID) -> None:
        await self.log(AuditEventBuilder.extraction_failed(error_message, correlation_id))
    
    async def log_bill_saved(self, bill_id: str, amount: str, correlation_id: UUID) -> None:
        await self.log(AuditEventBuilder.bill_saved(bill_id, amount, correlation_id))
    
    async def log_local_fallback(
        self,
        bill_id: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(
            AuditEventBuilder.local_fallback_used(bill_id, error_message, correlation_id)
        )
    
    async def log_status_updated(self, bill_id: str, status: str) -> None:
        await self.log(AuditEventBuilder.payment_status_updated(bill_id, status))
    
    async def log_status_reverted(self, bill_id: str, error_message: str) -> None:
        await self.log(AuditEventBuilder.status_update_reverted(bill_id, error_message))
    
    async def log_bill_deleted(self, bill_id: str) -> None:
        await self.log(AuditEventBuilder.bill_deleted(bill_id))
    
    async def log_delete_reverted(self, bill_id: str, error_message: str) -> None:
        await self.log(AuditEventBuilder.delete_reverted(bill_id, error_message))
    
    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> None:
        await self.log(AuditEventBuilder.system_error(error_type, error_message, details))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.
    
    Use this at the start of a new user action (e.g., bill upload).
    """
    return uuid4()
