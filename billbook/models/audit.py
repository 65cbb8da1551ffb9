"""
Audit Models for BillBook

Significant actions (extraction, save, fallback, status changes, deletes)
are recorded as typed events. They are written to the structured log by
billbook.audit.AuditLogger.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Loading
    BILLS_LOADED = "bills_loaded"
    STORE_TABLE_MISSING = "store_table_missing"
    STORE_SCHEMA_OUTDATED = "store_schema_outdated"
    
    # Extraction
    EXTRACTION_COMPLETED = "extraction_completed"
    EXTRACTION_FAILED = "extraction_failed"
    
    # Persistence
    BILL_SAVED = "bill_saved"
    LOCAL_FALLBACK_USED = "local_fallback_used"
    BILL_DELETED = "bill_deleted"
    DELETE_REVERTED = "delete_reverted"
    
    # Payment status
    PAYMENT_STATUS_UPDATED = "payment_status_updated"
    STATUS_UPDATE_REVERTED = "status_update_reverted"
    
    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """A single audit event."""
    
    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )
    event_type: AuditEventType
    severity: AuditSeverity = Field(default=AuditSeverity.INFO)
    
    # Bill ids are opaque strings (store-assigned or local)
    bill_id: Optional[str] = None
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="Groups events of one user action (e.g. one upload)"
    )
    
    description: str
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None
    
    def to_log_dict(self) -> dict[str, Any]:
        """Flatten for the structured logger."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "bill_id": self.bill_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Factory methods for the events the flows emit.
    
    Keeps event wording consistent across call sites.
    """
    
    @staticmethod
    def bills_loaded(count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BILLS_LOADED,
            description=f"Loaded {count} bills from the record store",
            details={"count": count},
        )
    
    @staticmethod
    def store_table_missing(error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORE_TABLE_MISSING,
            severity=AuditSeverity.WARNING,
            description="Bills table is missing; data will not persist",
            error_message=error_message,
        )
    
    @staticmethod
    def store_schema_outdated(
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORE_SCHEMA_OUTDATED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description="Bills table is missing a required column",
            error_message=error_message,
        )
    
    @staticmethod
    def extraction_completed(
        bill_name: str,
        date_of_period: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTRACTION_COMPLETED,
            correlation_id=correlation_id,
            description=f"Extracted bill from {bill_name or 'unknown biller'}",
            details={"bill_name": bill_name, "date_of_period": date_of_period},
        )
    
    @staticmethod
    def extraction_failed(error_message: str, correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTRACTION_FAILED,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description="Bill extraction failed",
            error_message=error_message,
        )
    
    @staticmethod
    def bill_saved(bill_id: str, amount: str, correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BILL_SAVED,
            bill_id=bill_id,
            correlation_id=correlation_id,
            description="Bill saved to the record store",
            details={"amount": amount},
        )
    
    @staticmethod
    def local_fallback_used(
        bill_id: str,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOCAL_FALLBACK_USED,
            severity=AuditSeverity.WARNING,
            bill_id=bill_id,
            correlation_id=correlation_id,
            description="Store unavailable; bill kept for this session only",
            error_message=error_message,
        )
    
    @staticmethod
    def payment_status_updated(bill_id: str, status: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAYMENT_STATUS_UPDATED,
            bill_id=bill_id,
            description=f"Payment status set to {status}",
            details={"status": status},
        )
    
    @staticmethod
    def status_update_reverted(bill_id: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATUS_UPDATE_REVERTED,
            severity=AuditSeverity.ERROR,
            bill_id=bill_id,
            description="Status update failed and was reverted",
            error_message=error_message,
        )
    
    @staticmethod
    def bill_deleted(bill_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BILL_DELETED,
            bill_id=bill_id,
            description="Bill deleted",
        )
    
    @staticmethod
    def delete_reverted(bill_id: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DELETE_REVERTED,
            severity=AuditSeverity.ERROR,
            bill_id=bill_id,
            description="Delete failed and was reverted",
            error_message=error_message,
        )
    
    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            details=details or {},
            error_message=error_message,
        )
