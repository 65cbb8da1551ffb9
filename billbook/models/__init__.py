"""
Data Models Package

All data flowing through BillBook conforms to these pydantic schemas.
"""

from billbook.models.bill import (
    BillData,
    BillerGroup,
    BillFilter,
    BillRecord,
    BillStatus,
    ChartPoint,
    ChartType,
    ReportGroupBy,
    ReportQuery,
    SaveOutcome,
    SaveResult,
    StatusFilter,
    UploadedDocument,
    safe_amount,
)
from billbook.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Bill models
    "BillData",
    "BillerGroup",
    "BillFilter",
    "BillRecord",
    "BillStatus",
    "ChartPoint",
    "ChartType",
    "ReportGroupBy",
    "ReportQuery",
    "SaveOutcome",
    "SaveResult",
    "StatusFilter",
    "UploadedDocument",
    "safe_amount",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
