"""
Tests for BillBook

Test strategy:
1. Unit tests for individual components (models, resolver, queries)
2. Integration tests for flows (with in-memory store and fake extractor)
3. No real API calls in tests (use mocks)
"""

import asyncio
import logging
import pytest
from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

from pydantic import ValidationError

from billbook.audit import AuditLogger, configure_logging
from billbook.config import AppSettings, validate_all_settings
from billbook.models.bill import (
    BillData,
    BillRecord,
    BillStatus,
    ReportGroupBy,
    ReportQuery,
    SaveOutcome,
    SaveResult,
    UploadedDocument,
    safe_amount,
)
from billbook.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestBillModels:
    """Tests for bill-related Pydantic models."""

    def test_bill_data_accepts_extractor_keys(self):
        """Test BillData creation from camelCase keys."""
        data = BillData.model_validate({
            "billName": "City Power",
            "dateOfPeriod": "October 2023",
            "dueDate": "Nov 15, 2023",
            "amount": 42.5,
            "currency": "$",
            "summary": "Electricity",
        })
        assert data.bill_name == "City Power"
        assert data.date_of_period == "October 2023"
        assert data.due_date == "Nov 15, 2023"

    def test_bill_data_accepts_field_names(self):
        data = BillData(bill_name="City Power", date_of_period="Oct 2023")
        assert data.bill_name == "City Power"

    def test_bill_data_strips_whitespace(self):
        """Test that whitespace is stripped from the biller name."""
        data = BillData(bill_name="  City Power  ")
        assert data.bill_name == "City Power"

    def test_bill_data_normalizes_missing_values(self):
        data = BillData.model_validate({
            "billName": None,
            "dateOfPeriod": None,
            "dueDate": "  ",
            "summary": "",
            "currency": None,
        })
        assert data.bill_name == ""
        assert data.date_of_period == ""
        assert data.due_date is None
        assert data.summary is None
        assert data.currency == "$"

    @pytest.mark.parametrize("value,expected", [
        (42.5, Decimal("42.5")),
        ("1,234.50", Decimal("1234.50")),
        ("abc", Decimal("0")),
        (None, Decimal("0")),
        (True, Decimal("0")),
        (float("nan"), Decimal("0")),
        (float("inf"), Decimal("0")),
        (Decimal("-3"), Decimal("-3")),
    ])
    def test_safe_amount(self, value, expected):
        assert safe_amount(value) == expected

    def test_bill_data_never_rejects_amount(self):
        """Test that a bad amount becomes zero instead of failing."""
        data = BillData(bill_name="Water Co", amount="n/a")
        assert data.amount == Decimal("0")

    def test_bill_record_requires_id(self):
        with pytest.raises(ValidationError):
            BillRecord(id="", created_at=0)

    def test_bill_record_defaults_to_unpaid(self):
        record = BillRecord(id="abc", created_at=0)
        assert record.status == BillStatus.UNPAID

    def test_bill_record_created_at_is_utc(self):
        record = BillRecord(id="abc", created_at=1709596800000)
        assert record.created_at_datetime == datetime(2024, 3, 5, tzinfo=timezone.utc)

    def test_bill_record_reference(self):
        record = BillRecord(id="3f2a9c1b-0000-4000-8000-000000000000", created_at=0)
        assert record.reference == "#3F2A9C1B"

    def test_with_status_returns_copy(self):
        record = BillRecord(id="abc", created_at=0)
        paid = record.with_status(BillStatus.PAID)
        assert paid.status == BillStatus.PAID
        assert record.status == BillStatus.UNPAID

    def test_status_toggle(self):
        assert BillStatus.PAID.toggled() == BillStatus.UNPAID
        assert BillStatus.UNPAID.toggled() == BillStatus.PAID

    def test_uploaded_document_media_type_lowercased(self):
        document = UploadedDocument(media_type=" Image/PNG ", size_bytes=10)
        assert document.media_type == "image/png"

    def test_uploaded_document_rejects_negative_size(self):
        with pytest.raises(ValidationError):
            UploadedDocument(media_type="image/png", size_bytes=-1)

    def test_save_result_outcome(self):
        record = BillRecord(id="abc", created_at=0)
        assert SaveResult(record=record, outcome=SaveOutcome.PERSISTED).is_persisted
        local = SaveResult(record=record, outcome=SaveOutcome.LOCAL_FALLBACK, error="boom")
        assert not local.is_persisted

    def test_report_query_single_biller_groups_by_period(self):
        query = ReportQuery(biller="City Power", group_by=ReportGroupBy.BILLER)
        assert query.effective_group_by == ReportGroupBy.PERIOD
        assert ReportQuery(group_by=ReportGroupBy.BILLER).effective_group_by == ReportGroupBy.BILLER


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.BILL_SAVED,
            description="Bill saved",
        )
        assert event.event_type == AuditEventType.BILL_SAVED
        assert event.severity == AuditSeverity.INFO
        assert event.timestamp.tzinfo is not None

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        correlation_id = uuid4()
        event = AuditEvent(
            event_type=AuditEventType.LOCAL_FALLBACK_USED,
            bill_id="abc",
            correlation_id=correlation_id,
            description="Test event",
        )
        log_dict = event.to_log_dict()

        assert log_dict["event_type"] == "local_fallback_used"
        assert log_dict["bill_id"] == "abc"
        assert log_dict["correlation_id"] == str(correlation_id)

    def test_audit_event_builder_local_fallback(self):
        correlation_id = uuid4()
        event = AuditEventBuilder.local_fallback_used(
            bill_id="abc",
            error_message="Bills table is missing",
            correlation_id=correlation_id,
        )
        assert event.event_type == AuditEventType.LOCAL_FALLBACK_USED
        assert event.severity == AuditSeverity.WARNING
        assert event.error_message == "Bills table is missing"

    def test_audit_event_builder_status_reverted(self):
        event = AuditEventBuilder.status_update_reverted("abc", "timeout")
        assert event.severity == AuditSeverity.ERROR
        assert event.bill_id == "abc"


class TestAuditLogger:
    """Tests for the in-memory side of the audit logger."""

    def test_log_keeps_events(self):
        audit_logger = AuditLogger()
        assert asyncio.run(audit_logger.log(AuditEventBuilder.bill_deleted("abc")))
        assert [e.event_type for e in audit_logger.events] == [AuditEventType.BILL_DELETED]

    def test_log_keeps_only_recent_events(self):
        audit_logger = AuditLogger(max_events=2)
        for count in range(3):
            asyncio.run(audit_logger.log_bills_loaded(count))
        assert [e.details["count"] for e in audit_logger.events] == [1, 2]


class TestSettings:
    """Tests for application settings."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("STORAGE_BACKEND", raising=False)
        settings = AppSettings()
        assert settings.storage_backend == "sheets"
        assert "application/pdf" in settings.supported_media_types_list
        assert settings.max_upload_size_bytes == 10 * 1024 * 1024

    def test_rejects_unknown_backend(self, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "postgres")
        with pytest.raises(ValidationError):
            AppSettings()

    def test_validate_all_settings_reports_errors(self, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        status = validate_all_settings()
        assert status["gemini"] is False
        assert "gemini_error" in status
        assert status["app"] is True

    def test_debug_mode_sets_log_level(self):
        """Test that DEBUG_MODE controls the level of the billbook loggers."""
        billbook_logger = logging.getLogger("billbook")
        previous = billbook_logger.level
        try:
            assert configure_logging(AppSettings(debug_mode=True)) == logging.DEBUG
            assert billbook_logger.isEnabledFor(logging.DEBUG)

            assert configure_logging(AppSettings(debug_mode=False)) == logging.INFO
            assert billbook_logger.isEnabledFor(logging.INFO)
            assert not billbook_logger.isEnabledFor(logging.DEBUG)
        finally:
            billbook_logger.setLevel(previous)
