"""
Core Data Models for BillBook

These models define the schemas for all data flowing through the system:
what the extractor proposes, what the store keeps, and what the list and
report views compute.

DESIGN DECISION: Extracted fields are untrusted free text. The models
normalize obvious null-ish values but never reject a bill because its
period or due date looks odd - the period resolver copes with that.
"""

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


def safe_amount(value: Any) -> Decimal:
    """
    Coerce an amount to a finite Decimal.
    
    Missing, non-numeric, NaN or infinite amounts become zero so they can
    never leak into a displayed total. Thousands separators are tolerated.
    """
    if value is None or isinstance(value, bool):
        return Decimal("0")
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).strip().replace(",", ""))
        except (InvalidOperation, ValueError):
            return Decimal("0")
    if not amount.is_finite():
        return Decimal("0")
    return amount


# =============================================================================
# ENUMS
# =============================================================================

class BillStatus(str, Enum):
    """
    Payment status for a bill.
    
    Toggling between the two values is the only mutation a record allows.
    """
    PAID = "paid"
    UNPAID = "unpaid"
    
    def toggled(self) -> "BillStatus":
        return BillStatus.UNPAID if self is BillStatus.PAID else BillStatus.PAID


class SaveOutcome(str, Enum):
    """How a newly extracted bill ended up in the collection."""
    PERSISTED = "persisted"            # Stored and returned by the record store
    LOCAL_FALLBACK = "local_fallback"  # Store failed; held in memory for this session


class StatusFilter(str, Enum):
    """Status dropdown on the bills list."""
    ALL = "all"
    PAID = "paid"
    UNPAID = "unpaid"


class ReportGroupBy(str, Enum):
    """X-axis grouping for the spending report."""
    PERIOD = "period"
    BILLER = "biller"


class ChartType(str, Enum):
    """Presentation only - does not change the aggregated data."""
    BAR = "bar"
    LINE = "line"
    PIE = "pie"


# =============================================================================
# BILL MODELS
# =============================================================================

class BillData(BaseModel):
    """
    Bill fields proposed by the extractor, not yet persisted.
    
    Accepts both the extractor's camelCase keys (billName, dateOfPeriod)
    and snake_case field names.
    """
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)
    
    bill_name: str = Field(
        default="",
        alias="billName",
        description="Company or entity issuing the bill"
    )
    date_of_period: str = Field(
        default="",
        alias="dateOfPeriod",
        description="Billing period as free text, ideally 'Month Year'"
    )
    due_date: Optional[str] = Field(
        default=None,
        alias="dueDate",
        description="Payment due date as free text"
    )
    amount: Decimal = Field(
        default=Decimal("0"),
        description="Current charges for the period (not validated)"
    )
    currency: str = Field(
        default="$",
        description="Currency symbol or code"
    )
    summary: Optional[str] = Field(
        default=None,
        description="One-sentence description of the bill"
    )
    
    @field_validator('bill_name', 'date_of_period', mode='before')
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v
    
    @field_validator('due_date', 'summary', mode='before')
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if v is None:
            return None
        if isinstance(v, str) and not v.strip():
            return None
        return v
    
    @field_validator('currency', mode='before')
    @classmethod
    def default_currency(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return "$"
        return v
    
    @field_validator('amount', mode='before')
    @classmethod
    def coerce_amount(cls, v: Any) -> Decimal:
        return safe_amount(v)


class BillRecord(BillData):
    """
    A bill in the collection, persisted or held locally.
    
    The canonical period key is NOT stored here. It is derived on demand
    by billbook.periods.period_key so every view computes the same value.
    """
    
    id: str = Field(
        ...,
        min_length=1,
        description="Opaque unique id (store-assigned or local UUID)"
    )
    created_at: int = Field(
        ...,
        description="Creation time in epoch milliseconds"
    )
    status: BillStatus = Field(
        default=BillStatus.UNPAID,
        description="Payment status"
    )
    
    @property
    def created_at_datetime(self) -> datetime:
        """Creation time as an aware UTC datetime."""
        return datetime.fromtimestamp(self.created_at / 1000, tz=timezone.utc)
    
    @property
    def reference(self) -> str:
        """Short display reference, e.g. '#3F2A9C1B'."""
        return f"#{self.id[:8].upper()}"
    
    def with_status(self, status: BillStatus) -> "BillRecord":
        return self.model_copy(update={"status": status})


class UploadedDocument(BaseModel):
    """A document handed in for extraction."""
    
    filename: str = Field(default="document")
    media_type: str
    size_bytes: int = Field(ge=0)
    
    @field_validator('media_type')
    @classmethod
    def normalize_media_type(cls, v: str) -> str:
        return v.strip().lower()


class SaveResult(BaseModel):
    """
    Result of the upload flow.
    
    The outcome is explicit so callers can tell a persisted bill from a
    session-only one.
    """
    
    record: BillRecord
    outcome: SaveOutcome
    error: Optional[str] = Field(
        default=None,
        description="Store error text when the local fallback was used"
    )
    
    @property
    def is_persisted(self) -> bool:
        return self.outcome == SaveOutcome.PERSISTED


# =============================================================================
# VIEW MODELS (bills list and report)
# =============================================================================

class BillFilter(BaseModel):
    """Combined filters of the bills list (logical AND)."""
    
    search: str = Field(default="", description="Free text against name and summary")
    status: StatusFilter = Field(default=StatusFilter.ALL)
    month: Optional[str] = Field(
        default=None,
        description="Canonical period key, or None for all months"
    )


class BillerGroup(BaseModel):
    """Bills of one biller, as shown when the list is grouped."""
    
    name: str
    items: list[BillRecord] = Field(default_factory=list)
    total: Decimal = Field(
        default=Decimal("0"),
        description="Raw sum of amounts, regardless of currency"
    )
    latest: int = Field(
        default=0,
        description="Most recent created_at in the group"
    )
    
    @property
    def count(self) -> int:
        return len(self.items)


class ReportQuery(BaseModel):
    """Selections of the report dashboard."""
    
    biller: Optional[str] = Field(default=None, description="None = all billers")
    year: Optional[str] = Field(default=None, description="None = all years")
    group_by: ReportGroupBy = Field(default=ReportGroupBy.PERIOD)
    chart_type: ChartType = Field(default=ChartType.BAR)
    
    @property
    def effective_group_by(self) -> ReportGroupBy:
        """A single biller is always shown as a timeline."""
        if self.biller is not None:
            return ReportGroupBy.PERIOD
        return self.group_by


class ChartPoint(BaseModel):
    """One bucket of the spending chart."""
    
    name: str
    value: Decimal
