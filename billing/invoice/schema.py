"""Bill and line item models.

Normalized shapes used by every engine component. Raw records coming from the
UI layer are mapped into these models by billing.invoice.adapter; nothing past
that boundary reads duck-typed field names.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field, computed_field, field_validator


class BillType(str, Enum):
    """Bill classification controlling which tax rules apply."""

    GST = "GST"
    NON_GST = "NON_GST"
    QUOTATION = "QUOTATION"
    DEMO = "DEMO"


class PaymentMode(str, Enum):
    """How the customer settles the bill."""

    FULL = "FULL"
    PARTIAL = "PARTIAL"


class BillStatus(str, Enum):
    """Bill lifecycle status."""

    DRAFT = "DRAFT"
    COMPLETED = "COMPLETED"
    PENDING = "PENDING"


class LineItem(BaseModel):
    """A single billed line.

    For taxed bill types the unit price is tax-inclusive.
    """

    name: str = Field("", description="Item name as printed on the bill")
    unit_price: Decimal = Field(Decimal("0"), ge=0, description="Entered price per unit")
    quantity: int = Field(1, ge=1, description="Number of units")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


class Bill(BaseModel):
    """Bill snapshot as persisted or as being edited.

    Derived amounts (subtotal, tax, remaining, effective status) are never
    stored here; they are recomputed from these inputs on every read.
    """

    bill_type: BillType = BillType.GST
    customer_state: str = "N/A"
    items: list[LineItem] = Field(default_factory=list)
    payment_mode: PaymentMode = PaymentMode.FULL
    paid_amount: Decimal = Decimal("0")
    explicit_status: BillStatus | None = None

    # Metadata consumed by the audit renderer
    id: str | None = None
    bill_number: str | None = None
    customer_name: str | None = None
    customer_phone: str | None = None
    customer_address: str | None = None
    bill_date: date | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("created_at", "updated_at")
    @classmethod
    def assume_utc(cls, v: datetime | None) -> datetime | None:
        """Read offset-less timestamps as UTC so all timestamps compare."""
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class InvoiceTotals(BaseModel):
    """Rounded bill totals."""

    subtotal: Decimal
    tax_amount: Decimal
    total_amount: Decimal


class LineBreakdown(BaseModel):
    """Per-line reverse-calculated amounts for display and PDF output."""

    name: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    line_base: Decimal
    line_tax: Decimal


class TaxSplit(BaseModel):
    """Cosmetic CGST/SGST halving of a blended GST amount."""

    cgst_rate: Decimal
    sgst_rate: Decimal
    cgst_amount: Decimal
    sgst_amount: Decimal
