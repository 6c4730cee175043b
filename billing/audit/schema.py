"""Change record and audit entry models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class ChangeKind(str, Enum):
    """Kind of change reported by the backend diff."""

    FIELD_UPDATED = "FIELD_UPDATED"
    ITEM_ADDED = "ITEM_ADDED"
    ITEM_REMOVED = "ITEM_REMOVED"
    ITEM_UPDATED = "ITEM_UPDATED"


class AuditIcon(str, Enum):
    """Icon category shown next to an audit entry."""

    MONEY = "money"
    CARD = "card"
    RECEIPT = "receipt"
    NOTE = "note"
    PERSON = "person"

    @property
    def glyph(self) -> str:
        return ICON_GLYPHS[self]


ICON_GLYPHS: dict[AuditIcon, str] = {
    AuditIcon.MONEY: "💰",
    AuditIcon.CARD: "💳",
    AuditIcon.RECEIPT: "🧾",
    AuditIcon.NOTE: "📝",
    AuditIcon.PERSON: "👤",
}


class ChangeRecord(BaseModel):
    """A single field or item level change from one bill update."""

    kind: ChangeKind
    field_name: str | None = Field(None, description="Changed field (FIELD_UPDATED only)")


class ChangeSummary(BaseModel):
    """Prioritized, human-readable summary of one update event."""

    message: str
    icon: AuditIcon
    all_messages: list[str]


class AuditEntry(BaseModel):
    """One rendered history entry for a bill update event.

    Attributes:
        bill_id: Bill identifier
        bill_number: Printed bill number
        customer_name: Customer name ("Unknown Customer" when missing)
        icon: Icon category for the prioritized message
        message: Single prioritized change message
        all_messages: Messages backing the entry
        timestamp: When the update happened (the bill's updated_at)
        best_effort: True when changes were inferred heuristically
    """

    bill_id: str | None
    bill_number: str | None
    customer_name: str
    icon: AuditIcon
    message: str
    all_messages: list[str]
    timestamp: datetime
    best_effort: bool = False
