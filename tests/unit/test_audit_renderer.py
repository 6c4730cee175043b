"""Unit tests for audit entry rendering."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from billing.audit.renderer import build_audit_trail, render, was_edited
from billing.audit.schema import AuditIcon, ChangeKind, ChangeRecord
from billing.invoice.adapter import bill_from_record
from billing.invoice.schema import Bill, LineItem

CREATED = datetime(2024, 5, 1, 10, 0)


def make_bill(bill_id: str, updated_at: datetime | None, **kwargs: object) -> Bill:
    return Bill(
        id=bill_id,
        bill_number=f"GST/2024-25/{bill_id}",
        created_at=CREATED,
        updated_at=updated_at,
        **kwargs,  # type: ignore[arg-type]
    )


@pytest.fixture
def payment_change() -> list[ChangeRecord]:
    """A recorded payment update."""
    return [ChangeRecord(kind=ChangeKind.FIELD_UPDATED, field_name="paidAmount")]


class TestRender:
    """Test single entry rendering."""

    def test_never_edited_bill_has_no_entry(self, payment_change: list[ChangeRecord]) -> None:
        """Test that a bill whose update time equals its creation time is skipped."""
        assert render(make_bill("0001", CREATED), payment_change) is None
        assert render(make_bill("0001", None), payment_change) is None

    def test_entry_from_recorded_changes(self, payment_change: list[ChangeRecord]) -> None:
        """Test an entry built from a backend diff."""
        updated = datetime(2024, 5, 2, 9, 30)
        bill = make_bill("0001", updated, customer_name="Asha Patil")

        entry = render(bill, payment_change)

        assert entry is not None
        assert entry.bill_id == "0001"
        assert entry.bill_number == "GST/2024-25/0001"
        assert entry.customer_name == "Asha Patil"
        assert entry.message == "payment updated"
        assert entry.icon == AuditIcon.MONEY
        assert entry.icon.glyph == "💰"
        assert entry.timestamp == updated.replace(tzinfo=timezone.utc)
        assert entry.best_effort is False

    def test_missing_customer_name(self, payment_change: list[ChangeRecord]) -> None:
        """Test the placeholder customer name."""
        entry = render(make_bill("0001", datetime(2024, 5, 2)), payment_change)

        assert entry is not None
        assert entry.customer_name == "Unknown Customer"

    def test_inferred_entry_is_best_effort(self) -> None:
        """Test that entries without a diff are inferred and flagged."""
        bill = make_bill(
            "0002",
            datetime(2024, 5, 3),
            items=[LineItem(name="Shirt", unit_price=Decimal("500"))],
        )

        entry = render(bill, None)

        assert entry is not None
        assert entry.best_effort is True
        assert entry.message == "item updated"

    def test_inferred_entry_with_nothing_to_infer(self) -> None:
        """Test the generic message when nothing can be inferred."""
        entry = render(make_bill("0003", datetime(2024, 5, 3)), [])

        assert entry is not None
        assert entry.message == "bill updated"
        assert entry.best_effort is True


def test_was_edited() -> None:
    """Test edit detection from timestamps."""
    assert was_edited(make_bill("0001", datetime(2024, 5, 2))) is True
    assert was_edited(make_bill("0001", CREATED)) is False
    assert was_edited(make_bill("0001", None)) is False


def test_audit_trail_sorted_most_recent_first(payment_change: list[ChangeRecord]) -> None:
    """Test that the global trail is ordered by timestamp, descending."""
    events = [
        (make_bill("0001", datetime(2024, 5, 2)), payment_change),
        (make_bill("0002", CREATED), payment_change),
        (make_bill("0003", datetime(2024, 6, 1)), None),
        (make_bill("0004", datetime(2024, 5, 15)), payment_change),
    ]

    entries = build_audit_trail(events)

    assert [entry.bill_id for entry in entries] == ["0003", "0004", "0001"]
    timestamps = [entry.timestamp for entry in entries]
    assert timestamps == sorted(timestamps, reverse=True)


class TestMixedTimezones:
    """Test bills whose timestamps were stored with and without an offset."""

    def test_trail_mixes_aware_and_naive_timestamps(
        self, payment_change: list[ChangeRecord]
    ) -> None:
        """Test that offset-less timestamps are read as UTC and sort with aware ones."""
        aware = bill_from_record(
            {
                "id": "0001",
                "createdAt": "2024-06-01T10:00:00Z",
                "updatedAt": "2024-06-02T10:00:00Z",
            }
        )
        naive = bill_from_record(
            {
                "id": "0002",
                "createdAt": "2024-06-01T10:00:00",
                "updatedAt": "2024-06-03T10:00:00",
            }
        )

        entries = build_audit_trail([(aware, payment_change), (naive, payment_change)])

        assert [entry.bill_id for entry in entries] == ["0002", "0001"]
        assert entries[0].timestamp == datetime(2024, 6, 3, 10, 0, tzinfo=timezone.utc)

    def test_same_instant_with_and_without_offset_is_not_an_edit(self) -> None:
        """Test that an aware creation time and a naive update time can match."""
        bill = bill_from_record(
            {"createdAt": "2024-06-01T10:00:00Z", "updatedAt": "2024-06-01T10:00:00"}
        )

        assert was_edited(bill) is False
        assert render(bill, None) is None
