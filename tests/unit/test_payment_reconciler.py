"""Unit tests for payment reconciliation."""

from decimal import Decimal

import pytest

from billing.invoice.schema import BillStatus, PaymentMode
from billing.payment.reconciler import derive_status, reconcile


class TestReconcile:
    """Test remaining amount and status derivation."""

    def test_partial_payment_is_pending(self) -> None:
        """Test that an unpaid balance leaves the bill pending."""
        result = reconcile(Decimal("1180"), Decimal("500"), PaymentMode.PARTIAL)

        assert result.paid_amount == Decimal("500.00")
        assert result.remaining_amount == Decimal("680.00")
        assert result.effective_status == BillStatus.PENDING

    def test_full_payment_is_completed(self) -> None:
        """Test that full payment settles the bill whatever was recorded as paid."""
        result = reconcile(Decimal("1180"), Decimal("500"), PaymentMode.FULL)

        assert result.paid_amount == Decimal("1180.00")
        assert result.remaining_amount == Decimal("0.00")
        assert result.effective_status == BillStatus.COMPLETED

    def test_overpayment_never_goes_negative(self) -> None:
        """Test that paying more than the total leaves nothing outstanding."""
        result = reconcile(Decimal("1180"), Decimal("1500"), PaymentMode.PARTIAL)

        assert result.remaining_amount == Decimal("0.00")
        assert result.effective_status == BillStatus.COMPLETED

    def test_exact_partial_payment_completes(self) -> None:
        """Test that a partial payment covering the total completes the bill."""
        result = reconcile(Decimal("1180"), Decimal("1180"), PaymentMode.PARTIAL)

        assert result.effective_status == BillStatus.COMPLETED

    def test_sub_paisa_remainder_completes(self) -> None:
        """Test that status is derived from the rounded remaining amount."""
        result = reconcile(Decimal("100.004"), Decimal("100"), PaymentMode.PARTIAL)

        assert result.remaining_amount == Decimal("0.00")
        assert result.effective_status == BillStatus.COMPLETED

    def test_draft_is_never_auto_completed(self) -> None:
        """Test that a draft stays a draft even when fully paid."""
        result = reconcile(Decimal("1180"), Decimal("0"), PaymentMode.FULL, BillStatus.DRAFT)

        assert result.remaining_amount == Decimal("0.00")
        assert result.effective_status == BillStatus.DRAFT

    @pytest.mark.parametrize(
        "persisted,mode,expected",
        [
            (BillStatus.PENDING, PaymentMode.FULL, BillStatus.COMPLETED),
            (BillStatus.COMPLETED, PaymentMode.PARTIAL, BillStatus.PENDING),
        ],
    )
    def test_persisted_status_is_recomputed(
        self, persisted: BillStatus, mode: PaymentMode, expected: BillStatus
    ) -> None:
        """Test that a stale persisted status does not override the derivation."""
        result = reconcile(Decimal("1180"), Decimal("100"), mode, persisted)

        assert result.effective_status == expected

    def test_idempotent(self) -> None:
        """Test that reconciling the same inputs twice gives the same result."""
        first = reconcile(Decimal("999.99"), Decimal("333.33"), PaymentMode.PARTIAL)
        second = reconcile(Decimal("999.99"), Decimal("333.33"), PaymentMode.PARTIAL)

        assert first == second

    def test_remaining_decreases_as_payment_grows(self) -> None:
        """Test that paying more never increases the remaining amount."""
        payments = [Decimal(p) for p in ("0", "100", "500", "1179.99", "1180", "2000")]

        remaining = [
            reconcile(Decimal("1180"), paid, PaymentMode.PARTIAL).remaining_amount
            for paid in payments
        ]

        assert remaining == sorted(remaining, reverse=True)


def test_derive_status() -> None:
    """Test status derivation from the remaining amount."""
    assert derive_status(Decimal("0")) == BillStatus.COMPLETED
    assert derive_status(Decimal("0.01")) == BillStatus.PENDING
    assert derive_status(Decimal("0"), BillStatus.DRAFT) == BillStatus.DRAFT
    assert derive_status(Decimal("10"), BillStatus.COMPLETED) == BillStatus.PENDING
