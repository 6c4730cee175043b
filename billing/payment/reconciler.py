"""Payment reconciliation into a derived bill status.

The effective status is computed from the current totals and payment on every
read. A persisted status field is only honoured for drafts; COMPLETED and
PENDING are always recomputed.
"""

from decimal import Decimal

from pydantic import BaseModel

from billing.invoice.calculator import ZERO, round_money
from billing.invoice.schema import BillStatus, PaymentMode


class PaymentResult(BaseModel):
    """Result of payment reconciliation.

    Attributes:
        paid_amount: Amount counted as paid (equals total for full payments)
        remaining_amount: Outstanding amount, never negative
        effective_status: Live status derived from the remaining amount
    """

    paid_amount: Decimal
    remaining_amount: Decimal
    effective_status: BillStatus


def derive_status(
    remaining_amount: Decimal, explicit_status: BillStatus | None = None
) -> BillStatus:
    """Derive the bill status from what is still owed.

    Drafts are never auto-completed.
    """
    if explicit_status == BillStatus.DRAFT:
        return BillStatus.DRAFT
    if remaining_amount <= 0:
        return BillStatus.COMPLETED
    return BillStatus.PENDING


def reconcile(
    total_amount: Decimal,
    paid_amount: Decimal,
    payment_mode: PaymentMode,
    explicit_status: BillStatus | None = None,
) -> PaymentResult:
    """Compute the remaining amount and effective status of a bill.

    Args:
        total_amount: Tax-inclusive grand total
        paid_amount: Amount recorded as paid (ignored for full payments)
        payment_mode: FULL or PARTIAL
        explicit_status: Persisted status, honoured only when it is DRAFT

    Returns:
        PaymentResult with rounded amounts and the derived status
    """
    if payment_mode == PaymentMode.FULL:
        paid = total_amount
        remaining = ZERO
    else:
        paid = paid_amount
        remaining = max(ZERO, total_amount - paid_amount)

    remaining = round_money(remaining)
    return PaymentResult(
        paid_amount=round_money(paid),
        remaining_amount=remaining,
        effective_status=derive_status(remaining, explicit_status),
    )
