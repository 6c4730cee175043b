"""Billing engine facade.

Runs a bill snapshot through the full derivation chain:

    Tax Rate Resolver -> Invoice Total Calculator -> Payment Reconciler

and renders audit entries for bill updates. The result is the single source
of truth for displayed totals and status; persisted totals are never trusted.

Every call is a pure function of its inputs, so bills can be evaluated
independently and in any order.
"""

import logging
from collections.abc import Iterable, Sequence
from decimal import Decimal

from prometheus_client import Counter
from pydantic import BaseModel

from billing.audit.renderer import build_audit_trail, render
from billing.audit.schema import AuditEntry, ChangeRecord
from billing.invoice.calculator import compute_totals, is_taxed, line_breakdown, split_tax
from billing.invoice.schema import Bill, BillStatus, BillType, LineBreakdown, TaxSplit
from billing.invoice.words import amount_in_words
from billing.payment.reconciler import reconcile
from billing.shared.config import Settings
from billing.tax.resolver import resolve_bill_rate
from billing.tax.schema import CompanySettings

logger = logging.getLogger(__name__)


# Prometheus metrics for engine activity
bills_evaluated_total = Counter(
    "billing_bills_evaluated_total",
    "Total number of bill snapshots evaluated",
    ["bill_type", "status"],
)

rate_resolutions_total = Counter(
    "billing_rate_resolutions_total",
    "Total number of tax rate resolutions by source layer",
    ["source"],
)

audit_entries_total = Counter(
    "billing_audit_entries_total",
    "Total number of audit entries rendered",
    ["icon", "mode"],  # mode: diff, best_effort
)


class BillSummary(BaseModel):
    """Authoritative derived values for one bill.

    Consumed by history views and by the PDF collaborator, which receives
    only these computed totals.
    """

    bill_id: str | None = None
    bill_number: str | None = None
    bill_type: BillType
    gst_rate: Decimal
    subtotal: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    paid_amount: Decimal
    remaining_amount: Decimal
    effective_status: BillStatus
    tax_split: TaxSplit | None = None
    lines: list[LineBreakdown]
    amount_in_words: str


class BillingEngine:
    """Computes totals, payment status and audit history for bills.

    Attributes:
        settings: Application settings
        company: Company tax settings (state rate table and default rate)
    """

    def __init__(self, settings: Settings, company: CompanySettings | None = None) -> None:
        """Initialize engine.

        Args:
            settings: Application settings
            company: Company tax settings; defaults to an empty state table
                with the configured default rate
        """
        self.settings = settings
        self.company = company or CompanySettings(
            default_gst_rate=settings.default_gst_rate,
            company_state=settings.company_state,
        )

    def with_company(self, company: CompanySettings | None) -> "BillingEngine":
        """Get an engine bound to another company's settings (self if None)."""
        if company is None:
            return self
        return BillingEngine(self.settings, company)

    def evaluate(self, bill: Bill) -> BillSummary:
        """Derive totals and effective status for a bill.

        Args:
            bill: Bill snapshot

        Returns:
            BillSummary with rounded amounts and the live status
        """
        resolution = resolve_bill_rate(bill, self.company)
        rate_resolutions_total.labels(source=resolution.source).inc()

        totals = compute_totals(bill.items, bill.bill_type, resolution.rate)
        payment = reconcile(
            totals.total_amount, bill.paid_amount, bill.payment_mode, bill.explicit_status
        )

        bills_evaluated_total.labels(
            bill_type=bill.bill_type.value, status=payment.effective_status.value
        ).inc()
        logger.debug(
            f"Bill {bill.bill_number}: rate {resolution.rate}% ({resolution.source}), "
            f"total {totals.total_amount}, status {payment.effective_status.value}"
        )

        return BillSummary(
            bill_id=bill.id,
            bill_number=bill.bill_number,
            bill_type=bill.bill_type,
            gst_rate=resolution.rate,
            subtotal=totals.subtotal,
            tax_amount=totals.tax_amount,
            total_amount=totals.total_amount,
            paid_amount=payment.paid_amount,
            remaining_amount=payment.remaining_amount,
            effective_status=payment.effective_status,
            tax_split=(
                split_tax(totals.tax_amount, resolution.rate) if is_taxed(bill.bill_type) else None
            ),
            lines=line_breakdown(bill.items, bill.bill_type, resolution.rate),
            amount_in_words=amount_in_words(totals.total_amount),
        )

    def evaluate_many(self, bills: Iterable[Bill]) -> list[BillSummary]:
        """Evaluate bills independently, preserving input order."""
        return [self.evaluate(bill) for bill in bills]

    def audit_entry(
        self, bill: Bill, records: Sequence[ChangeRecord] | None = None
    ) -> AuditEntry | None:
        """Render the audit entry for a bill's latest update."""
        entry = render(bill, records, keep_all_messages=self.settings.audit_keep_all_messages)
        if entry is not None:
            audit_entries_total.labels(
                icon=entry.icon.value, mode="best_effort" if entry.best_effort else "diff"
            ).inc()
        return entry

    def audit_trail(
        self, events: Iterable[tuple[Bill, Sequence[ChangeRecord] | None]]
    ) -> list[AuditEntry]:
        """Build the global audit trail across bills, most recent first."""
        entries = build_audit_trail(
            events, keep_all_messages=self.settings.audit_keep_all_messages
        )
        for entry in entries:
            audit_entries_total.labels(
                icon=entry.icon.value, mode="best_effort" if entry.best_effort else "diff"
            ).inc()
        logger.info(f"Built audit trail with {len(entries)} entries")
        return entries
