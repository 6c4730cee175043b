"""Billing summary report over evaluated bills.

Aggregates revenue, collections and outstanding amounts together with status
and bill type breakdowns, as shown on the billing dashboard. Works only on
engine-derived BillSummary values, never on persisted totals.
"""

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal

from billing.engine.service import BillSummary
from billing.invoice.calculator import ZERO, round_money
from billing.invoice.schema import BillStatus, BillType


@dataclass
class BillingReport:
    """Aggregated billing figures."""

    total_bills: int
    total_revenue: Decimal
    total_tax: Decimal
    collected_amount: Decimal
    outstanding_amount: Decimal
    status_breakdown: dict[str, int] = field(default_factory=dict)
    bill_type_breakdown: dict[str, int] = field(default_factory=dict)


def summarize_bills(summaries: Iterable[BillSummary]) -> BillingReport:
    """Aggregate evaluated bills into a report.

    Drafts are counted in the breakdowns but excluded from revenue,
    collections and outstanding amounts.

    Args:
        summaries: Engine results for the bills to report on

    Returns:
        BillingReport with rounded totals
    """
    total_bills = 0
    revenue = tax = collected = outstanding = ZERO
    statuses: Counter[str] = Counter()
    bill_types: Counter[str] = Counter()

    for summary in summaries:
        total_bills += 1
        statuses[summary.effective_status.value] += 1
        bill_types[summary.bill_type.value] += 1

        if summary.effective_status == BillStatus.DRAFT:
            continue

        revenue += summary.total_amount
        tax += summary.tax_amount
        collected += summary.total_amount - summary.remaining_amount
        outstanding += summary.remaining_amount

    return BillingReport(
        total_bills=total_bills,
        total_revenue=round_money(revenue),
        total_tax=round_money(tax),
        collected_amount=round_money(collected),
        outstanding_amount=round_money(outstanding),
        status_breakdown={status.value: statuses[status.value] for status in BillStatus},
        bill_type_breakdown={
            bill_type.value: bill_types[bill_type.value] for bill_type in BillType
        },
    )
