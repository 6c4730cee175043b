"""Change classification for bill update events.

Turns the change records of one update into a single prioritized message.
Categories are evaluated over the whole change set in a fixed order and the
first match wins:

1. paidAmount updated      -> "payment updated"
2. remainingAmount updated -> "pending amount changed"
3. item added              -> "new item added"
4. item removed            -> "item removed"
5. item updated            -> "item updated"
6. status updated          -> "status changed"
7. customer field updated  -> "customer name/phone/address changed"
8. any other field         -> "{field} updated"
9. nothing recognized      -> "bill updated"

Change records normally come from a backend diff or from diff_snapshots().
infer_changes() is a best-effort stand-in for bills that carry no diff.
"""

import logging
from collections import defaultdict
from collections.abc import Iterable
from decimal import Decimal

from billing.audit.schema import AuditIcon, ChangeKind, ChangeRecord, ChangeSummary
from billing.invoice.calculator import gross_total, round_money
from billing.invoice.schema import Bill, BillStatus, LineItem
from billing.payment.reconciler import reconcile

logger = logging.getLogger(__name__)

FALLBACK_MESSAGE = "bill updated"
UNKNOWN_CUSTOMER = "Unknown Customer"

CUSTOMER_FIELD_MESSAGES: dict[str, str] = {
    "customerName": "customer name changed",
    "customerPhone": "customer phone changed",
    "customerAddress": "customer address changed",
}

_PRIORITY_FIELDS = {"paidAmount", "remainingAmount", "status", *CUSTOMER_FIELD_MESSAGES}

_ITEM_MESSAGES: list[tuple[ChangeKind, str]] = [
    (ChangeKind.ITEM_ADDED, "new item added"),
    (ChangeKind.ITEM_REMOVED, "item removed"),
    (ChangeKind.ITEM_UPDATED, "item updated"),
]


def matched_categories(records: Iterable[ChangeRecord]) -> list[tuple[str, AuditIcon]]:
    """List every matched change category, highest priority first."""
    fields: list[str] = []
    kinds: set[ChangeKind] = set()
    for record in records:
        kinds.add(record.kind)
        if record.kind == ChangeKind.FIELD_UPDATED and record.field_name:
            fields.append(record.field_name)

    matched: list[tuple[str, AuditIcon]] = []
    if "paidAmount" in fields:
        matched.append(("payment updated", AuditIcon.MONEY))
    if "remainingAmount" in fields:
        matched.append(("pending amount changed", AuditIcon.CARD))
    for kind, message in _ITEM_MESSAGES:
        if kind in kinds:
            matched.append((message, AuditIcon.RECEIPT))
    if "status" in fields:
        matched.append(("status changed", AuditIcon.NOTE))
    for field, message in CUSTOMER_FIELD_MESSAGES.items():
        if field in fields:
            matched.append((message, AuditIcon.PERSON))

    other = next((field for field in fields if field not in _PRIORITY_FIELDS), None)
    if other:
        matched.append((f"{other} updated", AuditIcon.NOTE))
    return matched


def classify(records: Iterable[ChangeRecord], keep_all_messages: bool = False) -> ChangeSummary:
    """Collapse the change records of one update into a single message.

    Args:
        records: Change records of one update event
        keep_all_messages: Keep every matched category in all_messages
            instead of only the prioritized one

    Returns:
        ChangeSummary with the prioritized message and its icon
    """
    matched = matched_categories(records)
    if not matched:
        return ChangeSummary(
            message=FALLBACK_MESSAGE, icon=AuditIcon.NOTE, all_messages=[FALLBACK_MESSAGE]
        )

    message, icon = matched[0]
    all_messages = [m for m, _ in matched] if keep_all_messages else [message]
    return ChangeSummary(message=message, icon=icon, all_messages=all_messages)


def infer_changes(bill: Bill) -> list[ChangeRecord]:
    """Guess likely changes from a bill's current values.

    Best effort only: used for bills updated without a recorded diff. A
    payment on the bill reads as a payment update, a settled or pending status
    as a status change, and so on.

    Inferred records are ranked by classify() like any other change set, so an
    item update outranks a status change and each category keeps its own icon
    rather than a single note icon for every inferred entry.
    """
    records: list[ChangeRecord] = []
    if bill.paid_amount > 0:
        records.append(ChangeRecord(kind=ChangeKind.FIELD_UPDATED, field_name="paidAmount"))
    if bill.explicit_status in (BillStatus.COMPLETED, BillStatus.PENDING):
        records.append(ChangeRecord(kind=ChangeKind.FIELD_UPDATED, field_name="status"))
    if bill.items:
        records.append(ChangeRecord(kind=ChangeKind.ITEM_UPDATED))
    name = (bill.customer_name or "").strip()
    if name and name != UNKNOWN_CUSTOMER and len(name) > 2:
        records.append(ChangeRecord(kind=ChangeKind.FIELD_UPDATED, field_name="customerName"))
    return records


def _remaining(bill: Bill) -> Decimal:
    total = round_money(gross_total(bill.items))
    return reconcile(total, bill.paid_amount, bill.payment_mode).remaining_amount


def _item_key(item: LineItem) -> str:
    return item.name.strip().lower()


def _diff_items(before: list[LineItem], after: list[LineItem]) -> list[ChangeRecord]:
    unmatched: dict[str, list[LineItem]] = defaultdict(list)
    for item in before:
        unmatched[_item_key(item)].append(item)

    records: list[ChangeRecord] = []
    for item in after:
        candidates = unmatched.get(_item_key(item))
        if not candidates:
            records.append(ChangeRecord(kind=ChangeKind.ITEM_ADDED))
            continue
        previous = candidates.pop(0)
        if (previous.unit_price, previous.quantity) != (item.unit_price, item.quantity):
            records.append(ChangeRecord(kind=ChangeKind.ITEM_UPDATED))

    for leftover in unmatched.values():
        records.extend(ChangeRecord(kind=ChangeKind.ITEM_REMOVED) for _ in leftover)
    return records


def diff_snapshots(before: Bill, after: Bill) -> list[ChangeRecord]:
    """Compare two snapshots of the same bill and list what changed.

    Field names use the wire (camelCase) spelling so the records look the
    same as those produced by the backend diff. Items are matched by name.
    """
    compared = [
        ("paidAmount", before.paid_amount, after.paid_amount),
        ("remainingAmount", _remaining(before), _remaining(after)),
        ("status", before.explicit_status, after.explicit_status),
        ("customerName", before.customer_name, after.customer_name),
        ("customerPhone", before.customer_phone, after.customer_phone),
        ("customerAddress", before.customer_address, after.customer_address),
        ("customerState", before.customer_state, after.customer_state),
        ("billType", before.bill_type, after.bill_type),
        ("paymentMode", before.payment_mode, after.payment_mode),
        ("billDate", before.bill_date, after.bill_date),
    ]
    records = [
        ChangeRecord(kind=ChangeKind.FIELD_UPDATED, field_name=field)
        for field, old, new in compared
        if old != new
    ]
    records.extend(_diff_items(before.items, after.items))

    logger.debug(f"Snapshot diff for bill {after.id}: {len(records)} change(s)")
    return records
