"""Audit entry rendering for bill history views.

Exactly one entry is produced per bill update event, and only for bills that
were edited after creation. Entries from many bills can be merged into a
global trail ordered most recent first.
"""

import logging
from collections.abc import Iterable, Sequence

from billing.audit.classifier import UNKNOWN_CUSTOMER, classify, infer_changes
from billing.audit.schema import AuditEntry, ChangeRecord
from billing.invoice.schema import Bill

logger = logging.getLogger(__name__)


def was_edited(bill: Bill) -> bool:
    """Check whether a bill was updated after it was created."""
    return bill.updated_at is not None and bill.updated_at != bill.created_at


def render(
    bill: Bill,
    records: Sequence[ChangeRecord] | None = None,
    keep_all_messages: bool = False,
) -> AuditEntry | None:
    """Render the audit entry for a bill's latest update.

    Args:
        bill: Bill snapshot after the update
        records: Change records of the update; when empty, changes are
            inferred from the bill itself and the entry is flagged best effort
        keep_all_messages: Keep every matched category in all_messages

    Returns:
        AuditEntry, or None if the bill was never edited after creation
    """
    timestamp = bill.updated_at
    if timestamp is None or not was_edited(bill):
        return None

    best_effort = not records
    if best_effort:
        logger.debug(f"No change records for bill {bill.bill_number}, inferring from bill values")
        records = infer_changes(bill)

    summary = classify(records or [], keep_all_messages=keep_all_messages)

    return AuditEntry(
        bill_id=bill.id,
        bill_number=bill.bill_number,
        customer_name=bill.customer_name or UNKNOWN_CUSTOMER,
        icon=summary.icon,
        message=summary.message,
        all_messages=summary.all_messages,
        timestamp=timestamp,
        best_effort=best_effort,
    )


def build_audit_trail(
    events: Iterable[tuple[Bill, Sequence[ChangeRecord] | None]],
    keep_all_messages: bool = False,
) -> list[AuditEntry]:
    """Aggregate audit entries across bills, most recent first.

    Args:
        events: (bill, change records) pairs; records may be None

    Returns:
        Entries for edited bills sorted by timestamp, descending
    """
    entries = [
        entry
        for bill, records in events
        if (entry := render(bill, records, keep_all_messages=keep_all_messages)) is not None
    ]
    entries.sort(key=lambda entry: entry.timestamp, reverse=True)
    return entries
