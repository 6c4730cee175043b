"""Financial-year based bill numbering.

Bill numbers look like ``GST/2024-25/0007``: a bill type prefix, the Indian
financial year (April to March) and a zero-padded sequence that restarts every
financial year.
"""

import re
from collections.abc import Iterable
from datetime import date

from billing.invoice.schema import BillType

BILL_NUMBER_PREFIXES: dict[BillType, str] = {
    BillType.GST: "GST",
    BillType.NON_GST: "NGST",
    BillType.QUOTATION: "QUO",
    BillType.DEMO: "DEMO",
}

FINANCIAL_YEAR_START_MONTH = 4


def financial_year(on: date | None = None) -> str:
    """Get the financial year label for a date, e.g. ``2024-25``.

    Args:
        on: Date to label (defaults to today)

    Returns:
        Financial year label
    """
    on = on or date.today()
    start = on.year if on.month >= FINANCIAL_YEAR_START_MONTH else on.year - 1
    return f"{start}-{str(start + 1)[-2:]}"


def next_sequence_number(
    bill_type: BillType, existing_numbers: Iterable[str], on: date | None = None
) -> int:
    """Get the next sequence number for a bill type in the current financial year.

    Numbers from other bill types, other financial years or in a foreign
    format are ignored.
    """
    prefix = BILL_NUMBER_PREFIXES[bill_type]
    pattern = re.compile(rf"^{re.escape(prefix)}/{re.escape(financial_year(on))}/(\d+)$")

    highest = 0
    for number in existing_numbers:
        match = pattern.match(number.strip())
        if match:
            highest = max(highest, int(match.group(1)))
    return highest + 1


def generate_bill_number(bill_type: BillType, sequence: int, on: date | None = None) -> str:
    """Format a bill number.

    Raises:
        ValueError: If sequence is not positive
    """
    if sequence < 1:
        raise ValueError(f"Bill sequence must be >= 1, got {sequence}")
    return f"{BILL_NUMBER_PREFIXES[bill_type]}/{financial_year(on)}/{sequence:04d}"
