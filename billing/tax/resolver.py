"""Tax rate resolution for bills.

Resolves the applicable GST percentage for a customer's state by consulting,
in order:
1. The company-specific state rate table
2. A fixed fallback table of common states
3. The company-wide default rate

Unknown states never raise; the default rate always provides a value.
"""

import logging
from collections.abc import Iterable
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel

from billing.invoice.schema import Bill, BillType
from billing.tax.schema import CompanySettings, StateTaxRate

logger = logging.getLogger(__name__)

DEFAULT_GST_RATE = Decimal("18")

# Used when the company has not configured a rate for the customer's state
FALLBACK_STATE_RATES: dict[str, Decimal] = {
    "maharashtra": Decimal("10"),
    "gujarat": Decimal("9"),
    "karnataka": Decimal("9"),
    "tamil nadu": Decimal("9"),
    "west bengal": Decimal("9"),
    "uttar pradesh": Decimal("9"),
    "rajasthan": Decimal("9"),
    "madhya pradesh": Decimal("9"),
    "andhra pradesh": Decimal("9"),
    "telangana": Decimal("9"),
    "kerala": Decimal("9"),
    "punjab": Decimal("9"),
    "haryana": Decimal("9"),
    "delhi": Decimal("9"),
}

# GSTIN state codes, keyed by normalized state name
STATE_CODES: dict[str, str] = {
    "andhra pradesh": "37",
    "arunachal pradesh": "12",
    "assam": "18",
    "bihar": "10",
    "chhattisgarh": "22",
    "goa": "30",
    "gujarat": "24",
    "haryana": "06",
    "himachal pradesh": "02",
    "jharkhand": "20",
    "karnataka": "29",
    "kerala": "32",
    "madhya pradesh": "23",
    "maharashtra": "27",
    "manipur": "14",
    "meghalaya": "17",
    "mizoram": "15",
    "nagaland": "13",
    "odisha": "21",
    "punjab": "03",
    "rajasthan": "08",
    "sikkim": "11",
    "tamil nadu": "33",
    "telangana": "36",
    "tripura": "16",
    "uttar pradesh": "09",
    "uttarakhand": "05",
    "west bengal": "19",
    "delhi": "07",
}

_UNKNOWN_STATES = {"", "n/a"}

RateSource = Literal["company", "fallback", "default", "exempt"]


class RateResolution(BaseModel):
    """Resolved rate and the layer it came from."""

    rate: Decimal
    source: RateSource


def normalize_state(state: str | None) -> str:
    """Normalize a state name for table lookups (trimmed, lower-cased)."""
    return (state or "").strip().lower()


def build_rate_table(company_rates: Iterable[StateTaxRate]) -> dict[str, Decimal]:
    """Build an ordered lookup of company rates keyed by normalized state name.

    The first entry configured for a state wins.

    Raises:
        ValueError: If any configured rate is negative
    """
    table: dict[str, Decimal] = {}
    for entry in company_rates:
        if entry.gst_rate_percent < 0:
            raise ValueError(
                f"GST rate for state '{entry.state_name}' must be >= 0, "
                f"got {entry.gst_rate_percent}"
            )
        table.setdefault(normalize_state(entry.state_name), entry.gst_rate_percent)
    return table


def lookup_rate(
    customer_state: str | None,
    company_rates: Iterable[StateTaxRate] = (),
    default_rate: Decimal = DEFAULT_GST_RATE,
) -> RateResolution:
    """Resolve a state's rate and report which layer supplied it.

    Args:
        customer_state: Customer's state as entered (any case, may be padded)
        company_rates: Company-specific state rate table
        default_rate: Company-wide default rate in percent

    Returns:
        RateResolution with the rate and its source layer

    Raises:
        ValueError: If default_rate or a company rate is negative
    """
    if default_rate < 0:
        raise ValueError(f"Default GST rate must be >= 0, got {default_rate}")

    state = normalize_state(customer_state)
    if state in _UNKNOWN_STATES:
        logger.debug(f"No customer state given, using default rate {default_rate}")
        return RateResolution(rate=default_rate, source="default")

    company_table = build_rate_table(company_rates)
    if state in company_table:
        return RateResolution(rate=company_table[state], source="company")

    if state in FALLBACK_STATE_RATES:
        return RateResolution(rate=FALLBACK_STATE_RATES[state], source="fallback")

    logger.debug(f"State '{customer_state}' not in any rate table, using default {default_rate}")
    return RateResolution(rate=default_rate, source="default")


def resolve_rate(
    customer_state: str | None,
    company_rates: Iterable[StateTaxRate] = (),
    default_rate: Decimal = DEFAULT_GST_RATE,
) -> Decimal:
    """Resolve the applicable GST percentage for a customer's state.

    Example:
        >>> resolve_rate("  Maharashtra ", [])
        Decimal('10')
    """
    return lookup_rate(customer_state, company_rates, default_rate).rate


def resolve_bill_rate(bill: Bill, company: CompanySettings | None = None) -> RateResolution:
    """Resolve the rate for a whole bill.

    NON_GST bills always resolve to 0 regardless of state.
    """
    if bill.bill_type == BillType.NON_GST:
        return RateResolution(rate=Decimal("0"), source="exempt")

    company = company or CompanySettings()
    return lookup_rate(bill.customer_state, company.states, company.default_gst_rate)


def state_code(state_name: str | None) -> str | None:
    """Get the two-digit GSTIN code for a state, or None if unknown."""
    return STATE_CODES.get(normalize_state(state_name))
