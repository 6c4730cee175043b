"""Invoice total calculation with tax-inclusive entered prices.

Operators enter prices that already include GST, so the pre-tax base is
recovered by reverse calculation:

    subtotal = total / (1 + rate / 100)
    tax      = total - subtotal

Intermediate values keep full Decimal precision; rounding to two decimal
places (half away from zero) happens only on output.
"""

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal

from billing.invoice.schema import BillType, InvoiceTotals, LineBreakdown, LineItem, TaxSplit

CENT = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")

TAX_EXEMPT_BILL_TYPES = frozenset({BillType.NON_GST})


def round_money(value: Decimal) -> Decimal:
    """Round a monetary value to 2 decimal places, half away from zero."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def is_taxed(bill_type: BillType) -> bool:
    """Check whether entered prices for this bill type embed GST.

    QUOTATION and DEMO bills are taxed like GST bills.
    """
    return bill_type not in TAX_EXEMPT_BILL_TYPES


def _divisor(rate: Decimal) -> Decimal:
    divisor = 1 + Decimal(rate) / HUNDRED
    if divisor <= 0:
        raise ValueError(f"Tax rate must be greater than -100%, got {rate}")
    return divisor


def _reverse(amount: Decimal, divisor: Decimal) -> tuple[Decimal, Decimal]:
    # Divide first, subtract second: tax is whatever the base leaves over
    base = amount / divisor
    return base, amount - base


def gross_total(items: Iterable[LineItem]) -> Decimal:
    """Sum of entered line totals (unrounded)."""
    return sum((item.line_total for item in items), ZERO)


def compute_totals(items: Iterable[LineItem], bill_type: BillType, rate: Decimal) -> InvoiceTotals:
    """Compute subtotal, tax and grand total for a bill.

    Args:
        items: Bill line items with tax-inclusive unit prices
        bill_type: Bill classification
        rate: Resolved GST rate in percent

    Returns:
        InvoiceTotals rounded to 2 decimal places

    Raises:
        ValueError: If rate is -100% or lower

    Example:
        >>> compute_totals([LineItem(unit_price=Decimal("1180"))], BillType.GST, Decimal("18"))
        InvoiceTotals(subtotal=Decimal('1000.00'), tax_amount=Decimal('180.00'), ...)
    """
    total = gross_total(items)

    if not is_taxed(bill_type):
        return InvoiceTotals(
            subtotal=round_money(total),
            tax_amount=round_money(ZERO),
            total_amount=round_money(total),
        )

    subtotal, tax = _reverse(total, _divisor(rate))
    return InvoiceTotals(
        subtotal=round_money(subtotal),
        tax_amount=round_money(tax),
        total_amount=round_money(total),
    )


def line_breakdown(
    items: Iterable[LineItem], bill_type: BillType, rate: Decimal
) -> list[LineBreakdown]:
    """Apply the reverse calculation per line for display and PDF output."""
    taxed = is_taxed(bill_type)
    divisor = _divisor(rate) if taxed else None

    lines: list[LineBreakdown] = []
    for item in items:
        line_total = item.line_total
        if divisor is None:
            base, tax = line_total, ZERO
        else:
            base, tax = _reverse(line_total, divisor)

        lines.append(
            LineBreakdown(
                name=item.name,
                quantity=item.quantity,
                unit_price=round_money(item.unit_price),
                line_total=round_money(line_total),
                line_base=round_money(base),
                line_tax=round_money(tax),
            )
        )
    return lines


def split_tax(tax_amount: Decimal, rate: Decimal) -> TaxSplit:
    """Split a blended GST amount into equal CGST and SGST halves.

    CGST is rounded half up and takes any odd paisa; SGST takes whatever CGST
    leaves, so the halves always add back up to the rounded tax amount.
    """
    tax = round_money(tax_amount)
    cgst = round_money(tax / 2)
    half_rate = Decimal(rate) / 2
    return TaxSplit(
        cgst_rate=half_rate,
        sgst_rate=half_rate,
        cgst_amount=cgst,
        sgst_amount=tax - cgst,
    )
