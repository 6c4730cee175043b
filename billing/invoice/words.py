"""Amount in words using the Indian numbering system (lakh, crore)."""

from decimal import Decimal

from billing.invoice.calculator import round_money

_ONES = ["", "One", "Two", "Three", "Four", "Five", "Six", "Seven", "Eight", "Nine"]
_TEENS = [
    "Ten",
    "Eleven",
    "Twelve",
    "Thirteen",
    "Fourteen",
    "Fifteen",
    "Sixteen",
    "Seventeen",
    "Eighteen",
    "Nineteen",
]
_TENS = ["", "", "Twenty", "Thirty", "Forty", "Fifty", "Sixty", "Seventy", "Eighty", "Ninety"]

# (divisor, name), largest first
_SCALES = [(10_000_000, "Crore"), (100_000, "Lakh"), (1_000, "Thousand")]


def number_to_words(num: int) -> str:
    """Spell out a non-negative integer, e.g. 1180 -> 'One Thousand One Hundred and Eighty'."""
    if num < 0:
        raise ValueError(f"Cannot spell a negative number: {num}")
    if num == 0:
        return "Zero"
    if num < 10:
        return _ONES[num]
    if num < 20:
        return _TEENS[num - 10]
    if num < 100:
        tens, ones = divmod(num, 10)
        return _TENS[tens] + (f" {_ONES[ones]}" if ones else "")
    if num < 1000:
        hundreds, rest = divmod(num, 100)
        return f"{_ONES[hundreds]} Hundred" + (f" and {number_to_words(rest)}" if rest else "")

    for divisor, name in _SCALES:
        if num >= divisor:
            head, rest = divmod(num, divisor)
            return f"{number_to_words(head)} {name}" + (f" {number_to_words(rest)}" if rest else "")

    raise AssertionError("unreachable")


def amount_in_words(amount: Decimal) -> str:
    """Render a rupee amount for the 'Amount in Words' line of an invoice.

    Paise are appended only when non-zero.

    Example:
        >>> amount_in_words(Decimal("1180.50"))
        'One Thousand One Hundred and Eighty and Fifty Paise Only'
    """
    rounded = round_money(abs(amount))
    rupees = int(rounded)
    paise = int((rounded - rupees) * 100)

    words = number_to_words(rupees)
    if paise:
        words += f" and {number_to_words(paise)} Paise"
    return f"{words} Only"
