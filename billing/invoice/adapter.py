"""Boundary adapter from raw UI/API records to normalized engine models.

Persisted bills come in several historical shapes (``itemPrice`` vs ``price``,
``customerState`` vs a nested ``customer.state``, lower-case status strings,
and so on). This module is the only place those spellings are understood;
everything past it works on billing.invoice.schema models.

Missing or unparseable values degrade to safe defaults instead of raising:
quantity 1, price 0, state "N/A".
"""

import logging
from collections.abc import Iterable, Mapping
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import TypeAdapter, ValidationError

from billing.audit.schema import ChangeKind, ChangeRecord
from billing.invoice.schema import Bill, BillStatus, BillType, LineItem, PaymentMode
from billing.tax.schema import CompanySettings, StateTaxRate

logger = logging.getLogger(__name__)

UNKNOWN_STATE = "N/A"

_BILL_TYPES: dict[str, BillType] = {
    "GST": BillType.GST,
    "NON_GST": BillType.NON_GST,
    "NONGST": BillType.NON_GST,
    "QUOTATION": BillType.QUOTATION,
    "QUOTE": BillType.QUOTATION,
    "DEMO": BillType.DEMO,
}

_CHANGE_KINDS: dict[str, ChangeKind] = {kind.value: kind for kind in ChangeKind}

_DATE = TypeAdapter(date)
_DATETIME = TypeAdapter(datetime)


def _first(record: Mapping[str, Any], *keys: str) -> Any:
    """Get the first present, non-empty value among keys (dotted keys nest)."""
    for key in keys:
        value: Any = record
        for part in key.split("."):
            value = value.get(part) if isinstance(value, Mapping) else None
        if value is not None and value != "":
            return value
    return None


def parse_decimal(value: Any, default: Decimal = Decimal("0")) -> Decimal:
    """Parse a numeric value into a Decimal, falling back to default.

    Accepts ints, floats, Decimals and strings such as "1,180.00" or "₹ 500".
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, Decimal):
        return value if value.is_finite() else default
    try:
        cleaned = str(value).replace("₹", "").replace(",", "").strip()
        parsed = Decimal(cleaned)
    except (InvalidOperation, ValueError):
        logger.debug(f"Could not parse decimal: {value!r}")
        return default
    return parsed if parsed.is_finite() else default


def _quantity(value: Any) -> int:
    quantity = int(parse_decimal(value, Decimal("1")))
    return quantity if quantity >= 1 else 1


def _token(value: Any) -> str:
    return str(value).strip().upper().replace("-", "_").replace(" ", "_")


def parse_bill_type(value: Any) -> BillType:
    """Map a bill type spelling to BillType; unknown spellings are GST."""
    if value is None:
        return BillType.GST
    return _BILL_TYPES.get(_token(value), BillType.GST)


def parse_payment_mode(value: Any) -> PaymentMode:
    """Map a payment mode spelling to PaymentMode; defaults to FULL."""
    if value is not None and _token(value) == PaymentMode.PARTIAL.value:
        return PaymentMode.PARTIAL
    return PaymentMode.FULL


def parse_status(value: Any) -> BillStatus | None:
    """Map a persisted status string to BillStatus, or None if unrecognized."""
    if value is None:
        return None
    try:
        return BillStatus(_token(value))
    except ValueError:
        return None


def parse_bill_date(value: Any) -> date | None:
    """Parse a bill date given as a date or a full timestamp.

    Timestamps such as "2024-06-01T10:23:45.123Z" keep only their date part.
    Unparseable values give None.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    for adapter in (_DATE, _DATETIME):
        try:
            parsed = adapter.validate_python(text)
        except ValidationError:
            continue
        return parsed.date() if isinstance(parsed, datetime) else parsed

    logger.debug(f"Could not parse bill date: {value!r}")
    return None


def line_item_from_record(record: Mapping[str, Any]) -> LineItem:
    """Build a LineItem from a raw item record."""
    price = parse_decimal(_first(record, "itemPrice", "price", "unitPrice", "rate"))
    if price < 0:
        logger.warning(f"Negative price {price} on item {record.get('name')!r}, using 0")
        price = Decimal("0")

    return LineItem(
        name=str(_first(record, "itemName", "name", "productName") or ""),
        unit_price=price,
        quantity=_quantity(_first(record, "itemQuantity", "quantity", "qty")),
    )


def bill_from_record(record: Mapping[str, Any]) -> Bill:
    """Build a Bill from a raw bill record.

    Raises:
        pydantic.ValidationError: If timestamps or identifiers are malformed
    """
    items = record.get("items") or []
    return Bill.model_validate(
        {
            "bill_type": parse_bill_type(_first(record, "billType", "bill_type", "type")),
            "customer_state": str(
                _first(record, "customerState", "state", "customer.state") or UNKNOWN_STATE
            ),
            "items": [line_item_from_record(item) for item in items if isinstance(item, Mapping)],
            "payment_mode": parse_payment_mode(
                _first(record, "paymentMode", "paymentType", "payment_mode")
            ),
            "paid_amount": max(
                Decimal("0"), parse_decimal(_first(record, "paidAmount", "paid_amount"))
            ),
            "explicit_status": parse_status(record.get("status")),
            "id": _optional_str(_first(record, "id", "_id")),
            "bill_number": _optional_str(_first(record, "billNumber", "bill_number")),
            "customer_name": _optional_str(_first(record, "customerName", "customer.name")),
            "customer_phone": _optional_str(_first(record, "customerPhone", "customer.phone")),
            "customer_address": _optional_str(
                _first(record, "customerAddress", "customer.address")
            ),
            "bill_date": parse_bill_date(_first(record, "billDate", "bill_date")),
            "created_at": _first(record, "createdAt", "created_at"),
            "updated_at": _first(record, "updatedAt", "updated_at"),
        }
    )


def _optional_str(value: Any) -> str | None:
    return None if value is None else str(value)


def change_record_from_record(record: Mapping[str, Any]) -> ChangeRecord | None:
    """Build a ChangeRecord from a backend change, or None if the type is unknown."""
    kind = _CHANGE_KINDS.get(_token(_first(record, "type", "kind") or ""))
    if kind is None:
        return None
    field = _first(record, "field", "fieldName", "field_name")
    return ChangeRecord(kind=kind, field_name=None if field is None else str(field))


def change_records_from_records(records: Iterable[Any] | None) -> list[ChangeRecord]:
    """Build change records, dropping empty and unrecognized entries."""
    changes: list[ChangeRecord] = []
    for record in records or []:
        if not isinstance(record, Mapping):
            continue
        change = change_record_from_record(record)
        if change is not None:
            changes.append(change)
    return changes


def company_from_record(record: Mapping[str, Any] | None) -> CompanySettings:
    """Build CompanySettings from the settings collaborator's payload.

    State entries without a name or with a negative or unparseable rate are
    skipped.
    """
    if not record:
        return CompanySettings()

    states: list[StateTaxRate] = []
    for entry in record.get("states") or []:
        if not isinstance(entry, Mapping):
            continue
        name = _first(entry, "name", "stateName", "state_name")
        rate = parse_decimal(
            _first(entry, "gstRate", "gstRatePercent", "gst_rate_percent"), Decimal("-1")
        )
        if not name or rate < 0:
            logger.warning(f"Skipping invalid state rate entry: {dict(entry)}")
            continue
        states.append(
            StateTaxRate(
                state_name=str(name),
                gst_rate_percent=rate,
                pincode=str(_first(entry, "pincode") or ""),
            )
        )

    default_rate = parse_decimal(
        _first(record, "defaultGstRate", "default_gst_rate"), Decimal("18")
    )
    if default_rate < 0:
        logger.warning(f"Negative default GST rate {default_rate}, using 18")
        default_rate = Decimal("18")

    return CompanySettings(
        states=states,
        default_gst_rate=default_rate,
        company_state=str(_first(record, "companyState", "address.state", "state") or ""),
    )
