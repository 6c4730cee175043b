"""Unit tests for the bill recompute script.

Tests cover:
- JSON loading
- Skipping invalid records
- Company settings from the export
- Output document shape
"""

import json
import tempfile
from decimal import Decimal
from pathlib import Path

import pytest

from billing.invoice.schema import BillStatus
from billing.shared.config import Settings
from scripts.recompute_bills import build_output, load_json, recompute_bills


@pytest.fixture
def records() -> list[dict]:
    """Exported bills including a malformed and a non-object record."""
    return [
        {
            "_id": "b-1",
            "billType": "GST",
            "customerState": "Maharashtra",
            "items": [{"itemName": "Shirt", "itemPrice": 1100, "itemQuantity": 1}],
            "totalAmount": 9999,
            "status": "pending",
        },
        {"_id": "b-2", "createdAt": "yesterday"},
        "not a bill",
        {
            "_id": "b-3",
            "billType": "Non-GST",
            "items": [{"name": "Bag", "price": 500}],
            "paymentMode": "partial",
            "paidAmount": 200,
        },
    ]


def test_load_json() -> None:
    """Test loading a JSON export from disk."""
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "bills.json"
        path.write_text(json.dumps([{"_id": "b-1"}]), encoding="utf-8")

        assert load_json(path) == [{"_id": "b-1"}]


def test_load_json_missing_file() -> None:
    """Test that a missing file raises FileNotFoundError."""
    with pytest.raises(FileNotFoundError, match="File not found"):
        load_json(Path("/nonexistent/bills.json"))


def test_recompute_skips_invalid_records(records: list[dict]) -> None:
    """Test that only valid bills are evaluated."""
    summaries, report = recompute_bills(records, Settings())

    assert [s.bill_id for s in summaries] == ["b-1", "b-3"]
    assert report.total_bills == 2


def test_recompute_ignores_persisted_totals(records: list[dict]) -> None:
    """Test that derived values replace persisted totals and status."""
    summaries, _ = recompute_bills(records, Settings())

    assert summaries[0].total_amount == Decimal("1100.00")
    assert summaries[0].effective_status == BillStatus.COMPLETED
    assert summaries[1].remaining_amount == Decimal("300.00")
    assert summaries[1].effective_status == BillStatus.PENDING


def test_recompute_with_company_rates(records: list[dict]) -> None:
    """Test that company settings from the export are applied."""
    company = {"states": [{"name": "Maharashtra", "gstRate": 12}]}

    summaries, _ = recompute_bills(records, Settings(), company)

    assert summaries[0].gst_rate == Decimal("12")


def test_build_output(records: list[dict]) -> None:
    """Test that the output document is JSON-serializable."""
    summaries, report = recompute_bills(records, Settings())

    output = build_output(summaries, report)
    encoded = json.loads(json.dumps(output))

    assert len(encoded["bills"]) == 2
    assert encoded["bills"][0]["effective_status"] == "COMPLETED"
    assert encoded["report"]["total_bills"] == 2
    assert encoded["report"]["total_revenue"] == "1600.00"
    assert encoded["report"]["status_breakdown"]["PENDING"] == 1


def test_recompute_keeps_bills_with_timestamp_bill_date() -> None:
    """Test that a billDate saved as a full timestamp does not skip the bill."""
    records = [
        {
            "_id": "b-4",
            "billDate": "2024-06-01T10:23:45.123Z",
            "items": [{"itemName": "Shirt", "itemPrice": 1180}],
        }
    ]

    summaries, report = recompute_bills(records, Settings())

    assert [s.bill_id for s in summaries] == ["b-4"]
    assert report.total_bills == 1
