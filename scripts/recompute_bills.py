"""Recompute authoritative totals and status for an exported set of bills.

Reads a JSON export of bills (a list of bill records as persisted by the
billing UI), runs every bill through the billing engine and writes the
derived totals plus a summary report. Persisted totals and statuses in the
export are ignored; only the engine's values are reported.

Usage:
    python -m scripts.recompute_bills --bills data/bills.json
    python -m scripts.recompute_bills --bills data/bills.json --company data/company.json \\
        --output data/bills_recomputed.json
"""

import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from billing.engine.service import BillingEngine, BillSummary
from billing.invoice.adapter import bill_from_record, company_from_record
from billing.reports.summary import BillingReport, summarize_bills
from billing.shared.config import Settings, get_settings

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)


def load_json(path: Path) -> Any:
    """Load a JSON file.

    Raises:
        FileNotFoundError: If the file doesn't exist
    """
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def recompute_bills(
    records: list[dict[str, Any]],
    settings: Settings,
    company_record: dict[str, Any] | None = None,
) -> tuple[list[BillSummary], BillingReport]:
    """Evaluate exported bill records.

    Records that fail validation are logged and skipped.

    Args:
        records: Raw bill records
        settings: Application settings
        company_record: Raw company tax settings (optional)

    Returns:
        Tuple of (per-bill summaries, aggregated report)
    """
    company = company_from_record(company_record) if company_record else None
    engine = BillingEngine(settings, company)

    summaries: list[BillSummary] = []
    for index, record in enumerate(records):
        if not isinstance(record, dict):
            logger.warning(f"Record {index}: not an object, skipping")
            continue
        try:
            bill = bill_from_record(record)
            summaries.append(engine.evaluate(bill))
        except (ValidationError, ValueError) as e:
            logger.warning(f"Record {index}: could not evaluate bill, skipping. Error: {e}")

    logger.info(f"Recomputed {len(summaries)} of {len(records)} bills")
    return summaries, summarize_bills(summaries)


def build_output(summaries: list[BillSummary], report: BillingReport) -> dict[str, Any]:
    """Build the JSON-serializable output document."""
    report_dict = {
        key: str(value) if not isinstance(value, int | dict) else value
        for key, value in asdict(report).items()
    }
    return {
        "bills": [summary.model_dump(mode="json") for summary in summaries],
        "report": report_dict,
    }


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Recompute bill totals and status")
    parser.add_argument(
        "--bills",
        type=Path,
        required=True,
        help="Path to JSON export of bills",
    )
    parser.add_argument(
        "--company",
        type=Path,
        default=None,
        help="Path to JSON company tax settings",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Output JSON file path (prints the report if omitted)",
    )
    parser.add_argument(
        "--preview",
        type=int,
        default=0,
        help="Print the first N recomputed bills",
    )

    args = parser.parse_args()

    bill_records = load_json(args.bills)
    company_data = load_json(args.company) if args.company else None

    results, summary_report = recompute_bills(bill_records, get_settings(), company_data)
    output = build_output(results, summary_report)

    if args.preview > 0:
        print(f"\n=== Preview of {min(args.preview, len(results))} bills ===\n")
        for bill in output["bills"][: args.preview]:
            print(json.dumps(bill, indent=2))
            print("-" * 40)

    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        with open(args.output, "w", encoding="utf-8") as f:
            json.dump(output, f, indent=2)
        logger.info(f"Saved {len(results)} bills to {args.output}")
    else:
        print(json.dumps(output["report"], indent=2))
