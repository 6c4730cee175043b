"""FastAPI application exposing the billing engine.

Stateless JSON API with:
- Health and readiness checks for Kubernetes
- Bill evaluation (single and batch) returning authoritative totals and status
- Tax rate resolution and bill numbering helpers
- Audit entry rendering for bill updates
- Prometheus metrics for monitoring

Nothing is stored: every request carries the bill snapshots it needs.

Based on FastAPI best practices:
https://fastapi.tiangolo.com/
"""

import logging
import time
from datetime import date
from typing import Any

from fastapi import FastAPI, HTTPException, Request, Response, status
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from billing.api import metrics
from billing.audit.classifier import diff_snapshots
from billing.audit.schema import AuditEntry
from billing.engine.service import BillingEngine, BillSummary
from billing.invoice.adapter import (
    bill_from_record,
    change_records_from_records,
    company_from_record,
    parse_bill_type,
)
from billing.invoice.numbering import financial_year, generate_bill_number, next_sequence_number
from billing.invoice.schema import Bill
from billing.reports.summary import BillingReport, summarize_bills
from billing.shared.config import get_settings
from billing.tax.resolver import resolve_bill_rate, state_code

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Billing Engine",
    description="Invoice computation and audit API for retail billing",
    version=settings.service_version,
)

engine = BillingEngine(settings)


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):  # type: ignore[no-untyped-def]
    """Middleware to collect request metrics.

    Tracks:
    - Request count by method, endpoint, and status
    - Request duration by method and endpoint
    """
    # Skip metrics for /metrics endpoint itself
    if request.url.path == "/metrics":
        return await call_next(request)

    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time

    metrics.http_requests_total.labels(
        method=request.method,
        endpoint=request.url.path,
        status=response.status_code,
    ).inc()

    metrics.http_request_duration_seconds.labels(
        method=request.method,
        endpoint=request.url.path,
    ).observe(duration)

    return response


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    service: str


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    ready: bool


class CamelModel(BaseModel):
    """Request model accepting camelCase or snake_case keys."""

    model_config = ConfigDict(populate_by_name=True)


class TaxResolveRequest(CamelModel):
    """Tax rate resolution request."""

    customer_state: str | None = Field(None, alias="customerState")
    bill_type: str | None = Field(None, alias="billType")
    company: dict[str, Any] | None = None


class TaxResolveResponse(BaseModel):
    """Tax rate resolution response."""

    rate: str
    source: str
    state_code: str | None = None


class EvaluateRequest(CamelModel):
    """Single bill evaluation request."""

    bill: dict[str, Any]
    company: dict[str, Any] | None = None


class BatchEvaluateRequest(CamelModel):
    """Batch bill evaluation request."""

    bills: list[dict[str, Any]]
    company: dict[str, Any] | None = None


class BatchEvaluateResponse(BaseModel):
    """Batch bill evaluation response."""

    results: list[BillSummary]
    report: BillingReport


class BillNumberRequest(CamelModel):
    """Bill number generation request."""

    bill_type: str = Field(..., alias="billType")
    existing_numbers: list[str] = Field(default_factory=list, alias="existingNumbers")
    bill_date: date | None = Field(None, alias="billDate")


class BillNumberResponse(BaseModel):
    """Bill number generation response."""

    bill_number: str
    financial_year: str
    sequence: int


class AuditEntryRequest(CamelModel):
    """Audit entry rendering request.

    Changes from the backend diff take precedence; otherwise the previous
    snapshot is diffed against the bill; otherwise changes are inferred.
    """

    bill: dict[str, Any]
    changes: list[dict[str, Any]] | None = None
    previous: dict[str, Any] | None = None


class AuditEvent(CamelModel):
    """One bill update in an audit trail request."""

    bill: dict[str, Any]
    changes: list[dict[str, Any]] | None = None


class AuditTrailRequest(CamelModel):
    """Global audit trail request."""

    events: list[AuditEvent]


class AuditTrailResponse(BaseModel):
    """Global audit trail response, most recent first."""

    entries: list[AuditEntry]


def _parse_bill(record: dict[str, Any]) -> Bill:
    try:
        return bill_from_record(record)
    except ValidationError as e:
        metrics.rejected_bills_total.labels(reason="validation").inc()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid bill record: {e.errors(include_url=False)}",
        ) from e


def _engine_for(company: dict[str, Any] | None) -> BillingEngine:
    return engine.with_company(company_from_record(company) if company else None)


def _evaluate(bill_engine: BillingEngine, bill: Bill) -> BillSummary:
    try:
        return bill_engine.evaluate(bill)
    except ValueError as e:
        metrics.rejected_bills_total.labels(reason="contract").inc()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e


@app.get("/health", response_model=HealthResponse, tags=["Health"])
def health_check() -> HealthResponse:
    """Health check endpoint for liveness probe.

    Returns:
        Health status information
    """
    return HealthResponse(
        status="healthy", version=settings.service_version, service=settings.service_name
    )


@app.get("/ready", response_model=ReadinessResponse, tags=["Health"])
def readiness_check() -> ReadinessResponse:
    """Readiness check endpoint for Kubernetes readiness probe.

    Returns:
        Readiness status
    """
    return ReadinessResponse(ready=True)


@app.get("/metrics", tags=["Monitoring"])
def get_metrics() -> Response:
    """Prometheus metrics endpoint.

    Returns:
        Prometheus metrics in text format
    """
    metrics_data, content_type = metrics.get_metrics()
    return Response(content=metrics_data, media_type=content_type)


@app.post("/api/v1/tax/resolve", response_model=TaxResolveResponse, tags=["Tax"])
def resolve_tax_rate(request: TaxResolveRequest) -> TaxResolveResponse:
    """Resolve the GST rate for a customer's state.

    Consults the company state table, then the built-in fallback table, then
    the company default rate. NON_GST bills always resolve to 0.
    """
    bill = Bill(
        bill_type=parse_bill_type(request.bill_type),
        customer_state=request.customer_state or "N/A",
    )
    resolution = resolve_bill_rate(bill, _engine_for(request.company).company)
    return TaxResolveResponse(
        rate=str(resolution.rate),
        source=resolution.source,
        state_code=state_code(request.customer_state),
    )


@app.post("/api/v1/bills/evaluate", response_model=BillSummary, tags=["Bills"])
def evaluate_bill(request: EvaluateRequest) -> BillSummary:
    """Compute authoritative totals and effective status for one bill.

    ## Response Fields

    - `subtotal`, `tax_amount`, `total_amount`: reverse-calculated from
      tax-inclusive entered prices
    - `remaining_amount`, `effective_status`: derived from the payment;
      any persisted status other than draft is ignored

    ## Error Handling

    - Returns 400 if the bill record is malformed or the tax settings are invalid
    - Returns 422 if the request body does not match the schema
    """
    return _evaluate(_engine_for(request.company), _parse_bill(request.bill))


@app.post(
    "/api/v1/bills/evaluate/batch", response_model=BatchEvaluateResponse, tags=["Bills"]
)
def evaluate_bills(request: BatchEvaluateRequest) -> BatchEvaluateResponse:
    """Evaluate many bills and summarize them.

    Raises:
        HTTPException: 400 if the batch exceeds the configured maximum size
    """
    if len(request.bills) > settings.max_batch_size:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Batch too large: {len(request.bills)} bills (max {settings.max_batch_size})",
        )

    metrics.batch_size_bills.observe(len(request.bills))
    bill_engine = _engine_for(request.company)
    results = [_evaluate(bill_engine, _parse_bill(record)) for record in request.bills]
    report = summarize_bills(results)

    logger.info(f"Evaluated batch of {len(results)} bills")
    return BatchEvaluateResponse(results=results, report=report)


@app.post("/api/v1/bills/number", response_model=BillNumberResponse, tags=["Bills"])
def next_bill_number(request: BillNumberRequest) -> BillNumberResponse:
    """Generate the next bill number for a bill type in the current financial year."""
    bill_type = parse_bill_type(request.bill_type)
    sequence = next_sequence_number(bill_type, request.existing_numbers, request.bill_date)
    return BillNumberResponse(
        bill_number=generate_bill_number(bill_type, sequence, request.bill_date),
        financial_year=financial_year(request.bill_date),
        sequence=sequence,
    )


@app.post("/api/v1/audit/entry", response_model=AuditEntry | None, tags=["Audit"])
def audit_entry(request: AuditEntryRequest) -> AuditEntry | None:
    """Render the audit entry for a bill update.

    Returns null when the bill was never edited after creation.
    """
    bill = _parse_bill(request.bill)
    changes = change_records_from_records(request.changes)
    if not changes and request.previous is not None:
        changes = diff_snapshots(_parse_bill(request.previous), bill)
    return engine.audit_entry(bill, changes)


@app.post("/api/v1/audit/trail", response_model=AuditTrailResponse, tags=["Audit"])
def audit_trail(request: AuditTrailRequest) -> AuditTrailResponse:
    """Build the global audit trail across bills, most recent first."""
    events = [
        (_parse_bill(event.bill), change_records_from_records(event.changes))
        for event in request.events
    ]
    return AuditTrailResponse(entries=engine.audit_trail(events))
