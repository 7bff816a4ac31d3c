"""POST /v1/sales - daily sales ledger and its monthly / all-time totals"""

from fastapi import APIRouter, Depends, Query

from finpulse_gateway.api.dependencies import get_orchestrator
from finpulse_gateway.api.v1.schemas import (
    SalesEntryRequest,
    SalesEntrySchema,
    SalesLedgerResponse,
    SalesSummaryResponse,
)
from finpulse_gateway.domain.history import sum_all
from finpulse_gateway.domain.models import DailySalesEntry
from finpulse_gateway.services.orchestrator import AssessmentOrchestrator

router = APIRouter()


def _ledger_response(user_id: str, entries) -> SalesLedgerResponse:
    return SalesLedgerResponse(
        user_id=user_id,
        entries=[SalesEntrySchema(date=e.date, amount=e.amount) for e in entries],
    )


@router.post("/sales", response_model=SalesLedgerResponse)
def record_sales(
    request_body: SalesEntryRequest,
    orchestrator: AssessmentOrchestrator = Depends(get_orchestrator),
):
    """Record a day's sales; a second entry for the same day replaces the first"""
    entries = orchestrator.store.upsert_sales_entry(
        request_body.user_id,
        DailySalesEntry(date=request_body.date, amount=request_body.amount),
    )
    return _ledger_response(request_body.user_id, entries)


@router.get("/sales", response_model=SalesLedgerResponse)
def list_sales(
    user_id: str = Query(..., description="User identifier"),
    orchestrator: AssessmentOrchestrator = Depends(get_orchestrator),
):
    return _ledger_response(user_id, orchestrator.store.list_sales(user_id))


@router.get("/sales/summary", response_model=SalesSummaryResponse)
def get_sales_summary(
    user_id: str = Query(..., description="User identifier"),
    year: int | None = Query(None, ge=1900),
    month: int | None = Query(None, ge=1, le=12),
    orchestrator: AssessmentOrchestrator = Depends(get_orchestrator),
):
    """
    Sales totals for one month (default: current month) and all time.

    Returns:
        Month and all-time totals plus per-month totals, newest month first
    """
    current_year, current_month = orchestrator.current_period()
    year = year or current_year
    month = month or current_month
    store = orchestrator.store

    return SalesSummaryResponse(
        user_id=user_id,
        year=year,
        month=month,
        month_total=store.monthly_total(user_id, year, month),
        all_time_total=store.all_time_total(user_id),
        months={key: sum_all(entries) for key, entries in store.monthly_breakdown(user_id).items()},
    )
