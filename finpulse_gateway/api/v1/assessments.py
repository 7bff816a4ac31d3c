"""POST /v1/assessments - run an assessment cycle; current dashboard and form seeding"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from finpulse_gateway.api.dependencies import get_orchestrator, get_request_id
from finpulse_gateway.api.v1.schemas import (
    AssessmentRequest,
    DashboardResponse,
    ReportResponse,
    SeedRequest,
    SeedResponse,
)
from finpulse_gateway.domain.contract import (
    assessment_to_payload,
    derived_to_payload,
    financial_data_to_payload,
)
from finpulse_gateway.domain.exceptions import (
    ContractError,
    PipelineBusyError,
    RateLimitError,
    TransientError,
    ValidationError,
)
from finpulse_gateway.domain.models import SavedReport
from finpulse_gateway.services.orchestrator import (
    GENERIC_FAILURE_MESSAGE,
    QUOTA_COOLDOWN_SECONDS,
    AssessmentOrchestrator,
)

router = APIRouter()


def report_response(user_id: str, report: SavedReport) -> ReportResponse:
    return ReportResponse(
        report_id=report.id,
        user_id=user_id,
        created_at=report.created_at.isoformat(),
        financial_data=financial_data_to_payload(report.data),
        assessment=assessment_to_payload(report.assessment),
    )


@router.post("/assessments", response_model=ReportResponse)
async def create_assessment(
    request_body: AssessmentRequest,
    request: Request,
    orchestrator: AssessmentOrchestrator = Depends(get_orchestrator),
):
    """
    Run one assessment cycle and commit it to the user's history.

    Flow:
    1. Validate the financial snapshot (422 on negative figures)
    2. Emit the progress sequence while the reasoning service is called
    3. Retry rate-limited / transient failures with backoff
    4. Commit the report (history keeps the 10 newest)
    5. Return the saved report
    """
    request_id = get_request_id(request)
    user_id = request_body.user_id

    try:
        report = await orchestrator.submit(
            user_id,
            request_body.financial_data.to_domain(),
            request_id=request_id,
        )
        return report_response(user_id, report)

    except ValidationError as e:
        logging.warning(f"Rejected financial data: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=e.errors)

    except PipelineBusyError as e:
        raise HTTPException(status_code=409, detail=str(e))

    except RateLimitError:
        raise HTTPException(
            status_code=429,
            detail=orchestrator.session(user_id).error,
            headers={"Retry-After": str(QUOTA_COOLDOWN_SECONDS)},
        )

    except ContractError:
        raise HTTPException(status_code=502, detail=orchestrator.session(user_id).error)

    except TransientError:
        raise HTTPException(status_code=503, detail=orchestrator.session(user_id).error)

    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail=GENERIC_FAILURE_MESSAGE)


@router.get("/assessments/current", response_model=DashboardResponse)
def get_current_assessment(
    user_id: str = Query(..., description="User identifier"),
    year: int | None = Query(None, ge=1900),
    month: int | None = Query(None, ge=1, le=12),
    orchestrator: AssessmentOrchestrator = Depends(get_orchestrator),
):
    """Current assessment with render-time metrics, pipeline state and sales totals"""
    view = orchestrator.dashboard(user_id, year=year, month=month)

    return DashboardResponse(
        user_id=user_id,
        state=view.state.value,
        error=view.error,
        progress=list(view.progress),
        report_id=view.report_id,
        financial_data=financial_data_to_payload(view.data) if view.data else None,
        assessment=assessment_to_payload(view.assessment) if view.assessment else None,
        derived=derived_to_payload(view.derived) if view.derived else None,
        history_count=len(view.history),
        month_sales_total=view.month_sales_total,
        all_time_sales_total=view.all_time_sales_total,
    )


@router.post("/assessments/seed", response_model=SeedResponse)
def seed_assessment_form(
    request_body: SeedRequest,
    orchestrator: AssessmentOrchestrator = Depends(get_orchestrator),
):
    """Pre-fill the analysis form from a manual import"""
    form = orchestrator.seed_form(request_body.user_id, request_body.imported)
    return SeedResponse(user_id=request_body.user_id, form=form)
