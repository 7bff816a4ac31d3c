"""GET /v1/assessments/history - user's saved reports; selecting a past report"""

from fastapi import APIRouter, Depends, HTTPException, Query

from finpulse_gateway.api.dependencies import get_orchestrator
from finpulse_gateway.api.v1.assessments import report_response
from finpulse_gateway.api.v1.schemas import HistoryItem, HistoryResponse, ReportResponse
from finpulse_gateway.domain.exceptions import ReportNotFoundError
from finpulse_gateway.services.orchestrator import AssessmentOrchestrator

router = APIRouter()


@router.get("/assessments/history", response_model=HistoryResponse)
def get_assessment_history(
    user_id: str = Query(..., description="User identifier"),
    orchestrator: AssessmentOrchestrator = Depends(get_orchestrator),
):
    """
    Retrieve the user's saved reports.

    Returns:
        Up to 10 reports, newest first
    """
    reports = orchestrator.store.list_reports(user_id)

    history_items = [
        HistoryItem(
            report_id=r.id,
            created_at=r.created_at.isoformat(),
            credit_score=r.assessment.credit_score,
            risk_rating=r.assessment.risk_rating.value,
            revenue=r.data.revenue,
        )
        for r in reports
    ]

    return HistoryResponse(user_id=user_id, reports=history_items)


@router.get("/assessments/{report_id}", response_model=ReportResponse)
def get_report(
    report_id: str,
    user_id: str = Query(..., description="User identifier"),
    orchestrator: AssessmentOrchestrator = Depends(get_orchestrator),
):
    report = orchestrator.store.get_report(user_id, report_id)
    if not report:
        raise HTTPException(status_code=404, detail="Report not found")
    return report_response(user_id, report)


@router.post("/assessments/{report_id}/select", response_model=ReportResponse)
def select_report(
    report_id: str,
    user_id: str = Query(..., description="User identifier"),
    orchestrator: AssessmentOrchestrator = Depends(get_orchestrator),
):
    """Make a past report the current assessment without re-running the pipeline"""
    try:
        report = orchestrator.select_report(user_id, report_id)
    except ReportNotFoundError:
        raise HTTPException(status_code=404, detail="Report not found")
    return report_response(user_id, report)
