"""Login audit trail, logout and user removal"""

from fastapi import APIRouter, Depends, HTTPException, Query

from finpulse_gateway.api.dependencies import get_orchestrator
from finpulse_gateway.api.v1.schemas import LoginHistoryResponse, LoginRequest, LoginSchema
from finpulse_gateway.domain.exceptions import PipelineBusyError
from finpulse_gateway.services.orchestrator import AssessmentOrchestrator

router = APIRouter()


def _history_response(user_id: str, sessions) -> LoginHistoryResponse:
    return LoginHistoryResponse(
        user_id=user_id,
        sessions=[
            LoginSchema(created_at=s.created_at.isoformat(), status=s.status, ip=s.ip)
            for s in sessions
        ],
    )


@router.post("/sessions/login", response_model=LoginHistoryResponse)
def record_login(
    request_body: LoginRequest,
    orchestrator: AssessmentOrchestrator = Depends(get_orchestrator),
):
    """Record a login attempt (last 5 kept) and restore the newest report on success"""
    sessions = orchestrator.login(request_body.user_id, request_body.status, request_body.ip)
    return _history_response(request_body.user_id, sessions)


@router.get("/sessions", response_model=LoginHistoryResponse)
def list_logins(
    user_id: str = Query(..., description="User identifier"),
    orchestrator: AssessmentOrchestrator = Depends(get_orchestrator),
):
    return _history_response(user_id, orchestrator.store.list_logins(user_id))


@router.post("/sessions/logout", status_code=204)
def logout(
    user_id: str = Query(..., description="User identifier"),
    orchestrator: AssessmentOrchestrator = Depends(get_orchestrator),
):
    orchestrator.logout(user_id)


@router.delete("/users/{user_id}", status_code=204)
def remove_user(user_id: str, orchestrator: AssessmentOrchestrator = Depends(get_orchestrator)):
    """Purge the user's reports, sales ledger and login history"""
    try:
        orchestrator.remove_user(user_id)
    except PipelineBusyError as e:
        raise HTTPException(status_code=409, detail=str(e))
