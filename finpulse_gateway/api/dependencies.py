"""Dependency injection for FastAPI endpoints"""

from fastapi import Request

from finpulse_gateway.config import settings
from finpulse_gateway.domain.history import HistoryStore
from finpulse_gateway.infrastructure.clients.reasoning import ReasoningClient
from finpulse_gateway.infrastructure.database.repositories import SqlHistoryStore
from finpulse_gateway.infrastructure.database.session import build_engine, build_session_factory
from finpulse_gateway.infrastructure.history_store import InMemoryHistoryStore
from finpulse_gateway.services.orchestrator import AssessmentOrchestrator


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_orchestrator(request: Request) -> AssessmentOrchestrator:
    """Provide the app-wide orchestrator (sessions live as long as the process)"""
    return request.app.state.orchestrator


def build_history_store() -> HistoryStore:
    """History backend selected by settings.history_backend"""
    if settings.history_backend == "sql":
        session_factory = build_session_factory(build_engine(settings.database_url))
        return SqlHistoryStore(
            session_factory,
            report_limit=settings.report_history_limit,
            login_limit=settings.login_history_limit,
        )
    return InMemoryHistoryStore(
        report_limit=settings.report_history_limit,
        login_limit=settings.login_history_limit,
    )


def build_orchestrator() -> AssessmentOrchestrator:
    return AssessmentOrchestrator.from_settings(ReasoningClient(), build_history_store())
