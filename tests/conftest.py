"""Pytest fixtures for testing"""

import copy
import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List

import pytest
from fastapi.testclient import TestClient

from finpulse_gateway.api.main import create_app
from finpulse_gateway.domain.contract import parse_assessment
from finpulse_gateway.domain.models import (
    AssessmentResult,
    FinancialData,
    GstStatus,
    HistorySummary,
    Industry,
    SavedReport,
)
from finpulse_gateway.infrastructure.clients.resilience import ResilientInvoker, RetryPolicy
from finpulse_gateway.infrastructure.database.repositories import SqlHistoryStore
from finpulse_gateway.infrastructure.database.session import build_engine, build_session_factory
from finpulse_gateway.infrastructure.history_store import InMemoryHistoryStore
from finpulse_gateway.services.orchestrator import AssessmentOrchestrator

STUB_PAYLOAD_FILE = Path(__file__).resolve().parents[1] / "mock" / "reasoning_stub" / "assessment_default.json"


class RecordingSleep:
    """Stands in for asyncio.sleep; records requested waits instead of sleeping"""

    def __init__(self):
        self.waits: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.waits.append(seconds)


class StubAssessor:
    """Deterministic assessor: raises queued failures first, then returns result"""

    def __init__(self, result: AssessmentResult, failures: List[BaseException] | None = None):
        self.result = result
        self.failures = list(failures or [])
        self.calls: List[tuple[FinancialData, HistorySummary]] = []

    async def assess(self, data: FinancialData, history: HistorySummary) -> AssessmentResult:
        self.calls.append((data, history))
        if self.failures:
            raise self.failures.pop(0)
        return self.result


@pytest.fixture
def assessment_payload() -> Dict[str, Any]:
    """Complete reasoning-service payload for the retail sample business"""
    return json.loads(STUB_PAYLOAD_FILE.read_text())


@pytest.fixture
def assessment_result(assessment_payload: Dict[str, Any]) -> AssessmentResult:
    return parse_assessment(copy.deepcopy(assessment_payload))


@pytest.fixture
def sample_financial_data() -> FinancialData:
    """Retail shop snapshot matching the analysis form defaults"""
    return FinancialData(
        revenue=500000,
        expenses=300000,
        accounts_receivable=50000,
        accounts_payable=20000,
        inventory=100000,
        loans=0,
        cash_in_hand=40000,
        industry=Industry.RETAIL,
        gst_status=GstStatus.PENDING,
        bank_balance=0,
    )


@pytest.fixture
def make_report(
    sample_financial_data: FinancialData,
    assessment_result: AssessmentResult,
) -> Callable[[int], SavedReport]:
    """Build the n-th report with distinct id, timestamp and revenue"""
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def _make(n: int) -> SavedReport:
        data = FinancialData(**{**sample_financial_data.__dict__, "revenue": 100000 + n})
        return SavedReport(
            id=f"report-{n}",
            created_at=base + timedelta(days=n),
            data=data,
            assessment=assessment_result,
        )

    return _make


@pytest.fixture
def memory_store() -> InMemoryHistoryStore:
    return InMemoryHistoryStore()


@pytest.fixture
def sql_store() -> SqlHistoryStore:
    """SQL-backed store on a private in-memory SQLite database"""
    engine = build_engine("sqlite://")
    return SqlHistoryStore(build_session_factory(engine))


@pytest.fixture(params=["memory", "sql"])
def history_store(request, memory_store, sql_store):
    """Every store contract test runs against both backends"""
    return memory_store if request.param == "memory" else sql_store


@pytest.fixture
def backoff_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def invoker(backoff_sleep: RecordingSleep) -> ResilientInvoker:
    return ResilientInvoker(RetryPolicy(max_attempts=5, base_delay_ms=2000, jitter_ms=1000), sleep=backoff_sleep)


@pytest.fixture
def stub_assessor(assessment_result: AssessmentResult) -> StubAssessor:
    return StubAssessor(assessment_result)


@pytest.fixture
def orchestrator(
    stub_assessor: StubAssessor,
    memory_store: InMemoryHistoryStore,
    invoker: ResilientInvoker,
) -> AssessmentOrchestrator:
    """Orchestrator with an instant progress sequence and recorded backoff"""
    return AssessmentOrchestrator(
        stub_assessor,
        memory_store,
        invoker=invoker,
        progress_step_seconds=0,
        progress_settle_seconds=0,
        sleep=RecordingSleep(),
    )


@pytest.fixture
def client(orchestrator: AssessmentOrchestrator) -> Iterator[TestClient]:
    """FastAPI test client wired to the stubbed orchestrator"""
    app = create_app(orchestrator)
    with TestClient(app) as test_client:
        yield test_client
