"""Integration tests for API endpoints"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from finpulse_gateway.api.main import create_app
from finpulse_gateway.domain.exceptions import ContractError, RemoteServiceError
from finpulse_gateway.infrastructure.clients.reasoning import ReasoningClient
from finpulse_gateway.services.orchestrator import (
    INTEGRITY_FAILURE_MESSAGE,
    PROGRESS_LABELS,
    QUOTA_EXHAUSTED_MESSAGE,
    AssessmentOrchestrator,
    PipelineState,
)

FINANCIAL_DATA = {
    "revenue": 500000,
    "expenses": 300000,
    "accounts_receivable": 50000,
    "accounts_payable": 20000,
    "inventory": 100000,
    "loans": 0,
    "cash_in_hand": 40000,
    "industry": "Retail",
    "gst_status": "Pending",
}


def _assess(client: TestClient, user_id: str = "user_a", **overrides):
    return client.post(
        "/v1/assessments",
        json={"user_id": user_id, "financial_data": {**FINANCIAL_DATA, **overrides}},
    )


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_metrics_endpoint(client: TestClient):
    """Test Prometheus metrics endpoint"""
    _assess(client)
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "finpulse_assessment_total" in response.text
    assert "http_request_duration_seconds" in response.text


def test_request_id_is_echoed(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


def test_assessment_endpoint_commits_report(client: TestClient):
    """POST /v1/assessments returns the saved report"""
    response = _assess(client)

    assert response.status_code == 200
    data = response.json()
    assert data["user_id"] == "user_a"
    assert data["report_id"]
    assert data["assessment"]["creditScore"] == 742
    assert data["financial_data"]["accountsReceivable"] == 50000


def test_negative_figures_return_422(client: TestClient, stub_assessor):
    response = _assess(client, revenue=-100)

    assert response.status_code == 422
    assert "revenue" in response.json()["detail"]
    assert stub_assessor.calls == []


def test_unknown_industry_returns_422(client: TestClient):
    response = _assess(client, industry="Mining")
    assert response.status_code == 422


def test_quota_exhaustion_returns_429(client: TestClient, stub_assessor):
    stub_assessor.failures = [RemoteServiceError(429, "quota")] * 5

    response = _assess(client)

    assert response.status_code == 429
    assert response.headers["Retry-After"] == "60"
    assert response.json()["detail"] == QUOTA_EXHAUSTED_MESSAGE

    history = client.get("/v1/assessments/history", params={"user_id": "user_a"}).json()
    assert history["reports"] == []


def test_persistent_outage_returns_503(client: TestClient, stub_assessor):
    stub_assessor.failures = [RemoteServiceError(503, "backend unavailable")] * 5
    response = _assess(client)
    assert response.status_code == 503


def test_contract_violation_returns_502(client: TestClient, stub_assessor):
    stub_assessor.failures = [ContractError("Missing required field: creditScore")]

    response = _assess(client)

    assert response.status_code == 502
    assert response.json()["detail"] == INTEGRITY_FAILURE_MESSAGE


def test_history_and_report_lookup(client: TestClient):
    """History lists newest first; reports are fetched and selected by id"""
    first = _assess(client).json()
    second = _assess(client, revenue=650000).json()

    history = client.get("/v1/assessments/history", params={"user_id": "user_a"}).json()
    assert [r["report_id"] for r in history["reports"]] == [second["report_id"], first["report_id"]]
    assert history["reports"][0]["revenue"] == 650000

    fetched = client.get(f"/v1/assessments/{first['report_id']}", params={"user_id": "user_a"})
    assert fetched.status_code == 200
    assert fetched.json()["assessment"] == first["assessment"]

    selected = client.post(f"/v1/assessments/{first['report_id']}/select", params={"user_id": "user_a"})
    assert selected.status_code == 200

    current = client.get("/v1/assessments/current", params={"user_id": "user_a"}).json()
    assert current["report_id"] == first["report_id"]
    assert current["financial_data"]["revenue"] == 500000


def test_report_lookup_is_scoped_to_user(client: TestClient):
    report = _assess(client).json()

    response = client.get(f"/v1/assessments/{report['report_id']}", params={"user_id": "user_b"})
    assert response.status_code == 404

    response = client.post(f"/v1/assessments/{report['report_id']}/select", params={"user_id": "user_b"})
    assert response.status_code == 404


def test_history_is_capped_at_ten(client: TestClient):
    for n in range(11):
        _assess(client, revenue=100000 + n)

    history = client.get("/v1/assessments/history", params={"user_id": "user_a"}).json()
    assert len(history["reports"]) == 10
    assert history["reports"][0]["revenue"] == 100010


def test_current_dashboard(client: TestClient):
    _assess(client)

    current = client.get("/v1/assessments/current", params={"user_id": "user_a"})

    assert current.status_code == 200
    data = current.json()
    assert data["state"] == "committed"
    assert data["progress"] == list(PROGRESS_LABELS)
    assert data["history_count"] == 1
    assert data["derived"]["ratePolicyVersion"] == "rb-2024.1"
    assert data["derived"]["indicativeEmi"] == pytest.approx(36000)
    assert len(data["derived"]["tenureOptions"]) == 3


def test_seed_form(client: TestClient):
    response = client.post("/v1/assessments/seed", json={"user_id": "user_a", "imported": {"revenue": 750000}})

    assert response.status_code == 200
    assert response.json()["form"]["revenue"] == 750000
    assert response.json()["form"]["expenses"] == 300000


def test_sales_ledger_and_summary(client: TestClient):
    client.post("/v1/sales", json={"user_id": "user_a", "date": "2024-05-01", "amount": 1000})
    client.post("/v1/sales", json={"user_id": "user_a", "date": "2024-05-02", "amount": 2000})
    ledger = client.post("/v1/sales", json={"user_id": "user_a", "date": "2024-05-01", "amount": 1500}).json()

    assert len(ledger["entries"]) == 2

    summary = client.get("/v1/sales/summary", params={"user_id": "user_a", "year": 2024, "month": 5}).json()
    assert summary["month_total"] == 3500
    assert summary["all_time_total"] == 3500
    assert summary["months"] == {"2024-05": 3500}


def test_negative_sales_amount_is_rejected(client: TestClient):
    response = client.post("/v1/sales", json={"user_id": "user_a", "date": "2024-05-01", "amount": -1})
    assert response.status_code == 422


def test_login_logout_and_removal(client: TestClient):
    report = _assess(client).json()

    assert client.post("/v1/sessions/logout", params={"user_id": "user_a"}).status_code == 204
    assert client.get("/v1/assessments/current", params={"user_id": "user_a"}).json()["report_id"] is None

    login = client.post("/v1/sessions/login", json={"user_id": "user_a", "ip": "10.0.0.1"})
    assert login.status_code == 200
    assert login.json()["sessions"][0]["status"] == "Success"
    assert client.get("/v1/assessments/current", params={"user_id": "user_a"}).json()["report_id"] == report["report_id"]

    assert client.delete("/v1/users/user_a").status_code == 204
    history = client.get("/v1/assessments/history", params={"user_id": "user_a"}).json()
    assert history["reports"] == []
    assert client.get("/v1/sessions", params={"user_id": "user_a"}).json()["sessions"] == []


def test_removal_during_running_assessment_returns_409(client: TestClient, orchestrator):
    _assess(client)
    orchestrator.session("user_a").state = PipelineState.INVOKING

    response = client.delete("/v1/users/user_a")

    assert response.status_code == 409
    history = client.get("/v1/assessments/history", params={"user_id": "user_a"}).json()
    assert len(history["reports"]) == 1


def test_sales_summary_defaults_to_orchestrator_month(stub_assessor, memory_store, invoker):
    orchestrator = AssessmentOrchestrator(
        stub_assessor,
        memory_store,
        invoker=invoker,
        clock=lambda: datetime(2024, 5, 31, 23, 30, tzinfo=timezone.utc),
    )

    with TestClient(create_app(orchestrator)) as test_client:
        test_client.post("/v1/sales", json={"user_id": "user_a", "date": "2024-05-10", "amount": 1000})
        test_client.post("/v1/sales", json={"user_id": "user_a", "date": "2024-06-01", "amount": 500})
        summary = test_client.get("/v1/sales/summary", params={"user_id": "user_a"}).json()

    assert (summary["year"], summary["month"]) == (2024, 5)
    assert summary["month_total"] == 1000
    assert summary["all_time_total"] == 1500


@patch("finpulse_gateway.infrastructure.clients.reasoning.ReasoningClient.assess")
def test_reasoning_client_wiring(mock_assess: AsyncMock, assessment_result, memory_store, invoker):
    """The production client is what the endpoint calls, once per cycle"""
    mock_assess.return_value = assessment_result
    orchestrator = AssessmentOrchestrator(
        ReasoningClient(base_url="http://reasoning.test"),
        memory_store,
        invoker=invoker,
        progress_step_seconds=0,
        progress_settle_seconds=0,
    )

    with TestClient(create_app(orchestrator)) as test_client:
        response = _assess(test_client)

    assert response.status_code == 200
    assert mock_assess.await_count == 1
    data, history = mock_assess.await_args.args
    assert data.revenue == 500000
    assert history.report_count == 0
