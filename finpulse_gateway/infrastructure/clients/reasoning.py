"""Reasoning service HTTP client for financial assessments"""

from typing import Any, Dict

import httpx

from finpulse_gateway.config import settings
from finpulse_gateway.domain.contract import (
    financial_data_to_payload,
    history_summary_to_payload,
    parse_assessment,
)
from finpulse_gateway.domain.exceptions import ContractError, RemoteServiceError
from finpulse_gateway.domain.models import AssessmentResult, FinancialData, HistorySummary


class ReasoningClient:
    """Client for the external assessment reasoning API"""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url or settings.reasoning_api_base
        self.timeout = timeout or settings.reasoning_timeout_seconds
        self._transport = transport

    def build_request(self, data: FinancialData, history: HistorySummary) -> Dict[str, Any]:
        return {
            "financialData": financial_data_to_payload(data),
            "history": history_summary_to_payload(history),
        }

    async def assess(self, data: FinancialData, history: HistorySummary) -> AssessmentResult:
        """
        Request one assessment. A single attempt; retries live in ResilientInvoker.

        Raises:
            RemoteServiceError: On any HTTP error status (429 and 5xx are retried upstream)
            httpx.TransportError: On timeouts and connection failures
            ContractError: When the success body is not a complete assessment
        """
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.post(
                f"{self.base_url}/v1/assess",
                json=self.build_request(data, history),
            )
            try:
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                raise RemoteServiceError(e.response.status_code, e.response.text[:200]) from e

            try:
                payload = response.json()
            except ValueError as e:
                raise ContractError(f"Reasoning service returned invalid JSON: {e}") from e

        return parse_assessment(payload)
