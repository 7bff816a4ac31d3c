"""Capability boundary for the remote reasoning service"""

from typing import Protocol

from finpulse_gateway.domain.models import AssessmentResult, FinancialData, HistorySummary


class Assessor(Protocol):
    """Produces an assessment for one financial snapshot; may fail or be rate-limited"""

    async def assess(self, data: FinancialData, history: HistorySummary) -> AssessmentResult: ...
