"""Assessment orchestrator - sequences one assessment cycle per user.

States: IDLE -> PREPROCESSING -> INVOKING -> MERGING -> COMMITTED, with FAILED
reachable from PREPROCESSING and INVOKING, and from MERGING when the history
store rejects the commit.

The progress sequence and the remote call run as two asyncio tasks. The remote
call starts immediately; its result is only awaited once the full progress
sequence has been emitted, so a caller never sees a result early and never
waits longer than max(progress duration, remote latency).
"""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from finpulse_gateway.config import settings
from finpulse_gateway.domain.assessor import Assessor
from finpulse_gateway.domain.exceptions import (
    ContractError,
    PipelineBusyError,
    RateLimitError,
    ReportNotFoundError,
    TransientError,
)
from finpulse_gateway.domain.history import HistoryStore, summarize_history
from finpulse_gateway.domain.metrics import (
    DEFAULT_EMI_CEILING_RATIO,
    DEFAULT_TENURES,
    WORKING_CAPITAL_TOLERANCE,
    DerivedMetrics,
    RateBandPolicy,
    build_derived_view,
    reconcile_working_capital,
)
from finpulse_gateway.domain.models import (
    AssessmentResult,
    FinancialData,
    HistorySummary,
    LoginSession,
    LoginStatus,
    SavedReport,
)
from finpulse_gateway.domain.validation import validate_financial_data
from finpulse_gateway.infrastructure.clients.resilience import ResilientInvoker
from finpulse_gateway.infrastructure.observability.logging import log_assessment
from finpulse_gateway.infrastructure.observability.metrics import record_assessment

logger = logging.getLogger(__name__)

PROGRESS_LABELS = (
    "Synchronizing with GSTN repositories...",
    "Authenticating institutional API handshake...",
    "Applying linear regression forecasting models...",
    "Validating industry sector benchmarks...",
    "Calculating net working capital ratios...",
    "Auditing tax integrity and slabs...",
    "Generating creditworthiness scorecard...",
    "Optimizing loan propensity algorithms...",
    "Finalizing strategic growth insights...",
    "Synthesizing analysis cycle...",
)

QUOTA_COOLDOWN_SECONDS = 60
QUOTA_EXHAUSTED_MESSAGE = (
    f"System quota exhausted. Please wait {QUOTA_COOLDOWN_SECONDS}s for the assessment engine to reset."
)
INTEGRITY_FAILURE_MESSAGE = "Assessment data failed integrity checks. Please run the analysis again."
GENERIC_FAILURE_MESSAGE = "Operational interruption. Check data integrity and try again."

# Manual-import form defaults; imported fields override these
FORM_DEFAULTS: Dict[str, Any] = {
    "revenue": 500000,
    "expenses": 300000,
    "accounts_receivable": 50000,
    "accounts_payable": 20000,
    "inventory": 100000,
    "loans": 0,
    "cash_in_hand": 40000,
    "industry": "Retail",
    "gst_status": "Pending",
    "bank_balance": 0,
    "existing_emi": 0,
}

ProgressCallback = Callable[[str, float], None]


class PipelineState(str, Enum):
    IDLE = "idle"
    PREPROCESSING = "preprocessing"
    INVOKING = "invoking"
    MERGING = "merging"
    COMMITTED = "committed"
    FAILED = "failed"


IN_FLIGHT_STATES = (PipelineState.PREPROCESSING, PipelineState.INVOKING, PipelineState.MERGING)


@dataclass
class PipelineSession:
    """Per-user view state owned by the orchestrator"""

    user_id: str
    state: PipelineState = PipelineState.IDLE
    current_assessment: Optional[AssessmentResult] = None
    current_input: Optional[FinancialData] = None
    current_report_id: Optional[str] = None
    progress: List[str] = field(default_factory=list)
    error: Optional[str] = None
    form_seed: Dict[str, Any] = field(default_factory=lambda: dict(FORM_DEFAULTS))

    @property
    def in_flight(self) -> bool:
        return self.state in IN_FLIGHT_STATES

    def show(self, report: Optional[SavedReport]) -> None:
        self.current_assessment = report.assessment if report else None
        self.current_input = report.data if report else None
        self.current_report_id = report.id if report else None


@dataclass(frozen=True)
class DashboardView:
    """Everything the dashboard renders for one user"""

    state: PipelineState
    error: Optional[str]
    progress: Sequence[str]
    report_id: Optional[str]
    assessment: Optional[AssessmentResult]
    data: Optional[FinancialData]
    derived: Optional[DerivedMetrics]
    history: Sequence[SavedReport]
    month_sales_total: float
    all_time_sales_total: float


def _discard(task: asyncio.Task) -> None:
    """Cancel a task we no longer need, or mark its failure as retrieved"""
    if not task.done():
        task.cancel()
    elif not task.cancelled():
        task.exception()


def failure_message(error: BaseException) -> str:
    """User-facing message for a failed cycle"""
    if isinstance(error, RateLimitError):
        return QUOTA_EXHAUSTED_MESSAGE
    if isinstance(error, ContractError):
        return INTEGRITY_FAILURE_MESSAGE
    return GENERIC_FAILURE_MESSAGE


def failure_outcome(error: BaseException) -> str:
    if isinstance(error, RateLimitError):
        return "rate_limited"
    if isinstance(error, TransientError):
        return "transient"
    if isinstance(error, ContractError):
        return "contract"
    return "fatal"


class AssessmentOrchestrator:
    """Runs assessment cycles and owns each user's current-assessment state"""

    def __init__(
        self,
        assessor: Assessor,
        store: HistoryStore,
        invoker: ResilientInvoker | None = None,
        progress_step_seconds: float | None = None,
        progress_settle_seconds: float | None = None,
        deadline_seconds: float | None = None,
        rate_policy: RateBandPolicy | None = None,
        tenures: Sequence[int] = DEFAULT_TENURES,
        emi_ceiling_ratio: float = DEFAULT_EMI_CEILING_RATIO,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.assessor = assessor
        self.store = store
        self.invoker = invoker or ResilientInvoker()
        self.progress_step_seconds = (
            settings.progress_step_seconds if progress_step_seconds is None else progress_step_seconds
        )
        self.progress_settle_seconds = (
            settings.progress_settle_seconds if progress_settle_seconds is None else progress_settle_seconds
        )
        self.deadline_seconds = deadline_seconds
        self.rate_policy = rate_policy or RateBandPolicy()
        self.tenures = tuple(tenures)
        self.emi_ceiling_ratio = emi_ceiling_ratio
        self._sleep = sleep
        self._clock = clock
        self._sessions: Dict[str, PipelineSession] = {}

    @classmethod
    def from_settings(cls, assessor: Assessor, store: HistoryStore) -> "AssessmentOrchestrator":
        return cls(
            assessor,
            store,
            deadline_seconds=settings.assessment_deadline_seconds,
            rate_policy=RateBandPolicy(
                version=settings.rate_band_policy_version,
                point=settings.rate_band_point,
                fallback_annual_rate_pct=settings.fallback_annual_rate_pct,
            ),
            tenures=settings.tenure_candidates_months,
            emi_ceiling_ratio=settings.emi_ceiling_ratio,
        )

    def session(self, user_id: str) -> PipelineSession:
        return self._sessions.setdefault(user_id, PipelineSession(user_id=user_id))

    # ---------- Assessment cycle ----------

    async def submit(
        self,
        user_id: str,
        data: FinancialData,
        on_progress: ProgressCallback | None = None,
        request_id: str = "unknown",
    ) -> SavedReport:
        """
        Run one full cycle for user_id and commit the result.

        Raises:
            ValidationError: Before any state change or network activity
            PipelineBusyError: When a cycle is already in flight for this user
            RateLimitError / TransientError / ContractError / other: after the
                session has moved to FAILED with a user-facing message
        """
        validate_financial_data(data)

        session = self.session(user_id)
        if session.in_flight:
            raise PipelineBusyError(f"An assessment is already running for user {user_id}")

        session.state = PipelineState.PREPROCESSING
        session.progress = []
        session.error = None
        start_time = time.time()

        summary = summarize_history(self.store.list_reports(user_id))
        remote = asyncio.create_task(self._invoke(data, summary))

        try:
            await self._run_progress(session, on_progress)

            session.state = PipelineState.INVOKING
            result = await remote
        except Exception as e:
            _discard(remote)
            self._fail(session, e, request_id, start_time)
            raise
        except BaseException:
            # cancelled mid-cycle: leave the session usable
            _discard(remote)
            session.state = PipelineState.IDLE
            session.progress = []
            raise

        session.state = PipelineState.MERGING
        try:
            report = self._commit(user_id, data, result)
        except Exception as e:
            self._fail(session, e, request_id, start_time)
            raise

        session.show(report)
        session.state = PipelineState.COMMITTED

        record_assessment("committed", result.credit_score)
        log_assessment(
            request_id,
            user_id,
            "committed",
            (time.time() - start_time) * 1000,
            report_id=report.id,
            credit_score=result.credit_score,
        )
        return report

    async def _invoke(self, data: FinancialData, summary: HistorySummary) -> AssessmentResult:
        call = self.invoker.invoke(lambda: self.assessor.assess(data, summary))
        if not self.deadline_seconds:
            return await call
        try:
            return await asyncio.wait_for(call, self.deadline_seconds)
        except asyncio.TimeoutError as e:
            raise TransientError(f"Assessment deadline of {self.deadline_seconds}s exceeded") from e

    async def _run_progress(self, session: PipelineSession, on_progress: ProgressCallback | None) -> None:
        total = len(PROGRESS_LABELS)
        for index, label in enumerate(PROGRESS_LABELS, start=1):
            await self._sleep(self.progress_step_seconds)
            session.progress.append(label)
            if on_progress is not None:
                on_progress(label, index / total * 100)
        await self._sleep(self.progress_settle_seconds)

    def _commit(self, user_id: str, data: FinancialData, result: AssessmentResult) -> SavedReport:
        # Result is kept as returned; local figures are only compared
        drift = reconcile_working_capital(result, data)
        if abs(drift) > WORKING_CAPITAL_TOLERANCE:
            logger.warning(
                "Reported working capital differs from local computation",
                extra={"user_id": user_id, "step": "merge", "drift": drift},
            )

        report = SavedReport(
            id=uuid.uuid4().hex,
            created_at=self._clock(),
            data=data,
            assessment=result,
        )
        self.store.commit_report(user_id, report)
        return report

    def _fail(self, session: PipelineSession, error: BaseException, request_id: str, start_time: float) -> None:
        session.state = PipelineState.FAILED
        session.progress = []
        session.error = failure_message(error)

        outcome = failure_outcome(error)
        record_assessment(outcome)
        log_assessment(request_id, session.user_id, outcome, (time.time() - start_time) * 1000)
        logger.error(
            f"Assessment failed: {error}",
            extra={"request_id": request_id, "user_id": session.user_id, "outcome": outcome},
        )

    # ---------- Session actions ----------

    def select_report(self, user_id: str, report_id: str) -> SavedReport:
        """Show a past report as the current assessment, without re-running anything"""
        report = self.store.get_report(user_id, report_id)
        if report is None:
            raise ReportNotFoundError(f"Report {report_id} not found for user {user_id}")
        self.session(user_id).show(report)
        return report

    def login(self, user_id: str, status: LoginStatus = LoginStatus.SUCCESS, ip: str | None = None) -> List[LoginSession]:
        """Record a login; a successful one restores the newest report as current"""
        sessions = self.store.record_login(user_id, LoginSession(created_at=self._clock(), status=status, ip=ip))
        if status is LoginStatus.SUCCESS:
            reports = self.store.list_reports(user_id)
            self.session(user_id).show(reports[0] if reports else None)
        return sessions

    def logout(self, user_id: str) -> None:
        session = self._sessions.get(user_id)
        if session is None:
            return
        session.show(None)
        session.error = None
        if not session.in_flight:
            session.state = PipelineState.IDLE

    def remove_user(self, user_id: str) -> None:
        """
        Purge the user's stored collections and in-memory session.

        Raises:
            PipelineBusyError: While a cycle is in flight; it would commit
                into the purged history once it finished
        """
        session = self._sessions.get(user_id)
        if session is not None and session.in_flight:
            raise PipelineBusyError(f"An assessment is still running for user {user_id}")
        self.store.remove_user(user_id)
        self._sessions.pop(user_id, None)

    def seed_form(self, user_id: str, imported: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Merge a manual-import partial snapshot over the form defaults.

        The import is not validated here; only the final submitted
        FinancialData is.
        """
        seed = dict(FORM_DEFAULTS)
        seed.update({k: v for k, v in imported.items() if k in FORM_DEFAULTS and v is not None})
        self.session(user_id).form_seed = seed
        return dict(seed)

    def current_period(self) -> Tuple[int, int]:
        """(year, month) of the orchestrator clock, the default for monthly sales totals"""
        now = self._clock()
        return now.year, now.month

    def dashboard(self, user_id: str, year: int | None = None, month: int | None = None) -> DashboardView:
        session = self.session(user_id)
        current_year, current_month = self.current_period()
        year = year or current_year
        month = month or current_month

        derived = None
        if session.current_assessment is not None and session.current_input is not None:
            derived = build_derived_view(
                session.current_assessment,
                session.current_input,
                self.rate_policy,
                tenures=self.tenures,
                emi_ceiling_ratio=self.emi_ceiling_ratio,
            )

        return DashboardView(
            state=session.state,
            error=session.error,
            progress=tuple(session.progress),
            report_id=session.current_report_id,
            assessment=session.current_assessment,
            data=session.current_input,
            derived=derived,
            history=self.store.list_reports(user_id),
            month_sales_total=self.store.monthly_total(user_id, year, month),
            all_time_sales_total=self.store.all_time_total(user_id),
        )
