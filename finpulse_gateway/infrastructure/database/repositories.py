"""SQL-backed history store with the same contract as the in-memory store"""

from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, sessionmaker

from finpulse_gateway.domain.contract import (
    assessment_to_payload,
    financial_data_from_payload,
    financial_data_to_payload,
    parse_assessment,
)
from finpulse_gateway.domain.history import (
    LOGIN_HISTORY_LIMIT,
    REPORT_HISTORY_LIMIT,
    group_by_month,
    sum_all,
    sum_for_month,
)
from finpulse_gateway.domain.models import DailySalesEntry, LoginSession, LoginStatus, SavedReport
from finpulse_gateway.infrastructure.database.models import (
    AssessmentReportRecord,
    DailySalesRecord,
    LoginSessionRecord,
)
from finpulse_gateway.infrastructure.history_store import UserLocks
from finpulse_gateway.infrastructure.observability.metrics import record_evictions


def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo on the way back
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _to_report(record: AssessmentReportRecord) -> SavedReport:
    return SavedReport(
        id=record.id,
        created_at=_as_utc(record.created_at),
        data=financial_data_from_payload(record.financial_data),
        assessment=parse_assessment(record.assessment),
    )


def _to_login(record: LoginSessionRecord) -> LoginSession:
    return LoginSession(created_at=_as_utc(record.created_at), status=LoginStatus(record.status), ip=record.ip)


def _to_sale(record: DailySalesRecord) -> DailySalesEntry:
    return DailySalesEntry(date=record.sale_date, amount=record.amount)


def _truncate(db: Session, model, user_id: str, limit: int) -> int:
    """Delete a user's rows beyond the newest `limit`; returns how many went"""
    stale = db.scalars(
        select(model.seq).where(model.user_id == user_id).order_by(model.seq.desc()).offset(limit)
    ).all()
    if stale:
        db.execute(delete(model).where(model.seq.in_(stale)))
    return len(stale)


class SqlHistoryStore:
    """Durable history store; every operation runs in its own transaction"""

    def __init__(
        self,
        session_factory: sessionmaker,
        report_limit: int = REPORT_HISTORY_LIMIT,
        login_limit: int = LOGIN_HISTORY_LIMIT,
    ):
        self._session_factory = session_factory
        self.report_limit = report_limit
        self.login_limit = login_limit
        self._locks = UserLocks()

    # Reports

    def commit_report(self, user_id: str, report: SavedReport) -> List[SavedReport]:
        with self._locks.hold(user_id), self._session_factory() as db:
            db.add(
                AssessmentReportRecord(
                    id=report.id,
                    user_id=user_id,
                    created_at=report.created_at,
                    financial_data=financial_data_to_payload(report.data),
                    assessment=assessment_to_payload(report.assessment),
                )
            )
            db.flush()
            record_evictions("reports", _truncate(db, AssessmentReportRecord, user_id, self.report_limit))
            db.commit()
            return self._reports(db, user_id)

    def list_reports(self, user_id: str) -> List[SavedReport]:
        with self._session_factory() as db:
            return self._reports(db, user_id)

    def get_report(self, user_id: str, report_id: str) -> Optional[SavedReport]:
        with self._session_factory() as db:
            record = db.scalars(
                select(AssessmentReportRecord).where(
                    AssessmentReportRecord.user_id == user_id,
                    AssessmentReportRecord.id == report_id,
                )
            ).first()
            return _to_report(record) if record else None

    def _reports(self, db: Session, user_id: str) -> List[SavedReport]:
        records = db.scalars(
            select(AssessmentReportRecord)
            .where(AssessmentReportRecord.user_id == user_id)
            .order_by(AssessmentReportRecord.seq.desc())
        ).all()
        return [_to_report(r) for r in records]

    # Logins

    def record_login(self, user_id: str, session: LoginSession) -> List[LoginSession]:
        with self._locks.hold(user_id), self._session_factory() as db:
            db.add(
                LoginSessionRecord(
                    user_id=user_id,
                    created_at=session.created_at,
                    status=session.status.value,
                    ip=session.ip,
                )
            )
            db.flush()
            record_evictions("logins", _truncate(db, LoginSessionRecord, user_id, self.login_limit))
            db.commit()
            return self._logins(db, user_id)

    def list_logins(self, user_id: str) -> List[LoginSession]:
        with self._session_factory() as db:
            return self._logins(db, user_id)

    def _logins(self, db: Session, user_id: str) -> List[LoginSession]:
        records = db.scalars(
            select(LoginSessionRecord)
            .where(LoginSessionRecord.user_id == user_id)
            .order_by(LoginSessionRecord.seq.desc())
        ).all()
        return [_to_login(r) for r in records]

    # Sales ledger

    def upsert_sales_entry(self, user_id: str, entry: DailySalesEntry) -> List[DailySalesEntry]:
        with self._locks.hold(user_id), self._session_factory() as db:
            # delete + insert keeps the replaced day at the end, matching the in-memory ledger order
            db.execute(
                delete(DailySalesRecord).where(
                    DailySalesRecord.user_id == user_id,
                    DailySalesRecord.sale_date == entry.date,
                )
            )
            db.flush()
            db.add(DailySalesRecord(user_id=user_id, sale_date=entry.date, amount=entry.amount))
            db.commit()
            return self._sales(db, user_id)

    def list_sales(self, user_id: str) -> List[DailySalesEntry]:
        with self._session_factory() as db:
            return self._sales(db, user_id)

    def _sales(self, db: Session, user_id: str) -> List[DailySalesEntry]:
        records = db.scalars(
            select(DailySalesRecord).where(DailySalesRecord.user_id == user_id).order_by(DailySalesRecord.seq)
        ).all()
        return [_to_sale(r) for r in records]

    def monthly_total(self, user_id: str, year: int, month: int) -> float:
        return sum_for_month(self.list_sales(user_id), year, month)

    def all_time_total(self, user_id: str) -> float:
        return sum_all(self.list_sales(user_id))

    def monthly_breakdown(self, user_id: str) -> Dict[str, List[DailySalesEntry]]:
        return group_by_month(self.list_sales(user_id))

    def remove_user(self, user_id: str) -> None:
        with self._locks.hold(user_id), self._session_factory() as db:
            for model in (AssessmentReportRecord, DailySalesRecord, LoginSessionRecord):
                db.execute(delete(model).where(model.user_id == user_id))
            db.commit()
        self._locks.discard(user_id)
