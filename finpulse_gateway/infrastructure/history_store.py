"""In-memory history store partitioned by user id"""

import threading
from collections import defaultdict
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

from finpulse_gateway.domain.history import (
    LOGIN_HISTORY_LIMIT,
    REPORT_HISTORY_LIMIT,
    group_by_month,
    prepend_bounded,
    sum_all,
    sum_for_month,
    upsert_by_date,
)
from finpulse_gateway.domain.models import DailySalesEntry, LoginSession, SavedReport
from finpulse_gateway.infrastructure.observability.metrics import record_evictions


class UserLocks:
    """One lock per user so writers for different users never contend"""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.RLock] = {}

    @contextmanager
    def hold(self, user_id: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(user_id, threading.RLock())
        with lock:
            yield

    def discard(self, user_id: str) -> None:
        with self._guard:
            self._locks.pop(user_id, None)


class InMemoryHistoryStore:
    """
    Session-lifetime store for reports, logins and the daily sales ledger.

    Lists are replaced rather than mutated in place, so a list handed to a
    caller never changes underneath it.
    """

    def __init__(
        self,
        report_limit: int = REPORT_HISTORY_LIMIT,
        login_limit: int = LOGIN_HISTORY_LIMIT,
    ):
        self.report_limit = report_limit
        self.login_limit = login_limit
        self._reports: Dict[str, List[SavedReport]] = defaultdict(list)
        self._logins: Dict[str, List[LoginSession]] = defaultdict(list)
        self._sales: Dict[str, List[DailySalesEntry]] = defaultdict(list)
        self._locks = UserLocks()

    # Reports

    def commit_report(self, user_id: str, report: SavedReport) -> List[SavedReport]:
        with self._locks.hold(user_id):
            current = self._reports[user_id]
            updated = prepend_bounded(current, report, self.report_limit)
            record_evictions("reports", len(current) + 1 - len(updated))
            self._reports[user_id] = updated
            return list(updated)

    def list_reports(self, user_id: str) -> List[SavedReport]:
        return list(self._reports.get(user_id, []))

    def get_report(self, user_id: str, report_id: str) -> Optional[SavedReport]:
        return next((r for r in self._reports.get(user_id, []) if r.id == report_id), None)

    # Logins

    def record_login(self, user_id: str, session: LoginSession) -> List[LoginSession]:
        with self._locks.hold(user_id):
            current = self._logins[user_id]
            updated = prepend_bounded(current, session, self.login_limit)
            record_evictions("logins", len(current) + 1 - len(updated))
            self._logins[user_id] = updated
            return list(updated)

    def list_logins(self, user_id: str) -> List[LoginSession]:
        return list(self._logins.get(user_id, []))

    # Sales ledger

    def upsert_sales_entry(self, user_id: str, entry: DailySalesEntry) -> List[DailySalesEntry]:
        with self._locks.hold(user_id):
            updated = upsert_by_date(self._sales[user_id], entry)
            self._sales[user_id] = updated
            return list(updated)

    def list_sales(self, user_id: str) -> List[DailySalesEntry]:
        return list(self._sales.get(user_id, []))

    def monthly_total(self, user_id: str, year: int, month: int) -> float:
        return sum_for_month(self._sales.get(user_id, []), year, month)

    def all_time_total(self, user_id: str) -> float:
        return sum_all(self._sales.get(user_id, []))

    def monthly_breakdown(self, user_id: str) -> Dict[str, List[DailySalesEntry]]:
        return group_by_month(self._sales.get(user_id, []))

    def remove_user(self, user_id: str) -> None:
        with self._locks.hold(user_id):
            self._reports.pop(user_id, None)
            self._sales.pop(user_id, None)
            self._logins.pop(user_id, None)
        self._locks.discard(user_id)
