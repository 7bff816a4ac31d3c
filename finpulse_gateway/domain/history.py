"""Bounded history rules shared by every history store backend"""

from collections import OrderedDict
from typing import Dict, List, Optional, Protocol, Sequence, TypeVar

from finpulse_gateway.domain.models import DailySalesEntry, HistorySummary, LoginSession, SavedReport

T = TypeVar("T")

REPORT_HISTORY_LIMIT = 10
LOGIN_HISTORY_LIMIT = 5


def prepend_bounded(items: Sequence[T], item: T, limit: int) -> List[T]:
    """Newest-first list with item in front, truncated to limit"""
    return [item, *items][:limit]


def upsert_by_date(entries: Sequence[DailySalesEntry], entry: DailySalesEntry) -> List[DailySalesEntry]:
    """Replace the entry for entry.date if present, otherwise append"""
    return [e for e in entries if e.date != entry.date] + [entry]


def sum_for_month(entries: Sequence[DailySalesEntry], year: int, month: int) -> float:
    return sum(e.amount for e in entries if e.date.year == year and e.date.month == month)


def sum_all(entries: Sequence[DailySalesEntry]) -> float:
    return sum(e.amount for e in entries)


def group_by_month(entries: Sequence[DailySalesEntry]) -> Dict[str, List[DailySalesEntry]]:
    """Entries keyed by YYYY-MM, newest month first, days ascending within a month"""
    months: Dict[str, List[DailySalesEntry]] = {}
    for entry in entries:
        months.setdefault(entry.date.strftime("%Y-%m"), []).append(entry)

    return OrderedDict(
        (key, sorted(months[key], key=lambda e: e.date))
        for key in sorted(months, reverse=True)
    )


def summarize_history(reports: Sequence[SavedReport]) -> HistorySummary:
    """Trend context for the reasoning service: the latest snapshot's revenue"""
    if not reports:
        return HistorySummary(previous_revenue=None, report_count=0)
    return HistorySummary(previous_revenue=reports[0].data.revenue, report_count=len(reports))


class HistoryStore(Protocol):
    """Per-user bounded collections. Implementations must keep these contracts"""

    def commit_report(self, user_id: str, report: SavedReport) -> List[SavedReport]: ...

    def list_reports(self, user_id: str) -> List[SavedReport]: ...

    def get_report(self, user_id: str, report_id: str) -> Optional[SavedReport]: ...

    def record_login(self, user_id: str, session: LoginSession) -> List[LoginSession]: ...

    def list_logins(self, user_id: str) -> List[LoginSession]: ...

    def upsert_sales_entry(self, user_id: str, entry: DailySalesEntry) -> List[DailySalesEntry]: ...

    def list_sales(self, user_id: str) -> List[DailySalesEntry]: ...

    def monthly_total(self, user_id: str, year: int, month: int) -> float: ...

    def all_time_total(self, user_id: str) -> float: ...

    def monthly_breakdown(self, user_id: str) -> Dict[str, List[DailySalesEntry]]: ...

    def remove_user(self, user_id: str) -> None: ...
