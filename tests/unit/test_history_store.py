"""Contract tests shared by the in-memory and SQL history stores"""

from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timedelta, timezone

from finpulse_gateway.domain.history import group_by_month, summarize_history, upsert_by_date
from finpulse_gateway.domain.models import DailySalesEntry, LoginSession, LoginStatus


def _login(n: int, status: LoginStatus = LoginStatus.SUCCESS) -> LoginSession:
    return LoginSession(
        created_at=datetime(2024, 3, 1, tzinfo=timezone.utc) + timedelta(minutes=n),
        status=status,
        ip=f"10.0.0.{n}",
    )


def test_first_report_is_stored(history_store, make_report):
    report = make_report(1)

    reports = history_store.commit_report("user_a", report)

    assert reports == [report]
    assert history_store.list_reports("user_a") == [report]
    assert history_store.get_report("user_a", report.id) == report


def test_report_history_keeps_ten_newest_first(history_store, make_report):
    """Eleven commits leave reports 11..2, newest first"""
    for n in range(1, 12):
        history_store.commit_report("user_a", make_report(n))

    reports = history_store.list_reports("user_a")

    assert len(reports) == 10
    assert [r.id for r in reports] == [f"report-{n}" for n in range(11, 1, -1)]
    assert history_store.get_report("user_a", "report-1") is None


def test_stored_report_round_trips_unchanged(history_store, make_report):
    """Input snapshot and assessment come back exactly as committed"""
    report = make_report(3)
    history_store.commit_report("user_a", report)

    stored = history_store.get_report("user_a", report.id)

    assert stored.data == report.data
    assert stored.assessment == report.assessment
    assert stored.created_at == report.created_at


def test_login_history_keeps_five_newest(history_store):
    for n in range(1, 8):
        history_store.record_login("user_a", _login(n))

    logins = history_store.list_logins("user_a")

    assert len(logins) == 5
    assert [s.ip for s in logins] == [f"10.0.0.{n}" for n in range(7, 2, -1)]


def test_failed_logins_are_recorded(history_store):
    history_store.record_login("user_a", _login(1, LoginStatus.FAILED))
    assert history_store.list_logins("user_a")[0].status is LoginStatus.FAILED


def test_sales_upsert_replaces_same_day(history_store):
    """A second entry for the same date replaces the first"""
    history_store.upsert_sales_entry("user_a", DailySalesEntry(date(2024, 5, 1), 1000))
    history_store.upsert_sales_entry("user_a", DailySalesEntry(date(2024, 5, 2), 2000))
    entries = history_store.upsert_sales_entry("user_a", DailySalesEntry(date(2024, 5, 1), 1500))

    assert len(entries) == 2
    assert {e.date: e.amount for e in entries} == {date(2024, 5, 1): 1500, date(2024, 5, 2): 2000}
    assert history_store.all_time_total("user_a") == 3500


def test_sales_totals_and_breakdown(history_store):
    for day, amount in [
        (date(2024, 4, 28), 400),
        (date(2024, 5, 3), 300),
        (date(2024, 5, 1), 100),
        (date(2023, 12, 31), 50),
    ]:
        history_store.upsert_sales_entry("user_a", DailySalesEntry(day, amount))

    assert history_store.monthly_total("user_a", 2024, 5) == 400
    assert history_store.monthly_total("user_a", 2024, 4) == 400
    assert history_store.monthly_total("user_a", 2024, 6) == 0
    assert history_store.all_time_total("user_a") == 850

    breakdown = history_store.monthly_breakdown("user_a")
    assert list(breakdown) == ["2024-05", "2024-04", "2023-12"]
    assert [e.date.day for e in breakdown["2024-05"]] == [1, 3]


def test_users_are_isolated(history_store, make_report):
    history_store.commit_report("user_a", make_report(1))
    history_store.upsert_sales_entry("user_a", DailySalesEntry(date(2024, 5, 1), 1000))
    history_store.record_login("user_a", _login(1))

    assert history_store.list_reports("user_b") == []
    assert history_store.get_report("user_b", "report-1") is None
    assert history_store.list_sales("user_b") == []
    assert history_store.list_logins("user_b") == []
    assert history_store.all_time_total("user_b") == 0


def test_remove_user_purges_every_collection(history_store, make_report):
    history_store.commit_report("user_a", make_report(1))
    history_store.commit_report("user_b", make_report(2))
    history_store.upsert_sales_entry("user_a", DailySalesEntry(date(2024, 5, 1), 1000))
    history_store.record_login("user_a", _login(1))

    history_store.remove_user("user_a")

    assert history_store.list_reports("user_a") == []
    assert history_store.list_sales("user_a") == []
    assert history_store.list_logins("user_a") == []
    assert [r.id for r in history_store.list_reports("user_b")] == ["report-2"]


def test_concurrent_commits_respect_the_bound(memory_store, make_report):
    """Parallel writers for one user never leave more than ten reports"""
    reports = [make_report(n) for n in range(40)]
    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(lambda r: memory_store.commit_report("user_a", r), reports))

    stored = memory_store.list_reports("user_a")
    assert len(stored) == 10
    assert len({r.id for r in stored}) == 10


def test_returned_lists_are_snapshots(memory_store, make_report):
    snapshot = memory_store.commit_report("user_a", make_report(1))
    memory_store.commit_report("user_a", make_report(2))
    assert [r.id for r in snapshot] == ["report-1"]


def test_upsert_by_date_appends_new_days():
    entries = [DailySalesEntry(date(2024, 5, 1), 10)]
    updated = upsert_by_date(entries, DailySalesEntry(date(2024, 5, 2), 20))
    assert [e.amount for e in updated] == [10, 20]
    assert len(entries) == 1


def test_group_by_month_empty_ledger():
    assert group_by_month([]) == {}


def test_summarize_history(make_report):
    assert summarize_history([]).previous_revenue is None

    summary = summarize_history([make_report(5), make_report(4)])
    assert summary.previous_revenue == 100005
    assert summary.report_count == 2
