from __future__ import annotations

from datetime import datetime, timedelta, timezone

from backend.app.metering import InMemoryCounterStore
from backend.migrations import create_entitlement_tables, purge_expired_counters


class RecordingCursor:
    def __init__(self) -> None:
        self.statements: list[str] = []

    def __enter__(self) -> "RecordingCursor":
        return self

    def __exit__(self, *exc_info) -> None:
        return None

    def execute(self, sql: str) -> None:
        self.statements.append(sql)


class RecordingConnection:
    def __init__(self) -> None:
        self.cursor_obj = RecordingCursor()
        self.committed = False

    def cursor(self) -> RecordingCursor:
        return self.cursor_obj

    def commit(self) -> None:
        self.committed = True


def test_apply_creates_every_table_idempotently() -> None:
    conn = RecordingConnection()

    create_entitlement_tables.apply(conn)

    statements = conn.cursor_obj.statements
    assert conn.committed is True
    assert all("IF NOT EXISTS" in statement for statement in statements)
    joined = "\n".join(statements)
    for table in ("usage_counters", "subscriptions", "live_resources"):
        assert f"CREATE TABLE IF NOT EXISTS {table}" in joined
    assert "PRIMARY KEY (subject_id, resource, period_key)" in joined


def test_purge_removes_only_expired_rate_limit_counters() -> None:
    now = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)
    store = InMemoryCounterStore()
    store.check_and_increment("s1", "api_calls", "2026-01-15-11-58", 20, expires_at=now - timedelta(minutes=1))
    store.check_and_increment("s1", "api_calls", "2026-01-15-12-00", 20, expires_at=now + timedelta(minutes=5))
    store.check_and_increment("s1", "theme_analysis", "2026-01", 5)

    removed = purge_expired_counters.purge(store, clock=lambda: now)

    assert removed == 1
    assert store.get_count("s1", "api_calls", "2026-01-15-11-58") == 0
    assert store.get_count("s1", "api_calls", "2026-01-15-12-00") == 1
    assert store.get_count("s1", "theme_analysis", "2026-01") == 1
    assert purge_expired_counters.purge(store, clock=lambda: now) == 0
