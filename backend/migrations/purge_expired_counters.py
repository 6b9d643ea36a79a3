"""
Delete rate-limit counters whose expiry hint has passed.

Per-minute and per-day windows are written with ``expires_at``. Monthly quota
counters carry none and are never removed. Schedule it from cron, e.g. hourly:

    python -m backend.migrations.purge_expired_counters
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

import psycopg2
from dotenv import load_dotenv

from backend.app.metering import CounterStore, PostgresCounterStore, StoreUnavailableError
from backend.migrations.create_entitlement_tables import connect

logger = logging.getLogger(__name__)


def purge(store: CounterStore, clock: Optional[Callable[[], datetime]] = None) -> int:
    """Remove every expired counter from ``store`` and return how many went."""

    now = clock() if clock else datetime.now(timezone.utc)
    deleted = store.purge_expired(now)
    logger.info("Purged %s expired usage counters as of %s", deleted, now.isoformat())
    return deleted


if __name__ == "__main__":
    load_dotenv()
    logging.basicConfig(level=logging.INFO)
    connection = connect()
    try:
        purge(PostgresCounterStore(conn=connection))
        connection.commit()
    except (psycopg2.Error, StoreUnavailableError):
        connection.rollback()
        logger.exception("Purging expired counters failed")
        raise
    finally:
        connection.close()
