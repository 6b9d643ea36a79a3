"""
Create the tables backing entitlements, metering and downgrades.

- usage_counters: one row per (subject, resource, period) with its count
- subscriptions: one row per subject holding the current plan
- live_resources: workspaces and team members, deactivated rather than deleted
"""
from __future__ import annotations

import logging
import os

import psycopg2
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS usage_counters (
        subject_id TEXT NOT NULL,
        resource TEXT NOT NULL,
        period_key TEXT NOT NULL,
        count INTEGER NOT NULL DEFAULT 0 CHECK (count >= 0),
        expires_at TIMESTAMPTZ,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        PRIMARY KEY (subject_id, resource, period_key)
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS usage_counters_expires_at_idx
        ON usage_counters (expires_at)
        WHERE expires_at IS NOT NULL
    """,
    """
    CREATE TABLE IF NOT EXISTS subscriptions (
        subject_id TEXT PRIMARY KEY,
        plan_key TEXT NOT NULL DEFAULT 'free',
        status TEXT NOT NULL DEFAULT 'active',
        billing_anchor DATE NOT NULL DEFAULT CURRENT_DATE,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS live_resources (
        id TEXT PRIMARY KEY,
        owner_id TEXT NOT NULL,
        resource_type TEXT NOT NULL,
        is_active BOOLEAN NOT NULL DEFAULT TRUE,
        last_used_at TIMESTAMPTZ,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        deactivated_at TIMESTAMPTZ
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS live_resources_owner_active_idx
        ON live_resources (owner_id, resource_type)
        WHERE is_active
    """,
)


def apply(conn) -> None:
    """Run every statement on ``conn`` and commit."""

    with conn.cursor() as cursor:
        for statement in STATEMENTS:
            cursor.execute(statement)
    conn.commit()


def connect():
    return psycopg2.connect(
        host=os.getenv("DB_HOST", "127.0.0.1"),
        port=int(os.getenv("DB_PORT", "5432")),
        dbname=os.getenv("DB_NAME", "entitlements_db"),
        user=os.getenv("DB_USER", "entitlements"),
        password=os.getenv("DB_PASSWORD", "entitlements"),
    )


if __name__ == "__main__":
    load_dotenv()
    logging.basicConfig(level=logging.INFO)
    connection = connect()
    try:
        apply(connection)
        logger.info("Entitlement tables are in place")
    except psycopg2.Error:
        connection.rollback()
        logger.exception("Migration failed")
        raise
    finally:
        connection.close()
