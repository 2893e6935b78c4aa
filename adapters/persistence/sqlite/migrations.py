"""
Migration logic for the SQLite config store.

The store owns these migrations - the service doesn't know about them.
"""
import logging
from datetime import UTC, datetime

import aiosqlite

logger = logging.getLogger(__name__)


async def run_migrations(conn: aiosqlite.Connection) -> None:
    """Run all migrations"""
    # Create migrations table
    await conn.execute(
        """
        CREATE TABLE IF NOT EXISTS schema_migrations (
            version INTEGER PRIMARY KEY,
            applied_at TEXT NOT NULL
        )
    """
    )

    # Get current version
    cursor = await conn.execute("SELECT MAX(version) as version FROM schema_migrations")
    row = await cursor.fetchone()
    current_version = row[0] if row[0] else 0

    # Apply migrations
    migrations = [
        (1, create_pipeline_configs_table),
        (2, create_quality_history_table),
    ]

    for version, migration_func in migrations:
        if version > current_version:
            await migration_func(conn)
            await conn.execute(
                "INSERT INTO schema_migrations (version, applied_at) VALUES (?, ?)",
                (version, datetime.now(UTC).isoformat()),
            )
            await conn.commit()
            logger.info(f"Applied migration v{version}: {migration_func.__name__}")


async def create_pipeline_configs_table(conn: aiosqlite.Connection):
    """Migration 1: Stored pipeline configurations, one per user"""
    await conn.execute(
        """
        CREATE TABLE pipeline_configs (
            user_key TEXT PRIMARY KEY,
            user_id TEXT,
            version TEXT NOT NULL,
            config TEXT NOT NULL,         -- JSON object
            updated_at TEXT NOT NULL
        )
    """
    )


async def create_quality_history_table(conn: aiosqlite.Connection):
    """Migration 2: Quality history"""
    await conn.execute(
        """
        CREATE TABLE quality_history (
            id TEXT NOT NULL,
            user_key TEXT NOT NULL,
            user_id TEXT,
            session_id TEXT NOT NULL,
            overall_score REAL NOT NULL,
            impact_score REAL NOT NULL,
            grade TEXT NOT NULL,
            processing_time REAL NOT NULL,
            stages_used TEXT NOT NULL,    -- JSON array
            created_at TEXT NOT NULL,
            PRIMARY KEY (user_key, id)
        )
    """
    )
    await conn.execute(
        "CREATE INDEX idx_quality_history_user ON quality_history(user_key, created_at)"
    )
