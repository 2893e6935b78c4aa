"""
SQLite config store implementation.

Handles schema translation and migrations internally.
"""
import json
import logging
import uuid
from collections import Counter
from datetime import UTC, datetime
from pathlib import Path

import aiosqlite
import yaml  # type: ignore[import-untyped]
from pydantic import ValidationError

from services.pipeline.schemas import PipelineConfig

from ..base import BaseConfigStore
from ..exceptions import MigrationError, QueryError, StoreConnectionError
from ..schemas import (
    CONFIG_VERSION,
    QualityHistoryEntry,
    QualityStatistics,
    StoredConfig,
)
from .migrations import run_migrations

logger = logging.getLogger(__name__)

DEFAULT_USER_KEY = "__default__"
DEFAULT_MAX_HISTORY = 100


def _user_key(user_id: str | None) -> str:
    return user_id or DEFAULT_USER_KEY


class SQLiteConfigStore(BaseConfigStore):
    """SQLite implementation of the config store"""

    def __init__(self, config_path: str):
        super().__init__(config_path)
        self.db_path: Path | None = None
        self.conn: aiosqlite.Connection | None = None
        self.max_history = DEFAULT_MAX_HISTORY

    async def connect(self) -> None:
        """Connect to SQLite and run migrations"""
        try:
            # Load config
            with open(self.config_path) as f:
                self.config = yaml.safe_load(f)

            assert self.config is not None, "Config is None after loading"
            assert "database" in self.config, "Config missing database section"

            database = self.config["database"]
            self.db_path = Path(database["path"])
            if str(self.db_path) != ":memory:":
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self.max_history = (self.config.get("history") or {}).get(
                "max_entries", DEFAULT_MAX_HISTORY
            )

            # Connect
            self.conn = await aiosqlite.connect(str(self.db_path))
            self.conn.row_factory = aiosqlite.Row

            # Set SQLite pragmas
            await self.conn.execute(
                f"PRAGMA journal_mode={database.get('journal_mode', 'WAL')}"
            )
            await self.conn.execute(
                f"PRAGMA synchronous={database.get('synchronous', 'NORMAL')}"
            )
        except Exception as e:
            raise StoreConnectionError(str(self.db_path or self.config_path), str(e)) from e

        try:
            await run_migrations(self.conn)
        except Exception as e:
            raise MigrationError(str(e)) from e

    async def disconnect(self) -> None:
        """Close connection"""
        if self.conn:
            await self.conn.close()
            self.conn = None

    async def health_check(self) -> dict:
        """Check store health"""
        assert self.conn is not None, "Store not connected"
        try:
            cursor = await self.conn.execute("SELECT 1")
            await cursor.fetchone()
            return {"status": "healthy", "database": str(self.db_path)}
        except Exception as e:
            return {"status": "unhealthy", "error": str(e)}

    # ============================================
    # PIPELINE CONFIGURATION
    # ============================================

    async def load_config(self, user_id: str | None = None) -> PipelineConfig | None:
        """Load config - translate SQL to Pydantic, migrating old versions"""
        stored = await self._get_stored(user_id)
        if stored is None:
            logger.debug(f"No stored config for {_user_key(user_id)}")
            return None

        if stored.version != CONFIG_VERSION:
            migrated = self.migrate_config(stored)
            if migrated is None:
                logger.warning("Stored config could not be migrated, using defaults")
                return None
            await self.save_config(migrated, user_id)
            return migrated

        try:
            return PipelineConfig.model_validate(stored.config)
        except ValidationError as e:
            logger.warning(f"Invalid stored config, discarding it: {e}")
            await self._delete_config(user_id)
            return None

    async def save_config(self, config: PipelineConfig, user_id: str | None = None) -> bool:
        """Save config - translate Pydantic to SQL"""
        assert self.conn is not None, "Store not connected"
        try:
            await self.conn.execute(
                """
                INSERT INTO pipeline_configs (user_key, user_id, version, config, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(user_key) DO UPDATE SET
                    version = excluded.version,
                    config = excluded.config,
                    updated_at = excluded.updated_at
                """,
                (
                    _user_key(user_id),
                    user_id,
                    CONFIG_VERSION,
                    json.dumps(config.model_dump(mode="json")),  # Model → JSON
                    datetime.now(UTC).isoformat(),
                ),
            )
            await self.conn.commit()
            return True
        except Exception as e:
            logger.error(f"Failed to save pipeline config: {e}")
            return False

    async def clear_config(self, user_id: str | None = None) -> None:
        """Delete stored config and history"""
        assert self.conn is not None, "Store not connected"
        try:
            key = _user_key(user_id)
            await self.conn.execute("DELETE FROM pipeline_configs WHERE user_key = ?", (key,))
            await self.conn.execute("DELETE FROM quality_history WHERE user_key = ?", (key,))
            await self.conn.commit()
            logger.info(f"Cleared stored config and history for {key}")
        except Exception as e:
            raise QueryError("clear config", str(e)) from e

    async def export_config(self, user_id: str | None = None) -> str:
        """Export config and history as JSON"""
        config = await self.load_config(user_id)
        history = await self.list_quality_history(user_id, limit=self.max_history)
        return json.dumps(
            {
                "version": CONFIG_VERSION,
                "config": config.model_dump(mode="json") if config else None,
                "history": [entry.model_dump(mode="json") for entry in history],
                "exported_at": datetime.now(UTC).isoformat(),
            },
            indent=2,
        )

    async def import_config(self, data: str, user_id: str | None = None) -> bool:
        """Import exported JSON; history is merged with what is stored"""
        try:
            payload = json.loads(data)
        except json.JSONDecodeError as e:
            logger.warning(f"Invalid import data: {e}")
            return False

        if not isinstance(payload, dict) or not payload.get("config") or not payload.get("version"):
            logger.warning("Invalid import data format: config and version are required")
            return False

        try:
            stored = StoredConfig(
                version=payload["version"], user_id=user_id, config=payload["config"]
            )
        except ValidationError as e:
            logger.warning(f"Invalid import data format: {e}")
            return False

        if stored.version == CONFIG_VERSION:
            try:
                config = PipelineConfig.model_validate(stored.config)
            except ValidationError as e:
                logger.warning(f"Imported config is invalid: {e}")
                return False
        else:
            config = self.migrate_config(stored)
            if config is None:
                return False

        if not await self.save_config(config, user_id):
            return False

        for item in payload.get("history") or []:
            try:
                entry = QualityHistoryEntry.model_validate(item)
            except ValidationError as e:
                logger.warning(f"Skipping invalid history entry: {e}")
                continue
            await self._insert_history(entry.model_copy(update={"user_id": user_id}))
        await self._prune_history(_user_key(user_id))

        logger.info(f"Imported config for {_user_key(user_id)}")
        return True

    # ============================================
    # QUALITY HISTORY
    # ============================================

    async def add_quality_history(self, entry: QualityHistoryEntry) -> str:
        """Add history entry, dropping the oldest beyond the limit"""
        entry_id = await self._insert_history(entry)
        await self._prune_history(_user_key(entry.user_id))
        return entry_id

    async def list_quality_history(
        self, user_id: str | None = None, limit: int = 50
    ) -> list[QualityHistoryEntry]:
        """List history - translate SQL to Pydantic"""
        assert self.conn is not None, "Store not connected"
        try:
            cursor = await self.conn.execute(
                """
                SELECT * FROM quality_history
                WHERE user_key = ?
                ORDER BY created_at DESC, rowid DESC
                LIMIT ?
                """,
                (_user_key(user_id), limit),
            )
            rows = await cursor.fetchall()
            return [
                QualityHistoryEntry(
                    id=row["id"],
                    session_id=row["session_id"],
                    user_id=row["user_id"],
                    overall_score=row["overall_score"],
                    impact_score=row["impact_score"],
                    grade=row["grade"],
                    processing_time=row["processing_time"],
                    stages_used=json.loads(row["stages_used"]),  # JSON → List
                    created_at=datetime.fromisoformat(row["created_at"]),
                )
                for row in rows
            ]
        except Exception as e:
            raise QueryError("list quality history", str(e)) from e

    async def get_quality_statistics(self, user_id: str | None = None) -> QualityStatistics:
        """Aggregate the stored history"""
        history = await self.list_quality_history(user_id, limit=self.max_history)
        if not history:
            return QualityStatistics()

        count = len(history)
        grades = Counter(entry.grade for entry in history)
        stages = Counter(stage for entry in history for stage in entry.stages_used)

        return QualityStatistics(
            total_runs=count,
            average_overall_score=round(sum(e.overall_score for e in history) / count, 2),
            average_impact_score=round(sum(e.impact_score for e in history) / count, 2),
            average_processing_time=round(sum(e.processing_time for e in history) / count, 2),
            most_common_grade=grades.most_common(1)[0][0],
            most_used_stages=[stage for stage, _ in stages.most_common(5)],
        )

    # ============================================
    # INTERNALS
    # ============================================

    async def _get_stored(self, user_id: str | None) -> StoredConfig | None:
        assert self.conn is not None, "Store not connected"
        try:
            cursor = await self.conn.execute(
                "SELECT * FROM pipeline_configs WHERE user_key = ?", (_user_key(user_id),)
            )
            row = await cursor.fetchone()
        except Exception as e:
            raise QueryError("load config", str(e)) from e

        if not row:
            return None
        try:
            return StoredConfig(
                version=row["version"],
                user_id=row["user_id"],
                config=json.loads(row["config"]),  # JSON → Dict
                updated_at=datetime.fromisoformat(row["updated_at"]),
            )
        except (ValueError, ValidationError) as e:
            logger.warning(f"Corrupt stored config, discarding it: {e}")
            await self._delete_config(user_id)
            return None

    async def _delete_config(self, user_id: str | None) -> None:
        assert self.conn is not None, "Store not connected"
        try:
            await self.conn.execute(
                "DELETE FROM pipeline_configs WHERE user_key = ?", (_user_key(user_id),)
            )
            await self.conn.commit()
        except Exception as e:
            raise QueryError("delete config", str(e)) from e

    async def _insert_history(self, entry: QualityHistoryEntry) -> str:
        assert self.conn is not None, "Store not connected"
        entry_id = entry.id or str(uuid.uuid4())
        try:
            await self.conn.execute(
                """
                INSERT OR IGNORE INTO quality_history (
                    id, user_key, user_id, session_id, overall_score, impact_score,
                    grade, processing_time, stages_used, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    entry_id,
                    _user_key(entry.user_id),
                    entry.user_id,
                    entry.session_id,
                    entry.overall_score,
                    entry.impact_score,
                    entry.grade,
                    entry.processing_time,
                    json.dumps(entry.stages_used),  # List → JSON
                    entry.created_at.isoformat(),
                ),
            )
            await self.conn.commit()
            return entry_id
        except Exception as e:
            raise QueryError("add quality history", str(e)) from e

    async def _prune_history(self, user_key: str) -> None:
        assert self.conn is not None, "Store not connected"
        try:
            await self.conn.execute(
                """
                DELETE FROM quality_history
                WHERE user_key = ? AND id NOT IN (
                    SELECT id FROM quality_history
                    WHERE user_key = ?
                    ORDER BY created_at DESC, rowid DESC
                    LIMIT ?
                )
                """,
                (user_key, user_key, self.max_history),
            )
            await self.conn.commit()
        except Exception as e:
            raise QueryError("prune quality history", str(e)) from e
