"""
Integration tests for the SQLite config store.
"""
import json
from datetime import UTC, datetime, timedelta

import pytest

from adapters.enhancement.schemas import StageName
from adapters.persistence.exceptions import StoreConnectionError
from adapters.persistence.schemas import CONFIG_VERSION, QualityHistoryEntry
from adapters.persistence.sqlite import SQLiteConfigStore
from services.pipeline.schemas import (
    FallbackBehavior,
    PerformanceMode,
    PipelineConfig,
    QualityTarget,
)

LEGACY_CONFIG = {
    "enabled": True,
    "features": {
        "enhancedPromptAnalysis": True,
        "multiSolutionPuzzles": False,
        "professionalLayout": True,
        "enhancedNPCs": True,
        "tacticalCombat": False,
        "editorialExcellence": True,
        "accessibilityFeatures": False,
        "mathematicalValidation": True,
    },
    "qualityTarget": "premium",
    "performanceMode": "speed",
    "fallbackBehavior": "strict",
}


def history_entry(index: int, user_id: str | None = None, **overrides) -> QualityHistoryEntry:
    fields = {
        "session_id": f"session-{index}",
        "user_id": user_id,
        "overall_score": 80.0 + index,
        "impact_score": 60.0,
        "grade": "Professional",
        "processing_time": 100.0,
        "stages_used": ["prompt_analysis"],
        "created_at": datetime(2024, 1, 1, tzinfo=UTC) + timedelta(minutes=index),
    }
    fields.update(overrides)
    return QualityHistoryEntry(**fields)


async def insert_raw_config(store, user_key: str, version: str, config: dict) -> None:
    await store.conn.execute(
        "INSERT INTO pipeline_configs (user_key, user_id, version, config, updated_at) "
        "VALUES (?, ?, ?, ?, ?)",
        (user_key, None, version, json.dumps(config), datetime.now(UTC).isoformat()),
    )
    await store.conn.commit()


# ============================================
# HEALTH CHECK TESTS
# ============================================


@pytest.mark.asyncio
async def test_health_check(config_store):
    """Test store health check"""
    health = await config_store.health_check()
    assert health["status"] == "healthy"


# ============================================
# PIPELINE CONFIGURATION TESTS
# ============================================


@pytest.mark.asyncio
async def test_load_without_stored_config(config_store):
    """Test load returns None when nothing is stored"""
    assert await config_store.load_config() is None
    assert await config_store.load_config("alice") is None


@pytest.mark.asyncio
async def test_save_and_load_config(config_store):
    """Test config round trip"""
    config = PipelineConfig.for_mode(
        PerformanceMode.SPEED, quality_target=QualityTarget.PREMIUM
    )

    assert await config_store.save_config(config) is True
    loaded = await config_store.load_config()

    assert loaded == config
    assert loaded.enabled_stages() == config.enabled_stages()


@pytest.mark.asyncio
async def test_save_overwrites(config_store):
    """Test saving twice keeps only the latest config"""
    await config_store.save_config(PipelineConfig())
    await config_store.save_config(PipelineConfig(enabled=False))

    loaded = await config_store.load_config()
    assert loaded.enabled is False


@pytest.mark.asyncio
async def test_configs_are_per_user(config_store):
    """Test users do not see each other's configs"""
    await config_store.save_config(PipelineConfig(enabled=False), "alice")

    assert (await config_store.load_config("alice")).enabled is False
    assert await config_store.load_config("bob") is None
    assert await config_store.load_config() is None


@pytest.mark.asyncio
async def test_legacy_config_is_migrated(config_store):
    """Test an old-version record is migrated and re-saved"""
    await insert_raw_config(config_store, "__default__", "0.9.0", LEGACY_CONFIG)

    loaded = await config_store.load_config()

    assert loaded is not None
    assert loaded.quality_target == QualityTarget.PREMIUM
    assert loaded.performance_mode == PerformanceMode.SPEED
    assert loaded.fallback_behavior == FallbackBehavior.STRICT
    assert loaded.enabled_stages() == [
        StageName.PROMPT_ANALYSIS,
        StageName.PROFESSIONAL_LAYOUT,
        StageName.ENHANCED_NPCS,
        StageName.EDITORIAL_EXCELLENCE,
        StageName.MATHEMATICAL_VALIDATION,
    ]

    cursor = await config_store.conn.execute(
        "SELECT version FROM pipeline_configs WHERE user_key = ?", ("__default__",)
    )
    row = await cursor.fetchone()
    assert row["version"] == CONFIG_VERSION


@pytest.mark.asyncio
async def test_unmigratable_config_falls_back(config_store):
    """Test a legacy record that cannot be migrated yields None"""
    await insert_raw_config(config_store, "__default__", "0.9.0", {"enabled": "maybe"})

    assert await config_store.load_config() is None


@pytest.mark.asyncio
async def test_invalid_config_is_discarded(config_store):
    """Test an invalid current-version record is deleted"""
    await insert_raw_config(
        config_store, "__default__", CONFIG_VERSION, {"stage_timeout_seconds": -1}
    )

    assert await config_store.load_config() is None

    cursor = await config_store.conn.execute("SELECT COUNT(*) FROM pipeline_configs")
    row = await cursor.fetchone()
    assert row[0] == 0


@pytest.mark.asyncio
async def test_clear_config(config_store):
    """Test clear removes config and history for that user only"""
    await config_store.save_config(PipelineConfig(), "alice")
    await config_store.add_quality_history(history_entry(1, "alice"))
    await config_store.add_quality_history(history_entry(2, "bob"))

    await config_store.clear_config("alice")

    assert await config_store.load_config("alice") is None
    assert await config_store.list_quality_history("alice") == []
    assert len(await config_store.list_quality_history("bob")) == 1


# ============================================
# EXPORT / IMPORT TESTS
# ============================================


@pytest.mark.asyncio
async def test_export_and_import(config_store):
    """Test exported data restores config and history for another user"""
    config = PipelineConfig.for_mode(PerformanceMode.QUALITY)
    await config_store.save_config(config, "alice")
    for i in range(3):
        await config_store.add_quality_history(history_entry(i, "alice"))

    exported = await config_store.export_config("alice")
    payload = json.loads(exported)
    assert payload["version"] == CONFIG_VERSION
    assert len(payload["history"]) == 3
    assert "exported_at" in payload

    assert await config_store.import_config(exported, "bob") is True

    assert await config_store.load_config("bob") == config
    history = await config_store.list_quality_history("bob")
    assert [entry.session_id for entry in history] == ["session-2", "session-1", "session-0"]
    assert all(entry.user_id == "bob" for entry in history)


@pytest.mark.asyncio
async def test_import_twice_does_not_duplicate_history(config_store):
    """Test re-importing merges history by entry ID"""
    await config_store.save_config(PipelineConfig(), "alice")
    await config_store.add_quality_history(history_entry(1, "alice"))
    exported = await config_store.export_config("alice")

    await config_store.import_config(exported, "bob")
    await config_store.import_config(exported, "bob")

    assert len(await config_store.list_quality_history("bob")) == 1


@pytest.mark.asyncio
async def test_import_legacy_export(config_store):
    """Test a legacy export is migrated on import"""
    data = json.dumps({"version": "0.9.0", "config": LEGACY_CONFIG})

    assert await config_store.import_config(data) is True
    assert (await config_store.load_config()).performance_mode == PerformanceMode.SPEED


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "data",
    [
        "not json",
        json.dumps(["config"]),
        json.dumps({"version": CONFIG_VERSION}),
        json.dumps({"config": {"enabled": True}}),
        json.dumps({"version": CONFIG_VERSION, "config": {"unknown_field": 1}}),
        json.dumps({"version": 1, "config": {"enabled": True}}),
        json.dumps({"version": CONFIG_VERSION, "config": "enabled"}),
        json.dumps({"version": "0.9.0", "config": {"features": ["prompt"]}}),
    ],
)
async def test_import_rejects_invalid_data(config_store, data):
    """Test invalid imports leave the store untouched"""
    assert await config_store.import_config(data) is False
    assert await config_store.load_config() is None


# ============================================
# QUALITY HISTORY TESTS
# ============================================


@pytest.mark.asyncio
async def test_history_newest_first(config_store):
    """Test history is listed newest first"""
    for i in range(3):
        await config_store.add_quality_history(history_entry(i))

    history = await config_store.list_quality_history()

    assert [entry.session_id for entry in history] == ["session-2", "session-1", "session-0"]
    assert history[0].id is not None
    assert history[0].stages_used == ["prompt_analysis"]


@pytest.mark.asyncio
async def test_history_limit(config_store):
    """Test list respects the limit"""
    for i in range(4):
        await config_store.add_quality_history(history_entry(i))

    history = await config_store.list_quality_history(limit=2)

    assert [entry.session_id for entry in history] == ["session-3", "session-2"]


@pytest.mark.asyncio
async def test_history_is_pruned(config_store):
    """Test only the newest max_entries are kept"""
    for i in range(8):
        await config_store.add_quality_history(history_entry(i))

    history = await config_store.list_quality_history()

    assert len(history) == 5
    assert history[-1].session_id == "session-3"


@pytest.mark.asyncio
async def test_quality_statistics(config_store):
    """Test aggregated statistics"""
    await config_store.add_quality_history(
        history_entry(0, overall_score=80.0, grade="Professional")
    )
    await config_store.add_quality_history(
        history_entry(
            1,
            overall_score=90.0,
            impact_score=70.0,
            grade="Premium",
            processing_time=200.0,
            stages_used=["prompt_analysis", "enhanced_npcs"],
        )
    )
    await config_store.add_quality_history(
        history_entry(2, overall_score=91.0, grade="Premium")
    )

    stats = await config_store.get_quality_statistics()

    assert stats.total_runs == 3
    assert stats.average_overall_score == 87.0
    assert stats.average_impact_score == pytest.approx(63.33)
    assert stats.average_processing_time == pytest.approx(133.33)
    assert stats.most_common_grade == "Premium"
    assert stats.most_used_stages == ["prompt_analysis", "enhanced_npcs"]


@pytest.mark.asyncio
async def test_statistics_without_history(config_store):
    """Test empty statistics"""
    stats = await config_store.get_quality_statistics("nobody")

    assert stats.total_runs == 0
    assert stats.most_common_grade == "Standard"


@pytest.mark.asyncio
async def test_connect_with_missing_config(tmp_path):
    """Test a missing store config raises StoreConnectionError"""
    store = SQLiteConfigStore(str(tmp_path / "missing.yaml"))

    with pytest.raises(StoreConnectionError):
        await store.connect()


@pytest.mark.asyncio
async def test_legacy_config_with_malformed_features(config_store):
    """Test a stored legacy record whose features are not a mapping yields None"""
    await insert_raw_config(config_store, "__default__", "0.9.0", {"features": ["prompt"]})

    assert await config_store.load_config() is None
