"""
Base configuration store interface.

The service uses this interface; stores implement storage logic.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any

from pydantic import ValidationError

from services.pipeline.schemas import PipelineConfig

from .schemas import (
    CONFIG_VERSION,
    QualityHistoryEntry,
    QualityStatistics,
    StoredConfig,
)

logger = logging.getLogger(__name__)

# Flag names used by 0.x records, before stages were keyed by StageName
LEGACY_FEATURE_NAMES = {
    "enhancedPromptAnalysis": "prompt_analysis",
    "multiSolutionPuzzles": "multi_solution_puzzles",
    "professionalLayout": "professional_layout",
    "enhancedNPCs": "enhanced_npcs",
    "tacticalCombat": "tactical_combat",
    "editorialExcellence": "editorial_excellence",
    "accessibilityFeatures": "accessibility_features",
    "mathematicalValidation": "mathematical_validation",
}

LEGACY_FIELD_NAMES = {
    "qualityTarget": "quality_target",
    "performanceMode": "performance_mode",
    "fallbackBehavior": "fallback_behavior",
}


class BaseConfigStore(ABC):
    """
    Base store for pipeline configuration and quality history.

    Stores handle:
    - Schema translation (Pydantic → native storage)
    - Migrations (DDL and stored-config versions)
    - Connection management
    """

    def __init__(self, config_path: str):
        """Initialize store with config"""
        self.config_path = config_path
        self.config: dict[str, Any] | None = None

    # ============================================
    # CONNECTION LIFECYCLE
    # ============================================

    @abstractmethod
    async def connect(self) -> None:
        """Establish connection and run migrations if needed"""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Close connection"""
        pass

    @abstractmethod
    async def health_check(self) -> dict:
        """Check store health"""
        pass

    # ============================================
    # PIPELINE CONFIGURATION
    # ============================================

    @abstractmethod
    async def load_config(self, user_id: str | None = None) -> PipelineConfig | None:
        """
        Load the stored configuration for a user.
        Returns: None when nothing usable is stored
        """
        pass

    @abstractmethod
    async def save_config(self, config: PipelineConfig, user_id: str | None = None) -> bool:
        """Persist a configuration. Returns False on failure."""
        pass

    @abstractmethod
    async def clear_config(self, user_id: str | None = None) -> None:
        """Delete stored configuration and quality history"""
        pass

    @abstractmethod
    async def export_config(self, user_id: str | None = None) -> str:
        """Serialize configuration and history to JSON"""
        pass

    @abstractmethod
    async def import_config(self, data: str, user_id: str | None = None) -> bool:
        """Restore configuration and merge history from exported JSON"""
        pass

    # ============================================
    # QUALITY HISTORY
    # ============================================

    @abstractmethod
    async def add_quality_history(self, entry: QualityHistoryEntry) -> str:
        """
        Append a history entry.
        Returns: entry ID
        """
        pass

    @abstractmethod
    async def list_quality_history(
        self, user_id: str | None = None, limit: int = 50
    ) -> list[QualityHistoryEntry]:
        """History entries, newest first"""
        pass

    @abstractmethod
    async def get_quality_statistics(self, user_id: str | None = None) -> QualityStatistics:
        """Aggregate statistics over the stored history"""
        pass

    # ============================================
    # MIGRATION HOOK
    # ============================================

    def migrate_config(self, stored: StoredConfig) -> PipelineConfig | None:
        """
        Upgrade a record written with an older schema version.

        Returns:
            The migrated config, or None when the record cannot be migrated
        """
        logger.info(f"Migrating stored config from {stored.version} to {CONFIG_VERSION}")
        data = dict(stored.config)

        if "features" in data:
            features = data.pop("features") or {}
            if not isinstance(features, dict):
                logger.warning("Stored config migration failed: features is not a mapping")
                return None
            data["stages"] = {
                LEGACY_FEATURE_NAMES.get(name, name): bool(value)
                for name, value in features.items()
                if LEGACY_FEATURE_NAMES.get(name, name) in LEGACY_FEATURE_NAMES.values()
            }
        for old, new in LEGACY_FIELD_NAMES.items():
            if old in data:
                data[new] = data.pop(old)

        try:
            return PipelineConfig.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Stored config migration failed: {e}")
            return None
