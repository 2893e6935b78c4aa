"""
Standalone content enhancement service.

This service wires the whole pipeline in one process:
- Config store (SQLite)
- Enhancement adapters, local or backed by a remote enrichment service
- Adapter registry and health monitoring
- Pipeline orchestrator, quality engine and performance monitor

Callers use enhance(); they have no knowledge of the internals.
"""
import asyncio
import logging
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from adapters.enhancement.backend import EnrichmentBackend, HTTPEnrichmentBackend
from adapters.enhancement.schemas import StageName
from adapters.enhancement.stages import build_default_adapters
from adapters.persistence.exceptions import ConfigStoreError
from adapters.persistence.schemas import QualityHistoryEntry
from adapters.persistence.sqlite.adapter import SQLiteConfigStore
from services.pipeline.orchestrator import PipelineOrchestrator
from services.pipeline.performance import PerformanceMonitor
from services.pipeline.schemas import Enhancement, PipelineConfig
from services.quality.metrics_engine import QualityMetricsEngine
from services.registry.adapter_registry import AdapterRegistry
from services.registry.health_service import HealthService

from .config import ServiceSettings, load_settings

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_PATH = "services/bootstrap/settings.yaml"


class EnhancementService:
    """
    Composition root for the enhancement pipeline.

    Owns every component; nothing is a module-level singleton.
    """

    def __init__(
        self,
        settings: ServiceSettings | None = None,
        backend_url: str | None = None,
        api_key: str | None = None,
    ):
        """
        Initialize enhancement service.

        Args:
            settings: Service settings (default: built-in defaults)
            backend_url: Enrichment backend URL, overrides settings
            api_key: Bearer token for the enrichment backend
        """
        self.settings = settings or ServiceSettings()
        self.backend_url = backend_url or self.settings.backend.url
        self.api_key = api_key

        # Core components (initialized in start())
        self.store: SQLiteConfigStore | None = None
        self.backend: EnrichmentBackend | None = None
        self.registry: AdapterRegistry | None = None
        self.health_service: HealthService | None = None
        self.performance_monitor: PerformanceMonitor | None = None
        self.orchestrator: PipelineOrchestrator | None = None

        self.ready = False
        self._running = False

    async def start(self) -> None:
        """Start all components."""
        logger.info("🚀 Starting Content Enhancement Service...")

        try:
            # Step 1: Initialize config store
            logger.info("📊 Initializing config store...")
            self.store = SQLiteConfigStore(self.settings.store_config_path)
            await self.store.connect()
            logger.info("✅ Config store initialized")

            # Step 2: Register adapters
            logger.info("🧩 Registering enhancement adapters...")
            self.registry = AdapterRegistry()
            for stage, adapter in build_default_adapters(self._build_backends()).items():
                self.registry.register(stage, adapter)
            logger.info(f"✅ Registered {len(self.registry)} adapters")

            # Step 3: Initialize adapters
            ratio = await self.registry.initialize_all()
            self.ready = self.registry.is_ready(ratio)
            if self.ready:
                logger.info(f"✅ Adapters ready ({ratio * 100:.0f}% initialized)")
            else:
                logger.warning(
                    f"⚠️  Only {ratio * 100:.0f}% of adapters initialized, "
                    "runs will be degraded"
                )

            # Step 4: Pipeline services
            self.performance_monitor = PerformanceMonitor()
            self.orchestrator = PipelineOrchestrator(
                registry=self.registry,
                engine=QualityMetricsEngine(),
                performance_monitor=self.performance_monitor,
            )
            self.health_service = HealthService(self.registry)
            await self.health_service.check_availability()
            if self.settings.monitor_health:
                await self.health_service.start_monitoring(
                    self.settings.health_interval_seconds
                )

            self._running = True
            logger.info("✅ Content Enhancement Service is ready!")

        except Exception as e:
            logger.error(f"❌ Failed to start enhancement service: {e}")
            await self.stop()
            raise

    async def stop(self) -> None:
        """Stop all components and cleanup."""
        logger.info("🛑 Stopping Content Enhancement Service...")
        self._running = False

        if self.health_service:
            await self.health_service.stop_monitoring()

        if self.backend:
            await self.backend.close()

        if self.store:
            await self.store.disconnect()

        logger.info("✅ Content Enhancement Service stopped")

    def _build_backends(self) -> dict[StageName, EnrichmentBackend]:
        if not self.backend_url:
            return {}

        self.backend = HTTPEnrichmentBackend(
            self.backend_url,
            timeout_seconds=self.settings.backend.timeout_seconds,
            api_key=self.api_key,
        )
        stages = [StageName(s) for s in self.settings.backend.stages] or list(StageName)
        logger.info(
            f"🌐 Enrichment backend {self.backend_url} serves: "
            f"{', '.join(s.value for s in stages)}"
        )
        return {stage: self.backend for stage in stages}

    # ============================================
    # OPERATIONS
    # ============================================

    async def resolve_config(
        self, config: PipelineConfig | dict | None, user_id: str | None = None
    ) -> PipelineConfig | dict:
        """Explicit config wins, then the stored one, then defaults."""
        if isinstance(config, PipelineConfig):
            return config
        if isinstance(config, dict):
            return {"stage_timeout_seconds": self.settings.stage_timeout_seconds, **config}

        stored = None
        if self.store and self.store.conn:
            try:
                stored = await self.store.load_config(user_id)
            except ConfigStoreError as e:
                logger.warning(f"Could not load stored config, using defaults: {e}")
        if stored is not None:
            return stored
        return PipelineConfig(stage_timeout_seconds=self.settings.stage_timeout_seconds)

    async def enhance(
        self,
        content: Any,
        context: Any = None,
        config: PipelineConfig | dict | None = None,
        user_id: str | None = None,
        session_id: str | None = None,
    ) -> Enhancement:
        """
        Run the pipeline and record the outcome in quality history.

        Raises:
            RuntimeError: If the service is not started
            ConfigurationError: If the configuration is malformed
            PipelinePartialFailure: In strict mode, if any stage failed
        """
        if not self.orchestrator:
            raise RuntimeError("Enhancement service not started")

        resolved = await self.resolve_config(config, user_id)
        enhancement = await self.orchestrator.run_pipeline(
            content, context, resolved, session_id=session_id
        )

        if self.store and self.store.conn:
            try:
                await self.store.add_quality_history(
                    QualityHistoryEntry(
                        session_id=enhancement.session_id,
                        user_id=user_id,
                        overall_score=enhancement.quality_metrics.overall_score,
                        impact_score=enhancement.quality_metrics.impact_score,
                        grade=enhancement.grade.value,
                        processing_time=enhancement.processing_time,
                        stages_used=[stage.value for stage in enhancement.stages_applied],
                    )
                )
            except ConfigStoreError as e:
                logger.warning(
                    f"Could not record quality history for {enhancement.session_id}: {e}"
                )
        return enhancement

    async def run_forever(self) -> None:
        """Run the service until interrupted."""
        try:
            while self._running:
                await asyncio.sleep(1)
        except KeyboardInterrupt:
            logger.info("🛑 Received interrupt signal")
        finally:
            await self.stop()


def settings_from_env() -> tuple[ServiceSettings, str | None, str | None]:
    """Settings file plus env overrides (.env is honored)."""
    load_dotenv(Path(__file__).resolve().parents[2] / ".env")

    settings = load_settings(os.getenv("ENHANCEMENT_SETTINGS", DEFAULT_SETTINGS_PATH))
    store_config = os.getenv("STORE_CONFIG")
    if store_config:
        settings = settings.model_copy(update={"store_config_path": store_config})
    return settings, os.getenv("ENRICHMENT_BACKEND_URL"), os.getenv("ENRICHMENT_API_KEY")


async def main():
    """Main entry point for standalone enhancement service."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    settings, backend_url, api_key = settings_from_env()

    service = EnhancementService(settings=settings, backend_url=backend_url, api_key=api_key)
    await service.start()
    await service.run_forever()


if __name__ == "__main__":
    asyncio.run(main())
