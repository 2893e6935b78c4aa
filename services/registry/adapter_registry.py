"""
Adapter registry service.

Holds one enhancement adapter per stage and answers bulk lifecycle and
health questions about them.
"""
import asyncio
import logging

from adapters.enhancement.base import BaseEnhancementAdapter
from adapters.enhancement.schemas import (
    AdapterDescriptor,
    FeatureMetrics,
    HealthStatus,
    StageName,
)

from .exceptions import AdapterNotFoundError, DuplicateAdapterError

logger = logging.getLogger(__name__)

# Initialization is acceptable when more than this share of adapters succeed
READY_RATIO = 0.5


class AdapterRegistry:
    """Typed registry mapping stages to adapter instances"""

    def __init__(self):
        self._adapters: dict[StageName, BaseEnhancementAdapter] = {}

    def register(self, name: StageName | str, adapter: BaseEnhancementAdapter) -> None:
        """
        Register an adapter for a stage.

        Args:
            name: Stage the adapter implements
            adapter: Adapter instance

        Raises:
            DuplicateAdapterError: If the stage already has an adapter
            ValueError: If the name is not a known stage
        """
        stage = StageName(name)
        if stage in self._adapters:
            raise DuplicateAdapterError(stage.value)

        self._adapters[stage] = adapter
        logger.info(f"Registered adapter: {adapter.name} v{adapter.version} ({stage.value})")

    def get_adapter(self, name: StageName | str) -> BaseEnhancementAdapter:
        """
        Get the adapter bound to a stage.

        Raises:
            AdapterNotFoundError: If nothing is registered under the name
        """
        try:
            stage = StageName(name)
        except ValueError:
            raise AdapterNotFoundError(str(name), self.names()) from None

        adapter = self._adapters.get(stage)
        if adapter is None:
            raise AdapterNotFoundError(stage.value, self.names())
        return adapter

    def has(self, name: StageName | str) -> bool:
        try:
            return StageName(name) in self._adapters
        except ValueError:
            return False

    def names(self) -> list[str]:
        return [stage.value for stage in self._adapters]

    def __len__(self) -> int:
        return len(self._adapters)

    async def initialize_all(self) -> float:
        """
        Initialize every adapter concurrently.

        Waits for all adapters regardless of individual failures.

        Returns:
            Fraction of adapters that initialized successfully (0.0-1.0)
        """
        if not self._adapters:
            logger.warning("No adapters registered, nothing to initialize")
            return 0.0

        logger.info(f"Initializing {len(self._adapters)} enhancement adapters...")
        stages = list(self._adapters)
        results = await asyncio.gather(
            *(self._adapters[stage].initialize() for stage in stages),
            return_exceptions=True,
        )

        succeeded = 0
        for stage, result in zip(stages, results):
            if isinstance(result, BaseException):
                logger.error(f"Adapter {stage.value} initialization error: {result}")
            elif result:
                succeeded += 1
            else:
                logger.warning(f"Adapter {stage.value} initialization failed")

        ratio = succeeded / len(stages)
        logger.info(
            f"Initialization complete: {succeeded}/{len(stages)} adapters ({ratio * 100:.1f}%)"
        )
        return ratio

    @staticmethod
    def is_ready(ratio: float) -> bool:
        """Whether an initialization ratio is acceptable."""
        return ratio > READY_RATIO

    async def list_available(self) -> set[str]:
        """
        Query availability of every adapter concurrently.

        Returns:
            Names of adapters that reported available
        """
        stages = list(self._adapters)
        results = await asyncio.gather(
            *(self._adapters[stage].is_available() for stage in stages),
            return_exceptions=True,
        )

        available = set()
        for stage, result in zip(stages, results):
            if isinstance(result, BaseException):
                logger.warning(f"Error checking {stage.value} availability: {result}")
            elif result is True:
                available.add(stage.value)
        return available

    def health_snapshot(self) -> dict[str, HealthStatus]:
        return {
            stage.value: adapter.get_health_status()
            for stage, adapter in self._adapters.items()
        }

    def metrics_snapshot(self) -> dict[str, FeatureMetrics]:
        return {
            stage.value: adapter.get_metrics() for stage, adapter in self._adapters.items()
        }

    def descriptors(self) -> list[AdapterDescriptor]:
        return [adapter.descriptor() for adapter in self._adapters.values()]
