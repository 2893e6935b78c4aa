"""Base adapter interface for enhancement stages."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any

from .backend import EnrichmentBackend
from .exceptions import EnhancementError, ExecutionFailureError, InvalidInputError
from .metrics import MetricsTracker
from .schemas import (
    AdapterDescriptor,
    FeatureMetrics,
    HealthStatus,
    StageInput,
    StageName,
    StageOutput,
)

logger = logging.getLogger(__name__)


class BaseEnhancementAdapter(ABC):
    """
    Base capability contract for all enhancement stages.

    Adapters handle:
    - Availability and one-time initialization
    - Input validation (no side effects)
    - Enrichment, from a backend or computed locally
    - Self-reported health and metrics
    """

    name: str = "Enhancement Adapter"
    version: str = "1.0.0"
    stage: StageName
    validation_hint: str | None = None

    def __init__(self, backend: EnrichmentBackend | None = None):
        """Initialize the adapter.

        Args:
            backend: Optional enrichment backend. When omitted the adapter
                computes its enrichment locally.
        """
        self.backend = backend
        self.initialized = False
        self.tracker = MetricsTracker()
        self._init_lock = asyncio.Lock()

    # Capability contract

    async def is_available(self) -> bool:
        """Check availability. Never raises."""
        try:
            return bool(await self._check_availability())
        except Exception as e:
            logger.warning(f"[{self.name}] Availability check failed: {e}")
            return False

    async def initialize(self) -> bool:
        """Run one-time setup. Returns False instead of raising."""
        if self.initialized:
            return True

        async with self._init_lock:
            if self.initialized:
                return True
            try:
                success = bool(await self._perform_initialization())
            except Exception as e:
                logger.error(f"[{self.name}] Initialization error: {e}")
                self.tracker.add_error(f"Initialization failed: {e}")
                return False

            if success:
                logger.info(f"[{self.name}] Adapter v{self.version} initialized")
            else:
                logger.warning(f"[{self.name}] Adapter initialization failed")
                self.tracker.add_error("Initialization failed")

            self.initialized = success
            return success

    async def validate(self, stage_input: StageInput) -> bool:
        """Check input preconditions. Never raises."""
        try:
            return bool(self._perform_validation(stage_input))
        except Exception as e:
            logger.warning(f"[{self.name}] Validation error: {e}")
            return False

    async def execute(
        self, stage_input: StageInput, options: dict[str, Any] | None = None
    ) -> StageOutput:
        """Produce this stage's enrichment.

        Args:
            stage_input: Content and context for the run
            options: Stage-specific options (e.g. count)

        Returns:
            Stage output with payload and self-reported signals

        Raises:
            InvalidInputError: If validation fails
            ExecutionFailureError: If enrichment fails
        """
        options = options or {}
        if not await self.validate(stage_input):
            raise InvalidInputError(self.name, self.validation_hint)

        try:
            if self.backend is not None:
                raw = await self.backend.produce(
                    self.stage, self._backend_request(stage_input, options)
                )
            else:
                raw = self._enrich_locally(stage_input, options)
            return self._build_output(raw)
        except EnhancementError:
            raise
        except Exception as e:
            raise ExecutionFailureError(f"{self.name} failed: {e}") from e

    def record_execution(
        self,
        execution_time: float,
        success: bool,
        output: StageOutput | None = None,
        error: str | None = None,
    ) -> None:
        """Record one dispatch of this stage."""
        self.tracker.record(
            execution_time,
            success,
            quality_score=output.quality_signal if output else None,
            impact_score=output.impact_signal if output else None,
            error=f"Execution failed: {error}" if error else None,
        )

    def get_health_status(self) -> HealthStatus:
        return self.tracker.health()

    def get_metrics(self) -> FeatureMetrics:
        return self.tracker.snapshot()

    def descriptor(self) -> AdapterDescriptor:
        return AdapterDescriptor(
            name=self.name,
            version=self.version,
            stage=self.stage,
            initialized=self.initialized,
        )

    # Extensibility hooks

    async def _check_availability(self) -> bool:
        if self.backend is not None:
            return await self.backend.ping()
        return True

    async def _perform_initialization(self) -> bool:
        if self.backend is not None:
            return await self.backend.ping()
        return True

    def _backend_request(
        self, stage_input: StageInput, options: dict[str, Any]
    ) -> dict[str, Any]:
        return {
            "content": stage_input.content,
            "context": stage_input.context,
            "options": options,
        }

    @abstractmethod
    def _perform_validation(self, stage_input: StageInput) -> bool:
        """Return True when the input satisfies this stage's preconditions."""
        pass

    @abstractmethod
    def _enrich_locally(
        self, stage_input: StageInput, options: dict[str, Any]
    ) -> dict[str, Any]:
        """Compute the raw enrichment without a backend."""
        pass

    @abstractmethod
    def _build_output(self, raw: dict[str, Any]) -> StageOutput:
        """Shape raw enrichment into a stage output with signals."""
        pass
