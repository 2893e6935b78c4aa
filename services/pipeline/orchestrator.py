"""
Pipeline orchestrator.

Runs every enabled enhancement stage concurrently against one piece of
content, isolates stage failures into the processing report and hands
the results to the quality metrics engine.
"""
import asyncio
import copy
import logging
import time
import uuid
from typing import Any

from pydantic import BaseModel, ValidationError

from adapters.enhancement.base import BaseEnhancementAdapter
from adapters.enhancement.exceptions import AdapterUnavailableError, StageTimeoutError
from adapters.enhancement.schemas import StageInput, StageName, StageOutput
from services.quality.metrics_engine import QualityMetricsEngine, round_half_up
from services.registry.adapter_registry import AdapterRegistry

from .exceptions import ConfigurationError, PipelinePartialFailure
from .performance import PerformanceMonitor
from .schemas import (
    PIPELINE_STAGES,
    Enhancement,
    FallbackBehavior,
    PerformanceMode,
    PipelineConfig,
    ProcessingReport,
    StageResult,
    StageStatus,
)

logger = logging.getLogger(__name__)

# Base quality impact per stage; a stage's signal moves it by at most 15%
BASE_IMPACTS: dict[StageName, int] = {
    StageName.PROMPT_ANALYSIS: 8,
    StageName.MULTI_SOLUTION_PUZZLES: 12,
    StageName.PROFESSIONAL_LAYOUT: 6,
    StageName.ENHANCED_NPCS: 10,
    StageName.TACTICAL_COMBAT: 8,
    StageName.EDITORIAL_EXCELLENCE: 9,
    StageName.ACCESSIBILITY_FEATURES: 5,
    StageName.MATHEMATICAL_VALIDATION: 7,
}
SIGNAL_SWING = 0.3

# Pipeline is healthy when at least this share of stages is available
HEALTHY_AVAILABILITY = 0.8

SLOWER_MODE = {
    PerformanceMode.QUALITY: PerformanceMode.BALANCED,
    PerformanceMode.BALANCED: PerformanceMode.SPEED,
}


def calculate_quality_impact(stage: StageName, signal: float | None) -> int:
    """Quality impact of a completed stage from its self-reported signal."""
    base = BASE_IMPACTS[stage]
    if signal is None:
        return base
    return max(0, round_half_up(base + (signal / 100 - 0.5) * base * SIGNAL_SWING))


class PipelineOrchestrator:
    """Drives a registry of adapters through one pipeline run at a time"""

    def __init__(
        self,
        registry: AdapterRegistry,
        engine: QualityMetricsEngine | None = None,
        performance_monitor: PerformanceMonitor | None = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            registry: Adapters, one per stage
            engine: Quality metrics engine (default: new engine)
            performance_monitor: Optional run timing collector
        """
        self.registry = registry
        self.engine = engine or QualityMetricsEngine()
        self.performance_monitor = performance_monitor

    async def run_pipeline(
        self,
        content: Any,
        context: dict | str | BaseModel | None = None,
        config: PipelineConfig | dict | None = None,
        session_id: str | None = None,
        options: dict[StageName, dict[str, Any]] | None = None,
    ) -> Enhancement:
        """
        Run every enabled stage and assess the result.

        Args:
            content: Generated content to enhance (never modified)
            context: Prompt context, free text or a mapping/model
            config: Pipeline configuration (default: all stages enabled)
            session_id: Identifier for this run (generated when omitted)
            options: Per-stage options passed to adapter execute

        Returns:
            Scored enhancement with its processing report

        Raises:
            ConfigurationError: If the configuration is malformed
            PipelinePartialFailure: In strict mode, if any stage failed
        """
        config = self._validate_config(config)
        session_id = session_id or str(uuid.uuid4())
        context_data = _normalize_context(context)
        options = options or {}

        logger.info(
            f"Starting pipeline run {session_id}: "
            f"{len(config.enabled_stages())}/{len(PIPELINE_STAGES)} stages enabled"
        )
        if self.performance_monitor:
            self.performance_monitor.start_session(session_id)

        started = time.perf_counter()
        try:
            results = await asyncio.gather(
                *(
                    self._run_stage(
                        stage,
                        config,
                        StageInput(
                            content=copy.deepcopy(content),
                            context=copy.deepcopy(context_data),
                            session_id=session_id,
                        ),
                        options.get(stage, {}),
                        session_id,
                    )
                    for stage in PIPELINE_STAGES
                )
            )
        finally:
            processing_time = (time.perf_counter() - started) * 1000
            if self.performance_monitor:
                self.performance_monitor.end_session(session_id, processing_time)

        report = ProcessingReport.from_results(list(results), processing_time)

        logger.info(
            f"Pipeline run {session_id} finished in {processing_time:.1f}ms: "
            f"{report.completed_steps} completed, {report.failed_steps} failed, "
            f"{report.skipped_steps} skipped"
        )

        if report.failed_steps and config.fallback_behavior == FallbackBehavior.STRICT:
            raise PipelinePartialFailure(report)

        assessment = self.engine.assess(report, processing_time)
        completed = [r for r in report.step_details if r.status == StageStatus.COMPLETED]

        return Enhancement(
            session_id=session_id,
            original_content=content,
            stage_outputs={r.stage_name: r.output for r in completed},
            quality_metrics=assessment.metrics,
            grade=assessment.grade,
            processing_time=processing_time,
            stages_applied=[r.stage_name for r in completed],
            report=report,
            breakdown=assessment.breakdown,
            analysis=assessment.analysis,
        )

    async def _run_stage(
        self,
        stage: StageName,
        config: PipelineConfig,
        stage_input: StageInput,
        options: dict[str, Any],
        session_id: str,
    ) -> StageResult:
        """Run one stage. Always returns a result; never raises."""
        if not config.is_stage_enabled(stage):
            return StageResult(stage_name=stage, status=StageStatus.SKIPPED)

        started = time.perf_counter()
        adapter = None
        try:
            adapter = self.registry.get_adapter(stage)
            try:
                output = await asyncio.wait_for(
                    self._attempt(adapter, stage_input, options),
                    timeout=config.stage_timeout_seconds,
                )
            except asyncio.TimeoutError:
                raise StageTimeoutError(stage.value, config.stage_timeout_seconds) from None
        except Exception as e:
            duration = (time.perf_counter() - started) * 1000
            error_type = getattr(e, "code", type(e).__name__)
            logger.warning(f"Stage {stage.value} failed ({error_type}): {e}")
            if adapter is not None:
                adapter.record_execution(duration, False, error=str(e))
            self._track(session_id, stage, duration, False)
            return StageResult(
                stage_name=stage,
                status=StageStatus.FAILED,
                duration=duration,
                error=str(e),
                error_type=error_type,
            )

        duration = (time.perf_counter() - started) * 1000
        adapter.record_execution(duration, True, output=output)
        self._track(session_id, stage, duration, True)
        impact = calculate_quality_impact(stage, output.quality_signal)
        logger.debug(f"Stage {stage.value} completed in {duration:.1f}ms (+{impact})")

        return StageResult(
            stage_name=stage,
            status=StageStatus.COMPLETED,
            duration=duration,
            output=output,
            quality_impact=impact,
        )

    @staticmethod
    async def _attempt(
        adapter: BaseEnhancementAdapter, stage_input: StageInput, options: dict[str, Any]
    ) -> StageOutput:
        # Initialization and the availability check share the stage time budget
        if not adapter.initialized and not await adapter.initialize():
            raise AdapterUnavailableError(adapter.name, "initialization failed")
        if not await adapter.is_available():
            raise AdapterUnavailableError(adapter.name)
        return await adapter.execute(stage_input, options)

    def _track(self, session_id: str, stage: StageName, duration: float, success: bool):
        if self.performance_monitor:
            self.performance_monitor.track_stage(session_id, stage.value, duration, success)

    @staticmethod
    def _validate_config(config: PipelineConfig | dict | None) -> PipelineConfig:
        if config is None:
            return PipelineConfig()
        if isinstance(config, PipelineConfig):
            return config
        if not isinstance(config, dict):
            raise ConfigurationError(f"expected a mapping, got {type(config).__name__}")
        try:
            return PipelineConfig.model_validate(config)
        except ValidationError as e:
            raise ConfigurationError(str(e)) from e

    # Pipeline health

    async def get_pipeline_health(self) -> dict:
        """
        Report which stages can run right now.

        Returns:
            Health flag, available/unavailable stages and recommendations
        """
        available = await self.registry.list_available()
        unavailable = [s.value for s in PIPELINE_STAGES if s.value not in available]
        ratio = len(available) / len(PIPELINE_STAGES)

        recommendations = []
        if unavailable:
            recommendations.append(
                f"Disable or repair unavailable stages: {', '.join(unavailable)}"
            )
        unhealthy = [
            name
            for name, status in self.registry.health_snapshot().items()
            if not status.is_healthy
        ]
        if unhealthy:
            recommendations.append(f"Review errors on unhealthy stages: {', '.join(unhealthy)}")
        if self.performance_monitor:
            recommendations.extend(
                s
                for s in self.performance_monitor.get_optimization_suggestions()
                if s != "Performance is within acceptable ranges."
            )

        return {
            "is_healthy": ratio >= HEALTHY_AVAILABILITY,
            "available_stages": [s.value for s in PIPELINE_STAGES if s.value in available],
            "unavailable_stages": unavailable,
            "availability": round(ratio * 100, 1),
            "recommendations": recommendations,
        }

    async def optimize_config(self, config: PipelineConfig | dict) -> PipelineConfig:
        """
        Adjust a configuration to what the service can deliver.

        Disables unavailable stages and steps down the performance mode
        when recent runs have been slow.
        """
        config = self._validate_config(config)
        available = await self.registry.list_available()

        stages = {
            stage: config.stages.get(stage, False) and stage.value in available
            for stage in PIPELINE_STAGES
        }
        disabled = [
            s.value for s in PIPELINE_STAGES if config.stages.get(s, False) and not stages[s]
        ]
        if disabled:
            logger.info(f"Optimized config disables unavailable stages: {', '.join(disabled)}")

        mode = config.performance_mode
        if self.performance_monitor and self.performance_monitor.is_slow():
            mode = SLOWER_MODE.get(mode, mode)
            if mode != config.performance_mode:
                logger.info(f"Recent runs are slow, switching to {mode.value} mode")

        return config.model_copy(update={"stages": stages, "performance_mode": mode})


def _normalize_context(context: dict | str | BaseModel | None) -> dict[str, Any]:
    if context is None:
        return {}
    if isinstance(context, str):
        return {"description": context}
    if isinstance(context, BaseModel):
        return context.model_dump(mode="json", exclude_none=True)
    if isinstance(context, dict):
        return dict(context)
    raise ConfigurationError(f"unsupported context type {type(context).__name__}")
