"""Execution bookkeeping for enhancement adapters."""

import threading
import time
from datetime import UTC, datetime

from .schemas import FeatureMetrics, HealthStatus

# Health thresholds
HEALTHY_SUCCESS_RATE = 80.0
MAX_HEALTHY_ERRORS = 5


class MetricsTracker:
    """
    Thread-safe metrics holder owned by one adapter.

    Several pipeline runs may record against the same adapter at once,
    so every mutation happens under the lock.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._metrics = FeatureMetrics()
        self._errors: list[str] = []
        self._warnings: list[str] = []
        self._started = time.monotonic()

    def record(
        self,
        execution_time: float,
        success: bool,
        quality_score: float | None = None,
        impact_score: float | None = None,
        error: str | None = None,
    ) -> None:
        """
        Record one execution.

        Args:
            execution_time: Elapsed time in milliseconds
            success: Whether the execution produced a result
            quality_score: Last observed quality signal, if any
            impact_score: Last observed impact signal, if any
            error: Error message for failed executions
        """
        with self._lock:
            metrics = self._metrics
            metrics.total_executions += 1
            if success:
                metrics.successful_executions += 1
            n = metrics.total_executions
            metrics.average_execution_time = (
                metrics.average_execution_time * (n - 1) + execution_time
            ) / n
            metrics.last_execution_time = execution_time
            if quality_score is not None:
                metrics.quality_score = quality_score
            if impact_score is not None:
                metrics.impact_score = impact_score
            if error:
                self._errors.append(error)

    def add_error(self, error: str) -> None:
        with self._lock:
            self._errors.append(error)

    def add_warning(self, warning: str) -> None:
        with self._lock:
            self._warnings.append(warning)

    def snapshot(self) -> FeatureMetrics:
        """Copy of the current counters."""
        with self._lock:
            return self._metrics.model_copy()

    def health(self) -> HealthStatus:
        """Build health status from the current counters."""
        with self._lock:
            total = self._metrics.total_executions
            success_rate = (
                self._metrics.successful_executions / total * 100 if total else 100.0
            )
            errors = list(self._errors)
            warnings = list(self._warnings)

        return HealthStatus(
            is_healthy=success_rate > HEALTHY_SUCCESS_RATE
            and len(errors) < MAX_HEALTHY_ERRORS,
            last_check=datetime.now(UTC),
            errors=errors,
            warnings=warnings,
            uptime_seconds=time.monotonic() - self._started,
            success_rate=success_rate,
        )
