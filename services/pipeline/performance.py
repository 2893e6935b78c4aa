"""
Performance monitor for pipeline runs.

Tracks per-session stage timings, raises alerts when a stage or a whole
run is slow or unreliable, and keeps a bounded history used for
optimization suggestions.
"""
import logging
from collections import deque
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

MAX_HISTORY = 100
MAX_ALERTS = 50
MAX_STAGE_TIME_MS = 5000.0
MAX_RUN_TIME_MS = 30000.0
MIN_SUCCESS_RATE = 0.95
SLOW_RUN_RATIO = 0.5


class AlertLevel(str, Enum):
    WARNING = "warning"
    ERROR = "error"


class PerformanceAlert(BaseModel):
    level: AlertLevel
    metric: str
    message: str
    value: float
    threshold: float
    session_id: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class SessionMetrics(BaseModel):
    """Timings collected for one pipeline run"""

    session_id: str
    started_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    duration: float | None = None
    stage_timings: dict[str, float] = Field(default_factory=dict)
    total_stages: int = 0
    successful_stages: int = 0
    failed_stages: int = 0

    @property
    def success_rate(self) -> float:
        if not self.total_stages:
            return 1.0
        return self.successful_stages / self.total_stages


class PerformanceSummary(BaseModel):
    total_sessions: int = 0
    average_duration: float = 0.0
    average_success_rate: float = 0.0
    alert_count: int = 0
    slow_run_share: float = 0.0
    slowest_stages: list[tuple[str, float]] = Field(default_factory=list)


class PerformanceMonitor:
    """Collects run timings; one instance per service"""

    def __init__(
        self,
        max_history: int = MAX_HISTORY,
        stage_threshold_ms: float = MAX_STAGE_TIME_MS,
        run_threshold_ms: float = MAX_RUN_TIME_MS,
    ):
        self.stage_threshold_ms = stage_threshold_ms
        self.run_threshold_ms = run_threshold_ms
        self._active: dict[str, SessionMetrics] = {}
        self._history: deque[SessionMetrics] = deque(maxlen=max_history)
        self._alerts: deque[PerformanceAlert] = deque(maxlen=MAX_ALERTS)

    def start_session(self, session_id: str) -> None:
        self._active[session_id] = SessionMetrics(session_id=session_id)
        logger.debug(f"Started performance tracking for session {session_id}")

    def track_stage(
        self, session_id: str, stage: str, duration_ms: float, success: bool = True
    ) -> None:
        """Record one stage timing. Unknown sessions are ignored."""
        metrics = self._active.get(session_id)
        if metrics is None:
            return

        metrics.stage_timings[stage] = duration_ms
        metrics.total_stages += 1
        if success:
            metrics.successful_stages += 1
        else:
            metrics.failed_stages += 1

        if duration_ms > self.stage_threshold_ms:
            self._add_alert(
                PerformanceAlert(
                    level=AlertLevel.WARNING,
                    metric="stage_time",
                    message=(
                        f"Stage {stage} took {duration_ms:.0f}ms "
                        f"(threshold: {self.stage_threshold_ms:.0f}ms)"
                    ),
                    value=duration_ms,
                    threshold=self.stage_threshold_ms,
                    session_id=session_id,
                )
            )

    def end_session(
        self, session_id: str, duration_ms: float | None = None
    ) -> SessionMetrics | None:
        """
        Close a session and move it into history.

        Args:
            session_id: Session to close
            duration_ms: Measured run time; computed from start when omitted

        Returns:
            Final session metrics, or None for an unknown session
        """
        metrics = self._active.pop(session_id, None)
        if metrics is None:
            return None

        if duration_ms is None:
            elapsed = datetime.now(UTC) - metrics.started_at
            duration_ms = elapsed.total_seconds() * 1000
        metrics.duration = duration_ms

        self._check_run(metrics)
        self._history.append(metrics)
        return metrics

    def get_alerts(self) -> list[PerformanceAlert]:
        """Alerts, newest first."""
        return sorted(self._alerts, key=lambda alert: alert.timestamp, reverse=True)

    def clear_alerts(self) -> None:
        self._alerts.clear()

    def get_summary(self) -> PerformanceSummary:
        history = list(self._history)
        if not history:
            return PerformanceSummary(alert_count=len(self._alerts))

        count = len(history)
        timings: dict[str, list[float]] = {}
        for metrics in history:
            for stage, duration in metrics.stage_timings.items():
                timings.setdefault(stage, []).append(duration)

        slowest = sorted(
            ((stage, sum(values) / len(values)) for stage, values in timings.items()),
            key=lambda item: item[1],
            reverse=True,
        )[:5]

        return PerformanceSummary(
            total_sessions=count,
            average_duration=sum(m.duration or 0.0 for m in history) / count,
            average_success_rate=sum(m.success_rate for m in history) / count,
            alert_count=len(self._alerts),
            slow_run_share=sum(
                1 for m in history if (m.duration or 0.0) > self.run_threshold_ms
            )
            / count,
            slowest_stages=slowest,
        )

    def is_slow(self) -> bool:
        """Whether recent runs are slow often enough to prefer a faster mode."""
        return self.get_summary().slow_run_share > SLOW_RUN_RATIO

    def get_optimization_suggestions(self) -> list[str]:
        summary = self.get_summary()
        suggestions = []

        if summary.total_sessions and summary.average_success_rate < MIN_SUCCESS_RATE:
            suggestions.append(
                "Success rate below threshold. Review failing stages or disable them."
            )
        if summary.average_duration > self.run_threshold_ms:
            suggestions.append(
                f"Average run takes {summary.average_duration:.0f}ms. "
                "Consider the speed performance mode."
            )
        for stage, average in summary.slowest_stages:
            if average > self.stage_threshold_ms:
                suggestions.append(f"Stage {stage} is slow ({average:.0f}ms on average).")

        if not suggestions:
            suggestions.append("Performance is within acceptable ranges.")
        return suggestions

    def _check_run(self, metrics: SessionMetrics) -> None:
        if metrics.duration is not None and metrics.duration > self.run_threshold_ms:
            self._add_alert(
                PerformanceAlert(
                    level=AlertLevel.WARNING,
                    metric="run_time",
                    message=(
                        f"Pipeline run took {metrics.duration:.0f}ms "
                        f"(threshold: {self.run_threshold_ms:.0f}ms)"
                    ),
                    value=metrics.duration,
                    threshold=self.run_threshold_ms,
                    session_id=metrics.session_id,
                )
            )

        if metrics.total_stages and metrics.success_rate < MIN_SUCCESS_RATE:
            self._add_alert(
                PerformanceAlert(
                    level=AlertLevel.ERROR,
                    metric="success_rate",
                    message=f"Low stage success rate: {metrics.success_rate * 100:.0f}%",
                    value=metrics.success_rate,
                    threshold=MIN_SUCCESS_RATE,
                    session_id=metrics.session_id,
                )
            )

    def _add_alert(self, alert: PerformanceAlert) -> None:
        logger.warning(f"Performance alert: {alert.message}")
        self._alerts.append(alert)
