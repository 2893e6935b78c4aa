"""
Health monitoring service.

Summarizes adapter health across the registry and optionally polls
adapter availability in the background.
"""
import asyncio
import logging
from datetime import UTC, datetime

from .adapter_registry import AdapterRegistry

logger = logging.getLogger(__name__)


class HealthService:
    """Service for monitoring health of enhancement adapters"""

    def __init__(self, registry: AdapterRegistry):
        """
        Initialize health service.

        Args:
            registry: Adapter registry to monitor
        """
        self.registry = registry
        self._monitoring_task: asyncio.Task | None = None
        self.last_available: set[str] = set()
        self.last_scan: datetime | None = None

    async def check_availability(self) -> set[str]:
        """Scan adapter availability and remember the result."""
        available = await self.registry.list_available()
        self.last_available = available
        self.last_scan = datetime.now(UTC)

        unavailable = set(self.registry.names()) - available
        if unavailable:
            logger.warning(f"Unavailable adapters: {', '.join(sorted(unavailable))}")
        else:
            logger.debug(f"All {len(available)} adapters available")
        return available

    def get_health_summary(self) -> dict:
        """
        Get health summary for all adapters.

        Returns:
            Summary with health statistics
        """
        statuses = self.registry.health_snapshot()
        healthy = [name for name, status in statuses.items() if status.is_healthy]
        unhealthy = [name for name, status in statuses.items() if not status.is_healthy]

        return {
            "adapters": {
                "total": len(statuses),
                "healthy": len(healthy),
                "unhealthy": len(unhealthy),
                "unhealthy_names": sorted(unhealthy),
            },
            "available": sorted(self.last_available),
            "last_scan": self.last_scan.isoformat() if self.last_scan else None,
            "timestamp": datetime.now(UTC).isoformat(),
        }

    async def start_monitoring(self, interval_seconds: float = 30) -> None:
        """
        Start background availability monitoring.

        Args:
            interval_seconds: How often to check (default: 30 seconds)
        """
        if self._monitoring_task and not self._monitoring_task.done():
            logger.warning("Health monitoring is already running")
            return

        logger.info(f"Starting health monitoring (interval: {interval_seconds}s)")
        self._monitoring_task = asyncio.create_task(
            self._monitoring_loop(interval_seconds)
        )

    async def stop_monitoring(self) -> None:
        """Stop background health monitoring"""
        if self._monitoring_task and not self._monitoring_task.done():
            logger.info("Stopping health monitoring")
            self._monitoring_task.cancel()
            try:
                await self._monitoring_task
            except asyncio.CancelledError:
                pass
        self._monitoring_task = None

    @property
    def is_monitoring(self) -> bool:
        return self._monitoring_task is not None and not self._monitoring_task.done()

    async def _monitoring_loop(self, interval_seconds: float) -> None:
        while True:
            try:
                await self.check_availability()
                await asyncio.sleep(interval_seconds)
            except asyncio.CancelledError:
                logger.info("Health monitoring cancelled")
                raise
            except Exception as e:
                logger.error(f"Error in health monitoring loop: {e}", exc_info=True)
                await asyncio.sleep(interval_seconds)
