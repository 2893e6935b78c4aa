"""
Enrichment backends.

Adapters obtain their raw enrichment either from a deterministic local
computation or from a backend implementing this interface (typically an
AI generation service reachable over HTTP).
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any

import aiohttp

from .exceptions import BackendError
from .schemas import StageName

logger = logging.getLogger(__name__)


class EnrichmentBackend(ABC):
    """Source of raw enrichment for a stage."""

    @abstractmethod
    async def produce(self, stage: StageName, request: dict[str, Any]) -> dict[str, Any]:
        """Produce raw enrichment for a stage.

        Args:
            stage: Stage requesting enrichment
            request: JSON-serializable content and context

        Returns:
            Raw enrichment payload

        Raises:
            BackendError: If the backend fails or returns an invalid payload
        """
        pass

    async def ping(self) -> bool:
        """Check whether the backend can currently serve requests."""
        return True

    async def close(self) -> None:
        """Release backend resources."""
        pass


class HTTPEnrichmentBackend(EnrichmentBackend):
    """Enrichment backend that posts stage requests to an HTTP service."""

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 20.0,
        api_key: str | None = None,
    ):
        """Initialize the backend.

        Args:
            base_url: Service root, e.g. http://localhost:8090
            timeout_seconds: Total timeout per request
            api_key: Optional bearer token
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self.api_key = api_key
        self._session: aiohttp.ClientSession | None = None

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self.timeout, headers=self._headers()
            )
        return self._session

    async def produce(self, stage: StageName, request: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.base_url}/enrich/{stage.value}"
        session = await self._get_session()

        try:
            async with session.post(url, json=request) as response:
                if response.status != 200:
                    text = await response.text()
                    raise BackendError(
                        f"Backend returned HTTP {response.status} for {stage.value}: {text[:200]}"
                    )
                data = await response.json()
        except asyncio.TimeoutError as e:
            raise BackendError(f"Backend request for {stage.value} timed out") from e
        except aiohttp.ClientError as e:
            raise BackendError(f"Backend request for {stage.value} failed: {e}") from e

        if not isinstance(data, dict):
            raise BackendError(
                f"Backend payload for {stage.value} must be an object, got {type(data).__name__}"
            )

        logger.debug(f"Backend produced enrichment for {stage.value}")
        return data

    async def ping(self) -> bool:
        try:
            session = await self._get_session()
            async with session.get(f"{self.base_url}/health") as response:
                return response.status == 200
        except Exception as e:
            logger.warning(f"Enrichment backend health check failed: {e}")
            return False

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None
