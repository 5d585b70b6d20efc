"""
Stats Poller

Fetches system statistics from the admin backend on a fixed period.

Unlike the maintenance channel, failures are surfaced: any error clears the
displayed stats and sets an error message. Stale or invented numbers would
be misleading.
"""

import asyncio
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Callable

import httpx

from opsconsole.common.config import DEFAULT_STATS_INTERVAL_SECONDS
from opsconsole.common.exceptions import NotAuthenticatedError, StatsFetchError
from opsconsole.common.logging_setup import get_service_logger, log_stats_failure
from opsconsole.common.timestamp import utc_now
from opsconsole.services.maintenance.registry import ConsumerRegistry

from .auth import CredentialProvider

logger = get_service_logger("stats")

INVALID_RESPONSE_MESSAGE = "Invalid response format"


@dataclass(frozen=True)
class StatsState:
    """What the stats panel should show"""
    stats: dict[str, Any] | None = None
    loading: bool = True
    error: str | None = None
    fetched_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "stats": self.stats,
            "loading": self.loading,
            "error": self.error,
            "fetchedAt": self.fetched_at.isoformat() if self.fetched_at else None,
        }


@dataclass
class _PollerMetrics:
    fetch_count: int = 0
    failure_count: int = 0
    consecutive_failures: int = 0
    last_error: str | None = None


class StatsPoller:
    """
    Periodic authenticated GET of the stats endpoint.

    Usage:
        poller = StatsPoller("https://admin.example.com", StaticTokenProvider(token))
        unsubscribe = poller.subscribe(render)
        await poller.start()
        ...
        await poller.stop()
    """

    def __init__(
        self,
        base_url: str,
        credentials: CredentialProvider,
        endpoint: str = "/api/admin/system-stats",
        interval_seconds: float = DEFAULT_STATS_INTERVAL_SECONDS,
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.url = base_url.rstrip("/") + endpoint
        self.credentials = credentials
        self.interval_seconds = interval_seconds
        self.timeout_seconds = timeout_seconds

        self._client = client
        self._owns_client = client is None
        self._registry: ConsumerRegistry[StatsState] = ConsumerRegistry(name="stats")
        self._state = StatsState()
        self._metrics = _PollerMetrics()

        self._running = False
        self._stopped = False
        self._task: asyncio.Task | None = None

    @property
    def state(self) -> StatsState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._running

    def subscribe(self, callback: Callable[[StatsState], None]) -> Callable[[], None]:
        """Register a consumer; it is called with the current state right away"""
        if self._registry.current is None:
            self._registry.publish(self._state)
        return self._registry.subscribe(callback)

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create reusable HTTP client"""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout_seconds)
            self._owns_client = True
        return self._client

    async def start(self) -> None:
        """Start polling: one fetch now, then every interval"""
        if self._running:
            return
        self._running = True
        self._stopped = False
        self._task = asyncio.create_task(self._poll_loop())
        logger.info(f"Stats poller started (interval: {self.interval_seconds}s)")

    async def stop(self) -> None:
        """Stop polling; no state is published afterwards"""
        self._running = False
        self._stopped = True
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        if self._owns_client and self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

        self._registry.clear()
        logger.info("Stats poller stopped")

    async def _poll_loop(self) -> None:
        while self._running:
            try:
                await self.refresh()
            except Exception as e:
                logger.exception(f"Stats poll tick failed: {e}")
            await asyncio.sleep(self.interval_seconds)

    async def refresh(self) -> StatsState:
        """
        Fetch once and publish the outcome.

        Returns:
            The new state (stats on success, error with stats cleared on failure)
        """
        if self._stopped:
            return self._state

        self._set_state(replace(self._state, loading=True, error=None))

        try:
            stats = await self._fetch()
        except Exception as e:
            if self._stopped:
                return self._state
            log_stats_failure(logger, e)
            self._metrics.failure_count += 1
            self._metrics.consecutive_failures += 1
            self._metrics.last_error = str(e)
            self._set_state(StatsState(
                stats=None,
                loading=False,
                error=str(e) or type(e).__name__,
                fetched_at=utc_now(),
            ))
            return self._state

        if self._stopped:
            return self._state

        self._metrics.fetch_count += 1
        self._metrics.consecutive_failures = 0
        self._set_state(StatsState(stats=stats, loading=False, error=None, fetched_at=utc_now()))
        logger.debug("Stats refreshed", extra={"stat_keys": sorted(stats)})
        return self._state

    async def _fetch(self) -> dict[str, Any]:
        token = await self.credentials.get_token()
        if not token:
            raise NotAuthenticatedError()

        client = self._get_client()
        response = await client.get(
            self.url,
            headers={"Authorization": f"Bearer {token}"},
            timeout=self.timeout_seconds,
        )

        if not response.is_success:
            raise StatsFetchError(
                self._error_message(response) or f"Server error: {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise StatsFetchError(INVALID_RESPONSE_MESSAGE, response.status_code) from e

        if not isinstance(data, dict) or not data.get("success") or not isinstance(data.get("stats"), dict):
            raise StatsFetchError(INVALID_RESPONSE_MESSAGE, response.status_code)

        return data["stats"]

    @staticmethod
    def _error_message(response: httpx.Response) -> str | None:
        try:
            body = response.json()
        except ValueError:
            return None
        if isinstance(body, dict) and isinstance(body.get("message"), str):
            return body["message"] or None
        return None

    def _set_state(self, state: StatsState) -> None:
        if self._stopped:
            return
        if state == self._state and self._registry.current == state:
            return
        self._state = state
        self._registry.publish(state)

    def get_stats(self) -> dict:
        """Poller statistics for observability"""
        return {
            "url": self.url,
            "interval_s": self.interval_seconds,
            "running": self._running,
            "fetch_count": self._metrics.fetch_count,
            "failure_count": self._metrics.failure_count,
            "consecutive_failures": self._metrics.consecutive_failures,
            "last_error": self._metrics.last_error,
        }
