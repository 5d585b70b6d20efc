"""
Console Services

Explicitly constructed owner of the process-wide services. Built once at
startup and passed to whoever needs it; each service is created on first
access and torn down by shutdown().
"""

import httpx

from opsconsole.common.config import ConsoleSettings
from opsconsole.common.exceptions import ServiceError
from opsconsole.common.logging_setup import get_service_logger

from .maintenance import ConfigChannel, DocumentSource, InMemoryDocumentSource
from .maintenance.supabase_source import SupabaseDocumentSource
from .stats import (
    CredentialProvider,
    StaticTokenProvider,
    StatsPoller,
    SupabaseSessionTokenProvider,
)

logger = get_service_logger("services")


class ConsoleServices:
    """
    Container for the maintenance channel and the stats poller.

    Args:
        settings: Console settings
        source: Document source; defaults to Supabase when configured,
            otherwise an in-memory source
        credentials: Bearer token provider for stats requests; defaults to
            the configured stats token, else the Supabase Auth session
        http_client: Shared HTTP client for the stats poller
    """

    def __init__(
        self,
        settings: ConsoleSettings,
        source: DocumentSource | None = None,
        credentials: CredentialProvider | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.settings = settings
        self._source = source
        self._supabase: SupabaseDocumentSource | None = None
        self._credentials = credentials
        self._http_client = http_client

        self._maintenance: ConfigChannel | None = None
        self._stats: StatsPoller | None = None
        self._shut_down = False

    def _check_alive(self, service_name: str) -> None:
        if self._shut_down:
            raise ServiceError("accessed after shutdown", service_name)

    def _build_source(self) -> DocumentSource:
        if self._source is not None:
            return self._source
        if self.settings.has_supabase:
            return self._supabase_source()
        logger.warning("Supabase not configured, using in-memory maintenance document")
        return InMemoryDocumentSource()

    def _supabase_source(self) -> SupabaseDocumentSource:
        """The Supabase source; its client is shared with the session provider"""
        if isinstance(self._source, SupabaseDocumentSource):
            return self._source
        if self._supabase is None:
            self._supabase = SupabaseDocumentSource(
                self.settings.supabase_url,
                self.settings.supabase_key,
                table=self.settings.maintenance_table,
                schema=self.settings.maintenance_schema,
            )
        return self._supabase

    def _build_credentials(self) -> CredentialProvider:
        if self._credentials is not None:
            return self._credentials
        if self.settings.stats_token or not self.settings.has_supabase:
            return StaticTokenProvider(self.settings.stats_token)
        return SupabaseSessionTokenProvider(self._supabase_source().get_client)

    @property
    def maintenance(self) -> ConfigChannel:
        """The single maintenance channel of this process"""
        self._check_alive("maintenance")
        if self._maintenance is None:
            self._maintenance = ConfigChannel(
                self._build_source(),
                document_id=self.settings.maintenance_document_id,
            )
        return self._maintenance

    @property
    def stats(self) -> StatsPoller:
        """The stats poller of this process"""
        self._check_alive("stats")
        if self._stats is None:
            self._stats = StatsPoller(
                self.settings.stats_base_url,
                self._build_credentials(),
                endpoint=self.settings.stats_endpoint,
                interval_seconds=self.settings.stats_interval_seconds,
                timeout_seconds=self.settings.stats_timeout_seconds,
                client=self._http_client,
            )
        return self._stats

    @property
    def is_shut_down(self) -> bool:
        return self._shut_down

    async def shutdown(self) -> None:
        """Close the maintenance subscription and stop the poller. Idempotent."""
        if self._shut_down:
            return
        self._shut_down = True

        if self._maintenance is not None:
            self._maintenance.close()
            wait_closed = getattr(self._maintenance.source, "wait_closed", None)
            if wait_closed is not None:
                await wait_closed()
        if self._stats is not None:
            await self._stats.stop()

        logger.info("Console services shut down")
