"""
Supabase Document Source

Pushes one row of a Supabase table to a listener using Realtime
postgres_changes, with the current row fetched through PostgREST each time
the channel reports SUBSCRIBED (initial join and every rejoin).

Table layout:
    settings(id text primary key, data jsonb, updated_at timestamptz)

The document is the `data` object merged with the row's updated_at. Rows
without a `data` column are used as-is.
"""

import asyncio
from typing import Any, Mapping

from supabase import AsyncClient, acreate_client

from opsconsole.common.exceptions import SubscriptionError
from opsconsole.common.logging_setup import get_service_logger

from .source import ErrorCallback, EventCallback, RawDocument, Unsubscribe

logger = get_service_logger("maintenance.supabase")

# Realtime subscribe states (realtime.RealtimeSubscribeStates values)
STATE_SUBSCRIBED = "SUBSCRIBED"
STATE_TIMED_OUT = "TIMED_OUT"
STATE_CLOSED = "CLOSED"
STATE_CHANNEL_ERROR = "CHANNEL_ERROR"


def document_from_row(row: Mapping[str, Any] | None) -> RawDocument:
    """Extract the raw document from a table row"""
    if not row:
        return None
    data = row.get("data")
    if isinstance(data, Mapping):
        document = dict(data)
        if row.get("updated_at") is not None:
            document.setdefault("updatedAt", row["updated_at"])
        return document
    return dict(row)


def record_from_change(payload: Mapping[str, Any]) -> Mapping[str, Any] | None:
    """
    Extract the new row from a postgres_changes payload.

    Returns:
        The new record, or None for deletes
    """
    data = payload.get("data", payload)
    event_type = data.get("type") or data.get("eventType")
    if event_type == "DELETE":
        return None
    record = data.get("record") or data.get("new")
    return record or None


class _Subscription:
    """Bookkeeping for one subscribe() call"""

    def __init__(self, document_id: str, on_event: EventCallback, on_error: ErrorCallback):
        self.document_id = document_id
        self.on_event = on_event
        self.on_error = on_error
        self.active = True
        self.channel: Any = None
        self.task: asyncio.Task | None = None
        self.fetch_task: asyncio.Task | None = None


class SupabaseDocumentSource:
    """
    DocumentSource backed by Supabase Realtime.

    subscribe() must be called from a running event loop; it returns at once
    and opens the channel in a background task.
    """

    def __init__(
        self,
        supabase_url: str,
        supabase_key: str,
        table: str = "settings",
        schema: str = "public",
        client: AsyncClient | None = None,
    ):
        self.supabase_url = supabase_url
        self.supabase_key = supabase_key
        self.table = table
        self.schema = schema
        self._client = client
        self._client_lock = asyncio.Lock()
        self._removals: set[asyncio.Task] = set()

    async def get_client(self) -> AsyncClient:
        """Get or create the shared async client"""
        async with self._client_lock:
            if self._client is None:
                self._client = await acreate_client(self.supabase_url, self.supabase_key)
        return self._client

    def subscribe(
        self,
        document_id: str,
        on_event: EventCallback,
        on_error: ErrorCallback,
    ) -> Unsubscribe:
        loop = asyncio.get_running_loop()
        sub = _Subscription(document_id, on_event, on_error)
        sub.task = loop.create_task(self._open(sub))

        def unsubscribe() -> None:
            if not sub.active:
                return
            sub.active = False
            for task in (sub.task, sub.fetch_task):
                if task is not None and not task.done():
                    task.cancel()
            if sub.channel is not None:
                task = loop.create_task(self._remove_channel(sub.channel, document_id))
                self._removals.add(task)
                task.add_done_callback(self._removals.discard)

        return unsubscribe

    async def _open(self, sub: _Subscription) -> None:
        try:
            client = await self.get_client()
            channel = client.channel(f"{self.table}:{sub.document_id}")
            channel.on_postgres_changes(
                "*",
                schema=self.schema,
                table=self.table,
                filter=f"id=eq.{sub.document_id}",
                callback=lambda payload: self._handle_change(sub, payload),
            )
            sub.channel = channel
            await channel.subscribe(
                lambda state, error=None: self._handle_state(sub, state, error)
            )
            logger.info(
                f"Realtime channel opened for {self.table}/{sub.document_id}",
                extra={"table": self.table, "document_id": sub.document_id},
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._report_error(sub, e)

    async def fetch_document(self, document_id: str) -> RawDocument:
        """Fetch the current document through PostgREST"""
        client = await self.get_client()
        response = await (
            client.table(self.table)
            .select("*")
            .eq("id", document_id)
            .limit(1)
            .execute()
        )
        rows = response.data or []
        return document_from_row(rows[0] if rows else None)

    async def _deliver_current(self, sub: _Subscription) -> None:
        try:
            document = await self.fetch_document(sub.document_id)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._report_error(sub, e)
            return
        if sub.active:
            sub.on_event(document)

    def _handle_change(self, sub: _Subscription, payload: Mapping[str, Any]) -> None:
        if not sub.active:
            return
        sub.on_event(document_from_row(record_from_change(payload)))

    def _handle_state(self, sub: _Subscription, state: Any, error: Exception | None) -> None:
        if not sub.active:
            return
        status = str(getattr(state, "value", state))

        if status == STATE_SUBSCRIBED:
            sub.fetch_task = asyncio.get_running_loop().create_task(self._deliver_current(sub))
        elif status in (STATE_CHANNEL_ERROR, STATE_TIMED_OUT, STATE_CLOSED):
            self._report_error(
                sub,
                error or SubscriptionError(f"channel {status.lower()}", sub.document_id),
            )

    def _report_error(self, sub: _Subscription, error: Exception) -> None:
        if not sub.active:
            return
        logger.warning(
            f"Realtime subscription to {self.table}/{sub.document_id} failed: {error}",
            extra={"table": self.table, "document_id": sub.document_id},
        )
        sub.on_error(error)

    async def wait_closed(self) -> None:
        """Wait for channels of unsubscribed listeners to be removed"""
        if self._removals:
            await asyncio.gather(*self._removals, return_exceptions=True)

    async def _remove_channel(self, channel: Any, document_id: str) -> None:
        try:
            client = await self.get_client()
            await client.remove_channel(channel)
        except Exception as e:
            logger.warning(f"Error removing realtime channel for {document_id}: {e}")
