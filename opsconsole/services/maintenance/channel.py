"""
Config Channel

Owns the single live subscription to the maintenance document and the
current snapshot derived from it.

- The subscription is reference-counted: opened when the first consumer
  attaches, closed when the last one detaches.
- Every remote event is normalized and republished to all consumers.
- Transport errors fail open: a no-maintenance snapshot is published and
  the error is only logged.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum, auto
from functools import partial
from typing import Callable

from opsconsole.common.config import MAINTENANCE_DOCUMENT_ID
from opsconsole.common.logging_setup import get_service_logger, log_maintenance_change
from opsconsole.common.timestamp import utc_now

from .registry import ConsumerRegistry
from .snapshot import MaintenanceSnapshot, default_snapshot, normalize_document
from .source import DocumentSource, RawDocument, Unsubscribe

logger = get_service_logger("maintenance")

SnapshotCallback = Callable[[MaintenanceSnapshot], None]


class ChannelPhase(Enum):
    """Subscription lifecycle phase"""

    CLOSED = auto()
    OPENING = auto()
    LIVE = auto()


class ConsumerHandle:
    """Token returned by attach(); detaching it twice is a no-op"""

    __slots__ = ("consumer_id", "_unsubscribe", "detached")

    def __init__(self, consumer_id: int, unsubscribe: Unsubscribe | None):
        self.consumer_id = consumer_id
        self._unsubscribe = unsubscribe
        self.detached = False

    def __repr__(self) -> str:
        return f"ConsumerHandle(id={self.consumer_id}, detached={self.detached})"


@dataclass(frozen=True)
class Attachment:
    """Result of attach(): what the consumer may render right away"""
    snapshot: MaintenanceSnapshot | None
    loading: bool
    handle: ConsumerHandle


class ConfigChannel:
    """
    Reference-counted owner of the maintenance document subscription.

    Usage:
        channel = ConfigChannel(source)
        attachment = channel.attach(on_snapshot)
        ...
        channel.detach(attachment.handle)
    """

    def __init__(
        self,
        source: DocumentSource,
        document_id: str = MAINTENANCE_DOCUMENT_ID,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.source = source
        self.document_id = document_id
        self._clock = clock
        self._registry: ConsumerRegistry[MaintenanceSnapshot] = ConsumerRegistry(
            name=f"maintenance:{document_id}"
        )
        self._handles: dict[int, ConsumerHandle] = {}
        self._next_handle_id = 1

        self._phase = ChannelPhase.CLOSED
        self._unsubscribe: Unsubscribe | None = None
        # Bumped on every close; events tagged with an older generation are dropped
        self._generation = 0

    @property
    def phase(self) -> ChannelPhase:
        return self._phase

    @property
    def snapshot(self) -> MaintenanceSnapshot | None:
        """Latest snapshot, or None until the first event or error arrives"""
        return self._registry.current

    @property
    def loading(self) -> bool:
        return self._registry.current is None

    @property
    def consumer_count(self) -> int:
        return len(self._handles)

    @property
    def is_open(self) -> bool:
        return self._phase is not ChannelPhase.CLOSED

    def attach(self, callback: SnapshotCallback | None = None) -> Attachment:
        """
        Register a consumer, opening the subscription if none is open.

        Args:
            callback: Called with every published snapshot. If a snapshot
                already exists it is called with it before attach returns.

        Returns:
            Attachment with the current snapshot (or None), the loading
            flag, and the handle to detach with
        """
        handle_id = self._next_handle_id
        self._next_handle_id += 1

        unsubscribe = self._registry.subscribe(callback) if callback is not None else None
        handle = ConsumerHandle(handle_id, unsubscribe)
        self._handles[handle_id] = handle

        if self._phase is ChannelPhase.CLOSED:
            self._open()

        logger.debug(
            f"Consumer {handle_id} attached ({len(self._handles)} total)",
            extra={"consumer_id": handle_id, "consumer_count": len(self._handles)},
        )
        return Attachment(snapshot=self.snapshot, loading=self.loading, handle=handle)

    def detach(self, handle: ConsumerHandle) -> None:
        """
        Unregister a consumer; closes the subscription after the last one.

        Detaching an already-detached handle does nothing.
        """
        if handle.detached:
            return
        handle.detached = True
        if handle._unsubscribe is not None:
            handle._unsubscribe()

        if self._handles.pop(handle.consumer_id, None) is None:
            return

        logger.debug(
            f"Consumer {handle.consumer_id} detached ({len(self._handles)} left)",
            extra={"consumer_id": handle.consumer_id, "consumer_count": len(self._handles)},
        )
        if not self._handles:
            self._close()

    def close(self) -> None:
        """Detach every consumer (process shutdown)"""
        for handle in list(self._handles.values()):
            self.detach(handle)

    def _open(self) -> None:
        self._phase = ChannelPhase.OPENING
        generation = self._generation
        logger.info(
            f"Opening subscription to '{self.document_id}'",
            extra={"document_id": self.document_id},
        )
        try:
            unsubscribe = self.source.subscribe(
                self.document_id,
                partial(self._on_remote_event, generation),
                partial(self._on_remote_error, generation),
            )
        except Exception as e:
            self._on_remote_error(generation, e)
            return

        if generation == self._generation:
            self._unsubscribe = unsubscribe
        else:
            # Closed while subscribing (a consumer detached from inside a callback)
            unsubscribe()

    def _close(self) -> None:
        unsubscribe, self._unsubscribe = self._unsubscribe, None
        self._generation += 1
        self._phase = ChannelPhase.CLOSED
        # No persistence across subscriptions: the next attach starts loading again
        self._registry.reset()

        if unsubscribe is not None:
            try:
                unsubscribe()
            except Exception as e:
                logger.warning(f"Error closing subscription to '{self.document_id}': {e}")

        logger.info(
            f"Closed subscription to '{self.document_id}'",
            extra={"document_id": self.document_id},
        )

    def _on_remote_event(self, generation: int, document: RawDocument) -> None:
        if generation != self._generation:
            return
        snapshot = normalize_document(document, now=self._clock())
        if document is None:
            logger.info(f"Document '{self.document_id}' does not exist, using defaults")
        self._publish(snapshot)

    def _on_remote_error(self, generation: int, error: Exception) -> None:
        if generation != self._generation:
            return
        logger.error(
            f"Error listening to '{self.document_id}', assuming no maintenance: {error}",
            exc_info=error,
            extra={"document_id": self.document_id},
        )
        self._publish(default_snapshot(self._clock()))

    def _publish(self, snapshot: MaintenanceSnapshot) -> None:
        self._phase = ChannelPhase.LIVE
        log_maintenance_change(logger, snapshot)
        self._registry.publish(snapshot)
