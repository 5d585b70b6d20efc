"""
Document Sources

A document source pushes the contents of one remote document to a listener:

    unsubscribe = source.subscribe(document_id, on_event, on_error)

on_event receives the raw document (a mapping) or None when the document
does not exist; it fires once with the current contents and again on every
change. on_error receives the exception when the transport fails.
Reconnection, if any, is the source's business.
"""

from typing import Any, Callable, Mapping, Protocol

from opsconsole.common.exceptions import SubscriptionError
from opsconsole.common.logging_setup import get_service_logger

logger = get_service_logger("maintenance.source")

RawDocument = Mapping[str, Any] | None
EventCallback = Callable[[RawDocument], None]
ErrorCallback = Callable[[Exception], None]
Unsubscribe = Callable[[], None]


class DocumentSource(Protocol):
    """Push-based access to a single remote document"""

    def subscribe(
        self,
        document_id: str,
        on_event: EventCallback,
        on_error: ErrorCallback,
    ) -> Unsubscribe:
        ...


class InMemoryDocumentSource:
    """
    Process-local document source.

    Used for development runs without a remote store and in tests.
    Delivers synchronously: the current document on subscribe, then every
    set_document / delete_document / fail call.
    """

    def __init__(self, documents: dict[str, dict[str, Any]] | None = None):
        self._documents: dict[str, dict[str, Any]] = dict(documents or {})
        self._listeners: dict[str, list[tuple[EventCallback, ErrorCallback]]] = {}
        self.subscribe_count = 0
        self.unsubscribe_count = 0

    def subscribe(
        self,
        document_id: str,
        on_event: EventCallback,
        on_error: ErrorCallback,
    ) -> Unsubscribe:
        listener = (on_event, on_error)
        self._listeners.setdefault(document_id, []).append(listener)
        self.subscribe_count += 1
        logger.debug(f"Listener added for '{document_id}'")

        closed = False

        def unsubscribe() -> None:
            nonlocal closed
            if closed:
                return
            closed = True
            self.unsubscribe_count += 1
            listeners = self._listeners.get(document_id, [])
            if listener in listeners:
                listeners.remove(listener)

        on_event(self._copy(document_id))
        return unsubscribe

    def listener_count(self, document_id: str) -> int:
        return len(self._listeners.get(document_id, []))

    def get_document(self, document_id: str) -> dict[str, Any] | None:
        return self._copy(document_id)

    def set_document(self, document_id: str, document: dict[str, Any]) -> None:
        """Replace a document and notify listeners"""
        self._documents[document_id] = dict(document)
        for on_event, _ in list(self._listeners.get(document_id, [])):
            on_event(self._copy(document_id))

    def update_document(self, document_id: str, **fields: Any) -> None:
        """Merge fields into a document and notify listeners"""
        merged = {**self._documents.get(document_id, {}), **fields}
        self.set_document(document_id, merged)

    def delete_document(self, document_id: str) -> None:
        self._documents.pop(document_id, None)
        for on_event, _ in list(self._listeners.get(document_id, [])):
            on_event(None)

    def fail(self, document_id: str, error: Exception | None = None) -> None:
        """Simulate a transport failure for every listener of a document"""
        error = error or SubscriptionError("transport unavailable", document_id)
        for _, on_error in list(self._listeners.get(document_id, [])):
            on_error(error)

    def _copy(self, document_id: str) -> dict[str, Any] | None:
        document = self._documents.get(document_id)
        return dict(document) if document is not None else None
