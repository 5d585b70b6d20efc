"""
Shared fixtures for console tests.

Provides a fixed clock, an in-memory document source, and a manual source
that only delivers when the test says so.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest

from opsconsole.services.maintenance import ConfigChannel, InMemoryDocumentSource

FIXED_NOW = datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


class ManualDocumentSource:
    """Records subscriptions; events and errors are pushed by the test."""

    def __init__(self):
        self.listeners: list[dict] = []
        self.subscribe_count = 0
        self.unsubscribe_count = 0

    def subscribe(self, document_id, on_event, on_error):
        listener = {"document_id": document_id, "on_event": on_event, "on_error": on_error, "open": True}
        self.listeners.append(listener)
        self.subscribe_count += 1

        def unsubscribe():
            self.unsubscribe_count += 1
            listener["open"] = False

        return unsubscribe

    @property
    def latest(self) -> dict:
        return self.listeners[-1]

    def push(self, document):
        """Deliver an event through the most recent listener, open or not."""
        self.latest["on_event"](document)

    def error(self, exc: Exception):
        self.latest["on_error"](exc)


async def settle(rounds: int = 10) -> None:
    """Let scheduled tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def manual_source():
    return ManualDocumentSource()


@pytest.fixture
def memory_source():
    return InMemoryDocumentSource()


@pytest.fixture
def channel(manual_source, clock):
    """Channel over a manual source with a fixed clock."""
    return ConfigChannel(manual_source, document_id="maintenance", clock=clock)
