"""
Maintenance Service - Live Maintenance State

Responsibilities:
- Hold one live subscription to the remote maintenance document
- Normalize every update into an immutable, fully-defaulted snapshot
- Fan the snapshot out to any number of local consumers
- Fail open to "no maintenance" when the transport fails
"""

from .channel import Attachment, ChannelPhase, ConfigChannel, ConsumerHandle
from .registry import ConsumerRegistry
from .snapshot import MaintenanceSnapshot, default_snapshot, normalize_document
from .source import DocumentSource, InMemoryDocumentSource

__all__ = [
    "Attachment",
    "ChannelPhase",
    "ConfigChannel",
    "ConsumerHandle",
    "ConsumerRegistry",
    "MaintenanceSnapshot",
    "default_snapshot",
    "normalize_document",
    "DocumentSource",
    "InMemoryDocumentSource",
]
