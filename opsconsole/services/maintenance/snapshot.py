"""
Maintenance Snapshot

Immutable, fully-defaulted view of the remote maintenance document.
Raw documents may carry any subset of fields; normalize_document fills the
rest so consumers never see an undefined state.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping

from opsconsole.common.timestamp import parse_timestamp, utc_now

# Raw keys accepted for each attribute, first match wins
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "global_maintenance": ("global",),
    "partial": ("partial",),
    "planned": ("planned",),
    "ai_disabled": ("ia", "aiDisabled", "ai_disabled"),
    "license_maintenance": ("license", "licenseMaintenance", "license_maintenance"),
    "message": ("message",),
    "planned_time": ("plannedTime", "planned_time"),
    "updated_at": ("updatedAt", "updated_at"),
    "enabled_by": ("enabledBy", "enabled_by"),
}

BOOLEAN_FIELDS = (
    "global_maintenance",
    "partial",
    "planned",
    "ai_disabled",
    "license_maintenance",
)


@dataclass(frozen=True)
class MaintenanceSnapshot:
    """Complete maintenance state at a point in time"""
    global_maintenance: bool = False
    partial: bool = False
    planned: bool = False
    ai_disabled: bool = False
    license_maintenance: bool = False
    message: str = ""
    planned_time: str | None = None
    updated_at: datetime = field(default_factory=utc_now)
    enabled_by: str | None = None

    @property
    def is_active(self) -> bool:
        """True when any maintenance (global or partial) is in effect"""
        return self.global_maintenance or self.partial

    @property
    def is_default(self) -> bool:
        """True when the snapshot carries no maintenance state at all"""
        return (
            not any(getattr(self, name) for name in BOOLEAN_FIELDS)
            and self.message == ""
            and self.planned_time is None
            and self.enabled_by is None
        )

    def to_dict(self) -> dict[str, Any]:
        """Wire representation for UI clients"""
        return {
            "global": self.global_maintenance,
            "partial": self.partial,
            "planned": self.planned,
            "aiDisabled": self.ai_disabled,
            "licenseMaintenance": self.license_maintenance,
            "message": self.message,
            "plannedTime": self.planned_time,
            "updatedAt": self.updated_at.isoformat(),
            "enabledBy": self.enabled_by,
        }


def default_snapshot(now: datetime | None = None) -> MaintenanceSnapshot:
    """No-maintenance snapshot, used for missing documents and transport failures"""
    return MaintenanceSnapshot(updated_at=now or utc_now())


def _raw(document: Mapping[str, Any], name: str) -> Any:
    for key in FIELD_ALIASES[name]:
        if document.get(key) is not None:
            return document[key]
    return None


def _optional_text(value: Any) -> str | None:
    if isinstance(value, str):
        return value
    if isinstance(value, datetime):
        return value.isoformat()
    return None


def normalize_document(
    document: Mapping[str, Any] | None,
    now: datetime | None = None,
) -> MaintenanceSnapshot:
    """
    Build a snapshot from a raw remote document.

    Absent or mistyped fields take their defaults. A missing document
    (None) yields the full default snapshot.

    Args:
        document: Raw document fields, or None if the document does not exist
        now: Fallback for updated_at when the document carries no usable time

    Returns:
        Fully-defaulted MaintenanceSnapshot
    """
    if document is None:
        return default_snapshot(now)

    flags = {}
    for name in BOOLEAN_FIELDS:
        value = _raw(document, name)
        flags[name] = value if isinstance(value, bool) else False

    message = _raw(document, "message")
    enabled_by = _raw(document, "enabled_by")

    return MaintenanceSnapshot(
        **flags,
        message=message if isinstance(message, str) else "",
        planned_time=_optional_text(_raw(document, "planned_time")),
        updated_at=parse_timestamp(_raw(document, "updated_at")) or now or utc_now(),
        enabled_by=enabled_by if isinstance(enabled_by, str) else None,
    )
