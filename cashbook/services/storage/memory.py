"""
In-Memory Storage Implementation

Used by the test suite and by callers that embed the accounts manager
without touching the disk. Snapshots are deep-copied on the way in and
out so callers never share mutable state with the store.
"""

from typing import Optional
from uuid import UUID

from cashbook.models.audit import AuditEvent
from cashbook.services.storage.interface import (
    AuditStorageInterface,
    Snapshot,
    SnapshotStorageInterface,
)


class InMemorySnapshotStorage(SnapshotStorageInterface):
    """Holds one snapshot in memory and counts saves."""

    def __init__(self, snapshot: Optional[Snapshot] = None):
        self._snapshot = snapshot.model_copy(deep=True) if snapshot else Snapshot()
        self.save_count = 0

    def load(self) -> Snapshot:
        return self._snapshot.model_copy(deep=True)

    def save(self, snapshot: Snapshot) -> None:
        self._snapshot = snapshot.model_copy(deep=True)
        self.save_count += 1


class InMemoryAuditStorage(AuditStorageInterface):
    """Keeps audit events in a list, in append order."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    def get_events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        return sorted(
            (e for e in self.events if e.correlation_id == correlation_id),
            key=lambda e: e.timestamp,
        )

    def get_events_by_entity(self, entity_type: str, entity_id: UUID) -> list[AuditEvent]:
        return sorted(
            (e for e in self.events if e.entity_type == entity_type and e.entity_id == entity_id),
            key=lambda e: e.timestamp,
        )

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return sorted(self.events, key=lambda e: e.timestamp, reverse=True)[:limit]
