"""
Local File Storage Implementation

The snapshot is one JSON document; the audit trail is a JSON-lines file
next to it (one event per line, append-only).

Writes go to a temporary file that is swapped in with os.replace, so a
crash mid-write leaves the previous snapshot intact. Transient OS
errors (locked file, full disk being cleaned up) are retried.
"""

import json
import os
from pathlib import Path
from typing import Optional
from uuid import UUID

import structlog
from pydantic import ValidationError
from tenacity import (
    RetryError,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from cashbook.config import get_settings
from cashbook.models.audit import AuditEvent
from cashbook.services.storage.interface import (
    AuditStorageInterface,
    CorruptSnapshotError,
    Snapshot,
    SnapshotStorageInterface,
    StorageError,
    StorageWriteError,
)


logger = structlog.get_logger(__name__)


_write_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
    retry=retry_if_exception_type(OSError),
)


class JsonFileSnapshotStorage(SnapshotStorageInterface):
    """
    Snapshot storage backed by a single JSON file.

    A missing file is an empty snapshot, not an error.
    """

    def __init__(self, path: Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Snapshot:
        if not self._path.exists():
            logger.info("snapshot_missing", path=str(self._path))
            return Snapshot()

        try:
            raw = self._path.read_bytes()
        except OSError as e:
            raise StorageError(f"Failed to read snapshot {self._path}: {e}") from e

        try:
            snapshot = Snapshot.model_validate(json.loads(raw.decode("utf-8")))
        except (UnicodeDecodeError, json.JSONDecodeError, ValidationError) as e:
            raise CorruptSnapshotError(f"Snapshot {self._path} is not readable: {e}") from e

        logger.debug(
            "snapshot_loaded",
            path=str(self._path),
            accounts=len(snapshot.accounts),
        )
        return snapshot

    def save(self, snapshot: Snapshot) -> None:
        payload = snapshot.model_dump_json(indent=2)
        try:
            self._write(payload)
        except RetryError as e:
            raise StorageWriteError(
                f"Failed to write snapshot {self._path}: {e.last_attempt.exception()}"
            ) from e
        logger.debug("snapshot_saved", path=str(self._path), bytes=len(payload))

    @_write_retry
    def _write(self, payload: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        tmp_path.write_text(payload, encoding="utf-8")
        os.replace(tmp_path, self._path)


class JsonLinesAuditStorage(AuditStorageInterface):
    """
    Append-only audit log, one JSON event per line.

    Unreadable lines are skipped on read so one bad write never hides
    the rest of the trail.
    """

    def __init__(self, path: Path):
        self._path = Path(path)

    @_write_retry
    def _append_line(self, line: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open("a", encoding="utf-8") as f:
            f.write(line + "\n")

    def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            self._append_line(event.to_json_line())
            return True
        except RetryError as e:
            # Don't raise - audit logging should not break the main flow
            logger.warning(
                "audit_write_failed",
                path=str(self._path),
                error=str(e.last_attempt.exception()),
            )
            return False

    def _read_events(self) -> list[AuditEvent]:
        if not self._path.exists():
            return []

        try:
            lines = self._path.read_text(encoding="utf-8").splitlines()
        except OSError as e:
            raise StorageError(f"Failed to read audit log {self._path}: {e}") from e

        events = []
        for line_number, line in enumerate(lines, start=1):
            if not line.strip():
                continue
            try:
                events.append(AuditEvent.model_validate_json(line))
            except ValidationError:
                logger.warning("audit_line_skipped", path=str(self._path), line=line_number)
                continue
        return events

    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by correlation ID."""
        events = [e for e in self._read_events() if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by entity."""
        events = [
            e for e in self._read_events()
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        events = self._read_events()
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]


def default_storages(data_dir: Optional[Path] = None) -> tuple[JsonFileSnapshotStorage, JsonLinesAuditStorage]:
    """Snapshot and audit storages at the configured (or given) location."""
    settings = get_settings().storage
    if data_dir is None:
        return (
            JsonFileSnapshotStorage(settings.snapshot_path),
            JsonLinesAuditStorage(settings.audit_path),
        )
    base = Path(data_dir)
    return (
        JsonFileSnapshotStorage(base / settings.snapshot_file_name),
        JsonLinesAuditStorage(base / settings.audit_file_name),
    )
