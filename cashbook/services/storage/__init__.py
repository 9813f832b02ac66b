"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
The default backend is a local JSON snapshot plus a JSON-lines audit log.
"""

from cashbook.services.storage.interface import (
    SCHEMA_VERSION,
    AccountRecord,
    AuditStorageInterface,
    CorruptSnapshotError,
    Snapshot,
    SnapshotStorageInterface,
    StorageError,
    StorageWriteError,
)
from cashbook.services.storage.json_file import (
    JsonFileSnapshotStorage,
    JsonLinesAuditStorage,
    default_storages,
)
from cashbook.services.storage.memory import (
    InMemoryAuditStorage,
    InMemorySnapshotStorage,
)

__all__ = [
    # Snapshot
    "SCHEMA_VERSION",
    "AccountRecord",
    "Snapshot",
    # Interfaces
    "AuditStorageInterface",
    "SnapshotStorageInterface",
    # Exceptions
    "CorruptSnapshotError",
    "StorageError",
    "StorageWriteError",
    # File implementation
    "JsonFileSnapshotStorage",
    "JsonLinesAuditStorage",
    "default_storages",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemorySnapshotStorage",
]
