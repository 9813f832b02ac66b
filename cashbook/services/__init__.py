"""Services package."""

from cashbook.services.csv_service import (
    CSV_HEADER,
    export_csv,
    import_csv,
    transactions_from_csv,
    transactions_to_csv,
)
from cashbook.services.storage import (
    AccountRecord,
    AuditStorageInterface,
    CorruptSnapshotError,
    InMemoryAuditStorage,
    InMemorySnapshotStorage,
    JsonFileSnapshotStorage,
    JsonLinesAuditStorage,
    Snapshot,
    SnapshotStorageInterface,
    StorageError,
    StorageWriteError,
    default_storages,
)

__all__ = [
    # CSV
    "CSV_HEADER",
    "export_csv",
    "import_csv",
    "transactions_from_csv",
    "transactions_to_csv",
    # Storage services
    "AccountRecord",
    "AuditStorageInterface",
    "CorruptSnapshotError",
    "InMemoryAuditStorage",
    "InMemorySnapshotStorage",
    "JsonFileSnapshotStorage",
    "JsonLinesAuditStorage",
    "Snapshot",
    "SnapshotStorageInterface",
    "StorageError",
    "StorageWriteError",
    "default_storages",
]
