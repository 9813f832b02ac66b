"""
Abstract Storage Interface

DESIGN DECISION: The orchestrator only talks to these ABCs.
It never sees files or paths, tests run on the in-memory backend, and
the JSON document could give way to a database without touching it.

The interface is intentionally simple. The whole account set is one
snapshot that is loaded once and saved after every mutation; the audit
trail is a separate append-only stream.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional
from uuid import UUID

import structlog
from pydantic import BaseModel, Field, model_validator

from cashbook.models.account import Account
from cashbook.models.audit import AuditEvent
from cashbook.models.ledger import Ledger


logger = structlog.get_logger(__name__)

SCHEMA_VERSION = 1


# =============================================================================
# SNAPSHOT - what gets persisted
# =============================================================================

class AccountRecord(BaseModel):
    """One account together with its ledger."""
    account: Account
    ledger: Ledger


class Snapshot(BaseModel):
    """
    The complete persisted state.

    CRITICAL: Older documents may hold validated transactions without a
    date. They are loaded back as potential rather than rejected.
    """
    schema_version: int = Field(
        default=SCHEMA_VERSION,
        ge=1,
        description="Document layout version"
    )
    accounts: list[AccountRecord] = Field(default_factory=list)
    selected_account_id: Optional[UUID] = None

    @model_validator(mode='before')
    @classmethod
    def normalize_legacy_data(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data

        version = data.get("schema_version", SCHEMA_VERSION)
        if isinstance(version, int) and version > SCHEMA_VERSION:
            raise ValueError(
                f"Snapshot schema version {version} is newer than supported ({SCHEMA_VERSION})"
            )

        # Wrong shapes are left for field validation to reject
        records = data.get("accounts")
        for record in records if isinstance(records, list) else []:
            ledger = record.get("ledger") if isinstance(record, dict) else None
            if not isinstance(ledger, dict):
                continue
            transactions = ledger.get("transactions")
            for tx in transactions if isinstance(transactions, list) else []:
                if (
                    isinstance(tx, dict)
                    and tx.get("is_potential") is False
                    and tx.get("date") is None
                ):
                    logger.warning(
                        "undated_validated_transaction_loaded_as_potential",
                        transaction_id=tx.get("id"),
                    )
                    tx["is_potential"] = True
        return data

    @property
    def transaction_count(self) -> int:
        return sum(len(record.ledger.transactions) for record in self.accounts)


# =============================================================================
# INTERFACES
# =============================================================================

class SnapshotStorageInterface(ABC):
    """
    Abstract interface for snapshot persistence.

    Any storage implementation (JSON file, in-memory, etc.)
    provides both operations.
    """

    @abstractmethod
    def load(self) -> Snapshot:
        """
        Load the persisted snapshot.

        Returns:
            The stored snapshot, or an empty one if nothing was saved yet

        Raises:
            CorruptSnapshotError: If stored data cannot be read back
        """
        pass

    @abstractmethod
    def save(self, snapshot: Snapshot) -> None:
        """
        Replace the persisted snapshot.

        Args:
            snapshot: The complete state to store

        Raises:
            StorageWriteError: If the write fails
        """
        pass


class AuditStorageInterface(ABC):
    """
    Where audit events end up.

    Append-only: there is no update or delete.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Store one event at the end of the trail.

        Returns:
            False if the event could not be stored
        """
        pass

    @abstractmethod
    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one processing pass).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """
        Events about one account, transaction or rule.

        Args:
            entity_type: Type of entity (e.g., 'account', 'recurring_rule')
            entity_id: The entity's ID

        Returns:
            List of events in chronological order
        """
        pass

    @abstractmethod
    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        The latest `limit` events.

        Returns:
            List of recent events (newest first)
        """
        pass


# =============================================================================
# EXCEPTIONS
# =============================================================================

class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class CorruptSnapshotError(StorageError):
    """Stored snapshot exists but cannot be parsed or validated."""
    pass


class StorageWriteError(StorageError):
    """Data could not be written, even after retrying."""
    pass
