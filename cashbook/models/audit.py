"""
Audit Models for Cashbook

Every significant change to an account is logged for audit purposes.
This provides:
1. Traceability of what the recurrence engine generated and when
2. Debugging information when a rule misbehaves
3. A record of user edits that the snapshot alone does not keep

DESIGN DECISION: The trail only grows. Events are appended, never rewritten.
"""

import json
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every user-facing operation of the accounts manager has its own type.
    """
    # Accounts
    ACCOUNT_CREATED = "account_created"
    ACCOUNT_DELETED = "account_deleted"

    # Transactions
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"
    TRANSACTION_VALIDATED = "transaction_validated"

    # Recurring rules
    RECURRING_RULE_ADDED = "recurring_rule_added"
    RECURRING_RULE_UPDATED = "recurring_rule_updated"
    RECURRING_RULE_PAUSED = "recurring_rule_paused"
    RECURRING_RULE_RESUMED = "recurring_rule_resumed"
    RECURRING_RULE_DELETED = "recurring_rule_deleted"

    # Recurrence engine
    OCCURRENCES_GENERATED = "occurrences_generated"
    OCCURRENCES_AUTO_VALIDATED = "occurrences_auto_validated"
    OCCURRENCES_REMOVED = "occurrences_removed"

    # Import / export
    CSV_EXPORTED = "csv_exported"
    CSV_IMPORTED = "csv_imported"

    # Persistence
    SNAPSHOT_SAVED = "snapshot_saved"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    One entry of the audit trail.

    Events describe something that already happened to an account, a
    transaction or a recurring rule. They are written once and never
    edited.
    """

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="UTC instant the event was recorded"
    )
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Subject: 'account', 'transaction' or 'recurring_rule'
    entity_type: Optional[str] = None
    entity_id: Optional[UUID] = None
    account_id: Optional[UUID] = Field(
        default=None,
        description="Account owning the subject, when there is one"
    )

    # Shared by every event emitted in one processing pass
    correlation_id: Optional[UUID] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Event-specific payload (dates, counts, paths)"
    )
    error_message: Optional[str] = None
    is_user_action: bool = Field(
        default=False,
        description="False for events emitted by the recurrence engine or persistence"
    )

    def to_log_dict(self) -> dict:
        """Flatten to JSON-friendly values for structlog."""
        data = self.model_dump(mode="json")
        return {key: value for key, value in data.items() if value is not None or key == "details"}

    def to_json_line(self) -> str:
        """Serialize as one line of the append-only audit file."""
        return json.dumps(self.model_dump(mode="json"), ensure_ascii=False)


class AuditEventBuilder:
    """
    Factories for every event the accounts manager emits.

    Usage:
        event = AuditEventBuilder.account_created(account_id, name)
        event = AuditEventBuilder.occurrences_generated(account_id, rule_id, dates, correlation_id)
    """

    @staticmethod
    def account_created(account_id: UUID, name: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_CREATED,
            entity_type="account",
            entity_id=account_id,
            account_id=account_id,
            description=f"Account created: {name}",
            details={"name": name},
            is_user_action=True,
        )

    @staticmethod
    def account_deleted(account_id: UUID, name: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_DELETED,
            severity=AuditSeverity.WARNING,
            entity_type="account",
            entity_id=account_id,
            account_id=account_id,
            description=f"Account deleted: {name}",
            details={"name": name},
            is_user_action=True,
        )

    @staticmethod
    def transaction_changed(
        event_type: AuditEventType,
        account_id: UUID,
        transaction_id: UUID,
        amount: str,
        comment: str,
    ) -> AuditEvent:
        verb = event_type.value.removeprefix("transaction_")
        return AuditEvent(
            event_type=event_type,
            entity_type="transaction",
            entity_id=transaction_id,
            account_id=account_id,
            description=f"Transaction {verb}: {comment or '(no comment)'} {amount}",
            details={"amount": amount, "comment": comment},
            is_user_action=True,
        )

    @staticmethod
    def recurring_rule_changed(
        event_type: AuditEventType,
        account_id: UUID,
        rule_id: UUID,
        comment: str,
        removed_occurrences: int = 0,
    ) -> AuditEvent:
        verb = event_type.value.removeprefix("recurring_rule_")
        return AuditEvent(
            event_type=event_type,
            entity_type="recurring_rule",
            entity_id=rule_id,
            account_id=account_id,
            description=f"Recurring rule {verb}: {comment or '(no comment)'}",
            details={
                "comment": comment,
                "removed_occurrences": removed_occurrences,
            },
            is_user_action=True,
        )

    @staticmethod
    def occurrences_generated(
        account_id: UUID,
        rule_id: UUID,
        dates: list[date],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OCCURRENCES_GENERATED,
            entity_type="recurring_rule",
            entity_id=rule_id,
            account_id=account_id,
            correlation_id=correlation_id,
            description=f"Generated {len(dates)} occurrence(s)",
            details={"dates": [d.isoformat() for d in dates]},
        )

    @staticmethod
    def occurrences_auto_validated(
        account_id: UUID,
        transaction_ids: list[UUID],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OCCURRENCES_AUTO_VALIDATED,
            entity_type="account",
            entity_id=account_id,
            account_id=account_id,
            correlation_id=correlation_id,
            description=f"Auto-validated {len(transaction_ids)} due occurrence(s)",
            details={"transaction_ids": [str(t) for t in transaction_ids]},
        )

    @staticmethod
    def occurrences_removed(
        account_id: UUID,
        rule_id: UUID,
        count: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OCCURRENCES_REMOVED,
            entity_type="recurring_rule",
            entity_id=rule_id,
            account_id=account_id,
            description=f"Removed {count} pending occurrence(s)",
            details={"count": count},
        )

    @staticmethod
    def csv_transfer(
        event_type: AuditEventType,
        account_id: UUID,
        path: str,
        row_count: int,
    ) -> AuditEvent:
        direction = "exported to" if event_type is AuditEventType.CSV_EXPORTED else "imported from"
        return AuditEvent(
            event_type=event_type,
            entity_type="account",
            entity_id=account_id,
            account_id=account_id,
            description=f"{row_count} transaction(s) {direction} {path}",
            details={"path": path, "row_count": row_count},
            is_user_action=True,
        )

    @staticmethod
    def snapshot_saved(account_count: int, transaction_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_SAVED,
            severity=AuditSeverity.DEBUG,
            description=f"Snapshot saved with {account_count} account(s)",
            details={
                "account_count": account_count,
                "transaction_count": transaction_count,
            },
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
