"""
Audit Logger

DESIGN DECISION: Every change to an account leaves a trace.
User edits, engine output and snapshot writes all become AuditEvents,
so the history survives even though the snapshot only keeps the
current state.

The audit logger is synchronous like the rest of the accounts manager.
A broken audit store is reported in the local log and otherwise
ignored; correlation IDs tie together the events of one processing
pass.
"""

from datetime import date
from typing import Optional
from uuid import UUID, uuid4

import structlog

from cashbook.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from cashbook.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Writes audit events to the structured log and, if configured, to an
    audit store.
    """

    _LEVELS = {
        AuditSeverity.DEBUG: "debug",
        AuditSeverity.INFO: "info",
        AuditSeverity.WARNING: "warning",
        AuditSeverity.ERROR: "error",
        AuditSeverity.CRITICAL: "critical",
    }

    def __init__(self, storage: Optional[AuditStorageInterface] = None):
        self._storage = storage
        self._logger = structlog.get_logger("cashbook.audit")

    def log(self, event: AuditEvent) -> bool:
        """
        Record one event.

        Returns False only when the audit store rejected the event.
        """
        emit = getattr(self._logger, self._LEVELS[event.severity])
        emit("audit_event", **event.to_log_dict())

        if self._storage is None:
            return True
        try:
            return self._storage.append_event(event)
        except Exception as e:
            # The main flow must not fail because the trail could not be written
            self._logger.error(
                "audit_storage_failed",
                error=str(e),
                event_id=str(event.event_id),
            )
            return False

    def log_account_created(self, account_id: UUID, name: str) -> None:
        """Log account creation."""
        self.log(AuditEventBuilder.account_created(account_id=account_id, name=name))

    def log_account_deleted(self, account_id: UUID, name: str) -> None:
        """Log account deletion."""
        self.log(AuditEventBuilder.account_deleted(account_id=account_id, name=name))

    def log_transaction(
        self,
        event_type: AuditEventType,
        account_id: UUID,
        transaction_id: UUID,
        amount: str,
        comment: str,
    ) -> None:
        """Log a transaction being added, updated, deleted or validated."""
        event = AuditEventBuilder.transaction_changed(
            event_type=event_type,
            account_id=account_id,
            transaction_id=transaction_id,
            amount=amount,
            comment=comment,
        )
        self.log(event)

    def log_recurring_rule(
        self,
        event_type: AuditEventType,
        account_id: UUID,
        rule_id: UUID,
        comment: str,
        removed_occurrences: int = 0,
    ) -> None:
        """Log a recurring rule lifecycle change."""
        event = AuditEventBuilder.recurring_rule_changed(
            event_type=event_type,
            account_id=account_id,
            rule_id=rule_id,
            comment=comment,
            removed_occurrences=removed_occurrences,
        )
        self.log(event)

    def log_occurrences_generated(
        self,
        account_id: UUID,
        rule_id: UUID,
        dates: list[date],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log the occurrences one rule materialized in a processing pass."""
        event = AuditEventBuilder.occurrences_generated(
            account_id=account_id,
            rule_id=rule_id,
            dates=dates,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_occurrences_auto_validated(
        self,
        account_id: UUID,
        transaction_ids: list[UUID],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log due entries promoted in a processing pass."""
        event = AuditEventBuilder.occurrences_auto_validated(
            account_id=account_id,
            transaction_ids=transaction_ids,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_occurrences_removed(
        self,
        account_id: UUID,
        rule_id: UUID,
        count: int,
    ) -> None:
        """Log potential occurrences dropped when a rule changes."""
        event = AuditEventBuilder.occurrences_removed(
            account_id=account_id,
            rule_id=rule_id,
            count=count,
        )
        self.log(event)

    def log_csv_transfer(
        self,
        event_type: AuditEventType,
        account_id: UUID,
        path: str,
        row_count: int,
    ) -> None:
        """Log a CSV export or import."""
        event = AuditEventBuilder.csv_transfer(
            event_type=event_type,
            account_id=account_id,
            path=path,
            row_count=row_count,
        )
        self.log(event)

    def log_snapshot_saved(self, account_count: int, transaction_count: int) -> None:
        """Log snapshot persistence."""
        event = AuditEventBuilder.snapshot_saved(
            account_count=account_count,
            transaction_count=transaction_count,
        )
        self.log(event)

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new operation (e.g., a processing pass).
    Pass it through all subsequent audit calls.
    """
    return uuid4()
