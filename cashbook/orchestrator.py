"""
Main Orchestrator for Cashbook

This module ties together all the components and defines the flows for:
1. Accounts (create, rename, reset, delete, select)
2. Transactions and shortcuts on the selected account
3. Recurring rules (add → process, edit → clean up and regenerate,
   pause → clean up, resume → rewind and process, delete → clean up)
4. CSV import/export

DESIGN DECISION: The orchestrator enforces the boundaries:
- Every mutation goes through here and is persisted immediately
- The recurrence engine only ever sees ledgers the orchestrator owns
- Every user-facing change is audited

Operations addressed at an account, transaction, shortcut or rule that
does not exist are silent no-ops and return False/None.

Not thread-safe: callers serialize access.
"""

from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path
from typing import Callable, Optional
from uuid import UUID

import structlog

from cashbook import queries
from cashbook.audit import AuditLogger, create_correlation_id
from cashbook.config import get_settings
from cashbook.models.account import Account, WidgetShortcut
from cashbook.models.audit import AuditEventType
from cashbook.models.ledger import Ledger
from cashbook.models.recurring import RecurringRule
from cashbook.models.transaction import Transaction, TransactionCategory, TransactionType
from cashbook.queries import AccountSummary
from cashbook.recurrence import ProcessingReport, RecurrenceEngine, remove_generated_occurrences
from cashbook.services import csv_service
from cashbook.services.storage import (
    AccountRecord,
    Snapshot,
    SnapshotStorageInterface,
    StorageError,
    default_storages,
)


logger = structlog.get_logger(__name__)

Clock = Callable[[], datetime]


def system_clock() -> datetime:
    return datetime.now(timezone.utc)


class AccountsManager:
    """
    Owns every account and its ledger.

    The selected account is the target of transaction, shortcut,
    recurring rule and CSV operations.
    """

    def __init__(
        self,
        storage: SnapshotStorageInterface,
        engine: Optional[RecurrenceEngine] = None,
        audit_logger: Optional[AuditLogger] = None,
        clock: Clock = system_clock,
    ):
        self._storage = storage
        self._engine = engine or RecurrenceEngine()
        self._audit_logger = audit_logger
        self._clock = clock

        snapshot = storage.load()
        self.accounts: list[Account] = [record.account for record in snapshot.accounts]
        self.ledgers: dict[UUID, Ledger] = {
            record.account.id: record.ledger for record in snapshot.accounts
        }
        self.selected_account_id: Optional[UUID] = snapshot.selected_account_id
        if self.get_account(self.selected_account_id) is None:
            self.selected_account_id = self.accounts[0].id if self.accounts else None

        logger.info(
            "accounts_loaded",
            accounts=len(self.accounts),
            transactions=snapshot.transaction_count,
        )

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    def today(self) -> date:
        return self._engine.today(self._clock())

    def _snapshot(self) -> Snapshot:
        return Snapshot(
            accounts=[
                AccountRecord(account=account, ledger=self.ledgers[account.id])
                for account in self.accounts
                if account.id in self.ledgers
            ],
            selected_account_id=self.selected_account_id,
        )

    def _persist(self) -> None:
        snapshot = self._snapshot()
        try:
            self._storage.save(snapshot)
        except StorageError as e:
            if self._audit_logger:
                self._audit_logger.log_error(
                    error_type="snapshot_save_failed",
                    error_message=str(e),
                )
            raise
        if self._audit_logger:
            self._audit_logger.log_snapshot_saved(
                account_count=len(snapshot.accounts),
                transaction_count=snapshot.transaction_count,
            )

    @property
    def selected_account(self) -> Optional[Account]:
        return self.get_account(self.selected_account_id)

    @property
    def _current_ledger(self) -> Optional[Ledger]:
        if self.selected_account_id is None:
            return None
        return self.ledgers.get(self.selected_account_id)

    def _ledger_for(self, account_id: Optional[UUID]) -> Optional[Ledger]:
        if account_id is None:
            return self._current_ledger
        return self.ledgers.get(account_id)

    def _audit_transaction(self, event_type: AuditEventType, tx: Transaction) -> None:
        if self._audit_logger:
            self._audit_logger.log_transaction(
                event_type=event_type,
                account_id=self.selected_account_id,
                transaction_id=tx.id,
                amount=str(tx.amount),
                comment=tx.comment,
            )

    def _audit_rule(
        self,
        event_type: AuditEventType,
        rule: RecurringRule,
        removed: int = 0,
    ) -> None:
        if not self._audit_logger:
            return
        if removed:
            self._audit_logger.log_occurrences_removed(
                account_id=self.selected_account_id,
                rule_id=rule.id,
                count=removed,
            )
        self._audit_logger.log_recurring_rule(
            event_type=event_type,
            account_id=self.selected_account_id,
            rule_id=rule.id,
            comment=rule.comment,
            removed_occurrences=removed,
        )

    # -------------------------------------------------------------------------
    # Accounts
    # -------------------------------------------------------------------------

    def get_account(self, account_id: Optional[UUID]) -> Optional[Account]:
        if account_id is None:
            return None
        for account in self.accounts:
            if account.id == account_id:
                return account
        return None

    def find_account(self, name: str) -> Optional[Account]:
        """Look an account up by name, ignoring case."""
        wanted = name.strip().lower()
        for account in self.accounts:
            if account.name.lower() == wanted:
                return account
        return None

    def get_all_accounts(self) -> list[Account]:
        return sorted(self.accounts, key=lambda a: a.name)

    def add_account(self, account: Account) -> bool:
        """Create an account with an empty ledger. Selects it if nothing is selected."""
        if self.get_account(account.id) is not None:
            return False
        self.accounts.append(account)
        self.ledgers[account.id] = Ledger(account_name=account.name)
        if self.selected_account_id is None:
            self.selected_account_id = account.id
        self._persist()
        if self._audit_logger:
            self._audit_logger.log_account_created(account.id, account.name)
        return True

    def update_account(self, account: Account) -> bool:
        for index, existing in enumerate(self.accounts):
            if existing.id == account.id:
                self.accounts[index] = account
                ledger = self.ledgers.get(account.id)
                if ledger is not None:
                    ledger.account_name = account.name
                self._persist()
                return True
        return False

    def delete_account(self, account_id: UUID) -> bool:
        account = self.get_account(account_id)
        if account is None:
            return False
        self.accounts = [a for a in self.accounts if a.id != account_id]
        self.ledgers.pop(account_id, None)
        if not self.accounts:
            self.selected_account_id = None
        elif self.selected_account_id == account_id:
            self.selected_account_id = self.accounts[0].id
        self._persist()
        if self._audit_logger:
            self._audit_logger.log_account_deleted(account.id, account.name)
        return True

    def reset_account(self, account_id: UUID) -> bool:
        """Remove every transaction of the account; rules and shortcuts stay."""
        ledger = self.ledgers.get(account_id)
        if ledger is None:
            return False
        ledger.transactions = []
        self._persist()
        return True

    def select_account(self, account_id: UUID) -> bool:
        if self.get_account(account_id) is None:
            return False
        self.selected_account_id = account_id
        self._persist()
        return True

    # -------------------------------------------------------------------------
    # Transactions (selected account)
    # -------------------------------------------------------------------------

    def transactions(self) -> list[Transaction]:
        ledger = self._current_ledger
        return list(ledger.transactions) if ledger else []

    def add_transaction(self, transaction: Transaction) -> bool:
        ledger = self._current_ledger
        if ledger is None or not ledger.add(transaction):
            return False
        self._persist()
        self._audit_transaction(AuditEventType.TRANSACTION_ADDED, transaction)
        return True

    def update_transaction(self, transaction: Transaction) -> bool:
        ledger = self._current_ledger
        if ledger is None or not ledger.update(transaction):
            return False
        self._persist()
        self._audit_transaction(AuditEventType.TRANSACTION_UPDATED, transaction)
        return True

    def delete_transaction(self, transaction_id: UUID) -> bool:
        ledger = self._current_ledger
        if ledger is None:
            return False
        tx = ledger.get(transaction_id)
        if tx is None:
            return False
        ledger.remove(transaction_id)
        self._persist()
        self._audit_transaction(AuditEventType.TRANSACTION_DELETED, tx)
        return True

    def validate_transaction(self, transaction_id: UUID) -> Optional[Transaction]:
        """Promote a transaction to validated, booked today."""
        ledger = self._current_ledger
        if ledger is None:
            return None
        tx = ledger.get(transaction_id)
        if tx is None:
            return None
        validated = tx.validated(self.today())
        ledger.update(validated)
        self._persist()
        self._audit_transaction(AuditEventType.TRANSACTION_VALIDATED, validated)
        return validated

    # -------------------------------------------------------------------------
    # Shortcuts (selected account)
    # -------------------------------------------------------------------------

    def shortcuts(self) -> list[WidgetShortcut]:
        ledger = self._current_ledger
        return list(ledger.widget_shortcuts) if ledger else []

    def add_shortcut(self, shortcut: WidgetShortcut) -> bool:
        ledger = self._current_ledger
        if ledger is None or not ledger.add_shortcut(shortcut):
            return False
        self._persist()
        return True

    def update_shortcut(self, shortcut: WidgetShortcut) -> bool:
        ledger = self._current_ledger
        if ledger is None or not ledger.replace_shortcut(shortcut):
            return False
        self._persist()
        return True

    def delete_shortcut(self, shortcut_id: UUID) -> bool:
        ledger = self._current_ledger
        if ledger is None or not ledger.remove_shortcut(shortcut_id):
            return False
        self._persist()
        return True

    def apply_shortcut(self, shortcut_id: UUID) -> Optional[Transaction]:
        """Book the shortcut's transaction as validated, today."""
        ledger = self._current_ledger
        if ledger is None:
            return None
        shortcut = ledger.get_shortcut(shortcut_id)
        if shortcut is None:
            return None
        tx = shortcut.to_transaction(self.today())
        ledger.add(tx)
        self._persist()
        self._audit_transaction(AuditEventType.TRANSACTION_ADDED, tx)
        return tx

    # -------------------------------------------------------------------------
    # Recurring rules (selected account)
    # -------------------------------------------------------------------------

    def recurring_rules(self) -> list[RecurringRule]:
        ledger = self._current_ledger
        return list(ledger.recurring_rules) if ledger else []

    def add_recurring_rule(self, rule: RecurringRule) -> bool:
        ledger = self._current_ledger
        if ledger is None or not ledger.add_rule(rule):
            return False
        self._persist()
        self._audit_rule(AuditEventType.RECURRING_RULE_ADDED, rule)
        self.process_recurring_transactions()
        return True

    def update_recurring_rule(self, rule: RecurringRule) -> bool:
        """
        Replace a rule and regenerate its schedule from scratch.

        Pending occurrences of the old version are dropped and the
        checkpoint is cleared; validated history stays untouched.
        """
        ledger = self._current_ledger
        if ledger is None or ledger.get_rule(rule.id) is None:
            return False
        removed = remove_generated_occurrences(ledger, rule.id)
        updated = rule.model_copy(update={"last_generated_date": None})
        ledger.replace_rule(updated)
        self._persist()
        self._audit_rule(AuditEventType.RECURRING_RULE_UPDATED, updated, removed)
        self.process_recurring_transactions()
        return True

    def pause_recurring_rule(self, rule_id: UUID) -> bool:
        ledger = self._current_ledger
        rule = ledger.get_rule(rule_id) if ledger else None
        if rule is None:
            return False
        removed = remove_generated_occurrences(ledger, rule_id)
        rule.is_paused = True
        self._persist()
        self._audit_rule(AuditEventType.RECURRING_RULE_PAUSED, rule, removed)
        return True

    def resume_recurring_rule(self, rule_id: UUID) -> bool:
        """
        Unpause a rule without back-filling the paused period.

        The checkpoint is rewound to yesterday, so generation restarts
        at today.
        """
        ledger = self._current_ledger
        rule = ledger.get_rule(rule_id) if ledger else None
        if rule is None:
            return False
        yesterday = self.today() - timedelta(days=1)
        rule.is_paused = False
        rule.last_generated_date = yesterday if yesterday >= rule.start_date else None
        self._persist()
        self._audit_rule(AuditEventType.RECURRING_RULE_RESUMED, rule)
        self.process_recurring_transactions()
        return True

    def delete_recurring_rule(self, rule_id: UUID) -> bool:
        """Delete a rule and its pending occurrences; validated ones are kept."""
        ledger = self._current_ledger
        rule = ledger.get_rule(rule_id) if ledger else None
        if rule is None:
            return False
        removed = remove_generated_occurrences(ledger, rule_id)
        ledger.remove_rule(rule_id)
        self._persist()
        self._audit_rule(AuditEventType.RECURRING_RULE_DELETED, rule, removed)
        return True

    def process_recurring_transactions(self) -> bool:
        """
        Run the recurrence engine over every account.

        Persists and audits only when something changed.
        """
        report = self._engine.run(self.accounts, self.ledgers, self._clock())
        if not report.changed:
            return False
        self._persist()
        self._audit_processing(report)
        return True

    def _audit_processing(self, report: ProcessingReport) -> None:
        if not self._audit_logger:
            return
        correlation_id = create_correlation_id()

        by_rule: dict[tuple[UUID, UUID], list[date]] = defaultdict(list)
        for occurrence in report.generated:
            by_rule[(occurrence.account_id, occurrence.rule_id)].append(occurrence.day)
        for (account_id, rule_id), days in by_rule.items():
            self._audit_logger.log_occurrences_generated(
                account_id=account_id,
                rule_id=rule_id,
                dates=days,
                correlation_id=correlation_id,
            )

        for account_id in {v.account_id for v in report.validated}:
            self._audit_logger.log_occurrences_auto_validated(
                account_id=account_id,
                transaction_ids=report.validated_for(account_id),
                correlation_id=correlation_id,
            )

    # -------------------------------------------------------------------------
    # Calculations
    # -------------------------------------------------------------------------

    def _transactions_of(self, account_id: Optional[UUID]) -> list[Transaction]:
        ledger = self._ledger_for(account_id)
        return ledger.transactions if ledger else []

    def total_validated(self, account_id: Optional[UUID] = None) -> Decimal:
        return queries.total_validated(self._transactions_of(account_id))

    def total_potential(self, account_id: Optional[UUID] = None) -> Decimal:
        return queries.total_potential(self._transactions_of(account_id))

    def available_years(self) -> list[int]:
        return queries.available_years(self.transactions())

    def total_for_year(self, year: int) -> Decimal:
        return queries.total_for_year(self.transactions(), year)

    def total_for_month(self, year: int, month: int) -> Decimal:
        return queries.total_for_month(self.transactions(), year, month)

    def monthly_change_percentage(self) -> Optional[Decimal]:
        return queries.monthly_change_percentage(self.transactions(), self.today())

    def potential_transactions(self) -> list[Transaction]:
        return queries.potential_transactions(self.transactions())

    def validated_transactions(
        self,
        year: Optional[int] = None,
        month: Optional[int] = None,
    ) -> list[Transaction]:
        return queries.validated_transactions(self.transactions(), year=year, month=month)

    def category_breakdown(
        self,
        year: Optional[int] = None,
        month: Optional[int] = None,
        type: TransactionType = TransactionType.EXPENSE,
    ) -> list[tuple[TransactionCategory, Decimal]]:
        return queries.category_breakdown(self.transactions(), year=year, month=month, type=type)

    def summary(self, account_id: Optional[UUID] = None) -> Optional[AccountSummary]:
        account = self.get_account(account_id or self.selected_account_id)
        if account is None:
            return None
        return queries.summarize(account.name, self._transactions_of(account.id), self.today())

    # -------------------------------------------------------------------------
    # CSV (selected account)
    # -------------------------------------------------------------------------

    def export_csv(self, path: Path) -> int:
        """Write the selected account's transactions to `path`. Returns rows written."""
        if self._current_ledger is None:
            return 0
        count = csv_service.export_csv(self.transactions(), path)
        if self._audit_logger:
            self._audit_logger.log_csv_transfer(
                event_type=AuditEventType.CSV_EXPORTED,
                account_id=self.selected_account_id,
                path=str(path),
                row_count=count,
            )
        return count

    def import_csv(self, path: Path) -> int:
        """Append the transactions read from `path`. Returns how many were added."""
        ledger = self._current_ledger
        if ledger is None:
            return 0
        imported = csv_service.import_csv(path, self.today())
        added = sum(1 for tx in imported if ledger.add(tx))
        if added:
            self._persist()
        if self._audit_logger:
            self._audit_logger.log_csv_transfer(
                event_type=AuditEventType.CSV_IMPORTED,
                account_id=self.selected_account_id,
                path=str(path),
                row_count=added,
            )
        return added


def create_app_components(
    data_dir: Optional[Path] = None,
    clock: Clock = system_clock,
) -> AccountsManager:
    """
    Factory function to create the accounts manager from settings.

    Args:
        data_dir: Overrides the configured data directory.
        clock: Source of "now"; the system clock by default.

    Returns:
        An AccountsManager over the local JSON snapshot and audit log
    """
    settings = get_settings()
    snapshot_storage, audit_storage = default_storages(data_dir)

    engine = RecurrenceEngine(
        horizon_months=settings.recurrence.horizon_months,
        tz=settings.recurrence.tzinfo,
    )

    return AccountsManager(
        storage=snapshot_storage,
        engine=engine,
        audit_logger=AuditLogger(audit_storage),
        clock=clock,
    )
