"""
Tests for the accounts manager.

Test strategy:
1. Every flow runs against in-memory storage and a fixed clock
2. Recurring rule lifecycles are walked through day by day
3. Persistence and audit side effects are checked from the storages
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from cashbook.audit import AuditLogger
from cashbook.models import (
    Account,
    AuditEventType,
    Transaction,
    TransactionCategory,
    TransactionType,
    WidgetShortcut,
)
from cashbook.orchestrator import AccountsManager, create_app_components
from cashbook.services.storage import InMemorySnapshotStorage, StorageWriteError


def _rule_entries(manager, rule):
    entries = [tx for tx in manager.transactions() if tx.source_rule_id == rule.id]
    return sorted(((tx.date, tx.is_potential) for tx in entries), key=lambda item: item[0])


def _event_types(audit_storage):
    return [event.event_type for event in audit_storage.events]


class TestAccounts:
    """Tests for account management and selection."""

    def test_first_account_is_selected(self, manager):
        """Test that the first account becomes the selection."""
        assert manager.selected_account.name == "Main"

    def test_adding_more_keeps_selection(self, manager):
        """Test that later accounts do not steal the selection."""
        savings = Account(name="Savings")
        assert manager.add_account(savings) is True
        assert manager.selected_account.name == "Main"
        assert [a.name for a in manager.get_all_accounts()] == ["Main", "Savings"]

    def test_duplicate_account_is_rejected(self, manager):
        """Test that the same account cannot be added twice."""
        assert manager.add_account(manager.selected_account) is False
        assert len(manager.accounts) == 1

    def test_find_account_ignores_case(self, manager):
        """Test lookup by name."""
        assert manager.find_account(" main ").id == manager.selected_account_id
        assert manager.find_account("Other") is None

    def test_select_account(self, manager):
        """Test switching the selection and the unknown-id no-op."""
        savings = Account(name="Savings")
        manager.add_account(savings)
        assert manager.select_account(savings.id) is True
        assert manager.selected_account_id == savings.id
        assert manager.select_account(uuid4()) is False
        assert manager.selected_account_id == savings.id

    def test_update_account_renames_ledger(self, manager):
        """Test that renaming is reflected in the ledger."""
        renamed = manager.selected_account.model_copy(update={"name": "Everyday"})
        assert manager.update_account(renamed) is True
        assert manager.selected_account.name == "Everyday"
        assert manager.ledgers[renamed.id].account_name == "Everyday"
        assert manager.update_account(Account(name="Ghost")) is False

    def test_delete_selected_account_reselects(self, manager):
        """Test that deleting the selection falls back to the first account."""
        main_id = manager.selected_account_id
        savings = Account(name="Savings")
        manager.add_account(savings)

        assert manager.delete_account(main_id) is True
        assert manager.selected_account_id == savings.id
        assert main_id not in manager.ledgers

        assert manager.delete_account(savings.id) is True
        assert manager.selected_account_id is None
        assert manager.delete_account(savings.id) is False

    def test_reset_account_keeps_rules(self, manager, make_rule):
        """Test that a reset only clears transactions."""
        manager.add_recurring_rule(make_rule())
        manager.add_transaction(Transaction(amount=Decimal("-5")))

        assert manager.reset_account(manager.selected_account_id) is True
        assert manager.transactions() == []
        assert len(manager.recurring_rules()) == 1
        assert manager.reset_account(uuid4()) is False


class TestTransactions:
    """Tests for transaction operations on the selected account."""

    def test_add_update_delete(self, manager, audit_storage):
        """Test the basic lifecycle and its audit trail."""
        tx = Transaction(amount=Decimal("-12"), comment="Lunch")
        assert manager.add_transaction(tx) is True
        assert manager.add_transaction(tx) is False

        edited = tx.modified(amount=Decimal("-15"))
        assert manager.update_transaction(edited) is True
        assert manager.transactions()[0].amount == Decimal("-15")

        assert manager.delete_transaction(tx.id) is True
        assert manager.transactions() == []
        assert manager.delete_transaction(tx.id) is False

        types = _event_types(audit_storage)
        assert AuditEventType.TRANSACTION_ADDED in types
        assert AuditEventType.TRANSACTION_UPDATED in types
        assert AuditEventType.TRANSACTION_DELETED in types

    def test_validate_transaction_books_today(self, manager, audit_storage):
        """Test manual validation of an undated potential entry."""
        tx = Transaction(amount=Decimal("-30"), comment="Dinner")
        manager.add_transaction(tx)

        validated = manager.validate_transaction(tx.id)

        assert validated.id == tx.id
        assert validated.is_potential is False
        assert validated.date == date(2026, 2, 10)
        assert manager.transactions() == [validated]
        assert AuditEventType.TRANSACTION_VALIDATED in _event_types(audit_storage)
        assert manager.validate_transaction(uuid4()) is None

    def test_no_selection_is_noop(self, clock):
        """Test that transaction operations need a selected account."""
        storage = InMemorySnapshotStorage()
        manager = AccountsManager(storage=storage, clock=clock)

        assert manager.selected_account is None
        assert manager.add_transaction(Transaction(amount=Decimal("-1"))) is False
        assert manager.transactions() == []
        assert manager.summary() is None
        assert storage.save_count == 0


class TestShortcuts:
    """Tests for quick-entry shortcuts."""

    def test_apply_shortcut(self, manager):
        """Test that applying books a validated entry today."""
        shortcut = WidgetShortcut(amount=Decimal("3.20"), comment="Bus ticket", type=TransactionType.EXPENSE)
        assert manager.add_shortcut(shortcut) is True

        tx = manager.apply_shortcut(shortcut.id)

        assert tx.amount == Decimal("-3.20")
        assert tx.is_potential is False
        assert tx.date == date(2026, 2, 10)
        assert manager.transactions() == [tx]
        assert manager.apply_shortcut(uuid4()) is None

    def test_update_and_delete_shortcut(self, manager):
        """Test shortcut edits."""
        shortcut = WidgetShortcut(amount=Decimal("2"), comment="Coffee", type=TransactionType.EXPENSE)
        manager.add_shortcut(shortcut)

        assert manager.update_shortcut(shortcut.model_copy(update={"amount": Decimal("2.5")})) is True
        assert manager.shortcuts()[0].amount == Decimal("2.5")
        assert manager.delete_shortcut(shortcut.id) is True
        assert manager.shortcuts() == []
        assert manager.delete_shortcut(shortcut.id) is False


class TestRecurringRules:
    """Tests for recurring rule lifecycles."""

    def test_add_rule_generates(self, manager, make_rule):
        """Test that adding a rule materializes the next occurrence."""
        rule = make_rule()
        assert manager.add_recurring_rule(rule) is True
        assert _rule_entries(manager, rule) == [(date(2026, 3, 5), True)]
        assert manager.recurring_rules()[0].last_generated_date == date(2026, 3, 5)

    def test_pause_and_resume(self, manager, make_rule, clock):
        """Test a rule paused for two months and resumed without back-fill."""
        clock.set_day(date(2026, 1, 5))
        rule = make_rule(start_date=date(2026, 1, 5))
        manager.add_recurring_rule(rule)
        assert _rule_entries(manager, rule) == [
            (date(2026, 1, 5), False),
            (date(2026, 2, 5), True),
        ]

        clock.set_day(date(2026, 2, 10))
        assert manager.process_recurring_transactions() is True
        assert _rule_entries(manager, rule) == [
            (date(2026, 1, 5), False),
            (date(2026, 2, 5), False),
            (date(2026, 3, 5), True),
        ]

        assert manager.pause_recurring_rule(rule.id) is True
        assert manager.recurring_rules()[0].is_paused is True
        assert _rule_entries(manager, rule) == [
            (date(2026, 1, 5), False),
            (date(2026, 2, 5), False),
        ]

        clock.set_day(date(2026, 3, 20))
        assert manager.process_recurring_transactions() is False

        clock.set_day(date(2026, 4, 20))
        assert manager.resume_recurring_rule(rule.id) is True
        assert manager.recurring_rules()[0].is_paused is False
        assert _rule_entries(manager, rule) == [
            (date(2026, 1, 5), False),
            (date(2026, 2, 5), False),
            (date(2026, 5, 5), True),
        ]

    def test_resume_before_start_clears_checkpoint(self, manager, make_rule):
        """Test that resuming a rule that has not started leaves no checkpoint."""
        rule = make_rule(start_date=date(2026, 6, 1))
        manager.add_recurring_rule(rule)
        manager.pause_recurring_rule(rule.id)

        assert manager.resume_recurring_rule(rule.id) is True
        assert manager.recurring_rules()[0].last_generated_date is None
        assert manager.transactions() == []

    def test_update_rule_regenerates(self, manager, make_rule, audit_storage):
        """Test that an edit replaces pending occurrences with the new version."""
        rule = make_rule()
        manager.add_recurring_rule(rule)

        edited = rule.model_copy(update={"amount": Decimal("800")})
        assert manager.update_recurring_rule(edited) is True

        entries = [tx for tx in manager.transactions() if tx.source_rule_id == rule.id]
        assert [(tx.date, tx.amount) for tx in entries] == [(date(2026, 3, 5), Decimal("-800"))]
        assert manager.recurring_rules()[0].amount == Decimal("800")
        assert manager.recurring_rules()[0].last_generated_date == date(2026, 3, 5)

        removed = [e for e in audit_storage.events if e.event_type is AuditEventType.OCCURRENCES_REMOVED]
        assert len(removed) == 1
        assert removed[0].details["count"] == 1

    def test_update_keeps_validated_history(self, manager, make_rule, clock):
        """Test that validated occurrences survive an edit."""
        clock.set_day(date(2026, 1, 5))
        rule = make_rule()
        manager.add_recurring_rule(rule)

        manager.update_recurring_rule(rule.model_copy(update={"comment": "Rent (new flat)"}))

        entries = sorted(
            (tx for tx in manager.transactions() if tx.source_rule_id == rule.id),
            key=lambda tx: tx.date,
        )
        assert [(tx.date, tx.is_potential, tx.comment) for tx in entries] == [
            (date(2026, 1, 5), False, "Rent"),
            (date(2026, 2, 5), True, "Rent (new flat)"),
        ]

    def test_early_validation_books_today(self, manager, make_rule):
        """Test that validating a planned occurrence early books it today and keeps the rule link."""
        rule = make_rule()
        manager.add_recurring_rule(rule)
        (planned,) = [tx for tx in manager.transactions() if tx.is_potential]
        assert planned.date == date(2026, 3, 5)

        validated = manager.validate_transaction(planned.id)

        assert validated.date == date(2026, 2, 10)
        assert validated.is_potential is False
        assert validated.source_rule_id == rule.id

    def test_delete_rule(self, manager, make_rule, clock):
        """Test that deleting drops the rule and its pending output only."""
        clock.set_day(date(2026, 1, 5))
        rule = make_rule()
        manager.add_recurring_rule(rule)

        assert manager.delete_recurring_rule(rule.id) is True
        assert manager.recurring_rules() == []
        assert _rule_entries(manager, rule) == [(date(2026, 1, 5), False)]

    def test_missing_rule_is_noop(self, manager, make_rule, snapshot_storage):
        """Test that addressing an unknown rule changes and saves nothing."""
        saves = snapshot_storage.save_count
        assert manager.update_recurring_rule(make_rule()) is False
        assert manager.pause_recurring_rule(uuid4()) is False
        assert manager.resume_recurring_rule(uuid4()) is False
        assert manager.delete_recurring_rule(uuid4()) is False
        assert snapshot_storage.save_count == saves


class TestProcessing:
    """Tests for processing, persistence and auditing."""

    def test_persists_only_on_change(self, manager, make_rule, snapshot_storage):
        """Test that an idle pass does not write."""
        manager.add_recurring_rule(make_rule())
        saves = snapshot_storage.save_count

        assert manager.process_recurring_transactions() is False
        assert snapshot_storage.save_count == saves

    def test_processing_is_audited_under_one_correlation(self, manager, make_rule, clock, audit_storage):
        """Test that one pass shares a correlation id across its events."""
        manager.add_recurring_rule(make_rule())
        clock.set_day(date(2026, 3, 5))
        manager.process_recurring_transactions()

        generated = [e for e in audit_storage.events if e.event_type is AuditEventType.OCCURRENCES_GENERATED]
        validated = [e for e in audit_storage.events if e.event_type is AuditEventType.OCCURRENCES_AUTO_VALIDATED]
        assert generated[-1].details["dates"] == ["2026-04-05"]
        assert len(validated) == 1
        assert validated[0].correlation_id == generated[-1].correlation_id
        assert generated[0].correlation_id != generated[-1].correlation_id

    def test_rule_lifecycle_is_audited(self, manager, make_rule, audit_storage):
        """Test the rule events in order."""
        rule = make_rule()
        manager.add_recurring_rule(rule)
        manager.pause_recurring_rule(rule.id)
        manager.resume_recurring_rule(rule.id)
        manager.delete_recurring_rule(rule.id)

        rule_events = [
            e.event_type for e in audit_storage.get_events_by_entity("recurring_rule", rule.id)
            if e.event_type.value.startswith("recurring_rule")
        ]
        assert rule_events == [
            AuditEventType.RECURRING_RULE_ADDED,
            AuditEventType.RECURRING_RULE_PAUSED,
            AuditEventType.RECURRING_RULE_RESUMED,
            AuditEventType.RECURRING_RULE_DELETED,
        ]

    def test_state_survives_reload(self, manager, make_rule, snapshot_storage, engine, clock):
        """Test that a new manager over the same storage sees the same data."""
        manager.add_recurring_rule(make_rule())
        manager.add_transaction(Transaction(amount=Decimal("-9.99"), comment="Book"))

        reloaded = AccountsManager(storage=snapshot_storage, engine=engine, clock=clock)

        assert reloaded.selected_account_id == manager.selected_account_id
        assert reloaded.transactions() == manager.transactions()
        assert reloaded.recurring_rules() == manager.recurring_rules()
        assert reloaded.process_recurring_transactions() is False

    def test_failed_save_is_raised_and_audited(self, clock, audit_storage):
        """Test that a storage failure reaches the caller and the audit log."""
        class BrokenStorage(InMemorySnapshotStorage):
            def save(self, snapshot):
                raise StorageWriteError("disk full")

        manager = AccountsManager(
            storage=BrokenStorage(),
            audit_logger=AuditLogger(audit_storage),
            clock=clock,
        )
        with pytest.raises(StorageWriteError):
            manager.add_account(Account(name="Main"))

        assert _event_types(audit_storage) == [AuditEventType.SYSTEM_ERROR]
        assert audit_storage.events[0].error_message == "disk full"


class TestCalculations:
    """Tests for the calculation shortcuts on the manager."""

    def test_summary_and_totals(self, manager, make_rule):
        """Test balances with one validated and one generated entry."""
        manager.add_transaction(
            Transaction(amount=Decimal("2500"), comment="Salary", is_potential=False, date=date(2026, 2, 1))
        )
        manager.add_recurring_rule(make_rule())

        assert manager.total_validated() == Decimal("2500")
        assert manager.total_potential() == Decimal("-750")
        assert manager.available_years() == [2026]
        assert manager.total_for_year(2026) == Decimal("2500")
        assert manager.total_for_month(2026, 2) == Decimal("2500")
        assert manager.monthly_change_percentage() is None
        assert len(manager.potential_transactions()) == 1
        assert len(manager.validated_transactions(year=2026, month=2)) == 1
        assert manager.category_breakdown(type=TransactionType.INCOME) == [
            (TransactionCategory.SALARY, Decimal("2500"))
        ]

        summary = manager.summary()
        assert summary.account_name == "Main"
        assert summary.current_balance == Decimal("2500")
        assert summary.projected_balance == Decimal("1750")
        assert summary.potential_count == 1

    def test_totals_for_other_account(self, manager):
        """Test that balances can target any account."""
        savings = Account(name="Savings")
        manager.add_account(savings)
        manager.select_account(savings.id)
        manager.add_transaction(
            Transaction(amount=Decimal("100"), is_potential=False, date=date(2026, 2, 1))
        )
        main = manager.find_account("Main")

        assert manager.total_validated(savings.id) == Decimal("100")
        assert manager.total_validated(main.id) == Decimal("0")
        assert manager.summary(main.id).account_name == "Main"


class TestCsv:
    """Tests for CSV transfer through the manager."""

    def test_export_then_import_into_other_account(self, manager, make_rule, tmp_path, audit_storage):
        """Test moving transactions between accounts through a file."""
        manager.add_transaction(
            Transaction(amount=Decimal("-42.5"), comment="Dinner", is_potential=False, date=date(2026, 2, 6))
        )
        manager.add_recurring_rule(make_rule())
        path = tmp_path / "main.csv"
        planned = next(tx for tx in manager.transactions() if tx.is_potential)

        assert manager.export_csv(path) == 2

        other = Account(name="Copy")
        manager.add_account(other)
        manager.select_account(other.id)
        assert manager.import_csv(path) == 2

        imported = manager.transactions()
        assert {tx.comment for tx in imported} == {"Dinner", "Rent"}
        assert all(tx.source_rule_id is None for tx in imported)
        rent = next(tx for tx in imported if tx.comment == "Rent")
        assert rent.is_potential is True
        assert rent.date == planned.date

        types = _event_types(audit_storage)
        assert AuditEventType.CSV_EXPORTED in types
        assert AuditEventType.CSV_IMPORTED in types

    def test_csv_without_selection(self, clock, tmp_path):
        """Test that nothing is written or read without a selected account."""
        manager = AccountsManager(storage=InMemorySnapshotStorage(), clock=clock)
        path = tmp_path / "none.csv"
        assert manager.export_csv(path) == 0
        assert not path.exists()


class TestAppComponents:
    """Tests for the default wiring."""

    def test_files_in_data_dir(self, tmp_path, clock):
        """Test that the factory writes to the given directory."""
        manager = create_app_components(data_dir=tmp_path, clock=clock)
        manager.add_account(Account(name="Main"))

        assert (tmp_path / "accounts.json").exists()
        assert (tmp_path / "audit.jsonl").exists()
        assert create_app_components(data_dir=tmp_path, clock=clock).find_account("main") is not None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
