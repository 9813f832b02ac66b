"""
Per-account ledger.

Owns the account's transactions (insertion order, unique by id), its
recurring rules and its quick-entry shortcuts, and exposes the raw
mutation primitives.

DESIGN DECISION: No business rules live here.
Scheduling belongs to the recurrence engine and input checks to the
caller; the ledger only keeps the collections consistent by id.
"""

from typing import Iterator, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from cashbook.models.account import WidgetShortcut
from cashbook.models.recurring import RecurringRule
from cashbook.models.transaction import Transaction


class Ledger(BaseModel):
    """Transactions, recurring rules and shortcuts of one account."""

    account_name: str = ""
    transactions: list[Transaction] = Field(default_factory=list)
    recurring_rules: list[RecurringRule] = Field(default_factory=list)
    widget_shortcuts: list[WidgetShortcut] = Field(default_factory=list)

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    def get(self, transaction_id: UUID) -> Optional[Transaction]:
        for tx in self.transactions:
            if tx.id == transaction_id:
                return tx
        return None

    def add(self, transaction: Transaction) -> bool:
        """Append a transaction. Returns False if its id is already present."""
        if self.get(transaction.id) is not None:
            return False
        self.transactions.append(transaction)
        return True

    def remove(self, transaction_id: UUID) -> bool:
        before = len(self.transactions)
        self.transactions = [tx for tx in self.transactions if tx.id != transaction_id]
        return len(self.transactions) != before

    def update(self, transaction: Transaction) -> bool:
        """Replace the transaction with the same id, keeping its position."""
        for index, tx in enumerate(self.transactions):
            if tx.id == transaction.id:
                self.transactions[index] = transaction
                return True
        return False

    def transactions_for_rule(self, rule_id: UUID) -> Iterator[Transaction]:
        return (tx for tx in self.transactions if tx.source_rule_id == rule_id)

    # -------------------------------------------------------------------------
    # Recurring rules
    # -------------------------------------------------------------------------

    def get_rule(self, rule_id: UUID) -> Optional[RecurringRule]:
        for rule in self.recurring_rules:
            if rule.id == rule_id:
                return rule
        return None

    def add_rule(self, rule: RecurringRule) -> bool:
        if self.get_rule(rule.id) is not None:
            return False
        self.recurring_rules.append(rule)
        return True

    def remove_rule(self, rule_id: UUID) -> bool:
        before = len(self.recurring_rules)
        self.recurring_rules = [r for r in self.recurring_rules if r.id != rule_id]
        return len(self.recurring_rules) != before

    def replace_rule(self, rule: RecurringRule) -> bool:
        for index, existing in enumerate(self.recurring_rules):
            if existing.id == rule.id:
                self.recurring_rules[index] = rule
                return True
        return False

    # -------------------------------------------------------------------------
    # Shortcuts
    # -------------------------------------------------------------------------

    def get_shortcut(self, shortcut_id: UUID) -> Optional[WidgetShortcut]:
        for shortcut in self.widget_shortcuts:
            if shortcut.id == shortcut_id:
                return shortcut
        return None

    def add_shortcut(self, shortcut: WidgetShortcut) -> bool:
        if self.get_shortcut(shortcut.id) is not None:
            return False
        self.widget_shortcuts.append(shortcut)
        return True

    def remove_shortcut(self, shortcut_id: UUID) -> bool:
        before = len(self.widget_shortcuts)
        self.widget_shortcuts = [s for s in self.widget_shortcuts if s.id != shortcut_id]
        return len(self.widget_shortcuts) != before

    def replace_shortcut(self, shortcut: WidgetShortcut) -> bool:
        for index, existing in enumerate(self.widget_shortcuts):
            if existing.id == shortcut.id:
                self.widget_shortcuts[index] = shortcut
                return True
        return False
