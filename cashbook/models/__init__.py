"""Domain models."""

from cashbook.models.account import (
    ACCOUNT_STYLES,
    Account,
    AccountStyle,
    WidgetShortcut,
    guess_account_style,
)
from cashbook.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from cashbook.models.ledger import Ledger
from cashbook.models.recurring import RecurrenceFrequency, RecurringRule
from cashbook.models.transaction import (
    CATEGORY_STYLES,
    DateUpdate,
    Transaction,
    TransactionCategory,
    TransactionType,
    guess_category,
)

__all__ = [
    # Accounts
    "ACCOUNT_STYLES",
    "Account",
    "AccountStyle",
    "WidgetShortcut",
    "guess_account_style",
    # Audit
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Ledger
    "Ledger",
    # Recurring
    "RecurrenceFrequency",
    "RecurringRule",
    # Transactions
    "CATEGORY_STYLES",
    "DateUpdate",
    "Transaction",
    "TransactionCategory",
    "TransactionType",
    "guess_category",
]
