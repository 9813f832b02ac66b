"""
Account and shortcut models.

Accounts are identified by id; the name is only for display. Each account
carries a style (icon + colour) guessed from its name when not chosen.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, NamedTuple
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

from cashbook.models.transaction import (
    Transaction,
    TransactionCategory,
    TransactionType,
    fill_guessed_category,
)


class AccountStyle(str, Enum):
    BANK = "bank"
    SAVINGS = "savings"
    INVESTMENT = "investment"
    CARD = "card"
    CASH = "cash"
    PIGGY = "piggy"
    WALLET = "wallet"
    BUSINESS = "business"

    @property
    def label(self) -> str:
        return ACCOUNT_STYLES[self].label


class AccountStyleInfo(NamedTuple):
    label: str
    icon: str
    color: str


ACCOUNT_STYLES: dict[AccountStyle, AccountStyleInfo] = {
    AccountStyle.BANK: AccountStyleInfo("Current account", "building.columns.fill", "blue"),
    AccountStyle.SAVINGS: AccountStyleInfo("Savings", "banknote.fill", "orange"),
    AccountStyle.INVESTMENT: AccountStyleInfo("Investments", "chart.line.uptrend.xyaxis", "purple"),
    AccountStyle.CARD: AccountStyleInfo("Card", "creditcard.fill", "green"),
    AccountStyle.CASH: AccountStyleInfo("Cash", "dollarsign.circle.fill", "cyan"),
    AccountStyle.PIGGY: AccountStyleInfo("Piggy bank", "gift.fill", "pink"),
    AccountStyle.WALLET: AccountStyleInfo("Wallet", "wallet.bifold.fill", "brown"),
    AccountStyle.BUSINESS: AccountStyleInfo("Business", "briefcase.fill", "indigo"),
}

_ACCOUNT_KEYWORDS: list[tuple[AccountStyle, tuple[str, ...]]] = [
    (AccountStyle.BANK, ("current", "checking", "main")),
    (AccountStyle.SAVINGS, ("savings", "deposit", "rainy day")),
    (AccountStyle.INVESTMENT, ("invest", "stocks", "crypto", "brokerage", "shares")),
    (AccountStyle.CARD, ("card", "revolut", "n26", "monzo")),
    (AccountStyle.CASH, ("cash", "petty")),
    (AccountStyle.PIGGY, ("piggy", "jar")),
    (AccountStyle.WALLET, ("wallet",)),
    (AccountStyle.BUSINESS, ("business", "company", "freelance")),
]


def guess_account_style(name: str) -> AccountStyle:
    text = name.lower()
    for style, keywords in _ACCOUNT_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return style
    return AccountStyle.BANK


class Account(BaseModel):
    """An account the user tracks. Its ledger lives beside it, keyed by id."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
    )
    detail: str = Field(
        default="",
        max_length=200,
    )
    style: AccountStyle

    @model_validator(mode='before')
    @classmethod
    def default_style(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("style") is None and data.get("name"):
            return {**data, "style": guess_account_style(str(data["name"]))}
        return data


class WidgetShortcut(BaseModel):
    """
    Quick-entry template: one tap books the same transaction again.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    amount: Decimal = Field(
        ...,
        gt=0,
        decimal_places=2,
        description="Unsigned magnitude; direction comes from type"
    )
    comment: str = Field(default="", max_length=200)
    type: TransactionType
    category: TransactionCategory

    @model_validator(mode='before')
    @classmethod
    def default_category(cls, data: Any) -> Any:
        return fill_guessed_category(data, type_key="type")

    def to_transaction(self, on: date, is_potential: bool = False) -> Transaction:
        amount = self.amount if self.type is TransactionType.INCOME else -self.amount
        return Transaction(
            amount=amount,
            comment=self.comment,
            category=self.category,
            is_potential=is_potential,
            date=None if is_potential else on,
        )
