"""
Transaction Models for Cashbook

A transaction is one ledger movement. There are two kinds:
1. Validated: it happened, it has a date, it counts in the current balance
2. Potential: it is planned, it may carry a planned date, it only counts
   in the projected balance until it is promoted

DESIGN DECISION: Transactions are immutable.
Every edit produces a new record that keeps the same id, so a ledger
can swap it in place and nothing else holds a stale half-edited copy.
"""

import datetime as dt
import re
from decimal import Decimal
from enum import Enum
from typing import Any, Literal, NamedTuple, Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a movement."""
    INCOME = "income"
    EXPENSE = "expense"

    @property
    def label(self) -> str:
        return "Income" if self is TransactionType.INCOME else "Expense"

    @classmethod
    def from_amount(cls, amount: Decimal) -> "TransactionType":
        return cls.INCOME if amount >= 0 else cls.EXPENSE


class TransactionCategory(str, Enum):
    """
    Categories shared by transactions, shortcuts and recurring rules.

    DESIGN DECISION: One closed set for every kind of entry.
    Display data lives in CATEGORY_STYLES, not on the enum.
    """
    # Income
    SALARY = "salary"
    INCOME = "income"
    # Housing
    RENT = "rent"
    UTILITIES = "utilities"
    # Subscriptions & services
    SUBSCRIPTION = "subscription"
    PHONE = "phone"
    INSURANCE = "insurance"
    # Everyday
    FOOD = "food"
    SHOPPING = "shopping"
    FUEL = "fuel"
    TRANSPORT = "transport"
    # Finance
    LOAN = "loan"
    SAVINGS = "savings"
    # Personal
    FAMILY = "family"
    HEALTH = "health"
    GIFT = "gift"
    PARTY = "party"
    # Generic
    EXPENSE = "expense"
    OTHER = "other"

    @property
    def style(self) -> "CategoryStyle":
        return CATEGORY_STYLES[self]

    @property
    def label(self) -> str:
        return CATEGORY_STYLES[self].label

    @classmethod
    def from_label(cls, label: str) -> Optional["TransactionCategory"]:
        """Resolve a display label (or raw value) back to a category."""
        wanted = label.strip().lower()
        if not wanted:
            return None
        for category, style in CATEGORY_STYLES.items():
            if style.label.lower() == wanted or category.value == wanted:
                return category
        return None


class CategoryStyle(NamedTuple):
    """Display metadata for a category."""
    label: str
    icon: str
    color: str


CATEGORY_STYLES: dict[TransactionCategory, CategoryStyle] = {
    TransactionCategory.SALARY: CategoryStyle("Salary", "briefcase.fill", "green"),
    TransactionCategory.INCOME: CategoryStyle("Income", "arrow.down.circle.fill", "green"),
    TransactionCategory.RENT: CategoryStyle("Rent", "house.fill", "orange"),
    TransactionCategory.UTILITIES: CategoryStyle("Utilities", "bolt.fill", "yellow"),
    TransactionCategory.SUBSCRIPTION: CategoryStyle("Subscription", "play.rectangle.fill", "purple"),
    TransactionCategory.PHONE: CategoryStyle("Phone", "iphone", "indigo"),
    TransactionCategory.INSURANCE: CategoryStyle("Insurance", "shield.fill", "blue"),
    TransactionCategory.FOOD: CategoryStyle("Restaurant", "fork.knife", "yellow"),
    TransactionCategory.SHOPPING: CategoryStyle("Groceries", "cart.fill", "blue"),
    TransactionCategory.FUEL: CategoryStyle("Fuel", "fuelpump.fill", "orange"),
    TransactionCategory.TRANSPORT: CategoryStyle("Transport", "car.fill", "cyan"),
    TransactionCategory.LOAN: CategoryStyle("Loan", "percent", "red"),
    TransactionCategory.SAVINGS: CategoryStyle("Savings", "banknote.fill", "mint"),
    TransactionCategory.FAMILY: CategoryStyle("Family", "person.fill", "purple"),
    TransactionCategory.HEALTH: CategoryStyle("Health", "cross.case.fill", "mint"),
    TransactionCategory.GIFT: CategoryStyle("Gift", "gift.fill", "indigo"),
    TransactionCategory.PARTY: CategoryStyle("Going out", "heart.fill", "pink"),
    TransactionCategory.EXPENSE: CategoryStyle("Expense", "arrow.up.circle.fill", "red"),
    TransactionCategory.OTHER: CategoryStyle("Other", "ellipsis.circle.fill", "gray"),
}


# First matching group wins, so order matters. Keywords match at word starts.
_CATEGORY_KEYWORDS: list[tuple[TransactionCategory, tuple[str, ...]]] = [
    (TransactionCategory.RENT, ("rent", "apartment", "flat", "house")),
    (TransactionCategory.SALARY, ("salary", "payroll", "paycheck", "wage")),
    (TransactionCategory.SUBSCRIPTION, ("netflix", "spotify", "subscription", "membership")),
    (TransactionCategory.INSURANCE, ("insurance", "mutual")),
    (TransactionCategory.LOAN, ("loan", "mortgage", "credit")),
    (TransactionCategory.UTILITIES, ("electricity", "water", "gas bill", "utilities", "energy")),
    (TransactionCategory.SAVINGS, ("savings", "deposit", "nest egg")),
    (TransactionCategory.PHONE, ("phone", "internet", "mobile", "broadband")),
    (TransactionCategory.FUEL, ("fuel", "petrol", "gasoline", "diesel")),
    (TransactionCategory.SHOPPING, ("grocer", "supermarket", "shopping")),
    (TransactionCategory.FAMILY, ("mom", "dad", "family")),
    (TransactionCategory.PARTY, ("party", "bar", "night out")),
    (TransactionCategory.FOOD, ("restaurant", "lunch", "dinner", "meal")),
    (TransactionCategory.TRANSPORT, ("car", "transport", "train", "taxi", "uber", "bus")),
    (TransactionCategory.HEALTH, ("doctor", "pharmacy", "health")),
    (TransactionCategory.GIFT, ("gift", "birthday")),
]


def guess_category(comment: str, type_: TransactionType) -> TransactionCategory:
    """
    Guess a category from free text.

    Falls back to the generic income/expense category for the direction.
    """
    text = comment.lower()
    for category, keywords in _CATEGORY_KEYWORDS:
        if any(re.search(rf"\b{re.escape(keyword)}", text) for keyword in keywords):
            return category
    if type_ is TransactionType.INCOME:
        return TransactionCategory.INCOME
    return TransactionCategory.EXPENSE


def fill_guessed_category(data: Any, type_key: Optional[str] = None) -> Any:
    """
    Model 'before' hook: supply a guessed category when none was given.

    With type_key the direction is read from that field, otherwise
    from the sign of 'amount'.
    """
    if not isinstance(data, dict) or data.get("category") is not None:
        return data
    if type_key is not None:
        raw_type = data.get(type_key)
        if raw_type is None:
            return data
        type_ = TransactionType(raw_type)
    else:
        raw_amount = data.get("amount")
        if raw_amount is None:
            return data
        type_ = TransactionType.from_amount(Decimal(str(raw_amount)))
    return {**data, "category": guess_category(data.get("comment") or "", type_)}


# =============================================================================
# DATE UPDATE - explicit tri-state instruction
# =============================================================================

class DateUpdate(BaseModel):
    """
    How an edit treats a transaction's date.

    keep: leave the current date alone
    set: replace it with value
    clear: remove it (only legal for potential transactions)
    """
    model_config = ConfigDict(frozen=True)

    kind: Literal["keep", "set", "clear"] = "keep"
    value: Optional[dt.date] = None

    @model_validator(mode='after')
    def check_value(self) -> 'DateUpdate':
        if self.kind == "set" and self.value is None:
            raise ValueError("A 'set' date update needs a value")
        if self.kind != "set" and self.value is not None:
            raise ValueError(f"A '{self.kind}' date update takes no value")
        return self

    @classmethod
    def keep(cls) -> 'DateUpdate':
        return cls(kind="keep")

    @classmethod
    def set_to(cls, value: dt.date) -> 'DateUpdate':
        return cls(kind="set", value=value)

    @classmethod
    def clear(cls) -> 'DateUpdate':
        return cls(kind="clear")

    def apply(self, current: Optional[dt.date]) -> Optional[dt.date]:
        if self.kind == "set":
            return self.value
        if self.kind == "clear":
            return None
        return current


# =============================================================================
# CORE TRANSACTION MODEL
# =============================================================================

class Transaction(BaseModel):
    """
    One ledger movement.

    CRITICAL: A validated transaction always has a date.
    A potential one may be undated ("someday") or carry the planned
    date of a scheduled occurrence awaiting auto-validation.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Stable identifier, kept across edits"
    )
    amount: Decimal = Field(
        ...,
        description="Signed amount: positive is income, negative is expense"
    )
    comment: str = Field(
        default="",
        max_length=200,
        description="Free text shown in lists"
    )
    category: TransactionCategory = Field(
        ...,
        description="Category (guessed from the comment when omitted)"
    )
    is_potential: bool = Field(
        default=True,
        description="Planned but not yet validated"
    )
    date: Optional[dt.date] = Field(
        default=None,
        description="Booking date, or planned date for scheduled potentials"
    )
    source_rule_id: Optional[UUID] = Field(
        default=None,
        description="Recurring rule that generated this entry, if any"
    )

    @model_validator(mode='before')
    @classmethod
    def default_category(cls, data: Any) -> Any:
        return fill_guessed_category(data)

    @model_validator(mode='after')
    def validate_date(self) -> 'Transaction':
        """Validated entries must be dated."""
        if not self.is_potential and self.date is None:
            raise ValueError("A validated transaction must have a date")
        return self

    @property
    def type(self) -> TransactionType:
        return TransactionType.from_amount(self.amount)

    @property
    def is_generated(self) -> bool:
        return self.source_rule_id is not None

    def validated(self, at: dt.date) -> 'Transaction':
        """Return the validated copy of this transaction, booked on `at`."""
        return self.model_copy(update={"is_potential": False, "date": at})

    def modified(
        self,
        amount: Optional[Decimal] = None,
        comment: Optional[str] = None,
        is_potential: Optional[bool] = None,
        date: DateUpdate = DateUpdate.keep(),
        category: Optional[TransactionCategory] = None,
    ) -> 'Transaction':
        """
        Return an edited copy with the same id.

        Arguments left as None keep their current value; the date uses
        an explicit DateUpdate so "unchanged" and "cleared" never collide.
        The result is fully re-validated.
        """
        data = self.model_dump()
        if amount is not None:
            data["amount"] = amount
        if comment is not None:
            data["comment"] = comment
        if is_potential is not None:
            data["is_potential"] = is_potential
        if category is not None:
            data["category"] = category
        data["date"] = date.apply(self.date)
        return Transaction(**data)
