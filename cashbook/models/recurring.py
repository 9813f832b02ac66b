"""
Recurring Rule Models

A recurring rule is a template: amount, direction, category and a fixed
frequency counted from a start date. The recurrence engine turns it into
ledger entries and records how far it got in last_generated_date.

DESIGN DECISION: Frequencies are a closed set.
There is no user-programmable schedule language.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

from cashbook.models.transaction import (
    TransactionCategory,
    TransactionType,
    fill_guessed_category,
)


class RecurrenceFrequency(str, Enum):
    """How often a rule fires."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"

    @property
    def label(self) -> str:
        return {
            RecurrenceFrequency.DAILY: "Every day",
            RecurrenceFrequency.WEEKLY: "Every week",
            RecurrenceFrequency.MONTHLY: "Every month",
            RecurrenceFrequency.YEARLY: "Every year",
        }[self]


class RecurringRule(BaseModel):
    """
    Template for a transaction that repeats on a fixed schedule.

    CRITICAL: last_generated_date is the checkpoint that prevents
    regeneration. Only the recurrence engine advances it.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique rule ID"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        decimal_places=2,
        description="Unsigned magnitude; direction comes from type"
    )
    comment: str = Field(
        default="",
        max_length=200,
    )
    type: TransactionType
    category: TransactionCategory = Field(
        ...,
        description="Category (guessed from the comment when omitted)"
    )
    frequency: RecurrenceFrequency = RecurrenceFrequency.MONTHLY
    start_date: date
    last_generated_date: Optional[date] = Field(
        default=None,
        description="Latest occurrence already materialized"
    )
    is_paused: bool = Field(
        default=False,
        description="Paused rules generate nothing"
    )

    @model_validator(mode='before')
    @classmethod
    def default_category(cls, data: Any) -> Any:
        return fill_guessed_category(data, type_key="type")

    @model_validator(mode='after')
    def validate_checkpoint(self) -> 'RecurringRule':
        if self.last_generated_date and self.last_generated_date < self.start_date:
            raise ValueError("last_generated_date cannot be before start_date")
        return self

    @property
    def signed_amount(self) -> Decimal:
        if self.type is TransactionType.INCOME:
            return self.amount
        return -self.amount
