"""
Ledger Calculations

DESIGN DECISION: Calculations are READ-ONLY.
Every function takes transactions in and returns a number or a new list.
Nothing here mutates a ledger, so the same inputs always give the same
answer and callers can run them on any slice of data.

Balances follow one rule: validated entries make up the current balance,
potential entries only the projected one.
"""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from dateutil.relativedelta import relativedelta
from pydantic import BaseModel

from cashbook.models.transaction import Transaction, TransactionCategory, TransactionType


ZERO = Decimal("0")


# =============================================================================
# TOTALS
# =============================================================================

def total_validated(transactions: Iterable[Transaction]) -> Decimal:
    return sum((tx.amount for tx in transactions if not tx.is_potential), ZERO)


def total_potential(transactions: Iterable[Transaction]) -> Decimal:
    return sum((tx.amount for tx in transactions if tx.is_potential), ZERO)


def available_years(transactions: Iterable[Transaction]) -> list[int]:
    """Distinct years holding validated entries, ascending."""
    return sorted({tx.date.year for tx in transactions if not tx.is_potential and tx.date})


def total_for_year(transactions: Iterable[Transaction], year: int) -> Decimal:
    return total_validated(validated_transactions(transactions, year=year))


def total_for_month(transactions: Iterable[Transaction], year: int, month: int) -> Decimal:
    return total_validated(validated_transactions(transactions, year=year, month=month))


def monthly_change_percentage(
    transactions: Iterable[Transaction],
    today: date,
) -> Optional[Decimal]:
    """
    Change of this month's validated total against last month's, in percent.

    None when last month's total is zero (nothing to compare against).
    Divides by the absolute previous total so the sign always says
    whether the balance went up or down.
    """
    transactions = list(transactions)
    previous_month = today - relativedelta(months=1)

    current = total_for_month(transactions, today.year, today.month)
    previous = total_for_month(transactions, previous_month.year, previous_month.month)

    if previous == 0:
        return None
    return (current - previous) / abs(previous) * 100


# =============================================================================
# FILTERS
# =============================================================================

def potential_transactions(transactions: Iterable[Transaction]) -> list[Transaction]:
    return [tx for tx in transactions if tx.is_potential]


def validated_transactions(
    transactions: Iterable[Transaction],
    year: Optional[int] = None,
    month: Optional[int] = None,
) -> list[Transaction]:
    """Validated entries, optionally restricted to a year and/or a month number."""
    result = [tx for tx in transactions if not tx.is_potential and tx.date is not None]
    if year is not None:
        result = [tx for tx in result if tx.date.year == year]
    if month is not None:
        result = [tx for tx in result if tx.date.month == month]
    return result


def category_breakdown(
    transactions: Iterable[Transaction],
    year: Optional[int] = None,
    month: Optional[int] = None,
    type: TransactionType = TransactionType.EXPENSE,
) -> list[tuple[TransactionCategory, Decimal]]:
    """
    Absolute totals per category for validated entries of one direction.

    Sorted by total, largest first; ties keep category order.
    """
    totals: dict[TransactionCategory, Decimal] = defaultdict(lambda: ZERO)
    for tx in validated_transactions(transactions, year=year, month=month):
        if tx.type is type:
            totals[tx.category] += abs(tx.amount)
    order = list(TransactionCategory)
    return sorted(totals.items(), key=lambda item: (-item[1], order.index(item[0])))


# =============================================================================
# SUMMARY
# =============================================================================

class AccountSummary(BaseModel):
    """Headline figures for one account."""
    account_name: str
    current_balance: Decimal
    projected_balance: Decimal
    potential_count: int
    month_total: Decimal
    monthly_change: Optional[Decimal] = None


def summarize(account_name: str, transactions: Iterable[Transaction], today: date) -> AccountSummary:
    transactions = list(transactions)
    current = total_validated(transactions)
    return AccountSummary(
        account_name=account_name,
        current_balance=current,
        projected_balance=current + total_potential(transactions),
        potential_count=len(potential_transactions(transactions)),
        month_total=total_for_month(transactions, today.year, today.month),
        monthly_change=monthly_change_percentage(transactions, today),
    )
