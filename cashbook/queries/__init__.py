"""Read-only ledger calculations."""

from cashbook.queries.calculations import (
    AccountSummary,
    available_years,
    category_breakdown,
    monthly_change_percentage,
    potential_transactions,
    summarize,
    total_for_month,
    total_for_year,
    total_potential,
    total_validated,
    validated_transactions,
)

__all__ = [
    "AccountSummary",
    "available_years",
    "category_breakdown",
    "monthly_change_percentage",
    "potential_transactions",
    "summarize",
    "total_for_month",
    "total_for_year",
    "total_potential",
    "total_validated",
    "validated_transactions",
]
