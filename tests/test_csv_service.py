"""Tests for CSV import and export."""

import pytest
from datetime import date
from decimal import Decimal

from cashbook.models import Transaction, TransactionCategory
from cashbook.services.csv_service import (
    export_csv,
    import_csv,
    transactions_from_csv,
    transactions_to_csv,
)


TODAY = date(2026, 2, 10)
HEADER = "Date,Type,Amount,Comment,Status,Category"


class TestExport:
    """Tests for rendering transactions."""

    def test_row_format(self):
        """Test one fully populated row."""
        tx = Transaction(
            amount=Decimal("-750"),
            comment="Rent, March",
            category=TransactionCategory.RENT,
            is_potential=False,
            date=date(2026, 3, 5),
        )
        lines = transactions_to_csv([tx]).splitlines()
        assert lines == [HEADER, "05/03/2026,Expense,750.00,Rent; March,Validated,Rent"]

    def test_undated_potential_row(self):
        """Test the placeholder date and the potential status."""
        tx = Transaction(amount=Decimal("1200.5"), comment="Bonus", category=TransactionCategory.SALARY)
        lines = transactions_to_csv([tx]).splitlines()
        assert lines[1] == "N/A,Income,1200.50,Bonus,Potential,Salary"

    def test_order_newest_first_then_undated(self):
        """Test that dated rows are sorted descending and undated ones trail."""
        old = Transaction(amount=Decimal("-1"), comment="Old", is_potential=False, date=date(2026, 1, 1))
        new = Transaction(amount=Decimal("-2"), comment="New", is_potential=False, date=date(2026, 2, 1))
        someday = Transaction(amount=Decimal("-3"), comment="Someday")
        comments = [line.split(",")[3] for line in transactions_to_csv([someday, old, new]).splitlines()[1:]]
        assert comments == ["New", "Old", "Someday"]

    def test_empty_export_has_header(self):
        """Test that an empty ledger still exports its header."""
        assert transactions_to_csv([]) == HEADER + "\n"


class TestImport:
    """Tests for parsing CSV text."""

    def test_parses_rows(self):
        """Test sign, status, date and category handling."""
        text = "\n".join([
            HEADER,
            "05/03/2026,Expense,750.00,Rent; March,Validated,Rent",
            "N/A,Income,100,Refund,Potential,Other",
        ])
        expense, refund = transactions_from_csv(text, TODAY)

        assert expense.amount == Decimal("-750.00")
        assert expense.comment == "Rent, March"
        assert expense.is_potential is False
        assert expense.date == date(2026, 3, 5)
        assert expense.category is TransactionCategory.RENT

        assert refund.amount == Decimal("100")
        assert refund.is_potential is True
        assert refund.date is None
        assert refund.category is TransactionCategory.OTHER

    def test_potential_rows_keep_planned_date(self):
        """Test that a dated potential row keeps its date and N/A stays undated."""
        text = "\n".join([
            HEADER,
            "01/04/2026,Expense,10,Gym,Potential,Other",
            "N/A,Expense,5,Coffee,Potential,Other",
        ])
        planned, undated = transactions_from_csv(text, TODAY)
        assert planned.is_potential is True
        assert planned.date == date(2026, 4, 1)
        assert undated.is_potential is True
        assert undated.date is None

    def test_validated_row_with_bad_date_uses_today(self):
        """Test the fallback date."""
        (tx,) = transactions_from_csv(HEADER + "\nsoon,Expense,10,Gym,Validated,Other", TODAY)
        assert tx.date == TODAY

    def test_unknown_category_is_guessed(self):
        """Test that a missing or unknown category falls back to the keyword guess."""
        text = "\n".join([
            HEADER,
            "01/02/2026,Expense,12.99,Netflix,Validated,Streaming",
            "01/02/2026,Expense,4,Coffee,Validated",
        ])
        netflix, coffee = transactions_from_csv(text, TODAY)
        assert netflix.category is TransactionCategory.SUBSCRIPTION
        assert coffee.category is TransactionCategory.EXPENSE

    def test_type_other_than_expense_is_income(self):
        """Test that only the Expense label makes an amount negative."""
        (tx,) = transactions_from_csv(HEADER + "\n01/02/2026,Refund,-15,Shop,Validated,Other", TODAY)
        assert tx.amount == Decimal("15")

    def test_skips_bad_rows(self):
        """Test that malformed rows are skipped without failing the import."""
        text = "\n".join([
            HEADER,
            "",
            "01/02/2026,Expense,10",
            "01/02/2026,Expense,ten,Gym,Validated,Other",
            "01/02/2026,Expense,NaN,Gym,Validated,Other",
            "01/02/2026,Expense,10,Gym,Validated,Other",
        ])
        transactions = transactions_from_csv(text, TODAY)
        assert len(transactions) == 1
        assert transactions[0].amount == Decimal("-10")

    def test_header_only(self):
        """Test that a header alone yields nothing."""
        assert transactions_from_csv(HEADER, TODAY) == []

    def test_imported_entries_are_new(self):
        """Test that imports get fresh ids and no rule link."""
        text = HEADER + "\n01/02/2026,Expense,10,Gym,Validated,Other"
        (first,) = transactions_from_csv(text, TODAY)
        (second,) = transactions_from_csv(text, TODAY)
        assert first.id != second.id
        assert first.source_rule_id is None


class TestFileRoundTrip:
    """Tests for the file helpers."""

    def test_export_then_import(self, tmp_path):
        """Test that a file written by export reads back with the same content."""
        transactions = [
            Transaction(amount=Decimal("-42.5"), comment="Dinner, Friday", is_potential=False, date=date(2026, 2, 6)),
            Transaction(amount=Decimal("2500"), comment="Salary", is_potential=False, date=date(2026, 2, 1)),
            Transaction(amount=Decimal("-60"), comment="Electricity"),
        ]
        path = tmp_path / "export.csv"

        assert export_csv(transactions, path) == 3
        imported = import_csv(path, TODAY)

        def key(tx):
            return tx.amount, tx.comment, tx.is_potential, tx.date, tx.category

        assert [key(tx) for tx in imported] == [key(tx) for tx in transactions]

    def test_import_handles_byte_order_mark(self, tmp_path):
        """Test files saved by spreadsheet tools."""
        path = tmp_path / "bom.csv"
        path.write_text("\ufeff" + HEADER + "\n01/02/2026,Income,5,Gift,Validated,Gift\n", encoding="utf-8")
        (tx,) = import_csv(path, TODAY)
        assert tx.category is TransactionCategory.GIFT


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
