"""
CSV Import / Export

Six columns, one transaction per row:

    Date,Type,Amount,Comment,Status,Category
    05/03/2026,Expense,750.00,Rent,Potential,Rent

- Date is dd/mm/YYYY, or N/A for undated entries
- Amount is always the magnitude; Type carries the sign
- Commas in comments are written as ';' and restored on import

DESIGN DECISION: Import is lenient.
Malformed rows are skipped and logged, never fatal; whatever could be
read is returned. Imported entries always get fresh ids and are never
linked to a recurring rule.
"""

import csv
import io
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Iterable, Optional

import structlog
from pydantic import ValidationError

from cashbook.models.transaction import Transaction, TransactionCategory, TransactionType


logger = structlog.get_logger(__name__)

CSV_HEADER = ["Date", "Type", "Amount", "Comment", "Status", "Category"]
DATE_FORMAT = "%d/%m/%Y"
NO_DATE = "N/A"
STATUS_POTENTIAL = "Potential"
STATUS_VALIDATED = "Validated"


def _export_order(transactions: Iterable[Transaction]) -> list[Transaction]:
    """Newest first; undated entries at the end in their original order."""
    transactions = list(transactions)
    dated = sorted((tx for tx in transactions if tx.date is not None), key=lambda tx: tx.date, reverse=True)
    undated = [tx for tx in transactions if tx.date is None]
    return dated + undated


def _to_row(tx: Transaction) -> list[str]:
    return [
        tx.date.strftime(DATE_FORMAT) if tx.date else NO_DATE,
        tx.type.label,
        f"{abs(tx.amount):.2f}",
        tx.comment.replace(",", ";"),
        STATUS_POTENTIAL if tx.is_potential else STATUS_VALIDATED,
        tx.category.label,
    ]


def transactions_to_csv(transactions: Iterable[Transaction]) -> str:
    """Render transactions as CSV text, header included."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for tx in _export_order(transactions):
        writer.writerow(_to_row(tx))
    return buffer.getvalue()


def _parse_date(value: str) -> Optional[date]:
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except ValueError:
        return None


def _parse_row(row: list[str], today: date) -> Optional[Transaction]:
    columns = [c.strip() for c in row]

    try:
        amount = Decimal(columns[2])
    except InvalidOperation:
        logger.warning("csv_row_skipped", reason="invalid_amount", value=columns[2])
        return None
    if not amount.is_finite():
        logger.warning("csv_row_skipped", reason="invalid_amount", value=columns[2])
        return None

    is_expense = columns[1] == TransactionType.EXPENSE.label
    amount = -abs(amount) if is_expense else abs(amount)

    is_potential = columns[4] == STATUS_POTENTIAL
    tx_date = _parse_date(columns[0])
    if tx_date is None and not is_potential:
        tx_date = today

    category = None
    if len(columns) >= 6:
        category = TransactionCategory.from_label(columns[5])

    data = {
        "amount": amount,
        "comment": columns[3].replace(";", ","),
        "is_potential": is_potential,
        "date": tx_date,
    }
    if category is not None:
        data["category"] = category

    try:
        return Transaction(**data)
    except ValidationError as e:
        logger.warning("csv_row_skipped", reason="invalid_transaction", error=str(e))
        return None


def transactions_from_csv(text: str, today: date) -> list[Transaction]:
    """
    Parse CSV text into new transactions.

    The first line is the header. Blank lines, rows with fewer than five
    columns and rows whose amount does not parse are skipped. A validated
    row with an unreadable date is booked on `today`.
    """
    reader = csv.reader(io.StringIO(text))
    next(reader, None)

    transactions = []
    for line_number, row in enumerate(reader, start=2):
        if not any(cell.strip() for cell in row):
            continue
        if len(row) < 5:
            logger.warning("csv_row_skipped", reason="too_few_columns", line=line_number)
            continue
        tx = _parse_row(row, today)
        if tx is not None:
            transactions.append(tx)

    logger.info("csv_parsed", imported=len(transactions))
    return transactions


def export_csv(transactions: Iterable[Transaction], path: Path) -> int:
    """Write transactions to `path`. Returns the number of rows written."""
    transactions = list(transactions)
    Path(path).write_text(transactions_to_csv(transactions), encoding="utf-8")
    logger.info("csv_exported", path=str(path), rows=len(transactions))
    return len(transactions)


def import_csv(path: Path, today: date) -> list[Transaction]:
    """Read transactions from the CSV file at `path`."""
    text = Path(path).read_text(encoding="utf-8-sig")
    return transactions_from_csv(text, today)
