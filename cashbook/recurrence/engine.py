"""
Recurrence Engine

Turns recurring rules into ledger entries and promotes due entries.

For every account, on each run:
1. Generation: each active rule materializes its occurrences between
   today and the horizon end, skipping days it already covered
   (checkpoint) and days that already hold one of its entries.
2. Auto-validation: every dated potential entry whose day has come
   becomes validated, keeping its id and date.

DESIGN DECISION: The engine never reads the clock and never does I/O.
"now" is passed in, ledgers are mutated in place, and the caller gets
back a report saying what changed. Persisting and auditing is the
orchestrator's job.
"""

from datetime import date, datetime, timezone, tzinfo
from typing import Iterable, MutableMapping
from uuid import UUID

import structlog
from dateutil.relativedelta import relativedelta
from pydantic import BaseModel, Field

from cashbook.models.account import Account
from cashbook.models.ledger import Ledger
from cashbook.models.recurring import RecurringRule
from cashbook.models.transaction import Transaction
from cashbook.recurrence.scheduler import occurrences


logger = structlog.get_logger(__name__)


def local_today(now: datetime, tz: tzinfo = timezone.utc) -> date:
    """
    Calendar day of `now` in `tz`.

    Aware datetimes are converted first; naive ones are taken as
    already being local time.
    """
    if now.tzinfo is None or now.utcoffset() is None:
        return now.date()
    return now.astimezone(tz).date()


class GeneratedOccurrence(BaseModel):
    """One transaction materialized from a rule."""
    account_id: UUID
    rule_id: UUID
    transaction_id: UUID
    day: date
    is_potential: bool


class AutoValidation(BaseModel):
    """One due potential transaction promoted to validated."""
    account_id: UUID
    transaction_id: UUID


class ProcessingReport(BaseModel):
    """
    Outcome of one engine run.

    A run that generated nothing, validated nothing and moved no
    checkpoint left every ledger exactly as it found it.
    """
    today: date
    horizon_end: date
    generated: list[GeneratedOccurrence] = Field(default_factory=list)
    validated: list[AutoValidation] = Field(default_factory=list)
    advanced_rules: list[UUID] = Field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.generated or self.validated or self.advanced_rules)

    def generated_for(self, account_id: UUID) -> list[GeneratedOccurrence]:
        return [g for g in self.generated if g.account_id == account_id]

    def validated_for(self, account_id: UUID) -> list[UUID]:
        return [v.transaction_id for v in self.validated if v.account_id == account_id]


class RecurrenceEngine:
    """
    Stateless processor for recurring rules.

    Args:
        horizon_months: how far past today occurrences are materialized
        tz: time zone that decides which calendar day `now` falls on
    """

    def __init__(self, horizon_months: int = 1, tz: tzinfo = timezone.utc):
        if horizon_months < 1:
            raise ValueError("horizon_months must be at least 1")
        self._horizon_months = horizon_months
        self._tz = tz

    @property
    def horizon_months(self) -> int:
        return self._horizon_months

    def today(self, now: datetime) -> date:
        return local_today(now, self._tz)

    def horizon_end(self, today: date) -> date:
        return today + relativedelta(months=self._horizon_months)

    def process_all(
        self,
        accounts: Iterable[Account],
        ledgers: MutableMapping[UUID, Ledger],
        now: datetime,
    ) -> bool:
        """Run generation and auto-validation. Returns True if anything changed."""
        return self.run(accounts, ledgers, now).changed

    def run(
        self,
        accounts: Iterable[Account],
        ledgers: MutableMapping[UUID, Ledger],
        now: datetime,
    ) -> ProcessingReport:
        today = self.today(now)
        report = ProcessingReport(today=today, horizon_end=self.horizon_end(today))

        for account in accounts:
            ledger = ledgers.get(account.id)
            if ledger is None:
                continue

            for rule in ledger.recurring_rules:
                if rule.is_paused:
                    continue
                self._generate(account.id, ledger, rule, report)

            self._auto_validate(account.id, ledger, today, report)

        logger.debug(
            "recurrence_processed",
            today=today.isoformat(),
            generated=len(report.generated),
            validated=len(report.validated),
            advanced_rules=len(report.advanced_rules),
        )
        return report

    def _generate(
        self,
        account_id: UUID,
        ledger: Ledger,
        rule: RecurringRule,
        report: ProcessingReport,
    ) -> None:
        pending = [
            day
            for day in occurrences(rule, report.today, report.horizon_end)
            if rule.last_generated_date is None or day > rule.last_generated_date
        ]
        if not pending:
            return

        taken = {tx.date for tx in ledger.transactions_for_rule(rule.id)}
        for day in pending:
            if day in taken:
                continue
            tx = Transaction(
                amount=rule.signed_amount,
                comment=rule.comment,
                category=rule.category,
                is_potential=day > report.today,
                date=day,
                source_rule_id=rule.id,
            )
            ledger.add(tx)
            taken.add(day)
            report.generated.append(
                GeneratedOccurrence(
                    account_id=account_id,
                    rule_id=rule.id,
                    transaction_id=tx.id,
                    day=day,
                    is_potential=tx.is_potential,
                )
            )

        # Checkpoint moves even when every pending day was already covered
        rule.last_generated_date = max(pending)
        report.advanced_rules.append(rule.id)
        logger.debug(
            "recurring_rule_advanced",
            rule_id=str(rule.id),
            checkpoint=rule.last_generated_date.isoformat(),
        )

    def _auto_validate(
        self,
        account_id: UUID,
        ledger: Ledger,
        today: date,
        report: ProcessingReport,
    ) -> None:
        due = [
            tx for tx in ledger.transactions
            if tx.is_potential and tx.date is not None and tx.date <= today
        ]
        for tx in due:
            ledger.update(tx.validated(tx.date))
            report.validated.append(
                AutoValidation(account_id=account_id, transaction_id=tx.id)
            )


def remove_generated_occurrences(ledger: Ledger, rule_id: UUID) -> int:
    """
    Drop a rule's still-potential output from the ledger.

    Validated occurrences are history and stay. Returns how many
    transactions were removed.
    """
    doomed = [tx.id for tx in ledger.transactions_for_rule(rule_id) if tx.is_potential]
    for tx_id in doomed:
        ledger.remove(tx_id)
    if doomed:
        logger.debug("generated_occurrences_removed", rule_id=str(rule_id), count=len(doomed))
    return len(doomed)
