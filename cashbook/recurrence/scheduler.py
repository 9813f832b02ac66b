"""
Occurrence Scheduler

Pure date arithmetic: which calendar days does a rule fall on?

The n-th occurrence is always computed from the start date
(start + n periods), never from the previous occurrence, so a rule that
starts on the 31st clamps to shorter months without drifting:
    2026-01-31 -> 2026-02-28 -> 2026-03-31 -> 2026-04-30

No clock, no time zone, no I/O.
"""

from datetime import date, timedelta
from typing import Iterator, Optional

from dateutil.relativedelta import relativedelta

from cashbook.models.recurring import RecurrenceFrequency, RecurringRule


def occurrence_at(start: date, frequency: RecurrenceFrequency, n: int) -> date:
    """Return the n-th occurrence (n = 0 is the start date itself)."""
    if frequency is RecurrenceFrequency.DAILY:
        return start + timedelta(days=n)
    if frequency is RecurrenceFrequency.WEEKLY:
        return start + timedelta(weeks=n)
    if frequency is RecurrenceFrequency.MONTHLY:
        # relativedelta clamps to the last valid day of the target month
        return start + relativedelta(months=n)
    return start + relativedelta(years=n)


def _first_index_not_before(start: date, frequency: RecurrenceFrequency, from_date: date) -> int:
    """Smallest n whose occurrence is >= from_date."""
    if from_date <= start:
        return 0

    if frequency is RecurrenceFrequency.DAILY:
        return (from_date - start).days
    if frequency is RecurrenceFrequency.WEEKLY:
        return -(-(from_date - start).days // 7)

    # Clamping makes month arithmetic non-linear: jump to one period
    # before the target, then step.
    if frequency is RecurrenceFrequency.MONTHLY:
        n = (from_date.year - start.year) * 12 + (from_date.month - start.month) - 1
    else:
        n = from_date.year - start.year - 1
    n = max(n, 0)
    while occurrence_at(start, frequency, n) < from_date:
        n += 1
    return n


def iter_occurrences(
    start: date,
    frequency: RecurrenceFrequency,
    from_date: Optional[date] = None,
) -> Iterator[date]:
    """
    Yield occurrences in ascending order, starting at the first one
    on or after from_date. Unbounded: the caller decides where to stop.
    """
    n = _first_index_not_before(start, frequency, from_date) if from_date else 0
    while True:
        yield occurrence_at(start, frequency, n)
        n += 1


def occurrences(rule: RecurringRule, from_date: date, to_date: date) -> list[date]:
    """
    Every occurrence d of the rule with from_date <= d <= to_date.

    Ascending and free of duplicates. An empty window, or a rule that
    starts after it, yields an empty list. The paused flag is not
    consulted here.
    """
    if from_date > to_date or rule.start_date > to_date:
        return []

    result = []
    for day in iter_occurrences(rule.start_date, rule.frequency, from_date):
        if day > to_date:
            break
        result.append(day)
    return result
