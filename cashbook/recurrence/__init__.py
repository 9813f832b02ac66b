"""Recurring rule scheduling and processing."""

from cashbook.recurrence.engine import (
    AutoValidation,
    GeneratedOccurrence,
    ProcessingReport,
    RecurrenceEngine,
    local_today,
    remove_generated_occurrences,
)
from cashbook.recurrence.scheduler import iter_occurrences, occurrence_at, occurrences

__all__ = [
    "AutoValidation",
    "GeneratedOccurrence",
    "ProcessingReport",
    "RecurrenceEngine",
    "iter_occurrences",
    "local_today",
    "occurrence_at",
    "occurrences",
    "remove_generated_occurrences",
]
