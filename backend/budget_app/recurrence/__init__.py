"""
Recurring-transaction occurrence engine.

Usage:
    from budget_app.recurrence import build_rule, occurs_in_month

Rules:
    - RecurrenceRule / Frequency / build_rule
    - InvalidRecurrenceRule

Occurrences:
    - occurs_in_month
    - compute_occurrence_date
    - next_occurrence_on_or_after

Ledger:
    - MaterializedEntry
"""
from budget_app.recurrence.rules import (
    Frequency,
    InvalidRecurrenceRule,
    RecurrenceRule,
    build_rule,
    parse_frequency,
)
from budget_app.recurrence.engine import (
    compute_occurrence_date,
    days_until,
    next_occurrence_on_or_after,
    occurs_in_month,
)
from budget_app.recurrence.entries import MaterializedEntry

__all__ = [
    "Frequency",
    "InvalidRecurrenceRule",
    "MaterializedEntry",
    "RecurrenceRule",
    "build_rule",
    "parse_frequency",
    "compute_occurrence_date",
    "days_until",
    "next_occurrence_on_or_after",
    "occurs_in_month",
]
