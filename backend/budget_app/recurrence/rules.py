"""
Recurrence rule value object.

A RecurrenceRule describes a repeating income or expense independently of how
it is stored. Rules are immutable; editing a template produces a new rule and
never changes entries that were already materialized from the old one.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Optional
from uuid import UUID


class Frequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


TRANSACTION_TYPES = ("income", "expense")


class InvalidRecurrenceRule(ValueError):
    """Raised when a rule's fields are inconsistent or out of range."""


def _as_date(value) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    return value


@dataclass(frozen=True)
class RecurrenceRule:
    frequency: Frequency
    start_date: date
    end_date: Optional[date] = None
    day_of_month: Optional[int] = None
    is_active: bool = True

    # Payload copied onto materialized entries
    id: Optional[UUID] = None
    budget_id: Optional[UUID] = None
    transaction_type: str = "expense"
    category_id: str = ""
    category_name: str = ""
    amount: Decimal = Decimal("0")
    description: Optional[str] = None
    is_subscription: bool = False

    def validate(self) -> "RecurrenceRule":
        if not isinstance(self.frequency, Frequency):
            raise InvalidRecurrenceRule(f"Unsupported frequency: {self.frequency!r}")
        if self.day_of_month is not None and not 1 <= self.day_of_month <= 31:
            raise InvalidRecurrenceRule("day_of_month must be between 1 and 31")
        if self.end_date is not None and self.end_date < self.start_date:
            raise InvalidRecurrenceRule("end_date must not be before start_date")
        if self.transaction_type not in TRANSACTION_TYPES:
            raise InvalidRecurrenceRule(f"Unsupported transaction type: {self.transaction_type!r}")
        if self.amount <= 0:
            raise InvalidRecurrenceRule("amount must be positive")
        return self


def parse_frequency(value) -> Frequency:
    if isinstance(value, Frequency):
        return value
    try:
        return Frequency(str(value).strip().lower())
    except ValueError as exc:
        raise InvalidRecurrenceRule(f"Unsupported frequency: {value!r}") from exc


def build_rule(
    frequency,
    start_date,
    amount,
    end_date=None,
    day_of_month: Optional[int] = None,
    is_active: bool = True,
    **payload,
) -> RecurrenceRule:
    """
    Build and validate a RecurrenceRule from loosely typed values
    (strings for frequency, datetimes for dates, floats for amounts).

    Raises:
        InvalidRecurrenceRule: if any field is invalid.
    """
    if start_date is None:
        raise InvalidRecurrenceRule("start_date is required")
    try:
        amount = Decimal(str(amount))
    except InvalidOperation as exc:
        raise InvalidRecurrenceRule(f"Invalid amount: {amount!r}") from exc

    rule = RecurrenceRule(
        frequency=parse_frequency(frequency),
        start_date=_as_date(start_date),
        end_date=_as_date(end_date),
        day_of_month=day_of_month,
        is_active=bool(is_active),
        amount=amount,
        **payload,
    )
    return rule.validate()
