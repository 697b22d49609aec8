"""
Ledger entries materialized from recurrence rules.
"""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

from budget_app.recurrence.engine import compute_occurrence_date
from budget_app.recurrence.rules import RecurrenceRule


@dataclass(frozen=True)
class MaterializedEntry:
    budget_id: UUID
    recurring_id: UUID
    year: int
    month: int
    date: date
    transaction_type: str
    category_id: str
    category_name: str
    amount: Decimal
    description: Optional[str] = None
    id: UUID = field(default_factory=uuid4)

    @property
    def period(self) -> tuple:
        return (self.year, self.month)

    @classmethod
    def from_rule(cls, rule: RecurrenceRule, year: int, month: int) -> "MaterializedEntry":
        """Build the entry `rule` produces for (year, month)."""
        return cls(
            budget_id=rule.budget_id,
            recurring_id=rule.id,
            year=year,
            month=month,
            date=compute_occurrence_date(rule, year, month),
            transaction_type=rule.transaction_type,
            category_id=rule.category_id,
            category_name=rule.category_name,
            amount=rule.amount,
            description=rule.description or f"Recurring: {rule.category_name}",
        )
