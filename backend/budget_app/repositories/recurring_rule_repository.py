"""
Recurring Rule Repository
Loads and stores recurring transaction templates
"""
import logging
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from budget_app.models import RecurringTransaction
from budget_app.recurrence import InvalidRecurrenceRule, RecurrenceRule, build_rule

logger = logging.getLogger(__name__)


class RecurringRuleRepository:
    """Repository for RecurringTransaction templates"""

    def __init__(self, db: Session):
        self.db = db

    def find_active_rules(self, budget_id: UUID) -> List[RecurrenceRule]:
        """Active rules of a budget; rows that are not valid rules are left out."""
        rules, _ = self.load_active_rules(budget_id)
        return rules

    def load_active_rules(self, budget_id: UUID) -> Tuple[List[RecurrenceRule], int]:
        """
        Active rules of a budget as RecurrenceRule objects.

        Rows that cannot be turned into a valid rule (unknown frequency,
        inverted date range, ...) produce no occurrences. They are still
        active templates, so their number is returned alongside the rules.

        Returns:
            Tuple of (valid rules, number of active rows that were unusable)
        """
        rows = self.db.query(RecurringTransaction).filter(
            RecurringTransaction.budget_id == budget_id,
            RecurringTransaction.is_active == True
        ).order_by(RecurringTransaction.created_at).all()

        rules = []
        for row in rows:
            rule = self.to_domain_or_none(row)
            if rule is not None:
                rules.append(rule)
        return rules, len(rows) - len(rules)

    def list_for_budget(
        self,
        budget_id: UUID,
        subscriptions_only: bool = False
    ) -> List[RecurringTransaction]:
        query = self.db.query(RecurringTransaction).filter(
            RecurringTransaction.budget_id == budget_id
        )
        if subscriptions_only:
            query = query.filter(RecurringTransaction.is_subscription == True)
        return query.order_by(RecurringTransaction.created_at.desc()).all()

    def get(self, recurring_id: UUID) -> Optional[RecurringTransaction]:
        return self.db.query(RecurringTransaction).filter(
            RecurringTransaction.id == recurring_id
        ).first()

    def create(self, rule: RecurrenceRule) -> RecurringTransaction:
        row = RecurringTransaction(budget_id=rule.budget_id)
        self._apply(row, rule)
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return row

    def update(self, row: RecurringTransaction, rule: RecurrenceRule) -> RecurringTransaction:
        """Overwrite the template. Entries already materialized are left alone."""
        self._apply(row, rule)
        self.db.commit()
        self.db.refresh(row)
        return row

    def delete(self, row: RecurringTransaction) -> None:
        self.db.delete(row)
        self.db.commit()

    @staticmethod
    def _apply(row: RecurringTransaction, rule: RecurrenceRule) -> None:
        row.transaction_type = rule.transaction_type
        row.category_id = rule.category_id
        row.category_name = rule.category_name
        row.amount = rule.amount
        row.description = rule.description
        row.frequency = rule.frequency.value
        row.start_date = rule.start_date
        row.end_date = rule.end_date
        row.day_of_month = rule.day_of_month
        row.is_active = rule.is_active
        row.is_subscription = rule.is_subscription

    @staticmethod
    def to_domain(row: RecurringTransaction) -> RecurrenceRule:
        """
        Convert a stored template to a validated RecurrenceRule.

        Raises:
            InvalidRecurrenceRule: if the stored values are not a valid rule
        """
        return build_rule(
            frequency=row.frequency,
            start_date=row.start_date,
            amount=row.amount,
            end_date=row.end_date,
            day_of_month=row.day_of_month,
            is_active=row.is_active,
            id=row.id,
            budget_id=row.budget_id,
            transaction_type=row.transaction_type,
            category_id=row.category_id,
            category_name=row.category_name,
            description=row.description,
            is_subscription=bool(row.is_subscription),
        )

    def to_domain_or_none(self, row: RecurringTransaction) -> Optional[RecurrenceRule]:
        try:
            return self.to_domain(row)
        except InvalidRecurrenceRule as exc:
            logger.warning(f"[RECURRING] Skipping template {row.id} ({row.frequency}): {exc}")
            return None
