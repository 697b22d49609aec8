"""
Read-only views over recurring templates: upcoming payments for the
dashboard and the subscriptions tracker. Nothing here writes to the ledger.
"""
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
import logging
from typing import Dict, List, Optional

from budget_app.recurrence import Frequency, RecurrenceRule, days_until, next_occurrence_on_or_after
from budget_app.repositories import RecurringRuleRepository

logger = logging.getLogger(__name__)

OCCURRENCES_PER_YEAR = {
    Frequency.DAILY: 365,
    Frequency.WEEKLY: 52,
    Frequency.BIWEEKLY: 26,
    Frequency.MONTHLY: 12,
    Frequency.YEARLY: 1,
}

CENT = Decimal("0.01")


def yearly_cost(rule: RecurrenceRule) -> Decimal:
    return rule.amount * OCCURRENCES_PER_YEAR[rule.frequency]


def monthly_cost(rule: RecurrenceRule) -> Decimal:
    return (yearly_cost(rule) / 12).quantize(CENT, rounding=ROUND_HALF_UP)


class RecurringOverviewService:
    """Builds the upcoming-payments feed and the subscriptions summary."""

    def __init__(self, rule_repository: RecurringRuleRepository):
        self.rules = rule_repository

    def upcoming_payments(self, budget_id, today: date, limit: int = 10) -> List[Dict]:
        """
        Next occurrence of every active template, soonest first.

        Args:
            budget_id: Budget to read templates from
            today: Reference date; occurrences on `today` itself are already due
            limit: Maximum number of payments returned

        Returns:
            List of dicts with id, description, category_name, amount,
            transaction_type, frequency, next_date and days_until
        """
        payments = []
        for rule in self.rules.find_active_rules(budget_id):
            next_date = next_occurrence_on_or_after(rule, today)
            if next_date is None:
                continue
            payments.append({
                "id": rule.id,
                "description": rule.description or "Untitled",
                "category_name": rule.category_name,
                "amount": rule.amount,
                "transaction_type": rule.transaction_type,
                "frequency": rule.frequency.value,
                "next_date": next_date,
                "days_until": days_until(next_date, today),
            })

        payments.sort(key=lambda payment: payment["next_date"])
        logger.debug(f"[RECURRING] {len(payments)} upcoming payment(s) for budget {budget_id}")
        return payments[:limit]

    def subscriptions(self, budget_id, today: date) -> Dict:
        """
        Subscription templates split into active and inactive, with the next
        billing date of each active one and the monthly/yearly totals of the
        active ones.
        """
        active = []
        inactive = []
        monthly_total = Decimal("0")
        yearly_total = Decimal("0")

        for row in self.rules.list_for_budget(budget_id, subscriptions_only=True):
            rule = self.rules.to_domain_or_none(row)
            if rule is None:
                continue

            next_billing: Optional[date] = next_occurrence_on_or_after(rule, today)
            item = {
                "id": rule.id,
                "description": rule.description,
                "category_name": rule.category_name,
                "amount": rule.amount,
                "frequency": rule.frequency.value,
                "start_date": rule.start_date,
                "end_date": rule.end_date,
                "is_active": rule.is_active,
                "next_billing_date": next_billing,
                "days_until_next": days_until(next_billing, today) if next_billing else None,
                "monthly_cost": monthly_cost(rule),
            }

            if rule.is_active:
                active.append(item)
                monthly_total += yearly_cost(rule) / 12
                yearly_total += yearly_cost(rule)
            else:
                inactive.append(item)

        active.sort(key=lambda item: (item["next_billing_date"] is None, item["next_billing_date"] or today))

        return {
            "active": active,
            "inactive": inactive,
            "monthly_total": monthly_total.quantize(CENT, rounding=ROUND_HALF_UP),
            "yearly_total": yearly_total.quantize(CENT, rounding=ROUND_HALF_UP),
        }
