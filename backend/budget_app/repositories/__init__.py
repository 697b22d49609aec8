from budget_app.repositories.ledger_repository import LedgerRepository
from budget_app.repositories.recurring_rule_repository import RecurringRuleRepository

__all__ = ["LedgerRepository", "RecurringRuleRepository"]
