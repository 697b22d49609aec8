"""
Service for materializing recurring transaction templates into the ledger.

Generation runs for one (budget, year, month) period at a time, on explicit
request. It is idempotent: a template produces at most one ledger entry per
period, so the same period can be generated any number of times.
"""
from dataclasses import dataclass
import logging
from typing import List
from uuid import UUID

from budget_app.recurrence import MaterializedEntry, RecurrenceRule, occurs_in_month
from budget_app.repositories import LedgerRepository, RecurringRuleRepository

logger = logging.getLogger(__name__)


class MaterializationError(RuntimeError):
    """Raised when generated entries could not be persisted."""


@dataclass(frozen=True)
class GenerationResult:
    generated_count: int
    skipped_count: int
    ineligible_count: int
    already_materialized_count: int

    def to_dict(self) -> dict:
        return {
            "generated": self.generated_count,
            "skipped": self.skipped_count,
            "ineligible": self.ineligible_count,
            "already_materialized": self.already_materialized_count,
        }


class RecurringGenerationService:
    """Generates ledger entries from active recurring templates."""

    def __init__(
        self,
        rule_repository: RecurringRuleRepository,
        ledger_repository: LedgerRepository,
    ):
        self.rules = rule_repository
        self.ledger = ledger_repository

    def plan_for_period(
        self,
        rules: List[RecurrenceRule],
        materialized_ids: set,
        year: int,
        month: int,
    ) -> tuple:
        """
        Split rules into entries to create, and counts of rules that are not
        eligible this period or already have an entry for it.
        """
        entries: List[MaterializedEntry] = []
        ineligible = 0
        already_materialized = 0

        for rule in rules:
            if not occurs_in_month(rule, year, month):
                ineligible += 1
                continue
            if rule.id in materialized_ids:
                already_materialized += 1
                continue
            entries.append(MaterializedEntry.from_rule(rule, year, month))

        return entries, ineligible, already_materialized

    def generate_for_period(self, budget_id: UUID, year: int, month: int) -> GenerationResult:
        """
        Materialize the entries of every active template for (year, month).

        The caller must already have checked that the budget belongs to the
        requesting user.

        Args:
            budget_id: Budget whose templates are generated
            year: Calendar year of the period
            month: Calendar month of the period (1-12)

        Returns:
            GenerationResult. `skipped_count` is active templates (including
            ones whose stored values are not a valid rule) minus generated
            entries; `ineligible_count` and
            `already_materialized_count` break it down.

        Raises:
            ValueError: if month is outside 1-12
            MaterializationError: if the batch insert failed; nothing was written
        """
        if not 1 <= month <= 12:
            raise ValueError(f"month must be between 1 and 12, got {month}")

        rules, unusable = self.rules.load_active_rules(budget_id)
        materialized_ids = {
            entry.recurring_id
            for entry in self.ledger.find_materialized(budget_id, year, month)
        }

        entries, ineligible, already_materialized = self.plan_for_period(
            rules, materialized_ids, year, month
        )
        # Active templates that are not valid rules never produce an entry.
        ineligible += unusable

        generated = 0
        if entries:
            try:
                generated = self.ledger.insert_many(entries)
            except Exception as exc:
                logger.exception(
                    f"[RECURRING] Failed to insert {len(entries)} entries for budget {budget_id} "
                    f"{year}-{month:02d}"
                )
                raise MaterializationError(
                    f"Failed to generate recurring transactions for {year}-{month:02d}"
                ) from exc

        # Entries that lost a race with a concurrent run already exist.
        already_materialized += len(entries) - generated

        logger.info(
            f"[RECURRING] Budget {budget_id} {year}-{month:02d}: generated={generated}, "
            f"ineligible={ineligible}, already_materialized={already_materialized}"
        )

        return GenerationResult(
            generated_count=generated,
            skipped_count=len(rules) + unusable - generated,
            ineligible_count=ineligible,
            already_materialized_count=already_materialized,
        )
