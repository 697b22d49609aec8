"""
Tests for generating ledger entries from recurring templates.
"""
import os
import sys
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from budget_app.models import Transaction  # noqa: E402
from budget_app.recurrence import Frequency  # noqa: E402
from budget_app.repositories import LedgerRepository, RecurringRuleRepository  # noqa: E402
from budget_app.services.recurring_generation_service import (  # noqa: E402
    MaterializationError,
    RecurringGenerationService,
)
from tests.factories import create_template, make_rule  # noqa: E402

BUDGET_ID = uuid4()


class FakeRuleRepository:
    def __init__(self, rules, unusable: int = 0):
        self._rules = list(rules)
        self._unusable = unusable

    def load_active_rules(self, budget_id):
        rules = [r for r in self._rules if r.budget_id == budget_id and r.is_active]
        return rules, self._unusable


class FakeLedgerRepository:
    def __init__(self, fail: bool = False):
        self.entries = []
        self.fail = fail
        self.insert_calls = 0

    def find_materialized(self, budget_id, year, month):
        return [
            e for e in self.entries
            if e.budget_id == budget_id and e.period == (year, month)
        ]

    def insert_many(self, entries):
        self.insert_calls += 1
        if self.fail:
            raise RuntimeError("connection reset by peer")
        inserted = 0
        for entry in entries:
            key = (entry.recurring_id, entry.year, entry.month)
            if any((e.recurring_id, e.year, e.month) == key for e in self.entries):
                continue
            self.entries.append(entry)
            inserted += 1
        return inserted


def _rule(frequency=Frequency.MONTHLY, start_date=date(2024, 1, 1), **overrides):
    return make_rule(frequency, start_date, id=uuid4(), budget_id=BUDGET_ID, **overrides)


def _service(session):
    return RecurringGenerationService(RecurringRuleRepository(session), LedgerRepository(session))


def test_rent_scenario_generates_once_per_period(db_session, budget) -> None:
    create_template(db_session, budget, frequency="monthly", start_date=date(2024, 1, 1), amount="1000")
    service = _service(db_session)

    first = service.generate_for_period(budget.id, 2024, 3)
    assert (first.generated_count, first.skipped_count) == (1, 0)

    entries = db_session.query(Transaction).filter(Transaction.budget_id == budget.id).all()
    assert len(entries) == 1
    assert entries[0].date == date(2024, 3, 1)
    assert entries[0].amount == Decimal("1000.00")
    assert entries[0].is_recurring is True
    assert (entries[0].year, entries[0].month) == (2024, 3)

    second = service.generate_for_period(budget.id, 2024, 3)
    assert (second.generated_count, second.skipped_count) == (0, 1)
    assert second.already_materialized_count == 1
    assert db_session.query(Transaction).count() == 1


def test_skipped_count_is_broken_down_by_reason() -> None:
    monthly = _rule(Frequency.MONTHLY)
    yearly = _rule(Frequency.YEARLY, date(2023, 6, 1))
    salary = _rule(Frequency.MONTHLY, transaction_type="income", category_name="Salary")
    ledger = FakeLedgerRepository()
    service = RecurringGenerationService(FakeRuleRepository([monthly, yearly, salary]), ledger)

    first = service.generate_for_period(BUDGET_ID, 2024, 3)
    assert first.generated_count == 2
    assert first.skipped_count == 1
    assert first.ineligible_count == 1
    assert first.already_materialized_count == 0

    second = service.generate_for_period(BUDGET_ID, 2024, 3)
    assert second.generated_count == 0
    assert second.skipped_count == 3
    assert second.ineligible_count == 1
    assert second.already_materialized_count == 2
    assert len(ledger.entries) == 2


def test_each_period_is_materialized_independently() -> None:
    rule = _rule(Frequency.MONTHLY, day_of_month=31)
    ledger = FakeLedgerRepository()
    service = RecurringGenerationService(FakeRuleRepository([rule]), ledger)

    for month in (1, 2, 3):
        assert service.generate_for_period(BUDGET_ID, 2024, month).generated_count == 1

    assert [e.date for e in ledger.entries] == [date(2024, 1, 31), date(2024, 2, 29), date(2024, 3, 31)]


def test_inactive_rules_are_not_loaded() -> None:
    rule = _rule(Frequency.MONTHLY, is_active=False)
    ledger = FakeLedgerRepository()
    service = RecurringGenerationService(FakeRuleRepository([rule]), ledger)

    result = service.generate_for_period(BUDGET_ID, 2024, 3)

    assert result.to_dict() == {
        "generated": 0,
        "skipped": 0,
        "ineligible": 0,
        "already_materialized": 0,
    }
    assert ledger.insert_calls == 0


def test_nothing_to_insert_skips_the_write() -> None:
    rule = _rule(Frequency.MONTHLY, start_date=date(2025, 1, 1))
    ledger = FakeLedgerRepository()
    service = RecurringGenerationService(FakeRuleRepository([rule]), ledger)

    result = service.generate_for_period(BUDGET_ID, 2024, 3)

    assert result.ineligible_count == 1
    assert ledger.insert_calls == 0


def test_insert_failure_is_reported_as_materialization_error() -> None:
    ledger = FakeLedgerRepository(fail=True)
    service = RecurringGenerationService(FakeRuleRepository([_rule()]), ledger)

    with pytest.raises(MaterializationError):
        service.generate_for_period(BUDGET_ID, 2024, 3)
    assert ledger.entries == []


def test_invalid_month_is_rejected_before_loading() -> None:
    ledger = FakeLedgerRepository()
    service = RecurringGenerationService(FakeRuleRepository([_rule()]), ledger)

    with pytest.raises(ValueError):
        service.generate_for_period(BUDGET_ID, 2024, 13)
    assert ledger.insert_calls == 0


def test_concurrent_run_with_stale_read_does_not_duplicate(db_session, budget, monkeypatch) -> None:
    create_template(db_session, budget)
    _service(db_session).generate_for_period(budget.id, 2024, 3)

    # A racing request that read the ledger before the first one committed.
    racing_ledger = LedgerRepository(db_session)
    monkeypatch.setattr(racing_ledger, "find_materialized", lambda *args: [])
    racing = RecurringGenerationService(RecurringRuleRepository(db_session), racing_ledger)

    result = racing.generate_for_period(budget.id, 2024, 3)

    assert result.generated_count == 0
    assert result.already_materialized_count == 1
    assert db_session.query(Transaction).count() == 1


def test_templates_with_unknown_frequency_are_skipped(db_session, budget) -> None:
    create_template(db_session, budget, frequency="quarterly", category_name="Insurance")
    create_template(db_session, budget, frequency="monthly", category_name="Rent")

    result = _service(db_session).generate_for_period(budget.id, 2024, 3)

    assert result.generated_count == 1
    assert result.skipped_count == 1
    assert result.ineligible_count == 1
    assert result.already_materialized_count == 0
    names = [t.category_name for t in db_session.query(Transaction).all()]
    assert names == ["Rent"]


def test_templates_of_other_budgets_are_ignored(db_session, budget) -> None:
    from tests.factories import create_budget

    other = create_budget(db_session, name="Other")
    create_template(db_session, other)

    result = _service(db_session).generate_for_period(budget.id, 2024, 3)

    assert result.generated_count == 0
    assert db_session.query(Transaction).count() == 0


def test_unusable_templates_count_as_skipped_on_every_run() -> None:
    ledger = FakeLedgerRepository()
    service = RecurringGenerationService(FakeRuleRepository([_rule()], unusable=2), ledger)

    first = service.generate_for_period(BUDGET_ID, 2024, 3)
    assert first.to_dict() == {
        "generated": 1,
        "skipped": 2,
        "ineligible": 2,
        "already_materialized": 0,
    }

    second = service.generate_for_period(BUDGET_ID, 2024, 3)
    assert second.skipped_count == 3
    assert second.ineligible_count == 2
    assert second.already_materialized_count == 1
