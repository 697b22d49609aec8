"""
API tests for recurring templates, ledger generation and the ledger listing.
"""
from datetime import date
from decimal import Decimal
from uuid import uuid4

from budget_app.models import RecurringTransaction, Transaction
from tests.factories import OTHER_USER_ID, create_budget, create_template

BASE = "/api/recurring-transactions/"


def _template_payload(budget, **overrides) -> dict:
    payload = {
        "budget_id": str(budget.id),
        "transaction_type": "expense",
        "category_id": "housing",
        "category_name": "Rent",
        "amount": "1000.00",
        "description": "Apartment",
        "frequency": "monthly",
        "start_date": "2024-01-01",
    }
    payload.update(overrides)
    return payload


def _generate(api, budget, year=2024, month=3, **kwargs):
    return api.post(f"{BASE}generate?budget_id={budget.id}&year={year}&month={month}", **kwargs)


def test_create_and_list_templates(api, budget) -> None:
    response = api.post(BASE, json=_template_payload(budget))

    assert response.status_code == 201
    created = response.json()
    assert created["frequency"] == "monthly"
    assert created["is_active"] is True
    assert Decimal(created["amount"]) == Decimal("1000.00")

    listed = api.get(f"{BASE}?budget_id={budget.id}")
    assert listed.status_code == 200
    assert [t["id"] for t in listed.json()] == [created["id"]]


def test_create_rejects_invalid_templates(api, budget) -> None:
    cases = [
        {"frequency": "quarterly"},
        {"amount": "0"},
        {"day_of_month": 32},
        {"transaction_type": "transfer"},
        {"start_date": "2024-05-01", "end_date": "2024-04-30"},
    ]
    for overrides in cases:
        response = api.post(BASE, json=_template_payload(budget, **overrides))
        assert response.status_code == 422, overrides


def test_create_requires_owned_budget(api, db_session) -> None:
    foreign = create_budget(db_session, user_id=OTHER_USER_ID)

    response = api.post(BASE, json=_template_payload(foreign))
    assert response.status_code == 403

    payload = _template_payload(foreign, budget_id=str(uuid4()))
    assert api.post(BASE, json=payload).status_code == 404


def test_patch_updates_template(api, db_session, budget) -> None:
    template = create_template(db_session, budget)

    response = api.patch(f"{BASE}{template.id}", json={"amount": "1200.00", "day_of_month": 15})

    assert response.status_code == 200
    body = response.json()
    assert Decimal(body["amount"]) == Decimal("1200.00")
    assert body["day_of_month"] == 15
    assert body["category_name"] == "Rent"


def test_patch_rejects_inverted_range_and_nulls(api, db_session, budget) -> None:
    template = create_template(db_session, budget, start_date=date(2024, 6, 1))

    inverted = api.patch(f"{BASE}{template.id}", json={"end_date": "2024-05-31"})
    assert inverted.status_code == 400

    nulled = api.patch(f"{BASE}{template.id}", json={"frequency": None})
    assert nulled.status_code == 400


def test_patch_and_delete_of_unknown_template(api) -> None:
    missing = uuid4()
    assert api.patch(f"{BASE}{missing}", json={"amount": "5"}).status_code == 404
    assert api.delete(f"{BASE}{missing}").status_code == 404


def test_templates_of_other_users_are_forbidden(api, db_session) -> None:
    foreign = create_budget(db_session, user_id=OTHER_USER_ID)
    template = create_template(db_session, foreign)

    assert api.get(f"{BASE}?budget_id={foreign.id}").status_code == 403
    assert api.patch(f"{BASE}{template.id}", json={"amount": "5"}).status_code == 403
    assert api.delete(f"{BASE}{template.id}").status_code == 403
    assert _generate(api, foreign).status_code == 403


def test_generate_is_idempotent(api, db_session, budget) -> None:
    create_template(db_session, budget)

    first = _generate(api, budget)
    assert first.status_code == 200
    assert first.json() == {
        "generated": 1,
        "skipped": 0,
        "ineligible": 0,
        "already_materialized": 0,
        "message": "Generated 1 transactions for 2024-3",
    }

    second = _generate(api, budget).json()
    assert second["generated"] == 0
    assert second["skipped"] == 1
    assert second["already_materialized"] == 1

    ledger = api.get(f"/api/transactions/?budget_id={budget.id}&year=2024&month=3")
    assert ledger.status_code == 200
    entries = ledger.json()
    assert len(entries) == 1
    assert entries[0]["date"] == "2024-03-01"
    assert entries[0]["is_recurring"] is True
    assert entries[0]["description"] == "Recurring: Rent"


def test_generate_validates_period(api, budget) -> None:
    assert _generate(api, budget, month=13).status_code == 422
    assert _generate(api, budget, month=0).status_code == 422
    assert _generate(api, budget, year=1999).status_code == 422


def test_generate_for_unknown_budget(api) -> None:
    response = api.post(f"{BASE}generate?budget_id={uuid4()}&year=2024&month=3")
    assert response.status_code == 404


def test_generated_entries_survive_template_changes(api, db_session, budget) -> None:
    template = create_template(db_session, budget, amount="1000.00")
    _generate(api, budget, month=3)

    api.patch(f"{BASE}{template.id}", json={"amount": "1500.00"})
    _generate(api, budget, month=4)

    amounts = {
        t.month: t.amount
        for t in db_session.query(Transaction).filter(Transaction.budget_id == budget.id)
    }
    assert amounts == {3: Decimal("1000.00"), 4: Decimal("1500.00")}

    assert api.delete(f"{BASE}{template.id}").status_code == 204
    db_session.expire_all()
    assert db_session.query(RecurringTransaction).count() == 0
    assert db_session.query(Transaction).count() == 2


def test_deactivated_template_is_not_generated(api, db_session, budget) -> None:
    template = create_template(db_session, budget)
    api.patch(f"{BASE}{template.id}", json={"is_active": False})

    result = _generate(api, budget).json()

    assert result["generated"] == 0
    assert result["skipped"] == 0
