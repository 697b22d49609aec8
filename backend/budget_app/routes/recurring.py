"""
Recurring transaction templates and ledger generation.
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID

from budget_app.database import get_db
from budget_app.db_helpers import get_owned_budget, get_user_id
from budget_app.models import RecurringTransaction
from budget_app.recurrence import InvalidRecurrenceRule, RecurrenceRule, build_rule
from budget_app.repositories import LedgerRepository, RecurringRuleRepository
from budget_app.schemas import (
    GenerateResponse,
    RecurringTransactionCreate,
    RecurringTransactionResponse,
    RecurringTransactionUpdate,
)
from budget_app.services.recurring_generation_service import (
    MaterializationError,
    RecurringGenerationService,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _row_values(row: RecurringTransaction) -> dict:
    return {
        "frequency": row.frequency,
        "start_date": row.start_date,
        "amount": row.amount,
        "end_date": row.end_date,
        "day_of_month": row.day_of_month,
        "is_active": row.is_active,
        "id": row.id,
        "budget_id": row.budget_id,
        "transaction_type": row.transaction_type,
        "category_id": row.category_id,
        "category_name": row.category_name,
        "description": row.description,
        "is_subscription": bool(row.is_subscription),
    }


def _build_rule_or_400(values: dict) -> RecurrenceRule:
    try:
        return build_rule(**values)
    except InvalidRecurrenceRule as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def _get_owned_template(
    db: Session,
    repository: RecurringRuleRepository,
    recurring_id: UUID,
    user_id: str,
) -> RecurringTransaction:
    row = repository.get(recurring_id)
    if not row:
        raise HTTPException(status_code=404, detail="Recurring transaction not found")
    get_owned_budget(db, row.budget_id, user_id)
    return row


@router.get("/", response_model=List[RecurringTransactionResponse])
def list_recurring_transactions(
    budget_id: UUID,
    user_id: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """List the recurring templates of a budget, newest first."""
    user_id = get_user_id(user_id)
    get_owned_budget(db, budget_id, user_id)
    return RecurringRuleRepository(db).list_for_budget(budget_id)


@router.post("/", response_model=RecurringTransactionResponse, status_code=201)
def create_recurring_transaction(
    recurring: RecurringTransactionCreate,
    user_id: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """Create a recurring template. New templates are always active."""
    user_id = get_user_id(user_id)
    get_owned_budget(db, recurring.budget_id, user_id)

    values = recurring.model_dump()
    values["is_active"] = True
    rule = _build_rule_or_400(values)

    row = RecurringRuleRepository(db).create(rule)
    logger.info(f"[RECURRING] Created {rule.frequency.value} template {row.id} for budget {rule.budget_id}")
    return row


@router.patch("/{recurring_id}", response_model=RecurringTransactionResponse)
def update_recurring_transaction(
    recurring_id: UUID,
    updates: RecurringTransactionUpdate,
    user_id: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """
    Update a recurring template.

    Entries already generated from the template keep their values; changes
    only affect periods generated afterwards.
    """
    user_id = get_user_id(user_id)
    repository = RecurringRuleRepository(db)
    row = _get_owned_template(db, repository, recurring_id, user_id)

    values = _row_values(row)
    values.update(updates.model_dump(exclude_unset=True))
    for field in ("amount", "frequency", "start_date", "is_active", "is_subscription"):
        if values[field] is None:
            raise HTTPException(status_code=400, detail=f"{field} cannot be null")
    rule = _build_rule_or_400(values)

    return repository.update(row, rule)


@router.delete("/{recurring_id}", status_code=204)
def delete_recurring_transaction(
    recurring_id: UUID,
    user_id: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """
    Delete a recurring template.
    Ledger entries generated from it are kept.
    """
    user_id = get_user_id(user_id)
    repository = RecurringRuleRepository(db)
    row = _get_owned_template(db, repository, recurring_id, user_id)
    repository.delete(row)
    logger.info(f"[RECURRING] Deleted template {recurring_id}")
    return None


@router.post("/generate", response_model=GenerateResponse)
def generate_recurring_transactions(
    budget_id: UUID,
    year: int = Query(..., ge=2000, le=2100),
    month: int = Query(..., ge=1, le=12),
    user_id: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """
    Generate the ledger entries of all active templates for one month.

    Safe to call repeatedly: a template never gets a second entry for the
    same month.
    """
    user_id = get_user_id(user_id)
    get_owned_budget(db, budget_id, user_id)

    service = RecurringGenerationService(
        RecurringRuleRepository(db),
        LedgerRepository(db),
    )
    try:
        result = service.generate_for_period(budget_id, year, month)
    except MaterializationError:
        raise HTTPException(status_code=500, detail="Failed to generate recurring transactions")

    return GenerateResponse(
        **result.to_dict(),
        message=f"Generated {result.generated_count} transactions for {year}-{month}",
    )
