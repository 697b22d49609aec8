"""
Ledger transactions: listing a period, manual entries and edits.
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID

from budget_app.database import get_db
from budget_app.db_helpers import get_owned_budget, get_user_id
from budget_app.models import Transaction
from budget_app.repositories import LedgerRepository
from budget_app.schemas import TransactionCreate, TransactionResponse, TransactionUpdate

logger = logging.getLogger(__name__)

router = APIRouter()

PERIOD_CONFLICT_DETAIL = "The recurring template already has an entry for this period"


def _get_owned_transaction(
    db: Session,
    repository: LedgerRepository,
    transaction_id: UUID,
    user_id: str,
) -> Transaction:
    row = repository.get(transaction_id)
    if not row:
        raise HTTPException(status_code=404, detail="Transaction not found")
    get_owned_budget(db, row.budget_id, user_id)
    return row


@router.get("/", response_model=List[TransactionResponse])
def list_transactions(
    budget_id: UUID,
    year: int = Query(..., ge=2000, le=2100),
    month: int = Query(..., ge=1, le=12),
    user_id: Optional[str] = None,
    db: Session = Depends(get_db),
):
    """List ledger transactions of a budget for one month."""
    user_id = get_user_id(user_id)
    get_owned_budget(db, budget_id, user_id)
    return LedgerRepository(db).list_for_period(budget_id, year, month)


@router.post("/", response_model=TransactionResponse, status_code=201)
def create_transaction(
    transaction: TransactionCreate,
    user_id: Optional[str] = None,
    db: Session = Depends(get_db),
):
    """Add a transaction to the ledger. Its period is taken from its date."""
    user_id = get_user_id(user_id)
    get_owned_budget(db, transaction.budget_id, user_id)

    values = transaction.model_dump()
    if values["recurring_id"] is not None:
        values["is_recurring"] = True

    try:
        return LedgerRepository(db).create(values)
    except IntegrityError:
        logger.warning(
            f"[LEDGER] Rejected entry for template {values['recurring_id']} on {values['date']}: "
            f"period already materialized"
        )
        raise HTTPException(status_code=409, detail=PERIOD_CONFLICT_DETAIL)


@router.patch("/{transaction_id}", response_model=TransactionResponse)
def update_transaction(
    transaction_id: UUID,
    updates: TransactionUpdate,
    user_id: Optional[str] = None,
    db: Session = Depends(get_db),
):
    """
    Update a ledger transaction.

    Changing the date moves the transaction to that date's month and year.
    """
    user_id = get_user_id(user_id)
    repository = LedgerRepository(db)
    row = _get_owned_transaction(db, repository, transaction_id, user_id)

    changes = updates.model_dump(exclude_unset=True)
    for field in ("date", "transaction_type", "category_id", "category_name", "amount"):
        if field in changes and changes[field] is None:
            raise HTTPException(status_code=400, detail=f"{field} cannot be null")

    try:
        return repository.update(row, changes)
    except IntegrityError:
        logger.warning(f"[LEDGER] Rejected move of {transaction_id} to {changes.get('date')}: period already materialized")
        raise HTTPException(status_code=409, detail=PERIOD_CONFLICT_DETAIL)


@router.delete("/{transaction_id}", status_code=204)
def delete_transaction(
    transaction_id: UUID,
    user_id: Optional[str] = None,
    db: Session = Depends(get_db),
):
    """
    Delete a ledger transaction.
    A deleted recurring entry is generated again by the next run for its period.
    """
    user_id = get_user_id(user_id)
    repository = LedgerRepository(db)
    row = _get_owned_transaction(db, repository, transaction_id, user_id)
    repository.delete(row)
    return None
