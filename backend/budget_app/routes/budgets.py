from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID

from budget_app.database import get_db
from budget_app.models import Budget
from budget_app.db_helpers import get_owned_budget, get_or_create_user, get_user_id
from budget_app.schemas import BudgetCreate, BudgetResponse

router = APIRouter()


@router.get("/", response_model=List[BudgetResponse])
def list_budgets(
    user_id: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """List the current user's budgets, most recent year first."""
    user_id = get_user_id(user_id)
    return db.query(Budget).filter(
        Budget.user_id == user_id
    ).order_by(Budget.year.desc(), Budget.created_at.desc()).all()


@router.get("/{budget_id}", response_model=BudgetResponse)
def get_budget(
    budget_id: UUID,
    user_id: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """Get a specific budget by ID."""
    user_id = get_user_id(user_id)
    return get_owned_budget(db, budget_id, user_id)


@router.post("/", response_model=BudgetResponse, status_code=201)
def create_budget(
    budget: BudgetCreate,
    user_id: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """Create a new budget."""
    user_id = get_user_id(user_id)
    get_or_create_user(db, user_id)
    budget_data = budget.model_dump()
    budget_data["user_id"] = user_id
    db_budget = Budget(**budget_data)
    db.add(db_budget)
    db.commit()
    db.refresh(db_budget)
    return db_budget
