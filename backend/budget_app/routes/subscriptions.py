from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
from datetime import date
from uuid import UUID

from budget_app.database import get_db
from budget_app.db_helpers import get_owned_budget, get_user_id
from budget_app.repositories import RecurringRuleRepository
from budget_app.schemas import SubscriptionsSummary
from budget_app.services.recurring_overview_service import RecurringOverviewService

router = APIRouter()


@router.get("/", response_model=SubscriptionsSummary)
def list_subscriptions(
    budget_id: UUID,
    as_of: Optional[date] = Query(None, description="Reference date, defaults to today"),
    user_id: Optional[str] = None,
    db: Session = Depends(get_db),
):
    """
    Recurring templates flagged as subscriptions, with next billing dates
    and the monthly/yearly cost of the active ones.
    """
    user_id = get_user_id(user_id)
    get_owned_budget(db, budget_id, user_id)

    service = RecurringOverviewService(RecurringRuleRepository(db))
    return service.subscriptions(budget_id, today=as_of or date.today())
