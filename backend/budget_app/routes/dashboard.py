from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
from datetime import date
from uuid import UUID

from budget_app.database import get_db, settings
from budget_app.db_helpers import get_owned_budget, get_user_id
from budget_app.repositories import RecurringRuleRepository
from budget_app.schemas import UpcomingPaymentsResponse
from budget_app.services.recurring_overview_service import RecurringOverviewService

router = APIRouter()


@router.get("/upcoming-payments", response_model=UpcomingPaymentsResponse)
def get_upcoming_payments(
    budget_id: UUID,
    as_of: Optional[date] = Query(None, description="Reference date, defaults to today"),
    user_id: Optional[str] = None,
    db: Session = Depends(get_db),
):
    """Next occurrence of each active recurring template, soonest first"""
    user_id = get_user_id(user_id)
    get_owned_budget(db, budget_id, user_id)

    service = RecurringOverviewService(RecurringRuleRepository(db))
    payments = service.upcoming_payments(
        budget_id,
        today=as_of or date.today(),
        limit=settings.upcoming_payments_limit,
    )
    return {"upcoming_payments": payments}
