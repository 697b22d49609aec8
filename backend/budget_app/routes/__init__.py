from fastapi import APIRouter
from budget_app.routes import budgets, recurring, dashboard, subscriptions, transactions

api_router = APIRouter()

api_router.include_router(budgets.router, prefix="/budgets", tags=["budgets"])
api_router.include_router(recurring.router, prefix="/recurring-transactions", tags=["recurring-transactions"])
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"])
api_router.include_router(subscriptions.router, prefix="/subscriptions", tags=["subscriptions"])
api_router.include_router(transactions.router, prefix="/transactions", tags=["transactions"])
