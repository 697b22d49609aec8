from pydantic import BaseModel, ConfigDict, Field, model_validator
from datetime import date, datetime
from datetime import date as DateType
from decimal import Decimal
from typing import Optional, List, Literal
from uuid import UUID

from budget_app.recurrence import Frequency


TransactionType = Literal["income", "expense"]


# Budget Schemas
class BudgetBase(BaseModel):
    name: str = Field(min_length=1)
    year: int = Field(ge=2000, le=2100)
    currency: str = "USD"


class BudgetCreate(BudgetBase):
    pass


class BudgetResponse(BudgetBase):
    id: UUID
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# Recurring Transaction Schemas
class RecurringTransactionBase(BaseModel):
    transaction_type: TransactionType
    category_id: str = Field(min_length=1)
    category_name: str = Field(min_length=1)
    amount: Decimal = Field(gt=0)
    description: Optional[str] = None
    frequency: Frequency
    start_date: date
    end_date: Optional[date] = None
    day_of_month: Optional[int] = Field(default=None, ge=1, le=31)
    is_subscription: bool = False


class RecurringTransactionCreate(RecurringTransactionBase):
    budget_id: UUID

    @model_validator(mode="after")
    def check_date_range(self):
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class RecurringTransactionUpdate(BaseModel):
    amount: Optional[Decimal] = Field(default=None, gt=0)
    description: Optional[str] = None
    frequency: Optional[Frequency] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    day_of_month: Optional[int] = Field(default=None, ge=1, le=31)
    is_active: Optional[bool] = None
    is_subscription: Optional[bool] = None


class RecurringTransactionResponse(RecurringTransactionBase):
    id: UUID
    budget_id: UUID
    frequency: str
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class GenerateResponse(BaseModel):
    generated: int
    skipped: int
    ineligible: int
    already_materialized: int
    message: str


# Ledger Schemas
class TransactionCreate(BaseModel):
    budget_id: UUID
    date: date
    transaction_type: TransactionType
    category_id: str = Field(min_length=1)
    category_name: str = Field(min_length=1)
    amount: Decimal = Field(gt=0)
    description: Optional[str] = None
    is_recurring: bool = False
    recurring_id: Optional[UUID] = None


class TransactionUpdate(BaseModel):
    date: Optional[DateType] = None
    transaction_type: Optional[TransactionType] = None
    category_id: Optional[str] = Field(default=None, min_length=1)
    category_name: Optional[str] = Field(default=None, min_length=1)
    amount: Optional[Decimal] = Field(default=None, gt=0)
    description: Optional[str] = None


class TransactionResponse(BaseModel):
    id: UUID
    budget_id: UUID
    date: date
    transaction_type: str
    category_id: str
    category_name: str
    amount: Decimal
    description: Optional[str] = None
    is_recurring: bool
    recurring_id: Optional[UUID] = None
    month: int
    year: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# Dashboard Schemas
class UpcomingPayment(BaseModel):
    id: UUID
    description: str
    category_name: str
    amount: Decimal
    transaction_type: str
    frequency: str
    next_date: date
    days_until: int


class UpcomingPaymentsResponse(BaseModel):
    upcoming_payments: List[UpcomingPayment]


# Subscription Schemas
class SubscriptionResponse(BaseModel):
    id: UUID
    description: Optional[str] = None
    category_name: str
    amount: Decimal
    frequency: str
    start_date: date
    end_date: Optional[date] = None
    is_active: bool
    next_billing_date: Optional[date] = None
    days_until_next: Optional[int] = None
    monthly_cost: Decimal


class SubscriptionsSummary(BaseModel):
    active: List[SubscriptionResponse]
    inactive: List[SubscriptionResponse]
    monthly_total: Decimal
    yearly_total: Decimal
