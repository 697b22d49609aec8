"""
SQLAlchemy models for budgets, recurring templates and ledger transactions.
"""
import uuid
from datetime import datetime
from sqlalchemy import (
    Column,
    String,
    Boolean,
    Date,
    DateTime,
    Numeric,
    Text,
    Integer,
    ForeignKey,
    Index,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship

from budget_app.database import Base


class User(Base):
    """
    Minimal user model for foreign key relationships.
    Sign-up and sessions are handled by the identity provider in the frontend.
    """
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    name = Column(Text, nullable=True)
    email = Column(Text, unique=True, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    budgets = relationship("Budget", back_populates="user", cascade="all, delete-orphan")


class Budget(Base):
    """
    Annual budget owned by a single user.
    """
    __tablename__ = "budgets"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    year = Column(Integer, nullable=False)
    currency = Column(String(3), default="USD")
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship("User", back_populates="budgets")
    recurring_transactions = relationship("RecurringTransaction", back_populates="budget", cascade="all, delete-orphan")
    transactions = relationship("Transaction", back_populates="budget", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_budgets_user", "user_id"),
    )


class RecurringTransaction(Base):
    """
    Template for a repeating income or expense (rent, salary, subscriptions).
    Concrete ledger transactions are materialized from it per (year, month).
    """
    __tablename__ = "recurring_transactions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    budget_id = Column(Uuid(as_uuid=True), ForeignKey("budgets.id", ondelete="CASCADE"), nullable=False, index=True)
    transaction_type = Column(String(20), nullable=False)  # income, expense
    category_id = Column(String(64), nullable=False)
    category_name = Column(String(255), nullable=False)
    amount = Column(Numeric(15, 2), nullable=False)
    description = Column(Text, nullable=True)
    frequency = Column(String(20), nullable=False)  # daily, weekly, biweekly, monthly, yearly
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    day_of_month = Column(Integer, nullable=True)  # 1-31, monthly only
    is_active = Column(Boolean, default=True, nullable=False)
    is_subscription = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    budget = relationship("Budget", back_populates="recurring_transactions")

    __table_args__ = (
        Index("idx_recurring_transactions_budget", "budget_id"),
        Index("idx_recurring_transactions_active", "is_active"),
    )


class Transaction(Base):
    """
    Ledger transaction. Entries generated from a recurring template carry its id
    and the (year, month) period they were generated for.

    `recurring_id` has no foreign key; deleting a template leaves the entries it
    produced untouched.
    """
    __tablename__ = "transactions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    budget_id = Column(Uuid(as_uuid=True), ForeignKey("budgets.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    transaction_type = Column(String(20), nullable=False)  # income, expense
    category_id = Column(String(64), nullable=False)
    category_name = Column(String(255), nullable=False)
    amount = Column(Numeric(15, 2), nullable=False)
    description = Column(Text, nullable=True)
    is_recurring = Column(Boolean, default=False, nullable=False)
    recurring_id = Column(Uuid(as_uuid=True), nullable=True, index=True)
    month = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    budget = relationship("Budget", back_populates="transactions")

    __table_args__ = (
        Index("idx_transactions_budget_period", "budget_id", "year", "month"),
        Index("idx_transactions_recurring", "recurring_id"),
        # At most one materialized entry per template and period.
        UniqueConstraint("recurring_id", "year", "month", name="transactions_recurring_period"),
    )
