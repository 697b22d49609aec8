"""
Ledger Repository
Reads and writes ledger transactions, including materialized recurring entries
"""
import logging
from datetime import datetime
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from budget_app.models import Transaction
from budget_app.recurrence import MaterializedEntry

logger = logging.getLogger(__name__)

_CONFLICT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class LedgerRepository:
    """Repository for ledger Transactions"""

    def __init__(self, db: Session):
        self.db = db

    def find_materialized(self, budget_id: UUID, year: int, month: int) -> List[MaterializedEntry]:
        """Entries generated from recurring templates for one period."""
        rows = self.db.query(Transaction).filter(
            Transaction.budget_id == budget_id,
            Transaction.year == year,
            Transaction.month == month,
            Transaction.is_recurring == True,
            Transaction.recurring_id.isnot(None),
        ).all()
        return [self._to_domain(row) for row in rows]

    def list_for_period(self, budget_id: UUID, year: int, month: int) -> List[Transaction]:
        return self.db.query(Transaction).filter(
            Transaction.budget_id == budget_id,
            Transaction.year == year,
            Transaction.month == month,
        ).order_by(Transaction.date, Transaction.created_at).all()

    def insert_many(self, entries: Iterable[MaterializedEntry]) -> int:
        """
        Insert entries in a single statement and commit.

        Entries whose (recurring_id, year, month) already exists are ignored
        by the database, so the returned count is the number of rows actually
        written, even when two generation requests race.

        Raises:
            SQLAlchemyError: the batch is rolled back and nothing is written
        """
        now = datetime.utcnow()
        values = [
            {
                "id": entry.id,
                "budget_id": entry.budget_id,
                "date": entry.date,
                "transaction_type": entry.transaction_type,
                "category_id": entry.category_id,
                "category_name": entry.category_name,
                "amount": entry.amount,
                "description": entry.description,
                "is_recurring": True,
                "recurring_id": entry.recurring_id,
                "month": entry.month,
                "year": entry.year,
                "created_at": now,
                "updated_at": now,
            }
            for entry in entries
        ]
        if not values:
            return 0

        dialect = self.db.get_bind().dialect.name
        insert = _CONFLICT_INSERTS.get(dialect)
        if insert is None:
            raise NotImplementedError(f"Conditional insert is not available for dialect '{dialect}'")

        statement = insert(Transaction).values(values).on_conflict_do_nothing(
            index_elements=["recurring_id", "year", "month"]
        )
        try:
            result = self.db.execute(statement)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

        inserted = result.rowcount
        if inserted < len(values):
            logger.info(
                f"[RECURRING] Ignored {len(values) - inserted} entries already materialized for their period"
            )
        return inserted

    def get(self, transaction_id: UUID) -> Optional[Transaction]:
        return self.db.query(Transaction).filter(Transaction.id == transaction_id).first()

    def create(self, values: dict) -> Transaction:
        """
        Store a single ledger transaction. month/year follow its date.

        Raises:
            IntegrityError: if it names a template that already has an entry
                for that period
        """
        row = Transaction(**values)
        row.month = row.date.month
        row.year = row.date.year
        self.db.add(row)
        self._commit()
        self.db.refresh(row)
        return row

    def update(self, row: Transaction, changes: dict) -> Transaction:
        """
        Apply changes to a ledger transaction. A new date moves the entry to
        that date's period.

        Raises:
            IntegrityError: if the move collides with the template's entry
                for the target period
        """
        for field, value in changes.items():
            setattr(row, field, value)
        if "date" in changes:
            row.month = row.date.month
            row.year = row.date.year
        self._commit()
        self.db.refresh(row)
        return row

    def delete(self, row: Transaction) -> None:
        """Remove an entry. A recurring template can generate its period again."""
        self.db.delete(row)
        self.db.commit()

    def _commit(self) -> None:
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise

    @staticmethod
    def _to_domain(row: Transaction) -> MaterializedEntry:
        return MaterializedEntry(
            id=row.id,
            budget_id=row.budget_id,
            recurring_id=row.recurring_id,
            year=row.year,
            month=row.month,
            date=row.date,
            transaction_type=row.transaction_type,
            category_id=row.category_id,
            category_name=row.category_name,
            amount=row.amount,
            description=row.description,
        )
