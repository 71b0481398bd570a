import logging
from contextlib import contextmanager
from datetime import date, datetime
from functools import lru_cache
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    ForeignKey,
    Numeric,
    String,
    Text,
    create_engine,
    event,
    text,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, joinedload, relationship, sessionmaker
from sqlalchemy.pool import StaticPool

from spendwise.core.config import settings
from spendwise.db.base import ExpenseStore, StorageError
from spendwise.models.budget import Budget
from spendwise.models.category import Category
from spendwise.models.common import to_money
from spendwise.models.expense import Expense, ExpenseInDB
from spendwise.models.insight import Insight
from spendwise.models.user import UserInDB

logger = logging.getLogger(__name__)

Base = declarative_base()


class UserRow(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True)
    username = Column(String(50), unique=True, nullable=False, index=True)
    email = Column(String(255), nullable=True)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow)

    expenses = relationship("ExpenseRow", cascade="all, delete-orphan")
    budgets = relationship("BudgetRow", cascade="all, delete-orphan")
    insights = relationship("InsightRow", cascade="all, delete-orphan")


class CategoryRow(Base):
    __tablename__ = "categories"

    id = Column(String(36), primary_key=True)
    name = Column(String(100), nullable=False)
    color = Column(String(7), nullable=False)
    icon = Column(String(50), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class ExpenseRow(Base):
    __tablename__ = "expenses"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    category_id = Column(String(36), ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)
    amount = Column(Numeric(10, 2), nullable=False)
    description = Column(Text, nullable=False)
    payment_method = Column(String(50), nullable=False)
    date = Column(Date, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow)

    category = relationship("CategoryRow")


class BudgetRow(Base):
    __tablename__ = "budgets"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    category_id = Column(String(36), ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)
    amount = Column(Numeric(10, 2), nullable=False)
    period = Column(String(20), nullable=False, default="monthly")
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow)


class InsightRow(Base):
    __tablename__ = "insights"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(50), nullable=False)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    priority = Column(String(20), default="medium")
    is_read = Column(String(10), default="false")
    period = Column(String(7), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)


def build_engine(db_url: str) -> Engine:
    # Railway style URLs: SQLAlchemy requires postgresql://
    if db_url.startswith("postgres://"):
        db_url = db_url.replace("postgres://", "postgresql://", 1)

    if db_url.startswith("sqlite"):
        kwargs: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if db_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        engine = create_engine(db_url, **kwargs)

        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    return create_engine(db_url, pool_pre_ping=True)


@lru_cache
def get_engine() -> Engine:
    return build_engine(settings.DATABASE_URL)


@lru_cache
def get_session_factory() -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=get_engine())


def init_db(engine: Engine) -> None:
    Base.metadata.create_all(bind=engine)


def _category(row: Optional[CategoryRow]) -> Optional[Category]:
    return Category.model_validate(row) if row is not None else None


def _expense(row: ExpenseRow) -> Expense:
    return Expense(
        id=row.id,
        user_id=row.user_id,
        category_id=row.category_id,
        amount=to_money(row.amount),
        description=row.description,
        payment_method=row.payment_method,
        date=row.date,
        created_at=row.created_at,
        updated_at=row.updated_at,
        category=_category(row.category),
    )


def _budget(row: BudgetRow) -> Budget:
    return Budget(
        id=row.id,
        user_id=row.user_id,
        category_id=row.category_id,
        amount=to_money(row.amount),
        period=row.period,
        start_date=row.start_date,
        end_date=row.end_date,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class SqlStore(ExpenseStore):
    """Relational adapter. One instance wraps one request-scoped session."""

    def __init__(self, session: Session) -> None:
        self.session = session

    @contextmanager
    def _guard(self, action: str):
        try:
            yield
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"{action} failed: {e}")
            raise StorageError(action) from e

    # Users

    def get_user(self, user_id: str) -> Optional[UserInDB]:
        with self._guard("get_user"):
            row = self.session.get(UserRow, user_id)
            return UserInDB.model_validate(row) if row else None

    def get_user_by_username(self, username: str) -> Optional[UserInDB]:
        with self._guard("get_user_by_username"):
            row = self.session.query(UserRow).filter(UserRow.username == username).first()
            return UserInDB.model_validate(row) if row else None

    def create_user(self, user: UserInDB) -> UserInDB:
        with self._guard("create_user"):
            row = UserRow(**user.model_dump())
            self.session.add(row)
            self.session.commit()
            return user

    def delete_user(self, user_id: str) -> bool:
        with self._guard("delete_user"):
            row = self.session.get(UserRow, user_id)
            if row is None:
                return False
            self.session.delete(row)
            self.session.commit()
            return True

    # Categories

    def list_categories(self) -> List[Category]:
        with self._guard("list_categories"):
            rows = self.session.query(CategoryRow).order_by(CategoryRow.name.asc()).all()
            return [Category.model_validate(row) for row in rows]

    def get_category(self, category_id: str) -> Optional[Category]:
        with self._guard("get_category"):
            return _category(self.session.get(CategoryRow, category_id))

    def create_category(self, category: Category) -> Category:
        with self._guard("create_category"):
            self.session.add(CategoryRow(**category.model_dump()))
            self.session.commit()
            return category

    def update_category(self, category_id: str, updates: Dict[str, Any]) -> Optional[Category]:
        with self._guard("update_category"):
            row = self.session.get(CategoryRow, category_id)
            if row is None:
                return None
            for key, value in updates.items():
                setattr(row, key, value)
            self.session.commit()
            return Category.model_validate(row)

    def delete_category(self, category_id: str) -> bool:
        with self._guard("delete_category"):
            row = self.session.get(CategoryRow, category_id)
            if row is None:
                return False
            # Clear references explicitly; not every backend enforces ON DELETE SET NULL.
            self.session.query(ExpenseRow).filter(ExpenseRow.category_id == category_id).update(
                {ExpenseRow.category_id: None}, synchronize_session=False
            )
            self.session.query(BudgetRow).filter(BudgetRow.category_id == category_id).update(
                {BudgetRow.category_id: None}, synchronize_session=False
            )
            self.session.delete(row)
            self.session.commit()
            return True

    # Expenses

    def _expense_query(self, user_id: str):
        return (
            self.session.query(ExpenseRow)
            .options(joinedload(ExpenseRow.category))
            .filter(ExpenseRow.user_id == user_id)
        )

    def list_expenses(self, user_id: str, limit: int = 50) -> List[Expense]:
        with self._guard("list_expenses"):
            rows = (
                self._expense_query(user_id)
                .order_by(ExpenseRow.date.desc(), ExpenseRow.created_at.desc())
                .limit(limit)
                .all()
            )
            return [_expense(row) for row in rows]

    def list_expenses_in_range(self, user_id: str, start: date, end: date) -> List[Expense]:
        with self._guard("list_expenses_in_range"):
            rows = (
                self._expense_query(user_id)
                .filter(ExpenseRow.date >= start, ExpenseRow.date <= end)
                .order_by(ExpenseRow.date.desc(), ExpenseRow.created_at.desc())
                .all()
            )
            return [_expense(row) for row in rows]

    def get_expense(self, user_id: str, expense_id: str) -> Optional[Expense]:
        with self._guard("get_expense"):
            row = self._expense_query(user_id).filter(ExpenseRow.id == expense_id).first()
            return _expense(row) if row else None

    def create_expense(self, expense: ExpenseInDB) -> Expense:
        with self._guard("create_expense"):
            row = ExpenseRow(**expense.model_dump())
            self.session.add(row)
            self.session.commit()
            self.session.refresh(row)
            return _expense(row)

    def update_expense(self, user_id: str, expense_id: str, updates: Dict[str, Any]) -> Optional[Expense]:
        with self._guard("update_expense"):
            row = self._expense_query(user_id).filter(ExpenseRow.id == expense_id).first()
            if row is None:
                return None
            for key, value in updates.items():
                setattr(row, key, value)
            row.updated_at = datetime.utcnow()
            self.session.commit()
            self.session.refresh(row)
            return _expense(row)

    def delete_expense(self, user_id: str, expense_id: str) -> bool:
        with self._guard("delete_expense"):
            deleted = (
                self.session.query(ExpenseRow)
                .filter(ExpenseRow.user_id == user_id, ExpenseRow.id == expense_id)
                .delete(synchronize_session=False)
            )
            self.session.commit()
            return deleted > 0

    # Budgets

    def list_budgets(self, user_id: str) -> List[Budget]:
        with self._guard("list_budgets"):
            rows = (
                self.session.query(BudgetRow)
                .filter(BudgetRow.user_id == user_id)
                .order_by(BudgetRow.created_at.desc())
                .all()
            )
            return [_budget(row) for row in rows]

    def get_budget(self, user_id: str, budget_id: str) -> Optional[Budget]:
        with self._guard("get_budget"):
            row = (
                self.session.query(BudgetRow)
                .filter(BudgetRow.user_id == user_id, BudgetRow.id == budget_id)
                .first()
            )
            return _budget(row) if row else None

    def create_budget(self, budget: Budget) -> Budget:
        with self._guard("create_budget"):
            row = BudgetRow(**budget.model_dump())
            self.session.add(row)
            self.session.commit()
            self.session.refresh(row)
            return _budget(row)

    def update_budget(self, user_id: str, budget_id: str, updates: Dict[str, Any]) -> Optional[Budget]:
        with self._guard("update_budget"):
            row = (
                self.session.query(BudgetRow)
                .filter(BudgetRow.user_id == user_id, BudgetRow.id == budget_id)
                .first()
            )
            if row is None:
                return None
            for key, value in updates.items():
                setattr(row, key, value)
            row.updated_at = datetime.utcnow()
            self.session.commit()
            self.session.refresh(row)
            return _budget(row)

    def delete_budget(self, user_id: str, budget_id: str) -> bool:
        with self._guard("delete_budget"):
            deleted = (
                self.session.query(BudgetRow)
                .filter(BudgetRow.user_id == user_id, BudgetRow.id == budget_id)
                .delete(synchronize_session=False)
            )
            self.session.commit()
            return deleted > 0

    # Insights

    def list_insights(self, user_id: str) -> List[Insight]:
        with self._guard("list_insights"):
            rows = (
                self.session.query(InsightRow)
                .filter(InsightRow.user_id == user_id)
                .order_by(InsightRow.created_at.desc())
                .all()
            )
            return [Insight.model_validate(row) for row in rows]

    def create_insight(self, insight: Insight) -> Insight:
        with self._guard("create_insight"):
            existing = self.session.get(InsightRow, insight.id)
            if existing is not None:
                return Insight.model_validate(existing)
            self.session.add(InsightRow(**insight.model_dump()))
            try:
                self.session.commit()
            except IntegrityError:
                # A concurrent request stored the same insight first.
                self.session.rollback()
                stored = self.session.get(InsightRow, insight.id)
                if stored is None:
                    logger.error(f"create_insight failed: insight {insight.id} rejected by constraints")
                    raise StorageError("create_insight")
                return Insight.model_validate(stored)
            return insight

    def mark_insight_read(self, user_id: str, insight_id: str) -> Optional[Insight]:
        with self._guard("mark_insight_read"):
            row = (
                self.session.query(InsightRow)
                .filter(InsightRow.user_id == user_id, InsightRow.id == insight_id)
                .first()
            )
            if row is None:
                return None
            if row.is_read != "true":
                row.is_read = "true"
                self.session.commit()
            return Insight.model_validate(row)

    def ping(self) -> bool:
        with self._guard("ping"):
            self.session.execute(text("SELECT 1"))
            return True
