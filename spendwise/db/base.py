"""
Storage interface shared by the SQL and DynamoDB adapters.

Analytics and routers depend only on ``ExpenseStore``; each adapter owns its
backend-specific query syntax. Amounts cross this boundary as ``Decimal``
quantized to 2 places.
"""
from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Dict, List, Optional

from spendwise.models.budget import Budget
from spendwise.models.category import Category
from spendwise.models.expense import Expense, ExpenseInDB
from spendwise.models.insight import Insight
from spendwise.models.user import UserInDB

UNCATEGORIZED_NAME = "Uncategorized"
UNCATEGORIZED_COLOR = "#6b7280"

DEFAULT_CATEGORIES = [
    {"name": "Food & Dining", "color": "#ef4444", "icon": "🍽️"},
    {"name": "Transportation", "color": "#3b82f6", "icon": "🚗"},
    {"name": "Shopping", "color": "#10b981", "icon": "🛍️"},
    {"name": "Entertainment", "color": "#f59e0b", "icon": "🎬"},
    {"name": "Bills & Utilities", "color": "#8b5cf6", "icon": "📱"},
    {"name": "Healthcare", "color": "#ec4899", "icon": "🏥"},
    {"name": "Education", "color": "#06b6d4", "icon": "📚"},
    {"name": "Travel", "color": "#84cc16", "icon": "✈️"},
]


class StorageError(Exception):
    """Raised when the backing database cannot serve a request."""


class ExpenseStore(ABC):
    # Users
    @abstractmethod
    def get_user(self, user_id: str) -> Optional[UserInDB]: ...

    @abstractmethod
    def get_user_by_username(self, username: str) -> Optional[UserInDB]: ...

    @abstractmethod
    def create_user(self, user: UserInDB) -> UserInDB: ...

    @abstractmethod
    def delete_user(self, user_id: str) -> bool:
        """Delete a user together with their expenses, budgets and insights."""

    # Categories
    @abstractmethod
    def list_categories(self) -> List[Category]: ...

    @abstractmethod
    def get_category(self, category_id: str) -> Optional[Category]: ...

    @abstractmethod
    def create_category(self, category: Category) -> Category: ...

    @abstractmethod
    def update_category(self, category_id: str, updates: Dict[str, Any]) -> Optional[Category]: ...

    @abstractmethod
    def delete_category(self, category_id: str) -> bool:
        """Delete a category and clear it from every expense and budget."""

    # Expenses
    @abstractmethod
    def list_expenses(self, user_id: str, limit: int = 50) -> List[Expense]: ...

    @abstractmethod
    def list_expenses_in_range(self, user_id: str, start: date, end: date) -> List[Expense]:
        """Expenses dated within [start, end], newest first."""

    @abstractmethod
    def get_expense(self, user_id: str, expense_id: str) -> Optional[Expense]: ...

    @abstractmethod
    def create_expense(self, expense: ExpenseInDB) -> Expense: ...

    @abstractmethod
    def update_expense(self, user_id: str, expense_id: str, updates: Dict[str, Any]) -> Optional[Expense]: ...

    @abstractmethod
    def delete_expense(self, user_id: str, expense_id: str) -> bool: ...

    # Budgets
    @abstractmethod
    def list_budgets(self, user_id: str) -> List[Budget]: ...

    @abstractmethod
    def get_budget(self, user_id: str, budget_id: str) -> Optional[Budget]: ...

    @abstractmethod
    def create_budget(self, budget: Budget) -> Budget: ...

    @abstractmethod
    def update_budget(self, user_id: str, budget_id: str, updates: Dict[str, Any]) -> Optional[Budget]: ...

    @abstractmethod
    def delete_budget(self, user_id: str, budget_id: str) -> bool: ...

    # Insights
    @abstractmethod
    def list_insights(self, user_id: str) -> List[Insight]: ...

    @abstractmethod
    def create_insight(self, insight: Insight) -> Insight:
        """Insert unless an insight with the same id exists; return the stored row."""

    @abstractmethod
    def mark_insight_read(self, user_id: str, insight_id: str) -> Optional[Insight]: ...

    @abstractmethod
    def ping(self) -> bool: ...

    def seed_default_categories(self) -> int:
        """Create the default categories when none exist. Returns how many were added."""
        if self.list_categories():
            return 0
        for item in DEFAULT_CATEGORIES:
            self.create_category(Category(**item))
        return len(DEFAULT_CATEGORIES)
