from __future__ import annotations

import calendar
from collections import defaultdict
from dataclasses import asdict, dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from spendwise.db.base import UNCATEGORIZED_COLOR, UNCATEGORIZED_NAME
from spendwise.models.budget import Budget
from spendwise.models.common import to_money
from spendwise.models.expense import Expense

GENERAL_BUDGET_NAME = "General"
ZERO = Decimal("0.00")


@dataclass
class CategoryTotal:
    category_name: str
    amount: Decimal
    color: str


@dataclass
class DailyTotal:
    date: date
    amount: Decimal


@dataclass
class ExpenseStats:
    """Aggregated spend for one user over one date range."""

    total_spent: Decimal = ZERO
    category_breakdown: List[CategoryTotal] = field(default_factory=list)
    daily_trend: List[DailyTotal] = field(default_factory=list)
    expense_count: int = 0

    def totals_by_name(self) -> Dict[str, Decimal]:
        totals: Dict[str, Decimal] = defaultdict(lambda: ZERO)
        for entry in self.category_breakdown:
            totals[entry.category_name] += entry.amount
        return dict(totals)


@dataclass
class CategoryTrend:
    category: str
    current: Decimal
    previous: Decimal
    change: float


@dataclass
class BudgetStatus:
    category: str
    budget: Decimal
    spent: Decimal
    remaining: Decimal
    utilization: float
    is_over_budget: bool


@dataclass
class SavingsOpportunity:
    category: str
    increase: float
    current_spend: Decimal
    potential_saving: Decimal


def _jsonable(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_jsonable(v) for v in value]
    return value


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def to_payload(record: Any) -> Dict[str, Any]:
    """Dataclass -> JSON-ready dict with camelCase keys."""
    return {_camel(k): _jsonable(v) for k, v in asdict(record).items()}


def percentage(part: Decimal, whole: Decimal) -> float:
    if whole == 0:
        return 0.0
    return round(float(part * 100 / whole), 2)


def month_range(day: date) -> Tuple[date, date]:
    """First and last calendar day of the month containing ``day``."""
    last_day = calendar.monthrange(day.year, day.month)[1]
    return day.replace(day=1), day.replace(day=last_day)


def previous_month_range(day: date) -> Tuple[date, date]:
    first_of_month = day.replace(day=1)
    return month_range(first_of_month - timedelta(days=1))


class SpendingAnalyzer:
    """
    Aggregation and trend/budget analysis over already-loaded expenses.
    Pure computations: no I/O, amounts accumulated as Decimal.
    """

    def __init__(
        self,
        savings_threshold: float = 20.0,
        savings_rate: Decimal = Decimal("0.15"),
    ) -> None:
        self._savings_threshold = savings_threshold
        self._savings_rate = savings_rate

    def aggregate(self, expenses: Iterable[Expense]) -> ExpenseStats:
        by_category: Dict[Optional[str], Decimal] = defaultdict(lambda: ZERO)
        labels: Dict[Optional[str], Tuple[str, str]] = {None: (UNCATEGORIZED_NAME, UNCATEGORIZED_COLOR)}
        by_day: Dict[date, Decimal] = defaultdict(lambda: ZERO)
        total = ZERO
        count = 0

        for expense in expenses:
            amount = to_money(expense.amount)
            # Deleted or unknown categories collapse into "Uncategorized".
            key = expense.category.id if expense.category else None
            if expense.category:
                labels[key] = (expense.category.name, expense.category.color)
            by_category[key] += amount
            by_day[expense.date] += amount
            total += amount
            count += 1

        breakdown = [
            CategoryTotal(category_name=labels[key][0], amount=amount, color=labels[key][1])
            for key, amount in by_category.items()
        ]
        breakdown.sort(key=lambda entry: (-entry.amount, entry.category_name))

        trend = [DailyTotal(date=day, amount=by_day[day]) for day in sorted(by_day)]

        return ExpenseStats(
            total_spent=total,
            category_breakdown=breakdown,
            daily_trend=trend,
            expense_count=count,
        )

    def category_trends(self, current: ExpenseStats, previous: ExpenseStats) -> List[CategoryTrend]:
        previous_totals = previous.totals_by_name()
        trends = []
        for category, amount in current.totals_by_name().items():
            before = previous_totals.get(category, ZERO)
            change = percentage(amount - before, before)
            trends.append(CategoryTrend(category=category, current=amount, previous=before, change=change))
        return trends

    def budget_analysis(
        self,
        current: ExpenseStats,
        budgets: Iterable[Budget],
        category_names: Mapping[str, str],
    ) -> List[BudgetStatus]:
        """
        Category budgets are measured against that category's spend; budgets
        without a (known) category are "General" and measure total spend.
        """
        totals = current.totals_by_name()
        statuses = []
        for budget in budgets:
            name = category_names.get(budget.category_id) if budget.category_id else None
            if name is None:
                name = GENERAL_BUDGET_NAME
                spent = current.total_spent
            else:
                spent = totals.get(name, ZERO)
            allotted = to_money(budget.amount)
            statuses.append(
                BudgetStatus(
                    category=name,
                    budget=allotted,
                    spent=spent,
                    remaining=allotted - spent,
                    utilization=percentage(spent, allotted),
                    is_over_budget=spent > allotted,
                )
            )
        return statuses

    def savings_opportunities(self, trends: Iterable[CategoryTrend]) -> List[SavingsOpportunity]:
        return [
            SavingsOpportunity(
                category=trend.category,
                increase=trend.change,
                current_spend=trend.current,
                potential_saving=to_money(trend.current * self._savings_rate),
            )
            for trend in trends
            if trend.change > self._savings_threshold
        ]

    def summarize(
        self,
        current: ExpenseStats,
        previous: ExpenseStats,
        budgets: Iterable[Budget],
        category_names: Mapping[str, str],
    ) -> Dict[str, Any]:
        """Everything the insight prompt needs, as a JSON-ready dict."""
        budgets = list(budgets)
        trends = self.category_trends(current, previous)
        average = to_money(current.total_spent / current.expense_count) if current.expense_count else ZERO

        return {
            "currentMonth": {
                "total": float(current.total_spent),
                "categoryBreakdown": _jsonable(current.totals_by_name()),
                "expenseCount": current.expense_count,
                "averageExpense": float(average),
            },
            "previousMonth": {
                "total": float(previous.total_spent),
                "categoryBreakdown": _jsonable(previous.totals_by_name()),
                "expenseCount": previous.expense_count,
            },
            "trends": [to_payload(t) for t in trends],
            "budgetAnalysis": [
                to_payload(s) for s in self.budget_analysis(current, budgets, category_names)
            ],
            "totalBudget": float(sum((to_money(b.amount) for b in budgets), ZERO)),
            "savingsOpportunities": [to_payload(s) for s in self.savings_opportunities(trends)],
        }
