import datetime as dt
from typing import Dict, List, Optional

from pydantic import Field, field_validator

from spendwise.models.common import CamelModel, Money, parse_amount


class CategoryAmount(CamelModel):
    category_name: str
    amount: Money
    color: str


class DailyAmount(CamelModel):
    date: dt.date
    amount: Money


class ExpenseStatsResponse(CamelModel):
    total_spent: Money
    category_breakdown: List[CategoryAmount]
    daily_trend: List[DailyAmount]


class CategorizeRequest(CamelModel):
    description: str = ""
    amount: Optional[float] = 0


class Categorization(CamelModel):
    category: str
    confidence: float = Field(..., ge=0, le=1)
    reasoning: str


class CategorizeResponse(Categorization):
    suggested_category_id: Optional[str] = None
    suggested_category_name: str = "Unknown"


class BudgetRecommendationRequest(CamelModel):
    income: Optional[Money] = None

    @field_validator("income", mode="before")
    @classmethod
    def _validate_income(cls, value):
        if value is None:
            return None
        return parse_amount(value)


class BudgetRecommendationResponse(CamelModel):
    start_date: dt.date
    end_date: dt.date
    recommendations: Dict[str, Money]
