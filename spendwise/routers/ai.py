from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from openai import OpenAI

from spendwise.db.base import ExpenseStore, StorageError
from spendwise.deps import get_ai_client, get_current_user_id, get_store
from spendwise.models.analytics import (
    BudgetRecommendationRequest,
    BudgetRecommendationResponse,
    CategorizeRequest,
    CategorizeResponse,
)
from spendwise.utils.ai_service import categorize_expense, match_category, recommend_budgets
from spendwise.utils.analyzer import SpendingAnalyzer, previous_month_range

router = APIRouter()
spending_analyzer = SpendingAnalyzer()


@router.post("/categorize", response_model=CategorizeResponse)
def categorize(
    request: CategorizeRequest,
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStore = Depends(get_store),
    ai_client: Optional[OpenAI] = Depends(get_ai_client),
):
    if not request.description.strip():
        raise HTTPException(status_code=400, detail="Description is required")

    categorization = categorize_expense(ai_client, request.description, request.amount or 0)
    try:
        matched = match_category(categorization.category, store.list_categories())
    except StorageError:
        raise HTTPException(status_code=500, detail="Failed to categorize expense")

    return CategorizeResponse(
        **categorization.model_dump(),
        suggested_category_id=matched.id if matched else None,
        suggested_category_name=matched.name if matched else "Unknown",
    )


@router.post("/budget-recommendations", response_model=BudgetRecommendationResponse)
def budget_recommendations(
    request: BudgetRecommendationRequest,
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStore = Depends(get_store),
    ai_client: Optional[OpenAI] = Depends(get_ai_client),
):
    """Suggest monthly budgets from last month's per-category spend."""
    start, end = previous_month_range(date.today())
    try:
        stats = spending_analyzer.aggregate(store.list_expenses_in_range(user_id, start, end))
    except StorageError:
        raise HTTPException(status_code=500, detail="Failed to recommend budgets")

    totals = {name: float(amount) for name, amount in stats.totals_by_name().items()}
    recommendations = recommend_budgets(ai_client, totals, request.income) if totals else {}
    return BudgetRecommendationResponse(start_date=start, end_date=end, recommendations=recommendations)
