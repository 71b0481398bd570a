import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from openai import OpenAI

from spendwise.db.base import ExpenseStore, StorageError
from spendwise.deps import get_ai_client, get_current_user_id, get_store
from spendwise.models.insight import Insight
from spendwise.utils.ai_service import generate_insights
from spendwise.utils.analyzer import SpendingAnalyzer, month_range, previous_month_range

router = APIRouter()
logger = logging.getLogger(__name__)
spending_analyzer = SpendingAnalyzer()


@router.get("", response_model=List[Insight])
def list_insights(
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStore = Depends(get_store),
):
    try:
        return store.list_insights(user_id)
    except StorageError:
        raise HTTPException(status_code=500, detail="Failed to fetch insights")


@router.post("/generate", response_model=List[Insight])
def generate(
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStore = Depends(get_store),
    ai_client: Optional[OpenAI] = Depends(get_ai_client),
):
    """
    Compare this calendar month with the previous one, ask the AI for insights
    and store them. Re-generating an identical insight for the same month
    returns the stored row instead of a duplicate.
    """
    today = date.today()
    current_start, current_end = month_range(today)
    previous_start, previous_end = previous_month_range(today)
    period = today.strftime("%Y-%m")

    try:
        current = spending_analyzer.aggregate(
            store.list_expenses_in_range(user_id, current_start, current_end)
        )
        previous = spending_analyzer.aggregate(
            store.list_expenses_in_range(user_id, previous_start, previous_end)
        )
        budgets = [
            budget for budget in store.list_budgets(user_id)
            if budget.overlaps(current_start, current_end)
        ]
        category_names = {category.id: category.name for category in store.list_categories()}
    except StorageError:
        raise HTTPException(status_code=500, detail="Failed to generate insights")

    summary = spending_analyzer.summarize(current, previous, budgets, category_names)
    drafts = generate_insights(ai_client, summary)

    saved: List[Insight] = []
    seen = set()
    try:
        for draft in drafts:
            insight = store.create_insight(Insight.from_draft(draft, user_id, period))
            if insight.id not in seen:
                seen.add(insight.id)
                saved.append(insight)
    except StorageError:
        raise HTTPException(status_code=500, detail="Failed to generate insights")

    logger.info(f"Stored {len(saved)} insights for user {user_id} ({period})")
    return saved


@router.put("/{insight_id}/read", response_model=Insight)
def mark_read(
    insight_id: str,
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStore = Depends(get_store),
):
    try:
        insight = store.mark_insight_read(user_id, insight_id)
    except StorageError:
        raise HTTPException(status_code=500, detail="Failed to mark insight as read")
    if not insight:
        raise HTTPException(status_code=404, detail="Insight not found")
    return insight
