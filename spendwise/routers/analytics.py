import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from spendwise.db.base import ExpenseStore, StorageError
from spendwise.deps import get_current_user_id, get_store
from spendwise.models.analytics import ExpenseStatsResponse
from spendwise.utils.analyzer import SpendingAnalyzer

router = APIRouter()
logger = logging.getLogger(__name__)
spending_analyzer = SpendingAnalyzer()


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid date: {value}")


@router.get("/stats", response_model=ExpenseStatsResponse)
def expense_stats(
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStore = Depends(get_store),
):
    """
    Total spend, per-category breakdown and per-day trend for an inclusive
    date range, e.g. ?startDate=2024-01-01&endDate=2024-01-31
    """
    if not start_date or not end_date:
        raise HTTPException(status_code=400, detail="Start date and end date are required")
    start, end = _parse_date(start_date), _parse_date(end_date)

    try:
        expenses = store.list_expenses_in_range(user_id, start, end)
    except StorageError:
        raise HTTPException(status_code=500, detail="Failed to fetch stats")

    stats = spending_analyzer.aggregate(expenses)
    logger.info(f"Stats for user {user_id} {start}..{end}: total={stats.total_spent}")
    return ExpenseStatsResponse.model_validate(stats)
