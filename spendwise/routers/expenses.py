import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from openai import OpenAI

from spendwise.db.base import ExpenseStore, StorageError
from spendwise.deps import get_ai_client, get_current_user_id, get_store
from spendwise.models.expense import Expense, ExpenseCreate, ExpenseInDB, ExpenseUpdate
from spendwise.utils.ai_service import categorize_expense, match_category

router = APIRouter()
logger = logging.getLogger(__name__)


def _ensure_category(store: ExpenseStore, category_id: Optional[str]) -> None:
    if category_id and store.get_category(category_id) is None:
        raise HTTPException(status_code=400, detail="Unknown category")


@router.get("", response_model=List[Expense])
def list_expenses(
    limit: int = Query(50, ge=1, le=500),
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStore = Depends(get_store),
):
    try:
        return store.list_expenses(user_id, limit)
    except StorageError:
        raise HTTPException(status_code=500, detail="Failed to fetch expenses")


@router.post("", response_model=Expense, status_code=status.HTTP_201_CREATED)
def create_expense(
    expense: ExpenseCreate,
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStore = Depends(get_store),
    ai_client: Optional[OpenAI] = Depends(get_ai_client),
):
    try:
        category_id = expense.category_id
        _ensure_category(store, category_id)

        # Let the AI pick a category when the user did not.
        if not category_id and expense.description:
            categorization = categorize_expense(ai_client, expense.description, float(expense.amount))
            matched = match_category(categorization.category, store.list_categories())
            if matched:
                category_id = matched.id
                logger.info(f"Auto-categorized expense as {matched.name} ({categorization.confidence:.2f})")

        expense_db = ExpenseInDB(
            user_id=user_id,
            **expense.model_dump(exclude={"category_id"}),
            category_id=category_id,
        )
        return store.create_expense(expense_db)
    except StorageError:
        raise HTTPException(status_code=500, detail="Failed to create expense")


@router.put("/{expense_id}", response_model=Expense)
def update_expense(
    expense_id: str,
    expense_update: ExpenseUpdate,
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStore = Depends(get_store),
):
    mutable_fields = expense_update.model_dump(exclude_unset=True)
    if not mutable_fields:
        raise HTTPException(status_code=400, detail="No fields to update")

    for field in ("amount", "description", "payment_method", "date"):
        if field in mutable_fields and mutable_fields[field] is None:
            raise HTTPException(status_code=400, detail=f"{field} cannot be null")

    try:
        _ensure_category(store, mutable_fields.get("category_id"))
        updated = store.update_expense(user_id, expense_id, mutable_fields)
    except StorageError:
        raise HTTPException(status_code=500, detail="Failed to update expense")
    if not updated:
        raise HTTPException(status_code=404, detail="Expense not found")
    return updated


@router.delete("/{expense_id}")
def delete_expense(
    expense_id: str,
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStore = Depends(get_store),
):
    try:
        deleted = store.delete_expense(user_id, expense_id)
    except StorageError:
        raise HTTPException(status_code=500, detail="Failed to delete expense")
    if not deleted:
        raise HTTPException(status_code=404, detail="Expense not found")
    return {"success": True}
