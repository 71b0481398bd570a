from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from spendwise.db.base import ExpenseStore, StorageError
from spendwise.deps import get_current_user_id, get_store
from spendwise.models.budget import Budget, BudgetCreate, BudgetUpdate

router = APIRouter()


@router.get("", response_model=List[Budget])
def list_budgets(
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStore = Depends(get_store),
):
    try:
        return store.list_budgets(user_id)
    except StorageError:
        raise HTTPException(status_code=500, detail="Failed to fetch budgets")


@router.post("", response_model=Budget, status_code=status.HTTP_201_CREATED)
def create_budget(
    budget: BudgetCreate,
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStore = Depends(get_store),
):
    try:
        if budget.category_id and store.get_category(budget.category_id) is None:
            raise HTTPException(status_code=400, detail="Unknown category")
        return store.create_budget(Budget(user_id=user_id, **budget.model_dump()))
    except StorageError:
        raise HTTPException(status_code=500, detail="Failed to create budget")


@router.put("/{budget_id}", response_model=Budget)
def update_budget(
    budget_id: str,
    budget_update: BudgetUpdate,
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStore = Depends(get_store),
):
    updates = budget_update.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No fields to update")
    for field in ("amount", "period", "start_date", "end_date"):
        if field in updates and updates[field] is None:
            raise HTTPException(status_code=400, detail=f"{field} cannot be null")

    try:
        existing = store.get_budget(user_id, budget_id)
        if not existing:
            raise HTTPException(status_code=404, detail="Budget not found")

        start = updates.get("start_date", existing.start_date)
        end = updates.get("end_date", existing.end_date)
        if end < start:
            raise HTTPException(status_code=400, detail="endDate must not precede startDate")
        if updates.get("category_id") and store.get_category(updates["category_id"]) is None:
            raise HTTPException(status_code=400, detail="Unknown category")

        updated = store.update_budget(user_id, budget_id, updates)
    except StorageError:
        raise HTTPException(status_code=500, detail="Failed to update budget")
    if not updated:
        raise HTTPException(status_code=404, detail="Budget not found")
    return updated


@router.delete("/{budget_id}")
def delete_budget(
    budget_id: str,
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStore = Depends(get_store),
):
    try:
        deleted = store.delete_budget(user_id, budget_id)
    except StorageError:
        raise HTTPException(status_code=500, detail="Failed to delete budget")
    if not deleted:
        raise HTTPException(status_code=404, detail="Budget not found")
    return {"success": True}
