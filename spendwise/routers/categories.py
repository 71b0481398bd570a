from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from spendwise.db.base import ExpenseStore, StorageError
from spendwise.deps import get_current_user_id, get_store
from spendwise.models.category import Category, CategoryCreate, CategoryUpdate

router = APIRouter(dependencies=[Depends(get_current_user_id)])


@router.get("", response_model=List[Category])
def list_categories(store: ExpenseStore = Depends(get_store)):
    try:
        return store.list_categories()
    except StorageError:
        raise HTTPException(status_code=500, detail="Failed to fetch categories")


@router.post("", response_model=Category, status_code=status.HTTP_201_CREATED)
def create_category(category: CategoryCreate, store: ExpenseStore = Depends(get_store)):
    try:
        return store.create_category(Category(**category.model_dump()))
    except StorageError:
        raise HTTPException(status_code=500, detail="Failed to create category")


@router.put("/{category_id}", response_model=Category)
def update_category(
    category_id: str,
    category_update: CategoryUpdate,
    store: ExpenseStore = Depends(get_store),
):
    updates = category_update.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No fields to update")
    for field in ("name", "color"):
        if field in updates and updates[field] is None:
            raise HTTPException(status_code=400, detail=f"{field} cannot be null")

    try:
        updated = store.update_category(category_id, updates)
    except StorageError:
        raise HTTPException(status_code=500, detail="Failed to update category")
    if not updated:
        raise HTTPException(status_code=404, detail="Category not found")
    return updated


@router.delete("/{category_id}")
def delete_category(category_id: str, store: ExpenseStore = Depends(get_store)):
    """Expenses and budgets that used the category become uncategorized."""
    try:
        deleted = store.delete_category(category_id)
    except StorageError:
        raise HTTPException(status_code=500, detail="Failed to delete category")
    if not deleted:
        raise HTTPException(status_code=404, detail="Category not found")
    return {"success": True}
