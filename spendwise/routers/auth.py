import logging

from fastapi import APIRouter, Depends, HTTPException, status

from spendwise.core.security import create_access_token, get_password_hash, verify_password
from spendwise.db.base import ExpenseStore, StorageError
from spendwise.deps import get_current_user_id, get_store
from spendwise.models.user import Token, UserCreate, UserInDB, UserLogin, UserPublic

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/register", response_model=UserPublic, status_code=status.HTTP_201_CREATED)
def register(user: UserCreate, store: ExpenseStore = Depends(get_store)):
    try:
        if store.get_user_by_username(user.username):
            raise HTTPException(status_code=400, detail="User already exists")

        user_db = UserInDB(
            username=user.username,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            password_hash=get_password_hash(user.password),
        )
        store.create_user(user_db)
    except StorageError:
        raise HTTPException(status_code=500, detail="Error saving user")

    logger.info(f"Registered user {user_db.id}")
    return UserPublic.model_validate(user_db)


@router.post("/login", response_model=Token)
def login(credentials: UserLogin, store: ExpenseStore = Depends(get_store)):
    try:
        user = store.get_user_by_username(credentials.username)
    except StorageError:
        raise HTTPException(status_code=500, detail="Failed to log in")

    if not user or not verify_password(credentials.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid username or password")

    return Token(access_token=create_access_token(user.id))


@router.get("/me", response_model=UserPublic)
def get_current_user(
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStore = Depends(get_store),
):
    """Get current user profile"""
    try:
        user = store.get_user(user_id)
    except StorageError:
        raise HTTPException(status_code=500, detail="Failed to fetch user")
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return UserPublic.model_validate(user)


@router.delete("/me")
def delete_current_user(
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStore = Depends(get_store),
):
    """Delete the account together with its expenses, budgets and insights."""
    try:
        deleted = store.delete_user(user_id)
    except StorageError:
        raise HTTPException(status_code=500, detail="Failed to delete user")
    if not deleted:
        raise HTTPException(status_code=404, detail="User not found")
    return {"success": True}
