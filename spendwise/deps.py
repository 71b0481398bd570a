from typing import Iterator, Optional

from fastapi import Depends, Header, HTTPException, status
from openai import OpenAI

from spendwise.core.config import settings
from spendwise.core.security import decode_access_token
from spendwise.db.base import ExpenseStore
from spendwise.db.dynamo import DynamoStore
from spendwise.db.sql import SqlStore, get_session_factory
from spendwise.utils.ai_service import create_ai_client


def get_store() -> Iterator[ExpenseStore]:
    """Request-scoped store: one SQL session per request, released afterwards."""
    if settings.STORAGE_BACKEND == "dynamo":
        yield DynamoStore()
        return

    session = get_session_factory()()
    try:
        yield SqlStore(session)
    finally:
        session.close()


def get_ai_client() -> Optional[OpenAI]:
    return create_ai_client()


def get_token_subject(authorization: Optional[str] = Header(None)) -> str:
    """Extract user_id from JWT token"""
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token required")

    token = authorization.replace("Bearer ", "", 1)
    payload = decode_access_token(token)
    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    return user_id


def get_current_user_id(
    user_id: str = Depends(get_token_subject),
    store: ExpenseStore = Depends(get_store),
) -> str:
    """The token's user, which must still exist."""
    if store.get_user(user_id) is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User no longer exists")
    return user_id
