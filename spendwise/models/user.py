from datetime import datetime
from typing import Optional
from uuid import uuid4

from pydantic import EmailStr, Field

from spendwise.models.common import CamelModel


class UserCreate(CamelModel):
    username: str = Field(..., min_length=3, max_length=50)
    password: str = Field(..., min_length=6)
    email: Optional[EmailStr] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class UserLogin(CamelModel):
    username: str
    password: str


class UserInDB(CamelModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    username: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    password_hash: str
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class UserPublic(CamelModel):
    id: str
    username: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    created_at: datetime


class Token(CamelModel):
    access_token: str
    token_type: str = "bearer"
