from datetime import datetime
from typing import Optional
from uuid import uuid4

from pydantic import Field

from spendwise.models.common import CamelModel

HEX_COLOR = r"^#(?:[0-9a-fA-F]{3}){1,2}$"


class CategoryCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    color: str = Field(..., pattern=HEX_COLOR)
    icon: Optional[str] = Field(default=None, max_length=50)


class CategoryUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    color: Optional[str] = Field(default=None, pattern=HEX_COLOR)
    icon: Optional[str] = Field(default=None, max_length=50)


class Category(CamelModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str
    color: str
    icon: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
