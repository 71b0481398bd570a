import datetime as dt
from typing import Literal, Optional
from uuid import uuid4

from pydantic import Field, field_validator

from spendwise.models.category import Category
from spendwise.models.common import CamelModel, Money, parse_amount

PaymentMethod = Literal["cash", "credit_card", "debit_card", "upi", "bank_transfer"]


class ExpenseCreate(CamelModel):
    category_id: Optional[str] = None
    amount: Money
    description: str = Field(..., min_length=1, max_length=500)
    payment_method: PaymentMethod
    date: dt.date

    @field_validator("amount", mode="before")
    @classmethod
    def _validate_amount(cls, value):
        return parse_amount(value)


class ExpenseUpdate(CamelModel):
    category_id: Optional[str] = None
    amount: Optional[Money] = None
    description: Optional[str] = Field(default=None, min_length=1, max_length=500)
    payment_method: Optional[PaymentMethod] = None
    date: Optional[dt.date] = None

    @field_validator("amount", mode="before")
    @classmethod
    def _validate_amount(cls, value):
        if value is None:
            return None
        return parse_amount(value)


class ExpenseInDB(CamelModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    user_id: str
    category_id: Optional[str] = None
    amount: Money
    description: str
    payment_method: PaymentMethod
    date: dt.date
    created_at: dt.datetime = Field(default_factory=dt.datetime.utcnow)
    updated_at: dt.datetime = Field(default_factory=dt.datetime.utcnow)


class Expense(ExpenseInDB):
    """An expense with its category resolved (None when absent or deleted)."""

    category: Optional[Category] = None
