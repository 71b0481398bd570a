import datetime as dt
from typing import Literal, Optional
from uuid import uuid4

from pydantic import Field, field_validator, model_validator

from spendwise.models.common import CamelModel, Money, parse_amount

BudgetPeriod = Literal["weekly", "monthly", "yearly"]


class BudgetCreate(CamelModel):
    category_id: Optional[str] = None
    amount: Money
    period: BudgetPeriod = "monthly"
    start_date: dt.date
    end_date: dt.date

    @field_validator("amount", mode="before")
    @classmethod
    def _validate_amount(cls, value):
        return parse_amount(value)

    @model_validator(mode="after")
    def _check_window(self):
        if self.end_date < self.start_date:
            raise ValueError("endDate must not precede startDate")
        return self


class BudgetUpdate(CamelModel):
    category_id: Optional[str] = None
    amount: Optional[Money] = None
    period: Optional[BudgetPeriod] = None
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None

    @field_validator("amount", mode="before")
    @classmethod
    def _validate_amount(cls, value):
        if value is None:
            return None
        return parse_amount(value)


class Budget(CamelModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    user_id: str
    category_id: Optional[str] = None
    amount: Money
    period: BudgetPeriod = "monthly"
    start_date: dt.date
    end_date: dt.date
    created_at: dt.datetime = Field(default_factory=dt.datetime.utcnow)
    updated_at: dt.datetime = Field(default_factory=dt.datetime.utcnow)

    def overlaps(self, start: dt.date, end: dt.date) -> bool:
        return self.start_date <= end and self.end_date >= start
