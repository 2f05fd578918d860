from datetime import date as calendar_date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class LedgerEntryCreate(BaseModel):
    date: calendar_date
    description: str = Field(min_length=2, max_length=255)
    amount: Decimal = Field(gt=0)
    category: str = Field(min_length=2, max_length=120)


class LedgerEntryUpdate(BaseModel):
    date: calendar_date | None = None
    description: str | None = Field(default=None, min_length=2, max_length=255)
    amount: Decimal | None = Field(default=None, gt=0)
    category: str | None = Field(default=None, min_length=2, max_length=120)


class ExpenseOut(BaseModel):
    id: int
    date: calendar_date
    description: str
    amount: Decimal
    category: str
    purchase_id: int | None
    created_at: datetime

    model_config = {"from_attributes": True}


class IncomeOut(BaseModel):
    id: int
    date: calendar_date
    description: str
    amount: Decimal
    category: str
    sale_id: int | None
    created_at: datetime

    model_config = {"from_attributes": True}


class CategoryTotalOut(BaseModel):
    category: str
    total: Decimal
    entries: int


class SalesIncomeDetailOut(BaseModel):
    id: int
    date: calendar_date
    description: str
    amount: Decimal
    category: str
    sale_id: int
    sale_date: calendar_date
    sale_total: Decimal
    payment_method: str
    customer_id: int | None
    customer_name: str | None
