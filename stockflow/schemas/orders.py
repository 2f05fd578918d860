from datetime import date as calendar_date, datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field

from stockflow.models.orders import PurchaseStatus, SaleStatus


class PurchaseItemIn(BaseModel):
    product_id: int
    quantity: int = Field(ge=1)
    unit_cost: Decimal | None = Field(default=None, ge=0)


class SaleItemIn(BaseModel):
    product_id: int
    quantity: int = Field(ge=1)
    unit_price: Decimal | None = Field(default=None, ge=0)


class PurchaseCreate(BaseModel):
    date: calendar_date
    supplier_id: int
    status: PurchaseStatus = PurchaseStatus.PENDING
    invoice_number: str | None = Field(default=None, max_length=64)
    note: str | None = Field(default=None, max_length=255)
    items: list[PurchaseItemIn] = Field(min_length=1)


class PurchaseUpdate(BaseModel):
    date: calendar_date | None = None
    supplier_id: int | None = None
    status: PurchaseStatus | None = None
    invoice_number: str | None = Field(default=None, max_length=64)
    note: str | None = Field(default=None, max_length=255)
    items: list[PurchaseItemIn] | None = Field(default=None, min_length=1)


class SaleCreate(BaseModel):
    date: calendar_date
    customer_id: int
    status: SaleStatus = SaleStatus.PENDING
    payment_method: str = Field(default="cash", min_length=2, max_length=32)
    note: str | None = Field(default=None, max_length=255)
    items: list[SaleItemIn] = Field(min_length=1)


class SaleUpdate(BaseModel):
    date: calendar_date | None = None
    customer_id: int | None = None
    status: SaleStatus | None = None
    payment_method: str | None = Field(default=None, min_length=2, max_length=32)
    note: str | None = Field(default=None, max_length=255)
    items: list[SaleItemIn] | None = Field(default=None, min_length=1)


class PurchaseStatusUpdate(BaseModel):
    status: PurchaseStatus


class SaleStatusUpdate(BaseModel):
    status: SaleStatus


class PurchaseItemOut(BaseModel):
    id: int
    product_id: int
    quantity: int
    unit_cost: Decimal
    subtotal: Decimal

    model_config = {"from_attributes": True}


class SaleItemOut(BaseModel):
    id: int
    product_id: int
    quantity: int
    unit_price: Decimal
    subtotal: Decimal

    model_config = {"from_attributes": True}


class PurchaseOut(BaseModel):
    id: int
    date: calendar_date
    supplier_id: int | None
    status: PurchaseStatus
    total: Decimal
    invoice_number: str | None
    note: str | None
    created_at: datetime
    updated_at: datetime
    items: list[PurchaseItemOut]

    model_config = {"from_attributes": True}


class SaleOut(BaseModel):
    id: int
    date: calendar_date
    customer_id: int | None
    status: SaleStatus
    total: Decimal
    payment_method: str
    note: str | None
    created_at: datetime
    updated_at: datetime
    items: list[SaleItemOut]

    model_config = {"from_attributes": True}


class StockChangeOut(BaseModel):
    product_id: int
    stock: int


class SyncOut(BaseModel):
    order_id: int
    previous_status: str | None
    status: str
    total: Decimal
    stock: list[StockChangeOut]
    ledger_entry_id: int | None
    ledger_action: Literal["created", "removed"] | None


class PurchaseSyncOut(SyncOut):
    purchase: PurchaseOut | None


class SaleSyncOut(SyncOut):
    sale: SaleOut | None


class ProductLineOut(BaseModel):
    item_id: int
    order_id: int
    date: calendar_date
    status: str
    counterparty_id: int | None
    counterparty_name: str | None
    quantity: int
    unit_amount: Decimal
    subtotal: Decimal
