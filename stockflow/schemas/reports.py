from datetime import date as calendar_date
from decimal import Decimal

from pydantic import BaseModel

from stockflow.schemas.ledger import CategoryTotalOut


class MonthlyBucketOut(BaseModel):
    month: str
    count: int
    total_amount: Decimal


class PartyTotalOut(BaseModel):
    party_id: int | None
    party_name: str
    count: int
    total_amount: Decimal


class TopProductOut(BaseModel):
    product_id: int
    product_name: str
    total_quantity: int
    total_revenue: Decimal


class SalesStatsOut(BaseModel):
    period_from: calendar_date | None
    period_to: calendar_date | None
    total_sales: int
    total_amount: Decimal
    by_customer: list[PartyTotalOut]
    monthly: list[MonthlyBucketOut]
    top_products: list[TopProductOut]


class PurchaseStatsOut(BaseModel):
    period_from: calendar_date | None
    period_to: calendar_date | None
    total_purchases: int
    total_amount: Decimal
    by_supplier: list[PartyTotalOut]
    monthly: list[MonthlyBucketOut]


class LedgerSummaryOut(BaseModel):
    period_from: calendar_date | None
    period_to: calendar_date | None
    total_income: Decimal
    total_expenses: Decimal
    net: Decimal
    income_by_category: list[CategoryTotalOut]
    expenses_by_category: list[CategoryTotalOut]


class InventorySummaryOut(BaseModel):
    total_products: int
    active_products: int
    low_stock_products: int
    total_units: int
    inventory_value: Decimal
