from dataclasses import dataclass
from datetime import date as calendar_date
from decimal import Decimal
from enum import Enum

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload, selectinload

from stockflow.core.config import settings
from stockflow.core.errors import NotFoundError
from stockflow.models.catalog import Customer, Product, Supplier
from stockflow.models.ledger import Expense, Income
from stockflow.models.orders import Purchase, PurchaseItem, PurchaseStatus, Sale, SaleItem, SaleStatus
from stockflow.services.catalog import quantize_amount


@dataclass(frozen=True)
class OrderKind:
    """Everything that differs between a purchase and a sale.

    Both aggregates share one lifecycle; the kind tells the repository and the
    synchronizer which tables to touch and which way stock moves.
    """

    name: str
    order_model: type
    item_model: type
    item_fk: str
    status_enum: type[Enum]
    fulfilled_status: Enum
    cancelled_status: Enum
    pending_status: Enum
    stock_direction: int
    counterparty_model: type
    counterparty_field: str
    amount_field: str
    product_amount_field: str
    ledger_model: type
    ledger_fk: str
    header_fields: tuple[str, ...]

    @property
    def label(self) -> str:
        return self.name.capitalize()

    @property
    def counterparty_attr(self) -> str:
        return self.counterparty_field.removesuffix("_id")

    def counterparty_name(self, order) -> str | None:
        counterparty = getattr(order, self.counterparty_attr)
        if counterparty is None:
            return None
        return counterparty.full_name if self is SALE else counterparty.name

    def ledger_category(self) -> str:
        if self is SALE:
            return settings.sale_income_category
        return settings.purchase_expense_category

    def ledger_description(self, order) -> str:
        if self is SALE:
            customer = self.counterparty_name(order) or "walk-in customer"
            return f"Sale #{order.id} to {customer}"
        return f"Inventory purchase #{order.id}"

    def coerce_status(self, value):
        return value if isinstance(value, self.status_enum) else self.status_enum(value)


PURCHASE = OrderKind(
    name="purchase",
    order_model=Purchase,
    item_model=PurchaseItem,
    item_fk="purchase_id",
    status_enum=PurchaseStatus,
    fulfilled_status=PurchaseStatus.RECEIVED,
    cancelled_status=PurchaseStatus.CANCELLED,
    pending_status=PurchaseStatus.PENDING,
    stock_direction=1,
    counterparty_model=Supplier,
    counterparty_field="supplier_id",
    amount_field="unit_cost",
    product_amount_field="cost",
    ledger_model=Expense,
    ledger_fk="purchase_id",
    header_fields=("invoice_number", "note"),
)

SALE = OrderKind(
    name="sale",
    order_model=Sale,
    item_model=SaleItem,
    item_fk="sale_id",
    status_enum=SaleStatus,
    fulfilled_status=SaleStatus.COMPLETED,
    cancelled_status=SaleStatus.CANCELLED,
    pending_status=SaleStatus.PENDING,
    stock_direction=-1,
    counterparty_model=Customer,
    counterparty_field="customer_id",
    amount_field="unit_price",
    product_amount_field="price",
    ledger_model=Income,
    ledger_fk="sale_id",
    header_fields=("payment_method", "note"),
)


@dataclass(frozen=True)
class LineInput:
    product_id: int
    quantity: int
    unit_amount: Decimal

    @property
    def subtotal(self) -> Decimal:
        return quantize_amount(self.unit_amount * self.quantity)


class OrderRepository:
    def __init__(self, db: Session, kind: OrderKind):
        self.db = db
        self.kind = kind

    def get(self, order_id: int, *, for_update: bool = False):
        model = self.kind.order_model
        query = select(model).where(model.id == order_id).options(selectinload(model.items))
        if for_update:
            query = query.with_for_update()
        order = self.db.scalar(query)
        if not order:
            raise NotFoundError(
                f"{self.kind.label} {order_id} not found",
                entity=self.kind.name,
                entity_id=order_id,
            )
        return order

    def list_orders(
        self,
        *,
        date_from: calendar_date | None = None,
        date_to: calendar_date | None = None,
        status=None,
        counterparty_id: int | None = None,
        min_total: Decimal | None = None,
        max_total: Decimal | None = None,
    ) -> list:
        model = self.kind.order_model
        query = select(model).options(selectinload(model.items)).order_by(model.date.desc(), model.id.desc())
        if date_from is not None:
            query = query.where(model.date >= date_from)
        if date_to is not None:
            query = query.where(model.date <= date_to)
        if status is not None:
            query = query.where(model.status == self.kind.coerce_status(status))
        if counterparty_id is not None:
            query = query.where(getattr(model, self.kind.counterparty_field) == counterparty_id)
        if min_total is not None:
            query = query.where(model.total >= min_total)
        if max_total is not None:
            query = query.where(model.total <= max_total)
        return list(self.db.scalars(query).all())

    def create(self, *, date: calendar_date, counterparty_id: int, status, header: dict, lines: list[LineInput]):
        order = self.kind.order_model(
            date=date,
            status=self.kind.coerce_status(status),
            total=Decimal("0"),
            **{self.kind.counterparty_field: counterparty_id},
            **header,
        )
        self.db.add(order)
        self.replace_line_items(order, lines)
        return order

    def update_header(self, order, *, date: calendar_date | None = None, counterparty_id: int | None = None, **header):
        if date is not None:
            order.date = date
        if counterparty_id is not None:
            setattr(order, self.kind.counterparty_field, counterparty_id)
        columns = self.kind.order_model.__table__.c
        for field, value in header.items():
            if field not in self.kind.header_fields:
                raise ValueError(f"unknown {self.kind.name} field: {field}")
            if value is None and not columns[field].nullable:
                continue
            setattr(order, field, value)
        self.db.flush()
        return order

    def replace_line_items(self, order, lines: list[LineInput]):
        """Swap the order's lines for ``lines`` and recompute its total."""
        order.items.clear()
        for line in lines:
            order.items.append(
                self.kind.item_model(
                    product_id=line.product_id,
                    quantity=line.quantity,
                    subtotal=line.subtotal,
                    **{self.kind.amount_field: quantize_amount(line.unit_amount)},
                )
            )
        order.total = quantize_amount(sum((line.subtotal for line in lines), Decimal("0")))
        self.db.flush()
        return order

    def delete(self, order) -> None:
        self.db.delete(order)
        self.db.flush()

    def items_for_product(self, product_id: int) -> list[dict]:
        """Line history of one product across orders of this kind, newest first."""
        if not self.db.get(Product, product_id):
            raise NotFoundError(f"Product {product_id} not found", entity="product", entity_id=product_id)

        kind = self.kind
        order_rel = getattr(kind.item_model, kind.name)
        items = self.db.scalars(
            select(kind.item_model)
            .join(order_rel)
            .where(kind.item_model.product_id == product_id)
            .options(joinedload(order_rel).joinedload(getattr(kind.order_model, kind.counterparty_attr)))
            .order_by(kind.order_model.date.desc(), kind.order_model.id.desc())
        ).all()

        history = []
        for item in items:
            order = getattr(item, kind.name)
            history.append(
                {
                    "item_id": item.id,
                    "order_id": order.id,
                    "date": order.date,
                    "status": order.status.value,
                    "counterparty_id": getattr(order, kind.counterparty_field),
                    "counterparty_name": kind.counterparty_name(order),
                    "quantity": item.quantity,
                    "unit_amount": getattr(item, kind.amount_field),
                    "subtotal": item.subtotal,
                }
            )
        return history
