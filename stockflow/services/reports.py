from collections import defaultdict
from datetime import date as calendar_date
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from stockflow.models.catalog import Customer, Product, Supplier
from stockflow.models.ledger import Expense, Income
from stockflow.models.orders import Purchase, PurchaseStatus, Sale, SaleItem, SaleStatus
from stockflow.services.catalog import quantize_amount
from stockflow.services.ledger import LedgerStore


def _money(value) -> Decimal:
    return quantize_amount(Decimal(str(value or 0)))


def _month_label(value: calendar_date) -> str:
    return value.strftime("%Y-%m")


def _scope(query, model, date_from: calendar_date | None, date_to: calendar_date | None):
    if date_from is not None:
        query = query.where(model.date >= date_from)
    if date_to is not None:
        query = query.where(model.date <= date_to)
    return query


def _monthly(rows) -> list[dict]:
    buckets: dict[str, dict] = defaultdict(lambda: {"count": 0, "total_amount": Decimal("0")})
    for order_date, total in rows:
        bucket = buckets[_month_label(order_date)]
        bucket["count"] += 1
        bucket["total_amount"] += _money(total)
    return [{"month": month, **values} for month, values in sorted(buckets.items())]


def sales_stats(
    db: Session,
    *,
    date_from: calendar_date | None = None,
    date_to: calendar_date | None = None,
    top_customers: int = 10,
    top_products: int = 5,
) -> dict:
    """Figures over completed sales only."""
    completed = Sale.status == SaleStatus.COMPLETED

    rows = db.execute(_scope(select(Sale.date, Sale.total).where(completed), Sale, date_from, date_to)).all()
    total_amount = sum((_money(total) for _, total in rows), Decimal("0"))

    by_customer_rows = db.execute(
        _scope(
            select(
                Sale.customer_id,
                Customer.first_name,
                Customer.last_name,
                func.count(Sale.id),
                func.coalesce(func.sum(Sale.total), 0),
            )
            .outerjoin(Customer, Customer.id == Sale.customer_id)
            .where(completed)
            .group_by(Sale.customer_id, Customer.first_name, Customer.last_name)
            .order_by(func.sum(Sale.total).desc())
            .limit(top_customers),
            Sale,
            date_from,
            date_to,
        )
    ).all()

    quantity_sum = func.sum(SaleItem.quantity)
    product_rows = db.execute(
        _scope(
            select(
                SaleItem.product_id,
                Product.name,
                quantity_sum,
                func.coalesce(func.sum(SaleItem.subtotal), 0),
            )
            .join(Sale, Sale.id == SaleItem.sale_id)
            .join(Product, Product.id == SaleItem.product_id)
            .where(completed)
            .group_by(SaleItem.product_id, Product.name)
            .order_by(quantity_sum.desc())
            .limit(top_products),
            Sale,
            date_from,
            date_to,
        )
    ).all()

    return {
        "period_from": date_from,
        "period_to": date_to,
        "total_sales": len(rows),
        "total_amount": total_amount,
        "by_customer": [
            {
                "party_id": customer_id,
                "party_name": f"{first_name} {last_name}".strip() if first_name else "Unregistered customer",
                "count": int(count),
                "total_amount": _money(total),
            }
            for customer_id, first_name, last_name, count, total in by_customer_rows
        ],
        "monthly": _monthly(rows),
        "top_products": [
            {
                "product_id": product_id,
                "product_name": name,
                "total_quantity": int(quantity or 0),
                "total_revenue": _money(revenue),
            }
            for product_id, name, quantity, revenue in product_rows
        ],
    }


def purchase_stats(
    db: Session,
    *,
    date_from: calendar_date | None = None,
    date_to: calendar_date | None = None,
    supplier_id: int | None = None,
) -> dict:
    """Figures over purchases that were not cancelled."""
    active = Purchase.status != PurchaseStatus.CANCELLED

    base = select(Purchase.date, Purchase.total).where(active)
    grouped = (
        select(
            Purchase.supplier_id,
            Supplier.name,
            func.count(Purchase.id),
            func.coalesce(func.sum(Purchase.total), 0),
        )
        .outerjoin(Supplier, Supplier.id == Purchase.supplier_id)
        .where(active)
        .group_by(Purchase.supplier_id, Supplier.name)
        .order_by(func.sum(Purchase.total).desc())
    )
    if supplier_id is not None:
        base = base.where(Purchase.supplier_id == supplier_id)
        grouped = grouped.where(Purchase.supplier_id == supplier_id)

    rows = db.execute(_scope(base, Purchase, date_from, date_to)).all()
    by_supplier_rows = db.execute(_scope(grouped, Purchase, date_from, date_to)).all()

    return {
        "period_from": date_from,
        "period_to": date_to,
        "total_purchases": len(rows),
        "total_amount": sum((_money(total) for _, total in rows), Decimal("0")),
        "by_supplier": [
            {
                "party_id": party_id,
                "party_name": name or "Unknown supplier",
                "count": int(count),
                "total_amount": _money(total),
            }
            for party_id, name, count, total in by_supplier_rows
        ],
        "monthly": _monthly(rows),
    }


def ledger_summary(
    db: Session,
    *,
    date_from: calendar_date | None = None,
    date_to: calendar_date | None = None,
) -> dict:
    ledger = LedgerStore(db)
    income = ledger.totals_by_category(Income, date_from=date_from, date_to=date_to)
    expenses = ledger.totals_by_category(Expense, date_from=date_from, date_to=date_to)
    total_income = sum((row["total"] for row in income), Decimal("0"))
    total_expenses = sum((row["total"] for row in expenses), Decimal("0"))
    return {
        "period_from": date_from,
        "period_to": date_to,
        "total_income": total_income,
        "total_expenses": total_expenses,
        "net": total_income - total_expenses,
        "income_by_category": income,
        "expenses_by_category": expenses,
    }


def inventory_summary(db: Session) -> dict:
    products = db.scalars(select(Product)).all()
    active = [product for product in products if product.is_active]
    return {
        "total_products": len(products),
        "active_products": len(active),
        "low_stock_products": sum(1 for product in active if product.stock <= product.min_stock),
        "total_units": sum(product.stock for product in active),
        "inventory_value": sum(
            (_money(product.cost) * product.stock for product in active),
            Decimal("0"),
        ),
    }
