from decimal import Decimal

import pytest
from sqlalchemy import func, select

from conftest import TODAY
from stockflow.core.errors import InsufficientStockError, InvalidStateError, ValidationError
from stockflow.models.ledger import Expense
from stockflow.models.orders import Purchase, PurchaseStatus, SaleStatus
from stockflow.schemas.orders import PurchaseCreate, PurchaseItemIn, PurchaseUpdate, SaleCreate, SaleItemIn


def _purchase(supplier_id: int, *lines, status=PurchaseStatus.PENDING, invoice_number=None) -> PurchaseCreate:
    return PurchaseCreate(
        date=TODAY,
        supplier_id=supplier_id,
        status=status,
        invoice_number=invoice_number,
        items=[PurchaseItemIn(product_id=pid, quantity=qty, unit_cost=cost) for pid, qty, cost in lines],
    )


def test_receiving_purchase_adds_stock_and_records_expense(db, purchases, make_product, supplier):
    product = make_product(stock=1)
    created = purchases.create_order(_purchase(supplier.id, (product.id, 12, Decimal("8.10")), invoice_number="F-001"))

    result = purchases.change_status(created.order_id, PurchaseStatus.RECEIVED)

    db.refresh(product)
    assert product.stock == 13
    assert result.stock == {product.id: 13}
    expense = db.get(Expense, result.ledger_entry_id)
    assert expense.purchase_id == created.order_id
    assert expense.amount == Decimal("97.20")
    assert expense.category == "Inventory"
    assert db.get(Purchase, created.order_id).invoice_number == "F-001"


def test_missing_unit_cost_defaults_to_product_cost(db, purchases, make_product, supplier):
    product = make_product(stock=0, cost="3.40")

    created = purchases.create_order(_purchase(supplier.id, (product.id, 5, None)))

    purchase = db.get(Purchase, created.order_id)
    assert purchase.items[0].unit_cost == Decimal("3.40")
    assert purchase.total == Decimal("17.00")


def test_receive_then_cancel_restores_stock(db, purchases, make_product, supplier):
    product = make_product(stock=4)
    created = purchases.create_order(
        _purchase(supplier.id, (product.id, 6, Decimal("2")), status=PurchaseStatus.RECEIVED)
    )
    db.refresh(product)
    assert product.stock == 10

    result = purchases.change_status(created.order_id, PurchaseStatus.CANCELLED)

    db.refresh(product)
    assert product.stock == 4
    assert result.ledger_action == "removed"
    assert db.scalar(select(func.count(Expense.id))) == 0


def test_received_back_to_pending_reverses_effects(db, purchases, make_product, supplier):
    product = make_product(stock=0)
    created = purchases.create_order(
        _purchase(supplier.id, (product.id, 3, Decimal("2")), status=PurchaseStatus.RECEIVED)
    )

    purchases.change_status(created.order_id, PurchaseStatus.PENDING)
    again = purchases.change_status(created.order_id, PurchaseStatus.RECEIVED)

    db.refresh(product)
    assert product.stock == 3
    assert again.ledger_action == "created"
    assert db.scalar(select(func.count(Expense.id))) == 1


def test_reversing_consumed_purchase_is_rejected(db, purchases, sales, make_product, supplier, customer):
    product = make_product(stock=0)
    received = purchases.create_order(
        _purchase(supplier.id, (product.id, 10, Decimal("2")), status=PurchaseStatus.RECEIVED)
    )
    sales.create_order(
        SaleCreate(
            date=TODAY,
            customer_id=customer.id,
            status=SaleStatus.COMPLETED,
            items=[SaleItemIn(product_id=product.id, quantity=8, unit_price=Decimal("5"))],
        )
    )

    with pytest.raises(InsufficientStockError) as excinfo:
        purchases.change_status(received.order_id, PurchaseStatus.CANCELLED)

    assert excinfo.value.available == 2
    assert excinfo.value.requested == 10
    db.refresh(product)
    assert product.stock == 2
    assert db.get(Purchase, received.order_id).status == PurchaseStatus.RECEIVED
    assert db.scalar(select(func.count(Expense.id))) == 1


def test_deleting_received_purchase_is_rejected(purchases, make_product, supplier):
    product = make_product(stock=0)
    created = purchases.create_order(
        _purchase(supplier.id, (product.id, 1, Decimal("2")), status=PurchaseStatus.RECEIVED)
    )

    with pytest.raises(InvalidStateError):
        purchases.delete_order(created.order_id)


def test_cancelled_purchase_can_be_deleted(db, purchases, make_product, supplier):
    product = make_product(stock=0)
    created = purchases.create_order(
        _purchase(supplier.id, (product.id, 1, Decimal("2")), status=PurchaseStatus.RECEIVED)
    )
    purchases.change_status(created.order_id, PurchaseStatus.CANCELLED)

    result = purchases.delete_order(created.order_id)

    assert result.status == PurchaseStatus.CANCELLED
    assert db.get(Purchase, created.order_id) is None


def test_supplier_is_required_on_create(purchases, make_product, supplier):
    product = make_product(stock=0)
    payload = _purchase(supplier.id, (product.id, 1, Decimal("2")))
    payload.supplier_id = None

    with pytest.raises(ValidationError):
        purchases.create_order(payload)


def test_pending_purchase_lines_can_be_edited(db, purchases, make_product, supplier):
    first = make_product("SKU-A", stock=0)
    second = make_product("SKU-B", stock=0)
    created = purchases.create_order(_purchase(supplier.id, (first.id, 2, Decimal("5"))))

    result = purchases.update_order(
        created.order_id,
        PurchaseUpdate(
            items=[
                PurchaseItemIn(product_id=first.id, quantity=1, unit_cost=Decimal("5")),
                PurchaseItemIn(product_id=second.id, quantity=4, unit_cost=Decimal("1.25")),
            ],
            status=PurchaseStatus.RECEIVED,
        ),
    )

    db.refresh(first)
    db.refresh(second)
    assert result.total == Decimal("10.00")
    assert (first.stock, second.stock) == (1, 4)
    assert db.get(Expense, result.ledger_entry_id).amount == Decimal("10.00")


def test_redating_received_purchase_moves_its_expense(db, purchases, make_product, supplier):
    product = make_product(stock=0)
    created = purchases.create_order(
        _purchase(supplier.id, (product.id, 2, Decimal("3")), status=PurchaseStatus.RECEIVED)
    )

    new_date = TODAY.replace(day=1)
    purchases.update_order(created.order_id, PurchaseUpdate(date=new_date, invoice_number="F-777"))

    expense = db.get(Expense, created.ledger_entry_id)
    assert expense.date == new_date
    assert expense.amount == Decimal("6.00")
    assert db.get(Purchase, created.order_id).invoice_number == "F-777"
