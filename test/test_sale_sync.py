from decimal import Decimal

import pytest
from sqlalchemy import func, select

from conftest import TODAY
from stockflow.core.errors import InsufficientStockError, InvalidStateError, NotFoundError, ValidationError
from stockflow.db.database import unit_of_work
from stockflow.models.ledger import Income
from stockflow.models.orders import Sale, SaleStatus
from stockflow.schemas.catalog import CustomerCreate
from stockflow.schemas.orders import SaleCreate, SaleItemIn, SaleUpdate


def _sale(customer_id: int, *lines, status=SaleStatus.PENDING) -> SaleCreate:
    return SaleCreate(
        date=TODAY,
        customer_id=customer_id,
        status=status,
        items=[SaleItemIn(product_id=pid, quantity=qty, unit_price=price) for pid, qty, price in lines],
    )


def _income_count(db) -> int:
    return db.scalar(select(func.count(Income.id)))


def test_pending_sale_leaves_stock_untouched(db, sales, make_product, customer):
    product = make_product(stock=10)

    result = sales.create_order(_sale(customer.id, (product.id, 3, Decimal("25"))))

    db.refresh(product)
    assert product.stock == 10
    assert result.status == SaleStatus.PENDING
    assert result.previous_status is None
    assert result.stock == {}
    assert result.ledger_action is None
    assert _income_count(db) == 0


def test_completing_sale_decrements_stock_and_records_income(db, sales, make_product, customer):
    product = make_product(stock=10)
    created = sales.create_order(_sale(customer.id, (product.id, 3, Decimal("25"))))

    result = sales.change_status(created.order_id, SaleStatus.COMPLETED)

    db.refresh(product)
    assert product.stock == 7
    assert result.previous_status == SaleStatus.PENDING
    assert result.stock == {product.id: 7}
    assert result.ledger_action == "created"
    income = db.get(Income, result.ledger_entry_id)
    assert income.sale_id == created.order_id
    assert income.amount == Decimal("75.00")
    assert income.category == "Sales"
    assert income.description == "Sale #%s to Ana Lopez" % created.order_id


def test_completed_create_with_insufficient_stock_has_no_effect(db, sales, make_product, customer):
    plenty = make_product("SKU-A", stock=50)
    scarce = make_product("SKU-B", stock=2)

    with pytest.raises(InsufficientStockError) as excinfo:
        sales.create_order(
            _sale(
                customer.id,
                (plenty.id, 5, Decimal("10")),
                (scarce.id, 3, Decimal("10")),
                status=SaleStatus.COMPLETED,
            )
        )

    assert excinfo.value.product_id == scarce.id
    assert excinfo.value.available == 2
    assert excinfo.value.requested == 3
    db.refresh(plenty)
    db.refresh(scarce)
    assert plenty.stock == 50
    assert scarce.stock == 2
    assert db.scalar(select(func.count(Sale.id))) == 0
    assert _income_count(db) == 0


def test_quantities_for_the_same_product_are_checked_together(db, sales, make_product, customer):
    product = make_product(stock=5)

    with pytest.raises(InsufficientStockError) as excinfo:
        sales.create_order(
            _sale(
                customer.id,
                (product.id, 3, Decimal("10")),
                (product.id, 3, Decimal("10")),
                status=SaleStatus.COMPLETED,
            )
        )

    assert excinfo.value.requested == 6
    db.refresh(product)
    assert product.stock == 5


def test_cancelling_completed_sale_restores_stock_and_removes_income(db, sales, make_product, customer):
    product = make_product(stock=10)
    created = sales.create_order(_sale(customer.id, (product.id, 4, Decimal("25")), status=SaleStatus.COMPLETED))
    assert created.previous_status is None
    assert created.stock == {product.id: 6}

    result = sales.change_status(created.order_id, SaleStatus.CANCELLED)

    db.refresh(product)
    assert product.stock == 10
    assert result.ledger_action == "removed"
    assert result.ledger_entry_id == created.ledger_entry_id
    assert _income_count(db) == 0


def test_deleting_completed_sale_is_rejected(db, sales, make_product, customer):
    product = make_product(stock=10)
    created = sales.create_order(_sale(customer.id, (product.id, 2, Decimal("25")), status=SaleStatus.COMPLETED))

    with pytest.raises(InvalidStateError):
        sales.delete_order(created.order_id)

    db.refresh(product)
    assert product.stock == 8
    assert db.get(Sale, created.order_id) is not None
    assert _income_count(db) == 1


def test_completing_twice_changes_nothing_more(db, sales, make_product, customer):
    product = make_product(stock=10)
    created = sales.create_order(_sale(customer.id, (product.id, 4, Decimal("25")), status=SaleStatus.COMPLETED))

    again = sales.change_status(created.order_id, SaleStatus.COMPLETED)

    db.refresh(product)
    assert product.stock == 6
    assert again.stock == {}
    assert again.ledger_action is None
    assert again.ledger_entry_id == created.ledger_entry_id
    assert _income_count(db) == 1


def test_cancelled_sale_cannot_be_reopened(db, sales, make_product, customer):
    product = make_product(stock=10)
    created = sales.create_order(_sale(customer.id, (product.id, 1, Decimal("25"))))
    sales.change_status(created.order_id, SaleStatus.CANCELLED)

    with pytest.raises(InvalidStateError):
        sales.change_status(created.order_id, SaleStatus.COMPLETED)
    with pytest.raises(InvalidStateError):
        sales.update_order(created.order_id, SaleUpdate(note="late edit"))

    db.refresh(product)
    assert product.stock == 10


def test_total_follows_line_items(db, sales, make_product, customer):
    first = make_product("SKU-A", stock=10)
    second = make_product("SKU-B", stock=10, price="4.50")

    created = sales.create_order(
        _sale(customer.id, (first.id, 2, Decimal("19.99")), (second.id, 3, None))
    )
    assert created.total == Decimal("53.48")

    updated = sales.update_order(
        created.order_id,
        SaleUpdate(items=[SaleItemIn(product_id=second.id, quantity=1, unit_price=Decimal("7.25"))]),
    )

    sale = db.get(Sale, created.order_id)
    assert updated.total == Decimal("7.25")
    assert sale.total == Decimal("7.25")
    assert sum(item.subtotal for item in sale.items) == sale.total
    assert [item.unit_price for item in sale.items] == [Decimal("7.25")]


def test_update_replaces_lines_and_completes_in_one_step(db, sales, make_product, customer):
    product = make_product(stock=10)
    created = sales.create_order(_sale(customer.id, (product.id, 1, Decimal("25"))))

    result = sales.update_order(
        created.order_id,
        SaleUpdate(
            status=SaleStatus.COMPLETED,
            items=[SaleItemIn(product_id=product.id, quantity=6, unit_price=Decimal("20"))],
        ),
    )

    db.refresh(product)
    assert product.stock == 4
    assert result.total == Decimal("120.00")
    assert db.get(Income, result.ledger_entry_id).amount == Decimal("120.00")


def test_lines_of_completed_sale_cannot_be_replaced(db, sales, make_product, customer):
    product = make_product(stock=10)
    created = sales.create_order(_sale(customer.id, (product.id, 2, Decimal("25")), status=SaleStatus.COMPLETED))

    with pytest.raises(InvalidStateError):
        sales.update_order(
            created.order_id,
            SaleUpdate(items=[SaleItemIn(product_id=product.id, quantity=9, unit_price=Decimal("25"))]),
        )

    db.refresh(product)
    sale = db.get(Sale, created.order_id)
    assert product.stock == 8
    assert [item.quantity for item in sale.items] == [2]


def test_header_update_keeps_stock(db, sales, make_product, customer):
    product = make_product(stock=10)
    created = sales.create_order(_sale(customer.id, (product.id, 2, Decimal("25")), status=SaleStatus.COMPLETED))

    result = sales.update_order(created.order_id, SaleUpdate(note="gift wrap", payment_method="card"))

    db.refresh(product)
    sale = db.get(Sale, created.order_id)
    assert product.stock == 8
    assert result.stock == {}
    assert sale.note == "gift wrap"
    assert sale.payment_method == "card"


def test_pending_sale_can_be_deleted(db, sales, make_product, customer):
    product = make_product(stock=10)
    created = sales.create_order(_sale(customer.id, (product.id, 2, Decimal("25"))))

    result = sales.delete_order(created.order_id)

    assert result.order is None
    assert db.get(Sale, created.order_id) is None
    with pytest.raises(NotFoundError):
        sales.change_status(created.order_id, SaleStatus.COMPLETED)


def test_inactive_customer_is_rejected(db, sales, directory, make_product, customer):
    product = make_product(stock=10)
    directory.archive_customer(customer.id)
    db.commit()

    with pytest.raises(ValidationError):
        sales.create_order(_sale(customer.id, (product.id, 1, Decimal("25"))))


def test_unknown_product_is_rejected(db, sales, customer):
    with pytest.raises(NotFoundError):
        sales.create_order(_sale(customer.id, (999, 1, Decimal("25"))))
    assert db.scalar(select(func.count(Sale.id))) == 0


def test_unknown_status_value_is_a_validation_error(sales, make_product, customer):
    product = make_product(stock=10)
    created = sales.create_order(_sale(customer.id, (product.id, 1, Decimal("25"))))

    with pytest.raises(ValidationError) as excinfo:
        sales.change_status(created.order_id, "shipped")

    assert "completed" in excinfo.value.extra["allowed"]


def test_total_matches_stored_lines_with_fractional_prices(db, sales, make_product, customer):
    first = make_product("SKU-A", stock=20)
    second = make_product("SKU-B", stock=20)

    result = sales.create_order(
        _sale(
            customer.id,
            (first.id, 3, Decimal("0.335")),
            (second.id, 7, Decimal("1.005")),
            status=SaleStatus.COMPLETED,
        )
    )

    sale = db.get(Sale, result.order_id)
    assert sale.total == sum(item.quantity * item.unit_price for item in sale.items)
    assert all(item.subtotal == item.quantity * item.unit_price for item in sale.items)
    assert db.get(Income, result.ledger_entry_id).amount == sale.total


def test_failed_line_replacement_keeps_previous_lines(db, sales, make_product, customer):
    product = make_product(stock=10)
    created = sales.create_order(_sale(customer.id, (product.id, 2, Decimal("25"))))

    with pytest.raises(NotFoundError):
        sales.update_order(
            created.order_id,
            SaleUpdate(
                note="swap lines",
                items=[
                    SaleItemIn(product_id=product.id, quantity=5, unit_price=Decimal("25")),
                    SaleItemIn(product_id=999, quantity=1, unit_price=Decimal("1")),
                ],
            ),
        )

    sale = db.get(Sale, created.order_id)
    assert [(item.product_id, item.quantity) for item in sale.items] == [(product.id, 2)]
    assert sale.total == Decimal("50.00")
    assert sale.note is None


def test_header_edit_of_completed_sale_moves_its_income(db, sales, directory, make_product, customer):
    product = make_product(stock=10)
    with unit_of_work(db):
        other = directory.create_customer(CustomerCreate(first_name="Bruno", last_name="Diaz"))
    created = sales.create_order(_sale(customer.id, (product.id, 2, Decimal("25")), status=SaleStatus.COMPLETED))

    new_date = TODAY.replace(month=1, day=1)
    sales.update_order(created.order_id, SaleUpdate(date=new_date, customer_id=other.id))

    income = db.get(Income, created.ledger_entry_id)
    assert income.date == new_date
    assert income.description == "Sale #%s to Bruno Diaz" % created.order_id
    assert income.amount == Decimal("50.00")


def test_product_sale_history(db, sales, make_product, customer):
    product = make_product(stock=10)
    other = make_product("SKU-OTHER", stock=10)
    early = sales.create_order(_sale(customer.id, (product.id, 1, Decimal("25"))))
    late = sales.create_order(
        SaleCreate(
            date=TODAY.replace(day=20),
            customer_id=customer.id,
            status=SaleStatus.COMPLETED,
            items=[
                SaleItemIn(product_id=product.id, quantity=4, unit_price=Decimal("20")),
                SaleItemIn(product_id=other.id, quantity=1, unit_price=Decimal("5")),
            ],
        )
    )

    history = sales.orders.items_for_product(product.id)

    assert [(line["order_id"], line["quantity"], line["status"]) for line in history] == [
        (late.order_id, 4, "completed"),
        (early.order_id, 1, "pending"),
    ]
    assert history[0]["counterparty_name"] == "Ana Lopez"
    assert history[0]["unit_amount"] == Decimal("20.00")
    with pytest.raises(NotFoundError):
        sales.orders.items_for_product(999)
