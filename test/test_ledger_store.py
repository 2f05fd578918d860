from decimal import Decimal

import pytest

from conftest import TODAY
from stockflow.core.errors import InvalidStateError, NotFoundError
from stockflow.db.database import unit_of_work
from stockflow.models.ledger import Expense, Income
from stockflow.models.orders import SaleStatus
from stockflow.schemas.ledger import LedgerEntryCreate, LedgerEntryUpdate
from stockflow.schemas.orders import SaleCreate, SaleItemIn
from stockflow.services.ledger import LedgerStore
from stockflow.services.orders import SALE


@pytest.fixture
def ledger(db):
    return LedgerStore(db)


def _entry(description: str, amount: str, category: str, day=TODAY) -> LedgerEntryCreate:
    return LedgerEntryCreate(date=day, description=description, amount=Decimal(amount), category=category)


def test_manual_entries_can_be_edited_and_deleted(db, ledger):
    with unit_of_work(db):
        rent = ledger.create(Expense, _entry("March rent", "800", "Rent"))

    with unit_of_work(db):
        ledger.update(Expense, rent.id, LedgerEntryUpdate(amount=Decimal("850.5")))
    db.refresh(rent)
    assert rent.amount == Decimal("850.50")

    with unit_of_work(db):
        ledger.delete(Expense, rent.id)
    with pytest.raises(NotFoundError):
        ledger.get(Expense, rent.id)


def test_entries_linked_to_a_sale_are_protected(db, ledger, sales, make_product, customer):
    product = make_product(stock=3)
    result = sales.create_order(
        SaleCreate(
            date=TODAY,
            customer_id=customer.id,
            status=SaleStatus.COMPLETED,
            items=[SaleItemIn(product_id=product.id, quantity=1, unit_price=Decimal("9"))],
        )
    )

    with pytest.raises(InvalidStateError):
        ledger.update(Income, result.ledger_entry_id, LedgerEntryUpdate(amount=Decimal("1")))
    with pytest.raises(InvalidStateError):
        ledger.delete(Income, result.ledger_entry_id)


def test_recording_for_an_order_is_idempotent(db, ledger, sales, make_product, customer):
    product = make_product(stock=3)
    result = sales.create_order(
        SaleCreate(
            date=TODAY,
            customer_id=customer.id,
            status=SaleStatus.COMPLETED,
            items=[SaleItemIn(product_id=product.id, quantity=1, unit_price=Decimal("9"))],
        )
    )
    sale = sales.orders.get(result.order_id)

    entry, created = ledger.record_for_order(SALE, sale)

    assert created is False
    assert entry.id == result.ledger_entry_id
    assert ledger.remove_for_order(SALE, sale.id) == entry.id
    assert ledger.remove_for_order(SALE, sale.id) is None


def test_list_and_totals_by_category(db, ledger):
    with unit_of_work(db):
        ledger.create(Income, _entry("Counter sale", "100", "Sales"))
        ledger.create(Income, _entry("Counter sale", "50.25", "Sales"))
        ledger.create(Income, _entry("Old stock", "20", "Other", day=TODAY.replace(month=1)))

    assert len(ledger.list_entries(Income, category="Sales")) == 2
    assert len(ledger.list_entries(Income, date_from=TODAY)) == 2

    totals = ledger.totals_by_category(Income)
    assert totals == [
        {"category": "Other", "total": Decimal("20.00"), "entries": 1},
        {"category": "Sales", "total": Decimal("150.25"), "entries": 2},
    ]


def test_sales_income_details_join_the_sale(db, ledger, sales, make_product, customer):
    product = make_product(stock=5)
    result = sales.create_order(
        SaleCreate(
            date=TODAY,
            customer_id=customer.id,
            status=SaleStatus.COMPLETED,
            payment_method="card",
            items=[SaleItemIn(product_id=product.id, quantity=2, unit_price=Decimal("9"))],
        )
    )
    with unit_of_work(db):
        ledger.create(Income, _entry("Tip jar", "3", "Other"))

    details = ledger.sales_income_details()

    assert len(details) == 1
    assert details[0]["id"] == result.ledger_entry_id
    assert details[0]["sale_id"] == result.order_id
    assert details[0]["sale_total"] == Decimal("18.00")
    assert details[0]["payment_method"] == "card"
    assert details[0]["customer_name"] == "Ana Lopez"
    assert ledger.sales_income_details(date_from=TODAY.replace(day=15)) == []
