import pytest

from stockflow.core.errors import DuplicateConstraintError, NotFoundError
from stockflow.db.database import unit_of_work
from stockflow.schemas.catalog import CategoryCreate, CategoryUpdate, CustomerCreate, CustomerUpdate, ProductUpdate, SupplierCreate, SupplierUpdate


def test_category_names_are_unique(db, directory):
    with unit_of_work(db):
        directory.create_category(CategoryCreate(name="Snacks"))
        drinks = directory.create_category(CategoryCreate(name="Drinks"))

    with pytest.raises(DuplicateConstraintError):
        directory.create_category(CategoryCreate(name="Snacks"))
    with pytest.raises(DuplicateConstraintError):
        directory.update_category(drinks.id, CategoryUpdate(name="Snacks"))


def test_deleting_category_detaches_products(db, directory, catalog, make_product):
    product = make_product()
    with unit_of_work(db):
        category = directory.create_category(CategoryCreate(name="Dairy"))
        catalog.update_product(product.id, ProductUpdate(category_id=category.id))

    with unit_of_work(db):
        directory.delete_category(category.id)

    db.refresh(product)
    assert product.category_id is None
    with pytest.raises(NotFoundError):
        directory.get_category(category.id)


def test_supplier_archive_and_reactivate(db, directory, supplier):
    with unit_of_work(db):
        directory.archive_supplier(supplier.id)
    assert directory.list_suppliers() == []
    assert [s.id for s in directory.list_suppliers(include_inactive=True)] == [supplier.id]

    with unit_of_work(db):
        directory.update_supplier(supplier.id, SupplierUpdate(is_active=True))
    assert [s.name for s in directory.list_suppliers(search="acme")] == ["Acme Wholesale"]


def test_duplicate_supplier_name(directory, supplier):
    with pytest.raises(DuplicateConstraintError):
        directory.create_supplier(SupplierCreate(name="Acme Wholesale"))


def test_customer_search_and_document_uniqueness(db, directory, customer):
    with unit_of_work(db):
        other = directory.create_customer(CustomerCreate(first_name="Bruno", last_name="Diaz"))

    assert [c.id for c in directory.list_customers(search="3011")] == [customer.id]
    assert [c.id for c in directory.list_customers(search="diaz")] == [other.id]
    with pytest.raises(DuplicateConstraintError):
        directory.update_customer(other.id, CustomerUpdate(document="30111222"))


def test_archived_customer_is_hidden(db, directory, customer):
    with unit_of_work(db):
        directory.archive_customer(customer.id)

    assert directory.list_customers() == []
    assert directory.get_customer(customer.id).is_active is False
