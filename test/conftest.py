from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

import stockflow.models  # noqa: F401
from stockflow.db.database import Base, build_engine, build_session_factory, get_db, unit_of_work
from stockflow.main import app
from stockflow.schemas.catalog import CustomerCreate, ProductCreate, SupplierCreate
from stockflow.services.catalog import CatalogStore
from stockflow.services.directory import DirectoryStore
from stockflow.services.orders import PURCHASE, SALE
from stockflow.services.synchronizer import InventorySynchronizer

TODAY = date(2026, 3, 14)


@pytest.fixture
def session_factory(tmp_path: Path):
    engine = build_engine(f"sqlite:///{tmp_path / 'stockflow.db'}")
    Base.metadata.create_all(bind=engine)
    yield build_session_factory(engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def _get_test_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_test_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def catalog(db):
    return CatalogStore(db)


@pytest.fixture
def directory(db):
    return DirectoryStore(db)


@pytest.fixture
def sales(db):
    return InventorySynchronizer(db, SALE)


@pytest.fixture
def purchases(db):
    return InventorySynchronizer(db, PURCHASE)


@pytest.fixture
def make_product(db, catalog):
    def _make(sku: str = "SKU-1", *, stock: int = 10, price: str = "25.00", cost: str = "10.00", min_stock: int = 0):
        with unit_of_work(db):
            product = catalog.create_product(
                ProductCreate(
                    sku=sku,
                    name=f"Product {sku}",
                    price=Decimal(price),
                    cost=Decimal(cost),
                    stock=stock,
                    min_stock=min_stock,
                )
            )
        return product

    return _make


@pytest.fixture
def customer(db, directory):
    with unit_of_work(db):
        created = directory.create_customer(CustomerCreate(first_name="Ana", last_name="Lopez", document="30111222"))
    return created


@pytest.fixture
def supplier(db, directory):
    with unit_of_work(db):
        created = directory.create_supplier(SupplierCreate(name="Acme Wholesale"))
    return created
