from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from stockflow.api.deps import get_directory
from stockflow.db.database import get_db, unit_of_work
from stockflow.schemas.catalog import (
    CategoryCreate,
    CategoryOut,
    CategoryUpdate,
    CustomerCreate,
    CustomerOut,
    CustomerUpdate,
    SupplierCreate,
    SupplierOut,
    SupplierUpdate,
)
from stockflow.services.directory import DirectoryStore

router = APIRouter(prefix="/api", tags=["Directory"])


@router.post("/categories", response_model=CategoryOut, status_code=status.HTTP_201_CREATED)
def create_category(
    payload: CategoryCreate,
    directory: DirectoryStore = Depends(get_directory),
    db: Session = Depends(get_db),
):
    with unit_of_work(db):
        category = directory.create_category(payload)
    db.refresh(category)
    return category


@router.get("/categories", response_model=list[CategoryOut])
def list_categories(directory: DirectoryStore = Depends(get_directory)):
    return directory.list_categories()


@router.get("/categories/{category_id}", response_model=CategoryOut)
def get_category(category_id: int, directory: DirectoryStore = Depends(get_directory)):
    return directory.get_category(category_id)


@router.patch("/categories/{category_id}", response_model=CategoryOut)
def update_category(
    category_id: int,
    payload: CategoryUpdate,
    directory: DirectoryStore = Depends(get_directory),
    db: Session = Depends(get_db),
):
    with unit_of_work(db):
        category = directory.update_category(category_id, payload)
    db.refresh(category)
    return category


@router.delete("/categories/{category_id}", response_model=CategoryOut)
def delete_category(
    category_id: int,
    directory: DirectoryStore = Depends(get_directory),
    db: Session = Depends(get_db),
):
    with unit_of_work(db):
        category = directory.delete_category(category_id)
        body = CategoryOut.model_validate(category)
    return body


@router.post("/suppliers", response_model=SupplierOut, status_code=status.HTTP_201_CREATED)
def create_supplier(
    payload: SupplierCreate,
    directory: DirectoryStore = Depends(get_directory),
    db: Session = Depends(get_db),
):
    with unit_of_work(db):
        supplier = directory.create_supplier(payload)
    db.refresh(supplier)
    return supplier


@router.get("/suppliers", response_model=list[SupplierOut])
def list_suppliers(
    include_inactive: bool = False,
    search: str | None = None,
    directory: DirectoryStore = Depends(get_directory),
):
    return directory.list_suppliers(include_inactive=include_inactive, search=search)


@router.get("/suppliers/{supplier_id}", response_model=SupplierOut)
def get_supplier(supplier_id: int, directory: DirectoryStore = Depends(get_directory)):
    return directory.get_supplier(supplier_id)


@router.patch("/suppliers/{supplier_id}", response_model=SupplierOut)
def update_supplier(
    supplier_id: int,
    payload: SupplierUpdate,
    directory: DirectoryStore = Depends(get_directory),
    db: Session = Depends(get_db),
):
    with unit_of_work(db):
        supplier = directory.update_supplier(supplier_id, payload)
    db.refresh(supplier)
    return supplier


@router.delete("/suppliers/{supplier_id}", response_model=SupplierOut)
def archive_supplier(
    supplier_id: int,
    directory: DirectoryStore = Depends(get_directory),
    db: Session = Depends(get_db),
):
    with unit_of_work(db):
        supplier = directory.archive_supplier(supplier_id)
    db.refresh(supplier)
    return supplier


@router.post("/suppliers/{supplier_id}/activate", response_model=SupplierOut)
def activate_supplier(
    supplier_id: int,
    directory: DirectoryStore = Depends(get_directory),
    db: Session = Depends(get_db),
):
    with unit_of_work(db):
        supplier = directory.update_supplier(supplier_id, SupplierUpdate(is_active=True))
    db.refresh(supplier)
    return supplier


@router.post("/customers", response_model=CustomerOut, status_code=status.HTTP_201_CREATED)
def create_customer(
    payload: CustomerCreate,
    directory: DirectoryStore = Depends(get_directory),
    db: Session = Depends(get_db),
):
    with unit_of_work(db):
        customer = directory.create_customer(payload)
    db.refresh(customer)
    return customer


@router.get("/customers", response_model=list[CustomerOut])
def list_customers(
    include_inactive: bool = False,
    search: str | None = None,
    directory: DirectoryStore = Depends(get_directory),
):
    return directory.list_customers(include_inactive=include_inactive, search=search)


@router.get("/customers/{customer_id}", response_model=CustomerOut)
def get_customer(customer_id: int, directory: DirectoryStore = Depends(get_directory)):
    return directory.get_customer(customer_id)


@router.patch("/customers/{customer_id}", response_model=CustomerOut)
def update_customer(
    customer_id: int,
    payload: CustomerUpdate,
    directory: DirectoryStore = Depends(get_directory),
    db: Session = Depends(get_db),
):
    with unit_of_work(db):
        customer = directory.update_customer(customer_id, payload)
    db.refresh(customer)
    return customer


@router.delete("/customers/{customer_id}", response_model=CustomerOut)
def archive_customer(
    customer_id: int,
    directory: DirectoryStore = Depends(get_directory),
    db: Session = Depends(get_db),
):
    with unit_of_work(db):
        customer = directory.archive_customer(customer_id)
    db.refresh(customer)
    return customer
