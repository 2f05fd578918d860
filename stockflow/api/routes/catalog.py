import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from stockflow.api.deps import get_catalog
from stockflow.db.database import get_db, unit_of_work
from stockflow.schemas.catalog import ProductCreate, ProductOut, ProductUpdate, StockAdjustRequest, StockLevelOut
from stockflow.services.catalog import CatalogStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/products", tags=["Products"])


@router.post("", response_model=ProductOut, status_code=status.HTTP_201_CREATED)
def create_product(
    payload: ProductCreate,
    catalog: CatalogStore = Depends(get_catalog),
    db: Session = Depends(get_db),
):
    with unit_of_work(db):
        product = catalog.create_product(payload)
    db.refresh(product)
    return product


@router.get("", response_model=list[ProductOut])
def list_products(
    category_id: int | None = None,
    supplier_id: int | None = None,
    search: str | None = None,
    include_inactive: bool = False,
    catalog: CatalogStore = Depends(get_catalog),
):
    return catalog.list_products(
        category_id=category_id,
        supplier_id=supplier_id,
        search=search,
        include_inactive=include_inactive,
    )


@router.get("/low-stock", response_model=list[ProductOut])
def list_low_stock_products(catalog: CatalogStore = Depends(get_catalog)):
    return catalog.low_stock_products()


@router.get("/{product_id}", response_model=ProductOut)
def get_product(product_id: int, catalog: CatalogStore = Depends(get_catalog)):
    return catalog.get_product(product_id)


@router.patch("/{product_id}", response_model=ProductOut)
def update_product(
    product_id: int,
    payload: ProductUpdate,
    catalog: CatalogStore = Depends(get_catalog),
    db: Session = Depends(get_db),
):
    with unit_of_work(db):
        product = catalog.update_product(product_id, payload)
    db.refresh(product)
    return product


@router.delete("/{product_id}", response_model=ProductOut)
def delete_product(
    product_id: int,
    hard: bool = False,
    catalog: CatalogStore = Depends(get_catalog),
    db: Session = Depends(get_db),
):
    with unit_of_work(db):
        product = catalog.delete_product(product_id, hard=hard)
        body = ProductOut.model_validate(product)
    return body


@router.post("/{product_id}/stock", response_model=StockLevelOut)
def adjust_product_stock(
    product_id: int,
    payload: StockAdjustRequest,
    catalog: CatalogStore = Depends(get_catalog),
    db: Session = Depends(get_db),
):
    with unit_of_work(db):
        stock = catalog.adjust_stock(product_id, payload.quantity_delta)
    logger.info(
        "manual stock adjustment product=%s delta=%s stock=%s reason=%s",
        product_id,
        payload.quantity_delta,
        stock,
        payload.reason,
    )
    return StockLevelOut(product_id=product_id, stock=stock)
