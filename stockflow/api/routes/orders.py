from datetime import date as calendar_date
from decimal import Decimal

from fastapi import APIRouter, Depends, Query, status

from stockflow.api.deps import get_purchase_sync, get_sale_sync
from stockflow.models.orders import PurchaseStatus, SaleStatus
from stockflow.schemas.orders import (
    ProductLineOut,
    PurchaseCreate,
    PurchaseOut,
    PurchaseStatusUpdate,
    PurchaseSyncOut,
    PurchaseUpdate,
    SaleCreate,
    SaleOut,
    SaleStatusUpdate,
    SaleSyncOut,
    SaleUpdate,
    StockChangeOut,
)
from stockflow.services.synchronizer import InventorySynchronizer, SyncResult

router = APIRouter(prefix="/api", tags=["Orders"])


def _sync_fields(result: SyncResult) -> dict:
    return {
        "order_id": result.order_id,
        "previous_status": result.previous_status.value if result.previous_status is not None else None,
        "status": result.status.value,
        "total": result.total,
        "stock": [StockChangeOut(product_id=product_id, stock=stock) for product_id, stock in result.stock.items()],
        "ledger_entry_id": result.ledger_entry_id,
        "ledger_action": result.ledger_action,
    }


def _purchase_sync_out(result: SyncResult) -> PurchaseSyncOut:
    purchase = PurchaseOut.model_validate(result.order) if result.order is not None else None
    return PurchaseSyncOut(purchase=purchase, **_sync_fields(result))


def _sale_sync_out(result: SyncResult) -> SaleSyncOut:
    sale = SaleOut.model_validate(result.order) if result.order is not None else None
    return SaleSyncOut(sale=sale, **_sync_fields(result))


# Purchases


@router.post("/purchases", response_model=PurchaseSyncOut, status_code=status.HTTP_201_CREATED)
def create_purchase(payload: PurchaseCreate, sync: InventorySynchronizer = Depends(get_purchase_sync)):
    return _purchase_sync_out(sync.create_order(payload))


@router.get("/purchases", response_model=list[PurchaseOut])
def list_purchases(
    date_from: calendar_date | None = None,
    date_to: calendar_date | None = None,
    status_filter: PurchaseStatus | None = Query(default=None, alias="status"),
    supplier_id: int | None = None,
    min_total: Decimal | None = None,
    max_total: Decimal | None = None,
    sync: InventorySynchronizer = Depends(get_purchase_sync),
):
    return sync.orders.list_orders(
        date_from=date_from,
        date_to=date_to,
        status=status_filter,
        counterparty_id=supplier_id,
        min_total=min_total,
        max_total=max_total,
    )


@router.get("/products/{product_id}/purchases", response_model=list[ProductLineOut])
def list_product_purchases(product_id: int, sync: InventorySynchronizer = Depends(get_purchase_sync)):
    return sync.orders.items_for_product(product_id)


@router.get("/purchases/{purchase_id}", response_model=PurchaseOut)
def get_purchase(purchase_id: int, sync: InventorySynchronizer = Depends(get_purchase_sync)):
    return sync.orders.get(purchase_id)


@router.patch("/purchases/{purchase_id}", response_model=PurchaseSyncOut)
def update_purchase(
    purchase_id: int,
    payload: PurchaseUpdate,
    sync: InventorySynchronizer = Depends(get_purchase_sync),
):
    return _purchase_sync_out(sync.update_order(purchase_id, payload))


@router.post("/purchases/{purchase_id}/status", response_model=PurchaseSyncOut)
def change_purchase_status(
    purchase_id: int,
    payload: PurchaseStatusUpdate,
    sync: InventorySynchronizer = Depends(get_purchase_sync),
):
    return _purchase_sync_out(sync.change_status(purchase_id, payload.status))


@router.delete("/purchases/{purchase_id}", response_model=PurchaseSyncOut)
def delete_purchase(purchase_id: int, sync: InventorySynchronizer = Depends(get_purchase_sync)):
    return _purchase_sync_out(sync.delete_order(purchase_id))


# Sales


@router.post("/sales", response_model=SaleSyncOut, status_code=status.HTTP_201_CREATED)
def create_sale(payload: SaleCreate, sync: InventorySynchronizer = Depends(get_sale_sync)):
    return _sale_sync_out(sync.create_order(payload))


@router.get("/sales", response_model=list[SaleOut])
def list_sales(
    date_from: calendar_date | None = None,
    date_to: calendar_date | None = None,
    status_filter: SaleStatus | None = Query(default=None, alias="status"),
    customer_id: int | None = None,
    min_total: Decimal | None = None,
    max_total: Decimal | None = None,
    sync: InventorySynchronizer = Depends(get_sale_sync),
):
    return sync.orders.list_orders(
        date_from=date_from,
        date_to=date_to,
        status=status_filter,
        counterparty_id=customer_id,
        min_total=min_total,
        max_total=max_total,
    )


@router.get("/products/{product_id}/sales", response_model=list[ProductLineOut])
def list_product_sales(product_id: int, sync: InventorySynchronizer = Depends(get_sale_sync)):
    return sync.orders.items_for_product(product_id)


@router.get("/sales/{sale_id}", response_model=SaleOut)
def get_sale(sale_id: int, sync: InventorySynchronizer = Depends(get_sale_sync)):
    return sync.orders.get(sale_id)


@router.patch("/sales/{sale_id}", response_model=SaleSyncOut)
def update_sale(sale_id: int, payload: SaleUpdate, sync: InventorySynchronizer = Depends(get_sale_sync)):
    return _sale_sync_out(sync.update_order(sale_id, payload))


@router.post("/sales/{sale_id}/status", response_model=SaleSyncOut)
def change_sale_status(
    sale_id: int,
    payload: SaleStatusUpdate,
    sync: InventorySynchronizer = Depends(get_sale_sync),
):
    return _sale_sync_out(sync.change_status(sale_id, payload.status))


@router.delete("/sales/{sale_id}", response_model=SaleSyncOut)
def delete_sale(sale_id: int, sync: InventorySynchronizer = Depends(get_sale_sync)):
    return _sale_sync_out(sync.delete_order(sale_id))
