from fastapi import Depends
from sqlalchemy.orm import Session

from stockflow.db.database import get_db
from stockflow.services.catalog import CatalogStore
from stockflow.services.directory import DirectoryStore
from stockflow.services.ledger import LedgerStore
from stockflow.services.orders import PURCHASE, SALE
from stockflow.services.synchronizer import InventorySynchronizer


def get_catalog(db: Session = Depends(get_db)) -> CatalogStore:
    return CatalogStore(db)


def get_directory(db: Session = Depends(get_db)) -> DirectoryStore:
    return DirectoryStore(db)


def get_ledger(db: Session = Depends(get_db)) -> LedgerStore:
    return LedgerStore(db)


def get_purchase_sync(db: Session = Depends(get_db)) -> InventorySynchronizer:
    return InventorySynchronizer(db, PURCHASE)


def get_sale_sync(db: Session = Depends(get_db)) -> InventorySynchronizer:
    return InventorySynchronizer(db, SALE)
