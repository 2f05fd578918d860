from datetime import date as calendar_date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from stockflow.db.database import get_db
from stockflow.schemas.reports import InventorySummaryOut, LedgerSummaryOut, PurchaseStatsOut, SalesStatsOut
from stockflow.services import reports

router = APIRouter(prefix="/api/reports", tags=["Reports"])


@router.get("/sales", response_model=SalesStatsOut)
def sales_report(
    date_from: calendar_date | None = None,
    date_to: calendar_date | None = None,
    db: Session = Depends(get_db),
):
    return reports.sales_stats(db, date_from=date_from, date_to=date_to)


@router.get("/purchases", response_model=PurchaseStatsOut)
def purchases_report(
    date_from: calendar_date | None = None,
    date_to: calendar_date | None = None,
    supplier_id: int | None = None,
    db: Session = Depends(get_db),
):
    return reports.purchase_stats(db, date_from=date_from, date_to=date_to, supplier_id=supplier_id)


@router.get("/ledger", response_model=LedgerSummaryOut)
def ledger_report(
    date_from: calendar_date | None = None,
    date_to: calendar_date | None = None,
    db: Session = Depends(get_db),
):
    return reports.ledger_summary(db, date_from=date_from, date_to=date_to)


@router.get("/inventory", response_model=InventorySummaryOut)
def inventory_report(db: Session = Depends(get_db)):
    return reports.inventory_summary(db)
