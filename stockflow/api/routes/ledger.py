from datetime import date as calendar_date

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from stockflow.api.deps import get_ledger
from stockflow.db.database import get_db, unit_of_work
from stockflow.models.ledger import Expense, Income
from stockflow.schemas.ledger import (
    CategoryTotalOut,
    ExpenseOut,
    IncomeOut,
    LedgerEntryCreate,
    LedgerEntryUpdate,
    SalesIncomeDetailOut,
)
from stockflow.services.ledger import LedgerStore

router = APIRouter(prefix="/api", tags=["Ledger"])


# Expenses


@router.post("/expenses", response_model=ExpenseOut, status_code=status.HTTP_201_CREATED)
def create_expense(
    payload: LedgerEntryCreate,
    ledger: LedgerStore = Depends(get_ledger),
    db: Session = Depends(get_db),
):
    with unit_of_work(db):
        expense = ledger.create(Expense, payload)
    db.refresh(expense)
    return expense


@router.get("/expenses", response_model=list[ExpenseOut])
def list_expenses(
    date_from: calendar_date | None = None,
    date_to: calendar_date | None = None,
    category: str | None = None,
    ledger: LedgerStore = Depends(get_ledger),
):
    return ledger.list_entries(Expense, date_from=date_from, date_to=date_to, category=category)


@router.get("/expenses/summary", response_model=list[CategoryTotalOut])
def summarize_expenses(
    date_from: calendar_date | None = None,
    date_to: calendar_date | None = None,
    ledger: LedgerStore = Depends(get_ledger),
):
    return ledger.totals_by_category(Expense, date_from=date_from, date_to=date_to)


@router.get("/expenses/{expense_id}", response_model=ExpenseOut)
def get_expense(expense_id: int, ledger: LedgerStore = Depends(get_ledger)):
    return ledger.get(Expense, expense_id)


@router.patch("/expenses/{expense_id}", response_model=ExpenseOut)
def update_expense(
    expense_id: int,
    payload: LedgerEntryUpdate,
    ledger: LedgerStore = Depends(get_ledger),
    db: Session = Depends(get_db),
):
    with unit_of_work(db):
        expense = ledger.update(Expense, expense_id, payload)
    db.refresh(expense)
    return expense


@router.delete("/expenses/{expense_id}", response_model=ExpenseOut)
def delete_expense(
    expense_id: int,
    ledger: LedgerStore = Depends(get_ledger),
    db: Session = Depends(get_db),
):
    with unit_of_work(db):
        expense = ledger.delete(Expense, expense_id)
        body = ExpenseOut.model_validate(expense)
    return body


# Income


@router.post("/income", response_model=IncomeOut, status_code=status.HTTP_201_CREATED)
def create_income(
    payload: LedgerEntryCreate,
    ledger: LedgerStore = Depends(get_ledger),
    db: Session = Depends(get_db),
):
    with unit_of_work(db):
        income = ledger.create(Income, payload)
    db.refresh(income)
    return income


@router.get("/income", response_model=list[IncomeOut])
def list_income(
    date_from: calendar_date | None = None,
    date_to: calendar_date | None = None,
    category: str | None = None,
    ledger: LedgerStore = Depends(get_ledger),
):
    return ledger.list_entries(Income, date_from=date_from, date_to=date_to, category=category)


@router.get("/income/summary", response_model=list[CategoryTotalOut])
def summarize_income(
    date_from: calendar_date | None = None,
    date_to: calendar_date | None = None,
    ledger: LedgerStore = Depends(get_ledger),
):
    return ledger.totals_by_category(Income, date_from=date_from, date_to=date_to)


@router.get("/income/sales", response_model=list[SalesIncomeDetailOut])
def list_sales_income(
    date_from: calendar_date | None = None,
    date_to: calendar_date | None = None,
    ledger: LedgerStore = Depends(get_ledger),
):
    return ledger.sales_income_details(date_from=date_from, date_to=date_to)


@router.get("/income/{income_id}", response_model=IncomeOut)
def get_income(income_id: int, ledger: LedgerStore = Depends(get_ledger)):
    return ledger.get(Income, income_id)


@router.patch("/income/{income_id}", response_model=IncomeOut)
def update_income(
    income_id: int,
    payload: LedgerEntryUpdate,
    ledger: LedgerStore = Depends(get_ledger),
    db: Session = Depends(get_db),
):
    with unit_of_work(db):
        income = ledger.update(Income, income_id, payload)
    db.refresh(income)
    return income


@router.delete("/income/{income_id}", response_model=IncomeOut)
def delete_income(
    income_id: int,
    ledger: LedgerStore = Depends(get_ledger),
    db: Session = Depends(get_db),
):
    with unit_of_work(db):
        income = ledger.delete(Income, income_id)
        body = IncomeOut.model_validate(income)
    return body
