import logging
from datetime import date as calendar_date
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session, joinedload

from stockflow.core.errors import InvalidStateError, NotFoundError
from stockflow.models.ledger import Expense, Income
from stockflow.models.orders import Sale
from stockflow.schemas.ledger import LedgerEntryCreate, LedgerEntryUpdate
from stockflow.services.catalog import quantize_amount
from stockflow.services.orders import OrderKind

logger = logging.getLogger(__name__)

LedgerModel = type[Expense] | type[Income]


def _link_field(model: LedgerModel) -> str:
    return "purchase_id" if model is Expense else "sale_id"


class LedgerStore:
    """Expense and income entries.

    Entries linked to an order are owned by the synchronizer; manual entries
    (no linked order) can be edited freely.
    """

    def __init__(self, db: Session):
        self.db = db

    def entry_for_order(self, kind: OrderKind, order_id: int):
        model = kind.ledger_model
        return self.db.scalar(select(model).where(getattr(model, kind.ledger_fk) == order_id))

    def record_for_order(self, kind: OrderKind, order):
        existing = self.entry_for_order(kind, order.id)
        if existing:
            return existing, False

        entry = kind.ledger_model(
            date=order.date,
            description=kind.ledger_description(order),
            amount=quantize_amount(order.total),
            category=kind.ledger_category(),
            **{kind.ledger_fk: order.id},
        )
        self.db.add(entry)
        self.db.flush()
        logger.info("%s #%s recorded %s #%s amount=%s", kind.name, order.id, entry.__tablename__, entry.id, entry.amount)
        return entry, True

    def remove_for_order(self, kind: OrderKind, order_id: int) -> int | None:
        entry = self.entry_for_order(kind, order_id)
        if not entry:
            return None
        entry_id = entry.id
        self.db.delete(entry)
        self.db.flush()
        logger.info("%s #%s removed %s #%s", kind.name, order_id, entry.__tablename__, entry_id)
        return entry_id

    def sync_with_order(self, kind: OrderKind, order):
        """Carry header edits of a fulfilled order over to its linked entry."""
        entry = self.entry_for_order(kind, order.id)
        if not entry:
            return None
        self.db.expire(order, [kind.counterparty_attr])
        description = kind.ledger_description(order)
        if entry.date != order.date or entry.description != description:
            entry.date = order.date
            entry.description = description
            self.db.flush()
            logger.info("%s #%s updated %s #%s date=%s", kind.name, order.id, entry.__tablename__, entry.id, entry.date)
        return entry

    def get(self, model: LedgerModel, entry_id: int):
        entry = self.db.get(model, entry_id)
        if not entry:
            label = model.__tablename__.rstrip("s")
            raise NotFoundError(f"{label.capitalize()} {entry_id} not found", entity=label, entity_id=entry_id)
        return entry

    def list_entries(
        self,
        model: LedgerModel,
        *,
        date_from: calendar_date | None = None,
        date_to: calendar_date | None = None,
        category: str | None = None,
    ) -> list:
        query = select(model).order_by(model.date.desc(), model.id.desc())
        if date_from is not None:
            query = query.where(model.date >= date_from)
        if date_to is not None:
            query = query.where(model.date <= date_to)
        if category:
            query = query.where(model.category == category.strip())
        return list(self.db.scalars(query).all())

    def create(self, model: LedgerModel, payload: LedgerEntryCreate):
        entry = model(
            date=payload.date,
            description=payload.description.strip(),
            amount=quantize_amount(payload.amount),
            category=payload.category.strip(),
        )
        self.db.add(entry)
        self.db.flush()
        return entry

    def update(self, model: LedgerModel, entry_id: int, payload: LedgerEntryUpdate):
        entry = self.get(model, entry_id)
        self._ensure_manual(model, entry)
        if payload.date is not None:
            entry.date = payload.date
        if payload.description is not None:
            entry.description = payload.description.strip()
        if payload.amount is not None:
            entry.amount = quantize_amount(payload.amount)
        if payload.category is not None:
            entry.category = payload.category.strip()
        self.db.flush()
        return entry

    def delete(self, model: LedgerModel, entry_id: int):
        entry = self.get(model, entry_id)
        self._ensure_manual(model, entry)
        self.db.delete(entry)
        self.db.flush()
        return entry

    def sales_income_details(
        self,
        *,
        date_from: calendar_date | None = None,
        date_to: calendar_date | None = None,
    ) -> list[dict]:
        """Income entries recorded for sales, alongside the sale they came from."""
        query = (
            select(Income, Sale)
            .join(Sale, Sale.id == Income.sale_id)
            .options(joinedload(Sale.customer))
            .order_by(Income.date.desc(), Income.id.desc())
        )
        if date_from is not None:
            query = query.where(Income.date >= date_from)
        if date_to is not None:
            query = query.where(Income.date <= date_to)
        return [
            {
                "id": income.id,
                "date": income.date,
                "description": income.description,
                "amount": income.amount,
                "category": income.category,
                "sale_id": sale.id,
                "sale_date": sale.date,
                "sale_total": sale.total,
                "payment_method": sale.payment_method,
                "customer_id": sale.customer_id,
                "customer_name": sale.customer.full_name if sale.customer else None,
            }
            for income, sale in self.db.execute(query).all()
        ]

    def totals_by_category(
        self,
        model: LedgerModel,
        *,
        date_from: calendar_date | None = None,
        date_to: calendar_date | None = None,
    ) -> list[dict]:
        query = (
            select(model.category, func.coalesce(func.sum(model.amount), 0), func.count(model.id))
            .group_by(model.category)
            .order_by(model.category.asc())
        )
        if date_from is not None:
            query = query.where(model.date >= date_from)
        if date_to is not None:
            query = query.where(model.date <= date_to)
        return [
            {"category": category, "total": quantize_amount(Decimal(str(total))), "entries": int(count)}
            for category, total, count in self.db.execute(query).all()
        ]

    @staticmethod
    def _ensure_manual(model: LedgerModel, entry) -> None:
        link = _link_field(model)
        order_id = getattr(entry, link)
        if order_id is not None:
            raise InvalidStateError(
                f"Entry is derived from {link.removesuffix('_id')} #{order_id}; change the order status instead",
                entity_id=entry.id,
            )
