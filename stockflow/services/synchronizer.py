"""Keeps product stock and the ledger in step with order status.

Stock and the ledger reflect exactly the set of orders currently in their
fulfilled status (``received`` purchases, ``completed`` sales). Entering that
status applies the line items' stock deltas and records one ledger entry;
leaving it applies the opposite deltas and removes the entry. Every public
operation here runs as one unit of work.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy.orm import Session

from stockflow.core.errors import InsufficientStockError, InvalidStateError, NotFoundError, ValidationError
from stockflow.db.database import unit_of_work
from stockflow.models.catalog import Product
from stockflow.services.catalog import CatalogStore, quantize_amount
from stockflow.services.ledger import LedgerStore
from stockflow.services.orders import LineInput, OrderKind, OrderRepository

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    order: object | None
    order_id: int
    previous_status: object | None
    status: object
    total: Decimal
    stock: dict[int, int] = field(default_factory=dict)
    ledger_entry_id: int | None = None
    ledger_action: str | None = None


class InventorySynchronizer:
    def __init__(
        self,
        db: Session,
        kind: OrderKind,
        *,
        catalog: CatalogStore | None = None,
        ledger: LedgerStore | None = None,
        orders: OrderRepository | None = None,
    ):
        self.db = db
        self.kind = kind
        self.catalog = catalog or CatalogStore(db)
        self.ledger = ledger or LedgerStore(db)
        self.orders = orders or OrderRepository(db, kind)

    # Public operations

    def create_order(self, payload) -> SyncResult:
        kind = self.kind
        with unit_of_work(self.db):
            counterparty_id = getattr(payload, kind.counterparty_field, None)
            if payload.date is None:
                raise ValidationError(f"{kind.label} date is required", field="date")
            self._check_counterparty(counterparty_id)
            status = self._coerce_status(payload.status or kind.pending_status)
            lines = self._resolve_lines(payload.items)

            header = {name: self._clean(getattr(payload, name, None)) for name in kind.header_fields}
            header = {name: value for name, value in header.items() if value is not None}
            order = self.orders.create(
                date=payload.date,
                counterparty_id=counterparty_id,
                status=kind.pending_status,
                header=header,
                lines=lines,
            )
            logger.info("%s #%s created total=%s lines=%s", kind.name, order.id, order.total, len(lines))

            result = self.apply_transition(order, kind.pending_status, status)
            result.previous_status = None
        return result

    def update_order(self, order_id: int, payload) -> SyncResult:
        kind = self.kind
        with unit_of_work(self.db):
            order = self.orders.get(order_id, for_update=True)
            previous = order.status
            fields = payload.model_dump(exclude_unset=True)

            if previous == kind.cancelled_status:
                raise InvalidStateError(
                    f"{kind.label} #{order.id} is cancelled and can no longer be changed",
                    status=previous.value,
                )

            counterparty_id = fields.get(kind.counterparty_field)
            if counterparty_id is not None:
                self._check_counterparty(counterparty_id)
            header = {
                name: self._clean(fields[name])
                for name in kind.header_fields
                if name in fields
            }
            self.orders.update_header(order, date=fields.get("date"), counterparty_id=counterparty_id, **header)

            if payload.items is not None:
                if previous != kind.pending_status:
                    raise InvalidStateError(
                        f"Line items of {kind.name} #{order.id} can only be replaced while it is pending",
                        status=previous.value,
                    )
                self.orders.replace_line_items(order, self._resolve_lines(payload.items))

            new_status = self._coerce_status(payload.status) if payload.status is not None else previous
            result = self.apply_transition(order, previous, new_status)
            if previous == kind.fulfilled_status and new_status == kind.fulfilled_status:
                self.ledger.sync_with_order(kind, order)
        return result

    def change_status(self, order_id: int, status) -> SyncResult:
        with unit_of_work(self.db):
            order = self.orders.get(order_id, for_update=True)
            result = self.apply_transition(order, order.status, self._coerce_status(status))
        return result

    def delete_order(self, order_id: int) -> SyncResult:
        kind = self.kind
        with unit_of_work(self.db):
            order = self.orders.get(order_id, for_update=True)
            if order.status == kind.fulfilled_status:
                raise InvalidStateError(
                    f"Cannot delete a {order.status.value} {kind.name}; cancel it first",
                    status=order.status.value,
                )
            result = SyncResult(
                order=None,
                order_id=order.id,
                previous_status=order.status,
                status=order.status,
                total=order.total,
            )
            removed_id = self.ledger.remove_for_order(kind, order.id)
            if removed_id is not None:
                result.ledger_entry_id = removed_id
                result.ledger_action = "removed"
            self.orders.delete(order)
            logger.info("%s #%s deleted", kind.name, order_id)
        return result

    # Transition logic

    def apply_transition(self, order, previous_status, new_status) -> SyncResult:
        """Apply the stock and ledger effects of moving ``order`` between statuses.

        Runs inside the caller's unit of work. ``previous_status`` must be the
        status recorded for the order before this change.
        """
        kind = self.kind
        previous_status = self._coerce_status(previous_status)
        new_status = self._coerce_status(new_status)

        if previous_status == kind.cancelled_status and new_status != kind.cancelled_status:
            raise InvalidStateError(
                f"{kind.label} #{order.id} is cancelled; it cannot move to {new_status.value}",
                status=previous_status.value,
            )

        result = SyncResult(
            order=order,
            order_id=order.id,
            previous_status=previous_status,
            status=new_status,
            total=order.total,
        )
        was_fulfilled = previous_status == kind.fulfilled_status
        now_fulfilled = new_status == kind.fulfilled_status

        if not was_fulfilled and now_fulfilled:
            result.stock = self._apply_deltas(order, direction=kind.stock_direction)
            entry, created = self.ledger.record_for_order(kind, order)
            result.ledger_entry_id = entry.id
            result.ledger_action = "created" if created else None
        elif was_fulfilled and not now_fulfilled:
            result.stock = self._apply_deltas(order, direction=-kind.stock_direction)
            removed_id = self.ledger.remove_for_order(kind, order.id)
            if removed_id is not None:
                result.ledger_entry_id = removed_id
                result.ledger_action = "removed"
        elif now_fulfilled:
            entry = self.ledger.entry_for_order(kind, order.id)
            result.ledger_entry_id = entry.id if entry else None

        if previous_status != new_status:
            order.status = new_status
            logger.info(
                "%s #%s %s -> %s stock=%s ledger=%s",
                kind.name,
                order.id,
                previous_status.value,
                new_status.value,
                result.stock,
                result.ledger_action,
            )
        self.db.flush()
        return result

    def _apply_deltas(self, order, *, direction: int) -> dict[int, int]:
        deltas: OrderedDict[int, int] = OrderedDict()
        for item in order.items:
            deltas[item.product_id] = deltas.get(item.product_id, 0) + direction * item.quantity

        products = self.catalog.lock_products(deltas)

        # Check every decrement before touching any row.
        for product_id, delta in deltas.items():
            product = products[product_id]
            if delta < 0 and product.stock < -delta:
                logger.warning(
                    "%s #%s rejected: product %s has %s, needs %s",
                    self.kind.name,
                    order.id,
                    product_id,
                    product.stock,
                    -delta,
                )
                raise InsufficientStockError(product.id, product.name, int(product.stock), -delta)

        return {product_id: self.catalog.adjust_stock(product_id, delta) for product_id, delta in deltas.items()}

    # Validation helpers

    def _coerce_status(self, status):
        try:
            return self.kind.coerce_status(status)
        except ValueError as exc:
            allowed = [member.value for member in self.kind.status_enum]
            raise ValidationError(
                f"Invalid {self.kind.name} status: {status}",
                field="status",
                allowed=allowed,
            ) from exc

    def _check_counterparty(self, counterparty_id: int | None) -> None:
        kind = self.kind
        entity = kind.counterparty_field.removesuffix("_id")
        if counterparty_id is None:
            raise ValidationError(f"{entity.capitalize()} is required", field=kind.counterparty_field)
        counterparty = self.db.get(kind.counterparty_model, counterparty_id)
        if not counterparty:
            raise NotFoundError(f"{entity.capitalize()} {counterparty_id} not found", entity=entity, entity_id=counterparty_id)
        if not counterparty.is_active:
            raise ValidationError(f"{entity.capitalize()} {counterparty_id} is inactive", field=kind.counterparty_field)

    def _resolve_lines(self, items) -> list[LineInput]:
        kind = self.kind
        if not items:
            raise ValidationError(f"A {kind.name} needs at least one line item", field="items")

        lines = []
        for index, item in enumerate(items):
            if item.quantity is None or item.quantity < 1:
                raise ValidationError("Quantity must be at least 1", field=f"items[{index}].quantity")
            product = self.db.get(Product, item.product_id)
            if not product:
                raise NotFoundError(
                    f"Product {item.product_id} not found",
                    entity="product",
                    entity_id=item.product_id,
                )
            if not product.is_active:
                raise ValidationError(f"Product {product.name} is inactive", field=f"items[{index}].product_id")

            amount = getattr(item, kind.amount_field, None)
            if amount is None:
                amount = getattr(product, kind.product_amount_field)
            amount = Decimal(amount)
            if amount < 0:
                raise ValidationError("Unit amount cannot be negative", field=f"items[{index}].{kind.amount_field}")
            amount = quantize_amount(amount)
            lines.append(LineInput(product_id=product.id, quantity=int(item.quantity), unit_amount=amount))
        return lines

    @staticmethod
    def _clean(value):
        if isinstance(value, str):
            return value.strip() or None
        return value
