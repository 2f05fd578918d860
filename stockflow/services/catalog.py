import logging
from collections.abc import Iterable
from decimal import Decimal

from sqlalchemy import exists, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from stockflow.core.errors import (
    DuplicateSkuError,
    InsufficientStockError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from stockflow.db.database import is_unique_violation
from stockflow.models.catalog import Category, Product, Supplier
from stockflow.models.orders import PurchaseItem, SaleItem
from stockflow.schemas.catalog import ProductCreate, ProductUpdate

logger = logging.getLogger(__name__)


def quantize_amount(value: Decimal) -> Decimal:
    return Decimal(value).quantize(Decimal("0.01"))


class CatalogStore:
    """Products and their stock counters.

    Nothing here commits: callers wrap the calls in ``unit_of_work`` so stock
    changes join whatever transaction is already open.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_product(self, product_id: int) -> Product:
        product = self.db.get(Product, product_id)
        if not product:
            raise NotFoundError(f"Product {product_id} not found", entity="product", entity_id=product_id)
        return product

    def find_by_sku(self, sku: str, exclude_id: int | None = None) -> Product | None:
        query = select(Product).where(Product.sku == sku.strip().upper())
        if exclude_id is not None:
            query = query.where(Product.id != exclude_id)
        return self.db.scalar(query)

    def list_products(
        self,
        *,
        category_id: int | None = None,
        supplier_id: int | None = None,
        search: str | None = None,
        include_inactive: bool = False,
    ) -> list[Product]:
        query = select(Product).order_by(Product.name.asc())
        if not include_inactive:
            query = query.where(Product.is_active.is_(True))
        if category_id is not None:
            query = query.where(Product.category_id == category_id)
        if supplier_id is not None:
            query = query.where(Product.supplier_id == supplier_id)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.where(or_(Product.name.ilike(pattern), Product.sku.ilike(pattern)))
        return list(self.db.scalars(query).all())

    def low_stock_products(self) -> list[Product]:
        return list(
            self.db.scalars(
                select(Product)
                .where(Product.is_active.is_(True), Product.stock <= Product.min_stock)
                .order_by(Product.stock.asc(), Product.name.asc())
            ).all()
        )

    def create_product(self, payload: ProductCreate) -> Product:
        sku = payload.sku.strip().upper()
        if self.find_by_sku(sku):
            raise DuplicateSkuError(f"Product SKU {sku} already exists", sku=sku)
        self._check_references(payload.category_id, payload.supplier_id)

        product = Product(
            sku=sku,
            name=payload.name.strip(),
            description=payload.description,
            price=quantize_amount(payload.price),
            cost=quantize_amount(payload.cost),
            stock=payload.stock,
            min_stock=payload.min_stock,
            category_id=payload.category_id,
            supplier_id=payload.supplier_id,
        )
        self.db.add(product)
        self._flush_unique(sku)
        return product

    def update_product(self, product_id: int, payload: ProductUpdate) -> Product:
        product = self.get_product(product_id)
        fields = payload.model_dump(exclude_unset=True)

        if payload.sku is not None:
            sku = payload.sku.strip().upper()
            if self.find_by_sku(sku, exclude_id=product.id):
                raise DuplicateSkuError(f"Product SKU {sku} already exists", sku=sku)
            product.sku = sku
        if payload.name is not None:
            product.name = payload.name.strip()
        if "description" in fields:
            product.description = payload.description.strip() if payload.description else None
        if payload.price is not None:
            product.price = quantize_amount(payload.price)
        if payload.cost is not None:
            product.cost = quantize_amount(payload.cost)
        if payload.min_stock is not None:
            product.min_stock = payload.min_stock
        if "category_id" in fields or "supplier_id" in fields:
            self._check_references(fields.get("category_id"), fields.get("supplier_id"))
        if "category_id" in fields:
            product.category_id = payload.category_id
        if "supplier_id" in fields:
            product.supplier_id = payload.supplier_id
        if payload.is_active is not None:
            product.is_active = payload.is_active

        self._flush_unique(product.sku)
        return product

    def delete_product(self, product_id: int, *, hard: bool = False) -> Product:
        product = self.get_product(product_id)
        if not hard:
            product.is_active = False
            self.db.flush()
            return product

        referenced = self.db.scalar(
            select(
                or_(
                    exists().where(PurchaseItem.product_id == product_id),
                    exists().where(SaleItem.product_id == product_id),
                )
            )
        )
        if referenced:
            raise InvalidStateError(
                "Product is referenced by purchase or sale items; archive it instead",
                product_id=product_id,
            )
        self.db.delete(product)
        self.db.flush()
        return product

    def lock_products(self, product_ids: Iterable[int]) -> dict[int, Product]:
        """Load and row-lock products in ascending id order."""
        ids = sorted(set(product_ids))
        if not ids:
            return {}
        products = self.db.scalars(
            select(Product)
            .where(Product.id.in_(ids))
            .order_by(Product.id.asc())
            .with_for_update()
            .execution_options(populate_existing=True)
        ).all()
        found = {product.id: product for product in products}
        missing = [product_id for product_id in ids if product_id not in found]
        if missing:
            raise NotFoundError(
                f"Product {missing[0]} not found",
                entity="product",
                entity_id=missing[0],
            )
        return found

    def adjust_stock(self, product_id: int, delta: int) -> int:
        """Atomically add ``delta`` to a product's stock and return the new level.

        The guard lives in the UPDATE itself so concurrent writers cannot push
        the counter below zero; a rejected update is reported, never clamped.
        """
        result = self.db.execute(
            update(Product)
            .where(Product.id == product_id, Product.stock + delta >= 0)
            .values(stock=Product.stock + delta)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            row = self.db.execute(select(Product.name, Product.stock).where(Product.id == product_id)).first()
            if row is None:
                raise NotFoundError(f"Product {product_id} not found", entity="product", entity_id=product_id)
            raise InsufficientStockError(product_id, row.name, int(row.stock), -delta)

        product = self.db.get(Product, product_id)
        self.db.refresh(product, ["stock", "updated_at"])
        logger.debug("stock adjusted product=%s delta=%s stock=%s", product_id, delta, product.stock)
        return product.stock

    def _check_references(self, category_id: int | None, supplier_id: int | None) -> None:
        if category_id is not None and not self.db.get(Category, category_id):
            raise NotFoundError(f"Category {category_id} not found", entity="category", entity_id=category_id)
        if supplier_id is not None and not self.db.get(Supplier, supplier_id):
            raise NotFoundError(f"Supplier {supplier_id} not found", entity="supplier", entity_id=supplier_id)

    def _flush_unique(self, sku: str) -> None:
        try:
            self.db.flush()
        except IntegrityError as exc:
            if is_unique_violation(exc):
                raise DuplicateSkuError(f"Product SKU {sku} already exists", sku=sku) from exc
            raise ValidationError("Product violates a data constraint", sku=sku) from exc
