from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from stockflow.core.errors import DuplicateConstraintError, NotFoundError, ValidationError
from stockflow.db.database import is_unique_violation
from stockflow.models.catalog import Category, Customer, Product, Supplier
from stockflow.schemas.catalog import (
    CategoryCreate,
    CategoryUpdate,
    CustomerCreate,
    CustomerUpdate,
    SupplierCreate,
    SupplierUpdate,
)


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


class DirectoryStore:
    """Categories, suppliers and customers referenced by products and orders."""

    def __init__(self, db: Session):
        self.db = db

    def _flush(self, message: str) -> None:
        try:
            self.db.flush()
        except IntegrityError as exc:
            if is_unique_violation(exc):
                raise DuplicateConstraintError(message) from exc
            raise ValidationError("Record violates a data constraint") from exc

    # Categories

    def get_category(self, category_id: int) -> Category:
        category = self.db.get(Category, category_id)
        if not category:
            raise NotFoundError(f"Category {category_id} not found", entity="category", entity_id=category_id)
        return category

    def list_categories(self) -> list[Category]:
        return list(self.db.scalars(select(Category).order_by(Category.name.asc())).all())

    def create_category(self, payload: CategoryCreate) -> Category:
        name = payload.name.strip()
        if self.db.scalar(select(Category).where(Category.name == name)):
            raise DuplicateConstraintError(f"Category {name} already exists", field="name")
        category = Category(name=name, description=_clean(payload.description))
        self.db.add(category)
        self._flush(f"Category {name} already exists")
        return category

    def update_category(self, category_id: int, payload: CategoryUpdate) -> Category:
        category = self.get_category(category_id)
        if payload.name is not None:
            name = payload.name.strip()
            clash = self.db.scalar(select(Category).where(Category.name == name, Category.id != category.id))
            if clash:
                raise DuplicateConstraintError(f"Category {name} already exists", field="name")
            category.name = name
        if payload.description is not None:
            category.description = _clean(payload.description)
        self._flush("Category name already exists")
        return category

    def delete_category(self, category_id: int) -> Category:
        category = self.get_category(category_id)
        self.db.execute(
            update(Product)
            .where(Product.category_id == category_id)
            .values(category_id=None)
            .execution_options(synchronize_session=False)
        )
        self.db.delete(category)
        self.db.flush()
        return category

    # Suppliers

    def get_supplier(self, supplier_id: int) -> Supplier:
        supplier = self.db.get(Supplier, supplier_id)
        if not supplier:
            raise NotFoundError(f"Supplier {supplier_id} not found", entity="supplier", entity_id=supplier_id)
        return supplier

    def list_suppliers(self, *, include_inactive: bool = False, search: str | None = None) -> list[Supplier]:
        query = select(Supplier).order_by(Supplier.name.asc())
        if not include_inactive:
            query = query.where(Supplier.is_active.is_(True))
        if search:
            query = query.where(Supplier.name.ilike(f"%{search.strip()}%"))
        return list(self.db.scalars(query).all())

    def create_supplier(self, payload: SupplierCreate) -> Supplier:
        name = payload.name.strip()
        if self.db.scalar(select(Supplier).where(Supplier.name == name)):
            raise DuplicateConstraintError(f"Supplier {name} already exists", field="name")
        supplier = Supplier(
            name=name,
            contact=_clean(payload.contact),
            email=payload.email,
            phone=_clean(payload.phone),
            address=_clean(payload.address),
        )
        self.db.add(supplier)
        self._flush(f"Supplier {name} already exists")
        return supplier

    def update_supplier(self, supplier_id: int, payload: SupplierUpdate) -> Supplier:
        supplier = self.get_supplier(supplier_id)
        if payload.name is not None:
            name = payload.name.strip()
            clash = self.db.scalar(select(Supplier).where(Supplier.name == name, Supplier.id != supplier.id))
            if clash:
                raise DuplicateConstraintError(f"Supplier {name} already exists", field="name")
            supplier.name = name
        if payload.contact is not None:
            supplier.contact = _clean(payload.contact)
        if payload.email is not None:
            supplier.email = payload.email
        if payload.phone is not None:
            supplier.phone = _clean(payload.phone)
        if payload.address is not None:
            supplier.address = _clean(payload.address)
        if payload.is_active is not None:
            supplier.is_active = payload.is_active
        self._flush("Supplier name already exists")
        return supplier

    def archive_supplier(self, supplier_id: int) -> Supplier:
        supplier = self.get_supplier(supplier_id)
        supplier.is_active = False
        self.db.flush()
        return supplier

    # Customers

    def get_customer(self, customer_id: int) -> Customer:
        customer = self.db.get(Customer, customer_id)
        if not customer:
            raise NotFoundError(f"Customer {customer_id} not found", entity="customer", entity_id=customer_id)
        return customer

    def list_customers(self, *, include_inactive: bool = False, search: str | None = None) -> list[Customer]:
        query = select(Customer).order_by(Customer.first_name.asc(), Customer.last_name.asc())
        if not include_inactive:
            query = query.where(Customer.is_active.is_(True))
        if search:
            pattern = f"%{search.strip()}%"
            query = query.where(
                or_(
                    Customer.first_name.ilike(pattern),
                    Customer.last_name.ilike(pattern),
                    Customer.document.ilike(pattern),
                    Customer.email.ilike(pattern),
                )
            )
        return list(self.db.scalars(query).all())

    def create_customer(self, payload: CustomerCreate) -> Customer:
        document = _clean(payload.document)
        if document and self.db.scalar(select(Customer).where(Customer.document == document)):
            raise DuplicateConstraintError(f"Customer document {document} already exists", field="document")
        customer = Customer(
            first_name=payload.first_name.strip(),
            last_name=payload.last_name.strip(),
            document=document,
            phone=_clean(payload.phone),
            email=payload.email,
            address=_clean(payload.address),
            city=_clean(payload.city),
        )
        self.db.add(customer)
        self._flush("Customer document already exists")
        return customer

    def update_customer(self, customer_id: int, payload: CustomerUpdate) -> Customer:
        customer = self.get_customer(customer_id)
        if payload.document is not None:
            document = _clean(payload.document)
            if document:
                clash = self.db.scalar(
                    select(Customer).where(Customer.document == document, Customer.id != customer.id)
                )
                if clash:
                    raise DuplicateConstraintError(f"Customer document {document} already exists", field="document")
            customer.document = document
        if payload.first_name is not None:
            customer.first_name = payload.first_name.strip()
        if payload.last_name is not None:
            customer.last_name = payload.last_name.strip()
        if payload.phone is not None:
            customer.phone = _clean(payload.phone)
        if payload.email is not None:
            customer.email = payload.email
        if payload.address is not None:
            customer.address = _clean(payload.address)
        if payload.city is not None:
            customer.city = _clean(payload.city)
        if payload.is_active is not None:
            customer.is_active = payload.is_active
        self._flush("Customer document already exists")
        return customer

    def archive_customer(self, customer_id: int) -> Customer:
        customer = self.get_customer(customer_id)
        customer.is_active = False
        self.db.flush()
        return customer
