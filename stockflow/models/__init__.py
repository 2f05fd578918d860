from stockflow.models.catalog import Category, Customer, Product, Supplier
from stockflow.models.ledger import Expense, Income
from stockflow.models.orders import Purchase, PurchaseItem, PurchaseStatus, Sale, SaleItem, SaleStatus

__all__ = [
    "Category",
    "Customer",
    "Expense",
    "Income",
    "Product",
    "Purchase",
    "PurchaseItem",
    "PurchaseStatus",
    "Sale",
    "SaleItem",
    "SaleStatus",
    "Supplier",
]
