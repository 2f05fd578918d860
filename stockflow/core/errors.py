class AppError(Exception):
    """Base error for domain failures raised by the services."""

    code = "app_error"

    def __init__(self, message: str, **extra):
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_payload(self) -> dict:
        return {"detail": self.message, "error": self.code, **self.extra}


class ValidationError(AppError):
    code = "validation_error"


class NotFoundError(AppError):
    code = "not_found"


class InvalidStateError(AppError):
    code = "invalid_state"


class DuplicateConstraintError(AppError):
    code = "duplicate"


class DuplicateSkuError(DuplicateConstraintError):
    code = "duplicate_sku"


class InsufficientStockError(AppError):
    code = "insufficient_stock"

    def __init__(self, product_id: int, product_name: str, available: int, requested: int):
        super().__init__(
            f"Insufficient stock for product {product_name} (available: {available}, requested: {requested})",
            product_id=product_id,
            product_name=product_name,
            available=available,
            requested=requested,
        )
        self.product_id = product_id
        self.product_name = product_name
        self.available = available
        self.requested = requested
