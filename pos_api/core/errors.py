# =========================================================
# SALE PROCESSING ERRORS
#
# Every failure names the entity or constraint that caused it.
# The API layer turns these into HTTP errors using status_code
# and to_detail(); nothing here knows about FastAPI.
# =========================================================

from typing import Any, Optional


class SaleError(Exception):
    status_code = 500
    code = "sale_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_detail(self) -> dict[str, Any]:
        return {"error": self.code, "message": self.message}


class InvalidRequest(SaleError):
    status_code = 400
    code = "invalid_request"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field

    def to_detail(self):
        detail = super().to_detail()
        if self.field is not None:
            detail["field"] = self.field
        return detail


class ProductNotFound(SaleError):
    status_code = 404
    code = "product_not_found"

    def __init__(self, product_id: int):
        super().__init__(f"Product {product_id} not found or inactive")
        self.product_id = product_id

    def to_detail(self):
        detail = super().to_detail()
        detail["product_id"] = self.product_id
        return detail


class InsufficientStock(SaleError):
    status_code = 409
    code = "insufficient_stock"

    def __init__(self, product_id: int, requested: int, available: int):
        super().__init__(
            f"Insufficient stock for product {product_id}. "
            f"Available: {available}, requested: {requested}"
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available

    def to_detail(self):
        detail = super().to_detail()
        detail.update(
            product_id=self.product_id,
            requested=self.requested,
            available=self.available,
        )
        return detail


class ClientNotFound(SaleError):
    status_code = 404
    code = "client_not_found"

    def __init__(self, client_id: int):
        super().__init__(f"Client {client_id} not found")
        self.client_id = client_id

    def to_detail(self):
        detail = super().to_detail()
        detail["client_id"] = self.client_id
        return detail


class SaleNotFound(SaleError):
    status_code = 404
    code = "sale_not_found"

    def __init__(self, sale_id: int):
        super().__init__(f"Sale {sale_id} not found")
        self.sale_id = sale_id

    def to_detail(self):
        detail = super().to_detail()
        detail["sale_id"] = self.sale_id
        return detail


class SaleAlreadyCancelled(SaleError):
    status_code = 409
    code = "sale_already_cancelled"

    def __init__(self, sale_id: int):
        super().__init__(f"Sale {sale_id} is already cancelled")
        self.sale_id = sale_id

    def to_detail(self):
        detail = super().to_detail()
        detail["sale_id"] = self.sale_id
        return detail


class StorageFailure(SaleError):
    """
    Data store failure: lock wait timeout, deadlock, constraint
    violation or lost connection. Retryable failures map to 503 so
    callers know another attempt may succeed.
    """

    code = "storage_failure"

    def __init__(self, message: str, retryable: bool = False):
        super().__init__(message)
        self.retryable = retryable

    @property
    def status_code(self):
        return 503 if self.retryable else 500

    def to_detail(self):
        detail = super().to_detail()
        detail["retryable"] = self.retryable
        return detail


class NestedTransactionError(RuntimeError):
    """Raised when an atomic scope is opened inside another one."""
