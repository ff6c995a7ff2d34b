"""Shop service errors.

Each error maps onto one HTTP status and one caller-facing message; the
underlying database error (if any) is chained as ``__cause__`` and logged.
"""

from typing import Optional

from libs.common.error_handler import APIError


class InvalidOrderError(APIError):
    status_code = 400
    error = "Invalid order data. Customer information and items are required."


class OutOfStockError(APIError):
    """One or more lines cannot be fulfilled from current stock.

    ``shortfalls`` is the aggregated list of every failing line, never just the first.
    """

    status_code = 400
    error = "Some items are out of stock"

    def __init__(self, shortfalls: list, error: Optional[str] = None):
        self.shortfalls = shortfalls
        super().__init__(
            error, details=[shortfall.as_detail() for shortfall in shortfalls]
        )


class InsufficientStockError(OutOfStockError):
    """Raised by the deductor when a conditional decrement finds too little stock."""


class StockCheckError(APIError):
    error = "Failed to validate stock availability"


class CustomerWriteError(APIError):
    error = "Failed to create customer record"


class OrderWriteError(APIError):
    error = "Failed to create order"


class OrderItemsWriteError(APIError):
    error = "Failed to create order items"


class InventoryError(APIError):
    error = "Failed to process inventory. Please try again."


class OrderNotFoundError(APIError):
    status_code = 404
    error = "Order not found"


class OrderNotCancellableError(APIError):
    status_code = 400


class ProductNotFoundError(APIError):
    status_code = 404
    error = "Product not found"


class NotificationNotFoundError(APIError):
    status_code = 404
    error = "Notification not found"


class NotificationNotDeletableError(APIError):
    status_code = 400
    error = "Can only delete dismissed notifications"


class InvalidBulkActionError(APIError):
    status_code = 400
