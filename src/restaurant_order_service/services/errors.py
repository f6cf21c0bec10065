"""Domain exceptions raised by the order and stock services.

The API layer renders every OrderServiceError as
``{"message": ..., "details": {field: message}}`` with the error's HTTP status.
"""


class OrderServiceError(Exception):
    """Base class for all expected service failures."""

    status_code = 500

    def __init__(self, message: str, details: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidRequestError(OrderServiceError):
    """Malformed, missing or out-of-range input. No state was changed."""

    status_code = 400


class InvalidStatusError(InvalidRequestError):
    """The requested order status is not one that can be set."""


class InsufficientStockError(InvalidRequestError):
    """A reservation asked for more units than the menu item has left."""

    def __init__(self, menu_item_id: str, menu_item_name: str, requested: int, available: int) -> None:
        super().__init__(
            "Insufficient stock",
            {"items": f"Insufficient stock for {menu_item_name}"},
        )
        self.menu_item_id = menu_item_id
        self.menu_item_name = menu_item_name
        self.requested = requested
        self.available = available


class NotFoundError(OrderServiceError):
    """A referenced record does not exist."""

    status_code = 404


class MenuItemNotFoundError(NotFoundError):
    """The referenced menu item does not exist."""

    def __init__(self, menu_item_id: str) -> None:
        super().__init__("Menu item not found", {"id": f"Menu item {menu_item_id} does not exist"})
        self.menu_item_id = menu_item_id


class OrderNotFoundError(NotFoundError):
    """The referenced order does not exist."""

    def __init__(self, order_id: str) -> None:
        super().__init__("Order not found", {"id": f"Order {order_id} does not exist"})
        self.order_id = order_id


class StorageError(OrderServiceError):
    """The document store rejected or failed a write."""
