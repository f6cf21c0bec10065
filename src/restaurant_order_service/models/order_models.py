"""Order data models.

These models represent customer orders, their line items and lifecycle status,
for DynamoDB storage and for the service, kitchen and management terminals.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import Field

from restaurant_order_service.models.menu_models import ApiModel, MenuItem, Money


class OrderStatus(str, Enum):
    """Enumeration of order lifecycle states."""

    PENDING = "pending"
    PREPARING = "preparing"
    READY = "ready"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Statuses an order can be moved to by the service and kitchen terminals.
# READY and CANCELLED are defined but not reachable through status updates.
SETTABLE_STATUSES: tuple[OrderStatus, ...] = (
    OrderStatus.PENDING,
    OrderStatus.PREPARING,
    OrderStatus.COMPLETED,
)


class OrderLine(ApiModel):
    """A single line of an order, referencing a menu item by id."""

    menu_item_id: str = Field(..., alias="menuItem", description="Referenced menu item id")
    quantity: int = Field(default=1, description="Units ordered", ge=1)
    notes: str = Field(default="", description="Line notes (e.g. no onions)")

    def to_dynamodb_item(self) -> dict[str, Any]:
        """Convert to DynamoDB map format."""
        return {
            "menu_item_id": self.menu_item_id,
            "quantity": self.quantity,
            "notes": self.notes,
        }

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "OrderLine":
        """Create OrderLine from a DynamoDB map."""
        return cls(
            menu_item_id=item["menu_item_id"],
            quantity=int(item["quantity"]),
            notes=item.get("notes", ""),
        )


class Order(ApiModel):
    """Customer order as stored in DynamoDB.

    Lines reference menu items by id only. Use ResolvedOrder when the menu
    items must be embedded for display.
    """

    id: str = Field(..., description="Unique order identifier")
    items: list[OrderLine] = Field(..., description="Ordered line items")
    table_number: str = Field(..., description="Physical table identifier")
    notes: str = Field(default="", description="Order notes")
    status: OrderStatus = Field(default=OrderStatus.PENDING, description="Lifecycle status")
    total_amount: Money = Field(default=Decimal("0"), description="Order total", ge=0)
    created_at: datetime = Field(..., description="Order creation timestamp")
    completed_at: datetime | None = Field(None, description="Timestamp of completion")

    def to_dynamodb_item(self) -> dict[str, Any]:
        """Convert to DynamoDB item format.

        Returns:
            dict: DynamoDB-compatible representation
        """
        item: dict[str, Any] = {
            "id": self.id,
            "items": [line.to_dynamodb_item() for line in self.items],
            "table_number": self.table_number,
            "notes": self.notes,
            "status": self.status.value,
            "total_amount": self.total_amount,
            "created_at": self.created_at.isoformat(),
        }

        if self.completed_at is not None:
            item["completed_at"] = self.completed_at.isoformat()

        return item

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "Order":
        """Create Order from DynamoDB item.

        Args:
            item: DynamoDB item dictionary

        Returns:
            Order: Parsed model instance
        """
        data: dict[str, Any] = {
            "id": item["id"],
            "items": [OrderLine.from_dynamodb_item(line) for line in item.get("items", [])],
            "table_number": item["table_number"],
            "notes": item.get("notes", ""),
            "status": OrderStatus(item["status"]),
            "total_amount": Decimal(str(item.get("total_amount", 0))),
            "created_at": datetime.fromisoformat(item["created_at"]),
        }

        if "completed_at" in item:
            data["completed_at"] = datetime.fromisoformat(item["completed_at"])

        return cls(**data)


class ResolvedOrderLine(ApiModel):
    """Order line with its menu item embedded (None if the item was deleted)."""

    menu_item: MenuItem | None
    quantity: int
    notes: str = ""


class ResolvedOrder(ApiModel):
    """Order with every line resolved against the current menu."""

    id: str
    items: list[ResolvedOrderLine]
    table_number: str
    notes: str
    status: OrderStatus
    total_amount: Money
    created_at: datetime
    completed_at: datetime | None = None

    @classmethod
    def from_order(cls, order: Order, menu: dict[str, MenuItem]) -> "ResolvedOrder":
        """Resolve an order's lines against a menu keyed by item id.

        Args:
            order: Stored order
            menu: Current menu items keyed by id

        Returns:
            ResolvedOrder: Order with menu items embedded
        """
        return cls(
            id=order.id,
            items=[
                ResolvedOrderLine(
                    menu_item=menu.get(line.menu_item_id),
                    quantity=line.quantity,
                    notes=line.notes,
                )
                for line in order.items
            ],
            table_number=order.table_number,
            notes=order.notes,
            status=order.status,
            total_amount=order.total_amount,
            created_at=order.created_at,
            completed_at=order.completed_at,
        )


class CreateOrderRequest(ApiModel):
    """Order placed from the service terminal."""

    table_number: str = Field(..., description="Physical table identifier", min_length=1)
    items: list[OrderLine] = Field(default_factory=list, description="Ordered line items")
    notes: str = Field(default="", description="Order notes")
    total_amount: Money = Field(default=Decimal("0"), description="Order total", ge=0)


class OrderPatch(ApiModel):
    """Partial update of an order. Fields left as None are not modified."""

    table_number: str | None = None
    notes: str | None = None
    total_amount: Money | None = Field(None, ge=0)
    status: str | None = None
    items: list[OrderLine] | None = None


class StatusUpdateRequest(ApiModel):
    """Status change requested by the kitchen or service terminal."""

    status: str


class OrderStats(ApiModel):
    """Aggregate figures over all orders."""

    total_orders: int = 0
    total_revenue: Money = Decimal("0")
    average_order_value: Money = Decimal("0")


@dataclass
class ResetSummary:
    """Result of a service reset.

    Attributes:
        orders_processed: Number of orders whose stock was released
        orders_deleted: Number of orders removed from the store
    """

    orders_processed: int
    orders_deleted: int
