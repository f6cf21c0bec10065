"""Menu data models.

These models represent the menu items sold in the restaurant and the stock
available for each of them. Field names are snake_case in Python and camelCase
on the wire; DynamoDB items keep snake_case attribute names.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

# Decimal in Python and DynamoDB, plain JSON number for clients
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class MenuCategory(str, Enum):
    """Enumeration of menu categories."""

    BURGERS = "Burgers"
    BEVERAGES = "Beverages"
    DESSERTS = "Desserts"
    SIDES = "Sides"


class ApiModel(BaseModel):
    """Base model exposing camelCase aliases to API clients."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MenuItemInput(ApiModel):
    """Editable fields of a menu item, as sent by the management terminal."""

    name: str = Field(..., description="Item name", min_length=1)
    description: str = Field(default="", description="Item description")
    price: Money = Field(..., description="Item price", ge=0)
    category: MenuCategory = Field(..., description="Menu category")
    quantity_available: int = Field(..., description="Units left in stock", ge=0)

    model_config = ConfigDict(str_strip_whitespace=True)


class MenuItem(ApiModel):
    """Menu item with its current stock level."""

    id: str = Field(..., description="Unique identifier for the menu item")
    name: str = Field(..., description="Item name")
    description: str = Field(default="", description="Item description")
    price: Money = Field(..., description="Item price", ge=0)
    category: MenuCategory = Field(..., description="Menu category")
    quantity_available: int = Field(..., description="Units left in stock", ge=0)
    created_at: datetime | None = Field(None, description="Creation timestamp")
    updated_at: datetime | None = Field(None, description="Last modification timestamp")

    def to_dynamodb_item(self) -> dict[str, Any]:
        """Convert to DynamoDB item format.

        Returns:
            dict: DynamoDB-compatible representation
        """
        item: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "category": self.category.value,
            "quantity_available": self.quantity_available,
        }

        if self.created_at is not None:
            item["created_at"] = self.created_at.isoformat()

        if self.updated_at is not None:
            item["updated_at"] = self.updated_at.isoformat()

        return item

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "MenuItem":
        """Create MenuItem from DynamoDB item.

        Args:
            item: DynamoDB item dictionary

        Returns:
            MenuItem: Parsed model instance
        """
        data: dict[str, Any] = {
            "id": item["id"],
            "name": item["name"],
            "description": item.get("description", ""),
            "price": Decimal(str(item["price"])),
            "category": MenuCategory(item["category"]),
            # DynamoDB hands numbers back as Decimal
            "quantity_available": int(item["quantity_available"]),
        }

        if "created_at" in item:
            data["created_at"] = datetime.fromisoformat(item["created_at"])

        if "updated_at" in item:
            data["updated_at"] = datetime.fromisoformat(item["updated_at"])

        return cls(**data)
