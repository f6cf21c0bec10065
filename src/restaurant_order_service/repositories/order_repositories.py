"""DynamoDB repository classes for menu items and orders.

These repositories provide CRUD operations plus the conditional stock updates
the stock ledger relies on. As elsewhere in the data layer, expected misses
and failed writes are reported with simple return values (None/False) and
storage errors are logged; the services decide what to raise.
"""

import logging
from decimal import Decimal
from typing import Any

from botocore.exceptions import ClientError
from mypy_boto3_dynamodb.service_resource import DynamoDBServiceResource, Table

from restaurant_order_service.models.menu_models import MenuItem
from restaurant_order_service.models.order_models import Order

logger = logging.getLogger(__name__)


def _scan_all(table: Table, **kwargs: Any) -> list[dict[str, Any]]:
    """Scan a whole table, following LastEvaluatedKey pagination."""
    items: list[dict[str, Any]] = []
    response = table.scan(**kwargs)
    items.extend(response.get("Items", []))

    while "LastEvaluatedKey" in response:
        response = table.scan(ExclusiveStartKey=response["LastEvaluatedKey"], **kwargs)
        items.extend(response.get("Items", []))

    return items


class MenuItemRepository:
    """Repository for menu item CRUD and stock operations.

    Manages menu item records in DynamoDB with id as partition key.
    """

    def __init__(self, dynamodb_resource: DynamoDBServiceResource, table_name: str) -> None:
        """Initialize repository.

        Args:
            dynamodb_resource: Boto3 DynamoDB resource
            table_name: Name of the DynamoDB table
        """
        self.dynamodb = dynamodb_resource
        self.table_name = table_name
        self.table: Table = dynamodb_resource.Table(table_name)

    def get_item(self, item_id: str, raise_on_error: bool = False) -> MenuItem | None:
        """Retrieve a menu item by ID.

        Args:
            item_id: Menu item identifier
            raise_on_error: Re-raise storage errors instead of returning None

        Returns:
            MenuItem if found, None otherwise

        Raises:
            ClientError: If the read fails and raise_on_error is set
        """
        try:
            response = self.table.get_item(Key={"id": item_id})

            if "Item" not in response:
                return None

            return MenuItem.from_dynamodb_item(response["Item"])

        except ClientError as e:
            logger.error(f"Failed to get menu item {item_id}: {e}")
            if raise_on_error:
                raise
            return None

    def list_items(self) -> list[MenuItem]:
        """List all menu items.

        Returns:
            list: List of MenuItem objects (empty list if none found)
        """
        try:
            return [MenuItem.from_dynamodb_item(item) for item in _scan_all(self.table)]

        except ClientError as e:
            logger.error(f"Failed to list menu items: {e}")  # pragma: no cover
            return []

    def save_item(self, item: MenuItem) -> bool:
        """Save or replace a menu item.

        Args:
            item: MenuItem to save

        Returns:
            bool: True if save succeeded, False otherwise
        """
        try:
            self.table.put_item(Item=item.to_dynamodb_item())
            return True

        except ClientError as e:
            logger.error(f"Failed to save menu item {item.id}: {e}")  # pragma: no cover
            return False

    def delete_item(self, item_id: str) -> bool:
        """Delete a menu item.

        Args:
            item_id: Menu item identifier

        Returns:
            bool: True if delete succeeded, False otherwise
        """
        try:
            self.table.delete_item(Key={"id": item_id})
            return True

        except ClientError as e:
            logger.error(f"Failed to delete menu item {item_id}: {e}")  # pragma: no cover
            return False

    def decrement_quantity(self, item_id: str, quantity: int) -> MenuItem | None:
        """Atomically take units out of stock if enough are available.

        A single conditional update, so two concurrent reservations can never
        both pass the availability check against the same stale stock level.

        Args:
            item_id: Menu item identifier
            quantity: Units to take

        Returns:
            The updated MenuItem, or None if the item is missing or short of stock

        Raises:
            ClientError: On storage failures other than the failed condition
        """
        try:
            response = self.table.update_item(
                Key={"id": item_id},
                UpdateExpression="SET quantity_available = quantity_available - :qty",
                ConditionExpression="attribute_exists(#id) AND quantity_available >= :qty",
                ExpressionAttributeNames={"#id": "id"},
                ExpressionAttributeValues={":qty": quantity},
                ReturnValues="ALL_NEW",
            )
            return MenuItem.from_dynamodb_item(response["Attributes"])

        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                return None
            logger.error(f"Failed to decrement stock for {item_id}: {e}")
            raise

    def increment_quantity(self, item_id: str, quantity: int) -> MenuItem | None:
        """Atomically put units back in stock.

        Args:
            item_id: Menu item identifier
            quantity: Units to return

        Returns:
            The updated MenuItem, or None if the item does not exist

        Raises:
            ClientError: On storage failures other than the failed condition
        """
        try:
            response = self.table.update_item(
                Key={"id": item_id},
                UpdateExpression="SET quantity_available = quantity_available + :qty",
                ConditionExpression="attribute_exists(#id)",
                ExpressionAttributeNames={"#id": "id"},
                ExpressionAttributeValues={":qty": quantity},
                ReturnValues="ALL_NEW",
            )
            return MenuItem.from_dynamodb_item(response["Attributes"])

        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                return None
            logger.error(f"Failed to increment stock for {item_id}: {e}")
            raise


class OrderRepository:
    """Repository for order CRUD and aggregation.

    Manages order records in DynamoDB with id as partition key.
    """

    def __init__(self, dynamodb_resource: DynamoDBServiceResource, table_name: str) -> None:
        """Initialize repository.

        Args:
            dynamodb_resource: Boto3 DynamoDB resource
            table_name: Name of the DynamoDB table
        """
        self.dynamodb = dynamodb_resource
        self.table_name = table_name
        self.table: Table = dynamodb_resource.Table(table_name)

    def get_order(self, order_id: str) -> Order | None:
        """Retrieve an order by ID.

        Args:
            order_id: Order identifier

        Returns:
            Order if found, None otherwise
        """
        try:
            response = self.table.get_item(Key={"id": order_id})

            if "Item" not in response:
                return None

            return Order.from_dynamodb_item(response["Item"])

        except ClientError as e:
            logger.error(f"Failed to get order {order_id}: {e}")  # pragma: no cover
            return None

    def list_orders(self, raise_on_error: bool = False) -> list[Order]:
        """List all orders, most recent first.

        Args:
            raise_on_error: Re-raise storage errors instead of returning an empty list

        Returns:
            list: List of Order objects (empty list if none found)
        """
        try:
            orders = [Order.from_dynamodb_item(item) for item in _scan_all(self.table)]

        except ClientError as e:
            logger.error(f"Failed to list orders: {e}")
            if raise_on_error:
                raise
            return []

        orders.sort(key=lambda order: order.created_at, reverse=True)
        return orders

    def save_order(self, order: Order) -> bool:
        """Save or replace an order.

        Args:
            order: Order to save

        Returns:
            bool: True if save succeeded, False otherwise
        """
        try:
            self.table.put_item(Item=order.to_dynamodb_item())
            return True

        except ClientError as e:
            logger.error(f"Failed to save order {order.id}: {e}")  # pragma: no cover
            return False

    def delete_order(self, order_id: str) -> bool:
        """Delete an order.

        Args:
            order_id: Order identifier

        Returns:
            bool: True if delete succeeded, False otherwise
        """
        try:
            self.table.delete_item(Key={"id": order_id})
            return True

        except ClientError as e:
            logger.error(f"Failed to delete order {order_id}: {e}")  # pragma: no cover
            return False

    def delete_all_orders(self) -> int | None:
        """Delete every order in one batch.

        Returns:
            Number of orders deleted, or None if the batch failed
        """
        try:
            keys = _scan_all(
                self.table, ProjectionExpression="#id", ExpressionAttributeNames={"#id": "id"}
            )
            with self.table.batch_writer() as batch:
                for key in keys:
                    batch.delete_item(Key={"id": key["id"]})
            return len(keys)

        except ClientError as e:
            logger.error(f"Failed to delete all orders: {e}")  # pragma: no cover
            return None

    def aggregate_totals(self) -> tuple[int, Decimal]:
        """Count orders and sum their total amounts.

        Returns:
            Tuple of (order_count, revenue)

        Raises:
            ClientError: If the scan fails
        """
        items = _scan_all(self.table, ProjectionExpression="total_amount")
        revenue = sum((Decimal(str(item.get("total_amount", 0))) for item in items), Decimal("0"))
        return len(items), revenue
