"""Stock ledger owning every menu item's available quantity."""

import logging

from botocore.exceptions import ClientError

from restaurant_order_service.models.event_models import EventTopic
from restaurant_order_service.models.menu_models import MenuItem
from restaurant_order_service.observability import traced
from restaurant_order_service.observability.metrics import (
    record_reservation_failure,
    record_units_released,
)
from restaurant_order_service.repositories.order_repositories import MenuItemRepository
from restaurant_order_service.services.change_notifier import ChangeNotifier
from restaurant_order_service.services.errors import (
    InsufficientStockError,
    MenuItemNotFoundError,
    StorageError,
)

logger = logging.getLogger(__name__)


class StockLedger:
    """Applies reservations and releases to menu item stock.

    Each operation is a single conditional update in the document store, so
    concurrent reservations cannot drive quantity_available below zero. Every
    successful change is broadcast as an item-updated event.
    """

    def __init__(self, menu_repository: MenuItemRepository, notifier: ChangeNotifier) -> None:
        """Initialize the StockLedger.

        Args:
            menu_repository: Repository holding the menu items
            notifier: Channel used to broadcast stock changes
        """
        self.menu_repository = menu_repository
        self.notifier = notifier

    @traced("stock.reserve")
    async def reserve(self, menu_item_id: str, quantity: int) -> MenuItem:
        """Take units of a menu item out of stock.

        Args:
            menu_item_id: The menu item to reserve
            quantity: Number of units to reserve

        Returns:
            The menu item with its updated stock level

        Raises:
            MenuItemNotFoundError: If the menu item does not exist
            InsufficientStockError: If fewer than quantity units are available
            StorageError: If the store fails the update
        """
        try:
            item = self.menu_repository.decrement_quantity(menu_item_id, quantity)
        except ClientError as e:
            raise StorageError(f"Failed to reserve stock for menu item {menu_item_id}") from e

        if item is None:
            # The conditional update does not say which condition failed
            try:
                current = self.menu_repository.get_item(menu_item_id, raise_on_error=True)
            except ClientError as e:
                raise StorageError(f"Failed to read menu item {menu_item_id}") from e

            if current is None:
                record_reservation_failure("not_found")
                raise MenuItemNotFoundError(menu_item_id)

            record_reservation_failure("insufficient_stock")
            logger.warning(
                f"Rejected reservation of {quantity} x {current.name}: "
                f"only {current.quantity_available} available"
            )
            raise InsufficientStockError(
                menu_item_id=current.id,
                menu_item_name=current.name,
                requested=quantity,
                available=current.quantity_available,
            )

        logger.info(f"Reserved {quantity} x {item.name}, {item.quantity_available} left")
        await self.notifier.broadcast(EventTopic.ITEM_UPDATED, item)
        return item

    @traced("stock.release")
    async def release(self, menu_item_id: str, quantity: int) -> MenuItem:
        """Put units of a menu item back in stock.

        No upper bound is enforced on the resulting quantity.

        Args:
            menu_item_id: The menu item to release
            quantity: Number of units to return

        Returns:
            The menu item with its updated stock level

        Raises:
            MenuItemNotFoundError: If the menu item does not exist
            StorageError: If the store fails the update
        """
        try:
            item = self.menu_repository.increment_quantity(menu_item_id, quantity)
        except ClientError as e:
            raise StorageError(f"Failed to release stock for menu item {menu_item_id}") from e

        if item is None:
            raise MenuItemNotFoundError(menu_item_id)

        record_units_released(quantity)
        logger.info(f"Released {quantity} x {item.name}, {item.quantity_available} available")
        await self.notifier.broadcast(EventTopic.ITEM_UPDATED, item)
        return item
