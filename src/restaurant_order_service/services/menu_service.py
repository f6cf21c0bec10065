"""Menu service for managing menu items from the management terminal."""

import logging
import uuid
from datetime import UTC, datetime

from restaurant_order_service.models.event_models import EventTopic
from restaurant_order_service.models.menu_models import MenuItem, MenuItemInput
from restaurant_order_service.observability import traced
from restaurant_order_service.repositories.order_repositories import MenuItemRepository
from restaurant_order_service.services.change_notifier import ChangeNotifier
from restaurant_order_service.services.errors import MenuItemNotFoundError, StorageError

logger = logging.getLogger(__name__)


class MenuService:
    """Service for creating, editing and removing menu items.

    Stock levels set here are absolute; reservations and releases made by
    orders go through the StockLedger instead.
    """

    def __init__(self, menu_repository: MenuItemRepository, notifier: ChangeNotifier) -> None:
        """Initialize the MenuService.

        Args:
            menu_repository: Repository for storing menu items
            notifier: Channel used to broadcast menu changes
        """
        self.menu_repository = menu_repository
        self.notifier = notifier

    async def list_items(self) -> list[MenuItem]:
        """List every menu item with its current stock level."""
        return self.menu_repository.list_items()

    async def get_item(self, item_id: str) -> MenuItem:
        """Get a single menu item.

        Raises:
            MenuItemNotFoundError: If the menu item does not exist
        """
        item = self.menu_repository.get_item(item_id)
        if item is None:
            raise MenuItemNotFoundError(item_id)
        return item

    @traced("menu.create")
    async def create_item(self, data: MenuItemInput) -> MenuItem:
        """Add a menu item.

        Args:
            data: Validated menu item fields

        Returns:
            The stored menu item

        Raises:
            StorageError: If the item could not be saved
        """
        now = datetime.now(UTC)
        item = MenuItem(
            id=f"item_{uuid.uuid4().hex[:12]}",
            **data.model_dump(),
            created_at=now,
            updated_at=now,
        )

        if not self.menu_repository.save_item(item):
            raise StorageError(f"Failed to save menu item {item.name}")

        logger.info(f"Menu item {item.id} created: {item.name} ({item.quantity_available} in stock)")
        await self.notifier.broadcast(EventTopic.ITEM_CREATED, item)
        return item

    @traced("menu.update")
    async def update_item(self, item_id: str, data: MenuItemInput) -> MenuItem:
        """Replace the editable fields of a menu item.

        Args:
            item_id: The menu item to update
            data: Validated menu item fields

        Returns:
            The updated menu item

        Raises:
            MenuItemNotFoundError: If the menu item does not exist
            StorageError: If the item could not be saved
        """
        existing = await self.get_item(item_id)
        item = existing.model_copy(update={**data.model_dump(), "updated_at": datetime.now(UTC)})

        if not self.menu_repository.save_item(item):
            raise StorageError(f"Failed to save menu item {item_id}")

        logger.info(f"Menu item {item_id} updated ({item.quantity_available} in stock)")
        await self.notifier.broadcast(EventTopic.ITEM_UPDATED, item)
        return item

    @traced("menu.delete")
    async def delete_item(self, item_id: str) -> str:
        """Remove a menu item.

        Orders still referencing the item keep their lines; those lines
        resolve to no menu item and release nothing when the order goes.

        Returns:
            The deleted menu item's ID

        Raises:
            MenuItemNotFoundError: If the menu item does not exist
            StorageError: If the item could not be deleted
        """
        await self.get_item(item_id)

        if not self.menu_repository.delete_item(item_id):
            raise StorageError(f"Failed to delete menu item {item_id}")

        logger.info(f"Menu item {item_id} deleted")
        await self.notifier.broadcast(EventTopic.ITEM_DELETED, item_id)
        return item_id
