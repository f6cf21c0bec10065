"""Unit tests for StockLedger."""

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from restaurant_order_service.models.event_models import EventTopic
from restaurant_order_service.repositories.order_repositories import MenuItemRepository
from restaurant_order_service.services.change_notifier import ChangeNotifier, Subscription
from restaurant_order_service.services.errors import (
    InsufficientStockError,
    MenuItemNotFoundError,
    StorageError,
)
from restaurant_order_service.services.stock_ledger import StockLedger
from tests.doubles import InMemoryMenuItemRepository, drain


@pytest.mark.unit
class TestStockLedger:
    """Test suite for StockLedger."""

    @pytest.mark.asyncio
    async def test_reserve_decrements_stock(
        self,
        stock_ledger: StockLedger,
        menu_repository: InMemoryMenuItemRepository,
    ) -> None:
        """Test that a reservation takes units out of stock."""
        item = await stock_ledger.reserve(menu_item_id="item_burger", quantity=2)

        assert item.quantity_available == 3
        assert menu_repository.items["item_burger"].quantity_available == 3

    @pytest.mark.asyncio
    async def test_reserve_broadcasts_stock_change(
        self, stock_ledger: StockLedger, subscription: Subscription
    ) -> None:
        """Test that a reservation is broadcast as an item update."""
        await stock_ledger.reserve(menu_item_id="item_burger", quantity=2)

        events = drain(subscription)
        assert len(events) == 1
        assert events[0].topic == EventTopic.ITEM_UPDATED
        assert events[0].payload["id"] == "item_burger"
        assert events[0].payload["quantityAvailable"] == 3

    @pytest.mark.asyncio
    async def test_reserve_whole_stock(self, stock_ledger: StockLedger) -> None:
        """Test that every remaining unit can be reserved."""
        item = await stock_ledger.reserve(menu_item_id="item_cola", quantity=1)

        assert item.quantity_available == 0

    @pytest.mark.asyncio
    async def test_reserve_insufficient_stock(
        self,
        stock_ledger: StockLedger,
        menu_repository: InMemoryMenuItemRepository,
        subscription: Subscription,
    ) -> None:
        """Test that over-reserving is rejected and leaves stock untouched."""
        with pytest.raises(InsufficientStockError) as exc_info:
            await stock_ledger.reserve(menu_item_id="item_burger", quantity=6)

        error = exc_info.value
        assert error.menu_item_id == "item_burger"
        assert error.menu_item_name == "Cheeseburger"
        assert error.requested == 6
        assert error.available == 5
        assert error.details == {"items": "Insufficient stock for Cheeseburger"}
        assert menu_repository.items["item_burger"].quantity_available == 5
        assert drain(subscription) == []

    @pytest.mark.asyncio
    async def test_reserve_unknown_item(self, stock_ledger: StockLedger) -> None:
        """Test that reserving a missing item raises MenuItemNotFoundError."""
        with pytest.raises(MenuItemNotFoundError) as exc_info:
            await stock_ledger.reserve(menu_item_id="item_gone", quantity=1)

        assert exc_info.value.menu_item_id == "item_gone"

    @pytest.mark.asyncio
    async def test_release_increments_stock_without_upper_bound(
        self, stock_ledger: StockLedger, subscription: Subscription
    ) -> None:
        """Test that a release adds units even beyond the original level."""
        item = await stock_ledger.release(menu_item_id="item_cola", quantity=4)

        assert item.quantity_available == 5
        events = drain(subscription)
        assert [e.topic for e in events] == [EventTopic.ITEM_UPDATED]

    @pytest.mark.asyncio
    async def test_release_unknown_item(self, stock_ledger: StockLedger) -> None:
        """Test that releasing a missing item raises MenuItemNotFoundError."""
        with pytest.raises(MenuItemNotFoundError):
            await stock_ledger.release(menu_item_id="item_gone", quantity=1)

    @pytest.mark.asyncio
    async def test_reserve_then_release_restores_stock(
        self,
        stock_ledger: StockLedger,
        menu_repository: InMemoryMenuItemRepository,
    ) -> None:
        """Test that reserving then releasing the same quantity is a no-op."""
        for quantity in (1, 3, 5):
            await stock_ledger.reserve(menu_item_id="item_burger", quantity=quantity)
            await stock_ledger.release(menu_item_id="item_burger", quantity=quantity)

            assert menu_repository.items["item_burger"].quantity_available == 5

    @pytest.mark.asyncio
    async def test_stock_never_negative(
        self,
        stock_ledger: StockLedger,
        menu_repository: InMemoryMenuItemRepository,
    ) -> None:
        """Test that stock stays non-negative over a sequence of operations."""
        operations = [("reserve", 3), ("reserve", 3), ("release", 1), ("reserve", 3), ("reserve", 1)]

        for operation, quantity in operations:
            try:
                if operation == "reserve":
                    await stock_ledger.reserve(menu_item_id="item_burger", quantity=quantity)
                else:
                    await stock_ledger.release(menu_item_id="item_burger", quantity=quantity)
            except InsufficientStockError:
                pass
            assert menu_repository.items["item_burger"].quantity_available >= 0

        assert menu_repository.items["item_burger"].quantity_available == 0

    @pytest.mark.asyncio
    async def test_storage_failure_raises_storage_error(self) -> None:
        """Test that storage failures surface as StorageError."""
        repository = MagicMock(spec=MenuItemRepository)
        repository.decrement_quantity.side_effect = ClientError(
            {"Error": {"Code": "InternalServerError", "Message": "Server error"}}, "UpdateItem"
        )
        ledger = StockLedger(menu_repository=repository, notifier=ChangeNotifier())

        with pytest.raises(StorageError):
            await ledger.reserve(menu_item_id="item_1", quantity=1)

    @pytest.mark.asyncio
    async def test_failed_lookup_after_rejection_raises_storage_error(self) -> None:
        """Test that a storage failure is not reported as a missing item."""
        repository = MagicMock(spec=MenuItemRepository)
        repository.decrement_quantity.return_value = None
        repository.get_item.side_effect = ClientError(
            {"Error": {"Code": "InternalServerError", "Message": "Server error"}}, "GetItem"
        )
        ledger = StockLedger(menu_repository=repository, notifier=ChangeNotifier())

        with pytest.raises(StorageError):
            await ledger.reserve(menu_item_id="item_1", quantity=1)

        repository.get_item.assert_called_once_with("item_1", raise_on_error=True)
