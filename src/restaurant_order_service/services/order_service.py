"""Order service driving the order lifecycle and its stock reservations."""

import logging
import uuid
from datetime import UTC, datetime
from decimal import Decimal

from botocore.exceptions import ClientError

from restaurant_order_service.models.event_models import EventTopic
from restaurant_order_service.models.order_models import (
    SETTABLE_STATUSES,
    Order,
    OrderLine,
    OrderPatch,
    OrderStats,
    OrderStatus,
    ResetSummary,
    ResolvedOrder,
)
from restaurant_order_service.observability import traced
from restaurant_order_service.observability.metrics import record_order_created
from restaurant_order_service.repositories.order_repositories import (
    MenuItemRepository,
    OrderRepository,
)
from restaurant_order_service.services.change_notifier import ChangeNotifier
from restaurant_order_service.services.errors import (
    InvalidRequestError,
    InvalidStatusError,
    MenuItemNotFoundError,
    OrderNotFoundError,
    OrderServiceError,
    StorageError,
)
from restaurant_order_service.services.stock_ledger import StockLedger

logger = logging.getLogger(__name__)


class OrderService:
    """Service owning orders, their status and the stock they hold.

    Every mutation runs its stock ledger calls line by line before the order
    store is touched, then broadcasts the resulting order event. Stock events
    are broadcast by the ledger itself as each line is processed.
    """

    def __init__(
        self,
        order_repository: OrderRepository,
        menu_repository: MenuItemRepository,
        stock_ledger: StockLedger,
        notifier: ChangeNotifier,
        rollback_partial_reservations: bool = False,
    ) -> None:
        """Initialize the OrderService.

        Args:
            order_repository: Repository for storing orders
            menu_repository: Repository used to resolve order lines
            stock_ledger: Ledger applying reservations and releases
            notifier: Channel used to broadcast order events
            rollback_partial_reservations: Release the lines already reserved
                when a later line of the same order is rejected. When False,
                those reservations are kept.
        """
        self.order_repository = order_repository
        self.menu_repository = menu_repository
        self.stock_ledger = stock_ledger
        self.notifier = notifier
        self.rollback_partial_reservations = rollback_partial_reservations

    @traced("orders.create")
    async def create_order(
        self,
        table_number: str,
        lines: list[OrderLine],
        notes: str = "",
        total_amount: Decimal = Decimal("0"),
    ) -> ResolvedOrder:
        """Reserve stock for every line and record a new pending order.

        Lines are reserved in input order and the first rejected line aborts
        the order. The total amount is recorded as supplied by the caller.

        Args:
            table_number: Table the order belongs to
            lines: Ordered line items, at least one
            notes: Free-text order notes
            total_amount: Order total supplied by the service terminal

        Returns:
            The stored order with its menu items resolved

        Raises:
            InvalidRequestError: If there are no lines or a line references an
                unknown menu item
            InsufficientStockError: If a line asks for more than is available
            StorageError: If the order could not be saved
        """
        if not lines:
            raise InvalidRequestError(
                "An order must contain at least one item",
                {"items": "Items are required and must be a non-empty list"},
            )

        reserved: list[OrderLine] = []
        for line in lines:
            try:
                await self.stock_ledger.reserve(
                    menu_item_id=line.menu_item_id, quantity=line.quantity
                )
            except MenuItemNotFoundError as e:
                await self._abandon_reservations(reserved)
                raise InvalidRequestError(
                    "Menu item not found",
                    {"items": f"Menu item {line.menu_item_id} does not exist"},
                ) from e
            except OrderServiceError:
                await self._abandon_reservations(reserved)
                raise
            reserved.append(line)

        order = Order(
            id=f"order_{uuid.uuid4().hex[:12]}",
            items=lines,
            table_number=table_number,
            notes=notes,
            status=OrderStatus.PENDING,
            total_amount=total_amount,
            created_at=datetime.now(UTC),
        )
        try:
            self._save(order)
        except StorageError:
            await self._abandon_reservations(lines)
            raise

        record_order_created(len(lines))
        logger.info(f"Order {order.id} created for table {table_number} with {len(lines)} lines")

        resolved = self._resolve(order)
        await self.notifier.broadcast(EventTopic.ORDER_CREATED, resolved)
        return resolved

    @traced("orders.update_status")
    async def update_status(self, order_id: str, new_status: str) -> ResolvedOrder:
        """Move an order to a new status.

        Any settable status may follow any other, including going back to an
        earlier one. completed_at is stamped the first time the order completes.

        Args:
            order_id: The order to update
            new_status: One of pending, preparing, completed

        Returns:
            The updated order with its menu items resolved

        Raises:
            OrderNotFoundError: If the order does not exist
            InvalidStatusError: If new_status cannot be set
        """
        order = self._get(order_id)
        self._apply_status(order, new_status)
        self._save(order)

        logger.info(f"Order {order_id} moved to {order.status.value}")
        resolved = self._resolve(order)
        await self.notifier.broadcast(EventTopic.ORDER_UPDATED, resolved)
        return resolved

    @traced("orders.update")
    async def update_order(self, order_id: str, patch: OrderPatch) -> ResolvedOrder:
        """Apply a partial update to an order.

        Replacing the item list does not touch the stock ledger: units reserved
        for the previous lines stay reserved and the new lines reserve nothing.

        Args:
            order_id: The order to update
            patch: Fields to change, None fields are left as they are

        Returns:
            The updated order with its menu items resolved

        Raises:
            OrderNotFoundError: If the order does not exist
            InvalidStatusError: If patch.status cannot be set
        """
        order = self._get(order_id)

        if patch.status is not None:
            self._apply_status(order, patch.status)
        if patch.notes is not None:
            order.notes = patch.notes
        if patch.table_number:
            order.table_number = patch.table_number
        if patch.total_amount is not None:
            order.total_amount = patch.total_amount
        if patch.items is not None:
            order.items = patch.items

        self._save(order)

        logger.info(f"Order {order_id} updated")
        resolved = self._resolve(order)
        await self.notifier.broadcast(EventTopic.ORDER_UPDATED, resolved)
        return resolved

    @traced("orders.delete")
    async def delete_order(self, order_id: str) -> str:
        """Release an order's stock and delete it.

        Args:
            order_id: The order to delete

        Returns:
            The deleted order's ID

        Raises:
            OrderNotFoundError: If the order does not exist
            StorageError: If the order could not be deleted
        """
        order = self._get(order_id)
        await self._release_lines(order.items, f"order {order_id}")

        if not self.order_repository.delete_order(order_id):
            raise StorageError(f"Failed to delete order {order_id}")

        logger.info(f"Order {order_id} deleted")
        await self.notifier.broadcast(EventTopic.ORDER_DELETED, order_id)
        return order_id

    @traced("orders.reset_service")
    async def reset_service(self) -> ResetSummary:
        """Release the stock of every order, then delete all orders.

        Returns:
            Counts of orders processed and deleted

        Raises:
            StorageError: If the orders could not be listed or the bulk delete failed
        """
        try:
            orders = self.order_repository.list_orders(raise_on_error=True)
        except ClientError as e:
            raise StorageError("Failed to list orders during service reset") from e

        logger.info(f"Resetting service, {len(orders)} orders to process")

        for order in orders:
            await self._release_lines(order.items, f"order {order.id}")

        deleted = self.order_repository.delete_all_orders()
        if deleted is None:
            raise StorageError("Failed to delete orders during service reset")

        logger.info(f"Service reset: {len(orders)} orders processed, {deleted} deleted")
        await self.notifier.broadcast(EventTopic.SERVICE_RESET)
        return ResetSummary(orders_processed=len(orders), orders_deleted=deleted)

    async def list_orders(self) -> list[ResolvedOrder]:
        """List all orders, most recent first, resolved against the current menu.

        Returns:
            List of resolved orders, empty list if none exist
        """
        orders = self.order_repository.list_orders()
        menu = {item.id: item for item in self.menu_repository.list_items()}
        return [ResolvedOrder.from_order(order, menu) for order in orders]

    async def compute_stats(self) -> OrderStats:
        """Count orders and compute revenue figures.

        Returns:
            OrderStats, all zeros when there are no orders

        Raises:
            StorageError: If the orders could not be read
        """
        try:
            count, revenue = self.order_repository.aggregate_totals()
        except ClientError as e:
            raise StorageError("Failed to compute order statistics") from e

        if count == 0:
            return OrderStats()

        return OrderStats(
            total_orders=count,
            total_revenue=revenue,
            average_order_value=(revenue / count).quantize(Decimal("0.01")),
        )

    def _get(self, order_id: str) -> Order:
        order = self.order_repository.get_order(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    def _save(self, order: Order) -> None:
        if not self.order_repository.save_order(order):
            raise StorageError(f"Failed to save order {order.id}")

    def _resolve(self, order: Order) -> ResolvedOrder:
        menu = {}
        for line in order.items:
            item = self.menu_repository.get_item(line.menu_item_id)
            if item is not None:
                menu[item.id] = item
        return ResolvedOrder.from_order(order, menu)

    def _apply_status(self, order: Order, new_status: str) -> None:
        try:
            status = OrderStatus(new_status)
        except ValueError:
            status = None

        if status not in SETTABLE_STATUSES:
            allowed = ", ".join(s.value for s in SETTABLE_STATUSES)
            raise InvalidStatusError(
                "Invalid status",
                {"status": f"Status must be one of: {allowed}"},
            )

        order.status = status
        if status == OrderStatus.COMPLETED and order.completed_at is None:
            order.completed_at = datetime.now(UTC)

    async def _release_lines(self, lines: list[OrderLine], owner: str) -> None:
        """Return every line's units to stock, skipping deleted menu items."""
        for line in lines:
            try:
                await self.stock_ledger.release(
                    menu_item_id=line.menu_item_id, quantity=line.quantity
                )
            except MenuItemNotFoundError:
                logger.warning(
                    f"Menu item {line.menu_item_id} of {owner} no longer exists, skipping release"
                )

    async def _abandon_reservations(self, reserved: list[OrderLine]) -> None:
        """Handle the lines already reserved by a rejected order."""
        if not reserved:
            return

        if not self.rollback_partial_reservations:
            logger.warning(
                f"Order rejected after reserving {len(reserved)} lines, reservations are kept"
            )
            return

        logger.info(f"Order rejected, releasing {len(reserved)} reserved lines")
        await self._release_lines(reserved, "rejected order")
