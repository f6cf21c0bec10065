"""Shared pytest fixtures and configuration for all tests."""

import os
from datetime import UTC, datetime, timedelta
from decimal import Decimal

# main.py only builds the real application outside of tests
os.environ.setdefault("ENVIRONMENT", "test")

import pytest  # noqa: E402

from restaurant_order_service.models.menu_models import MenuCategory, MenuItem  # noqa: E402
from restaurant_order_service.models.order_models import Order  # noqa: E402
from restaurant_order_service.services.change_notifier import (  # noqa: E402
    ChangeNotifier,
    Subscription,
)
from restaurant_order_service.services.menu_service import MenuService  # noqa: E402
from restaurant_order_service.services.order_service import OrderService  # noqa: E402
from restaurant_order_service.services.stock_ledger import StockLedger  # noqa: E402
from tests.doubles import InMemoryMenuItemRepository, InMemoryOrderRepository  # noqa: E402


@pytest.fixture
def burger() -> MenuItem:
    """Fixture providing a burger with 5 units in stock."""
    return MenuItem(
        id="item_burger",
        name="Cheeseburger",
        description="Classic beef cheeseburger",
        price=Decimal("8.50"),
        category=MenuCategory.BURGERS,
        quantity_available=5,
    )


@pytest.fixture
def fries() -> MenuItem:
    """Fixture providing fries with 10 units in stock."""
    return MenuItem(
        id="item_fries",
        name="Fries",
        description="",
        price=Decimal("3.00"),
        category=MenuCategory.SIDES,
        quantity_available=10,
    )


@pytest.fixture
def cola() -> MenuItem:
    """Fixture providing a beverage with a single unit left."""
    return MenuItem(
        id="item_cola",
        name="Cola",
        price=Decimal("2.50"),
        category=MenuCategory.BEVERAGES,
        quantity_available=1,
    )


@pytest.fixture
def menu_repository(burger: MenuItem, fries: MenuItem, cola: MenuItem) -> InMemoryMenuItemRepository:
    """Fixture providing a menu repository stocked with the sample items."""
    repository = InMemoryMenuItemRepository()
    for item in (burger, fries, cola):
        repository.save_item(item)
    return repository


@pytest.fixture
def order_repository() -> InMemoryOrderRepository:
    """Fixture providing an empty order repository."""
    return InMemoryOrderRepository()


@pytest.fixture
def notifier() -> ChangeNotifier:
    """Fixture providing a change notifier with no observers."""
    return ChangeNotifier(max_queue_size=100)


@pytest.fixture
def subscription(notifier: ChangeNotifier) -> Subscription:
    """Fixture providing an observer subscribed to the notifier."""
    return notifier.subscribe()


@pytest.fixture
def stock_ledger(
    menu_repository: InMemoryMenuItemRepository, notifier: ChangeNotifier
) -> StockLedger:
    """Fixture providing a stock ledger over the in-memory menu."""
    return StockLedger(menu_repository=menu_repository, notifier=notifier)  # type: ignore[arg-type]


@pytest.fixture
def order_service(
    order_repository: InMemoryOrderRepository,
    menu_repository: InMemoryMenuItemRepository,
    stock_ledger: StockLedger,
    notifier: ChangeNotifier,
) -> OrderService:
    """Fixture providing an order service keeping partial reservations."""
    return OrderService(
        order_repository=order_repository,  # type: ignore[arg-type]
        menu_repository=menu_repository,  # type: ignore[arg-type]
        stock_ledger=stock_ledger,
        notifier=notifier,
    )


@pytest.fixture
def menu_service(menu_repository: InMemoryMenuItemRepository, notifier: ChangeNotifier) -> MenuService:
    """Fixture providing a menu service over the in-memory menu."""
    return MenuService(menu_repository=menu_repository, notifier=notifier)  # type: ignore[arg-type]


@pytest.fixture
def make_order():
    """Fixture providing a factory for stored orders with given totals."""

    def _make(order_id: str, total: str, minutes_ago: int = 0, lines: list | None = None) -> Order:
        return Order(
            id=order_id,
            items=lines or [],
            table_number="T1",
            total_amount=Decimal(total),
            created_at=datetime.now(UTC) - timedelta(minutes=minutes_ago),
        )

    return _make
