"""FastAPI application for the service, kitchen and management terminals."""

import asyncio
import logging

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from restaurant_order_service.models.menu_models import MenuItem, MenuItemInput
from restaurant_order_service.models.order_models import (
    CreateOrderRequest,
    OrderPatch,
    OrderStats,
    ResolvedOrder,
    StatusUpdateRequest,
)
from restaurant_order_service.services.change_notifier import ChangeNotifier, SubscriptionClosed
from restaurant_order_service.services.errors import OrderServiceError
from restaurant_order_service.services.menu_service import MenuService
from restaurant_order_service.services.order_service import OrderService

logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    observers: int


class DeletionResponse(BaseModel):
    """Acknowledgement of a deleted menu item or order."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    message: str
    order_id: str | None = None
    item_id: str | None = None


class ResetDetails(BaseModel):
    """Counts reported by a service reset."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    orders_processed: int
    orders_deleted: int


class ResetResponse(BaseModel):
    """Response model for a service reset."""

    message: str
    details: ResetDetails


def _field_name(loc: tuple[int | str, ...]) -> str:
    """Top-level body field an error location points at."""
    if len(loc) > 1 and loc[0] == "body":
        return str(loc[1])
    return "general"


def create_app(
    menu_service: MenuService,
    order_service: OrderService,
    notifier: ChangeNotifier,
    cors_origins: list[str] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        menu_service: Service for menu management
        order_service: Service for the order lifecycle
        notifier: Broadcast channel observers subscribe to over /ws
        cors_origins: Origins allowed by CORS (defaults to all)

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="Restaurant Order Service",
        description="Order taking against shared menu stock, with live updates for every terminal",
        version="1.0.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins or ["*"],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        allow_headers=["*"],
    )

    # Store services in app state for access in route handlers
    app.state.menu_service = menu_service
    app.state.order_service = order_service
    app.state.notifier = notifier

    @app.exception_handler(OrderServiceError)
    async def handle_service_error(_request: Request, exc: OrderServiceError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": exc.message, "details": exc.details},
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(
        _request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        details: dict[str, str] = {}
        for error in exc.errors():
            details.setdefault(_field_name(tuple(error["loc"])), error["msg"])
        return JSONResponse(
            status_code=400,
            content={"message": "Invalid request", "details": details},
        )

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check() -> HealthResponse:
        """Health check endpoint.

        Returns:
            Health status and the number of connected observers
        """
        return HealthResponse(status="healthy", observers=app.state.notifier.observer_count)

    @app.get("/api/menu", response_model=list[MenuItem], tags=["Menu"])
    async def list_menu_items() -> list[MenuItem]:
        """List all menu items with their current stock."""
        items: list[MenuItem] = await app.state.menu_service.list_items()
        return items

    @app.get("/api/menu/{item_id}", response_model=MenuItem, tags=["Menu"])
    async def get_menu_item(item_id: str) -> MenuItem:
        """Get a single menu item."""
        item: MenuItem = await app.state.menu_service.get_item(item_id)
        return item

    @app.post("/api/menu", response_model=MenuItem, status_code=201, tags=["Menu"])
    async def create_menu_item(body: MenuItemInput) -> MenuItem:
        """Create a menu item."""
        item: MenuItem = await app.state.menu_service.create_item(body)
        return item

    @app.put("/api/menu/{item_id}", response_model=MenuItem, tags=["Menu"])
    async def update_menu_item(item_id: str, body: MenuItemInput) -> MenuItem:
        """Replace a menu item's fields, including its stock level."""
        item: MenuItem = await app.state.menu_service.update_item(item_id=item_id, data=body)
        return item

    @app.delete(
        "/api/menu/{item_id}",
        response_model=DeletionResponse,
        response_model_exclude_none=True,
        tags=["Menu"],
    )
    async def delete_menu_item(item_id: str) -> DeletionResponse:
        """Delete a menu item."""
        await app.state.menu_service.delete_item(item_id=item_id)
        return DeletionResponse(message="Menu item deleted", item_id=item_id)

    @app.get("/api/orders", response_model=list[ResolvedOrder], tags=["Orders"])
    async def list_orders() -> list[ResolvedOrder]:
        """List all orders, most recent first, with menu items resolved."""
        orders: list[ResolvedOrder] = await app.state.order_service.list_orders()
        return orders

    @app.get("/api/orders/stats", response_model=OrderStats, tags=["Orders"])
    async def get_stats() -> OrderStats:
        """Order count, revenue and average order value."""
        stats: OrderStats = await app.state.order_service.compute_stats()
        return stats

    @app.post("/api/orders", response_model=ResolvedOrder, status_code=201, tags=["Orders"])
    async def create_order(body: CreateOrderRequest) -> ResolvedOrder:
        """Place an order, reserving stock for every line."""
        logger.info(f"Order received for table {body.table_number} with {len(body.items)} lines")
        order: ResolvedOrder = await app.state.order_service.create_order(
            table_number=body.table_number,
            lines=body.items,
            notes=body.notes,
            total_amount=body.total_amount,
        )
        return order

    @app.put("/api/orders/{order_id}", response_model=ResolvedOrder, tags=["Orders"])
    async def update_order(order_id: str, body: OrderPatch) -> ResolvedOrder:
        """Partially update an order. Replaced items do not change stock."""
        order: ResolvedOrder = await app.state.order_service.update_order(
            order_id=order_id, patch=body
        )
        return order

    @app.patch("/api/orders/{order_id}/status", response_model=ResolvedOrder, tags=["Orders"])
    async def update_order_status(order_id: str, body: StatusUpdateRequest) -> ResolvedOrder:
        """Move an order to pending, preparing or completed."""
        order: ResolvedOrder = await app.state.order_service.update_status(
            order_id=order_id, new_status=body.status
        )
        return order

    # Declared before /api/orders/{order_id} so "reset-service" is not read as an id
    @app.delete("/api/orders/reset-service", response_model=ResetResponse, tags=["Orders"])
    async def reset_service() -> ResetResponse:
        """Return all reserved stock and delete every order."""
        logger.warning("Service reset requested")
        summary = await app.state.order_service.reset_service()
        return ResetResponse(
            message="Service reset",
            details=ResetDetails(
                orders_processed=summary.orders_processed,
                orders_deleted=summary.orders_deleted,
            ),
        )

    @app.delete(
        "/api/orders/{order_id}",
        response_model=DeletionResponse,
        response_model_exclude_none=True,
        tags=["Orders"],
    )
    async def delete_order(order_id: str) -> DeletionResponse:
        """Delete an order, returning its units to stock."""
        await app.state.order_service.delete_order(order_id=order_id)
        return DeletionResponse(message="Order deleted", order_id=order_id)

    @app.websocket("/ws")
    async def event_stream(websocket: WebSocket) -> None:
        """Stream every change event to a connected terminal.

        Nothing is replayed on connect; terminals load current state from the
        read endpoints and then apply events as they arrive. Messages sent by
        the terminal are read and ignored so a disconnect is noticed promptly.
        A terminal that falls too far behind is closed with 1013 and is
        expected to reconnect and reload.
        """
        await websocket.accept()
        notifier: ChangeNotifier = app.state.notifier
        subscription = notifier.subscribe()

        async def forward_events() -> None:
            try:
                while True:
                    event = await subscription.get()
                    await websocket.send_json(event.model_dump(mode="json", by_alias=True))
            except SubscriptionClosed:
                logger.warning("Closing event stream of a terminal that fell behind")
                await websocket.close(code=status.WS_1013_TRY_AGAIN_LATER)

        async def discard_messages() -> None:
            try:
                while True:
                    await websocket.receive_text()
            except WebSocketDisconnect:
                logger.info("Terminal disconnected from event stream")

        tasks = [asyncio.create_task(forward_events()), asyncio.create_task(discard_messages())]
        try:
            await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        finally:
            notifier.unsubscribe(subscription)
            for task in tasks:
                task.cancel()
            results = await asyncio.gather(*tasks, return_exceptions=True)
            for result in results:
                if isinstance(result, Exception):
                    logger.warning(f"Event stream ended with error: {result!r}")

    return app
