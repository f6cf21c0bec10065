"""Main application entry point for the restaurant order service.

This module provides the FastAPI application factory and configuration
for running the service locally or in production.
"""

import logging
import os
from typing import Any

import boto3
from fastapi import FastAPI

from restaurant_order_service.handlers.api_handler import create_app
from restaurant_order_service.observability import configure_logging, setup_observability
from restaurant_order_service.repositories.order_repositories import (
    MenuItemRepository,
    OrderRepository,
)
from restaurant_order_service.services.change_notifier import ChangeNotifier
from restaurant_order_service.services.menu_service import MenuService
from restaurant_order_service.services.order_service import OrderService
from restaurant_order_service.services.stock_ledger import StockLedger

logger = logging.getLogger(__name__)


def get_dynamodb_resource() -> Any:
    """Create DynamoDB resource with appropriate configuration.

    Returns:
        Boto3 DynamoDB resource configured for environment
    """
    # Check for local DynamoDB endpoint (for development)
    endpoint_url = os.getenv("DYNAMODB_ENDPOINT")
    region = os.getenv("AWS_REGION", "us-east-1")

    if endpoint_url:
        access_key = os.getenv("AWS_ACCESS_KEY_ID")
        secret_key = os.getenv("AWS_SECRET_ACCESS_KEY")
        logger.info(f"Using local DynamoDB at {endpoint_url}")
        return boto3.resource(
            "dynamodb",
            endpoint_url=endpoint_url,
            region_name=region,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
        )
    else:
        logger.info(f"Using AWS DynamoDB in region {region}")
        # Production - boto3 will use default credential chain (IAM role, env vars, etc.)
        return boto3.resource("dynamodb", region_name=region)


def get_cors_origins() -> list[str]:
    """Read allowed CORS origins, all origins when unset."""
    origins_str = os.getenv("CORS_ALLOWED_ORIGINS", "*")
    return [origin.strip() for origin in origins_str.split(",") if origin.strip()]


def create_application() -> FastAPI:
    """Create and configure the FastAPI application with all dependencies.

    This factory function:
    1. Configures logging
    2. Creates the DynamoDB resource and repositories
    3. Creates the change notifier and stock ledger
    4. Creates the menu and order services
    5. Creates the FastAPI app with REST and WebSocket endpoints
    6. Sets up observability

    Returns:
        Configured FastAPI application instance
    """
    log_level = os.getenv("LOG_LEVEL", "INFO")
    configure_logging(log_level)

    logger.info("Initializing restaurant order service...")

    dynamodb_resource = get_dynamodb_resource()

    menu_table = os.getenv("DYNAMODB_MENU_ITEMS_TABLE", "restaurant-menu-items")
    orders_table = os.getenv("DYNAMODB_ORDERS_TABLE", "restaurant-orders")

    menu_repository = MenuItemRepository(dynamodb_resource=dynamodb_resource, table_name=menu_table)
    order_repository = OrderRepository(dynamodb_resource=dynamodb_resource, table_name=orders_table)

    logger.info(f"Repositories configured - menu: {menu_table}, orders: {orders_table}")

    queue_size = int(os.getenv("EVENT_QUEUE_SIZE", "1000"))
    notifier = ChangeNotifier(max_queue_size=queue_size)
    stock_ledger = StockLedger(menu_repository=menu_repository, notifier=notifier)

    rollback = os.getenv("ROLLBACK_PARTIAL_RESERVATIONS", "false").lower() == "true"
    if rollback:
        logger.info("Partial reservations of rejected orders will be rolled back")

    menu_service = MenuService(menu_repository=menu_repository, notifier=notifier)
    order_service = OrderService(
        order_repository=order_repository,
        menu_repository=menu_repository,
        stock_ledger=stock_ledger,
        notifier=notifier,
        rollback_partial_reservations=rollback,
    )

    logger.info("Services initialized")

    app = create_app(
        menu_service=menu_service,
        order_service=order_service,
        notifier=notifier,
        cors_origins=get_cors_origins(),
    )

    setup_observability(app)

    logger.info("Restaurant order service initialized successfully")

    return app


# Create the FastAPI application instance (only when not in test mode)
# This prevents the app from being created during test collection
if os.getenv("ENVIRONMENT") != "test":  # noqa: SIM108
    app = create_application()
else:
    # Create a placeholder app for test imports
    app = FastAPI()


if __name__ == "__main__":
    """Run the application with uvicorn when executed directly."""
    import uvicorn

    port = int(os.getenv("PORT", "3001"))
    host = os.getenv("HOST", "0.0.0.0")

    logger.info(f"Starting development server on {host}:{port}")
    logger.info(f"API documentation available at http://{host}:{port}/docs")

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=True,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )
