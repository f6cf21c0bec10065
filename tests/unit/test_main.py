"""Unit tests for main application entry point."""

import os
from unittest.mock import MagicMock, Mock, patch

import pytest
from fastapi import FastAPI

from main import create_application, get_cors_origins, get_dynamodb_resource


@pytest.mark.unit
class TestGetDynamoDBResource:
    """Tests for get_dynamodb_resource function."""

    @patch.dict(os.environ, {"DYNAMODB_ENDPOINT": "", "AWS_REGION": "us-west-2"}, clear=True)
    @patch("main.boto3.resource")
    def test_creates_aws_resource_when_no_endpoint(self, mock_boto3_resource: Mock) -> None:
        """Test that AWS DynamoDB resource is created when no local endpoint configured."""
        mock_resource = MagicMock()
        mock_boto3_resource.return_value = mock_resource

        result = get_dynamodb_resource()

        mock_boto3_resource.assert_called_once_with("dynamodb", region_name="us-west-2")
        assert result == mock_resource

    @patch.dict(
        os.environ,
        {
            "DYNAMODB_ENDPOINT": "http://localhost:8000",
            "AWS_REGION": "us-east-1",
            "AWS_ACCESS_KEY_ID": "local",
            "AWS_SECRET_ACCESS_KEY": "local",
        },
        clear=True,
    )
    @patch("main.boto3.resource")
    def test_creates_local_resource_when_endpoint_provided(self, mock_boto3_resource: Mock) -> None:
        """Test that local DynamoDB resource is created when endpoint configured."""
        result = get_dynamodb_resource()

        mock_boto3_resource.assert_called_once_with(
            "dynamodb",
            endpoint_url="http://localhost:8000",
            region_name="us-east-1",
            aws_access_key_id="local",
            aws_secret_access_key="local",
        )
        assert result == mock_boto3_resource.return_value

    @patch.dict(os.environ, {"DYNAMODB_ENDPOINT": ""}, clear=True)
    @patch("main.boto3.resource")
    def test_uses_default_region_when_not_specified(self, mock_boto3_resource: Mock) -> None:
        """Test that default region us-east-1 is used when AWS_REGION not set."""
        get_dynamodb_resource()

        mock_boto3_resource.assert_called_once_with("dynamodb", region_name="us-east-1")


@pytest.mark.unit
class TestGetCorsOrigins:
    """Tests for get_cors_origins function."""

    @patch.dict(os.environ, {}, clear=True)
    def test_allows_all_origins_by_default(self) -> None:
        """Test that every origin is allowed when CORS_ALLOWED_ORIGINS is not set."""
        assert get_cors_origins() == ["*"]

    @patch.dict(
        os.environ,
        {"CORS_ALLOWED_ORIGINS": "http://localhost:5173, https://pos.example.com ,"},
        clear=True,
    )
    def test_strips_whitespace_from_origins(self) -> None:
        """Test that origins are split on commas and stripped."""
        assert get_cors_origins() == ["http://localhost:5173", "https://pos.example.com"]


@pytest.mark.unit
class TestCreateApplication:
    """Tests for create_application function."""

    @patch("main.setup_observability")
    @patch("main.configure_logging")
    @patch("main.get_dynamodb_resource")
    @patch("main.MenuItemRepository")
    @patch("main.OrderRepository")
    @patch("main.OrderService")
    @patch("main.create_app")
    @patch.dict(
        os.environ,
        {
            "LOG_LEVEL": "DEBUG",
            "DYNAMODB_MENU_ITEMS_TABLE": "test-menu-table",
            "DYNAMODB_ORDERS_TABLE": "test-orders-table",
            "CORS_ALLOWED_ORIGINS": "http://localhost:5173",
            "ROLLBACK_PARTIAL_RESERVATIONS": "true",
            "EVENT_QUEUE_SIZE": "50",
        },
        clear=True,
    )
    def test_creates_application_with_all_dependencies(
        self,
        mock_create_app: Mock,
        mock_order_service: Mock,
        mock_order_repo: Mock,
        mock_menu_repo: Mock,
        mock_get_dynamodb: Mock,
        mock_configure_logging: Mock,
        mock_setup_observability: Mock,
    ) -> None:
        """Test that application is created with all dependencies properly wired."""
        mock_dynamodb = MagicMock()
        mock_get_dynamodb.return_value = mock_dynamodb
        mock_app = MagicMock(spec=FastAPI)
        mock_create_app.return_value = mock_app

        result = create_application()

        mock_configure_logging.assert_called_once_with("DEBUG")
        mock_menu_repo.assert_called_once_with(
            dynamodb_resource=mock_dynamodb, table_name="test-menu-table"
        )
        mock_order_repo.assert_called_once_with(
            dynamodb_resource=mock_dynamodb, table_name="test-orders-table"
        )

        service_kwargs = mock_order_service.call_args.kwargs
        assert service_kwargs["order_repository"] == mock_order_repo.return_value
        assert service_kwargs["menu_repository"] == mock_menu_repo.return_value
        assert service_kwargs["rollback_partial_reservations"] is True

        app_kwargs = mock_create_app.call_args.kwargs
        assert app_kwargs["order_service"] == mock_order_service.return_value
        assert app_kwargs["cors_origins"] == ["http://localhost:5173"]
        assert app_kwargs["notifier"].max_queue_size == 50
        assert app_kwargs["menu_service"].notifier is app_kwargs["notifier"]

        mock_setup_observability.assert_called_once_with(mock_app)
        assert result == mock_app

    @patch("main.setup_observability")
    @patch("main.configure_logging")
    @patch("main.get_dynamodb_resource")
    @patch("main.OrderService")
    @patch("main.create_app")
    @patch.dict(os.environ, {}, clear=True)
    def test_uses_defaults_when_not_configured(
        self,
        mock_create_app: Mock,
        mock_order_service: Mock,
        mock_get_dynamodb: Mock,
        mock_configure_logging: Mock,
        mock_setup_observability: Mock,
    ) -> None:
        """Test default log level, table names, queue size and reservation policy."""
        mock_get_dynamodb.return_value = MagicMock()
        mock_create_app.return_value = MagicMock(spec=FastAPI)

        create_application()

        mock_configure_logging.assert_called_once_with("INFO")
        table_names = [call.args[0] for call in mock_get_dynamodb.return_value.Table.call_args_list]
        assert table_names == ["restaurant-menu-items", "restaurant-orders"]
        assert mock_order_service.call_args.kwargs["rollback_partial_reservations"] is False
        assert mock_create_app.call_args.kwargs["notifier"].max_queue_size == 1000
        assert mock_create_app.call_args.kwargs["cors_origins"] == ["*"]
