"""Unit tests for the tracing decorator."""

from unittest.mock import MagicMock, patch

import pytest

from restaurant_order_service.observability.decorators import traced


@pytest.fixture
def mock_span() -> MagicMock:
    """Span returned by a patched tracer."""
    return MagicMock()


@pytest.fixture
def mock_tracer(mock_span: MagicMock):
    """Patch the tracer used by functions decorated inside the test."""
    tracer = MagicMock()
    tracer.start_as_current_span.return_value.__enter__.return_value = mock_span
    with patch(
        "restaurant_order_service.observability.decorators.trace.get_tracer", return_value=tracer
    ):
        yield tracer


def _attributes(span: MagicMock) -> dict:
    return {call.args[0]: call.args[1] for call in span.set_attribute.call_args_list}


@pytest.mark.unit
class TestTraced:
    """Test suite for the traced decorator."""

    @pytest.mark.asyncio
    async def test_records_identifiers_passed_by_keyword(
        self, mock_tracer: MagicMock, mock_span: MagicMock
    ) -> None:
        """Test that identifiers become span attributes."""

        @traced("stock.reserve")
        async def reserve(menu_item_id: str, quantity: int) -> str:
            return menu_item_id

        assert await reserve(menu_item_id="item_1", quantity=3) == "item_1"

        mock_tracer.start_as_current_span.assert_called_once_with("stock.reserve")
        attributes = _attributes(mock_span)
        assert attributes["order_service.menu_item_id"] == "item_1"
        assert attributes["order_service.quantity"] == 3
        assert attributes["success"] is True

    @pytest.mark.asyncio
    async def test_records_failure_and_reraises(
        self, mock_tracer: MagicMock, mock_span: MagicMock
    ) -> None:
        """Test that exceptions are recorded on the span and propagated."""

        @traced()
        async def delete_order(order_id: str) -> None:
            raise KeyError(order_id)

        with pytest.raises(KeyError):
            await delete_order(order_id="order_1")

        mock_tracer.start_as_current_span.assert_called_once_with("delete_order")
        attributes = _attributes(mock_span)
        assert attributes["success"] is False
        assert attributes["error.type"] == "KeyError"
        mock_span.record_exception.assert_called_once()

    def test_wraps_sync_functions(self, mock_tracer: MagicMock, mock_span: MagicMock) -> None:
        """Test that plain functions are traced too."""

        @traced("menu.lookup")
        def lookup(item_id: str) -> str:
            return item_id.upper()

        assert lookup(item_id="item_1") == "ITEM_1"
        assert _attributes(mock_span)["order_service.item_id"] == "item_1"
