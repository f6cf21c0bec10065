"""Change event models broadcast to connected terminals."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import Field

from restaurant_order_service.models.menu_models import ApiModel


class EventTopic(str, Enum):
    """Enumeration of change event topics.

    Stock changes caused by reservations and releases are published as
    ITEM_UPDATED with the updated menu item.
    """

    ITEM_CREATED = "item-created"
    ITEM_UPDATED = "item-updated"
    ITEM_DELETED = "item-deleted"
    ORDER_CREATED = "order-created"
    ORDER_UPDATED = "order-updated"
    ORDER_DELETED = "order-deleted"
    SERVICE_RESET = "service-reset"


class ChangeEvent(ApiModel):
    """A single state change, as delivered to every observer.

    The payload is the affected menu item or order serialised for clients,
    a bare id for deletions, or None for a service reset.
    """

    topic: EventTopic = Field(..., description="Event topic used by clients to filter")
    payload: Any = Field(None, description="JSON-ready event payload")
    emitted_at: datetime = Field(..., description="Time the event was broadcast")
