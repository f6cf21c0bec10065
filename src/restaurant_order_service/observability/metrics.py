"""Custom metrics for the restaurant order service."""

from opentelemetry import metrics

# Get meter for order service
meter = metrics.get_meter("order-svc")

orders_created_counter = meter.create_counter(
    name="orders_created_total",
    description="Total number of orders accepted",
    unit="1",
)

# Reservation failures by reason (insufficient_stock, not_found)
reservation_failure_counter = meter.create_counter(
    name="stock_reservation_failure_total",
    description="Total number of rejected stock reservations by reason",
    unit="1",
)

units_released_counter = meter.create_counter(
    name="stock_units_released_total",
    description="Total number of stock units returned by deleted or reset orders",
    unit="1",
)

events_broadcast_counter = meter.create_counter(
    name="change_events_broadcast_total",
    description="Total number of change events broadcast by topic",
    unit="1",
)

# Connected observers gauge
connected_observers = meter.create_up_down_counter(
    name="connected_observers",
    description="Current number of terminals subscribed to change events",
    unit="1",
)


def record_order_created(line_count: int) -> None:
    """Record an accepted order.

    Args:
        line_count: Number of lines in the order
    """
    orders_created_counter.add(1, {"line_count": line_count})


def record_reservation_failure(reason: str) -> None:
    """Record a rejected stock reservation.

    Args:
        reason: Why the reservation failed (e.g., "insufficient_stock", "not_found")
    """
    reservation_failure_counter.add(1, {"reason": reason})


def record_units_released(quantity: int) -> None:
    """Record units returned to stock.

    Args:
        quantity: Number of units released
    """
    units_released_counter.add(quantity)


def record_event_broadcast(topic: str) -> None:
    """Record a broadcast change event.

    Args:
        topic: Event topic (e.g., "order-created")
    """
    events_broadcast_counter.add(1, {"topic": topic})


def record_observer_change(change: int) -> None:
    """Record a change in the number of connected observers.

    Args:
        change: +1 when an observer connects, -1 when it disconnects
    """
    connected_observers.add(change)
