"""
Order Status Workflow

Orders move forward one step at a time through
waiting → accepted → preparing → on-the-way → completed.
A waiting order may instead be cancelled. Completed and cancelled
orders are terminal. Only the owner drives transitions.

Each status carries fixed presentation data (badge label, icon,
color, customer-facing title/message) used by both the owner board
and the customer tracking page.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class OrderStatus(str, Enum):
    """Kitchen workflow states."""
    WAITING = "waiting"
    ACCEPTED = "accepted"
    PREPARING = "preparing"
    ON_THE_WAY = "on-the-way"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    """Payment settlement states."""
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class InvalidStatusTransition(Exception):
    """Raised when an order is moved to a status it cannot reach."""

    def __init__(self, current: OrderStatus, requested: OrderStatus):
        self.current = current
        self.requested = requested
        allowed = ", ".join(s.value for s in allowed_transitions(current)) or "none"
        super().__init__(
            f"Cannot move order from '{current.value}' to '{requested.value}' "
            f"(allowed: {allowed})"
        )


# Linear track shown on the progress bar; cancelled is off-track
STATUS_FLOW: tuple[OrderStatus, ...] = (
    OrderStatus.WAITING,
    OrderStatus.ACCEPTED,
    OrderStatus.PREPARING,
    OrderStatus.ON_THE_WAY,
    OrderStatus.COMPLETED,
)

TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.WAITING: frozenset({OrderStatus.ACCEPTED, OrderStatus.CANCELLED}),
    OrderStatus.ACCEPTED: frozenset({OrderStatus.PREPARING}),
    OrderStatus.PREPARING: frozenset({OrderStatus.ON_THE_WAY}),
    OrderStatus.ON_THE_WAY: frozenset({OrderStatus.COMPLETED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

ACTIVE_STATUSES = frozenset({
    OrderStatus.WAITING,
    OrderStatus.ACCEPTED,
    OrderStatus.PREPARING,
    OrderStatus.ON_THE_WAY,
})


@dataclass(frozen=True)
class StatusDisplay:
    label: str
    icon: str
    color: str
    title: str
    message: str


STATUS_DISPLAY: dict[OrderStatus, StatusDisplay] = {
    OrderStatus.WAITING: StatusDisplay(
        label="⏳ Waiting",
        icon="clock",
        color="amber",
        title="Waiting for Confirmation",
        message="Your order has been placed. Waiting for the kitchen to accept it...",
    ),
    OrderStatus.ACCEPTED: StatusDisplay(
        label="✅ Accepted",
        icon="thumbs-up",
        color="blue",
        title="Order Accepted!",
        message="The kitchen has accepted your order and will start preparing it soon.",
    ),
    OrderStatus.PREPARING: StatusDisplay(
        label="🍳 Preparing",
        icon="utensils",
        color="purple",
        title="Preparing Your Meal",
        message="Your meal is being prepared by our chef!",
    ),
    OrderStatus.ON_THE_WAY: StatusDisplay(
        label="🏃 On the Way",
        icon="truck",
        color="orange",
        title="On the Way!",
        message="Your order is ready and on its way to your table!",
    ),
    OrderStatus.COMPLETED: StatusDisplay(
        label="✓ Completed",
        icon="check-circle",
        color="green",
        title="Order Delivered!",
        message="Enjoy your meal! Thank you for your order.",
    ),
    OrderStatus.CANCELLED: StatusDisplay(
        label="✗ Cancelled",
        icon="x-circle",
        color="red",
        title="Order Cancelled",
        message="This order has been cancelled.",
    ),
}

PAYMENT_DISPLAY: dict[PaymentStatus, StatusDisplay] = {
    PaymentStatus.PENDING: StatusDisplay(
        label="💳 Pending Payment",
        icon="credit-card",
        color="orange",
        title="Payment Pending",
        message="Pay at the counter or online.",
    ),
    PaymentStatus.PAID: StatusDisplay(
        label="✅ Paid",
        icon="check-circle",
        color="green",
        title="Paid",
        message="Payment received.",
    ),
    PaymentStatus.FAILED: StatusDisplay(
        label="❌ Failed",
        icon="x-circle",
        color="red",
        title="Payment Failed",
        message="Payment could not be confirmed. Please try again.",
    ),
}

# Step labels on the customer tracking bar
STEP_LABELS: dict[OrderStatus, str] = {
    OrderStatus.WAITING: "Placed",
    OrderStatus.ACCEPTED: "Accepted",
    OrderStatus.PREPARING: "Preparing",
    OrderStatus.ON_THE_WAY: "On the Way",
    OrderStatus.COMPLETED: "Delivered",
}

# Button the owner presses to advance from each status
OWNER_ACTIONS: dict[OrderStatus, tuple[str, str]] = {
    OrderStatus.WAITING: ("Accept Order", "Order accepted!"),
    OrderStatus.ACCEPTED: ("Start Preparing", "Now preparing..."),
    OrderStatus.PREPARING: ("Mark On the Way", "Order on the way!"),
    OrderStatus.ON_THE_WAY: ("Mark Completed", "Order completed!"),
}


def allowed_transitions(status: OrderStatus) -> frozenset[OrderStatus]:
    return TRANSITIONS[OrderStatus(status)]


def can_transition(current: OrderStatus, requested: OrderStatus) -> bool:
    return OrderStatus(requested) in allowed_transitions(current)


def ensure_transition(current: OrderStatus, requested: OrderStatus) -> OrderStatus:
    """Return the requested status, or raise InvalidStatusTransition."""
    current, requested = OrderStatus(current), OrderStatus(requested)
    if not can_transition(current, requested):
        raise InvalidStatusTransition(current, requested)
    return requested


def is_terminal(status: OrderStatus) -> bool:
    return not allowed_transitions(status)


def next_status(status: OrderStatus) -> Optional[OrderStatus]:
    """The forward step along the flow, or None for terminal states."""
    status = OrderStatus(status)
    if status not in STATUS_FLOW or status == OrderStatus.COMPLETED:
        return None
    return STATUS_FLOW[STATUS_FLOW.index(status) + 1]


def progress(status: OrderStatus) -> Optional[float]:
    """Progress bar position in [0, 1]; None for cancelled orders."""
    status = OrderStatus(status)
    if status not in STATUS_FLOW:
        return None
    return STATUS_FLOW.index(status) / (len(STATUS_FLOW) - 1)


def status_display(status: OrderStatus) -> StatusDisplay:
    return STATUS_DISPLAY[OrderStatus(status)]


def owner_action(status: OrderStatus) -> Optional[dict[str, str]]:
    """The advance button for the owner board, if any."""
    status = OrderStatus(status)
    action = OWNER_ACTIONS.get(status)
    if action is None:
        return None
    label, toast = action
    return {"label": label, "next_status": next_status(status).value, "toast": toast}


def tracking_steps(status: OrderStatus) -> list[dict]:
    """Five tracking steps with reached/current flags for the customer page."""
    status = OrderStatus(status)
    current_index = STATUS_FLOW.index(status) if status in STATUS_FLOW else -1
    return [
        {
            "status": step.value,
            "label": STEP_LABELS[step],
            "icon": STATUS_DISPLAY[step].icon,
            "reached": index <= current_index,
            "current": index == current_index,
        }
        for index, step in enumerate(STATUS_FLOW)
    ]
