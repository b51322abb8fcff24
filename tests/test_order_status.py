import pytest

from menumagi.services.i18n import status_label, translate
from menumagi.services.order_status import (
    ACTIVE_STATUSES,
    InvalidStatusTransition,
    OrderStatus,
    ensure_transition,
    is_terminal,
    next_status,
    owner_action,
    progress,
    status_display,
    tracking_steps,
)


def test_forward_flow():
    status = OrderStatus.WAITING
    seen = [status]
    while next_status(status) is not None:
        status = ensure_transition(status, next_status(status))
        seen.append(status)
    assert seen == [
        OrderStatus.WAITING,
        OrderStatus.ACCEPTED,
        OrderStatus.PREPARING,
        OrderStatus.ON_THE_WAY,
        OrderStatus.COMPLETED,
    ]


def test_only_waiting_orders_can_be_cancelled():
    assert ensure_transition("waiting", "cancelled") == OrderStatus.CANCELLED
    with pytest.raises(InvalidStatusTransition):
        ensure_transition(OrderStatus.PREPARING, OrderStatus.CANCELLED)


@pytest.mark.parametrize("current,requested", [
    (OrderStatus.WAITING, OrderStatus.PREPARING),
    (OrderStatus.ACCEPTED, OrderStatus.WAITING),
    (OrderStatus.COMPLETED, OrderStatus.WAITING),
    (OrderStatus.CANCELLED, OrderStatus.ACCEPTED),
])
def test_invalid_moves(current, requested):
    with pytest.raises(InvalidStatusTransition) as excinfo:
        ensure_transition(current, requested)
    assert excinfo.value.current == current
    assert current.value in str(excinfo.value)


def test_terminal_states():
    assert is_terminal(OrderStatus.COMPLETED)
    assert is_terminal(OrderStatus.CANCELLED)
    assert not is_terminal(OrderStatus.ON_THE_WAY)
    assert OrderStatus.COMPLETED not in ACTIVE_STATUSES


def test_progress():
    assert progress(OrderStatus.WAITING) == 0
    assert progress(OrderStatus.PREPARING) == 0.5
    assert progress(OrderStatus.COMPLETED) == 1
    assert progress(OrderStatus.CANCELLED) is None


def test_owner_action():
    action = owner_action(OrderStatus.WAITING)
    assert action == {"label": "Accept Order", "next_status": "accepted", "toast": "Order accepted!"}
    assert owner_action(OrderStatus.ON_THE_WAY)["next_status"] == "completed"
    assert owner_action(OrderStatus.COMPLETED) is None
    assert owner_action(OrderStatus.CANCELLED) is None


def test_tracking_steps():
    steps = tracking_steps(OrderStatus.PREPARING)
    assert len(steps) == 5
    assert [s["reached"] for s in steps] == [True, True, True, False, False]
    assert [s["current"] for s in steps] == [False, False, True, False, False]
    assert steps[-1]["label"] == "Delivered"

    cancelled = tracking_steps(OrderStatus.CANCELLED)
    assert not any(s["reached"] for s in cancelled)


def test_display_and_labels():
    assert status_display("on-the-way").title == "On the Way!"
    assert status_label(OrderStatus.ON_THE_WAY) == "On the Way"
    assert status_label(OrderStatus.CANCELLED, "hi") == "रद्द"


def test_translate_fallbacks():
    assert translate("checkout") == "Checkout"
    assert translate("checkout", "hi") == "चेकआउट"
    assert translate("checkout", "fr") == "Checkout"
    assert translate("no-such-key", "hi") == "no-such-key"
