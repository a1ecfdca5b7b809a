import pytest

from app.constants.order_status import ORDER_STATUSES, can_transition


@pytest.mark.parametrize("current", ["pending", "processing", "shipped"])
@pytest.mark.parametrize("target", ORDER_STATUSES)
def test_open_orders_can_move_anywhere(current, target):
    assert can_transition(current, target)


@pytest.mark.parametrize("current", ["delivered", "cancelled"])
@pytest.mark.parametrize("target", ORDER_STATUSES)
def test_closed_orders_cannot_move(current, target):
    assert not can_transition(current, target)


def test_unknown_status():
    assert not can_transition("lost", "pending")
