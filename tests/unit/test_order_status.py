from __future__ import annotations

import pytest

from app.core.exceptions import InvalidStateError
from app.modules.orders.status import (
    STATUS_CAPABILITIES,
    OrderStatus,
    can_transition,
    capabilities,
    ensure_transition,
)

pytestmark = pytest.mark.unit


def test_every_status_has_capabilities() -> None:
    assert set(STATUS_CAPABILITIES) == set(OrderStatus)


def test_only_pending_orders_can_be_modified() -> None:
    modifiable = {status for status in OrderStatus if capabilities(status).can_be_modified}
    assert modifiable == {OrderStatus.PENDING}


def test_terminal_statuses_have_no_successors() -> None:
    for status in (OrderStatus.DELIVERED, OrderStatus.CANCELLED):
        caps = capabilities(status)
        assert caps.is_terminal is True
        assert caps.can_be_cancelled is False
        assert caps.next_statuses == frozenset()


def test_happy_path_transitions() -> None:
    assert can_transition(OrderStatus.PENDING, OrderStatus.CONFIRMED)
    assert can_transition(OrderStatus.CONFIRMED, OrderStatus.DISPATCHED)
    assert can_transition(OrderStatus.DISPATCHED, OrderStatus.DELIVERED)
    assert ensure_transition(OrderStatus.PENDING, OrderStatus.CANCELLED) is OrderStatus.CANCELLED


def test_illegal_transitions_raise_invalid_state() -> None:
    assert not can_transition(OrderStatus.PENDING, OrderStatus.DELIVERED)
    assert not can_transition(OrderStatus.DELIVERED, OrderStatus.CANCELLED)
    with pytest.raises(InvalidStateError):
        ensure_transition(OrderStatus.CANCELLED, OrderStatus.PENDING)
