from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from app.core.exceptions import InvalidStateError


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    DISPATCHED = "DISPATCHED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


@dataclass(frozen=True, slots=True)
class StatusCapabilities:
    display_name: str
    description: str
    can_be_modified: bool
    can_be_cancelled: bool
    is_terminal: bool
    next_statuses: frozenset[OrderStatus]


# PENDING -> CONFIRMED -> DISPATCHED -> DELIVERED, CANCELLED from any non-terminal status.
STATUS_CAPABILITIES: dict[OrderStatus, StatusCapabilities] = {
    OrderStatus.PENDING: StatusCapabilities(
        display_name="Pending",
        description="Order is being prepared",
        can_be_modified=True,
        can_be_cancelled=True,
        is_terminal=False,
        next_statuses=frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    ),
    OrderStatus.CONFIRMED: StatusCapabilities(
        display_name="Confirmed",
        description="Order confirmed and being prepared",
        can_be_modified=False,
        can_be_cancelled=True,
        is_terminal=False,
        next_statuses=frozenset({OrderStatus.DISPATCHED, OrderStatus.CANCELLED}),
    ),
    OrderStatus.DISPATCHED: StatusCapabilities(
        display_name="Dispatched",
        description="Order is out for delivery",
        can_be_modified=False,
        can_be_cancelled=True,
        is_terminal=False,
        next_statuses=frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    ),
    OrderStatus.DELIVERED: StatusCapabilities(
        display_name="Delivered",
        description="Order has been delivered",
        can_be_modified=False,
        can_be_cancelled=False,
        is_terminal=True,
        next_statuses=frozenset(),
    ),
    OrderStatus.CANCELLED: StatusCapabilities(
        display_name="Cancelled",
        description="Order has been cancelled",
        can_be_modified=False,
        can_be_cancelled=False,
        is_terminal=True,
        next_statuses=frozenset(),
    ),
}


def capabilities(status: OrderStatus) -> StatusCapabilities:
    return STATUS_CAPABILITIES[status]


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in STATUS_CAPABILITIES[current].next_statuses


def ensure_transition(current: OrderStatus, target: OrderStatus) -> OrderStatus:
    if not can_transition(current, target):
        raise InvalidStateError(
            f"Cannot move order from {capabilities(current).display_name} to {capabilities(target).display_name}"
        )
    return target
