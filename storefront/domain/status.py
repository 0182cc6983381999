# storefront/domain/status.py
from enum import Enum

from storefront.domain.errors import InvalidStatusError


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

    @classmethod
    def parse(cls, value: str) -> "OrderStatus":
        try:
            return cls(value)
        except ValueError:
            raise InvalidStatusError("Invalid status") from None


# confirmed -> pending to cofniecie potwierdzenia przez admina
ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.SHIPPED, OrderStatus.PENDING, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}

# wejscie w te statusy oddaje towar na stan, jesli byl zdjety
RESTOCK_STATUSES = frozenset({OrderStatus.PENDING, OrderStatus.CANCELLED})


def check_transition(current: OrderStatus, new: OrderStatus) -> None:
    if new not in ALLOWED_TRANSITIONS[current]:
        raise InvalidStatusError(f"Cannot change order status from {current.value} to {new.value}")
