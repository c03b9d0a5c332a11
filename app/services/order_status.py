"""Order lifecycle: pending → {processing | paid} → shipped → delivered, cancelled before delivery."""
from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    PAID = "paid"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    DEBIT_CARD = "debit_card"
    BANK_TRANSFER = "bank_transfer"
    CALL_REP = "call_rep"  # manual: a sales rep confirms payment out-of-band

    @property
    def uses_gateway(self) -> bool:
        return self is not PaymentMethod.CALL_REP


# Paystack checkout channels offered for each gateway method
GATEWAY_CHANNELS: dict[PaymentMethod, list[str]] = {
    PaymentMethod.DEBIT_CARD: ["card"],
    PaymentMethod.BANK_TRANSFER: ["bank_transfer"],
}

TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

# Statuses a payment confirmation may write
CONFIRMED_STATUSES = frozenset({OrderStatus.PROCESSING, OrderStatus.PAID})

_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset(
        {OrderStatus.PROCESSING, OrderStatus.PAID, OrderStatus.CANCELLED}
    ),
    OrderStatus.PROCESSING: frozenset(
        {OrderStatus.PAID, OrderStatus.SHIPPED, OrderStatus.CANCELLED}
    ),
    OrderStatus.PAID: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


def can_transition(current: OrderStatus | str, new: OrderStatus | str) -> bool:
    """True if `new` is reachable from `current` in one step. Same-state writes are allowed."""
    current, new = OrderStatus(current), OrderStatus(new)
    if current == new:
        return True
    return new in _TRANSITIONS[current]


def is_terminal(status: OrderStatus | str) -> bool:
    return OrderStatus(status) in TERMINAL_STATUSES
