"""Checkout: persist the order, then open a Paystack transaction for gateway payment methods."""
import logging
import secrets
from dataclasses import dataclass

from app.core.config import settings
from app.models import Order, User
from app.schemas.checkout import CheckoutItem, CheckoutRequest
from app.services.order_status import GATEWAY_CHANNELS
from app.services.order_store import OrderStore
from app.services.paystack import (
    InitializedTransaction,
    PaymentConfigError,
    PaymentProviderError,
    PaystackClient,
    from_minor_units,
    to_minor_units,
)

logger = logging.getLogger(__name__)


class TotalMismatchError(ValueError):
    def __init__(self, expected_kobo: int, given_kobo: int):
        super().__init__(
            f"Order total {from_minor_units(given_kobo)} does not match line items ({from_minor_units(expected_kobo)})."
        )
        self.expected_kobo = expected_kobo
        self.given_kobo = given_kobo


@dataclass
class CheckoutResult:
    order: Order
    transaction: InitializedTransaction | None = None


def line_items_total_kobo(items: list[CheckoutItem]) -> int:
    return sum(to_minor_units(item.price) * item.quantity for item in items)


def new_payment_reference(order_id: str) -> str:
    return f"order_{order_id}_{secrets.token_hex(6)}"


def confirmation_url(order_id: str) -> str:
    return f"{settings.public_url}/orders/confirmation/{order_id}"


def place_order(
    store: OrderStore,
    paystack: PaystackClient,
    user: User,
    body: CheckoutRequest,
) -> CheckoutResult:
    """
    Creates the order in `pending` and, for card/transfer payments, initializes
    the provider transaction with the order id in its metadata.

    The provider call is not retried. If it fails the order stays `pending`
    with `payment_error` set and the error propagates to the caller.
    """
    expected = line_items_total_kobo(body.items)
    given = to_minor_units(body.total)
    if expected != given:
        raise TotalMismatchError(expected, given)
    method = body.payment_method
    if method.uses_gateway and not paystack.configured:
        raise PaymentConfigError("Payment gateway is not configured.")

    order = store.create(
        Order(
            user_id=user.id or 0,
            user_email=str(body.user_email).lower(),
            user_name=body.user_name or user.full_name,
            items=[
                {
                    "productId": item.product_id,
                    "name": item.name,
                    "price": str(from_minor_units(to_minor_units(item.price))),
                    "quantity": item.quantity,
                    "image": item.image,
                }
                for item in body.items
            ],
            total_kobo=expected,
            address=body.address.model_dump(by_alias=True, mode="json"),
            payment_method=method.value,
        )
    )
    if not method.uses_gateway:
        logger.info("Manual payment order awaiting rep confirmation: id=%s", order.id)
        return CheckoutResult(order=order)

    reference = new_payment_reference(order.id)
    try:
        transaction = paystack.initialize_transaction(
            email=str(body.user_email),
            amount=from_minor_units(order.total_kobo),
            reference=reference,
            callback_url=confirmation_url(order.id),
            metadata={
                "orderId": order.id,
                "customerName": body.address.name,
                "customerPhone": body.address.phone,
                "paymentMethod": method.value,
            },
            currency=settings.paystack_currency,
            channels=GATEWAY_CHANNELS.get(method),
        )
    except (PaymentConfigError, PaymentProviderError) as e:
        logger.warning("Payment initialization failed, order left pending: id=%s error=%s", order.id, e)
        store.record_payment_error(order.id, str(e))
        raise
    store.set_checkout_reference(order.id, transaction.reference)
    return CheckoutResult(order=order, transaction=transaction)
