"""
Payment confirmation paths.

Two unordered writers confirm the same order: the client-driven verify call
and the provider-driven webhook. Both go through OrderStore.confirm_payment,
so whichever lands first wins and the other is a no-op.
"""
import hashlib
import hmac
import json
import logging
from dataclasses import dataclass
from enum import Enum

from pydantic import ValidationError

from app.core.config import settings
from app.models import Order
from app.schemas.payment import PaystackEvent
from app.services.order_status import OrderStatus
from app.services.order_store import OrderStore
from app.services.paystack import PaystackClient

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-paystack-signature"
CHARGE_SUCCESS = "charge.success"


def compute_signature(secret: str, raw_body: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha512).hexdigest()


def is_valid_signature(raw_body: bytes, signature: str | None, secret: str) -> bool:
    if not signature or not secret:
        return False
    return hmac.compare_digest(compute_signature(secret, raw_body), signature.strip().lower())


# ---------- verify ----------
@dataclass
class VerifyResult:
    success: bool
    order: Order | None = None
    message: str | None = None


NOT_VERIFIED = "Payment not verified"


def verify_payment(store: OrderStore, paystack: PaystackClient, order: Order, reference: str) -> VerifyResult:
    """Re-queries the provider by reference; a non-success answer is a normal outcome, not an error."""
    tx = paystack.verify_transaction(reference)
    if not tx.succeeded:
        logger.info("Payment not successful at provider: order=%s reference=%s status=%s", order.id, reference, tx.status)
        return VerifyResult(success=False, message=NOT_VERIFIED)
    linked_order = tx.transaction.order_id
    if linked_order and linked_order != order.id:
        logger.warning("Reference %s belongs to order %s, not %s", reference, linked_order, order.id)
        return VerifyResult(success=False, message=NOT_VERIFIED)
    if tx.amount_kobo < order.total_kobo:
        logger.warning(
            "Underpayment on verify: order=%s paid_kobo=%s total_kobo=%s", order.id, tx.amount_kobo, order.total_kobo
        )
        store.record_audit("payment_amount_mismatch", order_id=order.id, reference=tx.reference, detail=str(tx.amount_kobo))
        return VerifyResult(success=False, message=NOT_VERIFIED)

    result = store.confirm_payment(
        order.id,
        reference=tx.reference,
        status=OrderStatus.PROCESSING,
        source="verify",
        payment_data=tx.transaction.masked_payment_data(settings.paystack_currency),
    )
    if result.applied:
        store.record_audit("payment_confirmed", order_id=order.id, reference=tx.reference, detail="verify")
    if result.order is None:
        return VerifyResult(success=False, message="Order not found")
    if not result.order.paid:
        return VerifyResult(
            success=False,
            order=result.order,
            message="Order is no longer payable; contact support for a refund.",
        )
    return VerifyResult(success=True, order=result.order)


# ---------- webhook ----------
class WebhookOutcome(str, Enum):
    BAD_SIGNATURE = "bad_signature"
    INVALID_PAYLOAD = "invalid_payload"
    IGNORED = "ignored"
    UNLINKED = "unlinked"
    ORDER_NOT_FOUND = "order_not_found"
    AMOUNT_MISMATCH = "amount_mismatch"
    DUPLICATE = "duplicate"
    ALREADY_CONFIRMED = "already_confirmed"
    APPLIED = "applied"


def handle_webhook(store: OrderStore, raw_body: bytes, signature: str | None, secret: str) -> WebhookOutcome:
    """
    Processes one provider callback. Never raises for bad input: every outcome
    is acknowledged to the provider, only the state change is conditional.
    """
    if not is_valid_signature(raw_body, signature, secret):
        logger.warning("Paystack webhook rejected: %s signature", "missing" if not signature else "invalid")
        store.record_audit("webhook_bad_signature", detail="missing" if not signature else "mismatch")
        return WebhookOutcome.BAD_SIGNATURE

    try:
        event = PaystackEvent.model_validate(json.loads(raw_body))
    except (ValueError, ValidationError) as e:
        logger.warning("Paystack webhook discarded, unreadable payload: %s", str(e)[:200])
        return WebhookOutcome.INVALID_PAYLOAD

    if event.event != CHARGE_SUCCESS:
        logger.info("Ignoring Paystack event: %s", event.event)
        return WebhookOutcome.IGNORED

    data = event.data
    order_id = data.order_id
    if not order_id:
        logger.error("Paystack charge without orderId metadata: reference=%s amount=%s", data.reference, data.amount)
        store.record_audit("webhook_unlinked", reference=data.reference, detail=str(data.amount))
        return WebhookOutcome.UNLINKED

    order = store.get(order_id)
    if order is None:
        logger.error("Paystack charge for unknown order: order=%s reference=%s", order_id, data.reference)
        store.record_audit("webhook_order_not_found", order_id=order_id[:64], reference=data.reference)
        return WebhookOutcome.ORDER_NOT_FOUND
    if data.amount < order.total_kobo:
        logger.error(
            "Underpayment on webhook: order=%s paid_kobo=%s total_kobo=%s", order_id, data.amount, order.total_kobo
        )
        store.record_audit("payment_amount_mismatch", order_id=order_id, reference=data.reference, detail=str(data.amount))
        return WebhookOutcome.AMOUNT_MISMATCH

    result = store.confirm_payment(
        order_id,
        reference=data.reference,
        status=OrderStatus.PAID,
        source="webhook",
        payment_data=data.masked_payment_data(settings.paystack_currency),
    )
    if result.duplicate:
        return WebhookOutcome.DUPLICATE
    if result.applied:
        store.record_audit("payment_confirmed", order_id=order_id, reference=data.reference, detail="webhook")
        return WebhookOutcome.APPLIED
    return WebhookOutcome.ALREADY_CONFIRMED
