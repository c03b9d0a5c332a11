"""Paystack confirmation endpoints: client-initiated verify and provider webhook."""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from starlette.concurrency import run_in_threadpool

from app.api.deps import get_current_user, get_order_store, get_paystack_client
from app.core.config import get_webhook_secret
from app.models import User
from app.schemas import OrderResponse, VerifyPaymentRequest, VerifyPaymentResponse, WebhookAck
from app.services.order_store import OrderStore
from app.services.payments import SIGNATURE_HEADER, handle_webhook, verify_payment
from app.services.paystack import PaymentConfigError, PaymentProviderError, PaystackClient

router = APIRouter(prefix="/api/payment/paystack", tags=["payment"])
log = logging.getLogger(__name__)


@router.post("/verify", response_model=VerifyPaymentResponse, response_model_exclude_none=True)
def verify(
    body: VerifyPaymentRequest,
    user: User = Depends(get_current_user),
    store: OrderStore = Depends(get_order_store),
    paystack: PaystackClient = Depends(get_paystack_client),
):
    order = store.get(body.order_id)
    if order is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    if order.user_id != user.id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="This order belongs to another account.")
    try:
        result = verify_payment(store, paystack, order, body.reference)
    except PaymentConfigError:
        raise HTTPException(status_code=503, detail="Payments are currently unavailable.")
    except PaymentProviderError as e:
        raise HTTPException(status_code=500, detail=f"Payment verification failed: {e.message}")
    if not result.success:
        return VerifyPaymentResponse(
            success=False,
            order=OrderResponse.from_order(result.order) if result.order else None,
            message=f"{result.message}. Please contact support if you were charged.",
        )
    return VerifyPaymentResponse(success=True, order=OrderResponse.from_order(result.order))


@router.post("/webhook", response_model=WebhookAck)
async def webhook(request: Request, store: OrderStore = Depends(get_order_store)):
    """Always acknowledged with 200; rejected or unknown events are logged, never surfaced to the provider."""
    raw_body = await request.body()
    outcome = await run_in_threadpool(
        handle_webhook,
        store,
        raw_body,
        request.headers.get(SIGNATURE_HEADER),
        get_webhook_secret(),
    )
    log.info("Paystack webhook processed: outcome=%s", outcome.value)
    return WebhookAck()


@router.get("/webhook")
def webhook_status():
    return {"status": "webhook_active", "message": "Paystack webhook endpoint is running"}
