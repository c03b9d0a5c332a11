import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from app.api.deps import get_current_user, get_order_store, get_paystack_client
from app.core.rate_limit import CHECKOUT_LIMIT, limiter
from app.models import User
from app.schemas import CheckoutRequest, CheckoutResponse
from app.services.checkout import TotalMismatchError, place_order
from app.services.order_store import OrderStore
from app.services.paystack import PaymentConfigError, PaymentProviderError, PaystackClient

router = APIRouter(prefix="/api", tags=["checkout"])
log = logging.getLogger(__name__)


@router.post("/checkout", response_model=CheckoutResponse, response_model_exclude_none=True)
@limiter.limit(CHECKOUT_LIMIT)
def checkout(
    request: Request,
    body: CheckoutRequest,
    user: User = Depends(get_current_user),
    store: OrderStore = Depends(get_order_store),
    paystack: PaystackClient = Depends(get_paystack_client),
):
    """Creates the order; for card/transfer also returns the Paystack checkout handle."""
    if str(body.user_email).strip().lower() != user.email.lower():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Checkout email does not match the signed-in account.",
        )
    try:
        result = place_order(store, paystack, user, body)
    except TotalMismatchError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PaymentConfigError as e:
        log.error("Checkout blocked, payment gateway not configured: %s", e)
        raise HTTPException(status_code=503, detail="Payments are currently unavailable. Please try again later.")
    except PaymentProviderError as e:
        raise HTTPException(status_code=500, detail=f"Payment initialization failed: {e.message}. Please try again.")

    order = result.order
    if result.transaction is None:
        return CheckoutResponse(
            success=True,
            order_id=order.id,
            message="Order placed. A representative will contact you to complete payment.",
        )
    return CheckoutResponse(
        success=True,
        order_id=order.id,
        authorization_url=result.transaction.authorization_url,
        access_code=result.transaction.access_code,
        reference=result.transaction.reference,
        message="Payment initiated successfully",
    )
