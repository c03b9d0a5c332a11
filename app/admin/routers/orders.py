"""Order back office: listing, manual payment confirmation, fulfilment status, stale order sweep."""
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException

from app.api.deps import get_order_store
from app.core.config import settings
from app.schemas import CancelStaleResponse, OrderListResponse, OrderResponse, OrderStatusUpdate
from app.services.order_status import OrderStatus, is_terminal
from app.services.order_store import InvalidTransition, OrderStore

router = APIRouter()


@router.get("", response_model=OrderListResponse)
@router.get("/", response_model=OrderListResponse, include_in_schema=False)
def orders_list(
    status_filter: OrderStatus | None = None,
    limit: int = 200,
    store: OrderStore = Depends(get_order_store),
):
    orders = [OrderResponse.from_order(o) for o in store.list_all(status=status_filter, limit=min(max(limit, 1), 500))]
    return OrderListResponse(orders=orders, total=len(orders))


@router.post("/cancel-stale", response_model=CancelStaleResponse)
def cancel_stale(store: OrderStore = Depends(get_order_store)):
    """Cancels unpaid card/transfer orders older than PENDING_ORDER_TTL_MINUTES."""
    cancelled = store.cancel_stale_pending(timedelta(minutes=settings.pending_order_ttl_minutes))
    return CancelStaleResponse(cancelled=cancelled)


@router.get("/{order_id}", response_model=OrderResponse)
def order_detail(order_id: str, store: OrderStore = Depends(get_order_store)):
    order = store.get(order_id)
    if not order:
        raise HTTPException(404, "Order not found")
    return OrderResponse.from_order(order)


@router.put("/{order_id}/status", response_model=OrderResponse)
def order_update_status(order_id: str, body: OrderStatusUpdate, store: OrderStore = Depends(get_order_store)):
    try:
        order = store.update_status(order_id, body.status, strict=settings.strict_status_transitions)
    except InvalidTransition as e:
        raise HTTPException(409, str(e))
    if not order:
        raise HTTPException(404, "Order not found")
    return OrderResponse.from_order(order)


@router.post("/{order_id}/mark-paid", response_model=OrderResponse)
def order_mark_paid(order_id: str, store: OrderStore = Depends(get_order_store)):
    """Manual confirmation, e.g. a rep collected a call_rep payment. Repeating it is harmless."""
    order = store.get(order_id)
    if order is None:
        raise HTTPException(404, "Order not found")
    if is_terminal(order.status) and not order.paid:
        raise HTTPException(409, f"Order is {order.status} and cannot be marked paid.")
    result = store.confirm_payment(
        order_id,
        reference=f"manual_{order_id}",
        status=OrderStatus.PAID,
        source="admin",
    )
    if not result.found:
        raise HTTPException(404, "Order not found")
    if not result.order.paid:
        raise HTTPException(409, f"Order is {result.order.status} and cannot be marked paid.")
    if result.applied:
        store.record_audit("payment_confirmed", order_id=order_id, reference=f"manual_{order_id}", detail="admin")
    return OrderResponse.from_order(result.order)
