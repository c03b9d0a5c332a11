from fastapi import APIRouter, Depends, HTTPException, status

from app.api.deps import get_current_user, get_order_store
from app.models import User
from app.schemas import OrderListResponse, OrderResponse
from app.services.order_store import OrderStore

router = APIRouter(prefix="/api/orders", tags=["orders"])


@router.get("/user", response_model=OrderListResponse)
def my_orders(user: User = Depends(get_current_user), store: OrderStore = Depends(get_order_store)):
    orders = [OrderResponse.from_order(o) for o in store.list_for_user(user.email)]
    return OrderListResponse(orders=orders, total=len(orders))


@router.get("/{order_id}", response_model=OrderResponse)
def get_order(order_id: str, user: User = Depends(get_current_user), store: OrderStore = Depends(get_order_store)):
    """Polled by the confirmation page after redirect or when the payment widget is closed."""
    order = store.get(order_id)
    # another user's order is reported as missing
    if order is None or order.user_id != user.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    return OrderResponse.from_order(order)
