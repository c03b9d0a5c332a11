from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from app.models import Order
from app.services.order_status import OrderStatus
from app.services.paystack import from_minor_units


class CamelModel(BaseModel):
    """JSON bodies use camelCase keys (userEmail, orderId, ...)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OrderItemOut(CamelModel):
    product_id: str
    name: str
    price: float
    quantity: int
    image: str | None = None


class OrderResponse(CamelModel):
    id: str
    user_email: str
    user_name: str
    items: list[OrderItemOut]
    total: float
    address: dict[str, Any]
    payment_method: str
    status: str
    paid: bool
    payment_reference: str | None = None
    payment_data: dict[str, Any] | None = None
    payment_verified_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_order(cls, order: Order) -> "OrderResponse":
        return cls(
            id=order.id,
            user_email=order.user_email,
            user_name=order.user_name,
            items=[
                OrderItemOut(
                    product_id=str(item.get("productId", "")),
                    name=str(item.get("name", "")),
                    price=float(Decimal(str(item.get("price", "0")))),
                    quantity=int(item.get("quantity", 0)),
                    image=item.get("image"),
                )
                for item in order.items or []
            ],
            total=float(from_minor_units(order.total_kobo)),
            address=order.address or {},
            payment_method=order.payment_method,
            status=order.status,
            paid=order.paid,
            payment_reference=order.payment_reference,
            payment_data=order.payment_data,
            payment_verified_at=order.payment_verified_at,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


class OrderListResponse(CamelModel):
    orders: list[OrderResponse]
    total: int


class OrderStatusUpdate(CamelModel):
    status: OrderStatus


class CancelStaleResponse(CamelModel):
    cancelled: int
