from .auth import Token, UserCreate, UserLogin, UserResponse
from .checkout import CheckoutItem, CheckoutRequest, CheckoutResponse, ShippingAddress
from .order import CancelStaleResponse, OrderListResponse, OrderResponse, OrderStatusUpdate
from .payment import PaystackEvent, VerifyPaymentRequest, VerifyPaymentResponse, WebhookAck

__all__ = [
    "CancelStaleResponse",
    "CheckoutItem",
    "CheckoutRequest",
    "CheckoutResponse",
    "OrderListResponse",
    "OrderResponse",
    "OrderStatusUpdate",
    "PaystackEvent",
    "ShippingAddress",
    "Token",
    "UserCreate",
    "UserLogin",
    "UserResponse",
    "VerifyPaymentRequest",
    "VerifyPaymentResponse",
    "WebhookAck",
]
