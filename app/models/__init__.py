from .audit import AuditLog
from .error_log import ErrorLog
from .order import Order, PaymentConfirmation
from .user import User

__all__ = [
    "AuditLog",
    "ErrorLog",
    "Order",
    "PaymentConfirmation",
    "User",
]
