from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.schemas.order import CamelModel, OrderResponse
from app.services.paystack import PaystackTransaction


class VerifyPaymentRequest(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    reference: str = Field(min_length=1)
    order_id: str = Field(min_length=1)


class VerifyPaymentResponse(CamelModel):
    success: bool
    order: OrderResponse | None = None
    message: str | None = None


class PaystackEvent(BaseModel):
    """Webhook envelope: {"event": "charge.success", "data": {...}}."""

    event: str
    data: PaystackTransaction


class WebhookAck(BaseModel):
    received: bool = True
