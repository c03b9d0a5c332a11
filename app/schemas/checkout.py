from decimal import Decimal
from typing import Annotated

from pydantic import AfterValidator, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from app.schemas.order import CamelModel
from app.services.order_status import PaymentMethod
from app.services.paystack import to_minor_units


class _StrictCamelModel(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)


def _at_least_one_kobo(v: Decimal) -> Decimal:
    if to_minor_units(v) < 1:
        raise ValueError("must be at least 0.01")
    return v


# positive and still positive once rounded to kobo
Amount = Annotated[Decimal, Field(gt=0), AfterValidator(_at_least_one_kobo)]


class CheckoutItem(_StrictCamelModel):
    product_id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    price: Amount
    quantity: int = Field(ge=1)
    image: str | None = None


class ShippingAddress(_StrictCamelModel):
    name: str = Field(min_length=2)
    email: EmailStr
    phone: str = Field(min_length=5)
    street_address: str = Field(min_length=5)
    city: str = Field(min_length=2)
    state: str | None = None
    postal_code: str = Field(min_length=3)
    country: str = Field(min_length=2)


class CheckoutRequest(_StrictCamelModel):
    """Cart + address submitted by the storefront; `total` is re-checked against the line items."""

    user_email: EmailStr
    user_name: str = ""
    items: list[CheckoutItem] = Field(min_length=1)
    total: Amount
    address: ShippingAddress
    payment_method: PaymentMethod


class CheckoutResponse(CamelModel):
    success: bool
    order_id: str
    authorization_url: str | None = None
    access_code: str | None = None
    reference: str | None = None
    message: str
