"""
Paystack REST client: transaction initialize and verify.

Amounts cross the client boundary in major units (Naira) and the provider
boundary in minor units (kobo). Every call carries the secret key as a
bearer token; nothing is cached between calls.
"""
import json
import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ValidationError, field_validator

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class PaymentConfigError(Exception):
    """Gateway credentials are missing."""


class PaymentProviderError(Exception):
    """The provider answered with an error, an unusable body, or not at all."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def to_minor_units(amount: Decimal | float | int | str) -> int:
    """round(amount × 100) with half-up rounding, computed on Decimal: 999.99 -> 99999."""
    value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    return int((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(amount_kobo: int) -> Decimal:
    return (Decimal(amount_kobo) / 100).quantize(Decimal("0.01"))


# ---------- provider response schemas ----------
class _Envelope(BaseModel):
    status: bool
    message: str = ""


class _InitializeData(BaseModel):
    authorization_url: str
    access_code: str
    reference: str


class _InitializeResponse(_Envelope):
    data: _InitializeData


class PaystackCustomer(BaseModel):
    email: str | None = None
    customer_code: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None


class PaystackAuthorization(BaseModel):
    authorization_code: str | None = None
    bin: str | None = None
    last4: str | None = None
    exp_month: str | None = None
    exp_year: str | None = None
    card_type: str | None = None
    bank: str | None = None
    country_code: str | None = None
    brand: str | None = None
    channel: str | None = None
    reusable: bool | None = None


class PaystackTransaction(BaseModel):
    """`data` object shared by transaction/verify and charge.* webhook events."""

    reference: str
    status: str | None = None
    amount: int
    currency: str | None = None
    channel: str | None = None
    paid_at: str | None = None
    metadata: dict[str, Any] | None = None
    customer: PaystackCustomer | None = None
    authorization: PaystackAuthorization | None = None

    @field_validator("metadata", mode="before")
    @classmethod
    def _metadata_object(cls, v: Any) -> dict[str, Any] | None:
        # charges without metadata carry "" or 0; some integrations send it JSON-encoded
        if isinstance(v, str) and v.strip().startswith("{"):
            try:
                v = json.loads(v)
            except ValueError:
                return None
        return v if isinstance(v, dict) else None

    @property
    def order_id(self) -> str | None:
        value = (self.metadata or {}).get("orderId")
        return str(value) if value else None

    def masked_payment_data(self, default_currency: str) -> dict[str, Any]:
        """Snapshot stored on the order: amounts and card fragments only, never instrument data."""
        auth = self.authorization or PaystackAuthorization()
        return {
            "amount": str(from_minor_units(self.amount)),
            "currency": self.currency or default_currency,
            "customerEmail": self.customer.email if self.customer else None,
            "authorizationCode": auth.authorization_code,
            "cardBrand": auth.brand,
            "cardLastFour": auth.last4,
            "bank": auth.bank,
            "channel": self.channel or auth.channel,
            "paidAt": self.paid_at,
        }


class _VerifyResponse(_Envelope):
    data: PaystackTransaction


@dataclass
class InitializedTransaction:
    authorization_url: str
    access_code: str
    reference: str


@dataclass
class VerifiedTransaction:
    status: str
    reference: str
    amount_kobo: int
    transaction: PaystackTransaction = field(repr=False)

    @property
    def succeeded(self) -> bool:
        return self.status == "success"


class PaystackClient:
    """Thin synchronous client; one instance per process, shared by reference."""

    def __init__(
        self,
        secret_key: str,
        base_url: str = "https://api.paystack.co",
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ):
        self._secret_key = (secret_key or "").strip()
        self._base_url = base_url.rstrip("/")
        self._client = httpx.Client(base_url=self._base_url, timeout=timeout, transport=transport)
        logger.info("Paystack client initialized: %s (configured=%s)", self._base_url, self.configured)

    @property
    def configured(self) -> bool:
        return bool(self._secret_key)

    def close(self) -> None:
        self._client.close()

    def _headers(self) -> dict[str, str]:
        if not self._secret_key:
            raise PaymentConfigError("Paystack secret key is not configured.")
        return {
            "Authorization": f"Bearer {self._secret_key}",
            "Content-Type": "application/json",
        }

    def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        headers = self._headers()
        try:
            response = self._client.request(method, path, headers=headers, **kwargs)
        except httpx.TimeoutException as e:
            logger.warning("Paystack %s %s timed out: %s", method, path, e)
            raise PaymentProviderError("Payment provider timed out.") from e
        except httpx.HTTPError as e:
            logger.warning("Paystack %s %s failed: %s", method, path, e)
            raise PaymentProviderError(f"Payment provider connection error: {str(e)[:80]}") from e

        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            raise PaymentProviderError(
                f"Payment provider returned an unreadable response (HTTP {response.status_code}).",
                status_code=response.status_code,
            )
        if response.is_error or body.get("status") is not True:
            message = body.get("message") or f"Payment provider error (HTTP {response.status_code})."
            logger.warning("Paystack %s %s rejected: status=%s message=%s", method, path, response.status_code, message)
            raise PaymentProviderError(str(message), status_code=response.status_code)
        return body

    def initialize_transaction(
        self,
        *,
        email: str,
        amount: Decimal | float | int,
        reference: str,
        callback_url: str,
        metadata: dict[str, Any],
        currency: str = "NGN",
        channels: list[str] | None = None,
    ) -> InitializedTransaction:
        payload: dict[str, Any] = {
            "email": email,
            "amount": to_minor_units(amount),
            "reference": reference,
            "callback_url": callback_url,
            "currency": currency,
            "metadata": metadata,
        }
        if channels:
            payload["channels"] = channels
        body = self._request("POST", "/transaction/initialize", json=payload)
        try:
            parsed = _InitializeResponse.model_validate(body)
        except ValidationError as e:
            raise PaymentProviderError("Payment provider returned an unexpected initialize response.") from e
        logger.info("Paystack transaction initialized: reference=%s", parsed.data.reference)
        return InitializedTransaction(
            authorization_url=parsed.data.authorization_url,
            access_code=parsed.data.access_code,
            reference=parsed.data.reference,
        )

    def verify_transaction(self, reference: str) -> VerifiedTransaction:
        if not reference or not reference.strip():
            raise ValueError("reference is required")
        body = self._request("GET", f"/transaction/verify/{quote(reference.strip(), safe='')}")
        try:
            parsed = _VerifyResponse.model_validate(body)
        except ValidationError as e:
            raise PaymentProviderError("Payment provider returned an unexpected verify response.") from e
        tx = parsed.data
        return VerifiedTransaction(
            status=tx.status or "",
            reference=tx.reference,
            amount_kobo=tx.amount,
            transaction=tx,
        )
