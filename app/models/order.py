"""Order document: price-snapshotted line items, shipping address and payment state."""
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field, SQLModel

from app.services.order_status import OrderStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Order(SQLModel, table=True):
    __tablename__ = "orders"

    id: str = Field(default_factory=lambda: uuid.uuid4().hex, primary_key=True, max_length=32)
    user_id: int = Field(foreign_key="user.id", index=True)
    user_email: str = Field(index=True)
    user_name: str = ""
    # [{"productId", "name", "price", "quantity", "image"}]; price in major units at checkout time
    items: list[dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    total_kobo: int  # minor units: 1500.00 NGN = 150000
    address: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    payment_method: str  # PaymentMethod value
    status: str = Field(default=OrderStatus.PENDING.value, index=True)
    paid: bool = False
    checkout_reference: str | None = Field(default=None, index=True)  # sent to the provider on initialize
    payment_reference: str | None = Field(default=None, index=True)  # confirmed provider reference
    payment_data: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON(none_as_null=True), nullable=True))
    payment_error: str | None = None
    payment_verified_at: datetime | None = None
    created_at: datetime = Field(default_factory=_utcnow, index=True)
    updated_at: datetime = Field(default_factory=_utcnow)


class PaymentConfirmation(SQLModel, table=True):
    """One row per (provider reference, source); a second insert means a redelivered confirmation."""

    __tablename__ = "payment_confirmations"
    __table_args__ = (UniqueConstraint("reference", "source", name="uq_payment_confirmation_reference_source"),)

    id: int | None = Field(default=None, primary_key=True)
    reference: str = Field(index=True)
    source: str  # "verify" | "webhook" | "admin"
    order_id: str = Field(index=True)
    applied: bool = False  # whether this confirmation moved the order to paid
    created_at: datetime = Field(default_factory=_utcnow)
