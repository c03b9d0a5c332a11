"""Payment audit trail: confirmations, rejected webhooks, unlinked payments."""
from datetime import datetime, timezone

from sqlmodel import Field, SQLModel


class AuditLog(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    event: str = Field(index=True)  # payment_confirmed, webhook_bad_signature, webhook_unlinked, ...
    order_id: str | None = Field(default=None, index=True)
    reference: str | None = Field(default=None, index=True)
    detail: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
