from datetime import datetime, timezone

from sqlmodel import Field, SQLModel


class User(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    email: str = Field(unique=True, index=True)
    hashed_password: str
    full_name: str = ""
    phone: str | None = None
    created_at: datetime | None = Field(default_factory=lambda: datetime.now(timezone.utc))
    last_login_at: datetime | None = None
