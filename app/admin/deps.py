"""Admin auth: X-Admin-Secret header, compared in constant time."""
import hmac

from fastapi import Header, HTTPException

from app.core.config import settings


def _admin_secret_constant_time_compare(provided: str | None, expected: str | None) -> bool:
    p = (provided or "").encode("utf-8")
    e = (expected or "").encode("utf-8")
    return hmac.compare_digest(p, e)


def require_admin(x_admin_secret: str | None = Header(None, alias="X-Admin-Secret")) -> None:
    expected = (settings.admin_secret or "").strip()
    if not expected:
        raise HTTPException(status_code=503, detail="Admin API is not configured (ADMIN_SECRET missing).")
    if not _admin_secret_constant_time_compare(x_admin_secret, expected):
        raise HTTPException(status_code=403, detail="Forbidden.")
