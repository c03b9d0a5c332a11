from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings

# .env at project root: app/core/config.py -> app/core -> app -> root
_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _ROOT / ".env"


class Settings(BaseSettings):
    secret_key: str = "change-me-in-production"
    access_token_expire_minutes: int = 60 * 24 * 7
    log_level: str = "INFO"
    database_url: str = "sqlite:///./storefront.db"
    # comma separated origin list; "*" allows everything
    cors_origins: str = "*"
    rate_limit_per_minute: int = 60
    rate_limit_checkout_per_minute: int = 10
    # Paystack: secret key is used as bearer token and, by default, as webhook signing key
    paystack_secret_key: str = ""
    paystack_webhook_secret: str = ""
    paystack_base_url: str = "https://api.paystack.co"
    paystack_timeout_seconds: float = 10.0
    paystack_currency: str = "NGN"
    # Base URL of the storefront; the provider redirects to <public_url>/orders/confirmation/<id>
    public_url: str = "http://127.0.0.1:3000"
    admin_secret: str = ""
    environment: str = "development"
    # Unpaid gateway orders older than this are cancelled by the admin sweep
    pending_order_ttl_minutes: int = 60
    # Admin status changes may only move forward along the order lifecycle
    strict_status_transitions: bool = True

    model_config = {
        "env_file": _ENV_FILE if _ENV_FILE.is_file() else ".env",
        "extra": "ignore",
    }

    @field_validator("paystack_secret_key", "paystack_webhook_secret", mode="before")
    @classmethod
    def strip_keys(cls, v: str | None) -> str:
        """Trims whitespace left over from copy/paste."""
        return (v or "").strip()

    @field_validator("public_url", "paystack_base_url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: str | None) -> str:
        return (v or "").strip().rstrip("/")


settings = Settings()


def get_webhook_secret() -> str:
    """Paystack signs webhooks with the account secret key unless a dedicated secret is set."""
    return settings.paystack_webhook_secret or settings.paystack_secret_key


def is_paystack_configured() -> bool:
    return bool(settings.paystack_secret_key)
