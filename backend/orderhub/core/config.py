# Central place for all configurable settings. We use Pydantic's
# BaseSettings so values can be read from env vars or a .env file.
# Business constants that came from the storefront integration live
# here too so they can be tuned per deployment without code changes.

import json
from decimal import Decimal
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def safe_json_loads(value):
    try:
        return json.loads(value)
    except Exception:
        return value


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_json_loads=safe_json_loads,
    )

    # Core DB connection string, like sqlite:///./orderhub.db or Postgres URL.
    DATABASE_URL: str

    # Base64 encoded 32 byte key used to encrypt site API secrets at rest.
    # Rotating it invalidates every stored secret.
    SITE_SECRETS_KEY: str

    # Shared key required in X-Admin-Key for provisioning and reporting routes.
    # Leaving it unset disables those routes entirely.
    ADMIN_API_KEY: Optional[str] = None

    # Deployment environment name, used by startup checks.
    APP_ENV: str = "development"

    # Webhook replay protection. Requests outside the tolerance window are
    # rejected and nonces are kept for NONCE_TTL_MINUTES after issue.
    WEBHOOK_TIMESTAMP_TOLERANCE_SECONDS: int = Field(default=600, gt=0)
    NONCE_TTL_MINUTES: int = Field(default=15, gt=0)

    # Fixed-rate currency conversion applied to GBP orders on sync.
    GBP_TO_USD_RATE: Decimal = Decimal("1.37")

    # Share of revenue assumed to be cost when computing profit-share
    # partner payouts without real cost data.
    PROFIT_SHARE_COST_RATIO: Decimal = Decimal("0.70")

    # Flat per-order operational cost used by profit calculations.
    OPERATIONAL_COST_PER_ORDER: Decimal = Decimal("5.00")

    # Carrier tracking provider: "aftership" or "17track".
    TRACKING_PROVIDER: str = "aftership"
    AFTERSHIP_API_KEY: Optional[str] = None
    AFTERSHIP_BASE_URL: str = "https://api.aftership.com/v4"
    SEVENTEEN_TRACK_API_KEY: Optional[str] = None
    SEVENTEEN_TRACK_BASE_URL: str = "https://api.17track.net/track/v2.2"

    # Per-minute request quota of the carrier API. Bulk refresh spaces its
    # calls so a full sweep never exceeds it.
    TRACKING_REQUESTS_PER_MINUTE: int = Field(default=100, gt=0)
    TRACKING_HTTP_TIMEOUT_SECONDS: float = Field(default=10.0, gt=0)

    # Delay between database connectivity attempts while booting.
    DB_CONNECT_RETRY_SECONDS: float = Field(default=5.0, gt=0)

    @field_validator("TRACKING_PROVIDER", mode="before")
    @classmethod
    def _normalize_tracking_provider(cls, value):
        if value is None:
            return "aftership"
        return str(value).strip().lower() or "aftership"

    @field_validator("ADMIN_API_KEY", mode="before")
    @classmethod
    def _blank_admin_key_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


settings = Settings()
