# File: rhodesign/config.py
# DESCRIPTION: Environment-driven settings for the RhodeSign service.

import os
from dataclasses import dataclass
from datetime import timedelta

from dotenv import load_dotenv

ENV_FILE = os.getenv("RHODESIGN_ENV_FILE", ".env")


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    signing_store: str = "memory"
    database_url: str = "postgresql://localhost/rhodesign"
    session_ttl_hours: float = 24
    sweep_interval_seconds: int = 0
    signing_api_secret: str = ""
    webhook_secret: str = ""
    allow_unsigned_webhooks: bool = False
    public_base_url: str = "http://localhost:5000"
    notify_webhook_url: str = ""
    disable_webhooks: bool = False
    hmac_window_seconds: int = 300
    workflow_rate_limit: str = "50 per 15 minutes"
    webhook_rate_limit: str = "100 per minute"
    ratelimit_storage_uri: str = "memory://"

    @property
    def session_ttl(self) -> timedelta:
        return timedelta(hours=self.session_ttl_hours)

    @classmethod
    def from_env(cls, env_file: str | None = None) -> "Settings":
        """Load .env (if present) and build settings from the environment."""
        load_dotenv(env_file or ENV_FILE)
        return cls(
            signing_store=os.getenv("SIGNING_STORE", "memory").lower(),
            database_url=os.getenv("ESIGN_DATABASE_URL", "postgresql://localhost/rhodesign"),
            session_ttl_hours=float(os.getenv("SESSION_TTL_HOURS", "24")),
            sweep_interval_seconds=int(os.getenv("SWEEP_INTERVAL_SECONDS", "0")),
            signing_api_secret=os.getenv("SIGNING_API_SECRET", ""),
            webhook_secret=os.getenv("RHODESIGN_WEBHOOK_SECRET", ""),
            allow_unsigned_webhooks=_env_bool("ALLOW_UNSIGNED_WEBHOOKS"),
            public_base_url=os.getenv("PUBLIC_BASE_URL", "http://localhost:5000").rstrip("/"),
            notify_webhook_url=os.getenv("NOTIFY_WEBHOOK_URL", ""),
            disable_webhooks=_env_bool("DISABLE_WEBHOOKS"),
            hmac_window_seconds=int(os.getenv("HMAC_WINDOW_SECONDS", "300")),
            workflow_rate_limit=os.getenv("RHODESIGN_RATE_LIMIT", "50 per 15 minutes"),
            webhook_rate_limit=os.getenv("WEBHOOK_RATE_LIMIT", "100 per minute"),
            ratelimit_storage_uri=os.getenv("RATELIMIT_STORAGE_URI", "memory://"),
        )
