"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")

BACKENDS = {"remote", "local"}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    api_base_url: str = "http://localhost:5000"
    api_token: str | None = None
    pricing_backend: str = "remote"
    cart_sync_backend: str = "remote"
    local_sync_latency_ms: int = 0
    pricing_debounce_ms: int = 300
    request_timeout_seconds: float = 15
    cart_storage_path: str | None = ".cart/cart.json"
    default_city: str = "Batangas City"
    default_distance_km: float = 5.0
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_backend(raw: str | None, default: str = "remote") -> str:
    """Normalize a backend name from env, rejecting unknown values."""
    if raw is None:
        return default
    cleaned = raw.strip().lower()
    if not cleaned:
        return default
    if cleaned not in BACKENDS:
        raise ValueError(f"Unknown backend {raw!r}; expected one of {sorted(BACKENDS)}")
    return cleaned
