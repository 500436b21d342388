# Settings: environment-driven configuration for the vendor client.
# Created: 2026-10-16

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_DEFAULT_CONFIG_DIR = Path.home() / ".munchvendor"


class Settings(BaseSettings):
    """Vendor client settings.

    Every field can be overridden with a ``MUNCHVENDOR_``-prefixed environment
    variable or a ``.env`` file in the working directory.
    """

    model_config = SettingsConfigDict(
        env_prefix="MUNCHVENDOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Identity / business API
    api_base: str = "https://api.munchspace.io/api/v1"
    api_key: str = ""
    request_timeout: float = 15.0

    # Credential lifetimes (seconds)
    access_token_ttl: int = 30 * 60
    refresh_cookie_name: str = "refreshToken"
    refresh_cookie_max_age: int = 60 * 60 * 24 * 30

    # Inactivity logout
    inactivity_timeout: float = 60 * 60
    inactivity_events: list[str] = Field(
        default_factory=lambda: ["mousemove", "keydown", "scroll", "click", "touchstart"]
    )

    # OTP resend backoff
    otp_initial_wait: int = 60
    otp_backoff_factor: int = 2

    # Routes
    login_path: str = "/login"
    dashboard_path: str = "/restaurant/dashboard"
    protected_prefixes: list[str] = Field(
        default_factory=lambda: ["/restaurant", "/setup-your-store"]
    )

    config_dir: Path | None = None


@lru_cache
def get_settings() -> Settings:
    return Settings()


def get_config_dir(settings: Settings | None = None) -> Path:
    """Get/create the client state directory (``~/.munchvendor`` by default)."""
    settings = settings or get_settings()
    d = settings.config_dir or _DEFAULT_CONFIG_DIR
    d.mkdir(parents=True, exist_ok=True)
    return d
