"""Application configuration."""

import os
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")

StoreBackend = Literal["supabase", "sqlite", "memory"]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    pi_strict_verify: bool = False
    pi_api_base: str = ""
    pi_api_secret: str = ""
    webhook_secret: str = "dev_secret"
    admin_user: str = ""
    admin_pass: str = ""
    store_backend: StoreBackend = "sqlite"
    supabase_url: str = ""
    supabase_service_key: str = ""
    sqlite_path: str = ":memory:"
    confirm_one_shot: bool = False
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    @property
    def platform_configured(self) -> bool:
        """Return true when the Pi platform endpoint can be called."""
        return bool(self.pi_api_base and self.pi_api_secret)

    @property
    def admin_configured(self) -> bool:
        """Return true when admin credentials are set."""
        return bool(self.admin_user and self.admin_pass)
