"""Depot client configuration via pydantic-settings."""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings


class DepotSettings(BaseSettings):
    environment: str = "development"
    api_url: str = "https://api-boisson-production-bd26.up.railway.app"
    timeout_seconds: float = 15.0

    storage_dir: str = "~/.depot"
    storage_file: str = "storage.json"
    token_key: str = "auth_token"

    # Navigation targets used by the 401 handler
    login_path: str = "/login"
    public_paths: list[str] = ["/", "/login", "/register"]

    model_config = {"env_prefix": "DEPOT_", "env_file": ".env", "extra": "ignore"}

    @property
    def storage_path(self) -> Path:
        return Path(self.storage_dir).expanduser() / self.storage_file

    @property
    def base_url(self) -> str:
        return self.api_url.rstrip("/")

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() in {"prod", "production"}


def get_settings() -> DepotSettings:
    """Load settings with environment overrides."""
    return DepotSettings()
