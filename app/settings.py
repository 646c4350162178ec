from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    App settings.

    Notes:
    - Defaults are local and deterministic (SQLite file, demo seed).
    - Every field can be overridden with an ``APP_``-prefixed env var.
    - Identity token settings live in ``app.identity.config`` (``IDENTITY_*``).
    """

    model_config = SettingsConfigDict(env_prefix="APP_", extra="ignore")

    db_url: str | None = None
    log_level: str = "INFO"
    seed_demo_data: bool = True

    capability_config_path: str | None = None

    # Unset: device scope caches are kept in memory for the process lifetime.
    device_cache_dir: str | None = None

    authorization_header: str = "Authorization"
    bearer_prefix: str = "Bearer"
    device_header: str = "X-Device-Id"

    def resolved_db_url(self) -> str:
        if self.db_url:
            return self.db_url

        repo_root = Path(__file__).resolve().parents[1]
        db_path = repo_root / "app.db"
        return f"sqlite:///{db_path}"

    def resolved_capability_config_path(self) -> Path:
        if self.capability_config_path:
            return Path(self.capability_config_path)

        repo_root = Path(__file__).resolve().parents[1]
        return repo_root / "config" / "capabilities.yaml"

    def resolved_device_cache_dir(self) -> Path | None:
        return Path(self.device_cache_dir) if self.device_cache_dir else None


@lru_cache
def get_settings() -> Settings:
    return Settings()
