from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

PROJECT_ROOT = Path(__file__).resolve().parents[2]


def _env(name: str, default: str) -> Any:
    # Read at instantiation time so get_settings.cache_clear() picks up changes
    return Field(default_factory=lambda: os.getenv(name, default))


class SmsSyncConfig(BaseModel):
    """
    Adapter configuration, fixed for the lifetime of a router.

    An empty secret disables authentication.
    """

    model_config = ConfigDict(frozen=True)

    endpoint: str = "smssync"
    secret: str = "smssync"
    reply: bool = True
    inline_errors: bool = True

    @property
    def path(self) -> str:
        return "/" + self.endpoint.lstrip("/")


class Settings(BaseModel):
    # Env values are strings; validate them into the declared types
    model_config = ConfigDict(validate_default=True)

    project_root: Path = PROJECT_ROOT

    # Database URL for the reference application's message store.
    # Default: sqlite file in the project root (smssync.db)
    database_url: str = _env("DATABASE_URL", f"sqlite:///{PROJECT_ROOT / 'smssync.db'}")

    # --- Device protocol ---
    endpoint: str = _env("SMSSYNC_ENDPOINT", "smssync")
    secret: str = _env("SMSSYNC_SECRET", "smssync")
    reply: bool = _env("SMSSYNC_REPLY", "true")
    inline_errors: bool = _env("SMSSYNC_INLINE_ERRORS", "true")

    # Reply to every received SMS with its own text (demo only)
    echo: bool = _env("SMSSYNC_ECHO", "false")

    # --- Logging ---
    log_level: str = _env("LOG_LEVEL", "INFO")
    log_format: str = _env("LOG_FORMAT", "console")

    # Required as X-Admin-Token on /outbox
    admin_token: str = _env("ADMIN_TOKEN", "")

    def smssync(self) -> SmsSyncConfig:
        return SmsSyncConfig(
            endpoint=self.endpoint,
            secret=self.secret,
            reply=self.reply,
            inline_errors=self.inline_errors,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
