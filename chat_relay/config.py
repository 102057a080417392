"""Configuration helpers for the chat relay."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEV_ENVIRONMENTS = frozenset({"dev", "development", "local"})


class Settings(BaseSettings):
    """Environment-driven configuration for the relay and its CLI."""

    model_config = SettingsConfigDict(
        env_prefix="CHAT_RELAY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_env: str = Field(default="production", description="Deployment environment name.")
    upstream_base_url: str = Field(
        default="https://api.openai.com",
        description="Scheme and host of the chat completion API.",
    )
    upstream_path: str = Field(
        default="/v1/chat/completions",
        description="Path of the completions endpoint on the upstream host.",
    )
    upstream_timeout: Optional[float] = Field(
        default=60.0,
        gt=0,
        description="Seconds to wait for the upstream; null waits indefinitely.",
    )
    max_body_bytes: Optional[int] = Field(
        default=None,
        gt=0,
        description="Reject inbound bodies larger than this many bytes.",
    )
    dev_proxy_prefix: str = Field(
        default="/api/chat",
        description="Path prefix rewritten to the upstream completions path in development.",
    )
    host: str = "127.0.0.1"
    port: int = Field(default=8000, ge=1, le=65535)
    log_level: str = "INFO"
    state_file: Path = Field(
        default=Path.home() / ".chat-relay" / "state.json",
        description="Where the CLI keeps remembered preferences.",
    )

    @property
    def upstream_url(self) -> str:
        return self.upstream_base_url.rstrip("/") + "/" + self.upstream_path.lstrip("/")

    @property
    def is_development(self) -> bool:
        return self.app_env.strip().lower() in DEV_ENVIRONMENTS


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Load settings once per process."""

    return Settings()
