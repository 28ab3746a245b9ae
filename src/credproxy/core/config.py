# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Application configuration via environment variables and .env files."""

import json
from pathlib import Path
from typing import Annotated

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="CREDPROXY_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
    )

    # Database
    db_path: Path = Path("credproxy.db")
    auto_migrate: bool = True

    # API server
    api_host: str = "127.0.0.1"
    api_port: int = 4242
    api_keys: Annotated[list[str], NoDecode] = []  # admin keys for the approvals endpoints
    rate_limit_enabled: bool = True
    rate_limit_per_key: int = 600  # per minute for callers sending X-API-Key
    rate_limit_per_ip: int = 60  # per minute for everyone else, keyed by client IP

    @field_validator("api_keys", mode="before")
    @classmethod
    def _parse_api_keys(cls, v: object) -> list[str]:
        if isinstance(v, str):
            if v.lstrip().startswith("["):
                v = json.loads(v)
            else:
                return [k.strip() for k in v.split(",") if k.strip()]
        return v if isinstance(v, list) else []

    # Credential encryption (key material is provisioned externally)
    encryption_key: str = "dev_encryption_key_change_in_production"

    # Request validation
    timestamp_validity_seconds: int = 300

    # Queue
    queue_attempts: int = 3
    queue_backoff_seconds: float = 5.0
    queue_workers: int = 4

    # Policy usage counters
    counter_backend: str = "sqlite"  # "sqlite", "redis" or "memory"
    redis_url: str = "redis://localhost:6379/0"

    # Manual approvals
    approval_expiration_minutes: int = 60

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"


def get_settings() -> Settings:
    return Settings()
