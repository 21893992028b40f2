from __future__ import annotations

import os
from functools import lru_cache
from typing import Annotated

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class BaseAppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "oauthflow"
    ENV: str = "dev"

    # Provider selection: "google" uses the built-in endpoints,
    # "generic" requires the three endpoint settings below.
    OAUTH_PROVIDER: str = "google"
    OAUTH_PROVIDER_NAME: str | None = None
    OAUTH_AUTHORIZATION_ENDPOINT: str | None = None
    OAUTH_TOKEN_ENDPOINT: str | None = None
    OAUTH_USER_INFO_ENDPOINT: str | None = None
    OAUTH_SCOPES: Annotated[list[str], NoDecode] = []

    # Client credentials
    OAUTH_CLIENT_ID: str | None = None
    OAUTH_CLIENT_SECRET: str | None = None
    OAUTH_REDIRECT_URL: str = "http://localhost:8000/auth/oauth/callback"

    # State protection
    OAUTH_STATE_KEY: str | None = None  # 16, 24 or 32 bytes (AES-128/192/256)
    OAUTH_STATE_TTL_SECONDS: int = 600
    OAUTH_STATE_BACKEND: str = "memory"  # Options: memory, redis
    REDIS_URL: str = "redis://localhost:6379/0"

    HTTP_TIMEOUT_SECONDS: float = 10.0
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "plain"

    @field_validator("OAUTH_SCOPES", mode="before")
    @classmethod
    def split_scope_string(cls, v):
        """Accept space- or comma-separated scopes from the environment."""
        if isinstance(v, str):
            return [s for s in v.replace(",", " ").split() if s]
        return v

    @field_validator("OAUTH_PROVIDER", "OAUTH_STATE_BACKEND")
    @classmethod
    def lowercase_choice(cls, v: str) -> str:
        return v.lower()

    @model_validator(mode="after")
    def _validate_required_fields(self) -> BaseAppSettings:
        if self.OAUTH_PROVIDER not in ("google", "generic"):
            raise ValueError(f"Unsupported OAUTH_PROVIDER: {self.OAUTH_PROVIDER}")
        if self.OAUTH_STATE_BACKEND not in ("memory", "redis"):
            raise ValueError(f"Unsupported OAUTH_STATE_BACKEND: {self.OAUTH_STATE_BACKEND}")

        if self.ENV.lower() == "prod":
            required_in_prod = (
                "OAUTH_CLIENT_ID",
                "OAUTH_CLIENT_SECRET",
                "OAUTH_STATE_KEY",
            )
            missing = [name for name in required_in_prod if not getattr(self, name)]
            if missing:
                raise ValueError(f"Missing required production settings: {', '.join(missing)}")
            # In-memory states are lost across processes and restarts
            if self.OAUTH_STATE_BACKEND == "memory":
                raise ValueError("OAUTH_STATE_BACKEND=memory is not allowed in production")
        return self


class DevSettings(BaseAppSettings):
    ENV: str = "dev"


class TestSettings(BaseAppSettings):
    ENV: str = "test"
    OAUTH_CLIENT_ID: str = "test-client-id"
    OAUTH_CLIENT_SECRET: str = "test-client-secret"
    OAUTH_STATE_KEY: str = "test-state-key-012345678"


class ProdSettings(BaseAppSettings):
    ENV: str = "prod"
    OAUTH_STATE_BACKEND: str = "redis"
    LOG_FORMAT: str = "json"


_ENV_TO_SETTINGS: dict[str, type[BaseAppSettings]] = {
    "dev": DevSettings,
    "development": DevSettings,
    "test": TestSettings,
    "testing": TestSettings,
    "prod": ProdSettings,
    "production": ProdSettings,
}


@lru_cache
def get_settings() -> BaseAppSettings:
    env_name = os.getenv("APP_ENV") or os.getenv("ENV") or "dev"
    env = env_name.lower()
    settings_cls = _ENV_TO_SETTINGS.get(env, DevSettings)
    return settings_cls()
