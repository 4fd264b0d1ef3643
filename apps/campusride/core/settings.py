from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings for the campus ride service.

    Loads from env with support for repo ".env" files. Test and CI runs skip the
    files so a developer's local overrides never leak into the suite.
    """

    _app_env = (os.getenv("APP_ENV") or "").strip().lower()
    _env_files = (
        []
        if _app_env in {"test", "ci"}
        else [
            str((Path(__file__).resolve().parents[1] / ".env")),  # apps/campusride/.env
            str((Path(__file__).resolve().parents[3] / ".env")),  # repo root .env
        ]
    )

    model_config = SettingsConfigDict(
        env_file=_env_files,
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # --- App / Core ---
    app_env: str = Field(default="dev", alias="APP_ENV")
    app_name: str = Field(default="campusride", alias="APP_NAME")
    debug: bool = Field(default=False, alias="DEBUG")
    # Logging
    log_level: str | None = Field(default=None, alias="CAMPUSRIDE_LOG_LEVEL")
    log_level_fallback: str | None = Field(default=None, alias="LOG_LEVEL")

    cors_allow_origins: list[str] = Field(default=["*"], alias="CORS_ALLOW_ORIGINS")

    # --- Session tokens (issued by the login collaborator, verified here) ---
    secret_key: SecretStr = Field(default=SecretStr("dev-secret"), alias="SECRET_KEY")
    session_token_max_age: int = Field(
        default=24 * 60 * 60,
        alias="CAMPUSRIDE_SESSION_TOKEN_MAX_AGE",
        ge=1,
    )

    # --- Realtime chat relay ---
    ws_path: str = Field(default="/ws", alias="CAMPUSRIDE_WS_PATH")
    ws_require_auth: bool = Field(
        default=True,
        alias="CAMPUSRIDE_WS_REQUIRE_AUTH",
        description="Reject chat frames from connections with no bound user.",
    )
    ws_trust_client_user_id: bool = Field(
        default=True,
        alias="CAMPUSRIDE_WS_TRUST_CLIENT_USER_ID",
        description="Accept `auth {userId}` frames without a signed token.",
    )
    ws_broadcast_scope: Literal["all", "ride"] = Field(
        default="all",
        alias="CAMPUSRIDE_WS_BROADCAST_SCOPE",
        description="`all` fans out to every socket; `ride` only to the ride's room.",
    )
    ws_error_frames: bool = Field(default=False, alias="CAMPUSRIDE_WS_ERROR_FRAMES")
    ws_max_message_length: int = Field(
        default=2000,
        alias="CAMPUSRIDE_WS_MAX_MESSAGE_LENGTH",
        ge=1,
        le=100_000,
    )
    ws_send_queue_size: int = Field(
        default=256,
        alias="CAMPUSRIDE_WS_SEND_QUEUE_SIZE",
        ge=1,
        le=100_000,
    )

    @property
    def resolved_log_level(self) -> str | None:
        return self.log_level or self.log_level_fallback


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
