"""Central dependency providers (FastAPI + WebSocket endpoint).

The store, registry and relay are process-scoped singletons built lazily from
settings. Tests swap them through ``app.dependency_overrides`` or reset them
with :func:`reset_dependencies`.
"""

from __future__ import annotations

from functools import lru_cache

from campusride.core.exceptions import ConfigurationError
from campusride.core.security import SessionTokenSigner
from campusride.core.settings import get_settings
from campusride.services.chat_relay import ChatRelay, RelayPolicy
from campusride.services.connection_registry import ConnectionRegistry
from campusride.services.record_store import MemoryRecordStore

# Environments allowed to run with the built-in development secret.
DEV_ENVIRONMENTS = frozenset({"dev", "development", "local", "test", "ci"})
DEFAULT_SECRET_KEY = "dev-secret"


@lru_cache(maxsize=1)
def get_record_store() -> MemoryRecordStore:
    return MemoryRecordStore()


@lru_cache(maxsize=1)
def get_connection_registry() -> ConnectionRegistry:
    return ConnectionRegistry(send_queue_size=get_settings().ws_send_queue_size)


@lru_cache(maxsize=1)
def get_session_signer() -> SessionTokenSigner:
    settings = get_settings()
    secret = settings.secret_key.get_secret_value()
    env = (settings.app_env or "").strip().lower()
    if env not in DEV_ENVIRONMENTS and secret == DEFAULT_SECRET_KEY:
        raise ConfigurationError(
            "SECRET_KEY must be set outside development and test",
            details={"app_env": settings.app_env},
        )
    return SessionTokenSigner(
        secret,
        max_age=settings.session_token_max_age,
    )


@lru_cache(maxsize=1)
def get_chat_relay() -> ChatRelay:
    return ChatRelay(
        store=get_record_store(),
        registry=get_connection_registry(),
        policy=RelayPolicy.from_settings(get_settings()),
        signer=get_session_signer(),
    )


def reset_dependencies() -> None:
    for provider in (
        get_chat_relay,
        get_session_signer,
        get_connection_registry,
        get_record_store,
    ):
        provider.cache_clear()


__all__ = [
    "get_chat_relay",
    "get_connection_registry",
    "get_record_store",
    "get_session_signer",
    "reset_dependencies",
]
