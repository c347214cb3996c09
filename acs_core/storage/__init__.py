# acs_core/storage/__init__.py

from .models import KeyRecord, LogEntry, User
from .provider import StorageProvider
from .providers.memory_provider import InMemoryStorage
from .providers.sqlite_provider import SQLiteStorage

from acs_core.constants import DATABASE, STORAGE_PROVIDER
from acs_core.errors import StoreError


def load_storage_provider(config: dict | None = None) -> StorageProvider:
    """
    Open the audit store named by ``Settings.storage_config()``.

    ``provider`` is ``sqlite`` (the deployed store, at ``sqlite_path``) or
    ``memory`` (nothing persisted). Any other name is a ``StoreError`` so the
    CLI reports it like every other store failure.
    """
    config = config or {}
    provider = config.get("provider") or STORAGE_PROVIDER

    if provider == "sqlite":
        return SQLiteStorage(config.get("sqlite_path") or DATABASE)
    if provider == "memory":
        return InMemoryStorage()
    raise StoreError(f"Unknown storage provider: {provider}")


__all__ = [
    "KeyRecord",
    "LogEntry",
    "User",
    "StorageProvider",
    "InMemoryStorage",
    "SQLiteStorage",
    "load_storage_provider",
]
