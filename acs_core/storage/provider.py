# acs_core/storage/provider.py
from __future__ import annotations
from contextlib import contextmanager
from typing import Iterator, List, Optional

from acs_core.storage.models import KeyRecord, LogEntry, User


class StorageProvider:
    """
    Audit store contract shared by every backend.

    ``transaction()`` groups the key upsert and the log insert of one
    invocation; providers without real transactions may treat it as a
    plain block.
    """

    def ensure_schema(self) -> None:
        raise NotImplementedError

    # users
    def get_user(self, username: str) -> Optional[User]:
        raise NotImplementedError

    def add_user(self, username: str, firstname: Optional[str] = None, lastname: Optional[str] = None,
                 email: Optional[str] = None, user_id: Optional[int] = None) -> User:
        raise NotImplementedError

    # keys
    def upsert_key(self, rec: KeyRecord) -> None:
        raise NotImplementedError

    def get_key(self, fingerprint: str) -> Optional[KeyRecord]:
        raise NotImplementedError

    # audit log
    def insert_log(self, entry: LogEntry) -> int:
        raise NotImplementedError

    def list_logs(self, limit: Optional[int] = None) -> List[LogEntry]:
        raise NotImplementedError

    @contextmanager
    def transaction(self) -> Iterator["StorageProvider"]:
        yield self

    def close(self) -> None:
        return
