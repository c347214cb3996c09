from contextlib import contextmanager
from dataclasses import replace
import copy
from typing import Optional, List
from acs_core.commands import Mode
from acs_core.errors import StoreError
from acs_core.storage.models import KeyRecord, LogEntry, User
from acs_core.storage.provider import StorageProvider

class InMemoryStorage(StorageProvider):
    def __init__(self):
        self.users = {}
        self.keys = {}
        self.logs = []

    def ensure_schema(self):
        pass

    # users
    def get_user(self, username: str):
        return next((u for u in self.users.values() if u.username == username), None)

    def add_user(self, username, firstname=None, lastname=None, email=None, user_id=None):
        if user_id is None:
            user_id = max(self.users, default=0) + 1
        if user_id in self.users:
            raise StoreError(f"user id {user_id} already exists")
        user = User(user_id, username, firstname, lastname, email)
        self.users[user_id] = user
        return user

    # keys
    def upsert_key(self, rec: KeyRecord):
        if rec.userid not in self.users:
            raise StoreError("FOREIGN KEY constraint failed")
        self.keys[rec.fingerprint] = replace(rec)

    def get_key(self, fingerprint: str):
        return self.keys.get(fingerprint)

    # audit log
    def insert_log(self, entry: LogEntry) -> int:
        if entry.mode not in set(Mode):
            raise StoreError(f"refusing to log mode {entry.mode}")
        if entry.key not in self.keys or entry.userid not in self.users:
            raise StoreError("FOREIGN KEY constraint failed")
        row = replace(entry, id=len(self.logs) + 1)
        self.logs.append(row)
        return row.id

    def list_logs(self, limit: Optional[int] = None) -> List[LogEntry]:
        rows = list(reversed(self.logs))
        return rows if limit is None else rows[:limit]

    @contextmanager
    def transaction(self):
        snapshot = (copy.deepcopy(self.keys), list(self.logs))
        try:
            yield self
        except BaseException:
            self.keys, self.logs = snapshot
            raise
