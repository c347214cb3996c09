from __future__ import annotations
from contextlib import contextmanager
from typing import Iterator, List, Optional
import logging, sqlite3, os
from acs_core.commands import Mode
from acs_core.errors import StoreError
from acs_core.storage.provider import StorageProvider
from acs_core.storage.models import KeyRecord, LogEntry, User

log = logging.getLogger("ACS.Store.SQLite")


class SQLiteStorage(StorageProvider):
    def __init__(self, path="/var/lib/access-control-system"):
        # If no directory, default to current working directory
        dir_path = os.path.dirname(path) or "."
        try:
            os.makedirs(dir_path, exist_ok=True)
            # autocommit; transaction() issues BEGIN/COMMIT itself
            self.db = sqlite3.connect(path, isolation_level=None)
            self.db.execute("PRAGMA foreign_keys = ON")
        except (OSError, sqlite3.Error) as e:
            raise StoreError(f"Cannot open database {path}: {e}") from e
        self.path = path
        self._in_tx = False

        self.ensure_schema()

    def execute(self, sql: str, params: tuple = None):
        try:
            if params:
                return self.db.execute(sql, params)
            return self.db.execute(sql)
        except sqlite3.Error as e:
            raise StoreError(f"SQL error: {e}") from e

    def ensure_schema(self) -> None:
        try:
            self.db.executescript("""
                BEGIN TRANSACTION;
                CREATE TABLE IF NOT EXISTS user (
                    id INTEGER PRIMARY KEY NOT NULL,
                    username TEXT NOT NULL,
                    firstname TEXT,
                    lastname TEXT,
                    email TEXT,
                    pw TEXT
                );
                CREATE TABLE IF NOT EXISTS key (
                    fingerprint CHARACTER(48) PRIMARY KEY NOT NULL,
                    userid INTEGER NOT NULL REFERENCES user,
                    type TEXT,
                    base64 TEXT NOT NULL,
                    comment TEXT,
                    last_login INTEGER NOT NULL DEFAULT 0
                );
                CREATE TABLE IF NOT EXISTS log (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp INTEGER NOT NULL,
                    login_timestamp INTEGER NOT NULL,
                    userid INTEGER NOT NULL REFERENCES user,
                    ip TEXT,
                    key CHARACTER(48) NOT NULL REFERENCES key,
                    mode INTEGER NOT NULL,
                    msg TEXT
                );
                COMMIT;
            """)
        except sqlite3.Error as e:
            raise StoreError(f"SQL error: {e}") from e

    @contextmanager
    def transaction(self) -> Iterator["SQLiteStorage"]:
        if self._in_tx:
            yield self
            return
        self.execute("BEGIN IMMEDIATE")
        self._in_tx = True
        try:
            yield self
        except BaseException:
            self._in_tx = False
            self.db.rollback()
            log.warning("[SQLITE] transaction rolled back")
            raise
        self._in_tx = False
        self.execute("COMMIT")

    # --- users ---

    def get_user(self, username: str) -> Optional[User]:
        cur = self.execute(
            "SELECT id, username, firstname, lastname, email, pw FROM user WHERE username = ?",
            (username,),
        )
        row = cur.fetchone()
        return User(*row) if row else None

    def add_user(self, username, firstname=None, lastname=None, email=None, user_id=None) -> User:
        cur = self.execute(
            "INSERT INTO user (id, username, firstname, lastname, email) VALUES (?, ?, ?, ?, ?)",
            (user_id, username, firstname, lastname, email),
        )
        return User(cur.lastrowid, username, firstname, lastname, email)

    # --- keys ---

    def upsert_key(self, rec: KeyRecord) -> None:
        # every column is overwritten: the row describes the latest login only
        self.execute(
            "INSERT INTO key (fingerprint, userid, type, base64, comment, last_login) VALUES (?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(fingerprint) DO UPDATE SET userid=excluded.userid, type=excluded.type, "
            "base64=excluded.base64, comment=excluded.comment, last_login=excluded.last_login",
            (rec.fingerprint, rec.userid, rec.type, rec.base64, rec.comment, rec.last_login),
        )

    def get_key(self, fingerprint: str) -> Optional[KeyRecord]:
        cur = self.execute(
            "SELECT fingerprint, userid, type, base64, comment, last_login FROM key WHERE fingerprint = ?",
            (fingerprint,),
        )
        row = cur.fetchone()
        return KeyRecord(*row) if row else None

    # --- audit log ---

    def insert_log(self, entry: LogEntry) -> int:
        if entry.mode not in set(Mode):
            raise StoreError(f"refusing to log mode {entry.mode}")
        cur = self.execute(
            "INSERT INTO log (timestamp, login_timestamp, userid, ip, key, mode, msg) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (entry.timestamp, entry.login_timestamp, entry.userid, entry.ip,
             entry.key, int(entry.mode), entry.msg),
        )
        return cur.lastrowid

    def list_logs(self, limit: Optional[int] = None) -> List[LogEntry]:
        sql = ("SELECT timestamp, login_timestamp, userid, ip, key, mode, msg, id "
               "FROM log ORDER BY id DESC")
        if limit is not None:
            cur = self.execute(sql + " LIMIT ?", (limit,))
        else:
            cur = self.execute(sql)
        return [LogEntry(*r) for r in cur.fetchall()]

    def close(self):
        self.db.close()
