# acs_core/storage/models.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional


@dataclass
class User:
    """
    A person known to the access-control system.

    Users are provisioned out-of-band; the keyholder tool only reads them.
    """
    id: int
    username: str
    firstname: Optional[str] = None
    lastname: Optional[str] = None
    email: Optional[str] = None
    pw: Optional[str] = None


@dataclass
class KeyRecord:
    """
    Storage-level representation of an SSH key that was used to log in.

    Replaced as a whole on every successful login, so ``comment`` and
    ``last_login`` always describe the most recent proof of possession.
    """
    fingerprint: str          # MD5 colon-hex
    userid: int
    type: str
    base64: str
    comment: str = ""
    last_login: int = 0


@dataclass
class LogEntry:
    """One audit row per status-changing invocation. Never updated."""
    timestamp: int
    login_timestamp: int
    userid: int
    ip: str
    key: str                  # KeyRecord.fingerprint
    mode: int
    msg: str = ""
    id: Optional[int] = None
