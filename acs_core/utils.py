"""
acs_core.utils
--------------
Small helpers for timestamps and base64 handling shared by the
fingerprint code and the engine.
"""

from __future__ import annotations
import base64, time


def b64d(s: str) -> bytes:
    # validate=True rejects characters outside the base64 alphabet
    return base64.b64decode(s.encode("ascii"), validate=True)

def now_ts() -> int:
    # UNIX seconds, the unit of every timestamp column in the audit store
    return int(time.time())
