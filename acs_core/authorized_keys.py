# acs_core/authorized_keys.py
"""
Find the authorized_keys entry whose blob hashes to the fingerprint sshd
logged. The file is the sole source of truth for which keys exist.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple
import logging, re

from acs_core.crypto import decode_key_blob, fingerprint_matches, md5_fingerprint
from acs_core.errors import KeyNotFoundError

log = logging.getLogger("ACS.AuthorizedKeys")

# optional options prefix, then "(keytype) (base64'd pubkey) (comment)"
KEY_LINE_REGEX = re.compile(
    r"(?:^|\s)(?P<keytype>(?:ssh|ecdsa|sk)-[-\w@.]+)\s+(?P<blob>[A-Za-z0-9+/]+=*)(?:\s+(?P<comment>.*))?$"
)


@dataclass(frozen=True)
class AuthorizedKey:
    key_type: str
    blob: str
    comment: str
    fingerprint: str  # legacy MD5 colon-hex form, the key table's primary key


def parse_key_line(line: str) -> Optional[Tuple[str, str, str]]:
    m = KEY_LINE_REGEX.search(line.strip())
    if not m:
        return None
    return m["keytype"], m["blob"], (m["comment"] or "").strip()


class AuthorizedKeyLookup:

    def __init__(self, path: str):
        self.path = path

    def entries(self) -> Iterator[Tuple[int, str, str, str]]:
        with open(self.path, "r", encoding="utf-8", errors="replace") as f:
            for lineno, line in enumerate(f, 1):
                stripped = line.strip()
                if not stripped or stripped.startswith("#"):
                    continue
                parsed = parse_key_line(stripped)
                if parsed is None:
                    log.warning(f"[KEYS] malformed line {lineno} in {self.path}")
                    continue
                yield (lineno, *parsed)

    def find(self, fingerprint: str) -> AuthorizedKey:
        """First entry whose fingerprint equals ``fingerprint`` exactly."""
        try:
            for lineno, key_type, blob, comment in self.entries():
                try:
                    decode_key_blob(blob)
                except ValueError as e:
                    log.warning(f"[KEYS] line {lineno}: {e}")
                    continue
                if fingerprint_matches(blob, fingerprint):
                    log.debug(f"[KEYS] fingerprint {fingerprint} matches line {lineno}")
                    return AuthorizedKey(
                        key_type=key_type,
                        blob=blob,
                        comment=comment,
                        fingerprint=md5_fingerprint(blob),
                    )
        except OSError as e:
            raise KeyNotFoundError(f"could not read {self.path}: {e}") from e

        raise KeyNotFoundError(f"Could not find fingerprint {fingerprint} in {self.path}")
