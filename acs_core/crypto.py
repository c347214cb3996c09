"""
acs_core.crypto
---------------
SSH public key fingerprints, computed exactly the way sshd prints them
into the authentication log:

- md5_fingerprint(): legacy form, 16 lowercase hex octets joined by ':'
- sha256_fingerprint(): modern form, 'SHA256:' + unpadded base64 digest
- fingerprint_matches(): compares a key blob against whichever form a log
  line carried (full-string equality only)

Only the base64 key blob of an authorized_keys entry is hashed; the key
type column and the comment never take part.
"""
from __future__ import annotations
from cryptography.hazmat.primitives import hashes
import base64, binascii, struct
from .utils import b64d


SHA256_PREFIX = "SHA256:"


def decode_key_blob(key_b64: str) -> bytes:
    """Decode an authorized_keys base64 blob; padding is consumed, never hashed."""
    try:
        raw = b64d(key_b64.strip())
    except (binascii.Error, UnicodeEncodeError) as e:
        raise ValueError(f"invalid base64 key blob: {e}") from e
    if not raw:
        raise ValueError("empty key blob")
    return raw

def _digest(algorithm: hashes.HashAlgorithm, data: bytes) -> bytes:
    h = hashes.Hash(algorithm)
    h.update(data)
    return h.finalize()

def md5_fingerprint(key_b64: str) -> str:
    digest = _digest(hashes.MD5(), decode_key_blob(key_b64))
    return ":".join(f"{b:02x}" for b in digest)

def sha256_fingerprint(key_b64: str) -> str:
    digest = _digest(hashes.SHA256(), decode_key_blob(key_b64))
    return SHA256_PREFIX + base64.b64encode(digest).decode("ascii").rstrip("=")

def fingerprint_matches(key_b64: str, logged_fp: str) -> bool:
    if logged_fp.startswith(SHA256_PREFIX):
        return sha256_fingerprint(key_b64) == logged_fp
    return md5_fingerprint(key_b64) == logged_fp

def blob_key_type(raw: bytes) -> str:
    """Key type name embedded at the start of an SSH wire-format public key."""
    if len(raw) < 4:
        raise ValueError("key blob too short")
    (n,) = struct.unpack(">I", raw[:4])
    if n == 0 or len(raw) < 4 + n:
        raise ValueError("key blob truncated")
    return raw[4:4 + n].decode("ascii", errors="replace")
