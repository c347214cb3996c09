import base64, hashlib, struct

import psutil


def make_blob(key_type: str = "ssh-ed25519", body: bytes = bytes(range(32))) -> bytes:
    """SSH wire-format public key: string type, string key body."""
    t = key_type.encode("ascii")
    return struct.pack(">I", len(t)) + t + struct.pack(">I", len(body)) + body


def b64(raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii")


def md5_fp(raw: bytes) -> str:
    return ":".join(f"{b:02x}" for b in hashlib.md5(raw).digest())


def accepted_line(pid: int, fp: str, stamp: str = "Jan 05 10:00:00",
                  keytype: str = "RSA", ip: str = "10.0.0.5", proc: str = "sshd") -> str:
    return (f"{stamp} host {proc}[{pid}]: Accepted publickey for svc from {ip} "
            f"port 22 ssh2: {keytype} {fp}\n")


class FakeProc:
    """Stand-in for psutil.Process backed by a {pid: (name, ppid, start)} table."""

    def __init__(self, table, pid):
        if pid not in table:
            raise psutil.NoSuchProcess(pid)
        self._name, self._ppid, self._started = table[pid]

    def name(self):
        return self._name

    def ppid(self):
        return self._ppid

    def create_time(self):
        return self._started
