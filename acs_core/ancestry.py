# acs_core/ancestry.py
"""
Locate the sshd process this invocation descends from.

A forced SSH command always runs below sshd, so the ancestry walk is the
evidence that the call came from a real SSH authentication. The pid found
here is the key into the authentication log.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional
import logging, os

import psutil

from acs_core.constants import SSHD_MONITOR_HOP, SSHD_NAME
from acs_core.errors import NoSshAncestorError

log = logging.getLogger("ACS.Ancestry")

INIT_PID = 1


@dataclass(frozen=True)
class SshdProcess:
    pid: int
    name: str
    started_at: float  # UNIX seconds


def _process(pid: int) -> psutil.Process:
    return psutil.Process(pid)


def _describe(pid: int) -> SshdProcess:
    proc = _process(pid)
    return SshdProcess(pid=pid, name=proc.name(), started_at=proc.create_time())


def _is_privileged() -> bool:
    return os.geteuid() == 0


def find_sshd_ancestor(
    sshd_name: str = SSHD_NAME,
    pid: Optional[int] = None,
    monitor_hop: bool = SSHD_MONITOR_HOP,
) -> SshdProcess:
    """
    Return the sshd process that owns the current SSH session.

    Running as root the chain below sshd is one hop shorter, so the
    immediate parent is taken as-is. Otherwise the parent links are
    followed until a process named ``sshd_name`` turns up. With
    ``monitor_hop`` the privileged monitor above that sshd is returned
    instead, which is the process that logs the accepted key under
    privilege separation.
    """
    start = os.getpid() if pid is None else pid

    try:
        if _is_privileged():
            parent = _process(start).ppid()
            if parent <= INIT_PID:
                raise NoSshAncestorError("parent ssh daemon not found!")
            found = _describe(parent)
            log.debug(f"[ANCESTRY] privileged shortcut pid={found.pid} name={found.name}")
            return found

        p = start
        while p > INIT_PID:
            proc = _process(p)
            if proc.name() == sshd_name:
                if monitor_hop:
                    p = proc.ppid()
                    if p <= INIT_PID:
                        break
                found = _describe(p)
                log.debug(f"[ANCESTRY] sshd ancestor pid={found.pid} name={found.name}")
                return found
            p = proc.ppid()
    except psutil.Error as e:
        raise NoSshAncestorError(f"process table walk failed at pid {getattr(e, 'pid', None)}: {e}") from e

    raise NoSshAncestorError("parent ssh daemon not found!")
