# acs_core/engine.py
"""
acs_core.engine
---------------
One keyholder invocation, start to finish:

    sshd ancestor -> auth.log line -> authorized_keys entry -> user
        -> audit store (key upsert + log row) -> state directory

Every stage hands its result forward in an ``InvocationContext``; any
stage failing aborts the invocation. The key upsert, the log row and the
staged state files are published together: the store transaction commits
only after every state file has been staged, and the staged files are
moved into place right after the commit.
"""
from __future__ import annotations
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Callable, Optional
import logging

from acs_core.ancestry import SshdProcess, find_sshd_ancestor
from acs_core.authlog import AuthLogCorrelator, LoginEvent
from acs_core.authorized_keys import AuthorizedKey, AuthorizedKeyLookup
from acs_core.commands import Command, OpenDoor, SetNextStatus, SetStatus
from acs_core.config import Settings
from acs_core.identity import IdentityResolver
from acs_core.state import StateProjector
from acs_core.storage import KeyRecord, LogEntry, StorageProvider, User, load_storage_provider
from acs_core.utils import now_ts

log = logging.getLogger("ACS.Engine")


@dataclass(frozen=True)
class InvocationContext:
    command: Command
    invoked_at: int
    sshd: Optional[SshdProcess] = None
    login: Optional[LoginEvent] = None
    key: Optional[AuthorizedKey] = None
    user: Optional[User] = None
    log_id: Optional[int] = None


@dataclass(frozen=True)
class InvocationResult:
    fingerprint: str
    user: User
    command: Command
    log_id: Optional[int] = None

    def summary(self) -> str:
        lines = [f"SSH Key {self.fingerprint} accepted!", "",
                 f"Keyholder: {self.user.username} ({self.user.id})"]
        cmd = self.command
        if isinstance(cmd, OpenDoor):
            lines.append(f"Door:      {cmd.door.value}")
        else:
            label = "Status:   " if isinstance(cmd, SetStatus) else "Next:     "
            if cmd.mode is None:
                lines.append(f"{label} (cleared)")
            else:
                lines.append(f"{label} {cmd.mode.label} ({int(cmd.mode)})")
            lines.append(f"Message:   {cmd.message}")
        return "\n".join(lines)


class KeyholderEngine:
    def __init__(
        self,
        settings: Settings,
        store: Optional[StorageProvider] = None,
        find_sshd: Callable[..., SshdProcess] = find_sshd_ancestor,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.settings = settings
        self._store = store
        self.find_sshd = find_sshd
        self.clock = clock

    @property
    def store(self) -> StorageProvider:
        # opened lazily so a rejected command never touches the database
        if self._store is None:
            self._store = load_storage_provider(self.settings.storage_config())
        return self._store

    def close(self) -> None:
        if self._store is not None:
            self._store.close()

    # --- stages ---

    def _resolve_sshd(self, ctx: InvocationContext) -> InvocationContext:
        sshd = self.find_sshd(sshd_name=self.settings.sshd_name,
                              monitor_hop=self.settings.sshd_monitor_hop)
        log.info(f"[ENGINE] sshd ancestor pid={sshd.pid}")
        return replace(ctx, sshd=sshd)

    def _correlate(self, ctx: InvocationContext) -> InvocationContext:
        correlator = AuthLogCorrelator(self.settings.ssh_logfile, self.settings.sshd_name, clock=self.clock)
        not_before = None
        if ctx.sshd.started_at:
            not_before = (datetime.fromtimestamp(ctx.sshd.started_at).replace(microsecond=0)
                          - timedelta(seconds=self.settings.clock_slack))
        return replace(ctx, login=correlator.lookup(ctx.sshd.pid, not_before=not_before))

    def _lookup_key(self, ctx: InvocationContext) -> InvocationContext:
        key = AuthorizedKeyLookup(self.settings.ssh_keyfile).find(ctx.login.fingerprint)
        return replace(ctx, key=key)

    def _resolve_user(self, ctx: InvocationContext) -> InvocationContext:
        return replace(ctx, user=IdentityResolver(self.store).resolve(ctx.key.comment))

    def _record(self, ctx: InvocationContext) -> InvocationContext:
        store = self.store
        projector = StateProjector(self.settings.statedir)
        cmd, user, key, login = ctx.command, ctx.user, ctx.key, ctx.login
        log_id = None

        try:
            with store.transaction():
                store.upsert_key(KeyRecord(
                    fingerprint=key.fingerprint,
                    userid=user.id,
                    type=login.key_type,
                    base64=key.blob,
                    comment=key.comment,
                    last_login=login.login_ts,
                ))

                if isinstance(cmd, (SetStatus, SetNextStatus)) and cmd.mode is not None:
                    log_id = store.insert_log(LogEntry(
                        timestamp=ctx.invoked_at,
                        login_timestamp=login.login_ts,
                        userid=user.id,
                        ip=login.source_ip,
                        key=key.fingerprint,
                        mode=int(cmd.mode),
                        msg=cmd.message,
                    ))

                if isinstance(cmd, SetStatus):
                    projector.stage_status(cmd.mode, cmd.message, user.id, user.username)
                elif isinstance(cmd, SetNextStatus):
                    projector.stage_next_status(cmd.mode, cmd.message, user.id, user.username)
                else:
                    projector.stage_open_door(cmd.door)
        except BaseException:
            projector.discard()
            raise

        # renamed only after the store commit
        projector.commit()
        return replace(ctx, log_id=log_id)

    # --- entry point ---

    def run(self, command: Command) -> InvocationResult:
        ctx = InvocationContext(command=command, invoked_at=now_ts())
        for stage in (self._resolve_sshd, self._correlate, self._lookup_key,
                      self._resolve_user, self._record):
            ctx = stage(ctx)

        log.info(f"[ENGINE] {ctx.user.username} ({ctx.user.id}) ran {command.keyword} "
                 f"with key {ctx.key.fingerprint} from {ctx.login.source_ip}")
        return InvocationResult(fingerprint=ctx.key.fingerprint, user=ctx.user,
                                command=command, log_id=ctx.log_id)
