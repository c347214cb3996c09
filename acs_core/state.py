# acs_core/state.py
"""
Project keyholder commands into the shared state directory.

Each piece of state is a single-line text file that an external watcher
republishes onto the message bus. Writes are staged into hidden temp
files first and moved into place with ``os.replace`` on ``commit()``, so a
reader sees either the old or the new content of a file, never a partial
one.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Optional
import logging, os, tempfile

from acs_core.commands import Door, Mode
from acs_core.constants import (
    STATEDIR_MODE, STATE_KEYHOLDER_ID, STATE_KEYHOLDER_NAME, STATE_MESSAGE,
    STATE_OPEN_DOOR, STATE_STATUS, STATE_STATUS_NEXT,
)
from acs_core.errors import StateWriteError

log = logging.getLogger("ACS.State")


@dataclass(frozen=True)
class SpaceState:
    keyholder_id: Optional[int]
    keyholder_name: Optional[str]
    status: Optional[str]
    status_next: Optional[str]
    message: Optional[str]
    open_door: Optional[str]


class StateProjector:

    def __init__(self, statedir: str):
        self.statedir = statedir
        self._staged: Dict[str, str] = {}  # target name -> temp path

    def _path(self, name: str) -> str:
        return os.path.join(self.statedir, name)

    def _ensure_dir(self) -> None:
        try:
            os.makedirs(self.statedir, mode=STATEDIR_MODE, exist_ok=True)
        except OSError as e:
            raise StateWriteError(f"Could not create statedir '{self.statedir}': {e}") from e

    def stage(self, name: str, value: str) -> None:
        """Write ``value`` plus newline to a temp file next to ``name``."""
        self._ensure_dir()
        if name in self._staged:
            self._remove(self._staged.pop(name))
        try:
            fd, tmp = tempfile.mkstemp(prefix=f".{name}.", dir=self.statedir)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(f"{value}\n")
            os.chmod(tmp, 0o644)
        except OSError as e:
            raise StateWriteError(f"Could not write {self._path(name)}: {e}") from e
        self._staged[name] = tmp

    def commit(self) -> None:
        published = []
        try:
            while self._staged:
                name, tmp = next(iter(self._staged.items()))
                os.replace(tmp, self._path(name))
                del self._staged[name]
                published.append(name)
                log.debug(f"[STATE] wrote {self._path(name)}")
        except OSError as e:
            dropped = list(self._staged)
            self.discard()
            log.error(f"[STATE] partial publish in {self.statedir}: "
                      f"written={published} discarded={dropped}")
            raise StateWriteError(
                f"Could not replace state file: {e} (already written: {', '.join(published) or 'none'})"
            ) from e

    def discard(self) -> None:
        for tmp in self._staged.values():
            self._remove(tmp)
        self._staged.clear()

    @staticmethod
    def _remove(tmp: str) -> None:
        try:
            os.unlink(tmp)
        except FileNotFoundError:
            pass

    # --- command projections (staged; call commit() to publish) ---

    def _stage_keyholder(self, keyholder_id, keyholder_name) -> None:
        if keyholder_id is not None:
            self.stage(STATE_KEYHOLDER_ID, str(keyholder_id))
        if keyholder_name is not None:
            self.stage(STATE_KEYHOLDER_NAME, keyholder_name)

    def stage_status(self, mode: Mode, message: str = "",
                     keyholder_id: Optional[int] = None, keyholder_name: Optional[str] = None) -> None:
        self._stage_keyholder(keyholder_id, keyholder_name)
        self.stage(STATE_STATUS, mode.label)
        self.stage(STATE_MESSAGE, message)

    def stage_next_status(self, mode: Optional[Mode], message: str = "",
                          keyholder_id: Optional[int] = None, keyholder_name: Optional[str] = None) -> None:
        self._stage_keyholder(keyholder_id, keyholder_name)
        self.stage(STATE_STATUS_NEXT, mode.label if mode is not None else "")
        self.stage(STATE_MESSAGE, message)

    def stage_open_door(self, door: Door) -> None:
        self.stage(STATE_OPEN_DOOR, door.value)

    # --- immediate variants ---

    def set_status(self, mode: Mode, message: str = "", keyholder_id=None, keyholder_name=None) -> None:
        self._publish(self.stage_status, mode, message, keyholder_id, keyholder_name)

    def set_next_status(self, mode: Optional[Mode], message: str = "", keyholder_id=None, keyholder_name=None) -> None:
        self._publish(self.stage_next_status, mode, message, keyholder_id, keyholder_name)

    def open_door(self, door: Door) -> None:
        self._publish(self.stage_open_door, door)

    def _publish(self, stage_fn, *args) -> None:
        try:
            stage_fn(*args)
        except StateWriteError:
            self.discard()
            raise
        self.commit()

    # --- read back ---

    def _read(self, name: str) -> Optional[str]:
        try:
            with open(self._path(name), "r", encoding="utf-8") as f:
                line = f.readline()
        except FileNotFoundError:
            return None
        return line[:-1] if line.endswith("\n") else line

    def read(self) -> SpaceState:
        kid = self._read(STATE_KEYHOLDER_ID)
        try:
            keyholder_id = int(kid) if kid else None
        except ValueError:
            keyholder_id = None
        return SpaceState(
            keyholder_id=keyholder_id,
            keyholder_name=self._read(STATE_KEYHOLDER_NAME),
            status=self._read(STATE_STATUS),
            status_next=self._read(STATE_STATUS_NEXT),
            message=self._read(STATE_MESSAGE),
            open_door=self._read(STATE_OPEN_DOOR),
        )
