# acs_core/config.py
"""
Runtime settings.

Values come from, lowest precedence first: built-in defaults, the
``key = value`` config file shared by all access-control daemons, and
``ACS_<KEY>`` environment variables.
"""
from __future__ import annotations
from dataclasses import dataclass, fields
from typing import Dict, Optional
import logging, os

from acs_core import constants as C

log = logging.getLogger("ACS.Config")

TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    ssh_logfile: str = C.SSH_LOGFILE
    ssh_keyfile: str = C.SSH_KEYFILE
    database: str = C.DATABASE
    statedir: str = C.STATEDIR
    sshd_name: str = C.SSHD_NAME
    sshd_monitor_hop: bool = C.SSHD_MONITOR_HOP  # set for privilege-separated sshd, see constants
    clock_slack: int = C.CLOCK_SLACK_SECONDS
    storage_provider: str = C.STORAGE_PROVIDER
    log_level: str = C.LOG_LEVEL
    log_file: Optional[str] = None

    def storage_config(self) -> dict:
        return {"provider": self.storage_provider, "sqlite_path": self.database}


def parse_config_lines(lines) -> Dict[str, str]:
    """
    Parse ``key = value`` lines. Lines starting with ``#`` are comments,
    lines without ``=`` are ignored, the first occurrence of a key wins.
    """
    values: Dict[str, str] = {}
    for line in lines:
        line = line.rstrip("\r\n")
        if not line.strip() or line.lstrip().startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            log.warning(f"[CONFIG] invalid syntax: {line!r}")
            continue
        key = key.strip()
        if key and key not in values:
            values[key] = value.strip()
    return values


def read_config_file(path: str) -> Dict[str, str]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return parse_config_lines(f)
    except FileNotFoundError:
        log.info(f"[CONFIG] {path} not found, using defaults")
        return {}
    except OSError as e:
        log.warning(f"[CONFIG] Could not open config file {path}: {e}")
        return {}


def _coerce(name: str, raw: str, default):
    if isinstance(default, bool):
        return raw.strip().lower() in TRUE_VALUES
    if isinstance(default, int):
        try:
            return int(raw)
        except ValueError:
            log.warning(f"[CONFIG] {name}={raw!r} is not an integer, using {default}")
            return default
    return raw


def load_settings(path: Optional[str] = None, environ=None) -> Settings:
    environ = os.environ if environ is None else environ
    path = path or environ.get(C.ENV_PREFIX + "CONFIG", C.CONFIG_FILE)
    file_values = read_config_file(path)

    kwargs = {}
    for f in fields(Settings):
        cfg_key = f.name.replace("_", "-")
        env_key = C.ENV_PREFIX + f.name.upper()
        raw = environ.get(env_key, file_values.get(cfg_key))
        if raw is None:
            continue
        kwargs[f.name] = _coerce(f.name, raw, f.default)

    return Settings(**kwargs)
