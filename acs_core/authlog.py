# acs_core/authlog.py
"""
Correlate an sshd pid with its "Accepted publickey" line in the
authentication log.

The log is the only place where sshd says which key it accepted, so it is
read as a line-oriented text feed and matched with two patterns: one for
the syslog envelope, one for the sshd message inside it.
"""
from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional
import logging, re

from acs_core.constants import SSHD_NAME
from acs_core.errors import LoginNotFoundError

log = logging.getLogger("ACS.AuthLog")

MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
          "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

# (Month) (Day) (Hour):(Minute):(Second) (Hostname) (Processname)[(Processid)]: (Message)
LOG_REGEX = re.compile(
    r"^(?P<month>[A-Z][a-z]{2}) +(?P<day>[0-9]{1,2}) "
    r"(?P<hour>[0-9]{2}):(?P<minute>[0-9]{2}):(?P<second>[0-9]{2}) "
    r"(?P<host>[^ ]+) (?P<process>[-\w.]+)\[(?P<pid>[0-9]+)\]: (?P<message>.*)$"
)

# RFC3339 variant written by rsyslog's high precision template
ISO_LOG_REGEX = re.compile(
    r"^(?P<stamp>[0-9]{4}-[0-9]{2}-[0-9]{2}T[0-9]{2}:[0-9]{2}:[0-9]{2}(?:\.[0-9]+)?(?:Z|[+-][0-9]{2}:[0-9]{2})?) "
    r"(?P<host>[^ ]+) (?P<process>[-\w.]+)\[(?P<pid>[0-9]+)\]: (?P<message>.*)$"
)

# ... (username) ... (ip) ... (keytype) ... (keyhash)
SSH_REGEX = re.compile(
    r"^Accepted publickey for (?P<user>[-_.a-zA-Z0-9]+) "
    r"from (?P<ip>[0-9.]+|[0-9a-fA-F:.]+) port [0-9]+ ssh2: "
    r"(?P<keytype>[-A-Z0-9]+) "
    r"(?P<fingerprint>(?:[0-9a-f]{2}:){15}[0-9a-f]{2}|SHA256:[A-Za-z0-9+/]{43})$"
)


@dataclass(frozen=True)
class LoginEvent:
    login_time: datetime
    source_ip: str
    key_type: str
    fingerprint: str
    user: str = ""

    @property
    def login_ts(self) -> int:
        return int(self.login_time.timestamp())


def parse_sshd_message(msg: str) -> Optional[dict]:
    m = SSH_REGEX.match(msg.strip())
    return m.groupdict() if m else None


class AuthLogCorrelator:
    """
    ``lookup(pid)`` returns the login data of the **last** accepted-key
    line logged by ``sshd_name[pid]``.
    """

    def __init__(self, path: str, sshd_name: str = SSHD_NAME,
                 clock: Callable[[], datetime] = datetime.now):
        self.path = path
        self.sshd_name = sshd_name
        self.clock = clock

    def _classic_time(self, m: re.Match, now: datetime) -> Optional[datetime]:
        try:
            month = MONTHS.index(m["month"]) + 1
        except ValueError:
            return None
        try:
            stamp = now.replace(month=month, day=int(m["day"]), hour=int(m["hour"]),
                                minute=int(m["minute"]), second=int(m["second"]),
                                microsecond=0)
        except ValueError:
            # Feb 29 outside a leap year and similar
            return None
        # syslog omits the year; a line from late December read in January
        # would otherwise land almost a year in the future
        if stamp - now > timedelta(days=1):
            try:
                stamp = stamp.replace(year=stamp.year - 1)
            except ValueError:
                return None
        return stamp

    @staticmethod
    def _iso_time(stamp: str) -> Optional[datetime]:
        try:
            dt = datetime.fromisoformat(stamp.replace("Z", "+00:00"))
        except ValueError:
            return None
        if dt.tzinfo is not None:
            dt = dt.astimezone().replace(tzinfo=None)
        return dt.replace(microsecond=0)

    def _split(self, line: str, now: datetime):
        m = LOG_REGEX.match(line)
        if m:
            return m, self._classic_time(m, now)
        m = ISO_LOG_REGEX.match(line)
        if m:
            return m, self._iso_time(m["stamp"])
        return None, None

    def scan(self, lines: Iterable[str], pid: int,
             not_before: Optional[datetime] = None) -> Optional[LoginEvent]:
        now = self.clock()
        found = None
        for line in lines:
            line = line.rstrip("\r\n")
            m, stamp = self._split(line, now)
            if m is None:
                continue
            if m["process"] != self.sshd_name or int(m["pid"]) != pid:
                continue
            if stamp is None:
                log.warning(f"[AUTHLOG] unparsable timestamp: {line!r}")
                continue
            fields = parse_sshd_message(m["message"])
            if fields is None:
                continue
            if not_before is not None and stamp < not_before:
                log.info(f"[AUTHLOG] ignoring line older than sshd[{pid}]: {stamp.isoformat()}")
                continue
            found = LoginEvent(
                login_time=stamp,
                source_ip=fields["ip"],
                key_type=fields["keytype"],
                fingerprint=fields["fingerprint"],
                user=fields["user"],
            )
        return found

    def lookup(self, pid: int, not_before: Optional[datetime] = None) -> LoginEvent:
        try:
            with open(self.path, "r", encoding="utf-8", errors="replace") as f:
                event = self.scan(f, pid, not_before=not_before)
        except OSError as e:
            raise LoginNotFoundError(f"could not open {self.path}: {e}") from e

        if event is None:
            raise LoginNotFoundError(f"Could not find login of {self.sshd_name}[{pid}] in {self.path}")

        log.info(f"[AUTHLOG] sshd[{pid}] accepted {event.key_type} {event.fingerprint} from {event.source_ip}")
        return event
