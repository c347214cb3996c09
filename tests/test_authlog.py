from datetime import datetime

import pytest

from acs_core.authlog import AuthLogCorrelator, parse_sshd_message
from acs_core.errors import LoginNotFoundError
from helpers import accepted_line

FP_A = ":".join(["aa"] * 15 + ["ff"])
FP_B = ":".join(["0b"] * 16)


def correlator(tmp_path, text, clock, name="sshd"):
    path = tmp_path / "auth.log"
    path.write_text(text)
    return AuthLogCorrelator(str(path), name, clock=clock)


def test_lookup_extracts_login(tmp_path, clock):
    c = correlator(tmp_path, accepted_line(1234, FP_A), clock)
    ev = c.lookup(1234)
    assert ev.login_time == datetime(2026, 1, 5, 10, 0, 0)
    assert ev.source_ip == "10.0.0.5"
    assert ev.key_type == "RSA"
    assert ev.fingerprint == FP_A
    assert ev.user == "svc"
    assert ev.login_ts == int(datetime(2026, 1, 5, 10, 0, 0).timestamp())


def test_last_matching_line_wins(tmp_path, clock):
    text = (accepted_line(1234, FP_A, stamp="Jan 05 10:00:00", ip="10.0.0.5")
            + accepted_line(1234, FP_B, stamp="Jan 05 11:30:00", ip="10.0.0.6"))
    ev = correlator(tmp_path, text, clock).lookup(1234)
    assert ev.fingerprint == FP_B
    assert ev.source_ip == "10.0.0.6"
    assert ev.login_time == datetime(2026, 1, 5, 11, 30, 0)


def test_other_pids_and_processes_are_ignored(tmp_path, clock):
    text = (accepted_line(1234, FP_A)
            + accepted_line(4321, FP_B)
            + accepted_line(1234, FP_B, proc="sshd-session"))
    assert correlator(tmp_path, text, clock).lookup(1234).fingerprint == FP_A
    assert correlator(tmp_path, text, clock, name="sshd-session").lookup(1234).fingerprint == FP_B


def test_unknown_pid_raises_login_not_found(tmp_path, clock):
    c = correlator(tmp_path, accepted_line(1234, FP_A), clock)
    with pytest.raises(LoginNotFoundError):
        c.lookup(999)


def test_non_accept_messages_do_not_count(tmp_path, clock):
    text = ("Jan 05 10:00:00 host sshd[1234]: Failed publickey for svc from 10.0.0.5 port 22 ssh2: RSA " + FP_A + "\n"
            "Jan 05 10:00:00 host sshd[1234]: Connection closed by 10.0.0.5 port 22\n"
            "garbage line\n")
    with pytest.raises(LoginNotFoundError):
        correlator(tmp_path, text, clock).lookup(1234)


def test_missing_log_file(tmp_path, clock):
    with pytest.raises(LoginNotFoundError):
        AuthLogCorrelator(str(tmp_path / "nope.log"), clock=clock).lookup(1)


def test_space_padded_day(tmp_path, clock):
    ev = correlator(tmp_path, accepted_line(7, FP_A, stamp="Feb  3 08:15:09"), clock).lookup(7)
    assert ev.login_time == datetime(2026, 2, 3, 8, 15, 9)


def test_year_rollover_uses_previous_year(tmp_path):
    c = correlator(tmp_path, accepted_line(7, FP_A, stamp="Dec 31 23:59:00"),
                   lambda: datetime(2026, 1, 1, 0, 5, 0))
    assert c.lookup(7).login_time == datetime(2025, 12, 31, 23, 59, 0)


def test_sha256_fingerprint_and_ipv6(tmp_path, clock):
    fp = "SHA256:" + "A" * 43
    line = accepted_line(55, fp, keytype="ED25519", ip="2001:db8::1")
    ev = correlator(tmp_path, line, clock).lookup(55)
    assert ev.fingerprint == fp
    assert ev.source_ip == "2001:db8::1"
    assert ev.key_type == "ED25519"


def test_rfc3339_timestamps(tmp_path, clock):
    line = accepted_line(88, FP_A, stamp="2026-01-05T10:00:00.123456")
    ev = correlator(tmp_path, line, clock).lookup(88)
    assert ev.login_time == datetime(2026, 1, 5, 10, 0, 0)


def test_lines_older_than_sshd_are_ignored(tmp_path, clock):
    # the pid was reused: the only line for it predates the running sshd
    c = correlator(tmp_path, accepted_line(1234, FP_A, stamp="Jan 05 10:00:00"), clock)
    with pytest.raises(LoginNotFoundError):
        c.lookup(1234, not_before=datetime(2026, 2, 1, 0, 0, 0))
    assert c.lookup(1234, not_before=datetime(2026, 1, 5, 9, 59, 58)).fingerprint == FP_A


def test_parse_sshd_message():
    assert parse_sshd_message("Accepted password for svc from 1.2.3.4 port 22 ssh2") is None
    fields = parse_sshd_message(f"Accepted publickey for svc from 1.2.3.4 port 2222 ssh2: RSA {FP_A}")
    assert fields["ip"] == "1.2.3.4"
    assert fields["fingerprint"] == FP_A
