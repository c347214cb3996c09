from datetime import datetime

import pytest

from acs_core.ancestry import SshdProcess
from acs_core.config import Settings
from acs_core.storage import SQLiteStorage

from helpers import accepted_line, b64, make_blob, md5_fp


FIXED_NOW = datetime(2026, 3, 1, 12, 0, 0)


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def alice_key():
    raw = make_blob(body=b"alice-" + bytes(26))
    return {"raw": raw, "b64": b64(raw), "fp": md5_fp(raw)}


@pytest.fixture
def other_key():
    raw = make_blob(body=b"bob---" + bytes(26))
    return {"raw": raw, "b64": b64(raw), "fp": md5_fp(raw)}


@pytest.fixture
def deployment(tmp_path, alice_key, other_key):
    """auth.log, authorized_keys, database and state dir of the reference scenario."""
    authlog = tmp_path / "auth.log"
    authlog.write_text(
        "Jan 05 09:59:58 host CRON[99]: pam_unix(cron:session): session opened\n"
        + accepted_line(1234, alice_key["fp"])
        + "Jan 05 10:00:01 host sshd[1234]: pam_unix(sshd:session): session opened for user svc\n"
    )
    keyfile = tmp_path / "authorized_keys"
    keyfile.write_text(
        f"ssh-ed25519 {other_key['b64']} bob@desktop\n"
        f"ssh-ed25519 {alice_key['b64']} alice@laptop\n"
    )
    db = tmp_path / "db" / "acs.sqlite"
    store = SQLiteStorage(str(db))
    store.add_user("alice", firstname="Alice", user_id=7)
    store.add_user("bob", user_id=8)

    settings = Settings(
        ssh_logfile=str(authlog),
        ssh_keyfile=str(keyfile),
        database=str(db),
        statedir=str(tmp_path / "state"),
    )
    yield {"settings": settings, "store": store, "tmp_path": tmp_path,
           "authlog": authlog, "keyfile": keyfile}
    store.close()


@pytest.fixture
def fake_sshd():
    def find(sshd_name="sshd", pid=None, monitor_hop=False):
        return SshdProcess(pid=1234, name=sshd_name, started_at=0)
    return find


@pytest.fixture(autouse=True)
def reset_acs_logger():
    """The CLI installs handlers on the ACS logger; drop them between tests."""
    import logging
    yield
    logger = logging.getLogger("ACS")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
