import logging, os

import pytest

from acs_core.commands import Door, Mode
from acs_core.errors import StateWriteError
from acs_core.state import StateProjector


def test_set_status_round_trip(tmp_path):
    p = StateProjector(str(tmp_path / "state"))
    p.set_status(Mode.MEMBER, "m")
    state = p.read()
    assert state.status == "member"
    assert state.message == "m"
    assert (tmp_path / "state" / "status").read_text() == "member\n"


def test_set_status_writes_keyholder(tmp_path):
    p = StateProjector(str(tmp_path))
    p.set_status(Mode.KEYHOLDER, "on site", keyholder_id=7, keyholder_name="alice")
    state = p.read()
    assert state.keyholder_id == 7
    assert state.keyholder_name == "alice"
    assert (tmp_path / "keyholder-id").read_text() == "7\n"


def test_set_status_without_keyholder_keeps_previous(tmp_path):
    p = StateProjector(str(tmp_path))
    p.set_status(Mode.KEYHOLDER, "", keyholder_id=7, keyholder_name="alice")
    p.set_status(Mode.OPEN, "party")
    state = p.read()
    assert state.keyholder_name == "alice"
    assert state.status == "open"


def test_next_status_and_clear(tmp_path):
    p = StateProjector(str(tmp_path))
    p.set_status(Mode.MEMBER, "now")
    p.set_next_status(Mode.NONE, "closing at 22:00")
    state = p.read()
    assert state.status == "member"
    assert state.status_next == "none"
    assert state.message == "closing at 22:00"

    p.set_next_status(None)
    assert (tmp_path / "status-next").read_text() == "\n"
    assert p.read().status_next == ""


def test_open_door_marker(tmp_path):
    p = StateProjector(str(tmp_path))
    p.open_door(Door.GLASS)
    assert (tmp_path / "open-door").read_text() == "glass\n"
    assert p.read().open_door == "glass"


def test_read_missing_directory(tmp_path):
    state = StateProjector(str(tmp_path / "nothing")).read()
    assert state.status is None and state.keyholder_id is None


def test_staged_files_are_invisible_until_commit(tmp_path):
    p = StateProjector(str(tmp_path))
    p.set_status(Mode.NONE, "closed")
    p.stage_status(Mode.OPEN, "open!")
    assert p.read().status == "none"
    p.commit()
    assert p.read().status == "open"
    assert [n for n in os.listdir(tmp_path) if n.startswith(".")] == []


def test_discard_removes_temp_files(tmp_path):
    p = StateProjector(str(tmp_path))
    p.stage_open_door(Door.MAIN)
    p.discard()
    assert os.listdir(tmp_path) == []


def test_unwritable_statedir(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("")
    with pytest.raises(StateWriteError):
        StateProjector(str(blocker / "state")).set_status(Mode.OPEN, "")


def test_partial_commit_names_written_files(tmp_path, monkeypatch, caplog):
    p = StateProjector(str(tmp_path))
    p.stage("status", "open")
    p.stage("message", "hello")

    real_replace = os.replace
    calls = []

    def flaky_replace(src, dst):
        calls.append(dst)
        if len(calls) == 2:
            raise OSError("disk full")
        real_replace(src, dst)

    monkeypatch.setattr(os, "replace", flaky_replace)
    with caplog.at_level(logging.ERROR, logger="ACS.State"):
        with pytest.raises(StateWriteError) as exc:
            p.commit()

    assert "already written: status" in str(exc.value)
    assert "written=['status'] discarded=['message']" in caplog.text
    assert sorted(os.listdir(tmp_path)) == ["status"]
