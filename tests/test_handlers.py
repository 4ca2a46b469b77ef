import json

import pytest

from steward.core.gate import ActionType
from steward_exec.handlers import (
    HANDLERS,
    complete_focus_session,
    create_task,
    delete_task,
    start_focus_session,
    update_task,
)


def _read(path):
    return json.loads(path.read_text(encoding="utf-8"))


def test_every_action_has_a_handler():
    assert set(HANDLERS) == set(ActionType)


def test_task_lifecycle(tmp_path):
    task = create_task(tmp_path, {"title": " Pay rent ", "due_date": "2026-10-17"})
    assert task["title"] == "Pay rent"
    assert task["status"] == "open"

    update_task(tmp_path, {"id": task["id"], "status": "done", "owner": "ignored"})
    [saved] = _read(tmp_path / "tasks.json")
    assert saved["status"] == "done"
    assert "owner" not in saved

    delete_task(tmp_path, {"id": task["id"]})
    assert _read(tmp_path / "tasks.json") == []


def test_task_errors(tmp_path):
    with pytest.raises(ValueError):
        create_task(tmp_path, {"title": "  "})
    with pytest.raises(KeyError):
        delete_task(tmp_path, {"id": "nope"})


def test_focus_session_start_and_complete(tmp_path):
    s = start_focus_session(tmp_path, {"label": "deep work"})
    assert s["status"] == "active" and s["end_time"] is None
    done = complete_focus_session(tmp_path, {})
    assert done["id"] == s["id"]
    assert done["status"] == "completed" and done["end_time"]
    with pytest.raises(KeyError):
        complete_focus_session(tmp_path, {})


def test_outbound_actions_are_queued(tmp_path):
    item = HANDLERS[ActionType.SEND_MESSAGE](tmp_path, {"to": "a@b.c", "body": "hi"})
    assert item["status"] == "pending"
    [queued] = _read(tmp_path / "outbox.json")
    assert queued["action"] == "sendMessage"
    assert queued["payload"] == {"to": "a@b.c", "body": "hi"}
    assert HANDLERS[ActionType.ANALYZE](tmp_path, {}) == {}
