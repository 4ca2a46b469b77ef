from __future__ import annotations
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping

from steward.core.gate import ActionType
from steward.storage import atomic_write_json, read_json_list

# Local side effects against the artifacts state files. Outbound actions
# (messages, scheduling, rewards) are queued in outbox.json for a delivery
# worker; nothing here talks to a remote service.

Handler = Callable[[Path, Dict[str, Any]], Any]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _update(path: Path, fn: Callable[[List[Dict[str, Any]]], Any]) -> Any:
    items = read_json_list(path)
    result = fn(items)
    atomic_write_json(path, items)
    return result


def create_task(root: Path, payload: Dict[str, Any]) -> Dict[str, Any]:
    title = str(payload.get("title") or "").strip()
    if not title:
        raise ValueError("a task needs a title")
    task = {
        "id": str(payload.get("id") or uuid.uuid4()),
        "title": title,
        "status": "open",
        "due_date": payload.get("due_date"),
        "created_at": _now(),
    }
    _update(root / "tasks.json", lambda items: items.append(task))
    return task


def _task_index(items: List[Dict[str, Any]], task_id: Any) -> int:
    for i, t in enumerate(items):
        if t.get("id") == task_id:
            return i
    raise KeyError(f"no task {task_id!r}")


def update_task(root: Path, payload: Dict[str, Any]) -> Dict[str, Any]:
    fields = {k: v for k, v in payload.items() if k in ("title", "status", "due_date")}

    def apply(items):
        i = _task_index(items, payload.get("id"))
        items[i] = {**items[i], **fields, "updated_at": _now()}
        return items[i]

    return _update(root / "tasks.json", apply)


def delete_task(root: Path, payload: Dict[str, Any]) -> Dict[str, Any]:
    return _update(root / "tasks.json", lambda items: items.pop(_task_index(items, payload.get("id"))))


def start_focus_session(root: Path, payload: Dict[str, Any]) -> Dict[str, Any]:
    session = {"id": str(uuid.uuid4()), "start_time": _now(), "end_time": None, "status": "active"}
    if payload.get("label"):
        session["label"] = str(payload["label"])
    _update(root / "focus_sessions.json", lambda items: items.append(session))
    return session


def complete_focus_session(root: Path, payload: Dict[str, Any]) -> Dict[str, Any]:
    def apply(items):
        for s in reversed(items):
            if s.get("status") == "active" and (not payload.get("id") or s.get("id") == payload["id"]):
                s.update(end_time=_now(), status="completed")
                return s
        raise KeyError("no active focus session")

    return _update(root / "focus_sessions.json", apply)


def queue_outbound(action: ActionType) -> Handler:
    def handler(root: Path, payload: Dict[str, Any]) -> Dict[str, Any]:
        item = {"qid": str(uuid.uuid4()), "action": action.value, "payload": dict(payload),
                "status": "pending", "queued_at": _now()}
        _update(root / "outbox.json", lambda items: items.append(item))
        return item
    return handler


def _noop(root: Path, payload: Dict[str, Any]) -> Dict[str, Any]:
    return {}


HANDLERS: Mapping[ActionType, Handler] = {
    ActionType.CREATE_TASK: create_task,
    ActionType.UPDATE_TASK: update_task,
    ActionType.DELETE_TASK: delete_task,
    ActionType.START_FOCUS_SESSION: start_focus_session,
    ActionType.COMPLETE_FOCUS_SESSION: complete_focus_session,
    ActionType.SUGGEST: _noop,
    ActionType.ANALYZE: _noop,
    **{a: queue_outbound(a) for a in (
        ActionType.SEND_MESSAGE,
        ActionType.ARCHIVE_MESSAGE,
        ActionType.SCHEDULE_ACTION,
        ActionType.AUTO_REPLY,
        ActionType.DRAFT_REPLY,
        ActionType.CLAIM_UCT,
        ActionType.SPEND_UCT,
    )},
}
