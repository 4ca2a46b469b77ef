from __future__ import annotations
import asyncio
import logging
from datetime import date, datetime, timezone
from typing import Any, Awaitable, Dict, Iterable, List, Optional, Protocol, Tuple

from steward.core.ledger import Ledger
from steward.core.types import FocusState, PriorityInput

logger = logging.getLogger(__name__)

CLOSED_TASK_STATUSES = frozenset({"done", "completed", "archived", "delegated", "ignored", "scheduled"})


class SignalSources(Protocol):
    async def fetch_inbox(self) -> Dict[str, Any]:
        ...

    async def fetch_calendar(self) -> Dict[str, Any]:
        ...

    async def fetch_tasks(self) -> List[Dict[str, Any]]:
        ...

    async def fetch_focus_sessions(self) -> List[Dict[str, Any]]:
        ...

    async def fetch_trust_violations(self) -> int:
        ...


def _parse_ts(ts: Any) -> Optional[datetime]:
    if not ts or not isinstance(ts, str):
        return None
    if ts.endswith("Z"):
        ts = ts[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(ts)
    except ValueError:
        return None


def _threads(inbox_state: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return list((inbox_state or {}).get("threads", []) or [])


def count_urgent(inbox_state: Optional[Dict[str, Any]]) -> int:
    return sum(
        1 for th in _threads(inbox_state)
        if th.get("unread") and (th.get("important") or th.get("priority") == "high")
    )


def _task_open(task: Dict[str, Any]) -> bool:
    return not task.get("completed") and str(task.get("status", "")).lower() not in CLOSED_TASK_STATUSES


def count_open_loops(inbox_state: Optional[Dict[str, Any]], tasks: Iterable[Dict[str, Any]] = ()) -> int:
    awaiting = sum(1 for th in _threads(inbox_state) if th.get("awaiting_reply", th.get("unread")))
    drafts = len((inbox_state or {}).get("drafts", []) or [])
    return awaiting + drafts + sum(1 for t in tasks if _task_open(t))


def _naive_utc(ts: datetime) -> datetime:
    # mixed aware and naive timestamps must stay comparable
    return ts.astimezone(timezone.utc).replace(tzinfo=None) if ts.tzinfo else ts


def _interval(ev: Dict[str, Any]) -> Optional[Tuple[datetime, datetime]]:
    # all-day events (date only) never conflict
    start, end = _parse_ts(ev.get("start")), _parse_ts(ev.get("end"))
    if not start or not end or len(ev.get("start", "")) <= 10:
        return None
    start, end = _naive_utc(start), _naive_utc(end)
    if end <= start:
        return None
    return start, end


def count_calendar_conflicts(calendar_state: Optional[Dict[str, Any]]) -> int:
    spans = sorted(
        (iv for iv in (_interval(ev) for ev in (calendar_state or {}).get("events", []) or []) if iv),
        key=lambda iv: iv[0],
    )
    conflicts = 0
    for i, (start_a, end_a) in enumerate(spans):
        for start_b, _ in spans[i + 1:]:
            if start_b >= end_a:
                break
            conflicts += 1
    return conflicts


def _on_day(ts: Any, today: date) -> bool:
    parsed = _parse_ts(ts)
    if parsed:
        return parsed.date() == today
    return isinstance(ts, str) and ts[:10] == today.isoformat()


def count_deadlines(tasks: Iterable[Dict[str, Any]], today: date) -> int:
    return sum(1 for t in tasks if _task_open(t) and _on_day(t.get("due_date"), today))


def _today_sessions(sessions: Iterable[Dict[str, Any]], today: date) -> List[Dict[str, Any]]:
    return [s for s in sessions if _on_day(s.get("start_time"), today)]


def focus_state_from_sessions(sessions: Iterable[Dict[str, Any]], today: date) -> FocusState:
    todays = _today_sessions(sessions, today)
    if any(not s.get("is_completed") and not s.get("end_time") and not s.get("deferred") for s in todays):
        return FocusState.ACTIVE
    if any(s.get("is_completed") for s in todays):
        return FocusState.COMPLETED
    if any(s.get("deferred") for s in todays):
        return FocusState.DEFERRED
    return FocusState.IDLE


def focus_minutes_today(sessions: Iterable[Dict[str, Any]], today: date) -> int:
    total = 0.0
    for s in _today_sessions(sessions, today):
        if s.get("duration_minutes") is not None:
            try:
                total += max(0.0, float(s["duration_minutes"]))
            except (TypeError, ValueError):
                continue
            continue
        start, end = _parse_ts(s.get("start_time")), _parse_ts(s.get("end_time"))
        if start and end and end > start:
            total += (end - start).total_seconds() / 60.0
    return int(total)


def count_trust_violations(ledger: Optional[Ledger]) -> int:
    if ledger is None:
        return 0
    return ledger.count("trust_violation", since_kind="trust_review")


async def _guarded(name: str, aw: Awaitable[Any], timeout_s: float) -> Any:
    try:
        return await asyncio.wait_for(aw, timeout_s)
    except asyncio.TimeoutError:
        logger.warning("signal source %s timed out after %.1fs", name, timeout_s)
    except Exception as e:  # any collaborator failure degrades to "nothing outstanding"
        logger.warning("signal source %s failed: %s", name, e)
    return None


async def collect_priority_input(
    sources: SignalSources,
    *,
    today: Optional[date] = None,
    timeout_s: float = 5.0,
) -> PriorityInput:
    today = today or date.today()
    inbox, calendar, tasks, sessions, violations = await asyncio.gather(
        _guarded("inbox", sources.fetch_inbox(), timeout_s),
        _guarded("calendar", sources.fetch_calendar(), timeout_s),
        _guarded("tasks", sources.fetch_tasks(), timeout_s),
        _guarded("focus_sessions", sources.fetch_focus_sessions(), timeout_s),
        _guarded("trust_violations", sources.fetch_trust_violations(), timeout_s),
    )
    tasks = tasks if isinstance(tasks, list) else []
    sessions = sessions if isinstance(sessions, list) else []
    inbox = inbox if isinstance(inbox, dict) else {}
    calendar = calendar if isinstance(calendar, dict) else {}
    return PriorityInput.coerce(
        open_loops_count=count_open_loops(inbox, tasks),
        urgent_message_count=count_urgent(inbox),
        calendar_conflicts=count_calendar_conflicts(calendar),
        upcoming_deadlines=count_deadlines(tasks, today),
        focus_state=focus_state_from_sessions(sessions, today),
        focus_minutes_today=focus_minutes_today(sessions, today),
        trust_violations=violations,
    )
