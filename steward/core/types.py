from __future__ import annotations
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Tuple


class FocusState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"
    DEFERRED = "deferred"
    COMPLETED = "completed"


class PriorityAction(str, Enum):
    CLOSE_LOOPS = "close_loops"
    HANDLE_URGENT = "handle_urgent"
    RESOLVE_CONFLICT = "resolve_conflict"
    START_FOCUS = "start_focus"
    CONTINUE_FOCUS = "continue_focus"
    TAKE_BREAK = "take_break"


class PrioritySource(str, Enum):
    INBOX_LOOP = "inbox_loop"
    CALENDAR = "calendar"
    FOCUS = "focus"
    TRUST_BOUNDARY = "trust_boundary"


def _count(value: Any) -> int:
    if value is None or isinstance(value, bool):
        return 0
    try:
        n = float(value)
    except (TypeError, ValueError):
        return 0
    if math.isnan(n) or n <= 0:
        return 0
    if math.isinf(n):
        return 2**31 - 1
    return int(n)


def _focus_state(value: Any) -> FocusState:
    if isinstance(value, FocusState):
        return value
    try:
        return FocusState(str(value).strip().lower())
    except ValueError:
        return FocusState.IDLE


@dataclass(frozen=True)
class PriorityInput:
    open_loops_count: int = 0
    urgent_message_count: int = 0
    calendar_conflicts: int = 0
    upcoming_deadlines: int = 0
    focus_state: FocusState = FocusState.IDLE
    focus_minutes_today: int = 0
    trust_violations: int = 0

    @classmethod
    def coerce(cls, **raw: Any) -> "PriorityInput":
        """Build an input from loosely typed values.

        Missing, negative or non-numeric counts become 0 and an unknown focus
        state becomes ``idle``. Unrecognised keys are ignored.
        """
        return cls(
            open_loops_count=_count(raw.get("open_loops_count")),
            urgent_message_count=_count(raw.get("urgent_message_count")),
            calendar_conflicts=_count(raw.get("calendar_conflicts")),
            upcoming_deadlines=_count(raw.get("upcoming_deadlines")),
            focus_state=_focus_state(raw.get("focus_state")),
            focus_minutes_today=_count(raw.get("focus_minutes_today")),
            trust_violations=_count(raw.get("trust_violations")),
        )

    def normalized(self) -> "PriorityInput":
        return PriorityInput.coerce(**self.__dict__)

    @property
    def has_outstanding(self) -> bool:
        return bool(
            self.trust_violations
            or self.open_loops_count
            or self.urgent_message_count
            or self.calendar_conflicts
            or self.upcoming_deadlines
        )


@dataclass(frozen=True)
class EngineSettings:
    open_loops_threshold: int = 0
    break_after_minutes: int = 90


@dataclass(frozen=True)
class Priority:
    id: str
    source: PrioritySource
    action: PriorityAction
    score: int
    reason: str
    title: str
    description: str
    href: str = ""


@dataclass(frozen=True)
class PriorityEngineOutput:
    recommendation: Optional[Priority]
    # internal ranking, never rendered as a list
    priorities: Tuple[Priority, ...] = field(default_factory=tuple)
    is_all_clear: bool = True
    reassurance: str = ""


@dataclass(frozen=True)
class NextBestActionText:
    headline: str
    description: str = ""
    cta: str = ""
    href: str = ""
    why: str = ""
