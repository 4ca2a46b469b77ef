from __future__ import annotations
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

logger = logging.getLogger(__name__)


class Urgency(str, Enum):
    CRITICAL = "critical"
    TIME_SENSITIVE = "time_sensitive"
    INFORMATIONAL = "informational"


class InterruptionPreference(str, Enum):
    MINIMAL = "minimal"
    TIME_SENSITIVE = "time_sensitive"
    BALANCED = "balanced"


def should_allow_interruption(
    urgency: Urgency,
    *,
    in_focus: bool,
    preference: InterruptionPreference = InterruptionPreference.MINIMAL,
) -> bool:
    if urgency is Urgency.CRITICAL:
        return True
    if in_focus:
        # informational items never break a session
        return urgency is Urgency.TIME_SENSITIVE and preference is InterruptionPreference.BALANCED
    if preference is InterruptionPreference.MINIMAL:
        return False
    if preference is InterruptionPreference.TIME_SENSITIVE:
        return urgency is Urgency.TIME_SENSITIVE
    return True


@dataclass
class QueuedItem:
    title: str
    urgency: Urgency
    queued_at: datetime
    handled: bool = False


@dataclass(frozen=True)
class FocusSummary:
    session_id: str
    duration_minutes: int
    items_received: int
    items_handled: int
    items_deferred: int
    items_needing_attention: int
    interruptions_blocked: int


@dataclass
class FocusProtection:
    """Holds back non-urgent items while a focus session runs."""

    preference: InterruptionPreference = InterruptionPreference.MINIMAL
    session_id: Optional[str] = None
    started_at: Optional[datetime] = None
    queue: List[QueuedItem] = field(default_factory=list)
    blocked: int = 0

    @property
    def in_focus(self) -> bool:
        return self.session_id is not None

    def enter(self, session_id: str, now: Optional[datetime] = None) -> None:
        self.session_id = session_id
        self.started_at = now or datetime.now(timezone.utc)
        self.queue = []
        self.blocked = 0

    def offer(self, title: str, urgency: Urgency, now: Optional[datetime] = None) -> bool:
        """True when the item may interrupt now; otherwise it is queued."""
        if should_allow_interruption(urgency, in_focus=self.in_focus, preference=self.preference):
            return True
        self.queue.append(QueuedItem(title=title, urgency=urgency, queued_at=now or datetime.now(timezone.utc)))
        self.blocked += 1
        return False

    def mark_handled(self, index: int) -> None:
        self.queue[index].handled = True

    def exit(self, now: Optional[datetime] = None) -> FocusSummary:
        now = now or datetime.now(timezone.utc)
        minutes = int((now - self.started_at).total_seconds() // 60) if self.started_at else 0
        handled = sum(1 for q in self.queue if q.handled)
        pending = [q for q in self.queue if not q.handled]
        summary = FocusSummary(
            session_id=self.session_id or "",
            duration_minutes=max(0, minutes),
            items_received=len(self.queue),
            items_handled=handled,
            items_deferred=sum(1 for q in pending if q.urgency is not Urgency.CRITICAL),
            items_needing_attention=sum(1 for q in pending if q.urgency is Urgency.TIME_SENSITIVE),
            interruptions_blocked=self.blocked,
        )
        logger.info("focus session %s ended: %d item(s) held back", summary.session_id, summary.interruptions_blocked)
        self.session_id = None
        self.started_at = None
        return summary
