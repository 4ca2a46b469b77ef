"""Priority engine.

Turns a snapshot of counts into at most one recommended action. Precedence
is the order of ``PRIORITY_RULES``: the first matching rule wins and every
rule carries a fixed score that decreases down the table.
"""
from __future__ import annotations
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Mapping, Optional, Tuple

from .types import (
    EngineSettings,
    FocusState,
    NextBestActionText,
    Priority,
    PriorityAction,
    PriorityEngineOutput,
    PriorityInput,
    PrioritySource,
)

Predicate = Callable[[PriorityInput, EngineSettings], bool]


@dataclass(frozen=True)
class PriorityRule:
    id: str
    source: PrioritySource
    action: PriorityAction
    score: int
    predicate: Predicate
    reason: str
    title: str
    description: str
    href: str

    def build(self, inp: PriorityInput) -> Priority:
        values = dict(inp.__dict__)
        values["focus_state"] = inp.focus_state.value
        return Priority(
            id=self.id,
            source=self.source,
            action=self.action,
            score=self.score,
            reason=self.reason.format(**values),
            title=self.title,
            description=self.description,
            href=self.href,
        )


def _loops_over_threshold(inp: PriorityInput, st: EngineSettings) -> bool:
    return inp.open_loops_count > st.open_loops_threshold


def _nothing_outstanding(inp: PriorityInput, st: EngineSettings) -> bool:
    return not (
        inp.trust_violations
        or _loops_over_threshold(inp, st)
        or inp.urgent_message_count
        or inp.calendar_conflicts
        or inp.upcoming_deadlines
    )


PRIORITY_RULES: Tuple[PriorityRule, ...] = (
    PriorityRule(
        id="trust_violation",
        source=PrioritySource.TRUST_BOUNDARY,
        action=PriorityAction.HANDLE_URGENT,
        score=100,
        predicate=lambda inp, st: inp.trust_violations > 0,
        reason="{trust_violations} attempted action(s) exceeded granted authority",
        title="Review flagged items",
        description="Items need your approval before proceeding.",
        href="/#trust-review",
    ),
    PriorityRule(
        id="open_loops",
        source=PrioritySource.INBOX_LOOP,
        action=PriorityAction.CLOSE_LOOPS,
        score=90,
        predicate=_loops_over_threshold,
        reason="{open_loops_count} open loop(s) awaiting closure",
        title="Clear open loops",
        description="Close what's unfinished so your mind is quiet.",
        href="/open-loops",
    ),
    PriorityRule(
        id="urgent_messages",
        source=PrioritySource.INBOX_LOOP,
        action=PriorityAction.HANDLE_URGENT,
        score=80,
        predicate=lambda inp, st: inp.urgent_message_count > 0,
        reason="{urgent_message_count} unread high-priority message(s)",
        title="Handle urgent messages",
        description="Reply fast to what matters, then move on.",
        href="/communication",
    ),
    PriorityRule(
        id="calendar_conflict",
        source=PrioritySource.CALENDAR,
        action=PriorityAction.RESOLVE_CONFLICT,
        score=70,
        predicate=lambda inp, st: inp.calendar_conflicts > 0,
        reason="{calendar_conflicts} overlapping commitment(s)",
        title="Resolve schedule conflict",
        description="You have overlapping commitments.",
        href="/communication",
    ),
    PriorityRule(
        id="deadlines",
        source=PrioritySource.CALENDAR,
        action=PriorityAction.HANDLE_URGENT,
        score=60,
        predicate=lambda inp, st: inp.upcoming_deadlines > 0,
        reason="{upcoming_deadlines} task(s) due today",
        title="Review upcoming deadlines",
        description="Tasks due soon need attention.",
        href="/communication",
    ),
    PriorityRule(
        id="focus_active",
        source=PrioritySource.FOCUS,
        action=PriorityAction.CONTINUE_FOCUS,
        score=50,
        predicate=lambda inp, st: inp.focus_state is FocusState.ACTIVE,
        reason="focus session in progress ({focus_minutes_today} min today)",
        title="Continue focus session",
        description="You have an active session.",
        href="/focus",
    ),
    PriorityRule(
        id="start_focus",
        source=PrioritySource.FOCUS,
        action=PriorityAction.START_FOCUS,
        score=40,
        predicate=lambda inp, st: inp.focus_state is FocusState.DEFERRED and _nothing_outstanding(inp, st),
        reason="deferred focus session and nothing outstanding",
        title="Start focus session",
        description="With everything handled, lock in.",
        href="/focus",
    ),
    PriorityRule(
        id="take_break",
        source=PrioritySource.FOCUS,
        action=PriorityAction.TAKE_BREAK,
        score=30,
        predicate=lambda inp, st: (
            inp.focus_state is FocusState.COMPLETED
            and inp.focus_minutes_today >= st.break_after_minutes
            and _nothing_outstanding(inp, st)
        ),
        reason="{focus_minutes_today} focused minutes completed today",
        title="Take a break",
        description="You've done the deep work. Step away for a few minutes.",
        href="/",
    ),
)

ACTION_LABELS: Mapping[PriorityAction, Mapping[str, str]] = MappingProxyType({
    PriorityAction.CLOSE_LOOPS: MappingProxyType({"title": "Close open loops", "cta": "Close loops"}),
    PriorityAction.HANDLE_URGENT: MappingProxyType({"title": "Handle urgent messages", "cta": "Reply now"}),
    PriorityAction.RESOLVE_CONFLICT: MappingProxyType({"title": "Resolve calendar conflict", "cta": "Review"}),
    PriorityAction.START_FOCUS: MappingProxyType({"title": "Start focus session", "cta": "Start focus"}),
    PriorityAction.CONTINUE_FOCUS: MappingProxyType({"title": "Continue focus session", "cta": "Continue"}),
    PriorityAction.TAKE_BREAK: MappingProxyType({"title": "Take a break", "cta": "Take break"}),
})

ACTION_ROUTES: Mapping[PriorityAction, str] = MappingProxyType({
    PriorityAction.CLOSE_LOOPS: "/open-loops",
    PriorityAction.HANDLE_URGENT: "/communication",
    PriorityAction.RESOLVE_CONFLICT: "/communication",
    PriorityAction.START_FOCUS: "/focus",
    PriorityAction.CONTINUE_FOCUS: "/focus",
    PriorityAction.TAKE_BREAK: "/",
})

WHY_EXPLANATIONS: Mapping[PriorityAction, str] = MappingProxyType({
    PriorityAction.CLOSE_LOOPS: "Unfinished items fragment attention. Closing them first clears mental bandwidth for deeper work.",
    PriorityAction.HANDLE_URGENT: "High-priority items waiting too long erode trust. A quick reply now prevents larger problems.",
    PriorityAction.RESOLVE_CONFLICT: "Overlapping commitments only get harder to untangle the closer they get.",
    PriorityAction.START_FOCUS: "With communications handled, this is your window for undistracted, high-value work.",
    PriorityAction.CONTINUE_FOCUS: "Momentum is expensive to rebuild. Staying in the session protects the work already done.",
    PriorityAction.TAKE_BREAK: "Recovery after a long stretch of focus keeps the next session sharp.",
})

REASSURANCE_MESSAGES: Tuple[str, ...] = (
    "Nothing urgent needs your attention.",
    "Your assistant is monitoring everything.",
    "You're clear. We'll interrupt only if it matters.",
    "All loops are closed.",
)

CLEAR_GUIDANCE = "You're clear. I'll keep watch."


def reassurance_for(hour: Optional[int] = None) -> str:
    if hour is None:
        return REASSURANCE_MESSAGES[0]
    return REASSURANCE_MESSAGES[int(hour) % len(REASSURANCE_MESSAGES)]


def compute_priorities(
    inputs: PriorityInput,
    settings: Optional[EngineSettings] = None,
    *,
    hour: Optional[int] = None,
) -> PriorityEngineOutput:
    """Evaluate every rule against ``inputs`` and pick the first match.

    ``hour`` only rotates the reassurance sentence; without it the output is a
    function of ``inputs`` and ``settings`` alone.
    """
    st = settings or EngineSettings()
    inp = inputs.normalized()
    matched = tuple(rule.build(inp) for rule in PRIORITY_RULES if rule.predicate(inp, st))
    recommendation = matched[0] if matched else None
    return PriorityEngineOutput(
        recommendation=recommendation,
        priorities=matched,
        is_all_clear=recommendation is None,
        reassurance=reassurance_for(hour),
    )


def get_next_best_action_text(output: PriorityEngineOutput) -> NextBestActionText:
    rec = output.recommendation
    if output.is_all_clear or rec is None:
        return NextBestActionText(headline=output.reassurance or REASSURANCE_MESSAGES[0])
    return NextBestActionText(
        headline=rec.title,
        description=rec.description,
        cta=ACTION_LABELS[rec.action]["cta"],
        href=rec.href or ACTION_ROUTES[rec.action],
        why=WHY_EXPLANATIONS[rec.action],
    )


def assistant_guidance(output: PriorityEngineOutput) -> Tuple[bool, str, Optional[PriorityAction]]:
    """What the assistant may say about priorities: (should_speak, message, action)."""
    if output.is_all_clear or output.recommendation is None:
        return False, CLEAR_GUIDANCE, None
    text = get_next_best_action_text(output)
    return True, text.headline, output.recommendation.action
