"""Cognitive load guardrail.

Every assistant utterance passes through ``apply_cognitive_load_guardrail``
before it is shown or spoken. Rules:

1. No unnecessary questions.
2. Never more than one option.
3. Silence when nothing needs the user.
4. Uncertainty becomes reassurance, not a question.
"""
from __future__ import annotations
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, List, Mapping, Optional, Pattern, Sequence, Tuple, TypeVar

from steward.core.arbiter import GlobalArbiter
from steward.core.engine import get_next_best_action_text
from steward.core.types import FocusState, Priority, PriorityEngineOutput, PriorityInput

logger = logging.getLogger(__name__)

T = TypeVar("T")

UNNECESSARY_QUESTION_PATTERNS: Tuple[Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"would you like me to",
        r"do you want me to",
        r"should I\b",
        r"what would you prefer",
        r"which (one|option) (would you|do you)",
        r"let me know if",
        r"would you prefer",
        r"can I help you with",
        r"is there anything else",
        r"do you need me to",
    )
)

MULTIPLE_OPTION_PATTERNS: Tuple[Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE | re.DOTALL)
    for p in (
        r"option (1|one|a)[:\s].*option (2|two|b)",
        r"you (can|could) either.*\bor\b",
        r"there are (several|multiple|a few) (options|ways|choices)",
        r"first option.*second option",
        r"alternatively,",
        r"on the other hand",
        r"or would you rather",
        r"choose between",
        r"pick one of",
    )
)

OPEN_ENDED_PATTERNS: Tuple[Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE | re.DOTALL)
    for p in (
        r"what do you think",
        r"what would you like",
        r"how would you like",
        r"when would you like",
        r"where should I",
        r"which.*do you want",
        r"\?.*\?",
    )
)

INTERROGATIVE = re.compile(r"\?")
_SENTENCE = re.compile(r"[^.!?]+[.!?]*")

REASSURANCE_PHRASES: Mapping[str, str] = MappingProxyType({
    "handled": "I've got this covered.",
    "monitoring": "I'm keeping an eye on things.",
    "no_action": "Nothing needs your attention right now.",
    "processing": "I'm working on it.",
    "resolved": "All handled.",
    "safe": "Everything looks good.",
    "waiting": "I'll let you know if anything comes up.",
})

HIGH_CONFIDENCE = 0.8
MIN_OUTPUT_CHARS = 10


class ViolationType(str, Enum):
    UNNECESSARY_QUESTION = "unnecessary_question"
    MULTIPLE_OPTIONS = "multiple_options"
    OPEN_ENDED = "open_ended"
    NOT_SILENT = "not_silent"


_SUGGESTIONS: Mapping[ViolationType, str] = MappingProxyType({
    ViolationType.UNNECESSARY_QUESTION: "Make a decision and act, or use reassurance instead.",
    ViolationType.MULTIPLE_OPTIONS: "Select the single best option and present only that.",
    ViolationType.OPEN_ENDED: "Resolve uncertainty internally; if unsure, use reassurance.",
    ViolationType.NOT_SILENT: "Nothing needs the user right now; stay silent.",
})


@dataclass(frozen=True)
class GuardrailViolation:
    type: ViolationType
    pattern: str
    suggestion: str


@dataclass(frozen=True)
class GuardrailContext:
    has_urgent_items: bool = False
    has_user_request: bool = False
    is_in_focus_mode: bool = False
    has_actionable_item: bool = False
    auto_fix: bool = True
    recommendation: Optional[Priority] = None


@dataclass(frozen=True)
class GuardrailResult:
    output: Optional[str]
    was_modified: bool
    was_silent: bool
    violations: Tuple[GuardrailViolation, ...] = field(default_factory=tuple)


def _violations(text: str, patterns: Sequence[Pattern[str]], kind: ViolationType) -> List[GuardrailViolation]:
    return [GuardrailViolation(kind, p.pattern, _SUGGESTIONS[kind]) for p in patterns if p.search(text)]


def detect_unnecessary_questions(text: str) -> List[GuardrailViolation]:
    found = _violations(text, UNNECESSARY_QUESTION_PATTERNS, ViolationType.UNNECESSARY_QUESTION)
    if not found and INTERROGATIVE.search(text):
        found.append(GuardrailViolation(ViolationType.UNNECESSARY_QUESTION, INTERROGATIVE.pattern,
                                        _SUGGESTIONS[ViolationType.UNNECESSARY_QUESTION]))
    return found


def detect_multiple_options(text: str) -> List[GuardrailViolation]:
    return _violations(text, MULTIPLE_OPTION_PATTERNS, ViolationType.MULTIPLE_OPTIONS)


def detect_open_ended_questions(text: str) -> List[GuardrailViolation]:
    return _violations(text, OPEN_ENDED_PATTERNS, ViolationType.OPEN_ENDED)


def should_remain_silent(
    *,
    has_urgent_items: bool,
    has_user_request: bool,
    is_in_focus_mode: bool,
    has_actionable_item: bool,
) -> bool:
    if not has_urgent_items and not has_user_request and not has_actionable_item:
        return True
    # in focus only urgent items get through
    if is_in_focus_mode and not has_urgent_items:
        return True
    return False


def validate_output(text: str, *, has_user_request: bool = False) -> List[GuardrailViolation]:
    """Questions are only a violation when the user did not ask for anything."""
    violations: List[GuardrailViolation] = []
    if not has_user_request:
        violations += detect_unnecessary_questions(text)
    violations += detect_multiple_options(text)
    if not has_user_request:
        violations += detect_open_ended_questions(text)
    return violations


def _is_question(sentence: str) -> bool:
    s = sentence.strip()
    return s.endswith("?") or any(p.search(s) for p in UNNECESSARY_QUESTION_PATTERNS)


def sanitize_output(text: str) -> Optional[str]:
    """Drop question sentences. None means nothing worth saying is left."""
    kept = [s.strip() for s in _SENTENCE.findall(text or "") if s.strip() and not _is_question(s)]
    out = " ".join(kept).strip()
    if len(out) < MIN_OUTPUT_CHARS:
        return None
    return out


def format_clear_response(action: Optional[str] = None, context: Optional[str] = None, is_complete: bool = True) -> str:
    if not action:
        return REASSURANCE_PHRASES["no_action"]
    response = f"{context.rstrip('.')}. {action}" if context else action
    if not is_complete:
        response += f" {REASSURANCE_PHRASES['monitoring']}"
    return response


def resolve_uncertainty(topic: str, confidence_level: float, has_partial_info: bool, *, floor: float = 0.5) -> str:
    """Turn an unresolved question about ``topic`` into a declarative phrase."""
    try:
        confidence = float(confidence_level)
    except (TypeError, ValueError):
        confidence = 0.0
    if confidence != confidence:
        confidence = 0.0
    if confidence >= HIGH_CONFIDENCE:
        return REASSURANCE_PHRASES["handled"]
    if confidence >= floor:
        return REASSURANCE_PHRASES["processing"] if has_partial_info else REASSURANCE_PHRASES["monitoring"]
    return REASSURANCE_PHRASES["waiting"]


def select_single_best_action(options: Sequence[T]) -> Optional[T]:
    """The only way several candidates are collapsed to one for the user."""
    return GlobalArbiter().choose(options)


def _collapse_to_recommendation(rec: Optional[Priority]) -> str:
    if rec is None:
        return REASSURANCE_PHRASES["handled"]
    text = get_next_best_action_text(PriorityEngineOutput(recommendation=rec, priorities=(rec,), is_all_clear=False))
    return format_clear_response(action=text.description, context=text.headline)


def context_for(
    output: PriorityEngineOutput,
    inputs: PriorityInput,
    *,
    has_user_request: bool = False,
    auto_fix: bool = True,
) -> GuardrailContext:
    """Guardrail context derived from an engine evaluation."""
    return GuardrailContext(
        has_urgent_items=bool(inputs.urgent_message_count or inputs.trust_violations),
        has_user_request=has_user_request,
        is_in_focus_mode=inputs.focus_state is FocusState.ACTIVE,
        has_actionable_item=not output.is_all_clear,
        auto_fix=auto_fix,
        recommendation=output.recommendation,
    )


def apply_cognitive_load_guardrail(output: Optional[str], context: Optional[GuardrailContext] = None) -> GuardrailResult:
    ctx = context or GuardrailContext()
    text = output or ""

    if should_remain_silent(
        has_urgent_items=ctx.has_urgent_items,
        has_user_request=ctx.has_user_request,
        is_in_focus_mode=ctx.is_in_focus_mode,
        has_actionable_item=ctx.has_actionable_item,
    ):
        violations: Tuple[GuardrailViolation, ...] = ()
        if text.strip():
            violations = (GuardrailViolation(ViolationType.NOT_SILENT, "", _SUGGESTIONS[ViolationType.NOT_SILENT]),)
        return GuardrailResult(output=None, was_modified=bool(text.strip()), was_silent=True, violations=violations)

    found = tuple(validate_output(text, has_user_request=ctx.has_user_request))
    if not found:
        return GuardrailResult(output=text, was_modified=False, was_silent=False)

    logger.debug("guardrail violations: %s", [v.type.value for v in found])
    if not ctx.auto_fix:
        return GuardrailResult(output=text, was_modified=False, was_silent=False, violations=found)

    if any(v.type is ViolationType.MULTIPLE_OPTIONS for v in found):
        fixed: Optional[str] = _collapse_to_recommendation(ctx.recommendation)
    else:
        fixed = sanitize_output(text) or REASSURANCE_PHRASES["handled"]
    return GuardrailResult(output=fixed, was_modified=True, was_silent=False, violations=found)


def violations_as_records(result: GuardrailResult) -> List[dict[str, Any]]:
    return [{"type": v.type.value, "pattern": v.pattern} for v in result.violations]
