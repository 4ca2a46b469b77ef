from datetime import datetime, timedelta, timezone

import pytest

from steward.core.engine import compute_priorities
from steward.core.types import PriorityInput
from steward.guardrail.cognitive_load import (
    REASSURANCE_PHRASES,
    GuardrailContext,
    ViolationType,
    apply_cognitive_load_guardrail,
    context_for,
    format_clear_response,
    resolve_uncertainty,
    sanitize_output,
    select_single_best_action,
    should_remain_silent,
    validate_output,
)
from steward.guardrail.interruptions import (
    FocusProtection,
    InterruptionPreference,
    Urgency,
    should_allow_interruption,
)

SPEAK = GuardrailContext(has_actionable_item=True)


@pytest.mark.parametrize("focus", [True, False])
def test_silent_when_nothing_needs_the_user(focus):
    assert should_remain_silent(has_urgent_items=False, has_user_request=False,
                                is_in_focus_mode=focus, has_actionable_item=False)


def test_focus_mode_only_speaks_for_urgent():
    assert should_remain_silent(has_urgent_items=False, has_user_request=True,
                                is_in_focus_mode=True, has_actionable_item=True)
    assert not should_remain_silent(has_urgent_items=True, has_user_request=False,
                                    is_in_focus_mode=True, has_actionable_item=False)


def test_silence_suppresses_text_and_flags_it():
    res = apply_cognitive_load_guardrail("Just checking in!", GuardrailContext())
    assert res.output is None
    assert res.was_silent
    assert res.was_modified
    assert [v.type for v in res.violations] == [ViolationType.NOT_SILENT]


def test_silence_with_empty_text_is_not_a_modification():
    res = apply_cognitive_load_guardrail("", GuardrailContext())
    assert res.was_silent
    assert not res.was_modified
    assert res.violations == ()


def test_clean_statement_passes_unchanged():
    res = apply_cognitive_load_guardrail("Your 3pm moved to 4pm.", SPEAK)
    assert res.output == "Your 3pm moved to 4pm."
    assert not res.was_modified
    assert res.violations == ()


def test_unnecessary_question_is_removed():
    res = apply_cognitive_load_guardrail("I archived the newsletters. Would you like me to archive more?", SPEAK)
    assert res.was_modified
    assert res.output == "I archived the newsletters."
    assert ViolationType.UNNECESSARY_QUESTION in {v.type for v in res.violations}


def test_question_only_output_becomes_reassurance():
    res = apply_cognitive_load_guardrail("Should I do it?", SPEAK)
    assert res.output == REASSURANCE_PHRASES["handled"]


def test_multiple_options_collapse_to_recommendation():
    out = compute_priorities(PriorityInput(urgent_message_count=2))
    ctx = context_for(out, PriorityInput(urgent_message_count=2))
    res = apply_cognitive_load_guardrail("You could either reply now or wait until tomorrow.", ctx)
    assert res.was_modified
    assert ViolationType.MULTIPLE_OPTIONS in {v.type for v in res.violations}
    assert res.output.startswith("Handle urgent messages.")
    assert " or " not in res.output


def test_multiple_options_without_recommendation_reassure():
    res = apply_cognitive_load_guardrail("Option 1: archive. Option 2: snooze.", SPEAK)
    assert res.output == REASSURANCE_PHRASES["handled"]


def test_auto_fix_off_only_flags():
    ctx = GuardrailContext(has_actionable_item=True, auto_fix=False)
    res = apply_cognitive_load_guardrail("Should I archive this?", ctx)
    assert res.output == "Should I archive this?"
    assert not res.was_modified
    assert res.violations


def test_questions_allowed_when_user_asked():
    assert validate_output("Do you want me to send it?", has_user_request=True) == []
    assert validate_output("Do you want me to send it?")


def test_multiple_options_flagged_even_on_request():
    found = validate_output("There are several options here.", has_user_request=True)
    assert [v.type for v in found] == [ViolationType.MULTIPLE_OPTIONS]


def test_sanitize_output_drops_short_remainders():
    assert sanitize_output("Ok. What do you think?") is None


def test_format_clear_response():
    assert format_clear_response() == REASSURANCE_PHRASES["no_action"]
    assert format_clear_response("Reply to Sam.", "Sam is waiting") == "Sam is waiting. Reply to Sam."
    assert format_clear_response("Reply to Sam.", is_complete=False).endswith(REASSURANCE_PHRASES["monitoring"])


def test_resolve_uncertainty_never_asks():
    assert resolve_uncertainty("invoice", 0.9, False) == REASSURANCE_PHRASES["handled"]
    assert resolve_uncertainty("invoice", 0.6, True) == REASSURANCE_PHRASES["processing"]
    assert resolve_uncertainty("invoice", 0.6, False) == REASSURANCE_PHRASES["monitoring"]
    assert resolve_uncertainty("invoice", 0.1, True) == REASSURANCE_PHRASES["waiting"]
    assert resolve_uncertainty("invoice", 0.6, True, floor=0.7) == REASSURANCE_PHRASES["waiting"]
    assert "?" not in resolve_uncertainty("invoice", float("nan"), False)


def test_select_single_best_action():
    options = [{"id": "a", "score": 10}, {"id": "b", "score": 40}, {"id": "c", "score": 40}]
    assert select_single_best_action(options)["id"] == "b"
    assert select_single_best_action([]) is None


def test_context_for_focus_session():
    inputs = PriorityInput.coerce(focus_state="active")
    ctx = context_for(compute_priorities(inputs), inputs)
    assert ctx.is_in_focus_mode
    assert not ctx.has_urgent_items
    assert apply_cognitive_load_guardrail("Continue focus session", ctx).was_silent


def test_interruption_policy():
    assert should_allow_interruption(Urgency.CRITICAL, in_focus=True)
    assert not should_allow_interruption(Urgency.INFORMATIONAL, in_focus=True, preference=InterruptionPreference.BALANCED)
    assert should_allow_interruption(Urgency.TIME_SENSITIVE, in_focus=True, preference=InterruptionPreference.BALANCED)
    assert not should_allow_interruption(Urgency.TIME_SENSITIVE, in_focus=True)
    assert not should_allow_interruption(Urgency.TIME_SENSITIVE, in_focus=False, preference=InterruptionPreference.MINIMAL)
    assert should_allow_interruption(Urgency.TIME_SENSITIVE, in_focus=False, preference=InterruptionPreference.TIME_SENSITIVE)
    assert not should_allow_interruption(Urgency.INFORMATIONAL, in_focus=False, preference=InterruptionPreference.TIME_SENSITIVE)
    assert should_allow_interruption(Urgency.INFORMATIONAL, in_focus=False, preference=InterruptionPreference.BALANCED)


def test_focus_protection_queues_and_summarizes():
    start = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
    fp = FocusProtection()
    fp.enter("s1", now=start)
    assert fp.offer("Server down", Urgency.CRITICAL)
    assert not fp.offer("Newsletter", Urgency.INFORMATIONAL)
    assert not fp.offer("Reply to Sam", Urgency.TIME_SENSITIVE)
    fp.mark_handled(0)
    summary = fp.exit(now=start + timedelta(minutes=50))
    assert summary.duration_minutes == 50
    assert summary.items_received == 2
    assert summary.items_handled == 1
    assert summary.items_needing_attention == 1
    assert summary.interruptions_blocked == 2
    assert not fp.in_focus
