import json
import os

import pytest

from steward.core.gate import (
    ACTION_CONFIG,
    ACTION_EXPLANATIONS,
    BLOCKED_FOR_ANALYSTS,
    CONFIRM_FOR_ANALYSTS,
    ActionType,
    ExecutionGate,
    check_action,
)
from steward.core.roles import (
    AllowedActions,
    AssistantProfile,
    AssistantRole,
    RoleStore,
    TrustBoundaries,
    evaluate_promotion,
)
from steward.errors import UnknownActionError

ANALYST = AssistantRole.ANALYST
OPERATOR = AssistantRole.OPERATOR


def _eligible():
    return evaluate_promotion(unclutter_cycles=3, morning_brief_uses=5, feedback=[True] * 10, lifetime_uct=10)


def test_analyst_cannot_send():
    v = check_action("sendMessage", ANALYST)
    assert not v.allowed
    assert v.blocked_reason == "I can't send messages directly in Analyst mode."
    assert v.suggestion
    assert v.can_suggest_instead


def test_operator_can_send():
    v = check_action("sendMessage", OPERATOR)
    assert v.allowed
    assert not v.requires_confirmation


def test_analyst_create_task_needs_confirmation():
    v = check_action(ActionType.CREATE_TASK, ANALYST)
    assert v.allowed and v.requires_confirmation
    assert v.explanation == ACTION_EXPLANATIONS[ActionType.CREATE_TASK]


def test_suggest_is_always_free():
    for role in (ANALYST, OPERATOR):
        v = check_action("suggest", role)
        assert v.allowed and not v.requires_confirmation


def test_every_block_carries_reason_and_suggestion():
    for act in BLOCKED_FOR_ANALYSTS:
        v = check_action(act, ANALYST)
        assert not v.allowed
        assert v.blocked_reason and v.suggestion


def test_tables_cover_every_action():
    assert set(ACTION_CONFIG) == set(ActionType) == set(ACTION_EXPLANATIONS)
    assert BLOCKED_FOR_ANALYSTS == {ActionType.SEND_MESSAGE, ActionType.AUTO_REPLY}
    assert ActionType.SPEND_UCT in CONFIRM_FOR_ANALYSTS
    assert not BLOCKED_FOR_ANALYSTS & CONFIRM_FOR_ANALYSTS


def test_unknown_action_raises():
    with pytest.raises(UnknownActionError) as e:
        check_action("launchMissiles", OPERATOR)
    assert e.value.action == "launchMissiles"


def test_profile_adds_confirmation_but_never_lifts_block():
    profile = AssistantProfile(role=OPERATOR, trust_boundaries=TrustBoundaries(send_messages=True))
    assert check_action("sendMessage", OPERATOR, profile).requires_confirmation
    lenient = AssistantProfile(allowed_actions=AllowedActions(auto_handle_low_risk=True),
                               trust_boundaries=TrustBoundaries(send_messages=False))
    assert not check_action("autoReply", ANALYST, lenient).allowed


def test_role_pending_policies():
    open_v = check_action("sendMessage", ANALYST, role_pending=True, fail_open=True)
    assert open_v.allowed and open_v.requires_confirmation and open_v.role_pending
    closed_v = check_action("sendMessage", ANALYST, role_pending=True, fail_open=False)
    assert not closed_v.allowed and closed_v.blocked_reason


def test_gate_intercepts_only_blocked_set():
    gate = ExecutionGate(RoleStore())
    assert gate.intercept_execution("sendMessage")
    assert gate.intercept_execution("autoReply")
    assert not gate.intercept_execution("createTask")
    assert not gate.intercept_execution("archiveMessage")
    assert gate.is_analyst() and not gate.is_operator()


def test_gate_while_loading_follows_policy():
    store = RoleStore(loading=True)
    open_gate = ExecutionGate(store, fail_open=True)
    assert not open_gate.intercept_execution("sendMessage")
    assert open_gate.is_operator() and not open_gate.is_analyst()
    closed_gate = ExecutionGate(store, fail_open=False)
    assert closed_gate.intercept_execution("createTask")
    assert not closed_gate.is_operator() and closed_gate.is_analyst()


def test_gate_observes_promotion_immediately():
    store = RoleStore()
    gate = ExecutionGate(store)
    assert not gate.check_action("sendMessage").allowed
    assert store.promote_to_operator(_eligible())
    assert gate.check_action("sendMessage").allowed
    assert not gate.intercept_execution("sendMessage")
    assert gate.current_role is OPERATOR


def test_promotion_refused_when_not_eligible():
    store = RoleStore()
    not_yet = evaluate_promotion(unclutter_cycles=1, morning_brief_uses=5, feedback=[True] * 10, lifetime_uct=10)
    assert not not_yet.is_eligible
    assert not store.promote_to_operator(not_yet)
    assert store.snapshot().role is ANALYST


def test_promotion_criteria():
    few_ratings = evaluate_promotion(unclutter_cycles=3, morning_brief_uses=5, feedback=[True] * 3, lifetime_uct=10)
    assert few_ratings.criteria["decision_predictability"]["current"] == 50
    assert not few_ratings.is_eligible
    repeated = evaluate_promotion(unclutter_cycles=0, morning_brief_uses=0, feedback=[], lifetime_uct=0,
                                  approval_counts={"archive": 5})
    assert repeated.is_eligible
    shown = evaluate_promotion(unclutter_cycles=3, morning_brief_uses=5, feedback=[True] * 10, lifetime_uct=10,
                               promotion_shown=True)
    assert not shown.is_eligible


def test_operator_profile_keeps_delete_confirmation():
    store = RoleStore()
    store.promote_to_operator(_eligible())
    gate = ExecutionGate(store)
    assert gate.requires_confirmation_for("deleteTask")
    assert not gate.requires_confirmation_for("scheduleAction")


def test_role_store_persists_and_rereads(tmp_path):
    path = tmp_path / "profile.json"
    writer = RoleStore(str(path))
    writer.promote_to_operator(_eligible())
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["role"] == "operator"
    assert data["decision_style"] == "decide_for_me"

    reader = RoleStore(str(path))
    assert reader.snapshot().role is OPERATOR

    writer.reset_to_defaults()
    st = os.stat(path)
    # force a distinct mtime so the reader sees the change
    os.utime(path, ns=(st.st_atime_ns, st.st_mtime_ns + 1_000_000))
    assert reader.snapshot().role is ANALYST


def test_profile_from_dict_tolerates_garbage():
    p = AssistantProfile.from_dict({"role": "overlord", "authority_level": "x", "allowed_actions": {"nope": True},
                                    "interruption_preference": "loud"})
    assert p == AssistantProfile()


def test_verdict_to_dict():
    d = check_action("archiveMessage", ANALYST).to_dict()
    assert d["action"] == "archiveMessage"
    assert d["allowed"] is True
    assert d["requires_confirmation"] is True


def test_invalidate_in_memory_keeps_profile_and_finishes_loading():
    store = RoleStore(profile=AssistantProfile(role=OPERATOR), loading=True)
    snap = store.invalidate()
    assert not snap.loading
    assert snap.role is OPERATOR
    assert not ExecutionGate(store, fail_open=False).intercept_execution("createTask")


def test_invalidate_rereads_profile_file(tmp_path):
    path = tmp_path / "profile.json"
    store = RoleStore(str(path))
    store.promote_to_operator(_eligible())
    other = RoleStore(str(path))
    other.reset_to_defaults()
    snap = store.invalidate()
    assert not snap.loading
    assert snap.role is ANALYST


def test_invalidate_missing_file_falls_back_to_defaults(tmp_path):
    store = RoleStore(str(tmp_path / "absent.json"), loading=True)
    store.begin_loading()
    snap = store.invalidate()
    assert not snap.loading
    assert snap.profile == AssistantProfile()
    gate = ExecutionGate(store, fail_open=True)
    assert not gate.is_operator()
    assert gate.intercept_execution("sendMessage")
