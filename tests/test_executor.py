import asyncio

import pytest

from steward.core.gate import ExecutionGate
from steward.core.ledger import Ledger
from steward.core.roles import AssistantProfile, AssistantRole, RoleStore
from steward.errors import ConfirmationError, RoleUnresolvedError, UnknownActionError
from steward_exec.executor import execute_with_role_check
from steward_exec.tokens_hmac import mint

S = b"secret"


def _run(coro):
    return asyncio.run(coro)


def test_blocked_action_is_recorded_as_trust_violation(tmp_path):
    ledger = Ledger(str(tmp_path / "ledger.jsonl"))
    calls = []
    out = _run(execute_with_role_check(ExecutionGate(RoleStore()), "sendMessage", lambda: calls.append(1),
                                       ledger=ledger))
    assert out.status == "blocked"
    assert calls == []
    assert out.note
    assert ledger.count("trust_violation") == 1
    assert ledger.count("gate_blocked") == 1


def test_confirmation_required_without_token():
    out = _run(execute_with_role_check(ExecutionGate(RoleStore()), "createTask", lambda: "x"))
    assert out.status == "needs_confirmation"
    assert out.verdict.requires_confirmation


def test_confirmed_action_runs(tmp_path):
    ledger = Ledger(str(tmp_path / "ledger.jsonl"))
    tok = mint(S, action="createTask", ttl_s=60, bind={"title": "Pay rent"})
    out = _run(execute_with_role_check(ExecutionGate(RoleStore()), "createTask", lambda: {"id": "t1"},
                                       confirmation_token=tok, secret=S, bind={"title": "Pay rent"}, ledger=ledger))
    assert out.ok
    assert out.result == {"id": "t1"}
    assert ledger.read()[-1]["status"] == "ok"


def test_bad_token_raises(tmp_path):
    tok = mint(S, action="updateTask", ttl_s=60)
    with pytest.raises(ConfirmationError):
        _run(execute_with_role_check(ExecutionGate(RoleStore()), "createTask", lambda: None,
                                     confirmation_token=tok, secret=S))


def test_async_executor_and_failure():
    async def boom():
        raise RuntimeError("provider down")

    store = RoleStore(profile=AssistantProfile(role=AssistantRole.OPERATOR))
    out = _run(execute_with_role_check(ExecutionGate(store), "suggest", boom))
    assert out.status == "failed"
    assert "provider down" in out.note

    async def fine():
        return 42

    assert _run(execute_with_role_check(ExecutionGate(store), "analyze", fine)).result == 42


def test_waits_for_role_before_side_effect():
    store = RoleStore(loading=True)
    gate = ExecutionGate(store, fail_open=True)

    async def resolve():
        await asyncio.sleep(0)
        store.commit(AssistantProfile())

    calls = []
    out = _run(execute_with_role_check(gate, "sendMessage", lambda: calls.append(1), resolve_role=resolve))
    # the fail-open answer does not leak into execution
    assert out.status == "blocked"
    assert calls == []


def test_unresolved_role_raises():
    gate = ExecutionGate(RoleStore(loading=True))
    with pytest.raises(RoleUnresolvedError):
        _run(execute_with_role_check(gate, "suggest", lambda: None))

    async def never():
        await asyncio.sleep(10)

    with pytest.raises(RoleUnresolvedError):
        _run(execute_with_role_check(gate, "suggest", lambda: None, resolve_role=never, role_timeout_s=0.01))


def test_unknown_action_raises():
    with pytest.raises(UnknownActionError):
        _run(execute_with_role_check(ExecutionGate(RoleStore()), "teleport", lambda: None))
