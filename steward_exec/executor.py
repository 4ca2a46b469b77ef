from __future__ import annotations
import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from steward.core.gate import ActionType, ExecutionGate, ExecutionVerdict, resolve_action
from steward.core.ledger import Ledger
from steward.errors import ConfirmationError, RoleUnresolvedError
from .tokens_hmac import verify

logger = logging.getLogger(__name__)

STATUS_OK = "ok"
STATUS_BLOCKED = "blocked"
STATUS_NEEDS_CONFIRMATION = "needs_confirmation"
STATUS_FAILED = "failed"


@dataclass(frozen=True)
class ExecutionOutcome:
    status: str
    verdict: ExecutionVerdict
    result: Any = None
    note: str = ""

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK


def _record(ledger: Optional[Ledger], kind: str, **fields: Any) -> None:
    if ledger is not None:
        ledger.record(kind, **fields)


async def _await_role(gate: ExecutionGate, resolve_role: Optional[Callable[[], Awaitable[Any]]],
                      timeout_s: float, act: ActionType) -> None:
    if not gate.store.snapshot().loading:
        return
    if resolve_role is None:
        raise RoleUnresolvedError(f"role still loading; {act.value} cannot run yet")
    try:
        await asyncio.wait_for(resolve_role(), timeout_s)
    except asyncio.TimeoutError:
        raise RoleUnresolvedError(f"role did not resolve within {timeout_s:.1f}s") from None
    if gate.store.snapshot().loading:
        raise RoleUnresolvedError(f"role still loading after resolution; {act.value} not run")


async def execute_with_role_check(
    gate: ExecutionGate,
    action: Union[ActionType, str],
    executor: Callable[[], Any],
    *,
    confirmation_token: Optional[str] = None,
    secret: bytes = b"",
    bind: Optional[Dict[str, Any]] = None,
    resolve_role: Optional[Callable[[], Awaitable[Any]]] = None,
    ledger: Optional[Ledger] = None,
    role_timeout_s: float = 5.0,
) -> ExecutionOutcome:
    """Run ``executor`` only after the role is resolved and the gate allows it.

    The fail-open answer the gate gives while the profile loads is for UI
    queries; a side effect always waits for the real role first.
    """
    act = resolve_action(action)
    await _await_role(gate, resolve_role, role_timeout_s, act)

    verdict = gate.check_action(act)
    if not verdict.allowed or gate.intercept_execution(act):
        _record(ledger, "gate_blocked", action=act.value, reason=verdict.blocked_reason)
        _record(ledger, "trust_violation", action=act.value, role=gate.current_role.value)
        return ExecutionOutcome(STATUS_BLOCKED, verdict, note=verdict.suggestion or verdict.blocked_reason or "")

    if verdict.requires_confirmation:
        if not confirmation_token:
            return ExecutionOutcome(STATUS_NEEDS_CONFIRMATION, verdict, note=verdict.explanation)
        if verify(secret, confirmation_token, action=act.value, bind=bind) is None:
            _record(ledger, "exec_reject", action=act.value, reason="invalid_or_expired_token")
            raise ConfirmationError(f"confirmation for {act.value} is invalid or expired")

    try:
        result = executor()
        if inspect.isawaitable(result):
            result = await result
    except Exception as e:
        logger.warning("executor for %s failed: %s", act.value, e)
        _record(ledger, "exec", action=act.value, status=STATUS_FAILED, note=str(e))
        return ExecutionOutcome(STATUS_FAILED, verdict, note=str(e))

    _record(ledger, "exec", action=act.value, status=STATUS_OK)
    return ExecutionOutcome(STATUS_OK, verdict, result=result)
