from __future__ import annotations
import asyncio
import logging
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from steward.config import Config, load_config
from steward.core.engine import assistant_guidance, compute_priorities, get_next_best_action_text
from steward.core.gate import ExecutionGate, resolve_action
from steward.core.ledger import Ledger
from steward.core.roles import RoleStore
from steward.core.types import EngineSettings, PriorityEngineOutput, PriorityInput
from steward.decisions.classifier import CLASSIFICATION_LABELS
from steward.decisions.labeler import DecisionLabeler
from steward.decisions.scorer import ItemToScore
from steward.errors import ConfirmationError, RoleUnresolvedError, StewardError, UnknownActionError
from steward.guardrail.cognitive_load import (
    GuardrailContext,
    GuardrailResult,
    apply_cognitive_load_guardrail,
    context_for,
    resolve_uncertainty,
    violations_as_records,
)
from steward.llm.promptlib import system_chat, user_chat
from steward.llm.router import build_llm
from steward.llm.types import LLM
from steward.signals.collector import collect_priority_input
from steward.signals.sources import StateFileSources
from steward.storage import atomic_write_json, read_json_list
from steward_exec.executor import execute_with_role_check
from steward_exec.handlers import HANDLERS
from steward_exec.tokens_hmac import mint as mint_hmac

logger = logging.getLogger(__name__)

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))

CHAT_HISTORY = 20


class _Body(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PriorityInputBody(_Body):
    open_loops_count: Optional[float] = 0
    urgent_message_count: Optional[float] = 0
    calendar_conflicts: Optional[float] = 0
    upcoming_deadlines: Optional[float] = 0
    focus_state: Optional[str] = "idle"
    focus_minutes_today: Optional[float] = 0
    trust_violations: Optional[float] = 0
    hour: Optional[int] = Field(default=None, ge=0, le=23)

    def to_input(self) -> PriorityInput:
        return PriorityInput.coerce(**self.model_dump(exclude={"hour"}))


class ItemBody(_Body):
    id: str
    type: str = "message"
    title: str
    content: str = ""
    sender: str = ""
    sender_email: str = ""
    is_vip: bool = False
    due_date: Optional[str] = None
    priority: Optional[str] = None
    labels: List[str] = Field(default_factory=list)


class GuardrailBody(_Body):
    text: str = ""
    has_urgent_items: bool = False
    has_user_request: bool = False
    is_in_focus_mode: bool = False
    has_actionable_item: bool = False
    auto_fix: Optional[bool] = None


class ActionBody(_Body):
    action: str


class ConfirmBody(_Body):
    action: str
    bind: Dict[str, Any] = Field(default_factory=dict)
    ttl_s: Optional[int] = Field(default=None, gt=0)


class ChatBody(_Body):
    message: str = Field(min_length=1, max_length=4000)


class ExecuteBody(_Body):
    action: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    confirmation_token: Optional[str] = None


class ReviewBody(_Body):
    note: str = Field(default="", max_length=500)


def _output_dict(out: PriorityEngineOutput) -> Dict[str, Any]:
    text = get_next_best_action_text(out)
    return {
        "recommendation": asdict(out.recommendation) if out.recommendation else None,
        "is_all_clear": out.is_all_clear,
        "reassurance": out.reassurance,
        "next_action": asdict(text),
    }


def _guardrail_dict(res: GuardrailResult) -> Dict[str, Any]:
    return {
        "output": res.output,
        "was_modified": res.was_modified,
        "was_silent": res.was_silent,
        "violations": violations_as_records(res),
    }


def create_app(cfg: Optional[Config] = None, *, llm: Optional[LLM] = None) -> FastAPI:
    cfg = cfg or load_config()
    logging.basicConfig(level=cfg.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    app = FastAPI(title="steward")
    app.state.cfg = cfg
    app.state.ledger = Ledger(cfg.ledger_path)
    app.state.store = RoleStore(cfg.profile_path)
    app.state.gate = ExecutionGate(app.state.store, fail_open=cfg.role_fails_open)
    app.state.llm = llm if llm is not None else build_llm(
        cfg.llm_provider or None,
        model=cfg.ollama_model if cfg.llm_provider == "ollama" else None,
        base_url=cfg.ollama_base_url if cfg.llm_provider == "ollama" else None,
    )
    app.state.settings = EngineSettings(
        open_loops_threshold=cfg.open_loops_threshold,
        break_after_minutes=cfg.break_after_minutes,
    )
    chat_log = Path(cfg.artifacts_dir) / "chat" / "chat.json"

    def _error(status: int, exc: StewardError) -> JSONResponse:
        return JSONResponse(status_code=status, content={"detail": str(exc), "error_type": type(exc).__name__})

    @app.exception_handler(UnknownActionError)
    async def unknown_action_handler(request: Request, exc: UnknownActionError):
        return _error(400, exc)

    @app.exception_handler(ConfirmationError)
    async def confirmation_handler(request: Request, exc: ConfirmationError):
        return _error(403, exc)

    @app.exception_handler(RoleUnresolvedError)
    async def role_unresolved_handler(request: Request, exc: RoleUnresolvedError):
        return _error(409, exc)

    async def _current() -> tuple[PriorityInput, PriorityEngineOutput]:
        sources = StateFileSources(cfg.artifacts_dir, app.state.ledger)
        inputs = await collect_priority_input(sources, timeout_s=cfg.signal_timeout_s)
        out = compute_priorities(inputs, app.state.settings, hour=datetime.now().hour)
        return inputs, out

    @app.get("/", response_class=HTMLResponse)
    async def index(request: Request):
        inputs, out = await _current()
        snap = app.state.store.snapshot()
        return templates.TemplateResponse(
            request,
            "dashboard.html",
            {
                "next_action": get_next_best_action_text(out),
                "all_clear": out.is_all_clear,
                "reason": out.recommendation.reason if out.recommendation else "",
                "trust_review": bool(out.recommendation and out.recommendation.id == "trust_violation"),
                "role": snap.role.value,
                "loading": snap.loading,
                "ledger": list(reversed(app.state.ledger.tail(20))),
                "artifacts_dir": cfg.artifacts_dir,
            },
        )

    @app.get("/api/next-action")
    async def next_action():
        inputs, out = await _current()
        should_speak, message, action = assistant_guidance(out)
        res = apply_cognitive_load_guardrail(
            message if should_speak else "",
            context_for(out, inputs, auto_fix=cfg.guardrail_auto_fix),
        )
        return {**_output_dict(out), "say": res.output, "silent": res.was_silent}

    @app.post("/api/priorities")
    def priorities(body: PriorityInputBody):
        return _output_dict(compute_priorities(body.to_input(), app.state.settings, hour=body.hour))

    @app.post("/api/items/score")
    async def score_item(body: ItemBody):
        item = ItemToScore(**body.model_dump())
        # the LLM call blocks; keep it off the event loop
        result = await asyncio.to_thread(DecisionLabeler(app.state.llm).score, item)
        return {
            "item_id": result.item_id,
            "total_score": round(result.total_score, 4),
            "classification": result.classification.value,
            "classification_label": CLASSIFICATION_LABELS[result.classification],
            "reasoning": result.reasoning,
            "breaks_something": result.breaks_something,
            "scores": asdict(result.scores),
        }

    @app.post("/api/guardrail")
    async def guardrail(body: GuardrailBody):
        # a multi-option fix collapses to the engine's own pick
        _, out = await _current()
        ctx = GuardrailContext(
            has_urgent_items=body.has_urgent_items,
            has_user_request=body.has_user_request,
            is_in_focus_mode=body.is_in_focus_mode,
            has_actionable_item=body.has_actionable_item,
            auto_fix=cfg.guardrail_auto_fix if body.auto_fix is None else body.auto_fix,
            recommendation=out.recommendation,
        )
        res = apply_cognitive_load_guardrail(body.text, ctx)
        if res.violations:
            app.state.ledger.record("guardrail", violations=violations_as_records(res))
        return _guardrail_dict(res)

    @app.post("/api/actions/check")
    def check_action(body: ActionBody):
        return app.state.gate.check_action(body.action).to_dict()

    @app.post("/api/actions/intercept")
    def intercept_action(body: ActionBody):
        act = resolve_action(body.action)
        return {"action": act.value, "blocked": app.state.gate.intercept_execution(act)}

    @app.post("/api/actions/confirm")
    def confirm_action(body: ConfirmBody):
        """Mint a confirmation token once the user has approved an action."""
        act = resolve_action(body.action)
        if not cfg.exec_secret:
            raise ConfirmationError("confirmations are disabled: STEWARD_EXEC_SECRET is unset")
        verdict = app.state.gate.check_action(act)
        if not verdict.allowed:
            return {"action": act.value, "token": None, "verdict": verdict.to_dict()}
        ttl = body.ttl_s or cfg.confirmation_ttl_s
        token = mint_hmac(cfg.exec_secret_bytes, action=act.value, ttl_s=ttl, bind=body.bind)
        app.state.ledger.record("confirmation", action=act.value, ttl_s=ttl)
        return {"action": act.value, "token": token, "verdict": verdict.to_dict()}

    async def _resolve_role() -> None:
        await asyncio.to_thread(app.state.store.invalidate)

    @app.post("/api/actions/execute")
    async def execute_action(body: ExecuteBody):
        act = resolve_action(body.action)
        root = Path(cfg.artifacts_dir)
        handler = HANDLERS[act]
        outcome = await execute_with_role_check(
            app.state.gate,
            act,
            lambda: asyncio.to_thread(handler, root, body.payload),
            confirmation_token=body.confirmation_token,
            secret=cfg.exec_secret_bytes,
            bind=body.payload,
            resolve_role=_resolve_role,
            ledger=app.state.ledger,
            role_timeout_s=cfg.signal_timeout_s,
        )
        return {
            "action": act.value,
            "status": outcome.status,
            "result": outcome.result,
            "note": outcome.note,
            "verdict": outcome.verdict.to_dict(),
        }

    @app.post("/api/trust/review")
    def trust_review(body: Optional[ReviewBody] = None):
        cleared = app.state.ledger.review_trust_violations(note=body.note if body else "")
        return {"cleared": cleared}

    @app.post("/trust/review")
    def trust_review_form():
        app.state.ledger.review_trust_violations(note="dashboard")
        return RedirectResponse("/", status_code=303)

    @app.post("/api/role/reload")
    async def reload_role():
        snap = await asyncio.to_thread(app.state.store.invalidate)
        return {"role": snap.role.value, "loading": snap.loading, "version": snap.version}

    @app.get("/api/role")
    def role():
        snap = app.state.store.snapshot()
        gate: ExecutionGate = app.state.gate
        return {
            "role": snap.role.value,
            "loading": snap.loading,
            "version": snap.version,
            "profile": snap.profile.to_dict() if snap.profile else None,
            "is_operator": gate.is_operator(),
            "is_analyst": gate.is_analyst(),
        }

    def _append_chat(role_name: str, content: str) -> List[Dict[str, Any]]:
        items = read_json_list(chat_log)
        items.append({"role": role_name, "content": content, "ts": datetime.now(timezone.utc).isoformat()})
        atomic_write_json(chat_log, items)
        return items

    @app.post("/api/chat")
    async def chat(body: ChatBody):
        history = _append_chat("user", body.message.strip())[-CHAT_HISTORY:]
        lines = [
            f"{'User' if m.get('role') == 'user' else 'Assistant'}: {m.get('content', '')}"
            for m in history if m.get("role") in ("user", "assistant")
        ]
        llm: Optional[LLM] = app.state.llm
        # without a model reply the assistant reassures instead of guessing
        fallback = resolve_uncertainty(body.message, 0.0, False, floor=cfg.uncertainty_floor)
        candidate = fallback
        if llm is not None:
            try:
                resp = await asyncio.to_thread(llm.complete, system=system_chat(), user=user_chat(lines))
                candidate = (resp.text or "").strip() or fallback
            except (OSError, ValueError) as e:
                logger.warning("chat completion failed: %s", e)
        inputs, out = await _current()
        res = apply_cognitive_load_guardrail(
            candidate,
            context_for(out, inputs, has_user_request=True, auto_fix=cfg.guardrail_auto_fix),
        )
        if res.violations:
            app.state.ledger.record("guardrail", source="chat", violations=violations_as_records(res))
        if res.output:
            _append_chat("assistant", res.output)
        return {"reply": res.output, **_guardrail_dict(res)}

    return app


app = create_app()
