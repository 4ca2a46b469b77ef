from __future__ import annotations
import argparse, asyncio, logging, os, time
from datetime import datetime
from typing import Any, Dict, Optional

from steward.config import load_config
from steward.core.engine import assistant_guidance, compute_priorities
from steward.core.ledger import Ledger
from steward.core.types import EngineSettings, PriorityInput
from steward.guardrail.cognitive_load import apply_cognitive_load_guardrail, context_for, violations_as_records
from steward.signals.collector import SignalSources, collect_priority_input
from steward.signals.sources import GoogleSources, StateFileSources

logger = logging.getLogger(__name__)


def input_record(inputs: PriorityInput) -> Dict[str, Any]:
    rec = dict(inputs.__dict__)
    rec["focus_state"] = inputs.focus_state.value
    return rec


async def run_tick(
    sources: SignalSources,
    settings: EngineSettings,
    ledger: Ledger,
    *,
    tick: int = 0,
    auto_fix: bool = True,
    timeout_s: float = 5.0,
    hour: Optional[int] = None,
) -> Optional[str]:
    """One evaluation: the single thing worth saying now, or None for silence."""
    inputs = await collect_priority_input(sources, timeout_s=timeout_s)
    out = compute_priorities(inputs, settings, hour=hour)
    should_speak, message, action = assistant_guidance(out)
    result = apply_cognitive_load_guardrail(
        message if should_speak else "",
        context_for(out, inputs, auto_fix=auto_fix),
    )

    rec = out.recommendation
    ledger.record("tick", tick=tick, inputs=input_record(inputs))
    ledger.record(
        "recommendation",
        tick=tick,
        id=rec.id if rec else None,
        action=action.value if action else None,
        score=rec.score if rec else None,
        reason=rec.reason if rec else None,
        all_clear=out.is_all_clear,
        silent=result.was_silent,
    )
    if result.violations:
        ledger.record("guardrail", tick=tick, violations=violations_as_records(result))
    return result.output


def main(argv=None):
    ap = argparse.ArgumentParser(description="Evaluate the next best action on a fixed number of ticks.")
    ap.add_argument("--ticks", type=int, default=5)
    ap.add_argument("--interval", type=float, default=1.0, help="seconds between ticks")
    ap.add_argument("--artifacts", default=None)
    ap.add_argument("--use_google", action="store_true")
    ap.add_argument("--google_client_secret", default=os.getenv("GOOGLE_CLIENT_SECRET", "secrets/client_secret.json"))
    ap.add_argument("--google_token_dir", default=os.getenv("GOOGLE_TOKEN_DIR", "secrets/tokens"))
    ap.add_argument("--calendar_id", default=os.getenv("GOOGLE_CALENDAR_ID", "primary"))
    args = ap.parse_args(argv)

    cfg = load_config()
    logging.basicConfig(level=cfg.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    artifacts = args.artifacts or cfg.artifacts_dir
    os.makedirs(artifacts, exist_ok=True)
    ledger = Ledger(os.path.join(artifacts, "ledger.jsonl"))
    settings = EngineSettings(open_loops_threshold=cfg.open_loops_threshold, break_after_minutes=cfg.break_after_minutes)

    if args.use_google:
        sources: SignalSources = GoogleSources(
            artifacts,
            client_secret_path=args.google_client_secret,
            token_dir=args.google_token_dir,
            calendar_id=args.calendar_id,
            ledger=ledger,
        )
    else:
        sources = StateFileSources(artifacts, ledger)

    for t in range(args.ticks):
        line = asyncio.run(run_tick(
            sources, settings, ledger,
            tick=t,
            auto_fix=cfg.guardrail_auto_fix,
            timeout_s=cfg.signal_timeout_s,
            hour=datetime.now().hour,
        ))
        if line:
            print(line)
        else:
            logger.debug("tick %d: silent", t)
        if t + 1 < args.ticks:
            time.sleep(args.interval)


if __name__ == "__main__":
    main()
