import asyncio
import json

from steward.core.ledger import Ledger
from steward.core.types import EngineSettings
from steward.main import main, run_tick
from steward.signals.sources import StateFileSources


def test_tick_speaks_single_action_and_logs(tmp_path):
    (tmp_path / "calendar.json").write_text(json.dumps({"events": [
        {"start": "2026-03-02T09:00:00+00:00", "end": "2026-03-02T10:00:00+00:00"},
        {"start": "2026-03-02T09:30:00+00:00", "end": "2026-03-02T10:30:00+00:00"},
    ]}))
    ledger = Ledger(str(tmp_path / "ledger.jsonl"))
    line = asyncio.run(run_tick(StateFileSources(str(tmp_path), ledger), EngineSettings(), ledger, tick=0))
    assert line == "Resolve schedule conflict"
    kinds = [r["kind"] for r in ledger.read()]
    assert kinds == ["tick", "recommendation"]
    rec = ledger.read()[1]
    assert rec["id"] == "calendar_conflict"
    assert rec["action"] == "resolve_conflict"


def test_tick_is_silent_when_clear(tmp_path):
    ledger = Ledger(str(tmp_path / "ledger.jsonl"))
    line = asyncio.run(run_tick(StateFileSources(str(tmp_path), ledger), EngineSettings(), ledger))
    assert line is None
    assert ledger.read()[-1]["all_clear"] is True


def test_cli_prints_nothing_when_clear(tmp_path, capsys):
    main(["--ticks", "2", "--interval", "0", "--artifacts", str(tmp_path)])
    assert capsys.readouterr().out == ""
    assert len(Ledger(str(tmp_path / "ledger.jsonl")).read()) == 4
