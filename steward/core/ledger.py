from __future__ import annotations
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class Ledger:
    """Append-only JSONL audit trail."""

    def __init__(self, path: str):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def append(self, rec: Dict[str, Any]) -> None:
        rec = {"ts": datetime.now(timezone.utc).isoformat(), **rec}
        with self.path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(rec, ensure_ascii=False, default=str) + "\n")

    def record(self, kind: str, **fields: Any) -> None:
        self.append({"kind": kind, **fields})

    def read(self) -> List[Dict[str, Any]]:
        try:
            lines = self.path.read_text(encoding="utf-8").splitlines()
        except FileNotFoundError:
            return []
        out = []
        for line in lines:
            if not line.strip():
                continue
            try:
                out.append(json.loads(line))
            except ValueError:
                logger.warning("skipping unreadable ledger line in %s", self.path)
        return out

    def tail(self, max_lines: int = 200) -> List[Dict[str, Any]]:
        return self.read()[-max_lines:]

    def count(self, kind: str, *, since_kind: Optional[str] = None) -> int:
        """Records of ``kind``, counted after the last ``since_kind`` record if given."""
        n = 0
        for rec in self.read():
            if since_kind and rec.get("kind") == since_kind:
                n = 0
            elif rec.get("kind") == kind:
                n += 1
        return n

    def review_trust_violations(self, **fields: Any) -> int:
        """Mark every open trust violation as reviewed; returns how many were cleared."""
        cleared = self.count("trust_violation", since_kind="trust_review")
        self.record("trust_review", cleared=cleared, **fields)
        logger.info("trust review cleared %d violation(s)", cleared)
        return cleared
