from __future__ import annotations
import asyncio
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from steward.core.ledger import Ledger
from steward.storage import read_json_dict, read_json_list
from .collector import count_trust_violations


class StateFileSources:
    """Signals read from JSON snapshots in the artifacts directory."""

    def __init__(self, artifacts_dir: str, ledger: Optional[Ledger] = None):
        self.root = Path(artifacts_dir)
        self.ledger = ledger

    async def fetch_inbox(self) -> Dict[str, Any]:
        return read_json_dict(self.root / "inbox.json")

    async def fetch_calendar(self) -> Dict[str, Any]:
        return read_json_dict(self.root / "calendar.json")

    async def fetch_tasks(self) -> List[Dict[str, Any]]:
        return read_json_list(self.root / "tasks.json")

    async def fetch_focus_sessions(self) -> List[Dict[str, Any]]:
        return read_json_list(self.root / "focus_sessions.json")

    async def fetch_trust_violations(self) -> int:
        return count_trust_violations(self.ledger)


class GoogleSources(StateFileSources):
    """Inbox and calendar from Google; tasks, sessions and the ledger stay local."""

    def __init__(
        self,
        artifacts_dir: str,
        *,
        client_secret_path: str,
        token_dir: str,
        calendar_id: str = "primary",
        ledger: Optional[Ledger] = None,
    ):
        super().__init__(artifacts_dir, ledger)
        self.client_secret_path = client_secret_path
        self.token_dir = token_dir
        self.calendar_id = calendar_id

    async def fetch_inbox(self) -> Dict[str, Any]:
        from steward.adapters.gmail_reader_google import read_inbox
        return await asyncio.to_thread(
            read_inbox,
            client_secret_path=self.client_secret_path,
            token_path=os.path.join(self.token_dir, "gmail_token.json"),
        )

    async def fetch_calendar(self) -> Dict[str, Any]:
        from steward.adapters.gcal_reader_google import read_calendar
        return await asyncio.to_thread(
            read_calendar,
            client_secret_path=self.client_secret_path,
            token_path=os.path.join(self.token_dir, "gcal_token.json"),
            calendar_id=self.calendar_id,
        )
