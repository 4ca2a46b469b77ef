from __future__ import annotations
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from googleapiclient.discovery import build
from .google_oauth import get_creds

GCAL_SCOPES = ["https://www.googleapis.com/auth/calendar.readonly"]


def _edge(ev: Dict[str, Any], key: str) -> str:
    node = ev.get(key, {}) or {}
    return node.get("dateTime") or node.get("date") or ""


def event_from_api(ev: Dict[str, Any]) -> Dict[str, Any]:
    start, end = _edge(ev, "start"), _edge(ev, "end")
    return {
        "event_id": ev.get("id", ""),
        "title": ev.get("summary", ""),
        "start": start,
        "end": end,
        # date-only edges mark all-day events
        "all_day": len(start) <= 10,
        "status": ev.get("status", "confirmed"),
    }


def read_calendar(
    *,
    client_secret_path: str,
    token_path: str,
    calendar_id: str = "primary",
    window_hours: int = 24,
    now: Optional[datetime] = None,
    interactive: bool = False,
) -> Dict[str, Any]:
    now = now or datetime.now(timezone.utc)
    time_min = now.isoformat()
    time_max = (now + timedelta(hours=window_hours)).isoformat()
    creds = get_creds(scopes=GCAL_SCOPES, client_secret_path=client_secret_path, token_path=token_path,
                      interactive=interactive)
    svc = build("calendar", "v3", credentials=creds, cache_discovery=False)
    resp = svc.events().list(calendarId=calendar_id, timeMin=time_min, timeMax=time_max, singleEvents=True,
                             orderBy="startTime", maxResults=50).execute()
    events = [event_from_api(ev) for ev in resp.get("items", []) or [] if ev.get("status") != "cancelled"]
    return {"events": events, "calendar_id": calendar_id, "time_min": time_min, "time_max": time_max}
