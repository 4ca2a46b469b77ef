from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Dict, List
from googleapiclient.discovery import build
from .google_oauth import get_creds

GMAIL_SCOPES = ["https://www.googleapis.com/auth/gmail.readonly"]


def _extract_headers(headers: List[Dict[str, str]]) -> Dict[str, str]:
    out = {}
    for h in headers:
        k = (h.get("name") or "").lower()
        if k:
            out[k] = h.get("value") or ""
    return out


def thread_from_message(msg: Dict[str, Any]) -> Dict[str, Any]:
    headers = _extract_headers((msg.get("payload", {}) or {}).get("headers", []) or [])
    label_ids = set(msg.get("labelIds", []) or [])
    unread = "UNREAD" in label_ids
    important = "IMPORTANT" in label_ids or "STARRED" in label_ids
    return {
        "thread_id": msg.get("threadId", msg.get("id", "")),
        "message_id": msg.get("id", ""),
        "subject": headers.get("subject", ""),
        "from": headers.get("from", ""),
        "snippet": msg.get("snippet", "") or "",
        "unread": unread,
        "important": important,
        "priority": "high" if important else "normal",
        # inbox messages still unread are treated as waiting on the user
        "awaiting_reply": unread and "INBOX" in label_ids,
        "labels": sorted(label_ids),
    }


def read_inbox(
    *,
    client_secret_path: str,
    token_path: str,
    query: str = "in:inbox newer_than:7d -category:promotions -category:social",
    max_results: int = 20,
    interactive: bool = False,
) -> Dict[str, Any]:
    creds = get_creds(scopes=GMAIL_SCOPES, client_secret_path=client_secret_path, token_path=token_path,
                      interactive=interactive)
    svc = build("gmail", "v1", credentials=creds, cache_discovery=False)
    users = svc.users()
    resp = users.messages().list(userId="me", q=query, maxResults=max_results).execute()
    threads = []
    for m in resp.get("messages", []) or []:
        msg = users.messages().get(userId="me", id=m["id"], format="metadata",
                                   metadataHeaders=["Subject", "From"]).execute()
        threads.append(thread_from_message(msg))
    drafts = users.drafts().list(userId="me", maxResults=max_results).execute().get("drafts", []) or []
    return {
        "threads": threads,
        "drafts": [{"draft_id": d.get("id", "")} for d in drafts],
        "ts": datetime.now(timezone.utc).timestamp(),
        "query": query,
    }
