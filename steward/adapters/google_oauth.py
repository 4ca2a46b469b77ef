from __future__ import annotations
import logging
from pathlib import Path
from typing import List
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow

logger = logging.getLogger(__name__)


def get_creds(*, scopes: List[str], client_secret_path: str, token_path: str, interactive: bool = True) -> Credentials:
    """Cached user credentials for read-only Google scopes.

    The browser consent flow only runs when ``interactive`` is set; a signal
    collector running headless gets a FileNotFoundError instead and degrades
    that source to neutral.
    """
    client_secret = Path(client_secret_path)
    token_file = Path(token_path)
    creds = None
    if token_file.exists():
        creds = Credentials.from_authorized_user_file(str(token_file), scopes)
    if creds and creds.valid:
        return creds
    if creds and creds.expired and creds.refresh_token:
        logger.info("refreshing google token %s", token_file.name)
        creds.refresh(Request())
    else:
        if not client_secret.exists():
            raise FileNotFoundError(f"Missing client secret file: {client_secret}")
        if not interactive:
            raise FileNotFoundError(f"No usable token at {token_file}; run the consent flow first")
        flow = InstalledAppFlow.from_client_secrets_file(str(client_secret), scopes)
        creds = flow.run_local_server(port=0)
    token_file.parent.mkdir(parents=True, exist_ok=True)
    token_file.write_text(creds.to_json(), encoding="utf-8")
    return creds
