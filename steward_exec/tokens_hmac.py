from __future__ import annotations
import base64, hashlib, hmac, json, time, uuid
from dataclasses import dataclass
from typing import Any, Dict, Optional


def _b64(b: bytes) -> str:
    return base64.urlsafe_b64encode(b).decode("utf-8").rstrip("=")


def _b64d(s: str) -> bytes:
    pad = "=" * (-len(s) % 4)
    return base64.urlsafe_b64decode((s + pad).encode("utf-8"))


def _canonical(obj: Any) -> bytes:
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), default=str).encode("utf-8")


def _sign(secret: bytes, payload: Dict[str, Any]) -> str:
    return _b64(hmac.new(secret, _canonical(payload), hashlib.sha256).digest())


@dataclass(frozen=True)
class Confirmation:
    action: str
    jti: str
    exp: float
    bind: Dict[str, Any]


def mint(secret: bytes, *, action: str, ttl_s: int, bind: Optional[Dict[str, Any]] = None,
         now: Optional[float] = None) -> str:
    """User confirmation for one action, bound to its payload."""
    if not secret:
        raise ValueError("confirmation secret is empty")
    now = time.time() if now is None else now
    payload = {"action": action, "jti": str(uuid.uuid4()), "exp": now + ttl_s, "bind": dict(bind or {})}
    return _b64(_canonical({"payload": payload, "sig": _sign(secret, payload)}))


def verify(secret: bytes, token: str, *, action: str, bind: Optional[Dict[str, Any]] = None,
           now: Optional[float] = None) -> Optional[Confirmation]:
    """None for a forged, expired, or mismatched token."""
    if not secret or not token:
        return None
    try:
        blob = json.loads(_b64d(token).decode("utf-8"))
        payload, sig = blob["payload"], blob["sig"]
        if not hmac.compare_digest(str(sig), _sign(secret, payload)):
            return None
        conf = Confirmation(action=payload["action"], jti=payload["jti"], exp=float(payload["exp"]),
                            bind=dict(payload["bind"]))
    except (ValueError, KeyError, TypeError):
        return None
    now = time.time() if now is None else now
    if now > conf.exp or conf.action != action:
        return None
    if bind is not None and _canonical(conf.bind) != _canonical(dict(bind)):
        return None
    return conf
