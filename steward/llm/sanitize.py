from __future__ import annotations
import re

_INJECTION_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"ignore (all|any|previous) instructions",
        r"system prompt",
        r"developer message",
        r"exfiltrate",
        r"you are now",
    )
]
_CONTROL = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def sanitize_untrusted_text(s: str, max_chars: int = 4000) -> str:
    """Trim and strip prompt-injection lines from text we did not write."""
    s = _CONTROL.sub("", (s or "")).strip()
    if len(s) > max_chars:
        s = s[:max_chars] + "\n…[truncated]"
    kept = [line for line in s.splitlines() if not any(p.search(line) for p in _INJECTION_PATTERNS)]
    return "\n".join(kept).strip()
