from __future__ import annotations
import json
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol


@dataclass(frozen=True)
class LLMResponse:
    text: str
    json: Optional[Dict[str, Any]] = None
    model: str = ""
    usage: Optional[Dict[str, Any]] = None


class LLM(Protocol):
    """Opaque text capability: given a prompt, return text or a JSON object."""

    def complete(self, *, system: str, user: str, json_mode: bool = False) -> LLMResponse:
        ...


def parse_json_object(text: str) -> Optional[Dict[str, Any]]:
    """Pull the outermost ``{...}`` block out of model output."""
    start = text.find("{")
    end = text.rfind("}")
    if start < 0 or end <= start:
        return None
    try:
        data = json.loads(text[start:end + 1])
    except ValueError:
        return None
    return data if isinstance(data, dict) else None
