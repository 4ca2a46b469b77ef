from __future__ import annotations
import json, urllib.request
from typing import Any, Dict
from ..types import LLMResponse, parse_json_object


class OllamaHTTP:
    def __init__(self, base_url: str, model: str, timeout_s: float = 120.0):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout_s = timeout_s

    def _request(self, system: str, user: str, *, json_mode: bool = False) -> urllib.request.Request:
        payload: Dict[str, Any] = {"model": self.model, "system": system, "prompt": user, "stream": False}
        if json_mode:
            payload["format"] = "json"
        return urllib.request.Request(
            f"{self.base_url}/api/generate",
            data=json.dumps(payload).encode("utf-8"),
            headers={"Content-Type": "application/json"},
            method="POST",
        )

    def complete(self, *, system: str, user: str, json_mode: bool = False) -> LLMResponse:
        req = self._request(system, user, json_mode=json_mode)
        with urllib.request.urlopen(req, timeout=self.timeout_s) as r:
            data = json.loads(r.read().decode("utf-8"))
        text = (data.get("response") or "").strip()
        js = parse_json_object(text) if json_mode else None
        usage = {k: data[k] for k in ("prompt_eval_count", "eval_count") if k in data} or None
        return LLMResponse(text=text, json=js, model=self.model, usage=usage)

