from __future__ import annotations
import json, urllib.request
from typing import Any, Dict
from ..types import LLMResponse, parse_json_object


class OpenAIHTTP:
    def __init__(self, api_key: str, base_url: str, model: str, timeout_s: float = 60.0):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout_s = timeout_s

    def complete(self, *, system: str, user: str, json_mode: bool = False) -> LLMResponse:
        payload: Dict[str, Any] = {
            "model": self.model,
            "input": [{"role": "system", "content": system}, {"role": "user", "content": user}],
        }
        if json_mode:
            payload["text"] = {"format": {"type": "json_object"}}
        req = urllib.request.Request(
            f"{self.base_url}/v1/responses",
            data=json.dumps(payload).encode("utf-8"),
            headers={"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"},
            method="POST",
        )
        with urllib.request.urlopen(req, timeout=self.timeout_s) as r:
            data = json.loads(r.read().decode("utf-8"))
        text = (data.get("output_text") or "").strip()
        js = parse_json_object(text) if json_mode else None
        return LLMResponse(text=text, json=js, model=self.model, usage=data.get("usage"))
