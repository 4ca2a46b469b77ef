from __future__ import annotations
import logging
import os
from typing import Optional
from .types import LLM
from .providers.ollama_http import OllamaHTTP
from .providers.openai_http import OpenAIHTTP

logger = logging.getLogger(__name__)


def build_llm(provider: Optional[str] = None, model: Optional[str] = None, base_url: Optional[str] = None) -> Optional[LLM]:
    """Return the configured provider, or None when no LLM is available.

    Callers treat None as "use heuristics".
    """
    provider = (provider or os.getenv("STEWARD_LLM_PROVIDER") or "").strip().lower()
    if not provider:
        return None
    if provider == "ollama":
        return OllamaHTTP(base_url or os.getenv("OLLAMA_BASE_URL", "http://localhost:11434"), model or os.getenv("OLLAMA_MODEL", "llama3.1"))
    if provider == "openai":
        k = os.getenv("OPENAI_API_KEY")
        if not k:
            logger.warning("openai provider selected but OPENAI_API_KEY is unset")
            return None
        return OpenAIHTTP(k, base_url or os.getenv("OPENAI_BASE_URL", "https://api.openai.com"), model or os.getenv("OPENAI_MODEL", "gpt-4.1-mini"))
    logger.warning("unknown llm provider %r", provider)
    return None
