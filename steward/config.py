from __future__ import annotations
from dataclasses import dataclass
import os


def _get_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "y", "on")


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


ROLE_LOADING_POLICIES = ("open", "closed")


@dataclass(frozen=True)
class Config:
    llm_provider: str
    ollama_base_url: str
    ollama_model: str
    exec_secret: str
    confirmation_ttl_s: int
    artifacts_dir: str
    profile_path: str
    open_loops_threshold: int
    break_after_minutes: int
    role_loading_policy: str
    guardrail_auto_fix: bool
    uncertainty_floor: float
    signal_timeout_s: float
    log_level: str

    @property
    def exec_secret_bytes(self) -> bytes:
        return self.exec_secret.encode("utf-8") if self.exec_secret else b""

    @property
    def ledger_path(self) -> str:
        return os.path.join(self.artifacts_dir, "ledger.jsonl")

    @property
    def role_fails_open(self) -> bool:
        return self.role_loading_policy != "closed"


def load_config() -> Config:
    artifacts = os.getenv("STEWARD_ARTIFACTS_DIR", "artifacts")
    policy = (os.getenv("STEWARD_ROLE_LOADING_POLICY") or "open").strip().lower()
    if policy not in ROLE_LOADING_POLICIES:
        policy = "open"
    return Config(
        llm_provider=(os.getenv("STEWARD_LLM_PROVIDER") or "").strip().lower(),
        ollama_base_url=os.getenv("OLLAMA_BASE_URL", "http://localhost:11434"),
        ollama_model=os.getenv("OLLAMA_MODEL", "llama3.1"),
        exec_secret=os.getenv("STEWARD_EXEC_SECRET", ""),
        confirmation_ttl_s=_get_int("STEWARD_CONFIRMATION_TTL_S", 600),
        artifacts_dir=artifacts,
        profile_path=os.getenv("STEWARD_PROFILE_PATH") or os.path.join(artifacts, "assistant_profile.json"),
        open_loops_threshold=max(0, _get_int("STEWARD_OPEN_LOOPS_THRESHOLD", 0)),
        break_after_minutes=max(1, _get_int("STEWARD_BREAK_AFTER_MINUTES", 90)),
        role_loading_policy=policy,
        guardrail_auto_fix=_get_bool("STEWARD_GUARDRAIL_AUTO_FIX", True),
        uncertainty_floor=min(1.0, max(0.0, _get_float("STEWARD_UNCERTAINTY_FLOOR", 0.5))),
        signal_timeout_s=_get_float("STEWARD_SIGNAL_TIMEOUT_S", 5.0),
        log_level=(os.getenv("STEWARD_LOG_LEVEL") or "INFO").strip().upper(),
    )
