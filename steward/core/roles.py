from __future__ import annotations
import logging
import os
import threading
from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence

from steward.guardrail.interruptions import InterruptionPreference
from steward.storage import atomic_write_json, read_json_dict

logger = logging.getLogger(__name__)


class AssistantRole(str, Enum):
    ANALYST = "analyst"
    OPERATOR = "operator"


ROLE_ORDER: Mapping[AssistantRole, int] = {AssistantRole.ANALYST: 0, AssistantRole.OPERATOR: 1}


@dataclass(frozen=True)
class AllowedActions:
    draft_replies: bool = False
    schedule_items: bool = False
    archive_items: bool = False
    auto_handle_low_risk: bool = False


@dataclass(frozen=True)
class TrustBoundaries:
    """True means the action still needs the user's confirmation."""

    send_messages: bool = True
    schedule_meetings: bool = True
    delete_content: bool = True


@dataclass(frozen=True)
class AssistantProfile:
    role: AssistantRole = AssistantRole.ANALYST
    authority_level: int = 0
    allowed_actions: AllowedActions = field(default_factory=AllowedActions)
    trust_boundaries: TrustBoundaries = field(default_factory=TrustBoundaries)
    decision_style: str = "ask"
    interruption_preference: InterruptionPreference = InterruptionPreference.BALANCED
    tone_preference: str = "calm"

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["role"] = self.role.value
        d["interruption_preference"] = self.interruption_preference.value
        return d

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AssistantProfile":
        try:
            role = AssistantRole(data.get("role", "analyst"))
        except ValueError:
            role = AssistantRole.ANALYST
        try:
            pref = InterruptionPreference(data.get("interruption_preference", "balanced"))
        except ValueError:
            pref = InterruptionPreference.BALANCED
        allowed = {k: bool(v) for k, v in (data.get("allowed_actions") or {}).items() if k in AllowedActions.__dataclass_fields__}
        trust = {k: bool(v) for k, v in (data.get("trust_boundaries") or {}).items() if k in TrustBoundaries.__dataclass_fields__}
        try:
            authority = int(data.get("authority_level") or 0)
        except (TypeError, ValueError):
            authority = 0
        return cls(
            role=role,
            authority_level=authority,
            allowed_actions=AllowedActions(**allowed),
            trust_boundaries=TrustBoundaries(**trust),
            decision_style=str(data.get("decision_style") or "ask"),
            interruption_preference=pref,
            tone_preference=str(data.get("tone_preference") or "calm"),
        )


OPERATOR_ALLOWED_ACTIONS = AllowedActions(draft_replies=True, schedule_items=True, archive_items=True, auto_handle_low_risk=True)
OPERATOR_TRUST_BOUNDARIES = TrustBoundaries(send_messages=False, schedule_meetings=False, delete_content=True)


@dataclass(frozen=True)
class RoleSnapshot:
    profile: Optional[AssistantProfile]
    loading: bool
    version: int

    @property
    def role(self) -> AssistantRole:
        return self.profile.role if self.profile else AssistantRole.ANALYST


@dataclass(frozen=True)
class PromotionEligibility:
    is_eligible: bool
    criteria: Dict[str, Dict[str, Any]]


def evaluate_promotion(
    *,
    unclutter_cycles: int,
    morning_brief_uses: int,
    feedback: Sequence[bool],
    lifetime_uct: float,
    approval_counts: Optional[Mapping[str, int]] = None,
    current_role: AssistantRole = AssistantRole.ANALYST,
    promotion_shown: bool = False,
) -> PromotionEligibility:
    """Milestone check for operator mode. The store applies it; the gate never does."""
    if len(feedback) >= 10:
        predictability = round(100 * sum(1 for f in feedback if f) / len(feedback))
    elif feedback:
        predictability = 50
    else:
        predictability = 0
    criteria = {
        "unclutter_cycles": {"current": unclutter_cycles, "required": 3, "met": unclutter_cycles >= 3},
        "morning_brief_uses": {"current": morning_brief_uses, "required": 5, "met": morning_brief_uses >= 5},
        "decision_predictability": {"current": predictability, "required": 70, "met": predictability >= 70},
        "trust_threshold": {"current": lifetime_uct, "required": 10, "met": lifetime_uct >= 10},
    }
    all_met = all(c["met"] for c in criteria.values())
    repeated = any(n >= 5 for n in (approval_counts or {}).values())
    eligible = (all_met or repeated) and not promotion_shown and current_role is AssistantRole.ANALYST
    return PromotionEligibility(is_eligible=eligible, criteria=criteria)


class RoleStore:
    """Single source of truth for the assistant profile.

    With a ``path`` the profile is persisted as JSON and re-read whenever the
    file changes, so a promotion committed by another process is observed by
    the next snapshot.
    """

    def __init__(self, path: Optional[str] = None, *, profile: Optional[AssistantProfile] = None, loading: bool = False):
        self.path = Path(path) if path else None
        self._lock = threading.Lock()
        self._profile = profile
        self._loading = loading
        self._version = 0
        self._mtime: Optional[float] = None
        if self.path and profile is None:
            self._reload_if_changed()

    def _reload_if_changed(self) -> None:
        if not self.path:
            return
        try:
            mtime = os.stat(self.path).st_mtime_ns
        except FileNotFoundError:
            return
        if mtime == self._mtime:
            return
        data = read_json_dict(self.path)
        self._mtime = mtime
        if data:
            self._profile = AssistantProfile.from_dict(data)
            self._loading = False
            self._version += 1

    def snapshot(self) -> RoleSnapshot:
        with self._lock:
            self._reload_if_changed()
            return RoleSnapshot(profile=self._profile, loading=self._loading, version=self._version)

    def begin_loading(self) -> None:
        with self._lock:
            self._loading = True

    def invalidate(self) -> RoleSnapshot:
        """Drop the cached profile and resolve it again.

        With a file the profile is re-read; a missing or unreadable file
        resolves to the default (analyst) profile. Without a file the
        in-memory profile stays authoritative. Either way the store leaves
        the loading state.
        """
        with self._lock:
            self._mtime = None
            if self.path is not None:
                self._loading = True
                self._reload_if_changed()
                if self._loading:
                    logger.info("no readable profile at %s, using defaults", self.path)
                    self._profile = AssistantProfile()
            self._loading = False
            self._version += 1
            return RoleSnapshot(profile=self._profile, loading=False, version=self._version)

    def commit(self, profile: AssistantProfile) -> RoleSnapshot:
        with self._lock:
            self._profile = profile
            self._loading = False
            self._version += 1
            if self.path:
                atomic_write_json(self.path, profile.to_dict())
                self._mtime = os.stat(self.path).st_mtime_ns
            return RoleSnapshot(profile=profile, loading=False, version=self._version)

    def promote_to_operator(self, eligibility: PromotionEligibility) -> bool:
        # analysts cannot escalate themselves; only an external milestone does
        if not eligibility.is_eligible:
            logger.info("operator promotion refused: milestones not met")
            return False
        current = self.snapshot().profile or AssistantProfile()
        self.commit(replace(
            current,
            role=AssistantRole.OPERATOR,
            authority_level=max(current.authority_level, 2),
            allowed_actions=OPERATOR_ALLOWED_ACTIONS,
            trust_boundaries=OPERATOR_TRUST_BOUNDARIES,
            decision_style="decide_for_me",
        ))
        logger.info("assistant promoted to operator")
        return True

    def reset_to_defaults(self) -> RoleSnapshot:
        return self.commit(AssistantProfile())
