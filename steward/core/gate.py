from __future__ import annotations
import logging
from dataclasses import asdict, dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Mapping, Optional, Union

from steward.errors import UnknownActionError
from .roles import ROLE_ORDER, AssistantProfile, AssistantRole, RoleStore

logger = logging.getLogger(__name__)


class ActionType(str, Enum):
    CREATE_TASK = "createTask"
    UPDATE_TASK = "updateTask"
    DELETE_TASK = "deleteTask"
    START_FOCUS_SESSION = "startFocusSession"
    COMPLETE_FOCUS_SESSION = "completeFocusSession"
    CLAIM_UCT = "claimUCT"
    SPEND_UCT = "spendUCT"
    SEND_MESSAGE = "sendMessage"
    ARCHIVE_MESSAGE = "archiveMessage"
    SCHEDULE_ACTION = "scheduleAction"
    AUTO_REPLY = "autoReply"
    DRAFT_REPLY = "draftReply"
    SUGGEST = "suggest"
    ANALYZE = "analyze"


class ActionCategory(str, Enum):
    SUGGEST = "suggest"
    DRAFT = "draft"
    SCHEDULE = "schedule"
    ARCHIVE = "archive"
    SEND = "send"
    DELETE = "delete"
    AUTO_EXECUTE = "autoExecute"


@dataclass(frozen=True)
class ActionConfig:
    category: ActionCategory
    min_role: AssistantRole = AssistantRole.ANALYST
    analyst_confirms: bool = False
    allowed_action_key: Optional[str] = None
    trust_boundary_key: Optional[str] = None


_A = AssistantRole.ANALYST
_O = AssistantRole.OPERATOR

ACTION_CONFIG: Mapping[ActionType, ActionConfig] = MappingProxyType({
    ActionType.SUGGEST: ActionConfig(ActionCategory.SUGGEST),
    ActionType.ANALYZE: ActionConfig(ActionCategory.SUGGEST),
    ActionType.CREATE_TASK: ActionConfig(ActionCategory.DRAFT, _A, True),
    ActionType.UPDATE_TASK: ActionConfig(ActionCategory.DRAFT, _A, True),
    ActionType.DELETE_TASK: ActionConfig(ActionCategory.DELETE, _A, True, trust_boundary_key="delete_content"),
    ActionType.START_FOCUS_SESSION: ActionConfig(ActionCategory.SCHEDULE, _A, True, allowed_action_key="schedule_items"),
    ActionType.COMPLETE_FOCUS_SESSION: ActionConfig(ActionCategory.DRAFT),
    ActionType.CLAIM_UCT: ActionConfig(ActionCategory.DRAFT, _A, True),
    ActionType.SPEND_UCT: ActionConfig(ActionCategory.SCHEDULE, _A, True),
    ActionType.SEND_MESSAGE: ActionConfig(ActionCategory.SEND, _O, True, trust_boundary_key="send_messages"),
    ActionType.ARCHIVE_MESSAGE: ActionConfig(ActionCategory.ARCHIVE, _A, True, allowed_action_key="archive_items"),
    ActionType.SCHEDULE_ACTION: ActionConfig(ActionCategory.SCHEDULE, _A, True, allowed_action_key="schedule_items",
                                             trust_boundary_key="schedule_meetings"),
    ActionType.AUTO_REPLY: ActionConfig(ActionCategory.AUTO_EXECUTE, _O, True, allowed_action_key="auto_handle_low_risk",
                                        trust_boundary_key="send_messages"),
    ActionType.DRAFT_REPLY: ActionConfig(ActionCategory.DRAFT, _A, True, allowed_action_key="draft_replies"),
})

BLOCKED_FOR_ANALYSTS: FrozenSet[ActionType] = frozenset(a for a, c in ACTION_CONFIG.items() if c.min_role is _O)
CONFIRM_FOR_ANALYSTS: FrozenSet[ActionType] = frozenset(
    a for a, c in ACTION_CONFIG.items() if c.min_role is _A and c.analyst_confirms
)

BLOCKED_EXPLANATIONS: Mapping[ActionCategory, str] = MappingProxyType({
    ActionCategory.SUGGEST: "This action is available.",
    ActionCategory.DRAFT: "I can prepare this for your review, but I need your confirmation to proceed.",
    ActionCategory.SCHEDULE: "I can schedule this, but your approval is required first.",
    ActionCategory.ARCHIVE: "I can archive this item, but I need you to confirm.",
    ActionCategory.SEND: "I can't send messages directly in Analyst mode.",
    ActionCategory.DELETE: "Deleting content requires your explicit confirmation.",
    ActionCategory.AUTO_EXECUTE: "I can't act on my own in Analyst mode.",
})

UPGRADE_SUGGESTIONS: Mapping[ActionCategory, str] = MappingProxyType({
    ActionCategory.SUGGEST: "",
    ActionCategory.DRAFT: "Enable draft permissions in assistant settings to allow this.",
    ActionCategory.SCHEDULE: "Enable scheduling permissions to allow autonomous scheduling.",
    ActionCategory.ARCHIVE: "Enable archive permissions to allow automatic archiving.",
    ActionCategory.SEND: "I can draft this for your review, or you can enable Operator mode in settings.",
    ActionCategory.DELETE: "This action always requires confirmation for safety.",
    ActionCategory.AUTO_EXECUTE: "I can suggest this for you to run yourself, or you can enable Operator mode in settings.",
})

ACTION_EXPLANATIONS: Mapping[ActionType, str] = MappingProxyType({
    ActionType.CREATE_TASK: "I would create a new task with the specified parameters.",
    ActionType.UPDATE_TASK: "I would update the task status and metadata.",
    ActionType.DELETE_TASK: "I would remove this task from your list.",
    ActionType.START_FOCUS_SESSION: "I would initiate a focus session with your preferences.",
    ActionType.COMPLETE_FOCUS_SESSION: "I would mark this session complete and calculate rewards.",
    ActionType.CLAIM_UCT: "I would transfer your earned UCT to claimable balance.",
    ActionType.SPEND_UCT: "I would deduct UCT for this action.",
    ActionType.SEND_MESSAGE: "I would send this message on your behalf.",
    ActionType.ARCHIVE_MESSAGE: "I would archive this message.",
    ActionType.SCHEDULE_ACTION: "I would schedule this action for the specified time.",
    ActionType.AUTO_REPLY: "I would draft and queue an automated response.",
    ActionType.DRAFT_REPLY: "I would draft a reply for your review.",
    ActionType.SUGGEST: "I would suggest a next step.",
    ActionType.ANALYZE: "I would analyze this and summarize what matters.",
})

ROLE_PENDING_REASON = "I'm still loading your assistant settings."
ROLE_PENDING_SUGGESTION = "This will be available in a moment."


@dataclass(frozen=True)
class ExecutionVerdict:
    action: ActionType
    allowed: bool
    requires_confirmation: bool
    blocked_reason: Optional[str] = None
    suggestion: Optional[str] = None
    can_suggest_instead: bool = False
    explanation: str = ""
    role_pending: bool = False

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["action"] = self.action.value
        return d


def resolve_action(action: Union[ActionType, str]) -> ActionType:
    if isinstance(action, ActionType):
        return action
    try:
        return ActionType(action)
    except ValueError:
        raise UnknownActionError(str(action)) from None


def check_action(
    action: Union[ActionType, str],
    role: AssistantRole,
    profile: Optional[AssistantProfile] = None,
    *,
    role_pending: bool = False,
    fail_open: bool = True,
) -> ExecutionVerdict:
    """Permission verdict for ``action`` under ``role``.

    Profile settings can add a confirmation requirement but never lift a block.
    """
    act = resolve_action(action)
    cfg = ACTION_CONFIG[act]
    explanation = ACTION_EXPLANATIONS[act]

    if role_pending:
        if fail_open:
            return ExecutionVerdict(act, allowed=True, requires_confirmation=True, explanation=explanation, role_pending=True)
        return ExecutionVerdict(act, allowed=False, requires_confirmation=True, blocked_reason=ROLE_PENDING_REASON,
                                suggestion=ROLE_PENDING_SUGGESTION, explanation=explanation, role_pending=True)

    if ROLE_ORDER[role] < ROLE_ORDER[cfg.min_role]:
        return ExecutionVerdict(
            act,
            allowed=False,
            requires_confirmation=True,
            blocked_reason=BLOCKED_EXPLANATIONS[cfg.category],
            suggestion=UPGRADE_SUGGESTIONS[cfg.category],
            can_suggest_instead=cfg.category is not ActionCategory.SUGGEST,
            explanation=explanation,
        )

    confirm = cfg.analyst_confirms and role is AssistantRole.ANALYST
    if profile is not None:
        if cfg.allowed_action_key and not getattr(profile.allowed_actions, cfg.allowed_action_key):
            confirm = True
        if cfg.trust_boundary_key and getattr(profile.trust_boundaries, cfg.trust_boundary_key):
            confirm = True
    return ExecutionVerdict(act, allowed=True, requires_confirmation=confirm, explanation=explanation)


class ExecutionGate:
    """Reads the current role from the store on every check."""

    def __init__(self, store: RoleStore, *, fail_open: bool = True):
        self.store = store
        self.fail_open = fail_open

    def check_action(self, action: Union[ActionType, str]) -> ExecutionVerdict:
        snap = self.store.snapshot()
        verdict = check_action(action, snap.role, snap.profile, role_pending=snap.loading, fail_open=self.fail_open)
        if not verdict.allowed:
            logger.info("action %s denied for role %s", verdict.action.value, snap.role.value)
        return verdict

    def intercept_execution(self, action_name: Union[ActionType, str]) -> bool:
        """True when the action must not run at all. Confirmation is not a block."""
        act = resolve_action(action_name)
        snap = self.store.snapshot()
        if snap.loading:
            return not self.fail_open
        blocked = snap.role is AssistantRole.ANALYST and act in BLOCKED_FOR_ANALYSTS
        if blocked:
            logger.info("execution intercepted: %s", act.value)
        return blocked

    def requires_confirmation_for(self, action: Union[ActionType, str]) -> bool:
        return self.check_action(action).requires_confirmation

    def is_operator(self) -> bool:
        snap = self.store.snapshot()
        if snap.loading:
            return self.fail_open
        return snap.role is AssistantRole.OPERATOR

    def is_analyst(self) -> bool:
        snap = self.store.snapshot()
        if snap.loading:
            return not self.fail_open
        return snap.role is AssistantRole.ANALYST

    @property
    def current_role(self) -> AssistantRole:
        return self.store.snapshot().role
