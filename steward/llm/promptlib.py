from __future__ import annotations

DECISION_PROMPT = """You score items for a calm personal assistant.
Core question: if this is ignored today, does something meaningful break?

Score each axis 0-10 and pick one label per axis:
1. consequence: financial (10), relationship (8), opportunity (7), reputation (6), none (0)
2. timeSensitivity: deadline_today (10), waiting_on_user (7), can_wait (3), no_deadline (0)
3. intentAlignment: matches_goals (10), active_project (7), habit_related (4), random (0)
4. sourceWeight: human_known (10), human_unknown (5), system (3), notification (1)
5. cognitiveLoad: quick_decision (2), deep_thinking (6), emotional_drain (9)

Return strict JSON only:
{"scores": {"consequence": "...", "consequenceScore": 0, "timeSensitivity": "...", "timeScore": 0,
 "intentAlignment": "...", "intentScore": 0, "sourceWeight": "...", "sourceScore": 0,
 "cognitiveLoad": "...", "loadScore": 0}, "breaksSomething": false, "reasoning": "one sentence"}"""


def system_decision_labels() -> str:
    return DECISION_PROMPT


def user_decision_labels(item_description: str) -> str:
    return f"Item:\n{item_description}"


def system_chat() -> str:
    return (
        "You are a calm executive assistant. Make decisions instead of asking questions. "
        "Offer one action at most. If unsure, reassure briefly."
    )


def user_chat(history_lines: list[str]) -> str:
    return "Conversation so far:\n" + "\n".join(history_lines) + "\n\nReply to the last user message."
