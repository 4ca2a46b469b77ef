from __future__ import annotations
import logging
from datetime import date, datetime
from typing import Optional

from pydantic import ValidationError

from steward.llm.promptlib import system_decision_labels, user_decision_labels
from steward.llm.sanitize import sanitize_untrusted_text
from steward.llm.schemas import DecisionLabelsJSON
from steward.llm.types import LLM
from .scorer import (
    CognitiveLoad,
    ConsequenceType,
    DecisionResult,
    Dimension,
    DimensionLabels,
    IntentAlignment,
    ItemToScore,
    SourceWeight,
    TimeSensitivity,
    score_item,
)

logger = logging.getLogger(__name__)


def _due_today(due_date: Optional[str], today: date) -> bool:
    if not due_date:
        return False
    raw = due_date[:-1] + "+00:00" if due_date.endswith("Z") else due_date
    try:
        return datetime.fromisoformat(raw).date() == today
    except ValueError:
        try:
            return date.fromisoformat(due_date[:10]) == today
        except ValueError:
            return False


def fallback_labels(item: ItemToScore, today: Optional[date] = None) -> DimensionLabels:
    today = today or date.today()
    high = (item.priority or "").lower() == "high"
    consequence = 7.0 if high else 3.0
    time_score = 7.0 if high else 3.0
    source = 5.0
    if item.is_vip:
        source = 9.0
        consequence = max(consequence, 7.0)
    if _due_today(item.due_date, today):
        time_score = 9.0
    return DimensionLabels(
        consequence=Dimension.of(ConsequenceType.RELATIONSHIP if high else ConsequenceType.NONE, consequence),
        time_sensitivity=Dimension.of(TimeSensitivity.CAN_WAIT if item.due_date else TimeSensitivity.NO_DEADLINE, time_score),
        intent_alignment=Dimension.of(IntentAlignment.HABIT_RELATED, 5.0),
        source_weight=Dimension.of(SourceWeight.HUMAN_KNOWN if item.is_vip else SourceWeight.HUMAN_UNKNOWN, source),
        cognitive_load=Dimension.of(CognitiveLoad.QUICK_DECISION, 5.0),
    )


def describe_item(item: ItemToScore) -> str:
    parts = [f"Type: {item.type}", f"Title: {sanitize_untrusted_text(item.title, 200)}"]
    if item.content:
        parts.append(f"Content: {sanitize_untrusted_text(item.content, 500)}")
    if item.sender:
        vip = " (VIP)" if item.is_vip else ""
        parts.append(f"From: {sanitize_untrusted_text(item.sender, 200)}{vip}")
    if item.due_date:
        parts.append(f"Due: {item.due_date}")
    if item.priority:
        parts.append(f"Priority: {item.priority}")
    if item.labels:
        parts.append("Labels: " + ", ".join(item.labels))
    return "\n".join(parts)


def labels_from_json(data: DecisionLabelsJSON) -> DimensionLabels:
    s = data.scores
    return DimensionLabels(
        consequence=Dimension.of(ConsequenceType(s.consequence), s.consequenceScore),
        time_sensitivity=Dimension.of(TimeSensitivity(s.timeSensitivity), s.timeScore),
        intent_alignment=Dimension.of(IntentAlignment(s.intentAlignment), s.intentScore),
        source_weight=Dimension.of(SourceWeight(s.sourceWeight), s.sourceScore),
        cognitive_load=Dimension.of(CognitiveLoad(s.cognitiveLoad), s.loadScore),
    )


class DecisionLabeler:
    """Labels items with the LLM when one is configured, heuristics otherwise."""

    def __init__(self, llm: Optional[LLM] = None):
        self.llm = llm

    def label(self, item: ItemToScore, today: Optional[date] = None) -> DimensionLabels:
        if not self.llm:
            return fallback_labels(item, today)
        try:
            resp = self.llm.complete(
                system=system_decision_labels(),
                user=user_decision_labels(describe_item(item)),
                json_mode=True,
            )
        except (OSError, ValueError) as e:
            logger.warning("label request failed for item %s: %s", item.id, e)
            return fallback_labels(item, today)
        if not resp.json:
            return fallback_labels(item, today)
        try:
            parsed = DecisionLabelsJSON.model_validate(resp.json)
        except ValidationError:
            logger.info("discarding malformed labels for item %s", item.id)
            return fallback_labels(item, today)
        return labels_from_json(parsed)

    def score(self, item: ItemToScore, today: Optional[date] = None) -> DecisionResult:
        return score_item(item, self.label(item, today))
