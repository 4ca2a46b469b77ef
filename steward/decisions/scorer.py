"""Five-dimension item scoring.

Core question: if this is ignored today, does something meaningful break?
Dimension labels come from a classifier (LLM or heuristics); this module only
turns already-labelled dimensions into a weighted score.
"""
from __future__ import annotations
import math
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import List, Mapping, Optional

from .classifier import CLASSIFICATION_REASONS, FinalClassification, classify


class ConsequenceType(str, Enum):
    FINANCIAL = "financial"
    RELATIONSHIP = "relationship"
    OPPORTUNITY = "opportunity"
    REPUTATION = "reputation"
    NONE = "none"


class TimeSensitivity(str, Enum):
    DEADLINE_TODAY = "deadline_today"
    WAITING_ON_USER = "waiting_on_user"
    CAN_WAIT = "can_wait"
    NO_DEADLINE = "no_deadline"


class IntentAlignment(str, Enum):
    MATCHES_GOALS = "matches_goals"
    ACTIVE_PROJECT = "active_project"
    HABIT_RELATED = "habit_related"
    RANDOM = "random"


class SourceWeight(str, Enum):
    HUMAN_KNOWN = "human_known"
    HUMAN_UNKNOWN = "human_unknown"
    SYSTEM = "system"
    NOTIFICATION = "notification"


class CognitiveLoad(str, Enum):
    QUICK_DECISION = "quick_decision"
    DEEP_THINKING = "deep_thinking"
    EMOTIONAL_DRAIN = "emotional_drain"


LABEL_SCORES: Mapping[Enum, float] = MappingProxyType({
    ConsequenceType.FINANCIAL: 10,
    ConsequenceType.RELATIONSHIP: 8,
    ConsequenceType.OPPORTUNITY: 7,
    ConsequenceType.REPUTATION: 6,
    ConsequenceType.NONE: 0,
    TimeSensitivity.DEADLINE_TODAY: 10,
    TimeSensitivity.WAITING_ON_USER: 7,
    TimeSensitivity.CAN_WAIT: 3,
    TimeSensitivity.NO_DEADLINE: 0,
    IntentAlignment.MATCHES_GOALS: 10,
    IntentAlignment.ACTIVE_PROJECT: 7,
    IntentAlignment.HABIT_RELATED: 4,
    IntentAlignment.RANDOM: 0,
    SourceWeight.HUMAN_KNOWN: 10,
    SourceWeight.HUMAN_UNKNOWN: 5,
    SourceWeight.SYSTEM: 3,
    SourceWeight.NOTIFICATION: 1,
    CognitiveLoad.QUICK_DECISION: 2,
    CognitiveLoad.DEEP_THINKING: 6,
    CognitiveLoad.EMOTIONAL_DRAIN: 9,
})

WEIGHTS: Mapping[str, float] = MappingProxyType({
    "consequence": 0.30,
    "time_sensitivity": 0.25,
    "intent_alignment": 0.20,
    "source_weight": 0.15,
    "cognitive_load": 0.10,  # inverted
})

SCORE_MIN = 0.0
SCORE_MAX = 10.0
NEUTRAL_SCORE = 5.0
HIGH_SCORE = 7.0


def clamp_score(value: float) -> float:
    try:
        v = float(value)
    except (TypeError, ValueError):
        return SCORE_MIN
    if math.isnan(v):
        return SCORE_MIN
    return min(SCORE_MAX, max(SCORE_MIN, v))


@dataclass(frozen=True)
class Dimension:
    label: Optional[Enum]
    score: float

    @classmethod
    def of(cls, label: Enum, score: Optional[float] = None) -> "Dimension":
        return cls(label=label, score=clamp_score(LABEL_SCORES[label] if score is None else score))


@dataclass(frozen=True)
class DimensionLabels:
    consequence: Dimension
    time_sensitivity: Dimension
    intent_alignment: Dimension
    source_weight: Dimension
    cognitive_load: Dimension

    @classmethod
    def neutral(cls, **overrides: Dimension) -> "DimensionLabels":
        """Mid-range stand-ins for callers that are missing a label."""
        base = {name: Dimension(label=None, score=NEUTRAL_SCORE) for name in WEIGHTS}
        base.update(overrides)
        return cls(**base)


@dataclass(frozen=True)
class ItemToScore:
    id: str
    type: str
    title: str
    content: str = ""
    sender: str = ""
    sender_email: str = ""
    is_vip: bool = False
    due_date: Optional[str] = None
    priority: Optional[str] = None
    labels: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class DecisionScores:
    consequence: Optional[ConsequenceType]
    consequence_score: float
    time_sensitivity: Optional[TimeSensitivity]
    time_score: float
    intent_alignment: Optional[IntentAlignment]
    intent_score: float
    source_weight: Optional[SourceWeight]
    source_score: float
    cognitive_load: Optional[CognitiveLoad]
    load_score: float


@dataclass(frozen=True)
class DecisionResult:
    item_id: str
    scores: DecisionScores
    total_score: float
    classification: FinalClassification
    reasoning: str
    breaks_something: bool


def calculate_total_score(scores: DecisionScores) -> float:
    total = (
        clamp_score(scores.consequence_score) * WEIGHTS["consequence"]
        + clamp_score(scores.time_score) * WEIGHTS["time_sensitivity"]
        + clamp_score(scores.intent_score) * WEIGHTS["intent_alignment"]
        + clamp_score(scores.source_score) * WEIGHTS["source_weight"]
        + (SCORE_MAX - clamp_score(scores.load_score)) * WEIGHTS["cognitive_load"]
    )
    return min(SCORE_MAX, max(SCORE_MIN, total))


def breaks_something(scores: DecisionScores) -> bool:
    return scores.consequence_score >= HIGH_SCORE and scores.time_score >= HIGH_SCORE


def to_scores(labels: DimensionLabels) -> DecisionScores:
    return DecisionScores(
        consequence=labels.consequence.label,
        consequence_score=clamp_score(labels.consequence.score),
        time_sensitivity=labels.time_sensitivity.label,
        time_score=clamp_score(labels.time_sensitivity.score),
        intent_alignment=labels.intent_alignment.label,
        intent_score=clamp_score(labels.intent_alignment.score),
        source_weight=labels.source_weight.label,
        source_score=clamp_score(labels.source_weight.score),
        cognitive_load=labels.cognitive_load.label,
        load_score=clamp_score(labels.cognitive_load.score),
    )


def score_item(item: ItemToScore, labels: DimensionLabels) -> DecisionResult:
    scores = to_scores(labels)
    total = calculate_total_score(scores)
    cls = classify(total)
    return DecisionResult(
        item_id=item.id,
        scores=scores,
        total_score=total,
        classification=cls,
        reasoning=CLASSIFICATION_REASONS[cls],
        breaks_something=breaks_something(scores),
    )
