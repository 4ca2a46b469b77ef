from __future__ import annotations
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Tuple


class FinalClassification(str, Enum):
    ACT_NOW = "act_now"
    SCHEDULE = "schedule"
    DELEGATE = "delegate"
    ARCHIVE = "archive"
    IGNORE = "ignore"


# lower bounds are inclusive; checked top-down
THRESHOLDS: Tuple[Tuple[float, FinalClassification], ...] = (
    (7.5, FinalClassification.ACT_NOW),
    (5.0, FinalClassification.SCHEDULE),
    (3.0, FinalClassification.DELEGATE),
    (1.5, FinalClassification.ARCHIVE),
)

# most urgent first
URGENCY_ORDER: Tuple[FinalClassification, ...] = tuple(c for _, c in THRESHOLDS) + (FinalClassification.IGNORE,)

CLASSIFICATION_LABELS: Mapping[FinalClassification, str] = MappingProxyType({
    FinalClassification.ACT_NOW: "Act Now",
    FinalClassification.SCHEDULE: "Schedule",
    FinalClassification.DELEGATE: "Delegate",
    FinalClassification.ARCHIVE: "Archive",
    FinalClassification.IGNORE: "Ignore",
})

CLASSIFICATION_REASONS: Mapping[FinalClassification, str] = MappingProxyType({
    FinalClassification.ACT_NOW: "Something meaningful breaks if this waits past today.",
    FinalClassification.SCHEDULE: "This matters, but it can be given a slot instead of your attention now.",
    FinalClassification.DELEGATE: "This needs handling, but not necessarily by you.",
    FinalClassification.ARCHIVE: "Worth keeping for reference, nothing to do.",
    FinalClassification.IGNORE: "Nothing breaks if this is ignored.",
})


def classify(total_score: float) -> FinalClassification:
    if total_score != total_score:
        return FinalClassification.IGNORE
    for bound, cls in THRESHOLDS:
        if total_score >= bound:
            return cls
    return FinalClassification.IGNORE


def urgency_rank(classification: FinalClassification) -> int:
    """0 is the most urgent class."""
    return URGENCY_ORDER.index(classification)
