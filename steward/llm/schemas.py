from __future__ import annotations
from typing import Literal
from pydantic import BaseModel, Field, confloat

Consequence = Literal["financial", "relationship", "opportunity", "reputation", "none"]
Time = Literal["deadline_today", "waiting_on_user", "can_wait", "no_deadline"]
Intent = Literal["matches_goals", "active_project", "habit_related", "random"]
Source = Literal["human_known", "human_unknown", "system", "notification"]
Load = Literal["quick_decision", "deep_thinking", "emotional_drain"]

Score = confloat(ge=0.0, le=10.0)


class DecisionScoresJSON(BaseModel):
    consequence: Consequence = "none"
    consequenceScore: Score = 5.0
    timeSensitivity: Time = "no_deadline"
    timeScore: Score = 5.0
    intentAlignment: Intent = "random"
    intentScore: Score = 5.0
    sourceWeight: Source = "human_unknown"
    sourceScore: Score = 5.0
    cognitiveLoad: Load = "quick_decision"
    loadScore: Score = 5.0


class DecisionLabelsJSON(BaseModel):
    scores: DecisionScoresJSON
    breaksSomething: bool = False
    reasoning: str = Field(default="", max_length=500)
