from __future__ import annotations
from typing import Any, Callable, Optional, Sequence, TypeVar

T = TypeVar("T")

_URGENCY_BOOST = {"critical": 100.0, "high": 50.0, "medium": 25.0}


def _field(option: Any, name: str) -> Any:
    if isinstance(option, dict):
        return option.get(name)
    return getattr(option, name, None)


def option_score(option: Any) -> float:
    """Effective score of a candidate.

    ``score`` is the base. An optional ``priority`` rank (lower is more
    important) and ``urgency`` label add fixed boosts.
    """
    raw = _field(option, "score")
    try:
        score = float(raw) if raw is not None else 0.0
    except (TypeError, ValueError):
        score = 0.0
    if score != score:
        score = 0.0
    rank = _field(option, "priority")
    if isinstance(rank, (int, float)) and not isinstance(rank, bool):
        score += (10 - rank) * 10
    urgency = _field(option, "urgency")
    if isinstance(urgency, str):
        score += _URGENCY_BOOST.get(urgency, 0.0)
    return score


class GlobalArbiter:
    def __init__(self, score: Callable[[Any], float] = option_score):
        self.score = score

    def choose(self, options: Sequence[T]) -> Optional[T]:
        best: Optional[T] = None
        best_score = 0.0
        for opt in options:
            s = self.score(opt)
            # strict comparison keeps the earliest option on ties
            if best is None or s > best_score:
                best, best_score = opt, s
        return best
