import math
from dataclasses import dataclass
from enum import Enum
from typing import Any

SCORE_MIN = 0
SCORE_MAX = 10
DEFAULT_PASS_THRESHOLD = 7


class Winner(str, Enum):
    WON = "won"
    TIE = "tie"


def clamp_score(value: Any) -> int:
    try:
        score = float(value)
    except (TypeError, ValueError):
        return SCORE_MIN
    if math.isnan(score):
        return SCORE_MIN
    return int(max(SCORE_MIN, min(SCORE_MAX, score)))


@dataclass(frozen=True)
class Evaluation:
    criterion: str
    score: int
    passed: bool
    reasoning: str | None = None
    error: str | None = None
    # None means "not marked": losers of a comparison are left unmarked
    winner: Winner | None = None

    @classmethod
    def failed(cls, criterion: str, error: str) -> "Evaluation":
        return cls(criterion=criterion, score=0, passed=False, error=error)

    @property
    def has_error(self) -> bool:
        return self.error is not None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "criterion": self.criterion,
            "score": self.score,
            "pass": self.passed,
            "reasoning": self.reasoning,
            "error": self.error,
            "winner": self.winner.value if self.winner else None,
        }
        return {k: v for k, v in data.items() if v is not None}
