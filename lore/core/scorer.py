"""Relevance scoring for retrieval candidates."""

import math
from datetime import date

from .constants import DECAY_HALF_LIFE_DAYS, MAX_SCORE
from .types import CandidateItem, parse_date


def round_half_up(value: float) -> int:
    """Round to nearest integer, halves away from zero for non-negative input."""
    return int(math.floor(value + 0.5))


class RelevanceScorer:
    """
    Scores candidates by source confidence and recency.

    score = floor(confidence_factor * decay_factor / 100), an integer in
    [0, 100]. Higher = more trusted and more recent.
    """

    def __init__(self, today: date | None = None, half_life_days: int = DECAY_HALF_LIFE_DAYS):
        self._today = today
        self.half_life_days = half_life_days

    @property
    def today(self) -> date:
        """The pinned date, or the current date when none was pinned."""
        return self._today or date.today()

    def days_old(self, timestamp: str | None) -> int | None:
        """Whole calendar days since the timestamp's date. Time of day is ignored."""
        when = parse_date(timestamp)
        if when is None:
            return None
        return max(0, (self.today - when).days)

    def decay_ratio(self, days_old: float) -> float:
        return 1.0 / (1.0 + days_old / self.half_life_days)

    def decay_factor(self, timestamp: str | None) -> int:
        days = self.days_old(timestamp)
        if days is None:
            return MAX_SCORE
        return round_half_up(MAX_SCORE * self.decay_ratio(days))

    @staticmethod
    def confidence_factor(confidence: float) -> int:
        return round_half_up(confidence * 100)

    def score(self, item: CandidateItem) -> int:
        return (self.confidence_factor(item.confidence) * self.decay_factor(item.timestamp)) // 100
