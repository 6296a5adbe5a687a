"""Progress data models: corrections, scoring input, daily rollups, vocabulary."""

import math
from datetime import date, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from english_tutor.clock import utc_now


class ErrorCategory(StrEnum):
    """Correction categories, in classification priority order."""

    GRAMMAR = "GRAMMAR"
    VOCABULARY = "VOCABULARY"
    STRUCTURE = "STRUCTURE"
    FLUENCY = "FLUENCY"


def _non_negative(value: object) -> int:
    try:
        return max(0, int(value))  # type: ignore[call-overload]
    except (TypeError, ValueError):
        return 0


class ErrorBreakdown(BaseModel):
    """Per-category error counts. All four categories are always present."""

    GRAMMAR: int = 0
    VOCABULARY: int = 0
    STRUCTURE: int = 0
    FLUENCY: int = 0

    @field_validator("GRAMMAR", "VOCABULARY", "STRUCTURE", "FLUENCY", mode="before")
    @classmethod
    def _clamp_count(cls, value: object) -> int:
        return _non_negative(value)

    def get(self, category: ErrorCategory) -> int:
        return getattr(self, category.value)

    def increment(self, category: ErrorCategory, amount: int = 1) -> None:
        setattr(self, category.value, self.get(category) + max(0, amount))

    @property
    def total(self) -> int:
        return sum(self.get(c) for c in ErrorCategory)

    def items(self) -> list[tuple[ErrorCategory, int]]:
        return [(c, self.get(c)) for c in ErrorCategory]


class Correction(BaseModel):
    """A single classified correction attached to a tutor message."""

    model_config = ConfigDict(frozen=True)

    type: ErrorCategory
    original: str
    corrected: str
    explanation: str


class SessionScoringInput(BaseModel):
    """Final tallies of a session, consumed by the score engine."""

    error_counts: ErrorBreakdown = Field(default_factory=ErrorBreakdown)
    message_count: int = 0
    filler_word_count: int = 0
    avg_pronunciation: float | None = None

    @field_validator("avg_pronunciation", mode="before")
    @classmethod
    def _nan_is_unmeasured(cls, value: object) -> object:
        if isinstance(value, float) and math.isnan(value):
            return None
        return value


class DailyAggregate(BaseModel):
    """Per-user rollup of one UTC calendar day."""

    user_id: str
    day: date
    sessions_count: int = 0
    total_duration: int = 0  # seconds
    avg_score: float = 0.0
    total_score: float = 0.0  # sum of folded session scores
    grammar_errors: int = 0
    vocab_errors: int = 0
    structure_errors: int = 0
    fluency_errors: int = 0
    words_learned: int = 0
    filler_words: int = 0

    @property
    def minutes(self) -> int:
        return self.total_duration // 60


class VocabularyItem(BaseModel):
    """A word the user has met, with its review state."""

    word: str
    definition: str | None = None
    context: str = ""
    source: str | None = None
    mastery: int = 0
    reviewed_at: datetime | None = None
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator("word")
    @classmethod
    def _normalize_word(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("mastery", mode="before")
    @classmethod
    def _clamp_mastery(cls, value: object) -> int:
        return min(100, _non_negative(value))


class ReviewQueue(BaseModel):
    """A batch of words due for review plus queue statistics."""

    words: list[VocabularyItem] = Field(default_factory=list)
    total_due: int = 0
    total_words: int = 0
    reviewed_today: int = 0


class StreakRecord(BaseModel):
    current_streak: int = 0
    longest_streak: int = 0
    today_minutes: int = 0
    daily_goal_minutes: int = 15
    daily_goal_met: bool = False


class AchievementUnlock(BaseModel):
    user_id: str
    achievement_type: str
    unlocked_at: datetime = Field(default_factory=utc_now)
