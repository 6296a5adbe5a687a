"""Session data models."""

import math
import uuid
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field, field_validator

from english_tutor.clock import utc_now
from english_tutor.models.progress import (
    Correction,
    DailyAggregate,
    ErrorBreakdown,
    SessionScoringInput,
)


class Role(StrEnum):
    USER = "USER"
    ASSISTANT = "ASSISTANT"


class SessionTally(BaseModel):
    """Running counters for a conversation session in progress.

    Each completed turn is folded in with :meth:`add_message`; at session
    end :meth:`to_scoring_input` hands the totals to the score engine.
    """

    session_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    mode: str = "FREE_TALK"
    started_at: datetime = Field(default_factory=utc_now)
    message_count: int = 0
    filler_word_count: int = 0
    error_counts: ErrorBreakdown = Field(default_factory=ErrorBreakdown)
    corrections: list[Correction] = Field(default_factory=list)
    pronunciation_scores: list[float] = Field(default_factory=list)
    words_learned: list[str] = Field(default_factory=list)

    @field_validator("words_learned")
    @classmethod
    def _normalize_words(cls, words: list[str]) -> list[str]:
        normalized: list[str] = []
        for word in words:
            word = word.strip().lower()
            if word and word not in normalized:
                normalized.append(word)
        return normalized

    def add_message(
        self,
        role: Role = Role.USER,
        corrections: list[Correction] | None = None,
        filler_word_count: int = 0,
        pronunciation_score: float | None = None,
    ) -> None:
        """Fold one message's signals into the session counters."""
        self.message_count += 1
        for correction in corrections or []:
            self.corrections.append(correction)
            self.error_counts.increment(correction.type)
        if role == Role.USER:
            self.filler_word_count += max(0, filler_word_count)
            if pronunciation_score is not None and not math.isnan(pronunciation_score):
                self.pronunciation_scores.append(
                    max(0.0, min(100.0, float(pronunciation_score)))
                )

    def add_word(self, word: str) -> None:
        word = word.strip().lower()
        if word and word not in self.words_learned:
            self.words_learned.append(word)

    @property
    def avg_pronunciation(self) -> float | None:
        if not self.pronunciation_scores:
            return None
        return sum(self.pronunciation_scores) / len(self.pronunciation_scores)

    def to_scoring_input(self) -> SessionScoringInput:
        return SessionScoringInput(
            error_counts=self.error_counts.model_copy(),
            message_count=self.message_count,
            filler_word_count=self.filler_word_count,
            avg_pronunciation=self.avg_pronunciation,
        )


class SessionRecord(BaseModel):
    """Immutable summary of a completed, scored session."""

    session_id: str
    mode: str
    score: int | None = None
    duration_seconds: int = 0
    message_count: int = 0
    filler_word_count: int = 0
    avg_pronunciation: float | None = None
    error_counts: ErrorBreakdown = Field(default_factory=ErrorBreakdown)
    words_learned: int = 0
    ended_at: datetime = Field(default_factory=utc_now)


class SessionOutcome(BaseModel):
    """What finishing a session produced."""

    record: SessionRecord
    daily: DailyAggregate
    tips: list[str] = Field(default_factory=list)
    grade: str = "F"
