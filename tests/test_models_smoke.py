"""Smoke tests for Pydantic models and settings."""

from datetime import date

import pytest
from pydantic import ValidationError

from english_tutor.config import Settings
from english_tutor.models.progress import (
    Correction,
    DailyAggregate,
    ErrorBreakdown,
    ErrorCategory,
    SessionScoringInput,
    VocabularyItem,
)
from english_tutor.models.session import Role, SessionTally


class TestErrorBreakdown:
    def test_defaults(self):
        breakdown = ErrorBreakdown()
        assert breakdown.model_dump() == {
            "GRAMMAR": 0, "VOCABULARY": 0, "STRUCTURE": 0, "FLUENCY": 0,
        }

    def test_negative_and_garbage_clamped(self):
        breakdown = ErrorBreakdown(GRAMMAR=-3, VOCABULARY="x", STRUCTURE="2")
        assert breakdown.GRAMMAR == 0
        assert breakdown.VOCABULARY == 0
        assert breakdown.STRUCTURE == 2

    def test_increment_and_total(self):
        breakdown = ErrorBreakdown()
        breakdown.increment(ErrorCategory.FLUENCY, 2)
        breakdown.increment(ErrorCategory.GRAMMAR)
        breakdown.increment(ErrorCategory.GRAMMAR, -5)
        assert breakdown.total == 3
        assert breakdown.items()[0] == (ErrorCategory.GRAMMAR, 1)


class TestCorrection:
    def test_frozen(self):
        correction = Correction(
            type=ErrorCategory.GRAMMAR, original="goed", corrected="went", explanation="past"
        )
        with pytest.raises(ValidationError):
            correction.original = "go"

    def test_unknown_category_rejected(self):
        with pytest.raises(ValidationError):
            Correction(type="SPELLING", original="a", corrected="b", explanation="c")


class TestVocabularyItem:
    def test_word_normalized(self):
        assert VocabularyItem(word="  Gist ").word == "gist"

    def test_mastery_clamped(self):
        assert VocabularyItem(word="a", mastery=250).mastery == 100
        assert VocabularyItem(word="a", mastery=-4).mastery == 0


class TestDailyAggregate:
    def test_minutes(self):
        aggregate = DailyAggregate(user_id="alice", day=date(2026, 10, 17), total_duration=179)
        assert aggregate.minutes == 2


class TestSessionTally:
    def test_add_message(self):
        tally = SessionTally()
        tally.add_message(Role.USER, filler_word_count=2, pronunciation_score=120)
        tally.add_message(Role.USER, pronunciation_score=60)
        tally.add_message(
            Role.ASSISTANT,
            corrections=[Correction(
                type=ErrorCategory.VOCABULARY, original="big", corrected="huge", explanation="x"
            )],
            filler_word_count=5,
        )
        assert tally.message_count == 3
        assert tally.filler_word_count == 2
        assert tally.avg_pronunciation == 80
        assert tally.error_counts.VOCABULARY == 1

    def test_no_pronunciation(self):
        assert SessionTally().avg_pronunciation is None

    def test_nan_pronunciation_ignored(self):
        tally = SessionTally()
        tally.add_message(Role.USER, pronunciation_score=float("nan"))
        tally.add_message(Role.USER, pronunciation_score=70)
        assert tally.avg_pronunciation == 70

    def test_words_learned_normalized(self):
        tally = SessionTally(words_learned=["Gist", "gist", " gist ", "", "Candid"])
        assert tally.words_learned == ["gist", "candid"]

    def test_scoring_input(self):
        tally = SessionTally()
        tally.add_message(Role.USER, filler_word_count=1)
        scoring = tally.to_scoring_input()
        assert scoring.message_count == 1
        assert scoring.filler_word_count == 1
        assert scoring.avg_pronunciation is None

    def test_nan_scoring_pronunciation_is_unmeasured(self):
        assert SessionScoringInput(avg_pronunciation=float("nan")).avg_pronunciation is None


class TestSettings:
    def test_defaults_from_yaml(self, tmp_path):
        settings = Settings(project_root=tmp_path)
        assert settings.default_daily_goal_minutes == 15
        assert settings.review_batch_size == 20
        assert settings.total_modes == 4

    def test_users_dir_created(self, tmp_path):
        settings = Settings(project_root=tmp_path)
        assert settings.users_dir == tmp_path / "data" / "users"
        assert settings.users_dir.is_dir()

    def test_env_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv("REVIEW_BATCH_SIZE", "7")
        assert Settings(project_root=tmp_path).review_batch_size == 7
