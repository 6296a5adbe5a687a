"""Tests for the file-backed progress store."""

import json
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, date, datetime, timedelta

import pytest

from english_tutor.models.progress import ErrorBreakdown
from english_tutor.models.session import SessionRecord
from english_tutor.storage.errors import (
    DuplicateUnlockError,
    ProgressSaveError,
    VocabularyNotFoundError,
)
from english_tutor.storage.progress_store import ProgressStore

NOW = datetime(2026, 10, 17, 12, 0, tzinfo=UTC)
DAY = NOW.date()


def _record(session_id: str, score: int = 80, duration: int = 300) -> SessionRecord:
    return SessionRecord(
        session_id=session_id,
        mode="FREE_TALK",
        score=score,
        duration_seconds=duration,
        message_count=5,
        error_counts=ErrorBreakdown(GRAMMAR=1),
        ended_at=NOW,
    )


@pytest.fixture
def store(tmp_path):
    return ProgressStore(tmp_path / "users")


class TestSessions:
    def test_fold_creates_and_updates_day(self, store):
        store.fold_session("alice", _record("s1", 80), DAY)
        aggregate = store.fold_session("alice", _record("s2", 91), DAY)
        assert aggregate.sessions_count == 2
        assert aggregate.avg_score == 86
        assert aggregate.grammar_errors == 2
        assert store.get_daily_aggregate("alice", DAY) == aggregate
        assert [s.session_id for s in store.list_sessions("alice")] == ["s1", "s2"]

    def test_days_are_separate(self, store):
        store.fold_session("alice", _record("s1"), DAY)
        store.fold_session("alice", _record("s2"), DAY - timedelta(days=3))
        store.fold_session("alice", _record("s3"), DAY - timedelta(days=1))
        assert store.list_active_days("alice") == [
            DAY, DAY - timedelta(days=1), DAY - timedelta(days=3),
        ]

    def test_unknown_user_is_empty(self, store):
        assert store.get_daily_aggregate("nobody", DAY) is None
        assert store.list_active_days("nobody") == []
        assert store.list_sessions("nobody") == []

    def test_users_are_isolated(self, store):
        store.fold_session("alice", _record("s1"), DAY)
        assert store.list_sessions("bob") == []

    def test_concurrent_folds_lose_nothing(self, store):
        def fold(n: int) -> None:
            store.fold_session("alice", _record(f"s{n}", score=n % 100), DAY)

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(fold, range(40)))

        aggregate = store.get_daily_aggregate("alice", DAY)
        assert aggregate.sessions_count == 40
        assert aggregate.total_duration == 40 * 300
        assert len(store.list_sessions("alice")) == 40

    def test_same_session_folded_once(self, store):
        first = store.fold_session("alice", _record("s1", 80), DAY)
        again = store.fold_session("alice", _record("s1", 80), DAY)
        assert again == first
        assert again.sessions_count == 1
        assert again.total_duration == 300
        assert len(store.list_sessions("alice")) == 1

    def test_retry_on_another_day_returns_original_day(self, store):
        store.fold_session("alice", _record("s1"), DAY)
        aggregate = store.fold_session("alice", _record("s1"), DAY + timedelta(days=1))
        assert aggregate.day == DAY
        assert store.get_daily_aggregate("alice", DAY + timedelta(days=1)) is None

    def test_persisted_as_json(self, store):
        store.fold_session("alice", _record("s1"), DAY)
        data = json.loads((store.users_dir / "alice.json").read_text())
        assert data["user_id"] == "alice"
        assert DAY.isoformat() in data["daily"]


class TestValidation:
    @pytest.mark.parametrize("user_id", ["", "../etc", "a b", "x" * 65])
    def test_invalid_user_id(self, store, user_id):
        with pytest.raises(ValueError):
            store.list_sessions(user_id)

    def test_corrupt_file(self, store):
        (store.users_dir / "alice.json").write_text("{not json")
        with pytest.raises(ProgressSaveError):
            store.list_sessions("alice")


class TestVocabulary:
    def test_new_word(self, store):
        item = store.save_vocabulary(
            "alice", " Ubiquitous ", "It is ubiquitous.", "everywhere", now=NOW
        )
        assert item.word == "ubiquitous"
        assert item.mastery == 0
        assert item.reviewed_at is None
        assert store.get_vocabulary("alice", "UBIQUITOUS") == item

    def test_exposure(self, store):
        store.save_vocabulary("alice", "gist", "first", "main point", now=NOW)
        item = store.save_vocabulary("alice", "gist", "second", now=NOW)
        assert item.mastery == 5
        assert item.context == "second"
        assert item.definition == "main point"
        assert item.reviewed_at == NOW
        assert len(store.list_vocabulary("alice")) == 1

    def test_review(self, store):
        store.save_vocabulary("alice", "gist", now=NOW)
        item = store.apply_review("alice", "Gist", True, NOW)
        assert item.mastery == 15
        assert store.get_vocabulary("alice", "gist").mastery == 15

    def test_review_unknown_word(self, store):
        with pytest.raises(VocabularyNotFoundError):
            store.apply_review("alice", "missing", True, NOW)


class TestAchievements:
    def test_insert_once(self, store):
        unlock = store.insert_unlock("alice", "FIRST_SESSION", NOW)
        assert unlock.unlocked_at == NOW
        with pytest.raises(DuplicateUnlockError):
            store.insert_unlock("alice", "FIRST_SESSION", NOW)
        assert len(store.list_unlocked("alice")) == 1

    def test_duplicate_is_a_save_error(self):
        assert issubclass(DuplicateUnlockError, ProgressSaveError)


class TestDailyGoal:
    def test_default_unset(self, store):
        assert store.get_daily_goal("alice") is None

    def test_set(self, store):
        assert store.set_daily_goal("alice", 30) == 30
        assert store.get_daily_goal("alice") == 30


def test_get_daily_aggregate_accepts_datetime(store):
    store.fold_session("alice", _record("s1"), date(2026, 10, 17))
    assert store.get_daily_aggregate("alice", NOW) is not None
