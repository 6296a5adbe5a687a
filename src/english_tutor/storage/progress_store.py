"""Per-user progress persistence (JSON + fcntl.flock + atomic write).

Each user has one JSON document holding their daily rollups, scored
sessions, vocabulary, unlocked achievements and daily goal. Every mutation
is one read-modify-write done while holding an exclusive lock on the
user's lock file, so two sessions finishing at once cannot lose an update
and an achievement can only ever be inserted once.
"""

import fcntl
import json
import os
import re
import tempfile
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path
from typing import TypeVar

import structlog
from pydantic import BaseModel, Field, ValidationError

from english_tutor.clock import day_key, to_utc, utc_day, utc_now
from english_tutor.models.progress import AchievementUnlock, DailyAggregate, VocabularyItem
from english_tutor.models.session import SessionRecord
from english_tutor.progress.daily import apply_session_to_day
from english_tutor.progress.review import apply_exposure, apply_review_outcome
from english_tutor.storage.errors import (
    DuplicateUnlockError,
    ProgressSaveError,
    VocabularyNotFoundError,
)

logger = structlog.get_logger()

T = TypeVar("T")

_USER_ID_RE = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


class UserProgressDocument(BaseModel):
    """On-disk shape of one user's progress."""

    user_id: str
    daily_goal_minutes: int | None = None
    daily: dict[str, DailyAggregate] = Field(default_factory=dict)
    sessions: list[SessionRecord] = Field(default_factory=list)
    vocabulary: dict[str, VocabularyItem] = Field(default_factory=dict)
    achievements: dict[str, datetime] = Field(default_factory=dict)


def validate_user_id(user_id: str) -> str:
    if not _USER_ID_RE.match(user_id):
        raise ValueError(f"Invalid user ID: {user_id!r}")
    return user_id


class ProgressStore:
    """File-backed storage for user progress.

    Args:
        users_dir: Directory holding one ``{user_id}.json`` per user.
    """

    def __init__(self, users_dir: Path):
        self.users_dir = Path(users_dir)
        self.users_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, user_id: str) -> Path:
        return self.users_dir / f"{validate_user_id(user_id)}.json"

    @contextmanager
    def _locked(self, user_id: str, exclusive: bool) -> Iterator[Path]:
        path = self._path(user_id)
        lock_path = path.with_name(path.name + ".lock")
        try:
            with open(lock_path, "w") as lock_file:
                fcntl.flock(lock_file, fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH)
                try:
                    yield path
                finally:
                    fcntl.flock(lock_file, fcntl.LOCK_UN)
        except OSError as e:
            logger.error("progress_lock_failed", user_id=user_id, error=str(e))
            raise ProgressSaveError() from e

    def _read(self, user_id: str, path: Path) -> UserProgressDocument:
        if not path.exists():
            return UserProgressDocument(user_id=user_id)
        try:
            return UserProgressDocument.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            logger.error("progress_read_failed", user_id=user_id, error=str(e))
            raise ProgressSaveError() from e

    def _write(self, path: Path, document: UserProgressDocument) -> None:
        try:
            with tempfile.NamedTemporaryFile(
                "w", dir=path.parent, delete=False, suffix=".json", encoding="utf-8"
            ) as tmp:
                json.dump(document.model_dump(mode="json"), tmp, indent=2)
            os.replace(tmp.name, path)
        except OSError as e:
            logger.error("progress_write_failed", path=str(path), error=str(e))
            raise ProgressSaveError() from e

    def load(self, user_id: str) -> UserProgressDocument:
        """Snapshot of a user's progress. Unknown users get an empty document."""
        with self._locked(user_id, exclusive=False) as path:
            return self._read(user_id, path)

    def _mutate(self, user_id: str, change: Callable[[UserProgressDocument], T]) -> T:
        with self._locked(user_id, exclusive=True) as path:
            document = self._read(user_id, path)
            result = change(document)
            self._write(path, document)
            return result

    # Daily aggregates and sessions

    def fold_session(self, user_id: str, record: SessionRecord, day: date) -> DailyAggregate:
        """Store a scored session and fold it into its day in one locked step.

        A session id that is already stored is not folded again; the day it
        landed in is returned unchanged.
        """

        def change(document: UserProgressDocument) -> DailyAggregate:
            key = day_key(day)
            existing = next(
                (s for s in document.sessions if s.session_id == record.session_id), None
            )
            if existing is not None:
                logger.debug(
                    "session_already_folded", user_id=user_id, session_id=record.session_id
                )
                daily = document.daily
                aggregate = daily.get(day_key(existing.ended_at)) or daily.get(key)
                if aggregate is None:
                    raise ProgressSaveError(f"Session {record.session_id} has no daily rollup")
                return aggregate
            document.sessions.append(record)
            aggregate = apply_session_to_day(document.daily.get(key), user_id, utc_day(day), record)
            document.daily[key] = aggregate
            return aggregate

        aggregate = self._mutate(user_id, change)
        logger.info(
            "daily_aggregate_folded",
            user_id=user_id,
            day=day_key(day),
            sessions=aggregate.sessions_count,
            avg_score=aggregate.avg_score,
        )
        return aggregate

    def get_daily_aggregate(self, user_id: str, day: date | datetime) -> DailyAggregate | None:
        return self.load(user_id).daily.get(day_key(day))

    def list_active_days(self, user_id: str) -> list[date]:
        """Days with at least one completed session, most recent first."""
        document = self.load(user_id)
        days = [a.day for a in document.daily.values() if a.sessions_count >= 1]
        return sorted(days, reverse=True)

    def list_sessions(self, user_id: str) -> list[SessionRecord]:
        return list(self.load(user_id).sessions)

    # Vocabulary

    def list_vocabulary(self, user_id: str) -> list[VocabularyItem]:
        return list(self.load(user_id).vocabulary.values())

    def get_vocabulary(self, user_id: str, word: str) -> VocabularyItem | None:
        return self.load(user_id).vocabulary.get(word.strip().lower())

    def save_vocabulary(
        self,
        user_id: str,
        word: str,
        context: str = "",
        definition: str | None = None,
        source: str | None = None,
        now: datetime | None = None,
    ) -> VocabularyItem:
        """Create a word at mastery 0, or record another exposure to it."""
        key = word.strip().lower()
        now = to_utc(now or utc_now())

        def change(document: UserProgressDocument) -> VocabularyItem:
            existing = document.vocabulary.get(key)
            if existing is None:
                item = VocabularyItem(
                    word=key, definition=definition, context=context, source=source,
                    mastery=0, created_at=now,
                )
            else:
                item = apply_exposure(existing, context=context, now=now)
            document.vocabulary[key] = item
            return item

        return self._mutate(user_id, change)

    def apply_review(
        self, user_id: str, word: str, correct: bool, now: datetime | None = None
    ) -> VocabularyItem:
        """Record an explicit review outcome for a saved word."""
        key = word.strip().lower()

        def change(document: UserProgressDocument) -> VocabularyItem:
            existing = document.vocabulary.get(key)
            if existing is None:
                raise VocabularyNotFoundError(user_id, key)
            item = apply_review_outcome(existing, correct, now)
            document.vocabulary[key] = item
            return item

        return self._mutate(user_id, change)

    # Achievements

    def list_unlocked(self, user_id: str) -> list[AchievementUnlock]:
        document = self.load(user_id)
        return [
            AchievementUnlock(user_id=user_id, achievement_type=t, unlocked_at=at)
            for t, at in document.achievements.items()
        ]

    def insert_unlock(
        self, user_id: str, achievement_type: str, now: datetime | None = None
    ) -> AchievementUnlock:
        """Insert an unlock row; at most one per (user, achievement type)."""
        unlocked_at = to_utc(now or utc_now())

        def change(document: UserProgressDocument) -> AchievementUnlock:
            if achievement_type in document.achievements:
                raise DuplicateUnlockError(user_id, achievement_type)
            document.achievements[achievement_type] = unlocked_at
            return AchievementUnlock(
                user_id=user_id, achievement_type=achievement_type, unlocked_at=unlocked_at
            )

        return self._mutate(user_id, change)

    # Daily goal

    def get_daily_goal(self, user_id: str) -> int | None:
        return self.load(user_id).daily_goal_minutes

    def set_daily_goal(self, user_id: str, minutes: int) -> int:
        def change(document: UserProgressDocument) -> int:
            document.daily_goal_minutes = minutes
            return minutes

        return self._mutate(user_id, change)
