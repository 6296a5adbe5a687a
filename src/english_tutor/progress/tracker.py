"""Progress coordinator tying the engines to the progress store."""

from collections.abc import Mapping, Sequence
from datetime import datetime, timedelta
from typing import Any

import structlog
from pydantic import BaseModel

from english_tutor.assessment.calibration import generate_tips, get_grade
from english_tutor.assessment.corrections import CorrectionClassifier
from english_tutor.assessment.fillers import count_fillers
from english_tutor.assessment.scorer import calculate_session_score, calculate_weekly_change
from english_tutor.assessment.vocabulary import contains_word_teaching, extract_vocabulary
from english_tutor.clock import to_utc, utc_day, utc_now
from english_tutor.config import Settings, get_settings
from english_tutor.models.achievement import AchievementAggregates
from english_tutor.models.progress import Correction, ReviewQueue, StreakRecord, VocabularyItem
from english_tutor.models.session import Role, SessionOutcome, SessionRecord, SessionTally
from english_tutor.progress.achievements import evaluate, unlock_achievements
from english_tutor.progress.review import build_review_queue
from english_tutor.progress.streaks import compute_streak
from english_tutor.storage.progress_store import ProgressStore

logger = structlog.get_logger()


class ProgressTracker:
    """Runs the scoring, streak, review and achievement engines for a user.

    Args:
        store: Progress storage.
        settings: Application settings (daily goal defaults, practice modes).
        classifier: Correction classifier used for incoming tutor replies.
    """

    def __init__(
        self,
        store: ProgressStore,
        settings: Settings | None = None,
        classifier: CorrectionClassifier | None = None,
    ):
        self.store = store
        self.settings = settings or get_settings()
        self.classifier = classifier or CorrectionClassifier()

    # Sessions

    def record_message(
        self,
        tally: SessionTally,
        role: Role,
        content: str,
        corrections: Sequence[Mapping[str, Any] | BaseModel] | None = None,
        pronunciation_score: float | None = None,
        user_id: str | None = None,
    ) -> list[Correction]:
        """Fold one conversational message into the session tally.

        Tutor replies are classified for corrections; user turns are counted
        for filler words and carry the pronunciation confidence, if any.
        When ``user_id`` is given, words a tutor reply teaches are saved to
        the user's vocabulary, or counted as another exposure if known;
        session words the reply explains again count as exposures too.

        Returns:
            The corrections attached to this message.
        """
        if role == Role.ASSISTANT:
            classified = self.classifier.classify(corrections, content)
            tally.add_message(role, corrections=classified)
            if user_id is not None:
                self._save_taught_words(user_id, tally, content or "")
            return classified

        tally.add_message(
            role,
            filler_word_count=count_fillers(content or ""),
            pronunciation_score=pronunciation_score,
        )
        return []

    def _save_taught_words(self, user_id: str, tally: SessionTally, content: str) -> None:
        taught = extract_vocabulary(content)
        for item in taught:
            self.save_word(
                user_id,
                item["word"],
                context=content,
                definition=item["definition"],
                source="conversation",
                tally=tally,
            )
        # Session words explained again without a quoted definition
        defined = {item["word"] for item in taught}
        for word in list(tally.words_learned):
            if word not in defined and contains_word_teaching(content, word):
                self.save_word(user_id, word, context=content, source="conversation")

    def finish_session(
        self,
        user_id: str,
        tally: SessionTally,
        duration_seconds: int,
        ended_at: datetime | None = None,
    ) -> SessionOutcome:
        """Score a finished session and fold it into its UTC day.

        Raises:
            ValueError: If the session mode is not a configured practice mode.
        """
        if tally.mode not in self.settings.practice_modes:
            raise ValueError(f"Unknown practice mode: {tally.mode!r}")
        ended_at = to_utc(ended_at or utc_now())
        # An empty session would otherwise score ~100
        score = calculate_session_score(tally.to_scoring_input()) if tally.message_count else 0

        record = SessionRecord(
            session_id=tally.session_id,
            mode=tally.mode,
            score=score,
            duration_seconds=max(0, duration_seconds),
            message_count=tally.message_count,
            filler_word_count=tally.filler_word_count,
            avg_pronunciation=tally.avg_pronunciation,
            error_counts=tally.error_counts.model_copy(),
            words_learned=len(tally.words_learned),
            ended_at=ended_at,
        )
        daily = self.store.fold_session(user_id, record, utc_day(ended_at))
        logger.info(
            "session_scored",
            user_id=user_id,
            session_id=tally.session_id,
            score=score,
            mode=tally.mode,
        )
        return SessionOutcome(
            record=record,
            daily=daily,
            tips=generate_tips(tally.error_counts),
            grade=get_grade(score),
        )

    def weekly_change(self, user_id: str, now: datetime | None = None) -> int:
        """Sessions in the last 7 days vs the 7 days before, in percent."""
        now = to_utc(now or utc_now())
        week_ago = now - timedelta(days=7)
        two_weeks_ago = now - timedelta(days=14)
        this_week = last_week = 0
        for record in self.store.list_sessions(user_id):
            ended_at = to_utc(record.ended_at)
            if ended_at >= week_ago:
                this_week += 1
            elif ended_at >= two_weeks_ago:
                last_week += 1
        return calculate_weekly_change(this_week, last_week)

    # Streaks

    def daily_goal(self, user_id: str) -> int:
        goal = self.store.get_daily_goal(user_id)
        return goal if goal is not None else self.settings.default_daily_goal_minutes

    def set_daily_goal(self, user_id: str, minutes: int) -> int:
        low = self.settings.min_daily_goal_minutes
        high = self.settings.max_daily_goal_minutes
        if not low <= minutes <= high:
            raise ValueError(f"Daily goal must be between {low} and {high} minutes")
        return self.store.set_daily_goal(user_id, minutes)

    def streak(self, user_id: str, now: datetime | None = None) -> StreakRecord:
        now = now or utc_now()
        today = self.store.get_daily_aggregate(user_id, utc_day(now))
        return compute_streak(
            self.store.list_active_days(user_id),
            today_minutes=today.minutes if today else 0,
            daily_goal_minutes=self.daily_goal(user_id),
            now=now,
        )

    # Vocabulary

    def save_word(
        self,
        user_id: str,
        word: str,
        context: str = "",
        definition: str | None = None,
        source: str | None = None,
        tally: SessionTally | None = None,
        now: datetime | None = None,
    ) -> VocabularyItem:
        item = self.store.save_vocabulary(user_id, word, context, definition, source, now)
        if tally is not None:
            tally.add_word(item.word)
        return item

    def review_queue(
        self, user_id: str, limit: int | None = None, now: datetime | None = None
    ) -> ReviewQueue:
        return build_review_queue(
            self.store.list_vocabulary(user_id),
            limit=limit or self.settings.review_batch_size,
            now=now,
            max_limit=self.settings.max_review_batch_size,
        )

    def review_word(
        self, user_id: str, word: str, correct: bool, now: datetime | None = None
    ) -> VocabularyItem:
        item = self.store.apply_review(user_id, word, correct, now)
        logger.info("word_reviewed", user_id=user_id, word=item.word, mastery=item.mastery)
        return item

    # Achievements

    def achievement_aggregates(
        self, user_id: str, now: datetime | None = None
    ) -> AchievementAggregates:
        sessions = [s for s in self.store.list_sessions(user_id) if s.score is not None]
        return AchievementAggregates(
            total_sessions=len(sessions),
            total_vocabulary=len(self.store.list_vocabulary(user_id)),
            best_score=max((s.score or 0 for s in sessions), default=0),
            distinct_modes=len({s.mode for s in sessions} & set(self.settings.practice_modes)),
            current_streak=self.streak(user_id, now).current_streak,
        )

    def check_achievements(self, user_id: str, now: datetime | None = None) -> list[str]:
        """Evaluate the achievement table and persist anything newly earned."""
        unlocked = {u.achievement_type for u in self.store.list_unlocked(user_id)}
        newly = evaluate(
            self.achievement_aggregates(user_id, now),
            unlocked,
            total_modes=self.settings.total_modes,
        )
        if not newly:
            return []
        return unlock_achievements(self.store, user_id, newly, now)
