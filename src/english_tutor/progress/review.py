"""Mastery-based spaced repetition for saved vocabulary.

Two distinct mutations touch mastery. An explicit review moves it by
+15/-10 through :func:`apply_review_outcome`; meeting the word again in a
conversation bumps it by +5 through :func:`apply_exposure`. Both clamp to
[0, 100] and both refresh ``reviewed_at``.
"""

from collections.abc import Iterable
from datetime import UTC, datetime

from english_tutor.clock import start_of_utc_day, to_utc, utc_now
from english_tutor.models.progress import ReviewQueue, VocabularyItem

CORRECT_DELTA = 15
INCORRECT_DELTA = -10
EXPOSURE_DELTA = 5

# (upper mastery bound, interval in days)
REVIEW_INTERVALS: list[tuple[int, int]] = [
    (20, 1),
    (40, 3),
    (60, 7),
    (80, 14),
]
MAX_INTERVAL_DAYS = 30

_NEVER = datetime.min.replace(tzinfo=UTC)


def _clamp(mastery: int) -> int:
    return max(0, min(100, mastery))


def interval_days(mastery: int) -> int:
    """Days to wait before re-testing a word at this mastery."""
    for upper, days in REVIEW_INTERVALS:
        if mastery <= upper:
            return days
    return MAX_INTERVAL_DAYS


def is_due(item: VocabularyItem, now: datetime | None = None) -> bool:
    """Never-reviewed words are always due; others once their interval elapsed."""
    if item.reviewed_at is None:
        return True
    now = to_utc(now or utc_now())
    elapsed_days = (now - to_utc(item.reviewed_at)).total_seconds() / 86400
    return elapsed_days >= interval_days(item.mastery)


def due_for_review(
    items: Iterable[VocabularyItem], now: datetime | None = None
) -> list[VocabularyItem]:
    """Due words, weakest and stalest first."""
    now = now or utc_now()
    due = [item for item in items if is_due(item, now)]
    return sorted(due, key=_review_priority)


def _review_priority(item: VocabularyItem) -> tuple[int, datetime]:
    reviewed_at = to_utc(item.reviewed_at) if item.reviewed_at else _NEVER
    return item.mastery, reviewed_at


def apply_review_outcome(
    item: VocabularyItem, correct: bool, now: datetime | None = None
) -> VocabularyItem:
    """Result of one explicit review. The clock resets on wrong answers too."""
    delta = CORRECT_DELTA if correct else INCORRECT_DELTA
    return item.model_copy(update={
        "mastery": _clamp(item.mastery + delta),
        "reviewed_at": to_utc(now or utc_now()),
    })


def apply_exposure(
    item: VocabularyItem, context: str | None = None, now: datetime | None = None
) -> VocabularyItem:
    """Result of meeting an already saved word again in conversation."""
    update: dict = {
        "mastery": _clamp(item.mastery + EXPOSURE_DELTA),
        "reviewed_at": to_utc(now or utc_now()),
    }
    if context:
        update["context"] = context
    return item.model_copy(update=update)


def build_review_queue(
    items: Iterable[VocabularyItem],
    limit: int,
    now: datetime | None = None,
    max_limit: int = 50,
) -> ReviewQueue:
    """Select the next review batch and summarize the queue.

    Args:
        items: All of a user's vocabulary.
        limit: Requested batch size, clamped to [1, max_limit].
        now: Reference time.
        max_limit: Largest batch ever returned.
    """
    now = to_utc(now or utc_now())
    items = list(items)
    due = due_for_review(items, now)
    today_start = start_of_utc_day(now)
    reviewed_today = sum(
        1 for item in items if item.reviewed_at and to_utc(item.reviewed_at) >= today_start
    )
    batch = max(1, min(max_limit, limit))
    return ReviewQueue(
        words=due[:batch],
        total_due=len(due),
        total_words=len(items),
        reviewed_today=reviewed_today,
    )
