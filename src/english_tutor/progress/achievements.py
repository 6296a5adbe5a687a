"""Achievement evaluation and idempotent unlocking."""

from collections.abc import Iterable
from datetime import datetime

import structlog

from english_tutor.models.achievement import (
    ACHIEVEMENTS,
    AchievementAggregates,
    AchievementRule,
)
from english_tutor.storage.errors import DuplicateUnlockError, ProgressSaveError
from english_tutor.storage.progress_store import ProgressStore

logger = structlog.get_logger()

DEFAULT_TOTAL_MODES = 4


def rule_threshold(rule: AchievementRule, total_modes: int) -> int:
    return total_modes if rule.threshold is None else rule.threshold


def evaluate(
    aggregates: AchievementAggregates,
    already_unlocked: Iterable[str],
    total_modes: int = DEFAULT_TOTAL_MODES,
    rules: list[AchievementRule] | None = None,
) -> list[str]:
    """Achievements whose condition holds and that are not yet unlocked.

    Args:
        aggregates: Lifetime counters for the user.
        already_unlocked: Achievement types the user already has.
        total_modes: Number of practice modes offered, for ALL_MODES.
        rules: Rule table, defaults to :data:`ACHIEVEMENTS`.

    Returns:
        Newly satisfied achievement types, in table order.
    """
    unlocked = set(already_unlocked)
    newly: list[str] = []
    for rule in rules if rules is not None else ACHIEVEMENTS:
        if rule.type in unlocked:
            continue
        value = getattr(aggregates, rule.metric)
        if value >= rule_threshold(rule, total_modes):
            newly.append(rule.type)
    return newly


def unlock_achievements(
    store: ProgressStore,
    user_id: str,
    achievement_types: list[str],
    now: datetime | None = None,
) -> list[str]:
    """Persist unlocks one by one and return the ones this call inserted.

    An achievement that is already stored (a concurrent evaluation got there
    first) is skipped quietly. Any other storage failure is logged and the
    remaining achievements are still attempted.
    """
    succeeded: list[str] = []
    for achievement_type in achievement_types:
        try:
            store.insert_unlock(user_id, achievement_type, now)
        except DuplicateUnlockError:
            logger.debug("achievement_unlock_duplicate", user_id=user_id, type=achievement_type)
            continue
        except ProgressSaveError:
            logger.exception("achievement_unlock_failed", user_id=user_id, type=achievement_type)
            continue
        succeeded.append(achievement_type)
        logger.info("achievement_unlocked", user_id=user_id, type=achievement_type)
    return succeeded
