"""Achievement catalogue and the aggregates its rules read."""

from enum import StrEnum

from pydantic import BaseModel


class AchievementCategory(StrEnum):
    STREAK = "streak"
    SESSIONS = "sessions"
    VOCABULARY = "vocabulary"
    SCORE = "score"
    MODES = "modes"


class AchievementAggregates(BaseModel):
    """Lifetime counters an achievement evaluation needs."""

    total_sessions: int = 0  # sessions with a score
    total_vocabulary: int = 0
    best_score: int = 0
    distinct_modes: int = 0
    current_streak: int = 0


class AchievementRule(BaseModel):
    """One row of the achievement table.

    ``metric`` names an :class:`AchievementAggregates` field. A ``threshold``
    of ``None`` means "every practice mode offered" and is resolved against
    the configured mode count at evaluation time.
    """

    type: str
    title: str
    description: str
    icon: str
    category: AchievementCategory
    metric: str
    threshold: int | None


ACHIEVEMENTS: list[AchievementRule] = [
    # Sessions
    AchievementRule(type="FIRST_SESSION", title="First Steps",
                    description="Completed your first session", icon="flag",
                    category=AchievementCategory.SESSIONS, metric="total_sessions", threshold=1),
    AchievementRule(type="SESSIONS_10", title="Getting Serious",
                    description="Completed 10 sessions", icon="military_tech",
                    category=AchievementCategory.SESSIONS, metric="total_sessions", threshold=10),
    AchievementRule(type="SESSIONS_50", title="Dedicated Learner",
                    description="Completed 50 sessions", icon="emoji_events",
                    category=AchievementCategory.SESSIONS, metric="total_sessions", threshold=50),
    # Vocabulary
    AchievementRule(type="VOCAB_10", title="Word Collector",
                    description="Learned 10 words", icon="dictionary",
                    category=AchievementCategory.VOCABULARY, metric="total_vocabulary",
                    threshold=10),
    AchievementRule(type="VOCAB_50", title="Wordsmith",
                    description="Learned 50 words", icon="auto_stories",
                    category=AchievementCategory.VOCABULARY, metric="total_vocabulary",
                    threshold=50),
    AchievementRule(type="VOCAB_100", title="Lexicon Master",
                    description="Learned 100 words", icon="school",
                    category=AchievementCategory.VOCABULARY, metric="total_vocabulary",
                    threshold=100),
    # Score
    AchievementRule(type="FIRST_A", title="Ace!",
                    description="Scored 90+ in a session", icon="grade",
                    category=AchievementCategory.SCORE, metric="best_score", threshold=90),
    # Modes
    AchievementRule(type="ALL_MODES", title="Explorer",
                    description="Tried every practice mode", icon="explore",
                    category=AchievementCategory.MODES, metric="distinct_modes", threshold=None),
    # Streak
    AchievementRule(type="STREAK_3", title="3-Day Streak",
                    description="Practiced 3 days in a row", icon="local_fire_department",
                    category=AchievementCategory.STREAK, metric="current_streak", threshold=3),
    AchievementRule(type="STREAK_7", title="Week Warrior",
                    description="Practiced 7 days in a row", icon="local_fire_department",
                    category=AchievementCategory.STREAK, metric="current_streak", threshold=7),
    AchievementRule(type="STREAK_30", title="Monthly Master",
                    description="Practiced 30 days in a row", icon="whatshot",
                    category=AchievementCategory.STREAK, metric="current_streak", threshold=30),
]

ACHIEVEMENT_MAP: dict[str, AchievementRule] = {a.type: a for a in ACHIEVEMENTS}
