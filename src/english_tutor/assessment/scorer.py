"""Session score engine.

A session starts at 100 and loses points for weighted errors, scaled down
as the conversation grows, and for filler words; pronunciation confidence,
when measured, adds a small bonus or a penalty.
"""

import math

import structlog

from english_tutor.models.progress import ErrorBreakdown, ErrorCategory, SessionScoringInput

logger = structlog.get_logger()

# Impact on the score, not frequency
ERROR_WEIGHTS: dict[ErrorCategory, float] = {
    ErrorCategory.GRAMMAR: 3.0,
    ErrorCategory.STRUCTURE: 2.5,
    ErrorCategory.VOCABULARY: 2.0,
    ErrorCategory.FLUENCY: 1.5,
}

BASE_SCORE = 100
POINTS_PER_ERROR = 2.0
FILLER_PENALTY = 0.5
MAX_FILLER_PENALTY = 15.0
PRONUNCIATION_THRESHOLD = 80.0
PRONUNCIATION_BONUS_MAX = 5.0
PRONUNCIATION_PENALTY_MAX = 10.0
MIN_SCORE = 0
MAX_SCORE = 100
# Errors count at full strength up to this many messages
MIN_MESSAGES_FOR_FULL_SCORING = 5


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounded up (2.5 -> 3, -2.5 -> -2)."""
    return math.floor(value + 0.5)


def calculate_weighted_errors(error_counts: ErrorBreakdown) -> float:
    """Weighted error total across the four categories."""
    return sum(count * ERROR_WEIGHTS[category] for category, count in error_counts.items())


def calculate_pronunciation_adjustment(avg_pronunciation: float) -> float:
    """Bonus (up to +5) above the threshold, penalty (down to -10) below it."""
    if math.isnan(avg_pronunciation):
        return 0.0
    pronunciation = max(0.0, min(100.0, avg_pronunciation))
    if pronunciation > PRONUNCIATION_THRESHOLD:
        bonus = (pronunciation - PRONUNCIATION_THRESHOLD) / (100 - PRONUNCIATION_THRESHOLD)
        return bonus * PRONUNCIATION_BONUS_MAX
    penalty = (PRONUNCIATION_THRESHOLD - pronunciation) / PRONUNCIATION_THRESHOLD
    return -penalty * PRONUNCIATION_PENALTY_MAX


def error_scale_factor(message_count: int) -> float:
    """Divisor applied to the error penalty; 1.0 for short sessions."""
    return math.sqrt(max(1.0, max(0, message_count) / MIN_MESSAGES_FOR_FULL_SCORING))


def calculate_session_score(scoring: SessionScoringInput) -> int:
    """Compute a 0-100 session score.

    An empty session (no messages) still scores close to 100 here; callers
    that want "no messages yet means 0" must check for it themselves.

    Args:
        scoring: Final session tallies.

    Returns:
        Integer score clamped to [0, 100].
    """
    score = float(BASE_SCORE)

    error_penalty = calculate_weighted_errors(scoring.error_counts) * POINTS_PER_ERROR
    score -= error_penalty / error_scale_factor(scoring.message_count)

    fillers = max(0, scoring.filler_word_count)
    score -= min(fillers * FILLER_PENALTY, MAX_FILLER_PENALTY)

    if scoring.avg_pronunciation is not None:
        score += calculate_pronunciation_adjustment(scoring.avg_pronunciation)

    result = round_half_up(max(MIN_SCORE, min(MAX_SCORE, score)))
    logger.debug(
        "session_score_calculated",
        score=result,
        messages=scoring.message_count,
        errors=scoring.error_counts.total,
        fillers=fillers,
    )
    return result


def calculate_weekly_change(this_period: float, last_period: float) -> int:
    """Percent change between two periods.

    A zero baseline reports +100 when the current period is positive and 0
    otherwise.
    """
    if last_period == 0:
        return 100 if this_period > 0 else 0
    return round_half_up((this_period - last_period) / last_period * 100)


def error_breakdown_from(errors: list[dict | ErrorCategory | str]) -> ErrorBreakdown:
    """Count category-tagged error records into a full breakdown.

    Records may be category values or dicts with a ``category`` key;
    unknown categories are ignored.
    """
    breakdown = ErrorBreakdown()
    for error in errors:
        raw = error.get("category") if isinstance(error, dict) else error
        try:
            category = ErrorCategory(raw)
        except ValueError:
            continue
        breakdown.increment(category)
    return breakdown
