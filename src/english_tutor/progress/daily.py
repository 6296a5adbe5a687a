"""Folding completed sessions into the per-day rollup."""

from datetime import date

from english_tutor.assessment.scorer import round_half_up
from english_tutor.models.progress import DailyAggregate
from english_tutor.models.session import SessionRecord


def fold_session_into_day(sessions_count: int, avg_score: float, new_session_score: float) -> int:
    """Running mean of the day's session scores after adding one more.

    Args:
        sessions_count: Sessions already folded into the day.
        avg_score: Current mean of those sessions.
        new_session_score: Score of the session being added.

    Returns:
        New rounded mean; the new score itself for the day's first session.
    """
    new_session_score = max(0.0, min(100.0, float(new_session_score)))
    if sessions_count <= 0:
        return round_half_up(new_session_score)
    total = avg_score * sessions_count + new_session_score
    return round_half_up(total / (sessions_count + 1))


def apply_session_to_day(
    current: DailyAggregate | None,
    user_id: str,
    day: date,
    record: SessionRecord,
) -> DailyAggregate:
    """Return the day's rollup with ``record`` folded in.

    The first session of a day seeds the row; later ones increment the
    counters. The mean is re-derived from the exact score sum so repeated
    rounding never accumulates.
    """
    score = record.score or 0
    errors = record.error_counts
    if current is None or current.sessions_count <= 0:
        return DailyAggregate(
            user_id=user_id,
            day=day,
            sessions_count=1,
            total_duration=max(0, record.duration_seconds),
            avg_score=fold_session_into_day(0, 0.0, score),
            total_score=float(score),
            grammar_errors=errors.GRAMMAR,
            vocab_errors=errors.VOCABULARY,
            structure_errors=errors.STRUCTURE,
            fluency_errors=errors.FLUENCY,
            words_learned=record.words_learned,
            filler_words=record.filler_word_count,
        )

    # rows written without a score sum fall back to the stored mean
    base_total = current.total_score or current.avg_score * current.sessions_count
    exact_mean = base_total / current.sessions_count
    return current.model_copy(update={
        "sessions_count": current.sessions_count + 1,
        "total_duration": current.total_duration + max(0, record.duration_seconds),
        "avg_score": fold_session_into_day(current.sessions_count, exact_mean, score),
        "total_score": base_total + score,
        "grammar_errors": current.grammar_errors + errors.GRAMMAR,
        "vocab_errors": current.vocab_errors + errors.VOCABULARY,
        "structure_errors": current.structure_errors + errors.STRUCTURE,
        "fluency_errors": current.fluency_errors + errors.FLUENCY,
        "words_learned": current.words_learned + record.words_learned,
        "filler_words": current.filler_words + record.filler_word_count,
    })
