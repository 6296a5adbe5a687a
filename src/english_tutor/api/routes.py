"""REST API routes exposing progress scoring, streaks, review and achievements."""

import functools
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Annotated, Any

import structlog
from fastapi import APIRouter, HTTPException, Path, Query
from pydantic import BaseModel, Field

from english_tutor.assessment.calibration import get_performance_level
from english_tutor.assessment.corrections import classify_corrections
from english_tutor.assessment.fillers import (
    detect_filler_words,
    filler_feedback,
    filler_reduction_tips,
    total_filler_count,
)
from english_tutor.assessment.scorer import error_breakdown_from
from english_tutor.config import get_settings
from english_tutor.models.achievement import ACHIEVEMENT_MAP
from english_tutor.models.progress import (
    Correction,
    ErrorBreakdown,
    ReviewQueue,
    StreakRecord,
    VocabularyItem,
)
from english_tutor.models.session import SessionTally
from english_tutor.progress.tracker import ProgressTracker
from english_tutor.storage.errors import ProgressSaveError, VocabularyNotFoundError
from english_tutor.storage.progress_store import ProgressStore

logger = structlog.get_logger()
router = APIRouter(prefix="/api")

UserId = Annotated[str, Path(pattern=r"^[A-Za-z0-9_-]{1,64}$")]


@functools.lru_cache
def get_tracker() -> ProgressTracker:
    """Get the process-wide progress tracker."""
    settings = get_settings()
    return ProgressTracker(ProgressStore(settings.users_dir), settings)


@contextmanager
def storage_errors() -> Iterator[None]:
    """Translate storage failures into HTTP errors."""
    try:
        yield
    except VocabularyNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ProgressSaveError:
        logger.exception("progress_storage_error")
        raise HTTPException(status_code=503, detail="Could not save progress")


class ClassifyRequest(BaseModel):
    reply: str = ""
    corrections: list[dict[str, Any]] | None = None


class FinishSessionRequest(BaseModel):
    session_id: str | None = None
    mode: str = "FREE_TALK"
    duration_seconds: int = Field(default=0, ge=0)
    message_count: int = Field(default=0, ge=0)
    filler_word_count: int = Field(default=0, ge=0)
    avg_pronunciation: float | None = Field(default=None, ge=0, le=100, allow_inf_nan=False)
    error_counts: ErrorBreakdown = Field(default_factory=ErrorBreakdown)
    # Category-tagged error records, counted on top of error_counts
    errors: list[dict[str, Any] | str] = Field(default_factory=list)
    words_learned: list[str] = Field(default_factory=list)


class FillerAnalysisRequest(BaseModel):
    transcript: str = ""


class DailyGoalRequest(BaseModel):
    daily_goal_minutes: int = Field(ge=5, le=120)


class SaveWordRequest(BaseModel):
    word: str = Field(min_length=1, max_length=100)
    context: str = ""
    definition: str | None = None
    source: str | None = None


class ReviewResultRequest(BaseModel):
    correct: bool


@router.get("/health")
async def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}


@router.post("/corrections/classify")
async def classify(request: ClassifyRequest) -> list[Correction]:
    """Classify tutor corrections, extracting them from the reply if needed."""
    return classify_corrections(request.corrections, request.reply)


@router.post("/fillers/analyze")
async def analyze_fillers(request: FillerAnalysisRequest) -> dict:
    """Count filler words in a user turn, with feedback and reduction tips."""
    detections = detect_filler_words(request.transcript)
    total = total_filler_count(detections)
    most_common = max(detections, key=lambda d: d.count).word if detections else None
    return {
        "detections": [d.model_dump() for d in detections],
        "total": total,
        "feedback": filler_feedback(total, len(request.transcript.split())),
        "tips": filler_reduction_tips(most_common) if total else [],
    }


@router.post("/users/{user_id}/sessions")
async def finish_session(user_id: UserId, request: FinishSessionRequest) -> dict:
    """Score a finished session and fold it into today's rollup."""
    error_counts = request.error_counts.model_copy()
    for category, count in error_breakdown_from(request.errors).items():
        error_counts.increment(category, count)

    tally = SessionTally(
        mode=request.mode,
        message_count=request.message_count,
        filler_word_count=request.filler_word_count,
        error_counts=error_counts,
        pronunciation_scores=(
            [request.avg_pronunciation] if request.avg_pronunciation is not None else []
        ),
        words_learned=request.words_learned,
    )
    if request.session_id:
        tally.session_id = request.session_id

    try:
        with storage_errors():
            outcome = get_tracker().finish_session(user_id, tally, request.duration_seconds)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return {
        "session_id": outcome.record.session_id,
        "score": outcome.record.score,
        "grade": outcome.grade,
        "performance": get_performance_level(outcome.record.score or 0),
        "tips": outcome.tips,
        "daily": outcome.daily.model_dump(mode="json"),
    }


@router.get("/users/{user_id}/stats")
async def get_stats(user_id: UserId) -> dict:
    """Lifetime totals and week-over-week session change."""
    tracker = get_tracker()
    with storage_errors():
        aggregates = tracker.achievement_aggregates(user_id)
        weekly_change = tracker.weekly_change(user_id)
    return {**aggregates.model_dump(), "weekly_change": weekly_change}


@router.get("/users/{user_id}/streak")
async def get_streak(user_id: UserId) -> StreakRecord:
    with storage_errors():
        return get_tracker().streak(user_id)


@router.patch("/users/{user_id}/streak")
async def update_daily_goal(user_id: UserId, request: DailyGoalRequest) -> dict:
    try:
        with storage_errors():
            minutes = get_tracker().set_daily_goal(user_id, request.daily_goal_minutes)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {"daily_goal_minutes": minutes}


@router.post("/users/{user_id}/vocabulary")
async def save_word(user_id: UserId, request: SaveWordRequest) -> VocabularyItem:
    """Save a word, or count another exposure to a known one."""
    with storage_errors():
        return get_tracker().save_word(
            user_id,
            request.word,
            context=request.context,
            definition=request.definition,
            source=request.source,
        )


@router.get("/users/{user_id}/vocabulary/review")
async def get_review_queue(
    user_id: UserId, limit: Annotated[int | None, Query(ge=1)] = None
) -> ReviewQueue:
    """Words due for review, weakest and stalest first."""
    with storage_errors():
        return get_tracker().review_queue(user_id, limit=limit)


@router.patch("/users/{user_id}/vocabulary/{word}/review")
async def review_word(user_id: UserId, word: str, request: ReviewResultRequest) -> VocabularyItem:
    with storage_errors():
        return get_tracker().review_word(user_id, word, request.correct)


@router.post("/users/{user_id}/achievements/check")
async def check_achievements(user_id: UserId) -> dict:
    """Unlock any achievements the user has newly earned."""
    with storage_errors():
        unlocked = get_tracker().check_achievements(user_id)
    return {
        "unlocked": [ACHIEVEMENT_MAP[t].model_dump(mode="json") for t in unlocked],
    }


@router.get("/users/{user_id}/achievements")
async def list_achievements(user_id: UserId) -> list[dict]:
    with storage_errors():
        unlocks = get_tracker().store.list_unlocked(user_id)
    unlocked_at = {u.achievement_type: u.unlocked_at for u in unlocks}
    return [
        {
            **rule.model_dump(mode="json"),
            "unlocked": rule.type in unlocked_at,
            "unlocked_at": unlocked_at[rule.type].isoformat() if rule.type in unlocked_at else None,
        }
        for rule in ACHIEVEMENT_MAP.values()
    ]
