"""Filler word detection for spoken user turns."""

import re

from pydantic import BaseModel, Field

# Common filler words/phrases
MULTI_WORD_FILLERS: tuple[str, ...] = (
    "you know", "kind of", "sort of", "i mean", "you see", "i guess",
)

SINGLE_WORD_FILLERS: tuple[str, ...] = (
    # hesitation sounds
    "um", "uh", "uhh", "umm", "er", "err", "ah", "ahh", "hmm",
    # verbal fillers
    "like", "basically", "actually", "literally",
    "so", "well", "right", "okay", "ok",
    # discourse markers, when overused
    "anyway", "whatever", "honestly", "totally",
)

FILLERS = frozenset(MULTI_WORD_FILLERS + SINGLE_WORD_FILLERS)

# "so" only at the start of a sentence or after a pause
_SO_PATTERN = re.compile(r"(?:^|[.!?,]\s*)\b(so)\b")
# "like a dog" / "like this" are comparisons, not fillers
_LIKE_PATTERN = re.compile(r"\b(like)\b(?!\s+(?:this|that|a|an|the|it|him|her|them|us|me)\b)")

_SPECIFIC_TIPS: dict[str, str] = {
    "like": 'Be specific with comparisons. Instead of "like", use "similar to" or "such as".',
    "you know": "Your listener may not know - explain your point clearly.",
    "basically": 'Skip "basically" - get straight to your main point.',
    "actually": '"Actually" often adds nothing. Remove it and your sentence usually sounds better.',
    "so": 'Start sentences with the subject, not "So..."',
    "i mean": "Be direct with your first statement instead of rephrasing.",
}


class FillerDetection(BaseModel):
    word: str
    count: int
    positions: list[int] = Field(default_factory=list)


def _pattern_for(filler: str) -> re.Pattern[str]:
    if filler == "so":
        return _SO_PATTERN
    if filler == "like":
        return _LIKE_PATTERN
    return re.compile(rf"\b({re.escape(filler)})\b")


def detect_filler_words(transcript: str) -> list[FillerDetection]:
    """Detect filler words in a transcript.

    Multi-word fillers are counted first. A single-word filler that is part
    of an already detected multi-word filler ("mean" in "i mean") is not
    counted again.

    Args:
        transcript: The text to analyze.

    Returns:
        One detection per filler found, with count and character positions.
    """
    detections: list[FillerDetection] = []
    lower = transcript.lower()

    for filler in MULTI_WORD_FILLERS:
        positions = [m.start(1) for m in _pattern_for(filler).finditer(lower)]
        if positions:
            detections.append(
                FillerDetection(word=filler, count=len(positions), positions=positions)
            )

    detected_multi = {d.word for d in detections}
    for filler in SINGLE_WORD_FILLERS:
        if any(filler in mw.split() for mw in detected_multi):
            continue
        positions = [m.start(1) for m in _pattern_for(filler).finditer(lower)]
        if positions:
            detections.append(
                FillerDetection(word=filler, count=len(positions), positions=positions)
            )

    return detections


def total_filler_count(detections: list[FillerDetection]) -> int:
    return sum(d.count for d in detections)


def count_fillers(transcript: str) -> int:
    """Total number of filler occurrences in ``transcript``."""
    return total_filler_count(detect_filler_words(transcript))


def filler_feedback(count: int, word_count: int) -> str:
    """Friendly message about filler usage relative to the turn length."""
    if word_count <= 0:
        return ""

    percentage = count / word_count * 100
    if count <= 0:
        return "Great job! No filler words detected."
    elif percentage < 2:
        return f"Minimal filler words ({count}). Good fluency!"
    elif percentage < 5:
        plural = "s" if count > 1 else ""
        return f"{count} filler word{plural} detected. Try pausing instead of using fillers."
    elif percentage < 10:
        return f"{count} filler words detected. Practice speaking more slowly and deliberately."
    else:
        return f"High filler word usage ({count}). Take a breath and pause when you need to think."


def filler_reduction_tips(most_common: str | None = None) -> list[str]:
    tips = [
        'Pause silently instead of saying "um" or "uh" - silence is powerful.',
        "Slow down your speaking pace to give yourself time to think.",
        "Practice your responses to build confidence.",
        "Record yourself speaking and listen for patterns.",
    ]
    if most_common and most_common in _SPECIFIC_TIPS:
        tips.insert(0, _SPECIFIC_TIPS[most_common])
    return tips
