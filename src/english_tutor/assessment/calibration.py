"""Score to grade/performance mapping and improvement tips."""

from english_tutor.models.progress import ErrorBreakdown, ErrorCategory


def get_grade(score: float) -> str:
    """Letter grade for a 0-100 score."""
    if score >= 90:
        return "A"
    elif score >= 80:
        return "B"
    elif score >= 70:
        return "C"
    elif score >= 60:
        return "D"
    else:
        return "F"


def get_performance_level(score: float) -> dict[str, str]:
    """Human-readable performance band for a 0-100 score.

    Args:
        score: Session score.

    Returns:
        Dict with level, color and description.
    """
    if score >= 90:
        return {
            "level": "Excellent",
            "color": "green",
            "description": "Outstanding performance! Keep up the great work.",
        }
    elif score >= 80:
        return {
            "level": "Good",
            "color": "blue",
            "description": "Good job! Minor improvements will help you reach excellence.",
        }
    elif score >= 70:
        return {
            "level": "Satisfactory",
            "color": "yellow",
            "description": "You're doing okay. Focus on your most common errors.",
        }
    elif score >= 60:
        return {
            "level": "Needs Work",
            "color": "orange",
            "description": "Keep practicing! Review the corrections carefully.",
        }
    else:
        return {
            "level": "Struggling",
            "color": "red",
            "description": "Consider reviewing basic concepts and practicing more frequently.",
        }


def generate_tips(error_counts: ErrorBreakdown) -> list[str]:
    """One tip for each of the three most frequent error categories."""
    ranked = sorted(
        ((category, count) for category, count in error_counts.items() if count > 0),
        key=lambda item: item[1],
        reverse=True,
    )

    tips: list[str] = []
    for category, count in ranked[:3]:
        if category == ErrorCategory.GRAMMAR:
            if count >= 5:
                tips.append("Focus on verb tense consistency and subject-verb agreement.")
            else:
                tips.append("Review your grammar rules, especially articles and prepositions.")
        elif category == ErrorCategory.VOCABULARY:
            tips.append("Try to learn 5 new words each session and use them in sentences.")
        elif category == ErrorCategory.STRUCTURE:
            tips.append("Practice building complex sentences with proper clause structure.")
        elif category == ErrorCategory.FLUENCY:
            tips.append("Read aloud more often to improve natural speech flow.")

    if not tips:
        tips.append("Great work! Keep practicing to maintain your skills.")
    return tips
