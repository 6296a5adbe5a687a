"""Correction classification and extraction from tutor replies.

Structured corrections coming from the chat model are normalized; when the
model returned none, correction pairs are pulled out of the reply text with
a fixed table of surface patterns. Either way every correction ends up with
one of the four :class:`ErrorCategory` values.

Both rule tables below are evaluated strictly in list order, first match
wins. The patterns are a hand-tuned starting point, not a validated
classifier: extend them by appending rules, and re-check against real
tutor output when reordering.
"""

import re
from collections.abc import Mapping, Sequence
from typing import Any, NamedTuple

import structlog
from pydantic import BaseModel, ValidationError, field_validator

from english_tutor.models.progress import Correction, ErrorCategory

logger = structlog.get_logger()


class CategoryRule(NamedTuple):
    category: ErrorCategory
    patterns: tuple[re.Pattern[str], ...]


class ExtractionRule(NamedTuple):
    name: str
    regex: re.Pattern[str]
    has_explanation: bool = False


def _compile(*patterns: str) -> tuple[re.Pattern[str], ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


# Over-regularized irregular verbs and other learner slips that are
# grammatical by definition, whatever the tutor wrote around them.
_SURFACE_GRAMMAR_ERRORS = (
    r"\b(goed|runned|eated|buyed|thinked|teached|catched|writed|drinked|swimmed"
    r"|comed|taked|maked|speaked|bringed|knowed|gived|falled|feeled|meeted"
    r"|sleeped|telled|singed|drived|flied|breaked|choosed|forgetted)\b"
)

CATEGORY_RULES: list[CategoryRule] = [
    CategoryRule(ErrorCategory.GRAMMAR, _compile(
        r"\b(grammar|tense|verb|subject|agreement|article|preposition|conjugat)",
        r"\b(is|are|was|were|have|has|had)\b.*\bshould\b",
        r"\b(singular|plural|past|present|future)\b",
        _SURFACE_GRAMMAR_ERRORS,
        r"\b(he|she|it) don't\b",
        r"\b(more better|most best|did went|does goes)\b",
        r"\b(childs|mouses|foots|tooths|mans)\b",
    )),
    CategoryRule(ErrorCategory.VOCABULARY, _compile(
        r"\b(word|vocabulary|meaning|synonym|definition|term|phrase)\b",
        r"\b(better word|more appropriate|instead of|word choice)\b",
        r"\b(means|refers to|is called)\b",
    )),
    CategoryRule(ErrorCategory.STRUCTURE, _compile(
        r"\b(structure|order|placement|position|arrangement|sentence)\b",
        r"\b(word order|sentence structure|rearrange|reorganize)\b",
        r"\b(beginning|ending|middle|start|end)\b.*\b(of|the)\b.*\b(sentence)\b",
    )),
    CategoryRule(ErrorCategory.FLUENCY, _compile(
        r"\b(fluency|natural|native|smooth|flow|rhythm)\b",
        r"\b(sounds|more natural|native speaker|idiomatic)\b",
        r"\b(casual|formal|polite|appropriate|register)\b",
    )),
]

_ARROW = r"(?:→|->)+"

EXTRACTION_RULES: list[ExtractionRule] = [
    # ✏️ Small fix: X → Y — explanation   /   Fix: "X" -> "Y" - explanation
    ExtractionRule(
        "labeled_fix",
        re.compile(
            r"(?:✏️?\s*(?:(?:small\s+)?fix|correction)?\s*:?"
            r"|\b(?:(?:small\s+)?fix|correction)\s*:)"
            r"\s*[\"']?([^\"'→\n]+?)[\"']?\s*" + _ARROW
            + r"\s*[\"']?([^\"'—\n]+?)[\"']?(?:\s*(?:—|--)\s*|\s+-\s+)(.+?)(?:\n|$)",
            re.IGNORECASE,
        ),
        has_explanation=True,
    ),
    # "X" → "Y"
    ExtractionRule(
        "quoted_arrow",
        re.compile(r"[\"']([^\"']+)[\"']\s*" + _ARROW + r"\s*[\"']([^\"']+)[\"']"),
    ),
    # instead of "X", try "Y"
    ExtractionRule(
        "instead_of",
        re.compile(
            r"instead of\s+[\"']([^\"']+)[\"'],?\s*(?:you could say|you could|try|say|use)"
            r"\s+[\"']([^\"']+)[\"']",
            re.IGNORECASE,
        ),
    ),
    # "X" should be "Y"
    ExtractionRule(
        "should_be",
        re.compile(
            r"[\"']([^\"']+)[\"']\s*should\s*(?:be|have been)\s*[\"']([^\"']+)[\"']",
            re.IGNORECASE,
        ),
    ),
    # X (→ Y)
    ExtractionRule(
        "parenthesized_arrow",
        re.compile(r"\b(\w+(?:\s+\w+)?)\s*\(" + _ARROW + r"\s*(\w+(?:\s+\w+)?)\)"),
    ),
    # [X] → [Y]
    ExtractionRule(
        "bracketed_arrow",
        re.compile(r"\[([^\]]+)\]\s*" + _ARROW + r"\s*\[([^\]]+)\]"),
    ),
]


class RawCorrection(BaseModel):
    """A correction as supplied upstream, before normalization."""

    type: str | None = None
    original: str
    corrected: str
    explanation: str | None = None

    @field_validator("original", "corrected")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


def generate_explanation(original: str, corrected: str) -> str:
    """Fallback explanation when the tutor supplied none."""
    original_words = original.split()
    corrected_words = corrected.split()

    if len(original_words) == 1 and len(corrected_words) == 1:
        return f"'{corrected}' is the correct form here."
    if len(original_words) != len(corrected_words):
        return "The corrected phrase is more appropriate."
    return "Suggested correction from your tutor."


class CorrectionClassifier:
    """Turns tutor output into a list of categorized corrections.

    Args:
        category_rules: Ordered category pattern groups.
        extraction_rules: Ordered surface patterns for free-text extraction.
    """

    def __init__(
        self,
        category_rules: list[CategoryRule] | None = None,
        extraction_rules: list[ExtractionRule] | None = None,
    ):
        self.category_rules = category_rules if category_rules is not None else CATEGORY_RULES
        self.extraction_rules = (
            extraction_rules if extraction_rules is not None else EXTRACTION_RULES
        )

    def classify(
        self,
        corrections: Sequence[Mapping[str, Any] | BaseModel] | None,
        response_text: str | None = "",
    ) -> list[Correction]:
        """Classify structured corrections, or extract them from the reply text.

        Args:
            corrections: Structured corrections from upstream, if any.
            response_text: The tutor's reply, used as classification context
                and as the extraction source when no structured data exists.

        Returns:
            Normalized corrections; empty for malformed or empty input.
        """
        text = response_text if isinstance(response_text, str) else ""
        if corrections and isinstance(corrections, Sequence) and not isinstance(corrections, str):
            return self._normalize(corrections, text)
        return self.extract_from_text(text)

    def _normalize(
        self, raw_items: Sequence[Mapping[str, Any] | BaseModel], context: str
    ) -> list[Correction]:
        result: list[Correction] = []
        for item in raw_items:
            data = item.model_dump(mode="json") if isinstance(item, BaseModel) else item
            try:
                raw = RawCorrection.model_validate(data)
            except ValidationError as e:
                logger.debug("correction_skipped_invalid", errors=e.error_count())
                continue

            explanation = (raw.explanation or "").strip()
            result.append(Correction(
                type=self._resolve_category(raw.type, raw.original, raw.corrected, context),
                original=raw.original,
                corrected=raw.corrected,
                explanation=explanation or generate_explanation(raw.original, raw.corrected),
            ))
        return result

    def _resolve_category(
        self, declared: str | None, original: str, corrected: str, context: str
    ) -> ErrorCategory:
        if declared:
            try:
                return ErrorCategory(declared.strip().upper())
            except ValueError:
                pass
        return self.infer_category(original, corrected, context)

    def infer_category(self, original: str, corrected: str, context: str = "") -> ErrorCategory:
        """Infer a category from the pair and its surrounding text."""
        full_context = f"{original} {corrected} {context}".lower()
        for rule in self.category_rules:
            if any(p.search(full_context) for p in rule.patterns):
                return rule.category

        original_words = original.lower().split()
        corrected_words = corrected.lower().split()
        common = [w for w in original_words if w in corrected_words]

        # Completely different short phrase: a word swap
        if not common and len(original_words) <= 2:
            return ErrorCategory.VOCABULARY

        # Same words, different order
        if (
            len(original_words) == len(corrected_words)
            and sorted(original_words) == sorted(corrected_words)
            and original_words != corrected_words
        ):
            return ErrorCategory.STRUCTURE

        return ErrorCategory.GRAMMAR

    def extract_from_text(self, text: str) -> list[Correction]:
        """Extract correction pairs from free-form tutor text."""
        if not text or not text.strip():
            return []

        corrections: list[Correction] = []
        seen: set[tuple[str, str]] = set()

        for rule in self.extraction_rules:
            for match in rule.regex.finditer(text):
                original = (match.group(1) or "").strip()
                corrected = (match.group(2) or "").strip()
                explanation = None
                if rule.has_explanation and match.lastindex and match.lastindex >= 3:
                    explanation = (match.group(3) or "").strip() or None

                if not original or not corrected or original == corrected:
                    continue

                key = (original.lower(), corrected.lower())
                if key in seen:
                    continue
                seen.add(key)

                corrections.append(Correction(
                    type=self.infer_category(original, corrected, explanation or text),
                    original=original,
                    corrected=corrected,
                    explanation=explanation or generate_explanation(original, corrected),
                ))

        if corrections:
            logger.debug("corrections_extracted", count=len(corrections))
        return corrections


_default_classifier = CorrectionClassifier()


def classify_corrections(
    corrections: Sequence[Mapping[str, Any] | BaseModel] | None,
    response_text: str | None = "",
) -> list[Correction]:
    """Classify with the default rule tables."""
    return _default_classifier.classify(corrections, response_text)
