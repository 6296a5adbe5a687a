"""Extraction of words the tutor is explicitly teaching."""

import re

VOCABULARY_PATTERNS: list[re.Pattern[str]] = [
    re.compile(
        r"(?:the word|term)\s+[\"'](\w+)[\"']\s+means?\s+[\"']([^\"']+)[\"']",
        re.IGNORECASE,
    ),
    re.compile(
        r"[\"'](\w+)[\"']\s+(?:means|refers to|is|describes)\s+[\"']?([^\"'.]+)[\"']?",
        re.IGNORECASE,
    ),
]


def extract_vocabulary(text: str) -> list[dict[str, str]]:
    """Find (word, definition) pairs taught in a tutor reply.

    Args:
        text: Tutor reply.

    Returns:
        List of {"word", "definition"} dicts, one per distinct lowercase word.
    """
    vocabulary: list[dict[str, str]] = []
    seen: set[str] = set()
    if not text:
        return vocabulary

    for pattern in VOCABULARY_PATTERNS:
        for match in pattern.finditer(text):
            word = match.group(1).strip().lower()
            definition = match.group(2).strip()
            if not word or not definition or word in seen:
                continue
            seen.add(word)
            vocabulary.append({"word": word, "definition": definition})

    return vocabulary


def contains_word_teaching(text: str, word: str) -> bool:
    """Whether ``text`` explains or defines ``word``."""
    if not text or not word:
        return False
    escaped = re.escape(word)
    patterns = [
        re.compile(rf"\b{escaped}\b.*(?:means|refers to|is called|definition)", re.IGNORECASE),
        re.compile(rf"(?:the word|term)\s+[\"']?{escaped}[\"']?", re.IGNORECASE),
    ]
    return any(p.search(text) for p in patterns)
