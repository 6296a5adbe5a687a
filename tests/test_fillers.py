"""Tests for filler word detection and vocabulary extraction."""

from english_tutor.assessment.fillers import (
    count_fillers,
    detect_filler_words,
    filler_feedback,
    filler_reduction_tips,
)
from english_tutor.assessment.vocabulary import contains_word_teaching, extract_vocabulary


class TestFillerDetection:
    def test_mixed_fillers(self):
        text = "Um, I think, like, you know, it was basically fine"
        assert count_fillers(text) == 4

    def test_comparison_like_not_counted(self):
        assert count_fillers("I like the movie") == 0

    def test_so_only_at_sentence_start(self):
        assert count_fillers("So, what now? so we go") == 2
        assert count_fillers("It was so good") == 0

    def test_multi_word_not_double_counted(self):
        detections = {d.word: d.count for d in detect_filler_words("I mean, it is fine")}
        assert detections == {"i mean": 1}

    def test_positions(self):
        detections = detect_filler_words("well, um, ok")
        positions = {d.word: d.positions for d in detections}
        assert positions["um"] == [6]

    def test_empty(self):
        assert count_fillers("") == 0


class TestFillerFeedback:
    def test_none(self):
        assert filler_feedback(0, 50) == "Great job! No filler words detected."

    def test_minimal(self):
        assert filler_feedback(1, 100) == "Minimal filler words (1). Good fluency!"

    def test_heavy(self):
        assert filler_feedback(10, 50).startswith("High filler word usage")

    def test_empty_turn(self):
        assert filler_feedback(0, 0) == ""

    def test_specific_tip_first(self):
        tips = filler_reduction_tips("like")
        assert tips[0].startswith("Be specific")
        assert len(tips) == 5

    def test_generic_tips(self):
        assert len(filler_reduction_tips(None)) == 4


class TestVocabularyExtraction:
    def test_word_definition(self):
        text = 'The word "ubiquitous" means "found everywhere".'
        assert extract_vocabulary(text) == [
            {"word": "ubiquitous", "definition": "found everywhere"},
        ]

    def test_refers_to(self):
        result = extract_vocabulary("'Gist' refers to the main point.")
        assert result == [{"word": "gist", "definition": "the main point"}]

    def test_nothing_taught(self):
        assert extract_vocabulary("Tell me about your weekend!") == []
        assert extract_vocabulary("") == []

    def test_contains_word_teaching(self):
        assert contains_word_teaching("Ubiquitous means found everywhere", "ubiquitous")
        assert contains_word_teaching('The term "gist" is useful', "gist")
        assert not contains_word_teaching("Hello there", "hello")
