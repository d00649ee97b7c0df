"""Tests for fluff detection and removal."""

import pytest

from src.rewrite.planning.fluff import (
    count_fluff,
    detect_fluff,
    detect_fluff_by_category,
    fluff_reason,
    fluff_removal_suggestions,
    has_fluff,
    remove_fluff,
)


class TestDetectFluff:
    """Test fluff detection across categories."""

    def test_detects_each_category(self, lexicon):
        found = detect_fluff(
            "Basically worked on very good projects in order to learn", lexicon
        )

        assert [(f.phrase, f.category) for f in found] == [
            ("Basically", "fillers"),
            ("very", "fillers"),
            ("good", "weak_descriptors"),
            ("in order to", "redundant_phrases"),
        ]
        assert found[-1].replacement == "to"
        assert found[0].replacement == ""

    def test_overlap_prefers_longest(self, lexicon):
        """A redundant phrase should absorb the descriptor it contains."""
        found = detect_fluff("Successfully completed the audit", lexicon)
        assert [f.phrase for f in found] == ["Successfully completed"]

    def test_hype_words_have_no_replacement(self, lexicon):
        found = detect_fluff("Rockstar engineer", lexicon)
        assert found[0].category == "hype_words"
        assert found[0].replacement is None

    def test_clean_text(self, lexicon):
        assert not has_fluff("Migrated billing to PostgreSQL", lexicon)
        assert count_fluff("Migrated billing to PostgreSQL", lexicon) == 0

    def test_by_category(self, lexicon):
        found = detect_fluff_by_category("Team player with synergy", "cliches", lexicon)
        assert [f.phrase for f in found] == ["Team player"]

    def test_unknown_category_raises(self, lexicon):
        with pytest.raises(ValueError):
            detect_fluff_by_category("text", "slang", lexicon)


class TestRemoveFluff:
    """Test fluff removal."""

    def test_removes_and_substitutes(self, lexicon):
        cleaned, removed = remove_fluff(
            "Basically worked on very good projects in order to learn", lexicon
        )

        assert cleaned == "worked on projects to learn"
        assert removed == ["in order to", "good", "very", "Basically"]

    def test_no_fluff_unchanged(self, lexicon):
        assert remove_fluff("Led team", lexicon) == ("Led team", [])


class TestFluffSuggestions:
    """Test user-facing suggestions."""

    def test_suggestions(self, lexicon):
        suggestions = fluff_removal_suggestions("Met daily in order to sync", lexicon)

        assert suggestions == [
            {
                "phrase": "in order to",
                "reason": fluff_reason("redundant_phrases"),
                "suggestion": 'Replace with "to"',
            }
        ]

    def test_unknown_category_reason(self):
        assert fluff_reason("unknown") == "Phrase adds length without information"
