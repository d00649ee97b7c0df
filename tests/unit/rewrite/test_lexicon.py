"""Tests for lexicon loading and compilation."""

import shutil

import pytest

from src.rewrite.lexicon import (
    DEFAULT_LEXICON_DIR,
    LEXICON_FILES,
    CompiledLexicon,
    get_lexicon,
    load_lexicon,
    reload_lexicon,
    reset_lexicon,
)


@pytest.fixture
def lexicon_copy(tmp_path):
    """A writable copy of the packaged lexicon."""
    for name in LEXICON_FILES:
        shutil.copy(DEFAULT_LEXICON_DIR / name, tmp_path / name)
    return tmp_path


class TestLoadLexicon:
    """Test loading the YAML lexicon files."""

    def test_packaged_lexicon_loads(self):
        """The packaged data should validate."""
        lexicon = load_lexicon()

        assert "worked on" in lexicon.weak_verbs
        assert "developed" in lexicon.weak_verbs["worked on"].upgrades
        assert "kubernetes" in lexicon.tech_terms
        assert "in order to" in lexicon.fluff.redundant_phrases
        assert lexicon.fluff.redundant_replacements["in order to"] == "to"
        assert "percentage" in lexicon.number_patterns

    def test_common_english_words_are_not_tech_terms(self):
        """Words like "go" cause false tool detections and stay out of the set."""
        assert "go" not in load_lexicon().tech_terms

    def test_missing_file_raises(self, lexicon_copy):
        """A missing lexicon file should raise FileNotFoundError."""
        (lexicon_copy / "tech_terms.yaml").unlink()

        with pytest.raises(FileNotFoundError):
            load_lexicon(lexicon_copy)

    def test_invalid_yaml_raises_value_error(self, lexicon_copy):
        """Malformed YAML should raise ValueError."""
        (lexicon_copy / "fluff_phrases.yaml").write_text("fillers: [unclosed", encoding="utf-8")

        with pytest.raises(ValueError, match="Invalid YAML"):
            load_lexicon(lexicon_copy)

    def test_non_mapping_file_raises(self, lexicon_copy):
        """A YAML list at the top level should be rejected."""
        (lexicon_copy / "tech_terms.yaml").write_text("- python\n", encoding="utf-8")

        with pytest.raises(ValueError, match="mapping"):
            load_lexicon(lexicon_copy)

    def test_invalid_regex_raises(self, lexicon_copy):
        """Number patterns must compile."""
        (lexicon_copy / "metric_patterns.yaml").write_text(
            "number_patterns:\n  broken: '(\\d+'\n", encoding="utf-8"
        )

        with pytest.raises(ValueError, match="broken"):
            load_lexicon(lexicon_copy)

    def test_empty_file_is_allowed(self, lexicon_copy):
        """An empty file contributes nothing but still loads."""
        (lexicon_copy / "fluff_phrases.yaml").write_text("", encoding="utf-8")

        lexicon = load_lexicon(lexicon_copy)
        assert lexicon.fluff.fillers == []


class TestCompiledLexicon:
    """Test lookup structures built from the lexicon."""

    def test_weak_verbs_longest_first(self, lexicon):
        """Longer phrases should be tried before their prefixes."""
        phrases = [p.phrase for p in lexicon.weak_verb_patterns]
        assert phrases.index("worked on") < phrases.index("worked")

    def test_verb_mapping_is_case_insensitive(self, lexicon):
        """verb_mapping should accept any casing."""
        mapping = lexicon.verb_mapping("  Worked On ")
        assert mapping is not None
        assert mapping.upgrades[0] == "developed"

    def test_fluff_replacement(self, lexicon):
        """Redundant phrases should map to their substitutions."""
        assert lexicon.fluff_replacement("due to the fact that") == "because"
        assert lexicon.fluff_replacement("synergy") is None

    def test_phrase_patterns_match_symbols(self, lexicon):
        """Phrases ending in punctuation should still match as whole phrases."""
        vague = {p.phrase: p for p in lexicon.fluff_patterns["vague_phrases"]}
        assert vague["etc."].pattern.search("Handled billing, reports, etc.")


class TestSharedLexicon:
    """Test the shared compiled lexicon."""

    def teardown_method(self):
        reset_lexicon()

    def test_get_lexicon_is_cached(self):
        """get_lexicon should reuse the compiled instance."""
        first = get_lexicon()
        assert isinstance(first, CompiledLexicon)
        assert get_lexicon() is first

    def test_different_directory_reloads(self, lexicon_copy):
        """Asking for another directory should load it."""
        default = get_lexicon()
        custom = get_lexicon(lexicon_copy)

        assert custom is not default
        assert custom.source_dir == lexicon_copy

    def test_reload_reads_edits(self, lexicon_copy):
        """reload_lexicon should pick up edited files."""
        get_lexicon(lexicon_copy)
        (lexicon_copy / "tech_terms.yaml").write_text(
            "tech_terms: [zig]\n", encoding="utf-8"
        )

        reloaded = reload_lexicon(lexicon_copy)
        assert reloaded.tech_terms == frozenset({"zig"})
