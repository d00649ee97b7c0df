"""Tests for the rewrite configuration."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from src.rewrite.config import RewriteConfig, get_rewrite_config, reset_rewrite_config


class TestRewriteConfigDefaults:
    """Test default configuration values."""

    def test_defaults(self, isolated_env):
        """Defaults should match the documented engine behaviour."""
        config = RewriteConfig(_env_file=None)

        assert config.llm_provider == "openai"
        assert config.llm_model == "gpt-4o-mini"
        assert config.max_retries == 2
        assert config.max_length_multiplier == 2.0
        assert config.min_bullet_length == 20
        assert config.max_bullet_length == 200
        assert config.semantic_similarity_min == 0.78
        assert config.evidence_overlap_threshold == 0.3
        assert config.evidence_anchored_rewrite is True
        assert config.section_coherence_pass is True
        assert config.meaning_shift_check is True
        assert config.retry_on_validation_failure is True
        assert config.evidence_scope == "section"
        assert config.allow_resume_enrichment is True
        assert config.lexicon_dir is None

    def test_max_attempts_includes_first_attempt(self, isolated_env):
        """max_attempts should be retries plus the first call."""
        assert RewriteConfig(_env_file=None, max_retries=2).max_attempts == 3
        assert RewriteConfig(_env_file=None, max_retries=0).max_attempts == 1

    def test_retry_disabled_allows_one_attempt(self, isolated_env):
        """Disabling retries should leave a single attempt."""
        config = RewriteConfig(
            _env_file=None, max_retries=5, retry_on_validation_failure=False
        )
        assert config.max_attempts == 1


class TestRewriteConfigFromEnvironment:
    """Test REWRITE_* environment overrides."""

    def test_reads_env_vars(self, isolated_env, monkeypatch):
        """Environment variables with the REWRITE_ prefix should apply."""
        monkeypatch.setenv("REWRITE_LLM_MODEL", "gpt-4o")
        monkeypatch.setenv("REWRITE_MAX_RETRIES", "4")
        monkeypatch.setenv("REWRITE_SECTION_COHERENCE_PASS", "false")
        monkeypatch.setenv("REWRITE_EVIDENCE_SCOPE", "line_only")

        config = RewriteConfig(_env_file=None)

        assert config.llm_model == "gpt-4o"
        assert config.max_retries == 4
        assert config.section_coherence_pass is False
        assert config.evidence_scope == "line_only"

    def test_lexicon_dir_converted_to_path(self, isolated_env, monkeypatch):
        """A lexicon directory string should become a Path."""
        monkeypatch.setenv("REWRITE_LEXICON_DIR", "/tmp/lexicon")

        config = RewriteConfig(_env_file=None)
        assert config.lexicon_dir == Path("/tmp/lexicon")

    def test_blank_lexicon_dir_is_none(self, isolated_env, monkeypatch):
        """A blank lexicon directory should fall back to packaged data."""
        monkeypatch.setenv("REWRITE_LEXICON_DIR", "  ")

        assert RewriteConfig(_env_file=None).lexicon_dir is None


class TestRewriteConfigValidation:
    """Test value validation."""

    def test_rejects_negative_retries(self, isolated_env):
        """max_retries must not be negative."""
        with pytest.raises(ValidationError):
            RewriteConfig(_env_file=None, max_retries=-1)

    def test_rejects_out_of_range_threshold(self, isolated_env):
        """Thresholds must stay within [0, 1]."""
        with pytest.raises(ValidationError):
            RewriteConfig(_env_file=None, semantic_similarity_min=1.5)

    def test_rejects_unknown_scope(self, isolated_env):
        """Evidence scope must be one of the known scopes."""
        with pytest.raises(ValidationError):
            RewriteConfig(_env_file=None, evidence_scope="company")

    def test_rejects_inverted_length_bounds(self, isolated_env):
        """min_bullet_length must be below max_bullet_length."""
        with pytest.raises(ValidationError, match="min_bullet_length"):
            RewriteConfig(_env_file=None, min_bullet_length=300, max_bullet_length=200)


class TestRewriteConfigSingleton:
    """Test the configuration singleton."""

    def teardown_method(self):
        reset_rewrite_config()

    def test_singleton_is_cached_until_reset(self, isolated_env):
        """get_rewrite_config should return the same instance until reset."""
        first = get_rewrite_config()
        assert get_rewrite_config() is first

        reset_rewrite_config()
        assert get_rewrite_config() is not first
