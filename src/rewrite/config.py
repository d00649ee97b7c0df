"""Configuration settings for the Rewrite module.

Provides settings for the generation provider, retry budget, validation
thresholds, and feature flags. Every value can be overridden with a
REWRITE_* environment variable or a .env file.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

EvidenceScopeSetting = Literal["line_only", "section", "resume"]


class RewriteConfig(BaseSettings):
    """Configuration for the evidence-anchored rewrite engine.

    Example: REWRITE_LLM_MODEL=gpt-4o REWRITE_MAX_RETRIES=3
    """

    model_config = SettingsConfigDict(
        env_prefix="REWRITE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # LLM settings
    llm_provider: str = Field(
        default="openai",
        description="LLM provider (openai, anthropic, azure, etc.)",
    )
    llm_model: str = Field(
        default="gpt-4o-mini",
        description="Primary LLM model name",
    )
    llm_fallback_model: str | None = Field(
        default="gpt-3.5-turbo",
        description="Model used when the primary model call fails",
    )
    llm_api_key: str | None = Field(
        default=None,
        description="API key for LLM provider",
    )
    llm_base_url: str | None = Field(
        default=None,
        description="Base URL for OpenAI-compatible endpoints",
    )
    llm_temperature: Annotated[float, Field(ge=0.0, le=2.0)] = Field(
        default=0.2,
        description="Default sampling temperature",
    )
    llm_max_tokens: Annotated[int, Field(gt=0)] = Field(
        default=250,
        description="Maximum tokens per generation",
    )
    llm_timeout: Annotated[float, Field(gt=0)] = Field(
        default=30.0,
        description="Timeout in seconds for a single generation call",
    )

    # Retry budget
    max_retries: Annotated[int, Field(ge=0)] = Field(
        default=2,
        description="Retries after the first generation attempt",
    )

    # Thresholds
    max_length_multiplier: Annotated[float, Field(gt=0)] = Field(
        default=2.0,
        description="Candidate may be at most this many times the original length",
    )
    min_bullet_length: Annotated[int, Field(ge=0)] = Field(
        default=20,
        description="Minimum characters for a bullet",
    )
    max_bullet_length: Annotated[int, Field(gt=0)] = Field(
        default=200,
        description="Maximum characters for a bullet",
    )
    max_summary_length: Annotated[int, Field(gt=0)] = Field(
        default=300,
        description="Maximum characters for a summary",
    )
    semantic_similarity_min: Annotated[float, Field(ge=0.0, le=1.0)] = Field(
        default=0.78,
        description="Similarity below half of this value is reported as a meaning shift",
    )
    evidence_overlap_threshold: Annotated[float, Field(ge=0.0, le=1.0)] = Field(
        default=0.3,
        description="Minimum word overlap between a span and its cited evidence",
    )

    # Feature flags
    evidence_anchored_rewrite: bool = Field(default=True)
    section_coherence_pass: bool = Field(default=True)
    meaning_shift_check: bool = Field(default=True)
    retry_on_validation_failure: bool = Field(default=True)

    # Evidence defaults
    evidence_scope: EvidenceScopeSetting = Field(
        default="section",
        description="Default evidence scope for bullet rewrites",
    )
    allow_resume_enrichment: bool = Field(
        default=True,
        description="Allow resume-wide skills/tools as evidence",
    )

    # Concurrency
    batch_max_concurrency: Annotated[int, Field(gt=0)] = Field(
        default=3,
        description="Maximum concurrent generations in batch and section rewrites",
    )

    # Lexicon
    lexicon_dir: Path | None = Field(
        default=None,
        description="Directory with lexicon YAML files (defaults to packaged data)",
    )

    @field_validator("lexicon_dir", mode="before")
    @classmethod
    def convert_to_path(cls, v: str | Path | None) -> Path | None:
        """Convert string paths to Path objects."""
        if isinstance(v, str):
            return Path(v) if v.strip() else None
        return v

    @model_validator(mode="after")
    def validate_length_bounds(self) -> RewriteConfig:
        """Ensure bullet length bounds are ordered."""
        if self.min_bullet_length >= self.max_bullet_length:
            raise ValueError(
                "min_bullet_length must be less than max_bullet_length "
                f"({self.min_bullet_length} >= {self.max_bullet_length})"
            )
        return self

    @property
    def max_attempts(self) -> int:
        """Total generation calls allowed for one request."""
        if not self.retry_on_validation_failure:
            return 1
        return self.max_retries + 1


# Singleton instance
_rewrite_config: RewriteConfig | None = None


def get_rewrite_config() -> RewriteConfig:
    """Get the rewrite configuration singleton."""
    global _rewrite_config
    if _rewrite_config is None:
        _rewrite_config = RewriteConfig()
    return _rewrite_config


def reset_rewrite_config() -> None:
    """Reset the configuration singleton (useful for testing)."""
    global _rewrite_config
    _rewrite_config = None
