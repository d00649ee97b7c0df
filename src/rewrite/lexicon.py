"""Lexicon loading for the Rewrite module.

The lexicon is the data half of the rewrite engine: weak verbs and their
upgrades, fluff phrases, numeric and scale-claim patterns, and the closed set
of technology names. It lives in YAML files so it can be edited without code
changes, and is compiled once per load into lookup tables that the planner
and validator receive by reference.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

DEFAULT_LEXICON_DIR = Path(__file__).parent / "data"

LEXICON_FILES = (
    "verb_mapping.yaml",
    "fluff_phrases.yaml",
    "metric_patterns.yaml",
    "tech_terms.yaml",
)

FLUFF_CATEGORIES = (
    "fillers",
    "weak_descriptors",
    "redundant_phrases",
    "vague_phrases",
    "hype_words",
    "unnecessary_adverbs",
    "cliches",
)


class VerbMapping(BaseModel):
    """Upgrade suggestions for a single weak verb phrase."""

    upgrades: list[str] = Field(..., min_length=1)
    context_hints: dict[str, str] = Field(default_factory=dict)


class FluffPhrases(BaseModel):
    """Fluff phrases grouped by category."""

    fillers: list[str] = Field(default_factory=list)
    weak_descriptors: list[str] = Field(default_factory=list)
    redundant_phrases: list[str] = Field(default_factory=list)
    vague_phrases: list[str] = Field(default_factory=list)
    hype_words: list[str] = Field(default_factory=list)
    unnecessary_adverbs: list[str] = Field(default_factory=list)
    cliches: list[str] = Field(default_factory=list)
    redundant_replacements: dict[str, str] = Field(default_factory=dict)


class Lexicon(BaseModel):
    """Combined lexicon schema, as loaded from the YAML data files."""

    weak_verbs: dict[str, VerbMapping] = Field(default_factory=dict)
    strong_verbs: list[str] = Field(default_factory=list)
    fluff: FluffPhrases = Field(default_factory=FluffPhrases)
    number_patterns: dict[str, str] = Field(default_factory=dict)
    metric_patterns: dict[str, str] = Field(default_factory=dict)
    scale_claims: list[str] = Field(default_factory=list)
    implied_metrics: list[str] = Field(default_factory=list)
    tech_terms: list[str] = Field(default_factory=list)
    tool_relevance: dict[str, list[str]] = Field(default_factory=dict)

    @field_validator("number_patterns", "metric_patterns")
    @classmethod
    def validate_patterns(cls, v: dict[str, str]) -> dict[str, str]:
        """Reject patterns that do not compile."""
        for name, pattern in v.items():
            try:
                re.compile(pattern)
            except re.error as e:
                raise ValueError(f"Invalid regex for pattern '{name}': {e}") from e
        return v

    @field_validator("weak_verbs")
    @classmethod
    def lowercase_verbs(cls, v: dict[str, VerbMapping]) -> dict[str, VerbMapping]:
        """Store weak verb keys lowercased."""
        return {key.strip().lower(): mapping for key, mapping in v.items()}


@dataclass(frozen=True)
class PhrasePattern:
    """A phrase and its compiled, case-insensitive matcher."""

    phrase: str
    pattern: re.Pattern[str]


def _phrase_pattern(phrase: str) -> PhrasePattern:
    # Non-word boundaries so phrases like "etc." and "c++" still match.
    escaped = re.escape(phrase.lower())
    return PhrasePattern(
        phrase=phrase.lower(),
        pattern=re.compile(rf"(?<!\w){escaped}(?!\w)", re.IGNORECASE),
    )


def _longest_first(phrases: list[str]) -> list[str]:
    return sorted({p.strip().lower() for p in phrases if p.strip()}, key=len, reverse=True)


@dataclass(frozen=True)
class CompiledLexicon:
    """Lookup structures built once from a Lexicon.

    Instances are immutable and safe to share between concurrent requests.
    """

    lexicon: Lexicon
    source_dir: Path | None
    weak_verb_patterns: tuple[PhrasePattern, ...]
    strong_verbs: frozenset[str]
    fluff_patterns: dict[str, tuple[PhrasePattern, ...]]
    number_patterns: tuple[tuple[str, re.Pattern[str]], ...]
    metric_patterns: tuple[tuple[str, re.Pattern[str]], ...]
    scale_claim_patterns: tuple[PhrasePattern, ...]
    implied_metric_patterns: tuple[PhrasePattern, ...]
    tech_terms: frozenset[str]
    tool_relevance: dict[str, tuple[str, ...]] = field(default_factory=dict)

    @classmethod
    def build(cls, lexicon: Lexicon, source_dir: Path | None = None) -> CompiledLexicon:
        """Compile a Lexicon into lookup tables."""
        fluff_patterns = {
            category: tuple(
                _phrase_pattern(p)
                for p in _longest_first(getattr(lexicon.fluff, category))
            )
            for category in FLUFF_CATEGORIES
        }
        return cls(
            lexicon=lexicon,
            source_dir=source_dir,
            weak_verb_patterns=tuple(
                PhrasePattern(
                    phrase=verb,
                    pattern=re.compile(rf"\b{re.escape(verb)}\b", re.IGNORECASE),
                )
                for verb in _longest_first(list(lexicon.weak_verbs))
            ),
            strong_verbs=frozenset(v.strip().lower() for v in lexicon.strong_verbs),
            fluff_patterns=fluff_patterns,
            number_patterns=tuple(
                (name, re.compile(pattern, re.IGNORECASE))
                for name, pattern in lexicon.number_patterns.items()
            ),
            metric_patterns=tuple(
                (name, re.compile(pattern, re.IGNORECASE))
                for name, pattern in lexicon.metric_patterns.items()
            ),
            scale_claim_patterns=tuple(
                _phrase_pattern(p) for p in _longest_first(lexicon.scale_claims)
            ),
            implied_metric_patterns=tuple(
                _phrase_pattern(p) for p in _longest_first(lexicon.implied_metrics)
            ),
            tech_terms=frozenset(t.strip().lower() for t in lexicon.tech_terms),
            tool_relevance={
                tool.lower(): tuple(k.lower() for k in keywords)
                for tool, keywords in lexicon.tool_relevance.items()
            },
        )

    def verb_mapping(self, verb: str) -> VerbMapping | None:
        """Return the mapping for a weak verb phrase, if any."""
        return self.lexicon.weak_verbs.get(verb.strip().lower())

    def fluff_replacement(self, phrase: str) -> str | None:
        """Return the substitution for a redundant phrase, if any."""
        return self.lexicon.fluff.redundant_replacements.get(phrase.lower())


def _load_yaml(path: Path) -> dict:
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML lexicon file: {path}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"Lexicon file must be a mapping/dict: {path}")
    return data


def load_lexicon(directory: Path | None = None) -> Lexicon:
    """Load and validate the lexicon from a directory of YAML files.

    Args:
        directory: Directory containing the lexicon files. Defaults to the
            packaged data directory.

    Returns:
        The validated Lexicon.

    Raises:
        FileNotFoundError: If a lexicon file is missing.
        ValueError: If a file is malformed or fails schema validation.
    """
    directory = directory or DEFAULT_LEXICON_DIR
    verbs = _load_yaml(directory / "verb_mapping.yaml")
    fluff = _load_yaml(directory / "fluff_phrases.yaml")
    metrics = _load_yaml(directory / "metric_patterns.yaml")
    tech = _load_yaml(directory / "tech_terms.yaml")

    data = {
        "weak_verbs": verbs.get("weak_verbs") or {},
        "strong_verbs": verbs.get("strong_verbs") or [],
        "fluff": fluff,
        "number_patterns": metrics.get("number_patterns") or {},
        "metric_patterns": metrics.get("metric_patterns") or {},
        "scale_claims": metrics.get("scale_claims") or [],
        "implied_metrics": metrics.get("implied_metrics") or [],
        "tech_terms": tech.get("tech_terms") or [],
        "tool_relevance": tech.get("tool_relevance") or {},
    }

    try:
        lexicon = Lexicon.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid lexicon in {directory}: {e}") from e

    logger.debug(
        f"Loaded lexicon from {directory}: {len(lexicon.weak_verbs)} weak verbs, "
        f"{len(lexicon.tech_terms)} tech terms"
    )
    return lexicon


# Shared compiled lexicon
_compiled_lexicon: CompiledLexicon | None = None


def get_lexicon(directory: Path | None = None) -> CompiledLexicon:
    """Get the shared compiled lexicon, loading it on first use.

    Args:
        directory: Optional lexicon directory. A different directory than the
            one currently loaded triggers a reload.
    """
    global _compiled_lexicon
    if _compiled_lexicon is None or (
        directory is not None and directory != _compiled_lexicon.source_dir
    ):
        return reload_lexicon(directory)
    return _compiled_lexicon


def reload_lexicon(directory: Path | None = None) -> CompiledLexicon:
    """Rebuild the shared compiled lexicon from disk."""
    global _compiled_lexicon
    source_dir = directory or DEFAULT_LEXICON_DIR
    _compiled_lexicon = CompiledLexicon.build(load_lexicon(source_dir), source_dir)
    logger.info(f"Lexicon loaded from {source_dir}")
    return _compiled_lexicon


def reset_lexicon() -> None:
    """Drop the shared compiled lexicon (useful for testing)."""
    global _compiled_lexicon
    _compiled_lexicon = None
