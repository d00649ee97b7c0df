"""Fluff phrase detection and removal."""

from __future__ import annotations

import re
from dataclasses import dataclass

from src.rewrite.lexicon import FLUFF_CATEGORIES, CompiledLexicon, get_lexicon

# Categories whose phrases are deleted outright when no substitution exists.
DELETED_CATEGORIES = frozenset(
    {"fillers", "weak_descriptors", "vague_phrases", "unnecessary_adverbs"}
)

FLUFF_REASONS = {
    "fillers": "Vague filler word that adds no meaning",
    "weak_descriptors": "Weak descriptor that doesn't add value",
    "redundant_phrases": "Redundant phrase that can be simplified",
    "vague_phrases": "Vague phrase that obscures your actual contribution",
    "hype_words": "Overused buzzword that may seem insincere",
    "unnecessary_adverbs": "Adverb that weakens rather than strengthens",
    "cliches": "Cliche phrase that lacks impact",
}


@dataclass(frozen=True)
class DetectedFluff:
    """A fluff phrase found in text."""

    phrase: str
    category: str
    position: int
    replacement: str | None = None

    @property
    def end(self) -> int:
        return self.position + len(self.phrase)


def fluff_replacement(
    phrase: str, category: str, lexicon: CompiledLexicon | None = None
) -> str | None:
    """Return the replacement text for a fluff phrase.

    Redundant phrases get their configured substitution. Fillers, weak
    descriptors, vague phrases and adverbs are deleted (empty string). Hype
    words and cliches have no automatic replacement (None).
    """
    lexicon = lexicon or get_lexicon()
    if category == "redundant_phrases":
        return lexicon.fluff_replacement(phrase)
    if category in DELETED_CATEGORIES:
        return ""
    return None


def _detect_category(
    text: str, category: str, lexicon: CompiledLexicon
) -> list[DetectedFluff]:
    found = []
    for entry in lexicon.fluff_patterns.get(category, ()):
        for match in entry.pattern.finditer(text):
            found.append(
                DetectedFluff(
                    phrase=match.group(0),
                    category=category,
                    position=match.start(),
                    replacement=fluff_replacement(entry.phrase, category, lexicon),
                )
            )
    return found


def _deduplicate(fluff: list[DetectedFluff]) -> list[DetectedFluff]:
    result: list[DetectedFluff] = []
    for item in fluff:
        overlaps = any(
            item.position < existing.end and existing.position < item.end
            for existing in result
        )
        if not overlaps:
            result.append(item)
    return result


def detect_fluff(text: str, lexicon: CompiledLexicon | None = None) -> list[DetectedFluff]:
    """Detect fluff across all seven categories.

    Overlapping hits are resolved in favour of the earliest, then longest,
    match.
    """
    lexicon = lexicon or get_lexicon()
    found: list[DetectedFluff] = []
    for category in FLUFF_CATEGORIES:
        found.extend(_detect_category(text, category, lexicon))
    found.sort(key=lambda f: (f.position, -len(f.phrase)))
    return _deduplicate(found)


def detect_fluff_by_category(
    text: str, category: str, lexicon: CompiledLexicon | None = None
) -> list[DetectedFluff]:
    """Detect fluff from a single category."""
    if category not in FLUFF_CATEGORIES:
        raise ValueError(f"Unknown fluff category: {category}")
    return _detect_category(text, category, lexicon or get_lexicon())


def has_fluff(text: str, lexicon: CompiledLexicon | None = None) -> bool:
    """Check whether text contains any fluff."""
    return bool(detect_fluff(text, lexicon))


def count_fluff(text: str, lexicon: CompiledLexicon | None = None) -> int:
    """Count distinct fluff phrases in text."""
    return len(detect_fluff(text, lexicon))


def remove_fluff(
    text: str, lexicon: CompiledLexicon | None = None
) -> tuple[str, list[str]]:
    """Remove or substitute fluff phrases.

    Returns:
        Tuple of (cleaned text, removed phrases in reverse position order).
    """
    detected = detect_fluff(text, lexicon)
    removed: list[str] = []
    cleaned = text
    for item in sorted(detected, key=lambda f: f.position, reverse=True):
        replacement = item.replacement or ""
        cleaned = cleaned[: item.position] + replacement + cleaned[item.end :]
        removed.append(item.phrase)
    cleaned = re.sub(r"\s+", " ", cleaned).strip()
    return cleaned, removed


def fluff_reason(category: str) -> str:
    """Human-readable reason a category counts as fluff."""
    return FLUFF_REASONS.get(category, "Phrase adds length without information")


def fluff_removal_suggestions(
    text: str, lexicon: CompiledLexicon | None = None
) -> list[dict[str, str]]:
    """Suggestions describing each fluff phrase and what to do with it."""
    return [
        {
            "phrase": item.phrase,
            "reason": fluff_reason(item.category),
            "suggestion": (
                f'Replace with "{item.replacement}"'
                if item.replacement
                else "Remove this phrase"
            ),
        }
        for item in detect_fluff(text, lexicon)
    ]
