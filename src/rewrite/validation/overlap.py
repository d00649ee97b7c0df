"""Word-overlap scoring between output spans and evidence.

Only lexical overlap is measured; there is no embedding-based similarity.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from difflib import SequenceMatcher

STOP_WORDS = frozenset(
    {
        "a", "an", "the", "and", "or", "but", "in", "on", "at", "to", "for",
        "of", "with", "by", "from", "as", "is", "was", "are", "were", "been",
        "be", "have", "has", "had", "do", "does", "did", "will", "would",
        "could", "should", "may", "might", "must", "that", "which", "who",
        "whom", "this", "these", "those", "it", "its", "my", "your", "our",
        "their", "his", "her", "into", "over", "than", "then", "also", "such",
        "using", "via", "across", "through", "while", "within", "all", "any",
    }
)

STEM_SUFFIXES = ("ing", "ed", "es", "s", "er", "est", "ly", "ment", "tion", "ness")

FUZZY_WORD_THRESHOLD = 0.85

_CLEAN = re.compile(r"[^a-z0-9\s-]")


@dataclass(frozen=True)
class OverlapAnalysis:
    """Breakdown of how a span's words are covered by evidence."""

    span_words: list[str]
    matched_words: list[str]
    unmatched_words: list[str]
    overlap_ratio: float
    has_overlap: bool


def tokenize(text: str) -> list[str]:
    """Lowercase word tokens, keeping hyphenated words intact."""
    return _CLEAN.sub(" ", text.lower()).split()


def get_significant_words(text: str) -> set[str]:
    """Words longer than two characters that are not stop-words."""
    return {w for w in tokenize(text) if len(w) > 2 and w not in STOP_WORDS}


def stem(word: str) -> str:
    """Strip one common English suffix from a word."""
    for suffix in STEM_SUFFIXES:
        if word.endswith(suffix) and len(word) > len(suffix) + 2:
            return word[: -len(suffix)]
    return word


def get_stemmed_words(text: str) -> set[str]:
    """Significant words reduced to their stems."""
    return {stem(w) for w in get_significant_words(text)}


def _evidence_words(evidence_texts: Iterable[str]) -> set[str]:
    words: set[str] = set()
    for text in evidence_texts:
        words |= get_significant_words(text)
    return words


def calculate_overlap_ratio(span: str, evidence_texts: Iterable[str]) -> float:
    """Share of the span's significant words found across all evidence texts.

    A span without significant words counts as fully covered.
    """
    span_words = get_significant_words(span)
    if not span_words:
        return 1.0
    return len(span_words & _evidence_words(evidence_texts)) / len(span_words)


def verify_semantic_overlap(
    span: str, evidence_texts: Iterable[str], threshold: float = 0.3
) -> bool:
    """Check whether the cited evidence together covers enough of the span."""
    return calculate_overlap_ratio(span, evidence_texts) >= threshold


def analyze_overlap(
    span: str, evidence_texts: Iterable[str], threshold: float = 0.3
) -> OverlapAnalysis:
    """Overlap of the span against the union of all evidence words."""
    span_words = get_significant_words(span)
    evidence_words = _evidence_words(evidence_texts)

    matched = sorted(span_words & evidence_words)
    unmatched = sorted(span_words - evidence_words)
    ratio = len(matched) / len(span_words) if span_words else 1.0
    return OverlapAnalysis(
        span_words=sorted(span_words),
        matched_words=matched,
        unmatched_words=unmatched,
        overlap_ratio=ratio,
        has_overlap=ratio >= threshold,
    )


def is_substring_match(span: str, evidence_texts: Iterable[str]) -> bool:
    """Direct substring match, or every word of a multi-word span present."""
    span_lower = span.lower().strip()
    span_words = span_lower.split()
    for evidence in evidence_texts:
        evidence_lower = evidence.lower()
        if span_lower in evidence_lower:
            return True
        if len(span_words) > 1 and all(word in evidence_lower for word in span_words):
            return True
    return False


def is_fuzzy_match(
    span: str, evidence_texts: Iterable[str], threshold: float = FUZZY_WORD_THRESHOLD
) -> bool:
    """Every significant span word has a near-identical stem in one evidence text.

    Catches inflection changes such as "optimize" vs "optimization".
    """
    span_stems = get_stemmed_words(span)
    if not span_stems:
        return True
    for evidence in evidence_texts:
        evidence_stems = get_stemmed_words(evidence)
        if all(
            word in evidence_stems
            or any(
                SequenceMatcher(None, word, candidate).ratio() >= threshold
                for candidate in evidence_stems
            )
            for word in span_stems
        ):
            return True
    return False


def jaccard_similarity(text1: str, text2: str) -> float:
    """Jaccard similarity over significant words."""
    words1 = get_significant_words(text1)
    words2 = get_significant_words(text2)
    if not words1 and not words2:
        return 1.0
    return len(words1 & words2) / len(words1 | words2)


def overlap_coefficient(text1: str, text2: str) -> float:
    """Overlap coefficient (intersection over the smaller set)."""
    words1 = get_significant_words(text1)
    words2 = get_significant_words(text2)
    if not words1 or not words2:
        return 0.0
    return len(words1 & words2) / min(len(words1), len(words2))
