"""Metric, number and scale-claim detection.

Numbers are compared by canonical value rather than surface form, so
"$5K", "$5,000" and "5k" are the same fact. Canonicalization covers
thousands separators, currency, percent signs and the word "percent",
multipliers ("3x"), trailing "+", and K/M/B suffixes or the words
thousand/million/billion. Word-form numbers ("five") and conversions between
ratios and percentages ("0.4" vs "40%") are not normalized.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Literal

from src.rewrite.lexicon import CompiledLexicon, PhrasePattern, get_lexicon

MetricType = Literal[
    "percentage",
    "dollar_amount",
    "count",
    "multiplier",
    "time",
    "range",
    "ratio",
    "implied",
    "scale_claim",
]

_SUFFIX_MULTIPLIERS = {
    "k": 1e3,
    "thousand": 1e3,
    "m": 1e6,
    "million": 1e6,
    "b": 1e9,
    "billion": 1e9,
}
_VALUE_PATTERN = re.compile(r"\d+(?:\.\d+)?")
_TIME_UNITS = re.compile(r"(hour|day|week|month|year|minute|second)", re.IGNORECASE)


@dataclass(frozen=True)
class DetectedMetric:
    """A metric or quantifiable claim found in text."""

    text: str
    type: MetricType
    position: int
    numeric_value: float | None = None

    @property
    def end(self) -> int:
        return self.position + len(self.text)


def extract_numeric_value(text: str) -> float | None:
    """Return the canonical numeric value of a number token.

    Examples: "$5K" -> 5000.0, "$5,000" -> 5000.0, "40%" -> 40.0,
    "2.5 million" -> 2500000.0. Returns None when the text has no digits.
    """
    cleaned = text.replace(",", "")
    match = _VALUE_PATTERN.search(cleaned)
    if match is None:
        return None
    value = float(match.group(0))
    tail = cleaned[match.end() :].strip().lower()
    multiplier = _SUFFIX_MULTIPLIERS.get(tail)
    if multiplier:
        value *= multiplier
    return value


def normalize_number(text: str) -> str:
    """Canonical comparison key for a number token."""
    value = extract_numeric_value(text)
    if value is None:
        return text.strip().lower()
    return format(round(value, 6), "f").rstrip("0").rstrip(".")


def _scan(
    text: str,
    patterns: Iterable[tuple[str, re.Pattern[str]]],
    taken: list[tuple[int, int]],
) -> list[tuple[str, re.Match[str]]]:
    found = []
    for name, pattern in patterns:
        for match in pattern.finditer(text):
            start, end = match.span()
            if start == end:
                continue
            if any(start < t_end and t_start < end for t_start, t_end in taken):
                continue
            taken.append((start, end))
            found.append((name, match))
    return found


def extract_number_tokens(
    text: str, lexicon: CompiledLexicon | None = None
) -> list[DetectedMetric]:
    """Extract numeric tokens without overlap, most specific pattern first."""
    lexicon = lexicon or get_lexicon()
    tokens = [
        DetectedMetric(
            text=match.group(0).strip(),
            type=_infer_metric_type(match.group(0)),
            position=match.start(),
            numeric_value=extract_numeric_value(match.group(0)),
        )
        for _, match in _scan(text, lexicon.number_patterns, [])
    ]
    return sorted(tokens, key=lambda t: t.position)


def extract_numbers(text: str, lexicon: CompiledLexicon | None = None) -> set[str]:
    """Return the set of numeric token strings in text."""
    return {token.text for token in extract_number_tokens(text, lexicon)}


def extract_all_numbers(
    texts: Iterable[str], lexicon: CompiledLexicon | None = None
) -> set[str]:
    """Union of numeric tokens across several texts."""
    numbers: set[str] = set()
    for text in texts:
        numbers |= extract_numbers(text, lexicon)
    return numbers


def _infer_metric_type(text: str) -> MetricType:
    lowered = text.lower()
    if "%" in text or "percent" in lowered:
        return "percentage"
    if "$" in text:
        return "dollar_amount"
    if re.search(r"\d+(?:\.\d+)?x\b", lowered):
        return "multiplier"
    if re.search(r"\d+:\d+", text):
        return "ratio"
    if re.search(r"\d+\s*(?:-|to)\s*\d+", lowered):
        return "range"
    if _TIME_UNITS.search(lowered):
        return "time"
    return "count"


def detect_metrics(text: str, lexicon: CompiledLexicon | None = None) -> list[DetectedMetric]:
    """Detect explicit metrics: descriptive patterns first, then bare numbers."""
    lexicon = lexicon or get_lexicon()
    taken: list[tuple[int, int]] = []
    matches = _scan(text, lexicon.metric_patterns, taken)
    matches += _scan(text, lexicon.number_patterns, taken)
    metrics = [
        DetectedMetric(
            text=match.group(0).strip(),
            type=_infer_metric_type(match.group(0)),
            position=match.start(),
            numeric_value=extract_numeric_value(match.group(0)),
        )
        for _, match in matches
    ]
    return sorted(metrics, key=lambda m: m.position)


def _detect_phrases(
    text: str, patterns: Iterable[PhrasePattern], metric_type: MetricType
) -> list[DetectedMetric]:
    found = []
    for entry in patterns:
        match = entry.pattern.search(text)
        if match:
            found.append(
                DetectedMetric(text=entry.phrase, type=metric_type, position=match.start())
            )
    return sorted(found, key=lambda m: m.position)


def detect_implied_metrics(
    text: str, lexicon: CompiledLexicon | None = None
) -> list[DetectedMetric]:
    """Detect words that suggest magnitude without a number."""
    lexicon = lexicon or get_lexicon()
    return _detect_phrases(text, lexicon.implied_metric_patterns, "implied")


def detect_scale_claims(
    text: str, lexicon: CompiledLexicon | None = None
) -> list[DetectedMetric]:
    """Detect scale claims such as "massive" or "enterprise-grade"."""
    lexicon = lexicon or get_lexicon()
    return _detect_phrases(text, lexicon.scale_claim_patterns, "scale_claim")


def has_metric(text: str, lexicon: CompiledLexicon | None = None) -> bool:
    """Check whether text contains an explicit metric."""
    return bool(detect_metrics(text, lexicon))


def has_implied_metric(text: str, lexicon: CompiledLexicon | None = None) -> bool:
    """Check whether text contains an implied metric."""
    return bool(detect_implied_metrics(text, lexicon))


def has_quantifiable_content(text: str, lexicon: CompiledLexicon | None = None) -> bool:
    """Check whether text contains explicit or implied metrics."""
    return has_metric(text, lexicon) or has_implied_metric(text, lexicon)


def find_new_numbers(
    improved_text: str,
    original_text: str,
    evidence_texts: Iterable[str],
    lexicon: CompiledLexicon | None = None,
) -> list[str]:
    """Numbers in the improved text whose value appears in neither source.

    Returns:
        Offending tokens in order of appearance, without duplicates.
    """
    lexicon = lexicon or get_lexicon()
    known = {
        normalize_number(token)
        for token in extract_all_numbers([original_text, *evidence_texts], lexicon)
    }
    new_numbers: list[str] = []
    for token in extract_number_tokens(improved_text, lexicon):
        if normalize_number(token.text) not in known and token.text not in new_numbers:
            new_numbers.append(token.text)
    return new_numbers


def find_new_scale_claims(
    improved_text: str,
    original_text: str,
    evidence_texts: Iterable[str],
    lexicon: CompiledLexicon | None = None,
) -> list[str]:
    """Scale-claim phrases in the improved text absent from every source."""
    lexicon = lexicon or get_lexicon()
    known = {c.text for c in detect_scale_claims(original_text, lexicon)}
    for evidence in evidence_texts:
        known |= {c.text for c in detect_scale_claims(evidence, lexicon)}
    return [
        claim.text
        for claim in detect_scale_claims(improved_text, lexicon)
        if claim.text not in known
    ]
