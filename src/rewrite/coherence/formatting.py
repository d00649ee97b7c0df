"""Formatting normalization for rewritten lines.

Produces ATS-safe, consistently formatted text. Formatting only touches
whitespace, punctuation and casing; it never adds or removes facts.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

# Characters that many applicant tracking systems mangle
ATS_REPLACEMENTS = {
    "‘": "'",
    "’": "'",
    "“": '"',
    "”": '"',
    "–": "-",
    "—": "-",
    "…": "...",
    "•": "-",
    "·": "-",
    "\u00a0": " ",
    "®": "",
    "™": "",
    "©": "",
}

_WHITESPACE = re.compile(r"\s+")
_TRAILING_PUNCTUATION = re.compile(r"[.!?]+$")
_PERCENT_SPACE = re.compile(r"(\d)\s+%")
_SUFFIX_SPACE = re.compile(r"(\$\d+(?:\.\d+)?)\s+([KMB])\b")
_MULTIPLIER_SPACE = re.compile(r"(\d)\s+x\b")


@dataclass(frozen=True)
class LengthCheck:
    """Whether a line fits the configured length bounds."""

    length: int
    too_short: bool
    too_long: bool

    @property
    def ok(self) -> bool:
        return not (self.too_short or self.too_long)


def normalize_whitespace(text: str) -> str:
    """Collapse runs of whitespace and strip the ends."""
    return _WHITESPACE.sub(" ", text).strip()


def make_ats_safe(text: str) -> str:
    """Replace typographic characters with plain ASCII equivalents."""
    for char, replacement in ATS_REPLACEMENTS.items():
        text = text.replace(char, replacement)
    return text


def capitalize_first(text: str) -> str:
    """Uppercase the first letter without touching the rest."""
    for index, char in enumerate(text):
        if char.isalpha():
            return text[:index] + char.upper() + text[index + 1 :]
    return text


def standardize_numbers(text: str) -> str:
    """Tighten number formats: "40 %" -> "40%", "$5 K" -> "$5K", "10 x" -> "10x"."""
    text = _PERCENT_SPACE.sub(r"\1%", text)
    text = _SUFFIX_SPACE.sub(r"\1\2", text)
    return _MULTIPLIER_SPACE.sub(r"\1x", text)


def remove_trailing_punctuation(text: str) -> str:
    """Strip trailing sentence punctuation, as bullets have no period."""
    return _TRAILING_PUNCTUATION.sub("", text).rstrip()


def apply_full_formatting(text: str) -> str:
    """Apply every formatting rule in a fixed order."""
    text = normalize_whitespace(text)
    text = make_ats_safe(text)
    text = normalize_whitespace(text)
    text = capitalize_first(text)
    text = standardize_numbers(text)
    return remove_trailing_punctuation(text)


def unify_formatting(lines: list[str]) -> tuple[list[str], list[str]]:
    """Format every line and describe which rules changed something.

    Returns:
        Tuple of (formatted lines, notes).
    """
    rules = [
        ("whitespace", normalize_whitespace),
        ("ATS-safe characters", make_ats_safe),
        ("capitalization", capitalize_first),
        ("number formats", standardize_numbers),
        ("trailing punctuation", remove_trailing_punctuation),
    ]
    applied: list[str] = []
    for name, rule in rules:
        if any(rule(line) != line for line in lines):
            applied.append(name)

    formatted = [apply_full_formatting(line) for line in lines]
    notes = [f"Normalized {name}" for name in applied]
    return formatted, notes


def check_length(text: str, min_length: int, max_length: int) -> LengthCheck:
    """Check a line against min/max character bounds."""
    length = len(text)
    return LengthCheck(
        length=length,
        too_short=length < min_length,
        too_long=length > max_length,
    )
