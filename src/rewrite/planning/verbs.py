"""Weak verb detection and upgrade suggestions."""

from __future__ import annotations

import re
from dataclasses import dataclass

from src.rewrite.lexicon import CompiledLexicon, get_lexicon


@dataclass(frozen=True)
class WeakVerbMatch:
    """A weak verb phrase found in text."""

    verb: str
    position: int


WEAK_START_PATTERNS = [
    re.compile(r"^(worked\s+on)\b", re.IGNORECASE),
    re.compile(r"^(helped\s+with)\b", re.IGNORECASE),
    re.compile(r"^(was\s+responsible\s+for)\b", re.IGNORECASE),
    re.compile(r"^(responsible\s+for)\b", re.IGNORECASE),
    re.compile(r"^(assisted\s+with)\b", re.IGNORECASE),
    re.compile(r"^(involved\s+in)\b", re.IGNORECASE),
    re.compile(r"^(participated\s+in)\b", re.IGNORECASE),
    re.compile(r"^(tasked\s+with)\b", re.IGNORECASE),
    re.compile(r"^(in\s+charge\s+of)\b", re.IGNORECASE),
]

PASSIVE_PATTERNS = [
    re.compile(r"\b(was|were)\s+\w+ed\b", re.IGNORECASE),
    re.compile(r"\b(was|were)\s+\w+en\b", re.IGNORECASE),
    re.compile(r"\b(has|have|had)\s+been\s+\w+ed\b", re.IGNORECASE),
    re.compile(r"\b(has|have|had)\s+been\s+\w+en\b", re.IGNORECASE),
    re.compile(r"\b(is|are)\s+being\s+\w+ed\b", re.IGNORECASE),
    re.compile(r"\bwas\s+responsible\s+for\b", re.IGNORECASE),
    re.compile(r"\bwere\s+responsible\s+for\b", re.IGNORECASE),
]


def find_weak_verbs(
    text: str, lexicon: CompiledLexicon | None = None
) -> list[WeakVerbMatch]:
    """Find weak verb phrases in text, longest phrase first.

    A shorter phrase starting inside an already matched longer one is
    skipped, so "worked on" wins over "worked".

    Returns:
        Matches ordered by position, with the verb lowercased.
    """
    lexicon = lexicon or get_lexicon()
    text_lower = text.lower()
    found: list[WeakVerbMatch] = []

    for entry in lexicon.weak_verb_patterns:
        for match in entry.pattern.finditer(text_lower):
            covered = any(
                f.position <= match.start() < f.position + len(f.verb) for f in found
            )
            if not covered:
                found.append(WeakVerbMatch(verb=match.group(0), position=match.start()))

    return sorted(found, key=lambda m: m.position)


def find_first_weak_verb(text: str, lexicon: CompiledLexicon | None = None) -> str | None:
    """Return the first weak verb in text, if any."""
    found = find_weak_verbs(text, lexicon)
    return found[0].verb if found else None


def starts_with_weak_verb(text: str, lexicon: CompiledLexicon | None = None) -> bool:
    """Check whether text opens with a weak verb phrase."""
    found = find_weak_verbs(text.lstrip(), lexicon)
    return bool(found) and found[0].position == 0


def get_verb_upgrades(
    weak_verb: str, context: str | None = None, lexicon: CompiledLexicon | None = None
) -> list[str]:
    """Return upgrade candidates, context-preferred upgrade first."""
    lexicon = lexicon or get_lexicon()
    mapping = lexicon.verb_mapping(weak_verb)
    if mapping is None:
        return []

    if context:
        context_lower = context.lower()
        for hint, upgrade in mapping.context_hints.items():
            if hint.lower() in context_lower:
                return [upgrade] + [u for u in mapping.upgrades if u != upgrade]

    return list(mapping.upgrades)


def suggest_verb_upgrade(
    weak_verb: str, context: str | None = None, lexicon: CompiledLexicon | None = None
) -> str | None:
    """Suggest the best upgrade for a weak verb.

    The first context hint whose keyword appears in ``context`` wins;
    otherwise the first listed upgrade is used.
    """
    upgrades = get_verb_upgrades(weak_verb, context, lexicon)
    return upgrades[0] if upgrades else None


def has_weak_start_pattern(text: str) -> str | None:
    """Return the weak opening phrase matched at the start of text, if any."""
    for pattern in WEAK_START_PATTERNS:
        match = pattern.match(text.strip())
        if match:
            return match.group(0)
    return None


def has_passive_voice(text: str) -> bool:
    """Check whether text contains a passive construction."""
    return any(pattern.search(text) for pattern in PASSIVE_PATTERNS)


def find_passive_voice_phrases(text: str) -> list[str]:
    """Return every passive phrase found in text."""
    phrases: list[str] = []
    for pattern in PASSIVE_PATTERNS:
        phrases.extend(m.group(0) for m in pattern.finditer(text))
    return phrases


def is_strong_verb(verb: str, lexicon: CompiledLexicon | None = None) -> bool:
    """Check whether a verb is in the strong verb list."""
    lexicon = lexicon or get_lexicon()
    return verb.strip().lower() in lexicon.strong_verbs


def extract_first_verb(text: str) -> str | None:
    """Return the first word of text, lowercased and stripped of punctuation."""
    words = text.split()
    if not words:
        return None
    return re.sub(r"[^a-zA-Z]", "", words[0]).lower() or None


def starts_with_strong_verb(text: str, lexicon: CompiledLexicon | None = None) -> bool:
    """Check whether text opens with a strong verb."""
    first = extract_first_verb(text)
    return first is not None and is_strong_verb(first, lexicon)
