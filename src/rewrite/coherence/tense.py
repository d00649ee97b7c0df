"""Tense detection and unification for resume sections.

Detection looks at the sentence-initial verb first and falls back to
counting past (-ed and irregular) against present (-s and base) verb forms.
Conversion only rewrites the first word of a line. A first word is only
changed when its target form is known: either from the verb table or from a
stem the spelling rules can recover unambiguously.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from src.rewrite.models import ConfidenceLevel, Tense

# Present base form -> past form
IRREGULAR_PAST = {
    "lead": "led",
    "build": "built",
    "write": "wrote",
    "make": "made",
    "grow": "grew",
    "drive": "drove",
    "run": "ran",
    "win": "won",
    "give": "gave",
    "take": "took",
    "begin": "began",
    "bring": "brought",
    "think": "thought",
    "teach": "taught",
    "oversee": "oversaw",
    "see": "saw",
    "buy": "bought",
    "sell": "sold",
    "hold": "held",
    "find": "found",
    "keep": "kept",
    "meet": "met",
    "set": "set",
    "cut": "cut",
    "spend": "spent",
    "send": "sent",
    "speak": "spoke",
    "choose": "chose",
    "get": "got",
    "go": "went",
    "do": "did",
    "rebuild": "rebuilt",
    "rewrite": "rewrote",
    "undertake": "undertook",
}

# Regular action verbs, base form. Past forms are derived with the spelling
# rules below and looked up in both directions.
REGULAR_VERBS = (
    "accelerate", "achieve", "address", "administer", "analyze", "apply",
    "architect", "assist", "attend", "audit", "automate", "benchmark",
    "budget", "champion", "change", "coach", "collaborate", "compete",
    "complete", "conceive", "configure", "consolidate", "consult",
    "contribute", "control", "coordinate", "create", "debug", "define",
    "delete", "deliver", "demonstrate", "deploy", "design", "develop",
    "devise", "direct", "document", "earn", "employ", "enable", "engage",
    "engineer", "ensure", "establish", "evaluate", "execute", "expand",
    "explore", "facilitate", "fix", "focus", "formulate", "found",
    "generate", "guarantee", "handle", "help", "hire", "identify",
    "illustrate", "implement", "improve", "increase", "initiate", "innovate",
    "integrate", "interview", "investigate", "invite", "launch", "leverage",
    "lower", "maintain", "manage", "mentor", "migrate", "modernize",
    "monitor", "negotiate", "obtain", "operate", "optimize", "orchestrate",
    "overhaul", "own", "partner", "patrol", "perform", "pilot", "pioneer",
    "pivot", "plan", "preserve", "present", "process", "produce",
    "program", "promote", "prototype", "publish", "quote", "recruit",
    "redesign", "reduce", "refactor", "release", "remediate", "repair",
    "represent", "research", "resolve", "restore", "restructure", "revamp",
    "review", "revise", "save", "scale", "schedule", "score", "secure",
    "serve", "ship", "show", "simplify", "spearhead", "sponsor",
    "standardize", "store", "streamline", "strengthen", "submit", "succeed",
    "supply", "support", "sustain", "target", "test", "track", "train",
    "transfer", "transform", "try", "unify", "unite", "upgrade", "use",
    "utilize", "verify", "vote", "work",
)

_VOWELS = frozenset("aeiou")
_VOWEL_GROUP = re.compile(r"[aeiou]+")
# Stressed final syllable: the final consonant doubles before -ed.
_DOUBLED_FINAL = frozenset(
    {
        "admit", "commit", "compel", "control", "debug", "equip", "occur",
        "omit", "patrol", "permit", "prefer", "program", "propel", "refer",
        "regret", "submit", "transfer",
    }
)


def _regular_past(word: str) -> str:
    if word.endswith("e"):
        return word + "d"
    if word.endswith("y") and len(word) > 1 and word[-2] not in _VOWELS:
        return word[:-1] + "ied"
    if (
        len(word) >= 3
        and word[-1] not in _VOWELS | {"w", "x", "y"}
        and word[-2] in _VOWELS
        and word[-3] not in _VOWELS
        and (len(_VOWEL_GROUP.findall(word)) == 1 or word in _DOUBLED_FINAL)
    ):
        return word + word[-1] + "ed"
    return word + "ed"


VERB_CONVERSIONS: dict[str, str] = {
    **{verb: _regular_past(verb) for verb in REGULAR_VERBS},
    **IRREGULAR_PAST,
}
PAST_FORMS: dict[str, str] = {past: base for base, past in VERB_CONVERSIONS.items()}

# Base forms counted by the fallback detector
_COUNTED_BASE_FORMS = frozenset(
    {
        "develop", "create", "manage", "lead", "build", "write", "make", "grow",
        "drive", "run", "win", "give", "take", "bring", "think",
    }
)
_COUNTED_PAST_FORMS = frozenset(IRREGULAR_PAST.values())

_PAST_PATTERN = re.compile(r"\b\w+ed\b", re.IGNORECASE)
_PRESENT_S_PATTERN = re.compile(r"\b\w+s\b", re.IGNORECASE)
_WORD = re.compile(r"[A-Za-z]+")

# Stems that never stand bare before -ed: resolv(e), optimiz(e), reduc(e),
# chang(e), pars(e), handl(e), compar(e), defin(e), execut(e) and similar.
_NEEDS_SILENT_E = re.compile(
    r"(?:[vu]|[iy]z|c|dg|[ae]ng|rg|[^aeious]s|[bcdfgkptz]l|ag"
    r"|[^aeiou][aiu]r|[^aeiou][aeiouy][bdmp]|[^aeiou][iuy]n|[^aeiou][iou]l"
    r"|[^aeiou][aiou]k|[^aeiou]ut|[^aeo]at)$"
)
# Stems that are already the base form once -ed is removed.
_BARE_STEM = re.compile(
    r"(?:[wx]|[aeiou]y|[aeiou]{2}[^aeiouysvzcg]|[^aeiou](?:et|it|er|el)"
    r"|(?:ch|sh|ck|st|rt|nt|ct|pt|ft|lt|xt|mp|nd|ld|rd|lp|lk|rk|sk|gn|rm|rn|wn"
    r"|mb|ss|ll|ff|dd|ng|sm))$"
)

_NON_VERB_SUFFIXES = (
    "tion", "sion", "ment", "ness", "ity", "ship", "ance", "ence", "ing",
    "ly", "al", "ic", "ous", "ful", "ive", "ary", "ism",
)
_FUNCTION_WORDS = frozenset(
    {
        "a", "an", "the", "and", "or", "for", "with", "of", "in", "on", "to",
        "at", "by", "from", "over", "across", "our", "my", "all", "each",
        "both", "team", "teams",
    }
)

DOMINANCE_HIGH = 0.8
DOMINANCE_MEDIUM = 0.6


@dataclass(frozen=True)
class TenseAnalysis:
    """Dominant tense of a set of lines."""

    dominant: Tense
    past_count: int
    present_count: int
    confidence: ConfidenceLevel


def _leading_words(text: str) -> tuple[re.Match[str] | None, str | None]:
    matches = _WORD.finditer(text)
    first = next(matches, None)
    second = next(matches, None)
    return first, second.group(0).lower() if second else None


def _third_person_base(word: str) -> str | None:
    if word.endswith("ies") and len(word) > 4:
        return word[:-3] + "y"
    if word.endswith(("ches", "shes", "sses", "xes", "zzes", "oes")):
        return word[:-2]
    if word.endswith("s") and not word.endswith(("ss", "us", "is")):
        return word[:-1]
    return None


def _is_regular_past(word: str) -> bool:
    return len(word) > 4 and word.endswith("ed") and not word.endswith("eed")


def _first_word_tense(word: str) -> Tense | None:
    if word in PAST_FORMS:
        return "past"
    if word in VERB_CONVERSIONS or _third_person_base(word) in VERB_CONVERSIONS:
        return "present"
    if _is_regular_past(word):
        return "past"
    return None


def _looks_like_verb(word: str, next_word: str | None) -> bool:
    if word in _FUNCTION_WORDS or word.endswith(_NON_VERB_SUFFIXES):
        return False
    return next_word is not None and next_word not in _FUNCTION_WORDS


def detect_line_tense(line: str) -> Tense | None:
    """Detect a line's tense, or None when it has no clear verb cue."""
    first, _ = _leading_words(line)
    if first:
        tense = _first_word_tense(first.group(0).lower())
        if tense is not None:
            return tense

    words = [w.lower() for w in _WORD.findall(line)]
    past = len(_PAST_PATTERN.findall(line)) + sum(1 for w in words if w in _COUNTED_PAST_FORMS)
    present = len(_PRESENT_S_PATTERN.findall(line)) + sum(
        1 for w in words if w in _COUNTED_BASE_FORMS
    )
    if past > present:
        return "past"
    if present > past:
        return "present"
    return None


def detect_dominant_tense(lines: list[str]) -> TenseAnalysis:
    """Majority tense across lines; ties go to past."""
    past = present = 0
    for line in lines:
        tense = detect_line_tense(line)
        if tense == "past":
            past += 1
        elif tense == "present":
            present += 1

    dominant: Tense = "past" if past >= present else "present"
    total = past + present
    agreement = max(past, present) / total if total else 0.0
    if agreement >= DOMINANCE_HIGH:
        confidence: ConfidenceLevel = "high"
    elif agreement >= DOMINANCE_MEDIUM:
        confidence = "medium"
    else:
        confidence = "low"
    return TenseAnalysis(
        dominant=dominant, past_count=past, present_count=present, confidence=confidence
    )


def _to_past(word: str) -> str:
    if word in VERB_CONVERSIONS:
        return VERB_CONVERSIONS[word]
    if word in PAST_FORMS or word.endswith("ed"):
        return word
    base = _third_person_base(word)
    if base in VERB_CONVERSIONS:
        return VERB_CONVERSIONS[base]
    return _regular_past(base or word)


def _to_present(word: str) -> str:
    """Recover the base form of a past verb, or return the word unchanged."""
    if word in PAST_FORMS:
        return PAST_FORMS[word]
    if not _is_regular_past(word):
        return word
    stem = word[:-2]
    if stem.endswith("i") and len(stem) > 2:
        return stem[:-1] + "y"
    for candidate in (stem, stem + "e"):
        if candidate in VERB_CONVERSIONS:
            return candidate
    if (
        len(stem) >= 4
        and stem[-1] == stem[-2]
        and stem[-1] not in "lsfz"
        and stem[-3] in _VOWELS
        and stem[-4] not in _VOWELS
    ):
        return stem[:-1]
    if stem.endswith("ell") and len(stem) >= 6:
        return stem[:-1]
    if _NEEDS_SILENT_E.search(stem):
        return stem + "e"
    if _BARE_STEM.search(stem):
        return stem
    return word


def _match_case(template: str, word: str) -> str:
    if template.isupper() and len(template) > 1:
        return word.upper()
    if template[:1].isupper():
        return word[:1].upper() + word[1:]
    return word


def convert_to_tense(line: str, tense: Tense) -> str:
    """Convert the first word of a line to the given tense.

    Lines already in the target tense, and lines whose first word has no
    recoverable form in that tense, are returned unchanged.
    """
    match, next_word = _leading_words(line)
    if not match or detect_line_tense(line) == tense:
        return line
    word = match.group(0)
    lowered = word.lower()
    cue = _first_word_tense(lowered)

    if tense == "past":
        if cue == "past":
            return line
        # Unknown first words are converted only when the line reads as present
        if cue is None and not (
            detect_line_tense(line) == "present"
            and not word.isupper()
            and _looks_like_verb(lowered, next_word)
        ):
            return line
        converted = _to_past(lowered)
    else:
        if cue != "past":
            return line
        converted = _to_present(lowered)

    if converted == lowered:
        return line
    return line[: match.start()] + _match_case(word, converted) + line[match.end() :]


def has_consistent_tense(lines: list[str]) -> bool:
    """Check whether every line with a detectable tense agrees."""
    tenses = {t for t in (detect_line_tense(line) for line in lines) if t is not None}
    return len(tenses) <= 1


def get_inconsistent_lines(lines: list[str]) -> list[tuple[int, Tense]]:
    """(index, tense) of lines that disagree with the dominant tense."""
    dominant = detect_dominant_tense(lines).dominant
    inconsistent = []
    for index, line in enumerate(lines):
        tense = detect_line_tense(line)
        if tense is not None and tense != dominant:
            inconsistent.append((index, tense))
    return inconsistent


def unify_tense(lines: list[str], tense: Tense | None = None) -> tuple[list[str], Tense]:
    """Convert every line to one tense.

    Args:
        lines: Lines to unify.
        tense: Target tense. Defaults to the dominant tense of the lines.

    Returns:
        Tuple of (unified lines, tense used).
    """
    target = tense or detect_dominant_tense(lines).dominant
    return [convert_to_tense(line, target) for line in lines], target
