"""Evidence ledger construction for the Rewrite module.

The ledger is the complete set of facts a rewrite may use. The line under
edit is always ``E1``; sibling lines from the same section follow as
``E2..En``; resume-wide skills, tools and titles are added as single
aggregate items when enrichment is allowed. A ledger is built once per
request and never rebuilt between retries.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable

from src.rewrite.models import (
    BulletContext,
    EvidenceItem,
    EvidenceLedger,
    EvidenceScope,
    ExtractedResumeData,
)

logger = logging.getLogger(__name__)

EVIDENCE_ID_PREFIX = "E"
SKILLS_EVIDENCE_ID = "E_skills"
TOOLS_EVIDENCE_ID = "E_tools"
TITLES_EVIDENCE_ID = "E_titles"

# Section types where resume-wide facts may be used without further checks.
OPEN_ENRICHMENT_SECTIONS = frozenset({"summary", "skills", "headline"})

TERM_STOP_WORDS = frozenset(
    {
        "the", "and", "for", "was", "were", "with", "that", "this", "from",
        "have", "has", "had", "but", "not", "are", "been", "can", "will",
        "our", "their", "which", "into", "also", "than", "them", "its",
        "over", "such", "more", "other", "some", "about",
    }
)

_NON_WORD = re.compile(r"[^\w\s]")


def normalize_terms(text: str) -> tuple[str, ...]:
    """Extract lowercase keywords from text.

    Punctuation becomes whitespace; words of two characters or fewer and
    common stop-words are dropped.
    """
    cleaned = _NON_WORD.sub(" ", text.lower())
    return tuple(
        word
        for word in cleaned.split()
        if len(word) > 2 and word not in TERM_STOP_WORDS
    )


def evidence_id(index: int) -> str:
    """Return the evidence id for the 1-based line index."""
    return f"{EVIDENCE_ID_PREFIX}{index}"


def _line_item(text: str, item_id: str, scope: EvidenceScope) -> EvidenceItem:
    return EvidenceItem(
        id=item_id,
        type="line",
        scope=scope,
        source="line",
        text=text,
        normalized_terms=normalize_terms(text),
    )


def _sibling_item(text: str, item_id: str) -> EvidenceItem:
    return EvidenceItem(
        id=item_id,
        type="sibling_lines",
        scope="section",
        source="section",
        text=text,
        normalized_terms=normalize_terms(text),
    )


def _aggregate_item(item_id: str, kind: str, values: Iterable[str]) -> EvidenceItem | None:
    cleaned = [v.strip() for v in values if v and v.strip()]
    if not cleaned:
        return None
    return EvidenceItem(
        id=item_id,
        type=kind,
        scope="resume",
        source="resume",
        text=", ".join(cleaned),
        normalized_terms=tuple(v.lower() for v in cleaned),
    )


def _resume_items(
    extracted: ExtractedResumeData | None, include_titles: bool
) -> list[EvidenceItem]:
    if extracted is None:
        return []
    candidates = [
        _aggregate_item(SKILLS_EVIDENCE_ID, "skills", extracted.skills),
        _aggregate_item(TOOLS_EVIDENCE_ID, "tools", extracted.tools),
    ]
    if include_titles:
        candidates.append(_aggregate_item(TITLES_EVIDENCE_ID, "titles", extracted.titles))
    return [item for item in candidates if item is not None]


def build_evidence_ledger(
    line: str,
    sibling_lines: list[str] | None = None,
    scope: EvidenceScope = "section",
    allow_resume_enrichment: bool = True,
    extracted: ExtractedResumeData | None = None,
    precomputed_evidence: list[EvidenceItem] | None = None,
) -> EvidenceLedger:
    """Build the evidence ledger for a single-line rewrite.

    Args:
        line: The line under edit; always becomes ``E1``.
        sibling_lines: Other lines of the same section, added when the scope
            is wider than ``line_only``.
        scope: Evidence scope for the request.
        allow_resume_enrichment: Whether resume-wide skills/tools may be used.
        extracted: Structured resume facts from upstream parsing.
        precomputed_evidence: Caller-supplied evidence, used verbatim when
            non-empty.

    Returns:
        The immutable EvidenceLedger.
    """
    if precomputed_evidence:
        logger.debug(f"Using {len(precomputed_evidence)} precomputed evidence items")
        return EvidenceLedger(
            items=tuple(precomputed_evidence),
            scope=scope,
            allow_resume_enrichment=allow_resume_enrichment,
        )

    items = [_line_item(line, evidence_id(1), scope)]

    if scope != "line_only" and sibling_lines:
        seen = {line.strip()}
        for sibling in sibling_lines:
            text = sibling.strip()
            if not text or text in seen:
                continue
            seen.add(text)
            items.append(_sibling_item(text, evidence_id(len(items) + 1)))

    if allow_resume_enrichment and scope in ("section", "resume"):
        items.extend(_resume_items(extracted, include_titles=scope == "resume"))

    return EvidenceLedger(
        items=tuple(items),
        scope=scope,
        allow_resume_enrichment=allow_resume_enrichment,
    )


def build_section_ledger(
    lines: list[str],
    allow_resume_enrichment: bool = True,
    extracted: ExtractedResumeData | None = None,
    precomputed_evidence: list[EvidenceItem] | None = None,
) -> EvidenceLedger:
    """Build one ledger covering every line of a section.

    Each distinct line becomes ``E{n}`` in input order; resume-wide facts
    (including titles) follow when enrichment is allowed.
    """
    if precomputed_evidence:
        return EvidenceLedger(
            items=tuple(precomputed_evidence),
            scope="section",
            allow_resume_enrichment=allow_resume_enrichment,
        )

    items: list[EvidenceItem] = []
    seen: set[str] = set()
    for line in lines:
        text = line.strip()
        if not text or text in seen:
            continue
        seen.add(text)
        items.append(_sibling_item(text, evidence_id(len(items) + 1)))

    if allow_resume_enrichment:
        items.extend(_resume_items(extracted, include_titles=True))

    return EvidenceLedger(
        items=tuple(items),
        scope="section",
        allow_resume_enrichment=allow_resume_enrichment,
    )


def build_summary_ledger(
    summary: str,
    extracted: ExtractedResumeData | None = None,
    allow_resume_enrichment: bool = True,
    precomputed_evidence: list[EvidenceItem] | None = None,
) -> EvidenceLedger:
    """Build the ledger for a summary rewrite.

    Summaries speak for the whole resume, so skills, tools and titles are
    all available at resume scope.
    """
    if precomputed_evidence:
        return EvidenceLedger(
            items=tuple(precomputed_evidence),
            scope="resume",
            allow_resume_enrichment=allow_resume_enrichment,
        )

    items = [_line_item(summary, evidence_id(1), "resume")]
    if allow_resume_enrichment:
        items.extend(_resume_items(extracted, include_titles=True))

    return EvidenceLedger(
        items=tuple(items),
        scope="resume",
        allow_resume_enrichment=allow_resume_enrichment,
    )


def allow_resume_enrichment_in_bullet(
    context: BulletContext | None,
    term: str,
    section_lines: list[str] | None = None,
) -> tuple[bool, str]:
    """Decide whether a resume-wide term may be used inside one line.

    Args:
        context: Where the line sits in the resume.
        term: Skill or tool being considered.
        section_lines: Other lines from the same role or section.

    Returns:
        Tuple of (allowed, reason). An experience line only receives a term
        already used elsewhere in the same role; otherwise the reason is
        ``needs_user_confirmation`` so the caller can ask the user.
    """
    if context is None:
        return False, "no_context_provided"

    if context.section_type in OPEN_ENRICHMENT_SECTIONS:
        return True, "summary_or_skills_section"

    if context.section_type == "experience":
        term_lower = term.lower()
        for line in section_lines or []:
            if term_lower in line.lower():
                return True, "tool_used_in_same_role"
        return False, "needs_user_confirmation"

    if context.section_type == "projects":
        return True, "projects_section"

    return False, "unknown_section_type"


# ==================== Ledger queries ====================


def get_evidence_by_id(ledger: EvidenceLedger, item_id: str) -> EvidenceItem | None:
    """Return the item with the given id, if present."""
    for item in ledger.items:
        if item.id == item_id:
            return item
    return None


def get_evidence_by_type(ledger: EvidenceLedger, kind: str) -> list[EvidenceItem]:
    """Return all items of one evidence type."""
    return [item for item in ledger.items if item.type == kind]


def get_evidence_by_source(ledger: EvidenceLedger, source: str) -> list[EvidenceItem]:
    """Return all items from one source."""
    return [item for item in ledger.items if item.source == source]


def all_normalized_terms(ledger: EvidenceLedger) -> set[str]:
    """Union of normalized terms across the ledger."""
    terms: set[str] = set()
    for item in ledger.items:
        terms.update(item.normalized_terms)
    return terms


def term_exists_in_evidence(ledger: EvidenceLedger, term: str) -> bool:
    """Check whether a term is backed by any evidence item.

    Matches a normalized term exactly or the raw text as a case-insensitive
    substring.
    """
    term_lower = term.strip().lower()
    if not term_lower:
        return False
    if term_lower in all_normalized_terms(ledger):
        return True
    return any(term_lower in item.text.lower() for item in ledger.items)


def find_evidence_for_term(ledger: EvidenceLedger, term: str) -> list[EvidenceItem]:
    """Return every item that backs a term."""
    term_lower = term.strip().lower()
    if not term_lower:
        return []
    return [
        item
        for item in ledger.items
        if term_lower in item.normalized_terms or term_lower in item.text.lower()
    ]
