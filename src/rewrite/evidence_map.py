"""Evidence map utilities for the Rewrite module.

An evidence map is the generator's own claim about which evidence backs
which span of its output. It is an untrusted hint: these helpers check its
structural integrity, while fabrication itself is detected independently
by the validator.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from src.rewrite.models import EvidenceLedger, EvidenceMapItem


@dataclass(frozen=True)
class EvidenceCoverage:
    """How much of the ledger an evidence map cites."""

    total_items: int
    used_items: int
    coverage_percentage: float
    unused_ids: list[str]


def referenced_evidence_ids(evidence_map: list[EvidenceMapItem]) -> set[str]:
    """All evidence ids cited by the map."""
    return {eid for item in evidence_map for eid in item.evidence_ids}


def is_span_mapped(evidence_map: list[EvidenceMapItem], span: str) -> bool:
    """Check whether any mapped span contains ``span`` (case-insensitive)."""
    span_lower = span.lower()
    return any(span_lower in item.improved_span.lower() for item in evidence_map)


def find_evidence_ids_for_span(
    evidence_map: list[EvidenceMapItem], span: str
) -> list[str]:
    """Evidence ids cited by every mapped span containing ``span``."""
    span_lower = span.lower()
    ids: list[str] = []
    for item in evidence_map:
        if span_lower in item.improved_span.lower():
            ids.extend(eid for eid in item.evidence_ids if eid not in ids)
    return ids


def validate_evidence_ids(
    evidence_map: list[EvidenceMapItem], ledger: EvidenceLedger
) -> list[str]:
    """Return cited ids missing from the ledger, in citation order."""
    valid_ids = ledger.ids
    return [
        eid
        for item in evidence_map
        for eid in item.evidence_ids
        if eid not in valid_ids
    ]


def validate_spans_exist(
    evidence_map: list[EvidenceMapItem], improved_text: str
) -> list[str]:
    """Return mapped spans that do not literally occur in the text."""
    return [
        item.improved_span
        for item in evidence_map
        if item.improved_span not in improved_text
    ]


def merge_evidence_maps(*maps: list[EvidenceMapItem]) -> list[EvidenceMapItem]:
    """Merge maps, unioning evidence ids for identical spans."""
    merged: dict[str, list[str]] = {}
    for evidence_map in maps:
        for item in evidence_map:
            ids = merged.setdefault(item.improved_span, [])
            ids.extend(eid for eid in item.evidence_ids if eid not in ids)
    return [
        EvidenceMapItem(improved_span=span, evidence_ids=ids)
        for span, ids in merged.items()
    ]


def evidence_map_coverage(
    evidence_map: list[EvidenceMapItem], ledger: EvidenceLedger
) -> EvidenceCoverage:
    """Compute how much of the ledger the map cites."""
    all_ids = [item.id for item in ledger.items]
    used = referenced_evidence_ids(evidence_map) & set(all_ids)
    return EvidenceCoverage(
        total_items=len(all_ids),
        used_items=len(used),
        coverage_percentage=(len(used) / len(all_ids) * 100) if all_ids else 0.0,
        unused_ids=[eid for eid in all_ids if eid not in used],
    )


def format_evidence_map(
    evidence_map: list[EvidenceMapItem], ledger: EvidenceLedger | None = None
) -> str:
    """Format a map for logs, optionally with evidence text previews."""
    lines = []
    for item in evidence_map:
        line = f'"{item.improved_span}" -> [{", ".join(item.evidence_ids)}]'
        if ledger is not None:
            previews = [
                f"({evidence.text[:30]}...)"
                for evidence in ledger.items
                if evidence.id in item.evidence_ids
            ]
            if previews:
                line += " " + " ".join(previews)
        lines.append(line)
    return "\n".join(lines)


def parse_evidence_map(raw: Any) -> list[EvidenceMapItem]:
    """Leniently parse an evidence map from generator output.

    Accepts a list of mappings with ``improved_span``/``evidence_ids`` (or
    the shorter ``span``/``evidence`` keys). A single id given as a string is
    wrapped in a list. Entries without a usable span are dropped.
    """
    if not isinstance(raw, list):
        return []

    parsed: list[EvidenceMapItem] = []
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        span = entry.get("improved_span", entry.get("span"))
        ids = entry.get("evidence_ids", entry.get("evidence", []))
        if isinstance(ids, str):
            ids = [ids]
        if not isinstance(ids, list):
            ids = []
        try:
            parsed.append(
                EvidenceMapItem(
                    improved_span=span,
                    evidence_ids=[str(eid) for eid in ids if eid],
                )
            )
        except ValidationError:
            continue
    return parsed
