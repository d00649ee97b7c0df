"""Tests for evidence map utilities."""

from src.rewrite.evidence import build_evidence_ledger
from src.rewrite.evidence_map import (
    evidence_map_coverage,
    find_evidence_ids_for_span,
    format_evidence_map,
    is_span_mapped,
    merge_evidence_maps,
    parse_evidence_map,
    referenced_evidence_ids,
    validate_evidence_ids,
    validate_spans_exist,
)
from src.rewrite.models import EvidenceMapItem, ExtractedResumeData


def _item(span: str, *ids: str) -> EvidenceMapItem:
    return EvidenceMapItem(improved_span=span, evidence_ids=list(ids))


def _ledger():
    return build_evidence_ledger(
        "Reduced costs by 40%",
        sibling_lines=["Led team of 5"],
        extracted=ExtractedResumeData(tools=["Docker"]),
    )


class TestEvidenceMapIntegrity:
    """Test structural checks on generator-supplied maps."""

    def test_unknown_ids_reported_in_order(self):
        """Ids missing from the ledger should be returned."""
        evidence_map = [_item("Cut costs", "E1", "E7"), _item("Docker", "E_cloud")]
        assert validate_evidence_ids(evidence_map, _ledger()) == ["E7", "E_cloud"]

    def test_spans_must_occur_literally(self):
        """Spans are compared case-sensitively against the improved text."""
        evidence_map = [_item("Cut costs", "E1"), _item("by 40%", "E1")]
        assert validate_spans_exist(evidence_map, "cut costs by 40%") == ["Cut costs"]

    def test_referenced_ids(self):
        evidence_map = [_item("a", "E1", "E2"), _item("b", "E2")]
        assert referenced_evidence_ids(evidence_map) == {"E1", "E2"}


class TestSpanLookup:
    """Test span lookups."""

    def test_is_span_mapped_case_insensitive(self):
        evidence_map = [_item("Deployed with Docker", "E_tools")]
        assert is_span_mapped(evidence_map, "docker")
        assert not is_span_mapped(evidence_map, "kubernetes")

    def test_find_ids_for_span_deduplicates(self):
        evidence_map = [_item("40% cost cut", "E1"), _item("cut 40%", "E1", "E2")]
        assert find_evidence_ids_for_span(evidence_map, "40%") == ["E1", "E2"]


class TestMergeAndCoverage:
    """Test merging and coverage statistics."""

    def test_merge_unions_ids_for_same_span(self):
        merged = merge_evidence_maps([_item("Docker", "E1")], [_item("Docker", "E_tools")])
        assert merged == [_item("Docker", "E1", "E_tools")]

    def test_coverage(self):
        coverage = evidence_map_coverage([_item("costs", "E1", "E9")], _ledger())

        assert coverage.total_items == 3
        assert coverage.used_items == 1
        assert coverage.unused_ids == ["E2", "E_tools"]
        assert round(coverage.coverage_percentage, 1) == 33.3

    def test_format_includes_previews(self):
        text = format_evidence_map([_item("Cut costs", "E1")], _ledger())
        assert text.startswith('"Cut costs" -> [E1]')
        assert "(Reduced costs by 40%...)" in text


class TestParseEvidenceMap:
    """Test lenient parsing of generator output."""

    def test_parses_standard_keys(self):
        parsed = parse_evidence_map([{"improved_span": "Docker", "evidence_ids": ["E_tools"]}])
        assert parsed == [_item("Docker", "E_tools")]

    def test_accepts_short_keys_and_string_id(self):
        parsed = parse_evidence_map([{"span": "40%", "evidence": "E1"}])
        assert parsed == [_item("40%", "E1")]

    def test_drops_unusable_entries(self):
        parsed = parse_evidence_map(
            [
                "not a dict",
                {"improved_span": "", "evidence_ids": ["E1"]},
                {"evidence_ids": ["E1"]},
                {"improved_span": "kept", "evidence_ids": "E1"},
            ]
        )
        assert parsed == [_item("kept", "E1")]

    def test_non_list_returns_empty(self):
        assert parse_evidence_map(None) == []
        assert parse_evidence_map({"improved_span": "x"}) == []
