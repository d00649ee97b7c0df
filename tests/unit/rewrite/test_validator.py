"""Tests for the fabrication validator."""

import pytest

from src.rewrite.evidence import build_evidence_ledger
from src.rewrite.models import (
    EvidenceMapItem,
    ExtractedResumeData,
    ValidationCode,
    ValidationItem,
    ValidationResult,
)
from src.rewrite.validation.validator import (
    FabricationValidator,
    extract_companies,
    extract_tech_terms,
    format_validation_result,
    get_critical_errors,
    get_warnings,
    has_fabrication_errors,
    validate_evidence_map,
    validate_rewrite,
)


def _map(**spans: list[str]) -> list[EvidenceMapItem]:
    return [EvidenceMapItem(improved_span=span, evidence_ids=ids) for span, ids in spans.items()]


def _codes(result: ValidationResult) -> list[ValidationCode]:
    return [item.code for item in result.items]


@pytest.fixture
def validator(config, lexicon):
    return FabricationValidator(config=config, lexicon=lexicon)


class TestNumberChecks:
    """Numbers must come from the original or the ledger."""

    def test_changed_percentage_is_fabrication(self, validator):
        original = "Reduced costs by 40%"
        ledger = build_evidence_ledger(original)

        result = validator.validate(
            original,
            "Reduced costs by 50%",
            ledger,
            [EvidenceMapItem(improved_span="50%", evidence_ids=["E1"])],
        )

        assert not result.passed
        critical = get_critical_errors(result)
        assert [item.code for item in critical] == [ValidationCode.NEW_NUMBER_ADDED]
        assert critical[0].term == "50%"

    def test_reworded_metric_with_mapping_passes(self, validator):
        original = "Reduced costs by 40%"
        ledger = build_evidence_ledger(original)

        result = validator.validate(
            original,
            "Achieved 40% reduction in costs",
            ledger,
            [EvidenceMapItem(improved_span="40%", evidence_ids=["E1"])],
        )

        assert result.passed
        assert get_critical_errors(result) == []

    def test_equivalent_number_forms_pass(self, validator):
        original = "Saved $5,000 in annual vendor costs"
        ledger = build_evidence_ledger(original)

        result = validator.validate(
            original,
            "Saved $5K in annual vendor costs",
            ledger,
            [EvidenceMapItem(improved_span="$5K", evidence_ids=["E1"])],
        )

        assert ValidationCode.NEW_NUMBER_ADDED not in _codes(result)
        assert result.passed

    def test_number_from_sibling_evidence(self, validator):
        original = "Led platform engineers"
        ledger = build_evidence_ledger(original, sibling_lines=["Hired 5 engineers"])

        result = validator.validate(
            original,
            "Led 5 platform engineers",
            ledger,
            [EvidenceMapItem(improved_span="Led 5 platform engineers", evidence_ids=["E1", "E2"])],
        )

        assert result.passed


class TestToolAndCompanyChecks:
    """Tools and companies must be backed by evidence."""

    def test_new_tool_is_fabrication(self, validator):
        original = "Deployed services with Docker"
        ledger = build_evidence_ledger(original)

        result = validator.validate(
            original,
            "Deployed services with Docker and Kubernetes",
            ledger,
            [EvidenceMapItem(improved_span="Docker and Kubernetes", evidence_ids=["E1"])],
        )

        assert not result.passed
        new_tools = [i.term for i in result.items if i.code == ValidationCode.NEW_TOOL_ADDED]
        assert new_tools == ["kubernetes"]
        assert has_fabrication_errors(result)

    def test_new_number_and_tool_together(self, validator):
        original = "Deployed services with Docker"
        ledger = build_evidence_ledger(original)
        candidate = "Deployed 12 services with Docker and Kubernetes"

        result = validator.validate(
            original,
            candidate,
            ledger,
            [EvidenceMapItem(improved_span=candidate, evidence_ids=["E1"])],
        )

        assert not result.passed
        critical = {item.code: item.term for item in get_critical_errors(result)}
        assert critical[ValidationCode.NEW_NUMBER_ADDED] == "12"
        assert critical[ValidationCode.NEW_TOOL_ADDED] == "kubernetes"

    def test_tool_from_resume_evidence_passes(self, validator):
        original = "Deployed services to production"
        ledger = build_evidence_ledger(
            original, extracted=ExtractedResumeData(tools=["Docker"])
        )

        result = validator.validate(
            original,
            "Deployed containerized services using Docker",
            ledger,
            [EvidenceMapItem(improved_span="Docker", evidence_ids=["E_tools"])],
        )

        assert result.passed, format_validation_result(result)

    def test_new_company_is_fabrication(self, validator):
        original = "Built billing integrations"
        ledger = build_evidence_ledger(original)

        result = validator.validate(
            original,
            "Built billing integrations at Stripe",
            ledger,
            [EvidenceMapItem(improved_span="Built billing integrations", evidence_ids=["E1"])],
        )

        assert ValidationCode.NEW_COMPANY_ADDED in _codes(result)
        assert not result.passed

    def test_new_scale_claim_is_fabrication(self, validator):
        original = "Built internal reporting platform"
        ledger = build_evidence_ledger(original)

        result = validator.validate(
            original,
            "Built enterprise-grade internal reporting platform",
            ledger,
            [],
        )

        assert ValidationCode.NEW_IMPLIED_METRIC in _codes(result)


class TestEvidenceMapChecks:
    """The generator's evidence map is checked for integrity."""

    def test_unknown_evidence_id(self, config, lexicon):
        ledger = build_evidence_ledger("Led team")
        items = validate_evidence_map(
            "Led team", _map(**{"Led team": ["E5"]}), ledger, config, lexicon
        )
        assert [i.code for i in items] == [
            ValidationCode.INVALID_EVIDENCE_ID,
            ValidationCode.WEAK_EVIDENCE_MATCH,
        ]
        assert items[0].severity == "critical"

    def test_span_not_in_text(self, config, lexicon):
        ledger = build_evidence_ledger("Led team")
        items = validate_evidence_map(
            "Led the team", _map(**{"Led team": ["E1"]}), ledger, config, lexicon
        )
        assert ValidationCode.SPAN_NOT_FOUND in [i.code for i in items]

    def test_unmapped_tool_and_number(self, config, lexicon):
        original = "Deployed 3 services with Docker"
        ledger = build_evidence_ledger(original)
        items = validate_evidence_map(
            "Deployed 3 services with Docker", [], ledger, config, lexicon
        )

        codes = [i.code for i in items]
        assert ValidationCode.UNSUPPORTED_TOOL_CLAIM in codes
        assert ValidationCode.UNSUPPORTED_METRIC_CLAIM in codes

    def test_term_inside_span_counts_as_mapped(self, config, lexicon):
        """A term inside a mapped span counts as mapped."""
        ledger = build_evidence_ledger("Cut costs 40%")
        items = validate_evidence_map(
            "Cut costs 40%", _map(**{"costs 40%": ["E1"]}), ledger, config, lexicon
        )
        assert items == []

    def test_weak_evidence_is_a_warning(self, validator):
        original = "Managed vendor contracts"
        ledger = build_evidence_ledger(original)

        result = validator.validate(
            original,
            "Managed vendor contracts, negotiated renewals",
            ledger,
            [EvidenceMapItem(improved_span="negotiated renewals", evidence_ids=["E1"])],
        )

        assert result.passed
        assert [i.code for i in get_warnings(result)] == [ValidationCode.WEAK_EVIDENCE_MATCH]

    def test_span_citing_several_items_uses_their_union(self, validator):
        original = "Built internal tooling pipelines for release automation"
        ledger = build_evidence_ledger(
            original, extracted=ExtractedResumeData(skills=["Python"], tools=["Docker"])
        )

        result = validator.validate(
            original,
            "Built internal Python Docker tooling pipelines for release automation",
            ledger,
            [
                EvidenceMapItem(
                    improved_span="Python Docker tooling pipelines",
                    evidence_ids=["E_skills", "E_tools"],
                )
            ],
        )

        assert result.passed, format_validation_result(result)
        assert ValidationCode.WEAK_EVIDENCE_MATCH not in _codes(result)
        assert get_warnings(result) == []


class TestLengthAndMeaning:
    """Length and meaning checks never block acceptance."""

    def test_length_explosion_warning(self, validator):
        original = "Led team meetings"
        candidate = "Led weekly team meetings covering planning, retrospectives and reviews"
        ledger = build_evidence_ledger(original)

        result = validator.validate(original, candidate, ledger, [])

        assert ValidationCode.LENGTH_EXPLOSION in [i.code for i in get_warnings(result)]
        assert result.passed

    def test_identical_text_is_info(self, validator):
        ledger = build_evidence_ledger("Led team meetings")
        result = validator.validate("Led team meetings", "Led team meetings", ledger, [])

        assert result.passed
        assert result.items == (
            ValidationItem(
                code=ValidationCode.NO_CHANGES,
                severity="info",
                message="Rewrite is identical to the original",
            ),
        )

    def test_meaning_shift_warning(self, validator):
        original = "Organized quarterly sales workshops"
        ledger = build_evidence_ledger(original)

        result = validator.validate(original, "Refactored payment microservice", ledger, [])

        assert ValidationCode.MEANING_SHIFT in [i.code for i in get_warnings(result)]

    def test_meaning_check_can_be_disabled(self, config, lexicon):
        config = config.model_copy(update={"meaning_shift_check": False})
        original = "Organized quarterly sales workshops"
        ledger = build_evidence_ledger(original)

        result = validate_rewrite(
            original, "Refactored payment handling", ledger, [], config, lexicon
        )

        assert ValidationCode.MEANING_SHIFT not in _codes(result)


class TestPurity:
    """Validation is a pure function of its inputs."""

    def test_repeatable(self, validator):
        original = "Deployed services with Docker"
        ledger = build_evidence_ledger(original)
        evidence_map = [EvidenceMapItem(improved_span="Kubernetes", evidence_ids=["E9"])]

        first = validator.validate(original, "Deployed Kubernetes", ledger, evidence_map)
        second = validator.validate(original, "Deployed Kubernetes", ledger, evidence_map)

        assert first == second


class TestExtractors:
    """Test term extraction helpers."""

    def test_extract_tech_terms(self, lexicon):
        assert extract_tech_terms("Built APIs in Node.js, React/Redux and C++", lexicon) == [
            "node.js",
            "nodejs",
            "react",
            "c++",
        ]

    def test_go_is_not_a_tool(self, lexicon):
        assert extract_tech_terms("Helped the team go live on time", lexicon) == []

    def test_hyphenated_parts(self, lexicon):
        assert extract_tech_terms("Ran AWS-based jobs", lexicon) == ["aws"]

    def test_extract_companies(self):
        assert extract_companies("Engineer at Acme Robotics, formerly Globex Inc.") == [
            "Acme Robotics",
            "Globex Inc.",
        ]
        assert extract_companies("Worked at Senior level") == []


class TestFormatting:
    """Test log formatting of results."""

    def test_clean_result(self):
        assert format_validation_result(ValidationResult(passed=True)) == (
            "Validation passed with no issues"
        )

    def test_failed_result(self):
        result = ValidationResult.from_items(
            [
                ValidationItem(
                    code=ValidationCode.NEW_TOOL_ADDED,
                    severity="critical",
                    message="Added tool not in evidence: kubernetes",
                )
            ]
        )
        assert format_validation_result(result) == (
            "Validation FAILED\n"
            "  [CRITICAL] NEW_TOOL_ADDED: Added tool not in evidence: kubernetes"
        )
