"""Tests for metric, number and scale-claim detection."""

from src.rewrite.planning.metrics import (
    detect_implied_metrics,
    detect_metrics,
    detect_scale_claims,
    extract_number_tokens,
    extract_numbers,
    extract_numeric_value,
    find_new_numbers,
    find_new_scale_claims,
    has_metric,
    has_quantifiable_content,
    normalize_number,
)


class TestNumericValues:
    """Test canonical number values."""

    def test_extract_numeric_value(self):
        assert extract_numeric_value("$5K") == 5000.0
        assert extract_numeric_value("$5,000") == 5000.0
        assert extract_numeric_value("40%") == 40.0
        assert extract_numeric_value("40 percent") == 40.0
        assert extract_numeric_value("2.5 million") == 2_500_000.0
        assert extract_numeric_value("3x") == 3.0
        assert extract_numeric_value("none") is None

    def test_equivalent_forms_normalize_equally(self):
        assert normalize_number("$5K") == normalize_number("$5,000") == "5000"
        assert normalize_number("1.5M") == "1500000"
        assert normalize_number("40%") == "40"


class TestExtractNumbers:
    """Test numeric token extraction."""

    def test_extracts_tokens_without_overlap(self, lexicon):
        numbers = extract_numbers("Saved $5K for 10+ clients and grew revenue 40%", lexicon)
        assert numbers == {"$5K", "10+", "40%"}

    def test_token_types(self, lexicon):
        tokens = extract_number_tokens("Cut costs 40%, saved $2M, shipped 3x faster", lexicon)
        assert [(t.text, t.type) for t in tokens] == [
            ("40%", "percentage"),
            ("$2M", "dollar_amount"),
            ("3x", "multiplier"),
        ]

    def test_no_numbers(self, lexicon):
        assert extract_numbers("Led the platform team", lexicon) == set()


class TestDetectMetrics:
    """Test explicit and implied metric detection."""

    def test_has_metric(self, lexicon):
        assert has_metric("Led team of 5", lexicon)
        assert not has_metric("Led the team", lexicon)

    def test_descriptive_patterns_first(self, lexicon):
        metrics = detect_metrics("Onboarded 300 users in 2 weeks", lexicon)
        assert [(m.text, m.type) for m in metrics] == [
            ("300 users", "count"),
            ("2 weeks", "time"),
        ]

    def test_implied_metrics(self, lexicon):
        assert [m.text for m in detect_implied_metrics("Resolved numerous tickets", lexicon)] == [
            "numerous"
        ]
        assert has_quantifiable_content("Resolved numerous tickets", lexicon)
        assert not has_quantifiable_content("Resolved tickets", lexicon)

    def test_scale_claims(self, lexicon):
        claims = detect_scale_claims("Built massive global platform", lexicon)
        assert [c.text for c in claims] == ["massive", "global"]


class TestFindNewFacts:
    """Test comparison of rewritten text against sources."""

    def test_changed_number_is_new(self, lexicon):
        assert find_new_numbers("Cut costs by 50%", "Cut costs by 40%", [], lexicon) == ["50%"]

    def test_same_value_different_format_is_not_new(self, lexicon):
        assert find_new_numbers("Saved $5K yearly", "Saved $5,000 yearly", [], lexicon) == []
        assert find_new_numbers("Cut costs 40%", "Cut costs 40 percent", [], lexicon) == []

    def test_number_from_evidence_is_known(self, lexicon):
        assert find_new_numbers("Led 5 engineers", "Led engineers", ["Team of 5"], lexicon) == []

    def test_word_numbers_are_not_normalized(self, lexicon):
        """Spelled-out numbers do not count as evidence for digits."""
        assert find_new_numbers("Led 5 engineers", "Led five engineers", [], lexicon) == ["5"]

    def test_duplicates_reported_once(self, lexicon):
        assert find_new_numbers("7 teams, 7 sites", "Teams and sites", [], lexicon) == ["7"]

    def test_new_scale_claim(self, lexicon):
        assert find_new_scale_claims("Built massive platform", "Built platform", [], lexicon) == [
            "massive"
        ]
        assert (
            find_new_scale_claims(
                "Built global platform", "Built platform", ["Served global customers"], lexicon
            )
            == []
        )
