"""Fabrication validation for rewrites.

Numbers, tools, companies and scale claims are re-extracted from the
candidate and compared with the original and the evidence ledger.
"""

from src.rewrite.validation.overlap import (
    OverlapAnalysis,
    analyze_overlap,
    calculate_overlap_ratio,
    is_fuzzy_match,
    is_substring_match,
    verify_semantic_overlap,
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

__all__ = [
    # Validator
    "FabricationValidator",
    "validate_rewrite",
    "validate_evidence_map",
    "extract_tech_terms",
    "extract_companies",
    "get_critical_errors",
    "get_warnings",
    "has_fabrication_errors",
    "format_validation_result",
    # Overlap
    "OverlapAnalysis",
    "analyze_overlap",
    "calculate_overlap_ratio",
    "verify_semantic_overlap",
    "is_substring_match",
    "is_fuzzy_match",
]
