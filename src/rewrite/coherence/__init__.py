"""Section coherence: tense unification, formatting and section processing."""

from src.rewrite.coherence.formatting import (
    apply_full_formatting,
    capitalize_first,
    check_length,
    make_ats_safe,
    normalize_whitespace,
    remove_trailing_punctuation,
    standardize_numbers,
    unify_formatting,
)
from src.rewrite.coherence.section import (
    SectionProcessor,
    aggregate_confidence,
    find_repeated_starts,
    has_varied_starts,
)
from src.rewrite.coherence.tense import (
    TenseAnalysis,
    convert_to_tense,
    detect_dominant_tense,
    detect_line_tense,
    get_inconsistent_lines,
    has_consistent_tense,
    unify_tense,
)

__all__ = [
    # Section
    "SectionProcessor",
    "aggregate_confidence",
    "find_repeated_starts",
    "has_varied_starts",
    # Tense
    "TenseAnalysis",
    "detect_line_tense",
    "detect_dominant_tense",
    "convert_to_tense",
    "unify_tense",
    "has_consistent_tense",
    "get_inconsistent_lines",
    # Formatting
    "normalize_whitespace",
    "make_ats_safe",
    "capitalize_first",
    "standardize_numbers",
    "remove_trailing_punctuation",
    "apply_full_formatting",
    "unify_formatting",
    "check_length",
]
