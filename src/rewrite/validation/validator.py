"""Fabrication validator for the Rewrite module.

Re-derives facts (numbers, tools, companies, scale claims) from the
candidate text and compares them with the original and the ledger. The
generator's evidence map is only cross-checked for integrity; it is never
trusted as proof that a fact is supported.

Validation is a pure function of (original, candidate, ledger, evidence map)
for a given config and lexicon. It only reports and never edits text.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable

from src.rewrite.config import RewriteConfig, get_rewrite_config
from src.rewrite.evidence_map import validate_evidence_ids, validate_spans_exist
from src.rewrite.lexicon import CompiledLexicon, get_lexicon
from src.rewrite.models import (
    EvidenceLedger,
    EvidenceMapItem,
    ValidationCode,
    ValidationItem,
    ValidationResult,
)
from src.rewrite.planning.metrics import (
    extract_number_tokens,
    find_new_numbers,
    find_new_scale_claims,
)
from src.rewrite.validation.overlap import (
    get_stemmed_words,
    is_fuzzy_match,
    is_substring_match,
    verify_semantic_overlap,
)

logger = logging.getLogger(__name__)

COMPANY_PATTERNS = [
    re.compile(r"\bat\s+([A-Z][A-Za-z]+(?:\s+[A-Z][A-Za-z]+)*)"),
    re.compile(r"([A-Z][A-Za-z]+\s+(?:Inc\.?|Corp\.?|LLC|Ltd\.?))"),
]

# Capitalized role words that follow "at" without naming an employer.
COMMON_CAPITALIZED_WORDS = frozenset(
    {
        "Software", "Engineer", "Developer", "Manager", "Lead", "Senior",
        "Product", "Data", "Team", "Project",
    }
)

FABRICATION_CODES = frozenset(
    {
        ValidationCode.NEW_NUMBER_ADDED,
        ValidationCode.NEW_TOOL_ADDED,
        ValidationCode.NEW_COMPANY_ADDED,
        ValidationCode.NEW_IMPLIED_METRIC,
    }
)

_TOKEN_SPLIT = re.compile(r"[\s/,;:()\[\]]+")
_TOKEN_CLEAN = re.compile(r"[^a-z0-9+#.-]")


def _token_variants(token: str) -> list[str]:
    cleaned = _TOKEN_CLEAN.sub("", token.lower()).strip(".-")
    if not cleaned:
        return []
    variants = [cleaned, cleaned.replace(".", "")]
    if "-" in cleaned:
        variants.extend(part for part in cleaned.split("-") if part)
    return variants


def extract_tech_terms(text: str, lexicon: CompiledLexicon | None = None) -> list[str]:
    """Technology terms from the closed lexicon set, in order of appearance."""
    lexicon = lexicon or get_lexicon()
    tools: list[str] = []
    for token in _TOKEN_SPLIT.split(text):
        for variant in _token_variants(token):
            if variant in lexicon.tech_terms and variant not in tools:
                tools.append(variant)
    return tools


def extract_companies(text: str) -> list[str]:
    """Company-like capitalized phrases ("at Acme", "Acme Inc")."""
    companies: list[str] = []
    for pattern in COMPANY_PATTERNS:
        for match in pattern.finditer(text):
            company = match.group(1).strip()
            if company and company not in COMMON_CAPITALIZED_WORDS and company not in companies:
                companies.append(company)
    return companies


def _find_new_terms(candidate_terms: list[str], known_terms: Iterable[str]) -> list[str]:
    known = {t.lower() for t in known_terms}
    return [term for term in candidate_terms if term.lower() not in known]


class FabricationValidator:
    """Validates candidate rewrites against evidence.

    Example:
        validator = FabricationValidator()
        result = validator.validate(original, candidate, ledger, evidence_map)
        if not result.passed:
            ...
    """

    def __init__(
        self,
        config: RewriteConfig | None = None,
        lexicon: CompiledLexicon | None = None,
    ):
        """Initialize the validator.

        Args:
            config: Optional RewriteConfig. Uses global config if not provided.
            lexicon: Optional compiled lexicon. Uses the shared one if not provided.
        """
        self.config = config or get_rewrite_config()
        self.lexicon = lexicon or get_lexicon(self.config.lexicon_dir)

    def validate(
        self,
        original: str,
        candidate: str,
        ledger: EvidenceLedger,
        evidence_map: list[EvidenceMapItem],
    ) -> ValidationResult:
        """Validate a candidate rewrite.

        Args:
            original: The text before rewriting.
            candidate: The generated rewrite.
            ledger: Evidence available for the request.
            evidence_map: The generator's claimed span-to-evidence mapping.

        Returns:
            ValidationResult; ``passed`` is False when any item is critical.
        """
        items: list[ValidationItem] = []
        evidence_texts = ledger.texts

        items.extend(self._check_numbers(original, candidate, evidence_texts))
        items.extend(self._check_tools_and_companies(original, candidate, evidence_texts))
        items.extend(self._check_scale_claims(original, candidate, evidence_texts))
        items.extend(self.validate_evidence_map(candidate, evidence_map, ledger))
        items.extend(self._check_length(original, candidate))
        items.extend(self._check_meaning(original, candidate))

        result = ValidationResult.from_items(items)
        if not result.passed:
            logger.debug(f"Validation failed:\n{format_validation_result(result)}")
        return result

    def _check_numbers(
        self, original: str, candidate: str, evidence_texts: list[str]
    ) -> list[ValidationItem]:
        return [
            ValidationItem(
                code=ValidationCode.NEW_NUMBER_ADDED,
                severity="critical",
                message=f"Added number not in evidence: {number}",
                term=number,
            )
            for number in find_new_numbers(candidate, original, evidence_texts, self.lexicon)
        ]

    def _check_tools_and_companies(
        self, original: str, candidate: str, evidence_texts: list[str]
    ) -> list[ValidationItem]:
        known_tools = set(extract_tech_terms(original, self.lexicon))
        known_companies = set(extract_companies(original))
        for text in evidence_texts:
            known_tools.update(extract_tech_terms(text, self.lexicon))
            known_companies.update(extract_companies(text))

        items = [
            ValidationItem(
                code=ValidationCode.NEW_TOOL_ADDED,
                severity="critical",
                message=f"Added tool not in evidence: {tool}",
                term=tool,
            )
            for tool in _find_new_terms(
                extract_tech_terms(candidate, self.lexicon), known_tools
            )
        ]
        items.extend(
            ValidationItem(
                code=ValidationCode.NEW_COMPANY_ADDED,
                severity="critical",
                message=f"Added company name not in evidence: {company}",
                term=company,
            )
            for company in _find_new_terms(extract_companies(candidate), known_companies)
        )
        return items

    def _check_scale_claims(
        self, original: str, candidate: str, evidence_texts: list[str]
    ) -> list[ValidationItem]:
        return [
            ValidationItem(
                code=ValidationCode.NEW_IMPLIED_METRIC,
                severity="critical",
                message=f"Added scale claim not in evidence: {claim}",
                term=claim,
            )
            for claim in find_new_scale_claims(candidate, original, evidence_texts, self.lexicon)
        ]

    def validate_evidence_map(
        self,
        candidate: str,
        evidence_map: list[EvidenceMapItem],
        ledger: EvidenceLedger,
    ) -> list[ValidationItem]:
        """Check the integrity of the generator's evidence map.

        Every cited id must exist, every span must occur literally in the
        candidate, and every tool and number in the candidate must sit
        inside (or contain) some mapped span.
        """
        items: list[ValidationItem] = []

        for evidence_id in validate_evidence_ids(evidence_map, ledger):
            items.append(
                ValidationItem(
                    code=ValidationCode.INVALID_EVIDENCE_ID,
                    severity="critical",
                    message=f"Evidence ID '{evidence_id}' does not exist in ledger",
                    term=evidence_id,
                )
            )

        for span in validate_spans_exist(evidence_map, candidate):
            items.append(
                ValidationItem(
                    code=ValidationCode.SPAN_NOT_FOUND,
                    severity="critical",
                    message=f"Span '{span}' not found in improved text",
                    term=span,
                )
            )

        mapped_spans = [item.improved_span.lower() for item in evidence_map]

        def is_mapped(term: str) -> bool:
            term_lower = term.lower()
            return any(term_lower in span or span in term_lower for span in mapped_spans)

        for tool in extract_tech_terms(candidate, self.lexicon):
            if not is_mapped(tool):
                items.append(
                    ValidationItem(
                        code=ValidationCode.UNSUPPORTED_TOOL_CLAIM,
                        severity="critical",
                        message=f"Tool '{tool}' has no evidence mapping",
                        term=tool,
                    )
                )

        seen_numbers: set[str] = set()
        for token in extract_number_tokens(candidate, self.lexicon):
            if token.text in seen_numbers:
                continue
            seen_numbers.add(token.text)
            if not is_mapped(token.text):
                items.append(
                    ValidationItem(
                        code=ValidationCode.UNSUPPORTED_METRIC_CLAIM,
                        severity="critical",
                        message=f"Number '{token.text}' has no evidence mapping",
                        term=token.text,
                    )
                )

        threshold = self.config.evidence_overlap_threshold
        for item in evidence_map:
            cited = [e.text for e in ledger.items if e.id in item.evidence_ids]
            if verify_semantic_overlap(item.improved_span, cited, threshold):
                continue
            if is_substring_match(item.improved_span, cited) or (
                cited and is_fuzzy_match(item.improved_span, cited)
            ):
                continue
            items.append(
                ValidationItem(
                    code=ValidationCode.WEAK_EVIDENCE_MATCH,
                    severity="warning",
                    message=f"Span '{item.improved_span}' weakly supported by evidence",
                    term=item.improved_span,
                )
            )

        return items

    def _check_length(self, original: str, candidate: str) -> list[ValidationItem]:
        limit = len(original) * self.config.max_length_multiplier
        if len(candidate) > limit:
            return [
                ValidationItem(
                    code=ValidationCode.LENGTH_EXPLOSION,
                    severity="warning",
                    message=(
                        f"Rewrite is {len(candidate)} characters, more than "
                        f"{self.config.max_length_multiplier:g}x the original {len(original)}"
                    ),
                )
            ]
        return []

    def _check_meaning(self, original: str, candidate: str) -> list[ValidationItem]:
        if candidate.strip() == original.strip():
            return [
                ValidationItem(
                    code=ValidationCode.NO_CHANGES,
                    severity="info",
                    message="Rewrite is identical to the original",
                )
            ]

        if not self.config.meaning_shift_check:
            return []

        original_stems = get_stemmed_words(original)
        candidate_stems = get_stemmed_words(candidate)
        if not original_stems or not candidate_stems:
            return []
        similarity = len(original_stems & candidate_stems) / min(
            len(original_stems), len(candidate_stems)
        )
        if similarity < self.config.semantic_similarity_min / 2:
            return [
                ValidationItem(
                    code=ValidationCode.MEANING_SHIFT,
                    severity="warning",
                    message=(
                        f"Rewrite shares little vocabulary with the original "
                        f"(similarity {similarity:.2f})"
                    ),
                )
            ]
        return []


def validate_rewrite(
    original: str,
    candidate: str,
    ledger: EvidenceLedger,
    evidence_map: list[EvidenceMapItem],
    config: RewriteConfig | None = None,
    lexicon: CompiledLexicon | None = None,
) -> ValidationResult:
    """Validate a candidate rewrite with a one-off validator."""
    return FabricationValidator(config, lexicon).validate(
        original, candidate, ledger, evidence_map
    )


def validate_evidence_map(
    candidate: str,
    evidence_map: list[EvidenceMapItem],
    ledger: EvidenceLedger,
    config: RewriteConfig | None = None,
    lexicon: CompiledLexicon | None = None,
) -> list[ValidationItem]:
    """Check evidence map integrity with a one-off validator."""
    return FabricationValidator(config, lexicon).validate_evidence_map(
        candidate, evidence_map, ledger
    )


def get_critical_errors(result: ValidationResult) -> list[ValidationItem]:
    """Critical items only."""
    return [item for item in result.items if item.severity == "critical"]


def get_warnings(result: ValidationResult) -> list[ValidationItem]:
    """Warning items only."""
    return [item for item in result.items if item.severity == "warning"]


def has_fabrication_errors(result: ValidationResult) -> bool:
    """Check for critical items that report invented facts."""
    return any(
        item.severity == "critical" and item.code in FABRICATION_CODES
        for item in result.items
    )


def format_validation_result(result: ValidationResult) -> str:
    """Format a result for logs."""
    if result.passed and not result.items:
        return "Validation passed with no issues"
    lines = [f"Validation {'PASSED' if result.passed else 'FAILED'}"]
    for item in result.items:
        lines.append(f"  [{item.severity.upper()}] {item.code.value}: {item.message}")
    return "\n".join(lines)
