"""Data models for the Rewrite module.

Contains Pydantic models for:
- EvidenceItem / EvidenceLedger: facts a rewrite may legitimately use
- EvidenceMapItem: generator-claimed linkage from output spans to evidence
- MicroAction / RewritePlan: bounded transformation hints and constraints
- ValidationItem / ValidationResult: severity-tagged fabrication checks
- Rewrite requests and results for bullets, summaries and sections
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

EvidenceScope = Literal["line_only", "section", "resume"]
EvidenceType = Literal["line", "sibling_lines", "skills", "tools", "titles"]
EvidenceSource = Literal["line", "section", "resume"]
SectionType = Literal["experience", "summary", "skills", "headline", "projects"]
Severity = Literal["info", "warning", "critical"]
ConfidenceLevel = Literal["low", "medium", "high"]
Tense = Literal["past", "present"]
RewriteGoal = Literal["impact", "clarity", "conciseness"]

MAX_LINE_CHARS = 1000
MAX_SUMMARY_CHARS = 2000
MAX_SECTION_LINES = 30


# ==================== Evidence ====================


class EvidenceItem(BaseModel):
    """A single piece of evidence usable in a rewrite."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Identifier, e.g. E1 or E_skills")
    type: EvidenceType
    scope: EvidenceScope
    source: EvidenceSource
    text: str = Field(..., min_length=1)
    normalized_terms: tuple[str, ...] = Field(default_factory=tuple)


class EvidenceLedger(BaseModel):
    """The complete, fixed set of evidence for one rewrite request."""

    model_config = ConfigDict(frozen=True)

    items: tuple[EvidenceItem, ...] = Field(default_factory=tuple)
    scope: EvidenceScope = "section"
    allow_resume_enrichment: bool = True

    @property
    def ids(self) -> set[str]:
        """All evidence ids in the ledger."""
        return {item.id for item in self.items}

    @property
    def texts(self) -> list[str]:
        """All evidence texts in ledger order."""
        return [item.text for item in self.items]


class EvidenceMapItem(BaseModel):
    """A claim that a span of the candidate is backed by evidence ids."""

    improved_span: str = Field(..., min_length=1)
    evidence_ids: list[str] = Field(default_factory=list)


# ==================== Generation contract ====================


class RewriteChanges(BaseModel):
    """Quality signals describing what a rewrite changed."""

    stronger_verb: bool = False
    added_metric: bool = False
    more_specific: bool = False
    removed_fluff: bool = False
    tailored_to_role: bool = False


class GenerationOutput(BaseModel):
    """Structured output expected from the generation adapter."""

    improved: str = Field(..., min_length=1)
    evidence_map: list[EvidenceMapItem] = Field(default_factory=list)
    reasoning: str = ""
    changes: RewriteChanges = Field(default_factory=RewriteChanges)

    @field_validator("improved")
    @classmethod
    def strip_improved(cls, v: str) -> str:
        """Strip surrounding whitespace and reject blank output."""
        v = v.strip()
        if not v:
            raise ValueError("improved text must not be blank")
        return v


# ==================== Planning ====================


class VerbUpgradeAction(BaseModel):
    """Replace a weak verb phrase with a stronger one."""

    type: Literal["verb_upgrade"] = "verb_upgrade"
    weak_verb: str
    upgrade: str
    context: str = ""


class RemoveFluffAction(BaseModel):
    """Remove or substitute filler phrases."""

    type: Literal["remove_fluff"] = "remove_fluff"
    terms: list[str] = Field(default_factory=list)
    replacements: dict[str, str] = Field(default_factory=dict)


class AddHowAction(BaseModel):
    """Clarify how the work was done, never by inventing numbers."""

    type: Literal["add_how"] = "add_how"
    hint: str


class SurfaceToolAction(BaseModel):
    """Mention a tool that is backed by an evidence item."""

    type: Literal["surface_tool"] = "surface_tool"
    tool: str
    evidence_id: str


class TenseAlignAction(BaseModel):
    """Rewrite the leading verb into the section's dominant tense."""

    type: Literal["tense_align"] = "tense_align"
    target_tense: Tense


class AddSpecificityAction(BaseModel):
    """Make the line more concrete along one dimension."""

    type: Literal["add_specificity"] = "add_specificity"
    focus: Literal["technical", "outcome", "scope"]
    hint: str


MicroAction = Annotated[
    Union[
        VerbUpgradeAction,
        RemoveFluffAction,
        AddHowAction,
        SurfaceToolAction,
        TenseAlignAction,
        AddSpecificityAction,
    ],
    Field(discriminator="type"),
]


class PlanConstraints(BaseModel):
    """Hard limits the generator must respect."""

    max_length: int = Field(..., gt=0)
    forbid_new_numbers: bool = True
    forbid_new_tools: bool = False
    forbid_new_companies: bool = True


class UserInputRequest(BaseModel):
    """A question the user must answer before a fact can be used."""

    prompt: str
    example_answer: str | None = None


class RewritePlan(BaseModel):
    """Ordered transformations plus constraints for one rewrite."""

    goal: RewriteGoal = "clarity"
    issues: list[str] = Field(default_factory=list)
    transformations: list[MicroAction] = Field(default_factory=list)
    constraints: PlanConstraints
    needs_user_input: list[UserInputRequest] | None = None


# ==================== Validation ====================


class ValidationCode(str, Enum):
    """Codes produced by the fabrication validator."""

    NEW_NUMBER_ADDED = "NEW_NUMBER_ADDED"
    NEW_TOOL_ADDED = "NEW_TOOL_ADDED"
    NEW_COMPANY_ADDED = "NEW_COMPANY_ADDED"
    NEW_IMPLIED_METRIC = "NEW_IMPLIED_METRIC"
    INVALID_EVIDENCE_ID = "INVALID_EVIDENCE_ID"
    SPAN_NOT_FOUND = "SPAN_NOT_FOUND"
    UNSUPPORTED_TOOL_CLAIM = "UNSUPPORTED_TOOL_CLAIM"
    UNSUPPORTED_METRIC_CLAIM = "UNSUPPORTED_METRIC_CLAIM"
    WEAK_EVIDENCE_MATCH = "WEAK_EVIDENCE_MATCH"
    LENGTH_EXPLOSION = "LENGTH_EXPLOSION"
    MEANING_SHIFT = "MEANING_SHIFT"
    NO_CHANGES = "NO_CHANGES"
    ORIGINAL_STRONG = "ORIGINAL_STRONG"


class ValidationItem(BaseModel):
    """One finding from validation."""

    model_config = ConfigDict(frozen=True)

    code: ValidationCode
    severity: Severity
    message: str
    term: str | None = Field(default=None, description="Offending term, if any")


class ValidationResult(BaseModel):
    """Outcome of validating a candidate rewrite.

    ``passed`` is true exactly when no item is critical.
    """

    model_config = ConfigDict(frozen=True)

    passed: bool
    items: tuple[ValidationItem, ...] = Field(default_factory=tuple)

    @model_validator(mode="after")
    def check_passed(self) -> ValidationResult:
        """Keep ``passed`` consistent with item severities."""
        has_critical = any(item.severity == "critical" for item in self.items)
        if self.passed == has_critical:
            raise ValueError(
                f"passed={self.passed} is inconsistent with critical items={has_critical}"
            )
        return self

    @classmethod
    def from_items(cls, items: list[ValidationItem]) -> ValidationResult:
        """Build a result, deriving ``passed`` from the items."""
        return cls(
            passed=not any(item.severity == "critical" for item in items),
            items=tuple(items),
        )


# ==================== Requests ====================


class ExtractedResumeData(BaseModel):
    """Structured resume facts produced by upstream parsing."""

    skills: list[str] = Field(default_factory=list)
    tools: list[str] = Field(default_factory=list)
    titles: list[str] = Field(default_factory=list)


class BulletContext(BaseModel):
    """Where a line sits within the resume."""

    section_type: SectionType = "experience"
    role: str | None = None
    company: str | None = None
    index: int | None = Field(default=None, ge=0)
    sibling_lines: list[str] = Field(default_factory=list)


class _BaseRewriteRequest(BaseModel):
    target_role: str | None = None
    job_description: str | None = Field(
        default=None, description="Style guide only, never a source of facts"
    )
    issues: list[str] = Field(default_factory=list)
    extracted: ExtractedResumeData | None = None
    evidence: list[EvidenceItem] | None = Field(
        default=None, description="Precomputed evidence used verbatim when non-empty"
    )
    evidence_scope: EvidenceScope | None = None
    allow_resume_enrichment: bool | None = None

    @field_validator("issues")
    @classmethod
    def normalize_issues(cls, v: list[str]) -> list[str]:
        """Lowercase issue codes and drop blanks."""
        return [issue.strip().lower() for issue in v if issue and issue.strip()]


def _require_text(value: str, label: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError(f"{label} text is required")
    return value


class BulletRewriteRequest(_BaseRewriteRequest):
    """Request to rewrite a single bullet."""

    type: Literal["bullet"] = "bullet"
    bullet: str = Field(..., max_length=MAX_LINE_CHARS)
    context: BulletContext | None = None

    @field_validator("bullet")
    @classmethod
    def validate_bullet(cls, v: str) -> str:
        """Reject blank bullets."""
        return _require_text(v, "Bullet")


class SummaryRewriteRequest(_BaseRewriteRequest):
    """Request to rewrite a summary or headline."""

    type: Literal["summary"] = "summary"
    summary: str = Field(..., max_length=MAX_SUMMARY_CHARS)

    @field_validator("summary")
    @classmethod
    def validate_summary(cls, v: str) -> str:
        """Reject blank summaries."""
        return _require_text(v, "Summary")


class SectionRewriteRequest(_BaseRewriteRequest):
    """Request to rewrite every bullet in a section."""

    type: Literal["section"] = "section"
    bullets: list[str] = Field(..., min_length=1, max_length=MAX_SECTION_LINES)
    section_type: SectionType = "experience"
    role: str | None = None
    company: str | None = None
    issues_per_bullet: dict[int, list[str]] = Field(default_factory=dict)

    @field_validator("bullets")
    @classmethod
    def validate_bullets(cls, v: list[str]) -> list[str]:
        """Reject blank or oversized bullets."""
        cleaned = []
        for index, bullet in enumerate(v):
            text = _require_text(bullet, f"Bullet {index}")
            if len(text) > MAX_LINE_CHARS:
                raise ValueError(
                    f"Bullet {index} exceeds {MAX_LINE_CHARS} characters"
                )
            cleaned.append(text)
        return cleaned

    @model_validator(mode="after")
    def validate_issue_indexes(self) -> SectionRewriteRequest:
        """Issue indexes must point at existing bullets."""
        for index in self.issues_per_bullet:
            if index < 0 or index >= len(self.bullets):
                raise ValueError(
                    f"issues_per_bullet index {index} is out of range "
                    f"for {len(self.bullets)} bullets"
                )
        return self


RewriteRequest = Annotated[
    Union[BulletRewriteRequest, SummaryRewriteRequest, SectionRewriteRequest],
    Field(discriminator="type"),
]


# ==================== Results ====================


class _BaseRewriteResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    original: str
    improved: str
    reasoning: str
    changes: RewriteChanges
    evidence_map: tuple[EvidenceMapItem, ...] = Field(default_factory=tuple)
    validation: ValidationResult
    confidence: ConfidenceLevel
    estimated_score_gain: int = Field(default=0, ge=0, le=10)
    attempts: int = Field(default=1, ge=0)
    used_fallback: bool = False
    rejected_validation: ValidationResult | None = Field(
        default=None,
        description="Last failing validation when the original was returned",
    )
    plan: RewritePlan | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return self.model_dump(mode="json")


class BulletRewriteResult(_BaseRewriteResult):
    """Result of rewriting a single bullet."""

    type: Literal["bullet"] = "bullet"
    needs_user_input: tuple[UserInputRequest, ...] | None = None


class SummaryRewriteResult(_BaseRewriteResult):
    """Result of rewriting a summary."""

    type: Literal["summary"] = "summary"


class SectionBulletDetail(BaseModel):
    """Per-bullet detail inside a section result.

    ``bullet_result`` holds the accepted rewrite before the coherence pass;
    ``final_text`` is the line as it appears in ``improved_bullets``.
    """

    model_config = ConfigDict(frozen=True)

    index: int
    bullet_result: BulletRewriteResult
    final_text: str
    coherence_adjusted: bool = Field(
        default=False, description="Whether the coherence pass changed this line"
    )


class SectionRewriteResult(BaseModel):
    """Result of rewriting an entire section."""

    model_config = ConfigDict(frozen=True)

    type: Literal["section"] = "section"
    original_bullets: tuple[str, ...]
    improved_bullets: tuple[str, ...]
    estimated_aggregate_gain: int = Field(default=0, ge=0)
    validation_summary: ValidationResult
    per_bullet_details: tuple[SectionBulletDetail, ...] = Field(default_factory=tuple)
    section_notes: tuple[str, ...] = Field(default_factory=tuple)
    dominant_tense: Tense | None = None
    confidence: ConfidenceLevel

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return self.model_dump(mode="json")


RewriteResult = Union[BulletRewriteResult, SummaryRewriteResult, SectionRewriteResult]
