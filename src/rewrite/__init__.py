"""Evidence-anchored rewrite module.

This module provides functionality for:
- Building an evidence ledger of facts a rewrite may use
- Planning bounded micro-actions (verb upgrades, fluff removal, tool surfacing)
- Generating candidates and validating them against fabrication
- Retrying with feedback and falling back to the original text
- Making whole sections coherent (tense and formatting)

Main Entry Point:
    RewriteService - Routes bullet, summary and section requests

Example:
    from src.rewrite import RewriteService

    service = RewriteService()
    result = await service.rewrite({"type": "bullet", "bullet": "Worked on APIs"})

    if not result.used_fallback:
        print(result.improved)
"""

from src.rewrite.config import RewriteConfig, get_rewrite_config, reset_rewrite_config
from src.rewrite.errors import ExecutionError, ExecutionErrorCode
from src.rewrite.evidence import (
    build_evidence_ledger,
    build_section_ledger,
    build_summary_ledger,
)
from src.rewrite.lexicon import CompiledLexicon, get_lexicon, reload_lexicon, reset_lexicon
from src.rewrite.llm import GenerationAdapter, LLMError, RewriteLLM
from src.rewrite.models import (
    BulletContext,
    BulletRewriteRequest,
    BulletRewriteResult,
    EvidenceItem,
    EvidenceLedger,
    EvidenceMapItem,
    ExtractedResumeData,
    GenerationOutput,
    RewritePlan,
    SectionRewriteRequest,
    SectionRewriteResult,
    SummaryRewriteRequest,
    SummaryRewriteResult,
    ValidationCode,
    ValidationItem,
    ValidationResult,
)
from src.rewrite.planning import plan_micro_actions
from src.rewrite.retry import RetryController, calculate_score_gain
from src.rewrite.service import RewriteService, parse_request
from src.rewrite.validation import FabricationValidator, validate_rewrite

__all__ = [
    # Main service
    "RewriteService",
    "parse_request",
    # Config
    "RewriteConfig",
    "get_rewrite_config",
    "reset_rewrite_config",
    # Lexicon
    "CompiledLexicon",
    "get_lexicon",
    "reload_lexicon",
    "reset_lexicon",
    # Errors
    "ExecutionError",
    "ExecutionErrorCode",
    "LLMError",
    # Pipeline stages
    "build_evidence_ledger",
    "build_section_ledger",
    "build_summary_ledger",
    "plan_micro_actions",
    "FabricationValidator",
    "validate_rewrite",
    "RetryController",
    "calculate_score_gain",
    # Generation
    "GenerationAdapter",
    "RewriteLLM",
    # Models
    "BulletContext",
    "BulletRewriteRequest",
    "BulletRewriteResult",
    "EvidenceItem",
    "EvidenceLedger",
    "EvidenceMapItem",
    "ExtractedResumeData",
    "GenerationOutput",
    "RewritePlan",
    "SectionRewriteRequest",
    "SectionRewriteResult",
    "SummaryRewriteRequest",
    "SummaryRewriteResult",
    "ValidationCode",
    "ValidationItem",
    "ValidationResult",
]
