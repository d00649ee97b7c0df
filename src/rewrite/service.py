"""Main Rewrite Service.

Orchestrates the evidence-anchored rewrite pipeline:
1. Validate the request at the boundary
2. Build the evidence ledger
3. Plan micro-actions
4. Generate and validate with bounded retries (fallback to the original)
5. For sections, run the coherence pass across all accepted lines
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from pydantic import BaseModel, TypeAdapter, ValidationError

from src.rewrite.coherence.section import SectionProcessor, gather_in_order
from src.rewrite.config import RewriteConfig, get_rewrite_config
from src.rewrite.errors import (
    ExecutionError,
    ExecutionErrorCode,
    invalid_input_error,
    wrap_error,
)
from src.rewrite.evidence import build_evidence_ledger, build_summary_ledger
from src.rewrite.lexicon import CompiledLexicon, get_lexicon
from src.rewrite.llm import GenerationAdapter, RewriteLLM
from src.rewrite.models import (
    BulletContext,
    BulletRewriteRequest,
    BulletRewriteResult,
    EvidenceLedger,
    MicroAction,
    RewritePlan,
    RewriteRequest,
    RewriteResult,
    SectionRewriteRequest,
    SectionRewriteResult,
    SummaryRewriteRequest,
    SummaryRewriteResult,
    ValidationCode,
    ValidationItem,
    ValidationResult,
)
from src.rewrite.planning.fluff import detect_fluff
from src.rewrite.planning.metrics import has_metric
from src.rewrite.planning.planner import plan_micro_actions
from src.rewrite.planning.verbs import find_weak_verbs, has_passive_voice
from src.rewrite.prompts import (
    BULLET_SYSTEM_PROMPT,
    SECTION_SYSTEM_PROMPT,
    SUMMARY_SYSTEM_PROMPT,
    build_bullet_prompt,
    build_summary_prompt,
)
from src.rewrite.retry import RetryController, RetryOutcome
from src.rewrite.validation.validator import FabricationValidator

logger = logging.getLogger(__name__)

_REQUEST_ADAPTER: TypeAdapter[Any] = TypeAdapter(RewriteRequest)

DISABLED_REASONING = "Evidence-anchored rewriting is disabled; original returned unchanged."


def _field_errors(error: ValidationError) -> list[dict[str, Any]]:
    return [
        {
            "field": ".".join(str(part) for part in err["loc"]) or "request",
            "message": err["msg"],
        }
        for err in error.errors()
    ]


def _parse(model: Any, data: Any) -> Any:
    try:
        if isinstance(model, TypeAdapter):
            return model.validate_python(data)
        return model.model_validate(data)
    except ValidationError as e:
        errors = _field_errors(e)
        logger.warning(f"Rejected invalid request: {errors}")
        raise invalid_input_error(
            f"{len(errors)} invalid field(s)", errors=errors, cause=e
        ) from e


def parse_request(data: dict[str, Any] | BaseModel) -> RewriteRequest:
    """Validate a raw request, choosing the type from its ``type`` field.

    Raises:
        ExecutionError: INVALID_INPUT with per-field messages.
    """
    if isinstance(data, (BulletRewriteRequest, SummaryRewriteRequest, SectionRewriteRequest)):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump()
    return _parse(_REQUEST_ADAPTER, data)


class RewriteService:
    """Main service for evidence-anchored rewrites.

    Every accepted improvement has passed the fabrication validator; when no
    candidate passes within the retry budget the original text is returned.

    Example:
        service = RewriteService()
        result = await service.rewrite({"type": "bullet", "bullet": "Worked on APIs"})
    """

    def __init__(
        self,
        config: RewriteConfig | None = None,
        adapter: GenerationAdapter | None = None,
        lexicon: CompiledLexicon | None = None,
    ):
        """Initialize the rewrite service.

        Args:
            config: Optional RewriteConfig. Uses global config if not provided.
            adapter: Optional generation adapter. Defaults to RewriteLLM.
            lexicon: Optional compiled lexicon. Loaded from config if not provided.
        """
        self.config = config or get_rewrite_config()
        self.lexicon = lexicon or get_lexicon(self.config.lexicon_dir)
        self.adapter = adapter or RewriteLLM(config=self.config)

        self.validator = FabricationValidator(config=self.config, lexicon=self.lexicon)
        self.retry_controller = RetryController(
            self.adapter, config=self.config, validator=self.validator
        )
        self.section_processor = SectionProcessor(self.rewrite_section_line, config=self.config)

    async def rewrite(self, request: dict[str, Any] | BaseModel) -> RewriteResult:
        """Rewrite a bullet, summary or section, routed by request type.

        Args:
            request: A request model or a dict with a ``type`` discriminator.

        Returns:
            The matching result type.

        Raises:
            ExecutionError: On invalid input or an unexpected internal failure.
        """
        parsed = parse_request(request)
        if isinstance(parsed, BulletRewriteRequest):
            return await self.rewrite_bullet(parsed)
        if isinstance(parsed, SummaryRewriteRequest):
            return await self.rewrite_summary(parsed)
        return await self.rewrite_section(parsed)

    # ==================== Bullets ====================

    async def rewrite_bullet(
        self, request: BulletRewriteRequest | dict[str, Any]
    ) -> BulletRewriteResult:
        """Rewrite a single bullet."""
        if not isinstance(request, BulletRewriteRequest):
            request = _parse(BulletRewriteRequest, request)
        logger.info(f"Rewriting bullet ({len(request.bullet)} chars)")
        return await self._run_stage(
            "rewrite_bullet", self._rewrite_line(request, [], mode="bullet")
        )

    async def rewrite_section_line(
        self, request: BulletRewriteRequest, extra_actions: list[MicroAction]
    ) -> BulletRewriteResult:
        """Rewrite one line of a section with extra coherence actions."""
        return await self._rewrite_line(request, extra_actions, mode="section")

    async def _rewrite_line(
        self,
        request: BulletRewriteRequest,
        extra_actions: list[MicroAction],
        mode: str,
    ) -> BulletRewriteResult:
        context = request.context
        sibling_lines = context.sibling_lines if context else []
        scope = request.evidence_scope or self.config.evidence_scope
        allow_enrichment = (
            self.config.allow_resume_enrichment
            if request.allow_resume_enrichment is None
            else request.allow_resume_enrichment
        )

        try:
            ledger = build_evidence_ledger(
                request.bullet,
                sibling_lines=sibling_lines,
                scope=scope,
                allow_resume_enrichment=allow_enrichment,
                extracted=request.extracted,
                precomputed_evidence=request.evidence,
            )
        except Exception as e:
            raise wrap_error(e, ExecutionErrorCode.EVIDENCE_BUILD_FAILED, "evidence") from e

        plan = self._plan(
            request.bullet,
            ledger,
            request.issues,
            context=context,
            target_role=request.target_role,
            sibling_lines=sibling_lines,
            max_length=self.config.max_bullet_length,
        )
        if extra_actions:
            plan = plan.model_copy(
                update={"transformations": [*plan.transformations, *extra_actions]}
            )

        if not self.config.evidence_anchored_rewrite:
            return BulletRewriteResult(**self._disabled_fields(request.bullet, plan))

        user_prompt = build_bullet_prompt(
            request.bullet,
            ledger,
            plan,
            target_role=request.target_role,
            job_description=request.job_description,
            context=context,
        )
        system_prompt = SECTION_SYSTEM_PROMPT if mode == "section" else BULLET_SYSTEM_PROMPT
        outcome = await self.retry_controller.run(
            request.bullet, ledger, system_prompt, user_prompt, mode=mode
        )
        return BulletRewriteResult(
            **self._outcome_fields(outcome, plan),
            needs_user_input=tuple(plan.needs_user_input) if plan.needs_user_input else None,
        )

    async def rewrite_bullets_batch(
        self, requests: list[BulletRewriteRequest | dict[str, Any]]
    ) -> list[BulletRewriteResult]:
        """Rewrite independent bullets concurrently.

        Concurrency is bounded by ``batch_max_concurrency``; results are
        returned in input order.
        """
        parsed = [
            r if isinstance(r, BulletRewriteRequest) else _parse(BulletRewriteRequest, r)
            for r in requests
        ]
        semaphore = asyncio.Semaphore(self.config.batch_max_concurrency)

        async def run_one(request: BulletRewriteRequest) -> BulletRewriteResult:
            async with semaphore:
                return await self.rewrite_bullet(request)

        logger.info(f"Rewriting batch of {len(parsed)} bullets")
        return await gather_in_order(run_one(r) for r in parsed)

    async def quick_rewrite_bullet(
        self,
        text: str,
        issues: list[str] | None = None,
        target_role: str | None = None,
    ) -> BulletRewriteResult:
        """Rewrite a bullet from plain text with default settings."""
        return await self.rewrite_bullet(
            {"bullet": text, "issues": issues or [], "target_role": target_role}
        )

    # ==================== Summaries ====================

    async def rewrite_summary(
        self, request: SummaryRewriteRequest | dict[str, Any]
    ) -> SummaryRewriteResult:
        """Rewrite a professional summary with resume-wide evidence."""
        if not isinstance(request, SummaryRewriteRequest):
            request = _parse(SummaryRewriteRequest, request)
        logger.info(f"Rewriting summary ({len(request.summary)} chars)")
        return await self._run_stage("rewrite_summary", self._rewrite_summary(request))

    async def _rewrite_summary(self, request: SummaryRewriteRequest) -> SummaryRewriteResult:
        allow_enrichment = (
            self.config.allow_resume_enrichment
            if request.allow_resume_enrichment is None
            else request.allow_resume_enrichment
        )
        try:
            ledger = build_summary_ledger(
                request.summary,
                extracted=request.extracted,
                allow_resume_enrichment=allow_enrichment,
                precomputed_evidence=request.evidence,
            )
        except Exception as e:
            raise wrap_error(e, ExecutionErrorCode.EVIDENCE_BUILD_FAILED, "evidence") from e

        plan = self._plan(
            request.summary,
            ledger,
            request.issues,
            context=BulletContext(section_type="summary"),
            target_role=request.target_role,
            max_length=self.config.max_summary_length,
        )

        if not self.config.evidence_anchored_rewrite:
            return SummaryRewriteResult(**self._disabled_fields(request.summary, plan))

        user_prompt = build_summary_prompt(
            request.summary,
            ledger,
            plan,
            target_role=request.target_role,
            job_description=request.job_description,
        )
        outcome = await self.retry_controller.run(
            request.summary, ledger, SUMMARY_SYSTEM_PROMPT, user_prompt, mode="summary"
        )
        return SummaryRewriteResult(**self._outcome_fields(outcome, plan))

    # ==================== Sections ====================

    async def rewrite_section(
        self, request: SectionRewriteRequest | dict[str, Any]
    ) -> SectionRewriteResult:
        """Rewrite every bullet in a section and make them coherent."""
        if not isinstance(request, SectionRewriteRequest):
            request = _parse(SectionRewriteRequest, request)
        return await self._run_stage(
            "rewrite_section", self.section_processor.process(request)
        )

    # ==================== Deterministic helpers ====================

    def can_improve(self, text: str) -> tuple[bool, list[str]]:
        """Check whether a line has anything worth rewriting, without the LLM.

        Returns:
            Tuple of (improvable, reasons). Reasons are issue codes
            (``weak_verb``, ``fluff``, ``no_metric``, ``passive_voice``,
            ``too_short``, ``too_long``), or ``ORIGINAL_STRONG`` when none apply.
        """
        text = text.strip()
        reasons = []
        if find_weak_verbs(text, self.lexicon):
            reasons.append("weak_verb")
        if detect_fluff(text, self.lexicon):
            reasons.append("fluff")
        if not has_metric(text, self.lexicon):
            reasons.append("no_metric")
        if has_passive_voice(text):
            reasons.append("passive_voice")
        if len(text) < self.config.min_bullet_length:
            reasons.append("too_short")
        elif len(text) > self.config.max_bullet_length:
            reasons.append("too_long")

        if not reasons:
            return False, [ValidationCode.ORIGINAL_STRONG.value]
        return True, reasons

    def plan(
        self,
        text: str,
        issues: list[str] | None = None,
        context: BulletContext | None = None,
        target_role: str | None = None,
    ) -> RewritePlan:
        """Build the deterministic plan for a line without generating."""
        context = context or BulletContext()
        ledger = build_evidence_ledger(
            text,
            sibling_lines=context.sibling_lines,
            scope=self.config.evidence_scope,
            allow_resume_enrichment=self.config.allow_resume_enrichment,
        )
        return self._plan(
            text,
            ledger,
            issues or [],
            context=context,
            target_role=target_role,
            sibling_lines=context.sibling_lines,
            max_length=self.config.max_bullet_length,
        )

    # ==================== Internals ====================

    def _plan(
        self,
        text: str,
        ledger: EvidenceLedger,
        issues: list[str],
        context: BulletContext | None = None,
        target_role: str | None = None,
        sibling_lines: list[str] | None = None,
        max_length: int | None = None,
    ) -> RewritePlan:
        try:
            plan = plan_micro_actions(
                text,
                ledger,
                issues=issues,
                context=context,
                target_role=target_role,
                sibling_lines=sibling_lines,
                max_length=max_length,
                config=self.config,
                lexicon=self.lexicon,
            )
        except Exception as e:
            raise wrap_error(e, ExecutionErrorCode.PLANNING_FAILED, "planning") from e
        logger.debug(f"Plan: {plan.model_dump_json()}")
        return plan

    async def _run_stage(self, stage: str, coro):
        try:
            return await coro
        except ExecutionError:
            raise
        except Exception as e:
            raise wrap_error(e, ExecutionErrorCode.INTERNAL_ERROR, stage) from e

    @staticmethod
    def _outcome_fields(outcome: RetryOutcome, plan: RewritePlan) -> dict[str, Any]:
        return {
            "original": outcome.original,
            "improved": outcome.improved,
            "reasoning": outcome.reasoning,
            "changes": outcome.changes,
            "evidence_map": tuple(outcome.evidence_map),
            "validation": outcome.validation,
            "confidence": outcome.confidence,
            "estimated_score_gain": outcome.estimated_score_gain,
            "attempts": outcome.attempts,
            "used_fallback": outcome.used_fallback,
            "rejected_validation": outcome.rejected_validation,
            "plan": plan,
        }

    @staticmethod
    def _disabled_fields(original: str, plan: RewritePlan) -> dict[str, Any]:
        return {
            "original": original,
            "improved": original,
            "reasoning": DISABLED_REASONING,
            "changes": {},
            "validation": ValidationResult.from_items(
                [
                    ValidationItem(
                        code=ValidationCode.NO_CHANGES,
                        severity="info",
                        message="Rewriting disabled by configuration",
                    )
                ]
            ),
            "confidence": "low",
            "estimated_score_gain": 0,
            "attempts": 0,
            "plan": plan,
        }
