"""Section processor for the Rewrite module.

Rewrites every bullet of a section independently (concurrently, bounded by
``batch_max_concurrency``), then waits for all of them before running the
coherence pass: tense unification and formatting across the accepted lines.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import TypeVar

from src.rewrite.coherence.formatting import unify_formatting
from src.rewrite.coherence.tense import (
    detect_dominant_tense,
    get_inconsistent_lines,
    unify_tense,
)
from src.rewrite.config import RewriteConfig, get_rewrite_config
from src.rewrite.models import (
    BulletContext,
    BulletRewriteRequest,
    BulletRewriteResult,
    ConfidenceLevel,
    MicroAction,
    SectionBulletDetail,
    SectionRewriteRequest,
    SectionRewriteResult,
    Tense,
    TenseAlignAction,
    ValidationItem,
    ValidationResult,
)

logger = logging.getLogger(__name__)

# Sections whose bullets are written as actions and share one tense
TENSE_SECTIONS = frozenset({"experience", "projects"})


LineRewriter = Callable[
    [BulletRewriteRequest, list[MicroAction]], Awaitable[BulletRewriteResult]
]

T = TypeVar("T")


async def gather_in_order(aws: Iterable[Awaitable[T]]) -> list[T]:
    """Run awaitables concurrently and return their results in input order.

    If one fails, the rest are cancelled and awaited before the first error
    is re-raised.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


def _first_word(line: str) -> str:
    words = line.split()
    return words[0].strip(".,;:").lower() if words else ""


def find_repeated_starts(lines: list[str]) -> list[str]:
    """Notes for lines that open with the same word as an earlier line."""
    notes = []
    seen: set[str] = set()
    for index, line in enumerate(lines):
        word = _first_word(line)
        if not word:
            continue
        if word in seen:
            notes.append(
                f'Note: Bullet {index + 1} starts with repeated word "{word.capitalize()}"'
            )
        seen.add(word)
    return notes


def has_varied_starts(lines: list[str]) -> bool:
    """Check that no two lines open with the same word."""
    words = [_first_word(line) for line in lines if line.strip()]
    return len(words) == len(set(words))


def aggregate_confidence(results: list[BulletRewriteResult]) -> ConfidenceLevel:
    """Low if any line is low, high if all are high, otherwise medium."""
    levels = [r.confidence for r in results]
    if not levels or "low" in levels:
        return "low"
    if all(level == "high" for level in levels):
        return "high"
    return "medium"


def merge_validations(results: list[BulletRewriteResult]) -> ValidationResult:
    """Combine per-line validation items into one section summary."""
    items: list[ValidationItem] = []
    for result in results:
        items.extend(result.validation.items)
    return ValidationResult.from_items(items)


def build_line_requests(request: SectionRewriteRequest) -> list[BulletRewriteRequest]:
    """One bullet request per line, with the other lines as siblings."""
    requests = []
    for index, bullet in enumerate(request.bullets):
        siblings = [line for i, line in enumerate(request.bullets) if i != index]
        issues = list(request.issues) + [
            issue
            for issue in request.issues_per_bullet.get(index, [])
            if issue not in request.issues
        ]
        requests.append(
            BulletRewriteRequest(
                bullet=bullet,
                issues=issues,
                target_role=request.target_role,
                job_description=request.job_description,
                extracted=request.extracted,
                evidence=request.evidence,
                evidence_scope=request.evidence_scope,
                allow_resume_enrichment=request.allow_resume_enrichment,
                context=BulletContext(
                    section_type=request.section_type,
                    role=request.role,
                    company=request.company,
                    index=index,
                    sibling_lines=siblings,
                ),
            )
        )
    return requests


class SectionProcessor:
    """Rewrites a section line by line and applies the coherence pass.

    Example:
        processor = SectionProcessor(service.rewrite_section_line)
        result = await processor.process(request)
    """

    def __init__(
        self,
        rewrite_line: LineRewriter,
        config: RewriteConfig | None = None,
    ):
        """Initialize the processor.

        Args:
            rewrite_line: Coroutine function rewriting one line.
            config: Optional RewriteConfig. Uses global config if not provided.
        """
        self.rewrite_line = rewrite_line
        self.config = config or get_rewrite_config()

    def _plan_tense_alignment(self, request: SectionRewriteRequest) -> dict[int, Tense]:
        if request.section_type not in TENSE_SECTIONS:
            return {}
        lines = list(request.bullets)
        dominant = detect_dominant_tense(lines).dominant
        return {index: dominant for index, _ in get_inconsistent_lines(lines)}

    async def process(self, request: SectionRewriteRequest) -> SectionRewriteResult:
        """Rewrite every bullet of a section.

        Args:
            request: Validated section request.

        Returns:
            SectionRewriteResult with per-line details and section notes.
        """
        line_requests = build_line_requests(request)
        tense_targets = (
            self._plan_tense_alignment(request) if self.config.section_coherence_pass else {}
        )
        semaphore = asyncio.Semaphore(self.config.batch_max_concurrency)

        async def run_line(index: int, line_request: BulletRewriteRequest) -> BulletRewriteResult:
            extra: list[MicroAction] = []
            if index in tense_targets:
                extra.append(TenseAlignAction(target_tense=tense_targets[index]))
            async with semaphore:
                return await self.rewrite_line(line_request, extra)

        logger.info(
            f"Rewriting section of {len(line_requests)} bullets "
            f"(concurrency={self.config.batch_max_concurrency})"
        )
        results = await gather_in_order(
            run_line(i, line_request) for i, line_request in enumerate(line_requests)
        )

        improved = [r.improved for r in results]
        notes = find_repeated_starts(improved)
        dominant_tense: Tense | None = None

        if self.config.section_coherence_pass:
            if request.section_type in TENSE_SECTIONS:
                unified, dominant_tense = unify_tense(improved)
                if unified != improved:
                    notes.append(f"Unified tense to {dominant_tense}")
                improved = unified
            improved, format_notes = unify_formatting(improved)
            notes.extend(format_notes)

        gain = sum(r.estimated_score_gain for r in results)
        result = SectionRewriteResult(
            original_bullets=tuple(request.bullets),
            improved_bullets=tuple(improved),
            estimated_aggregate_gain=gain,
            validation_summary=merge_validations(results),
            per_bullet_details=tuple(
                SectionBulletDetail(
                    index=i,
                    bullet_result=r,
                    final_text=final,
                    coherence_adjusted=final != r.improved,
                )
                for i, (r, final) in enumerate(zip(results, improved))
            ),
            section_notes=tuple(notes),
            dominant_tense=dominant_tense,
            confidence=aggregate_confidence(results),
        )
        logger.info(
            f"Section rewrite complete: gain={gain}, confidence={result.confidence}, "
            f"fallbacks={sum(1 for r in results if r.used_fallback)}"
        )
        return result
