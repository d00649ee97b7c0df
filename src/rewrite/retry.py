"""Retry controller for evidence-anchored generation.

Runs a bounded GENERATE -> VALIDATE loop. A candidate is only accepted when
the fabrication validator passes it; generation errors, timeouts and
validation failures each consume one attempt. When the budget is spent the
original text is returned unchanged.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Literal

from src.rewrite.config import RewriteConfig, get_rewrite_config
from src.rewrite.lexicon import CompiledLexicon
from src.rewrite.llm import GenerationAdapter, LLMError
from src.rewrite.models import (
    ConfidenceLevel,
    EvidenceLedger,
    EvidenceMapItem,
    GenerationOutput,
    RewriteChanges,
    ValidationCode,
    ValidationItem,
    ValidationResult,
)
from src.rewrite.prompts import build_retry_prompt
from src.rewrite.validation.validator import (
    FabricationValidator,
    format_validation_result,
    get_critical_errors,
    get_warnings,
)

logger = logging.getLogger(__name__)

RewriteMode = Literal["bullet", "summary", "section"]

# (base, floor) temperature per mode
TEMPERATURE_SCHEDULE: dict[str, tuple[float, float]] = {
    "bullet": (0.3, 0.1),
    "summary": (0.5, 0.2),
    "section": (0.4, 0.15),
}
TEMPERATURE_STEP = 0.1

MAX_SCORE_GAIN = 10

FALLBACK_REASONING = (
    "Could not improve without fabricating content. "
    "Returning original to maintain truthfulness."
)


def get_attempt_temperature(mode: RewriteMode, attempt: int) -> float:
    """Temperature for a zero-based attempt, lowered on each retry."""
    base, floor = TEMPERATURE_SCHEDULE[mode]
    return round(max(floor, base - TEMPERATURE_STEP * attempt), 2)


def calculate_score_gain(
    changes: RewriteChanges, attempts: int, used_fallback: bool = False
) -> int:
    """Estimate the quality gain of an accepted rewrite on a 0-10 scale."""
    if used_fallback:
        return 0
    gain = 0
    if changes.stronger_verb:
        gain += 2
    if changes.added_metric:
        gain += 2
    if changes.more_specific:
        gain += 2
    if changes.removed_fluff:
        gain += 1
    if changes.tailored_to_role:
        gain += 1
    if attempts > 1:
        gain -= 1
    return max(0, min(gain, MAX_SCORE_GAIN))


@dataclass(frozen=True)
class RetryOutcome:
    """Terminal state of one retry loop."""

    original: str
    improved: str
    reasoning: str
    changes: RewriteChanges
    evidence_map: list[EvidenceMapItem]
    validation: ValidationResult
    confidence: ConfidenceLevel
    estimated_score_gain: int
    attempts: int
    used_fallback: bool = False
    rejected_validation: ValidationResult | None = None


def build_fallback_outcome(
    original: str,
    attempts: int,
    rejected_validation: ValidationResult | None = None,
) -> RetryOutcome:
    """Return the original text as a transparent, non-fabricating result."""
    return RetryOutcome(
        original=original,
        improved=original,
        reasoning=FALLBACK_REASONING,
        changes=RewriteChanges(),
        evidence_map=[EvidenceMapItem(improved_span=original, evidence_ids=["E1"])],
        validation=ValidationResult.from_items(
            [
                ValidationItem(
                    code=ValidationCode.NO_CHANGES,
                    severity="info",
                    message="Original returned unchanged",
                )
            ]
        ),
        confidence="low",
        estimated_score_gain=0,
        attempts=attempts,
        used_fallback=True,
        rejected_validation=rejected_validation,
    )


class RetryController:
    """Bounded generate/validate loop with deterministic fallback.

    Example:
        controller = RetryController(RewriteLLM())
        outcome = await controller.run(original, ledger, system_prompt, user_prompt)
    """

    def __init__(
        self,
        adapter: GenerationAdapter,
        config: RewriteConfig | None = None,
        lexicon: CompiledLexicon | None = None,
        validator: FabricationValidator | None = None,
    ):
        """Initialize the controller.

        Args:
            adapter: Generation adapter producing candidate rewrites.
            config: Optional RewriteConfig. Uses global config if not provided.
            lexicon: Optional compiled lexicon for the default validator.
            validator: Optional validator. Built from config and lexicon if not provided.
        """
        self.adapter = adapter
        self.config = config or get_rewrite_config()
        self.validator = validator or FabricationValidator(self.config, lexicon)

    async def _generate(
        self, system_prompt: str, prompt: str, temperature: float
    ) -> GenerationOutput:
        return await asyncio.wait_for(
            self.adapter.generate(system_prompt, prompt, temperature),
            timeout=self.config.llm_timeout,
        )

    async def run(
        self,
        original: str,
        ledger: EvidenceLedger,
        system_prompt: str,
        user_prompt: str,
        mode: RewriteMode = "bullet",
    ) -> RetryOutcome:
        """Generate until a candidate passes validation or the budget is spent.

        Args:
            original: Text being rewritten.
            ledger: Evidence for the request; never changes between attempts.
            system_prompt: System prompt for every attempt.
            user_prompt: First-attempt user prompt; retries wrap it with feedback.
            mode: Rewrite mode, selects the temperature schedule.

        Returns:
            RetryOutcome whose validation always passes.
        """
        max_attempts = self.config.max_attempts
        prompt = user_prompt
        rejected: ValidationResult | None = None

        for attempt in range(max_attempts):
            temperature = get_attempt_temperature(mode, attempt)
            logger.debug(
                f"Generation attempt {attempt + 1}/{max_attempts} "
                f"(mode={mode}, temperature={temperature})"
            )

            try:
                output = await self._generate(system_prompt, prompt, temperature)
            except asyncio.TimeoutError:
                logger.warning(
                    f"Generation timed out after {self.config.llm_timeout}s "
                    f"(attempt {attempt + 1}/{max_attempts})"
                )
                prompt = build_retry_prompt(user_prompt, [])
                continue
            except LLMError as e:
                logger.warning(f"Generation failed (attempt {attempt + 1}/{max_attempts}): {e}")
                prompt = build_retry_prompt(user_prompt, [])
                continue
            except Exception as e:
                logger.warning(
                    f"Generation adapter error (attempt {attempt + 1}/{max_attempts}): "
                    f"{type(e).__name__}: {e}"
                )
                prompt = build_retry_prompt(user_prompt, [])
                continue

            validation = self.validator.validate(
                original, output.improved, ledger, output.evidence_map
            )
            if validation.passed:
                attempts = attempt + 1
                confidence: ConfidenceLevel = (
                    "high" if attempts == 1 and not get_warnings(validation) else "medium"
                )
                logger.info(f"Rewrite accepted after {attempts} attempt(s)")
                return RetryOutcome(
                    original=original,
                    improved=output.improved,
                    reasoning=output.reasoning,
                    changes=output.changes,
                    evidence_map=list(output.evidence_map),
                    validation=validation,
                    confidence=confidence,
                    estimated_score_gain=calculate_score_gain(output.changes, attempts),
                    attempts=attempts,
                )

            rejected = validation
            logger.warning(
                f"Candidate rejected (attempt {attempt + 1}/{max_attempts}):\n"
                f"{format_validation_result(validation)}"
            )
            prompt = build_retry_prompt(user_prompt, get_critical_errors(validation), output)

        logger.warning(f"No compliant rewrite after {max_attempts} attempt(s); returning original")
        return build_fallback_outcome(original, max_attempts, rejected)
