"""Error types for the Rewrite module.

Every failure that reaches a caller is an ExecutionError carrying a stable
code, a user-facing title and suggestion, and the underlying cause.
Fabrication found during validation is not an error: it is retried and, at
worst, resolved by returning the original text.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class ExecutionErrorCode(str, Enum):
    """Stable error codes for rewrite failures."""

    # Input
    INVALID_INPUT = "INVALID_INPUT"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    MISSING_EVIDENCE = "MISSING_EVIDENCE"

    # Evidence
    EVIDENCE_BUILD_FAILED = "EVIDENCE_BUILD_FAILED"
    EVIDENCE_VALIDATION_FAILED = "EVIDENCE_VALIDATION_FAILED"
    INSUFFICIENT_EVIDENCE = "INSUFFICIENT_EVIDENCE"

    # Planning
    PLANNING_FAILED = "PLANNING_FAILED"
    NO_ACTIONS_PLANNED = "NO_ACTIONS_PLANNED"

    # Generation
    LLM_ERROR = "LLM_ERROR"
    LLM_TIMEOUT = "LLM_TIMEOUT"
    LLM_RATE_LIMIT = "LLM_RATE_LIMIT"
    LLM_INVALID_RESPONSE = "LLM_INVALID_RESPONSE"
    GENERATION_FAILED = "GENERATION_FAILED"

    # Fabrication
    FABRICATION_DETECTED = "FABRICATION_DETECTED"
    NEW_NUMBER_FABRICATED = "NEW_NUMBER_FABRICATED"
    NEW_TOOL_FABRICATED = "NEW_TOOL_FABRICATED"
    NEW_COMPANY_FABRICATED = "NEW_COMPANY_FABRICATED"
    EVIDENCE_MISMATCH = "EVIDENCE_MISMATCH"

    # Retry / coherence
    MAX_RETRIES_EXCEEDED = "MAX_RETRIES_EXCEEDED"
    COHERENCE_FAILED = "COHERENCE_FAILED"
    TENSE_DETECTION_FAILED = "TENSE_DETECTION_FAILED"

    # Configuration / internal
    CONFIG_ERROR = "CONFIG_ERROR"
    CONFIG_LOAD_FAILED = "CONFIG_LOAD_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


ERROR_MESSAGES: dict[ExecutionErrorCode, tuple[str, str]] = {
    ExecutionErrorCode.INVALID_INPUT: (
        "Invalid Input",
        "Please ensure the bullet/summary text is provided correctly.",
    ),
    ExecutionErrorCode.VALIDATION_ERROR: (
        "Validation Failed",
        "Check the input format and ensure all required fields are present.",
    ),
    ExecutionErrorCode.MISSING_EVIDENCE: (
        "Missing Evidence",
        "The rewrite requires evidence from the resume. Ensure resume data is available.",
    ),
    ExecutionErrorCode.EVIDENCE_BUILD_FAILED: (
        "Evidence Build Failed",
        "Could not build the evidence ledger. Please try again.",
    ),
    ExecutionErrorCode.EVIDENCE_VALIDATION_FAILED: (
        "Evidence Validation Failed",
        "The improved text contains claims not supported by evidence.",
    ),
    ExecutionErrorCode.INSUFFICIENT_EVIDENCE: (
        "Insufficient Evidence",
        "Not enough evidence to make improvements. Consider providing more context.",
    ),
    ExecutionErrorCode.PLANNING_FAILED: (
        "Planning Failed",
        "Could not plan rewrite actions. Please try again.",
    ),
    ExecutionErrorCode.NO_ACTIONS_PLANNED: (
        "No Actions Needed",
        "The content is already well-written. No improvements needed.",
    ),
    ExecutionErrorCode.LLM_ERROR: (
        "AI Service Error",
        "The generation service encountered an issue. Please try again in a moment.",
    ),
    ExecutionErrorCode.LLM_TIMEOUT: (
        "AI Service Timeout",
        "The request took too long. Please try again.",
    ),
    ExecutionErrorCode.LLM_RATE_LIMIT: (
        "Rate Limited",
        "Too many requests. Please wait a moment and try again.",
    ),
    ExecutionErrorCode.LLM_INVALID_RESPONSE: (
        "Invalid AI Response",
        "The generation service returned an unexpected format. Please try again.",
    ),
    ExecutionErrorCode.GENERATION_FAILED: (
        "Generation Failed",
        "Could not generate an improvement. Please try again.",
    ),
    ExecutionErrorCode.FABRICATION_DETECTED: (
        "Fabrication Detected",
        "The improvement included content not in your resume. "
        "The original was returned to maintain truthfulness.",
    ),
    ExecutionErrorCode.NEW_NUMBER_FABRICATED: (
        "Number Not in Resume",
        "The improvement tried to add a number not in your resume. "
        "Metrics you did not provide cannot be added.",
    ),
    ExecutionErrorCode.NEW_TOOL_FABRICATED: (
        "Tool Not in Resume",
        "The improvement tried to add a tool not in your resume. "
        "Add it to your skills section first.",
    ),
    ExecutionErrorCode.NEW_COMPANY_FABRICATED: (
        "Company Not in Resume",
        "The improvement tried to add a company not in your resume.",
    ),
    ExecutionErrorCode.EVIDENCE_MISMATCH: (
        "Evidence Mismatch",
        "The improvement could not be verified against your resume content.",
    ),
    ExecutionErrorCode.MAX_RETRIES_EXCEEDED: (
        "Improvement Failed",
        "This content could not be improved without fabricating. "
        "Consider adding more details to your resume first.",
    ),
    ExecutionErrorCode.COHERENCE_FAILED: (
        "Coherence Check Failed",
        "Could not ensure section consistency. Please try again.",
    ),
    ExecutionErrorCode.TENSE_DETECTION_FAILED: (
        "Tense Detection Failed",
        "Could not detect tense. Please try again.",
    ),
    ExecutionErrorCode.CONFIG_ERROR: (
        "Configuration Error",
        "Check the REWRITE_* settings and lexicon files.",
    ),
    ExecutionErrorCode.CONFIG_LOAD_FAILED: (
        "Config Load Failed",
        "Could not load configuration. Check the lexicon directory.",
    ),
    ExecutionErrorCode.INTERNAL_ERROR: (
        "Internal Error",
        "An unexpected error occurred. Please try again later.",
    ),
}

FABRICATION_CODES = frozenset(
    {
        ExecutionErrorCode.FABRICATION_DETECTED,
        ExecutionErrorCode.NEW_NUMBER_FABRICATED,
        ExecutionErrorCode.NEW_TOOL_FABRICATED,
        ExecutionErrorCode.NEW_COMPANY_FABRICATED,
        ExecutionErrorCode.EVIDENCE_MISMATCH,
    }
)


class ExecutionError(Exception):
    """Exception raised when a rewrite cannot be carried out."""

    def __init__(
        self,
        code: ExecutionErrorCode,
        details: dict[str, Any] | None = None,
        cause: BaseException | None = None,
        recoverable: bool = False,
    ):
        title, suggestion = ERROR_MESSAGES[code]
        message = details.get("message") if details else None
        super().__init__(f"{title}: {message}" if message else title)
        self.code = code
        self.title = title
        self.suggestion = suggestion
        self.details = details or {}
        self.cause = cause
        self.recoverable = recoverable

    def to_dict(self) -> dict[str, Any]:
        """Serialize for logging and API responses."""
        return {
            "code": self.code.value,
            "title": self.title,
            "message": str(self),
            "suggestion": self.suggestion,
            "details": self.details,
            "recoverable": self.recoverable,
            "cause": (
                {"type": type(self.cause).__name__, "message": str(self.cause)}
                if self.cause
                else None
            ),
        }

    def user_friendly(self) -> dict[str, Any]:
        """Return the fields safe to show an end user."""
        return {
            "code": self.code.value,
            "title": self.title,
            "message": str(self),
            "suggestion": self.suggestion,
            "recoverable": self.recoverable,
        }


def invalid_input_error(
    message: str,
    field: str | None = None,
    errors: list[dict[str, Any]] | None = None,
    cause: BaseException | None = None,
) -> ExecutionError:
    """Create an error for a malformed request.

    Args:
        message: Summary of what is wrong.
        field: Offending field, when there is a single one.
        errors: Per-field messages as ``{"field": ..., "message": ...}`` dicts.
        cause: Underlying exception, usually a pydantic ValidationError.
    """
    return ExecutionError(
        ExecutionErrorCode.INVALID_INPUT,
        {"message": message, "field": field, "errors": errors or []},
        cause,
    )


def validation_error(message: str, errors: list[Any] | None = None) -> ExecutionError:
    """Create an error carrying per-field validation messages."""
    return ExecutionError(
        ExecutionErrorCode.VALIDATION_ERROR, {"message": message, "errors": errors or []}
    )


def evidence_build_error(cause: BaseException | None = None) -> ExecutionError:
    """Create an error for a failed ledger build."""
    return ExecutionError(
        ExecutionErrorCode.EVIDENCE_BUILD_FAILED,
        {"message": "Failed to build evidence ledger"},
        cause,
    )


def fabrication_error(
    code: ExecutionErrorCode, fabricated_items: list[str]
) -> ExecutionError:
    """Create an error describing fabricated items."""
    if code not in FABRICATION_CODES:
        raise ValueError(f"{code} is not a fabrication code")
    return ExecutionError(
        code,
        {
            "message": f"Fabricated items detected: {', '.join(fabricated_items)}",
            "fabricated_items": fabricated_items,
        },
    )


def llm_error(
    code: ExecutionErrorCode, cause: BaseException | None = None
) -> ExecutionError:
    """Create a generation error; timeouts and rate limits are recoverable."""
    return ExecutionError(
        code,
        {"message": str(cause) if cause else "LLM request failed"},
        cause,
        recoverable=code
        in (ExecutionErrorCode.LLM_RATE_LIMIT, ExecutionErrorCode.LLM_TIMEOUT),
    )


def max_retries_error(
    attempts: int, last_validation_errors: list[str]
) -> ExecutionError:
    """Create an error for an exhausted retry budget."""
    return ExecutionError(
        ExecutionErrorCode.MAX_RETRIES_EXCEEDED,
        {
            "message": f"Failed after {attempts} attempts",
            "attempts": attempts,
            "last_validation_errors": last_validation_errors,
        },
    )


def internal_error(cause: BaseException | None = None) -> ExecutionError:
    """Create an error for an unexpected failure."""
    return ExecutionError(
        ExecutionErrorCode.INTERNAL_ERROR,
        {"message": str(cause) if cause else "An unexpected error occurred"},
        cause,
    )


def is_fabrication_error(error: BaseException) -> bool:
    """Check whether an error reports fabricated content."""
    return isinstance(error, ExecutionError) and error.code in FABRICATION_CODES


def is_recoverable_error(error: BaseException) -> bool:
    """Check whether an error can be retried."""
    return isinstance(error, ExecutionError) and error.recoverable


def wrap_error(
    error: BaseException,
    default_code: ExecutionErrorCode = ExecutionErrorCode.INTERNAL_ERROR,
    context: str | None = None,
) -> ExecutionError:
    """Wrap any exception in an ExecutionError, keeping the cause.

    Args:
        error: The exception to wrap.
        default_code: Code used when the error is not already an ExecutionError.
        context: Optional stage name, logged with the wrapped error.

    Returns:
        The original ExecutionError, or a new one wrapping ``error``.
    """
    if isinstance(error, ExecutionError):
        wrapped = error
    else:
        wrapped = ExecutionError(default_code, {"message": str(error)}, error)

    if context:
        logger.error(f"[{context}] {wrapped.code.value}: {wrapped}")
    return wrapped


def user_friendly_error(error: BaseException) -> dict[str, Any]:
    """Return user-facing error fields for any exception."""
    if isinstance(error, ExecutionError):
        return error.user_friendly()
    title, suggestion = ERROR_MESSAGES[ExecutionErrorCode.INTERNAL_ERROR]
    return {
        "code": ExecutionErrorCode.INTERNAL_ERROR.value,
        "title": title,
        "message": str(error) or "An unexpected error occurred",
        "suggestion": suggestion,
        "recoverable": False,
    }
