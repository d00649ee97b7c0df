"""Generation adapter for the Rewrite module.

Provides the GenerationAdapter protocol that the retry controller depends on,
and RewriteLLM, the LiteLLM-backed implementation with structured output
parsing and a fallback model.
"""

from __future__ import annotations

import json
import logging
import os
import warnings
from typing import Protocol

from litellm import Timeout, acompletion
from pydantic import ValidationError

from src.rewrite.config import RewriteConfig, get_rewrite_config
from src.rewrite.evidence_map import parse_evidence_map
from src.rewrite.models import GenerationOutput

logger = logging.getLogger(__name__)

warnings.filterwarnings(
    "ignore",
    message=r"(?s)^Pydantic serializer warnings:.*",
    category=UserWarning,
)


class LLMError(Exception):
    """Exception raised when LLM operations fail."""

    def __init__(self, message: str, original_error: Exception | None = None):
        super().__init__(message)
        self.original_error = original_error


class GenerationAdapter(Protocol):
    """Anything that turns a prompt pair into a structured candidate rewrite."""

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float | None = None,
    ) -> GenerationOutput: ...


class RewriteLLM:
    """LLM client for rewrite generation.

    Sends the system and user prompts through LiteLLM and parses the reply
    into a GenerationOutput. When the primary model fails with anything but
    a timeout, the configured fallback model is tried once.
    """

    def __init__(self, config: RewriteConfig | None = None):
        """Initialize the LLM client.

        Args:
            config: Optional RewriteConfig. Uses global config if not provided.
        """
        self.config = config or get_rewrite_config()
        self._setup_provider_env()

    def _setup_provider_env(self) -> None:
        """Set up provider-specific environment variables.

        Anthropic reads custom base URLs from the environment rather than
        from call parameters.
        """
        if self.config.llm_base_url and self.config.llm_provider == "anthropic":
            # The Anthropic SDK appends /v1 itself
            base_url = self.config.llm_base_url.rstrip("/")
            if base_url.endswith("/v1"):
                base_url = base_url[:-3]
            os.environ["ANTHROPIC_BASE_URL"] = base_url
            if self.config.llm_api_key:
                os.environ["ANTHROPIC_API_KEY"] = self.config.llm_api_key

    def _get_model_name(self, model: str | None = None) -> str:
        """Get the model name formatted for LiteLLM.

        Args:
            model: Model to format. Defaults to the primary model.

        Returns:
            Model name with provider prefix if needed.
        """
        model = model or self.config.llm_model
        if "/" in model:
            return model

        if self.config.llm_provider == "anthropic":
            return f"anthropic/{model}"

        # Custom base URLs are OpenAI-compatible endpoints
        if self.config.llm_base_url:
            return f"openai/{model}"

        if self.config.llm_provider == "openai":
            return model

        return f"{self.config.llm_provider}/{model}"

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float | None = None,
    ) -> GenerationOutput:
        """Generate a candidate rewrite.

        Args:
            system_prompt: Rules and output contract.
            user_prompt: Original text, evidence and plan.
            temperature: Sampling temperature. Defaults to the configured value.

        Returns:
            Parsed GenerationOutput.

        Raises:
            LLMError: If the call fails or the response cannot be parsed.
        """
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]
        temperature = self.config.llm_temperature if temperature is None else temperature

        try:
            response = await self._call_completion(messages, temperature)
        except Timeout as e:
            raise LLMError(
                f"LLM request timed out (timeout={self.config.llm_timeout}s). "
                "Increase `REWRITE_LLM_TIMEOUT` or use a faster model.",
                e,
            ) from e
        except Exception as e:
            fallback = self.config.llm_fallback_model
            if not fallback or fallback == self.config.llm_model:
                raise LLMError(f"LLM call failed: {e}", e) from e
            logger.warning(f"Primary model failed, trying fallback {fallback}: {e}")
            try:
                response = await self._call_completion(messages, temperature, model=fallback)
            except Exception as fallback_error:
                raise LLMError(
                    f"LLM call failed on primary and fallback models: {fallback_error}",
                    fallback_error,
                ) from fallback_error

        return self._parse_response(response)

    async def _call_completion(
        self,
        messages: list[dict],
        temperature: float,
        model: str | None = None,
    ):
        """Make the actual LLM API call.

        Args:
            messages: List of message dictionaries.
            temperature: Sampling temperature.
            model: Optional model override.

        Returns:
            LiteLLM completion response.
        """
        kwargs = {
            "model": self._get_model_name(model),
            "messages": messages,
            "temperature": temperature,
            "max_tokens": self.config.llm_max_tokens,
            "timeout": self.config.llm_timeout,
            "response_format": {"type": "json_object"},
        }

        if self.config.llm_api_key:
            kwargs["api_key"] = self.config.llm_api_key

        # Anthropic base_url is set via env var in _setup_provider_env()
        if self.config.llm_base_url and self.config.llm_provider != "anthropic":
            kwargs["base_url"] = self.config.llm_base_url

        return await acompletion(**kwargs)

    def _parse_response(self, response) -> GenerationOutput:
        """Parse and validate the LLM response.

        The evidence map is parsed leniently; malformed entries are dropped
        and later show up as unsupported claims during validation.

        Raises:
            LLMError: If the content is missing, not JSON, or fails validation.
        """
        message = response.choices[0].message
        content = getattr(message, "content", None)

        # Some providers return structured output as tool call arguments.
        if content is None:
            tool_calls = getattr(message, "tool_calls", None) or []
            if tool_calls:
                function = getattr(tool_calls[0], "function", None)
                arguments = getattr(function, "arguments", None)
                if isinstance(arguments, str) and arguments.strip():
                    content = arguments

        if content is None:
            raise LLMError("LLM returned no content to parse.")

        content = self._extract_json_from_response(content)

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise LLMError(f"Failed to parse LLM response as JSON: {e}", e) from e

        if not isinstance(data, dict):
            raise LLMError(f"Expected a JSON object, got {type(data).__name__}")

        data["evidence_map"] = parse_evidence_map(data.get("evidence_map"))

        try:
            return GenerationOutput.model_validate(data)
        except ValidationError as e:
            raise LLMError(
                f"Failed to parse LLM response - validation error: {e}", e
            ) from e

    def _extract_json_from_response(self, content: str) -> str:
        """Extract JSON from response, handling markdown code fences.

        Args:
            content: Raw response content.

        Returns:
            Extracted JSON string.
        """
        content = content.strip()

        # Remove markdown code fences (```json ... ``` or ``` ... ```)
        if content.startswith("```"):
            first_newline = content.find("\n")
            if first_newline != -1:
                content = content[first_newline + 1 :]
            if content.endswith("```"):
                content = content[:-3]
            content = content.strip()

        if content.startswith("{"):
            return content

        # Some models prepend reasoning text. Extract the first JSON object.
        start = content.find("{")
        if start == -1:
            return content

        depth = 0
        for idx in range(start, len(content)):
            ch = content[idx]
            if ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return content[start : idx + 1]
        return content
