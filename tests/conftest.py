"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import os

import pytest

from src.rewrite.config import RewriteConfig, reset_rewrite_config
from src.rewrite.lexicon import CompiledLexicon, get_lexicon, reset_lexicon
from src.rewrite.models import EvidenceMapItem, GenerationOutput, RewriteChanges


class ScriptedAdapter:
    """Generation adapter that replays a fixed script of responses.

    Each entry is a GenerationOutput to return or an exception to raise.
    Every call is recorded so tests can inspect prompts and temperatures.
    """

    def __init__(self, script: list[GenerationOutput | BaseException]):
        self.script = list(script)
        self.calls: list[dict] = []

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float | None = None,
    ) -> GenerationOutput:
        self.calls.append(
            {
                "system_prompt": system_prompt,
                "user_prompt": user_prompt,
                "temperature": temperature,
            }
        )
        if not self.script:
            raise AssertionError("ScriptedAdapter ran out of responses")
        step = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(step, BaseException):
            raise step
        return step


def make_output(
    improved: str,
    evidence_map: dict[str, list[str]] | None = None,
    reasoning: str = "Tightened wording",
    **changes: bool,
) -> GenerationOutput:
    """Build a GenerationOutput from a span -> ids mapping."""
    return GenerationOutput(
        improved=improved,
        evidence_map=[
            EvidenceMapItem(improved_span=span, evidence_ids=ids)
            for span, ids in (evidence_map or {}).items()
        ],
        reasoning=reasoning,
        changes=RewriteChanges(**changes),
    )


@pytest.fixture
def isolated_env():
    """Remove REWRITE_* env vars and reset singletons for isolated testing."""
    saved = {k: os.environ.pop(k) for k in list(os.environ) if k.startswith("REWRITE_")}
    reset_rewrite_config()
    reset_lexicon()
    yield
    for k in [k for k in os.environ if k.startswith("REWRITE_")]:
        del os.environ[k]
    os.environ.update(saved)
    reset_rewrite_config()
    reset_lexicon()


@pytest.fixture
def config() -> RewriteConfig:
    """Default configuration, ignoring any local .env file."""
    return RewriteConfig(_env_file=None)


@pytest.fixture
def lexicon() -> CompiledLexicon:
    """The packaged lexicon."""
    return get_lexicon()


@pytest.fixture
def scripted_adapter():
    """Factory for ScriptedAdapter instances."""
    return ScriptedAdapter


@pytest.fixture
def make_generation():
    """Factory for GenerationOutput instances."""
    return make_output
