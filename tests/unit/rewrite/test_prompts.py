"""Tests for prompt builders."""

from src.rewrite.evidence import build_evidence_ledger
from src.rewrite.models import (
    AddHowAction,
    BulletContext,
    EvidenceLedger,
    ExtractedResumeData,
    GenerationOutput,
    PlanConstraints,
    RemoveFluffAction,
    RewritePlan,
    SurfaceToolAction,
    TenseAlignAction,
    ValidationCode,
    ValidationItem,
    VerbUpgradeAction,
)
from src.rewrite.prompts import (
    BULLET_SYSTEM_PROMPT,
    MAX_JOB_DESCRIPTION_CHARS,
    SECTION_SYSTEM_PROMPT,
    STRICT_CONSTRAINTS_BLOCK,
    SUMMARY_SYSTEM_PROMPT,
    build_bullet_prompt,
    build_retry_prompt,
    build_summary_prompt,
    format_action,
    format_constraints,
    format_ledger,
    format_transformations,
)


def _plan(*actions) -> RewritePlan:
    return RewritePlan(
        goal="impact",
        transformations=list(actions),
        constraints=PlanConstraints(max_length=200),
    )


class TestSystemPrompts:
    """Test the fixed system prompts."""

    def test_rules_present_in_every_mode(self):
        for prompt in (BULLET_SYSTEM_PROMPT, SUMMARY_SYSTEM_PROMPT, SECTION_SYSTEM_PROMPT):
            assert "CRITICAL RULES" in prompt
            assert "NOT evidence" in prompt
            assert "evidence_map" in prompt

    def test_section_prompt_extends_bullet_prompt(self):
        assert SECTION_SYSTEM_PROMPT.startswith(BULLET_SYSTEM_PROMPT)
        assert "SECTION COHERENCE" in SECTION_SYSTEM_PROMPT


class TestFormatting:
    """Test prompt fragments."""

    def test_format_ledger(self):
        ledger = build_evidence_ledger(
            "Worked on APIs", extracted=ExtractedResumeData(tools=["Docker"])
        )
        assert format_ledger(ledger) == 'E1 (line): "Worked on APIs"\nE_tools (tools): "Docker"'

    def test_format_empty_ledger(self):
        assert format_ledger(EvidenceLedger()) == "(no evidence)"

    def test_format_actions(self):
        assert format_action(
            VerbUpgradeAction(weak_verb="worked on", upgrade="built")
        ) == 'Replace weak verb "worked on" with a stronger verb such as "built"'
        assert format_action(
            RemoveFluffAction(terms=["in order to", "very"], replacements={"in order to": "to"})
        ) == 'Remove or tighten filler: "in order to" -> "to", "very"'
        assert "Do not add numbers" in format_action(AddHowAction(hint="Explain HOW"))
        assert format_action(SurfaceToolAction(tool="docker", evidence_id="E_tools")) == (
            'Mention "docker" where it fits naturally (evidence E_tools)'
        )
        assert format_action(TenseAlignAction(target_tense="past")) == (
            "Write the line in past tense"
        )

    def test_empty_plan_is_light_polish(self):
        assert format_transformations(_plan()).startswith("- Light polish only")

    def test_numbered_transformations(self):
        text = format_transformations(
            _plan(
                VerbUpgradeAction(weak_verb="helped", upgrade="enabled"),
                TenseAlignAction(target_tense="present"),
            )
        )
        assert text.splitlines()[0].startswith("1. Replace weak verb")
        assert text.splitlines()[1] == "2. Write the line in present tense"

    def test_constraints(self):
        text = format_constraints(PlanConstraints(max_length=150, forbid_new_tools=True))

        assert "- Maximum length: 150 characters" in text
        assert "Do not add any tool" in text
        assert "Do not add company or client names" in text


class TestBulletPrompt:
    """Test the bullet user prompt."""

    def test_sections(self):
        ledger = build_evidence_ledger("Worked on APIs")
        prompt = build_bullet_prompt(
            "Worked on APIs",
            ledger,
            _plan(VerbUpgradeAction(weak_verb="worked on", upgrade="built")),
            target_role="Backend Engineer",
            context=BulletContext(section_type="experience", role="Engineer", company="Acme"),
        )

        assert prompt.startswith("# ORIGINAL BULLET\nWorked on APIs")
        assert "# EVIDENCE (the only facts you may use)" in prompt
        assert "**Company:** Acme" in prompt
        assert "**Target Role:** Backend Engineer" in prompt
        assert "# PLAN (goal: impact)" in prompt
        assert "# OUTPUT FORMAT" in prompt

    def test_job_description_is_style_only_and_truncated(self):
        ledger = build_evidence_ledger("Worked on APIs")
        job_description = "Kubernetes " * 400
        prompt = build_bullet_prompt(
            "Worked on APIs", ledger, _plan(), job_description=job_description
        )

        assert "style guide only, NOT evidence" in prompt
        assert job_description.strip()[:MAX_JOB_DESCRIPTION_CHARS] in prompt
        assert job_description.strip() not in prompt

    def test_no_context(self):
        prompt = build_bullet_prompt("Led team", build_evidence_ledger("Led team"), _plan())

        assert "No section context provided" in prompt
        assert "No target role provided" in prompt


class TestSummaryPrompt:
    """Test the summary user prompt."""

    def test_summary_prompt(self):
        ledger = build_evidence_ledger("Engineer with backend focus", scope="resume")
        prompt = build_summary_prompt("Engineer with backend focus", ledger, _plan())

        assert prompt.startswith("# ORIGINAL SUMMARY\nEngineer with backend focus")
        assert "# EVIDENCE" in prompt


class TestRetryPrompt:
    """Test feedback prompts for retries."""

    def test_includes_errors_and_rejected_text(self):
        item = ValidationItem(
            code=ValidationCode.NEW_TOOL_ADDED,
            severity="critical",
            message="Added tool not in evidence: kubernetes",
        )
        previous = GenerationOutput(improved="Deployed Kubernetes clusters")

        prompt = build_retry_prompt("BASE", [item], previous)

        assert prompt.startswith("BASE")
        assert "# REVISION REQUEST" in prompt
        assert "- NEW_TOOL_ADDED: Added tool not in evidence: kubernetes" in prompt
        assert "## Rejected Rewrite\nDeployed Kubernetes clusters" in prompt
        assert prompt.rstrip().endswith(STRICT_CONSTRAINTS_BLOCK.rstrip())

    def test_without_errors(self):
        prompt = build_retry_prompt("BASE", [])

        assert "could not be used" in prompt
        assert "Rejected Rewrite" not in prompt
