"""Prompt builders for evidence-anchored rewrites.

The generator only ever sees the evidence ledger as its source of facts.
The job description, when given, is passed as tone and keyword guidance and
is explicitly marked as not being evidence.
"""

from __future__ import annotations

from src.rewrite.models import (
    AddHowAction,
    AddSpecificityAction,
    BulletContext,
    EvidenceLedger,
    GenerationOutput,
    MicroAction,
    PlanConstraints,
    RemoveFluffAction,
    RewritePlan,
    SurfaceToolAction,
    TenseAlignAction,
    ValidationItem,
    VerbUpgradeAction,
)

MAX_JOB_DESCRIPTION_CHARS = 1500

SYSTEM_PROMPT_BASE = """You are an expert resume editor. You improve resume text without ever inventing facts.

CRITICAL RULES:
- NEVER add numbers, percentages, dollar amounts, team sizes or durations that are not in the EVIDENCE
- NEVER add tools, technologies, languages or frameworks that are not in the EVIDENCE
- NEVER add company, product or client names that are not in the EVIDENCE
- NEVER add scale words (massive, enterprise-grade, global, millions of) that are not in the EVIDENCE
- The job description is a style guide only. It is NOT evidence
- If the text cannot be improved truthfully, return it unchanged

EVIDENCE MAP:
- For every phrase in your output that states a fact (tool, number, scope, outcome), add an
  evidence_map entry whose `improved_span` is copied EXACTLY from your output and whose
  `evidence_ids` lists the evidence IDs (E1, E2, E_skills, ...) that support it
- Only use evidence IDs that appear in the EVIDENCE list
"""

OUTPUT_FORMAT_INSTRUCTIONS = """# OUTPUT FORMAT

Return ONLY a JSON object with keys:
- `improved`: string, the rewritten text
- `evidence_map`: array of {"improved_span": string, "evidence_ids": [string]}
- `reasoning`: string, one or two sentences on what changed
- `changes`: {"stronger_verb": bool, "added_metric": bool, "more_specific": bool,
  "removed_fluff": bool, "tailored_to_role": bool}
"""

BULLET_SYSTEM_PROMPT = (
    SYSTEM_PROMPT_BASE
    + """
BULLET STYLE:
- One line, starting with a strong past-tense action verb (present tense for a current role)
- Action + what + how, with an outcome only if the evidence states one
- No first person pronouns, no trailing period
"""
)

SUMMARY_SYSTEM_PROMPT = (
    SYSTEM_PROMPT_BASE
    + """
SUMMARY STYLE:
- Two or three concise sentences in a professional, third-person-implied voice
- Lead with the role identity and core strengths supported by the evidence
- No buzzwords, no first person pronouns
"""
)

SECTION_SYSTEM_PROMPT = (
    BULLET_SYSTEM_PROMPT
    + """
SECTION COHERENCE:
- This bullet is one of several in the same role; keep tense and style consistent with them
- Do not repeat the opening verb used by the other bullets when a truthful alternative exists
"""
)

STRICT_CONSTRAINTS_BLOCK = """## STRICT CONSTRAINTS (previous attempt violated these)
- Use ONLY facts present in the EVIDENCE list above
- Remove every number, tool, company and scale word that the evidence does not contain
- Copy every `improved_span` character-for-character from your `improved` text
- Cite only evidence IDs from the EVIDENCE list
- Prefer a smaller truthful improvement over a larger unsupported one
"""


def format_ledger(ledger: EvidenceLedger) -> str:
    """Format ledger items as ``E1 (line): "text"`` lines."""
    if not ledger.items:
        return "(no evidence)"
    return "\n".join(f'{item.id} ({item.type}): "{item.text}"' for item in ledger.items)


def format_action(action: MicroAction) -> str:
    """Describe one micro-action as an instruction."""
    if isinstance(action, VerbUpgradeAction):
        return f'Replace weak verb "{action.weak_verb}" with a stronger verb such as "{action.upgrade}"'
    if isinstance(action, RemoveFluffAction):
        parts = []
        for term in action.terms:
            replacement = action.replacements.get(term)
            parts.append(f'"{term}" -> "{replacement}"' if replacement else f'"{term}"')
        return "Remove or tighten filler: " + ", ".join(parts)
    if isinstance(action, AddHowAction):
        return f"{action.hint}. Do not add numbers that are not in the evidence"
    if isinstance(action, SurfaceToolAction):
        return f'Mention "{action.tool}" where it fits naturally (evidence {action.evidence_id})'
    if isinstance(action, TenseAlignAction):
        return f"Write the line in {action.target_tense} tense"
    if isinstance(action, AddSpecificityAction):
        return f"{action.hint} ({action.focus})"
    return str(action)


def format_transformations(plan: RewritePlan) -> str:
    """Numbered list of planned transformations."""
    if not plan.transformations:
        return "- Light polish only: tighten wording and keep every fact"
    return "\n".join(
        f"{i}. {format_action(action)}" for i, action in enumerate(plan.transformations, 1)
    )


def format_constraints(constraints: PlanConstraints) -> str:
    """Hard constraints as a bullet list."""
    lines = [f"- Maximum length: {constraints.max_length} characters"]
    if constraints.forbid_new_numbers:
        lines.append("- Do not add any number that is not in the evidence")
    if constraints.forbid_new_tools:
        lines.append("- Do not add any tool, even one listed in the evidence")
    else:
        lines.append("- Only add tools that appear in the evidence")
    if constraints.forbid_new_companies:
        lines.append("- Do not add company or client names")
    return "\n".join(lines)


def _style_context(target_role: str | None, job_description: str | None) -> str:
    lines = []
    if target_role:
        lines.append(f"**Target Role:** {target_role}")
    if job_description:
        excerpt = job_description.strip()[:MAX_JOB_DESCRIPTION_CHARS]
        lines.append(
            "**Job Description (style guide only, NOT evidence):**\n" + excerpt
        )
    return "\n".join(lines) if lines else "No target role provided"


def build_bullet_prompt(
    original: str,
    ledger: EvidenceLedger,
    plan: RewritePlan,
    target_role: str | None = None,
    job_description: str | None = None,
    context: BulletContext | None = None,
) -> str:
    """Build the user prompt for a bullet rewrite.

    Args:
        original: Bullet text to improve.
        ledger: Evidence the rewrite may use.
        plan: Planned transformations and constraints.
        target_role: Optional role being targeted.
        job_description: Optional job description, used for tone only.
        context: Optional position of the bullet within the resume.

    Returns:
        Formatted prompt string.
    """
    context_lines = []
    if context:
        context_lines.append(f"**Section:** {context.section_type}")
        if context.role:
            context_lines.append(f"**Role:** {context.role}")
        if context.company:
            context_lines.append(f"**Company:** {context.company}")

    return f"""# ORIGINAL BULLET
{original}

---

# EVIDENCE (the only facts you may use)
{format_ledger(ledger)}

---

# CONTEXT
{chr(10).join(context_lines) or "No section context provided"}
{_style_context(target_role, job_description)}

---

# PLAN (goal: {plan.goal})
{format_transformations(plan)}

## Constraints
{format_constraints(plan.constraints)}

---

{OUTPUT_FORMAT_INSTRUCTIONS}"""


def build_summary_prompt(
    original: str,
    ledger: EvidenceLedger,
    plan: RewritePlan,
    target_role: str | None = None,
    job_description: str | None = None,
) -> str:
    """Build the user prompt for a summary rewrite."""
    return f"""# ORIGINAL SUMMARY
{original}

---

# EVIDENCE (the only facts you may use)
{format_ledger(ledger)}

---

# CONTEXT
{_style_context(target_role, job_description)}

---

# PLAN (goal: {plan.goal})
{format_transformations(plan)}

## Constraints
{format_constraints(plan.constraints)}

---

{OUTPUT_FORMAT_INSTRUCTIONS}"""


def build_retry_prompt(
    base_prompt: str,
    critical_items: list[ValidationItem],
    previous: GenerationOutput | None = None,
) -> str:
    """Wrap the base prompt with the errors of the previous attempt.

    Args:
        base_prompt: The unchanged first-attempt prompt.
        critical_items: Critical validation findings to fix.
        previous: The rejected candidate, if one was produced.

    Returns:
        The retry prompt.
    """
    if critical_items:
        errors = "\n".join(f"- {item.code.value}: {item.message}" for item in critical_items)
    else:
        errors = "- The previous response could not be used (invalid or missing output)"

    previous_text = f"\n## Rejected Rewrite\n{previous.improved}\n" if previous else ""

    return f"""{base_prompt}

---

# REVISION REQUEST

Your previous rewrite was rejected because it was not supported by the evidence.

## Errors
{errors}
{previous_text}
{STRICT_CONSTRAINTS_BLOCK}"""
