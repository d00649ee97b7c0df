"""Micro-action planner for the Rewrite module.

Turns the original text, declared issues and the evidence ledger into a
RewritePlan: an ordered, bounded list of transformation hints plus hard
constraints. Planning is deterministic and has no side effects; the plan is
built once per request and reused verbatim on retries.
"""

from __future__ import annotations

import logging

from src.rewrite.config import RewriteConfig, get_rewrite_config
from src.rewrite.evidence import allow_resume_enrichment_in_bullet
from src.rewrite.lexicon import CompiledLexicon, get_lexicon
from src.rewrite.models import (
    AddHowAction,
    AddSpecificityAction,
    BulletContext,
    EvidenceLedger,
    MicroAction,
    PlanConstraints,
    RemoveFluffAction,
    RewriteGoal,
    RewritePlan,
    SurfaceToolAction,
    Tense,
    TenseAlignAction,
    UserInputRequest,
    VerbUpgradeAction,
)
from src.rewrite.planning.fluff import DetectedFluff, detect_fluff
from src.rewrite.planning.metrics import has_metric
from src.rewrite.planning.verbs import find_weak_verbs, has_passive_voice, suggest_verb_upgrade

logger = logging.getLogger(__name__)

MAX_SURFACED_TOOLS = 2

VAGUE_ISSUES = ("too_vague", "vague")
IMPACT_ISSUES = ("no_metric", "weak_impact")
CONCISENESS_ISSUES = ("too_long", "verbose")


def create_verb_upgrade_action(weak_verb: str, upgrade: str, context: str) -> VerbUpgradeAction:
    """Create a verb upgrade action."""
    return VerbUpgradeAction(weak_verb=weak_verb, upgrade=upgrade, context=context)


def create_remove_fluff_action(fluff: list[DetectedFluff]) -> RemoveFluffAction:
    """Bundle every detected fluff phrase into one action."""
    return RemoveFluffAction(
        terms=[f.phrase for f in fluff],
        replacements={
            f.phrase: f.replacement for f in fluff if f.replacement is not None
        },
    )


def create_add_how_action(original: str, lexicon: CompiledLexicon | None = None) -> AddHowAction:
    """Ask for method or approach; never asks for a new number."""
    if has_metric(original, lexicon):
        return AddHowAction(hint="Add more context about how this was achieved")
    return AddHowAction(hint="Explain HOW this was done (method, tools, approach)")


def create_tense_align_action(tense: Tense) -> TenseAlignAction:
    """Create a tense alignment action."""
    return TenseAlignAction(target_tense=tense)


def is_tool_relevant(tool: str, text: str, lexicon: CompiledLexicon | None = None) -> bool:
    """Check whether a tool is topically relevant to a line.

    Tools with configured keywords are relevant when any keyword occurs in
    the line. Unconfigured tools count as relevant when their name has at
    least three characters.
    """
    lexicon = lexicon or get_lexicon()
    keywords = lexicon.tool_relevance.get(tool.lower())
    if keywords:
        text_lower = text.lower()
        return any(keyword in text_lower for keyword in keywords)
    return len(tool) >= 3


def _plan_tool_surfacing(
    original: str,
    ledger: EvidenceLedger,
    context: BulletContext | None,
    sibling_lines: list[str],
    lexicon: CompiledLexicon,
) -> tuple[list[SurfaceToolAction], list[UserInputRequest]]:
    actions: list[SurfaceToolAction] = []
    questions: list[UserInputRequest] = []
    original_lower = original.lower()

    candidates: list[tuple[str, str]] = []
    seen: set[str] = set()
    for item in ledger.items:
        if item.type not in ("skills", "tools"):
            continue
        for term in item.normalized_terms:
            if term not in seen:
                seen.add(term)
                candidates.append((term, item.id))

    for tool, evidence_id in candidates:
        if tool.lower() in original_lower:
            continue
        if not is_tool_relevant(tool, original, lexicon):
            continue

        allowed, reason = allow_resume_enrichment_in_bullet(context, tool, sibling_lines)
        if allowed:
            actions.append(SurfaceToolAction(tool=tool, evidence_id=evidence_id))
        elif reason == "needs_user_confirmation":
            questions.append(
                UserInputRequest(
                    prompt=f"Did you use {tool} in this role?",
                    example_answer="Yes / No",
                )
            )

    return actions[:MAX_SURFACED_TOOLS], questions


def determine_goal(issues: list[str], transformations: list[MicroAction]) -> RewriteGoal:
    """Pick the rewrite goal: declared issues first, then planned actions."""
    if any(issue in issues for issue in IMPACT_ISSUES):
        return "impact"
    if any(issue in issues for issue in VAGUE_ISSUES):
        return "clarity"
    if any(issue in issues for issue in CONCISENESS_ISSUES):
        return "conciseness"

    types = {t.type for t in transformations}
    if "verb_upgrade" in types or "surface_tool" in types:
        return "impact"
    return "clarity"


def plan_micro_actions(
    original: str,
    ledger: EvidenceLedger,
    issues: list[str] | None = None,
    context: BulletContext | None = None,
    target_role: str | None = None,
    sibling_lines: list[str] | None = None,
    max_length: int | None = None,
    config: RewriteConfig | None = None,
    lexicon: CompiledLexicon | None = None,
) -> RewritePlan:
    """Plan the transformations for one rewrite.

    Args:
        original: Text under edit.
        ledger: Evidence available to the rewrite.
        issues: Issue codes declared by the caller (e.g. ``no_metric``).
        context: Where the line sits in the resume.
        target_role: Role being targeted; tailoring context only.
        sibling_lines: Other lines of the same role, used for tool permission.
        max_length: Overrides the configured maximum output length.
        config: Optional RewriteConfig. Uses global config if not provided.
        lexicon: Optional compiled lexicon. Uses the shared one if not provided.

    Returns:
        The RewritePlan.
    """
    config = config or get_rewrite_config()
    lexicon = lexicon or get_lexicon(config.lexicon_dir)
    issues = [issue.lower() for issue in issues or []]
    sibling_lines = sibling_lines if sibling_lines is not None else (
        context.sibling_lines if context else []
    )

    transformations: list[MicroAction] = []

    weak_verbs = find_weak_verbs(original, lexicon)
    for match in weak_verbs:
        upgrade = suggest_verb_upgrade(match.verb, original, lexicon)
        if upgrade:
            transformations.append(create_verb_upgrade_action(match.verb, upgrade, original))

    fluff = detect_fluff(original, lexicon)
    if fluff:
        transformations.append(create_remove_fluff_action(fluff))

    if "weak_verb" in issues and not weak_verbs:
        transformations.append(
            AddSpecificityAction(focus="technical", hint="Use stronger action verb at start")
        )

    if "no_metric" in issues:
        transformations.append(create_add_how_action(original, lexicon))

    if any(issue in issues for issue in VAGUE_ISSUES):
        transformations.append(
            AddSpecificityAction(focus="outcome", hint="Explain the specific outcome or impact")
        )

    if has_passive_voice(original):
        transformations.append(
            AddSpecificityAction(focus="technical", hint="Convert passive voice to active voice")
        )

    tool_actions, questions = _plan_tool_surfacing(
        original, ledger, context, sibling_lines, lexicon
    )
    transformations.extend(tool_actions)

    plan = RewritePlan(
        goal=determine_goal(issues, transformations),
        issues=issues,
        transformations=transformations,
        constraints=PlanConstraints(max_length=max_length or config.max_bullet_length),
        needs_user_input=questions or None,
    )
    logger.debug(
        f"Planned {len(transformations)} actions (goal={plan.goal}) "
        f"for target role {target_role or 'n/a'}"
    )
    return plan


# ==================== Plan utilities ====================


def get_action_types(plan: RewritePlan) -> list[str]:
    """Types of every planned action, in order."""
    return [t.type for t in plan.transformations]


def plan_has_action(plan: RewritePlan, action_type: str) -> bool:
    """Check whether the plan includes an action type."""
    return any(t.type == action_type for t in plan.transformations)


def get_verb_upgrades_from_plan(plan: RewritePlan) -> list[tuple[str, str]]:
    """(weak verb, upgrade) pairs from the plan."""
    return [
        (t.weak_verb, t.upgrade)
        for t in plan.transformations
        if isinstance(t, VerbUpgradeAction)
    ]


def get_fluff_terms_from_plan(plan: RewritePlan) -> list[str]:
    """Fluff phrases the plan asks to remove."""
    for t in plan.transformations:
        if isinstance(t, RemoveFluffAction):
            return list(t.terms)
    return []


def get_tools_to_surface_from_plan(plan: RewritePlan) -> list[tuple[str, str]]:
    """(tool, evidence id) pairs from the plan."""
    return [
        (t.tool, t.evidence_id)
        for t in plan.transformations
        if isinstance(t, SurfaceToolAction)
    ]


def plan_requires_transformations(plan: RewritePlan) -> bool:
    """Check whether the plan has anything to do."""
    return bool(plan.transformations)
