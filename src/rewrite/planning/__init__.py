"""Planning for evidence-anchored rewrites.

Detects weak verbs, fluff, metrics and passive voice, and turns them into a
bounded RewritePlan of micro-actions.
"""

from src.rewrite.planning.fluff import (
    DetectedFluff,
    detect_fluff,
    fluff_reason,
    has_fluff,
    remove_fluff,
)
from src.rewrite.planning.metrics import (
    DetectedMetric,
    detect_metrics,
    detect_scale_claims,
    extract_numbers,
    extract_numeric_value,
    find_new_numbers,
    find_new_scale_claims,
    has_metric,
)
from src.rewrite.planning.planner import (
    create_tense_align_action,
    get_action_types,
    get_fluff_terms_from_plan,
    get_tools_to_surface_from_plan,
    get_verb_upgrades_from_plan,
    plan_has_action,
    plan_micro_actions,
    plan_requires_transformations,
)
from src.rewrite.planning.verbs import (
    WeakVerbMatch,
    find_weak_verbs,
    has_passive_voice,
    is_strong_verb,
    starts_with_weak_verb,
    suggest_verb_upgrade,
)

__all__ = [
    # Planner
    "plan_micro_actions",
    "create_tense_align_action",
    "get_action_types",
    "plan_has_action",
    "get_verb_upgrades_from_plan",
    "get_fluff_terms_from_plan",
    "get_tools_to_surface_from_plan",
    "plan_requires_transformations",
    # Verbs
    "WeakVerbMatch",
    "find_weak_verbs",
    "suggest_verb_upgrade",
    "starts_with_weak_verb",
    "is_strong_verb",
    "has_passive_voice",
    # Fluff
    "DetectedFluff",
    "detect_fluff",
    "has_fluff",
    "remove_fluff",
    "fluff_reason",
    # Metrics
    "DetectedMetric",
    "detect_metrics",
    "detect_scale_claims",
    "extract_numbers",
    "extract_numeric_value",
    "find_new_numbers",
    "find_new_scale_claims",
    "has_metric",
]
