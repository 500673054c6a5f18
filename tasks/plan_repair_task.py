"""Prompt asking the model to complete a partial nutrition plan."""

from __future__ import annotations

import json
from typing import Any, Dict

from schemas import MacroTargets

# Keep the echoed plan well inside the context window
MAX_PLAN_CHARS = 60_000


def create_plan_repair_prompt(
    plan: Dict[str, Any],
    targets: MacroTargets,
    meals_per_day: int,
) -> str:
    """Build the repair prompt.

    Args:
        plan: Partial plan as parsed from the first completion
        targets: Calculator targets, passed verbatim
        meals_per_day: Required meals per day

    Returns:
        Prompt text for a strict-JSON completion
    """
    plan_json = json.dumps(plan, indent=2, default=str)
    if len(plan_json) > MAX_PLAN_CHARS:
        plan_json = json.dumps(plan, default=str)[:MAX_PLAN_CHARS]
    targets_json = json.dumps(targets.model_dump(), indent=2)

    return f"""The nutrition plan below is INCOMPLETE. Return ONLY the corrected JSON object (no backticks, no prose).

TARGETS (use exactly, do not recompute):
{targets_json}

REQUIREMENTS:
- "day_plans" MUST contain exactly 7 days numbered 1-7.
- Every day MUST contain exactly {meals_per_day} meals with name, recipe, ingredients, macros and swaps.
- Keep every existing day and meal; add the missing ones, varying recipes across days.
- Keep "summary", "guidelines", "grocery_list" and "batch_prep"; extend the grocery list with any new ingredients.
- Each day should total about {targets.kcal} kcal and {targets.protein_g} g protein.

CURRENT PLAN:
{plan_json}"""
