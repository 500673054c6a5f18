"""Prompt for generating the 7-day nutrition plan as strict JSON."""

from __future__ import annotations

import json
from typing import Any, Dict

from macro_calculator import per_meal_protein_g
from schemas import MacroTargets, ProfileInput

DEFAULT_GUIDELINES = {
    "protein_per_meal_rule": (
        "Aim ~0.25-0.40 g/kg (~20-40 g) with ~2-3 g leucine. Evenly space every 3-4 h."
    ),
    "pre_post": (
        "Have a protein-containing meal within ~3 h around training; "
        "keep carbs higher on training days."
    ),
    "notes": "General nutrition guidance; not medical advice.",
}


def _plan_shape(profile: ProfileInput, targets: MacroTargets) -> Dict[str, Any]:
    """Example document with the exact keys the parser expects."""
    return {
        "summary": {
            "calories": targets.kcal,
            "protein_g": targets.protein_g,
            "carbs_g": targets.carbs_g,
            "fat_g": targets.fat_g,
            "fiber_target_g": targets.fiber_g,
            "sodium_cap_mg": targets.sodium_mg_cap,
            "meals_per_day": profile.meals_per_day,
            "per_meal_protein_g": per_meal_protein_g(targets, profile.meals_per_day),
        },
        "guidelines": DEFAULT_GUIDELINES,
        "day_plans": [
            {
                "day": 1,
                "total_kcal": targets.kcal,
                "meals": [
                    {
                        "name": "Breakfast",
                        "recipe": "High-protein Greek yogurt bowl with oats & berries",
                        "ingredients": [
                            {"item": "nonfat greek yogurt", "grams": 250},
                            {"item": "rolled oats", "grams": 50},
                            {"item": "blueberries", "grams": 80},
                            {"item": "honey", "grams": 10},
                        ],
                        "macros": {"kcal": 0, "protein_g": 0, "carbs_g": 0, "fat_g": 0},
                        "swaps": ["lactose-free yogurt", "soy skyr"],
                    }
                ],
            }
        ],
        "grocery_list": {
            "week": 1,
            "budget": profile.budget_level,
            "items": [
                {"item": "chicken breast", "kg": 2.0},
                {"item": "rice", "kg": 2.0},
                {"item": "eggs", "count": 18},
                {"item": "olive oil", "ml": 250},
                {"item": "oats", "kg": 1.0},
                {"item": "frozen berries", "kg": 1.0},
                {"item": "leafy greens", "kg": 1.0},
            ],
        },
        "batch_prep": [
            {
                "day": "Sunday",
                "steps": [
                    "Cook 2 kg chicken (salt/pepper).",
                    "Batch rice (2 kg dry).",
                    "Boil 12 eggs.",
                    "Pre-chop salad mix.",
                ],
            },
            {"day": "Thursday", "steps": ["Top-up proteins & greens.", "Re-portion snacks."]},
        ],
        "constraints": {
            "cuisine_prefs": list(profile.cuisine_prefs),
            "diet_prefs": list(profile.diet_prefs),
            "allergies": list(profile.allergies),
        },
    }


def create_nutrition_plan_prompt(profile: ProfileInput, targets: MacroTargets) -> str:
    """Build the nutrition prompt with the calculator targets embedded verbatim."""
    shape_json = json.dumps(_plan_shape(profile, targets), indent=2)
    meals = profile.meals_per_day
    diets = ", ".join(d for d in profile.diet_prefs if d != "none") or "no restrictions"
    allergies = ", ".join(profile.allergies) or "none"
    cuisines = ", ".join(profile.cuisine_prefs) or "any"

    return f"""Return ONLY JSON with this shape (no backticks, no prose):

{shape_json}

RULES:
- "day_plans" MUST contain exactly 7 days numbered 1-7.
- Every day MUST contain exactly {meals} meals.
- Use the summary targets exactly as given; do not recompute them.
- Each day's meals should add up to about {targets.kcal} kcal and {targets.protein_g} g protein.
- Fill every meal's "macros" with real estimates (no zeros).
- Ingredient quantities use ONE of "grams", "ml" or "count"; grocery items use ONE of "kg", "ml" or "count".
- Keep sodium under {targets.sodium_mg_cap} mg/day and fiber at or above {targets.fiber_g} g/day.
- Diet: {diets}. Allergies (never include): {allergies}. Cuisines: {cuisines}.
- Budget level: {profile.budget_level}. Reuse ingredients across days to keep the grocery list short.
- The grocery list covers the whole week; batch_prep only references grocery items."""
