"""Centralized thresholds for nutrition plan shape checks and batch-prep rules.

Single source of truth for:
- plan_repair.py completeness check and trimming
- batch_prep.py keyword classification and merge policy
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Tuple


# =============================================================================
# Plan Shape
# =============================================================================

REQUIRED_PLAN_DAYS = 7

# An existing batch_prep section weaker than this is replaced, not merged
MIN_BATCH_PREP_DAYS = 2
MIN_BATCH_PREP_STEPS = 4


def count_plan_days(plan: Dict[str, Any]) -> List[Any]:
    """Return the day entries of a plan, honouring the legacy ``days`` key."""
    days = plan.get("day_plans")
    if not isinstance(days, list):
        days = plan.get("days")
    return days if isinstance(days, list) else []


def check_plan_completeness(plan: Dict[str, Any], meals_per_day: int) -> Dict[str, Any]:
    """Check whether a raw plan already has 7 days of ``meals_per_day`` meals.

    Args:
        plan: Raw plan dict as parsed from model output
        meals_per_day: Required number of meals per day

    Returns:
        Dict with:
        - complete: bool
        - issues: List[str] - Human-readable shortfalls
    """
    issues: List[str] = []
    days = count_plan_days(plan)

    if len(days) < REQUIRED_PLAN_DAYS:
        issues.append(f"{len(days)}/{REQUIRED_PLAN_DAYS} days present")

    for index, day in enumerate(days, start=1):
        meals = day.get("meals") if isinstance(day, dict) else None
        meal_count = len(meals) if isinstance(meals, list) else 0
        if meal_count < meals_per_day:
            issues.append(f"day {index}: {meal_count}/{meals_per_day} meals")

    return {"complete": not issues, "issues": issues}


# =============================================================================
# Batch-Prep Classification Table
# =============================================================================


@dataclass(frozen=True)
class PrepKeywords:
    """Keyword lexicon used to bucket grocery names for batch prep.

    Matching is case-insensitive substring containment, except eggs which
    match the whole word so "eggplant" stays a vegetable.
    """

    proteins: Tuple[str, ...] = (
        "chicken",
        "turkey",
        "beef",
        "steak",
        "pork",
        "lamb",
        "salmon",
        "tuna",
        "cod",
        "tilapia",
        "shrimp",
        "fish",
        "tofu",
        "tempeh",
        "seitan",
        "mince",
    )
    egg_pattern: str = r"\beggs?\b"
    carbs: Tuple[str, ...] = (
        "rice",
        "quinoa",
        "pasta",
        "noodle",
        "couscous",
        "bulgur",
        "barley",
        "potato",
        "yam",
        "bread",
        "tortilla",
        "wrap",
    )
    potatoes: Tuple[str, ...] = ("potato", "yam")
    vegetables: Tuple[str, ...] = (
        "broccoli",
        "spinach",
        "kale",
        "lettuce",
        "salad",
        "greens",
        "green bean",
        "pepper",
        "zucchini",
        "carrot",
        "cauliflower",
        "asparagus",
        "cabbage",
        "cucumber",
        "tomato",
        "onion",
        "mushroom",
        "eggplant",
        "brussels",
    )
    leafy: Tuple[str, ...] = ("green", "spinach", "salad", "lettuce")
    breakfast: Tuple[str, ...] = (
        "oat",
        "granola",
        "yogurt",
        "skyr",
        "berries",
        "chia",
        "whey",
        "protein powder",
        "pancake",
    )
    sauces: Tuple[str, ...] = (
        "olive oil",
        "sauce",
        "salsa",
        "pesto",
        "marinade",
        "dressing",
        "vinaigrette",
        "tahini",
        "hummus",
        "teriyaki",
    )


DEFAULT_PREP_KEYWORDS = PrepKeywords()

# How many sauces to batch on Sunday
MAX_SAUCES_PER_BATCH = 3

# Breakfast packs also cover snacks from this many meals per day
SNACK_PACK_MIN_MEALS = 4


@dataclass(frozen=True)
class PrepSchedule:
    """Day labels for the bulk prep and the mid-week top-up."""

    bulk_day: str = "Sunday"
    top_up_day: str = "Thursday"


DEFAULT_PREP_SCHEDULE = PrepSchedule()
