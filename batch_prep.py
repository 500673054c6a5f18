"""Derive batch-prep instructions from the ingredients a plan actually uses.

Steps are built mechanically from the grocery list (or, when it is empty, the
meal ingredients) so they only ever mention foods present in the plan. Model
provided batch-prep sections are kept when substantial and topped up with the
synthesized steps.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Union

from schemas import NutritionPlan
from validation_config import (
    DEFAULT_PREP_KEYWORDS,
    DEFAULT_PREP_SCHEDULE,
    MAX_SAUCES_PER_BATCH,
    MIN_BATCH_PREP_DAYS,
    MIN_BATCH_PREP_STEPS,
    SNACK_PACK_MIN_MEALS,
    PrepKeywords,
    PrepSchedule,
    count_plan_days,
)

QUANTITY_SUFFIX_PATTERN = re.compile(
    r"(?:\s+|\s*[-–—:,(]\s*)(?:x\s*)?\d+(?:[.,]\d+)?\s*"
    r"(?:kg|g|mg|ml|l|lbs?|oz|pcs?|pieces?|count)?\.?\s*\)?\s*$",
    re.IGNORECASE,
)


@dataclass
class PrepBuckets:
    """Ingredient names grouped by how they get prepped."""

    proteins: List[str] = field(default_factory=list)
    eggs: List[str] = field(default_factory=list)
    carbs: List[str] = field(default_factory=list)
    potatoes: List[str] = field(default_factory=list)
    vegetables: List[str] = field(default_factory=list)
    leafy: List[str] = field(default_factory=list)
    breakfast: List[str] = field(default_factory=list)
    sauces: List[str] = field(default_factory=list)

    @property
    def non_egg_proteins(self) -> List[str]:
        return [name for name in self.proteins if name not in self.eggs]

    @property
    def grains(self) -> List[str]:
        return [name for name in self.carbs if name not in self.potatoes]

    @property
    def sturdy_vegetables(self) -> List[str]:
        return [name for name in self.vegetables if name not in self.leafy]


def strip_quantity_suffix(name: str) -> str:
    """Drop a trailing quantity such as " (2 kg)", " - 500g" or " x12"."""
    return QUANTITY_SUFFIX_PATTERN.sub("", name.strip()).strip()


def _name_of(entry: Any) -> str:
    if isinstance(entry, str):
        return entry
    if isinstance(entry, dict):
        value = entry.get("item") or entry.get("name") or ""
        return value if isinstance(value, str) else str(value)
    return ""


def _grocery_entries(plan: Dict[str, Any]) -> List[Any]:
    grocery = plan.get("grocery_list")
    if isinstance(grocery, dict):
        grocery = grocery.get("items")
    return grocery if isinstance(grocery, list) else []


def _meal_ingredient_entries(plan: Dict[str, Any]) -> Iterable[Any]:
    for day in count_plan_days(plan):
        if not isinstance(day, dict):
            continue
        for meal in day.get("meals") or []:
            ingredients = meal.get("ingredients") if isinstance(meal, dict) else None
            if isinstance(ingredients, list):
                yield from ingredients
            elif isinstance(ingredients, str):
                yield ingredients


def collect_ingredient_names(plan: Union[Dict[str, Any], NutritionPlan]) -> List[str]:
    """Distinct ingredient names, grocery list first, original casing kept."""
    if isinstance(plan, NutritionPlan):
        plan = plan.model_dump()

    entries: Iterable[Any] = _grocery_entries(plan)
    names = [_name_of(entry) for entry in entries]
    if not any(name.strip() for name in names):
        names = [_name_of(entry) for entry in _meal_ingredient_entries(plan)]

    distinct: Dict[str, str] = {}
    for raw in names:
        name = strip_quantity_suffix(raw)
        if name and name.lower() not in distinct:
            distinct[name.lower()] = name
    return list(distinct.values())


def classify_ingredients(
    names: Iterable[str],
    keywords: PrepKeywords = DEFAULT_PREP_KEYWORDS,
) -> PrepBuckets:
    """Bucket names by keyword containment; a name may land in several buckets."""
    buckets = PrepBuckets()
    egg_pattern = re.compile(keywords.egg_pattern, re.IGNORECASE)

    def matches(lowered: str, words: Iterable[str]) -> bool:
        return any(word in lowered for word in words)

    for name in names:
        lowered = name.lower()
        is_egg = bool(egg_pattern.search(lowered))
        if is_egg:
            buckets.eggs.append(name)
        if is_egg or matches(lowered, keywords.proteins):
            buckets.proteins.append(name)
        if matches(lowered, keywords.carbs):
            buckets.carbs.append(name)
            if matches(lowered, keywords.potatoes):
                buckets.potatoes.append(name)
        if matches(lowered, keywords.vegetables):
            buckets.vegetables.append(name)
            if matches(lowered, keywords.leafy):
                buckets.leafy.append(name)
        if matches(lowered, keywords.breakfast):
            buckets.breakfast.append(name)
        if matches(lowered, keywords.sauces):
            buckets.sauces.append(name)

    return buckets


def _join(names: List[str]) -> str:
    if len(names) <= 1:
        return "".join(names)
    return ", ".join(names[:-1]) + " and " + names[-1]


def _bulk_steps(buckets: PrepBuckets, meals_per_day: int) -> List[str]:
    steps: List[str] = []

    if buckets.non_egg_proteins:
        steps.append(
            f"Batch-cook {_join(buckets.non_egg_proteins)}: season simply, bake or grill, "
            "cool and portion into containers. Freeze the portions for day 4 onward."
        )
    if buckets.eggs:
        steps.append(
            f"Hard-boil a batch of {_join(buckets.eggs)} (10-12 min), cool in cold water "
            "and refrigerate unpeeled."
        )

    if buckets.potatoes:
        steps.append(
            f"Roast or bake {_join(buckets.potatoes)} on one tray (200C, 35-45 min) "
            "and portion once cool."
        )
    if buckets.grains:
        steps.append(
            f"Cook {_join(buckets.grains)} on the stovetop in one large batch; "
            "cool quickly and refrigerate in meal-sized portions."
        )

    if buckets.leafy:
        steps.append(
            f"Wash and dry {_join(buckets.leafy)}; store loosely in an airtight container "
            "lined with paper towel."
        )
    if buckets.sturdy_vegetables:
        steps.append(
            f"Chop {_join(buckets.sturdy_vegetables)}; keep in sealed containers "
            "for quick roasting or steaming."
        )

    if buckets.breakfast:
        if meals_per_day >= SNACK_PACK_MIN_MEALS:
            steps.append(
                f"Assemble make-ahead breakfast and snack packs with {_join(buckets.breakfast)} "
                "for the first 3-4 days."
            )
        else:
            steps.append(
                f"Assemble make-ahead breakfast packs with {_join(buckets.breakfast)} "
                "for the first 3-4 mornings."
            )

    if buckets.sauces:
        steps.append(
            f"Batch a short list of marinades and sauces with "
            f"{_join(buckets.sauces[:MAX_SAUCES_PER_BATCH])}; store in labeled jars."
        )

    steps.append("Label every container with the day and meal so portions stay on plan.")
    return steps


def _top_up_steps(buckets: PrepBuckets) -> List[str]:
    steps: List[str] = []
    if buckets.proteins:
        steps.append(
            f"Reheat or top up proteins ({_join(buckets.proteins)}); "
            "cook a small fresh batch if fewer than 3 days remain."
        )
    if buckets.carbs:
        steps.append(f"Check carbs ({_join(buckets.carbs)}); cook a small fresh batch if running low.")
    if buckets.vegetables:
        steps.append(f"Refresh vegetables: chop a new batch of {_join(buckets.vegetables)}.")
    steps.append(
        "Take inventory of what is left and adjust portions or the grocery list for the rest of the week."
    )
    return steps


def synthesize_batch_prep(
    plan: Union[Dict[str, Any], NutritionPlan],
    meals_per_day: int,
    keywords: PrepKeywords = DEFAULT_PREP_KEYWORDS,
    schedule: PrepSchedule = DEFAULT_PREP_SCHEDULE,
) -> List[Dict[str, Any]]:
    """Build the bulk-prep and mid-week top-up instructions for a plan.

    Args:
        plan: Nutrition plan (dict or model)
        meals_per_day: Meals per day, decides breakfast-pack wording
        keywords: Classification lexicon
        schedule: Day labels for the two prep sessions

    Returns:
        List of {"day": label, "steps": [...]} entries
    """
    buckets = classify_ingredients(collect_ingredient_names(plan), keywords)
    return [
        {"day": schedule.bulk_day, "steps": _bulk_steps(buckets, meals_per_day)},
        {"day": schedule.top_up_day, "steps": _top_up_steps(buckets)},
    ]


def _clean_existing(existing: Any) -> List[Dict[str, Any]]:
    entries: List[Dict[str, Any]] = []
    for entry in existing if isinstance(existing, list) else []:
        if not isinstance(entry, dict):
            continue
        steps = entry.get("steps")
        steps = [s for s in steps if isinstance(s, str) and s.strip()] if isinstance(steps, list) else []
        entries.append({"day": str(entry.get("day") or ""), "steps": steps})
    return entries


def merge_batch_prep(existing: Any, synthesized: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Combine a model-provided batch-prep section with synthesized steps.

    A section with fewer than 2 days or fewer than 4 steps is replaced.
    Otherwise missing synthesized steps (exact text match) are appended to the
    matching day, and days absent from the section are added.
    """
    entries = _clean_existing(existing)
    total_steps = sum(len(entry["steps"]) for entry in entries)
    if len(entries) < MIN_BATCH_PREP_DAYS or total_steps < MIN_BATCH_PREP_STEPS:
        return [{"day": e["day"], "steps": list(e["steps"])} for e in synthesized]

    by_day = {entry["day"].strip().lower(): entry for entry in entries}
    for generated in synthesized:
        target = by_day.get(generated["day"].strip().lower())
        if target is None:
            target = {"day": generated["day"], "steps": []}
            entries.append(target)
            by_day[generated["day"].strip().lower()] = target
        for step in generated["steps"]:
            if step not in target["steps"]:
                target["steps"].append(step)
    return entries


def enforce_batch_prep(plan: Dict[str, Any], meals_per_day: int) -> Dict[str, Any]:
    """Replace or top up ``plan["batch_prep"]`` in place and return the plan."""
    synthesized = synthesize_batch_prep(plan, meals_per_day)
    plan["batch_prep"] = merge_batch_prep(plan.get("batch_prep"), synthesized)
    return plan
