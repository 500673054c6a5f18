"""Validate and repair model-generated nutrition plans.

Pipeline: strict JSON parse -> rescue parse -> completeness check ->
model-assisted repair (one attempt) -> programmatic repair fallback ->
shape finalisation -> batch-prep enforcement.

After ``ensure_complete_plan`` the plan always has exactly 7 day_plans, each
with exactly ``meals_per_day`` meals.
"""

from __future__ import annotations

import copy
import json
import re
import sys
from typing import Any, Callable, Dict, List, Optional, Tuple

import json_repair

from batch_prep import enforce_batch_prep
from errors import InvalidUpstreamOutputError
from llm_config import CompletionOptions, repair_completion_options
from macro_calculator import per_meal_protein_g
from observability import log_data_structure, setup_structured_logger
from schemas import MacroTargets, NutritionPlan, normalize_plan_aliases
from tasks import create_plan_repair_prompt
from validation_config import REQUIRED_PLAN_DAYS, check_plan_completeness, count_plan_days

CompleteFn = Callable[[str, CompletionOptions], str]

# json_repair is slow on very large inputs
MAX_JSON_REPAIR_CHARS = 200_000

PLACEHOLDER_RECIPE = "Balanced plate: lean protein, a whole-grain carb and two handfuls of vegetables."

logger = setup_structured_logger("brosplit.plan_repair")


# ============================================================================
# Parsing
# ============================================================================


def _clean_json_text(text: str) -> str:
    """Remove markdown fences and thought blocks around a JSON payload."""
    text = text.strip()
    text = re.sub(r"<thought>.*?</thought>", "", text, flags=re.DOTALL)
    text = re.sub(r"```(?:json|JSON)?\s*\n?", "", text)
    return text.strip()


def _coerce_plan_object(parsed: Any) -> Optional[Dict[str, Any]]:
    if isinstance(parsed, dict):
        return parsed
    if isinstance(parsed, list) and parsed and all(isinstance(d, dict) for d in parsed):
        # A bare array of days
        return {"day_plans": parsed}
    return None


def parse_plan_json(raw: str) -> Dict[str, Any]:
    """Parse completion text into a plan dict.

    Tries a strict ``json.loads`` first, then a rescue parse of the
    fence-stripped text between the first ``{`` and the last ``}``
    (falling back to json_repair for that slice).

    Raises:
        InvalidUpstreamOutputError: No strategy produced a JSON object
    """
    text = raw or ""
    try:
        plan = _coerce_plan_object(json.loads(text))
        if plan is not None:
            return plan
    except (json.JSONDecodeError, TypeError):
        pass

    cleaned = _clean_json_text(text)
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start == -1 or end <= start:
        raise InvalidUpstreamOutputError("Model output contains no JSON object", raw_text=text)

    candidate = cleaned[start : end + 1]
    try:
        plan = _coerce_plan_object(json.loads(candidate))
        if plan is not None:
            print("   🔧 Rescue parse: extracted JSON object from wrapped output", file=sys.stderr)
            return plan
    except json.JSONDecodeError:
        pass

    if len(candidate) <= MAX_JSON_REPAIR_CHARS:
        repaired = json_repair.repair_json(candidate, return_objects=True)
        if isinstance(repaired, dict) and repaired:
            print("   🔧 Rescue parse: json_repair fixed malformed JSON", file=sys.stderr)
            return repaired
    else:
        print(
            f"   ⚠️  Skipping json_repair (input too large: {len(candidate)} chars)",
            file=sys.stderr,
        )

    raise InvalidUpstreamOutputError("Model output is not valid JSON", raw_text=text)


# ============================================================================
# Repair strategies
# ============================================================================


def request_model_repair(
    plan: Dict[str, Any],
    targets: MacroTargets,
    meals_per_day: int,
    complete: CompleteFn,
) -> Dict[str, Any]:
    """Ask the model to expand the plan to 7 days x ``meals_per_day`` meals."""
    prompt = create_plan_repair_prompt(plan, targets, meals_per_day)
    response = complete(prompt, repair_completion_options())
    repaired = parse_plan_json(response)
    return normalize_plan_aliases(repaired)


def _placeholder_meal(index: int, targets: MacroTargets, meals_per_day: int) -> Dict[str, Any]:
    share = 1 / max(meals_per_day, 1)
    return {
        "name": f"Meal {index}",
        "recipe": PLACEHOLDER_RECIPE,
        "ingredients": [],
        "macros": {
            "kcal": round(targets.kcal * share),
            "protein_g": round(targets.protein_g * share),
            "carbs_g": round(targets.carbs_g * share),
            "fat_g": round(targets.fat_g * share),
        },
    }


def repair_plan_programmatically(
    plan: Dict[str, Any],
    targets: MacroTargets,
    meals_per_day: int,
) -> Dict[str, Any]:
    """Deterministically pad the plan to 7 days of ``meals_per_day`` meals.

    Short days are padded by cloning their last meal, and days without meals
    get numbered placeholders. Missing days are clones of the last day,
    renumbered, with the meal order rotated by one so consecutive days differ.
    """
    days: List[Any] = plan.get("day_plans") or []
    days = [d if isinstance(d, dict) else {"meals": []} for d in days]

    if not days:
        days.append({"day": 1, "total_kcal": targets.kcal, "meals": []})

    for day in days:
        meals = day.get("meals")
        if not isinstance(meals, list):
            meals = []
        if not meals:
            meals = [_placeholder_meal(n, targets, meals_per_day) for n in range(1, meals_per_day + 1)]
        while len(meals) < meals_per_day:
            meals.append(copy.deepcopy(meals[-1]))
        day["meals"] = meals

    while len(days) < REQUIRED_PLAN_DAYS:
        clone = copy.deepcopy(days[-1])
        clone["day"] = len(days) + 1
        meals = clone.get("meals") or []
        if len(meals) > 1:
            clone["meals"] = meals[1:] + meals[:1]
        days.append(clone)

    plan["day_plans"] = days
    return plan


def _content_size(plan: Dict[str, Any]) -> Tuple[int, int]:
    """Return (usable days, usable meals) of a raw plan."""
    days = [d for d in count_plan_days(plan) if isinstance(d, dict)]
    meals = sum(len(d["meals"]) for d in days if isinstance(d.get("meals"), list))
    return len(days), meals


def _covers(candidate: Dict[str, Any], original: Dict[str, Any]) -> bool:
    """True when ``candidate`` has at least as many days and meals as ``original``."""
    candidate_days, candidate_meals = _content_size(candidate)
    original_days, original_meals = _content_size(original)
    return candidate_days >= original_days and candidate_meals >= original_meals


def _finalize_shape(plan: Dict[str, Any], targets: MacroTargets, meals_per_day: int) -> None:
    """Trim extra days/meals, renumber days and fill the summary."""
    days = plan["day_plans"][:REQUIRED_PLAN_DAYS]
    for number, day in enumerate(days, start=1):
        day["day"] = number
        day["meals"] = day["meals"][:meals_per_day]
        if day.get("total_kcal") in (None, "", 0):
            day["total_kcal"] = targets.kcal
    plan["day_plans"] = days

    summary = plan.get("summary")
    if not isinstance(summary, dict):
        summary = {}
    summary.setdefault("calories", targets.kcal)
    summary.setdefault("protein_g", targets.protein_g)
    summary.setdefault("carbs_g", targets.carbs_g)
    summary.setdefault("fat_g", targets.fat_g)
    summary.setdefault("fiber_target_g", targets.fiber_g)
    summary.setdefault("sodium_cap_mg", targets.sodium_mg_cap)
    summary.setdefault("per_meal_protein_g", per_meal_protein_g(targets, meals_per_day))
    if summary.get("meals_per_day") in (None, ""):
        summary["meals_per_day"] = meals_per_day
    plan["summary"] = summary


def ensure_complete_plan(
    raw: str,
    targets: MacroTargets,
    meals_per_day: int,
    complete: Optional[CompleteFn] = None,
) -> NutritionPlan:
    """Return a canonical 7-day plan from raw completion text.

    Args:
        raw: Completion text (ideally strict JSON)
        targets: Calculator targets; preserved verbatim in repair prompts
        meals_per_day: Required meals per day
        complete: Completion function used for the model-assisted repair;
            when None only programmatic repair is available

    Returns:
        NutritionPlan with 7 days of ``meals_per_day`` meals and batch prep

    Raises:
        InvalidUpstreamOutputError: The raw text cannot be parsed at all
    """
    try:
        plan = normalize_plan_aliases(parse_plan_json(raw))
    except InvalidUpstreamOutputError:
        log_data_structure(logger, "Unparseable nutrition output", raw, level="ERROR")
        raise

    status = check_plan_completeness(plan, meals_per_day)
    if not status["complete"]:
        print(
            f"\n🩹 Nutrition plan incomplete ({'; '.join(status['issues'][:3])}). Repairing...\n",
            file=sys.stderr,
        )
        logger.info(
            "Nutrition plan needs repair",
            extra={"extra_fields": {"issues": status["issues"], "meals_per_day": meals_per_day}},
        )

        repaired: Optional[Dict[str, Any]] = None
        if complete is not None:
            try:
                repaired = request_model_repair(plan, targets, meals_per_day, complete)
            except Exception as exc:  # noqa: BLE001
                print(
                    f"\n⚠️  Model-assisted repair failed ({exc}). Falling back to programmatic repair.\n",
                    file=sys.stderr,
                )
                logger.warning(
                    "Model-assisted repair failed",
                    extra={"extra_fields": {"error": str(exc), "error_type": type(exc).__name__}},
                )

        if repaired is not None and check_plan_completeness(repaired, meals_per_day)["complete"]:
            print("\n✅ Model-assisted repair produced a complete plan\n", file=sys.stderr)
            plan = repaired
        else:
            base = plan
            if repaired is not None and _covers(repaired, plan):
                base = repaired
            print("\n🧮 Programmatic repair: cloning meals and days\n", file=sys.stderr)
            plan = repair_plan_programmatically(base, targets, meals_per_day)

    _finalize_shape(plan, targets, meals_per_day)
    enforce_batch_prep(plan, meals_per_day)

    return NutritionPlan.model_validate(plan)
