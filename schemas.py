"""Pydantic models for profiles, targets, workout plans and nutrition plans."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator

Sex = Literal["male", "female"]
ActivityLevel = Literal["sedentary", "light", "moderate", "very_active"]
Goal = Literal["cut", "recomp", "gain"]
TrainingLoad = Literal["light", "moderate", "high"]
BudgetLevel = Literal["tight", "normal", "flex"]
DietTag = Literal[
    "none",
    "vegetarian",
    "vegan",
    "pescatarian",
    "keto",
    "paleo",
    "halal",
    "kosher",
    "gluten_free",
    "dairy_free",
]
Tier = Literal["base", "pro"]

SODIUM_CAP_MG = 2300

THOUSANDS_PATTERN = re.compile(r"^\d{1,3}(?:,\d{3})+(?:\.\d+)?\b")


def _to_number(value: Any) -> Optional[float]:
    """Coerce model-provided numbers ("250", 250.0, "250 g") to float or None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
        return number if math.isfinite(number) else None
    if isinstance(value, str):
        text = value.strip()
        if THOUSANDS_PATTERN.match(text):
            text = text.replace(",", "")
        text = text.replace(",", ".")
        number = ""
        for char in text:
            if char.isdigit() or (char == "." and "." not in number):
                number += char
            elif number:
                break
            elif char not in "+ ":
                return None
        try:
            parsed = float(number) if number else None
        except ValueError:
            return None
        return parsed if parsed is not None and math.isfinite(parsed) else None
    return None


def _to_int(value: Any) -> Optional[int]:
    number = _to_number(value)
    return int(round(number)) if number is not None else None


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    if isinstance(value, tuple):
        return list(value)
    return [value]


# ============================================================================
# Profile & Targets
# ============================================================================


class ProfileInput(BaseModel):
    """Body, activity and preference profile used for nutrition targets."""

    model_config = {"frozen": True}

    sex: Sex = Field(..., description="Biological sex used by Mifflin-St Jeor")
    age: int = Field(..., ge=13, le=90, description="Age in years")
    height_cm: float = Field(..., ge=120, le=230, description="Height in centimetres")
    weight_kg: float = Field(..., ge=35, le=250, description="Body weight in kilograms")
    activity_level: ActivityLevel = Field(..., description="Daily activity level")
    goal: Goal = Field(..., description="Body composition goal")
    training_load: TrainingLoad = Field(..., description="Weekly training load")
    meals_per_day: int = Field(default=4, ge=3, le=6, description="Meals per day")
    cuisine_prefs: List[str] = Field(default_factory=list)
    diet_prefs: List[DietTag] = Field(default_factory=lambda: ["none"])
    allergies: List[str] = Field(default_factory=list)
    budget_level: BudgetLevel = Field(default="normal")

    @field_validator("cuisine_prefs", "allergies", mode="before")
    @classmethod
    def _dedupe_strings(cls, value: Any) -> List[str]:
        seen: List[str] = []
        for item in _as_list(value):
            text = _to_text(item).strip()
            if text and text.lower() not in (s.lower() for s in seen):
                seen.append(text)
        return seen

    @field_validator("diet_prefs", mode="before")
    @classmethod
    def _default_diet(cls, value: Any) -> List[Any]:
        items = list(dict.fromkeys(_as_list(value)))
        return items or ["none"]


class MacroTargets(BaseModel):
    """Daily calorie and macronutrient targets."""

    model_config = {"frozen": True}

    kcal: int = Field(..., description="Daily calorie target")
    protein_g: int = Field(..., description="Protein target in grams")
    carbs_g: int = Field(..., description="Carbohydrate target in grams")
    fat_g: int = Field(..., description="Fat target in grams")
    fiber_g: int = Field(..., description="Fiber target in grams")
    sodium_mg_cap: int = Field(default=SODIUM_CAP_MG, description="Sodium cap in mg")


# ============================================================================
# Workout Plan
# ============================================================================


class WorkoutDay(BaseModel):
    """One training day with its exercise lines, verbatim."""

    name: str
    exercises: List[str] = Field(default_factory=list)


class WorkoutWeek(BaseModel):
    """One program week in source order."""

    number: int
    days: List[WorkoutDay] = Field(default_factory=list)


class WorkoutLifts(BaseModel):
    """Known one-rep maxes in pounds."""

    bench: Optional[float] = None
    squat: Optional[float] = None
    deadlift: Optional[float] = None
    ohp: Optional[float] = None

    @field_validator("bench", "squat", "deadlift", "ohp", mode="before")
    @classmethod
    def _numeric(cls, value: Any) -> Optional[float]:
        return _to_number(value)


class WorkoutRequest(BaseModel):
    """Client profile fields used to build the workout prompt.

    Accepts the camelCase keys sent by the web client.
    """

    model_config = {"populate_by_name": True}

    days_per_week: int = Field(
        ..., ge=1, le=7, validation_alias=AliasChoices("days_per_week", "daysPerWeek")
    )
    equipment: str = Field(default="full gym")
    injuries: List[str] = Field(default_factory=list)
    experience: str = Field(default="intermediate")
    goal: str = Field(default="build muscle")
    dislikes: List[str] = Field(default_factory=list)
    focus_muscle: str = Field(
        default="", validation_alias=AliasChoices("focus_muscle", "focusMuscle")
    )
    age: Optional[int] = Field(default=None, ge=13, le=90)
    sex: Optional[str] = None
    bodyweight: Optional[float] = Field(default=None, description="Bodyweight in lbs")
    lifts: WorkoutLifts = Field(default_factory=WorkoutLifts)

    @field_validator("injuries", "dislikes", mode="before")
    @classmethod
    def _string_list(cls, value: Any) -> List[str]:
        if isinstance(value, str):
            value = value.split(",")
        return [_to_text(v).strip() for v in _as_list(value) if _to_text(v).strip()]


# ============================================================================
# Quantities (tagged union, normalised once at the parse boundary)
# ============================================================================


def _format_amount(amount: float) -> str:
    return str(int(amount)) if float(amount).is_integer() else f"{amount:.1f}"


@dataclass(frozen=True)
class Grams:
    amount: float

    @property
    def label(self) -> str:
        return f"{_format_amount(self.amount)} g"


@dataclass(frozen=True)
class Kilograms:
    amount: float

    @property
    def label(self) -> str:
        return f"{_format_amount(self.amount)} kg"


@dataclass(frozen=True)
class Milliliters:
    amount: float

    @property
    def label(self) -> str:
        return f"{_format_amount(self.amount)} ml"


@dataclass(frozen=True)
class Count:
    amount: float

    @property
    def label(self) -> str:
        return f"x{_format_amount(self.amount)}"


@dataclass(frozen=True)
class Unspecified:
    @property
    def label(self) -> str:
        return ""


Quantity = Union[Grams, Kilograms, Milliliters, Count, Unspecified]


def _keep_single_quantity(data: Dict[str, Any], fields: List[str]) -> Dict[str, Any]:
    """Keep only the first numeric quantity field among ``fields``."""
    kept = False
    for name in fields:
        number = _to_number(data.get(name))
        if number is None or kept:
            data[name] = None
            continue
        data[name] = number
        kept = True
    return data


class Ingredient(BaseModel):
    """Meal ingredient with at most one of grams, ml or count."""

    item: str = ""
    grams: Optional[float] = None
    ml: Optional[float] = None
    count: Optional[float] = None

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"item": data}
        if not isinstance(data, dict):
            return {"item": _to_text(data)}
        data = dict(data)
        data["item"] = _to_text(data.get("item") or data.get("name")).strip()
        if data.get("grams") is None and _to_number(data.get("kg")) is not None:
            data["grams"] = _to_number(data["kg"]) * 1000
        return _keep_single_quantity(data, ["grams", "ml", "count"])

    @property
    def quantity(self) -> Quantity:
        if self.grams is not None:
            return Grams(self.grams)
        if self.ml is not None:
            return Milliliters(self.ml)
        if self.count is not None:
            return Count(self.count)
        return Unspecified()


class GroceryItem(BaseModel):
    """Grocery entry with at most one of kg, ml or count."""

    item: str = ""
    kg: Optional[float] = None
    ml: Optional[float] = None
    count: Optional[float] = None

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"item": data}
        if not isinstance(data, dict):
            return {"item": _to_text(data)}
        data = dict(data)
        data["item"] = _to_text(data.get("item") or data.get("name")).strip()
        if data.get("kg") is None and _to_number(data.get("grams")) is not None:
            data["kg"] = _to_number(data["grams"]) / 1000
        return _keep_single_quantity(data, ["kg", "ml", "count"])

    @property
    def quantity(self) -> Quantity:
        if self.kg is not None:
            return Kilograms(self.kg)
        if self.ml is not None:
            return Milliliters(self.ml)
        if self.count is not None:
            return Count(self.count)
        return Unspecified()


# ============================================================================
# Nutrition Plan
# ============================================================================


class MealMacros(BaseModel):
    kcal: Optional[float] = None
    protein_g: Optional[float] = None
    carbs_g: Optional[float] = None
    fat_g: Optional[float] = None

    @field_validator("kcal", "protein_g", "carbs_g", "fat_g", mode="before")
    @classmethod
    def _numeric(cls, value: Any) -> Optional[float]:
        return _to_number(value)


class Meal(BaseModel):
    name: str = ""
    recipe: str = ""
    macros: MealMacros = Field(default_factory=MealMacros)
    ingredients: List[Ingredient] = Field(default_factory=list)
    swaps: List[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"name": data}
        if not isinstance(data, dict):
            return {}
        data = dict(data)
        data["name"] = _to_text(data.get("name"))
        data["recipe"] = _to_text(data.get("recipe"))
        if not isinstance(data.get("macros"), dict):
            data["macros"] = {}
        data["ingredients"] = _as_list(data.get("ingredients"))
        data["swaps"] = [_to_text(s) for s in _as_list(data.get("swaps"))]
        return data


class DayPlan(BaseModel):
    day: int = Field(default=1, ge=1, le=7)
    total_kcal: Optional[int] = None
    meals: List[Meal] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return {}
        data = dict(data)
        day = _to_int(data.get("day"))
        data["day"] = min(max(day, 1), 7) if day is not None else 1
        data["total_kcal"] = _to_int(data.get("total_kcal"))
        data["meals"] = _as_list(data.get("meals"))
        return data


class PlanSummary(BaseModel):
    """Plan-level targets; accepts the field names used in model output."""

    kcal: Optional[int] = Field(default=None, validation_alias=AliasChoices("kcal", "calories"))
    protein_g: Optional[int] = None
    carbs_g: Optional[int] = None
    fat_g: Optional[int] = None
    fiber_g: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("fiber_g", "fiber_target_g")
    )
    sodium_mg_cap: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("sodium_mg_cap", "sodium_cap_mg")
    )
    meals_per_day: Optional[int] = None
    per_meal_protein_g: Optional[int] = None

    @field_validator(
        "kcal",
        "protein_g",
        "carbs_g",
        "fat_g",
        "fiber_g",
        "sodium_mg_cap",
        "meals_per_day",
        "per_meal_protein_g",
        mode="before",
    )
    @classmethod
    def _numeric(cls, value: Any) -> Optional[int]:
        return _to_int(value)


class GroceryList(BaseModel):
    items: List[GroceryItem] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data: Any) -> Any:
        if isinstance(data, list):
            return {"items": data}
        if not isinstance(data, dict):
            return {"items": []}
        data = dict(data)
        data["items"] = _as_list(data.get("items"))
        return data


class BatchPrepDay(BaseModel):
    day: str = ""
    steps: List[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return {}
        return {
            "day": _to_text(data.get("day")),
            "steps": [_to_text(s) for s in _as_list(data.get("steps")) if _to_text(s).strip()],
        }


class NutritionPlan(BaseModel):
    """Canonical nutrition plan (7 days x meals_per_day after repair)."""

    summary: PlanSummary = Field(default_factory=PlanSummary)
    guidelines: List[str] = Field(default_factory=list)
    day_plans: List[DayPlan] = Field(default_factory=list)
    grocery_list: GroceryList = Field(default_factory=GroceryList)
    batch_prep: List[BatchPrepDay] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return {}
        data = normalize_plan_aliases(dict(data))
        if not isinstance(data.get("summary"), dict):
            data["summary"] = {}
        guidelines = data.get("guidelines")
        if isinstance(guidelines, dict):
            guidelines = list(guidelines.values())
        data["guidelines"] = [_to_text(g) for g in _as_list(guidelines) if _to_text(g).strip()]
        data["batch_prep"] = _as_list(data.get("batch_prep"))
        return data


def normalize_plan_aliases(plan: Dict[str, Any]) -> Dict[str, Any]:
    """Fold legacy key aliases into the canonical plan shape (in place)."""
    if not isinstance(plan.get("day_plans"), list) and isinstance(plan.get("days"), list):
        plan["day_plans"] = plan.pop("days")
    elif "days" in plan and isinstance(plan.get("day_plans"), list):
        plan.pop("days")
    if not isinstance(plan.get("day_plans"), list):
        plan["day_plans"] = []
    grocery = plan.get("grocery_list")
    if isinstance(grocery, list):
        plan["grocery_list"] = {"items": grocery}
    elif not isinstance(grocery, dict):
        plan["grocery_list"] = {"items": []}
    return plan


# ============================================================================
# Delivery
# ============================================================================


class RenderProfile(BaseModel):
    """Personalisation shown on the document cover and email."""

    name: Optional[str] = None
    goal: Optional[str] = None


class Entitlement(BaseModel):
    paid: bool = False
    tier: Optional[Tier] = None


class NutritionResult(BaseModel):
    """Targets and the repaired plan returned by nutrition generation."""

    targets: MacroTargets
    plan: NutritionPlan
