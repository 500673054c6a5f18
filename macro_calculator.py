"""
Deterministic calorie and macro targets computed in Python.

The completion model never does this arithmetic: targets are computed here and
passed into the nutrition prompt verbatim, so every plan is built against
reproducible numbers.
"""

import math
from typing import Dict

from schemas import SODIUM_CAP_MG, MacroTargets, ProfileInput


ACTIVITY_FACTORS: Dict[str, float] = {
    "sedentary": 1.20,
    "light": 1.375,
    "moderate": 1.55,
    "very_active": 1.725,
}

GOAL_FACTORS: Dict[str, float] = {
    "cut": 0.80,
    "recomp": 0.95,
    "gain": 1.12,
}

# Lower bound of the g/kg carbohydrate band for each training load
CARB_FLOOR_G_PER_KG: Dict[str, float] = {
    "light": 3.0,
    "moderate": 5.0,
    "high": 8.0,
}

PROTEIN_G_PER_KG_CUT = 2.2
PROTEIN_G_PER_KG_DEFAULT = 1.8

FAT_SHARE_DEFAULT = 0.30
FAT_SHARE_CARB_FLOOR = 0.22

FIBER_G_PER_1000_KCAL = 14

KCAL_PER_G_PROTEIN = 4
KCAL_PER_G_CARBS = 4
KCAL_PER_G_FAT = 9


def _round(value: float) -> int:
    """Round half-up to the nearest integer."""
    return int(math.floor(value + 0.5))


def resting_metabolic_rate(profile: ProfileInput) -> float:
    """Mifflin-St Jeor resting metabolic rate in kcal/day."""
    sex_offset = 5 if profile.sex == "male" else -161
    return (
        10 * profile.weight_kg
        + 6.25 * profile.height_cm
        - 5 * profile.age
        + sex_offset
    )


def total_energy_expenditure(profile: ProfileInput) -> int:
    """Resting metabolic rate scaled by the activity factor, rounded."""
    return _round(resting_metabolic_rate(profile) * ACTIVITY_FACTORS[profile.activity_level])


def carb_floor_g(profile: ProfileInput) -> int:
    """Minimum daily carbohydrates for the profile's training load."""
    return math.ceil(CARB_FLOOR_G_PER_KG[profile.training_load] * profile.weight_kg)


def _carbs_from_remainder(kcal: int, protein_g: int, fat_g: int) -> int:
    remaining = kcal - protein_g * KCAL_PER_G_PROTEIN - fat_g * KCAL_PER_G_FAT
    return _round(max(remaining, 0) / KCAL_PER_G_CARBS)


def compute_targets(profile: ProfileInput) -> MacroTargets:
    """Compute daily calorie, macro, fiber and sodium targets.

    Carbs below the training-load floor trigger one correction: fat drops
    from 30% to 22% of calories and carbs are recomputed from the freed
    calories. If carbs still miss the floor they are raised to it and the
    calorie target grows to match the macro sum.

    Args:
        profile: Validated body/activity profile

    Returns:
        MacroTargets for the profile
    """
    tee = total_energy_expenditure(profile)
    kcal = _round(tee * GOAL_FACTORS[profile.goal])

    protein_per_kg = PROTEIN_G_PER_KG_CUT if profile.goal == "cut" else PROTEIN_G_PER_KG_DEFAULT
    protein_g = _round(protein_per_kg * profile.weight_kg)

    fat_g = _round(kcal * FAT_SHARE_DEFAULT / KCAL_PER_G_FAT)
    carbs_g = _carbs_from_remainder(kcal, protein_g, fat_g)

    floor_g = carb_floor_g(profile)
    if carbs_g < floor_g:
        fat_g = _round(kcal * FAT_SHARE_CARB_FLOOR / KCAL_PER_G_FAT)
        carbs_g = _carbs_from_remainder(kcal, protein_g, fat_g)

        if carbs_g < floor_g:
            carbs_g = floor_g
            kcal = max(
                kcal,
                protein_g * KCAL_PER_G_PROTEIN
                + carbs_g * KCAL_PER_G_CARBS
                + fat_g * KCAL_PER_G_FAT,
            )

    fiber_g = _round(FIBER_G_PER_1000_KCAL * kcal / 1000)

    return MacroTargets(
        kcal=kcal,
        protein_g=protein_g,
        carbs_g=carbs_g,
        fat_g=fat_g,
        fiber_g=fiber_g,
        sodium_mg_cap=SODIUM_CAP_MG,
    )


def per_meal_protein_g(targets: MacroTargets, meals_per_day: int) -> int:
    """Protein to aim for in each meal."""
    return _round(targets.protein_g / max(meals_per_day, 1))
