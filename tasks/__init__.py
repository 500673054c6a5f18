"""Prompt builders for the workout and nutrition completions."""
from .workout_plan_task import create_workout_plan_prompt
from .nutrition_plan_task import create_nutrition_plan_prompt
from .plan_repair_task import create_plan_repair_prompt

__all__ = [
    "create_workout_plan_prompt",
    "create_nutrition_plan_prompt",
    "create_plan_repair_prompt",
]
