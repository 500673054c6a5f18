"""Centralized LLM configuration - single source of truth.

Model names, sampling settings and token limits for the three completion
calls the service makes (workout plan, nutrition plan, nutrition repair).
Every value can be overridden through the environment.
"""

import os
from dataclasses import dataclass

# Default endpoint for all models
DEFAULT_BASE_URL = os.getenv("OPENAI_API_BASE", "https://api.openai.com/v1")

# Workout plans are free text; higher temperature keeps weeks varied
WORKOUT_MODEL = os.getenv("WORKOUT_MODEL", "gpt-4o")
WORKOUT_TEMPERATURE = float(os.getenv("WORKOUT_TEMPERATURE", "0.7"))
WORKOUT_MAX_TOKENS = int(os.getenv("WORKOUT_MAX_TOKENS", "4500"))

# Nutrition plans are strict JSON
NUTRITION_MODEL = os.getenv("NUTRITION_MODEL", "gpt-4o")
NUTRITION_TEMPERATURE = float(os.getenv("NUTRITION_TEMPERATURE", "0.4"))
NUTRITION_MAX_TOKENS = int(os.getenv("NUTRITION_MAX_TOKENS", "6000"))

# Repair reuses the nutrition model with a low temperature
REPAIR_TEMPERATURE = float(os.getenv("REPAIR_TEMPERATURE", "0.2"))


@dataclass(frozen=True)
class CompletionOptions:
    """Parameters for a single completion call."""

    model: str
    temperature: float
    max_tokens: int
    json_mode: bool = False


def workout_completion_options() -> CompletionOptions:
    return CompletionOptions(
        model=WORKOUT_MODEL,
        temperature=WORKOUT_TEMPERATURE,
        max_tokens=WORKOUT_MAX_TOKENS,
    )


def nutrition_completion_options() -> CompletionOptions:
    return CompletionOptions(
        model=NUTRITION_MODEL,
        temperature=NUTRITION_TEMPERATURE,
        max_tokens=NUTRITION_MAX_TOKENS,
        json_mode=True,
    )


def repair_completion_options() -> CompletionOptions:
    """Strict-JSON options for the single model-assisted repair attempt."""
    return CompletionOptions(
        model=NUTRITION_MODEL,
        temperature=REPAIR_TEMPERATURE,
        max_tokens=NUTRITION_MAX_TOKENS,
        json_mode=True,
    )
