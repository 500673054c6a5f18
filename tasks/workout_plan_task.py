"""Prompt for generating the 6-week workout plan as plain text."""

from __future__ import annotations

from typing import List

from schemas import WorkoutRequest


def _equipment_lines(equipment: str) -> tuple[str, str]:
    lowered = equipment.lower()
    if "body" in lowered:
        return (
            "• Equipment: Bodyweight only (no dumbbells or machines)",
            "**Bodyweight Rule**: Use only bodyweight movements, no external load or machines.",
        )
    if "dumbbell" in lowered:
        return "• Equipment: Home dumbbells only", ""
    return "• Equipment: Full gym access", ""


def _goal_rule(goal: str) -> str:
    lowered = goal.lower()
    is_fat_loss = "fat" in lowered or "lose" in lowered
    is_hypertrophy = "muscle" in lowered or "build" in lowered

    if is_fat_loss and is_hypertrophy:
        return (
            "**Dual Goal (Fat Loss + Muscle)**: Use 8-12 reps, supersets on accessories, "
            "and add 15-20 min HIIT on 2 off-days."
        )
    if is_fat_loss:
        return (
            "**Fat-Loss Focus**: Keep rest 30-45 sec, circuit 3x/week, "
            "and add 20-30 min steady-state cardio on non-leg days."
        )
    if is_hypertrophy:
        return (
            "**Muscle-Gain Focus**: Use 8-12 reps for lifts, 1-2 drop-sets on accessories, "
            "and ensure progressive overload each week."
        )
    return ""


def _sex_rule(sex: str | None) -> str:
    lowered = (sex or "").strip().lower()
    if lowered.startswith("f"):
        return (
            "**Female Emphasis**: Prioritize at least 40% of weekly volume on lower-body "
            "movements unless a focus muscle overrides."
        )
    if lowered.startswith("m"):
        return "**Male Emphasis**: Keep volume balanced, no more than 25% on any one muscle group."
    return ""


def create_workout_plan_prompt(request: WorkoutRequest) -> str:
    """Build the workout prompt for one client.

    The output contract (``Week N`` / ``Day N - Split`` headings, one
    ``Exercise: sets x reps`` line per movement) is what
    ``workout_parser.parse_workout_text`` reads back.
    """
    days = request.days_per_week
    equipment_line, equipment_rule = _equipment_lines(request.equipment)

    profile_lines: List[str] = [
        f" • Goal: {request.goal}",
        f" • Days/week: {days}",
        f" {equipment_line}",
        f" • Experience: {request.experience}",
    ]
    if request.age:
        profile_lines.append(f" • Age: {request.age}")
    if request.sex:
        profile_lines.append(f" • Sex: {request.sex}")
    if request.bodyweight:
        profile_lines.append(f" • Bodyweight: {request.bodyweight:g} lbs")
    lifts = request.lifts
    if any((lifts.bench, lifts.squat, lifts.deadlift, lifts.ohp)):

        def fmt(value: float | None) -> str:
            return f"{value:g}" if value else "-"

        profile_lines.append(
            f" • 1RMs: Bench {fmt(lifts.bench)}, Squat {fmt(lifts.squat)}, "
            f"Deadlift {fmt(lifts.deadlift)}, OHP {fmt(lifts.ohp)}"
        )

    extra_rules = [equipment_rule, _goal_rule(request.goal), _sex_rule(request.sex)]
    if request.focus_muscle:
        extra_rules.append(
            f"**Focus Muscle ({request.focus_muscle})**: Add 3-5 extra sets/week + "
            f"1 specialty movement for {request.focus_muscle}."
        )
    numbered_extra = "\n".join(
        f" {index}. {rule}" for index, rule in enumerate((r for r in extra_rules if r), start=7)
    )

    injuries = ", ".join(request.injuries) if request.injuries else "none"
    dislikes = ", ".join(request.dislikes) if request.dislikes else "none"
    profile_block = "\n".join(profile_lines)

    return f"""BroSplitCoachAI, your no-BS hypertrophy coach: generate a **6-week** bespoke bro-split.

CLIENT PROFILE
{profile_block}

RULES
 1. **Structure**
    - Label **Week 1** ... **Week 6**.
    - Within each week, generate **exactly {days} training days**.
    - Label each as **Day 1 - [Split Name]**, ..., **Day {days} - [Split Name]**.
    - Do **not** skip or omit any days.

 2. **Muscle-Group Days**
    - 5-7 movements: at least 2 compounds + 3 accessories + 1 finisher.
    - **Vary at least 2 exercises** each week per muscle group.

 3. **Core/Cardio Days**
    - 3-4 movements: exactly 2 core exercises + 1-2 cardio modalities.
    - **Alternate core/cardio selection** each session.

 4. **Progression & Deload**
    - Wk 1: Base volume, RPE 6-7
    - Wk 2: +5-10% volume, RPE 7
    - Wk 3: +5-10% load, RPE 7-8
    - Wk 4 (Deload): 50% volume, RPE 5-6 + 10 min mobility on off-days
    - Wk 5: Peak, -2 reps vs Wk 3, RPE 8-9
    - Wk 6: Ultimate peak, -1 rep, RPE 9

 5. **Load Prescriptions**
    - Show %1RM and exact lbs.
    - **Round weights** to nearest 5 lbs.

 6. **Customization**
    - Avoid/modify: {injuries}.
    - Remove: {dislikes}.
{numbered_extra}

FORMAT
 • **Bold headings** for weeks & days
 • One line per exercise in the form "Exercise Name: sets x reps @ load"
 • End with **Progression & Deload Notes**
 • **Vary workouts** so no two weeks are identical
 • **Output only** the plan in plain text (no commentary)"""
