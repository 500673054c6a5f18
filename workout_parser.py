"""Recover a week/day/exercise hierarchy from free-text workout plans.

The completion model is only asked for loosely formatted prose, so parsing is
heuristic: ``Week N`` lines open weeks, ``Day N`` lines open days, and any
line containing a colon inside an open day is an exercise line
(e.g. "Bench Press: 3x8 @135lb"). Narrative text without a colon is dropped.
"""

from __future__ import annotations

import re
from typing import Iterable, List, Optional

from schemas import WorkoutDay, WorkoutWeek

WEEK_PATTERN = re.compile(r"^Week\s+(\d+)", re.IGNORECASE)
DAY_PATTERN = re.compile(r"^Day\s+\d+", re.IGNORECASE)
EMPHASIS_PATTERN = re.compile(r"\*\*|__")
HEADING_PREFIX_PATTERN = re.compile(r"^#+\s*")
DASH_PATTERN = re.compile(r"[–—]")


def _clean_line(raw: str) -> str:
    line = EMPHASIS_PATTERN.sub("", raw).strip()
    return HEADING_PREFIX_PATTERN.sub("", line)


def parse_workout_text(text: Optional[str]) -> List[WorkoutWeek]:
    """Parse plan text into weeks in source order.

    Never raises; text without any ``Week`` heading yields an empty list.
    Every week found is returned, consumers decide how many to use.
    """
    weeks: List[WorkoutWeek] = []
    current_week: Optional[WorkoutWeek] = None
    current_day: Optional[WorkoutDay] = None

    for raw in (text or "").splitlines():
        line = _clean_line(raw)
        if not line:
            continue

        week_match = WEEK_PATTERN.match(line)
        if week_match:
            if current_day is not None and current_week is not None:
                current_week.days.append(current_day)
            if current_week is not None:
                weeks.append(current_week)
            current_week = WorkoutWeek(number=int(week_match.group(1)))
            current_day = None
            continue

        if DAY_PATTERN.match(line):
            if current_week is None:
                continue
            if current_day is not None:
                current_week.days.append(current_day)
            current_day = WorkoutDay(name=DASH_PATTERN.sub("-", line))
            continue

        if current_day is not None and ":" in line:
            current_day.exercises.append(line)

    if current_day is not None and current_week is not None:
        current_week.days.append(current_day)
    if current_week is not None:
        weeks.append(current_week)

    return weeks


def format_workout_text(weeks: Iterable[WorkoutWeek]) -> str:
    """Emit the canonical text form that ``parse_workout_text`` reads back."""
    lines: List[str] = []
    for week in weeks:
        lines.append(f"Week {week.number}")
        for day in week.days:
            lines.append(day.name)
            lines.extend(day.exercises)
        lines.append("")
    return "\n".join(lines).strip() + "\n" if lines else ""
