"""Unit tests for paginated PDF layout and rendering."""
import re

import pytest

from pdf_renderer import (
    CONTENT_BOTTOM,
    DocumentSections,
    ImageOp,
    TextOp,
    format_amount,
    layout_document,
    pdf_safe,
    render,
    stamp_page_numbers,
    wrap_text,
    STYLES,
)
from plan_repair import ensure_complete_plan
from schemas import NutritionPlan, RenderProfile, WorkoutDay, WorkoutWeek
from tests.conftest import page_texts
from tests.fixtures.plans import make_workout_text, plan_json
from workout_parser import parse_workout_text

PAGE_OBJECT = re.compile(rb"/Type\s*/Page\b")


def _workout(weeks=6):
    return parse_workout_text(make_workout_text(weeks=weeks))


def _nutrition(targets):
    return ensure_complete_plan(plan_json(), targets, 4)


def _layout(sections, **kwargs):
    return stamp_page_numbers(layout_document(sections, RenderProfile(name="Alex"), logo_path="", quote_index=0, **kwargs))


def _first_page_with(pages, prefix):
    for page in pages:
        if any(text.startswith(prefix) for text in page.texts()):
            return page.index
    return None


@pytest.mark.priority_high
@pytest.mark.unit
class TestTextHelpers:
    """Font-safe text and amount formatting."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("Day 1 – Push", "Day 1 - Push"),
            ("“Lift” it’s time…", "\"Lift\" it's time..."),
            ("💪 Go hard", "Go hard"),
            ("Crème brûlée", "Crème brûlée"),
            ("日本", "??"),
            (None, ""),
        ],
    )
    def test_pdf_safe(self, raw, expected):
        assert pdf_safe(raw) == expected

    @pytest.mark.parametrize(
        "value,unit,expected",
        [(None, " g", "-"), (150.0, " g", "150 g"), (12.25, " kcal", "12.2 kcal"), (0, "", "0")],
    )
    def test_format_amount(self, value, unit, expected):
        assert format_amount(value, unit) == expected

    def test_wrap_text_respects_width(self):
        style = STYLES["body"]
        lines = wrap_text("word " * 200, style, 200)
        assert len(lines) > 1
        assert all(len(line) > 0 for line in lines)

    def test_wrap_text_splits_long_words(self):
        lines = wrap_text("x" * 400, STYLES["body"], 100)
        assert "".join(lines) == "x" * 400


@pytest.mark.priority_high
@pytest.mark.unit
class TestWorkoutLayout:
    """Cover, contents, tips and one page run per week."""

    def test_sections_in_order(self):
        pages = _layout(DocumentSections(workout=_workout()))

        assert _first_page_with(pages, "Your Personal") == 0
        assert _first_page_with(pages, "Your 6-Week Journey") == 1
        assert _first_page_with(pages, "Pro Tips for Maximum Results") == 2
        assert pages[3].texts()[1].startswith("Week 1:")
        assert _first_page_with(pages, "You've Got This!") == len(pages) - 1

    def test_each_week_starts_a_new_page(self):
        pages = _layout(DocumentSections(workout=_workout()))

        starts = [_first_page_with(pages[3:], f"Week {n}:") for n in range(1, 7)]
        assert len(set(starts)) == 6
        for index in starts:
            # First text after the running header is the week heading
            assert pages[index].texts()[1].startswith("Week ")

    def test_only_first_six_weeks_rendered(self):
        pages = _layout(DocumentSections(workout=_workout(weeks=8)))
        all_text = [t for texts in page_texts(pages) for t in texts]

        assert not any(t.startswith("Week 7:") for t in all_text)
        assert any(t.startswith("Week 6:") for t in all_text)

    def test_long_day_breaks_across_pages(self):
        day = WorkoutDay(name="Day 1 - Volume", exercises=[f"Set {n}: 10 reps" for n in range(120)])
        pages = _layout(DocumentSections(workout=[WorkoutWeek(number=1, days=[day])]))

        week_pages = [p for p in pages if any(t.startswith("Set ") for t in p.texts())]
        assert len(week_pages) >= 2
        for page in pages:
            for op in page.ops:
                if isinstance(op, TextOp) and op.tag != "page_number":
                    assert op.y >= CONTENT_BOTTOM - 1

    def test_running_header_on_every_page(self):
        pages = _layout(DocumentSections(workout=_workout()))
        assert all(page.texts()[0] == "BroSplit AI • 6-Week Plan" for page in pages)


@pytest.mark.priority_high
@pytest.mark.unit
class TestNutritionLayout:
    """Nutrition cover, targets, day pages, grocery list and batch prep."""

    def test_nutrition_only_document(self, targets):
        pages = _layout(DocumentSections(nutrition=_nutrition(targets)))
        all_text = [t for texts in page_texts(pages) for t in texts]

        assert "Your 6-Week Journey" not in all_text
        assert "Pro Tips for Maximum Results" not in all_text
        assert "Your 7-Day Nutrition Plan" in all_text
        assert "Grocery List" in all_text
        assert "Batch Prep" in all_text
        assert all(page.texts()[0].endswith("Nutrition Plan") for page in pages)

    def test_one_page_run_per_day(self, targets):
        pages = _layout(DocumentSections(nutrition=_nutrition(targets)))
        starts = [_first_page_with(pages, f"Day {n}") for n in range(1, 8)]

        assert None not in starts
        assert starts == sorted(starts)
        assert len(set(starts)) == 7

    def test_missing_values_render_as_dash(self):
        plan = NutritionPlan.model_validate(
            {"day_plans": [{"day": 1, "meals": [{"name": "Mystery", "macros": {"kcal": "n/a"}}]}]}
        )
        pages = _layout(DocumentSections(nutrition=plan))
        all_text = [t for texts in page_texts(pages) for t in texts]

        assert "Total: -" in all_text
        assert "- | P - | C - | F -" in all_text

    def test_combined_document(self, targets):
        pages = _layout(DocumentSections(workout=_workout(), nutrition=_nutrition(targets)))

        assert pages[0].texts()[0].endswith("6-Week Plan + Nutrition")
        assert _first_page_with(pages, "Week 6:") < _first_page_with(pages, "Your 7-Day Nutrition Plan")


@pytest.mark.priority_high
@pytest.mark.unit
class TestPagination:
    """Page numbering and emitted PDF."""

    def test_every_page_numbered_once(self, targets):
        pages = _layout(DocumentSections(workout=_workout(), nutrition=_nutrition(targets)))
        total = len(pages)

        for number, page in enumerate(pages, start=1):
            footers = [op for op in page.ops if isinstance(op, TextOp) and op.tag == "page_number"]
            assert [op.text for op in footers] == [f"Page {number} of {total}"]

    def test_pdf_page_count_matches_layout(self, targets):
        sections = DocumentSections(workout=_workout(), nutrition=_nutrition(targets))
        expected = len(layout_document(sections, logo_path="", quote_index=0))

        pdf_bytes = render(sections, RenderProfile(name="Alex"), logo_path="")

        assert pdf_bytes.startswith(b"%PDF")
        assert len(PAGE_OBJECT.findall(pdf_bytes)) == expected

    def test_missing_logo_is_skipped(self, tmp_path):
        pages = layout_document(
            DocumentSections(workout=_workout(weeks=1)),
            logo_path=str(tmp_path / "missing.png"),
            quote_index=0,
        )
        assert not any(isinstance(op, ImageOp) for page in pages for op in page.ops)

    def test_unicode_content_renders(self):
        day = WorkoutDay(name="Day 1 – Push 💪", exercises=["Développé couché: 3×8 @60kg → PR"])
        pdf_bytes = render(DocumentSections(workout=[WorkoutWeek(number=1, days=[day])]), logo_path="")
        assert pdf_bytes.startswith(b"%PDF")
