"""Unit tests for nutrition plan parsing, completeness and repair."""
import json

import pytest

from errors import CompletionError, InvalidUpstreamOutputError
from plan_repair import (
    ensure_complete_plan,
    parse_plan_json,
    repair_plan_programmatically,
)
from tests.conftest import FakeCompletionClient, assert_plan_shape
from tests.fixtures.plans import make_day, make_meal, make_plan, plan_json


@pytest.mark.priority_high
@pytest.mark.unit
class TestParsePlanJson:
    """Strict parse, rescue parse and json_repair fallback."""

    def test_strict_json(self):
        assert parse_plan_json('{"day_plans": []}') == {"day_plans": []}

    def test_fenced_json(self):
        assert parse_plan_json('```json\n{"day_plans": [], "guidelines": ["x"]}\n```')["guidelines"] == ["x"]

    def test_prose_around_json(self):
        parsed = parse_plan_json('Here you go: {"summary": {"calories": 2000}} Hope this helps!')
        assert parsed == {"summary": {"calories": 2000}}

    def test_trailing_commas_repaired(self):
        parsed = parse_plan_json('{"guidelines": ["a", "b",],}')
        assert parsed["guidelines"] == ["a", "b"]

    def test_bare_day_array(self):
        parsed = parse_plan_json(json.dumps([make_day(1, 3)]))
        assert list(parsed) == ["day_plans"]
        assert parsed["day_plans"][0]["day"] == 1

    def test_no_json_raises_with_raw_text(self):
        with pytest.raises(InvalidUpstreamOutputError) as exc_info:
            parse_plan_json("Sorry, I can't help with that.")

        assert exc_info.value.raw_text == "Sorry, I can't help with that."
        assert exc_info.value.to_dict()["error"]["kind"] == "invalid_upstream_output"


@pytest.mark.priority_high
@pytest.mark.unit
class TestProgrammaticRepair:
    """Deterministic padding to 7 days x meals_per_day."""

    def test_single_meal_day_expands(self, targets):
        plan = ensure_complete_plan('{"day_plans":[{"day":1,"meals":[{"name":"M1"}]}]}', targets, 3)

        assert_plan_shape(plan, 3)
        assert {m.name for d in plan.day_plans for m in d.meals} == {"M1"}

    def test_cloned_days_rotate_meals(self, targets):
        raw = json.dumps({"day_plans": [{"day": 1, "meals": [{"name": "A"}, {"name": "B"}]}]})
        plan = ensure_complete_plan(raw, targets, 2)

        names = [[m.name for m in d.meals] for d in plan.day_plans]
        assert names[0] == ["A", "B"]
        assert names[1] == ["B", "A"]
        assert names[2] == ["A", "B"]

    def test_empty_plan_gets_placeholder_meals(self, targets):
        plan = ensure_complete_plan('{"day_plans": []}', targets, 4)

        assert_plan_shape(plan, 4)
        assert [m.name for m in plan.day_plans[0].meals] == ["Meal 1", "Meal 2", "Meal 3", "Meal 4"]
        assert plan.day_plans[0].meals[0].macros.kcal == 600
        assert plan.day_plans[0].total_kcal == targets.kcal

    def test_short_days_padded_and_missing_days_added(self, targets):
        plan = ensure_complete_plan(plan_json(days=3, meals_per_day=2), targets, 5)

        assert_plan_shape(plan, 5)
        first_day = [m.name for m in plan.day_plans[0].meals]
        assert first_day == ["Day 1 Meal 1", "Day 1 Meal 2", "Day 1 Meal 2", "Day 1 Meal 2", "Day 1 Meal 2"]

    def test_non_dict_days_are_rebuilt(self, targets):
        plan = repair_plan_programmatically({"day_plans": ["day one", make_day(2, 1)]}, targets, 2)

        assert len(plan["day_plans"]) == 7
        assert plan["day_plans"][0]["meals"][0]["name"] == "Meal 1"
        assert len(plan["day_plans"][1]["meals"]) == 2

    def test_extra_days_and_meals_are_trimmed(self, targets):
        plan = ensure_complete_plan(plan_json(days=9, meals_per_day=6), targets, 4)

        assert_plan_shape(plan, 4)
        assert plan.day_plans[-1].meals[-1].name == "Day 7 Meal 4"

    def test_days_are_renumbered(self, targets):
        raw = make_plan(days=7, meals_per_day=3)
        for day in raw["day_plans"]:
            day["day"] = 1
        plan = ensure_complete_plan(json.dumps(raw), targets, 3)

        assert [d.day for d in plan.day_plans] == list(range(1, 8))

    def test_legacy_days_key(self, targets):
        raw = json.dumps({"days": [make_day(n, 3) for n in range(1, 8)]})
        plan = ensure_complete_plan(raw, targets, 3)
        assert_plan_shape(plan, 3)

    def test_invalid_output_raises(self, targets):
        with pytest.raises(InvalidUpstreamOutputError):
            ensure_complete_plan("no plan today", targets, 4)


@pytest.mark.priority_high
@pytest.mark.unit
class TestModelAssistedRepair:
    """One repair completion, then programmatic fallback."""

    def test_complete_plan_skips_repair(self, targets):
        client = FakeCompletionClient()
        plan = ensure_complete_plan(plan_json(), targets, 4, complete=client.complete)

        assert client.calls == []
        assert_plan_shape(plan, 4)

    def test_successful_model_repair_is_used(self, targets):
        client = FakeCompletionClient([plan_json(days=7, meals_per_day=3)])
        plan = ensure_complete_plan(plan_json(days=2, meals_per_day=3), targets, 3, complete=client.complete)

        assert len(client.calls) == 1
        prompt, options = client.calls[0]
        assert options.json_mode is True
        assert f'"kcal": {targets.kcal}' in prompt
        assert "7" in prompt and "3 meals" in prompt
        assert plan.day_plans[6].meals[0].name == "Day 7 Meal 1"

    def test_completion_failure_falls_back(self, targets):
        client = FakeCompletionClient([CompletionError("upstream down")])
        plan = ensure_complete_plan(plan_json(days=2, meals_per_day=3), targets, 3, complete=client.complete)

        assert len(client.calls) == 1
        assert_plan_shape(plan, 3)
        # Day 3 onward are clones of day 2
        assert plan.day_plans[2].meals[0].name.startswith("Day 2")

    def test_unparseable_repair_falls_back(self, targets):
        client = FakeCompletionClient(["still not json"])
        plan = ensure_complete_plan(plan_json(days=1, meals_per_day=4), targets, 4, complete=client.complete)
        assert_plan_shape(plan, 4)

    def test_incomplete_repair_is_padded(self, targets):
        client = FakeCompletionClient([plan_json(days=5, meals_per_day=4)])
        plan = ensure_complete_plan(plan_json(days=2, meals_per_day=4), targets, 4, complete=client.complete)

        assert_plan_shape(plan, 4)
        assert plan.day_plans[4].meals[0].name == "Day 5 Meal 1"
        assert plan.day_plans[5].meals[0].name.startswith("Day 5")

    def test_degenerate_repair_keeps_original_meals(self, targets):
        client = FakeCompletionClient([json.dumps({"error": "cannot comply"})])
        plan = ensure_complete_plan(plan_json(days=3, meals_per_day=2), targets, 3, complete=client.complete)

        assert_plan_shape(plan, 3)
        assert [m.name for m in plan.day_plans[0].meals] == ["Day 1 Meal 1", "Day 1 Meal 2", "Day 1 Meal 2"]
        assert plan.day_plans[2].meals[0].name == "Day 3 Meal 1"

    def test_smaller_repair_reply_is_ignored(self, targets):
        client = FakeCompletionClient([plan_json(days=1, meals_per_day=1)])
        plan = ensure_complete_plan(plan_json(days=4, meals_per_day=2), targets, 3, complete=client.complete)

        assert plan.day_plans[3].meals[0].name == "Day 4 Meal 1"


@pytest.mark.priority_medium
@pytest.mark.unit
class TestFinalizedPlan:
    """Summary and batch prep on every repaired plan."""

    def test_summary_filled_from_targets(self, targets):
        raw = json.dumps({"day_plans": [make_day(n, 4) for n in range(1, 8)]})
        plan = ensure_complete_plan(raw, targets, 4)

        assert plan.summary.kcal == targets.kcal
        assert plan.summary.protein_g == targets.protein_g
        assert plan.summary.fiber_g == targets.fiber_g
        assert plan.summary.sodium_mg_cap == 2300
        assert plan.summary.meals_per_day == 4
        assert plan.summary.per_meal_protein_g == 45

    def test_model_summary_values_are_kept(self, targets):
        raw = make_plan()
        raw["summary"]["calories"] = 2555
        plan = ensure_complete_plan(json.dumps(raw), targets, 4)
        assert plan.summary.kcal == 2555

    def test_batch_prep_always_present(self, targets):
        plan = ensure_complete_plan(plan_json(), targets, 4)

        assert [entry.day for entry in plan.batch_prep] == ["Sunday", "Thursday"]
        assert all(len(entry.steps) >= 2 for entry in plan.batch_prep)

    def test_string_meals_accepted(self, targets):
        raw = json.dumps({"day_plans": [{"day": n, "meals": ["Oats", "Chicken", "Fish"]} for n in range(1, 8)]})
        plan = ensure_complete_plan(raw, targets, 3)
        assert [m.name for m in plan.day_plans[0].meals] == ["Oats", "Chicken", "Fish"]

    def test_meal_ingredients_fallback_for_batch_prep(self, targets):
        raw = make_plan(grocery=[])
        raw["day_plans"][0]["meals"][0] = make_meal("Salmon bowl", ingredients=[{"item": "salmon fillet", "grams": 150}])
        plan = ensure_complete_plan(json.dumps(raw), targets, 4)

        sunday = " ".join(plan.batch_prep[0].steps)
        assert "salmon fillet" in sunday


@pytest.mark.priority_high
@pytest.mark.unit
class TestNonFiniteNumbers:
    """NaN and Infinity parse as JSON but must not break validation."""

    def test_nan_day_total(self, targets):
        raw = plan_json().replace('"total_kcal": 2400', '"total_kcal": NaN', 1)
        plan = ensure_complete_plan(raw, targets, 4)

        assert_plan_shape(plan, 4)
        assert plan.day_plans[0].total_kcal is None
        assert plan.day_plans[1].total_kcal == 2400

    def test_infinite_summary_and_macros(self, targets):
        raw = make_plan()
        raw["summary"]["protein_g"] = float("inf")
        raw["day_plans"][0]["meals"][0]["macros"]["kcal"] = float("-inf")
        plan = ensure_complete_plan(json.dumps(raw), targets, 4)

        assert plan.summary.protein_g is None
        assert plan.day_plans[0].meals[0].macros.kcal is None

    def test_overflowing_number(self, targets):
        raw = plan_json().replace('"calories": 2400', '"calories": 1e400', 1)
        plan = ensure_complete_plan(raw, targets, 4)
        assert plan.summary.kcal is None
