"""Unit tests for batch-prep synthesis and merging."""
import pytest

from batch_prep import (
    classify_ingredients,
    collect_ingredient_names,
    enforce_batch_prep,
    merge_batch_prep,
    strip_quantity_suffix,
    synthesize_batch_prep,
)
from schemas import NutritionPlan
from tests.fixtures.plans import make_meal, make_plan
from validation_config import DEFAULT_PREP_KEYWORDS


def _plan_with_grocery(names, meals_per_day=4):
    return make_plan(meals_per_day=meals_per_day, grocery=[{"item": n} for n in names])


def _steps_text(entries):
    return " ".join(step for entry in entries for step in entry["steps"]).lower()


@pytest.mark.priority_high
@pytest.mark.unit
class TestIngredientNames:
    """Name collection and quantity-suffix stripping."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("chicken breast (2 kg)", "chicken breast"),
            ("eggs x12", "eggs"),
            ("rice - 500g", "rice"),
            ("olive oil 250 ml", "olive oil"),
            ("vitamin b12", "vitamin b12"),
            ("Greek yogurt", "Greek yogurt"),
        ],
    )
    def test_strip_quantity_suffix(self, raw, expected):
        assert strip_quantity_suffix(raw) == expected

    def test_grocery_names_deduplicated(self):
        plan = _plan_with_grocery(["Chicken Breast", "chicken breast (1 kg)", "rice"])
        assert collect_ingredient_names(plan) == ["Chicken Breast", "rice"]

    def test_falls_back_to_meal_ingredients(self):
        plan = make_plan(days=1, grocery=[])
        plan["day_plans"][0]["meals"] = [
            make_meal("Bowl", ingredients=[{"item": "tofu", "grams": 200}, "quinoa"])
        ]
        assert collect_ingredient_names(plan) == ["tofu", "quinoa"]

    def test_accepts_plan_model(self):
        plan = NutritionPlan.model_validate(_plan_with_grocery(["salmon", "asparagus"]))
        assert collect_ingredient_names(plan) == ["salmon", "asparagus"]


@pytest.mark.priority_high
@pytest.mark.unit
class TestClassification:
    """Keyword buckets."""

    def test_eggplant_is_not_an_egg(self):
        buckets = classify_ingredients(["eggplant", "eggs"])
        assert buckets.eggs == ["eggs"]
        assert buckets.vegetables == ["eggplant"]

    def test_potatoes_are_carbs_but_not_grains(self):
        buckets = classify_ingredients(["sweet potato", "basmati rice"])
        assert buckets.carbs == ["sweet potato", "basmati rice"]
        assert buckets.grains == ["basmati rice"]

    def test_leafy_vs_sturdy_vegetables(self):
        buckets = classify_ingredients(["baby spinach", "bell pepper"])
        assert buckets.leafy == ["baby spinach"]
        assert buckets.sturdy_vegetables == ["bell pepper"]


@pytest.mark.priority_high
@pytest.mark.unit
class TestSynthesizeBatchPrep:
    """Sunday bulk prep and Thursday top-up built from plan ingredients."""

    def test_core_scenario(self):
        plan = _plan_with_grocery(["chicken breast", "brown rice", "broccoli", "eggs"])
        sunday, thursday = synthesize_batch_prep(plan, 4)

        assert sunday["day"] == "Sunday"
        assert thursday["day"] == "Thursday"
        assert sunday["steps"][0].startswith("Batch-cook chicken breast:")
        assert "eggs" not in sunday["steps"][0]
        assert sunday["steps"][1].startswith("Hard-boil a batch of eggs")
        assert sunday["steps"][2].startswith("Cook brown rice on the stovetop")
        assert sunday["steps"][3].startswith("Chop broccoli")
        assert sunday["steps"][-1].startswith("Label every container")
        assert thursday["steps"][0] == (
            "Reheat or top up proteins (chicken breast and eggs); "
            "cook a small fresh batch if fewer than 3 days remain."
        )
        assert "brown rice" in thursday["steps"][1]
        assert thursday["steps"][2] == "Refresh vegetables: chop a new batch of broccoli."

    def test_steps_only_mention_plan_foods(self):
        from tests.fixtures.plans import GROCERY_ITEMS

        names = [item["item"] for item in GROCERY_ITEMS] + ["blueberries", "turkey mince"]
        text = _steps_text(synthesize_batch_prep(_plan_with_grocery(names), 4))
        lexicon = (
            DEFAULT_PREP_KEYWORDS.proteins
            + DEFAULT_PREP_KEYWORDS.carbs
            + DEFAULT_PREP_KEYWORDS.vegetables
            + DEFAULT_PREP_KEYWORDS.leafy
            + DEFAULT_PREP_KEYWORDS.breakfast
        )
        for keyword in lexicon:
            if keyword in text:
                assert any(keyword in name.lower() for name in names), f"'{keyword}' is not in the plan"

    def test_minimal_plan_mentions_no_foods(self):
        text = _steps_text(synthesize_batch_prep(_plan_with_grocery(["sparkling water"]), 3))
        for keyword in DEFAULT_PREP_KEYWORDS.proteins + DEFAULT_PREP_KEYWORDS.carbs:
            assert keyword not in text

    def test_potatoes_roasted_not_boiled_on_stovetop(self):
        sunday, _ = synthesize_batch_prep(_plan_with_grocery(["sweet potato", "quinoa"]), 4)
        roast = [s for s in sunday["steps"] if s.startswith("Roast or bake")]
        stovetop = [s for s in sunday["steps"] if "stovetop" in s]

        assert roast and "sweet potato" in roast[0]
        assert stovetop and "sweet potato" not in stovetop[0]

    def test_snack_packs_from_four_meals(self):
        sunday, _ = synthesize_batch_prep(_plan_with_grocery(["rolled oats"]), 4)
        assert any("breakfast and snack packs" in s for s in sunday["steps"])

    def test_breakfast_packs_below_four_meals(self):
        sunday, _ = synthesize_batch_prep(_plan_with_grocery(["rolled oats"]), 3)
        packs = [s for s in sunday["steps"] if "packs" in s]
        assert packs == ["Assemble make-ahead breakfast packs with rolled oats for the first 3-4 mornings."]

    def test_sauces_limited_to_three(self):
        sunday, _ = synthesize_batch_prep(_plan_with_grocery(["olive oil", "salsa", "pesto", "tahini"]), 4)
        sauce_step = [s for s in sunday["steps"] if "labeled jars" in s][0]

        assert "olive oil, salsa and pesto" in sauce_step
        assert "tahini" not in sauce_step


@pytest.mark.priority_medium
@pytest.mark.unit
class TestMergeBatchPrep:
    """Replacement and top-up of model-provided sections."""

    SYNTHESIZED = [
        {"day": "Sunday", "steps": ["Cook rice.", "Label containers."]},
        {"day": "Thursday", "steps": ["Take inventory."]},
    ]

    def test_thin_section_is_replaced(self):
        existing = [{"day": "Sunday", "steps": ["a", "b", "c", "d"]}]
        assert merge_batch_prep(existing, self.SYNTHESIZED) == self.SYNTHESIZED

    def test_few_steps_is_replaced(self):
        existing = [{"day": "Sunday", "steps": ["a"]}, {"day": "Thursday", "steps": ["b"]}]
        assert merge_batch_prep(existing, self.SYNTHESIZED) == self.SYNTHESIZED

    def test_substantial_section_is_topped_up(self):
        existing = [
            {"day": "Sunday", "steps": ["Grill chicken.", "Cook rice."]},
            {"day": "thursday", "steps": ["Reheat chicken.", "Chop peppers."]},
        ]
        merged = merge_batch_prep(existing, self.SYNTHESIZED)

        assert merged[0]["steps"] == ["Grill chicken.", "Cook rice.", "Label containers."]
        assert merged[1]["day"] == "thursday"
        assert merged[1]["steps"] == ["Reheat chicken.", "Chop peppers.", "Take inventory."]

    def test_missing_day_is_appended(self):
        existing = [
            {"day": "Sunday", "steps": ["a", "b"]},
            {"day": "Wednesday", "steps": ["c", "d"]},
        ]
        merged = merge_batch_prep(existing, self.SYNTHESIZED)

        assert [entry["day"] for entry in merged] == ["Sunday", "Wednesday", "Thursday"]
        assert merged[2]["steps"] == ["Take inventory."]

    def test_malformed_section_is_replaced(self):
        assert merge_batch_prep("prep on sunday", self.SYNTHESIZED) == self.SYNTHESIZED

    def test_enforce_is_idempotent(self):
        plan = _plan_with_grocery(["chicken breast", "brown rice", "broccoli", "eggs"])
        enforce_batch_prep(plan, 4)
        first = [list(entry["steps"]) for entry in plan["batch_prep"]]
        enforce_batch_prep(plan, 4)

        assert [entry["steps"] for entry in plan["batch_prep"]] == first
