"""
Estimator end-to-end tests with regression dishes.

Covers the full fetch -> convert -> match -> classify -> aggregate run,
confidence accounting and the fatal-error path.
"""
import dataclasses
import json

import pytest

from nutrition_estimator.config_loader import DEFAULT_CONFIDENCE
from nutrition_estimator.run import ConfidenceTracker, Estimator, estimate, write_results_json
from nutrition_estimator.schemas import NUTRIENT_FIELDS, Nutrition


class TestRegressionDishes:
    """Regression tests for dishes in the packaged recipe table."""

    def test_paneer_curry_with_capsicum(self, estimator):
        result = estimator.estimate("Paneer Curry with capsicum")

        assert result.error is None
        assert result.recipe_name == "Paneer Curry with capsicum"
        assert result.dish_type == "Veg Gravy"
        assert result.serving_size == 150
        assert result.serving_type == "Katori"

        # Exact recipe: no fetch penalty. glass and piece defaults cost convert,
        # the capsicum spelling correction costs match
        assert result.stage_penalties == {"convert": 5, "match": 15}
        assert any(a.startswith("Corrected spelling variation") for a in result.assumptions)
        assert result.confidence == 80

        capsicum = [i for i in result.ingredients if i.name == "capsicum"][0]
        assert capsicum.match_type == "spelling_correction"

        cream = [i for i in result.ingredients if i.name == "cream"][0]
        assert cream.unit == "cup"
        assert cream.quantity == pytest.approx(1.5)

    def test_unknown_dish_uses_default_recipe(self, estimator):
        result = estimator.estimate("Some Totally Unknown Dish")

        assert result.error is None
        assert result.recipe_name == "Mixed veg"
        assert result.ingredients
        assert result.confidence > 0
        assert result.stage_penalties["fetch"] == 10
        assert result.stage_penalties["classify"] == 10

    def test_tandoori_serving(self, estimator):
        result = estimator.estimate("Chicken Tandoori")
        assert result.dish_type == "Non-Veg Fry"
        assert result.serving_size == 100

    def test_dal_uses_pulse_cooking_factor(self, estimator):
        result = estimator.estimate("Dal Tadka")
        assert result.dish_type == "Dals"
        assert result.cooking_method == "pulse_absorption"
        assert result.total_weight == pytest.approx(round(result.total_raw_weight * 1.4, 1))

    def test_nutrition_is_plausible(self, estimator):
        result = estimator.estimate("Chana masala")
        kcal = result.nutrition.energy_kcal
        assert 20 < kcal < 1000
        assert result.nutrition.protein_g > 0

    def test_quantity_missing_issue(self, estimator):
        plain = estimator.estimate("Jeera Aloo (mild fried)")
        repaired = estimator.estimate("Jeera Aloo (mild fried)", ["quantity missing"])

        assert "fetch" not in plain.stage_penalties
        assert repaired.stage_penalties["fetch"] == 10
        salt = [i for i in repaired.ingredients if i.name == "salt"][0]
        assert salt.grams > 0


class TestInvariants:

    DISHES = [
        ("Paneer Curry with capsicum", []),
        ("Some Totally Unknown Dish", []),
        ("Chana masala", ["missing ingredient"]),
        ("Mixed veg", ["ambiguous serving size", "quantity missing"]),
        ("Paneer tikka masala", ["ambiguous dish type"]),
        ("", []),
    ]

    @pytest.mark.parametrize("dish,issues", DISHES)
    def test_deterministic(self, estimator, dish, issues):
        first = estimator.estimate(dish, issues).model_dump_json()
        second = estimator.estimate(dish, issues).model_dump_json()
        assert first == second

    @pytest.mark.parametrize("dish,issues", DISHES)
    def test_confidence_accounting(self, estimator, dish, issues):
        result = estimator.estimate(dish, issues)

        assert 0 <= result.confidence <= 100
        assert result.confidence == max(0, 100 - sum(result.stage_penalties.values()))
        assert all(p >= 0 for p in result.stage_penalties.values())

    @pytest.mark.parametrize("dish,issues", DISHES)
    def test_grams_non_negative_and_nutrition_complete(self, estimator, dish, issues):
        result = estimator.estimate(dish, issues)

        assert all(i.grams >= 0 for i in result.ingredients)
        assert all(i.nutrition is not None for i in result.ingredients)
        assert set(result.nutrition.model_dump()) == set(NUTRIENT_FIELDS)
        assert result.dish_type != "Unknown"

    def test_versions_recorded(self, estimator, estimator_config, nutrition_index):
        result = estimator.estimate("Gobhi Sabzi")
        assert result.config_version == estimator_config.config_version
        assert result.nutrition_db_version == nutrition_index.version


class TestConfidenceTracker:

    def test_penalty_applied_once_per_stage(self):
        tracker = ConfidenceTracker({"penalties": {"match": 15}})
        tracker.record("match", ["a"])
        tracker.record("match", ["b", "c"])

        assert tracker.score == 85
        assert tracker.assumptions == ["a", "b", "c"]

    def test_no_assumptions_no_penalty(self):
        tracker = ConfidenceTracker({"penalties": {"match": 15}})
        tracker.record("match", [])
        assert tracker.score == 100

    def test_floor(self):
        tracker = ConfidenceTracker({"start": 100, "floor": 0, "penalties": {"a": 70, "b": 70}})
        tracker.record("a", ["x"])
        tracker.record("b", ["y"])
        assert tracker.score == 0


class TestFatalErrors:

    def test_stage_failure_returns_zero_confidence_result(self, estimator_config, nutrition_index, monkeypatch):
        estimator = Estimator(estimator_config, nutrition_index)

        def boom(ingredients):
            raise RuntimeError("matcher exploded")

        monkeypatch.setattr(estimator.matcher, "match_all", boom)
        result = estimator.estimate("Some Totally Unknown Dish")

        assert result.confidence == 0
        assert result.error == "RuntimeError: matcher exploded"
        assert result.nutrition == Nutrition()
        assert result.ingredients == []
        # Assumptions gathered before the failure are kept
        assert any("Mixed veg" in a for a in result.assumptions)

    def test_non_finite_recipe_quantity_is_not_fatal(self, estimator_config, nutrition_index):
        recipes = json.loads(json.dumps(estimator_config.recipes))
        gobhi = [r for r in recipes["recipes"] if r["name"] == "Gobhi Sabzi"][0]
        gobhi["ingredients"][0]["quantity"] = "NaN"
        estimator = Estimator(dataclasses.replace(estimator_config, recipes=recipes), nutrition_index)

        result = estimator.estimate("Gobhi Sabzi")

        assert result.error is None
        assert result.confidence > 0
        assert result.ingredients[0].grams == 0
        assert all(i.grams >= 0 for i in result.ingredients)

    def test_out_of_range_confidence_config_rejected(self, estimator_config, nutrition_index):
        confidence = json.loads(json.dumps(DEFAULT_CONFIDENCE))
        confidence["penalties"]["match"] = -15

        with pytest.raises(ValueError, match="non-negative"):
            Estimator(dataclasses.replace(estimator_config, confidence=confidence), nutrition_index)


class TestBatch:

    def test_batch_preserves_order(self, estimator):
        results = estimator.estimate_batch([
            "Gobhi Sabzi",
            {"dish": "Chana masala", "issues": ["missing ingredient"]},
        ])
        assert [r.dish for r in results] == ["Gobhi Sabzi", "Chana masala"]
        assert results[1].issues == ["missing ingredient"]

    def test_write_results_json(self, estimator, tmp_path):
        results = estimator.estimate_batch(["Gobhi Sabzi"])
        out = write_results_json(results, tmp_path / "out" / "results.json")

        payload = json.loads(out.read_text())
        assert payload[0]["dish"] == "Gobhi Sabzi"
        assert "energy_kcal" in payload[0]["nutrition"]


def test_module_level_estimate():
    result = estimate("Gobhi Sabzi")
    assert result.dish_type == "Veg Gravy"
    assert result.recipe_name == "Gobhi Sabzi"
