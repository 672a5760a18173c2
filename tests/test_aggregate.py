"""
Aggregator tests: cooking factors, per-serving scaling and guards.
"""
import pytest

from nutrition_estimator.schemas import Ingredient, Nutrition
from nutrition_estimator.stages.aggregate import NutritionAggregator


@pytest.fixture(scope="module")
def aggregator(estimator_config):
    return NutritionAggregator(estimator_config.cooking)


def _ing(name, grams, kcal_per_100g=100.0):
    per_100g = Nutrition(energy_kcal=kcal_per_100g, protein_g=10.0)
    return Ingredient(
        name=name,
        grams=grams,
        nutrition_per_100g=per_100g,
        nutrition=per_100g.scaled(grams / 100.0),
    )


class TestCookingFactor:

    @pytest.mark.parametrize("names,method,factor", [
        (("basmati rice", "water"), "rice_absorption", 1.5),
        (("toor dal", "water"), "pulse_absorption", 1.4),
        (("beans", "carrot"), "pulse_absorption", 1.4),
        (("besan pakora mix", "oil"), "frying", 0.8),
        (("mixed vegetables", "cooking oil"), "vegetable_cooking", 0.9),
        (("mutton", "onion"), "meat_cooking", 0.75),
    ])
    def test_keyword_methods(self, aggregator, names, method, factor):
        ings = [_ing(n, 100) for n in names]
        assert aggregator.cooking_factor(ings) == (method, factor)

    def test_vegetable_needs_cooking_verb(self, aggregator):
        ings = [_ing("mixed vegetables", 100), _ing("salt", 5)]
        assert aggregator.cooking_factor(ings)[0] == "general_water_loss"

    def test_added_liquid_over_threshold(self, aggregator):
        ings = [_ing("paneer", 100), _ing("milk", 100)]
        assert aggregator.cooking_factor(ings) == ("simmered_in_liquid", 0.9)

    def test_added_liquid_under_threshold(self, aggregator):
        ings = [_ing("paneer", 100), _ing("water", 20)]
        assert aggregator.cooking_factor(ings) == ("general_water_loss", 0.9)


class TestAggregate:

    def test_per_serving_scaling(self, aggregator):
        # raw 200g, default factor 0.9 -> cooked 180g; serving 150g
        ings = [_ing("paneer", 100, 300.0), _ing("spinach", 100, 30.0)]
        result = aggregator.aggregate(ings, 150)

        assert result.total_raw_weight == 200
        assert result.cooked_weight == 180
        assert result.nutrition.energy_kcal == pytest.approx(round(330 * 150 / 180, 1))
        assert result.nutrition.protein_g == pytest.approx(round(20 * 150 / 180, 1))
        assert result.assumptions == []

    def test_zero_weight_uses_four_servings(self, aggregator):
        ings = [_ing("salt", 0)]
        result = aggregator.aggregate(ings, 150)

        assert result.cooked_weight == 600
        assert result.nutrition.energy_kcal == 0
        assert len(result.assumptions) == 1

    def test_empty_ingredient_list(self, aggregator):
        result = aggregator.aggregate([], 100)
        assert result.cooked_weight == 400
        assert result.nutrition == Nutrition()

    def test_unmatched_ingredient_is_skipped(self, aggregator):
        ings = [_ing("paneer", 100, 300.0), Ingredient(name="mystery", grams=50)]
        result = aggregator.aggregate(ings, 150)

        assert result.total_raw_weight == 150
        assert any("mystery" in a for a in result.assumptions)
        assert result.nutrition.energy_kcal == pytest.approx(round(300 * 150 / 135, 1))
