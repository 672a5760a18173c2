"""Estimation stages: recipe lookup, unit conversion, matching, classification, aggregation."""
from nutrition_estimator.stages.aggregate import Aggregate, NutritionAggregator
from nutrition_estimator.stages.dish_types import Classification, DishClassifier
from nutrition_estimator.stages.matcher import MatchOutcome, NutritionMatcher
from nutrition_estimator.stages.recipes import RecipeResolution, RecipeResolver
from nutrition_estimator.stages.units import ConversionOutcome, UnitConverter, parse_quantity

__all__ = [
    "Aggregate",
    "NutritionAggregator",
    "Classification",
    "DishClassifier",
    "MatchOutcome",
    "NutritionMatcher",
    "RecipeResolution",
    "RecipeResolver",
    "ConversionOutcome",
    "UnitConverter",
    "parse_quantity",
]
