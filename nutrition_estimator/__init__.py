"""
Dish nutrition estimator.

Estimates per-serving nutrition for a named dish by chaining recipe lookup,
unit conversion, nutrition matching, dish-type classification and
aggregation, logging every assumption on the way.
"""
from nutrition_estimator.config_loader import EstimatorConfig, load_estimator_config
from nutrition_estimator.nutrition_index import NutritionIndex, load_nutrition_index
from nutrition_estimator.run import Estimator, estimate, write_results_json
from nutrition_estimator.schemas import EstimationResult, Ingredient, Nutrition

__version__ = "0.1.0"

__all__ = [
    "EstimatorConfig",
    "load_estimator_config",
    "NutritionIndex",
    "load_nutrition_index",
    "Estimator",
    "estimate",
    "write_results_json",
    "EstimationResult",
    "Ingredient",
    "Nutrition",
]
