"""
Per-serving aggregation.

Sums ingredient nutrition, estimates cooked weight from raw weight with a
coarse cooking-method factor and rescales the totals to one serving:

    per_serving = total * serving_g / cooked_weight_g
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence, Tuple

from nutrition_estimator.schemas import Ingredient, Nutrition
from nutrition_estimator.stages.rules import build_rules, contains_any, first_rule

logger = logging.getLogger(__name__)


@dataclass
class Aggregate:
    """Per-serving nutrition plus the weights it was derived from."""
    nutrition: Nutrition
    total_raw_weight: float
    cooked_weight: float
    cooking_method: str
    assumptions: List[str] = field(default_factory=list)


class NutritionAggregator:
    """Scales summed ingredient nutrition to a single serving."""

    def __init__(self, cooking_cfg: Dict[str, Any]):
        self.method_rules = build_rules(cooking_cfg.get("methods", []))
        liquid = cooking_cfg.get("liquid", {})
        self.liquid_label = liquid.get("label", "simmered_in_liquid")
        self.liquid_keywords = [k.lower() for k in liquid.get("keywords", [])]
        self.liquid_min_fraction = float(liquid.get("min_fraction", 0.3))
        self.liquid_factor = float(liquid.get("value", 0.9))
        default = cooking_cfg.get("default", {})
        self.default_label = default.get("label", "general_water_loss")
        self.default_factor = float(default.get("value", 0.9))
        self.empty_weight_servings = float(cooking_cfg.get("empty_weight_servings", 4))

    def cooking_factor(self, ingredients: Sequence[Ingredient]) -> Tuple[str, float]:
        """
        Pick the cooked/raw weight ratio for a set of ingredients.

        Returns:
            (method_label, factor)
        """
        text = " ".join(ing.name.lower() for ing in ingredients)
        rule = first_rule(self.method_rules, text)
        if rule is not None:
            return rule.label, float(rule.value)

        raw = sum(ing.grams for ing in ingredients)
        liquid = sum(ing.grams for ing in ingredients if contains_any(ing.name, self.liquid_keywords))
        if raw > 0 and liquid / raw > self.liquid_min_fraction:
            return self.liquid_label, self.liquid_factor

        return self.default_label, self.default_factor

    def aggregate(self, ingredients: Sequence[Ingredient], serving_g: float) -> Aggregate:
        """
        Compute per-serving nutrition.

        Args:
            ingredients: Matched ingredients (nutrition already scaled to grams)
            serving_g: Standard serving weight for the dish type

        Returns:
            Aggregate with per-serving nutrition and assumptions
        """
        assumptions = []
        total_raw = round(sum(ing.grams for ing in ingredients), 1)
        method, factor = self.cooking_factor(ingredients)
        cooked = round(total_raw * factor, 1)

        if cooked <= 0:
            cooked = serving_g * self.empty_weight_servings
            assumptions.append(
                f"Could not estimate cooked weight. Assumed {cooked:g}g "
                f"({self.empty_weight_servings:g} servings)"
            )

        total = Nutrition()
        skipped = []
        for ing in ingredients:
            if ing.nutrition is None:
                skipped.append(ing.name)
                continue
            total = total.plus(ing.nutrition)
        if skipped:
            assumptions.append(f"Skipped ingredients with no nutrition data: {', '.join(skipped)}")

        per_serving = total.scaled(serving_g / cooked)
        logger.debug(
            "[AGGREGATE] raw=%.1fg cooked=%.1fg (%s x%.2f) serving=%.1fg",
            total_raw, cooked, method, factor, serving_g,
        )
        return Aggregate(
            nutrition=per_serving,
            total_raw_weight=total_raw,
            cooked_weight=cooked,
            cooking_method=method,
            assumptions=assumptions,
        )
