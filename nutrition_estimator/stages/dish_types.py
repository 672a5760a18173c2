"""
Dish-type classification and standard serving lookup.

Cascade:
1. name_pattern          ordered category keyword table on the dish name
2. ingredient_inference  keyword rules on the joined ingredient names
3. name_fallback         last-resort keyword rules on the dish name

Only the first tier is free; the other two log an assumption. The result is
always a concrete category.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from nutrition_estimator.schemas import RecipeIngredient, ServingSize
from nutrition_estimator.stages.recipes import normalize_issues
from nutrition_estimator.stages.rules import build_rules, classify, first_rule, run_cascade

logger = logging.getLogger(__name__)

ISSUE_AMBIGUOUS_TYPE = "ambiguous dish type"
ISSUE_AMBIGUOUS_SERVING = "ambiguous serving size"


@dataclass
class Classification:
    """Dish type, its standard serving and how it was decided."""
    dish_type: str
    serving: ServingSize
    tier: str
    assumptions: List[str] = field(default_factory=list)


class DishClassifier:
    """Classifies dishes into serving categories."""

    def __init__(self, dish_cfg: Dict[str, Any]):
        self.name_patterns = build_rules(dish_cfg.get("name_patterns", []))
        self.ingredient_rules = build_rules(dish_cfg.get("ingredient_rules", []))
        self.name_fallback = build_rules(dish_cfg.get("name_fallback", [{"label": "Veg Gravy"}]))
        self.servings: Dict[str, ServingSize] = {
            k: ServingSize(**v) for k, v in dish_cfg.get("servings", {}).items()
        }
        self.default_serving = ServingSize(**dish_cfg.get("default_serving", {"unit": "Katori", "weight_g": 150}))

        self.tiers = [
            ("name_pattern", self._from_name),
            ("ingredient_inference", self._from_ingredients),
            ("name_fallback", self._from_name_fallback),
        ]

    def _from_name(self, dish_name: str, ingredient_text: str) -> Optional[str]:
        rule = first_rule(self.name_patterns, dish_name)
        return rule.label if rule else None

    def _from_ingredients(self, dish_name: str, ingredient_text: str) -> Optional[str]:
        if not ingredient_text:
            return None
        return classify(self.ingredient_rules, ingredient_text)

    def _from_name_fallback(self, dish_name: str, ingredient_text: str) -> str:
        return classify(self.name_fallback, dish_name, default="Veg Gravy")

    def serving_for(self, dish_type: str) -> ServingSize:
        """Standard serving for a category (default serving if unknown)."""
        return self.servings.get(dish_type, self.default_serving)

    def candidate_types(self, dish_name: str, ingredient_text: str) -> List[str]:
        """Every category the name or ingredients point at, in table order."""
        candidates = []
        for rule in self.name_patterns:
            if rule.matches(dish_name) and rule.label not in candidates:
                candidates.append(rule.label)
        inferred = self._from_ingredients(dish_name, ingredient_text)
        if inferred and inferred not in candidates:
            candidates.append(inferred)
        return candidates

    def classify(
        self,
        dish_name: str,
        ingredients: Sequence[RecipeIngredient],
        issues: Optional[Sequence[str]] = None,
    ) -> Classification:
        """
        Classify a dish and pick its standard serving.

        Args:
            dish_name: Free-text dish name
            ingredients: Raw recipe ingredients (names only are used)
            issues: Optional issue tags ("ambiguous dish type", "ambiguous serving size")

        Returns:
            Classification (never "Unknown")
        """
        name = dish_name.lower()
        ingredient_text = " ".join(ing.name.lower() for ing in ingredients)
        tier, dish_type = run_cascade(self.tiers, name, ingredient_text)

        assumptions = []
        if tier == "ingredient_inference":
            assumptions.append(
                f'Could not identify dish type from name "{dish_name}". '
                f'Inferred "{dish_type}" from ingredients'
            )
        elif tier == "name_fallback":
            assumptions.append(f'Could not identify dish type for "{dish_name}". Defaulted to "{dish_type}"')

        tags = normalize_issues(issues)
        if ISSUE_AMBIGUOUS_TYPE in tags:
            candidates = self.candidate_types(name, ingredient_text)
            others = [c for c in candidates if c != dish_type]
            if others:
                assumptions.append(
                    f'Dish type is ambiguous between {", ".join([dish_type] + others)}. '
                    f'Used "{dish_type}"'
                )

        serving = self.serving_for(dish_type)
        if ISSUE_AMBIGUOUS_SERVING in tags:
            assumptions.append(
                f'Ambiguous serving size for "{dish_name}". Using standard serving size for '
                f'"{dish_type}" ({serving.weight_g:g}g per {serving.unit.lower()})'
            )

        logger.debug("[DISH_TYPE] %s -> %s via %s", dish_name, dish_type, tier)
        return Classification(dish_type=dish_type, serving=serving, tier=tier, assumptions=assumptions)
