"""
Recipe resolution: dish name -> ingredient list.

Lookup cascade (first hit wins):
1. exact              case-insensitive recipe name
2. base_name          text from the first "(" dropped, substring either way
3. token_overlap      any dish word longer than 2 chars inside a recipe name
4. category_fallback  veg / meat keyword -> generic recipe, else default recipe

Resolution never fails. The returned ingredients are fresh copies, so issue
repairs never touch the shared recipe table.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Any

from nutrition_estimator.schemas import Recipe, RecipeIngredient
from nutrition_estimator.stages.rules import build_rules, classify, run_cascade

logger = logging.getLogger(__name__)

ISSUE_MISSING_INGREDIENT = "missing ingredient"
ISSUE_QUANTITY_MISSING = "quantity missing"

def normalize_issues(issues: Optional[Sequence[str]]) -> List[str]:
    """Lowercase and trim caller-supplied issue tags."""
    return [i.strip().lower() for i in (issues or []) if i and i.strip()]


@dataclass
class RecipeResolution:
    """Outcome of a recipe lookup."""
    recipe_name: str
    match_tier: str
    ingredients: List[RecipeIngredient]
    assumptions: List[str] = field(default_factory=list)


class RecipeResolver:
    """Resolves dish names against a fixed recipe table."""

    def __init__(self, recipes_cfg: Dict[str, Any]):
        """
        Args:
            recipes_cfg: Parsed recipes.yml (recipes, fallback, repairs)
        """
        self.recipes: List[Recipe] = [Recipe(**r) for r in recipes_cfg.get("recipes", [])]
        self._by_name = {r.name.lower(): r for r in self.recipes}

        fallback = recipes_cfg.get("fallback", {})
        self.fallback_rules = build_rules(fallback.get("rules", []))
        self.default_recipe = fallback["default_recipe"]

        repairs = recipes_cfg.get("repairs", {})
        self.missing_ingredient = RecipeIngredient(
            **repairs.get("missing_ingredient", {"name": "salt", "quantity": "1", "unit": "tsp"})
        )
        qty_cfg = repairs.get("quantity_missing", {})
        self.backfill_quantity = str(qty_cfg.get("quantity", "1"))
        self.backfill_unit_rules = build_rules(qty_cfg.get("unit_rules", [{"label": "cup"}]))

        self.tiers = [
            ("exact", self._match_exact),
            ("base_name", self._match_base_name),
            ("token_overlap", self._match_token_overlap),
            ("category_fallback", self._match_category),
        ]

    # Tiers -------------------------------------------------------------

    def _match_exact(self, dish_name: str) -> Optional[Recipe]:
        return self._by_name.get(dish_name.strip().lower())

    def _match_base_name(self, dish_name: str) -> Optional[Recipe]:
        # Everything from the first "(" on is a suffix, closed or not
        base = dish_name.split("(")[0].strip().lower()
        if not base:
            return None
        for recipe in self.recipes:
            name = recipe.name.lower()
            if base in name or name in base:
                return recipe
        return None

    def _match_token_overlap(self, dish_name: str) -> Optional[Recipe]:
        words = [w for w in dish_name.lower().split() if len(w) > 2]
        if not words:
            return None
        for recipe in self.recipes:
            name = recipe.name.lower()
            if any(w in name for w in words):
                return recipe
        return None

    def _match_category(self, dish_name: str) -> Recipe:
        target = classify(self.fallback_rules, dish_name, default=self.default_recipe)
        return self._by_name[target.lower()]

    # Public API --------------------------------------------------------

    def resolve(self, dish_name: str, issues: Optional[Sequence[str]] = None) -> RecipeResolution:
        """
        Resolve a dish name to a private copy of a recipe's ingredients.

        Args:
            dish_name: Free-text dish name
            issues: Optional issue tags ("missing ingredient", "quantity missing")

        Returns:
            RecipeResolution with the ingredient list and any assumptions
        """
        tier, recipe = run_cascade(self.tiers, dish_name)
        assumptions = []

        if tier == "base_name":
            assumptions.append(
                f'Used recipe for "{recipe.name}" as it most closely matches "{dish_name}"'
            )
        elif tier == "token_overlap":
            assumptions.append(
                f'Used recipe for "{recipe.name}" based on keyword match with "{dish_name}"'
            )
        elif tier == "category_fallback":
            assumptions.append(
                f'No recipe found for "{dish_name}". Used generic "{recipe.name}" recipe as a fallback'
            )

        logger.debug("[RECIPE] %r -> %r via %s", dish_name, recipe.name, tier)

        ingredients = [ing.model_copy(deep=True) for ing in recipe.ingredients]
        ingredients, repair_notes = self.apply_repairs(ingredients, issues)
        assumptions.extend(repair_notes)

        return RecipeResolution(
            recipe_name=recipe.name,
            match_tier=tier,
            ingredients=ingredients,
            assumptions=assumptions,
        )

    def apply_repairs(self, ingredients: List[RecipeIngredient], issues: Optional[Sequence[str]]):
        """
        Repair an ingredient list for caller-reported issues.

        Returns:
            (new ingredient list, assumption strings)
        """
        tags = normalize_issues(issues)
        repaired = list(ingredients)
        notes = []

        if ISSUE_MISSING_INGREDIENT in tags:
            extra = self.missing_ingredient.model_copy()
            repaired.append(extra)
            notes.append(
                f"Added {extra.quantity} {extra.unit} {extra.name} to handle the reported missing ingredient"
            )

        if ISSUE_QUANTITY_MISSING in tags:
            filled = []
            for i, ing in enumerate(repaired):
                if ing.quantity.strip():
                    continue
                unit = ing.unit or classify(self.backfill_unit_rules, ing.name, default="cup")
                repaired[i] = ing.model_copy(update={"quantity": self.backfill_quantity, "unit": unit})
                filled.append(f"{ing.name} ({self.backfill_quantity} {unit})")
            if filled:
                notes.append("Assumed standard quantities for ingredients with missing amounts: " + ", ".join(filled))

        return repaired, notes
