"""
Nutrition matching: ingredient name -> nutrition database entry.

Match tiers, tried in order:
1. exact              case-insensitive food name equality
2. normalized         equality after dropping non-alphanumerics
3. synonym            regional / alternate names (both directions)
4. partial            substring either way; primary source, then shortest name
5. category_fallback  keyword category -> representative entry

Every tier past exact costs one assumption. Known spelling variations
(e.g. capsicum) override a non-exact match and replace that assumption.
"""
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from nutrition_estimator.nutrition_index import NutritionIndex
from nutrition_estimator.schemas import Ingredient, NutritionEntry
from nutrition_estimator.stages.rules import build_rules, classify, run_cascade

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def normalize_name(name: str) -> str:
    """Lowercase and strip everything that is not a letter or digit."""
    return _NON_ALNUM.sub("", name.lower())


@dataclass
class MatchOutcome:
    """Matched entry for one ingredient."""
    entry: NutritionEntry
    match_type: str
    assumption: Optional[str] = None


class NutritionMatcher:
    """Cascading matcher over a NutritionIndex."""

    def __init__(self, index: NutritionIndex, matching_cfg: Dict[str, Any]):
        self.index = index
        self.synonyms: List[Tuple[str, List[str]]] = [
            (term.lower(), [alt.lower() for alt in alts])
            for term, alts in matching_cfg.get("synonyms", {}).items()
        ]
        self.spelling_corrections = [
            (row["match"].lower(), row["food_name_contains"])
            for row in matching_cfg.get("spelling_corrections", [])
        ]
        self.category_rules = build_rules(matching_cfg.get("categories", [{"label": "other"}]))
        self.category_entries: Dict[str, Dict[str, str]] = matching_cfg.get("category_entries", {})

        self._lower_names = [(e.food_name.lower(), e) for e in index.entries]
        self._normalized_names = [(normalize_name(e.food_name), e) for e in index.entries]

        self.tiers = [
            ("exact", self._match_exact),
            ("normalized", self._match_normalized),
            ("synonym", self._match_synonym),
            ("partial", self._match_partial),
        ]

    # Tiers -------------------------------------------------------------

    def _match_exact(self, name: str) -> Optional[NutritionEntry]:
        for food_name, entry in self._lower_names:
            if food_name == name:
                return entry
        return None

    def _match_normalized(self, name: str) -> Optional[NutritionEntry]:
        target = normalize_name(name)
        if not target:
            return None
        for food_name, entry in self._normalized_names:
            if food_name == target:
                return entry
        return None

    def _first_containing(self, terms: List[str]) -> Optional[NutritionEntry]:
        for food_name, entry in self._lower_names:
            if any(t in food_name for t in terms):
                return entry
        return None

    def _match_synonym(self, name: str) -> Optional[NutritionEntry]:
        # Alternate name used in the ingredient -> standard term in the db
        for term, alternates in self.synonyms:
            if any(alt in name for alt in alternates):
                entry = self._first_containing([term])
                if entry is not None:
                    return entry

        # Standard term used in the ingredient -> term or any alternate in the db
        for term, alternates in self.synonyms:
            if term in name:
                entry = self._first_containing([term] + alternates)
                if entry is not None:
                    return entry
        return None

    def _match_partial(self, name: str) -> Optional[NutritionEntry]:
        target = normalize_name(name)
        if not target:
            return None

        candidates = [e for food_name, e in self._normalized_names if target in food_name]
        if not candidates:
            candidates = [e for food_name, e in self._normalized_names if food_name and food_name in target]
        if not candidates:
            return None

        primary = [e for e in candidates if e.primary_source]
        pool = primary or candidates
        # Stable: ties keep table order
        return min(pool, key=lambda e: len(e.food_name))

    def category_of(self, name: str) -> str:
        return classify(self.category_rules, name, default="other")

    def _category_entry(self, category: str) -> NutritionEntry:
        selector = self.category_entries.get(category) or self.category_entries.get("other", {})
        entry = None
        if "food_code" in selector:
            entry = self.index.find_by_code(selector["food_code"])
        if entry is None and "name_contains" in selector:
            entry = self.index.find_name_containing(selector["name_contains"])
        if entry is None:
            # Table is never empty (NutritionIndex refuses that)
            entry = self.index.entries[0]
        return entry

    def _spelling_correction(self, name: str) -> Optional[Tuple[str, NutritionEntry]]:
        for variant, fragment in self.spelling_corrections:
            if variant in name:
                entry = self.index.find_name_containing(fragment)
                if entry is not None:
                    return variant, entry
        return None

    # Public API --------------------------------------------------------

    def match(self, ingredient_name: str) -> MatchOutcome:
        """
        Resolve an ingredient name to a database entry. Always returns a match.

        Args:
            ingredient_name: Free-text ingredient name

        Returns:
            MatchOutcome with entry, tier label and at most one assumption
        """
        name = ingredient_name.strip().lower()
        tier, entry = run_cascade(self.tiers, name)

        if tier is None:
            category = self.category_of(name)
            entry = self._category_entry(category)
            outcome = MatchOutcome(
                entry=entry,
                match_type="category_fallback",
                assumption=(
                    f'No nutrition match for "{ingredient_name}". '
                    f'Used generic {category} entry "{entry.food_name}"'
                ),
            )
        else:
            assumption = None
            if tier != "exact":
                assumption = (
                    f'Matched "{ingredient_name}" to "{entry.food_name}" ({tier} match)'
                )
            outcome = MatchOutcome(entry=entry, match_type=tier, assumption=assumption)

        if outcome.match_type != "exact":
            corrected = self._spelling_correction(name)
            if corrected is not None:
                variant, entry = corrected
                outcome = MatchOutcome(
                    entry=entry,
                    match_type="spelling_correction",
                    assumption=(
                        f'Corrected spelling variation: mapped "{ingredient_name}" to "{entry.food_name}"'
                    ),
                )

        logger.debug("[MATCH] %s -> %s (%s)", ingredient_name, outcome.entry.food_name, outcome.match_type)
        return outcome

    def match_ingredient(self, ingredient: Ingredient) -> Tuple[Ingredient, Optional[str]]:
        """Return a copy of the ingredient with matched and scaled nutrition."""
        outcome = self.match(ingredient.name)
        per_100g = outcome.entry.per_100g()
        updated = ingredient.model_copy(update={
            "match_type": outcome.match_type,
            "food_code": outcome.entry.food_code,
            "food_name": outcome.entry.food_name,
            "nutrition_per_100g": per_100g,
            "nutrition": per_100g.scaled(ingredient.grams / 100.0),
        })
        return updated, outcome.assumption

    def match_all(self, ingredients: List[Ingredient]) -> Tuple[List[Ingredient], List[str]]:
        matched, assumptions = [], []
        for ing in ingredients:
            item, note = self.match_ingredient(ing)
            matched.append(item)
            if note:
                assumptions.append(note)
        return matched, assumptions
