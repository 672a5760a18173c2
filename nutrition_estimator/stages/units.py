"""
Unit conversion: quantity + unit -> grams.

Weight lookup order:
1. katori           dish-style table (rice / dal / chutney / raita / non-veg / veg)
2. specific density ingredient + unit (exact name, then longest whole-word key)
3. general factor   per-unit linear factor
4. default weights  per-unit keyword table, logged as an assumption

Weights always use |quantity| and are rounded to one decimal.
"""
import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

from nutrition_estimator.schemas import Ingredient, RecipeIngredient
from nutrition_estimator.stages.rules import build_rules, classify

logger = logging.getLogger(__name__)

_MIXED_NUMBER = re.compile(r"^(-?\d+)\s+(\d+)\s*/\s*(\d+)$")
_FRACTION = re.compile(r"^(-?\d+(?:\.\d+)?)\s*/\s*(\d+(?:\.\d+)?)$")


def parse_quantity(value: Union[str, int, float, None]) -> float:
    """
    Parse a recipe quantity.

    Accepts numbers, decimal strings, fractions ("1/2") and mixed numbers
    ("1 1/2"). Empty, malformed or non-finite input ("nan", "inf") gives 0.0
    without raising.
    """
    if value is None:
        return 0.0
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else 0.0

    text = value.strip()
    if not text:
        return 0.0

    m = _MIXED_NUMBER.match(text)
    if m:
        whole, num, den = int(m.group(1)), int(m.group(2)), int(m.group(3))
        if den == 0:
            return 0.0
        sign = -1 if whole < 0 else 1
        return whole + sign * num / den

    m = _FRACTION.match(text)
    if m:
        den = float(m.group(2))
        result = float(m.group(1)) / den if den else 0.0
        return result if math.isfinite(result) else 0.0

    try:
        result = float(text)
    except ValueError:
        return 0.0
    return result if math.isfinite(result) else 0.0


@dataclass
class ConversionOutcome:
    """Converted quantity/unit/grams for one ingredient."""
    quantity: float
    unit: str
    grams: float
    assumptions: List[str] = field(default_factory=list)

    @property
    def assumption_made(self) -> bool:
        return bool(self.assumptions)


class UnitConverter:
    """Converts household measures to grams using the unit conversion tables."""

    def __init__(self, units_cfg: Dict[str, Any]):
        self.variations: Dict[str, str] = {}
        for canonical, spellings in units_cfg.get("unit_variations", {}).items():
            self.variations[canonical.lower()] = canonical.lower()
            for s in spellings:
                self.variations[s.lower()] = canonical.lower()

        self.specific: Dict[str, Dict[str, float]] = {
            k.lower(): {u.lower(): float(f) for u, f in v.items()}
            for k, v in units_cfg.get("specific", {}).items()
        }
        # Longest keys first so "dried herbs" beats a shorter overlapping key
        self._specific_keys = sorted(self.specific, key=lambda k: (-len(k), k))
        self.general: Dict[str, float] = {
            k.lower(): float(v) for k, v in units_cfg.get("general", {}).items()
        }
        self.glass_to_cup = float(units_cfg.get("glass_to_cup", 1.5))

        katori = units_cfg.get("katori", {})
        self.katori_rules = build_rules(katori.get("rules", []))
        self.katori_weights = {k: float(v) for k, v in katori.get("weights", {}).items()}
        self.katori_default = float(katori.get("default", 150))

        self.unit_guess_rules = build_rules(units_cfg.get("unit_guess", [{"label": "cup"}]))
        self.default_weights: Dict[str, Dict[str, float]] = {
            unit.lower(): {k.lower(): float(v) for k, v in table.items()}
            for unit, table in units_cfg.get("default_weights", {}).items()
        }
        self.fallback_weight = float(units_cfg.get("fallback_weight", 15))

    # Lookups -----------------------------------------------------------

    def normalize_unit(self, unit: Optional[str]) -> str:
        """Canonical spelling for a unit; unknown units are only lowercased."""
        text = (unit or "").strip().lower()
        return self.variations.get(text, text)

    def guess_unit(self, name: str) -> str:
        return classify(self.unit_guess_rules, name, default="cup")

    def katori_category(self, name: str) -> str:
        return classify(self.katori_rules, name, default="default")

    def specific_factor(self, name: str, unit: str) -> Optional[float]:
        """Ingredient-specific grams per unit, or None."""
        key = name.strip().lower()
        row = self.specific.get(key)
        if row is not None and unit in row:
            return row[unit]
        for candidate in self._specific_keys:
            if unit in self.specific[candidate] and re.search(rf"\b{re.escape(candidate)}\b", key):
                return self.specific[candidate][unit]
        return None

    def factor_for(self, name: str, unit: str) -> Optional[float]:
        """Specific factor, else general factor, else None."""
        factor = self.specific_factor(name, unit)
        if factor is None:
            factor = self.general.get(unit)
        return factor

    def default_weight(self, name: str, unit: str) -> float:
        """Per-unit default weight with ingredient keyword overrides."""
        table = self.default_weights.get(unit)
        if table is None:
            return self.fallback_weight
        lowered = name.lower()
        for keyword, weight in table.items():
            if keyword != "default" and keyword in lowered:
                return weight
        return table.get("default", self.fallback_weight)

    # Conversion --------------------------------------------------------

    def to_grams(self, name: str, quantity: Union[str, float], unit: Optional[str]) -> float:
        """Weight in grams for a quantity/unit pair (no assumption tracking)."""
        return self.convert(name, quantity, unit).grams

    def convert(self, name: str, quantity: Union[str, float], unit: Optional[str]) -> ConversionOutcome:
        """
        Convert one ingredient measure to grams.

        Args:
            name: Ingredient name
            quantity: Raw quantity (text or number)
            unit: Raw unit text (may be empty)

        Returns:
            ConversionOutcome with normalized quantity/unit, grams and assumptions
        """
        qty = parse_quantity(quantity)
        norm_unit = self.normalize_unit(unit)
        assumptions = []

        if not norm_unit:
            norm_unit = self.guess_unit(name)
            assumptions.append(f'Assumed unit "{norm_unit}" for {name} since no unit was provided')

        if norm_unit == "glass":
            qty = qty * self.glass_to_cup
            norm_unit = "cup"
            assumptions.append(
                f'Converted "glass" to "cup" for {name} (1 glass = {self.glass_to_cup:g} cups)'
            )

        magnitude = abs(qty)
        if norm_unit == "katori":
            category = self.katori_category(name)
            per_unit = self.katori_weights.get(category, self.katori_default)
            grams = per_unit * magnitude
        else:
            factor = self.factor_for(name, norm_unit)
            if factor is None:
                per_unit = self.default_weight(name, norm_unit)
                grams = per_unit * magnitude
                if magnitude > 0:
                    assumptions.append(
                        f"No conversion found for {qty:g} {norm_unit} of {name}. "
                        f"Assumed {round(grams, 1):g}g."
                    )
            else:
                grams = factor * magnitude

        grams = round(grams, 1)
        logger.debug("[UNITS] %s: %r %r -> %.1fg", name, quantity, unit, grams)
        return ConversionOutcome(quantity=qty, unit=norm_unit, grams=grams, assumptions=assumptions)

    def convert_ingredient(self, ingredient: RecipeIngredient) -> Tuple[Ingredient, List[str]]:
        """Build a pipeline Ingredient (with grams) from a recipe row."""
        outcome = self.convert(ingredient.name, ingredient.quantity, ingredient.unit)
        converted = Ingredient(
            name=ingredient.name,
            original_quantity=ingredient.quantity,
            original_unit=ingredient.unit,
            quantity=outcome.quantity,
            unit=outcome.unit,
            grams=outcome.grams,
            assumption_made=outcome.assumption_made,
        )
        return converted, outcome.assumptions

    def convert_all(self, ingredients: List[RecipeIngredient]) -> Tuple[List[Ingredient], List[str]]:
        converted, assumptions = [], []
        for ing in ingredients:
            item, notes = self.convert_ingredient(ing)
            converted.append(item)
            assumptions.extend(notes)
        return converted, assumptions
