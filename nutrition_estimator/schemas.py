"""
Pydantic schemas for the dish nutrition estimator.

Shared by every stage, the orchestrator and the CLI so results serialize the
same way everywhere.
"""
from pydantic import BaseModel, Field, field_validator
from typing import List, Optional, Dict


# Order is part of the output contract (serialized result field order)
NUTRIENT_FIELDS = (
    "energy_kj",
    "energy_kcal",
    "carb_g",
    "protein_g",
    "fat_g",
    "freesugar_g",
    "fibre_g",
)


class Nutrition(BaseModel):
    """The seven scalar nutrition fields (per 100g, per ingredient or per serving)."""
    energy_kj: float = 0.0
    energy_kcal: float = 0.0
    carb_g: float = 0.0
    protein_g: float = 0.0
    fat_g: float = 0.0
    freesugar_g: float = 0.0
    fibre_g: float = 0.0

    def scaled(self, factor: float) -> "Nutrition":
        """Return a copy with every field multiplied by factor, rounded to 0.1."""
        return Nutrition(**{
            field: round(getattr(self, field) * factor, 1)
            for field in NUTRIENT_FIELDS
        })

    def plus(self, other: "Nutrition") -> "Nutrition":
        """Field-wise sum (unrounded)."""
        return Nutrition(**{
            field: getattr(self, field) + getattr(other, field)
            for field in NUTRIENT_FIELDS
        })


class NutritionEntry(BaseModel):
    """One row of the nutrition database, values per 100g."""
    food_code: str
    food_name: str
    energy_kj: float = 0.0
    energy_kcal: float = 0.0
    carb_g: float = 0.0
    protein_g: float = 0.0
    fat_g: float = 0.0
    freesugar_g: float = 0.0
    fibre_g: float = 0.0
    primary_source: bool = False

    def per_100g(self) -> Nutrition:
        return Nutrition(**{field: getattr(self, field) for field in NUTRIENT_FIELDS})


class RecipeIngredient(BaseModel):
    """Template row of a recipe. Quantity stays textual ("1/2", "", "1.5")."""
    name: str
    quantity: str = ""
    unit: str = ""

    @field_validator('quantity', 'unit', mode='before')
    @classmethod
    def coerce_text(cls, v):
        """YAML hands back numbers for bare quantities like 200."""
        if v is None:
            return ""
        return str(v)


class Recipe(BaseModel):
    """Named recipe with an ordered ingredient list."""
    name: str
    ingredients: List[RecipeIngredient]

    @field_validator('ingredients')
    @classmethod
    def validate_ingredients(cls, v):
        if not v:
            raise ValueError("Recipe must have at least one ingredient")
        return v


class Ingredient(BaseModel):
    """
    Ingredient as it flows through the pipeline.

    Created by the recipe resolver (grams empty), filled in by the unit
    converter (quantity, unit, grams) and then by the matcher (match_type,
    food reference, nutrition). Stages return updated copies.
    """
    name: str
    original_quantity: str = ""
    original_unit: str = ""
    quantity: float = 0.0
    unit: str = ""
    grams: float = Field(default=0.0, ge=0.0)
    assumption_made: bool = False

    # Nutrition match
    match_type: Optional[str] = None
    food_code: Optional[str] = None
    food_name: Optional[str] = None
    nutrition_per_100g: Optional[Nutrition] = None
    nutrition: Optional[Nutrition] = None


class ServingSize(BaseModel):
    """Standard serving for a dish type."""
    unit: str = "Katori"
    weight_g: float


class EstimationResult(BaseModel):
    """Complete estimate for one dish with version tracking."""
    dish: str
    issues: List[str] = Field(default_factory=list)
    recipe_name: Optional[str] = None
    ingredients: List[Ingredient] = Field(default_factory=list)

    dish_type: str = "Unknown"
    serving_type: str = "Katori"
    serving_size: float = 0.0

    total_raw_weight: float = 0.0
    total_weight: float = 0.0
    cooking_method: Optional[str] = None

    nutrition: Nutrition = Field(default_factory=Nutrition)
    assumptions: List[str] = Field(default_factory=list)
    confidence: int = Field(default=100, ge=0, le=100)
    stage_penalties: Dict[str, int] = Field(default_factory=dict)
    error: Optional[str] = None

    # Version tracking
    config_version: str = "unknown"
    nutrition_db_version: str = "unknown"
