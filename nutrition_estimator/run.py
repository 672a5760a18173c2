"""
Main estimation orchestrator.

Runs the fixed stage sequence

    fetch -> convert -> match -> classify -> aggregate

and derives the confidence score from which stages had to fall back on a
heuristic. estimate() is the single entry point used by the CLI and batch
runs.
"""
import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from nutrition_estimator.config_loader import EstimatorConfig, load_estimator_config, validate_confidence_config
from nutrition_estimator.nutrition_index import NutritionIndex, load_nutrition_index
from nutrition_estimator.schemas import EstimationResult, Nutrition
from nutrition_estimator.stages.aggregate import NutritionAggregator
from nutrition_estimator.stages.dish_types import DishClassifier
from nutrition_estimator.stages.matcher import NutritionMatcher
from nutrition_estimator.stages.recipes import RecipeResolver
from nutrition_estimator.stages.units import UnitConverter

logger = logging.getLogger(__name__)

class ConfidenceTracker:
    """
    Append-only assumption log with stage penalties.

    A stage is debited once, the first time it logs any assumption. The
    score never goes below the floor and never increases.
    """

    def __init__(self, confidence_cfg: Dict[str, Any]):
        self.score = int(confidence_cfg.get("start", 100))
        self.floor = int(confidence_cfg.get("floor", 0))
        self.penalties: Dict[str, int] = {
            k: int(v) for k, v in confidence_cfg.get("penalties", {}).items()
        }
        self.assumptions: List[str] = []
        self.applied: Dict[str, int] = {}

    def record(self, stage: str, assumptions: Iterable[str]) -> None:
        notes = [a for a in assumptions if a]
        if not notes:
            return
        self.assumptions.extend(notes)
        if stage in self.applied:
            return
        penalty = self.penalties.get(stage, 0)
        self.applied[stage] = penalty
        self.score = max(self.floor, self.score - penalty)


class Estimator:
    """
    Dish nutrition estimator bound to one set of lookup tables.

    Tables are read once at construction and only read afterwards, so one
    instance can serve any number of estimate() calls.
    """

    def __init__(self, cfg: EstimatorConfig, nutrition_index: NutritionIndex):
        validate_confidence_config(cfg.confidence)
        self.cfg = cfg
        self.nutrition_index = nutrition_index
        self.resolver = RecipeResolver(cfg.recipes)
        self.converter = UnitConverter(cfg.unit_conversions)
        self.matcher = NutritionMatcher(nutrition_index, cfg.matching)
        self.classifier = DishClassifier(cfg.dish_types)
        self.aggregator = NutritionAggregator(cfg.cooking)

    @classmethod
    def from_paths(
        cls,
        config_dir: Optional[Union[str, Path]] = None,
        nutrition_db: Optional[Union[str, Path]] = None,
    ) -> "Estimator":
        """Load tables from disk (packaged defaults when paths are None)."""
        return cls(load_estimator_config(config_dir), load_nutrition_index(nutrition_db))

    def estimate(self, dish_name: str, issues: Optional[Sequence[str]] = None) -> EstimationResult:
        """
        Estimate per-serving nutrition for a dish.

        Args:
            dish_name: Free-text dish name
            issues: Optional issue tags (e.g. "quantity missing")

        Returns:
            EstimationResult. On an unexpected failure the result carries
            zero nutrition, confidence 0 and the error message.

        Example:
            >>> from nutrition_estimator.run import estimate
            >>> result = estimate("Paneer Curry with capsicum")
            >>> print(result.dish_type, result.serving_size, result.confidence)
        """
        issues = list(issues or [])
        tracker = ConfidenceTracker(self.cfg.confidence)
        versions = {
            "config_version": self.cfg.config_version,
            "nutrition_db_version": self.nutrition_index.version,
        }
        logger.info("[ESTIMATE] Starting estimate for %r (issues=%s)", dish_name, issues)

        try:
            resolution = self.resolver.resolve(dish_name, issues)
            tracker.record("fetch", resolution.assumptions)

            converted, notes = self.converter.convert_all(resolution.ingredients)
            tracker.record("convert", notes)

            matched, notes = self.matcher.match_all(converted)
            tracker.record("match", notes)

            classification = self.classifier.classify(dish_name, resolution.ingredients, issues)
            tracker.record("classify", classification.assumptions)

            aggregate = self.aggregator.aggregate(matched, classification.serving.weight_g)
            tracker.record("aggregate", aggregate.assumptions)

        except Exception as e:
            logger.exception("[ESTIMATE] Estimation failed for %r", dish_name)
            return EstimationResult(
                dish=dish_name,
                issues=issues,
                nutrition=Nutrition(),
                assumptions=list(tracker.assumptions),
                confidence=0,
                stage_penalties=dict(tracker.applied),
                error=f"{type(e).__name__}: {e}",
                **versions,
            )

        result = EstimationResult(
            dish=dish_name,
            issues=issues,
            recipe_name=resolution.recipe_name,
            ingredients=matched,
            dish_type=classification.dish_type,
            serving_type=classification.serving.unit,
            serving_size=classification.serving.weight_g,
            total_raw_weight=aggregate.total_raw_weight,
            total_weight=aggregate.cooked_weight,
            cooking_method=aggregate.cooking_method,
            nutrition=aggregate.nutrition,
            assumptions=list(tracker.assumptions),
            confidence=tracker.score,
            stage_penalties=dict(tracker.applied),
            **versions,
        )
        logger.info(
            "[ESTIMATE] %s -> %s, %.1f kcal/serving, confidence=%d (%d assumptions)",
            dish_name, result.dish_type, result.nutrition.energy_kcal,
            result.confidence, len(result.assumptions),
        )
        return result

    def estimate_batch(self, dishes: Iterable[Union[str, Dict[str, Any]]]) -> List[EstimationResult]:
        """
        Estimate a sequence of dishes in order.

        Args:
            dishes: Dish names or {"dish": ..., "issues": [...]} mappings

        Returns:
            One EstimationResult per input, same order
        """
        results = []
        for item in dishes:
            if isinstance(item, str):
                results.append(self.estimate(item))
            else:
                results.append(self.estimate(item["dish"], item.get("issues", [])))
        logger.info(
            "[BATCH] Estimated %d dishes (%d errors)",
            len(results), sum(1 for r in results if r.error),
        )
        return results


def write_results_json(results: Sequence[EstimationResult], path: Union[str, Path]) -> Path:
    """Write results as an indented JSON array."""
    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with open(out_path, "w") as f:
        json.dump([r.model_dump(mode="json") for r in results], f, indent=2)
    logger.info("[BATCH] Wrote %d results to %s", len(results), out_path)
    return out_path


@lru_cache(maxsize=1)
def default_estimator() -> Estimator:
    """Estimator over the packaged tables, built once per process."""
    return Estimator.from_paths()


def estimate(dish_name: str, issues: Optional[Sequence[str]] = None) -> EstimationResult:
    """Estimate with the packaged tables. See Estimator.estimate."""
    return default_estimator().estimate(dish_name, issues)
