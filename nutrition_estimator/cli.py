"""
Command-line front end.

Usage:
    nutrition-estimate "Paneer Curry with capsicum"
    nutrition-estimate "Jeera Aloo" --issue "quantity missing" --json
    nutrition-estimate --batch dishes.json --output results.json
    nutrition-estimate --samples -v
"""
import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from nutrition_estimator.config_loader import load_sample_dishes
from nutrition_estimator.logging_utils import configure_logging
from nutrition_estimator.run import Estimator, write_results_json
from nutrition_estimator.schemas import NUTRIENT_FIELDS, EstimationResult
from nutrition_estimator.settings import EstimatorSettings

MAX_INGREDIENTS_SHOWN = 5


def format_result(result: EstimationResult) -> str:
    """Human-readable report for one result."""
    lines = ["=" * 60, f"Dish: {result.dish}"]
    if result.error:
        lines.append(f"ERROR: {result.error}")
    else:
        lines.append(f"Recipe: {result.recipe_name}")
        lines.append(f"Dish type: {result.dish_type}")
        lines.append(f"Serving: {result.serving_size:g}g ({result.serving_type})")
        lines.append(f"Cooked weight: {result.total_weight:g}g (raw {result.total_raw_weight:g}g)")
        lines.append("Nutrition per serving:")
        for field in NUTRIENT_FIELDS:
            lines.append(f"  {field:<12} {getattr(result.nutrition, field):>8.1f}")
        lines.append("Ingredients:")
        for ing in result.ingredients[:MAX_INGREDIENTS_SHOWN]:
            lines.append(f"  - {ing.name}: {ing.grams:g}g -> {ing.food_name} [{ing.match_type}]")
        hidden = len(result.ingredients) - MAX_INGREDIENTS_SHOWN
        if hidden > 0:
            lines.append(f"  ... and {hidden} more")
    lines.append(f"Confidence: {result.confidence}%")
    if result.assumptions:
        lines.append("Assumptions:")
        for note in result.assumptions:
            lines.append(f"  * {note}")
    return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nutrition-estimate",
        description="Estimate per-serving nutrition for a dish",
    )
    parser.add_argument("dish", nargs="?",
                        help="Dish name, e.g. \"Paneer Curry with capsicum\"")
    parser.add_argument("--issue", action="append", default=[],
                        help="Issue tag (repeatable): 'missing ingredient', 'quantity missing', "
                             "'ambiguous dish type', 'ambiguous serving size'")
    parser.add_argument("--batch", type=Path,
                        help="JSON file of dishes to estimate")
    parser.add_argument("--samples", action="store_true",
                        help="Run the bundled sample dishes")
    parser.add_argument("--output", type=Path,
                        help="Write results as JSON to this file")
    parser.add_argument("--json", action="store_true",
                        help="Print results as JSON instead of a text report")
    parser.add_argument("--config-dir", type=Path,
                        help="Configs directory (overrides ESTIMATOR_CONFIG_DIR)")
    parser.add_argument("--nutrition-db", type=Path,
                        help="Nutrition CSV (overrides ESTIMATOR_NUTRITION_DB)")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Debug logging")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.dish and not args.batch and not args.samples:
        parser.print_usage(sys.stderr)
        print("error: give a dish name, --batch FILE or --samples", file=sys.stderr)
        return 2

    settings = EstimatorSettings.from_env()
    configure_logging("DEBUG" if args.verbose else settings.log_level, settings.log_format, stream=sys.stderr)

    estimator = Estimator.from_paths(
        config_dir=args.config_dir or settings.config_dir,
        nutrition_db=args.nutrition_db or settings.nutrition_db,
    )

    if args.batch or args.samples:
        dishes = load_sample_dishes(args.batch)
        results: List[EstimationResult] = estimator.estimate_batch(dishes)
    else:
        results = [estimator.estimate(args.dish, args.issue)]

    if args.output:
        write_results_json(results, args.output)

    if args.json:
        payload = [r.model_dump(mode="json") for r in results]
        print(json.dumps(payload[0] if len(payload) == 1 and args.dish else payload, indent=2))
    else:
        for result in results:
            print(format_result(result))

    return 1 if any(r.error for r in results) else 0


if __name__ == "__main__":
    sys.exit(main())
