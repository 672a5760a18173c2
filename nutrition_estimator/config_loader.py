"""
Configuration loader for the dish nutrition estimator.

Loads all lookup tables from YAML/JSON files and computes a deterministic
fingerprint so every result can be traced back to the tables that produced it.
"""
import yaml
import json
import hashlib
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path(__file__).parent / "configs"

DEFAULT_CONFIDENCE = {
    "start": 100,
    "floor": 0,
    "penalties": {
        "fetch": 10,
        "convert": 5,
        "match": 15,
        "classify": 10,
        "aggregate": 10,
    },
}


@dataclass
class EstimatorConfig:
    """Lookup tables with version tracking."""
    recipes: Dict[str, Any]
    dish_types: Dict[str, Any]
    unit_conversions: Dict[str, Any]
    matching: Dict[str, Any]
    cooking: Dict[str, Any]
    confidence: Dict[str, Any]
    config_version: str
    config_fingerprint: str


def _load_yaml(path: Path) -> Dict[str, Any]:
    """Load YAML file."""
    with open(path, 'r') as f:
        return yaml.safe_load(f) or {}


def _load_json(path: Path) -> Dict[str, Any]:
    """Load JSON file."""
    with open(path, 'r') as f:
        return json.load(f)


def _load_file(path: Path) -> Dict[str, Any]:
    if path.suffix in ('.yml', '.yaml'):
        return _load_yaml(path)
    elif path.suffix == '.json':
        return _load_json(path)
    raise ValueError(f"Unknown config file type: {path}")


def _validate_recipe_fallbacks(recipes_cfg: Dict[str, Any]) -> None:
    """Fallback recipes must exist so the last lookup tier can never come up empty."""
    names = {r["name"].lower() for r in recipes_cfg.get("recipes", [])}
    if not names:
        raise ValueError("recipes.yml defines no recipes")

    fallback = recipes_cfg.get("fallback", {})
    targets = [rule["label"] for rule in fallback.get("rules", [])]
    default_recipe = fallback.get("default_recipe")
    if not default_recipe:
        raise ValueError("recipes.yml fallback.default_recipe is required")
    targets.append(default_recipe)

    missing = [t for t in targets if t.lower() not in names]
    if missing:
        raise ValueError(f"Fallback recipes not found in recipe table: {missing}")


def validate_confidence_config(confidence_cfg: Dict[str, Any]) -> None:
    """Scores must stay within 0..100: floor <= start <= 100, penalties >= 0."""
    start = confidence_cfg.get("start", 100)
    floor = confidence_cfg.get("floor", 0)
    if not 0 <= floor <= start <= 100:
        raise ValueError(
            f"confidence.yml needs 0 <= floor <= start <= 100 (got floor={floor}, start={start})"
        )

    negative = {k: v for k, v in confidence_cfg.get("penalties", {}).items() if v < 0}
    if negative:
        raise ValueError(f"confidence.yml penalties must be non-negative: {negative}")


def load_estimator_config(root: Optional[Union[str, Path]] = None) -> EstimatorConfig:
    """
    Load all estimator configs from directory and compute version fingerprint.

    Args:
        root: Path to configs directory (default: packaged configs/)

    Returns:
        EstimatorConfig with loaded tables and version tracking

    Raises:
        FileNotFoundError: If required config files missing
        ValueError: If a config file has an unknown type or broken references
    """
    root_path = Path(root) if root is not None else DEFAULT_CONFIG_DIR

    config_files = {
        "recipes": root_path / "recipes.yml",
        "dish_types": root_path / "dish_types.yml",
        "unit_conversions": root_path / "unit_conversions.yml",
        "matching": root_path / "matching.yml",
        "cooking": root_path / "cooking.yml",
        "confidence": root_path / "confidence.yml",
    }

    data = {}
    for key, path in config_files.items():
        if path.exists():
            data[key] = _load_file(path)
        elif key == "confidence":
            # Optional: stage penalties have sane defaults
            data[key] = json.loads(json.dumps(DEFAULT_CONFIDENCE))
        else:
            raise FileNotFoundError(
                f"Required config file not found: {path}\n"
                f"Point ESTIMATOR_CONFIG_DIR at a complete configs directory."
            )

    _validate_recipe_fallbacks(data["recipes"])
    validate_confidence_config(data["confidence"])

    # Sort keys so reordered YAML mappings keep the same fingerprint
    blob = json.dumps(data, sort_keys=True).encode("utf-8")
    fingerprint = hashlib.sha256(blob).hexdigest()[:12]
    config_version = f"configs@{fingerprint}"

    logger.debug("[CONFIG] Loaded %d config tables from %s (%s)", len(data), root_path, config_version)

    return EstimatorConfig(
        recipes=data["recipes"],
        dish_types=data["dish_types"],
        unit_conversions=data["unit_conversions"],
        matching=data["matching"],
        cooking=data["cooking"],
        confidence=data["confidence"],
        config_version=config_version,
        config_fingerprint=fingerprint,
    )


def load_sample_dishes(path: Optional[Union[str, Path]] = None) -> List[Dict[str, Any]]:
    """
    Load a batch file of dishes.

    Accepts either {"dishes": [...]} or a bare list. Each item is a dish name
    string or a {"dish": ..., "issues": [...]} mapping.
    """
    path = Path(path) if path is not None else DEFAULT_CONFIG_DIR / "sample_dishes.json"
    payload = _load_file(path)
    items = payload.get("dishes", []) if isinstance(payload, dict) else payload

    dishes = []
    for item in items:
        if isinstance(item, str):
            dishes.append({"dish": item, "issues": []})
        else:
            dishes.append({"dish": item["dish"], "issues": list(item.get("issues", []))})
    return dishes
