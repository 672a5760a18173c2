"""
Nutrition database wrapper with deterministic version tracking.

Loads the per-100g nutrition table from CSV (pandas) and computes a content
hash so results record exactly which table produced them.
"""
import hashlib
import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

import pandas as pd

from nutrition_estimator.schemas import NUTRIENT_FIELDS, NutritionEntry

logger = logging.getLogger(__name__)

DEFAULT_NUTRITION_DB = Path(__file__).parent / "configs" / "nutrition_db.csv"

REQUIRED_COLUMNS = ("food_code", "food_name") + NUTRIENT_FIELDS


class NutritionIndex:
    """
    Read-only nutrition table with versioning for reproducibility.

    Attributes:
        entries: Entries in table order (order is a tie-break for matching)
        version: Deterministic version string (nutrition_db@<hash>)
    """

    def __init__(self, entries: Sequence[NutritionEntry], version: str):
        if not entries:
            raise ValueError("Nutrition database is empty")
        self.entries: List[NutritionEntry] = list(entries)
        self.version = version
        self._by_code: Dict[str, NutritionEntry] = {e.food_code: e for e in self.entries}

    def __len__(self) -> int:
        return len(self.entries)

    def find_by_code(self, food_code: str) -> Optional[NutritionEntry]:
        return self._by_code.get(food_code)

    def find_name_containing(self, fragment: str) -> Optional[NutritionEntry]:
        """First entry (table order) whose name contains fragment, case-insensitive."""
        fragment = fragment.lower()
        for entry in self.entries:
            if fragment in entry.food_name.lower():
                return entry
        return None

    @classmethod
    def from_entries(cls, entries: Sequence[NutritionEntry]) -> "NutritionIndex":
        """Build an index from in-memory entries (tests, injected tables)."""
        return cls(entries, _compute_version(entries))


def _compute_version(entries: Sequence[NutritionEntry]) -> str:
    """
    Compute deterministic table version via content hash.

    Identical rows in identical order -> identical version string.
    """
    blob = json.dumps([e.model_dump() for e in entries], sort_keys=True).encode("utf-8")
    return f"nutrition_db@{hashlib.sha256(blob).hexdigest()[:12]}"


def _parse_flag(value) -> bool:
    return str(value).strip().lower() in ("true", "1", "yes", "y")


def load_nutrition_index(path: Optional[Union[str, Path]] = None) -> NutritionIndex:
    """
    Load nutrition CSV and compute deterministic version.

    Args:
        path: CSV path (default: packaged configs/nutrition_db.csv)

    Returns:
        NutritionIndex with validated entries

    Raises:
        FileNotFoundError: If the CSV does not exist
        ValueError: If required columns are missing or the table is empty
    """
    csv_path = Path(path) if path is not None else DEFAULT_NUTRITION_DB
    if not csv_path.exists():
        raise FileNotFoundError(f"Nutrition database not found: {csv_path}")

    df = pd.read_csv(csv_path, dtype={"food_code": str, "food_name": str})

    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Nutrition database {csv_path} missing columns: {missing}")

    # Blank nutrient cells count as zero
    df[list(NUTRIENT_FIELDS)] = df[list(NUTRIENT_FIELDS)].apply(pd.to_numeric, errors="coerce").fillna(0.0)
    if "primary_source" in df.columns:
        df["primary_source"] = df["primary_source"].map(_parse_flag)
    else:
        df["primary_source"] = False

    entries = [
        NutritionEntry(
            food_code=str(row["food_code"]).strip(),
            food_name=str(row["food_name"]).strip(),
            primary_source=bool(row["primary_source"]),
            **{field: float(row[field]) for field in NUTRIENT_FIELDS},
        )
        for row in df.to_dict(orient="records")
    ]

    index = NutritionIndex.from_entries(entries)
    logger.info("[NUTRITION_DB] Loaded %d entries from %s: %s", len(index), csv_path.name, index.version)
    return index
