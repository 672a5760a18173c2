"""
Pytest configuration for estimator tests.
"""
import sys
from pathlib import Path

import pytest

# Add repo root to path for imports
repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from nutrition_estimator.config_loader import DEFAULT_CONFIG_DIR, load_estimator_config
from nutrition_estimator.nutrition_index import load_nutrition_index
from nutrition_estimator.run import Estimator


@pytest.fixture(scope="session")
def configs_dir() -> Path:
    return DEFAULT_CONFIG_DIR


@pytest.fixture(scope="session")
def estimator_config():
    """Packaged lookup tables, loaded once."""
    return load_estimator_config()


@pytest.fixture(scope="session")
def nutrition_index():
    return load_nutrition_index()


@pytest.fixture(scope="session")
def estimator(estimator_config, nutrition_index):
    return Estimator(estimator_config, nutrition_index)
