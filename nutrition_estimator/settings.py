"""
Runtime settings for the estimator.

Read from environment variables (and a .env file if present):

    ESTIMATOR_LOG_LEVEL     DEBUG, INFO, WARNING, ERROR (default: INFO)
    ESTIMATOR_LOG_FORMAT    text, json (default: text)
    ESTIMATOR_CONFIG_DIR    configs directory (default: packaged configs)
    ESTIMATOR_NUTRITION_DB  nutrition CSV (default: packaged nutrition_db.csv)

Usage:
    from nutrition_estimator.settings import EstimatorSettings

    settings = EstimatorSettings.from_env()
"""
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")
LOG_FORMATS = ("text", "json")


@dataclass
class EstimatorSettings:
    """Explicit runtime settings passed to logging setup and table loaders."""
    log_level: str = "INFO"
    log_format: str = "text"
    config_dir: Optional[str] = None
    nutrition_db: Optional[str] = None

    def validate(self) -> "EstimatorSettings":
        """
        Raises:
            ValueError: If log level or format is not recognised
        """
        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Invalid log level {self.log_level!r}; expected one of {LOG_LEVELS}")
        if self.log_format.lower() not in LOG_FORMATS:
            raise ValueError(f"Invalid log format {self.log_format!r}; expected one of {LOG_FORMATS}")
        return self

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "EstimatorSettings":
        """
        Build settings from the environment.

        Args:
            dotenv: Load a .env file from the working directory first

        Returns:
            Validated EstimatorSettings
        """
        if dotenv:
            load_dotenv(override=False)
        return cls(
            log_level=os.getenv("ESTIMATOR_LOG_LEVEL", "INFO").upper(),
            log_format=os.getenv("ESTIMATOR_LOG_FORMAT", "text").lower(),
            config_dir=os.getenv("ESTIMATOR_CONFIG_DIR") or None,
            nutrition_db=os.getenv("ESTIMATOR_NUTRITION_DB") or None,
        ).validate()
