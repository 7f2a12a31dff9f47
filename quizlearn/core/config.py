from pydantic_settings import BaseSettings
from typing import Optional
from pathlib import Path

from quizlearn.core.scoring_config import (
    DEFAULT_SCORING_CONFIG,
    ScoringConfig,
    load_scoring_config,
)


class Settings(BaseSettings):
    # Runtime settings
    ENVIRONMENT: str = "development"

    # Logging settings
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # Scoring settings
    SCORING_CONFIG_FILE: Optional[Path] = None

    # Leaderboard settings
    LEADERBOARD_DEFAULT_LIMIT: int = 50

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT.lower() in ["production", "prod"]

    def scoring_config(self) -> ScoringConfig:
        """Scoring table for this deployment (file override or defaults)."""
        if self.SCORING_CONFIG_FILE is None:
            return DEFAULT_SCORING_CONFIG
        return load_scoring_config(self.SCORING_CONFIG_FILE)


settings = Settings()
