"""
Dynamic Scoring Configuration.

The scoring table is an immutable value handed to the calculator at
construction time. ``DEFAULT_SCORING_CONFIG`` carries the values the quiz
game has always used; deployments can override it with a JSON file
(see ``Settings.scoring_config``).
"""

from typing import Dict, List, Optional
from pathlib import Path
import json
import logging

from pydantic import BaseModel, Field, ValidationError, field_validator

from quizlearn.core.exceptions import ScoringConfigError

logger = logging.getLogger(__name__)

FROZEN = {"frozen": True, "extra": "forbid"}


# ============================================================================
# SECTION MODELS
# ============================================================================

class BasePoints(BaseModel):
    """Points awarded before any bonus is applied."""
    model_config = FROZEN

    correct_answer: int = Field(default=10, ge=0, description="Correct on the first attempt")
    partial_correct: int = Field(default=5, ge=0, description="Correct on a retry")
    wrong_answer: int = Field(default=0, ge=0, description="Incorrect answer")


class SpeedTier(BaseModel):
    """A response-time bracket. The tier applies when response_time <= max_time_ms."""
    model_config = FROZEN

    max_time_ms: int = Field(gt=0, description="Upper bound of the bracket in milliseconds")
    bonus: int = Field(ge=0, description="Bonus points for this bracket")
    name: str = Field(description="Display name shown to the player")


class ComboThreshold(BaseModel):
    """Streak length at which a combo multiplier kicks in."""
    model_config = FROZEN

    streak: int = Field(ge=1)
    multiplier: float = Field(ge=1.0)
    name: str


class StreakSystem(BaseModel):
    """
    Streak rewards.

    A flat bonus is paid once the streak reaches ``min_streak``; combo
    multipliers grow with the streak and stop at the last threshold.
    """
    model_config = FROZEN

    min_streak: int = Field(default=3, ge=1)
    streak_bonus: int = Field(default=2, ge=0)
    combo_thresholds: List[ComboThreshold] = Field(
        default_factory=lambda: [
            ComboThreshold(streak=5, multiplier=1.2, name="Hot Streak"),
            ComboThreshold(streak=10, multiplier=1.5, name="On Fire"),
            ComboThreshold(streak=15, multiplier=2.0, name="Unstoppable"),
            ComboThreshold(streak=20, multiplier=2.5, name="Legendary"),
        ]
    )

    @field_validator("combo_thresholds")
    @classmethod
    def _monotonic_combos(cls, value: List[ComboThreshold]) -> List[ComboThreshold]:
        ordered = sorted(value, key=lambda c: c.streak)
        for previous, current in zip(ordered, ordered[1:]):
            if current.multiplier < previous.multiplier:
                raise ValueError("combo multipliers must not decrease as the streak grows")
        return ordered


class TimeBonusConfig(BaseModel):
    """Bonuses based on the share of quiz time left when answering."""
    model_config = FROZEN

    early_finish_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    early_finish_bonus: int = Field(default=25, ge=0)
    time_pressure_threshold: float = Field(default=0.9, ge=0.0, le=1.0)
    time_pressure_multiplier: float = Field(default=1.3, ge=1.0)


class PerfectBonuses(BaseModel):
    """One-off bonuses awarded when a whole quiz is completed."""
    model_config = FROZEN

    perfect_score: int = Field(default=50, ge=0)
    perfect_speed: int = Field(default=30, ge=0)
    perfect_speed_max_average_ms: int = Field(default=5000, gt=0)
    perfect_streak: int = Field(default=40, ge=0)
    perfect_streak_min_correct: int = Field(default=5, ge=1)
    flawless_victory: int = Field(default=100, ge=0)


# ============================================================================
# MAIN CONFIG
# ============================================================================

def _default_speed_tiers() -> List[SpeedTier]:
    return [
        SpeedTier(max_time_ms=2000, bonus=15, name="Lightning Fast"),
        SpeedTier(max_time_ms=3000, bonus=10, name="Very Fast"),
        SpeedTier(max_time_ms=5000, bonus=5, name="Fast"),
        SpeedTier(max_time_ms=8000, bonus=2, name="Quick"),
    ]


def _default_difficulty_multipliers() -> Dict[str, float]:
    return {"easy": 1.0, "medium": 1.2, "hard": 1.5, "expert": 2.0}


class ScoringConfig(BaseModel):
    """Complete, immutable dynamic scoring table."""
    model_config = FROZEN

    base_points: BasePoints = Field(default_factory=BasePoints)
    speed_tiers: List[SpeedTier] = Field(default_factory=_default_speed_tiers)
    streak: StreakSystem = Field(default_factory=StreakSystem)
    difficulty_multipliers: Dict[str, float] = Field(default_factory=_default_difficulty_multipliers)
    default_difficulty: str = "medium"
    time_bonus: TimeBonusConfig = Field(default_factory=TimeBonusConfig)
    perfect_bonuses: PerfectBonuses = Field(default_factory=PerfectBonuses)

    @field_validator("speed_tiers")
    @classmethod
    def _fastest_first(cls, value: List[SpeedTier]) -> List[SpeedTier]:
        return sorted(value, key=lambda tier: tier.max_time_ms)

    @field_validator("difficulty_multipliers")
    @classmethod
    def _multipliers_at_least_one(cls, value: Dict[str, float]) -> Dict[str, float]:
        for difficulty, multiplier in value.items():
            if multiplier < 1.0:
                raise ValueError(f"difficulty multiplier for {difficulty!r} must be >= 1.0")
        return {difficulty.lower(): multiplier for difficulty, multiplier in value.items()}

    def difficulty_multiplier(self, difficulty: Optional[str]) -> float:
        """Multiplier for ``difficulty``; unknown difficulties score as 1.0."""
        key = (difficulty or self.default_difficulty).lower()
        return self.difficulty_multipliers.get(key, 1.0)


DEFAULT_SCORING_CONFIG = ScoringConfig()


def load_scoring_config(path: Path) -> ScoringConfig:
    """
    Load a scoring table from a JSON file.

    Missing sections fall back to the defaults.

    Args:
        path: JSON file to read

    Returns:
        Validated ScoringConfig

    Raises:
        ScoringConfigError: If the file is missing, not JSON, or invalid
    """
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"❌ Could not read scoring config {path}: {e}")
        raise ScoringConfigError(f"Could not read scoring config {path}: {e}") from e

    try:
        config = ScoringConfig.model_validate(raw)
    except ValidationError as e:
        logger.error(f"❌ Invalid scoring config {path}: {e}")
        raise ScoringConfigError(f"Invalid scoring config {path}: {e}") from e

    logger.info(f"⚙️ Loaded scoring config from {path}")
    return config
