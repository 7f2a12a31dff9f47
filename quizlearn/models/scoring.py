"""
Dynamic Scoring Models.

Inputs and results of the quiz scoring engine. Inputs accept both the
snake_case field names and the camelCase names the quiz client sends.
"""

from typing import Any, List, Optional
from enum import Enum
from pydantic import BaseModel, Field, field_validator

from quizlearn.models.attempt import QuestionId, loose_bool, loose_question_id
from quizlearn.utils.numeric import non_negative_int


class QuestionDifficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    EXPERT = "expert"


# ============================================================================
# INPUTS
# ============================================================================

class ScoringInput(BaseModel):
    """
    One answered question, as seen by the scoring engine.

    ``current_streak`` is owned by the caller: it is the number of
    consecutive correct answers *before* this one in the current session.
    """
    model_config = {
        "populate_by_name": True,
        "extra": "ignore",
        "frozen": True,
    }

    is_correct: bool = Field(default=False, alias="isCorrect")
    response_time: int = Field(default=0, ge=0, alias="responseTime", description="Milliseconds")
    attempt_number: int = Field(default=1, ge=1, alias="attemptNumber")
    question_difficulty: str = Field(default="medium", alias="questionDifficulty")
    total_quiz_time: Optional[int] = Field(default=None, ge=0, alias="totalQuizTime", description="Milliseconds")
    time_remaining: Optional[int] = Field(default=None, ge=0, alias="timeRemaining", description="Milliseconds")
    current_streak: int = Field(default=0, ge=0, alias="currentStreak")
    question_id: Optional[QuestionId] = Field(default=None, alias="questionId")

    @field_validator("is_correct", mode="before")
    @classmethod
    def _default_is_correct(cls, value: Any) -> Any:
        return loose_bool(value)

    @field_validator("question_id", mode="before")
    @classmethod
    def _normalize_question_id(cls, value: Any) -> Any:
        return loose_question_id(value)

    @field_validator("response_time", "current_streak", mode="before")
    @classmethod
    def _clamp_non_negative(cls, value: Any) -> int:
        return non_negative_int(value)

    @field_validator("total_quiz_time", "time_remaining", mode="before")
    @classmethod
    def _optional_non_negative(cls, value: Any) -> Optional[int]:
        if value is None:
            return None
        return non_negative_int(value)

    @field_validator("attempt_number", mode="before")
    @classmethod
    def _default_attempt_number(cls, value: Any) -> int:
        return max(1, non_negative_int(value, default=1))

    @field_validator("question_difficulty", mode="before")
    @classmethod
    def _normalize_difficulty(cls, value: Any) -> str:
        if isinstance(value, QuestionDifficulty):
            return value.value
        if not value:
            return QuestionDifficulty.MEDIUM.value
        return str(value).strip().lower()


class QuizAnswer(BaseModel):
    """One answer in a completed quiz submission."""
    model_config = {
        "populate_by_name": True,
        "extra": "ignore",
        "frozen": True,
    }

    question_id: Optional[QuestionId] = None
    is_correct: bool = False
    response_time: int = Field(default=0, ge=0)
    attempt_index: int = Field(default=1, ge=1)
    difficulty: str = "medium"

    @field_validator("is_correct", mode="before")
    @classmethod
    def _default_is_correct(cls, value: Any) -> Any:
        return loose_bool(value)

    @field_validator("question_id", mode="before")
    @classmethod
    def _normalize_question_id(cls, value: Any) -> Any:
        return loose_question_id(value)

    @field_validator("response_time", mode="before")
    @classmethod
    def _clamp_response_time(cls, value: Any) -> int:
        return non_negative_int(value)

    @field_validator("attempt_index", mode="before")
    @classmethod
    def _default_attempt_index(cls, value: Any) -> int:
        return max(1, non_negative_int(value, default=1))

    @field_validator("difficulty", mode="before")
    @classmethod
    def _default_difficulty(cls, value: Any) -> str:
        if isinstance(value, QuestionDifficulty):
            return value.value
        return str(value).strip().lower() if value else QuestionDifficulty.MEDIUM.value


# ============================================================================
# BONUS BREAKDOWNS
# ============================================================================

class SpeedBonus(BaseModel):
    bonus: int = 0
    tier_name: Optional[str] = None
    max_time_ms: Optional[int] = None


class StreakBonus(BaseModel):
    current_streak: int = 0
    bonus: int = 0
    name: Optional[str] = None
    multiplier: float = 1.0
    combo_name: Optional[str] = None


class TimeBonus(BaseModel):
    bonus: int = 0
    name: Optional[str] = None
    time_ratio: float = 0.0
    multiplier: float = Field(
        default=1.0,
        description="Time pressure multiplier; reported for display, not applied to points"
    )


class StreakInfo(BaseModel):
    current_streak: int = 0
    is_combo: bool = False
    combo_name: Optional[str] = None


# ============================================================================
# RESULTS
# ============================================================================

class ScoreResult(BaseModel):
    """Explainable score for one answer."""
    base_points: int = 0
    speed_bonus: int = 0
    streak_bonus: int = 0
    time_bonus: int = 0
    difficulty_multiplier: float = 1.0
    streak_multiplier: float = 1.0
    total_points: int = 0
    bonuses: List[str] = Field(default_factory=list)
    streak_info: StreakInfo = Field(default_factory=StreakInfo)


class QuestionScore(ScoreResult):
    """Score for one answer inside a quiz summary."""
    question_id: Optional[QuestionId] = None


class PerfectBonus(BaseModel):
    type: str
    name: str
    bonus: int


class QuizScoreSummary(BaseModel):
    """Totals for a completed quiz."""
    total_score: int = 0
    correct_answers: int = 0
    total_questions: int = 0
    accuracy: int = 0
    average_response_time: int = 0
    longest_streak: int = 0
    perfect_bonuses: List[PerfectBonus] = Field(default_factory=list)
    detailed_results: List[QuestionScore] = Field(default_factory=list)
