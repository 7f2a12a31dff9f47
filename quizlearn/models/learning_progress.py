"""
Learning Progress Models.

Derived structures produced by the multi-attempt analyzer. None of them are
persisted here; they are plain data for the web layer to serialize.
"""

from typing import Dict, List, Optional
from enum import Enum
from pydantic import BaseModel, Field

from quizlearn.models.attempt import QuestionId


class LearningPattern(str, Enum):
    """How a user's correctness evolved across attempts at one question."""
    NOT_ATTEMPTED = "not_attempted"
    FIRST_TRY_SUCCESS = "first_try_success"
    SINGLE_FAILURE = "single_failure"
    LEARNED_FROM_MISTAKE = "learned_from_mistake"
    PERSISTENT_DIFFICULTY = "persistent_difficulty"
    CONSISTENT_MASTERY = "consistent_mastery"
    REGRESSION = "regression"
    ANOMALY = "anomaly"


class MasteryLevel(str, Enum):
    """Coarse tier summarizing the final success rate."""
    EXCELLENT = "excellent"
    GOOD = "good"
    AVERAGE = "average"
    NEEDS_IMPROVEMENT = "needs_improvement"


class RecommendationPriority(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    INFO = "INFO"
    SUCCESS = "SUCCESS"
    LOW = "LOW"


class TimeImprovement(BaseModel):
    """Change in time spent between the first and last attempt."""
    improved: bool = False
    time_reduction: int = 0
    percentage_improvement: int = 0
    first_attempt_time: int = 0
    last_attempt_time: int = 0


class QuestionPatternSummary(BaseModel):
    """One question as it appears in a pattern bucket."""
    question_id: Optional[QuestionId]
    attempts: int
    final_result: bool
    pattern: LearningPattern


def _empty_buckets() -> Dict[str, List[QuestionPatternSummary]]:
    return {pattern.value: [] for pattern in LearningPattern}


class LearningProgressReport(BaseModel):
    """
    Aggregate learning analysis over a set of questions.

    Pattern counts always sum to ``total_questions_with_data``.
    """

    # Pattern counts
    first_try_success: int = 0
    learned_from_mistake: int = 0
    persistent_difficulty: int = 0
    single_failure: int = 0
    not_attempted: int = 0
    consistent_mastery: int = 0
    regression: int = 0
    anomaly: int = 0

    total_questions_with_data: int = 0
    total_attempts: int = 0

    improvement_rate: float = Field(
        default=0.0,
        description="Share of answered questions learned from a mistake (percent, 2 decimals)"
    )
    final_success_rate: int = Field(
        default=0,
        description="Share of answered questions finally correct (percent)"
    )
    mastery_level: MasteryLevel = MasteryLevel.NEEDS_IMPROVEMENT

    questions_by_pattern: Dict[str, List[QuestionPatternSummary]] = Field(
        default_factory=_empty_buckets
    )

    # Time analysis (milliseconds)
    average_time_first_attempt: int = 0
    average_time_second_attempt: int = 0
    time_improvement_rate: int = 0

    def count_for(self, pattern: LearningPattern) -> int:
        """Number of questions classified as ``pattern``."""
        return getattr(self, LearningPattern(pattern).value)

    def questions_for(self, pattern: LearningPattern) -> List[QuestionPatternSummary]:
        """Questions bucketed under ``pattern``, in first-seen order."""
        return self.questions_by_pattern.get(LearningPattern(pattern).value, [])


class AccuracySummary(BaseModel):
    """Accuracy over one attempt per question (first or final)."""
    accuracy: int = 0
    total_questions: int = 0
    correct: int = 0
    incorrect: int = 0


class LearningRecommendation(BaseModel):
    """A study recommendation derived from one learning pattern."""
    priority: RecommendationPriority
    category: LearningPattern
    count: int
    title: str
    message: str
    actions: List[str] = Field(default_factory=list)
    questions: List[QuestionPatternSummary] = Field(default_factory=list)
