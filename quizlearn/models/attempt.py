"""
Attempt Records.

One ``AttemptRecord`` is one try by a user at one question. Records usually
arrive as loosely typed rows from the question history table, so every field
is coerced to a safe default instead of being rejected: a single bad row must
not abort the analysis of a whole history.
"""

from typing import Any, Mapping, Optional, Union
from pydantic import BaseModel, Field, field_validator

from quizlearn.utils.numeric import non_negative_int

QuestionId = Union[int, str]

TRUTHY_STRINGS = {"true", "t", "1", "yes", "y"}


def loose_bool(value: Any) -> bool:
    """Read a loosely typed flag: numbers are true when non-zero, strings when in TRUTHY_STRINGS."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in TRUTHY_STRINGS
    return bool(value)


def loose_question_id(value: Any) -> Optional[QuestionId]:
    """Keep str/int ids as they are and stringify anything else."""
    if value is None or isinstance(value, (str, int)) and not isinstance(value, bool):
        return value
    return str(value)


class AttemptRecord(BaseModel):
    """
    A single recorded attempt at a question.

    The platform allows one retry, so a question normally has one or two
    attempts. Longer sequences are accepted and reported as anomalies by the
    analyzer.
    """
    model_config = {
        "frozen": True,
        "extra": "ignore",
        "from_attributes": True,
    }

    question_id: Optional[QuestionId] = Field(
        default=None,
        description="Question identifier, stable across attempts"
    )
    attempt_index: int = Field(
        default=1,
        description="1-based ordinal of this attempt for the question"
    )
    selected_answer: Optional[Any] = Field(
        default=None,
        description="Answer chosen by the user; None means the question was not attempted"
    )
    is_correct: bool = Field(
        default=False,
        description="Whether the selected answer was correct"
    )
    time_spent: int = Field(
        default=0,
        ge=0,
        description="Time spent on this attempt in milliseconds (0 if unknown)"
    )

    @field_validator("question_id", mode="before")
    @classmethod
    def _normalize_question_id(cls, value: Any) -> Any:
        return loose_question_id(value)

    @field_validator("attempt_index", mode="before")
    @classmethod
    def _default_attempt_index(cls, value: Any) -> int:
        return non_negative_int(value, default=1)

    @field_validator("is_correct", mode="before")
    @classmethod
    def _default_is_correct(cls, value: Any) -> Any:
        return loose_bool(value)

    @field_validator("time_spent", mode="before")
    @classmethod
    def _default_time_spent(cls, value: Any) -> int:
        return non_negative_int(value)

    @property
    def is_answered(self) -> bool:
        """True when the user actually picked an answer."""
        if self.selected_answer is None:
            return False
        if isinstance(self.selected_answer, str) and not self.selected_answer.strip():
            return False
        return True

    @classmethod
    def coerce(cls, record: Union["AttemptRecord", Mapping[str, Any], Any]) -> "AttemptRecord":
        """
        Build an AttemptRecord from a record, a mapping or an ORM row.

        Args:
            record: Existing record, dict-like row, or object with attributes

        Returns:
            AttemptRecord
        """
        if isinstance(record, cls):
            return record
        if isinstance(record, Mapping):
            return cls.model_validate(dict(record))
        return cls.model_validate(record, from_attributes=True)
