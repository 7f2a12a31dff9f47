"""
Exception types raised by quizlearn.

The analysis and scoring functions are defensive and only raise for
programmer errors (calling them with nothing to analyse) or for broken
configuration. Malformed records are defaulted, never rejected.
"""


class QuizLearnError(Exception):
    """Base class for all quizlearn errors."""


class EmptyAttemptsError(QuizLearnError, ValueError):
    """Raised when a learning pattern is requested for a question with no attempts."""

    def __init__(self, question_id=None):
        self.question_id = question_id
        if question_id is None:
            message = "Cannot classify a learning pattern without attempts"
        else:
            message = f"Cannot classify a learning pattern for question {question_id!r} without attempts"
        super().__init__(message)


class ScoringConfigError(QuizLearnError):
    """Raised when a scoring configuration file cannot be loaded or validated."""


class LeaderboardError(QuizLearnError):
    """Raised for leaderboard requests that do not identify a valid board."""
