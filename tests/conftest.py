"""Shared fixtures for quizlearn tests."""

import logging

import pytest

from quizlearn.services.attempt_analysis import AttemptPatternAnalyzer
from quizlearn.services.dynamic_scoring import DynamicScoreCalculator
from quizlearn.services.leaderboard import LeaderboardRanker


def attempt(question_id, index, correct, time_spent=1000, answer="A"):
    """Raw history row, shaped like the question history table."""
    return {
        "question_id": question_id,
        "attempt_index": index,
        "selected_answer": answer,
        "is_correct": correct,
        "time_spent": time_spent,
    }


@pytest.fixture
def analyzer():
    return AttemptPatternAnalyzer()


@pytest.fixture
def calculator():
    return DynamicScoreCalculator()


@pytest.fixture
def ranker():
    return LeaderboardRanker(default_limit=50)


@pytest.fixture
def mixed_history():
    """One question per answered pattern plus a skipped one."""
    return [
        attempt(1, 1, True, 4000),
        attempt(2, 1, False, 6000),
        attempt(2, 2, True, 3000),
        attempt(3, 1, False, 2000),
        attempt(3, 2, False, 2500),
        attempt(4, 1, False, 3000),
        attempt(5, 1, False, 0, answer=None),
    ]


@pytest.fixture
def make_attempt():
    return attempt


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Undo setup_logging() calls made by a test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)
