"""
Leaderboard Models.

A leaderboard is identified by its type, the ranking criteria and a
partition: the tier for tier-based boards, the period start date for
daily/weekly/monthly boards, nothing for the global board.
"""

from typing import Optional, Union
from datetime import date, datetime
from enum import Enum
from pydantic import BaseModel, Field


class LeaderboardType(str, Enum):
    GLOBAL = "GLOBAL"
    TIER_BASED = "TIER_BASED"
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"


TIME_BASED_TYPES = (LeaderboardType.DAILY, LeaderboardType.WEEKLY, LeaderboardType.MONTHLY)


class RankingCriteria(str, Enum):
    TOTAL_XP = "TOTAL_XP"
    LEVEL = "LEVEL"
    QUIZ_SCORE = "QUIZ_SCORE"


class MoveDirection(str, Enum):
    UP = "up"
    DOWN = "down"


UserId = Union[int, str]


class LeaderboardKey(BaseModel):
    """Identifies one ranked table."""
    model_config = {"frozen": True}

    leaderboard_type: LeaderboardType = LeaderboardType.GLOBAL
    criteria: RankingCriteria = RankingCriteria.TOTAL_XP
    partition: Optional[str] = Field(
        default=None,
        description="Tier name (TIER_BASED) or ISO period start date (DAILY/WEEKLY/MONTHLY)"
    )


class LeaderboardEntry(BaseModel):
    """A user's position on one leaderboard."""
    user_id: UserId
    score_value: float = 0
    current_rank: Optional[int] = None
    previous_rank: Optional[int] = None
    rank_change: int = Field(
        default=0,
        description="previous_rank - current_rank; positive means the user moved up"
    )
    last_updated: Optional[datetime] = None


class UserRank(BaseModel):
    """A user's rank with context for display."""
    user_id: UserId
    current_rank: int
    previous_rank: Optional[int] = None
    rank_change: int = 0
    score_value: float = 0
    total_participants: int
    percentile: float = Field(description="Share of participants ranked at or below the user (0-100)")


class RankChange(BaseModel):
    """Notification payload emitted when a user's rank moves."""
    user_id: UserId
    key: LeaderboardKey
    old_rank: int
    new_rank: int
    old_score: float
    new_score: float
    score_change: float


class QuizResultUpdate(BaseModel):
    """Everything a quiz completion contributes to the leaderboards."""
    total_score: float = 0
    current_xp: float = 0
    current_level: int = 0
    current_tier: Optional[str] = None
    completed_on: Optional[date] = None



class LeaderboardStats(BaseModel):
    """Aggregate figures for one board."""
    total_participants: int = 0
    average_score: float = 0
    highest_score: float = 0
    lowest_score: float = 0
    movers_up: int = Field(default=0, description="Entries that moved up on their last re-rank")
    movers_down: int = Field(default=0, description="Entries that moved down on their last re-rank")
    no_change: int = 0
