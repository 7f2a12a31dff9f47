"""
Leaderboard Ranking Service.

Keeps ranked score tables for every (type, criteria, partition) combination
and tracks how far each user moved on the last re-rank, so the UI can show
"top movers". Rank changes are pushed to subscribed listeners (the socket
layer uses this for real-time updates).

Ranking rules:
- Higher score ranks first
- Ties keep the order in which users first joined the board
- rank_change = previous_rank - current_rank (positive = moved up)

Storage is in memory; persisting boards is the caller's job.
"""

from typing import Callable, Dict, List, Optional
from datetime import date, datetime, timedelta, timezone
import logging
import threading

from quizlearn.core.exceptions import LeaderboardError
from quizlearn.models.leaderboard import (
    TIME_BASED_TYPES,
    LeaderboardEntry,
    LeaderboardKey,
    LeaderboardStats,
    LeaderboardType,
    MoveDirection,
    QuizResultUpdate,
    RankChange,
    RankingCriteria,
    UserId,
    UserRank,
)
from quizlearn.utils.numeric import round_half_up

logger = logging.getLogger(__name__)

RankListener = Callable[[RankChange], None]


def time_period_start(leaderboard_type: LeaderboardType, day: date) -> date:
    """
    First day of the period containing ``day``.

    Args:
        leaderboard_type: DAILY, WEEKLY (periods start on Monday) or MONTHLY
        day: Any date inside the period

    Returns:
        Period start date

    Raises:
        LeaderboardError: For boards that are not time based
    """
    leaderboard_type = LeaderboardType(leaderboard_type)

    if leaderboard_type == LeaderboardType.DAILY:
        return day
    if leaderboard_type == LeaderboardType.WEEKLY:
        return day - timedelta(days=day.weekday())
    if leaderboard_type == LeaderboardType.MONTHLY:
        return day.replace(day=1)

    raise LeaderboardError(f"{leaderboard_type.value} leaderboards are not time based")


class LeaderboardRanker:
    """In-memory ranked leaderboards with rank-change notifications."""

    def __init__(self, default_limit: Optional[int] = None):
        if default_limit is None:
            from quizlearn.core.config import settings
            default_limit = settings.LEADERBOARD_DEFAULT_LIMIT

        self.default_limit = default_limit
        self._boards: Dict[LeaderboardKey, Dict[UserId, LeaderboardEntry]] = {}
        self._listeners: List[RankListener] = []
        self._lock = threading.RLock()

    # ========================================================================
    # BOARD RESOLUTION
    # ========================================================================

    def resolve_key(
        self,
        leaderboard_type: LeaderboardType = LeaderboardType.GLOBAL,
        criteria: RankingCriteria = RankingCriteria.TOTAL_XP,
        partition: Optional[str] = None,
        day: Optional[date] = None,
    ) -> LeaderboardKey:
        """
        Build the key of a board.

        Args:
            leaderboard_type: Board type
            criteria: Ranking criteria
            partition: Tier for TIER_BASED; explicit period for time-based boards
            day: Date used to derive the period when ``partition`` is omitted

        Returns:
            LeaderboardKey

        Raises:
            LeaderboardError: If a tier-based board is requested without a tier
        """
        leaderboard_type = LeaderboardType(leaderboard_type)
        criteria = RankingCriteria(criteria)

        if leaderboard_type == LeaderboardType.GLOBAL:
            partition = None
        elif leaderboard_type == LeaderboardType.TIER_BASED:
            if not partition:
                raise LeaderboardError("Tier-based leaderboards need a tier")
        elif partition is None:
            partition = time_period_start(leaderboard_type, day or date.today()).isoformat()

        return LeaderboardKey(leaderboard_type=leaderboard_type, criteria=criteria, partition=partition)

    # ========================================================================
    # UPDATES
    # ========================================================================

    def update_user_score(
        self,
        user_id: UserId,
        criteria: RankingCriteria,
        new_score: float,
        leaderboard_type: LeaderboardType = LeaderboardType.GLOBAL,
        partition: Optional[str] = None,
        day: Optional[date] = None,
        now: Optional[datetime] = None,
    ) -> LeaderboardEntry:
        """
        Set a user's score on one board and re-rank it.

        Listeners are notified when a user already on the board changes rank.

        Args:
            user_id: User identifier
            criteria: Ranking criteria
            new_score: New score value (replaces the old one)
            leaderboard_type: Board type
            partition: Tier or period (see ``resolve_key``)
            day: Date used for time-based boards
            now: Update timestamp

        Returns:
            Copy of the user's entry after re-ranking
        """
        key = self.resolve_key(leaderboard_type, criteria, partition, day)
        now = now or datetime.now(timezone.utc)
        change = None

        with self._lock:
            board = self._boards.setdefault(key, {})
            entry = board.get(user_id)

            if entry is None:
                entry = LeaderboardEntry(user_id=user_id, score_value=new_score, last_updated=now)
                board[user_id] = entry
                old_rank = None
                old_score = 0
            else:
                old_rank = entry.current_rank
                old_score = entry.score_value
                entry.score_value = new_score
                entry.last_updated = now

            self._recalculate_ranks(board)

            if old_rank is not None and old_rank != entry.current_rank:
                change = RankChange(
                    user_id=user_id,
                    key=key,
                    old_rank=old_rank,
                    new_rank=entry.current_rank,
                    old_score=old_score,
                    new_score=new_score,
                    score_change=new_score - old_score,
                )

            result = entry.model_copy()

        logger.debug(
            f"🏆 {key.leaderboard_type.value}/{key.criteria.value}/{key.partition}: "
            f"user {user_id} score={new_score} rank={result.current_rank}"
        )

        if change is not None:
            self._notify(change)

        return result

    def update_from_quiz_result(
        self,
        user_id: UserId,
        quiz_result: QuizResultUpdate,
        now: Optional[datetime] = None,
    ) -> List[LeaderboardKey]:
        """
        Fan a quiz completion out to every board it affects.

        Global and tier boards get XP, level and quiz score; daily, weekly and
        monthly boards get the quiz score.

        Args:
            user_id: User identifier
            quiz_result: Scores and the user's tier after the quiz
            now: Completion timestamp

        Returns:
            Keys of the boards that were updated
        """
        now = now or datetime.now(timezone.utc)
        day = quiz_result.completed_on or now.date()

        values = {
            RankingCriteria.TOTAL_XP: quiz_result.current_xp,
            RankingCriteria.LEVEL: quiz_result.current_level,
            RankingCriteria.QUIZ_SCORE: quiz_result.total_score,
        }

        updated = []
        for criteria, value in values.items():
            updated.append(self._update(user_id, criteria, value, LeaderboardType.GLOBAL, None, day, now))
            if quiz_result.current_tier:
                updated.append(
                    self._update(user_id, criteria, value, LeaderboardType.TIER_BASED, quiz_result.current_tier, day, now)
                )

        for leaderboard_type in TIME_BASED_TYPES:
            updated.append(
                self._update(user_id, RankingCriteria.QUIZ_SCORE, quiz_result.total_score, leaderboard_type, None, day, now)
            )

        logger.info(f"🏆 Leaderboards updated for user {user_id} ({len(updated)} boards)")
        return updated

    # ========================================================================
    # QUERIES
    # ========================================================================

    def get_leaderboard(
        self,
        key: LeaderboardKey,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[LeaderboardEntry]:
        """Entries of a board ordered by rank (empty for unknown boards)."""
        limit = self.default_limit if limit is None else limit
        offset = max(0, offset)

        with self._lock:
            entries = sorted(self._boards.get(key, {}).values(), key=lambda e: e.current_rank)
            return [e.model_copy() for e in entries[offset:offset + max(0, limit)]]

    def get_user_rank(self, user_id: UserId, key: LeaderboardKey) -> Optional[UserRank]:
        """A user's rank on a board, or None if the user is not on it."""
        with self._lock:
            board = self._boards.get(key, {})
            entry = board.get(user_id)
            if entry is None:
                return None

            total = len(board)
            return UserRank(
                user_id=entry.user_id,
                current_rank=entry.current_rank,
                previous_rank=entry.previous_rank,
                rank_change=entry.rank_change,
                score_value=entry.score_value,
                total_participants=total,
                percentile=round_half_up((total - entry.current_rank + 1) / total * 100, 2),
            )

    def get_user_rankings(self, user_id: UserId, tier: Optional[str] = None, day: Optional[date] = None) -> Dict[str, Optional[UserRank]]:
        """
        A user's standing on the main boards.

        Args:
            user_id: User identifier
            tier: User's current tier (tier board is skipped without it)
            day: Date used for the period boards

        Returns:
            Dict of board label -> UserRank (None where the user is unranked)
        """
        rankings = {
            "global_xp": self.get_user_rank(user_id, self.resolve_key(LeaderboardType.GLOBAL, RankingCriteria.TOTAL_XP)),
            "global_level": self.get_user_rank(user_id, self.resolve_key(LeaderboardType.GLOBAL, RankingCriteria.LEVEL)),
            "global_quiz_score": self.get_user_rank(user_id, self.resolve_key(LeaderboardType.GLOBAL, RankingCriteria.QUIZ_SCORE)),
            "tier_based": None,
        }

        if tier:
            rankings["tier_based"] = self.get_user_rank(
                user_id, self.resolve_key(LeaderboardType.TIER_BASED, RankingCriteria.TOTAL_XP, tier)
            )

        for leaderboard_type in TIME_BASED_TYPES:
            key = self.resolve_key(leaderboard_type, RankingCriteria.QUIZ_SCORE, day=day)
            rankings[f"{leaderboard_type.value.lower()}_quiz_score"] = self.get_user_rank(user_id, key)

        return rankings

    def get_top_movers(
        self,
        key: LeaderboardKey,
        direction: MoveDirection = MoveDirection.UP,
        limit: int = 10,
    ) -> List[LeaderboardEntry]:
        """
        Users who moved the most on the last re-rank of a board.

        Args:
            key: Board to inspect
            direction: UP for climbers, DOWN for fallers
            limit: Maximum number of entries

        Returns:
            Entries ordered by size of the move
        """
        direction = MoveDirection(direction)

        with self._lock:
            entries = list(self._boards.get(key, {}).values())

        if direction == MoveDirection.UP:
            movers = sorted((e for e in entries if e.rank_change > 0), key=lambda e: -e.rank_change)
        else:
            movers = sorted((e for e in entries if e.rank_change < 0), key=lambda e: e.rank_change)

        return [e.model_copy() for e in movers[:max(0, limit)]]

    def get_leaderboard_stats(self, key: LeaderboardKey) -> LeaderboardStats:
        """Participant count, score spread and movement summary of a board (zeros when empty)."""
        with self._lock:
            entries = list(self._boards.get(key, {}).values())

        if not entries:
            return LeaderboardStats()

        scores = [e.score_value for e in entries]
        return LeaderboardStats(
            total_participants=len(entries),
            average_score=round_half_up(sum(scores) / len(scores), 2),
            highest_score=max(scores),
            lowest_score=min(scores),
            movers_up=sum(1 for e in entries if e.rank_change > 0),
            movers_down=sum(1 for e in entries if e.rank_change < 0),
            no_change=sum(1 for e in entries if e.rank_change == 0),
        )

    # ========================================================================
    # NOTIFICATIONS
    # ========================================================================

    def subscribe(self, listener: RankListener) -> Callable[[], None]:
        """
        Register a listener for rank changes.

        Returns:
            Callable that removes the listener
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    # ========================================================================
    # PRIVATE HELPER METHODS
    # ========================================================================

    def _update(self, user_id, criteria, value, leaderboard_type, partition, day, now) -> LeaderboardKey:
        self.update_user_score(user_id, criteria, value, leaderboard_type, partition, day, now)
        return self.resolve_key(leaderboard_type, criteria, partition, day)

    @staticmethod
    def _recalculate_ranks(board: Dict[UserId, LeaderboardEntry]) -> None:
        """Re-rank a board in place. Caller must hold the lock."""
        # sorted() is stable: equal scores keep board (join) order
        ordered = sorted(board.values(), key=lambda e: -e.score_value)

        for index, entry in enumerate(ordered):
            new_rank = index + 1
            if entry.current_rank is None:
                entry.rank_change = 0
            else:
                entry.previous_rank = entry.current_rank
                entry.rank_change = entry.current_rank - new_rank
            entry.current_rank = new_rank

    def _notify(self, change: RankChange) -> None:
        with self._lock:
            listeners = list(self._listeners)

        logger.info(
            f"📈 User {change.user_id} moved {change.old_rank} → {change.new_rank} on "
            f"{change.key.leaderboard_type.value}/{change.key.criteria.value}"
        )

        for listener in listeners:
            try:
                listener(change)
            except Exception as e:
                logger.error(f"❌ Rank change listener failed for user {change.user_id}: {e}")


def create_leaderboard_ranker(default_limit: Optional[int] = None) -> LeaderboardRanker:
    """Factory function to create a LeaderboardRanker."""
    return LeaderboardRanker(default_limit)
