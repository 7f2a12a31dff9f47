"""Tests for leaderboard ranking."""

from datetime import date, datetime

import pytest

from quizlearn.core.exceptions import LeaderboardError
from quizlearn.models.leaderboard import (
    LeaderboardKey,
    LeaderboardType,
    MoveDirection,
    QuizResultUpdate,
    RankingCriteria,
)
from quizlearn.services.leaderboard import LeaderboardRanker, create_leaderboard_ranker, time_period_start


XP = RankingCriteria.TOTAL_XP
GLOBAL_XP = LeaderboardKey(leaderboard_type=LeaderboardType.GLOBAL, criteria=XP)


def seed(ranker, scores):
    for user_id, score in scores.items():
        ranker.update_user_score(user_id, XP, score)


class TestTimePeriods:
    def test_period_starts(self):
        day = date(2024, 5, 15)
        assert time_period_start(LeaderboardType.DAILY, day) == day
        assert time_period_start(LeaderboardType.WEEKLY, day) == date(2024, 5, 13)
        assert time_period_start(LeaderboardType.MONTHLY, day) == date(2024, 5, 1)

    @pytest.mark.parametrize("leaderboard_type", [LeaderboardType.GLOBAL, LeaderboardType.TIER_BASED])
    def test_not_time_based(self, leaderboard_type):
        with pytest.raises(LeaderboardError):
            time_period_start(leaderboard_type, date(2024, 5, 15))


class TestResolveKey:
    def test_global_ignores_partition(self, ranker):
        key = ranker.resolve_key(LeaderboardType.GLOBAL, XP, partition="gold")
        assert key == GLOBAL_XP

    def test_tier_requires_tier(self, ranker):
        with pytest.raises(LeaderboardError):
            ranker.resolve_key(LeaderboardType.TIER_BASED, XP)

    def test_weekly_partition_from_day(self, ranker):
        key = ranker.resolve_key(LeaderboardType.WEEKLY, RankingCriteria.QUIZ_SCORE, day=date(2024, 5, 15))
        assert key.partition == "2024-05-13"


class TestRanking:
    def test_higher_score_ranks_first(self, ranker):
        seed(ranker, {"a": 100, "b": 300, "c": 200})

        board = ranker.get_leaderboard(GLOBAL_XP)
        assert [e.user_id for e in board] == ["b", "c", "a"]
        assert [e.current_rank for e in board] == [1, 2, 3]

    def test_ties_keep_join_order(self, ranker):
        seed(ranker, {"a": 100, "b": 100, "c": 100})
        assert [e.user_id for e in ranker.get_leaderboard(GLOBAL_XP)] == ["a", "b", "c"]

    def test_new_users_have_no_rank_change(self, ranker):
        entry = ranker.update_user_score("a", XP, 50)
        assert entry.current_rank == 1
        assert entry.previous_rank is None
        assert entry.rank_change == 0

    def test_rank_change_tracks_moves(self, ranker):
        seed(ranker, {"a": 100, "b": 200, "c": 300})
        entry = ranker.update_user_score("a", XP, 400)

        assert entry.current_rank == 1
        assert entry.previous_rank == 3
        assert entry.rank_change == 2

        c = ranker.get_user_rank("c", GLOBAL_XP)
        assert c.current_rank == 2
        assert c.rank_change == -1

    def test_returned_entry_is_a_copy(self, ranker):
        entry = ranker.update_user_score("a", XP, 100)
        entry.score_value = 999
        assert ranker.get_user_rank("a", GLOBAL_XP).score_value == 100

    def test_limit_and_offset(self, ranker):
        seed(ranker, {f"u{i}": i for i in range(10)})

        page = ranker.get_leaderboard(GLOBAL_XP, limit=3, offset=2)
        assert [e.current_rank for e in page] == [3, 4, 5]
        assert ranker.get_leaderboard(GLOBAL_XP, limit=0) == []

    def test_default_limit(self):
        ranker = LeaderboardRanker(default_limit=2)
        seed(ranker, {"a": 1, "b": 2, "c": 3})
        assert len(ranker.get_leaderboard(GLOBAL_XP)) == 2

    def test_unknown_board_is_empty(self, ranker):
        assert ranker.get_leaderboard(GLOBAL_XP) == []
        assert ranker.get_user_rank("a", GLOBAL_XP) is None


class TestUserRank:
    def test_percentile(self, ranker):
        seed(ranker, {"a": 400, "b": 300, "c": 200, "d": 100})

        rank = ranker.get_user_rank("b", GLOBAL_XP)
        assert rank.current_rank == 2
        assert rank.total_participants == 4
        assert rank.percentile == 75.0

    def test_quiz_result_updates_every_board(self, ranker):
        result = QuizResultUpdate(
            total_score=120,
            current_xp=1500,
            current_level=4,
            current_tier="gold",
            completed_on=date(2024, 5, 15),
        )
        keys = ranker.update_from_quiz_result("a", result, now=datetime(2024, 5, 15, 12, 0))

        assert len(keys) == 9
        assert len(set(keys)) == 9

        rankings = ranker.get_user_rankings("a", tier="gold", day=date(2024, 5, 15))
        assert set(rankings) == {
            "global_xp", "global_level", "global_quiz_score", "tier_based",
            "daily_quiz_score", "weekly_quiz_score", "monthly_quiz_score",
        }
        assert all(r is not None and r.current_rank == 1 for r in rankings.values())
        assert rankings["global_level"].score_value == 4

    def test_quiz_result_without_tier(self, ranker):
        keys = ranker.update_from_quiz_result("a", QuizResultUpdate(total_score=10), now=datetime(2024, 5, 15))

        assert len(keys) == 6
        assert ranker.get_user_rankings("a", day=date(2024, 5, 15))["tier_based"] is None


class TestTopMovers:
    def test_climbers_and_fallers(self, ranker):
        seed(ranker, {"a": 100, "b": 200, "c": 300, "d": 400})
        ranker.update_user_score("a", XP, 500)

        up = ranker.get_top_movers(GLOBAL_XP, MoveDirection.UP)
        down = ranker.get_top_movers(GLOBAL_XP, MoveDirection.DOWN)

        assert [e.user_id for e in up] == ["a"]
        assert up[0].rank_change == 3
        assert {e.user_id for e in down} == {"b", "c", "d"}
        assert all(e.rank_change == -1 for e in down)

    def test_limit(self, ranker):
        seed(ranker, {"a": 100, "b": 200, "c": 300})
        ranker.update_user_score("a", XP, 500)
        assert len(ranker.get_top_movers(GLOBAL_XP, "down", limit=1)) == 1


class TestNotifications:
    def test_listener_receives_rank_change(self, ranker):
        changes = []
        ranker.subscribe(changes.append)

        seed(ranker, {"a": 100, "b": 200})
        ranker.update_user_score("a", XP, 300)

        assert len(changes) == 1
        change = changes[0]
        assert change.user_id == "a"
        assert (change.old_rank, change.new_rank) == (2, 1)
        assert change.score_change == 200
        assert change.key == GLOBAL_XP

    def test_no_notification_without_move(self, ranker):
        changes = []
        ranker.subscribe(changes.append)

        seed(ranker, {"a": 300, "b": 200})
        ranker.update_user_score("a", XP, 350)

        assert changes == []

    def test_failing_listener_does_not_abort_update(self, ranker):
        changes = []

        def broken(change):
            raise RuntimeError("socket closed")

        ranker.subscribe(broken)
        ranker.subscribe(changes.append)

        seed(ranker, {"a": 100, "b": 200})
        entry = ranker.update_user_score("a", XP, 300)

        assert entry.current_rank == 1
        assert len(changes) == 1

    def test_unsubscribe(self, ranker):
        changes = []
        unsubscribe = ranker.subscribe(changes.append)
        unsubscribe()
        unsubscribe()

        seed(ranker, {"a": 100, "b": 200})
        ranker.update_user_score("a", XP, 300)

        assert changes == []


def test_factory_uses_settings_limit():
    from quizlearn.core.config import settings

    assert create_leaderboard_ranker().default_limit == settings.LEADERBOARD_DEFAULT_LIMIT


class TestLeaderboardStats:
    def test_empty_board(self, ranker):
        stats = ranker.get_leaderboard_stats(GLOBAL_XP)

        assert stats.total_participants == 0
        assert stats.average_score == 0
        assert stats.movers_up == 0

    def test_score_spread_and_movement(self, ranker):
        seed(ranker, {"a": 100, "b": 200, "c": 300, "d": 400})
        ranker.update_user_score("a", XP, 500)

        stats = ranker.get_leaderboard_stats(GLOBAL_XP)
        assert stats.total_participants == 4
        assert stats.average_score == 350.0
        assert stats.highest_score == 500
        assert stats.lowest_score == 200
        assert stats.movers_up == 1
        assert stats.movers_down == 3
        assert stats.no_change == 0

    def test_new_board_has_no_movement(self, ranker):
        seed(ranker, {"a": 200, "b": 100})

        stats = ranker.get_leaderboard_stats(GLOBAL_XP)
        assert stats.no_change == 2
        assert stats.average_score == 150.0


def test_default_timestamp_is_utc(ranker):
    entry = ranker.update_user_score("a", XP, 100)
    assert entry.last_updated.tzinfo is not None
    assert entry.last_updated.utcoffset().total_seconds() == 0
