"""Tests for the scoring table and settings."""

import json

import pytest

from quizlearn.core.config import Settings
from quizlearn.core.exceptions import ScoringConfigError
from quizlearn.core.scoring_config import (
    DEFAULT_SCORING_CONFIG,
    ScoringConfig,
    SpeedTier,
    load_scoring_config,
)


def write_json(tmp_path, data, name="scoring.json"):
    path = tmp_path / name
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


class TestDefaults:
    def test_default_table(self):
        config = DEFAULT_SCORING_CONFIG

        assert config.base_points.correct_answer == 10
        assert config.base_points.partial_correct == 5
        assert [t.max_time_ms for t in config.speed_tiers] == [2000, 3000, 5000, 8000]
        assert config.streak.min_streak == 3
        assert [c.streak for c in config.streak.combo_thresholds] == [5, 10, 15, 20]
        assert config.perfect_bonuses.flawless_victory == 100

    def test_immutable(self):
        with pytest.raises(Exception):
            DEFAULT_SCORING_CONFIG.default_difficulty = "hard"

    def test_speed_tiers_sorted_fastest_first(self):
        config = ScoringConfig(speed_tiers=[
            SpeedTier(max_time_ms=5000, bonus=5, name="Fast"),
            SpeedTier(max_time_ms=1000, bonus=20, name="Instant"),
        ])
        assert [t.name for t in config.speed_tiers] == ["Instant", "Fast"]

    def test_difficulty_lookup(self):
        config = ScoringConfig(difficulty_multipliers={"Easy": 1.0, "HARD": 1.5})

        assert config.difficulty_multiplier("hard") == 1.5
        assert config.difficulty_multiplier("EASY") == 1.0
        assert config.difficulty_multiplier("unknown") == 1.0

    def test_multiplier_below_one_rejected(self):
        with pytest.raises(ValueError):
            ScoringConfig(difficulty_multipliers={"easy": 0.5})

    def test_decreasing_combos_rejected(self):
        with pytest.raises(ValueError):
            ScoringConfig.model_validate({
                "streak": {"combo_thresholds": [
                    {"streak": 5, "multiplier": 2.0, "name": "A"},
                    {"streak": 10, "multiplier": 1.5, "name": "B"},
                ]}
            })


class TestLoadScoringConfig:
    def test_partial_override(self, tmp_path):
        path = write_json(tmp_path, {"base_points": {"correct_answer": 20}})
        config = load_scoring_config(path)

        assert config.base_points.correct_answer == 20
        assert config.base_points.partial_correct == 5
        assert config.speed_tiers == DEFAULT_SCORING_CONFIG.speed_tiers

    def test_missing_file(self, tmp_path):
        with pytest.raises(ScoringConfigError):
            load_scoring_config(tmp_path / "missing.json")

    def test_not_json(self, tmp_path):
        path = tmp_path / "scoring.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ScoringConfigError):
            load_scoring_config(path)

    def test_invalid_values(self, tmp_path):
        path = write_json(tmp_path, {"difficulty_multipliers": {"easy": 0.1}})
        with pytest.raises(ScoringConfigError):
            load_scoring_config(path)

    def test_unknown_section(self, tmp_path):
        path = write_json(tmp_path, {"bonus_points": {}})
        with pytest.raises(ScoringConfigError):
            load_scoring_config(path)


class TestSettings:
    def test_defaults_without_file(self):
        settings = Settings(SCORING_CONFIG_FILE=None)
        assert settings.scoring_config() is DEFAULT_SCORING_CONFIG

    def test_loads_file(self, tmp_path):
        path = write_json(tmp_path, {"default_difficulty": "hard"})
        settings = Settings(SCORING_CONFIG_FILE=path)

        assert settings.scoring_config().default_difficulty == "hard"

    def test_is_production(self):
        assert Settings(ENVIRONMENT="prod").is_production
        assert not Settings(ENVIRONMENT="development").is_production
