"""
Dynamic Scoring Service.

Turns a single answer into points with an explainable bonus breakdown, and
rolls a completed quiz up into totals with perfect-quiz bonuses.

Scoring a correct answer:
1. Base points (first attempt or retry)
2. + speed bonus (response-time tier) + time bonus (time left in the quiz)
3. x difficulty multiplier
4. + streak bonus
5. x streak combo multiplier

An incorrect answer scores its base points only (0 by default). Speed and
time bonuses are still reported so the client can show what was missed,
but a wrong answer never continues a streak.

The calculator holds nothing but its configuration. Streaks are threaded
through by the caller.
"""

from typing import Any, Iterable, List, Mapping, Optional, Tuple, Union
import logging

from quizlearn.core.scoring_config import DEFAULT_SCORING_CONFIG, ScoringConfig
from quizlearn.models.scoring import (
    PerfectBonus,
    QuestionScore,
    QuizAnswer,
    QuizScoreSummary,
    ScoreResult,
    ScoringInput,
    SpeedBonus,
    StreakBonus,
    StreakInfo,
    TimeBonus,
)
from quizlearn.utils.numeric import clamp, percentage, round_half_up

logger = logging.getLogger(__name__)


class DynamicScoreCalculator:
    """Stateless scoring engine parameterized by a ScoringConfig."""

    def __init__(self, config: Optional[ScoringConfig] = None):
        self.config = config or DEFAULT_SCORING_CONFIG

    # ========================================================================
    # BONUS COMPONENTS
    # ========================================================================

    def calculate_speed_bonus(self, response_time: Optional[int]) -> SpeedBonus:
        """
        Find the speed tier for a response time.

        Tiers are checked fastest first; the first tier whose ``max_time_ms``
        is at least ``response_time`` wins. Missing or non-positive times are
        treated as unmeasured and earn nothing.

        Args:
            response_time: Time to answer in milliseconds

        Returns:
            SpeedBonus (zero bonus when no tier matches)
        """
        if response_time is None or response_time <= 0:
            logger.debug(f"⏱️ Ignoring implausible response time {response_time!r}")
            return SpeedBonus()

        for tier in self.config.speed_tiers:
            if response_time <= tier.max_time_ms:
                return SpeedBonus(bonus=tier.bonus, tier_name=tier.name, max_time_ms=tier.max_time_ms)

        return SpeedBonus()

    def calculate_streak_bonus(self, current_streak: int, is_correct: bool) -> StreakBonus:
        """
        Streak bonus and combo multiplier for an answer.

        Args:
            current_streak: Consecutive correct answers before this one
            is_correct: Whether this answer is correct

        Returns:
            StreakBonus whose ``current_streak`` includes this answer
            (0 when the answer breaks the streak)
        """
        if not is_correct:
            return StreakBonus()

        streak_config = self.config.streak
        streak = max(0, current_streak or 0) + 1

        bonus = 0
        name = None
        if streak >= streak_config.min_streak:
            bonus = streak_config.streak_bonus
            name = f"{streak} Streak"

        multiplier = 1.0
        combo_name = None
        for combo in streak_config.combo_thresholds:
            if streak >= combo.streak:
                multiplier = combo.multiplier
                combo_name = combo.name

        return StreakBonus(
            current_streak=streak,
            bonus=bonus,
            name=name,
            multiplier=multiplier,
            combo_name=combo_name,
        )

    def calculate_time_bonus(self, total_quiz_time: Optional[int], time_remaining: Optional[int]) -> TimeBonus:
        """
        Reward answering with plenty of quiz time left.

        ``time_remaining`` is clamped to ``[0, total_quiz_time]``; no time left
        or unknown timing earns nothing. When less than the pressure threshold
        is left, the answer is labelled "Time Pressure" and the multiplier is
        reported without bonus points.

        Args:
            total_quiz_time: Quiz duration in milliseconds
            time_remaining: Time left when answering, in milliseconds

        Returns:
            TimeBonus
        """
        if not total_quiz_time or total_quiz_time <= 0 or time_remaining is None:
            return TimeBonus()

        time_config = self.config.time_bonus
        remaining = clamp(time_remaining, 0, total_quiz_time)
        if remaining <= 0:
            return TimeBonus()

        ratio = remaining / total_quiz_time

        if ratio > time_config.early_finish_threshold:
            return TimeBonus(
                bonus=time_config.early_finish_bonus,
                name="Early Finish Bonus",
                time_ratio=ratio,
            )

        if ratio < 1 - time_config.time_pressure_threshold:
            return TimeBonus(
                name="Time Pressure",
                time_ratio=ratio,
                multiplier=time_config.time_pressure_multiplier,
            )

        return TimeBonus(time_ratio=ratio)

    # ========================================================================
    # QUESTION SCORE
    # ========================================================================

    def calculate_question_score(self, params: Union[ScoringInput, Mapping[str, Any]]) -> ScoreResult:
        """
        Score one answer with every applicable bonus.

        Args:
            params: ScoringInput, or a mapping with the same snake_case or
                camelCase keys

        Returns:
            ScoreResult; identical input always gives an identical result
        """
        data = params if isinstance(params, ScoringInput) else ScoringInput.model_validate(dict(params))
        base_config = self.config.base_points

        if data.is_correct:
            base_points = base_config.correct_answer if data.attempt_number == 1 else base_config.partial_correct
        else:
            base_points = base_config.wrong_answer

        speed = self.calculate_speed_bonus(data.response_time)
        time_bonus = self.calculate_time_bonus(data.total_quiz_time, data.time_remaining)
        streak = self.calculate_streak_bonus(data.current_streak, data.is_correct)
        difficulty_multiplier = self.config.difficulty_multiplier(data.question_difficulty)

        if data.is_correct:
            points = (base_points + speed.bonus + time_bonus.bonus) * difficulty_multiplier
            points += streak.bonus
            points *= streak.multiplier
            total_points = round_half_up(points)
        else:
            total_points = base_points

        result = ScoreResult(
            base_points=base_points,
            speed_bonus=speed.bonus,
            streak_bonus=streak.bonus,
            time_bonus=time_bonus.bonus,
            difficulty_multiplier=difficulty_multiplier,
            streak_multiplier=streak.multiplier,
            total_points=total_points,
            bonuses=self._bonus_names(data, speed, streak, time_bonus, difficulty_multiplier),
            streak_info=StreakInfo(
                current_streak=streak.current_streak,
                is_combo=streak.multiplier > 1,
                combo_name=streak.combo_name,
            ),
        )

        logger.debug(
            f"🎯 Question {data.question_id}: difficulty={data.question_difficulty} "
            f"x{difficulty_multiplier}, total={result.total_points}"
        )

        return result

    # ========================================================================
    # QUIZ COMPLETION
    # ========================================================================

    def calculate_perfect_quiz_bonuses(
        self,
        total_questions: int,
        correct_answers: int,
        average_response_time: float,
        had_streak_break: bool,
    ) -> Tuple[List[PerfectBonus], int]:
        """
        One-off bonuses for an outstanding quiz.

        Args:
            total_questions: Questions in the quiz
            correct_answers: Questions answered correctly
            average_response_time: Mean response time in milliseconds
            had_streak_break: Whether any answer was wrong

        Returns:
            Tuple of (earned bonuses, their total)
        """
        perfect = self.config.perfect_bonuses
        earned: List[PerfectBonus] = []

        if total_questions > 0 and correct_answers >= total_questions:
            earned.append(PerfectBonus(type="perfect_score", name="Perfect Score", bonus=perfect.perfect_score))

        if average_response_time < perfect.perfect_speed_max_average_ms:
            earned.append(PerfectBonus(type="perfect_speed", name="Speed Demon", bonus=perfect.perfect_speed))

        if not had_streak_break and correct_answers >= perfect.perfect_streak_min_correct:
            earned.append(PerfectBonus(type="perfect_streak", name="Unbroken Chain", bonus=perfect.perfect_streak))

        if len(earned) == 3:
            earned.append(
                PerfectBonus(type="flawless_victory", name="FLAWLESS VICTORY", bonus=perfect.flawless_victory)
            )

        return earned, sum(b.bonus for b in earned)

    def process_quiz_completion(
        self,
        answers: Iterable[Union[QuizAnswer, Mapping[str, Any]]],
        total_questions: Optional[int] = None,
        quiz_duration: Optional[int] = None,
        time_spent: Optional[int] = None,
        starting_streak: int = 0,
    ) -> QuizScoreSummary:
        """
        Score every answer of a finished quiz and add perfect-quiz bonuses.

        The streak is carried from one answer to the next in the given order,
        starting from ``starting_streak``.

        Args:
            answers: Answers in the order they were given
            total_questions: Questions in the quiz (defaults to len(answers))
            quiz_duration: Quiz duration in milliseconds
            time_spent: Time the user took in milliseconds
            starting_streak: Streak carried in from before the quiz

        Returns:
            QuizScoreSummary
        """
        parsed = self._parse_answers(answers)
        question_count = total_questions if total_questions is not None else len(parsed)

        if not parsed:
            return QuizScoreSummary(total_questions=max(0, question_count))

        time_remaining = None
        if quiz_duration is not None and time_spent is not None:
            time_remaining = quiz_duration - time_spent

        streak = max(0, starting_streak)
        longest_streak = 0
        total_score = 0
        correct_answers = 0
        total_response_time = 0
        had_streak_break = False
        detailed_results = []

        for answer in parsed:
            score = self.calculate_question_score(
                ScoringInput(
                    question_id=answer.question_id,
                    is_correct=answer.is_correct,
                    response_time=answer.response_time,
                    attempt_number=answer.attempt_index,
                    question_difficulty=answer.difficulty,
                    total_quiz_time=quiz_duration,
                    time_remaining=time_remaining,
                    current_streak=streak,
                )
            )

            streak = score.streak_info.current_streak
            longest_streak = max(longest_streak, streak)
            total_score += score.total_points
            total_response_time += answer.response_time

            if answer.is_correct:
                correct_answers += 1
            else:
                had_streak_break = True

            detailed_results.append(QuestionScore(question_id=answer.question_id, **score.model_dump()))

        average_response_time = total_response_time / len(parsed)

        perfect_bonuses, perfect_total = self.calculate_perfect_quiz_bonuses(
            question_count, correct_answers, average_response_time, had_streak_break
        )
        total_score += perfect_total

        logger.info(
            f"🏁 Quiz scored: {correct_answers}/{question_count} correct, "
            f"score={total_score}, perfect bonuses={len(perfect_bonuses)}"
        )

        return QuizScoreSummary(
            total_score=total_score,
            correct_answers=correct_answers,
            total_questions=question_count,
            accuracy=percentage(correct_answers, question_count),
            average_response_time=round_half_up(average_response_time),
            longest_streak=longest_streak,
            perfect_bonuses=perfect_bonuses,
            detailed_results=detailed_results,
        )

    # ========================================================================
    # PRIVATE HELPER METHODS
    # ========================================================================

    @staticmethod
    def _parse_answers(answers: Optional[Iterable[Any]]) -> List[QuizAnswer]:
        """Validate quiz answers, skipping rows that are not answers at all."""
        parsed = []
        for position, raw in enumerate(answers or []):
            if isinstance(raw, QuizAnswer):
                parsed.append(raw)
            elif isinstance(raw, Mapping):
                parsed.append(QuizAnswer.model_validate(dict(raw)))
            else:
                logger.warning(f"⚠️ Skipping unreadable quiz answer at position {position}: {type(raw).__name__}")
        return parsed

    def _bonus_names(
        self,
        data: ScoringInput,
        speed: SpeedBonus,
        streak: StreakBonus,
        time_bonus: TimeBonus,
        difficulty_multiplier: float,
    ) -> List[str]:
        """Display names of the bonuses actually earned."""
        if not data.is_correct:
            return []

        names = []
        if speed.bonus > 0:
            names.append(speed.tier_name)
        if streak.bonus > 0:
            names.append(streak.name)
        if difficulty_multiplier > 1:
            names.append(f"{data.question_difficulty.upper()} Question")
        if time_bonus.bonus > 0:
            names.append(time_bonus.name)
        if streak.multiplier > 1:
            names.append(streak.combo_name)
        return names


def create_dynamic_score_calculator(config: Optional[ScoringConfig] = None) -> DynamicScoreCalculator:
    """
    Factory function to create a DynamicScoreCalculator.

    Args:
        config: Scoring table; defaults to the application settings' table

    Returns:
        Configured DynamicScoreCalculator
    """
    if config is None:
        from quizlearn.core.config import settings
        config = settings.scoring_config()
    return DynamicScoreCalculator(config)
