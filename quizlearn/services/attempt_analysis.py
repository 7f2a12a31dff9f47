"""
Multiple Attempt Analysis.

Classifies how a user's answers evolved across repeated attempts at the same
question and rolls the classifications up into a learning progress report.

The platform allows one retry per question:
- 1 attempt: the user either got it right, got it wrong, or skipped it
- 2 attempts: the transition between the attempts is the learning signal
- 3+ attempts: not expected, surfaced as an anomaly

All functions are pure: they read the history they are given and return
fresh report objects. Persistence belongs to the caller.
"""

from typing import Any, Dict, Iterable, List, Optional
import logging

from pydantic import ValidationError

from quizlearn.core.exceptions import EmptyAttemptsError
from quizlearn.models.attempt import AttemptRecord, QuestionId
from quizlearn.models.learning_progress import (
    AccuracySummary,
    LearningPattern,
    LearningProgressReport,
    LearningRecommendation,
    MasteryLevel,
    QuestionPatternSummary,
    RecommendationPriority,
    TimeImprovement,
)
from quizlearn.utils.numeric import percentage, safe_average

logger = logging.getLogger(__name__)


# ============================================================================
# THRESHOLDS
# ============================================================================

# Inclusive lower bounds on final_success_rate, evaluated top-down
MASTERY_THRESHOLDS = [
    (90, MasteryLevel.EXCELLENT),
    (75, MasteryLevel.GOOD),
    (60, MasteryLevel.AVERAGE),
]

# Patterns with a definite answered outcome (denominator of the rates)
ANSWERED_PATTERNS = (
    LearningPattern.FIRST_TRY_SUCCESS,
    LearningPattern.LEARNED_FROM_MISTAKE,
    LearningPattern.PERSISTENT_DIFFICULTY,
    LearningPattern.SINGLE_FAILURE,
)


# ============================================================================
# GROUPING & CLASSIFICATION
# ============================================================================

def coerce_history(history: Optional[Iterable[Any]]) -> List[AttemptRecord]:
    """
    Coerce raw history rows to AttemptRecords.

    Rows that cannot be read at all (``None``, scalars, ...) are skipped with
    a warning so one bad row does not abort the analysis.

    Args:
        history: Records, mappings or ORM rows

    Returns:
        List of AttemptRecord in input order
    """
    records = []
    for position, raw in enumerate(history or []):
        try:
            records.append(AttemptRecord.coerce(raw))
        except ValidationError as e:
            logger.warning(f"⚠️ Skipping unreadable attempt record at position {position}: {e.error_count()} error(s)")
    return records


def _sorted_attempts(attempts: Iterable[Any]) -> List[AttemptRecord]:
    records = coerce_history(attempts)
    # sorted() is stable, so equal indexes keep their recorded order
    return sorted(records, key=lambda a: a.attempt_index)


def group_by_question(history: Iterable[Any]) -> Dict[QuestionId, List[AttemptRecord]]:
    """
    Group an attempt history by question.

    Args:
        history: Attempt records (or raw rows) in any order

    Returns:
        Dict of question_id -> attempts sorted by attempt_index. Keys are in
        order of each question's first occurrence in ``history``.
    """
    question_map: Dict[QuestionId, List[AttemptRecord]] = {}

    for record in coerce_history(history):
        question_map.setdefault(record.question_id, []).append(record)

    for question_id, attempts in question_map.items():
        attempts.sort(key=lambda a: a.attempt_index)

    return question_map


def classify_learning_pattern(attempts: Iterable[Any]) -> LearningPattern:
    """
    Classify the learning trajectory for one question.

    Args:
        attempts: Every attempt the user made at the question

    Returns:
        LearningPattern for the sequence

    Raises:
        EmptyAttemptsError: If ``attempts`` is empty
    """
    ordered = _sorted_attempts(attempts or [])

    if not ordered:
        raise EmptyAttemptsError()

    if len(ordered) == 1:
        only = ordered[0]
        if not only.is_answered:
            return LearningPattern.NOT_ATTEMPTED
        return LearningPattern.FIRST_TRY_SUCCESS if only.is_correct else LearningPattern.SINGLE_FAILURE

    if len(ordered) == 2:
        first, second = ordered

        if first.is_correct and second.is_correct:
            # A correct first answer normally ends the sequence
            logger.debug(f"🔁 Question {first.question_id} retried after a correct answer (consistent mastery)")
            return LearningPattern.CONSISTENT_MASTERY

        if first.is_correct:
            logger.debug(f"📉 Question {first.question_id} answered correctly, then incorrectly (regression)")
            return LearningPattern.REGRESSION

        if second.is_correct:
            return LearningPattern.LEARNED_FROM_MISTAKE

        return LearningPattern.PERSISTENT_DIFFICULTY

    logger.debug(f"⚠️ Question {ordered[0].question_id} has {len(ordered)} attempts (anomaly)")
    return LearningPattern.ANOMALY


def calculate_time_improvement(attempts: Iterable[Any]) -> TimeImprovement:
    """
    Compare time spent on the first and last attempt of a question.

    Args:
        attempts: Attempts for one question

    Returns:
        TimeImprovement; zeroed with improved=False for fewer than 2 attempts
    """
    ordered = _sorted_attempts(attempts or [])

    if len(ordered) < 2:
        return TimeImprovement()

    first_time = ordered[0].time_spent
    last_time = ordered[-1].time_spent
    time_reduction = first_time - last_time

    return TimeImprovement(
        improved=time_reduction > 0,
        time_reduction=time_reduction,
        percentage_improvement=percentage(time_reduction, first_time),
        first_attempt_time=first_time,
        last_attempt_time=last_time,
    )


def mastery_level_for(success_rate: float) -> MasteryLevel:
    """Map a final success rate (0-100) to a mastery level."""
    for threshold, level in MASTERY_THRESHOLDS:
        if success_rate >= threshold:
            return level
    return MasteryLevel.NEEDS_IMPROVEMENT


# ============================================================================
# AGGREGATE ANALYSIS
# ============================================================================

def analyze_learning_progress(history: Iterable[Any]) -> LearningProgressReport:
    """
    Build a learning progress report for a whole attempt history.

    Never raises for malformed or empty input: an empty history produces an
    all-zero report with mastery level ``needs_improvement``.

    Args:
        history: Attempt records for any number of questions

    Returns:
        LearningProgressReport
    """
    records = coerce_history(history)
    question_map = group_by_question(records)

    report = LearningProgressReport(total_attempts=len(records))

    total_first_time = 0
    total_second_time = 0
    with_first_attempt = 0
    with_second_attempt = 0

    for question_id, attempts in question_map.items():
        pattern = classify_learning_pattern(attempts)

        setattr(report, pattern.value, report.count_for(pattern) + 1)
        report.questions_by_pattern[pattern.value].append(
            QuestionPatternSummary(
                question_id=question_id,
                attempts=len(attempts),
                final_result=attempts[-1].is_correct,
                pattern=pattern,
            )
        )

        with_first_attempt += 1
        total_first_time += attempts[0].time_spent

        if len(attempts) >= 2:
            with_second_attempt += 1
            total_second_time += attempts[1].time_spent

    report.total_questions_with_data = len(question_map)

    total_answered = sum(report.count_for(p) for p in ANSWERED_PATTERNS)
    final_success = report.first_try_success + report.learned_from_mistake

    report.improvement_rate = percentage(report.learned_from_mistake, total_answered, digits=2)
    report.final_success_rate = percentage(final_success, total_answered)
    report.mastery_level = mastery_level_for(report.final_success_rate)

    report.average_time_first_attempt = safe_average(total_first_time, with_first_attempt)
    report.average_time_second_attempt = safe_average(total_second_time, with_second_attempt)

    if with_second_attempt > 0:
        report.time_improvement_rate = percentage(
            report.average_time_first_attempt - report.average_time_second_attempt,
            report.average_time_first_attempt,
        )

    logger.debug(
        f"📊 Analyzed {report.total_questions_with_data} questions "
        f"({report.total_attempts} attempts): success={report.final_success_rate}%, "
        f"mastery={report.mastery_level.value}"
    )

    return report


def _accuracy_at(history: Iterable[Any], position: int) -> AccuracySummary:
    correct = 0
    total = 0

    for attempts in group_by_question(history).values():
        attempt = attempts[position]
        # Skipped questions count neither way
        if not attempt.is_answered:
            continue
        total += 1
        if attempt.is_correct:
            correct += 1

    return AccuracySummary(
        accuracy=percentage(correct, total),
        total_questions=total,
        correct=correct,
        incorrect=total - correct,
    )


def calculate_final_accuracy(history: Iterable[Any]) -> AccuracySummary:
    """Accuracy counting only the last attempt of each question."""
    return _accuracy_at(history, -1)


def calculate_first_attempt_accuracy(history: Iterable[Any]) -> AccuracySummary:
    """Accuracy counting only the first attempt of each question."""
    return _accuracy_at(history, 0)


# ============================================================================
# RECOMMENDATIONS
# ============================================================================

# Emitted in this order; categories with no questions are skipped
RECOMMENDATION_RULES = [
    {
        "category": LearningPattern.PERSISTENT_DIFFICULTY,
        "priority": RecommendationPriority.HIGH,
        "title": "Questions that need urgent support",
        "message": "You tried twice and still missed {count} question(s). Revisit the fundamentals.",
        "actions": [
            "Rewatch the lecture video",
            "Read the theory material carefully",
            "Work through the basic exercises first",
            "Ask an instructor for a clearer explanation",
        ],
    },
    {
        "category": LearningPattern.SINGLE_FAILURE,
        "priority": RecommendationPriority.MEDIUM,
        "title": "Questions to review",
        "message": "You answered {count} question(s) incorrectly. Review them to understand why.",
        "actions": [
            "Review the related theory",
            "Try the question again",
            "Work out why the chosen answer was wrong",
        ],
    },
    {
        "category": LearningPattern.LEARNED_FROM_MISTAKE,
        "priority": RecommendationPriority.INFO,
        "title": "Well done: learning from mistakes",
        "message": "Great job! You corrected {count} question(s) on your second try.",
        "actions": [
            "Review these concepts so they stick",
            "Apply them to other exercises",
        ],
    },
    {
        "category": LearningPattern.FIRST_TRY_SUCCESS,
        "priority": RecommendationPriority.SUCCESS,
        "title": "Your strengths",
        "message": "Excellent! You answered {count} question(s) correctly on the first try.",
        "actions": [
            "Keep it up",
            "Try more advanced questions",
        ],
    },
    {
        "category": LearningPattern.NOT_ATTEMPTED,
        "priority": RecommendationPriority.LOW,
        "title": "Questions not attempted",
        "message": "There are still {count} question(s) you have not tried.",
        "actions": [
            "Attempt them to check your understanding",
        ],
    },
]


def generate_learning_recommendations(report: LearningProgressReport) -> List[LearningRecommendation]:
    """
    Turn a learning progress report into prioritized study recommendations.

    Args:
        report: Output of ``analyze_learning_progress``

    Returns:
        Recommendations in fixed priority order (HIGH, MEDIUM, INFO, SUCCESS, LOW)
    """
    recommendations = []

    for rule in RECOMMENDATION_RULES:
        category = rule["category"]
        count = report.count_for(category)
        if count <= 0:
            continue

        recommendations.append(
            LearningRecommendation(
                priority=rule["priority"],
                category=category,
                count=count,
                title=rule["title"],
                message=rule["message"].format(count=count),
                actions=list(rule["actions"]),
                questions=list(report.questions_for(category)),
            )
        )

    return recommendations


# ============================================================================
# ANALYZER
# ============================================================================

class AttemptPatternAnalyzer:
    """
    Facade over the multi-attempt analysis functions.

    Stateless; a single instance can be shared across requests.
    """

    group_by_question = staticmethod(group_by_question)
    classify_learning_pattern = staticmethod(classify_learning_pattern)
    calculate_time_improvement = staticmethod(calculate_time_improvement)
    analyze_learning_progress = staticmethod(analyze_learning_progress)
    calculate_final_accuracy = staticmethod(calculate_final_accuracy)
    calculate_first_attempt_accuracy = staticmethod(calculate_first_attempt_accuracy)
    generate_learning_recommendations = staticmethod(generate_learning_recommendations)

    def analyze(self, history: Iterable[Any], user_id: Optional[Any] = None) -> Dict[str, Any]:
        """
        Run the full analysis used by the learning analytics views.

        Args:
            history: Attempt records for one user
            user_id: Only used for logging

        Returns:
            Dict with ``learning_progress``, ``recommendations``,
            ``first_attempt_accuracy`` and ``final_accuracy``
        """
        records = coerce_history(history)
        report = analyze_learning_progress(records)
        recommendations = generate_learning_recommendations(report)

        logger.info(
            f"🎓 Learning analysis for user {user_id}: "
            f"{report.total_questions_with_data} questions, "
            f"{len(recommendations)} recommendations"
        )

        return {
            "learning_progress": report,
            "recommendations": recommendations,
            "first_attempt_accuracy": calculate_first_attempt_accuracy(records),
            "final_accuracy": calculate_final_accuracy(records),
        }


def create_attempt_pattern_analyzer() -> AttemptPatternAnalyzer:
    """Factory function to create an AttemptPatternAnalyzer."""
    return AttemptPatternAnalyzer()
