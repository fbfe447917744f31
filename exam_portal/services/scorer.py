"""
Scorer
Percentage score and per-topic breakdown for one attempt
"""
import logging
import math
from typing import Any, Dict, Mapping, Optional, Sequence

from exam_portal.core.exceptions import AlreadySubmittedError
from exam_portal.models.attempt import ScoreResult, StudentTest, TopicScore
from exam_portal.models.question import Question

logger = logging.getLogger(__name__)


def normalize_choice(value: Any) -> Optional[int]:
    """
    Coerce a submitted answer to an option index.

    ``2``, ``2.0`` and ``"2"`` all become 2. Anything that is not an integral
    number (``"abc"``, ``1.5``, ``True``, ``None``) or does not fit a float
    (``10**400``) returns None and never matches a correct option.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value.strip() if isinstance(value, str) else value)
    except (TypeError, ValueError, OverflowError):
        return None
    if not math.isfinite(number) or not number.is_integer():
        return None
    return int(number)


def score_answers(
    questions: Sequence[Question],
    answers: Mapping[str, Any]
) -> ScoreResult:
    """
    Score a finalized question set against a sparse answer map.

    Args:
        questions: Snapshots with correctOptionIndex and topic
        answers: questionId -> chosen option; unanswered ids are absent

    Returns:
        ScoreResult with score = 100 * correct / total (0.0 for an empty paper)

    Example:
        3 of 4 correct over topics A (1/2) and B (2/2) gives score 75.0 and
        analysis {"A": {correct: 1, total: 2}, "B": {correct: 2, total: 2}}
    """
    analysis: Dict[str, TopicScore] = {}
    correct = 0

    for question in questions:
        topic = analysis.setdefault(question.topic, TopicScore())
        topic.total += 1

        if question.id not in answers:
            continue

        if normalize_choice(answers[question.id]) == question.correctOptionIndex:
            topic.correct += 1
            correct += 1

    total = len(questions)
    score = (correct / total) * 100 if total > 0 else 0.0

    return ScoreResult(
        score=score,
        correct=correct,
        totalQuestions=total,
        analysis=analysis
    )


def grade_attempt(attempt: StudentTest, answers: Mapping[str, Any]) -> ScoreResult:
    """
    Score an in-progress attempt.

    Raises:
        AlreadySubmittedError: If the attempt has already been completed
    """
    if attempt.status == "completed":
        raise AlreadySubmittedError("This test has already been submitted.")

    result = score_answers(attempt.questions, answers)

    logger.info(
        f"📝 Graded attempt {attempt.id}: {result.correct}/{result.totalQuestions} "
        f"({result.score:.2f}%)"
    )
    return result
