"""
Aggregator
Course-level and student-level analytics over completed attempts
"""
import logging
from datetime import datetime, timezone
from typing import Dict, List, Sequence

from exam_portal.models.analytics import (
    AttemptSummary,
    CourseAnalytics,
    StudentAnalysis,
    StudentPerformance,
    TestScore,
    TopicBreakdown,
    TopicPerformance,
    TrendPoint,
)
from exam_portal.models.attempt import StudentTest

logger = logging.getLogger(__name__)

PASS_MARK = 50.0
TREND_WINDOW = 5
TOPIC_COUNT = 3

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def _percentage(correct: int, total: int) -> float:
    return (correct / total) * 100 if total > 0 else 0.0


def _completed_at(attempt: StudentTest) -> datetime:
    return attempt.endTime or _OLDEST


def course_analytics(
    course_id: str,
    total_tests: int,
    attempts: Sequence[StudentTest],
    pass_mark: float = PASS_MARK
) -> CourseAnalytics:
    """
    Roll up every completed attempt of a course.

    Topic percentages are recomputed from summed correct/total counts rather
    than averaged per attempt. Students are ordered by descending average
    score; equal averages keep first-seen order.

    Args:
        course_id: Course tag
        total_tests: Number of tests released for the course
        attempts: Completed attempts across those tests
        pass_mark: Minimum score counted as a pass

    Returns:
        CourseAnalytics with passRate as a fraction in [0, 1]
    """
    analytics = CourseAnalytics(courseId=course_id, totalTests=total_tests)

    if not attempts:
        return analytics

    total_score = 0.0
    pass_count = 0
    students: Dict[str, StudentPerformance] = {}
    topics: Dict[str, TopicPerformance] = {}

    for attempt in attempts:
        score = attempt.score or 0.0
        total_score += score
        if score >= pass_mark:
            pass_count += 1

        student = students.get(attempt.studentId)
        if student is None:
            student = StudentPerformance(studentId=attempt.studentId)
            students[attempt.studentId] = student

        student.attempts += 1
        student.totalScore += score
        student.averageScore = student.totalScore / student.attempts
        student.bestScore = max(student.bestScore, score)
        if attempt.endTime and (student.lastAttempt is None or attempt.endTime > student.lastAttempt):
            student.lastAttempt = attempt.endTime

        for topic_name, result in attempt.analysis.items():
            topic = topics.setdefault(topic_name, TopicPerformance(topic=topic_name))
            topic.totalQuestions += result.total
            topic.correctAnswers += result.correct

    for topic in topics.values():
        topic.averageScore = _percentage(topic.correctAnswers, topic.totalQuestions)

    analytics.totalAttempts = len(attempts)
    analytics.averageScore = total_score / len(attempts)
    analytics.passRate = pass_count / len(attempts)
    analytics.topicPerformance = topics
    analytics.studentPerformance = sorted(
        students.values(),
        key=lambda s: s.averageScore,
        reverse=True
    )

    logger.info(
        f"📊 Course {course_id}: {analytics.totalAttempts} attempts, "
        f"avg {analytics.averageScore:.2f}, pass rate {analytics.passRate:.2%}"
    )
    return analytics


def student_analysis(
    student_id: str,
    course_id: str,
    attempts: Sequence[StudentTest],
    trend_window: int = TREND_WINDOW,
    topic_count: int = TOPIC_COUNT
) -> StudentAnalysis:
    """
    Summarize one student's completed attempts in one course.

    - tests: newest first
    - improvementTrend: the ``trend_window`` most recent attempts, oldest first
    - topicWeaknesses: lowest ``topic_count`` topics by percentage, ascending
    - topicStrengths: highest ``topic_count`` topics, descending
    """
    analysis = StudentAnalysis(studentId=student_id, courseId=course_id)

    if not attempts:
        return analysis

    ordered = sorted(attempts, key=_completed_at, reverse=True)

    analysis.totalTests = len(attempts)
    analysis.averageScore = sum(a.score or 0.0 for a in attempts) / len(attempts)
    analysis.tests = [
        AttemptSummary(
            testId=a.id,
            testName=a.testName,
            score=a.score or 0.0,
            completedAt=a.endTime,
            analysis=a.analysis
        )
        for a in ordered
    ]

    recent = list(reversed(ordered[:trend_window]))
    analysis.improvementTrend = [
        TrendPoint(test=a.testName, score=a.score or 0.0, attempt=index + 1)
        for index, a in enumerate(recent)
    ]

    totals: Dict[str, Dict[str, int]] = {}
    for attempt in attempts:
        for topic_name, result in attempt.analysis.items():
            entry = totals.setdefault(topic_name, {"total": 0, "correct": 0, "tests": 0})
            entry["total"] += result.total
            entry["correct"] += result.correct
            entry["tests"] += 1

    breakdown: List[TopicBreakdown] = [
        TopicBreakdown(
            topic=name,
            totalQuestions=entry["total"],
            correctAnswers=entry["correct"],
            tests=entry["tests"],
            percentage=_percentage(entry["correct"], entry["total"])
        )
        for name, entry in totals.items()
    ]
    breakdown.sort(key=lambda t: t.percentage)

    analysis.topicWeaknesses = breakdown[:topic_count]
    analysis.topicStrengths = list(reversed(breakdown[-topic_count:])) if breakdown else []

    return analysis


def list_test_scores(attempts: Sequence[StudentTest]) -> List[TestScore]:
    """Score listing for one test, in the order the attempts were read"""
    return [
        TestScore(studentId=a.studentId, score=a.score or 0.0, completedAt=a.endTime)
        for a in attempts
    ]
