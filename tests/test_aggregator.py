"""
Exam Portal - Analytics Aggregation Tests
"""
from datetime import datetime, timedelta, timezone

import pytest

from exam_portal.models.attempt import StudentTest, TopicScore
from exam_portal.services import aggregator

START = datetime(2026, 1, 10, 9, 0, tzinfo=timezone.utc)


def completed(student_id, score, day, analysis=None, test_id="test_1", name=None):
    return StudentTest(
        studentId=student_id,
        originalTestId=test_id,
        testName=name or f"Quiz {day}",
        courseId="CS101",
        durationMinutes=20,
        startTime=START + timedelta(days=day),
        endTime=START + timedelta(days=day, minutes=15),
        status="completed",
        score=score,
        analysis={
            topic: TopicScore(correct=c, total=t)
            for topic, (c, t) in (analysis or {}).items()
        }
    )


def test_course_analytics_rollup():
    attempts = [
        completed("s1", 80.0, 1, {"Sorting": (4, 5)}),
        completed("s2", 40.0, 1, {"Sorting": (2, 5)}),
        completed("s1", 100.0, 2, {"Sorting": (5, 5), "Graphs": (1, 1)}),
    ]

    result = aggregator.course_analytics("CS101", total_tests=2, attempts=attempts)

    assert result.totalTests == 2
    assert result.totalAttempts == 3
    assert result.averageScore == pytest.approx(220 / 3)
    assert result.passRate == pytest.approx(2 / 3)

    sorting = result.topicPerformance["Sorting"]
    assert (sorting.correctAnswers, sorting.totalQuestions) == (11, 15)
    assert sorting.averageScore == pytest.approx(11 / 15 * 100)

    assert [s.studentId for s in result.studentPerformance] == ["s1", "s2"]
    best = result.studentPerformance[0]
    assert best.attempts == 2
    assert best.averageScore == 90.0
    assert best.bestScore == 100.0
    assert best.lastAttempt == START + timedelta(days=2, minutes=15)


def test_course_analytics_pass_mark_is_inclusive():
    result = aggregator.course_analytics(
        "CS101",
        total_tests=1,
        attempts=[completed("s1", 50.0, 1)],
        pass_mark=50.0
    )
    assert result.passRate == 1.0


def test_course_analytics_without_attempts():
    result = aggregator.course_analytics("CS101", total_tests=3, attempts=[])
    assert result.totalTests == 3
    assert result.totalAttempts == 0
    assert result.passRate == 0.0
    assert result.studentPerformance == []


def test_student_analysis_orders_and_trend():
    attempts = [
        completed("s1", 60.0, day, name=f"Quiz {day}")
        for day in (3, 1, 6, 2, 5, 4)
    ]

    result = aggregator.student_analysis("s1", "CS101", attempts, trend_window=5)

    assert result.totalTests == 6
    assert [t.testName for t in result.tests] == [f"Quiz {d}" for d in (6, 5, 4, 3, 2, 1)]
    # five most recent, oldest first
    assert [p.test for p in result.improvementTrend] == [f"Quiz {d}" for d in (2, 3, 4, 5, 6)]
    assert [p.attempt for p in result.improvementTrend] == [1, 2, 3, 4, 5]


def test_student_topic_strengths_and_weaknesses():
    attempts = [
        completed("s1", 70.0, 1, {"A": (1, 4), "B": (3, 4), "C": (2, 4), "D": (4, 4)}),
        completed("s1", 90.0, 2, {"A": (1, 4), "D": (4, 4)}),
    ]

    result = aggregator.student_analysis("s1", "CS101", attempts, topic_count=2)

    assert [t.topic for t in result.topicWeaknesses] == ["A", "C"]
    assert [t.topic for t in result.topicStrengths] == ["D", "B"]
    topic_a = result.topicWeaknesses[0]
    assert (topic_a.correctAnswers, topic_a.totalQuestions, topic_a.tests) == (2, 8, 2)
    assert topic_a.percentage == 25.0
    assert result.averageScore == 80.0


def test_tied_topics_order():
    attempts = [
        completed("s1", 50.0, 1, {"A": (1, 2), "B": (1, 2), "C": (1, 2), "D": (1, 2)}),
    ]

    result = aggregator.student_analysis("s1", "CS101", attempts, topic_count=2)

    assert [t.topic for t in result.topicWeaknesses] == ["A", "B"]
    assert [t.topic for t in result.topicStrengths] == ["D", "C"]


def test_student_analysis_without_attempts():
    result = aggregator.student_analysis("s1", "CS101", [])
    assert result.totalTests == 0
    assert result.tests == []
    assert result.topicStrengths == []


def test_list_test_scores():
    scores = aggregator.list_test_scores([completed("s1", 80.0, 1), completed("s2", 55.5, 1)])
    assert [(s.studentId, s.score) for s in scores] == [("s1", 80.0), ("s2", 55.5)]
