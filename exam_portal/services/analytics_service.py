"""
Analytics Service
Reads completed attempts and hands them to the aggregator
"""
import logging
from typing import List

from exam_portal.core.config import settings
from exam_portal.db.exam_db import ExamStore
from exam_portal.models.analytics import CourseAnalytics, StudentAnalysis, TestScore
from exam_portal.services import aggregator

logger = logging.getLogger(__name__)


class AnalyticsService:
    """Faculty analytics for a course, a test or a single student"""

    def __init__(
        self,
        store: ExamStore,
        pass_mark: float = settings.pass_mark,
        trend_window: int = settings.trend_window,
        topic_count: int = settings.analysis_topic_count
    ):
        self.store = store
        self.pass_mark = pass_mark
        self.trend_window = trend_window
        self.topic_count = topic_count

    async def course_analysis(self, course_id: str) -> CourseAnalytics:
        tests = await self.store.list_tests(course_id)
        if not tests:
            return CourseAnalytics(courseId=course_id)

        attempts = await self.store.list_completed_attempts(test_ids=[t.id for t in tests])
        return aggregator.course_analytics(
            course_id,
            total_tests=len(tests),
            attempts=attempts,
            pass_mark=self.pass_mark
        )

    async def test_scores(self, test_id: str) -> List[TestScore]:
        attempts = await self.store.list_completed_attempts(test_ids=[test_id])
        return aggregator.list_test_scores(attempts)

    async def student_analysis(self, course_id: str, student_id: str) -> StudentAnalysis:
        attempts = await self.store.list_completed_attempts(
            student_id=student_id,
            course_id=course_id
        )
        logger.info(
            f"📊 Student {student_id} in course {course_id}: "
            f"{len(attempts)} completed attempt(s)"
        )
        return aggregator.student_analysis(
            student_id,
            course_id,
            attempts,
            trend_window=self.trend_window,
            topic_count=self.topic_count
        )
