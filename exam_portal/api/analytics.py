"""
Faculty Analytics API Routes
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from exam_portal.api.deps import get_analytics_service
from exam_portal.core.exceptions import ExamPortalError
from exam_portal.models.analytics import CourseAnalytics, StudentAnalysis, TestScore
from exam_portal.services.analytics_service import AnalyticsService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/faculty")


@router.get(
    "/course-analysis/{courseId}",
    response_model=CourseAnalytics,
    summary="Aggregate performance of a course",
    description="""
    Totals over every completed attempt of every test in the course.

    - **passRate**: fraction (0..1) of attempts scoring at or above the pass mark
    - **topicPerformance**: correct/total per topic across all attempts
    - **studentPerformance**: per-student stats, best average first
    """
)
async def course_analysis(
    courseId: str,
    service: AnalyticsService = Depends(get_analytics_service)
) -> CourseAnalytics:
    try:
        return await service.course_analysis(courseId)

    except ExamPortalError as e:
        logger.error(f"❌ Course analysis failed for {courseId}: {e}")
        raise HTTPException(status_code=e.status_code, detail=e.message)

    except Exception as e:
        logger.error(f"Unexpected error in course analysis: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to build course analysis"
        )


@router.get(
    "/test-scores/{testId}",
    response_model=List[TestScore],
    summary="Scores of every completed attempt of a test"
)
async def list_test_scores(
    testId: str,
    service: AnalyticsService = Depends(get_analytics_service)
) -> List[TestScore]:
    try:
        return await service.test_scores(testId)

    except ExamPortalError as e:
        logger.error(f"❌ Failed to fetch scores for {testId}: {e}")
        raise HTTPException(status_code=e.status_code, detail=e.message)

    except Exception as e:
        logger.error(f"Unexpected error fetching test scores: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch test scores"
        )


@router.get(
    "/student-analysis/{courseId}/{studentId}",
    response_model=StudentAnalysis,
    summary="Trend and topic strengths of one student in a course"
)
async def student_analysis(
    courseId: str,
    studentId: str,
    service: AnalyticsService = Depends(get_analytics_service)
) -> StudentAnalysis:
    try:
        return await service.student_analysis(courseId, studentId)

    except ExamPortalError as e:
        logger.error(f"❌ Student analysis failed for {studentId}: {e}")
        raise HTTPException(status_code=e.status_code, detail=e.message)

    except Exception as e:
        logger.error(f"Unexpected error in student analysis: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to build student analysis"
        )
