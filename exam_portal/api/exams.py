"""
Test API Routes
Release (faculty), start/submit (student) and result endpoints
"""
import logging
from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException, Response, status

from exam_portal.api.deps import get_exam_service
from exam_portal.core.exceptions import ExamPortalError
from exam_portal.models.attempt import (
    AttemptResult,
    HistoryEntry,
    MissedTestDetails,
    StartTestRequest,
    StartTestResponse,
    SubmitTestRequest,
    SubmitTestResponse,
)
from exam_portal.models.test import (
    AvailableTest,
    AvailableTestsRequest,
    ReleaseRandomRequest,
    ReleaseResponse,
    ReleaseWholePoolRequest,
)
from exam_portal.services.exam_service import ExamService

logger = logging.getLogger(__name__)

router = APIRouter()

ENGINE_ERRORS = {
    400: {"description": "Invalid policy, insufficient questions, too many pools or already taken"},
    404: {"description": "Test or attempt not found"},
    500: {"description": "Storage failure"},
}


# ============================================================================
# RELEASE (FACULTY)
# ============================================================================

@router.post(
    "/tests/release-random",
    response_model=ReleaseResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ENGINE_ERRORS,
    summary="Release a test sampled by difficulty",
    description="""
    Release a test drawn from the selected pools.

    **Percentage mode:** `totalQuestions` + `difficultyDistribution` (must sum to 100).
    Rounding drift is absorbed by the easy bucket.

    **Custom mode:** enabled by `customPoolDistribution=true` OR a non-empty
    `poolQuestionMap` giving exact easy/medium/hard counts per pool.

    **perStudent (default true):** each student gets a freshly drawn paper at
    start time. With `perStudent=false` one set is drawn now and shared.

    The policy is validated against the current inventory before anything is saved.
    """
)
async def release_random(
    request: ReleaseRandomRequest,
    service: ExamService = Depends(get_exam_service)
) -> ReleaseResponse:
    try:
        return await service.release_random(request)

    except ExamPortalError as e:
        logger.warning(f"⚠️ Release rejected ({e.kind.value}): {e}")
        raise HTTPException(status_code=e.status_code, detail=e.message)

    except Exception as e:
        logger.error(f"Unexpected error releasing test: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to release test: {str(e)}"
        )


@router.post(
    "/tests/release-whole-pool",
    response_model=ReleaseResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ENGINE_ERRORS,
    summary="Release every question of the selected pools"
)
async def release_whole_pool(
    request: ReleaseWholePoolRequest,
    service: ExamService = Depends(get_exam_service)
) -> ReleaseResponse:
    try:
        return await service.release_whole_pool(request)

    except ExamPortalError as e:
        logger.warning(f"⚠️ Whole-pool release rejected ({e.kind.value}): {e}")
        raise HTTPException(status_code=e.status_code, detail=e.message)

    except Exception as e:
        logger.error(f"Unexpected error releasing whole pool test: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to release test: {str(e)}"
        )


# ============================================================================
# STUDENT
# ============================================================================

@router.post(
    "/tests/available",
    response_model=List[AvailableTest],
    summary="Tests a student can start now"
)
async def available_tests(
    request: AvailableTestsRequest,
    service: ExamService = Depends(get_exam_service)
) -> List[AvailableTest]:
    try:
        return await service.list_available(request.studentId, request.courseId)

    except ExamPortalError as e:
        logger.error(f"❌ Failed to fetch available tests: {e}")
        raise HTTPException(status_code=e.status_code, detail=e.message)

    except Exception as e:
        logger.error(f"Unexpected error fetching available tests: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch available tests"
        )


@router.post(
    "/tests/history",
    response_model=Dict[str, List[HistoryEntry]],
    summary="Completed attempts of a student, grouped by course"
)
async def student_history(
    request: AvailableTestsRequest,
    service: ExamService = Depends(get_exam_service)
) -> Dict[str, List[HistoryEntry]]:
    try:
        return await service.history(request.studentId)

    except ExamPortalError as e:
        logger.error(f"❌ Failed to fetch history: {e}")
        raise HTTPException(status_code=e.status_code, detail=e.message)

    except Exception as e:
        logger.error(f"Unexpected error fetching history: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch test history"
        )


@router.post(
    "/tests/start-specific",
    response_model=StartTestResponse,
    status_code=status.HTTP_201_CREATED,
    responses={200: {"description": "In-progress attempt resumed"}, **ENGINE_ERRORS},
    summary="Start (or resume) a test",
    description="""
    Creates the student's attempt with a private snapshot of the questions.

    - Whole-pool / shared tests copy the released question set.
    - Per-student tests draw a new paper now. Papers of different students are
      drawn independently and may overlap.

    **SECURITY:** correct answers are stripped from the returned questions.
    """
)
async def start_test(
    request: StartTestRequest,
    response: Response,
    service: ExamService = Depends(get_exam_service)
) -> StartTestResponse:
    try:
        result = await service.start_test(request.studentId, request.testId)
        if result.resumed:
            response.status_code = status.HTTP_200_OK
        return result

    except ExamPortalError as e:
        logger.warning(
            f"⚠️ Start rejected for student {request.studentId}, "
            f"test {request.testId} ({e.kind.value}): {e}"
        )
        raise HTTPException(status_code=e.status_code, detail=e.message)

    except Exception as e:
        logger.error(f"Unexpected error starting test: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to start test"
        )


@router.post(
    "/tests/submit",
    response_model=SubmitTestResponse,
    responses=ENGINE_ERRORS,
    summary="Submit answers and get the score"
)
async def submit_test(
    request: SubmitTestRequest,
    service: ExamService = Depends(get_exam_service)
) -> SubmitTestResponse:
    try:
        return await service.submit_test(request.testId, request.answers)

    except ExamPortalError as e:
        logger.warning(f"⚠️ Submit rejected for attempt {request.testId} ({e.kind.value}): {e}")
        raise HTTPException(status_code=e.status_code, detail=e.message)

    except Exception as e:
        logger.error(f"Unexpected error submitting test: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to submit test"
        )


@router.get(
    "/results/{attemptId}",
    response_model=AttemptResult,
    summary="Result of an attempt"
)
async def get_result(
    attemptId: str,
    service: ExamService = Depends(get_exam_service)
) -> AttemptResult:
    try:
        return await service.get_result(attemptId)

    except ExamPortalError as e:
        logger.warning(f"⚠️ Result lookup failed for {attemptId}: {e}")
        raise HTTPException(status_code=e.status_code, detail=e.message)

    except Exception as e:
        logger.error(f"Unexpected error fetching results: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch results"
        )


@router.get(
    "/tests/missed-details/{testId}",
    response_model=MissedTestDetails,
    summary="Questions of a closed test the student never took"
)
async def missed_details(
    testId: str,
    service: ExamService = Depends(get_exam_service)
) -> MissedTestDetails:
    try:
        return await service.missed_details(testId)

    except ExamPortalError as e:
        logger.warning(f"⚠️ Missed details unavailable for {testId}: {e}")
        raise HTTPException(status_code=e.status_code, detail=e.message)

    except Exception as e:
        logger.error(f"Unexpected error fetching missed test details: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch missed test details"
        )
