"""
Question Pool API Routes
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from exam_portal.api.deps import get_question_service
from exam_portal.core.exceptions import ExamPortalError
from exam_portal.models.question import CreatedResponse, Pool, PoolCreate
from exam_portal.services.question_service import QuestionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/pools")


@router.post(
    "",
    response_model=CreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a question pool"
)
async def create_pool(
    request: PoolCreate,
    service: QuestionService = Depends(get_question_service)
) -> CreatedResponse:
    try:
        pool = await service.create_pool(request)
        return CreatedResponse(id=pool.id, message="Question Pool created successfully")

    except ExamPortalError as e:
        logger.error(f"❌ Pool creation failed: {e}")
        raise HTTPException(status_code=e.status_code, detail=e.message)

    except Exception as e:
        logger.error(f"Unexpected error creating pool: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create pool"
        )


@router.get(
    "/{courseId}",
    response_model=List[Pool],
    summary="List the pools of a course"
)
async def list_pools(
    courseId: str,
    service: QuestionService = Depends(get_question_service)
) -> List[Pool]:
    try:
        return await service.list_pools(courseId)

    except ExamPortalError as e:
        logger.error(f"❌ Failed to fetch pools for {courseId}: {e}")
        raise HTTPException(status_code=e.status_code, detail=e.message)

    except Exception as e:
        logger.error(f"Unexpected error fetching pools: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch pools"
        )
