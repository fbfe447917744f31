"""
Question API Routes
Faculty endpoints for adding, listing and deleting questions
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from exam_portal.api.deps import get_question_service
from exam_portal.core.exceptions import ExamPortalError
from exam_portal.models.question import (
    CreatedResponse,
    MessageResponse,
    Question,
    QuestionBulkCreate,
    QuestionCreate,
)
from exam_portal.services.question_service import QuestionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/questions")


@router.post(
    "",
    response_model=CreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a question to a pool"
)
async def add_question(
    request: QuestionCreate,
    service: QuestionService = Depends(get_question_service)
) -> CreatedResponse:
    try:
        question, pool_name = await service.add_question(request)
        return CreatedResponse(
            id=question.id,
            message=f"Question added successfully to pool '{pool_name}'"
        )

    except ExamPortalError as e:
        logger.error(f"❌ Failed to add question: {e}")
        raise HTTPException(status_code=e.status_code, detail=e.message)

    except Exception as e:
        logger.error(f"Unexpected error adding question: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to add question"
        )


@router.post(
    "/bulk",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add many questions to a pool",
    description="Batch insert of already-parsed questions. Every question is validated before any is written."
)
async def add_questions(
    request: QuestionBulkCreate,
    service: QuestionService = Depends(get_question_service)
) -> MessageResponse:
    try:
        count, pool_name = await service.add_questions(request)
        return MessageResponse(message=f"{count} questions added successfully to pool '{pool_name}'")

    except ExamPortalError as e:
        logger.error(f"❌ Bulk question insert failed: {e}")
        raise HTTPException(status_code=e.status_code, detail=e.message)

    except Exception as e:
        logger.error(f"Unexpected error in bulk insert: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save questions to the database."
        )


@router.get(
    "/{courseId}",
    response_model=List[Question],
    summary="List the questions of a course (faculty view, includes answers)"
)
async def list_questions(
    courseId: str,
    service: QuestionService = Depends(get_question_service)
) -> List[Question]:
    try:
        return await service.list_questions(courseId)

    except ExamPortalError as e:
        logger.error(f"❌ Failed to fetch questions for {courseId}: {e}")
        raise HTTPException(status_code=e.status_code, detail=e.message)

    except Exception as e:
        logger.error(f"Unexpected error fetching questions: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch questions"
        )


@router.delete(
    "/{questionId}",
    response_model=MessageResponse,
    summary="Delete a question"
)
async def delete_question(
    questionId: str,
    service: QuestionService = Depends(get_question_service)
) -> MessageResponse:
    try:
        await service.delete_question(questionId)
        return MessageResponse(message="Question deleted successfully")

    except ExamPortalError as e:
        logger.warning(f"⚠️ Delete failed for question {questionId}: {e}")
        raise HTTPException(status_code=e.status_code, detail=e.message)

    except Exception as e:
        logger.error(f"Unexpected error deleting question: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete question"
        )
