"""
Question Service
Pool and question management for faculty
"""
import logging
from typing import List, Tuple

from exam_portal.core.exceptions import NotFoundError
from exam_portal.db.exam_db import ExamStore
from exam_portal.models.question import (
    Pool,
    PoolCreate,
    Question,
    QuestionBulkCreate,
    QuestionCreate,
)

logger = logging.getLogger(__name__)


class QuestionService:
    """Service for creating pools and adding, listing and deleting questions"""

    def __init__(self, store: ExamStore):
        self.store = store

    async def create_pool(self, request: PoolCreate) -> Pool:
        pool = Pool(**request.model_dump())
        return await self.store.create_pool(pool)

    async def list_pools(self, course_id: str) -> List[Pool]:
        return await self.store.list_pools(course_id)

    async def _pool_name(self, pool_id: str) -> str:
        """Pool name for messages; the id when the pool record is missing"""
        pool = await self.store.get_pool(pool_id)
        if pool is None:
            logger.warning(f"⚠️ Pool {pool_id} not found, using id in messages")
            return pool_id
        return pool.poolName

    async def add_question(self, request: QuestionCreate) -> Tuple[Question, str]:
        """
        Add a single question

        Returns:
            Tuple of (stored question, pool name)
        """
        question = Question(**request.model_dump())
        await self.store.insert_questions([question])
        return question, await self._pool_name(request.poolId)

    async def add_questions(self, request: QuestionBulkCreate) -> Tuple[int, str]:
        """
        Add many questions to one pool in a single batch

        Returns:
            Tuple of (number inserted, pool name)
        """
        questions = [
            Question(courseId=request.courseId, poolId=request.poolId, **body.model_dump())
            for body in request.questions
        ]
        count = await self.store.insert_questions(questions)
        return count, await self._pool_name(request.poolId)

    async def list_questions(self, course_id: str) -> List[Question]:
        return await self.store.list_course_questions(course_id)

    async def delete_question(self, question_id: str) -> None:
        """
        Delete a question

        Attempts already started keep their own copy of it.

        Raises:
            NotFoundError: If no such question exists
        """
        if not await self.store.delete_question(question_id):
            raise NotFoundError(f"Question not found: {question_id}")
