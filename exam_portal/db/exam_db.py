"""
Exam Database Operations
MongoDB storage for pools, questions, released tests and student attempts
FILE: exam_portal/db/exam_db.py
"""
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence
import logging

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING
from pymongo.errors import DuplicateKeyError

from exam_portal.core.exceptions import StorageError
from exam_portal.models.attempt import ScoreResult, StudentTest
from exam_portal.models.question import Pool, Question
from exam_portal.models.test import TestRecord, TestStatus

logger = logging.getLogger(__name__)

POOLS = "pools"
QUESTIONS = "questions"
TESTS = "tests"
STUDENT_TESTS = "studentTests"

ATTEMPT_STATUSES = ["in-progress", "completed"]


async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    """
    Create the indexes the services rely on

    The unique (studentId, originalTestId) index is what makes starting a
    test safe against two simultaneous start requests.
    """
    for name in (POOLS, QUESTIONS, TESTS, STUDENT_TESTS):
        await db[name].create_index([("id", ASCENDING)], unique=True)

    await db[QUESTIONS].create_index([("courseId", ASCENDING), ("poolId", ASCENDING)])
    await db[TESTS].create_index([("courseId", ASCENDING)])
    await db[STUDENT_TESTS].create_index(
        [("studentId", ASCENDING), ("originalTestId", ASCENDING)],
        unique=True
    )
    logger.info("✓ MongoDB indexes ensured")


def _strip_id(doc: Dict[str, Any]) -> Dict[str, Any]:
    doc.pop("_id", None)
    return doc


class ExamStore:
    """Storage collaborator: every read and write the services perform"""

    def __init__(self, db: AsyncIOMotorDatabase):
        """
        Initialize exam store

        Args:
            db: MongoDB database instance
        """
        self.db = db
        self.pools = db[POOLS]
        self.questions = db[QUESTIONS]
        self.tests = db[TESTS]
        self.student_tests = db[STUDENT_TESTS]

    # ========================================================================
    # POOLS
    # ========================================================================

    async def create_pool(self, pool: Pool) -> Pool:
        try:
            await self.pools.insert_one(pool.model_dump())
            logger.info(f"✅ Created pool {pool.id} ({pool.poolName}) for course {pool.courseId}")
            return pool
        except Exception as e:
            logger.error(f"❌ Failed to create pool for course {pool.courseId}: {e}")
            raise StorageError(f"Failed to create pool: {str(e)}")

    async def get_pool(self, pool_id: str) -> Optional[Pool]:
        try:
            doc = await self.pools.find_one({"id": pool_id})
            return Pool(**_strip_id(doc)) if doc else None
        except Exception as e:
            logger.error(f"❌ Failed to get pool {pool_id}: {e}")
            raise StorageError(f"Failed to get pool: {str(e)}")

    async def list_pools(self, course_id: str) -> List[Pool]:
        try:
            cursor = self.pools.find({"courseId": course_id}).sort("createdAt", ASCENDING)
            return [Pool(**_strip_id(doc)) async for doc in cursor]
        except Exception as e:
            logger.error(f"❌ Failed to list pools for course {course_id}: {e}")
            raise StorageError(f"Failed to fetch pools: {str(e)}")

    # ========================================================================
    # QUESTIONS
    # ========================================================================

    async def insert_questions(self, questions: Sequence[Question]) -> int:
        """Insert questions in one batch; returns the number inserted"""
        if not questions:
            return 0
        try:
            result = await self.questions.insert_many([q.model_dump() for q in questions])
            count = len(result.inserted_ids)
            logger.info(f"✅ Inserted {count} question(s) into pool {questions[0].poolId}")
            return count
        except Exception as e:
            logger.error(f"❌ Failed to insert questions: {e}")
            raise StorageError(f"Failed to save questions: {str(e)}")

    async def list_questions(self, course_id: str, pool_ids: Sequence[str]) -> List[Question]:
        """
        Inventory read: all questions of a course restricted to ``pool_ids``

        Callers enforce the pool-count limit before calling.
        """
        try:
            cursor = self.questions.find(
                {"courseId": course_id, "poolId": {"$in": list(pool_ids)}}
            )
            inventory = [Question(**_strip_id(doc)) async for doc in cursor]
            logger.debug(
                f"📦 Inventory for course {course_id}: {len(inventory)} question(s) "
                f"in {len(pool_ids)} pool(s)"
            )
            return inventory
        except Exception as e:
            logger.error(f"❌ Failed to read inventory for course {course_id}: {e}")
            raise StorageError(f"Failed to fetch questions: {str(e)}")

    async def list_course_questions(self, course_id: str) -> List[Question]:
        try:
            cursor = self.questions.find({"courseId": course_id}).sort("createdAt", ASCENDING)
            return [Question(**_strip_id(doc)) async for doc in cursor]
        except Exception as e:
            logger.error(f"❌ Failed to list questions for course {course_id}: {e}")
            raise StorageError(f"Failed to fetch questions: {str(e)}")

    async def get_questions_by_ids(self, question_ids: Sequence[str]) -> List[Question]:
        """Questions in the order of ``question_ids``; deleted ids are skipped"""
        try:
            cursor = self.questions.find({"id": {"$in": list(question_ids)}})
            found = {doc["id"]: Question(**_strip_id(doc)) async for doc in cursor}
            return [found[qid] for qid in question_ids if qid in found]
        except Exception as e:
            logger.error(f"❌ Failed to fetch questions by id: {e}")
            raise StorageError(f"Failed to fetch questions: {str(e)}")

    async def delete_question(self, question_id: str) -> bool:
        try:
            result = await self.questions.delete_one({"id": question_id})
            if result.deleted_count > 0:
                logger.info(f"🗑️ Deleted question: {question_id}")
                return True
            logger.warning(f"⚠️ Question not found for deletion: {question_id}")
            return False
        except Exception as e:
            logger.error(f"❌ Failed to delete question {question_id}: {e}")
            raise StorageError(f"Failed to delete question: {str(e)}")

    # ========================================================================
    # TESTS
    # ========================================================================

    async def insert_test(self, test: TestRecord) -> TestRecord:
        try:
            await self.tests.insert_one(test.model_dump())
            logger.info(f"✅ Released test {test.id} ({test.testName}) for course {test.courseId}")
            return test
        except Exception as e:
            logger.error(f"❌ Failed to save test {test.testName}: {e}")
            raise StorageError(f"Failed to release test: {str(e)}")

    async def get_test(self, test_id: str) -> Optional[TestRecord]:
        try:
            doc = await self.tests.find_one({"id": test_id})
            return TestRecord(**_strip_id(doc)) if doc else None
        except Exception as e:
            logger.error(f"❌ Failed to get test {test_id}: {e}")
            raise StorageError(f"Failed to fetch test: {str(e)}")

    async def list_tests(self, course_id: Optional[str] = None) -> List[TestRecord]:
        query = {"courseId": course_id} if course_id else {}
        try:
            cursor = self.tests.find(query).sort("createdAt", ASCENDING)
            return [TestRecord(**_strip_id(doc)) async for doc in cursor]
        except Exception as e:
            logger.error(f"❌ Failed to list tests: {e}")
            raise StorageError(f"Failed to fetch tests: {str(e)}")

    async def update_test_status(self, test_id: str, status: TestStatus) -> bool:
        try:
            result = await self.tests.update_one(
                {"id": test_id},
                {"$set": {"status": TestStatus(status).value}}
            )
            if result.modified_count > 0:
                logger.info(f"✅ Test {test_id} status -> {TestStatus(status).value}")
                return True
            return False
        except Exception as e:
            logger.error(f"❌ Failed to update status of test {test_id}: {e}")
            raise StorageError(f"Failed to update test status: {str(e)}")

    # ========================================================================
    # STUDENT ATTEMPTS
    # ========================================================================

    async def find_student_attempt(self, student_id: str, test_id: str) -> Optional[StudentTest]:
        """The student's in-progress or completed attempt at a test, if any"""
        try:
            doc = await self.student_tests.find_one({
                "studentId": student_id,
                "originalTestId": test_id,
                "status": {"$in": ATTEMPT_STATUSES}
            })
            return StudentTest(**_strip_id(doc)) if doc else None
        except Exception as e:
            logger.error(f"❌ Failed to look up attempt of {student_id} at {test_id}: {e}")
            raise StorageError(f"Failed to check existing attempts: {str(e)}")

    async def list_student_attempts(self, student_id: str) -> List[StudentTest]:
        try:
            cursor = self.student_tests.find({"studentId": student_id})
            return [StudentTest(**_strip_id(doc)) async for doc in cursor]
        except Exception as e:
            logger.error(f"❌ Failed to list attempts of {student_id}: {e}")
            raise StorageError(f"Failed to fetch attempts: {str(e)}")

    async def insert_attempt(self, attempt: StudentTest) -> bool:
        """
        Create an attempt

        Returns:
            True if created, False if the student already has an attempt at
            this test (lost a concurrent start race)
        """
        try:
            await self.student_tests.insert_one(attempt.model_dump())
            logger.info(
                f"✅ Created attempt {attempt.id} - student {attempt.studentId}, "
                f"test {attempt.originalTestId}, {len(attempt.questions)} question(s)"
            )
            return True
        except DuplicateKeyError:
            logger.warning(
                f"⚠️ Attempt already exists for student {attempt.studentId} "
                f"at test {attempt.originalTestId}"
            )
            return False
        except Exception as e:
            logger.error(f"❌ Failed to create attempt: {e}")
            raise StorageError(f"Failed to start test: {str(e)}")

    async def get_attempt(self, attempt_id: str) -> Optional[StudentTest]:
        try:
            doc = await self.student_tests.find_one({"id": attempt_id})
            return StudentTest(**_strip_id(doc)) if doc else None
        except Exception as e:
            logger.error(f"❌ Failed to get attempt {attempt_id}: {e}")
            raise StorageError(f"Failed to fetch attempt: {str(e)}")

    async def complete_attempt(
        self,
        attempt_id: str,
        answers: Mapping[str, Any],
        result: ScoreResult,
        end_time: datetime
    ) -> bool:
        """
        Move an attempt from in-progress to completed

        Returns:
            False if the attempt was no longer in progress
        """
        try:
            update = await self.student_tests.update_one(
                {"id": attempt_id, "status": "in-progress"},
                {
                    "$set": {
                        "status": "completed",
                        "endTime": end_time,
                        "answers": dict(answers),
                        "score": result.score,
                        "analysis": {
                            topic: score.model_dump()
                            for topic, score in result.analysis.items()
                        }
                    }
                }
            )
            return update.matched_count > 0
        except Exception as e:
            logger.error(f"❌ Failed to complete attempt {attempt_id}: {e}")
            raise StorageError(f"Failed to submit test: {str(e)}")

    async def list_completed_attempts(
        self,
        test_ids: Optional[Sequence[str]] = None,
        student_id: Optional[str] = None,
        course_id: Optional[str] = None
    ) -> List[StudentTest]:
        """Completed attempts filtered by any combination of tests, student and course"""
        query: Dict[str, Any] = {"status": "completed"}
        if test_ids is not None:
            query["originalTestId"] = {"$in": list(test_ids)}
        if student_id is not None:
            query["studentId"] = student_id
        if course_id is not None:
            query["courseId"] = course_id

        try:
            cursor = self.student_tests.find(query)
            attempts = [StudentTest(**_strip_id(doc)) async for doc in cursor]
            logger.debug(f"📊 Retrieved {len(attempts)} completed attempt(s)")
            return attempts
        except Exception as e:
            logger.error(f"❌ Failed to fetch completed attempts: {e}")
            raise StorageError(f"Failed to fetch attempts: {str(e)}")
