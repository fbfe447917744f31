"""
Exam Service
Test release, student start/submit and result retrieval

Glues the pure engine (allocator, scorer, lifecycle) to the storage
collaborator. All validation happens before the first write, so a rejected
release or start leaves nothing behind.
"""
import logging
import random
from datetime import datetime
from typing import Callable, Dict, List, Optional

from exam_portal.core.exceptions import (
    AlreadySubmittedError,
    AlreadyTakenError,
    EmptySelectionError,
    ExpiredError,
    InvalidPolicyError,
    NotAvailableError,
    NotFoundError,
)
from exam_portal.db.exam_db import ExamStore
from exam_portal.models.attempt import (
    AttemptResult,
    HistoryEntry,
    MissedTestDetails,
    StartTestResponse,
    StudentTest,
    SubmitTestResponse,
)
from exam_portal.models.common import utc_now
from exam_portal.models.policy import resolve_selection_policy
from exam_portal.models.question import Question
from exam_portal.models.test import (
    AvailableTest,
    QuestionConfig,
    ReleaseBase,
    ReleaseRandomRequest,
    ReleaseResponse,
    ReleaseWholePoolRequest,
    TestRecord,
    TestStatus,
)
from exam_portal.services.allocator import (
    MAX_POOLS_PER_QUERY,
    allocate,
    check_pool_selection,
    select_whole_pool,
    source_pool_ids,
)
from exam_portal.services.lifecycle import initial_status, is_expired, next_status
from exam_portal.services.scorer import grade_attempt

logger = logging.getLogger(__name__)


class ExamService:
    """
    Service for the release → start → submit flow

    This service handles:
    1. Releasing tests (whole pool, shared random set, per-student random)
    2. Lazily applying scheduled status transitions on read
    3. Starting or resuming a student's attempt
    4. Scoring a submission exactly once
    """

    def __init__(
        self,
        store: ExamStore,
        rng: Optional[random.Random] = None,
        max_pools: int = MAX_POOLS_PER_QUERY,
        clock: Callable[[], datetime] = utc_now
    ):
        """
        Initialize exam service

        Args:
            store: Storage collaborator
            rng: Random source for every shuffle
            max_pools: Maximum source pools per inventory query
            clock: Returns the current UTC time
        """
        self.store = store
        self.rng = rng or random.Random()
        self.max_pools = max_pools
        self.clock = clock

    # ========================================================================
    # RELEASE
    # ========================================================================

    def _check_schedule(self, request: ReleaseBase) -> None:
        if request.releaseOption == "schedule" and request.scheduledFor is None:
            raise InvalidPolicyError("scheduledFor is required when releaseOption is 'schedule'.")
        if (
            request.scheduledFor is not None
            and request.scheduledEnd is not None
            and request.scheduledEnd <= request.scheduledFor
        ):
            raise InvalidPolicyError("scheduledEnd must be after scheduledFor.")

    def _new_record(self, request: ReleaseBase, pool_ids: List[str], total: int) -> TestRecord:
        return TestRecord(
            testName=request.testName,
            courseId=request.courseId,
            durationMinutes=request.durationMinutes,
            status=initial_status(request.releaseOption),
            createdBy=request.createdBy,
            createdAt=self.clock(),
            scheduledFor=request.scheduledFor if request.releaseOption == "schedule" else None,
            scheduledEnd=request.scheduledEnd,
            sourcePoolIds=pool_ids,
            totalQuestions=total
        )

    async def release_random(self, request: ReleaseRandomRequest) -> ReleaseResponse:
        """
        Release a sampled test

        The policy is always checked against the current inventory at release.
        Per-student tests keep only the policy and draw again at each start;
        shared tests keep the ids drawn now.

        Raises:
            InvalidPolicyError, TooManyPoolsError, InsufficientInventoryError,
            InsufficientQuestionsError, EmptySelectionError
        """
        self._check_schedule(request)

        policy = resolve_selection_policy(
            custom_pool_distribution=request.customPoolDistribution,
            pool_question_map=request.poolQuestionMap,
            total_questions=request.totalQuestions,
            difficulty_distribution=request.difficultyDistribution
        )
        pool_ids = source_pool_ids(policy, request.selectedPoolIds)
        check_pool_selection(pool_ids, self.max_pools)

        logger.info(
            f"🎯 Releasing '{request.testName}' ({policy.mode} mode, "
            f"perStudent={request.perStudent}) from {len(pool_ids)} pool(s)"
        )

        inventory = await self.store.list_questions(request.courseId, pool_ids)
        selected = allocate(policy, inventory, self.rng)

        record = self._new_record(request, pool_ids, len(selected))
        if request.perStudent:
            record.questionConfig = QuestionConfig(selectedPoolIds=pool_ids, policy=policy)
        else:
            record.questionIds = [q.id for q in selected]

        await self.store.insert_test(record)

        return ReleaseResponse(
            testId=record.id,
            status=record.status,
            totalQuestions=record.totalQuestions,
            perStudent=request.perStudent,
            message="Test released successfully!"
        )

    async def release_whole_pool(self, request: ReleaseWholePoolRequest) -> ReleaseResponse:
        """
        Release every question currently in the selected pools

        Raises:
            InvalidPolicyError, TooManyPoolsError, EmptySelectionError
        """
        self._check_schedule(request)

        pool_ids = list(dict.fromkeys(request.selectedPoolIds))
        check_pool_selection(pool_ids, self.max_pools)

        inventory = await self.store.list_questions(request.courseId, pool_ids)
        question_ids = select_whole_pool(inventory, self.rng)

        record = self._new_record(request, pool_ids, len(question_ids))
        record.questionIds = question_ids
        await self.store.insert_test(record)

        return ReleaseResponse(
            testId=record.id,
            status=record.status,
            totalQuestions=record.totalQuestions,
            perStudent=False,
            message="Test released successfully by including all questions from selected pool(s)!"
        )

    # ========================================================================
    # STATUS
    # ========================================================================

    async def refresh_status(self, test: TestRecord, now: datetime) -> TestStatus:
        """Apply due transitions to ``test`` and persist them"""
        status = next_status(test.status, now, test.scheduledFor, test.scheduledEnd)
        if status != test.status:
            await self.store.update_test_status(test.id, status)
            test.status = status.value
        return status

    # ========================================================================
    # STUDENT VIEWS
    # ========================================================================

    async def list_available(self, student_id: str, course_id: Optional[str] = None) -> List[AvailableTest]:
        """Active tests the student has not completed"""
        now = self.clock()
        tests = await self.store.list_tests(course_id)
        completed = {
            a.originalTestId
            for a in await self.store.list_student_attempts(student_id)
            if a.status == "completed"
        }

        available = []
        for test in tests:
            status = await self.refresh_status(test, now)
            if status != TestStatus.ACTIVE or test.id in completed:
                continue
            available.append(AvailableTest(
                id=test.id,
                testName=test.testName,
                courseId=test.courseId,
                durationMinutes=test.durationMinutes,
                status=status,
                scheduledFor=test.scheduledFor,
                scheduledEnd=test.scheduledEnd,
                questionCount=test.totalQuestions
            ))

        logger.info(f"📋 {len(available)} test(s) available for student {student_id}")
        return available

    async def history(self, student_id: str) -> Dict[str, List[HistoryEntry]]:
        """Completed attempts grouped by course"""
        attempts = await self.store.list_completed_attempts(student_id=student_id)

        grouped: Dict[str, List[HistoryEntry]] = {}
        for attempt in attempts:
            grouped.setdefault(attempt.courseId, []).append(HistoryEntry(
                testId=attempt.id,
                testName=attempt.testName or "Unnamed Test",
                score=attempt.score or 0.0,
                completedAt=attempt.endTime,
                totalQuestions=len(attempt.questions),
                originalTestId=attempt.originalTestId
            ))
        return grouped

    # ========================================================================
    # START / SUBMIT
    # ========================================================================

    def _paper_response(self, attempt: StudentTest, resumed: bool) -> StartTestResponse:
        return StartTestResponse(
            testId=attempt.id,
            testName=attempt.testName,
            durationMinutes=attempt.durationMinutes,
            startTime=attempt.startTime,
            questions=[q.to_student_view() for q in attempt.questions],
            resumed=resumed
        )

    def _resume_or_reject(self, existing: StudentTest) -> StartTestResponse:
        if existing.status == "in-progress":
            logger.info(f"🔄 Resuming attempt {existing.id} for student {existing.studentId}")
            return self._paper_response(existing, resumed=True)
        raise AlreadyTakenError("You have already taken this test.")

    async def _build_paper(self, test: TestRecord) -> List[Question]:
        """Question snapshots for a new attempt at ``test``"""
        if test.questionIds is not None:
            questions = await self.store.get_questions_by_ids(test.questionIds)
            if not questions:
                raise EmptySelectionError("No questions found for this test.")
            return questions

        if test.questionConfig is None:
            raise InvalidPolicyError("Invalid test configuration.")

        config = test.questionConfig
        check_pool_selection(config.selectedPoolIds, self.max_pools)
        inventory = await self.store.list_questions(test.courseId, config.selectedPoolIds)
        return allocate(config.policy, inventory, self.rng)

    async def start_test(self, student_id: str, test_id: str) -> StartTestResponse:
        """
        Start a test, or resume the student's in-progress attempt

        Per-student tests draw a fresh paper here. Papers are independent:
        two students may get overlapping questions.

        Raises:
            AlreadyTakenError: The student already completed this test
            NotFoundError: No such test
            ExpiredError: scheduledEnd has passed (status is set to inactive)
            NotAvailableError: Test is scheduled or inactive
        """
        existing = await self.store.find_student_attempt(student_id, test_id)
        if existing is not None:
            return self._resume_or_reject(existing)

        test = await self.store.get_test(test_id)
        if test is None:
            raise NotFoundError("Test not found.")

        now = self.clock()
        if is_expired(test, now):
            if test.status != TestStatus.INACTIVE:
                await self.store.update_test_status(test.id, TestStatus.INACTIVE)
            raise ExpiredError("Test has expired and can no longer be started.")

        status = await self.refresh_status(test, now)
        if status != TestStatus.ACTIVE:
            raise NotAvailableError("Test is not available (either scheduled or inactive).")

        questions = await self._build_paper(test)

        attempt = StudentTest(
            studentId=student_id,
            originalTestId=test.id,
            testName=test.testName,
            courseId=test.courseId,
            durationMinutes=test.durationMinutes,
            startTime=now,
            questions=questions
        )

        if not await self.store.insert_attempt(attempt):
            # Another request for the same student and test won the race
            existing = await self.store.find_student_attempt(student_id, test_id)
            if existing is None:
                raise AlreadyTakenError("You have already taken this test.")
            return self._resume_or_reject(existing)

        return self._paper_response(attempt, resumed=False)

    async def submit_test(self, attempt_id: str, answers: Dict[str, object]) -> SubmitTestResponse:
        """
        Score and close an attempt

        Raises:
            NotFoundError: No such attempt
            AlreadySubmittedError: Attempt already completed
        """
        attempt = await self.store.get_attempt(attempt_id)
        if attempt is None:
            raise NotFoundError("Test not found.")

        result = grade_attempt(attempt, answers)

        completed = await self.store.complete_attempt(attempt_id, answers, result, self.clock())
        if not completed:
            raise AlreadySubmittedError("This test has already been submitted.")

        return SubmitTestResponse(
            message="Test submitted successfully!",
            score=result.score,
            analysis=result.analysis
        )

    # ========================================================================
    # RESULTS
    # ========================================================================

    async def get_result(self, attempt_id: str) -> AttemptResult:
        """
        Attempt result; correct answers are only included once completed

        Raises:
            NotFoundError: No such attempt
        """
        attempt = await self.store.get_attempt(attempt_id)
        if attempt is None:
            raise NotFoundError("Test result not found.")

        questions = attempt.questions
        if attempt.status != "completed":
            questions = [q.to_student_view() for q in attempt.questions]

        return AttemptResult(
            **attempt.model_dump(exclude={"questions"}),
            questions=questions
        )

    async def missed_details(self, test_id: str) -> MissedTestDetails:
        """
        Questions of a whole-pool or shared test that is no longer open

        Raises:
            NotFoundError: No such test
            NotAvailableError: Test still open, or its papers are per-student
        """
        test = await self.store.get_test(test_id)
        if test is None:
            raise NotFoundError("Test not found.")

        status = await self.refresh_status(test, self.clock())
        if status != TestStatus.INACTIVE:
            raise NotAvailableError("Test is still active or scheduled. Cannot view analysis yet.")

        if test.questionIds is None:
            raise NotAvailableError(
                "Cannot review missed random tests because question sets are student-specific."
            )

        questions = await self.store.get_questions_by_ids(test.questionIds)
        return MissedTestDetails(
            testName=test.testName,
            questions=questions,
            durationMinutes=test.durationMinutes
        )
