"""
Exam Portal - Test Configuration
Pytest fixtures: in-memory MongoDB, seeded randomness and an HTTP client
"""
import random
from collections.abc import AsyncGenerator
from typing import Any, Callable, Dict, List

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from mongomock_motor import AsyncMongoMockClient

from exam_portal.api.deps import get_db, get_rng
from exam_portal.db.exam_db import ExamStore, ensure_indexes
from exam_portal.main import app
from exam_portal.models.question import Question

TEST_SEED = 1234


# ============================================================================
# DATABASE
# ============================================================================

@pytest_asyncio.fixture(scope="function")
async def db() -> AsyncGenerator[Any, None]:
    """Fresh in-memory database with the production indexes"""
    client = AsyncMongoMockClient(tz_aware=True)
    database = client["exam_portal_test"]
    await ensure_indexes(database)
    yield database


@pytest_asyncio.fixture(scope="function")
async def store(db) -> ExamStore:
    return ExamStore(db)


@pytest.fixture
def rng() -> random.Random:
    return random.Random(TEST_SEED)


@pytest_asyncio.fixture(scope="function")
async def client(db) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with database and random source overrides."""

    async def override_get_db():
        return db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_rng] = lambda: random.Random(TEST_SEED)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def make_questions() -> Callable[..., List[Question]]:
    """Build ``count`` questions of one difficulty in one pool."""

    def _make(
        count: int,
        difficulty: str = "easy",
        pool_id: str = "poolA",
        course_id: str = "CS101",
        topic: str = "General",
        correct: int = 0
    ) -> List[Question]:
        return [
            Question(
                id=f"{course_id}-{pool_id}-{difficulty}-{i}",
                courseId=course_id,
                poolId=pool_id,
                topic=topic,
                questionText=f"{difficulty} question {i} from {pool_id}",
                options=["A", "B", "C", "D"],
                correctOptionIndex=correct,
                difficulty=difficulty
            )
            for i in range(count)
        ]

    return _make


@pytest.fixture
def sample_pool_data() -> Dict[str, Any]:
    return {
        "courseId": "CS101",
        "poolName": "Algorithms",
        "createdBy": "faculty_01",
    }


@pytest.fixture
def sample_release_data() -> Dict[str, Any]:
    """Release body without pools or policy; tests fill those in."""
    return {
        "testName": "Quiz 1",
        "courseId": "CS101",
        "durationMinutes": 30,
        "createdBy": "faculty_01",
        "releaseOption": "now",
    }
