"""
Exam Portal - API Tests
End-to-end flows through the HTTP layer against an in-memory MongoDB
"""
from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient

import exam_portal.main as main_module


def question_body(index, difficulty, topic="Sorting", correct=0):
    return {
        "topic": topic,
        "questionText": f"{difficulty} question {index}",
        "options": ["A", "B", "C", "D"],
        "correctOptionIndex": correct,
        "difficulty": difficulty,
    }


async def create_pool(client: AsyncClient, pool_data, name="Algorithms"):
    response = await client.post("/api/pools", json={**pool_data, "poolName": name})
    assert response.status_code == 201
    return response.json()["id"]


async def add_questions(client: AsyncClient, pool_id, difficulties, topic="Sorting"):
    response = await client.post("/api/questions/bulk", json={
        "courseId": "CS101",
        "poolId": pool_id,
        "questions": [
            question_body(i, difficulty, topic=topic, correct=i % 4)
            for i, difficulty in enumerate(difficulties)
        ],
    })
    assert response.status_code == 201
    return response


async def answer_key(client: AsyncClient):
    response = await client.get("/api/questions/CS101")
    assert response.status_code == 200
    return {q["id"]: q["correctOptionIndex"] for q in response.json()}


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient, monkeypatch):
    """Test the health check endpoint."""

    async def ping_ok():
        return True

    monkeypatch.setattr(main_module, "ping_database", ping_ok)

    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_health_check_degraded(client: AsyncClient, monkeypatch):
    async def ping_fail():
        return False

    monkeypatch.setattr(main_module, "ping_database", ping_fail)

    response = await client.get("/health")
    assert response.status_code == 503
    assert response.json()["status"] == "degraded"


# ============================================================================
# POOLS AND QUESTIONS
# ============================================================================

@pytest.mark.asyncio
async def test_pool_and_question_management(client: AsyncClient, sample_pool_data):
    pool_id = await create_pool(client, sample_pool_data)

    response = await client.get("/api/pools/CS101")
    assert response.status_code == 200
    assert [p["id"] for p in response.json()] == [pool_id]

    response = await client.post("/api/questions", json={
        "courseId": "CS101",
        "poolId": pool_id,
        **question_body(0, "Easy"),
    })
    assert response.status_code == 201
    assert "Algorithms" in response.json()["message"]
    question_id = response.json()["id"]

    response = await add_questions(client, pool_id, ["easy", "hard"])
    assert response.json()["message"].startswith("2 questions added")

    response = await client.get("/api/questions/CS101")
    assert len(response.json()) == 3

    response = await client.delete(f"/api/questions/{question_id}")
    assert response.status_code == 200

    response = await client.delete(f"/api/questions/{question_id}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_malformed_question_is_rejected(client: AsyncClient):
    response = await client.post("/api/questions", json={
        "courseId": "CS101",
        "poolId": "poolA",
        **question_body(0, "trivial"),
    })
    assert response.status_code == 422


# ============================================================================
# RELEASE
# ============================================================================

@pytest.mark.asyncio
async def test_release_fails_on_missing_difficulty(
    client: AsyncClient, sample_pool_data, sample_release_data
):
    pool_id = await create_pool(client, sample_pool_data)
    await add_questions(client, pool_id, ["easy"] * 10 + ["medium"] * 5)

    response = await client.post("/api/tests/release-random", json={
        **sample_release_data,
        "selectedPoolIds": [pool_id],
        "totalQuestions": 10,
        "difficultyDistribution": {"easy": 50, "medium": 30, "hard": 20},
    })

    assert response.status_code == 400
    assert "Not enough hard questions" in response.json()["detail"]

    response = await client.post("/api/tests/available", json={"studentId": "s1"})
    assert response.json() == []


@pytest.mark.asyncio
async def test_release_whole_pool_from_empty_pool(
    client: AsyncClient, sample_pool_data, sample_release_data
):
    pool_id = await create_pool(client, sample_pool_data)

    response = await client.post("/api/tests/release-whole-pool", json={
        **sample_release_data,
        "selectedPoolIds": [pool_id],
    })

    assert response.status_code == 400
    assert "No questions found" in response.json()["detail"]


@pytest.mark.asyncio
async def test_release_rejects_too_many_pools(client: AsyncClient, sample_release_data):
    response = await client.post("/api/tests/release-whole-pool", json={
        **sample_release_data,
        "selectedPoolIds": [f"pool_{i}" for i in range(11)],
    })

    assert response.status_code == 400
    assert "Too many pools" in response.json()["detail"]


@pytest.mark.asyncio
async def test_release_custom_mode(client: AsyncClient, sample_pool_data, sample_release_data):
    pool_a = await create_pool(client, sample_pool_data, name="A")
    pool_b = await create_pool(client, sample_pool_data, name="B")
    await add_questions(client, pool_a, ["easy"] * 10)
    await add_questions(client, pool_b, ["easy"] * 10)

    response = await client.post("/api/tests/release-random", json={
        **sample_release_data,
        "selectedPoolIds": [pool_a],
        "poolQuestionMap": {pool_a: {"easy": 6}, pool_b: {"easy": 4}},
        "perStudent": False,
    })

    assert response.status_code == 201
    body = response.json()
    assert body["totalQuestions"] == 10
    assert body["perStudent"] is False

    response = await client.post("/api/tests/start-specific", json={
        "studentId": "s1",
        "testId": body["testId"],
    })
    pools = [q["poolId"] for q in response.json()["questions"]]
    assert pools.count(pool_a) == 6
    assert pools.count(pool_b) == 4


@pytest.mark.asyncio
async def test_schedule_requires_start_time(client: AsyncClient, sample_release_data):
    response = await client.post("/api/tests/release-whole-pool", json={
        **sample_release_data,
        "selectedPoolIds": ["poolA"],
        "releaseOption": "schedule",
    })
    assert response.status_code == 400


# ============================================================================
# FULL FLOW
# ============================================================================

@pytest.mark.asyncio
async def test_per_student_flow(client: AsyncClient, sample_pool_data, sample_release_data):
    pool_id = await create_pool(client, sample_pool_data)
    await add_questions(client, pool_id, ["easy"] * 3 + ["medium"] * 3)
    key = await answer_key(client)

    response = await client.post("/api/tests/release-random", json={
        **sample_release_data,
        "selectedPoolIds": [pool_id],
        "totalQuestions": 4,
        "difficultyDistribution": {"easy": 50, "medium": 50, "hard": 0},
    })
    assert response.status_code == 201
    test_id = response.json()["testId"]
    assert response.json()["status"] == "active"
    assert response.json()["perStudent"] is True

    response = await client.post("/api/tests/available", json={"studentId": "s1", "courseId": "CS101"})
    assert [t["id"] for t in response.json()] == [test_id]
    assert response.json()[0]["questionCount"] == 4

    # start
    response = await client.post("/api/tests/start-specific", json={"studentId": "s1", "testId": test_id})
    assert response.status_code == 201
    paper = response.json()
    attempt_id = paper["testId"]
    assert paper["resumed"] is False
    assert len(paper["questions"]) == 4
    assert all("correctOptionIndex" not in q for q in paper["questions"])
    difficulties = sorted(q["difficulty"] for q in paper["questions"])
    assert difficulties == ["easy", "easy", "medium", "medium"]

    # resume returns the same attempt
    response = await client.post("/api/tests/start-specific", json={"studentId": "s1", "testId": test_id})
    assert response.status_code == 200
    assert response.json()["resumed"] is True
    assert response.json()["testId"] == attempt_id
    assert [q["id"] for q in response.json()["questions"]] == [q["id"] for q in paper["questions"]]

    # in-progress result is redacted
    response = await client.get(f"/api/results/{attempt_id}")
    assert response.status_code == 200
    assert response.json()["status"] == "in-progress"
    assert all("correctOptionIndex" not in q for q in response.json()["questions"])

    # three correct, one wrong
    question_ids = [q["id"] for q in paper["questions"]]
    answers = {qid: key[qid] for qid in question_ids[:3]}
    answers[question_ids[3]] = (key[question_ids[3]] + 1) % 4

    response = await client.post("/api/tests/submit", json={"testId": attempt_id, "answers": answers})
    assert response.status_code == 200
    assert response.json()["message"] == "Test submitted successfully!"
    assert response.json()["score"] == 75.0
    assert response.json()["analysis"] == {"Sorting": {"correct": 3, "total": 4}}

    response = await client.post("/api/tests/submit", json={"testId": attempt_id, "answers": answers})
    assert response.status_code == 400
    assert "already been submitted" in response.json()["detail"]

    response = await client.post("/api/tests/start-specific", json={"studentId": "s1", "testId": test_id})
    assert response.status_code == 400
    assert response.json()["detail"] == "You have already taken this test."

    response = await client.get(f"/api/results/{attempt_id}")
    result = response.json()
    assert result["status"] == "completed"
    assert result["score"] == 75.0
    assert all("correctOptionIndex" in q for q in result["questions"])

    response = await client.post("/api/tests/available", json={"studentId": "s1"})
    assert response.json() == []

    response = await client.post("/api/tests/history", json={"studentId": "s1"})
    history = response.json()
    assert list(history) == ["CS101"]
    assert history["CS101"][0]["originalTestId"] == test_id
    assert history["CS101"][0]["score"] == 75.0

    # analytics
    response = await client.get("/api/faculty/course-analysis/CS101")
    analytics = response.json()
    assert analytics["totalTests"] == 1
    assert analytics["totalAttempts"] == 1
    assert analytics["passRate"] == 1.0
    assert analytics["topicPerformance"]["Sorting"]["averageScore"] == 75.0

    response = await client.get(f"/api/faculty/test-scores/{test_id}")
    assert [(s["studentId"], s["score"]) for s in response.json()] == [("s1", 75.0)]

    response = await client.get("/api/faculty/student-analysis/CS101/s1")
    assert response.json()["totalTests"] == 1
    assert response.json()["improvementTrend"][0]["score"] == 75.0


@pytest.mark.asyncio
async def test_shared_release_gives_everyone_the_same_set(
    client: AsyncClient, sample_pool_data, sample_release_data
):
    pool_id = await create_pool(client, sample_pool_data)
    await add_questions(client, pool_id, ["easy"] * 6 + ["hard"] * 6)

    response = await client.post("/api/tests/release-random", json={
        **sample_release_data,
        "selectedPoolIds": [pool_id],
        "totalQuestions": 4,
        "difficultyDistribution": {"easy": 50, "medium": 0, "hard": 50},
        "perStudent": False,
    })
    test_id = response.json()["testId"]

    papers = []
    for student in ("s1", "s2"):
        response = await client.post(
            "/api/tests/start-specific", json={"studentId": student, "testId": test_id}
        )
        assert response.status_code == 201
        papers.append([q["id"] for q in response.json()["questions"]])

    assert papers[0] == papers[1]
    assert len(papers[0]) == 4


@pytest.mark.asyncio
async def test_deleted_question_stays_on_started_paper(
    client: AsyncClient, sample_pool_data, sample_release_data
):
    pool_id = await create_pool(client, sample_pool_data)
    await add_questions(client, pool_id, ["easy"] * 2)

    response = await client.post("/api/tests/release-whole-pool", json={
        **sample_release_data,
        "selectedPoolIds": [pool_id],
    })
    test_id = response.json()["testId"]

    response = await client.post("/api/tests/start-specific", json={"studentId": "s1", "testId": test_id})
    attempt_id = response.json()["testId"]
    removed = response.json()["questions"][0]["id"]

    await client.delete(f"/api/questions/{removed}")

    response = await client.get(f"/api/results/{attempt_id}")
    assert removed in [q["id"] for q in response.json()["questions"]]


@pytest.mark.asyncio
async def test_oversized_integer_answer_is_rejected(
    client: AsyncClient, sample_pool_data, sample_release_data
):
    pool_id = await create_pool(client, sample_pool_data)
    await add_questions(client, pool_id, ["easy"] * 2)
    key = await answer_key(client)

    response = await client.post("/api/tests/release-whole-pool", json={
        **sample_release_data,
        "selectedPoolIds": [pool_id],
    })
    test_id = response.json()["testId"]

    response = await client.post("/api/tests/start-specific", json={"studentId": "s1", "testId": test_id})
    attempt_id = response.json()["testId"]
    question_ids = [q["id"] for q in response.json()["questions"]]

    response = await client.post("/api/tests/submit", json={
        "testId": attempt_id,
        "answers": {question_ids[0]: 123456789012345678901234567890},
    })
    assert response.status_code == 422

    response = await client.post("/api/tests/submit", json={
        "testId": attempt_id,
        "answers": {qid: key[qid] for qid in question_ids},
    })
    assert response.status_code == 200
    assert response.json()["score"] == 100.0


# ============================================================================
# LIFECYCLE
# ============================================================================

@pytest.mark.asyncio
async def test_expired_test_cannot_be_started(
    client: AsyncClient, sample_pool_data, sample_release_data
):
    pool_id = await create_pool(client, sample_pool_data)
    await add_questions(client, pool_id, ["easy"] * 3)
    ended = datetime.now(timezone.utc) - timedelta(minutes=1)

    response = await client.post("/api/tests/release-whole-pool", json={
        **sample_release_data,
        "selectedPoolIds": [pool_id],
        "scheduledEnd": ended.isoformat(),
    })
    assert response.status_code == 201
    test_id = response.json()["testId"]

    response = await client.post("/api/tests/start-specific", json={"studentId": "s1", "testId": test_id})
    assert response.status_code == 400
    assert "expired" in response.json()["detail"]

    response = await client.get(f"/api/tests/missed-details/{test_id}")
    assert response.status_code == 200
    missed = response.json()
    assert missed["status"] == "missed"
    assert len(missed["questions"]) == 3
    assert missed["score"] == 0.0


@pytest.mark.asyncio
async def test_missed_details_requires_closed_test(
    client: AsyncClient, sample_pool_data, sample_release_data
):
    pool_id = await create_pool(client, sample_pool_data)
    await add_questions(client, pool_id, ["easy"] * 3)

    response = await client.post("/api/tests/release-whole-pool", json={
        **sample_release_data,
        "selectedPoolIds": [pool_id],
    })
    test_id = response.json()["testId"]

    response = await client.get(f"/api/tests/missed-details/{test_id}")
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_scheduled_test_is_not_yet_available(
    client: AsyncClient, sample_pool_data, sample_release_data
):
    pool_id = await create_pool(client, sample_pool_data)
    await add_questions(client, pool_id, ["easy"] * 3)
    starts = datetime.now(timezone.utc) + timedelta(days=1)

    response = await client.post("/api/tests/release-whole-pool", json={
        **sample_release_data,
        "selectedPoolIds": [pool_id],
        "releaseOption": "schedule",
        "scheduledFor": starts.isoformat(),
    })
    assert response.status_code == 201
    assert response.json()["status"] == "scheduled"
    test_id = response.json()["testId"]

    response = await client.post("/api/tests/available", json={"studentId": "s1"})
    assert response.json() == []

    response = await client.post("/api/tests/start-specific", json={"studentId": "s1", "testId": test_id})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_unknown_test_and_attempt(client: AsyncClient):
    response = await client.post("/api/tests/start-specific", json={"studentId": "s1", "testId": "test_missing"})
    assert response.status_code == 404

    response = await client.post("/api/tests/submit", json={"testId": "attempt_missing", "answers": {}})
    assert response.status_code == 404

    response = await client.get("/api/results/attempt_missing")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_course_analysis_without_tests(client: AsyncClient):
    response = await client.get("/api/faculty/course-analysis/EMPTY")
    assert response.status_code == 200
    assert response.json()["totalTests"] == 0
    assert response.json()["passRate"] == 0.0
