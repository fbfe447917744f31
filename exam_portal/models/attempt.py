"""
Student Attempt Models
One student's private, time-boxed instance of a released test
"""
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, BeforeValidator, Field

from exam_portal.models.common import UTCDateTime, new_id, utc_now
from exam_portal.models.question import Question, StudentQuestionView

AttemptStatus = Literal["in-progress", "completed"]

# BSON stores integers in at most 8 bytes
BSON_INT_MIN = -2**63
BSON_INT_MAX = 2**63 - 1


def _check_answer_range(value):
    if isinstance(value, int) and not isinstance(value, bool):
        if not BSON_INT_MIN <= value <= BSON_INT_MAX:
            raise ValueError("integer answer is out of range")
    return value


AnswerValue = Annotated[Union[int, float, str], BeforeValidator(_check_answer_range)]


class TopicScore(BaseModel):
    correct: int = 0
    total: int = 0


class StudentTest(BaseModel):
    """
    Stored attempt document
    SECURITY: questions keep correctOptionIndex; use the redacted view for students
    """
    id: str = Field(default_factory=lambda: new_id("attempt"))
    studentId: str
    originalTestId: str
    testName: str
    courseId: str
    durationMinutes: int
    startTime: UTCDateTime = Field(default_factory=utc_now)
    status: AttemptStatus = "in-progress"
    questions: List[Question] = Field(default_factory=list)
    answers: Dict[str, AnswerValue] = Field(default_factory=dict)
    endTime: Optional[UTCDateTime] = None
    score: Optional[float] = None
    analysis: Dict[str, TopicScore] = Field(default_factory=dict)


class StartTestRequest(BaseModel):
    studentId: str = Field(..., min_length=1)
    testId: str = Field(..., min_length=1)


class StartTestResponse(BaseModel):
    """Paper handed to the student (correct answers stripped)"""
    testId: str = Field(..., description="Attempt id, used for submission")
    testName: str
    durationMinutes: int
    startTime: UTCDateTime
    questions: List[StudentQuestionView]
    resumed: bool = Field(False, description="True when an in-progress attempt was returned")


class SubmitTestRequest(BaseModel):
    testId: str = Field(..., min_length=1, description="Attempt id")
    answers: Dict[str, AnswerValue] = Field(
        default_factory=dict,
        description="questionId -> chosen option index; unanswered questions are omitted"
    )


class ScoreResult(BaseModel):
    """Scorer output"""
    score: float = Field(..., ge=0, le=100)
    correct: int = Field(..., ge=0)
    totalQuestions: int = Field(..., ge=0)
    analysis: Dict[str, TopicScore]


class SubmitTestResponse(BaseModel):
    message: str
    score: float
    analysis: Dict[str, TopicScore]


class AttemptResult(BaseModel):
    """
    Result view of an attempt

    Completed attempts include full snapshots for review; in-progress ones are redacted.
    """
    id: str
    studentId: str
    originalTestId: str
    testName: str
    courseId: str
    durationMinutes: int
    startTime: UTCDateTime
    status: AttemptStatus
    questions: List[Union[Question, StudentQuestionView]]
    answers: Dict[str, AnswerValue]
    endTime: Optional[UTCDateTime] = None
    score: Optional[float] = None
    analysis: Dict[str, TopicScore] = Field(default_factory=dict)


class HistoryEntry(BaseModel):
    testId: str
    testName: str
    score: float
    completedAt: Optional[UTCDateTime] = None
    totalQuestions: int
    originalTestId: str


class MissedTestDetails(BaseModel):
    """Review payload for an expired whole-pool test the student never took"""
    testName: str
    status: Literal["missed"] = "missed"
    questions: List[Question]
    answers: Dict[str, AnswerValue] = Field(default_factory=dict)
    score: float = 0.0
    analysis: Dict[str, TopicScore] = Field(default_factory=dict)
    durationMinutes: int
