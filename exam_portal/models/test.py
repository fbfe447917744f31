"""
Test Release Models
Release requests from faculty and the persisted test record
"""
from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from exam_portal.models.common import UTCDateTime, new_id, utc_now
from exam_portal.models.policy import (
    DifficultyCounts,
    DifficultyDistribution,
    SelectionPolicy,
)


class TestStatus(str, Enum):
    """Availability of a released test (not a student's completion)"""
    SCHEDULED = "scheduled"
    ACTIVE = "active"
    INACTIVE = "inactive"


class ReleaseBase(BaseModel):
    """Fields shared by both release endpoints"""
    testName: str = Field(..., min_length=1)
    courseId: str = Field(..., min_length=1)
    durationMinutes: int = Field(..., gt=0)
    createdBy: str = Field(..., min_length=1)
    selectedPoolIds: List[str] = Field(..., description="Source pools (at most 10)")
    releaseOption: Literal["now", "schedule"] = "now"
    scheduledFor: Optional[UTCDateTime] = Field(
        None, description="Start time, required when releaseOption is 'schedule'"
    )
    scheduledEnd: Optional[UTCDateTime] = Field(
        None, description="Optional time after which the test can no longer be started"
    )


class ReleaseWholePoolRequest(ReleaseBase):
    """Release every question currently in the selected pools"""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "testName": "Midterm",
                "courseId": "CS101",
                "durationMinutes": 45,
                "createdBy": "faculty_01",
                "selectedPoolIds": ["pool_3f2a9c1d0b7e"],
                "releaseOption": "now"
            }
        }
    )


class ReleaseRandomRequest(ReleaseBase):
    """
    Release a sampled test

    Percentage mode uses totalQuestions + difficultyDistribution.
    Custom mode is selected by customPoolDistribution OR a non-empty poolQuestionMap.
    """
    totalQuestions: Optional[int] = None
    difficultyDistribution: Optional[DifficultyDistribution] = None
    customPoolDistribution: bool = False
    poolQuestionMap: Dict[str, DifficultyCounts] = Field(default_factory=dict)
    perStudent: bool = Field(
        True,
        description="Draw a fresh paper for each student at start time instead of one shared set"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "testName": "Quiz 2",
                "courseId": "CS101",
                "durationMinutes": 20,
                "createdBy": "faculty_01",
                "selectedPoolIds": ["pool_3f2a9c1d0b7e", "pool_9be01c77d2aa"],
                "totalQuestions": 10,
                "difficultyDistribution": {"easy": 50, "medium": 30, "hard": 20},
                "perStudent": True
            }
        }
    )


class QuestionConfig(BaseModel):
    """Deferred allocation stored on per-student tests"""
    selectedPoolIds: List[str]
    policy: SelectionPolicy


class TestRecord(BaseModel):
    """
    Stored test document
    Exactly one of questionIds / questionConfig decides how a paper is built
    """
    id: str = Field(default_factory=lambda: new_id("test"))
    testName: str
    courseId: str
    durationMinutes: int
    status: TestStatus
    createdBy: str
    createdAt: UTCDateTime = Field(default_factory=utc_now)
    scheduledFor: Optional[UTCDateTime] = None
    scheduledEnd: Optional[UTCDateTime] = None
    sourcePoolIds: List[str]
    totalQuestions: int = 0
    questionIds: Optional[List[str]] = None
    questionConfig: Optional[QuestionConfig] = None

    model_config = ConfigDict(use_enum_values=True)

    @property
    def is_per_student(self) -> bool:
        return self.questionIds is None and self.questionConfig is not None


class ReleaseResponse(BaseModel):
    """Response model for a released test"""
    testId: str
    status: TestStatus
    totalQuestions: int
    perStudent: bool
    message: str


class AvailableTestsRequest(BaseModel):
    studentId: str = Field(..., min_length=1)
    courseId: Optional[str] = Field(None, description="Restrict to one course")


class AvailableTest(BaseModel):
    """Test a student may start right now"""
    id: str
    testName: str
    courseId: str
    durationMinutes: int
    status: TestStatus
    scheduledFor: Optional[UTCDateTime] = None
    scheduledEnd: Optional[UTCDateTime] = None
    questionCount: int
