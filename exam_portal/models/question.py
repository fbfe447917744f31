"""
Question and Pool Models
Faculty-curated questions grouped into pools per course
"""
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from exam_portal.models.common import (
    DIFFICULTY_LEVELS,
    UTCDateTime,
    new_id,
    normalize_difficulty,
    utc_now,
)


class QuestionBody(BaseModel):
    """Question content shared by create requests and stored documents"""
    topic: str = Field(..., min_length=1, description="Topic label used for analysis")
    questionText: str = Field(..., min_length=1, description="Question text")
    options: List[str] = Field(..., min_length=2, max_length=4, description="2-4 answer options")
    correctOptionIndex: int = Field(..., ge=0, description="Zero-based index of the correct option")
    difficulty: str = Field(..., description="easy, medium or hard (any case)")

    @field_validator("difficulty")
    @classmethod
    def validate_difficulty(cls, v):
        """Accept any casing, keep what the author wrote"""
        if normalize_difficulty(v) not in DIFFICULTY_LEVELS:
            raise ValueError(f"difficulty must be one of: {DIFFICULTY_LEVELS}")
        return v

    @model_validator(mode="after")
    def validate_correct_option(self):
        if self.correctOptionIndex >= len(self.options):
            raise ValueError(
                f"correctOptionIndex {self.correctOptionIndex} is out of range "
                f"for {len(self.options)} options"
            )
        return self


class QuestionCreate(QuestionBody):
    """Request model for adding a single question"""
    courseId: str = Field(..., min_length=1)
    poolId: str = Field(..., min_length=1)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "courseId": "CS101",
                "poolId": "pool_3f2a9c1d0b7e",
                "topic": "Sorting",
                "questionText": "What is the worst-case complexity of quicksort?",
                "options": ["O(n)", "O(n log n)", "O(n^2)", "O(log n)"],
                "correctOptionIndex": 2,
                "difficulty": "Medium"
            }
        }
    )


class QuestionBulkCreate(BaseModel):
    """Request model for adding many questions to one pool"""
    courseId: str = Field(..., min_length=1)
    poolId: str = Field(..., min_length=1)
    questions: List[QuestionBody] = Field(..., min_length=1)


class Question(QuestionBody):
    """
    Stored question document
    SECURITY: correctOptionIndex must never reach a student before submission
    """
    id: str = Field(default_factory=lambda: new_id("q"))
    courseId: str
    poolId: str
    createdAt: UTCDateTime = Field(default_factory=utc_now)

    @property
    def difficulty_key(self) -> str:
        return normalize_difficulty(self.difficulty)

    def to_student_view(self) -> "StudentQuestionView":
        return StudentQuestionView(
            **self.model_dump(exclude={"correctOptionIndex"})
        )


class StudentQuestionView(BaseModel):
    """Question as shown to a student taking a test (no correct answer)"""
    id: str
    courseId: str
    poolId: str
    topic: str
    questionText: str
    options: List[str]
    difficulty: str

    model_config = ConfigDict(extra="ignore")


class PoolCreate(BaseModel):
    """Request model for creating a question pool"""
    courseId: str = Field(..., min_length=1)
    poolName: str = Field(..., min_length=1)
    createdBy: str = Field(..., min_length=1)


class Pool(PoolCreate):
    """Stored pool document"""
    id: str = Field(default_factory=lambda: new_id("pool"))
    createdAt: UTCDateTime = Field(default_factory=utc_now)


class CreatedResponse(BaseModel):
    """Generic response for create operations"""
    id: str
    message: str


class MessageResponse(BaseModel):
    message: str
