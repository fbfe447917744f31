"""
Analytics Models
Course-level and student-level rollups of completed attempts
"""
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from exam_portal.models.attempt import TopicScore
from exam_portal.models.common import UTCDateTime


class TopicPerformance(BaseModel):
    """Summed correct/total for one topic; averageScore is recomputed from the sums"""
    topic: str
    totalQuestions: int = 0
    correctAnswers: int = 0
    averageScore: float = 0.0


class StudentPerformance(BaseModel):
    studentId: str
    attempts: int = 0
    totalScore: float = 0.0
    averageScore: float = 0.0
    bestScore: float = 0.0
    lastAttempt: Optional[UTCDateTime] = None


class CourseAnalytics(BaseModel):
    courseId: str
    totalTests: int = 0
    totalAttempts: int = 0
    averageScore: float = 0.0
    passRate: float = Field(0.0, ge=0, le=1, description="Fraction of attempts at or above the pass mark")
    topicPerformance: Dict[str, TopicPerformance] = Field(default_factory=dict)
    studentPerformance: List[StudentPerformance] = Field(default_factory=list)


class TestScore(BaseModel):
    studentId: str
    score: float
    completedAt: Optional[UTCDateTime] = None


class AttemptSummary(BaseModel):
    testId: str
    testName: str
    score: float
    completedAt: Optional[UTCDateTime] = None
    analysis: Dict[str, TopicScore] = Field(default_factory=dict)


class TrendPoint(BaseModel):
    test: str
    score: float
    attempt: int


class TopicBreakdown(BaseModel):
    topic: str
    totalQuestions: int
    correctAnswers: int
    tests: int
    percentage: float


class StudentAnalysis(BaseModel):
    studentId: str
    courseId: str
    totalTests: int = 0
    averageScore: float = 0.0
    tests: List[AttemptSummary] = Field(default_factory=list)
    improvementTrend: List[TrendPoint] = Field(default_factory=list)
    topicWeaknesses: List[TopicBreakdown] = Field(default_factory=list)
    topicStrengths: List[TopicBreakdown] = Field(default_factory=list)
