"""
Selection Policy Models
How many questions a test draws, and from which difficulty/pool buckets
"""
from typing import Annotated, Dict, Literal, Optional, Union

from pydantic import BaseModel, Field

from exam_portal.core.exceptions import InvalidPolicyError


class DifficultyDistribution(BaseModel):
    """Global percentages per difficulty, expected to sum to 100"""
    easy: int = Field(0, ge=0, le=100)
    medium: int = Field(0, ge=0, le=100)
    hard: int = Field(0, ge=0, le=100)

    def total(self) -> int:
        return self.easy + self.medium + self.hard


class DifficultyCounts(BaseModel):
    """Exact number of questions to draw per difficulty from one pool"""
    easy: int = Field(0, ge=0)
    medium: int = Field(0, ge=0)
    hard: int = Field(0, ge=0)

    def total(self) -> int:
        return self.easy + self.medium + self.hard


class PercentagePolicy(BaseModel):
    """Draw ``totalQuestions`` across all selected pools by percentage"""
    mode: Literal["percentage"] = "percentage"
    totalQuestions: int = Field(..., gt=0)
    difficultyDistribution: DifficultyDistribution


class CustomPolicy(BaseModel):
    """Draw exact counts per pool and difficulty"""
    mode: Literal["custom"] = "custom"
    poolQuestionMap: Dict[str, DifficultyCounts]
    totalQuestions: Optional[int] = Field(
        None,
        description="Declared total; when present it must equal the sum of the map"
    )

    def requested_total(self) -> int:
        return sum(counts.total() for counts in self.poolQuestionMap.values())


SelectionPolicy = Annotated[
    Union[PercentagePolicy, CustomPolicy],
    Field(discriminator="mode")
]


def resolve_selection_policy(
    custom_pool_distribution: bool = False,
    pool_question_map: Optional[Dict[str, DifficultyCounts]] = None,
    total_questions: Optional[int] = None,
    difficulty_distribution: Optional[DifficultyDistribution] = None
) -> Union[PercentagePolicy, CustomPolicy]:
    """
    Turn the loosely-typed release body into exactly one policy variant.

    Custom mode wins when the flag is set OR the map is non-empty.

    Raises:
        InvalidPolicyError: If the chosen mode is missing its parameters
    """
    if custom_pool_distribution or pool_question_map:
        if not pool_question_map:
            raise InvalidPolicyError(
                "Custom distribution selected but no question configuration provided."
            )
        return CustomPolicy(
            poolQuestionMap=pool_question_map,
            totalQuestions=total_questions
        )

    if total_questions is None or difficulty_distribution is None:
        raise InvalidPolicyError(
            "totalQuestions and difficultyDistribution are required for percentage mode."
        )
    if total_questions <= 0:
        raise InvalidPolicyError("totalQuestions must be a positive integer.")

    return PercentagePolicy(
        totalQuestions=total_questions,
        difficultyDistribution=difficulty_distribution
    )
