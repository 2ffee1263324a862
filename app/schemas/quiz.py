"""
Quiz Schemas
============

Pydantic models for quiz-related API requests and responses.

Question inputs are a tagged union keyed on `type`, so each question kind
only accepts the fields that make sense for it. Shape is checked here;
completeness (enough options, a correct answer) is checked by the quiz
service at publish time, since drafts may hold unfinished questions.
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import List, Optional, Dict, Any, Union, Literal
from typing_extensions import Annotated
from datetime import datetime
from app.models.quiz import ScheduleType
from app.schemas.common import Identifier


class OptionIn(BaseModel):
    """One selectable option of a choice question."""
    model_config = ConfigDict(str_strip_whitespace=True)

    text: str = ""
    isCorrect: bool = False


class _QuestionBase(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    question: str = Field(..., min_length=1, description="Prompt text")
    points: int = Field(default=1, ge=1)
    explanation: Optional[str] = None


class _ChoiceQuestionBase(_QuestionBase):
    options: List[OptionIn] = []
    correctAnswer: Optional[str] = None

    @model_validator(mode="after")
    def _mark_correct_option(self):
        # Older clients send the correct option's text instead of flags
        if self.correctAnswer and not any(o.isCorrect for o in self.options):
            for option in self.options:
                if option.text.lower() == self.correctAnswer.lower():
                    option.isCorrect = True
        return self


class SingleChoiceQuestionIn(_ChoiceQuestionBase):
    type: Literal["single-choice"]


class MultipleChoiceQuestionIn(_ChoiceQuestionBase):
    type: Literal["multiple-choice"]


class TrueFalseQuestionIn(_QuestionBase):
    type: Literal["true-false"]
    correctAnswer: Optional[Union[bool, str]] = None


class ShortAnswerQuestionIn(_QuestionBase):
    type: Literal["short-answer"]
    correctAnswer: Optional[str] = None


class EssayQuestionIn(_QuestionBase):
    type: Literal["essay"]
    correctAnswer: Optional[str] = Field(default=None, description="Optional grading rubric")


QuestionUnion = Union[
    SingleChoiceQuestionIn,
    MultipleChoiceQuestionIn,
    TrueFalseQuestionIn,
    ShortAnswerQuestionIn,
    EssayQuestionIn,
]

QuestionIn = Annotated[QuestionUnion, Field(discriminator="type")]


class QuizCreate(BaseModel):
    """Request model for creating a quiz."""
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    courseId: Identifier
    moduleId: Optional[Identifier] = None
    moduleTitle: Optional[str] = None
    duration: int = Field(default=30, ge=1, le=300, description="Minutes")
    passingScore: float = Field(default=70, ge=0, le=100, description="Percentage")
    maxAttempts: int = Field(default=1, ge=1)
    instructions: Optional[str] = None
    tags: List[str] = []
    availableFrom: datetime
    availableUntil: Optional[datetime] = None
    scheduleType: ScheduleType = ScheduleType.immediate
    isActive: bool = True
    questions: List[QuestionIn] = []


class QuizUpdate(BaseModel):
    """Partial update; only fields sent by the client are applied."""
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    courseId: Optional[Identifier] = None
    moduleId: Optional[Identifier] = None
    moduleTitle: Optional[str] = None
    duration: Optional[int] = Field(default=None, ge=1, le=300)
    passingScore: Optional[float] = Field(default=None, ge=0, le=100)
    maxAttempts: Optional[int] = Field(default=None, ge=1)
    instructions: Optional[str] = None
    tags: Optional[List[str]] = None
    availableFrom: Optional[datetime] = None
    availableUntil: Optional[datetime] = None
    scheduleType: Optional[ScheduleType] = None
    isActive: Optional[bool] = None
    questions: Optional[List[QuestionIn]] = None


class QuizResponse(BaseModel):
    """Response model for a quiz with its read-time fields."""
    id: str
    title: str
    description: Optional[str] = None
    courseId: str
    courseTitle: Optional[str] = None
    moduleId: Optional[str] = None
    moduleTitle: Optional[str] = None
    duration: int
    passingScore: float
    maxAttempts: int
    instructions: Optional[str] = None
    tags: List[str] = []
    availableFrom: datetime
    availableUntil: Optional[datetime] = None
    scheduleType: str
    questions: List[Dict[str, Any]] = []
    totalQuestions: int
    totalPoints: int
    questionCount: int
    isPublished: bool
    publishedAt: Optional[datetime] = None
    isActive: bool
    status: str
    daysRemaining: Optional[int] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None
