"""
Attempt Schemas
===============

Request and response models for starting, submitting and reading quiz attempts.
"""

from pydantic import BaseModel, Field
from typing import List, Optional, Dict, Any
from datetime import datetime
from app.schemas.common import Identifier


class AttemptStartRequest(BaseModel):
    """Request model for starting (or resuming) an attempt."""
    userId: Identifier


class AnswerIn(BaseModel):
    """One submitted answer; choice questions use selectedOptions, the rest shortAnswer."""
    questionId: Identifier
    selectedOptions: List[str] = []
    shortAnswer: Optional[str] = None
    timeTaken: int = Field(default=0, ge=0, description="Seconds")


class AttemptSubmitRequest(BaseModel):
    userId: Identifier
    answers: List[AnswerIn] = []


class AttemptResponse(BaseModel):
    id: str
    quizId: str
    quizTitle: Optional[str] = None
    userId: str
    courseId: str
    answers: List[Dict[str, Any]] = []
    score: float
    totalPoints: int
    percentage: float
    isPassed: bool
    ungradedAnswers: int
    status: str
    timeStarted: Optional[datetime] = None
    timeCompleted: Optional[datetime] = None
    timeSpent: int
    attemptNumber: int
    ipAddress: Optional[str] = None
    userAgent: Optional[str] = None
    createdAt: Optional[datetime] = None


class AttemptSummary(BaseModel):
    score: float
    totalPoints: int
    percentage: int
    isPassed: bool
    passingScore: float
    correctAnswers: int
    totalQuestions: int = Field(..., description="Questions in the quiz")
    answeredQuestions: int = Field(..., description="Questions with a submitted answer")
    ungradedAnswers: int
