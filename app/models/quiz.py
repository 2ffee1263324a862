"""
Quiz Data Models
================

SQLAlchemy ORM models for the course quiz and assessment system.

Models:
- Quiz: A time-windowed assessment owned by a course
- QuizAttempt: One user's pass through a quiz

Questions and attempt answers are embedded documents kept in JSON columns,
so a quiz and its questions are always read and written together.

Features:
- Five question types (single/multiple choice, true-false, short answer, essay)
- Stored question/point totals re-derived on every write
- Partial unique index allowing one in-progress attempt per (quiz, user)
- Non-owning references from attempts to quizzes and courses (no cascade)
"""

from sqlalchemy import (
    Column, Integer, String, Text, DateTime, Boolean, Float,
    ForeignKey, Enum, JSON, Index, text
)
from sqlalchemy.orm import relationship, validates
from datetime import datetime, timezone
import enum
import uuid
from app.db.database import Base


def utcnow() -> datetime:
    """Naive UTC timestamp; every datetime column stores naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class QuestionType(str, enum.Enum):
    """Question type enumeration."""
    single_choice = "single-choice"
    multiple_choice = "multiple-choice"
    true_false = "true-false"
    short_answer = "short-answer"
    essay = "essay"


CHOICE_TYPES = (QuestionType.single_choice.value, QuestionType.multiple_choice.value)


class ScheduleType(str, enum.Enum):
    immediate = "immediate"
    scheduled = "scheduled"


class QuizStatus(str, enum.Enum):
    """Read-time status of a quiz, never persisted."""
    disabled = "disabled"
    draft = "draft"
    scheduled = "scheduled"
    expired = "expired"
    active = "active"


class AttemptStatus(str, enum.Enum):
    """Attempt lifecycle enumeration."""
    in_progress = "in-progress"
    completed = "completed"
    abandoned = "abandoned"
    expired = "expired"


class Quiz(Base):
    """
    Quiz definition with its embedded questions.

    Each entry of `questions` is a dict shaped like the API question:
    {id, question, type, options: [{text, isCorrect}], correctAnswer, points, explanation}
    """
    __tablename__ = "quizzes"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    course_id = Column(String, ForeignKey("courses.id"), nullable=False, index=True)
    module_id = Column(String, nullable=True, index=True)
    module_title = Column(String, nullable=True)
    duration = Column(Integer, nullable=False, default=30)
    passing_score = Column(Float, nullable=False, default=70)
    max_attempts = Column(Integer, nullable=False, default=1)
    instructions = Column(Text, nullable=True)
    tags = Column(JSON, default=list)
    # lowercased tags, one per line, for LIKE search
    tags_text = Column(Text, nullable=True)
    available_from = Column(DateTime, nullable=False, index=True)
    available_until = Column(DateTime, nullable=True)
    schedule_type = Column(Enum(ScheduleType), nullable=False, default=ScheduleType.immediate)
    questions = Column(JSON, default=list)
    total_questions = Column(Integer, nullable=False, default=0)
    total_points = Column(Integer, nullable=False, default=0)
    is_published = Column(Boolean, nullable=False, default=False)
    published_at = Column(DateTime, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    course = relationship("Course", back_populates="quizzes")
    attempts = relationship("QuizAttempt", back_populates="quiz")

    @validates("tags")
    def _sync_tags_text(self, key, value):
        self.tags_text = "\n".join(str(tag).lower() for tag in value or [])
        return value

    def refresh_totals(self) -> None:
        questions = self.questions or []
        self.total_questions = len(questions)
        self.total_points = sum(int(q.get("points") or 1) for q in questions)


class QuizAttempt(Base):
    """
    User attempt at a quiz.

    `answers` holds the scored AttemptAnswer dicts written once at submission:
    {questionId, questionIndex, selectedOptions, shortAnswer, isCorrect,
    pointsEarned, timeTaken, gradingStatus}
    """
    __tablename__ = "quiz_attempts"
    __table_args__ = (
        Index("ix_quiz_attempts_quiz_user", "quiz_id", "user_id"),
        Index(
            "uq_quiz_attempts_one_in_progress",
            "quiz_id", "user_id",
            unique=True,
            sqlite_where=text("status = 'in_progress'"),
            postgresql_where=text("status = 'in_progress'"),
        ),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    quiz_id = Column(String, ForeignKey("quizzes.id"), nullable=False, index=True)
    user_id = Column(String, nullable=False, index=True)
    course_id = Column(String, ForeignKey("courses.id"), nullable=False, index=True)
    answers = Column(JSON, default=list)
    score = Column(Float, nullable=False, default=0)
    total_points = Column(Integer, nullable=False, default=0)
    percentage = Column(Float, nullable=False, default=0)
    is_passed = Column(Boolean, nullable=False, default=False)
    ungraded_answers = Column(Integer, nullable=False, default=0)
    status = Column(Enum(AttemptStatus), nullable=False, default=AttemptStatus.in_progress)
    time_started = Column(DateTime, default=utcnow)
    time_completed = Column(DateTime, nullable=True)
    time_spent = Column(Integer, nullable=False, default=0)
    attempt_number = Column(Integer, nullable=False)
    ip_address = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow, index=True)

    quiz = relationship("Quiz", back_populates="attempts")
