"""
Quiz Attempt Service
=====================================
Attempt lifecycle for a (user, quiz) pair: start or resume, submit and
score, list, fetch, and the operator-driven abandon transition.

State machine:
- start:   -> in-progress (resumes the existing in-progress attempt if any)
- submit:  in-progress -> completed (terminal, results never rewritten)
- abandon: in-progress -> abandoned

At most one in-progress attempt exists per (quiz, user); the partial unique
index on quiz_attempts backs this up when two starts race.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import Conflict, LimitExceeded, NotFound
from app.models.quiz import AttemptStatus, Quiz, QuizAttempt, utcnow
from app.schemas.attempt import AttemptResponse, AttemptSummary
from app.services.quiz_service import get_available_quiz, get_quiz, paginate
from app.services.scoring import ScoreResult, score_answers

logger = logging.getLogger(__name__)


def _find_in_progress(db: Session, quiz_id: str, user_id: str) -> Optional[QuizAttempt]:
    return db.query(QuizAttempt).filter(
        QuizAttempt.quiz_id == quiz_id,
        QuizAttempt.user_id == user_id,
        QuizAttempt.status == AttemptStatus.in_progress,
    ).first()


def start_attempt(
    db: Session,
    quiz_id: str,
    user_id: str,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> Tuple[QuizAttempt, bool]:
    """
    Start a new attempt or resume the in-progress one.

    Returns:
        (attempt, resumed) where resumed is True when an existing attempt is returned

    Raises:
        NotFound: quiz missing
        Forbidden: quiz not published, inactive or outside its window
        LimitExceeded: maxAttempts already used
    """
    quiz = get_available_quiz(db, quiz_id)

    existing = _find_in_progress(db, quiz.id, user_id)
    if existing:
        logger.info(f"Resuming attempt {existing.id} for user {user_id}, quiz {quiz.id}")
        return existing, True

    # every attempt uses a slot, abandoned and expired ones included
    previous = db.query(QuizAttempt).filter(
        QuizAttempt.quiz_id == quiz.id,
        QuizAttempt.user_id == user_id,
    ).count()
    if previous >= quiz.max_attempts:
        logger.warning(f"User {user_id} reached max attempts ({quiz.max_attempts}) for quiz {quiz.id}")
        raise LimitExceeded(f"Maximum attempts ({quiz.max_attempts}) reached for this quiz")

    attempt = QuizAttempt(
        quiz_id=quiz.id,
        user_id=user_id,
        course_id=quiz.course_id,
        attempt_number=previous + 1,
        status=AttemptStatus.in_progress,
        time_started=utcnow(),
        ip_address=ip_address,
        user_agent=user_agent,
    )
    db.add(attempt)
    try:
        db.commit()
    except IntegrityError:
        # Another request created the in-progress attempt first
        db.rollback()
        existing = _find_in_progress(db, quiz.id, user_id)
        if existing is None:
            raise
        logger.info(f"Concurrent start for user {user_id}, quiz {quiz.id}; resuming attempt {existing.id}")
        return existing, True
    except SQLAlchemyError:
        db.rollback()
        raise

    db.refresh(attempt)
    logger.info(f"Started quiz attempt {attempt.id} (#{attempt.attempt_number}) for user {user_id}, quiz {quiz.id}")
    return attempt, False


def submit_attempt(
    db: Session,
    quiz_id: str,
    user_id: str,
    answers: Iterable[Any],
) -> Tuple[QuizAttempt, Quiz, ScoreResult]:
    """Score the in-progress attempt and mark it completed."""
    attempt = _find_in_progress(db, quiz_id, user_id)
    if not attempt:
        logger.warning(f"No in-progress attempt for user {user_id}, quiz {quiz_id}")
        raise NotFound("No active quiz attempt found")

    quiz = get_quiz(db, quiz_id)
    result = score_answers(quiz.questions or [], answers, quiz.passing_score)

    completed_at = utcnow()
    attempt.answers = result.answers
    attempt.score = result.score
    attempt.total_points = result.total_possible_points
    attempt.percentage = result.percentage
    attempt.is_passed = result.is_passed
    attempt.ungraded_answers = result.ungraded_count
    attempt.status = AttemptStatus.completed
    attempt.time_completed = completed_at
    if attempt.time_started:
        attempt.time_spent = max(0, int((completed_at - attempt.time_started).total_seconds()))

    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    db.refresh(attempt)

    logger.info(
        f"Quiz attempt {attempt.id} submitted. Score: {result.score}/{result.total_possible_points} "
        f"({result.percentage:.1f}%), passed={result.is_passed}, ungraded={result.ungraded_count}"
    )
    return attempt, quiz, result


def abandon_attempt(db: Session, attempt_id: str) -> QuizAttempt:
    attempt = get_attempt(db, attempt_id)
    if attempt.status != AttemptStatus.in_progress:
        raise Conflict(f"Only in-progress attempts can be abandoned (status: {attempt.status.value})")
    attempt.status = AttemptStatus.abandoned
    attempt.time_completed = utcnow()
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    db.refresh(attempt)
    logger.info(f"Attempt {attempt.id} marked abandoned")
    return attempt


def list_attempts(
    db: Session,
    user_id: Optional[str] = None,
    quiz_id: Optional[str] = None,
    course_id: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
) -> Tuple[List[QuizAttempt], int]:
    query = db.query(QuizAttempt)
    if user_id:
        query = query.filter(QuizAttempt.user_id == user_id)
    if quiz_id:
        query = query.filter(QuizAttempt.quiz_id == quiz_id)
    if course_id:
        query = query.filter(QuizAttempt.course_id == course_id)
    query = query.order_by(QuizAttempt.created_at.desc())
    return paginate(query, page, limit)


def get_attempt(db: Session, attempt_id: str) -> QuizAttempt:
    attempt = db.query(QuizAttempt).filter(QuizAttempt.id == attempt_id).first()
    if not attempt:
        raise NotFound("Attempt not found")
    return attempt


def build_attempt_response(attempt: QuizAttempt) -> AttemptResponse:
    return AttemptResponse(
        id=attempt.id,
        quizId=attempt.quiz_id,
        quizTitle=attempt.quiz.title if attempt.quiz else None,
        userId=attempt.user_id,
        courseId=attempt.course_id,
        answers=attempt.answers or [],
        score=attempt.score,
        totalPoints=attempt.total_points,
        percentage=attempt.percentage,
        isPassed=attempt.is_passed,
        ungradedAnswers=attempt.ungraded_answers,
        status=attempt.status.value,
        timeStarted=attempt.time_started,
        timeCompleted=attempt.time_completed,
        timeSpent=attempt.time_spent,
        attemptNumber=attempt.attempt_number,
        ipAddress=attempt.ip_address,
        userAgent=attempt.user_agent,
        createdAt=attempt.created_at,
    )


def build_attempt_summary(quiz: Quiz, result: ScoreResult) -> AttemptSummary:
    return AttemptSummary(
        score=result.score,
        totalPoints=result.total_possible_points,
        percentage=round(result.percentage),
        isPassed=result.is_passed,
        passingScore=quiz.passing_score,
        correctAnswers=result.correct_count,
        totalQuestions=quiz.total_questions,
        answeredQuestions=len(result.answers),
        ungradedAnswers=result.ungraded_count,
    )


def quiz_info(quiz: Quiz) -> Dict[str, Any]:
    return {
        "title": quiz.title,
        "duration": quiz.duration,
        "totalQuestions": quiz.total_questions,
        "passingScore": quiz.passing_score,
    }
