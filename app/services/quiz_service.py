"""
Quiz Service
=====================================
Service layer for the quiz catalog: creation, updates, publication,
question management and catalog queries.

Features:
- Course and module validation on create/update
- Availability window validation (availableUntil after availableFrom)
- 30-question limit per quiz
- Restricted updates once a published quiz has attempts
- Per-type question completeness checks before publishing
- Read-time status derivation (disabled, draft, scheduled, expired, active)
- Filtered, paginated listings plus course/module/upcoming/calendar views

Dependencies:
- Database models for persistence
- Course service for the course existence lookup
"""

import calendar
import logging
import math
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import and_, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session

from app.core.config import MAX_QUESTIONS_PER_QUIZ
from app.core.exceptions import (
    Conflict, Forbidden, InvalidArgument, LimitExceeded, NotFound, QuizServiceError
)
from app.models.course import Course
from app.models.quiz import CHOICE_TYPES, Quiz, QuizAttempt, QuizStatus, QuestionType, utcnow
from app.schemas.quiz import QuizCreate, QuizResponse, QuizUpdate
from app.services.course_service import get_course

logger = logging.getLogger(__name__)

ALLOWED_UPDATES_AFTER_ATTEMPTS = {
    "title", "description", "instructions", "tags", "availableUntil", "isActive",
}

# API field -> Quiz column for plain assignments
_PLAIN_FIELDS = {
    "title": "title",
    "description": "description",
    "moduleTitle": "module_title",
    "duration": "duration",
    "passingScore": "passing_score",
    "maxAttempts": "max_attempts",
    "instructions": "instructions",
    "tags": "tags",
    "scheduleType": "schedule_type",
    "isActive": "is_active",
}


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def derive_status(quiz: Quiz, now: Optional[datetime] = None) -> QuizStatus:
    """Classify a quiz; the order of checks is the precedence."""
    now = now or utcnow()
    if not quiz.is_active:
        return QuizStatus.disabled
    if not quiz.is_published:
        return QuizStatus.draft
    if now < quiz.available_from:
        return QuizStatus.scheduled
    if quiz.available_until is not None and now > quiz.available_until:
        return QuizStatus.expired
    return QuizStatus.active


def days_remaining(available_until: Optional[datetime], now: Optional[datetime] = None) -> Optional[int]:
    if available_until is None:
        return None
    now = now or utcnow()
    if now > available_until:
        return 0
    return math.ceil((available_until - now).total_seconds() / 86400)


def question_problem(question: Dict[str, Any]) -> Optional[str]:
    """Return why a question is incomplete for its type, or None when complete."""
    qtype = question.get("type")
    if qtype in CHOICE_TYPES:
        options = [o for o in question.get("options") or [] if (o.get("text") or "").strip()]
        if len(options) < 2:
            return "Choice questions require at least 2 options"
        if not any(o.get("isCorrect") for o in options):
            return "Choice questions require at least one correct option"
        return None
    answer = question.get("correctAnswer")
    if qtype == QuestionType.true_false.value:
        if isinstance(answer, bool) or str(answer).strip().lower() in ("true", "false"):
            return None
        return "True/False questions require a true or false correct answer"
    if qtype == QuestionType.short_answer.value:
        if answer is None or not str(answer).strip():
            return "Short answer questions require a correct answer"
        return None
    if qtype == QuestionType.essay.value:
        return None
    return "Invalid question type"


def _question_document(question) -> Dict[str, Any]:
    document = question.model_dump(mode="json")
    document["id"] = str(uuid.uuid4())
    return document


def _commit(db: Session) -> None:
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise


def count_attempts(db: Session, quiz_id: str) -> int:
    return db.query(QuizAttempt).filter(QuizAttempt.quiz_id == quiz_id).count()


def _validate_window(available_from: Optional[datetime], available_until: Optional[datetime]) -> None:
    if available_from is None:
        raise InvalidArgument("Start date is required")
    if available_until is not None and available_until <= available_from:
        raise InvalidArgument("End date must be after start date")


def _validate_question_count(count: int) -> None:
    if count > MAX_QUESTIONS_PER_QUIZ:
        raise LimitExceeded(f"Maximum {MAX_QUESTIONS_PER_QUIZ} questions allowed per quiz")


def _resolve_module_title(course: Course, module_id: Optional[str], module_title: Optional[str]) -> Optional[str]:
    if not module_id:
        return module_title
    module = course.find_module(module_id)
    if module is None:
        raise InvalidArgument("Module not found in the selected course")
    return module_title or module.get("title")


def _invalid_questions(questions: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    invalid = []
    for index, question in enumerate(questions):
        reason = question_problem(question)
        if reason:
            invalid.append({
                "index": index,
                "question": question.get("question"),
                "type": question.get("type"),
                "reason": reason,
            })
    return invalid


def create_quiz(db: Session, payload: QuizCreate) -> Quiz:
    """Create a draft quiz after validating course, module, dates and question count."""
    course = get_course(db, payload.courseId)

    available_from = to_naive_utc(payload.availableFrom)
    available_until = to_naive_utc(payload.availableUntil)
    _validate_window(available_from, available_until)
    _validate_question_count(len(payload.questions))
    module_title = _resolve_module_title(course, payload.moduleId, payload.moduleTitle)

    quiz = Quiz(
        title=payload.title,
        description=payload.description,
        course_id=course.id,
        module_id=payload.moduleId,
        module_title=module_title,
        duration=payload.duration,
        passing_score=payload.passingScore,
        max_attempts=payload.maxAttempts,
        instructions=payload.instructions,
        tags=list(payload.tags),
        available_from=available_from,
        available_until=available_until,
        schedule_type=payload.scheduleType,
        questions=[_question_document(q) for q in payload.questions],
        is_published=False,
        is_active=payload.isActive,
    )
    quiz.refresh_totals()
    db.add(quiz)
    _commit(db)
    db.refresh(quiz)
    logger.info(f"Created quiz {quiz.id} for course {course.id} with {quiz.total_questions} questions")
    return quiz


def get_quiz(db: Session, quiz_id: str) -> Quiz:
    quiz = db.query(Quiz).filter(Quiz.id == quiz_id).first()
    if not quiz:
        logger.warning(f"Quiz {quiz_id} not found")
        raise NotFound("Quiz not found")
    return quiz


def get_available_quiz(db: Session, quiz_id: str, now: Optional[datetime] = None) -> Quiz:
    """Fetch a quiz only while its derived status is active."""
    quiz = get_quiz(db, quiz_id)
    status = derive_status(quiz, now)
    if status == QuizStatus.expired:
        raise Forbidden("Quiz has expired", {"status": status.value})
    if status != QuizStatus.active:
        raise Forbidden("Quiz is not available", {"status": status.value})
    return quiz


def update_quiz(db: Session, quiz_id: str, payload: QuizUpdate) -> Quiz:
    """
    Apply a partial update.

    Once a published quiz has attempts only the fields in
    ALLOWED_UPDATES_AFTER_ATTEMPTS may change.
    """
    quiz = get_quiz(db, quiz_id)
    patch = payload.model_dump(exclude_unset=True)

    if quiz.is_published and count_attempts(db, quiz.id) > 0:
        restricted = sorted(key for key in patch if key not in ALLOWED_UPDATES_AFTER_ATTEMPTS)
        if restricted:
            logger.warning(f"Rejected update of {restricted} on attempted quiz {quiz.id}")
            raise Forbidden(
                "Cannot update certain fields after quiz has attempts",
                {"restrictedFields": restricted},
            )

    try:
        _apply_patch(db, quiz, patch, payload)
    except QuizServiceError:
        db.rollback()
        raise

    _commit(db)
    db.refresh(quiz)
    logger.info(f"Updated quiz {quiz.id} fields: {sorted(patch)}")
    return quiz


def _apply_patch(db: Session, quiz: Quiz, patch: Dict[str, Any], payload: QuizUpdate) -> None:
    if "availableFrom" in patch or "availableUntil" in patch:
        available_from = to_naive_utc(patch["availableFrom"]) if "availableFrom" in patch else quiz.available_from
        available_until = to_naive_utc(patch["availableUntil"]) if "availableUntil" in patch else quiz.available_until
        _validate_window(available_from, available_until)
        quiz.available_from = available_from
        quiz.available_until = available_until

    relocating = "courseId" in patch or "moduleId" in patch
    if relocating:
        if "courseId" in patch and patch["courseId"] is None:
            raise InvalidArgument("Course ID is required")
        course = get_course(db, patch.get("courseId") or quiz.course_id)
        module_id = patch["moduleId"] if "moduleId" in patch else quiz.module_id
        if "moduleTitle" in patch:
            module_title = patch["moduleTitle"]
        elif "moduleId" in patch:
            module_title = None
        else:
            module_title = quiz.module_title
        quiz.module_title = _resolve_module_title(course, module_id, module_title)
        quiz.course_id = course.id
        quiz.module_id = module_id

    if "questions" in patch:
        questions = [_question_document(q) for q in payload.questions or []]
        _validate_question_count(len(questions))
        if quiz.is_published:
            if not questions:
                raise InvalidArgument("A published quiz must keep at least one question")
            invalid = _invalid_questions(questions)
            if invalid:
                raise InvalidArgument("Some questions are incomplete or invalid", {"invalidQuestions": invalid})
        quiz.questions = questions
        quiz.refresh_totals()

    for field, column in _PLAIN_FIELDS.items():
        if field in patch:
            if field == "moduleTitle" and relocating:
                continue
            value = patch[field]
            if value is None and field in ("title", "duration", "passingScore", "maxAttempts", "scheduleType", "isActive"):
                raise InvalidArgument(f"{field} cannot be null")
            setattr(quiz, column, value)


def delete_quiz(db: Session, quiz_id: str) -> None:
    quiz = get_quiz(db, quiz_id)
    attempts = count_attempts(db, quiz.id)
    if attempts > 0:
        logger.warning(f"Refused to delete quiz {quiz.id} with {attempts} attempts")
        raise Conflict(
            "Cannot delete quiz that has attempts. Archive it instead.",
            {"attemptsCount": attempts},
        )
    db.delete(quiz)
    _commit(db)
    logger.info(f"Deleted quiz {quiz_id}")


def publish_quiz(db: Session, quiz_id: str) -> Quiz:
    quiz = get_quiz(db, quiz_id)
    questions = quiz.questions or []
    if not questions:
        raise InvalidArgument("Cannot publish quiz without questions")

    invalid = _invalid_questions(questions)
    if invalid:
        logger.warning(f"Quiz {quiz.id} has {len(invalid)} incomplete questions, not publishing")
        raise InvalidArgument("Some questions are incomplete or invalid", {"invalidQuestions": invalid})

    quiz.is_published = True
    quiz.published_at = utcnow()
    quiz.refresh_totals()
    _commit(db)
    db.refresh(quiz)
    logger.info(f"Published quiz {quiz.id}")
    return quiz


def add_question(db: Session, quiz_id: str, question) -> Tuple[Quiz, Dict[str, Any]]:
    """Append a complete question to a quiz that has not been attempted yet."""
    quiz = get_quiz(db, quiz_id)
    if quiz.is_published and count_attempts(db, quiz.id) > 0:
        raise Conflict("Cannot add questions to a published quiz that has attempts")

    document = _question_document(question)
    reason = question_problem(document)
    if reason:
        raise InvalidArgument(reason)

    if len(quiz.questions or []) >= MAX_QUESTIONS_PER_QUIZ:
        raise LimitExceeded(f"Maximum {MAX_QUESTIONS_PER_QUIZ} questions allowed per quiz")

    quiz.questions = [*(quiz.questions or []), document]
    quiz.refresh_totals()
    _commit(db)
    db.refresh(quiz)
    logger.info(f"Added question {document['id']} to quiz {quiz.id} ({quiz.total_questions} total)")
    return quiz, document


def _status_condition(status: QuizStatus, now: datetime):
    """SQL counterpart of derive_status for one status value."""
    if status == QuizStatus.disabled:
        return Quiz.is_active.is_(False)
    if status == QuizStatus.draft:
        return and_(Quiz.is_active.is_(True), Quiz.is_published.is_(False))
    live = and_(Quiz.is_active.is_(True), Quiz.is_published.is_(True))
    if status == QuizStatus.scheduled:
        return and_(live, Quiz.available_from > now)
    if status == QuizStatus.expired:
        return and_(
            live,
            Quiz.available_from <= now,
            Quiz.available_until.isnot(None),
            Quiz.available_until < now,
        )
    return and_(
        live,
        Quiz.available_from <= now,
        or_(Quiz.available_until.is_(None), Quiz.available_until >= now),
    )


def _like_pattern(search: str) -> str:
    """Substring LIKE pattern with the user's wildcards taken literally."""
    escaped = search.strip().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def paginate(query: Query, page: int, limit: int) -> Tuple[List[Any], int]:
    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return items, total


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


def list_quizzes(
    db: Session,
    course_id: Optional[str] = None,
    module_id: Optional[str] = None,
    instructor_id: Optional[str] = None,
    is_active: Optional[bool] = None,
    is_published: Optional[bool] = None,
    status: Optional[QuizStatus] = None,
    from_date: Optional[datetime] = None,
    to_date: Optional[datetime] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
    now: Optional[datetime] = None,
) -> Tuple[List[Quiz], int]:
    """All filters combine with AND; newest availability first."""
    now = now or utcnow()
    query = db.query(Quiz)

    if course_id:
        query = query.filter(Quiz.course_id == course_id)
    if module_id:
        query = query.filter(Quiz.module_id == module_id)
    if instructor_id:
        query = query.join(Course, Quiz.course_id == Course.id).filter(Course.instructor_id == instructor_id)
    if is_active is not None:
        query = query.filter(Quiz.is_active.is_(is_active))
    if is_published is not None:
        query = query.filter(Quiz.is_published.is_(is_published))
    if from_date:
        query = query.filter(Quiz.available_from >= to_naive_utc(from_date))
    if to_date:
        query = query.filter(Quiz.available_from <= to_naive_utc(to_date))
    if status:
        query = query.filter(_status_condition(status, now))
    if search:
        pattern = _like_pattern(search)
        query = query.filter(or_(
            Quiz.title.ilike(pattern, escape="\\"),
            Quiz.description.ilike(pattern, escape="\\"),
            Quiz.tags_text.like(pattern.lower(), escape="\\"),
        ))

    query = query.order_by(Quiz.available_from.desc(), Quiz.created_at.desc())
    quizzes, total = paginate(query, page, limit)
    logger.debug(f"Quiz listing matched {total} quizzes (page {page})")
    return quizzes, total


def _open_quizzes(db: Session) -> Query:
    return db.query(Quiz).filter(Quiz.is_active.is_(True), Quiz.is_published.is_(True))


def list_course_quizzes(
    db: Session,
    course_id: str,
    module_id: Optional[str] = None,
    status: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
    now: Optional[datetime] = None,
) -> Tuple[List[Quiz], int, List[Dict[str, Any]]]:
    """Published, active quizzes of a course, soonest first, grouped by module."""
    now = now or utcnow()
    get_course(db, course_id)
    query = _open_quizzes(db).filter(Quiz.course_id == course_id)
    if module_id:
        query = query.filter(Quiz.module_id == module_id)
    if status == "active":
        query = query.filter(
            Quiz.available_from <= now,
            or_(Quiz.available_until.is_(None), Quiz.available_until >= now),
        )
    elif status == "upcoming":
        query = query.filter(Quiz.available_from > now)

    quizzes, total = paginate(query.order_by(Quiz.available_from.asc()), page, limit)

    groups: Dict[str, Dict[str, Any]] = {}
    for quiz in quizzes:
        key = quiz.module_id or "course-wide"
        if key not in groups:
            groups[key] = {
                "moduleId": quiz.module_id,
                "moduleTitle": quiz.module_title or "Course-wide Quizzes",
                "quizzes": [],
            }
        groups[key]["quizzes"].append(quiz)
    return quizzes, total, list(groups.values())


def list_module_quizzes(db: Session, module_id: str, page: int = 1, limit: int = 10) -> Tuple[List[Quiz], int]:
    query = _open_quizzes(db).filter(Quiz.module_id == module_id).order_by(Quiz.available_from.asc())
    return paginate(query, page, limit)


def list_upcoming_quizzes(
    db: Session,
    days: int = 7,
    page: int = 1,
    limit: int = 10,
    now: Optional[datetime] = None,
) -> Tuple[List[Quiz], int, Dict[str, Any]]:
    now = now or utcnow()
    until = now + timedelta(days=days)
    query = _open_quizzes(db).filter(
        Quiz.available_from >= now,
        Quiz.available_from <= until,
    ).order_by(Quiz.available_from.asc())
    quizzes, total = paginate(query, page, limit)
    timeframe = {"from": now.isoformat(), "to": until.isoformat(), "days": days}
    return quizzes, total, timeframe


def quiz_calendar(db: Session, year: int, month: int) -> Dict[str, Any]:
    """Published, active quizzes whose window overlaps the month, keyed by start date."""
    if not 1 <= month <= 12:
        raise InvalidArgument("Month must be between 1 and 12")
    start = datetime(year, month, 1)
    end = datetime(year, month, calendar.monthrange(year, month)[1], 23, 59, 59)

    quizzes = _open_quizzes(db).filter(
        Quiz.available_from <= end,
        or_(Quiz.available_until.is_(None), Quiz.available_until >= start),
    ).order_by(Quiz.available_from.asc()).all()

    days: Dict[str, List[Quiz]] = {}
    for quiz in quizzes:
        days.setdefault(quiz.available_from.date().isoformat(), []).append(quiz)

    return {
        "month": month,
        "year": year,
        "startDate": start.isoformat(),
        "endDate": end.isoformat(),
        "calendar": days,
        "quizzes": quizzes,
    }


def build_quiz_response(quiz: Quiz, now: Optional[datetime] = None) -> QuizResponse:
    """Helper to build QuizResponse with the read-time fields."""
    now = now or utcnow()
    questions = quiz.questions or []
    return QuizResponse(
        id=quiz.id,
        title=quiz.title,
        description=quiz.description,
        courseId=quiz.course_id,
        courseTitle=quiz.course.title if quiz.course else None,
        moduleId=quiz.module_id,
        moduleTitle=quiz.module_title,
        duration=quiz.duration,
        passingScore=quiz.passing_score,
        maxAttempts=quiz.max_attempts,
        instructions=quiz.instructions,
        tags=quiz.tags or [],
        availableFrom=quiz.available_from,
        availableUntil=quiz.available_until,
        scheduleType=getattr(quiz.schedule_type, "value", quiz.schedule_type),
        questions=questions,
        totalQuestions=quiz.total_questions,
        totalPoints=quiz.total_points,
        questionCount=len(questions),
        isPublished=quiz.is_published,
        publishedAt=quiz.published_at,
        isActive=quiz.is_active,
        status=derive_status(quiz, now).value,
        daysRemaining=days_remaining(quiz.available_until, now),
        createdAt=quiz.created_at,
        updatedAt=quiz.updated_at,
    )
