"""
Quiz API Routes
================

FastAPI endpoints for the quiz catalog and quiz analytics.

Endpoints:
- POST   /quizzes                          - Create a draft quiz
- GET    /quizzes                          - Filtered, paginated catalog
- GET    /quizzes/upcoming                 - Quizzes opening in the next N days
- GET    /quizzes/calendar/{year}/{month}  - Quizzes overlapping a month, by start date
- GET    /quizzes/course/{course_id}       - Course quizzes grouped by module
- GET    /quizzes/module/{module_id}       - Quizzes of one module
- GET    /quizzes/{quiz_id}                - Single quiz while it is available
- PUT    /quizzes/{quiz_id}                - Partial update
- DELETE /quizzes/{quiz_id}                - Delete a quiz without attempts
- PATCH  /quizzes/{quiz_id}/publish        - Publish after completeness checks
- POST   /quizzes/{quiz_id}/questions      - Append one question
- GET    /quizzes/{quiz_id}/analytics      - Attempt analytics

Domain errors raised by the services are rendered by the handlers in main.py.
"""

from fastapi import APIRouter, Body, Depends, Path, Query, status
from sqlalchemy.orm import Session
from typing import Any, Dict, List, Optional
from typing_extensions import Annotated
from datetime import datetime
import logging

from app.core.config import DEFAULT_PAGE_SIZE, DEFAULT_UPCOMING_DAYS, MAX_PAGE_SIZE
from app.db.database import get_db
from app.models.quiz import Quiz, QuizStatus, utcnow
from app.schemas.quiz import QuestionUnion, QuizCreate, QuizUpdate
from app.services import quiz_service
from app.services.analytics_service import quiz_analytics

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["Quiz"])


def _page_envelope(quizzes: List[Quiz], total: int, page: int, limit: int) -> Dict[str, Any]:
    now = utcnow()
    return {
        "success": True,
        "count": len(quizzes),
        "total": total,
        "totalPages": quiz_service.total_pages(total, limit),
        "currentPage": page,
        "data": [quiz_service.build_quiz_response(q, now) for q in quizzes],
    }


@router.post("/quizzes", status_code=status.HTTP_201_CREATED)
def create_quiz_endpoint(payload: QuizCreate, db: Session = Depends(get_db)):
    """
    Create a quiz in draft state.

    Raises:
        404: Course not found
        400: Bad dates, unknown module, or more than 30 questions
    """
    quiz = quiz_service.create_quiz(db, payload)
    return {
        "success": True,
        "data": quiz_service.build_quiz_response(quiz),
        "message": "Quiz created successfully",
    }


@router.get("/quizzes")
def list_quizzes_endpoint(
    courseId: Optional[str] = Query(None),
    moduleId: Optional[str] = Query(None),
    instructorId: Optional[str] = Query(None),
    isActive: Optional[bool] = Query(None),
    isPublished: Optional[bool] = Query(None),
    status: Optional[QuizStatus] = Query(None, description="active, scheduled, expired, draft, disabled"),
    fromDate: Optional[datetime] = Query(None),
    toDate: Optional[datetime] = Query(None),
    search: Optional[str] = Query(None, description="Matches title, description or tags"),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
):
    quizzes, total = quiz_service.list_quizzes(
        db,
        course_id=courseId,
        module_id=moduleId,
        instructor_id=instructorId,
        is_active=isActive,
        is_published=isPublished,
        status=status,
        from_date=fromDate,
        to_date=toDate,
        search=search,
        page=page,
        limit=limit,
    )
    return _page_envelope(quizzes, total, page, limit)


@router.get("/quizzes/upcoming")
def upcoming_quizzes_endpoint(
    days: int = Query(DEFAULT_UPCOMING_DAYS, ge=1, le=366),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
):
    quizzes, total, timeframe = quiz_service.list_upcoming_quizzes(db, days=days, page=page, limit=limit)
    response = _page_envelope(quizzes, total, page, limit)
    response["timeframe"] = timeframe
    return response


@router.get("/quizzes/calendar/{year}/{month}")
def quiz_calendar_endpoint(
    year: int = Path(..., ge=1970, le=9999),
    month: int = Path(..., ge=1, le=12),
    db: Session = Depends(get_db),
):
    data = quiz_service.quiz_calendar(db, year, month)
    now = utcnow()
    data["calendar"] = {
        day: [quiz_service.build_quiz_response(q, now) for q in quizzes]
        for day, quizzes in data["calendar"].items()
    }
    data["quizzes"] = [quiz_service.build_quiz_response(q, now) for q in data["quizzes"]]
    return {"success": True, "data": data}


@router.get("/quizzes/course/{course_id}")
def course_quizzes_endpoint(
    course_id: str,
    moduleId: Optional[str] = Query(None),
    status: Optional[str] = Query(None, pattern="^(active|upcoming)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
):
    quizzes, total, groups = quiz_service.list_course_quizzes(
        db, course_id, module_id=moduleId, status=status, page=page, limit=limit
    )
    now = utcnow()
    response = _page_envelope(quizzes, total, page, limit)
    response["groupedByModule"] = [
        {**group, "quizzes": [quiz_service.build_quiz_response(q, now) for q in group["quizzes"]]}
        for group in groups
    ]
    return response


@router.get("/quizzes/module/{module_id}")
def module_quizzes_endpoint(
    module_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
):
    quizzes, total = quiz_service.list_module_quizzes(db, module_id, page=page, limit=limit)
    return _page_envelope(quizzes, total, page, limit)


@router.get("/quizzes/{quiz_id}")
def get_quiz_endpoint(quiz_id: str, db: Session = Depends(get_db)):
    """Return a quiz only while it is active (403 otherwise)."""
    quiz = quiz_service.get_available_quiz(db, quiz_id)
    return {"success": True, "data": quiz_service.build_quiz_response(quiz)}


@router.put("/quizzes/{quiz_id}")
def update_quiz_endpoint(quiz_id: str, payload: QuizUpdate, db: Session = Depends(get_db)):
    quiz = quiz_service.update_quiz(db, quiz_id, payload)
    return {
        "success": True,
        "data": quiz_service.build_quiz_response(quiz),
        "message": "Quiz updated successfully",
    }


@router.delete("/quizzes/{quiz_id}")
def delete_quiz_endpoint(quiz_id: str, db: Session = Depends(get_db)):
    quiz_service.delete_quiz(db, quiz_id)
    return {"success": True, "message": "Quiz deleted successfully"}


@router.patch("/quizzes/{quiz_id}/publish")
def publish_quiz_endpoint(quiz_id: str, db: Session = Depends(get_db)):
    quiz = quiz_service.publish_quiz(db, quiz_id)
    return {
        "success": True,
        "data": quiz_service.build_quiz_response(quiz),
        "message": "Quiz published successfully",
    }


@router.post("/quizzes/{quiz_id}/questions")
def add_question_endpoint(
    quiz_id: str,
    question: Annotated[QuestionUnion, Body(discriminator="type")],
    db: Session = Depends(get_db),
):
    quiz, document = quiz_service.add_question(db, quiz_id, question)
    return {
        "success": True,
        "data": document,
        "message": "Question added successfully",
        "totalQuestions": quiz.total_questions,
        "totalPoints": quiz.total_points,
    }


@router.get("/quizzes/{quiz_id}/analytics")
def quiz_analytics_endpoint(quiz_id: str, db: Session = Depends(get_db)):
    return {"success": True, "data": quiz_analytics(db, quiz_id)}
