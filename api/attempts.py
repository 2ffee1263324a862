"""
Quiz Attempt API Routes
=======================

Endpoints:
- POST  /quizzes/{quiz_id}/attempt             - Start or resume an attempt
- POST  /quizzes/{quiz_id}/submit              - Submit answers and score them
- GET   /quizzes/attempts/my-attempts          - List attempts (userId/quizId/courseId filters)
- GET   /quizzes/attempts/{attempt_id}         - Single attempt
- PATCH /quizzes/attempts/{attempt_id}/abandon - Mark an in-progress attempt abandoned

The user is identified by the userId sent with the request.
"""

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.orm import Session
from typing import Optional
import logging

from app.core.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from app.db.database import get_db
from app.schemas.attempt import AttemptStartRequest, AttemptSubmitRequest
from app.services import attempt_service
from app.services.quiz_service import total_pages

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["Quiz Attempts"])


@router.get("/quizzes/attempts/my-attempts")
def list_attempts_endpoint(
    userId: Optional[str] = Query(None),
    quizId: Optional[str] = Query(None),
    courseId: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
):
    attempts, total = attempt_service.list_attempts(
        db, user_id=userId, quiz_id=quizId, course_id=courseId, page=page, limit=limit
    )
    return {
        "success": True,
        "count": len(attempts),
        "total": total,
        "totalPages": total_pages(total, limit),
        "currentPage": page,
        "data": [attempt_service.build_attempt_response(a) for a in attempts],
    }


@router.get("/quizzes/attempts/{attempt_id}")
def get_attempt_endpoint(attempt_id: str, db: Session = Depends(get_db)):
    attempt = attempt_service.get_attempt(db, attempt_id)
    return {"success": True, "data": attempt_service.build_attempt_response(attempt)}


@router.patch("/quizzes/attempts/{attempt_id}/abandon")
def abandon_attempt_endpoint(attempt_id: str, db: Session = Depends(get_db)):
    attempt = attempt_service.abandon_attempt(db, attempt_id)
    return {
        "success": True,
        "data": attempt_service.build_attempt_response(attempt),
        "message": "Attempt abandoned",
    }


@router.post("/quizzes/{quiz_id}/attempt", status_code=status.HTTP_201_CREATED)
def start_attempt_endpoint(
    quiz_id: str,
    payload: AttemptStartRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
):
    """
    Start a quiz attempt, or resume the user's in-progress one.

    Returns:
        201 with the new attempt, or 200 with the resumed attempt

    Raises:
        404: Quiz not found
        403: Quiz not published, inactive, not yet open or expired
        400: Maximum attempts reached
    """
    attempt, resumed = attempt_service.start_attempt(
        db,
        quiz_id,
        payload.userId,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )
    data = attempt_service.build_attempt_response(attempt)
    if resumed:
        response.status_code = status.HTTP_200_OK
        return {"success": True, "data": data, "message": "Resuming existing attempt"}

    return {
        "success": True,
        "data": data,
        "message": "Quiz attempt started",
        "quizInfo": attempt_service.quiz_info(attempt.quiz),
    }


@router.post("/quizzes/{quiz_id}/submit")
def submit_attempt_endpoint(
    quiz_id: str,
    payload: AttemptSubmitRequest,
    db: Session = Depends(get_db),
):
    attempt, quiz, result = attempt_service.submit_attempt(db, quiz_id, payload.userId, payload.answers)
    return {
        "success": True,
        "data": attempt_service.build_attempt_response(attempt),
        "message": "Quiz submitted successfully",
        "summary": attempt_service.build_attempt_summary(quiz, result),
    }
