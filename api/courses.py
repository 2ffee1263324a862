# ------------------------------------------
# Course API routes (FastAPI)
# - POST /api/v1/courses      : Registers a course and its modules
# - GET  /api/v1/courses/{id} : Course lookup
# Quizzes reference these courses by id
# ------------------------------------------

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from app.db.database import get_db
from app.schemas.course import CourseCreate
from app.services.course_service import create_course, get_course, build_course_response

router = APIRouter(prefix="/api/v1/courses", tags=["Courses"])

@router.post("", status_code=status.HTTP_201_CREATED)
def create_course_endpoint(payload: CourseCreate, db: Session = Depends(get_db)):
    course = create_course(db, payload)
    return {"success": True, "data": build_course_response(course), "message": "Course created successfully"}

@router.get("/{course_id}")
def get_course_endpoint(course_id: str, db: Session = Depends(get_db)):
    return {"success": True, "data": build_course_response(get_course(db, course_id))}
