# ------------------------------------------
# Course lookup service
# - create_course() : Registers a course with ordered modules
# - get_course()    : Existence lookup used by the quiz catalog
# ------------------------------------------

import logging
import uuid
from sqlalchemy.orm import Session
from app.core.exceptions import NotFound
from app.models.course import Course
from app.schemas.course import CourseCreate, CourseResponse, CourseModuleResponse

logger = logging.getLogger(__name__)

def create_course(db: Session, payload: CourseCreate) -> Course:
    modules = [
        {"id": module.id or str(uuid.uuid4()), "title": module.title}
        for module in payload.modules
    ]
    course = Course(
        title=payload.title,
        code=payload.code,
        instructor_id=payload.instructorId,
        modules=modules,
    )
    db.add(course)
    db.commit()
    db.refresh(course)
    logger.info(f"Created course {course.id} with {len(modules)} modules")
    return course

def get_course(db: Session, course_id: str) -> Course:
    course = db.query(Course).filter(Course.id == course_id).first()
    if not course:
        logger.warning(f"Course {course_id} not found")
        raise NotFound("Course not found")
    return course

def build_course_response(course: Course) -> CourseResponse:
    return CourseResponse(
        id=course.id,
        title=course.title,
        code=course.code,
        instructorId=course.instructor_id,
        modules=[CourseModuleResponse(id=str(m["id"]), title=m["title"]) for m in course.modules or []],
        createdAt=course.created_at,
    )
