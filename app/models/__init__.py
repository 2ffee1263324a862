from .course import Course
from .quiz import Quiz, QuizAttempt, QuestionType, ScheduleType, QuizStatus, AttemptStatus

__all__ = [
    "Course",
    "Quiz", "QuizAttempt", "QuestionType", "ScheduleType", "QuizStatus", "AttemptStatus",
]
