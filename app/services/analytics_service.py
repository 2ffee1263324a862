# --------------------------------------------------
# Quiz Analytics Service
#
# Read-only aggregation over every attempt of one quiz:
# - Attempt counts by status and completion rate
# - Score spread and pass rate over completed attempts
# - Completion time spread (seconds)
# - Per-question accuracy, with essay answers reported as ungraded
# Figures are recomputed on every call.
# --------------------------------------------------

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.models.quiz import AttemptStatus, Quiz, QuizAttempt
from app.services.quiz_service import get_quiz
from app.services.scoring import GRADING_UNGRADED

logger = logging.getLogger(__name__)


def _round(value: float) -> float:
    return round(value, 2)


def _average(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0


def _question_stats(quiz: Quiz, completed: List[QuizAttempt]) -> List[Dict[str, Any]]:
    stats = []
    for index, question in enumerate(quiz.questions or []):
        answered = 0
        correct = 0
        ungraded = 0
        for attempt in completed:
            for answer in attempt.answers or []:
                if answer.get("questionIndex") != index:
                    continue
                answered += 1
                if answer.get("gradingStatus") == GRADING_UNGRADED:
                    ungraded += 1
                elif answer.get("isCorrect"):
                    correct += 1
                break

        graded = answered - ungraded
        accuracy: Optional[float] = 0
        if graded:
            accuracy = _round(correct / graded * 100)
        elif ungraded:
            # only essay answers so far; nothing to measure until reviewed
            accuracy = None
        stats.append({
            "questionIndex": index,
            "questionId": question.get("id"),
            "question": (question.get("question") or "")[:50] + "...",
            "type": question.get("type"),
            "totalAttempts": answered,
            "correctAttempts": correct,
            "ungradedAttempts": ungraded,
            "accuracy": accuracy,
        })
    return stats


def quiz_analytics(db: Session, quiz_id: str) -> Dict[str, Any]:
    quiz = get_quiz(db, quiz_id)
    attempts = db.query(QuizAttempt).filter(
        QuizAttempt.quiz_id == quiz.id
    ).order_by(QuizAttempt.created_at.desc()).all()

    def count(status: AttemptStatus) -> int:
        return sum(1 for a in attempts if a.status == status)

    completed = [a for a in attempts if a.status == AttemptStatus.completed]
    total_attempts = len(attempts)
    completed_count = len(completed)

    scores = [a.score for a in completed]
    percentages = [a.percentage for a in completed]
    passing = sum(1 for a in completed if a.is_passed)
    times = [a.time_spent for a in completed if a.time_spent and a.time_spent > 0]

    analytics = {
        "quizInfo": {
            "title": quiz.title,
            "totalQuestions": quiz.total_questions,
            "totalPoints": quiz.total_points,
            "passingScore": quiz.passing_score,
            "duration": quiz.duration,
            "maxAttempts": quiz.max_attempts,
        },
        "overview": {
            "totalAttempts": total_attempts,
            "completedAttempts": completed_count,
            "inProgressAttempts": count(AttemptStatus.in_progress),
            "abandonedAttempts": count(AttemptStatus.abandoned),
            "expiredAttempts": count(AttemptStatus.expired),
            "pendingReviewAttempts": sum(1 for a in completed if a.ungraded_answers),
            "completionRate": _round(completed_count / total_attempts * 100) if total_attempts else 0,
        },
        "scores": {
            "averageScore": _round(_average(scores)),
            "highestScore": max(scores) if scores else 0,
            "lowestScore": min(scores) if scores else 0,
            "averagePercentage": _round(_average(percentages)),
            "passingRate": _round(passing / completed_count * 100) if completed_count else 0,
            "passingAttempts": passing,
            "failingAttempts": completed_count - passing,
        },
        "timing": {
            "averageTime": _round(_average(times)),
            "fastestTime": min(times) if times else 0,
            "slowestTime": max(times) if times else 0,
        },
        "questionStats": _question_stats(quiz, completed),
        "attemptsTimeline": [
            {
                "date": a.time_completed or a.time_started,
                "score": a.score,
                "percentage": a.percentage,
                "status": a.status.value,
            }
            for a in attempts
        ],
    }
    logger.debug(f"Computed analytics for quiz {quiz.id} over {total_attempts} attempts")
    return analytics
