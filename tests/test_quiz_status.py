from datetime import datetime, timedelta

import pytest

from app.models.quiz import Quiz, QuizStatus
from app.services.quiz_service import days_remaining, derive_status, question_problem

NOW = datetime(2030, 6, 15, 12, 0, 0)


def _quiz(is_active=True, is_published=True, starts=-1, ends=None):
    return Quiz(
        is_active=is_active,
        is_published=is_published,
        available_from=NOW + timedelta(days=starts),
        available_until=NOW + timedelta(days=ends) if ends is not None else None,
    )


@pytest.mark.parametrize("quiz, expected", [
    (_quiz(is_active=False, is_published=False, ends=-0.5), QuizStatus.disabled),
    (_quiz(is_published=False, starts=3), QuizStatus.draft),
    (_quiz(starts=3, ends=5), QuizStatus.scheduled),
    (_quiz(starts=-5, ends=-1), QuizStatus.expired),
    (_quiz(starts=-1, ends=1), QuizStatus.active),
    (_quiz(starts=-1), QuizStatus.active),
])
def test_status_precedence(quiz, expected):
    assert derive_status(quiz, NOW) == expected


def test_window_bounds_are_inclusive():
    quiz = Quiz(is_active=True, is_published=True, available_from=NOW, available_until=NOW)
    assert derive_status(quiz, NOW) == QuizStatus.active


def test_days_remaining():
    assert days_remaining(None, NOW) is None
    assert days_remaining(NOW - timedelta(hours=1), NOW) == 0
    assert days_remaining(NOW + timedelta(days=1, hours=12), NOW) == 2
    assert days_remaining(NOW + timedelta(days=3), NOW) == 3


def test_question_problem_by_type():
    assert question_problem({"type": "single-choice", "options": [{"text": "a", "isCorrect": True}]})
    assert question_problem({
        "type": "multiple-choice",
        "options": [{"text": "a"}, {"text": "b"}],
    }) == "Choice questions require at least one correct option"
    assert question_problem({
        "type": "single-choice",
        "options": [{"text": "a", "isCorrect": True}, {"text": "b"}],
    }) is None
    assert question_problem({"type": "true-false", "correctAnswer": "False"}) is None
    assert question_problem({"type": "true-false", "correctAnswer": "maybe"})
    assert question_problem({"type": "short-answer", "correctAnswer": "  "})
    assert question_problem({"type": "essay"}) is None
    assert question_problem({"type": "matching"}) == "Invalid question type"
