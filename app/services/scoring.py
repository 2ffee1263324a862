"""
Scoring Engine
==============

Pure scoring of a submitted answer set against a quiz's questions.

Rules:
- single/multiple-choice: the set of selected option texts must equal the set
  of option texts marked correct (order-independent, no partial credit)
- true-false / short-answer: trimmed, case-insensitive text equality
- essay: never auto-scored; recorded as "ungraded" with no correctness value

Questions without a submitted answer are left out of the answer list but
their points still count toward the total possible points.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from app.models.quiz import CHOICE_TYPES, QuestionType

logger = logging.getLogger(__name__)

GRADING_AUTO = "auto"
GRADING_UNGRADED = "ungraded"


@dataclass
class ScoreResult:
    """Outcome of scoring one submission."""

    answers: List[Dict[str, Any]] = field(default_factory=list)
    score: float = 0
    total_possible_points: int = 0
    percentage: float = 0.0
    is_passed: bool = False
    ungraded_count: int = 0

    @property
    def correct_count(self) -> int:
        return sum(1 for a in self.answers if a["isCorrect"] is True)


def normalize_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip().lower()


def _field(answer: Any, name: str, default: Any = None) -> Any:
    if isinstance(answer, Mapping):
        return answer.get(name, default)
    return getattr(answer, name, default)


def _choice_is_correct(question: Mapping[str, Any], selected: Iterable[str]) -> bool:
    correct = {opt.get("text") for opt in question.get("options") or [] if opt.get("isCorrect")}
    return set(selected or []) == correct


def _text_is_correct(question: Mapping[str, Any], submitted: Optional[str]) -> bool:
    expected = question.get("correctAnswer")
    if submitted is None or expected is None:
        return False
    return normalize_text(submitted) == normalize_text(expected)


def score_answers(
    questions: List[Mapping[str, Any]],
    submitted: Iterable[Any],
    passing_score: float,
) -> ScoreResult:
    """
    Score submitted answers against quiz questions.

    Args:
        questions: Quiz question documents, in quiz order
        submitted: Answers with questionId, selectedOptions, shortAnswer, timeTaken
            (dicts or objects exposing those attributes)
        passing_score: Percentage threshold for is_passed

    Returns:
        ScoreResult with per-question AttemptAnswer dicts and totals
    """
    by_id = {str(q.get("id")): (index, q) for index, q in enumerate(questions)}
    result = ScoreResult(total_possible_points=sum(int(q.get("points") or 1) for q in questions))
    seen = set()

    for answer in submitted:
        question_id = str(_field(answer, "questionId"))
        if question_id not in by_id:
            logger.debug(f"Skipping answer for unknown question {question_id}")
            continue
        if question_id in seen:
            logger.debug(f"Ignoring repeated answer for question {question_id}")
            continue
        seen.add(question_id)

        index, question = by_id[question_id]
        points = int(question.get("points") or 1)
        selected = list(_field(answer, "selectedOptions", None) or [])
        short_answer = _field(answer, "shortAnswer")
        grading_status = GRADING_AUTO

        if question.get("type") in CHOICE_TYPES:
            is_correct = _choice_is_correct(question, selected)
        elif question.get("type") == QuestionType.essay.value:
            is_correct = None
            grading_status = GRADING_UNGRADED
            result.ungraded_count += 1
        else:
            is_correct = _text_is_correct(question, short_answer)

        points_earned = points if is_correct else 0
        result.score += points_earned
        result.answers.append({
            "questionId": question_id,
            "questionIndex": index,
            "selectedOptions": selected,
            "shortAnswer": short_answer,
            "isCorrect": is_correct,
            "pointsEarned": points_earned,
            "timeTaken": int(_field(answer, "timeTaken", 0) or 0),
            "gradingStatus": grading_status,
        })

    if result.total_possible_points > 0:
        raw_percentage = result.score / result.total_possible_points * 100
    else:
        raw_percentage = 0.0
    result.percentage = round(raw_percentage, 2)
    result.is_passed = raw_percentage >= passing_score
    return result
