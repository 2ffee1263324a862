from app.services.scoring import GRADING_AUTO, GRADING_UNGRADED, score_answers

QUESTIONS = [
    {
        "id": "q1",
        "type": "single-choice",
        "question": "2 + 2?",
        "points": 2,
        "options": [{"text": "3", "isCorrect": False}, {"text": "4", "isCorrect": True}],
    },
    {
        "id": "q2",
        "type": "multiple-choice",
        "question": "Primes?",
        "points": 3,
        "options": [
            {"text": "2", "isCorrect": True},
            {"text": "3", "isCorrect": True},
            {"text": "4", "isCorrect": False},
        ],
    },
    {"id": "q3", "type": "short-answer", "question": "Capital of France?", "points": 1, "correctAnswer": "Paris"},
    {"id": "q4", "type": "true-false", "question": "Water is wet", "points": 1, "correctAnswer": True},
    {"id": "q5", "type": "essay", "question": "Discuss.", "points": 3},
]


def _by_id(result):
    return {a["questionId"]: a for a in result.answers}


def test_all_correct_scores_full_points():
    result = score_answers(QUESTIONS, [
        {"questionId": "q1", "selectedOptions": ["4"]},
        {"questionId": "q2", "selectedOptions": ["3", "2"]},
        {"questionId": "q3", "shortAnswer": "  paris "},
        {"questionId": "q4", "shortAnswer": "TRUE"},
    ], passing_score=50)

    assert result.score == 7
    assert result.total_possible_points == 10
    assert result.percentage == 70.0
    assert result.is_passed is True
    assert result.correct_count == 4
    assert all(a["gradingStatus"] == GRADING_AUTO for a in result.answers)


def test_multiple_choice_has_no_partial_credit():
    result = score_answers(QUESTIONS, [
        {"questionId": "q2", "selectedOptions": ["2"]},
    ], passing_score=50)

    answer = _by_id(result)["q2"]
    assert answer["isCorrect"] is False
    assert answer["pointsEarned"] == 0
    assert result.score == 0


def test_extra_selected_option_is_wrong():
    result = score_answers(QUESTIONS, [
        {"questionId": "q1", "selectedOptions": ["4", "3"]},
    ], passing_score=50)
    assert _by_id(result)["q1"]["isCorrect"] is False


def test_essay_is_ungraded_not_wrong():
    result = score_answers(QUESTIONS, [
        {"questionId": "q5", "shortAnswer": "A long essay"},
    ], passing_score=50)

    answer = _by_id(result)["q5"]
    assert answer["isCorrect"] is None
    assert answer["pointsEarned"] == 0
    assert answer["gradingStatus"] == GRADING_UNGRADED
    assert result.ungraded_count == 1
    assert result.correct_count == 0


def test_unknown_and_repeated_answers():
    result = score_answers(QUESTIONS, [
        {"questionId": "nope", "selectedOptions": ["4"]},
        {"questionId": "q1", "selectedOptions": ["3"]},
        {"questionId": "q1", "selectedOptions": ["4"]},
    ], passing_score=50)

    assert len(result.answers) == 1
    assert result.answers[0]["isCorrect"] is False
    assert result.answers[0]["questionIndex"] == 0


def test_unanswered_questions_still_count_toward_total():
    result = score_answers(QUESTIONS, [], passing_score=0)
    assert result.answers == []
    assert result.total_possible_points == 10
    assert result.percentage == 0


def test_pass_decision_uses_unrounded_percentage():
    questions = [
        {"id": str(i), "type": "short-answer", "question": f"Q{i}", "points": 1, "correctAnswer": "x"}
        for i in range(3)
    ]
    answers = [{"questionId": "0", "shortAnswer": "x"}, {"questionId": "1", "shortAnswer": "x"}]

    result = score_answers(questions, answers, passing_score=66.67)
    assert result.percentage == 66.67
    assert result.is_passed is False


def test_quiz_without_questions_scores_zero():
    result = score_answers([], [{"questionId": "q1"}], passing_score=70)
    assert result.total_possible_points == 0
    assert result.percentage == 0
    assert result.is_passed is False


def test_accepts_objects_with_attributes():
    class Answer:
        questionId = "q3"
        selectedOptions = []
        shortAnswer = "PARIS"
        timeTaken = 12

    result = score_answers(QUESTIONS, [Answer()], passing_score=50)
    assert result.answers[0]["isCorrect"] is True
    assert result.answers[0]["timeTaken"] == 12
