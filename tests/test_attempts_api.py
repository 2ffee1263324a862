import pytest
from sqlalchemy.exc import IntegrityError

from app.models.course import Course
from app.models.quiz import AttemptStatus, Quiz, QuizAttempt, utcnow
from app.services import attempt_service
from tests.payloads import choice_question, essay_question, iso, short_question

QUIZZES = "/api/v1/quizzes"


def _start(client, quiz_id, user_id="student-1"):
    return client.post(f"{QUIZZES}/{quiz_id}/attempt", json={"userId": user_id}, headers={"User-Agent": "pytest"})


def _submit(client, quiz_id, answers, user_id="student-1"):
    return client.post(f"{QUIZZES}/{quiz_id}/submit", json={"userId": user_id, "answers": answers})


def test_start_and_submit_half_correct(client, make_quiz):
    quiz = make_quiz(publish=True)
    choice, short = quiz["questions"]

    res = _start(client, quiz["id"])
    assert res.status_code == 201
    body = res.json()
    assert body["data"]["status"] == "in-progress"
    assert body["data"]["attemptNumber"] == 1
    assert body["data"]["userAgent"] == "pytest"
    assert body["quizInfo"]["totalQuestions"] == 2

    res = _submit(client, quiz["id"], [
        {"questionId": choice["id"], "selectedOptions": ["4"], "timeTaken": 10},
        {"questionId": short["id"], "shortAnswer": "London", "timeTaken": 20},
    ])
    assert res.status_code == 200
    body = res.json()
    assert body["summary"] == {
        "score": 1,
        "totalPoints": 2,
        "percentage": 50,
        "isPassed": False,
        "passingScore": 70,
        "correctAnswers": 1,
        "totalQuestions": 2,
        "answeredQuestions": 2,
        "ungradedAnswers": 0,
    }
    attempt = body["data"]
    assert attempt["status"] == "completed"
    assert attempt["timeCompleted"] is not None
    assert [a["isCorrect"] for a in attempt["answers"]] == [True, False]


def test_start_resumes_in_progress_attempt(client, make_quiz):
    quiz = make_quiz(publish=True)
    first = _start(client, quiz["id"])
    second = _start(client, quiz["id"])

    assert second.status_code == 200
    assert second.json()["message"] == "Resuming existing attempt"
    assert second.json()["data"]["id"] == first.json()["data"]["id"]


def test_max_attempts_enforced(client, make_quiz):
    quiz = make_quiz(publish=True, maxAttempts=1)
    _start(client, quiz["id"])
    _submit(client, quiz["id"], [])

    res = _start(client, quiz["id"])
    assert res.status_code == 400
    assert res.json()["error"] == "LimitExceeded"

    # other users are unaffected
    assert _start(client, quiz["id"], user_id="student-2").status_code == 201


def test_attempt_numbers_increase(client, make_quiz):
    quiz = make_quiz(publish=True, maxAttempts=3)
    for expected in (1, 2, 3):
        res = _start(client, quiz["id"])
        assert res.json()["data"]["attemptNumber"] == expected
        _submit(client, quiz["id"], [])


def test_start_requires_available_quiz(client, make_quiz):
    draft = make_quiz()
    res = _start(client, draft["id"])
    assert res.status_code == 403

    expired = make_quiz(publish=True, availableFrom=iso(-3), availableUntil=iso(-1))
    res = _start(client, expired["id"])
    assert res.status_code == 403
    assert res.json()["message"] == "Quiz has expired"

    assert _start(client, "missing").status_code == 404


def test_submit_without_attempt(client, make_quiz):
    quiz = make_quiz(publish=True)
    res = _submit(client, quiz["id"], [])
    assert res.status_code == 404
    assert res.json()["message"] == "No active quiz attempt found"


def test_submitted_attempt_is_final(client, make_quiz):
    quiz = make_quiz(publish=True, maxAttempts=2)
    _start(client, quiz["id"])
    _submit(client, quiz["id"], [])
    assert _submit(client, quiz["id"], []).status_code == 404


def test_essay_answers_are_ungraded(client, make_quiz):
    quiz = make_quiz(publish=True, questions=[choice_question(), essay_question()])
    choice, essay = quiz["questions"]
    _start(client, quiz["id"])
    res = _submit(client, quiz["id"], [
        {"questionId": choice["id"], "selectedOptions": ["4"]},
        {"questionId": essay["id"], "shortAnswer": "Functions calling themselves"},
    ])
    body = res.json()
    assert body["summary"]["ungradedAnswers"] == 1
    assert body["summary"]["score"] == 1
    essay_answer = body["data"]["answers"][1]
    assert essay_answer["isCorrect"] is None
    assert essay_answer["gradingStatus"] == "ungraded"


def test_abandoned_attempt_keeps_its_slot(client, make_quiz):
    quiz = make_quiz(publish=True, maxAttempts=2)
    attempt = _start(client, quiz["id"]).json()["data"]

    res = client.patch(f"{QUIZZES}/attempts/{attempt['id']}/abandon")
    assert res.status_code == 200
    assert res.json()["data"]["status"] == "abandoned"

    res = client.patch(f"{QUIZZES}/attempts/{attempt['id']}/abandon")
    assert res.status_code == 400
    assert res.json()["error"] == "Conflict"

    second = _start(client, quiz["id"]).json()["data"]
    assert second["attemptNumber"] == 2
    assert second["attemptNumber"] <= quiz["maxAttempts"]
    client.patch(f"{QUIZZES}/attempts/{second['id']}/abandon")

    res = _start(client, quiz["id"])
    assert res.status_code == 400
    assert res.json()["error"] == "LimitExceeded"


def test_abandon_counts_toward_single_attempt_limit(client, make_quiz):
    quiz = make_quiz(publish=True, maxAttempts=1)
    attempt = _start(client, quiz["id"]).json()["data"]
    client.patch(f"{QUIZZES}/attempts/{attempt['id']}/abandon")

    res = _start(client, quiz["id"])
    assert res.status_code == 400
    assert res.json()["error"] == "LimitExceeded"


def test_summary_separates_answered_from_total_questions(client, make_quiz):
    quiz = make_quiz(publish=True)
    choice = quiz["questions"][0]
    _start(client, quiz["id"])
    res = _submit(client, quiz["id"], [{"questionId": choice["id"], "selectedOptions": ["4"]}])

    summary = res.json()["summary"]
    assert summary["totalQuestions"] == 2
    assert summary["answeredQuestions"] == 1
    assert summary["totalPoints"] == 2


def test_list_and_get_attempts(client, make_quiz):
    quiz = make_quiz(publish=True)
    other = make_quiz(title="Other", publish=True)
    mine = _start(client, quiz["id"]).json()["data"]
    _start(client, other["id"])
    _start(client, quiz["id"], user_id="student-2")

    res = client.get(f"{QUIZZES}/attempts/my-attempts", params={"userId": "student-1"})
    assert res.json()["total"] == 2

    res = client.get(f"{QUIZZES}/attempts/my-attempts", params={"userId": "student-1", "quizId": quiz["id"]})
    assert [a["id"] for a in res.json()["data"]] == [mine["id"]]
    assert res.json()["data"][0]["quizTitle"] == "Week 1 Quiz"

    res = client.get(f"{QUIZZES}/attempts/{mine['id']}")
    assert res.status_code == 200
    assert res.json()["data"]["userId"] == "student-1"

    assert client.get(f"{QUIZZES}/attempts/missing").status_code == 404


def test_attempted_quiz_is_locked_down(client, make_quiz):
    quiz = make_quiz(publish=True, maxAttempts=2)
    _start(client, quiz["id"])

    res = client.put(f"{QUIZZES}/{quiz['id']}", json={"duration": 90, "title": "New title"})
    assert res.status_code == 403
    assert res.json()["restrictedFields"] == ["duration"]

    res = client.put(f"{QUIZZES}/{quiz['id']}", json={"title": "New title", "availableUntil": iso(10)})
    assert res.status_code == 200
    assert res.json()["data"]["title"] == "New title"

    res = client.post(f"{QUIZZES}/{quiz['id']}/questions", json=short_question())
    assert res.status_code == 400
    assert res.json()["error"] == "Conflict"

    res = client.delete(f"{QUIZZES}/{quiz['id']}")
    assert res.status_code == 400
    assert res.json()["attemptsCount"] == 1


def test_one_in_progress_attempt_per_user_and_quiz(db_session):
    course = Course(title="DB course")
    db_session.add(course)
    db_session.flush()
    quiz = Quiz(title="DB quiz", course_id=course.id, available_from=utcnow(), is_published=True)
    db_session.add(quiz)
    db_session.flush()

    def attempt(number, status=AttemptStatus.in_progress):
        return QuizAttempt(
            quiz_id=quiz.id, user_id="u1", course_id=course.id,
            attempt_number=number, status=status,
        )

    db_session.add_all([attempt(1, AttemptStatus.completed), attempt(2)])
    db_session.commit()

    db_session.add(attempt(3))
    with pytest.raises(IntegrityError):
        db_session.commit()
    db_session.rollback()


def test_concurrent_start_resumes_the_winning_attempt(make_quiz, session_factory, monkeypatch):
    quiz = make_quiz(publish=True, maxAttempts=2)
    find_in_progress = attempt_service._find_in_progress
    winner_ids = []

    def find_then_lose_race(db, quiz_id, user_id):
        if winner_ids:
            return find_in_progress(db, quiz_id, user_id)
        # another request inserts its attempt right after our lookup
        with session_factory() as other:
            winner = QuizAttempt(
                quiz_id=quiz_id, user_id=user_id, course_id=quiz["courseId"],
                attempt_number=1, status=AttemptStatus.in_progress,
            )
            other.add(winner)
            other.commit()
            winner_ids.append(winner.id)
        return None

    monkeypatch.setattr(attempt_service, "_find_in_progress", find_then_lose_race)

    with session_factory() as db:
        attempt, resumed = attempt_service.start_attempt(db, quiz["id"], "student-1")
        assert resumed is True
        assert attempt.id == winner_ids[0]
        assert db.query(QuizAttempt).filter(QuizAttempt.quiz_id == quiz["id"]).count() == 1
