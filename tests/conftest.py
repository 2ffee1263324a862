import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app import models  # noqa: F401
from app.db.database import Base, get_db
from main import create_app
from tests.payloads import choice_question, iso, short_question


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(session_factory):
    app = create_app(init_database=False)

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


@pytest.fixture()
def course(client):
    res = client.post("/api/v1/courses", json={
        "title": "Intro to Programming",
        "code": "CS101",
        "instructorId": "instructor-1",
        "modules": [{"title": "Basics"}, {"title": "Recursion"}],
    })
    assert res.status_code == 201
    return res.json()["data"]


@pytest.fixture()
def make_quiz(client, course):
    """Create a quiz through the API; publish=True also publishes it."""

    def _make(publish=False, **overrides):
        payload = {
            "title": "Week 1 Quiz",
            "courseId": course["id"],
            "availableFrom": iso(-1),
            "passingScore": 70,
            "maxAttempts": 1,
            "questions": [choice_question(), short_question()],
        }
        payload.update(overrides)
        res = client.post("/api/v1/quizzes", json=payload)
        assert res.status_code == 201, res.text
        quiz = res.json()["data"]
        if publish:
            res = client.patch(f"/api/v1/quizzes/{quiz['id']}/publish")
            assert res.status_code == 200, res.text
            quiz = res.json()["data"]
        return quiz

    return _make
