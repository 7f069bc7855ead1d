import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest


PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app import create_app
from entities import Exam, UserProfile, UserRole
from questions import FillBlank, LongAnswer, MultipleChoice, ShortAnswer, TrueFalse
from store import MemoryDocumentStore


ADMIN_EMAIL = "head@school.test"


class FakeTimer:
    """Stands in for threading.Timer; fires only when the test says so."""

    created = []

    def __init__(self, interval, function):
        self.interval = interval
        self.function = function
        self.daemon = False
        self.started = False
        self.cancelled = False
        FakeTimer.created.append(self)

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        self.function()


def ts(*args):
    return datetime(*args, tzinfo=timezone.utc)


def sample_questions():
    return [
        MultipleChoice(id="q-mcq", text="Pick B", options=["A", "B", "C", "D"], correct_option_index=1, marks=5),
        TrueFalse(id="q-tf", text="The sky is blue", correct=True, marks=1),
        FillBlank(id="q-fill", text="Capital of France", expected=" Paris ", marks=3),
        ShortAnswer(id="q-short", text="Powerhouse of the cell", keywords=["mitochondria"], marks=2),
        LongAnswer(id="q-long", text="Discuss", marks=10),
    ]


@pytest.fixture
def make_exam():
    def _make(**overrides):
        fields = dict(
            id="exam-1",
            teacher_id="teacher-1",
            title="Biology midterm",
            subject="Biology",
            questions=sample_questions(),
            target_classrooms=["10A"],
            published=True,
        )
        fields.update(overrides)
        return Exam(**fields)
    return _make


@pytest.fixture
def student():
    return UserProfile(id="student-1", email="sara@school.test", name="Sara", role=UserRole.STUDENT,
                       student_code="ST-7", classroom="10A")


@pytest.fixture
def memory_store():
    return MemoryDocumentStore()


@pytest.fixture
def app():
    FakeTimer.created = []
    application = create_app(
        {
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": "sqlite://",
            "ADMIN_EMAIL": ADMIN_EMAIL,
            "STATUS_TICK_SECONDS": 0,
        },
        timer_factory=FakeTimer,
    )
    yield application


def register(client, email, role="STUDENT", name=None, password="secret", **extra):
    body = {"email": email, "password": password, "name": name or email.split("@")[0], "role": role}
    body.update(extra)
    return client.post("/api/auth/register", json=body)


@pytest.fixture
def teacher_client(app):
    client = app.test_client()
    resp = register(client, "mr.k@school.test", role="TEACHER", name="Mr K", teacher_code="717788")
    assert resp.status_code == 201
    return client


@pytest.fixture
def student_client(app):
    client = app.test_client()
    resp = register(client, "sara@school.test", role="STUDENT", name="Sara", student_code="ST-7", classroom="10A")
    assert resp.status_code == 201
    return client


@pytest.fixture
def admin_client(app):
    client = app.test_client()
    resp = register(client, ADMIN_EMAIL, name="Head")
    assert resp.status_code == 201
    return client
