"""Domain records persisted in the document store: users, exams and submissions."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from errors import ValidationError
from questions import Question, question_from_dict, question_to_dict


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_ts(value) -> datetime | None:
    """Parse an ISO-8601 string; naive values are taken as UTC."""
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        ts = value
    else:
        try:
            ts = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            raise ValidationError("bad_timestamp", f"Not an ISO timestamp: {value!r}")
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def format_ts(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


class UserRole(str, Enum):
    TEACHER = "TEACHER"
    STUDENT = "STUDENT"
    ADMIN = "ADMIN"


@dataclass(slots=True)
class UserProfile:
    id: str
    email: str
    name: str
    role: UserRole
    student_code: str | None = None
    teacher_code: str | None = None
    classroom: str | None = None
    created_at: datetime = field(default_factory=utcnow)

    @classmethod
    def from_dict(cls, data: dict) -> "UserProfile":
        return cls(
            id=data["id"],
            email=data.get("email", ""),
            name=data.get("name", ""),
            role=UserRole(data.get("role", UserRole.STUDENT.value)),
            student_code=data.get("student_code"),
            teacher_code=data.get("teacher_code"),
            classroom=data.get("classroom"),
            created_at=parse_ts(data.get("created_at")) or utcnow(),
        )

    def to_dict(self) -> dict:
        doc = {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role.value,
            "created_at": format_ts(self.created_at),
        }
        # optional fields are omitted rather than stored as null
        for key in ("student_code", "teacher_code", "classroom"):
            value = getattr(self, key)
            if value:
                doc[key] = value
        return doc


@dataclass(slots=True)
class Exam:
    id: str
    teacher_id: str
    title: str
    description: str = ""
    subject: str = ""
    questions: list[Question] = field(default_factory=list)
    target_classrooms: list[str] = field(default_factory=list)
    published: bool = False
    time_limit_minutes: int | None = None
    valid_from: datetime | None = None
    valid_until: datetime | None = None
    created_at: datetime = field(default_factory=utcnow)

    @staticmethod
    def new_id() -> str:
        return uuid4().hex

    @classmethod
    def from_dict(cls, data: dict) -> "Exam":
        raw_questions = data.get("questions") or []
        if not isinstance(raw_questions, list):
            raise ValidationError("bad_questions", field="questions")
        time_limit = data.get("time_limit_minutes")
        if time_limit in ("", None):
            time_limit = None
        else:
            try:
                time_limit = int(time_limit)
            except (TypeError, ValueError):
                raise ValidationError("bad_time_limit", field="time_limit_minutes")
        return cls(
            id=str(data.get("id") or cls.new_id()),
            teacher_id=str(data.get("teacher_id") or ""),
            title=str(data.get("title") or ""),
            description=str(data.get("description") or ""),
            subject=str(data.get("subject") or ""),
            questions=[question_from_dict(q, i + 1) for i, q in enumerate(raw_questions)],
            target_classrooms=classroom_labels(data.get("target_classrooms")),
            published=bool(data.get("published", False)),
            time_limit_minutes=time_limit,
            valid_from=parse_ts(data.get("valid_from")),
            valid_until=parse_ts(data.get("valid_until")),
            created_at=parse_ts(data.get("created_at")) or utcnow(),
        )

    def to_dict(self, include_keys: bool = True) -> dict:
        return {
            "id": self.id,
            "teacher_id": self.teacher_id,
            "title": self.title,
            "description": self.description,
            "subject": self.subject,
            "questions": [question_to_dict(q, include_key=include_keys) for q in self.questions],
            "target_classrooms": list(self.target_classrooms),
            "published": self.published,
            "time_limit_minutes": self.time_limit_minutes,
            "valid_from": format_ts(self.valid_from),
            "valid_until": format_ts(self.valid_until),
            "created_at": format_ts(self.created_at),
        }

    def student_view(self) -> dict:
        """Exam document without answer keys."""
        return self.to_dict(include_keys=False)

    @property
    def max_score(self) -> int:
        return sum(q.marks for q in self.questions)


def classroom_labels(value) -> list[str]:
    """Stripped, de-duplicated classroom names; a bare string counts as one."""
    if isinstance(value, str):
        value = [value]
    seen = []
    for label in value or []:
        cleaned = str(label).strip()
        if cleaned and cleaned not in seen:
            seen.append(cleaned)
    return seen


@dataclass(slots=True)
class Submission:
    id: str
    exam_id: str
    student_id: str
    student_name: str
    student_code: str
    answers: dict[str, str]
    auto_score: int = 0
    manual_score: float = 0
    total_score: float = 0
    submitted_at: datetime = field(default_factory=utcnow)
    graded: bool = False

    @staticmethod
    def key_for(exam_id: str, student_id: str) -> str:
        """One submission per (exam, student): the key is derived from both ids."""
        return f"{exam_id}:{student_id}"

    def apply_manual_score(self, manual_score: float) -> None:
        self.manual_score = manual_score
        self.total_score = self.auto_score + manual_score
        self.graded = True

    @classmethod
    def from_dict(cls, data: dict) -> "Submission":
        auto = data.get("auto_score") or 0
        manual = data.get("manual_score") or 0
        return cls(
            id=data["id"],
            exam_id=data["exam_id"],
            student_id=data["student_id"],
            student_name=data.get("student_name", ""),
            student_code=data.get("student_code", ""),
            answers=dict(data.get("answers") or {}),
            auto_score=auto,
            manual_score=manual,
            total_score=auto + manual,
            submitted_at=parse_ts(data.get("submitted_at")) or utcnow(),
            graded=bool(data.get("graded", False)),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "exam_id": self.exam_id,
            "student_id": self.student_id,
            "student_name": self.student_name,
            "student_code": self.student_code,
            "answers": dict(self.answers),
            "auto_score": self.auto_score,
            "manual_score": self.manual_score,
            "total_score": self.total_score,
            "submitted_at": format_ts(self.submitted_at),
            "graded": self.graded,
        }
