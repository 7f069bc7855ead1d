"""Structural checks run before an exam is saved or published.

Drafts and published exams go through the same rules. Only the first failing
rule is reported; question problems carry the 1-based question number.
"""

from __future__ import annotations

from entities import Exam, classroom_labels, utcnow
from errors import ValidationError
from questions import MultipleChoice


def _check_header(title: str, subject: str, classrooms: list[str], question_count: int) -> None:
    if not title.strip():
        raise ValidationError("missing_title", "Title is required.", field="title")
    if not subject.strip():
        raise ValidationError("missing_subject", "Subject is required.", field="subject")
    if not classrooms:
        raise ValidationError("missing_classroom", "Add at least one classroom.", field="target_classrooms")
    if not question_count:
        raise ValidationError("no_questions", "Add at least one question.", field="questions")


def validate_exam(exam: Exam) -> None:
    _check_header(exam.title, exam.subject, exam.target_classrooms, len(exam.questions))

    for number, question in enumerate(exam.questions, start=1):
        if not question.text.strip():
            raise ValidationError("question_text_empty", f"Question {number} has no text.",
                                  field="text", question=number)

    for number, question in enumerate(exam.questions, start=1):
        if question.marks <= 0:
            raise ValidationError("question_marks_not_positive", f"Question {number} must be worth at least 1 mark.",
                                  field="marks", question=number)
        if isinstance(question, MultipleChoice):
            if len(question.options) < 2:
                raise ValidationError("question_too_few_options", f"Question {number} needs at least two options.",
                                      field="options", question=number)
            if not 0 <= question.correct_option_index < len(question.options):
                raise ValidationError("question_bad_correct_option",
                                      f"Question {number} marks a correct option that does not exist.",
                                      field="correct_option_index", question=number)

    if exam.time_limit_minutes is not None and exam.time_limit_minutes <= 0:
        raise ValidationError("bad_time_limit", "Time limit must be a positive number of minutes.",
                              field="time_limit_minutes")
    if exam.valid_from and exam.valid_until and not exam.valid_from < exam.valid_until:
        raise ValidationError("bad_time_window", "The exam must open before it closes.", field="valid_until")


def build_exam(data: dict, teacher_id: str, publish: bool, existing: Exam | None = None) -> Exam:
    """Parse and validate an exam submitted by the builder.

    When ``existing`` is given this is a full replace: identity, owner and
    creation time are kept from the stored exam.
    """
    data = data or {}
    # header rules come first, before any question has to parse
    raw_questions = data.get("questions") or []
    _check_header(
        str(data.get("title") or ""),
        str(data.get("subject") or ""),
        classroom_labels(data.get("target_classrooms")),
        len(raw_questions) if isinstance(raw_questions, list) else 1,
    )
    exam = Exam.from_dict(data)
    exam.teacher_id = teacher_id
    exam.published = bool(publish)
    if existing is not None:
        exam.id = existing.id
        exam.teacher_id = existing.teacher_id
        exam.created_at = existing.created_at
    else:
        exam.id = Exam.new_id()
        exam.created_at = utcnow()
    validate_exam(exam)
    return exam
