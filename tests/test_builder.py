import pytest

from builder import build_exam, validate_exam
from errors import ValidationError
from questions import LongAnswer, MultipleChoice, QuestionType, new_question

from conftest import ts


def _valid_payload():
    return {
        "title": "Algebra quiz",
        "subject": "Maths",
        "target_classrooms": ["10A", "10B"],
        "questions": [
            {"type": "MCQ", "text": "2+2?", "options": ["3", "4"], "correct_option_index": 1, "marks": 2},
            {"type": "LONG_ANSWER", "text": "Explain", "marks": 5},
        ],
    }


def _code(exam):
    with pytest.raises(ValidationError) as excinfo:
        validate_exam(exam)
    return excinfo.value


def test_valid_exam_passes(make_exam):
    validate_exam(make_exam())


@pytest.mark.parametrize("field, value, code", [
    ("title", "   ", "missing_title"),
    ("subject", "", "missing_subject"),
    ("target_classrooms", [], "missing_classroom"),
    ("questions", [], "no_questions"),
])
def test_required_fields(make_exam, field, value, code):
    assert _code(make_exam(**{field: value})).code == code


def test_first_violation_wins(make_exam):
    err = _code(make_exam(title="", subject="", target_classrooms=[], questions=[]))
    assert err.code == "missing_title"


def test_reports_lowest_question_index_without_text(make_exam):
    questions = [
        LongAnswer(id="1", text="fine"),
        LongAnswer(id="2", text="  "),
        LongAnswer(id="3", text=""),
    ]
    err = _code(make_exam(questions=questions))
    assert err.code == "question_text_empty"
    assert err.details["question"] == 2
    assert "Question 2" in err.message


def test_mcq_invariants(make_exam):
    one_option = MultipleChoice(id="m", text="?", options=["only"], correct_option_index=0)
    assert _code(make_exam(questions=[one_option])).code == "question_too_few_options"
    bad_index = MultipleChoice(id="m", text="?", options=["a", "b"], correct_option_index=2)
    assert _code(make_exam(questions=[bad_index])).code == "question_bad_correct_option"


def test_marks_must_be_positive(make_exam):
    err = _code(make_exam(questions=[LongAnswer(id="l", text="?", marks=0)]))
    assert err.code == "question_marks_not_positive"
    assert err.details["question"] == 1


def test_time_window_must_be_ordered(make_exam):
    err = _code(make_exam(valid_from=ts(2026, 1, 2), valid_until=ts(2026, 1, 1)))
    assert err.code == "bad_time_window"


def test_time_limit_must_be_positive(make_exam):
    assert _code(make_exam(time_limit_minutes=0)).code == "bad_time_limit"


def test_new_mcq_has_four_empty_options():
    q = new_question("mcq")
    assert q.type is QuestionType.MCQ
    assert q.options == ["", "", "", ""]
    assert q.correct_option_index == 0
    assert q.text == ""
    assert q.marks == 1


def test_unknown_question_type_is_rejected():
    with pytest.raises(ValidationError):
        new_question("ESSAY_PLUS")


@pytest.mark.parametrize("publish", [False, True])
def test_draft_and_publish_share_validation(publish):
    payload = _valid_payload()
    payload["questions"][1]["text"] = ""
    with pytest.raises(ValidationError) as excinfo:
        build_exam(payload, "teacher-1", publish=publish)
    assert excinfo.value.details["question"] == 2


def test_build_exam_sets_owner_and_flag():
    exam = build_exam(_valid_payload(), "teacher-1", publish=True)
    assert exam.teacher_id == "teacher-1"
    assert exam.published is True
    assert exam.target_classrooms == ["10A", "10B"]
    assert exam.max_score == 7


def test_replace_keeps_identity_and_creation_time():
    original = build_exam(_valid_payload(), "teacher-1", publish=False)
    payload = _valid_payload()
    payload["title"] = "Algebra quiz v2"
    payload["id"] = "forged"
    payload["created_at"] = "2001-01-01T00:00:00+00:00"
    updated = build_exam(payload, "teacher-1", publish=False, existing=original)
    assert updated.id == original.id
    assert updated.created_at == original.created_at
    assert updated.title == "Algebra quiz v2"


def test_bad_marks_value_is_rejected():
    payload = _valid_payload()
    payload["questions"][0]["marks"] = "lots"
    with pytest.raises(ValidationError) as excinfo:
        build_exam(payload, "teacher-1", publish=False)
    assert excinfo.value.code == "bad_marks"


@pytest.mark.parametrize("field, value, code", [
    ("title", "", "missing_title"),
    ("subject", "  ", "missing_subject"),
    ("target_classrooms", [" "], "missing_classroom"),
])
def test_missing_exam_fields_reported_before_bad_question_values(field, value, code):
    payload = _valid_payload()
    payload[field] = value
    payload["questions"][0]["marks"] = "abc"
    payload["questions"][1]["type"] = "ESSAY"
    with pytest.raises(ValidationError) as excinfo:
        build_exam(payload, "teacher-1", publish=False)
    assert excinfo.value.code == code


def test_bare_classroom_string_counts_as_one_classroom():
    payload = _valid_payload()
    payload["target_classrooms"] = " 10A "
    exam = build_exam(payload, "teacher-1", publish=True)
    assert exam.target_classrooms == ["10A"]
