import pytest

from grading import grade, score_question
from questions import FillBlank, MultipleChoice, ShortAnswer, TrueFalse, LongAnswer, TRUE_LABEL, FALSE_LABEL


def test_multiple_choice_is_case_sensitive():
    q = MultipleChoice(id="q1", text="?", options=["A", "B", "C", "D"], correct_option_index=1, marks=5)
    assert score_question(q, "B") == 5
    assert score_question(q, "b") == 0
    assert score_question(q, " B") == 0


def test_multiple_choice_with_out_of_range_index_scores_nothing():
    q = MultipleChoice(id="q1", text="?", options=["A", "B"], correct_option_index=7, marks=5)
    assert score_question(q, "A") == 0


def test_true_false_matches_label_exactly():
    q = TrueFalse(id="q1", text="?", correct=False, marks=2)
    assert score_question(q, FALSE_LABEL) == 2
    assert score_question(q, TRUE_LABEL) == 0
    assert score_question(q, FALSE_LABEL.lower()) == 0


def test_fill_blank_trims_and_folds_case_on_both_sides():
    q = FillBlank(id="q1", text="?", expected=" Paris ", marks=3)
    assert score_question(q, "paris") == 3
    assert score_question(q, "  PARIS\n") == 3
    assert score_question(q, "Lyon") == 0


def test_short_answer_keyword_substring():
    q = ShortAnswer(id="q1", text="?", keywords=["mitochondria"], marks=2)
    assert score_question(q, "the MITOCHONDRIA is the powerhouse") == 2
    assert score_question(q, "the nucleus") == 0


def test_short_answer_falls_back_to_expected_text():
    q = ShortAnswer(id="q1", text="?", expected="Photosynthesis", keywords=["chlorophyll"], marks=4)
    assert score_question(q, "photosynthesis") == 4
    assert score_question(q, "uses chlorophyll") == 4
    # exact comparison, no trimming on this path
    assert score_question(q, " photosynthesis") == 0


def test_short_answer_without_key_scores_nothing():
    q = ShortAnswer(id="q1", text="?", marks=4)
    assert score_question(q, "") == 0
    assert score_question(q, "anything") == 0


def test_long_answer_is_never_auto_scored():
    q = LongAnswer(id="q1", text="?", marks=10)
    assert score_question(q, "a thoughtful essay") == 0


def test_grade_sums_questions_and_treats_missing_answers_as_empty(make_exam):
    exam = make_exam()
    answers = {"q-mcq": "B", "q-tf": TRUE_LABEL, "q-fill": "paris",
               "q-short": "Mitochondria!", "q-long": "essay"}
    assert grade(exam, answers) == 5 + 1 + 3 + 2
    assert grade(exam, {"q-mcq": "B"}) == 5
    assert grade(exam, {}) == 0


def test_empty_expected_fill_blank_matches_missing_answer(make_exam):
    exam = make_exam(questions=[FillBlank(id="f", text="?", expected="", marks=1)])
    assert grade(exam, {}) == 1


@pytest.mark.parametrize("exam", [None, object()])
def test_grade_of_missing_or_malformed_exam_is_zero(exam):
    assert grade(exam, {"q": "x"}) == 0


def test_grade_with_no_question_list(make_exam):
    exam = make_exam()
    exam.questions = None
    assert grade(exam, {"q-mcq": "B"}) == 0


def test_grade_is_deterministic(make_exam):
    exam = make_exam()
    answers = {"q-mcq": "B", "q-fill": "PARIS", "q-short": "nothing"}
    scores = {grade(exam, answers) for _ in range(20)}
    assert scores == {8}
    assert answers == {"q-mcq": "B", "q-fill": "PARIS", "q-short": "nothing"}
