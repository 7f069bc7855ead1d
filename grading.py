"""Automatic scoring of submitted answers."""

from __future__ import annotations

from questions import FillBlank, LongAnswer, MultipleChoice, ShortAnswer, TrueFalse


def score_question(question, answer: str) -> int:
    """Full marks or nothing for one question. Long answers always score 0."""
    answer = answer or ""
    if isinstance(question, MultipleChoice):
        correct = question.correct_option
        return question.marks if correct is not None and answer == correct else 0
    if isinstance(question, TrueFalse):
        return question.marks if answer == question.correct_label else 0
    if isinstance(question, FillBlank):
        expected = (question.expected or "").strip().lower()
        return question.marks if answer.strip().lower() == expected else 0
    if isinstance(question, ShortAnswer):
        lowered = answer.lower()
        if question.keywords and any(k.lower() in lowered for k in question.keywords):
            return question.marks
        if question.expected and lowered == question.expected.lower():
            return question.marks
        return 0
    if isinstance(question, LongAnswer):
        return 0
    return 0


def grade(exam, answers: dict | None) -> int:
    """Sum of per-question scores. Missing answers count as empty strings.

    An absent exam or one without a question list scores 0.
    """
    questions = getattr(exam, "questions", None) if exam is not None else None
    if not questions:
        return 0
    answers = answers or {}
    return sum(score_question(q, answers.get(q.id) or "") for q in questions)
