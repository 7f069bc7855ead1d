"""Question variants that make up an exam."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from uuid import uuid4

from errors import ValidationError

TRUE_LABEL = "True"
FALSE_LABEL = "False"

DEFAULT_MARKS = 1
DEFAULT_MCQ_OPTION_COUNT = 4


class QuestionType(str, Enum):
    MCQ = "MCQ"
    TRUE_FALSE = "TRUE_FALSE"
    FILL_BLANK = "FILL_BLANK"
    SHORT_ANSWER = "SHORT_ANSWER"
    LONG_ANSWER = "LONG_ANSWER"


def new_question_id() -> str:
    return uuid4().hex


@dataclass(slots=True)
class MultipleChoice:
    id: str
    text: str
    options: list[str]
    correct_option_index: int = 0
    marks: int = DEFAULT_MARKS
    type: QuestionType = field(default=QuestionType.MCQ, init=False)

    @property
    def correct_option(self) -> str | None:
        if 0 <= self.correct_option_index < len(self.options):
            return self.options[self.correct_option_index]
        return None


@dataclass(slots=True)
class TrueFalse:
    id: str
    text: str
    correct: bool = True
    marks: int = DEFAULT_MARKS
    type: QuestionType = field(default=QuestionType.TRUE_FALSE, init=False)

    @property
    def correct_label(self) -> str:
        return TRUE_LABEL if self.correct else FALSE_LABEL


@dataclass(slots=True)
class FillBlank:
    id: str
    text: str
    expected: str = ""
    marks: int = DEFAULT_MARKS
    type: QuestionType = field(default=QuestionType.FILL_BLANK, init=False)


@dataclass(slots=True)
class ShortAnswer:
    id: str
    text: str
    expected: str | None = None
    keywords: list[str] = field(default_factory=list)
    marks: int = DEFAULT_MARKS
    type: QuestionType = field(default=QuestionType.SHORT_ANSWER, init=False)


@dataclass(slots=True)
class LongAnswer:
    """Free-text answer, graded by hand only."""

    id: str
    text: str
    marks: int = DEFAULT_MARKS
    type: QuestionType = field(default=QuestionType.LONG_ANSWER, init=False)


Question = MultipleChoice | TrueFalse | FillBlank | ShortAnswer | LongAnswer


def new_question(question_type: QuestionType | str) -> Question:
    """Return a blank question of the given type with builder defaults."""
    qtype = _parse_type(question_type)
    qid = new_question_id()
    if qtype is QuestionType.MCQ:
        return MultipleChoice(id=qid, text="", options=[""] * DEFAULT_MCQ_OPTION_COUNT, correct_option_index=0)
    if qtype is QuestionType.TRUE_FALSE:
        return TrueFalse(id=qid, text="")
    if qtype is QuestionType.FILL_BLANK:
        return FillBlank(id=qid, text="")
    if qtype is QuestionType.SHORT_ANSWER:
        return ShortAnswer(id=qid, text="")
    return LongAnswer(id=qid, text="")


def _parse_type(value) -> QuestionType:
    try:
        return QuestionType(str(value).upper())
    except ValueError:
        raise ValidationError("unknown_question_type", f"Unknown question type: {value!r}", field="type")


def _parse_int(value, name: str, position: int | None) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    raise ValidationError(f"bad_{name}", field=name, question=position)


def _parse_tf(data: dict) -> bool:
    if "correct" in data and isinstance(data["correct"], bool):
        return data["correct"]
    label = data.get("correct_answer", TRUE_LABEL)
    if label not in (TRUE_LABEL, FALSE_LABEL):
        raise ValidationError("bad_true_false_answer", field="correct_answer")
    return label == TRUE_LABEL


def question_from_dict(data: dict, position: int | None = None) -> Question:
    """Build a question from its JSON document.

    Only shape is checked here; content rules (non-empty text, positive marks,
    option index range) belong to ``builder.validate_exam``.
    """
    if not isinstance(data, dict):
        raise ValidationError("bad_question", field="questions", question=position)
    qtype = _parse_type(data.get("type"))
    qid = str(data.get("id") or new_question_id())
    text = str(data.get("text") or "")
    marks = _parse_int(data.get("marks", DEFAULT_MARKS), "marks", position)

    if qtype is QuestionType.MCQ:
        options = data.get("options") or []
        if not isinstance(options, list):
            raise ValidationError("bad_options", field="options", question=position)
        index = _parse_int(data.get("correct_option_index", 0), "correct_option_index", position)
        return MultipleChoice(id=qid, text=text, options=[str(o) for o in options],
                              correct_option_index=index, marks=marks)
    if qtype is QuestionType.TRUE_FALSE:
        return TrueFalse(id=qid, text=text, correct=_parse_tf(data), marks=marks)
    if qtype is QuestionType.FILL_BLANK:
        return FillBlank(id=qid, text=text, expected=str(data.get("correct_answer") or ""), marks=marks)
    if qtype is QuestionType.SHORT_ANSWER:
        keywords = data.get("keywords") or []
        if not isinstance(keywords, list):
            raise ValidationError("bad_keywords", field="keywords", question=position)
        expected = data.get("correct_answer")
        return ShortAnswer(id=qid, text=text, expected=str(expected) if expected else None,
                           keywords=[str(k) for k in keywords if str(k)], marks=marks)
    return LongAnswer(id=qid, text=text, marks=marks)


def question_to_dict(question: Question, include_key: bool = True) -> dict:
    """Serialize a question. ``include_key=False`` drops answer keys for students."""
    doc = {"id": question.id, "type": question.type.value, "text": question.text, "marks": question.marks}
    if isinstance(question, MultipleChoice):
        doc["options"] = list(question.options)
        if include_key:
            doc["correct_option_index"] = question.correct_option_index
    elif isinstance(question, TrueFalse):
        doc["options"] = [TRUE_LABEL, FALSE_LABEL]
        if include_key:
            doc["correct_answer"] = question.correct_label
    elif isinstance(question, FillBlank):
        if include_key:
            doc["correct_answer"] = question.expected
    elif isinstance(question, ShortAnswer):
        if include_key:
            doc["correct_answer"] = question.expected
            doc["keywords"] = list(question.keywords)
    return doc
