"""Time-window gate deciding whether a student may enter an exam."""

from __future__ import annotations

import time
from enum import Enum

from entities import utcnow
from errors import EntryRejected


class ExamStatus(str, Enum):
    SUBMITTED = "submitted"
    UPCOMING = "upcoming"
    EXPIRED = "expired"
    ACTIVE = "active"


def exam_status(exam, submission, now) -> ExamStatus:
    """A prior submission wins over any time window."""
    if submission is not None:
        return ExamStatus.SUBMITTED
    if exam.valid_from is not None and exam.valid_from > now:
        return ExamStatus.UPCOMING
    if exam.valid_until is not None and exam.valid_until < now:
        return ExamStatus.EXPIRED
    return ExamStatus.ACTIVE


def can_enter(exam, submission, now) -> bool:
    return exam_status(exam, submission, now) is ExamStatus.ACTIVE


def ensure_can_enter(exam, submission, now=None) -> None:
    """Re-check the gate at the moment of entry, whatever a list showed earlier."""
    status = exam_status(exam, submission, now or utcnow())
    if status is not ExamStatus.ACTIVE:
        raise EntryRejected(f"exam_{status.value}", status=status.value)


def status_snapshot(entries, now) -> list[dict]:
    """``entries`` is an iterable of (exam, submission-or-None)."""
    return [{"exam_id": exam.id, "status": exam_status(exam, sub, now).value} for exam, sub in entries]


def status_ticker(load_entries, interval=1.0, clock=utcnow, sleep=time.sleep, limit=None):
    """Yield a fresh status snapshot every ``interval`` seconds.

    ``load_entries`` is called on every tick so newly filed submissions show up.
    """
    ticks = 0
    while limit is None or ticks < limit:
        yield status_snapshot(load_entries(), clock())
        ticks += 1
        if limit is None or ticks < limit:
            sleep(interval)
