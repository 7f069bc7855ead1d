"""Submission lifecycle: unsubmitted attempt -> submitted -> graded."""

from __future__ import annotations

import logging
import math
import threading
from datetime import timedelta
from enum import Enum

from entities import Submission, utcnow
from errors import AlreadySubmitted, DuplicateDocument, ExamForgeError, NotFound, SessionMissing, ValidationError
from grading import grade
from store import SUBMISSIONS

logger = logging.getLogger(__name__)

UNKNOWN_STUDENT_NAME = "Unknown Student"
UNKNOWN_STUDENT_CODE = "N/A"


def parse_manual_score(value):
    if isinstance(value, bool) or value in (None, ""):
        raise ValidationError("bad_manual_score", field="manual_score")
    try:
        score = float(value)
    except (TypeError, ValueError):
        raise ValidationError("bad_manual_score", field="manual_score")
    if score < 0:
        raise ValidationError("manual_score_must_be_non_negative", field="manual_score")
    return int(score) if score.is_integer() else score


class SubmissionService:
    """Reads and writes submissions through the document store."""

    def __init__(self, store):
        self.store = store

    def get(self, submission_id):
        doc = self.store.get(SUBMISSIONS, submission_id)
        return Submission.from_dict(doc) if doc else None

    def find(self, exam_id, student_id):
        return self.get(Submission.key_for(exam_id, student_id))

    def for_exam(self, exam_id):
        subs = [Submission.from_dict(d) for d in self.store.where(SUBMISSIONS, "exam_id", exam_id)]
        return sorted(subs, key=lambda s: s.submitted_at)

    def for_student(self, student_id):
        subs = [Submission.from_dict(d) for d in self.store.where(SUBMISSIONS, "student_id", student_id)]
        return sorted(subs, key=lambda s: s.submitted_at, reverse=True)

    def submit(self, exam, student, answers, now=None):
        """Score ``answers`` and persist the one submission for (exam, student)."""
        if student is None or not student.id:
            raise SessionMissing()
        answers = {str(k): "" if v is None else str(v) for k, v in (answers or {}).items()}
        try:
            auto_score = grade(exam, answers)
        except Exception:
            # scoring problems must not block the student's hand-in
            logger.exception("Auto-grading failed for exam %s, submitting with score 0", exam.id)
            auto_score = 0
        submission = Submission(
            id=Submission.key_for(exam.id, student.id),
            exam_id=exam.id,
            student_id=student.id,
            student_name=student.name or UNKNOWN_STUDENT_NAME,
            student_code=student.student_code or UNKNOWN_STUDENT_CODE,
            answers=answers,
            auto_score=auto_score,
            manual_score=0,
            total_score=auto_score,
            submitted_at=now or utcnow(),
            graded=False,
        )
        try:
            self.store.create(SUBMISSIONS, submission.id, submission.to_dict())
        except DuplicateDocument:
            raise AlreadySubmitted()
        logger.info("Submission %s stored with auto score %s", submission.id, auto_score)
        return submission

    def record_manual_score(self, submission_id, manual_score):
        """Set the manual component, mark graded, and return the stored result."""
        score = parse_manual_score(manual_score)
        current = self.get(submission_id)
        if current is None:
            raise NotFound("submission_not_found")
        current.apply_manual_score(score)
        self.store.update(SUBMISSIONS, submission_id, {
            "manual_score": current.manual_score,
            "total_score": current.total_score,
            "graded": True,
        })
        return self.get(submission_id)

    def delete_for_exam(self, exam_id):
        removed = 0
        for doc in self.store.where(SUBMISSIONS, "exam_id", exam_id):
            if self.store.delete(SUBMISSIONS, doc["id"]):
                removed += 1
        return removed


def submission_stats(submissions):
    count = len(submissions)
    average = round(sum(s.total_score for s in submissions) / count, 1) if count else 0
    return {
        "count": count,
        "graded": sum(1 for s in submissions if s.graded),
        "average_total": average,
        "chart": [{"name": s.student_name, "score": s.total_score} for s in submissions],
    }


class AttemptState(str, Enum):
    UNSUBMITTED = "unsubmitted"
    SUBMITTED = "submitted"


class ExamAttempt:
    """One student's in-progress sitting of an exam.

    Hand-in can be triggered by the student or by the time limit running out.
    The in-flight flag is set before the store write and cleared only when the
    write fails, so at most one write happens per attempt.
    """

    def __init__(self, exam, student, submit_fn, started_at=None, timer_factory=threading.Timer):
        self.exam = exam
        self.student = student
        self.started_at = started_at or utcnow()
        self.last_activity = self.started_at
        self.answers = {}
        self.state = AttemptState.UNSUBMITTED
        self.submission = None
        self._submit_fn = submit_fn
        self._timer_factory = timer_factory
        self._timer = None
        self._in_flight = False
        self._lock = threading.Lock()

    @property
    def key(self):
        return (self.exam.id, self.student.id)

    @property
    def deadline(self):
        if not self.exam.time_limit_minutes:
            return None
        return self.started_at + timedelta(minutes=self.exam.time_limit_minutes)

    @property
    def in_flight(self):
        return self._in_flight

    def seconds_left(self, now=None):
        """Exact time until the deadline, never negative; None without a time limit."""
        if self.deadline is None:
            return None
        return max(0.0, (self.deadline - (now or utcnow())).total_seconds())

    def remaining_seconds(self, now=None):
        """Whole seconds shown to the student, rounded up."""
        left = self.seconds_left(now)
        return None if left is None else math.ceil(left)

    def clock_stopped(self, now):
        """True when no time limit is still counting down for this attempt."""
        return self.deadline is None or self.deadline <= now

    def record_answers(self, answers):
        with self._lock:
            if self.state is not AttemptState.UNSUBMITTED:
                raise AlreadySubmitted()
            self.last_activity = utcnow()
            for qid, value in (answers or {}).items():
                self.answers[str(qid)] = "" if value is None else str(value)
            return dict(self.answers)

    def submit(self, answers=None, now=None, trigger="manual"):
        with self._lock:
            if self.state is not AttemptState.UNSUBMITTED:
                raise AlreadySubmitted()
            if self._in_flight:
                raise AlreadySubmitted("submission_in_progress")
            for qid, value in (answers or {}).items():
                self.answers[str(qid)] = "" if value is None else str(value)
            self._in_flight = True
            snapshot = dict(self.answers)
        logger.info("Submitting exam %s for student %s (%s)", self.exam.id, self.student.id, trigger)
        try:
            submission = self._submit_fn(self, snapshot, now or utcnow())
        except Exception:
            with self._lock:
                self._in_flight = False
            raise
        with self._lock:
            self.state = AttemptState.SUBMITTED
            self.submission = submission
        self.cancel_timer()
        return submission

    def start_timer(self, now=None):
        remaining = self.seconds_left(now)
        if remaining is None:
            return
        self._timer = self._timer_factory(remaining, self._on_deadline)
        self._timer.daemon = True
        self._timer.start()

    def cancel_timer(self):
        timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()

    def _on_deadline(self):
        try:
            self.submit(trigger="timer")
        except AlreadySubmitted:
            logger.debug("Time ran out for %s but hand-in already happened", self.key)
        except ExamForgeError as e:
            logger.warning("Automatic hand-in for %s failed (%s); student may retry", self.key, e.code)


class AttemptRegistry:
    """Open attempts keyed by (exam id, student id).

    Stale attempts are swept whenever one is looked up or opened: the exam
    window has closed, the attempt sat idle past ``idle_timeout``, or a
    submission for the pair already exists. An attempt with a time limit still
    counting down is never swept.
    """

    def __init__(self, submit_fn, timer_factory=threading.Timer, has_submission=None,
                 idle_timeout=timedelta(hours=6)):
        self._submit_fn = submit_fn
        self._timer_factory = timer_factory
        self._has_submission = has_submission
        self._idle_timeout = idle_timeout
        self._attempts = {}
        self._lock = threading.Lock()

    def __len__(self):
        with self._lock:
            return len(self._attempts)

    def _stale_reason(self, attempt, now):
        if attempt.in_flight or not attempt.clock_stopped(now):
            return None
        valid_until = attempt.exam.valid_until
        if valid_until is not None and valid_until < now:
            return "window_closed"
        if now - attempt.last_activity > self._idle_timeout:
            return "idle"
        return None

    def sweep(self, now=None):
        """Drop stale attempts; returns how many were removed."""
        now = now or utcnow()
        stale = []
        with self._lock:
            for attempt in self._attempts.values():
                reason = self._stale_reason(attempt, now)
                if reason:
                    stale.append((attempt, reason))
        for attempt, reason in stale:
            logger.info("Dropping attempt %s (%s)", attempt.key, reason)
            self.discard(attempt)
        return len(stale)

    def _drop_if_submitted(self, exam_id, student_id):
        if self._has_submission is None:
            return
        with self._lock:
            attempt = self._attempts.get((exam_id, student_id))
        if attempt is not None and not attempt.in_flight and self._has_submission(exam_id, student_id):
            logger.info("Dropping attempt %s (already submitted)", attempt.key)
            self.discard(attempt)

    def start(self, exam, student, now=None):
        """Return the open attempt for this student, opening one if needed."""
        self.sweep(now)
        self._drop_if_submitted(exam.id, student.id)
        with self._lock:
            attempt = self._attempts.get((exam.id, student.id))
            if attempt is not None:
                return attempt
            attempt = ExamAttempt(exam, student, self._finish, started_at=now,
                                  timer_factory=self._timer_factory)
            self._attempts[attempt.key] = attempt
        attempt.start_timer(now)
        return attempt

    def get(self, exam_id, student_id, now=None):
        self.sweep(now)
        self._drop_if_submitted(exam_id, student_id)
        with self._lock:
            return self._attempts.get((exam_id, student_id))

    def discard(self, attempt):
        with self._lock:
            if self._attempts.get(attempt.key) is attempt:
                del self._attempts[attempt.key]
        attempt.cancel_timer()

    def discard_exam(self, exam_id):
        with self._lock:
            stale = [a for key, a in self._attempts.items() if key[0] == exam_id]
        for attempt in stale:
            self.discard(attempt)

    def _finish(self, attempt, answers, now):
        try:
            submission = self._submit_fn(attempt, answers, now)
        except AlreadySubmitted:
            # the pair was submitted elsewhere; this attempt can never succeed
            self.discard(attempt)
            raise
        with self._lock:
            if self._attempts.get(attempt.key) is attempt:
                del self._attempts[attempt.key]
        return submission
