"""Exam persistence: builder saves, publishing, lookups and deletion."""

from __future__ import annotations

import logging

from builder import build_exam
from entities import Exam
from errors import Forbidden, NotFound
from store import EXAMS

logger = logging.getLogger(__name__)


class ExamService:
    def __init__(self, store, submissions, attempts=None):
        self.store = store
        self.submissions = submissions
        self.attempts = attempts

    def get(self, exam_id):
        doc = self.store.get(EXAMS, exam_id)
        return Exam.from_dict(doc) if doc else None

    def require(self, exam_id):
        exam = self.get(exam_id)
        if exam is None:
            raise NotFound("exam_not_found")
        return exam

    def require_owned(self, exam_id, teacher_id):
        exam = self.require(exam_id)
        if exam.teacher_id != teacher_id:
            raise Forbidden()
        return exam

    def all(self):
        exams = [Exam.from_dict(d) for d in self.store.all(EXAMS)]
        return sorted(exams, key=lambda e: e.created_at, reverse=True)

    def for_teacher(self, teacher_id):
        exams = [Exam.from_dict(d) for d in self.store.where(EXAMS, "teacher_id", teacher_id)]
        return sorted(exams, key=lambda e: e.created_at, reverse=True)

    def for_classroom(self, classroom):
        """Published exams whose target classrooms include ``classroom``."""
        if not classroom:
            return []
        docs = self.store.where_contains(EXAMS, "published", True, "target_classrooms", classroom)
        exams = [Exam.from_dict(d) for d in docs]
        return sorted(exams, key=lambda e: e.created_at, reverse=True)

    def create(self, data, teacher_id, publish=False):
        exam = build_exam(data, teacher_id, publish)
        self.store.create(EXAMS, exam.id, exam.to_dict())
        logger.info("Exam %s created by %s (published=%s)", exam.id, teacher_id, exam.published)
        return exam

    def replace(self, exam_id, data, teacher_id, publish=False):
        """Full-document replace by the owning teacher."""
        existing = self.require_owned(exam_id, teacher_id)
        exam = build_exam(data, teacher_id, publish, existing=existing)
        self.store.replace(EXAMS, exam.id, exam.to_dict())
        return exam

    def set_published(self, exam_id, teacher_id, published):
        self.require_owned(exam_id, teacher_id)
        self.store.update(EXAMS, exam_id, {"published": bool(published)})
        return self.require(exam_id)

    def delete(self, exam_id):
        """Delete the exam along with its submissions and any open attempts."""
        self.require(exam_id)
        removed = self.submissions.delete_for_exam(exam_id)
        if self.attempts is not None:
            self.attempts.discard_exam(exam_id)
        self.store.delete(EXAMS, exam_id)
        logger.info("Exam %s deleted with %d submissions", exam_id, removed)
        return removed
