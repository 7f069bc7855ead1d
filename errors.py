"""Error types raised by the exam core and rendered by the route layer."""

from __future__ import annotations


class ExamForgeError(Exception):
    """Base error. ``code`` is the snake_case message sent to clients."""

    status = 400
    code = "error"

    def __init__(self, code: str | None = None, message: str | None = None, **details) -> None:
        if code:
            self.code = code
        self.message = message or self.code
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"ok": False, "msg": self.code}
        if self.message != self.code:
            body["detail"] = self.message
        body.update(self.details)
        return body


class AuthError(ExamForgeError):
    status = 401
    code = "invalid_credentials"


class SessionMissing(ExamForgeError):
    status = 401
    code = "session_missing"


class Forbidden(ExamForgeError):
    status = 403
    code = "forbidden"


class NotFound(ExamForgeError):
    status = 404
    code = "not_found"


class ValidationError(ExamForgeError):
    status = 400
    code = "validation_failed"


class EntryRejected(ExamForgeError):
    status = 403
    code = "entry_rejected"


class AlreadySubmitted(ExamForgeError):
    status = 409
    code = "already_submitted"


class DuplicateDocument(ExamForgeError):
    status = 409
    code = "duplicate_document"


class PersistenceError(ExamForgeError):
    status = 503
    code = "store_unavailable"

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["retry"] = True
        return body


class AccountConflict(AuthError):
    status = 409
    code = "account_exists"
