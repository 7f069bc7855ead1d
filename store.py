"""Document store capability used by the exam core.

The core only talks to ``DocumentStore``. ``SqlDocumentStore`` keeps documents in
a single SQL table through Flask-SQLAlchemy; ``MemoryDocumentStore`` is the
in-process fake used by tests.
"""

from __future__ import annotations

import copy
import logging
import threading
from abc import ABC, abstractmethod

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from errors import DuplicateDocument, NotFound, PersistenceError
from models import Document, db

logger = logging.getLogger(__name__)

USERS = 'users'
EXAMS = 'exams'
SUBMISSIONS = 'submissions'


def _matches(doc, field, value):
    return doc.get(field) == value


def _contains(doc, array_field, item):
    items = doc.get(array_field)
    return isinstance(items, list) and item in items


class DocumentStore(ABC):
    """Keyed collections of JSON documents."""

    @abstractmethod
    def get(self, collection: str, key: str) -> dict | None:
        """Return the document stored under ``key`` or None."""

    @abstractmethod
    def all(self, collection: str) -> list[dict]:
        ...

    @abstractmethod
    def create(self, collection: str, key: str, doc: dict) -> dict:
        """Insert a new document; raises DuplicateDocument if ``key`` is taken."""

    @abstractmethod
    def replace(self, collection: str, key: str, doc: dict) -> dict:
        """Full-document write (insert or overwrite)."""

    @abstractmethod
    def update(self, collection: str, key: str, fields: dict) -> dict:
        """Merge ``fields`` into an existing document and return the result."""

    @abstractmethod
    def delete(self, collection: str, key: str) -> bool:
        ...

    def where(self, collection: str, field: str, value) -> list[dict]:
        return [d for d in self.all(collection) if _matches(d, field, value)]

    def where_contains(self, collection: str, field: str, value, array_field: str, item) -> list[dict]:
        return [d for d in self.all(collection)
                if _matches(d, field, value) and _contains(d, array_field, item)]


class MemoryDocumentStore(DocumentStore):
    """Dict-backed store. ``fail_next_write`` makes the next write raise PersistenceError."""

    def __init__(self):
        self._collections = {}
        self._lock = threading.Lock()
        self.fail_next_write = False

    def _bucket(self, collection):
        return self._collections.setdefault(collection, {})

    def _check_failure(self):
        if self.fail_next_write:
            self.fail_next_write = False
            raise PersistenceError(message='simulated store failure')

    def get(self, collection, key):
        with self._lock:
            doc = self._bucket(collection).get(key)
            return copy.deepcopy(doc) if doc is not None else None

    def all(self, collection):
        with self._lock:
            return [copy.deepcopy(d) for d in self._bucket(collection).values()]

    def create(self, collection, key, doc):
        with self._lock:
            self._check_failure()
            bucket = self._bucket(collection)
            if key in bucket:
                raise DuplicateDocument(message=f'{collection}/{key} already exists')
            bucket[key] = copy.deepcopy(doc)
            return copy.deepcopy(doc)

    def replace(self, collection, key, doc):
        with self._lock:
            self._check_failure()
            self._bucket(collection)[key] = copy.deepcopy(doc)
            return copy.deepcopy(doc)

    def update(self, collection, key, fields):
        with self._lock:
            self._check_failure()
            bucket = self._bucket(collection)
            if key not in bucket:
                raise NotFound(f'{collection.rstrip("s")}_not_found')
            bucket[key].update(copy.deepcopy(fields))
            return copy.deepcopy(bucket[key])

    def delete(self, collection, key):
        with self._lock:
            self._check_failure()
            return self._bucket(collection).pop(key, None) is not None


class SqlDocumentStore(DocumentStore):
    """Documents persisted in the ``documents`` table.

    JSON bodies are not portably filterable across SQLite/Postgres/MySQL, so
    ``where`` queries load the collection and filter in Python.
    """

    def _row(self, collection, key):
        return Document.query.filter_by(collection=collection, key=key).first()

    def _commit(self, action, collection, key):
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise DuplicateDocument(message=f'{collection}/{key} already exists')
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error("Store %s failed for %s/%s: %s", action, collection, key, e)
            raise PersistenceError(message=str(e))

    def get(self, collection, key):
        try:
            row = self._row(collection, key)
        except SQLAlchemyError as e:
            raise PersistenceError(message=str(e))
        return copy.deepcopy(row.body) if row else None

    def all(self, collection):
        try:
            rows = Document.query.filter_by(collection=collection).order_by(Document.id.asc()).all()
        except SQLAlchemyError as e:
            raise PersistenceError(message=str(e))
        return [copy.deepcopy(r.body) for r in rows]

    def create(self, collection, key, doc):
        try:
            existing = self._row(collection, key)
        except SQLAlchemyError as e:
            raise PersistenceError(message=str(e))
        if existing:
            raise DuplicateDocument(message=f'{collection}/{key} already exists')
        db.session.add(Document(collection=collection, key=key, body=copy.deepcopy(doc)))
        self._commit('create', collection, key)
        return copy.deepcopy(doc)

    def replace(self, collection, key, doc):
        try:
            row = self._row(collection, key)
        except SQLAlchemyError as e:
            raise PersistenceError(message=str(e))
        if row:
            row.body = copy.deepcopy(doc)
        else:
            db.session.add(Document(collection=collection, key=key, body=copy.deepcopy(doc)))
        self._commit('replace', collection, key)
        return copy.deepcopy(doc)

    def update(self, collection, key, fields):
        try:
            row = self._row(collection, key)
        except SQLAlchemyError as e:
            raise PersistenceError(message=str(e))
        if not row:
            raise NotFound(f'{collection.rstrip("s")}_not_found')
        # JSON columns do not track in-place mutation; assign a fresh dict
        body = dict(row.body or {})
        body.update(copy.deepcopy(fields))
        row.body = body
        self._commit('update', collection, key)
        return copy.deepcopy(body)

    def delete(self, collection, key):
        try:
            row = self._row(collection, key)
        except SQLAlchemyError as e:
            raise PersistenceError(message=str(e))
        if not row:
            return False
        db.session.delete(row)
        self._commit('delete', collection, key)
        return True
