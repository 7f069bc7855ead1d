from datetime import datetime, timezone
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def _utcnow():
    return datetime.now(timezone.utc)


class Account(db.Model):
    __tablename__ = 'accounts'
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    user_id = db.Column(db.String(64), unique=True, nullable=False)  # key of the profile in 'users'
    created_at = db.Column(db.DateTime, default=_utcnow)

class Log(db.Model):
    __tablename__ = 'logs'
    id = db.Column(db.Integer, primary_key=True)
    who_user_id = db.Column(db.String(64), nullable=True)      # optional user id who performed the action
    username = db.Column(db.String(120), nullable=True)
    role = db.Column(db.String(30), nullable=True)
    event_type = db.Column(db.String(120), nullable=False)
    meta = db.Column(db.JSON, nullable=True)
    created_at = db.Column(db.DateTime, default=_utcnow)

class Document(db.Model):
    """One JSON document of a named collection ('users', 'exams', 'submissions')."""
    __tablename__ = 'documents'
    __table_args__ = (db.UniqueConstraint('collection', 'key', name='uq_document_collection_key'),)
    id = db.Column(db.Integer, primary_key=True)
    collection = db.Column(db.String(64), nullable=False, index=True)
    key = db.Column(db.String(128), nullable=False)
    body = db.Column(db.JSON, nullable=False)
    created_at = db.Column(db.DateTime, default=_utcnow)
    updated_at = db.Column(db.DateTime, default=_utcnow, onupdate=_utcnow)
