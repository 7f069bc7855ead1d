import logging
from functools import wraps
from flask import session, jsonify, current_app, g, request
from sqlalchemy.exc import SQLAlchemyError
from models import Log, db
from errors import SessionMissing, Forbidden

logger = logging.getLogger(__name__)


def services():
    """Services wired up by create_app (store, auth, exams, submissions, attempts)."""
    return current_app.extensions['examforge']

def payload():
    """JSON body or form fields of the current request"""
    return request.get_json(silent=True) or request.form or {}

def add_log(who_id, username, role, event_type, meta=None):
    """Helper function to add audit log entries. Never fails the calling action."""
    entry = Log(who_user_id=who_id, username=username, role=role, event_type=event_type, meta=meta or {})
    try:
        db.session.add(entry)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.warning("Could not write audit log %s: %s", event_type, e)

def log_action(event_type, meta=None):
    """add_log for the signed-in user"""
    profile = g.get('profile')
    add_log(
        profile.id if profile else session.get('user_id'),
        profile.name if profile else session.get('name'),
        profile.role.value.lower() if profile else session.get('role'),
        event_type,
        meta,
    )

def current_profile():
    """Profile of the signed-in user, re-read from the store on every request."""
    user_id = session.get('user_id')
    if not user_id:
        raise SessionMissing()
    profile = services().auth.get_profile(user_id)
    if profile is None:
        session.clear()
        raise SessionMissing()
    return profile

def role_required(*roles):
    """Decorator to protect API routes; admins pass every role check."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*a, **kw):
            profile = current_profile()
            if roles and profile.role.value not in roles and profile.role.value != 'ADMIN':
                raise Forbidden()
            g.profile = profile
            return fn(*a, **kw)
        return wrapper
    return decorator

def admin_required(fn):
    """Decorator to protect admin routes"""
    @wraps(fn)
    def wrapper(*a, **kw):
        profile = current_profile()
        if profile.role.value != 'ADMIN':
            raise Forbidden()
        g.profile = profile
        return fn(*a, **kw)
    return wrapper

teacher_required = role_required('TEACHER')
student_required = role_required('STUDENT')

def handle_error(err):
    if err.status >= 500:
        logger.error("%s: %s", err.code, err.message)
    return jsonify(err.to_dict()), err.status
