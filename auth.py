"""Accounts and user profiles.

Credentials live in the ``accounts`` table; the profile is a document in the
``users`` collection. An account whose profile is missing can be repaired by
registering again with the same email and password.
"""

from __future__ import annotations

import logging
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError
from werkzeug.security import check_password_hash, generate_password_hash

from entities import UserProfile, UserRole
from errors import AccountConflict, AuthError, PersistenceError, ValidationError
from models import Account, db
from store import USERS

logger = logging.getLogger(__name__)


def _normalize_email(email):
    return (email or "").strip().lower()


def _clean(value):
    return (value or "").strip() or None


class AuthService:
    def __init__(self, store, admin_email=None):
        self.store = store
        self.admin_email = _normalize_email(admin_email)

    def _is_admin_email(self, email):
        return bool(self.admin_email) and _normalize_email(email) == self.admin_email

    def _find_account(self, email):
        try:
            return Account.query.filter_by(email=email).first()
        except SQLAlchemyError as e:
            raise PersistenceError(message=str(e))

    def get_profile(self, user_id):
        doc = self.store.get(USERS, user_id) if user_id else None
        return UserProfile.from_dict(doc) if doc else None

    def all_profiles(self):
        profiles = [UserProfile.from_dict(d) for d in self.store.all(USERS)]
        return sorted(profiles, key=lambda p: p.created_at, reverse=True)

    def _ensure_admin_role(self, profile):
        if self._is_admin_email(profile.email) and profile.role is not UserRole.ADMIN:
            logger.info("Upgrading %s to ADMIN", profile.email)
            profile.role = UserRole.ADMIN
            self.store.update(USERS, profile.id, {"role": UserRole.ADMIN.value})
        return profile

    def register(self, email, password, name, role=UserRole.STUDENT.value,
                 student_code=None, teacher_code=None, classroom=None):
        email = _normalize_email(email)
        password = (password or "").strip()
        name = (name or "").strip()
        if not email or not password:
            raise ValidationError("missing_credentials", field="email")
        if not name:
            raise ValidationError("missing_name", field="name")
        if self._is_admin_email(email):
            final_role = UserRole.ADMIN
        else:
            try:
                final_role = UserRole(str(role or UserRole.STUDENT.value).upper())
            except ValueError:
                raise ValidationError("bad_role", field="role")
            if final_role is UserRole.ADMIN:
                raise ValidationError("bad_role", field="role")
        if final_role is UserRole.STUDENT and not (classroom or "").strip():
            raise ValidationError("missing_classroom", field="classroom")

        account = self._find_account(email)
        if account is not None:
            if not check_password_hash(account.password_hash, password):
                raise AccountConflict("email_in_use")
            existing = self.get_profile(account.user_id)
            if existing is not None:
                self._ensure_admin_role(existing)
                raise AccountConflict("account_exists")
            logger.info("Repairing missing profile for %s", email)
            user_id = account.user_id
        else:
            user_id = uuid4().hex
            db.session.add(Account(email=email, password_hash=generate_password_hash(password), user_id=user_id))
            try:
                db.session.commit()
            except SQLAlchemyError as e:
                db.session.rollback()
                raise PersistenceError(message=str(e))

        profile = UserProfile(
            id=user_id,
            email=email,
            name=name,
            role=final_role,
            student_code=_clean(student_code) if final_role is UserRole.STUDENT else None,
            teacher_code=_clean(teacher_code) if final_role is UserRole.TEACHER else None,
            classroom=_clean(classroom) if final_role is UserRole.STUDENT else None,
        )
        self.store.replace(USERS, profile.id, profile.to_dict())
        return profile

    def login(self, email, password):
        email = _normalize_email(email)
        account = self._find_account(email)
        if account is None or not check_password_hash(account.password_hash, (password or "").strip()):
            raise AuthError("invalid_credentials")
        profile = self.get_profile(account.user_id)
        if profile is None:
            raise AuthError("profile_missing",
                            "User profile data is missing. Register again with the same details to repair it.")
        return self._ensure_admin_role(profile)

    def delete_profile(self, user_id):
        """Remove the profile document; the account can no longer sign in until repaired."""
        return self.store.delete(USERS, user_id)
