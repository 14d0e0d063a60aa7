"""Helpers for working with users."""
from __future__ import annotations

from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from monthplan.db.models.user import User


def get_or_create_user(db: Session, user_id: UUID) -> User:
    """Return the user row, inserting it on first use.

    Call before adding other rows to the session: a lost insert race rolls the
    session back to pick up the concurrently created user.
    """
    user = db.get(User, user_id)
    if user:
        return user

    user = User(id=user_id)
    db.add(user)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        existing = db.get(User, user_id)
        if existing is None:
            raise
        return existing
    return user
