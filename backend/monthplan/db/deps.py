"""FastAPI dependencies for database access."""
from __future__ import annotations

from typing import Iterator

from sqlalchemy.orm import Session

from monthplan.db.session import SessionLocal


def get_db() -> Iterator[Session]:
    """Yield a request-scoped session and always close it."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
