"""User ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Column, func
from sqlalchemy.dialects.postgresql import UUID

from monthplan.db.base import Base
from monthplan.db.types import UTCDateTime, utcnow


class User(Base):
    """Owner of preferences, drafts, plans and quota rows.

    Authentication lives outside this service; a row is created the first
    time a user id shows up in a generation request.
    """

    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow, server_default=func.now())
