"""Plan draft ORM model."""
from __future__ import annotations

from sqlalchemy import Column, Date, ForeignKey, Index, Integer, Text, func
from sqlalchemy.dialects.postgresql import UUID

from monthplan.db.base import Base
from monthplan.db.types import JSONBCompat, UTCDateTime, utcnow


class PlanDraft(Base):
    """Generated-but-unconfirmed plan content.

    Rows are inserted once and afterwards only read or deleted.
    """

    __tablename__ = "plan_drafts"
    __table_args__ = (
        Index("ix_plan_drafts_user_id", "user_id"),
        Index("ix_plan_drafts_expires_at", "expires_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    draft_key = Column(Text, nullable=False, unique=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    goal_preference_id = Column(
        Integer,
        ForeignKey("goal_preferences.id", ondelete="SET NULL"),
        nullable=True,
    )
    month_year = Column(Date, nullable=False)
    plan_data = Column(JSONBCompat, nullable=False, default=dict)
    ai_prompt = Column(Text, nullable=False, default="")
    raw_response = Column(Text, nullable=True)
    # Extraction metadata captured at generation time, carried onto the confirmed plan.
    extraction_json = Column("extraction", JSONBCompat, nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow, server_default=func.now())
    expires_at = Column(UTCDateTime, nullable=False)
