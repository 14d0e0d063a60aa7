"""Monthly plan ORM model."""
from __future__ import annotations

from sqlalchemy import Column, Date, ForeignKey, Index, Integer, String, Text, func, text as sa_text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from monthplan.db.base import Base
from monthplan.db.types import JSONBCompat, UTCDateTime, utcnow


class MonthlyPlan(Base):
    __tablename__ = "monthly_plans"
    __table_args__ = (Index("ix_monthly_plans_user_id", "user_id"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    preference_id = Column(
        Integer,
        ForeignKey("goal_preferences.id", ondelete="SET NULL"),
        nullable=True,
    )
    month_year = Column(Date, nullable=False)
    ai_prompt = Column(Text, nullable=False, default="")
    ai_response_raw = Column(JSONBCompat, nullable=False, default=dict)
    monthly_summary = Column(Text, nullable=True)
    raw_ai_response = Column(Text, nullable=True)
    extraction_confidence = Column(Integer, nullable=False, default=0, server_default=sa_text("0"))
    extraction_notes = Column(Text, nullable=True)
    status = Column(String(length=20), nullable=False, default="CONFIRMED", server_default=sa_text("'CONFIRMED'"))
    # Key of the draft this plan was promoted from.
    draft_key = Column(Text, nullable=True, unique=True)
    generated_at = Column(UTCDateTime, nullable=False, default=utcnow, server_default=func.now())
    confirmed_at = Column(UTCDateTime, nullable=True)

    tasks = relationship(
        "PlanTask",
        back_populates="plan",
        cascade="all, delete-orphan",
        order_by="PlanTask.id",
    )
