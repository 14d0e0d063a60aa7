"""Goal preference ORM model."""
from __future__ import annotations

from sqlalchemy import Column, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import UUID

from monthplan.db.base import Base
from monthplan.db.types import JSONBCompat, UTCDateTime, utcnow


class GoalPreference(Base):
    __tablename__ = "goal_preferences"
    __table_args__ = (Index("ix_goal_preferences_user_id", "user_id"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    goals_text = Column(Text, nullable=False)
    task_complexity = Column(String(length=20), nullable=False)
    focus_areas = Column(String(length=255), nullable=False)
    weekend_preference = Column(String(length=20), nullable=False)
    # {"commitments": [{"day_of_week", "start_time", "end_time", "description"}, ...]}
    fixed_commitments_json = Column(JSONBCompat, nullable=False, default=dict)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow, server_default=func.now())
