"""Plan task ORM model."""
from __future__ import annotations

from sqlalchemy import Boolean, Column, Date, ForeignKey, Index, Integer, String, Text, text as sa_text
from sqlalchemy.orm import relationship

from monthplan.db.base import Base
from monthplan.db.types import UTCDateTime


class PlanTask(Base):
    __tablename__ = "plan_tasks"
    __table_args__ = (
        Index("ix_plan_tasks_plan_id", "plan_id"),
        Index("ix_plan_tasks_due_date", "due_date"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    plan_id = Column(Integer, ForeignKey("monthly_plans.id", ondelete="CASCADE"), nullable=False)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    due_date = Column(Date, nullable=False)
    priority = Column(String(length=10), nullable=False)
    category = Column(String(length=100), nullable=False)
    estimated_hours = Column(Integer, nullable=False, default=0)
    week_number = Column(Integer, nullable=False)
    day_of_week = Column(String(length=10), nullable=False)
    difficulty_level = Column(String(length=20), nullable=True)
    is_completed = Column(Boolean, nullable=False, default=False, server_default=sa_text("false"))
    completed_at = Column(UTCDateTime, nullable=True)

    plan = relationship("MonthlyPlan", back_populates="tasks")
