"""Generation quota ORM model."""
from __future__ import annotations

from sqlalchemy import Column, Date, ForeignKey, Integer, UniqueConstraint, text as sa_text
from sqlalchemy.dialects.postgresql import UUID

from monthplan.db.base import Base


class GenerationQuota(Base):
    __tablename__ = "generation_quotas"
    __table_args__ = (UniqueConstraint("user_id", "month_year", name="uq_generation_quotas_user_month"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    month_year = Column(Date, nullable=False)
    total_allowed = Column(Integer, nullable=False)
    generations_used = Column(Integer, nullable=False, default=0, server_default=sa_text("0"))
