"""Schemas for confirmed plan tasks."""
from __future__ import annotations

from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class PlanTaskSummary(BaseModel):
    id: int
    title: str
    description: Optional[str]
    due_date: date
    priority: str
    category: str
    estimated_hours: int
    week_number: int
    day_of_week: str
    difficulty_level: Optional[str]
    completed: bool
    completed_at: Optional[datetime]


class TaskUpdateRequest(BaseModel):
    user_id: UUID
    completed: bool


class TaskUpdateResponse(BaseModel):
    id: int
    plan_id: int
    completed: bool
    completed_at: Optional[datetime]
    request_id: str
