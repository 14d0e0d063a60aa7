"""Durable record of the inputs behind each plan generation."""
from __future__ import annotations

from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from monthplan.api.schemas.plan import GeneratePlanRequest
from monthplan.db.models.goal_preference import GoalPreference


def create_goal_preference(db: Session, user_id: UUID, request: GeneratePlanRequest) -> GoalPreference:
    """Add a preference row for this request and flush it; the caller commits."""
    preference = GoalPreference(
        user_id=user_id,
        goals_text=request.goals_text.strip(),
        task_complexity=request.task_complexity,
        focus_areas=request.focus_areas.strip(),
        weekend_preference=request.weekend_preference,
        fixed_commitments_json={
            "commitments": [commitment.model_dump() for commitment in request.fixed_commitments],
        },
    )
    db.add(preference)
    db.flush()
    return preference


def get_goal_preference(db: Session, user_id: UUID, preference_id: int) -> Optional[GoalPreference]:
    return (
        db.query(GoalPreference)
        .filter(GoalPreference.id == preference_id, GoalPreference.user_id == user_id)
        .one_or_none()
    )


def list_goal_preferences(db: Session, user_id: UUID) -> list[GoalPreference]:
    return (
        db.query(GoalPreference)
        .filter(GoalPreference.user_id == user_id)
        .order_by(GoalPreference.created_at.desc(), GoalPreference.id.desc())
        .all()
    )
