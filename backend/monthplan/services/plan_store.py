"""Persistence for confirmed monthly plans and their tasks."""
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy.orm import Session, selectinload

from monthplan.db.models.monthly_plan import MonthlyPlan
from monthplan.db.models.plan_task import PlanTask
from monthplan.db.types import utcnow
from monthplan.services.plan_schema import MaterializedTask

PLAN_STATUS_CONFIRMED = "CONFIRMED"


def save_generated_plan(
    db: Session,
    *,
    user_id: UUID,
    preference_id: Optional[int],
    month_year: date,
    ai_prompt: str,
    plan_data: Dict[str, Any],
    tasks: Sequence[MaterializedTask],
    monthly_summary: Optional[str] = None,
    raw_ai_response: Optional[str] = None,
    extraction_confidence: int = 0,
    extraction_notes: Optional[str] = None,
    draft_key: Optional[str] = None,
    generated_at: Optional[datetime] = None,
) -> MonthlyPlan:
    """Add a confirmed plan with all of its tasks and flush; the caller commits."""
    plan = MonthlyPlan(
        user_id=user_id,
        preference_id=preference_id,
        month_year=month_year,
        ai_prompt=ai_prompt,
        ai_response_raw=plan_data,
        monthly_summary=monthly_summary,
        raw_ai_response=raw_ai_response,
        extraction_confidence=extraction_confidence,
        extraction_notes=extraction_notes,
        status=PLAN_STATUS_CONFIRMED,
        draft_key=draft_key,
        generated_at=generated_at or utcnow(),
        confirmed_at=utcnow(),
    )
    plan.tasks = [
        PlanTask(
            title=task.title,
            description=task.description or None,
            due_date=task.due_date,
            priority=task.priority,
            category=task.category,
            estimated_hours=task.estimated_hours,
            week_number=task.week_number,
            day_of_week=task.day_of_week,
            difficulty_level=task.difficulty_level,
        )
        for task in tasks
    ]
    db.add(plan)
    db.flush()
    return plan


def get_plan(db: Session, plan_id: int) -> Optional[MonthlyPlan]:
    return (
        db.query(MonthlyPlan)
        .options(selectinload(MonthlyPlan.tasks))
        .filter(MonthlyPlan.id == plan_id)
        .one_or_none()
    )


def list_plans(db: Session, user_id: UUID) -> List[MonthlyPlan]:
    return (
        db.query(MonthlyPlan)
        .options(selectinload(MonthlyPlan.tasks))
        .filter(MonthlyPlan.user_id == user_id)
        .order_by(MonthlyPlan.month_year.desc(), MonthlyPlan.id.desc())
        .all()
    )


def get_plan_task(db: Session, plan_id: int, task_id: int) -> Optional[PlanTask]:
    return (
        db.query(PlanTask)
        .filter(PlanTask.id == task_id, PlanTask.plan_id == plan_id)
        .one_or_none()
    )


def set_task_completion(task: PlanTask, completed: bool) -> PlanTask:
    """Toggle completion; the only mutation allowed on a confirmed plan."""
    if completed and not task.is_completed:
        task.is_completed = True
        task.completed_at = utcnow()
    elif not completed and task.is_completed:
        task.is_completed = False
        task.completed_at = None
    return task
