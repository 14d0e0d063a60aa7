"""Task completion routes for confirmed plans."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from monthplan.api.schemas.task import TaskUpdateRequest, TaskUpdateResponse
from monthplan.core.context import bind_user_id
from monthplan.db.deps import get_db
from monthplan.db.models.monthly_plan import MonthlyPlan
from monthplan.observability.metrics import log_metric
from monthplan.observability.tracing import trace
from monthplan.services.plan_store import get_plan_task, set_task_completion

router = APIRouter()


@router.patch("/plans/{plan_id}/tasks/{task_id}", response_model=TaskUpdateResponse, tags=["tasks"])
def update_task_completion(
    plan_id: int,
    task_id: int,
    payload: TaskUpdateRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> TaskUpdateResponse:
    """Mark a plan task complete or incomplete."""
    bind_user_id(payload.user_id)
    plan = db.get(MonthlyPlan, plan_id)
    if not plan:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Plan not found")
    if plan.user_id != payload.user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Plan does not belong to user")
    task = get_plan_task(db, plan_id, task_id)
    if not task:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")

    request_id = getattr(http_request.state, "request_id", None)
    metadata: Dict[str, Any] = {
        "route": f"/plans/{plan_id}/tasks/{task_id}",
        "plan_id": plan_id,
        "task_id": task_id,
        "completed": payload.completed,
        "request_id": request_id,
    }

    changed = bool(task.is_completed) != payload.completed
    start_time = datetime.now(timezone.utc)
    with trace("task.complete", metadata=metadata, user_id=str(payload.user_id), request_id=request_id):
        try:
            set_task_completion(task, payload.completed)
            db.commit()
        except Exception:
            db.rollback()
            raise

    latency_ms = (datetime.now(timezone.utc) - start_time).total_seconds() * 1000
    log_metric("task.complete.success", 1, metadata={"plan_id": plan_id, "task_id": task_id})
    log_metric("task.complete.changed", 1 if changed else 0, metadata={"plan_id": plan_id, "task_id": task_id})
    log_metric("task.complete.latency_ms", latency_ms, metadata={"task_id": task_id})

    return TaskUpdateResponse(
        id=task.id,
        plan_id=plan_id,
        completed=bool(task.is_completed),
        completed_at=task.completed_at,
        request_id=request_id or "",
    )
