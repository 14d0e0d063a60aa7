"""Monthly plan generation, confirmation and lookup routes."""
from __future__ import annotations

from time import perf_counter
from typing import Any, Dict, List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from monthplan.api.schemas.plan import (
    CommitmentConflictPayload,
    ConfirmPlanRequest,
    ConfirmPlanResponse,
    GeneratePlanRequest,
    GeneratePlanResponse,
    PlanDetail,
    PlanSummary,
)
from monthplan.api.schemas.task import PlanTaskSummary
from monthplan.core.context import bind_user_id
from monthplan.db.deps import get_db
from monthplan.db.models.monthly_plan import MonthlyPlan
from monthplan.db.models.plan_task import PlanTask
from monthplan.observability.metrics import log_metric
from monthplan.observability.tracing import annotate, trace
from monthplan.services.llm_client import ChatModel, get_chat_model
from monthplan.services.plan_confirmation import confirm_plan
from monthplan.services.plan_generation import (
    ERROR_INTERNAL,
    ERROR_MODEL,
    ERROR_NOT_FOUND,
    ERROR_PERSISTENCE,
    ERROR_QUOTA,
    ERROR_VALIDATION,
    generate_plan,
)
from monthplan.services.plan_store import get_plan, list_plans

router = APIRouter()

ERROR_STATUS_CODES: Dict[str, int] = {
    ERROR_VALIDATION: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ERROR_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ERROR_QUOTA: status.HTTP_429_TOO_MANY_REQUESTS,
    ERROR_MODEL: status.HTTP_502_BAD_GATEWAY,
    ERROR_PERSISTENCE: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ERROR_INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def raise_for_error(error_kind: str | None, error: str | None) -> None:
    status_code = ERROR_STATUS_CODES.get(error_kind or "", status.HTTP_500_INTERNAL_SERVER_ERROR)
    raise HTTPException(status_code=status_code, detail=error or "Request failed")


@router.post(
    "/plans/generate",
    response_model=GeneratePlanResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["plans"],
)
def generate_monthly_plan(
    payload: GeneratePlanRequest,
    http_request: Request,
    db: Session = Depends(get_db),
    chat_model: ChatModel = Depends(get_chat_model),
) -> GeneratePlanResponse:
    """Generate a draft plan; nothing permanent is created until confirmation."""
    request_id = getattr(http_request.state, "request_id", None)
    user_id = str(payload.user_id)
    bind_user_id(payload.user_id)

    metadata: Dict[str, Any] = {
        "route": "/plans/generate",
        "user_id": user_id,
        "task_complexity": payload.task_complexity,
        "weekend_preference": payload.weekend_preference,
        "commitment_count": len(payload.fixed_commitments),
    }

    start = perf_counter()
    with trace("plan.generate", metadata=metadata, user_id=user_id, request_id=request_id) as span:
        outcome = generate_plan(db, chat_model, payload)
        annotate(
            span,
            {
                **metadata,
                "success": outcome.success,
                "error_kind": outcome.error_kind,
                "confidence": outcome.metadata.confidence if outcome.metadata else None,
            },
        )
    latency_ms = (perf_counter() - start) * 1000

    log_metric("plan.generate.success", 1 if outcome.success else 0, metadata={"error_kind": outcome.error_kind})
    log_metric("plan.generate.latency_ms", latency_ms, metadata={"user_id": user_id})

    if not outcome.success:
        raise_for_error(outcome.error_kind, outcome.error)

    log_metric("plan.generate.confidence", outcome.metadata.confidence, metadata={"user_id": user_id})
    return GeneratePlanResponse(
        draft_key=outcome.draft_key,
        preference_id=outcome.preference_id,
        month_year=outcome.month_year,
        generated_at=outcome.generated_at,
        plan_data=outcome.plan_data,
        metadata=outcome.metadata,
        conflicts=[CommitmentConflictPayload(**conflict.as_dict()) for conflict in outcome.conflicts],
        quota_remaining=outcome.quota_remaining,
        request_id=request_id,
    )


@router.post("/plans/confirm", response_model=ConfirmPlanResponse, tags=["plans"])
def confirm_monthly_plan(
    payload: ConfirmPlanRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> ConfirmPlanResponse:
    """Promote a draft into a permanent plan with dated tasks."""
    request_id = getattr(http_request.state, "request_id", None)
    user_id = str(payload.user_id)
    bind_user_id(payload.user_id)
    metadata = {"route": "/plans/confirm", "user_id": user_id, "draft_key": payload.draft_key}

    start = perf_counter()
    with trace("plan.confirm", metadata=metadata, user_id=user_id, request_id=request_id) as span:
        outcome = confirm_plan(db, payload.user_id, payload.draft_key)
        annotate(span, {**metadata, "success": outcome.success, "plan_id": outcome.plan_id})
    latency_ms = (perf_counter() - start) * 1000

    log_metric("plan.confirm.success", 1 if outcome.success else 0, metadata={"error_kind": outcome.error_kind})
    log_metric("plan.confirm.latency_ms", latency_ms, metadata={"user_id": user_id})

    if not outcome.success:
        raise_for_error(outcome.error_kind, outcome.error)

    log_metric("plan.confirm.task_count", outcome.task_count, metadata={"plan_id": outcome.plan_id})
    return ConfirmPlanResponse(plan_id=outcome.plan_id, task_count=outcome.task_count, request_id=request_id)


@router.get("/plans", response_model=List[PlanSummary], tags=["plans"])
def list_monthly_plans(
    http_request: Request,
    user_id: UUID = Query(..., description="User ID owning the plans"),
    db: Session = Depends(get_db),
) -> List[PlanSummary]:
    request_id = getattr(http_request.state, "request_id", None)
    bind_user_id(user_id)
    with trace("plan.list", metadata={"route": "/plans"}, user_id=str(user_id), request_id=request_id):
        plans = list_plans(db, user_id)
    log_metric("plan.list.count", len(plans), metadata={"user_id": str(user_id)})
    return [_serialize_summary(plan) for plan in plans]


@router.get("/plans/{plan_id}", response_model=PlanDetail, tags=["plans"])
def get_monthly_plan(
    plan_id: int,
    http_request: Request,
    user_id: UUID = Query(..., description="User ID owning the plan"),
    db: Session = Depends(get_db),
) -> PlanDetail:
    request_id = getattr(http_request.state, "request_id", None)
    bind_user_id(user_id)
    with trace(
        "plan.detail",
        metadata={"route": f"/plans/{plan_id}", "plan_id": plan_id},
        user_id=str(user_id),
        request_id=request_id,
    ):
        plan = get_plan(db, plan_id)
    if not plan:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Plan not found")
    if plan.user_id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Plan does not belong to user")

    summary = _serialize_summary(plan)
    return PlanDetail(
        **summary.model_dump(),
        preference_id=plan.preference_id,
        extraction_notes=plan.extraction_notes,
        plan_data=plan.ai_response_raw or {},
        tasks=[serialize_task(task) for task in plan.tasks],
    )


def _serialize_summary(plan: MonthlyPlan) -> PlanSummary:
    return PlanSummary(
        id=plan.id,
        month_year=plan.month_year,
        status=plan.status,
        monthly_summary=plan.monthly_summary,
        extraction_confidence=plan.extraction_confidence,
        generated_at=plan.generated_at,
        confirmed_at=plan.confirmed_at,
        task_count=len(plan.tasks),
        completed_count=sum(1 for task in plan.tasks if task.is_completed),
    )


def serialize_task(task: PlanTask) -> PlanTaskSummary:
    return PlanTaskSummary(
        id=task.id,
        title=task.title,
        description=task.description,
        due_date=task.due_date,
        priority=task.priority,
        category=task.category,
        estimated_hours=task.estimated_hours,
        week_number=task.week_number,
        day_of_week=task.day_of_week,
        difficulty_level=task.difficulty_level,
        completed=bool(task.is_completed),
        completed_at=task.completed_at,
    )
