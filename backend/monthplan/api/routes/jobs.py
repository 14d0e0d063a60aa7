"""Operational endpoints for scheduler jobs."""
from __future__ import annotations

from time import perf_counter

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from monthplan.api.schemas.jobs import JobRunRequest, JobRunResponse
from monthplan.core.config import settings
from monthplan.db.deps import get_db
from monthplan.observability.metrics import log_metric
from monthplan.observability.tracing import trace
from monthplan.services.job_runner import run_draft_cleanup

router = APIRouter()


@router.get("/jobs", tags=["jobs"])
def get_jobs_config(request: Request) -> dict:
    request_id = getattr(request.state, "request_id", None)
    with trace("jobs.config", metadata={"request_id": request_id}, request_id=request_id):
        data = {
            "scheduler_enabled": settings.scheduler_enabled,
            "schedule": {
                "timezone": settings.scheduler_timezone,
                "draft_cleanup_interval_minutes": settings.draft_cleanup_interval_minutes,
            },
            "draft_ttl_hours": settings.draft_ttl_hours,
        }
    return {**data, "request_id": request_id or ""}


@router.post("/jobs/run-now", response_model=JobRunResponse, tags=["jobs"])
def run_job_now(
    request: Request,
    payload: JobRunRequest,
    db: Session = Depends(get_db),
) -> JobRunResponse:
    if not settings.debug:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Run-now only allowed in debug mode")

    request_id = getattr(request.state, "request_id", None)
    metadata = {"job": payload.job, "request_id": request_id}
    start = perf_counter()
    with trace("jobs.run_now", metadata=metadata, request_id=request_id):
        result = run_draft_cleanup(db)

    latency_ms = (perf_counter() - start) * 1000
    log_metric("jobs.run_now.success", 1, metadata={"job": payload.job})
    log_metric("jobs.run_now.latency_ms", latency_ms, metadata={"job": payload.job})

    return JobRunResponse(job=result.job, rows_deleted=result.rows_deleted, request_id=request_id or "")
