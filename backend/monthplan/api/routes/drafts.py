"""Draft inspection and discard routes."""
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from monthplan.api.schemas.draft import DraftDeleteResponse, DraftResponse
from monthplan.core.context import bind_user_id
from monthplan.db.deps import get_db
from monthplan.db.models.plan_draft import PlanDraft
from monthplan.observability.metrics import log_metric
from monthplan.observability.tracing import trace
from monthplan.services.draft_store import delete_draft, get_draft, get_latest_draft

router = APIRouter()

DRAFT_NOT_FOUND = "Draft not found or expired"


@router.get("/drafts/latest", response_model=DraftResponse, tags=["drafts"])
def get_latest_plan_draft(
    http_request: Request,
    user_id: UUID = Query(..., description="User ID owning the draft"),
    db: Session = Depends(get_db),
) -> DraftResponse:
    """Most recently generated unexpired draft, for resuming after a crash."""
    request_id = getattr(http_request.state, "request_id", None)
    bind_user_id(user_id)
    with trace("draft.latest", metadata={"route": "/drafts/latest"}, user_id=str(user_id), request_id=request_id):
        draft = get_latest_draft(db, user_id)
    log_metric("draft.latest.found", 1 if draft else 0, metadata={"user_id": str(user_id)})
    if not draft:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=DRAFT_NOT_FOUND)
    return _serialize_draft(draft)


@router.get("/drafts/{draft_key}", response_model=DraftResponse, tags=["drafts"])
def get_plan_draft(
    draft_key: str,
    http_request: Request,
    user_id: UUID = Query(..., description="User ID owning the draft"),
    db: Session = Depends(get_db),
) -> DraftResponse:
    request_id = getattr(http_request.state, "request_id", None)
    bind_user_id(user_id)
    with trace(
        "draft.get",
        metadata={"route": "/drafts/{draft_key}", "draft_key": draft_key},
        user_id=str(user_id),
        request_id=request_id,
    ):
        draft = get_draft(db, user_id, draft_key)
    if not draft:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=DRAFT_NOT_FOUND)
    return _serialize_draft(draft)


@router.delete("/drafts/{draft_key}", response_model=DraftDeleteResponse, tags=["drafts"])
def discard_plan_draft(
    draft_key: str,
    http_request: Request,
    user_id: UUID = Query(..., description="User ID owning the draft"),
    db: Session = Depends(get_db),
) -> DraftDeleteResponse:
    """Discard a draft the user does not want to confirm."""
    request_id = getattr(http_request.state, "request_id", None)
    bind_user_id(user_id)
    with trace(
        "draft.discard",
        metadata={"route": "/drafts/{draft_key}", "draft_key": draft_key},
        user_id=str(user_id),
        request_id=request_id,
    ):
        try:
            deleted = delete_draft(db, user_id, draft_key)
            db.commit()
        except Exception:
            db.rollback()
            raise
    log_metric("draft.discard.deleted", 1 if deleted else 0, metadata={"user_id": str(user_id)})
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=DRAFT_NOT_FOUND)
    return DraftDeleteResponse(draft_key=draft_key, deleted=True, request_id=request_id)


def _serialize_draft(draft: PlanDraft) -> DraftResponse:
    return DraftResponse(
        draft_key=draft.draft_key,
        preference_id=draft.goal_preference_id,
        month_year=draft.month_year,
        plan_data=draft.plan_data or {},
        extraction=draft.extraction_json,
        created_at=draft.created_at,
        expires_at=draft.expires_at,
    )
