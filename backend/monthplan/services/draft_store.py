"""Persistence for plan drafts awaiting confirmation.

Drafts are inserted once and afterwards only read or deleted. A draft whose
``expires_at`` has passed is treated as absent by every read, even before the
cleanup job removes the row.
"""
from __future__ import annotations

import logging
import secrets
import time
from datetime import date, datetime, timedelta
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy import delete
from sqlalchemy.orm import Session

from monthplan.core.config import settings
from monthplan.db.models.plan_draft import PlanDraft
from monthplan.db.types import utcnow

logger = logging.getLogger(__name__)


def generate_draft_key(user_id: UUID | str) -> str:
    """Opaque key: ``draft_<last 6 of user id>_<epoch ms>_<random>``."""
    suffix = str(user_id).replace("-", "")[-6:]
    return f"draft_{suffix}_{int(time.time() * 1000)}_{secrets.token_hex(4)}"


def create_draft(
    db: Session,
    *,
    user_id: UUID,
    plan_data: Dict[str, Any],
    month_year: date,
    goal_preference_id: Optional[int] = None,
    ai_prompt: str = "",
    raw_response: Optional[str] = None,
    extraction: Optional[Dict[str, Any]] = None,
    ttl_hours: Optional[int] = None,
    now: Optional[datetime] = None,
) -> PlanDraft:
    """Add a draft and flush it; the caller commits."""
    created_at = now or utcnow()
    ttl = settings.draft_ttl_hours if ttl_hours is None else ttl_hours
    draft = PlanDraft(
        draft_key=generate_draft_key(user_id),
        user_id=user_id,
        goal_preference_id=goal_preference_id,
        month_year=month_year,
        plan_data=plan_data,
        ai_prompt=ai_prompt,
        raw_response=raw_response,
        extraction_json=extraction,
        created_at=created_at,
        expires_at=created_at + timedelta(hours=ttl),
    )
    db.add(draft)
    db.flush()
    logger.info("Draft %s created (expires %s)", draft.draft_key, draft.expires_at.isoformat())
    return draft


def get_draft(
    db: Session,
    user_id: UUID,
    draft_key: str,
    now: Optional[datetime] = None,
) -> Optional[PlanDraft]:
    """The user's unexpired draft for ``draft_key``, or None."""
    return (
        db.query(PlanDraft)
        .filter(
            PlanDraft.user_id == user_id,
            PlanDraft.draft_key == draft_key,
            PlanDraft.expires_at >= (now or utcnow()),
        )
        .one_or_none()
    )


def get_latest_draft(db: Session, user_id: UUID, now: Optional[datetime] = None) -> Optional[PlanDraft]:
    return (
        db.query(PlanDraft)
        .filter(PlanDraft.user_id == user_id, PlanDraft.expires_at >= (now or utcnow()))
        .order_by(PlanDraft.created_at.desc(), PlanDraft.id.desc())
        .first()
    )


def delete_draft(db: Session, user_id: UUID, draft_key: str) -> bool:
    """Delete the user's draft; False when no row matched. Flushes only."""
    result = db.execute(
        delete(PlanDraft)
        .where(PlanDraft.user_id == user_id, PlanDraft.draft_key == draft_key)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount > 0


def cleanup_expired_drafts(db: Session, now: Optional[datetime] = None) -> int:
    """Remove every expired draft and return how many were deleted. Flushes only."""
    result = db.execute(
        delete(PlanDraft)
        .where(PlanDraft.expires_at < (now or utcnow()))
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0
