"""Promote a draft into a permanent plan with materialized tasks."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from monthplan.services.draft_store import delete_draft, get_draft
from monthplan.services.plan_generation import ERROR_NOT_FOUND, ERROR_PERSISTENCE
from monthplan.services.plan_schema import StructuredAIResponse
from monthplan.services.plan_store import save_generated_plan
from monthplan.services.task_materializer import extract_tasks_from_breakdown

logger = logging.getLogger(__name__)

DRAFT_NOT_FOUND = "Draft not found or expired"
CONFIRM_FAILED = "Failed to save confirmed plan"
DEFAULT_CONFIRMED_CONFIDENCE = 90
DEFAULT_CONFIRMED_NOTE = "Draft confirmed and saved"


class _DraftGone(Exception):
    """The draft disappeared between read and delete (confirmed elsewhere)."""


@dataclass
class PlanConfirmationOutcome:
    success: bool
    plan_id: Optional[int] = None
    task_count: int = 0
    error: Optional[str] = None
    error_kind: Optional[str] = None


def confirm_plan(db: Session, user_id: UUID, draft_key: str) -> PlanConfirmationOutcome:
    """Read the user's draft, save it as a plan with tasks, delete the draft.

    All three writes share one transaction. If the draft was already deleted
    by a concurrent confirmation nothing is saved and "not found" is returned,
    so a key yields at most one plan.
    """
    try:
        draft = get_draft(db, user_id, draft_key)
        if draft is None:
            return PlanConfirmationOutcome(success=False, error=DRAFT_NOT_FOUND, error_kind=ERROR_NOT_FOUND)

        # Deleting first takes the row lock, so a concurrent confirmation of the
        # same key waits here and then finds nothing to delete.
        if not delete_draft(db, user_id, draft_key):
            raise _DraftGone(draft_key)

        structured = StructuredAIResponse.model_validate(draft.plan_data or {})
        tasks = extract_tasks_from_breakdown(structured.weekly_breakdown or [], month_start=draft.month_year)

        extraction = draft.extraction_json or {}
        plan = save_generated_plan(
            db,
            user_id=user_id,
            preference_id=draft.goal_preference_id,
            month_year=draft.month_year,
            ai_prompt=draft.ai_prompt or "",
            plan_data=draft.plan_data or {},
            tasks=tasks,
            monthly_summary=structured.monthly_summary,
            raw_ai_response=draft.raw_response,
            extraction_confidence=extraction.get("confidence", DEFAULT_CONFIRMED_CONFIDENCE),
            extraction_notes=extraction.get("extraction_notes") or DEFAULT_CONFIRMED_NOTE,
            draft_key=draft.draft_key,
            generated_at=draft.created_at,
        )
        db.commit()
    except _DraftGone:
        db.rollback()
        logger.info("Draft %s was confirmed concurrently", draft_key)
        return PlanConfirmationOutcome(success=False, error=DRAFT_NOT_FOUND, error_kind=ERROR_NOT_FOUND)
    except Exception:
        db.rollback()
        logger.exception("Confirming draft %s failed", draft_key)
        return PlanConfirmationOutcome(success=False, error=CONFIRM_FAILED, error_kind=ERROR_PERSISTENCE)

    logger.info("Draft %s confirmed as plan %s with %s tasks", draft_key, plan.id, len(tasks))
    return PlanConfirmationOutcome(success=True, plan_id=plan.id, task_count=len(tasks))
