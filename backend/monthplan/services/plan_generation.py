"""Monthly plan generation: inputs -> model -> extraction -> draft.

Generation is always staged. The only durable results are the user's saved
inputs, the quota increment and a draft; a permanent plan exists only after
``confirm_plan``. Expected failures come back as a ``PlanGenerationOutcome``
instead of an exception.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from monthplan.api.schemas.plan import GeneratePlanRequest
from monthplan.core.context import get_request_id
from monthplan.core.config import settings
from monthplan.observability.metrics import log_metric
from monthplan.observability.tracing import annotate, trace
from monthplan.services.draft_store import create_draft
from monthplan.services.llm_client import ChatModel, collect_chat_completion
from monthplan.services.plan_schema import ExtractionMetadata
from monthplan.services.preference_service import create_goal_preference
from monthplan.services.prompt_builder import build_plan_prompt, build_system_prompt, current_month_start
from monthplan.services.quota_service import QUOTA_EXCEEDED_MESSAGE, consume_generation
from monthplan.services.response_extractor import extract_all_structured_data
from monthplan.services.task_materializer import CommitmentConflict, find_commitment_conflicts
from monthplan.services.user_service import get_or_create_user

logger = logging.getLogger(__name__)

ERROR_VALIDATION = "validation"
ERROR_PERSISTENCE = "persistence"
ERROR_MODEL = "model"
ERROR_QUOTA = "quota"
ERROR_NOT_FOUND = "not_found"
ERROR_INTERNAL = "internal"

SAVE_INPUTS_FAILED = "Failed to save planning inputs"
SAVE_DRAFT_FAILED = "Failed to save plan draft"
GOALS_REQUIRED = "Goals text is required"
GENERATION_FAILED = "Plan generation failed"


@dataclass
class PlanGenerationOutcome:
    success: bool
    error: Optional[str] = None
    error_kind: Optional[str] = None
    draft_key: Optional[str] = None
    plan_data: Optional[Dict[str, Any]] = None
    preference_id: Optional[int] = None
    month_year: Optional[date] = None
    generated_at: Optional[datetime] = None
    metadata: Optional[ExtractionMetadata] = None
    conflicts: List[CommitmentConflict] = field(default_factory=list)
    quota_remaining: Optional[int] = None

    @classmethod
    def failure(cls, error: str, error_kind: str, preference_id: Optional[int] = None) -> "PlanGenerationOutcome":
        return cls(success=False, error=error, error_kind=error_kind, preference_id=preference_id)


def generate_plan(
    db: Session,
    chat_model: ChatModel,
    request: GeneratePlanRequest,
    today: Optional[date] = None,
) -> PlanGenerationOutcome:
    """Generate a draft plan for ``request.user_id``.

    Steps run strictly in order: validate, save inputs (committed on their
    own), consume quota, prompt the model, extract structure, stage a draft.
    """
    try:
        return _run_generation(db, chat_model, request, today)
    except Exception:
        db.rollback()
        logger.exception("Plan generation failed unexpectedly")
        return PlanGenerationOutcome.failure(GENERATION_FAILED, ERROR_INTERNAL)


def _run_generation(
    db: Session,
    chat_model: ChatModel,
    request: GeneratePlanRequest,
    today: Optional[date],
) -> PlanGenerationOutcome:
    user_id = request.user_id
    if not request.goals_text.strip():
        return PlanGenerationOutcome.failure(GOALS_REQUIRED, ERROR_VALIDATION)

    today = today or date.today()
    month_start = current_month_start(today)

    try:
        get_or_create_user(db, user_id)
        preference = create_goal_preference(db, user_id, request)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Saving planning inputs failed")
        return PlanGenerationOutcome.failure(SAVE_INPUTS_FAILED, ERROR_PERSISTENCE)
    preference_id = preference.id
    logger.info("Planning inputs saved (preference_id=%s)", preference_id)

    try:
        quota = consume_generation(db, user_id, month_start)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Generation quota update failed")
        return PlanGenerationOutcome.failure("Failed to check generation quota", ERROR_PERSISTENCE, preference_id)
    if not quota.allowed:
        return PlanGenerationOutcome.failure(QUOTA_EXCEEDED_MESSAGE, ERROR_QUOTA, preference_id)

    prompt = build_plan_prompt(request, month_start=month_start, today=today)
    messages = [
        {"role": "system", "content": build_system_prompt()},
        {"role": "user", "content": prompt},
    ]

    trace_metadata = {
        "model": settings.openrouter_model,
        "task_complexity": request.task_complexity,
        "commitment_count": len(request.fixed_commitments),
        "prompt_length": len(prompt),
    }
    try:
        with trace(
            "plan.generate.model_call",
            metadata=trace_metadata,
            user_id=str(user_id),
            request_id=get_request_id(),
        ) as span:
            completion = collect_chat_completion(chat_model, messages=messages)
            annotate(span, {**trace_metadata, "response_length": len(completion.content)})
    except Exception as exc:
        logger.warning("Model call failed: %s", exc)
        return PlanGenerationOutcome.failure(str(exc) or "Generation failed", ERROR_MODEL, preference_id)

    extraction = extract_all_structured_data(completion.content)
    metadata = extraction.metadata
    log_metric(
        "plan.extraction.confidence",
        metadata.confidence,
        metadata={"detected_format": metadata.detected_format, "user_id": str(user_id)},
    )

    conflicts = find_commitment_conflicts(
        extraction.structured_data.weekly_breakdown or [],
        request.fixed_commitments,
    )
    if conflicts:
        logger.warning("Generated plan has %s task(s) overlapping fixed commitments", len(conflicts))

    plan_data = extraction.structured_data.as_payload()
    try:
        draft = create_draft(
            db,
            user_id=user_id,
            plan_data=plan_data,
            month_year=month_start,
            goal_preference_id=preference_id,
            ai_prompt=prompt,
            raw_response=completion.content,
            extraction={
                **metadata.model_dump(mode="json"),
                "conflicts": [conflict.as_dict() for conflict in conflicts],
            },
        )
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Saving plan draft failed")
        return PlanGenerationOutcome.failure(SAVE_DRAFT_FAILED, ERROR_PERSISTENCE, preference_id)

    logger.info(
        "Plan draft %s ready (confidence=%s, format=%s)",
        draft.draft_key,
        metadata.confidence,
        metadata.detected_format,
    )
    return PlanGenerationOutcome(
        success=True,
        draft_key=draft.draft_key,
        plan_data=plan_data,
        preference_id=preference_id,
        month_year=month_start,
        generated_at=draft.created_at,
        metadata=metadata,
        conflicts=conflicts,
        quota_remaining=quota.remaining,
    )
