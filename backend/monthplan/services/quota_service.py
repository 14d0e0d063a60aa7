"""Monthly generation quota bookkeeping."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from monthplan.core.config import settings
from monthplan.db.models.generation_quota import GenerationQuota

logger = logging.getLogger(__name__)

QUOTA_EXCEEDED_MESSAGE = "Generation quota exceeded. Please request more tokens."


@dataclass
class QuotaDecision:
    allowed: bool
    remaining: Optional[int]
    total_allowed: Optional[int]


def get_or_create_quota(db: Session, user_id: UUID, month_start: date, total_allowed: int) -> GenerationQuota:
    quota = _find_quota(db, user_id, month_start)
    if quota:
        return quota

    quota = GenerationQuota(
        user_id=user_id,
        month_year=month_start,
        total_allowed=total_allowed,
        generations_used=0,
    )
    db.add(quota)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        existing = _find_quota(db, user_id, month_start)
        if existing is None:
            raise
        return existing
    return quota


def consume_generation(
    db: Session,
    user_id: UUID,
    month_start: date,
    limit: Optional[int] = None,
) -> QuotaDecision:
    """Use one generation from the user's monthly allowance.

    The increment is a single conditional UPDATE so concurrent requests cannot
    overspend. A limit of zero or less disables the quota. Flushes only.
    """
    limit = settings.generation_quota_per_month if limit is None else limit
    if limit <= 0:
        return QuotaDecision(allowed=True, remaining=None, total_allowed=None)

    quota = get_or_create_quota(db, user_id, month_start, limit)
    result = db.execute(
        update(GenerationQuota)
        .where(
            GenerationQuota.id == quota.id,
            GenerationQuota.generations_used < GenerationQuota.total_allowed,
        )
        .values(generations_used=GenerationQuota.generations_used + 1)
        .execution_options(synchronize_session=False)
    )
    db.refresh(quota)
    remaining = max(0, quota.total_allowed - quota.generations_used)
    if result.rowcount == 0:
        logger.warning("Generation quota exhausted for %s (%s used)", month_start.isoformat(), quota.generations_used)
        return QuotaDecision(allowed=False, remaining=0, total_allowed=quota.total_allowed)
    return QuotaDecision(allowed=True, remaining=remaining, total_allowed=quota.total_allowed)


def _find_quota(db: Session, user_id: UUID, month_start: date) -> Optional[GenerationQuota]:
    return (
        db.query(GenerationQuota)
        .filter(GenerationQuota.user_id == user_id, GenerationQuota.month_year == month_start)
        .one_or_none()
    )
