"""Batch job runners for draft housekeeping."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from monthplan.services.draft_store import cleanup_expired_drafts

logger = logging.getLogger(__name__)

JOB_DRAFT_CLEANUP = "draft_cleanup"


@dataclass
class JobRunResult:
    job: str
    rows_deleted: int


def run_draft_cleanup(db: Session, *, now: Optional[datetime] = None) -> JobRunResult:
    """Delete drafts past their expiry and commit."""
    try:
        deleted = cleanup_expired_drafts(db, now=now)
        db.commit()
    except Exception:
        db.rollback()
        raise
    if deleted:
        logger.info("Removed %s expired plan draft(s)", deleted)
    return JobRunResult(job=JOB_DRAFT_CLEANUP, rows_deleted=deleted)
