"""Schemas for plan drafts awaiting confirmation."""
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel


class DraftResponse(BaseModel):
    draft_key: str
    preference_id: Optional[int]
    month_year: date
    plan_data: Dict[str, Any]
    extraction: Optional[Dict[str, Any]] = None
    created_at: datetime
    expires_at: datetime


class DraftDeleteResponse(BaseModel):
    draft_key: str
    deleted: bool
    request_id: Optional[str] = None
