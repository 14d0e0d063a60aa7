"""Schemas for job operations endpoints."""
from __future__ import annotations

from typing import Literal

from pydantic import BaseModel


class JobRunRequest(BaseModel):
    job: Literal["draft_cleanup"]


class JobRunResponse(BaseModel):
    job: str
    rows_deleted: int
    request_id: str
