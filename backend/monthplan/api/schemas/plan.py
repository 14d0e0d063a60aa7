"""Pydantic schemas for plan generation and confirmation."""
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from monthplan.api.schemas.task import PlanTaskSummary
from monthplan.services.plan_schema import ExtractionMetadata, FixedCommitment

TaskComplexity = Literal["Simple", "Balanced", "Ambitious"]
WeekendPreference = Literal["Work", "Rest", "Mixed"]


class GeneratePlanRequest(BaseModel):
    user_id: UUID
    goals_text: str = Field(..., max_length=5000)
    task_complexity: TaskComplexity = "Balanced"
    focus_areas: str = Field(default="", max_length=255)
    weekend_preference: WeekendPreference = "Mixed"
    fixed_commitments: List[FixedCommitment] = Field(default_factory=list, max_length=50)


class CommitmentConflictPayload(BaseModel):
    week: int
    day_of_week: str
    task_description: str
    task_window: str
    commitment_window: str
    commitment_description: str


class GeneratePlanResponse(BaseModel):
    draft_key: str
    preference_id: int
    month_year: date
    generated_at: datetime
    plan_data: Dict[str, Any]
    metadata: ExtractionMetadata
    conflicts: List[CommitmentConflictPayload] = Field(default_factory=list)
    # None when the monthly quota is disabled.
    quota_remaining: Optional[int] = None
    request_id: Optional[str] = None


class ConfirmPlanRequest(BaseModel):
    user_id: UUID
    draft_key: str = Field(..., min_length=1)


class ConfirmPlanResponse(BaseModel):
    plan_id: int
    task_count: int
    request_id: Optional[str] = None


class PlanSummary(BaseModel):
    id: int
    month_year: date
    status: str
    monthly_summary: Optional[str]
    extraction_confidence: int
    generated_at: datetime
    confirmed_at: Optional[datetime]
    task_count: int
    completed_count: int


class PlanDetail(PlanSummary):
    preference_id: Optional[int]
    extraction_notes: Optional[str]
    plan_data: Dict[str, Any]
    tasks: List[PlanTaskSummary] = Field(default_factory=list)
