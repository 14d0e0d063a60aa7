"""Typed records for AI-generated monthly plans.

The model is asked for JSON shaped like ``StructuredAIResponse`` but is free
to ignore the contract, so every field except the task description carries
a default. These models are the only place raw payloads get validated;
downstream code (materializer, confirmation, API schemas) consumes them
directly.
"""
from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DAYS_OF_WEEK: tuple[str, ...] = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)

DifficultyLevel = Literal["simple", "moderate", "advanced"]
DetectedFormat = Literal["json", "mixed", "text"]
Priority = Literal["High", "Medium", "Low"]


def canonical_day(name: Any) -> Optional[str]:
    """Map 'monday', 'MON', ' Monday ' to 'Monday'; None when unrecognized."""
    if not isinstance(name, str):
        return None
    cleaned = name.strip().lower()
    if len(cleaned) < 3:
        return None
    for day in DAYS_OF_WEEK:
        if day.lower() == cleaned or day.lower()[:3] == cleaned:
            return day
    return None


class TaskDescription(BaseModel):
    """A single scheduled task as described by the model."""

    model_config = ConfigDict(extra="ignore")

    task_description: str = Field(..., min_length=1)
    focus_area: str = "General"
    start_time: str = ""
    end_time: str = ""
    difficulty_level: DifficultyLevel = "moderate"
    scheduling_reason: str = ""

    @field_validator("task_description")
    @classmethod
    def strip_description(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("task_description must not be blank")
        return cleaned

    @field_validator("difficulty_level", mode="before")
    @classmethod
    def normalize_difficulty(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value


class WeeklyBreakdown(BaseModel):
    """One week of the plan, keyed by day name."""

    model_config = ConfigDict(extra="ignore")

    week: int = Field(..., ge=1)
    focus: Optional[str] = None
    goals: List[str] = Field(default_factory=list)
    daily_tasks: Dict[str, List[TaskDescription]] = Field(default_factory=dict)

    def with_all_days(self) -> "WeeklyBreakdown":
        """Return a copy whose daily_tasks holds all seven canonical days, in order."""
        merged: Dict[str, List[TaskDescription]] = {day: [] for day in DAYS_OF_WEEK}
        for key, tasks in self.daily_tasks.items():
            day = canonical_day(key)
            if day:
                merged[day].extend(tasks)
        return self.model_copy(update={"daily_tasks": merged})


class StructuredAIResponse(BaseModel):
    """Best-effort structured plan; any field may be missing."""

    model_config = ConfigDict(extra="ignore")

    monthly_summary: Optional[str] = None
    weekly_breakdown: Optional[List[WeeklyBreakdown]] = None
    personalization_notes: Optional[List[str]] = None

    def as_payload(self) -> Dict[str, Any]:
        """JSON-safe dict for storage; fields that were never set are omitted."""
        return self.model_dump(mode="json", exclude_unset=True)


class ExtractionMetadata(BaseModel):
    """How a raw model response was turned into structure. Frozen once built."""

    model_config = ConfigDict(frozen=True)

    confidence: int = Field(..., ge=0, le=100)
    detected_format: DetectedFormat
    extraction_notes: str = ""
    parsing_errors: List[str] = Field(default_factory=list)
    missing_fields: List[str] = Field(default_factory=list)


class FixedCommitment(BaseModel):
    """A recurring window the user is busy, e.g. Monday 09:00-17:00 work."""

    day_of_week: str = Field(..., min_length=1)
    start_time: str = Field(..., pattern=r"^\d{1,2}:\d{2}$")
    end_time: str = Field(..., pattern=r"^\d{1,2}:\d{2}$")
    description: str = ""

    @field_validator("day_of_week")
    @classmethod
    def known_day(cls, value: str) -> str:
        day = canonical_day(value)
        if day is None:
            raise ValueError(f"unknown day of week: {value!r}")
        return day


class MaterializedTask(BaseModel):
    """Flat, dated task derived from a WeeklyBreakdown entry."""

    title: str
    description: str
    due_date: date
    priority: Priority
    category: str
    estimated_hours: int = Field(..., ge=0)
    week_number: int
    day_of_week: str
    difficulty_level: DifficultyLevel
