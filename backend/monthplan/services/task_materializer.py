"""Flatten a weekly breakdown into dated, prioritized task records."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

from monthplan.services.plan_schema import (
    DAYS_OF_WEEK,
    FixedCommitment,
    MaterializedTask,
    Priority,
    TaskDescription,
    WeeklyBreakdown,
    canonical_day,
)
from monthplan.services.prompt_builder import current_month_start

logger = logging.getLogger(__name__)

PRIORITY_BY_DIFFICULTY: dict[str, Priority] = {
    "advanced": "High",
    "moderate": "Medium",
    "simple": "Low",
}


@dataclass(frozen=True)
class CommitmentConflict:
    week: int
    day_of_week: str
    task_description: str
    task_window: str
    commitment_window: str
    commitment_description: str

    def as_dict(self) -> dict:
        return {
            "week": self.week,
            "day_of_week": self.day_of_week,
            "task_description": self.task_description,
            "task_window": self.task_window,
            "commitment_window": self.commitment_window,
            "commitment_description": self.commitment_description,
        }


def extract_tasks_from_breakdown(
    breakdown: Sequence[WeeklyBreakdown],
    month_start: Optional[date] = None,
) -> List[MaterializedTask]:
    """Materialize every task of every week, preserving week/day/task order.

    ``due_date`` is ``month_start + (week - 1) * 7 + day_index`` with Monday as
    day 0. Hours use only the hour component of each time (no minute precision).
    """
    start = month_start or current_month_start()
    tasks: List[MaterializedTask] = []
    for week, day, task in _iter_tasks(breakdown):
        day_index = DAYS_OF_WEEK.index(day)
        tasks.append(
            MaterializedTask(
                title=task.task_description,
                description=task.scheduling_reason,
                due_date=start + timedelta(days=(week.week - 1) * 7 + day_index),
                priority=PRIORITY_BY_DIFFICULTY.get(task.difficulty_level, "Low"),
                category=task.focus_area,
                estimated_hours=calculate_hours(task.start_time, task.end_time),
                week_number=week.week,
                day_of_week=day,
                difficulty_level=task.difficulty_level,
            )
        )
    return tasks


def calculate_hours(start_time: str, end_time: str) -> int:
    start_hour = parse_hour(start_time)
    end_hour = parse_hour(end_time)
    if start_hour is None or end_hour is None:
        return 0
    return max(0, end_hour - start_hour)


def parse_hour(value: str) -> Optional[int]:
    """Hour component of 'HH:MM' or an ISO-8601 timestamp; None when unparseable."""
    if not value:
        return None
    text = value.strip()
    if "T" in text:
        try:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).hour
        except ValueError:
            return None
    hour, _, _ = text.partition(":")
    try:
        parsed = int(hour)
    except ValueError:
        return None
    if 0 <= parsed <= 24:
        return parsed
    return None


def _parse_minutes(value: str) -> Optional[int]:
    if not value:
        return None
    text = value.strip()
    if "T" in text:
        try:
            moment = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None
        return moment.hour * 60 + moment.minute
    hour, _, minute = text.partition(":")
    try:
        return int(hour) * 60 + int(minute or 0)
    except ValueError:
        return None


def find_commitment_conflicts(
    breakdown: Sequence[WeeklyBreakdown],
    commitments: Iterable[FixedCommitment],
) -> List[CommitmentConflict]:
    """Report tasks whose clock window overlaps a fixed commitment on the same weekday.

    Conflicting tasks are flagged only; they stay in the plan.
    """
    windows: dict[str, List[Tuple[int, int, FixedCommitment]]] = {}
    for commitment in commitments:
        day = canonical_day(commitment.day_of_week)
        start = _parse_minutes(commitment.start_time)
        end = _parse_minutes(commitment.end_time)
        if not day or start is None or end is None or end <= start:
            continue
        windows.setdefault(day, []).append((start, end, commitment))

    conflicts: List[CommitmentConflict] = []
    if not windows:
        return conflicts

    for week, day, task in _iter_tasks(breakdown):
        task_start = _parse_minutes(task.start_time)
        task_end = _parse_minutes(task.end_time)
        if task_start is None or task_end is None or task_end <= task_start:
            continue
        for start, end, commitment in windows.get(day, []):
            if task_start < end and start < task_end:
                conflicts.append(
                    CommitmentConflict(
                        week=week.week,
                        day_of_week=day,
                        task_description=task.task_description,
                        task_window=f"{task.start_time}-{task.end_time}",
                        commitment_window=f"{commitment.start_time}-{commitment.end_time}",
                        commitment_description=commitment.description,
                    )
                )
    return conflicts


def _iter_tasks(
    breakdown: Sequence[WeeklyBreakdown],
) -> Iterator[Tuple[WeeklyBreakdown, str, TaskDescription]]:
    for week in breakdown:
        for key, day_tasks in week.daily_tasks.items():
            day = canonical_day(key)
            if day is None:
                logger.warning("Skipping tasks under unrecognized day %r in week %s", key, week.week)
                continue
            for task in day_tasks:
                yield week, day, task
