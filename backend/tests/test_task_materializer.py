from __future__ import annotations

from datetime import date, timedelta

from monthplan.services.plan_schema import FixedCommitment, WeeklyBreakdown
from monthplan.services.task_materializer import (
    calculate_hours,
    extract_tasks_from_breakdown,
    find_commitment_conflicts,
)

MONTH_START = date(2026, 10, 1)


def _task(description: str, start: str, end: str, difficulty: str = "moderate", **extra) -> dict:
    return {
        "task_description": description,
        "focus_area": extra.get("focus_area", "Career"),
        "start_time": start,
        "end_time": end,
        "difficulty_level": difficulty,
        "scheduling_reason": extra.get("scheduling_reason", "Morning focus"),
    }


def _week(number: int, daily_tasks: dict) -> WeeklyBreakdown:
    return WeeklyBreakdown.model_validate({"week": number, "focus": "Focus", "daily_tasks": daily_tasks})


def test_week_two_wednesday_task_is_dated_and_prioritized() -> None:
    breakdown = [_week(2, {"Wednesday": [_task("Write the launch plan", "09:00", "11:00", "advanced")]})]

    tasks = extract_tasks_from_breakdown(breakdown, month_start=MONTH_START)

    assert len(tasks) == 1
    task = tasks[0]
    assert task.priority == "High"
    assert task.estimated_hours == 2
    assert task.day_of_week == "Wednesday"
    assert task.week_number == 2
    assert task.due_date == MONTH_START + timedelta(days=7) + timedelta(days=2)
    assert task.title == "Write the launch plan"
    assert task.description == "Morning focus"
    assert task.category == "Career"


def test_difficulty_maps_to_priority() -> None:
    breakdown = [
        _week(
            1,
            {
                "Monday": [
                    _task("Hard task here", "09:00", "10:00", "advanced"),
                    _task("Medium task here", "10:00", "11:00", "moderate"),
                    _task("Easy task here", "11:00", "12:00", "simple"),
                ]
            },
        )
    ]

    tasks = extract_tasks_from_breakdown(breakdown, month_start=MONTH_START)

    assert [task.priority for task in tasks] == ["High", "Medium", "Low"]


def test_hours_use_only_the_hour_component() -> None:
    assert calculate_hours("09:00", "11:00") == 2
    assert calculate_hours("09:45", "11:15") == 2
    assert calculate_hours("2025-01-01T09:00:00Z", "2025-01-01T12:30:00Z") == 3
    assert calculate_hours("14:00", "09:00") == 0
    assert calculate_hours("soon", "later") == 0
    assert calculate_hours("", "") == 0


def test_output_follows_input_order_and_tolerates_missing_days() -> None:
    breakdown = [
        _week(1, {"Friday": [_task("Friday review session", "16:00", "17:00")], "monday": [_task("Kickoff planning", "09:00", "10:00")]}),
        _week(2, {}),
        _week(3, {"Sunday": [_task("Weekly reflection", "19:00", "20:00")]}),
    ]

    tasks = extract_tasks_from_breakdown(breakdown, month_start=MONTH_START)

    assert [(t.week_number, t.day_of_week) for t in tasks] == [(1, "Friday"), (1, "Monday"), (3, "Sunday")]
    assert tasks[1].due_date == MONTH_START
    assert tasks[2].due_date == MONTH_START + timedelta(days=14 + 6)


def test_unknown_day_keys_are_skipped(caplog) -> None:
    breakdown = [_week(1, {"Someday": [_task("Maybe later task", "09:00", "10:00")]})]

    with caplog.at_level("WARNING"):
        tasks = extract_tasks_from_breakdown(breakdown, month_start=MONTH_START)

    assert tasks == []
    assert "Someday" in caplog.text


def test_default_month_start_is_first_of_current_month() -> None:
    breakdown = [_week(1, {"Monday": [_task("Kickoff planning", "09:00", "10:00")]})]

    tasks = extract_tasks_from_breakdown(breakdown)

    assert tasks[0].due_date == date.today().replace(day=1)


def test_commitment_conflicts_are_flagged_not_removed() -> None:
    breakdown = [
        _week(
            1,
            {
                "Monday": [
                    _task("Overlaps the office hours", "10:00", "12:00"),
                    _task("Starts right after work", "17:00", "18:00"),
                ],
                "Tuesday": [_task("Free day deep work", "10:00", "12:00")],
            },
        )
    ]
    commitments = [FixedCommitment(day_of_week="monday", start_time="9:00", end_time="17:00", description="Office")]

    conflicts = find_commitment_conflicts(breakdown, commitments)
    tasks = extract_tasks_from_breakdown(breakdown, month_start=MONTH_START)

    assert len(conflicts) == 1
    conflict = conflicts[0]
    assert conflict.day_of_week == "Monday"
    assert conflict.task_description == "Overlaps the office hours"
    assert conflict.commitment_window == "9:00-17:00"
    assert conflict.as_dict()["commitment_description"] == "Office"
    assert len(tasks) == 3


def test_no_commitments_means_no_conflicts() -> None:
    breakdown = [_week(1, {"Monday": [_task("Anything at all", "10:00", "12:00")]})]

    assert find_commitment_conflicts(breakdown, []) == []
