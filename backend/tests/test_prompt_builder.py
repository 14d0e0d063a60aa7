from __future__ import annotations

from datetime import date
from uuid import uuid4

from monthplan.api.schemas.plan import GeneratePlanRequest
from monthplan.core.config import settings
from monthplan.services.prompt_builder import (
    DEFAULT_SYSTEM_PROMPT,
    build_plan_prompt,
    build_system_prompt,
    current_month_start,
)


def _request(**overrides) -> GeneratePlanRequest:
    payload = {
        "user_id": uuid4(),
        "goals_text": "Launch website\nRun a 10k",
        "task_complexity": "Ambitious",
        "focus_areas": "Career, Health",
        "weekend_preference": "Rest",
        "fixed_commitments": [
            {"day_of_week": "Monday", "start_time": "09:00", "end_time": "17:00", "description": "Office"},
            {"day_of_week": "Thursday", "start_time": "18:30", "end_time": "20:00", "description": ""},
        ],
    }
    payload.update(overrides)
    return GeneratePlanRequest(**payload)


def test_month_start_is_first_day() -> None:
    assert current_month_start(date(2026, 2, 28)) == date(2026, 2, 1)


def test_prompt_embeds_inputs_and_commitments() -> None:
    prompt = build_plan_prompt(_request(), today=date(2026, 10, 19))

    assert "Launch website\nRun a 10k" in prompt
    assert "- Task Complexity: Ambitious" in prompt
    assert "- Focus Areas: Career, Health" in prompt
    assert "- Weekend Preference: Rest" in prompt
    assert "- Monday from 09:00 to 17:00: Office" in prompt
    assert "- Thursday from 18:30 to 20:00\n" in prompt
    assert "MUST NOT" in prompt
    assert "- Month: 2026-10-01" in prompt
    assert "- Current Date: 2026-10-19" in prompt
    assert '"weekly_breakdown"' in prompt


def test_prompt_without_commitments_says_so() -> None:
    prompt = build_plan_prompt(_request(fixed_commitments=[]), today=date(2026, 10, 19))

    assert "No fixed commitments" in prompt


def test_prompt_is_deterministic_for_same_inputs_and_date() -> None:
    request = _request()

    first = build_plan_prompt(request, today=date(2026, 10, 19))
    second = build_plan_prompt(request, today=date(2026, 10, 19))

    assert first == second


def test_system_prompt_override(monkeypatch) -> None:
    assert build_system_prompt() == DEFAULT_SYSTEM_PROMPT

    monkeypatch.setattr(settings, "openrouter_system_prompt", "  Custom planner persona  ")

    assert build_system_prompt() == "Custom planner persona"
