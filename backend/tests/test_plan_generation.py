from __future__ import annotations

import json
from datetime import date
from uuid import uuid4

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from monthplan.api.schemas.plan import GeneratePlanRequest
from monthplan.core.config import settings
from monthplan.db.models.generation_quota import GenerationQuota
from monthplan.db.models.goal_preference import GoalPreference
from monthplan.db.models.monthly_plan import MonthlyPlan
from monthplan.db.models.plan_draft import PlanDraft
from monthplan.db.models.plan_task import PlanTask
from monthplan.db.models.user import User
from monthplan.services.draft_store import get_draft
from monthplan.services import plan_generation
from monthplan.services.llm_client import StreamChunk
from monthplan.services.plan_generation import generate_plan

TODAY = date(2026, 10, 19)

PLAN_JSON = json.dumps(
    {
        "monthly_summary": "Launch the website in four weekly steps.",
        "weekly_breakdown": [
            {
                "week": 1,
                "focus": "Homepage",
                "goals": ["Finish homepage"],
                "daily_tasks": {
                    "Monday": [
                        {
                            "task_description": "Design homepage layout",
                            "focus_area": "Website",
                            "start_time": "10:00",
                            "end_time": "12:00",
                            "difficulty_level": "moderate",
                            "scheduling_reason": "Before lunch",
                        }
                    ]
                },
            }
        ],
    }
)


class _ScriptedChatModel:
    def __init__(self, content: str = PLAN_JSON, error: Exception | None = None):
        self.content = content
        self.error = error
        self.calls: list[dict] = []

    def stream_chat(self, *, model, messages, temperature=None, max_tokens=None):
        self.calls.append({"model": model, "messages": messages})
        if self.error:
            raise self.error
        for start in range(0, len(self.content), 32):
            yield StreamChunk(delta=self.content[start : start + 32])
        yield StreamChunk(done=True, finish_reason="stop")


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )

    @event.listens_for(engine, "connect")
    def set_fk(conn, record):  # pragma: no cover - sqlite setup
        cursor = conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    for model in (User, GoalPreference, GenerationQuota, PlanDraft, MonthlyPlan, PlanTask):
        model.__table__.create(bind=engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def _request(user_id, **overrides) -> GeneratePlanRequest:
    payload = {
        "user_id": user_id,
        "goals_text": "Launch website",
        "task_complexity": "Simple",
        "focus_areas": "Career",
        "weekend_preference": "Rest",
    }
    payload.update(overrides)
    return GeneratePlanRequest(**payload)


def test_generate_creates_draft_and_no_plan(session_factory) -> None:
    user_id = uuid4()
    chat_model = _ScriptedChatModel()

    with session_factory() as db:
        outcome = generate_plan(db, chat_model, _request(user_id), today=TODAY)

        assert outcome.success is True
        assert outcome.draft_key.startswith("draft_")
        assert outcome.month_year == date(2026, 10, 1)
        assert outcome.metadata.confidence == 90
        assert outcome.generated_at is not None

        draft = get_draft(db, user_id, outcome.draft_key)
        assert draft is not None
        assert draft.plan_data == outcome.plan_data
        assert draft.goal_preference_id == outcome.preference_id
        assert draft.raw_response == PLAN_JSON
        assert draft.extraction_json["confidence"] == 90
        assert "Launch website" in draft.ai_prompt
        assert db.query(MonthlyPlan).count() == 0

    messages = chat_model.calls[0]["messages"]
    assert [message["role"] for message in messages] == ["system", "user"]


def test_blank_goals_are_rejected_before_anything_runs(session_factory) -> None:
    chat_model = _ScriptedChatModel()

    with session_factory() as db:
        outcome = generate_plan(db, chat_model, _request(uuid4(), goals_text="   "), today=TODAY)

        assert outcome.success is False
        assert outcome.error_kind == "validation"
        assert db.query(GoalPreference).count() == 0
        assert db.query(User).count() == 0
    assert chat_model.calls == []


def test_preferences_survive_model_failure(session_factory) -> None:
    user_id = uuid4()

    with session_factory() as db:
        outcome = generate_plan(db, _ScriptedChatModel(error=RuntimeError("provider down")), _request(user_id), today=TODAY)

    assert outcome.success is False
    assert outcome.error == "provider down"
    assert outcome.error_kind == "model"

    with session_factory() as db:
        preference = db.query(GoalPreference).one()
        assert preference.goals_text == "Launch website"
        assert preference.user_id == user_id
        assert outcome.preference_id == preference.id
        assert db.query(PlanDraft).count() == 0


def test_quota_exhaustion_stops_before_model_call(session_factory, monkeypatch) -> None:
    monkeypatch.setattr(settings, "generation_quota_per_month", 1)
    user_id = uuid4()
    chat_model = _ScriptedChatModel()

    with session_factory() as db:
        first = generate_plan(db, chat_model, _request(user_id), today=TODAY)
        second = generate_plan(db, chat_model, _request(user_id), today=TODAY)

        assert first.success is True
        assert second.success is False
        assert second.error_kind == "quota"
        assert second.error == "Generation quota exceeded. Please request more tokens."
        assert len(chat_model.calls) == 1
        assert db.query(GoalPreference).count() == 2
        quota = db.query(GenerationQuota).one()
        assert quota.generations_used == 1
        assert quota.month_year == date(2026, 10, 1)


def test_zero_quota_disables_the_limit(session_factory, monkeypatch) -> None:
    monkeypatch.setattr(settings, "generation_quota_per_month", 0)
    user_id = uuid4()

    with session_factory() as db:
        outcomes = [generate_plan(db, _ScriptedChatModel(), _request(user_id), today=TODAY) for _ in range(3)]
        assert all(outcome.success for outcome in outcomes)
        assert db.query(GenerationQuota).count() == 0


def test_commitment_conflicts_are_reported(session_factory) -> None:
    user_id = uuid4()
    request = _request(
        user_id,
        fixed_commitments=[{"day_of_week": "Monday", "start_time": "09:00", "end_time": "17:00", "description": "Office"}],
    )

    with session_factory() as db:
        outcome = generate_plan(db, _ScriptedChatModel(), request, today=TODAY)
        draft = get_draft(db, user_id, outcome.draft_key)

        assert outcome.success is True
        assert [conflict.task_description for conflict in outcome.conflicts] == ["Design homepage layout"]
        assert draft.extraction_json["conflicts"][0]["commitment_description"] == "Office"
        preference = db.get(GoalPreference, outcome.preference_id)
        assert preference.fixed_commitments_json["commitments"][0]["day_of_week"] == "Monday"


def test_degraded_text_response_still_produces_draft(session_factory) -> None:
    user_id = uuid4()
    text = "Monthly Summary\nLaunch the website.\n\nWeek 1\nGoals:\n• Finish homepage\nMonday:\n- Design homepage layout (2h)"

    with session_factory() as db:
        outcome = generate_plan(db, _ScriptedChatModel(content=text), _request(user_id), today=TODAY)

    assert outcome.success is True
    assert outcome.metadata.confidence == 60
    assert outcome.plan_data["weekly_breakdown"][0]["goals"] == ["Finish homepage"]


def test_quota_remaining_is_reported(session_factory, monkeypatch) -> None:
    monkeypatch.setattr(settings, "generation_quota_per_month", 3)
    user_id = uuid4()

    with session_factory() as db:
        first = generate_plan(db, _ScriptedChatModel(), _request(user_id), today=TODAY)
        second = generate_plan(db, _ScriptedChatModel(), _request(user_id), today=TODAY)

    assert first.quota_remaining == 2
    assert second.quota_remaining == 1


def test_unexpected_error_saving_inputs_becomes_failure(session_factory, monkeypatch) -> None:
    def _broken(db, user_id, request):
        raise RuntimeError("serializer exploded")

    monkeypatch.setattr(plan_generation, "create_goal_preference", _broken)
    chat_model = _ScriptedChatModel()

    with session_factory() as db:
        outcome = generate_plan(db, chat_model, _request(uuid4()), today=TODAY)
        assert db.query(GoalPreference).count() == 0

    assert outcome.success is False
    assert outcome.error_kind == "persistence"
    assert outcome.error == "Failed to save planning inputs"
    assert chat_model.calls == []


def test_unexpected_error_after_model_call_becomes_failure(session_factory, monkeypatch) -> None:
    def _broken(breakdown, commitments):
        raise RuntimeError("bad clock value")

    monkeypatch.setattr(plan_generation, "find_commitment_conflicts", _broken)

    with session_factory() as db:
        outcome = generate_plan(db, _ScriptedChatModel(), _request(uuid4()), today=TODAY)
        assert db.query(GoalPreference).count() == 1
        assert db.query(PlanDraft).count() == 0

    assert outcome.success is False
    assert outcome.error_kind == "internal"
    assert outcome.error == "Plan generation failed"
