from __future__ import annotations

from datetime import date, timedelta
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from monthplan.core.config import settings
from monthplan.db.deps import get_db
from monthplan.db.models.goal_preference import GoalPreference
from monthplan.db.models.plan_draft import PlanDraft
from monthplan.db.models.user import User
from monthplan.db.types import utcnow
from monthplan.main import app
from monthplan.services.draft_store import create_draft


@pytest.fixture()
def client(monkeypatch):
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )

    @event.listens_for(engine, "connect")
    def set_fk(conn, record):  # pragma: no cover
        cursor = conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    User.__table__.create(bind=engine)
    GoalPreference.__table__.create(bind=engine)
    PlanDraft.__table__.create(bind=engine)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    monkeypatch.setattr(settings, "debug", True)
    with TestClient(app) as test_client:
        yield test_client, TestingSessionLocal
    app.dependency_overrides.clear()


def _seed_expired_draft(session_factory):
    session = session_factory()
    try:
        user_id = uuid4()
        session.add(User(id=user_id))
        session.flush()
        create_draft(
            session,
            user_id=user_id,
            plan_data={},
            month_year=date(2026, 10, 1),
            ttl_hours=1,
            now=utcnow() - timedelta(hours=3),
        )
        session.commit()
    finally:
        session.close()


def test_jobs_config(client, monkeypatch):
    test_client, _ = client
    monkeypatch.setattr(settings, "draft_cleanup_interval_minutes", 15)

    resp = test_client.get("/jobs")

    assert resp.status_code == 200
    body = resp.json()
    assert body["schedule"]["draft_cleanup_interval_minutes"] == 15
    assert body["draft_ttl_hours"] == settings.draft_ttl_hours
    assert body["request_id"]


def test_run_now_deletes_expired_drafts(client):
    test_client, SessionLocal = client
    _seed_expired_draft(SessionLocal)

    resp = test_client.post("/jobs/run-now", json={"job": "draft_cleanup"})

    assert resp.status_code == 200
    assert resp.json()["job"] == "draft_cleanup"
    assert resp.json()["rows_deleted"] == 1
    with SessionLocal() as session:
        assert session.query(PlanDraft).count() == 0


def test_run_now_rejects_unknown_job(client):
    test_client, _ = client

    resp = test_client.post("/jobs/run-now", json={"job": "weekly_plan"})

    assert resp.status_code == 422


def test_run_now_requires_debug(client, monkeypatch):
    test_client, _ = client
    monkeypatch.setattr(settings, "debug", False)

    resp = test_client.post("/jobs/run-now", json={"job": "draft_cleanup"})

    assert resp.status_code == 403
