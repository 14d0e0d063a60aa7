from __future__ import annotations

from apscheduler.schedulers.background import BackgroundScheduler

from monthplan.core.config import settings
from monthplan.worker import scheduler_main


def test_register_jobs_adds_interval_cleanup(monkeypatch) -> None:
    monkeypatch.setattr(settings, "draft_cleanup_interval_minutes", 30)
    scheduler = BackgroundScheduler(timezone="UTC")

    scheduler_main.register_jobs(scheduler)

    jobs = scheduler.get_jobs()
    assert [job.id for job in jobs] == ["draft_cleanup_job"]
    assert jobs[0].trigger.interval.total_seconds() == 30 * 60


def test_cleanup_job_closes_session(monkeypatch) -> None:
    closed = []
    calls = []

    class _Session:
        def close(self) -> None:
            closed.append(True)

    def _run(session):
        calls.append(session)
        return type("Result", (), {"rows_deleted": 3})()

    monkeypatch.setattr(scheduler_main, "SessionLocal", _Session)
    monkeypatch.setattr(scheduler_main, "run_draft_cleanup", _run)

    scheduler_main.run_draft_cleanup_job()

    assert len(calls) == 1
    assert closed == [True]
