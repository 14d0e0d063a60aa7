"""Tests for metrics and tracing helpers."""
from __future__ import annotations

from typing import Any, Dict

import pytest

from monthplan.observability import metrics
from monthplan.observability import tracing


class _DummyTrace:
    def __init__(self, name: str, metadata: Dict[str, Any]):
        self.name = name
        self.metadata = metadata
        self.updates: list[Dict[str, Any]] = []
        self.ended = False

    def update(self, **kwargs) -> None:
        self.updates.append(kwargs)

    def end(self) -> None:
        self.ended = True


class _DummyClient:
    def __init__(self):
        self.traces: list[_DummyTrace] = []

    def trace(self, name: str, metadata: Dict[str, Any] | None = None):
        trace = _DummyTrace(name, metadata or {})
        self.traces.append(trace)
        return trace


def test_log_metric_closes_trace(monkeypatch) -> None:
    dummy_client = _DummyClient()
    monkeypatch.setattr(tracing, "get_opik_client", lambda: dummy_client)

    metrics.log_metric("plan.extraction.confidence", 60, metadata={"detected_format": "text", "user_id": None})

    assert dummy_client.traces, "Metric call should record a trace"
    assert dummy_client.traces[0].name == "metric:plan.extraction.confidence"
    assert dummy_client.traces[0].metadata == {"value": 60, "detected_format": "text"}
    assert dummy_client.traces[0].ended is True


def test_log_metric_is_a_noop_without_client(monkeypatch) -> None:
    monkeypatch.setattr(tracing, "get_opik_client", lambda: None)

    metrics.log_metric("plan.generate.success", 1)


def test_trace_records_errors_and_reraises(monkeypatch) -> None:
    dummy_client = _DummyClient()
    monkeypatch.setattr(tracing, "get_opik_client", lambda: dummy_client)

    with pytest.raises(ValueError):
        with tracing.trace("plan.generate", metadata={"route": "/plans/generate"}, request_id="req-1"):
            raise ValueError("boom")

    span = dummy_client.traces[0]
    assert span.metadata == {"route": "/plans/generate", "request_id": "req-1"}
    assert span.updates == [{"error_info": {"message": "boom"}}]
    assert span.ended is True


def test_annotate_ignores_missing_span() -> None:
    tracing.annotate(None, {"success": True})
