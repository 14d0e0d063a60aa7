"""Tests ensuring observability wiring is safe by default."""
from __future__ import annotations

from monthplan.core.config import settings
from monthplan.observability import client as client_module


class _DummyOpik:
    def __init__(self, *args, **kwargs):
        self.kwargs = kwargs


def test_opik_disabled_yields_no_client(monkeypatch) -> None:
    monkeypatch.setattr(settings, "opik_enabled", False)
    client_module.reset_opik()

    assert client_module.init_opik() is None
    assert client_module.get_opik_client() is None
    client_module.reset_opik()


def test_opik_enabled_without_key_stays_off(monkeypatch) -> None:
    monkeypatch.setattr(settings, "opik_enabled", True)
    monkeypatch.setattr(settings, "opik_api_key", None)
    monkeypatch.setattr(client_module, "Opik", _DummyOpik)
    client_module.reset_opik()

    assert client_module.init_opik() is None
    client_module.reset_opik()


def test_opik_client_is_created_once(monkeypatch) -> None:
    monkeypatch.setattr(settings, "opik_enabled", True)
    monkeypatch.setattr(settings, "opik_api_key", "test-key")
    monkeypatch.setattr(settings, "opik_project", "monthplan-test")
    monkeypatch.setattr(client_module, "Opik", _DummyOpik)
    client_module.reset_opik()

    first = client_module.init_opik()
    second = client_module.get_opik_client()

    assert isinstance(first, _DummyOpik)
    assert first is second
    assert first.kwargs == {"project_name": "monthplan-test", "api_key": "test-key"}
    client_module.reset_opik()


def test_app_import_succeeds_when_opik_is_disabled(monkeypatch) -> None:
    monkeypatch.setattr(settings, "opik_enabled", False)
    client_module.reset_opik()

    from monthplan.main import app

    assert app.title == settings.app_name
