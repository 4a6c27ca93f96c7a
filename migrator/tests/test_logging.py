"""Logging helpers"""

from types import SimpleNamespace

import httpx
import pytest

from migrator.core import logging as app_logging


def make_record(message="Eager migration aborted: disk gone", name="migration_service"):
    return {
        "extra": {"name": name},
        "level": SimpleNamespace(name="ERROR"),
        "function": "migrate",
        "line": 112,
        "message": message,
    }


class TestNormalizeLevel:
    @pytest.mark.parametrize(
        "raw,expected",
        [("debug", "DEBUG"), (" warn ", "WARNING"), ("fatal", "CRITICAL"), ("verbose", "INFO"), (None, "INFO")],
    )
    def test_levels(self, raw, expected):
        assert app_logging.normalize_level(raw) == expected


class TestSlackAlerts:
    """ERROR records posted to the webhook"""

    def test_alert_names_the_component(self):
        text = app_logging.format_alert(make_record())
        assert text == "[ERROR] migrator/migration_service:migrate:112\nEager migration aborted: disk gone"

    def test_sink_posts_to_webhook(self, monkeypatch):
        calls = []
        monkeypatch.setattr(app_logging.httpx, "post", lambda url, **kwargs: calls.append((url, kwargs)))

        app_logging.SlackAlertSink("https://hooks.example/abc")(SimpleNamespace(record=make_record()))

        assert calls[0][0] == "https://hooks.example/abc"
        assert calls[0][1]["json"]["text"].endswith("disk gone")

    def test_webhook_failure_is_swallowed(self, monkeypatch):
        def fail(url, **kwargs):
            raise httpx.ConnectError("unreachable")

        monkeypatch.setattr(app_logging.httpx, "post", fail)
        app_logging.SlackAlertSink("https://hooks.example/abc")(SimpleNamespace(record=make_record()))
