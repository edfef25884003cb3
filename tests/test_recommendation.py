"""Recommendation notifier tests (no network)."""

import httpx
import pytest

from questline.core.config import settings
from questline.services import recommendation_client
from questline.services.recommendation_client import notify_user_quests


class _FakeResponse:
    def __init__(self, status_code=200, body=None):
        self.status_code = status_code
        self._body = body if body is not None else {"status": "ok"}

    def raise_for_status(self):
        if self.status_code >= 400:
            request = httpx.Request("POST", "http://recs.test/api/users/add")
            raise httpx.HTTPStatusError("error", request=request, response=httpx.Response(self.status_code))

    def json(self):
        return self._body


@pytest.fixture
def recommendation_url(monkeypatch):
    monkeypatch.setattr(settings, "recommendation_service_url", "http://recs.test/api/")


def test_sends_all_owned_quests(monkeypatch, recommendation_url):
    calls = []

    def fake_post(url, json, timeout):
        calls.append((url, json, timeout))
        return _FakeResponse(body={"added": 1})

    monkeypatch.setattr(recommendation_client.httpx, "post", fake_post)

    assert notify_user_quests(7, [1, 4]) == {"added": 1}
    assert calls == [
        (
            "http://recs.test/api/users/add",
            {"users": [{"user_id": 7, "quest_ids": [1, 4]}]},
            settings.recommendation_timeout_seconds,
        )
    ]


def test_failure_is_logged_not_raised(monkeypatch, recommendation_url, caplog):
    def fake_post(url, json, timeout):
        raise httpx.ConnectError("connection refused")

    monkeypatch.setattr(recommendation_client.httpx, "post", fake_post)

    with caplog.at_level("WARNING"):
        assert notify_user_quests(7, [1]) is None
    assert "recommendation_sync_failed" in caplog.text


def test_error_status_is_swallowed(monkeypatch, recommendation_url):
    monkeypatch.setattr(recommendation_client.httpx, "post", lambda url, json, timeout: _FakeResponse(status_code=503))
    assert notify_user_quests(7, [1]) is None


def test_disabled_when_url_empty(monkeypatch):
    monkeypatch.setattr(settings, "recommendation_service_url", "")

    def fail_post(*args, **kwargs):
        raise AssertionError("should not be called")

    monkeypatch.setattr(recommendation_client.httpx, "post", fail_post)
    assert notify_user_quests(7, [1]) is None
