import pytest
import requests

import automation_scheduler


class FakeResponse:
    def __init__(self, status_code=200, payload=None, reason="OK"):
        self.status_code = status_code
        self.ok = 200 <= status_code < 300
        self.reason = reason
        self._payload = payload if payload is not None else {}

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


@pytest.fixture
def calls(monkeypatch):
    recorded = []

    def install(response=None, error=None):
        def fake_get(url, headers=None, timeout=None):
            recorded.append({"url": url, "headers": headers, "timeout": timeout})
            if error is not None:
                raise error
            return response

        monkeypatch.setattr(automation_scheduler.requests, "get", fake_get)
        return recorded

    return install


def test_scheduler_url_strips_trailing_slash():
    assert automation_scheduler.scheduler_url("http://api:8000/") == "http://api:8000/api/automations/scheduler"


def test_run_once_succeeds_on_2xx(calls):
    recorded = calls(FakeResponse(payload={
        "executedCount": 2,
        "results": [
            {"automationId": 1, "name": "A", "status": "SUCCESS", "nextExecution": "2026-10-15T09:00:00"},
            {"automationId": 2, "name": "B", "status": "FAILED", "error": "No recipients configured"},
        ],
    }))

    assert automation_scheduler.run_once("http://api/api/automations/scheduler") == 0
    assert recorded[0]["headers"]["User-Agent"] == "Automation-Scheduler-Script"
    assert recorded[0]["timeout"] == 30


def test_run_once_with_nothing_due(calls):
    calls(FakeResponse(payload={"executedCount": 0, "results": []}))
    assert automation_scheduler.run_once("http://api/x") == 0


def test_run_once_fails_on_http_error(calls):
    calls(FakeResponse(status_code=500, reason="Internal Server Error"))
    assert automation_scheduler.run_once("http://api/x") == 1


@pytest.mark.parametrize("error", [
    requests.exceptions.ConnectionError("refused"),
    requests.exceptions.Timeout("slow"),
    requests.exceptions.RequestException("weird"),
])
def test_run_once_fails_on_transport_error(calls, error):
    calls(error=error)
    assert automation_scheduler.run_once("http://api/x") == 1


def test_run_once_fails_on_unreadable_body(calls):
    calls(FakeResponse(payload=ValueError("not json")))
    assert automation_scheduler.run_once("http://api/x") == 1


def test_continuous_mode_stops_on_interrupt(calls):
    recorded = calls(FakeResponse(payload={"executedCount": 0, "results": []}))
    sleeps = []

    def fake_sleep(seconds):
        sleeps.append(seconds)
        if len(sleeps) == 2:
            raise KeyboardInterrupt

    assert automation_scheduler.run_continuous("http://api/x", interval=5, sleep=fake_sleep) == 0
    assert sleeps == [5, 5]
    assert len(recorded) == 2


def test_main_uses_url_argument(calls):
    recorded = calls(FakeResponse(payload={"executedCount": 0, "results": []}))

    assert automation_scheduler.main(["--url", "http://crm.internal:9000"]) == 0
    assert recorded[0]["url"] == "http://crm.internal:9000/api/automations/scheduler"
