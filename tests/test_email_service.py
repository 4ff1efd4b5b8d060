import pytest
import requests

from app.core.config import settings
from app.services import email_service as email_module
from app.services.email_service import EmailService


class FakeResponse:
    def __init__(self, status_code, payload):
        self.status_code = status_code
        self.ok = 200 <= status_code < 300
        self._payload = payload

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


@pytest.fixture
def configured(monkeypatch):
    monkeypatch.setattr(settings, "ZEPTO_API_KEY", "Zoho-enczapikey test")
    monkeypatch.setattr(settings, "ZEPTO_FROM_ADDRESS", "noreply@example.com")


@pytest.fixture
def post(monkeypatch):
    def install(response=None, error=None):
        sent = []

        def fake_post(url, data=None, headers=None, timeout=None):
            sent.append({"url": url, "data": data, "headers": headers, "timeout": timeout})
            if error is not None:
                raise error
            return response

        monkeypatch.setattr(email_module.requests, "post", fake_post)
        return sent

    return install


def test_not_configured_never_calls_provider(monkeypatch, post):
    monkeypatch.setattr(settings, "ZEPTO_API_KEY", None)
    sent = post(FakeResponse(200, {}))

    assert EmailService().send_email("a@example.com", "Hi", "<p>Hi</p>") == (False, "EMAIL_NOT_CONFIGURED")
    assert sent == []


def test_queued_email_is_success(configured, post):
    sent = post(FakeResponse(201, {"message": "OK", "data": [{"code": "EM_104"}]}))

    assert EmailService().send_email("a@example.com", "Hi", "<p>Hi</p>", to_name="Ada") == (True, None)
    assert sent[0]["headers"]["authorization"] == "Zoho-enczapikey test"
    assert '"name": "Ada"' in sent[0]["data"]
    assert sent[0]["timeout"] == settings.EMAIL_TIMEOUT_SECONDS


def test_rejected_address_is_classified(configured, post):
    post(FakeResponse(400, {"error": {"details": [{"message": "Invalid address"}]}}))

    ok, error = EmailService().send_email("nobody@example.com", "Hi", "<p>Hi</p>")

    assert ok is False
    assert error.startswith("RECIPIENT_NOT_FOUND")


def test_provider_error_is_returned(configured, post):
    post(FakeResponse(503, {"error": "service down"}))

    ok, error = EmailService().send_email("a@example.com", "Hi", "<p>Hi</p>")

    assert ok is False
    assert "service down" in error


@pytest.mark.parametrize("error,prefix", [
    (requests.exceptions.ConnectionError("refused"), "CONNECTION_ERROR"),
    (requests.exceptions.Timeout("slow"), "TIMEOUT_ERROR"),
])
def test_transport_errors_do_not_raise(configured, post, error, prefix):
    post(error=error)

    ok, message = EmailService().send_email("a@example.com", "Hi", "<p>Hi</p>")

    assert ok is False
    assert message.startswith(prefix)


def test_non_json_response_does_not_raise(configured, post):
    post(FakeResponse(502, ValueError("Expecting value")))

    ok, message = EmailService().send_email("a@example.com", "Hi", "<p>Hi</p>")

    assert ok is False
    assert message.startswith("INVALID_RESPONSE")
