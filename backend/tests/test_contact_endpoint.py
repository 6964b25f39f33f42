"""
Contact endpoint tests.

The app is built with create_app() and a Mock provider chain, so every
test can assert exactly how many provider calls a request caused.

Coverage:
  - method gating (POST only, OPTIONS preflight, 405 otherwise)
  - malformed JSON vs validation failure
  - honeypot drop (200, zero provider calls)
  - misconfiguration (500) vs delivery failure (502)
  - fallback and best-effort semantics through HTTP
  - unexpected exceptions become a generic 500
"""

from unittest.mock import AsyncMock, Mock

import pytest
from fastapi.testclient import TestClient

from contact_api.config import ContactSettings
from contact_api.errors import ParseError
from contact_api.main import create_app
from contact_api.models.delivery import DeliveryOutcome
from contact_api.routers.contact import _parse_body
from contact_api.services.providers import ProviderChain

URL = "/api/contact"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _ok(provider: str) -> DeliveryOutcome:
    return DeliveryOutcome(ok=True, provider=provider, message_id=f"{provider}-id")


def _fail(provider: str) -> DeliveryOutcome:
    return DeliveryOutcome(ok=False, provider=provider, error=f"{provider} unavailable")


def _make_provider(name: str, *outcomes: DeliveryOutcome) -> Mock:
    provider = Mock()
    provider.name = name
    provider.send.side_effect = list(outcomes)
    return provider


def _make_settings(**overrides) -> ContactSettings:
    fields = {
        "owner_email": "owner@example.com",
        "sender_email": "no-reply@example.com",
        "resend_api_key": "re_test",
    }
    fields.update(overrides)
    return ContactSettings(**fields)


def _make_client(primary: Mock, fallback: Mock = None, settings: ContactSettings = None) -> TestClient:
    app = create_app(
        settings=settings or _make_settings(),
        providers=ProviderChain(primary, fallback),
    )
    return TestClient(app)


def _valid_body(**overrides) -> dict:
    body = {"name": "Jo", "email": "jo@x.com", "message": "0123456789"}
    body.update(overrides)
    return body


@pytest.fixture()
def primary() -> Mock:
    return _make_provider("resend", _ok("resend"), _ok("resend"))


@pytest.fixture()
def client(primary) -> TestClient:
    return _make_client(primary)


# ===========================================================================
# Method gating
# ===========================================================================

class TestMethods:

    @pytest.mark.parametrize("method", ["GET", "PUT", "PATCH", "DELETE", "TRACE"])
    def test_non_post_methods_are_rejected(self, client, primary, method):
        response = client.request(method, URL)

        assert response.status_code == 405
        assert "error" in response.json()
        assert response.headers["allow"] == "POST, OPTIONS"
        primary.send.assert_not_called()

    def test_options_returns_empty_204(self, client):
        response = client.options(URL)

        assert response.status_code == 204
        assert response.content == b""
        assert "POST" in response.headers["allow"]

    def test_head_is_rejected_with_allow_header(self, client, primary):
        response = client.head(URL)

        assert response.status_code == 405
        assert response.headers["allow"] == "POST, OPTIONS"
        primary.send.assert_not_called()

    def test_browser_preflight_returns_empty_204_with_cors_headers(self, client, primary):
        response = client.options(
            URL,
            headers={
                "Origin": "https://site.example",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "Content-Type",
            },
        )

        assert response.status_code == 204
        assert response.content == b""
        assert response.headers["access-control-allow-origin"] == "*"
        assert "POST" in response.headers["access-control-allow-methods"]
        assert "content-type" not in response.headers
        primary.send.assert_not_called()

    def test_other_route_405_uses_error_shape(self, client):
        response = client.post("/health")

        assert response.status_code == 405
        assert "error" in response.json()
        assert response.headers["allow"] == "GET"


# ===========================================================================
# Body parsing and validation
# ===========================================================================

class TestParsingAndValidation:

    def test_malformed_json_is_a_bad_request(self, client, primary):
        response = client.post(
            URL, content=b"{not json", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400
        assert "Invalid JSON" in response.json()["error"]
        assert "code" not in response.json()
        primary.send.assert_not_called()

    def test_non_object_json_is_a_bad_request(self, client, primary):
        response = client.post(URL, json=["Jo", "jo@x.com"])

        assert response.status_code == 400
        assert "code" not in response.json()
        primary.send.assert_not_called()

    def test_short_name_is_rejected_without_provider_calls(self, client, primary):
        response = client.post(URL, json=_valid_body(name="A"))

        assert response.status_code == 400
        assert response.json()["code"] == "InvalidName"
        primary.send.assert_not_called()

    def test_invalid_email_is_rejected(self, client, primary):
        response = client.post(URL, json=_valid_body(email="not-an-email"))

        assert response.status_code == 400
        assert response.json()["code"] == "InvalidEmail"
        primary.send.assert_not_called()

    def test_short_message_is_rejected(self, client, primary):
        response = client.post(URL, json=_valid_body(message="too short"))

        assert response.status_code == 400
        assert response.json()["code"] == "InvalidMessage"


# ===========================================================================
# Honeypot
# ===========================================================================

class TestHoneypot:

    @pytest.mark.parametrize("field", ["company", "website"])
    def test_filled_trap_returns_success_and_sends_nothing(self, client, primary, field):
        response = client.post(URL, json=_valid_body(**{field: "spam"}))

        assert response.status_code == 200
        assert response.json()["ok"] is True
        primary.send.assert_not_called()

    def test_honeypot_response_matches_real_success(self, primary):
        spam = _make_client(_make_provider("resend")).post(URL, json=_valid_body(company="x"))
        real = _make_client(primary).post(URL, json=_valid_body())

        assert spam.json() == real.json()

    def test_honeypot_wins_even_when_misconfigured(self):
        primary = _make_provider("resend")
        client = _make_client(primary, settings=_make_settings(owner_email=None))

        response = client.post(URL, json=_valid_body(website="http://spam.example"))

        assert response.status_code == 200
        primary.send.assert_not_called()


# ===========================================================================
# Delivery
# ===========================================================================

class TestDelivery:

    def test_successful_submission(self, client, primary):
        response = client.post(
            URL,
            json=_valid_body(subject="Hello"),
            headers={"User-Agent": "pytest-agent", "X-Forwarded-For": "203.0.113.9, 10.0.0.1"},
        )

        assert response.status_code == 200
        assert response.json() == {
            "ok": True,
            "message": "Message received! Check your email for confirmation.",
        }
        assert primary.send.call_count == 2
        owner_request = primary.send.call_args_list[0].args[0]
        assert owner_request.subject == "New Contact: Hello - from Jo"
        assert "IP: 203.0.113.9" in owner_request.text
        assert "User-Agent: pytest-agent" in owner_request.text

    def test_cf_connecting_ip_takes_precedence(self, client, primary):
        client.post(
            URL,
            json=_valid_body(),
            headers={"CF-Connecting-IP": "198.51.100.1", "X-Forwarded-For": "203.0.113.9"},
        )

        owner_request = primary.send.call_args_list[0].args[0]
        assert "IP: 198.51.100.1" in owner_request.text

    def test_confirmation_failure_is_still_200(self):
        primary = _make_provider("resend", _ok("resend"), _fail("resend"))

        response = _make_client(primary).post(URL, json=_valid_body())

        assert response.status_code == 200
        assert response.json()["ok"] is True

    def test_fallback_rescues_owner_notification(self):
        primary = _make_provider("resend", _fail("resend"))
        fallback = _make_provider("mailchannels", _ok("mailchannels"), _ok("mailchannels"))

        response = _make_client(primary, fallback).post(URL, json=_valid_body())

        assert response.status_code == 200
        assert primary.send.call_count == 1
        assert fallback.send.call_count == 2

    def test_all_providers_failing_is_502(self):
        primary = _make_provider("resend", _fail("resend"))
        fallback = _make_provider("mailchannels", _fail("mailchannels"))

        response = _make_client(primary, fallback).post(URL, json=_valid_body())

        assert response.status_code == 502
        assert response.json()["service"] == "email_service_failure"
        assert primary.send.call_count == 1
        assert fallback.send.call_count == 1

    def test_single_provider_failure_is_502(self):
        primary = _make_provider("resend", _fail("resend"))

        response = _make_client(primary).post(URL, json=_valid_body())

        assert response.status_code == 502
        assert primary.send.call_count == 1


# ===========================================================================
# Configuration and unexpected errors
# ===========================================================================

class TestServerErrors:

    def test_missing_destination_is_misconfiguration(self):
        primary = _make_provider("resend")
        client = _make_client(primary, settings=_make_settings(owner_email=None))

        response = client.post(URL, json=_valid_body())

        assert response.status_code == 500
        assert response.json()["service"] == "contact_form_misconfiguration"
        primary.send.assert_not_called()

    def test_missing_sender_with_real_provider_is_misconfiguration(self):
        primary = _make_provider("resend")
        client = _make_client(primary, settings=_make_settings(sender_email=None))

        response = client.post(URL, json=_valid_body())

        assert response.status_code == 500
        assert response.json()["service"] == "contact_form_misconfiguration"

    def test_validation_runs_before_configuration_check(self):
        client = _make_client(
            _make_provider("resend"), settings=_make_settings(owner_email=None)
        )

        response = client.post(URL, json=_valid_body(name="A"))

        assert response.status_code == 400

    def test_unexpected_exception_becomes_generic_500(self):
        primary = Mock()
        primary.name = "resend"
        primary.send.side_effect = RuntimeError("secret internals")

        response = _make_client(primary).post(URL, json=_valid_body())

        assert response.status_code == 500
        body = response.json()
        assert body["service"] == "internal_server_error"
        assert "secret internals" not in body["error"]


# ===========================================================================
# Status and health
# ===========================================================================

class TestStatus:

    def test_status_reports_configuration_without_secrets(self):
        primary = _make_provider("resend")
        fallback = _make_provider("mailchannels")
        settings = _make_settings(mailchannels_api_key="mc_secret")

        response = _make_client(primary, fallback, settings).get(f"{URL}/status")

        assert response.status_code == 200
        data = response.json()
        assert data["providers"] == {"resend": "set", "smtp": "missing", "mailchannels": "set"}
        assert data["primary"] == "resend"
        assert data["fallback"] == "mailchannels"
        assert data["destination"] == "set"
        assert "re_test" not in response.text
        assert "mc_secret" not in response.text

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}


# ===========================================================================
# Body parser
# ===========================================================================

class TestParseBody:
    """_parse_body is awaited directly with a mocked Request."""

    @pytest.mark.asyncio
    async def test_returns_json_object(self):
        request = Mock()
        request.body = AsyncMock(return_value=b'{"name": "Jo"}')

        assert await _parse_body(request) == {"name": "Jo"}

    @pytest.mark.asyncio
    async def test_empty_body_is_a_parse_error(self):
        request = Mock()
        request.body = AsyncMock(return_value=b"")

        with pytest.raises(ParseError):
            await _parse_body(request)

    @pytest.mark.asyncio
    async def test_invalid_utf8_is_a_parse_error(self):
        request = Mock()
        request.body = AsyncMock(return_value=b"\xff\xfe{")

        with pytest.raises(ParseError):
            await _parse_body(request)

    @pytest.mark.asyncio
    async def test_json_scalar_is_a_parse_error(self):
        request = Mock()
        request.body = AsyncMock(return_value=b'"just a string"')

        with pytest.raises(ParseError) as exc_info:
            await _parse_body(request)

        assert "JSON object" in exc_info.value.message
