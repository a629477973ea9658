"""
Tests for Sentry event filtering.
"""

from storefront.errors import ErrorKind, ServiceError
from storefront.integrations.sentry import filter_event, filter_transaction, init_sentry

from conftest import make_settings


def hint_for(exc: Exception) -> dict:
    return {"exc_info": (type(exc), exc, None)}


class TestFilterEvent:
    def test_client_errors_dropped(self):
        exc = ServiceError.of(ErrorKind.FORBIDDEN, "FORBIDDEN", "Access denied")
        assert filter_event({}, hint_for(exc)) is None

    def test_server_errors_kept(self):
        exc = ServiceError.of(ErrorKind.CONFIGURATION, "CONFIG_ERROR", "Server configuration error")
        event = {"message": "boom"}
        assert filter_event(event, hint_for(exc)) is event

    def test_credentials_scrubbed(self):
        event = {
            "request": {
                "headers": {"Cookie": "token=abc", "Accept": "application/json"},
                "cookies": {"token": "abc"},
            }
        }
        filtered = filter_event(event, hint_for(RuntimeError("boom")))

        assert filtered["request"]["headers"]["Cookie"] == "[Filtered]"
        assert filtered["request"]["headers"]["Accept"] == "application/json"
        assert filtered["request"]["cookies"] == "[Filtered]"


def test_disabled_without_dsn():
    assert init_sentry(make_settings(sentry_dsn="")) is False


class TestFilterTransaction:
    def test_health_and_favicon_dropped(self):
        assert filter_transaction({"transaction": "/health"}, {}) is None
        assert filter_transaction({"transaction": "/favicon.ico"}, {}) is None

    def test_api_kept(self):
        event = {"transaction": "/api/v1/products"}
        assert filter_transaction(event, {}) is event
