# =============================================================================
# Sentry Error Tracking Integration
# =============================================================================
#
# Enabled by SENTRY_DSN. Reports server-side failures (5xx, unhandled
# exceptions, ERROR logs). Client errors such as bad credentials or
# rejected uploads are expected traffic and stay out of Sentry.
#
# Called from the app lifespan (storefront/api/app.py).
#
# =============================================================================

import logging

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration

from storefront import __version__
from storefront.config import Settings
from storefront.errors import ServiceError

logger = logging.getLogger(__name__)

# session tokens travel in cookies
_CREDENTIAL_HEADERS = frozenset({"authorization", "cookie", "set-cookie"})
_QUIET_TRANSACTIONS = frozenset({"/health", "/favicon.ico"})


def init_sentry(settings: Settings) -> bool:
    """
    Initialize Sentry error tracking.

    Returns True if initialized, False if skipped.
    """
    if not settings.sentry_dsn:
        logger.info("SENTRY_DSN not set - error tracking disabled")
        return False

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        release=f"storefront@{__version__}",
        traces_sample_rate=0.1 if settings.is_production else 1.0,
        integrations=[
            FastApiIntegration(transaction_style="url"),
            StarletteIntegration(transaction_style="url"),
            LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
        ],
        send_default_pii=False,
        before_send=filter_event,
        before_send_transaction=filter_transaction,
    )

    logger.info(f"Sentry reporting to {settings.environment}")
    return True


def _is_client_error(hint: dict) -> bool:
    exc_info = hint.get("exc_info")
    if not exc_info:
        return False
    exc_value = exc_info[1]
    return isinstance(exc_value, ServiceError) and exc_value.rejection.status_code < 500


def _scrub_request(request: dict) -> None:
    headers = request.get("headers") or {}
    for name in list(headers):
        if name.lower() in _CREDENTIAL_HEADERS:
            headers[name] = "[Filtered]"
    if "cookies" in request:
        request["cookies"] = "[Filtered]"


def filter_event(event: dict, hint: dict) -> dict | None:
    """Drop expected client errors and scrub credentials."""
    if _is_client_error(hint):
        return None
    if event.get("request"):
        _scrub_request(event["request"])
    return event


def filter_transaction(event: dict, hint: dict) -> dict | None:
    if event.get("transaction") in _QUIET_TRANSACTIONS:
        return None
    return event
