"""
Request dependencies for FastAPI.

Shared-secret guards for the webhook and admin routes, plus providers
for the reconciliation config and the outbound message sender.
"""

import hmac
import logging
from typing import Optional
from fastapi import Header, Request
from dinkup.app.core.config import settings
from dinkup.app.core.exceptions import AuthenticationError, ConfigurationError
from dinkup.app.domain.reconciliation.config import ReconciliationConfig
from dinkup.app.services.notification_service import LoggingMessageSender, MessageSender

logger = logging.getLogger("dinkup.auth")

_default_sender = LoggingMessageSender()


def _secrets_match(provided: Optional[str], expected: str) -> bool:
    if not provided:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


async def verify_webhook_secret(
    request: Request,
    x_webhook_secret: Optional[str] = Header(None),
) -> None:
    """
    Reject webhook calls whose X-Webhook-Secret does not match.

    Raises:
        ConfigurationError: 500 if no secret is configured
        AuthenticationError: 401 on missing or wrong header
    """
    if not settings.webhook_secret:
        logger.error("Webhook secret is not configured; rejecting %s", request.url.path)
        raise ConfigurationError("webhook_secret")

    if not _secrets_match(x_webhook_secret, settings.webhook_secret):
        client = request.client.host if request.client else "unknown"
        logger.warning("Rejected webhook call from %s: invalid secret", client)
        raise AuthenticationError("Invalid webhook secret")


async def require_admin_key(
    request: Request,
    x_admin_key: Optional[str] = Header(None),
) -> None:
    """Guard admin routes with the X-Admin-Key header."""
    if not settings.admin_api_key:
        logger.error("Admin API key is not configured; rejecting %s", request.url.path)
        raise ConfigurationError("admin_api_key")

    if not _secrets_match(x_admin_key, settings.admin_api_key):
        logger.warning("Rejected admin call to %s: invalid key", request.url.path)
        raise AuthenticationError("Invalid admin key")


def get_reconciliation_config() -> ReconciliationConfig:
    return ReconciliationConfig.from_settings(settings)


def get_message_sender() -> MessageSender:
    return _default_sender
