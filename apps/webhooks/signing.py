"""Signing-secret resolution and HMAC verification for inbound webhooks."""

from __future__ import annotations

import hashlib
import hmac
import logging
from typing import Optional

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.db import DatabaseError

from apps.common.security import unwrap_secret
from apps.webhooks.models import WebhookConfig

logger = logging.getLogger(__name__)

SIGNATURE_PREFIX = "sha256="


def resolve_signing_secret() -> Optional[str]:
    """Return the active signing key, or ``None`` when nothing is configured.

    The database row wins over ``settings.BOOKING_WEBHOOK_SECRET``. Nothing is
    cached so a rotation applies to the very next request.
    """
    stored = None
    try:
        stored = (
            WebhookConfig.objects.filter(key=WebhookConfig.SIGNING_SECRET_KEY)
            .values_list("signing_secret", flat=True)
            .first()
        )
    except DatabaseError:
        logger.exception("booking_webhook.secret_lookup_failed")

    if stored:
        try:
            return unwrap_secret(stored) or None
        except ImproperlyConfigured:
            logger.error("booking_webhook.secret_undecryptable")
            return None

    fallback = getattr(settings, "BOOKING_WEBHOOK_SECRET", "")
    return fallback or None


def compute_signature(secret: str, raw_body: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()


def verify_signature(raw_body: bytes, signature_header: Optional[str]) -> bool:
    """Check ``signature_header`` against HMAC-SHA256 of the exact body bytes."""
    if not signature_header:
        return False

    secret = resolve_signing_secret()
    if not secret:
        logger.error("booking_webhook.secret_missing")
        return False

    received = signature_header.strip()
    if received.startswith(SIGNATURE_PREFIX):
        received = received[len(SIGNATURE_PREFIX):]

    try:
        expected = bytes.fromhex(compute_signature(secret, raw_body))
        return hmac.compare_digest(bytes.fromhex(received), expected)
    except (TypeError, ValueError):
        return False
