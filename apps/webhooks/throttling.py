"""Global rate limit derived from the webhook audit table."""

from __future__ import annotations

import logging
from datetime import timedelta

from django.conf import settings
from django.db import DatabaseError

from apps.common.utils import now_utc
from apps.webhooks.models import WebhookEvent

logger = logging.getLogger(__name__)

DEFAULT_RATE_LIMIT = 100
DEFAULT_RATE_WINDOW_SECONDS = 60


def rate_limit() -> int:
    return int(getattr(settings, "BOOKING_WEBHOOK_RATE_LIMIT", DEFAULT_RATE_LIMIT))


def rate_window() -> timedelta:
    seconds = int(getattr(settings, "BOOKING_WEBHOOK_RATE_WINDOW_SECONDS", DEFAULT_RATE_WINDOW_SECONDS))
    return timedelta(seconds=seconds)


def is_rate_limited(now=None) -> bool:
    """True once the trailing window already holds ``rate_limit()`` events.

    Every handler instance reads the same table, so the limit holds across
    processes without any shared memory. A failed count is treated as zero.
    """
    now = now or now_utc()
    try:
        recent = WebhookEvent.objects.filter(received_at__gte=now - rate_window()).count()
    except DatabaseError:
        logger.exception("booking_webhook.rate_limit_count_failed")
        return False
    return recent >= rate_limit()
