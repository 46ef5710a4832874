"""Audit logging for inbound webhook events."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from django.db import DatabaseError, transaction

from apps.webhooks.handlers import HandlerResult
from apps.webhooks.models import WebhookEvent

logger = logging.getLogger(__name__)


def record_webhook_event(
    event_type: str, payload: Dict[str, Any], result: HandlerResult
) -> Optional[WebhookEvent]:
    """Append the audit row for a processed event.

    A failed insert is logged and yields ``None``.
    """
    try:
        with transaction.atomic():
            return WebhookEvent.objects.create(
                event_type=event_type,
                payload=payload,
                processing_status=result.status,
                error_message=result.message,
            )
    except DatabaseError:
        logger.exception(
            "booking_webhook.audit_write_failed",
            extra={"event_type": event_type, "processing_status": result.status},
        )
        return None
