"""Webhook endpoint for events pushed by the external booking tool."""

from __future__ import annotations

import json
import logging
import math

from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from apps.common.utils import json_error
from apps.webhooks.handlers import HandlerResult
from apps.webhooks.models import ProcessingStatus
from apps.webhooks.router import build_default_router
from apps.webhooks.serializers import WebhookEnvelopeSerializer
from apps.webhooks.services import record_webhook_event
from apps.webhooks.signing import verify_signature
from apps.webhooks.throttling import is_rate_limited, rate_limit

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Webhook-Signature"
GENERIC_ERROR_MESSAGE = "Processing error. Details are available in the webhook event log."

event_router = build_default_router()


def _reject_constant(name: str):
    raise ValueError(f"Invalid JSON constant: {name}")


def _parse_finite_float(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        raise ValueError(f"Number out of range: {text}")
    return value


def _parse_body(raw_body: bytes):
    """Decode strict JSON: no NaN/Infinity literals and no float overflow."""
    return json.loads(raw_body, parse_constant=_reject_constant, parse_float=_parse_finite_float)


@csrf_exempt
@require_POST
def booking_webhook(request: HttpRequest) -> JsonResponse:
    raw_body = request.body

    if not verify_signature(raw_body, request.headers.get(SIGNATURE_HEADER)):
        logger.warning("booking_webhook.signature_invalid")
        return json_error("Invalid or missing webhook signature.", status=401)

    if is_rate_limited():
        logger.warning("booking_webhook.rate_limited")
        return json_error(
            f"Too many requests. Rate limit: {rate_limit()} events per minute.", status=429
        )

    try:
        body = _parse_body(raw_body)
    except (ValueError, RecursionError):
        return json_error("Invalid JSON body.", status=400)

    envelope = WebhookEnvelopeSerializer(data=body)
    if not envelope.is_valid():
        return json_error("Invalid webhook envelope.", status=422, details=envelope.errors)

    event_type = envelope.validated_data["event_type"]
    payload = envelope.validated_data["payload"]

    try:
        result = event_router.dispatch(event_type, payload)
    except Exception as exc:
        logger.exception("booking_webhook.unexpected_error", extra={"event_type": event_type})
        result = HandlerResult.error(f"Unexpected processing error ({exc.__class__.__name__}).")

    record_webhook_event(event_type, payload, result)

    if result.status == ProcessingStatus.ERROR:
        logger.error(
            "booking_webhook.handler_error",
            extra={"event_type": event_type, "error_message": result.message},
        )
        # Handler failures are acknowledged; the audit row carries the detail.
        return JsonResponse(
            {"received": True, "status": result.status, "message": GENERIC_ERROR_MESSAGE}
        )
    return JsonResponse({"received": True, "status": result.status})
