"""Utility helpers shared across apps."""

from __future__ import annotations

from typing import Any, Dict

from django.http import JsonResponse
from django.utils import timezone


def now_utc():
    """Return timezone-aware UTC now."""
    return timezone.now()


def json_error(message: str, status: int, **extra: Any) -> JsonResponse:
    """Return the `{error: ...}` envelope used for rejected requests."""
    payload: Dict[str, Any] = {"error": message}
    payload.update(extra)
    return JsonResponse(payload, status=status)
