"""Domain models for the webhooks module."""

from django.conf import settings
from django.db import models
from django.utils import timezone


class ProcessingStatus(models.TextChoices):
    SUCCESS = "success", "Success"
    ERROR = "error", "Error"
    DUPLICATE = "duplicate", "Duplicate"


class ImmutableEventError(Exception):
    """Raised when code tries to change or remove a stored webhook event."""


class WebhookEvent(models.Model):
    """Append-only audit record of an inbound booking event.

    One row is written for every request whose envelope validated, whatever
    the handler outcome. The rate limiter counts these rows, so they double as
    the limiter state.
    """

    event_type = models.CharField(max_length=100)
    payload = models.JSONField()
    processing_status = models.CharField(max_length=16, choices=ProcessingStatus.choices)
    error_message = models.TextField(null=True, blank=True)
    received_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        ordering = ["-received_at"]

    def __str__(self) -> str:
        return f"{self.event_type} [{self.processing_status}]"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ImmutableEventError("Webhook events are append-only.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ImmutableEventError("Webhook events are append-only.")


class WebhookConfig(models.Model):
    """Key/value configuration for inbound webhooks.

    ``signing_secret`` holds the HMAC key itself, never a digest of it: the
    verifier feeds it straight into HMAC-SHA256. It may be wrapped with
    :func:`apps.common.security.wrap_secret` at rest.
    """

    SIGNING_SECRET_KEY = "booking_signing_secret"

    key = models.CharField(max_length=100, unique=True)
    signing_secret = models.TextField()
    updated_at = models.DateTimeField(auto_now=True)
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )

    def __str__(self) -> str:
        return self.key
