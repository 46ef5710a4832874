"""Accounts and role models."""

from __future__ import annotations

from django.conf import settings
from django.db import models

from apps.common.models import TimeStampedModel


class UserProfile(TimeStampedModel):
    """Practice role attached to a Django user."""

    class Role(models.TextChoices):
        ADMIN = "admin", "Admin"
        THERAPIST = "therapist", "Therapist"

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="profile"
    )
    role = models.CharField(max_length=16, choices=Role.choices, default=Role.THERAPIST)

    def __str__(self) -> str:
        return f"{self.user.get_username()} ({self.role})"
