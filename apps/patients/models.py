"""Domain models for the patients module."""

from django.conf import settings
from django.db import models

from apps.common.models import TimeStampedModel


class Gender(models.TextChoices):
    """Gender values as delivered by the booking tool."""

    MALE = "maennlich", "Männlich"
    FEMALE = "weiblich", "Weiblich"
    DIVERSE = "divers", "Divers"
    UNKNOWN = "unbekannt", "Unbekannt"


class Patient(TimeStampedModel):
    """Master data for a patient of the practice."""

    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    birth_date = models.DateField()
    gender = models.CharField(max_length=16, choices=Gender.choices, default=Gender.UNKNOWN)
    phone = models.CharField(max_length=30, null=True, blank=True)
    email = models.EmailField(blank=True, db_index=True)
    # Correlation with the external booking tool. Not unique at the database
    # level; the webhook pipeline keeps it one-to-one through email matching.
    booking_system_id = models.CharField(max_length=255, null=True, blank=True, db_index=True)
    booking_email = models.EmailField(null=True, blank=True, db_index=True)
    therapist = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="patients",
    )

    class Meta:
        ordering = ["last_name", "first_name"]

    def __str__(self) -> str:
        return f"{self.first_name} {self.last_name}"
